"""Command-line entry point.

RUN:  auth-mock-server --db ./db.sqlite --port 3001 --on-ready-pipe ./ready.fifo
      python -m auth_mock ...

Test harnesses start this next to the app under test and block on the
ready pipe (``timeout 5 cat ./ready.fifo``) before driving the browser.
The line is written only after uvicorn has bound its socket, so the first
request after the signal cannot race the listener.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
from collections.abc import Sequence

import uvicorn

from auth_mock.core.config import Settings, load_settings, sqlite_url
from auth_mock.core.logging import setup_logging
from auth_mock.main import create_app

logger = logging.getLogger("auth_mock.cli")

READY_LINE = "ready\n"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="auth-mock-server",
        description="Mock Google OAuth 2.0 authorization and token endpoints.",
    )
    parser.add_argument(
        "--db",
        metavar="PATH",
        help="SQLite file for pending auth sessions (default: in-memory)",
    )
    parser.add_argument("--host", help="bind address (default: HOST or 127.0.0.1)")
    parser.add_argument("--port", type=int, help="listen port (default: PORT or 3000)")
    parser.add_argument(
        "--on-ready-pipe",
        metavar="PATH",
        help="named pipe or file to write a line to once the server is listening",
    )
    return parser


def settings_from_args(args: argparse.Namespace, base: Settings) -> Settings:
    overrides: dict[str, object] = {}
    if args.db:
        overrides["database_url"] = sqlite_url(args.db)
    if args.host:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port
    return dataclasses.replace(base, **overrides)


def signal_ready(path: str) -> None:
    # Opening a FIFO for writing blocks until the harness opens it for reading.
    with open(path, "w", encoding="utf-8") as pipe:
        pipe.write(READY_LINE)


async def serve(server: uvicorn.Server, on_ready_pipe: str | None) -> None:
    serve_task = asyncio.create_task(server.serve())
    while not server.started:
        if serve_task.done():
            # Startup failed (port in use, store unreachable); surface the error.
            await serve_task
            return
        await asyncio.sleep(0.05)

    logger.info("Listening on http://%s:%d", server.config.host, server.config.port)
    if on_ready_pipe:
        await asyncio.to_thread(signal_ready, on_ready_pipe)
    await serve_task


def main(argv: Sequence[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    settings = settings_from_args(args, load_settings())
    setup_logging(settings.log_level, json_format=settings.log_json)

    app = create_app(settings)
    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_config=None,  # keep the handlers installed by setup_logging
        access_log=False,  # RequestContextMiddleware logs every request
    )
    asyncio.run(serve(uvicorn.Server(config), args.on_ready_pipe))


if __name__ == "__main__":
    main()
