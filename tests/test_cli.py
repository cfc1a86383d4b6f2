from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator
from pathlib import Path
from types import SimpleNamespace

import pytest
import uvicorn

from auth_mock import cli
from auth_mock.core.config import sqlite_url
from tests.conftest import make_settings


@pytest.fixture(autouse=True)
def _restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


# ---- argument parsing ----


def test_no_flags_keep_base_settings() -> None:
    base = make_settings()
    args = cli.build_parser().parse_args([])
    assert cli.settings_from_args(args, base) == base


def test_flags_override_settings() -> None:
    args = cli.build_parser().parse_args(
        ["--db", "./db.sqlite", "--host", "0.0.0.0", "--port", "3001"]
    )
    settings = cli.settings_from_args(args, make_settings())
    assert settings.database_url == sqlite_url("./db.sqlite")
    assert settings.host == "0.0.0.0"
    assert settings.port == 3001


def test_port_zero_is_an_override() -> None:
    args = cli.build_parser().parse_args(["--port", "0"])
    assert cli.settings_from_args(args, make_settings()).port == 0


def test_on_ready_pipe_parsed() -> None:
    args = cli.build_parser().parse_args(["--on-ready-pipe", "./ready.fifo"])
    assert args.on_ready_pipe == "./ready.fifo"


def test_invalid_port_exits() -> None:
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["--port", "http"])


# ---- ready signal ----


def test_signal_ready_writes_line(tmp_path: Path) -> None:
    target = tmp_path / "ready"
    cli.signal_ready(str(target))
    assert target.read_text() == "ready\n"


class _StubServer:
    """Stands in for uvicorn.Server: flips ``started`` then runs briefly."""

    def __init__(self, *, fail_with: Exception | None = None) -> None:
        self.started = False
        self.config = SimpleNamespace(host="127.0.0.1", port=3001)
        self._fail_with = fail_with

    async def serve(self) -> None:
        if self._fail_with is not None:
            raise self._fail_with
        await asyncio.sleep(0.01)
        self.started = True
        await asyncio.sleep(0.2)


def test_serve_signals_after_start(tmp_path: Path) -> None:
    target = tmp_path / "ready"
    server = _StubServer()
    asyncio.run(cli.serve(server, str(target)))  # type: ignore[arg-type]
    assert server.started
    assert target.read_text() == "ready\n"


def test_serve_without_pipe(tmp_path: Path) -> None:
    server = _StubServer()
    asyncio.run(cli.serve(server, None))  # type: ignore[arg-type]
    assert server.started
    assert list(tmp_path.iterdir()) == []


def test_serve_surfaces_startup_failure(tmp_path: Path) -> None:
    target = tmp_path / "ready"
    server = _StubServer(fail_with=OSError("address already in use"))
    with pytest.raises(OSError, match="address already in use"):
        asyncio.run(cli.serve(server, str(target)))  # type: ignore[arg-type]
    assert not target.exists()


# ---- main ----


def test_main_builds_uvicorn_server(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    for name in ("LOG_LEVEL", "LOG_JSON", "HOST", "PORT", "DATABASE_URL", "REDIS_URL"):
        monkeypatch.delenv(name, raising=False)
    seen: dict[str, object] = {}

    async def fake_serve(server: uvicorn.Server, on_ready_pipe: str | None) -> None:
        seen["server"] = server
        seen["pipe"] = on_ready_pipe

    monkeypatch.setattr(cli, "serve", fake_serve)
    db = str(tmp_path / "db.sqlite")
    cli.main(["--db", db, "--port", "3002", "--on-ready-pipe", "./ready.fifo"])

    server = seen["server"]
    assert isinstance(server, uvicorn.Server)
    assert server.config.port == 3002
    assert server.config.host == "127.0.0.1"
    assert server.config.app.state.settings.database_url == sqlite_url(db)
    assert server.config.app.state.auth_session_repo.backend == "sql"
    assert seen["pipe"] == "./ready.fifo"
