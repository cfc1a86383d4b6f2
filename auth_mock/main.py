from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from auth_mock.api.authorize import router as authorize_router
from auth_mock.api.health import router as health_router
from auth_mock.api.metrics_endpoint import router as metrics_router
from auth_mock.api.token import router as token_router
from auth_mock.core.config import Settings, load_settings
from auth_mock.core.errors import AuthMockError, StorageError
from auth_mock.db.engine import create_engine, lifespan_db
from auth_mock.db.redis import create_redis_client, lifespan_redis
from auth_mock.middleware.metrics import MetricsMiddleware
from auth_mock.middleware.request_context import RequestContextMiddleware
from auth_mock.repos.auth_session_repo import (
    AuthSessionRepo,
    InMemoryAuthSessionRepo,
    RedisAuthSessionRepo,
)
from auth_mock.repos.sql_auth_session_repo import SqlAuthSessionRepo

logger = logging.getLogger(__name__)


async def _auth_mock_error(request: Request, exc: AuthMockError) -> PlainTextResponse:
    if isinstance(exc, StorageError):
        logger.error("Session store failure: %s", exc.message, exc_info=exc)
    else:
        logger.warning(
            "%s %s rejected: %s", request.method, request.url.path, exc.message
        )
    return PlainTextResponse(exc.message, status_code=exc.status_code)


async def _http_error(
    request: Request, exc: StarletteHTTPException
) -> PlainTextResponse:
    # 404 / 405 from the router, as plain text like every other error here
    return PlainTextResponse(
        str(exc.detail), status_code=exc.status_code, headers=exc.headers
    )


def create_app(
    settings: Settings | None = None,
    auth_session_repo: AuthSessionRepo | None = None,
) -> FastAPI:
    """Build the ASGI app around one session store.

    The store comes from ``auth_session_repo`` when given (tests), otherwise
    from settings: DATABASE_URL → SQL, REDIS_URL → Redis, else in-memory.
    """
    settings = settings or load_settings()

    engine = None
    redis_client = None
    if auth_session_repo is not None:
        repo = auth_session_repo
    elif settings.database_url:
        engine = create_engine(settings.database_url)
        repo = SqlAuthSessionRepo(engine)
    elif settings.redis_url:
        redis_client = create_redis_client(settings.redis_url)
        repo = RedisAuthSessionRepo(redis_client)
    else:
        repo = InMemoryAuthSessionRepo()

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
        async with lifespan_db(engine):
            async with lifespan_redis(redis_client):
                logger.info(
                    "auth-mock-server started  env=%s session_store=%s ttl=%ss",
                    settings.app_env,
                    repo.backend,
                    settings.auth_session_ttl_sec,
                )
                yield

    app = FastAPI(
        title="auth-mock-server",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_dev else None,
        redoc_url=None,
    )
    app.state.settings = settings
    app.state.auth_session_repo = repo

    app.add_exception_handler(AuthMockError, _auth_mock_error)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _http_error)  # type: ignore[arg-type]

    # Last-added runs first: RequestContext (outermost) → Metrics → route
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestContextMiddleware)

    app.include_router(authorize_router)
    app.include_router(token_router)
    app.include_router(health_router)
    app.include_router(metrics_router)
    return app
