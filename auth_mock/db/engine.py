"""Async SQLAlchemy engine for the SQL session store.

Used when DATABASE_URL is set (the CLI's --db flag sets it to a SQLite
file).  Unlike a long-lived service database there are no migrations:
the one table is created on startup if it does not exist.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all table models."""


def create_engine(database_url: str) -> AsyncEngine:
    return create_async_engine(database_url, pool_pre_ping=True)


async def init_schema(engine: AsyncEngine) -> None:
    """Create missing tables.  Idempotent."""
    from auth_mock.db import tables  # noqa: F401  (registers rows on Base)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def lifespan_db(engine: AsyncEngine | None) -> AsyncGenerator[None, None]:
    """Startup/shutdown hook: bootstrap the schema, dispose the pool on exit."""
    if engine is None:
        logger.debug("No DATABASE_URL configured; SQL session store disabled")
        yield
        return

    await init_schema(engine)
    logger.info(
        "Session table ready: %s", engine.url.render_as_string(hide_password=True)
    )
    try:
        yield
    finally:
        await engine.dispose()
        logger.info("Database engine disposed")
