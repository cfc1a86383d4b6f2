"""Redis connection management for the Redis session store.

Mirrors engine.py: a client is only created when REDIS_URL is set, and
lifespan_redis() verifies it on startup and closes the pool on shutdown.
Redis is a natural fit here: keys expire on their own (no purge job) and
GETDEL gives the token endpoint an atomic read-and-delete.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


def create_redis_client(redis_url: str) -> aioredis.Redis:  # type: ignore[type-arg]
    return aioredis.from_url(
        redis_url,
        decode_responses=True,  # values come back as str, not bytes
        max_connections=20,
    )


@asynccontextmanager
async def lifespan_redis(
    client: aioredis.Redis | None,  # type: ignore[type-arg]
) -> AsyncGenerator[None, None]:
    if client is None:
        logger.debug("No REDIS_URL configured; Redis session store disabled")
        yield
        return

    # Fail fast: with Redis as the only store there is no fallback to degrade to.
    await client.ping()  # type: ignore[misc]  # redis stubs mistype async ping as bool
    logger.info("Redis connected")
    try:
        yield
    finally:
        await client.aclose()
        logger.info("Redis connection pool closed")
