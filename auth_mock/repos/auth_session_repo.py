from __future__ import annotations

import dataclasses
import json
import threading
import time
from collections.abc import Mapping
from typing import Protocol, runtime_checkable

from redis.exceptions import RedisError

from auth_mock.core.errors import StorageError
from auth_mock.models.auth_session import AuthSession


@runtime_checkable
class AuthSessionRepo(Protocol):
    """Keyed storage for pending authorization sessions.

    take() is the only read.  It removes the session in the same
    indivisible step, so of two concurrent redemptions of one code at most
    one gets the record.  Expired records are reported as absent.
    """

    backend: str

    async def create(self, record: AuthSession) -> None: ...
    async def take(self, code: str) -> AuthSession | None: ...
    async def purge_expired(self) -> int: ...


class InMemoryAuthSessionRepo:
    """Process-local store; the default when no backend is configured.

    clone() copies the current sessions into an independent store so a test
    can set up one pending session and redeem it in several scenarios.
    """

    backend = "memory"

    def __init__(self, sessions: Mapping[str, AuthSession] | None = None) -> None:
        self._by_code: dict[str, AuthSession] = dict(sessions or {})
        # Handlers run on the event loop, but TestClient and sync callers may not.
        self._lock = threading.Lock()

    async def create(self, record: AuthSession) -> None:
        with self._lock:
            if record.code in self._by_code:
                raise StorageError("Failed to store auth session.")
            self._by_code[record.code] = record

    async def take(self, code: str) -> AuthSession | None:
        with self._lock:
            record = self._by_code.pop(code, None)
        if record is None or record.is_expired():
            return None
        return record

    async def purge_expired(self) -> int:
        now = time.time()
        with self._lock:
            expired = [c for c, r in self._by_code.items() if r.is_expired(now)]
            for code in expired:
                del self._by_code[code]
        return len(expired)

    def clone(self) -> InMemoryAuthSessionRepo:
        with self._lock:
            return InMemoryAuthSessionRepo(self._by_code)

    def __contains__(self, code: object) -> bool:
        return code in self._by_code

    def __len__(self) -> int:
        return len(self._by_code)


class RedisAuthSessionRepo:
    """Redis-backed store, shared by every server process pointed at it.

    Each session is one JSON string under auth_session:<code>, written with
    SET NX EX so a write either fully lands (with its TTL) or not at all.
    """

    backend = "redis"

    _PREFIX = "auth_session:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def create(self, record: AuthSession) -> None:
        ttl: int | None = None
        if record.expires_at is not None:
            ttl = max(1, record.expires_at - int(time.time()))
        try:
            stored = await self._redis.set(
                f"{self._PREFIX}{record.code}",
                json.dumps(dataclasses.asdict(record)),
                ex=ttl,
                nx=True,
            )
        except RedisError as exc:
            raise StorageError("Failed to store auth session.") from exc
        if not stored:
            raise StorageError("Failed to store auth session.")

    async def take(self, code: str) -> AuthSession | None:
        try:
            raw = await self._redis.getdel(f"{self._PREFIX}{code}")
        except RedisError as exc:
            raise StorageError("Failed to read auth session.") from exc
        if raw is None:
            return None
        record = AuthSession(**json.loads(raw))
        # Key expiry has one-second granularity; re-check against expires_at.
        return None if record.is_expired() else record

    async def purge_expired(self) -> int:
        return 0  # Redis evicts expired keys itself
