"""SQL implementation of AuthSessionRepo (SQLite file or PostgreSQL)."""

from __future__ import annotations

import time

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from auth_mock.core.errors import StorageError
from auth_mock.db.tables import AuthSessionRow
from auth_mock.models.auth_session import AuthSession

_TABLE = AuthSessionRow.__table__


class SqlAuthSessionRepo:
    """Satisfies the AuthSessionRepo Protocol using a single table.

    take() is one DELETE ... RETURNING statement: the database guarantees
    that only one of two racing deletes returns the row.
    """

    backend = "sql"

    def __init__(self, engine: AsyncEngine) -> None:
        self._session_factory = async_sessionmaker(engine, expire_on_commit=False)

    async def create(self, record: AuthSession) -> None:
        try:
            # Commit or roll back as a unit: a failed insert leaves no row.
            async with self._session_factory() as session, session.begin():
                session.add(_auth_session_to_row(record))
        except SQLAlchemyError as exc:
            raise StorageError("Failed to store auth session.") from exc

    async def take(self, code: str) -> AuthSession | None:
        stmt = delete(_TABLE).where(_TABLE.c.code == code).returning(*_TABLE.c)
        try:
            async with self._session_factory() as session, session.begin():
                row = (await session.execute(stmt)).mappings().one_or_none()
        except SQLAlchemyError as exc:
            raise StorageError("Failed to read auth session.") from exc
        if row is None:
            return None
        record = AuthSession(**{c.name: row[c.name] for c in _TABLE.c})
        return None if record.is_expired() else record

    async def purge_expired(self) -> int:
        stmt = delete(_TABLE).where(
            _TABLE.c.expires_at.is_not(None),
            _TABLE.c.expires_at <= int(time.time()),
        )
        try:
            async with self._session_factory() as session, session.begin():
                result = await session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StorageError("Failed to purge auth sessions.") from exc
        return result.rowcount or 0


def _auth_session_to_row(record: AuthSession) -> AuthSessionRow:
    return AuthSessionRow(
        code=record.code,
        client_id=record.client_id,
        redirect_uri=record.redirect_uri,
        scope=record.scope,
        subject=record.subject,
        code_challenge=record.code_challenge,
        code_challenge_method=record.code_challenge_method,
        state=record.state,
        created_at=record.created_at,
        expires_at=record.expires_at,
    )
