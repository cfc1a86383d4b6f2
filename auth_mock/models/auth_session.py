from __future__ import annotations

import secrets
import time
from dataclasses import dataclass

# One pending authorization, keyed by its one-time code.
#
# •	code: str                       (secrets.token_urlsafe(32), primary key)
# •	client_id: str | None
# •	redirect_uri: str               (compared byte-for-byte at /token)
# •	scope: str | None               (space-delimited)
# •	subject: str | None             (id_token "sub" typed by the operator)
# •	code_challenge: str | None
# •	code_challenge_method: "S256" | "plain" | None
# •	state: str | None
# •	created_at: int                 (unix seconds)
# •	expires_at: int | None          (None = never expires)


@dataclass(frozen=True, slots=True)
class AuthSession:
    code: str
    client_id: str | None
    redirect_uri: str
    scope: str | None
    subject: str | None
    code_challenge: str | None
    code_challenge_method: str | None
    state: str | None
    created_at: int
    expires_at: int | None

    @staticmethod
    def new(
        *,
        client_id: str | None,
        redirect_uri: str,
        scope: str | None,
        subject: str | None,
        code_challenge: str | None,
        code_challenge_method: str | None,
        state: str | None,
        ttl_sec: int,
    ) -> AuthSession:
        now = int(time.time())
        return AuthSession(
            # 256 bits from the OS CSPRNG
            code=secrets.token_urlsafe(32),
            client_id=client_id,
            redirect_uri=redirect_uri,
            scope=scope,
            subject=subject,
            code_challenge=code_challenge,
            code_challenge_method=code_challenge_method,
            state=state,
            created_at=now,
            expires_at=now + ttl_sec if ttl_sec > 0 else None,
        )

    def is_expired(self, now: float | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (time.time() if now is None else now) >= self.expires_at

    @property
    def scopes(self) -> frozenset[str]:
        return frozenset((self.scope or "").split())
