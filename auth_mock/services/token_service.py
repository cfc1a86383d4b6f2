"""Mock token values and identity token synthesis.

Everything here is public on purpose.  Client test suites hard-code these
values, and the id_token is a structurally valid JWT that clients can
decode and inspect, nothing more.  It is signed HS256 with a key printed
in this file, so it proves nothing about who issued it; this service
never verifies it and neither should anything else.
"""

from __future__ import annotations

import time

import jwt

# The mock client secret.  Any client that presents it passes client auth.
MOCK_CLIENT_SECRET = "mock_client_secret"
MOCK_ACCESS_TOKEN = "mock_access_token"
ACCESS_TOKEN_TTL_SEC = 3600

ID_TOKEN_ISSUER = "https://accounts.google.com"
ID_TOKEN_TTL_SEC = 3600
ID_TOKEN_ALGORITHM = "HS256"
# Not a secret.  Long enough that PyJWT does not warn about HMAC key length.
ID_TOKEN_MOCK_KEY = "auth-mock-server-id-token-key-not-a-secret"


def create_id_token(*, client_id: str, sub: str, now: int | None = None) -> str:
    """Build a three-part id_token: header.payload.hmac, each base64url."""
    iat = int(time.time()) if now is None else now
    payload = {
        "aud": client_id,
        "iss": ID_TOKEN_ISSUER,
        "sub": sub,
        "iat": iat,
        "exp": iat + ID_TOKEN_TTL_SEC,
    }
    return jwt.encode(
        payload,
        ID_TOKEN_MOCK_KEY,
        algorithm=ID_TOKEN_ALGORITHM,
        headers={"typ": "JWT"},
    )
