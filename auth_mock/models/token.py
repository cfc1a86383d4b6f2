from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class TokenRequest(BaseModel):
    """Form body of POST /token.

    Every field is optional at the schema level: the token endpoint checks
    presence itself, in a fixed order, interleaved with the session lookup.
    Extra fields (client_id, client_secret in the body) are ignored; client
    authentication is Basic only.
    """

    model_config = ConfigDict(strict=True, frozen=True, extra="ignore")

    grant_type: str | None = None
    code: str | None = None
    redirect_uri: str | None = None
    code_verifier: str | None = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    scope: str | None = None
    id_token: str | None = None
