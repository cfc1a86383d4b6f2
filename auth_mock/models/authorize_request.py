"""Parameters of the authorization endpoint.

AuthorizeRequest is the GET query string.  AuthorizeSubmission is the POST
form rendered from it: the same fields as hidden inputs plus the subject
the operator typed.  The submission forbids unknown fields because the
form is ours; the query string ignores them because real clients send
provider extras (access_type, nonce, include_granted_scopes, ...).
"""

from __future__ import annotations

import string
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

# base64url of 32 random bytes, unpadded
EXPECTED_TOKEN_LENGTH = 43

URL_SAFE_CHARS = frozenset(string.ascii_letters + string.digits + "-._~")
BASE64URL_CHARS = frozenset(string.ascii_letters + string.digits + "-_")

SUPPORTED_CHALLENGE_METHODS = ("S256", "plain")

# Echoed onto the client's redirect_uri after "code", in this order.
FORWARDED_PARAMS = ("state", "scope", "authuser", "prompt")

# Width of auth_sessions.subject.
SUBJECT_MAX_LENGTH = 255


def _check_token(name: str, value: str, alphabet: frozenset[str], kind: str) -> None:
    if len(value) != EXPECTED_TOKEN_LENGTH:
        raise ValueError(
            f"Invalid {name} length: {len(value)}. Expected {EXPECTED_TOKEN_LENGTH}."
        )
    for char in value:
        if char not in alphabet:
            raise ValueError(
                f'Invalid {name} character: "{char}". Expected {kind} character.'
            )


class AuthorizeRequest(BaseModel):
    model_config = ConfigDict(strict=True, frozen=True, extra="ignore")

    # Declaration order is validation order; see auth_mock.models.params.
    response_type: str
    client_id: str | None = None
    redirect_uri: str
    scope: str | None = None
    state: str | None = None
    code_challenge_method: str | None = None
    code_challenge: str | None = None
    prompt: str | None = None
    authuser: str | None = None

    @field_validator("response_type")
    @classmethod
    def _response_type_is_code(cls, value: str) -> str:
        if value != "code":
            raise ValueError(f'Invalid response_type: "{value}". Expected "code".')
        return value

    @field_validator("redirect_uri")
    @classmethod
    def _redirect_uri_is_absolute(cls, value: str) -> str:
        try:
            scheme = urlsplit(value).scheme
        except ValueError:
            scheme = ""
        if not scheme:
            raise ValueError(
                f'Invalid redirect_uri: "{value}". Expected an absolute URI.'
            )
        return value

    @field_validator("state")
    @classmethod
    def _state_is_url_safe(cls, value: str | None) -> str | None:
        if value is not None:
            _check_token("state", value, URL_SAFE_CHARS, "URL-safe")
        return value

    @model_validator(mode="after")
    def _pkce_pair(self) -> AuthorizeRequest:
        method, challenge = self.code_challenge_method, self.code_challenge
        if method is None and challenge is None:
            return self
        if method is None:
            raise ValueError(
                "Parameter code_challenge_method is required "
                "when code_challenge is provided."
            )
        if challenge is None:
            raise ValueError(
                "Parameter code_challenge is required "
                "when code_challenge_method is provided."
            )
        if method not in SUPPORTED_CHALLENGE_METHODS:
            raise ValueError(
                f'Invalid code_challenge_method: "{method}". '
                'Expected "S256" or "plain".'
            )
        if method == "plain":
            # Only S256 is redeemable.
            raise ValueError('code_challenge_method "plain" is not supported.')
        _check_token("code_challenge", challenge, BASE64URL_CHARS, "base64url")
        return self

    def hidden_fields(self) -> dict[str, str]:
        """Every supplied parameter, in declaration order, for the login form."""
        return self.model_dump(exclude_none=True)

    def forwarded_params(self) -> dict[str, str]:
        values = self.model_dump(include=set(FORWARDED_PARAMS), exclude_none=True)
        return {name: values[name] for name in FORWARDED_PARAMS if name in values}


class AuthorizeSubmission(AuthorizeRequest):
    model_config = ConfigDict(strict=True, frozen=True, extra="forbid")

    id_token_sub: str

    @field_validator("id_token_sub")
    @classmethod
    def _sub_valid(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Parameter id_token_sub is required.")
        if len(value) > SUBJECT_MAX_LENGTH:
            raise ValueError(
                "Parameter id_token_sub must be at most "
                f"{SUBJECT_MAX_LENGTH} characters."
            )
        return value
