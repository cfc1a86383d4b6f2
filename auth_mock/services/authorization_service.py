"""Authorization-code lifecycle: mint a code, redeem it once.

start_session() runs on POST /o/oauth2/v2/auth once the operator has
picked a subject.  redeem_code() runs on POST /token.  They share nothing
but the AuthSessionRepo passed to each call.

The token checks run in a fixed order and stop at the first failure.  The
code is consumed (step 3) before anything about the caller is checked, so
a redemption that fails later still burns the code.
"""

from __future__ import annotations

import base64
import binascii
import logging
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from auth_mock.core.errors import (
    AuthMockError,
    InvalidRequest,
    SessionNotFound,
    VerificationFailed,
)
from auth_mock.core.metrics import AUTH_SESSIONS_CREATED, TOKEN_EXCHANGES
from auth_mock.models.auth_session import AuthSession
from auth_mock.models.authorize_request import AuthorizeSubmission
from auth_mock.models.token import TokenRequest, TokenResponse
from auth_mock.repos.auth_session_repo import AuthSessionRepo
from auth_mock.services import pkce_service, token_service

logger = logging.getLogger(__name__)

GRANT_TYPE = "authorization_code"
OPENID_SCOPE = "openid"


# ======================== POST /o/oauth2/v2/auth ==========================


def build_redirect_url(redirect_uri: str, params: dict[str, str]) -> str:
    """Set ``params`` on the redirect URI's query, keeping its other parameters."""
    parts = urlsplit(redirect_uri)
    query = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key not in params
    ]
    query.extend(params.items())
    return urlunsplit(parts._replace(query=urlencode(query)))


async def start_session(
    submission: AuthorizeSubmission,
    repo: AuthSessionRepo,
    *,
    ttl_sec: int,
) -> tuple[AuthSession, str]:
    """Store a new session for ``submission``; return it and the redirect URL."""
    record = AuthSession.new(
        client_id=submission.client_id,
        redirect_uri=submission.redirect_uri,
        scope=submission.scope,
        subject=submission.id_token_sub,
        code_challenge=submission.code_challenge,
        code_challenge_method=submission.code_challenge_method,
        state=submission.state,
        ttl_sec=ttl_sec,
    )
    await repo.create(record)
    AUTH_SESSIONS_CREATED.inc()
    logger.info(
        "AUTH FLOW [authorize] session stored  client_id=%s redirect_uri=%s "
        "scope=%s pkce=%s",
        record.client_id,
        record.redirect_uri,
        record.scope,
        record.code_challenge_method or "none",
    )

    params = {"code": record.code, **submission.forwarded_params()}
    return record, build_redirect_url(record.redirect_uri, params)


# ============================= POST /token ================================


def parse_basic_credentials(authorization: str | None) -> tuple[str, str]:
    """Split an ``Authorization: Basic`` header into (client_id, client_secret)."""
    if authorization is None:
        raise InvalidRequest("Authorization header is required.")

    scheme, _, credentials = authorization.strip().partition(" ")
    if scheme.lower() != "basic":
        raise InvalidRequest(
            f'Invalid Authorization header scheme: "{scheme}". Expected "Basic".'
        )

    credentials = credentials.strip()
    if not credentials:
        raise InvalidRequest("Credentials not found in Authorization header.")

    try:
        decoded = base64.b64decode(credentials, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        raise InvalidRequest(
            "Invalid Authorization header: credentials are not base64."
        ) from None

    client_id, sep, client_secret = decoded.partition(":")
    if not sep:
        raise InvalidRequest(
            "Invalid Authorization header: expected client_id:client_secret."
        )
    return client_id, client_secret


def _verify_pkce(record: AuthSession, code_verifier: str | None) -> None:
    if record.code_challenge is None:
        return
    if record.code_challenge_method != "S256":
        raise InvalidRequest(
            f'code_challenge_method "{record.code_challenge_method}" '
            "is not supported."
        )
    if code_verifier is None:
        raise InvalidRequest("Parameter code_verifier is required.")
    if not pkce_service.verify_code_challenge(code_verifier, record.code_challenge):
        raise VerificationFailed(
            "Hash of code_verifier does not match code_challenge."
        )


async def _redeem(
    form: TokenRequest,
    authorization: str | None,
    repo: AuthSessionRepo,
) -> TokenResponse:
    if form.grant_type is None:
        raise InvalidRequest("Parameter grant_type is required.")
    if form.grant_type != GRANT_TYPE:
        raise InvalidRequest(
            f'Invalid grant_type: "{form.grant_type}". Expected "{GRANT_TYPE}".'
        )

    if form.code is None:
        raise InvalidRequest("Parameter code is required.")

    # Never log the code itself: until now it was a bearer credential.
    record = await repo.take(form.code)
    if record is None:
        raise SessionNotFound()
    logger.info("AUTH FLOW [token] code consumed  client_id=%s", record.client_id)

    _verify_pkce(record, form.code_verifier)

    if form.redirect_uri != record.redirect_uri:
        raise VerificationFailed(
            "Parameter redirect_uri does not match the authorization request."
        )

    client_id, client_secret = parse_basic_credentials(authorization)
    if client_id != record.client_id:
        raise VerificationFailed("Invalid client_id.")
    if client_secret != token_service.MOCK_CLIENT_SECRET:
        raise VerificationFailed(
            f'Invalid client_secret. Expected "{token_service.MOCK_CLIENT_SECRET}". '
            "Never use a production client_secret in tests."
        )

    # An empty scope is a scope; only a session without one is malformed.
    if record.scope is None:
        raise InvalidRequest("Auth session has no scope.")
    if record.subject is None:
        raise InvalidRequest("Auth session has no subject.")

    id_token = None
    if OPENID_SCOPE in record.scopes:
        id_token = token_service.create_id_token(client_id=client_id, sub=record.subject)

    return TokenResponse(
        access_token=token_service.MOCK_ACCESS_TOKEN,
        token_type="Bearer",
        expires_in=token_service.ACCESS_TOKEN_TTL_SEC,
        scope=record.scope,
        id_token=id_token,
    )


async def redeem_code(
    form: TokenRequest,
    authorization: str | None,
    repo: AuthSessionRepo,
) -> TokenResponse:
    """Run the token endpoint's validation chain and build the response."""
    try:
        response = await _redeem(form, authorization, repo)
    except AuthMockError as exc:
        TOKEN_EXCHANGES.labels(outcome=type(exc).__name__).inc()
        raise
    TOKEN_EXCHANGES.labels(outcome="issued").inc()
    logger.info(
        "AUTH FLOW [token] tokens issued  id_token=%s",
        "yes" if response.id_token else "no",
    )
    return response
