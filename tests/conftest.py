from __future__ import annotations

import asyncio
import base64
import dataclasses
from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient

from auth_mock.core.config import Settings
from auth_mock.main import create_app
from auth_mock.models.auth_session import AuthSession
from auth_mock.repos.auth_session_repo import InMemoryAuthSessionRepo
from auth_mock.services import pkce_service
from auth_mock.services.token_service import MOCK_CLIENT_SECRET

AUTHORIZE_PATH = "/o/oauth2/v2/auth"
TOKEN_PATH = "/token"

CLIENT_ID = "mock_client_id"
REDIRECT_URI = "https://example.com/login/callback"
SUBJECT = "kita"

# 43 base64url characters, shaped like a real S256 challenge
SAMPLE_CHALLENGE = "0123456789abcdef0123456789abcdef0123456789a"
SAMPLE_STATE = "sfZavFFyK5PDKdkEtHoOZ5GdXZtY1SwCTsHzlh6gHm4"


def make_settings(**overrides: object) -> Settings:
    settings = Settings(
        app_env="test",
        log_level="info",
        log_json=False,
        host="127.0.0.1",
        port=3000,
        database_url=None,
        redis_url=None,
        auth_session_ttl_sec=600,
    )
    return dataclasses.replace(settings, **overrides)  # type: ignore[arg-type]


@pytest.fixture
def repo() -> InMemoryAuthSessionRepo:
    return InMemoryAuthSessionRepo()


@pytest.fixture
def client(repo: InMemoryAuthSessionRepo) -> TestClient:
    return TestClient(create_app(make_settings(), repo), follow_redirects=False)


@pytest.fixture
def pkce_pair() -> tuple[str, str]:
    """(code_verifier, code_challenge) for the S256 method."""
    verifier = pkce_service.generate_code_verifier()
    return verifier, pkce_service.compute_code_challenge(verifier)


# ---------------------------------------------------------------------------
# Flow helpers
# ---------------------------------------------------------------------------


def authorize_params(**overrides: str | None) -> dict[str, str]:
    """Valid GET /o/oauth2/v2/auth query; pass name=None to drop a parameter."""
    params: dict[str, str | None] = {
        "response_type": "code",
        "client_id": CLIENT_ID,
        "redirect_uri": REDIRECT_URI,
        "scope": "openid email",
        "code_challenge_method": "S256",
        "code_challenge": SAMPLE_CHALLENGE,
    }
    params.update(overrides)
    return {k: v for k, v in params.items() if v is not None}


def submit_login(
    client: TestClient, params: dict[str, str], sub: str | None = SUBJECT
):
    """POST the login form as the browser would: hidden fields + subject."""
    data = dict(params)
    if sub is not None:
        data["id_token_sub"] = sub
    return client.post(AUTHORIZE_PATH, data=data)


def issue_code(client: TestClient, **overrides: str | None) -> str:
    resp = submit_login(client, authorize_params(**overrides))
    assert resp.status_code == 303, resp.text
    return resp.headers["x-auth-mock-code"]


def code_from_location(location: str) -> str:
    return parse_qs(urlparse(location).query)["code"][0]


def basic_auth(
    client_id: str = CLIENT_ID, client_secret: str = MOCK_CLIENT_SECRET
) -> dict[str, str]:
    raw = f"{client_id}:{client_secret}".encode()
    return {"Authorization": f"Basic {base64.b64encode(raw).decode()}"}


def token_form(code: str, /, **overrides: str | None) -> dict[str, str]:
    """Valid POST /token form; pass name=None, code included, to drop a field."""
    form: dict[str, str | None] = {
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": REDIRECT_URI,
    }
    form.update(overrides)
    return {k: v for k, v in form.items() if v is not None}


def store_session(repo: InMemoryAuthSessionRepo, **fields: object) -> AuthSession:
    """Put a session straight into the store, bypassing form validation."""
    values: dict[str, object] = {
        "client_id": CLIENT_ID,
        "redirect_uri": REDIRECT_URI,
        "scope": "openid",
        "subject": SUBJECT,
        "code_challenge": None,
        "code_challenge_method": None,
        "state": None,
        "ttl_sec": 600,
    }
    values.update(fields)
    record = AuthSession.new(**values)  # type: ignore[arg-type]
    asyncio.run(repo.create(record))
    return record
