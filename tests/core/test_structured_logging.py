"""Tests for structured (JSON) logging output.

LOG_JSON=true is for log aggregation; a formatter regression would ship
lines that arrive but cannot be parsed.  These drive real requests
through the app and read back what setup_logging wrote to stdout.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from auth_mock.core.errors import StorageError
from auth_mock.core.logging import _JsonFormatter, setup_logging
from auth_mock.main import create_app
from auth_mock.models.auth_session import AuthSession
from auth_mock.repos.auth_session_repo import InMemoryAuthSessionRepo
from tests.conftest import (
    authorize_params,
    basic_auth,
    issue_code,
    make_settings,
    submit_login,
    token_form,
)


@pytest.fixture(autouse=True)
def _restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _json_lines(out: str) -> list[dict[str, object]]:
    return [json.loads(line) for line in out.splitlines() if line.strip()]


def _by_logger(lines: list[dict[str, object]], name: str) -> list[dict[str, object]]:
    return [line for line in lines if line["logger"] == name]


class _FailingRepo(InMemoryAuthSessionRepo):
    async def create(self, record: AuthSession) -> None:
        raise StorageError("Failed to store auth session.")


def test_rejected_token_exchange_logs_request_context(
    capsys: pytest.CaptureFixture[str],
) -> None:
    setup_logging("info", json_format=True)
    client = TestClient(create_app(make_settings(), InMemoryAuthSessionRepo()))

    resp = client.post(
        "/token",
        data=token_form("never-issued"),
        headers={**basic_auth(), "X-Request-ID": "req-token-1"},
    )
    assert resp.status_code == 400

    lines = _json_lines(capsys.readouterr().out)

    (rejected,) = _by_logger(lines, "auth_mock.main")
    assert rejected["level"] == "WARNING"
    assert rejected["request_id"] == "req-token-1"
    assert str(rejected["message"]).startswith("POST /token rejected: ")

    (summary,) = _by_logger(lines, "auth_mock.middleware.request_context")
    assert summary["level"] == "INFO"
    assert summary["request_id"] == "req-token-1"
    assert summary["method"] == "POST"
    assert summary["path"] == "/token"
    assert summary["status_code"] == 400
    assert isinstance(summary["duration_ms"], float)


def test_issued_tokens_log_carries_request_id(
    capsys: pytest.CaptureFixture[str],
) -> None:
    setup_logging("info", json_format=True)
    client = TestClient(
        create_app(make_settings(), InMemoryAuthSessionRepo()),
        follow_redirects=False,
    )
    code = issue_code(client, code_challenge=None, code_challenge_method=None)
    capsys.readouterr()

    resp = client.post(
        "/token",
        data=token_form(code),
        headers={**basic_auth(), "X-Request-ID": "req-token-2"},
    )
    assert resp.status_code == 200

    lines = _json_lines(capsys.readouterr().out)
    flow = _by_logger(lines, "auth_mock.services.authorization_service")
    issued = [line for line in flow if "tokens issued" in str(line["message"])]
    assert len(issued) == 1
    assert issued[0]["request_id"] == "req-token-2"
    assert "method" not in issued[0]
    # the authorization code never reaches the log
    assert all(code not in str(line["message"]) for line in lines)


def test_storage_failure_logs_exception(capsys: pytest.CaptureFixture[str]) -> None:
    setup_logging("info", json_format=True)
    client = TestClient(
        create_app(make_settings(), _FailingRepo()), follow_redirects=False
    )

    resp = submit_login(client, authorize_params())
    assert resp.status_code == 400

    lines = _json_lines(capsys.readouterr().out)
    (failure,) = _by_logger(lines, "auth_mock.main")
    assert failure["level"] == "ERROR"
    assert failure["message"] == "Session store failure: Failed to store auth session."
    assert "StorageError: Failed to store auth session." in str(failure["exception"])
    assert failure["request_id"] != "-"


def test_container_format_is_plain_text(capsys: pytest.CaptureFixture[str]) -> None:
    setup_logging("info", json_format=False)
    client = TestClient(create_app(make_settings(), InMemoryAuthSessionRepo()))

    client.post("/token", data=token_form("never-issued"), headers=basic_auth())

    out = capsys.readouterr().out
    (rejected,) = [line for line in out.splitlines() if "rejected" in line]
    assert "WARNING" in rejected
    assert "auth_mock.main" in rejected
    assert "[main.py:" in rejected
    with pytest.raises(json.JSONDecodeError):
        json.loads(rejected)


def test_json_formatter_omits_absent_context() -> None:
    """Records logged outside a request carry no request fields."""
    record = logging.makeLogRecord({"name": "auth_mock.cli", "msg": "Listening"})
    parsed = json.loads(_JsonFormatter().format(record))
    assert "method" not in parsed
    assert "path" not in parsed
    assert "request_id" not in parsed
