"""FastAPI dependencies that hand app-scoped objects to route handlers.

create_app() puts the settings and the session store on app.state; these
read them back per request.  Handlers never import a store instance, so a
test can build an app around any store it likes.
"""

from __future__ import annotations

from fastapi import Request

from auth_mock.core.config import Settings
from auth_mock.repos.auth_session_repo import AuthSessionRepo


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_auth_session_repo(request: Request) -> AuthSessionRepo:
    return request.app.state.auth_session_repo
