"""Authorization endpoint: the "Sign in with Google" page.

  GET  /o/oauth2/v2/auth  validate the request, render the sign-in form
  POST /o/oauth2/v2/auth  mint a code for the chosen subject, 303 back

There is no real login.  The form carries the validated request as hidden
inputs and asks the operator for the id_token "sub" to issue.  The code is
also returned in the X-Auth-Mock-Code header for harnesses that do not
follow redirects.
"""

from __future__ import annotations

import html
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse

from auth_mock.api.dependencies import get_auth_session_repo, get_settings
from auth_mock.core.config import Settings
from auth_mock.models.authorize_request import (
    SUBJECT_MAX_LENGTH,
    AuthorizeRequest,
    AuthorizeSubmission,
)
from auth_mock.models.params import decode_params
from auth_mock.repos.auth_session_repo import AuthSessionRepo
from auth_mock.services import authorization_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["authorize"])

AUTHORIZE_PATH = "/o/oauth2/v2/auth"
CODE_HEADER = "X-Auth-Mock-Code"
SUBJECT_FIELD = "id_token_sub"

_LOGIN_HTML = """\
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>Login with Google (mock)</title>
</head>
<body>
  <h1>Login with Google (mock)</h1>
  <p>
    The value below becomes the <code>sub</code> claim of the id_token
    returned by the token endpoint.
  </p>
  <form method="post" action="{action}">
{hidden}
    <label for="{subject}">sub</label>
    <input type="text" name="{subject}" id="{subject}" maxlength="{max_length}" required>
    <button type="submit">Submit</button>
  </form>
</body>
</html>
"""


def _hidden_input(name: str, value: str) -> str:
    return (
        f'    <input type="hidden" name="{html.escape(name)}" '
        f'value="{html.escape(value, quote=True)}">'
    )


def render_login_form(params: AuthorizeRequest) -> str:
    hidden = "\n".join(
        _hidden_input(name, value) for name, value in params.hidden_fields().items()
    )
    return _LOGIN_HTML.format(
        action=AUTHORIZE_PATH,
        hidden=hidden,
        subject=SUBJECT_FIELD,
        max_length=SUBJECT_MAX_LENGTH,
    )


@router.get(AUTHORIZE_PATH, response_class=HTMLResponse)
async def authorize_form(request: Request) -> HTMLResponse:
    params = decode_params(AuthorizeRequest, request.query_params)
    logger.info(
        "AUTH FLOW [authorize] request valid  client_id=%s redirect_uri=%s scope=%s",
        params.client_id,
        params.redirect_uri,
        params.scope,
    )
    return HTMLResponse(render_login_form(params))


@router.post(AUTHORIZE_PATH)
async def authorize_submit(
    request: Request,
    repo: Annotated[AuthSessionRepo, Depends(get_auth_session_repo)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> RedirectResponse:
    form = await request.form()
    submission = decode_params(AuthorizeSubmission, form)

    record, redirect_url = await authorization_service.start_session(
        submission, repo, ttl_sec=settings.auth_session_ttl_sec
    )
    return RedirectResponse(
        url=redirect_url,
        status_code=status.HTTP_303_SEE_OTHER,
        headers={CODE_HEADER: record.code},
    )
