"""Token endpoint, POST /token.

Form-encoded body (grant_type, code, redirect_uri, code_verifier) plus
``Authorization: Basic base64(client_id:client_secret)``.  Other methods
get 405 from the router.  All checks live in authorization_service.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request

from auth_mock.api.dependencies import get_auth_session_repo
from auth_mock.models.params import decode_params
from auth_mock.models.token import TokenRequest, TokenResponse
from auth_mock.repos.auth_session_repo import AuthSessionRepo
from auth_mock.services import authorization_service

router = APIRouter(tags=["token"])

TOKEN_PATH = "/token"


@router.post(
    TOKEN_PATH,
    response_model=TokenResponse,
    response_model_exclude_none=True,
)
async def exchange_token(
    request: Request,
    repo: Annotated[AuthSessionRepo, Depends(get_auth_session_repo)],
    authorization: Annotated[str | None, Header()] = None,
) -> TokenResponse:
    form = await request.form()
    token_request = decode_params(TokenRequest, form)
    return await authorization_service.redeem_code(token_request, authorization, repo)
