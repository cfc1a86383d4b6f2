"""Health and readiness endpoints.

  /health  liveness plus which session store backend this process uses
  /ready   200 once the app is serving; harnesses that cannot use the
           --on-ready-pipe signal poll this instead
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Response

from auth_mock.api.dependencies import get_auth_session_repo
from auth_mock.repos.auth_session_repo import AuthSessionRepo

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(
    repo: Annotated[AuthSessionRepo, Depends(get_auth_session_repo)],
) -> dict:
    return {"status": "ok", "checks": {"session_store": repo.backend}}


@router.get("/ready")
async def ready() -> Response:
    return Response(status_code=200)
