"""
rbac_admin.api.routers.google_auth

Google sign-in endpoints.

Responsibilities:
- Redirect the browser to Google's consent screen with a signed `state`.
- Complete the callback: persist Google credentials, issue an internal bearer token,
  and redirect to the frontend with it.
"""

from __future__ import annotations

from datetime import timedelta
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, RedirectResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_503_SERVICE_UNAVAILABLE

from rbac_admin.api.deps import db_session, google_oauth_client, settings_dep
from rbac_admin.auth.jwt import StateConfig, StateValidationError, issue_state, verify_state
from rbac_admin.google.oauth import GoogleOAuthClient, GoogleOAuthError
from rbac_admin.observability.logging import get_logger
from rbac_admin.services.login import LoginService
from rbac_admin.settings import Settings

log = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["google-auth"])


def _state_cfg(settings: Settings) -> StateConfig:
    return StateConfig(secret=settings.state_secret, issuer=settings.service_name)


@router.get("/login")
async def redirect_to_google(
    settings: Settings = Depends(settings_dep),
    oauth: GoogleOAuthClient = Depends(google_oauth_client),
) -> Response:
    if not settings.google_oauth_configured:
        return JSONResponse(
            status_code=HTTP_503_SERVICE_UNAVAILABLE,
            content={"error": "Google OAuth no está configurado."},
        )
    state = issue_state(
        cfg=_state_cfg(settings), ttl=timedelta(seconds=settings.state_ttl_seconds)
    )
    return RedirectResponse(oauth.authorization_url(state=state))


@router.get("/callback")
async def handle_google_callback(
    code: str = Query(min_length=1),
    state: str = Query(min_length=1),
    settings: Settings = Depends(settings_dep),
    oauth: GoogleOAuthClient = Depends(google_oauth_client),
    session: AsyncSession = Depends(db_session),
) -> Response:
    try:
        verify_state(cfg=_state_cfg(settings), state=state)
    except StateValidationError as e:
        log.warning("google_callback_bad_state", error=str(e))
        return JSONResponse(status_code=HTTP_401_UNAUTHORIZED, content={"error": "Estado inválido."})

    try:
        result = await LoginService(session=session, oauth=oauth).complete(code=code)
    except (GoogleOAuthError, httpx.HTTPError) as e:
        await session.rollback()
        log.warning("google_callback_failed", error=str(e))
        return JSONResponse(
            status_code=HTTP_401_UNAUTHORIZED,
            content={"error": "No se pudo completar el inicio de sesión con Google."},
        )

    query = urlencode({"token": result.plain_text_token})
    return RedirectResponse(f"{settings.frontend_url.rstrip('/')}/login-success?{query}")


# --- Module Notes -----------------------------------------------------------
# The redirect carries the plain-text bearer token once; it is never stored or logged.
