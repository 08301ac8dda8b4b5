"""
rbac_admin.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings, DB sessions, and the shared outbound HTTP client.
- Build Google boundary objects (refresher, calendar client, OAuth client) per request.
- Encapsulate app.state access patterns (settings/sessionmaker/http client).
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rbac_admin.db.repositories.credentials import CredentialStore
from rbac_admin.google.calendar import CalendarClient
from rbac_admin.google.credentials import CredentialRefresher
from rbac_admin.google.oauth import GoogleOAuthClient
from rbac_admin.settings import Settings


def settings_dep(request: Request) -> Settings:
    # Set once in `rbac_admin.api.app.create_app`.
    return request.app.state.settings  # type: ignore[attr-defined]


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    # The sessionmaker is created on app startup in `rbac_admin.api.app.create_app`.
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


async def db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AsyncIterator[AsyncSession]:
    # Request-scoped DB session. Commit/rollback is managed explicitly by routers/services.
    async with session_factory() as session:
        yield session


def google_http(request: Request) -> httpx.AsyncClient:
    return request.app.state.google_http  # type: ignore[attr-defined]


def credential_refresher(
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
    http: httpx.AsyncClient = Depends(google_http),
) -> CredentialRefresher:
    return CredentialRefresher(store=CredentialStore(session), settings=settings, http=http)


def calendar_client(
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
    http: httpx.AsyncClient = Depends(google_http),
    refresher: CredentialRefresher = Depends(credential_refresher),
) -> CalendarClient:
    return CalendarClient(
        refresher=refresher,
        store=CredentialStore(session),
        settings=settings,
        http=http,
    )


def google_oauth_client(
    settings: Settings = Depends(settings_dep),
    http: httpx.AsyncClient = Depends(google_http),
) -> GoogleOAuthClient:
    return GoogleOAuthClient(settings=settings, http=http)


# --- Module Notes -----------------------------------------------------------
# Tests inject a `httpx.MockTransport` through `create_app(google_transport=...)`;
# every Google boundary object shares that one client.
