"""
tests.conftest

Shared fixtures.

Responsibilities:
- Throwaway SQLite databases per test.
- A scripted fake of the Google endpoints (token, userinfo, calendar) on `httpx.MockTransport`.
- Helpers to create users, modules and bearer tokens.
"""

from __future__ import annotations

import itertools
from collections.abc import AsyncIterator
from datetime import datetime
from typing import Any

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rbac_admin.api.app import create_app
from rbac_admin.db.init_db import init_db
from rbac_admin.db.models import Module, TokenableType, User
from rbac_admin.db.repositories.tokens import TokenRegistry
from rbac_admin.db.session import create_engine, create_sessionmaker
from rbac_admin.settings import Settings

_emails = itertools.count(1)


class FakeGoogle:
    """
    Replies are queued per endpoint as (status, json) pairs; an empty queue falls back
    to a default reply. Every request is recorded.
    """

    def __init__(self) -> None:
        self.token_requests: list[httpx.Request] = []
        self.api_requests: list[httpx.Request] = []
        self.userinfo_requests: list[httpx.Request] = []
        self.token_replies: list[tuple[int, Any]] = []
        self.api_replies: list[tuple[int, Any]] = []
        self.userinfo: dict[str, Any] = {
            "sub": "google-123",
            "email": "test@example.com",
            "name": "Test User",
            "picture": "https://example.com/avatar.png",
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "oauth2.googleapis.com" and request.url.path == "/token":
            self.token_requests.append(request)
            status, body = (
                self.token_replies.pop(0) if self.token_replies else (400, {"error": "invalid_grant"})
            )
        elif request.url.path.endswith("/userinfo"):
            self.userinfo_requests.append(request)
            status, body = 200, self.userinfo
        else:
            self.api_requests.append(request)
            status, body = self.api_replies.pop(0) if self.api_replies else (200, {"items": []})
        return httpx.Response(status, json=body)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport())


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        env="test",
        log_level="WARNING",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        google_client_id="client-id",
        google_client_secret="client-secret",
        state_secret="test-state-secret",
        frontend_url="http://frontend.test",
    )


@pytest.fixture
def google() -> FakeGoogle:
    return FakeGoogle()


@pytest_asyncio.fixture
async def sessionmaker(settings: Settings) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_engine(settings)
    await init_db(engine)
    try:
        yield create_sessionmaker(engine)
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session(
    sessionmaker: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    async with sessionmaker() as s:
        yield s


@pytest_asyncio.fixture
async def app(settings: Settings, google: FakeGoogle) -> AsyncIterator[FastAPI]:
    app = create_app(settings=settings, google_transport=google.transport())
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest_asyncio.fixture
async def app_session(app: FastAPI) -> AsyncIterator[AsyncSession]:
    async with app.state.sessionmaker() as s:
        yield s


async def make_user(session: AsyncSession, **fields: Any) -> User:
    fields.setdefault("name", "Jane Doe")
    fields.setdefault("email", f"user{next(_emails)}@example.com")
    fields.setdefault("roles", [])
    fields.setdefault("permissions", [])
    user = User(**fields)
    session.add(user)
    await session.commit()
    return user


async def make_module(session: AsyncSession, slug: str, *, is_active: bool = True) -> Module:
    module = Module(slug=slug, name=slug.upper(), is_active=is_active)
    session.add(module)
    await session.commit()
    return module


async def issue_token(
    session: AsyncSession,
    owner: User | Module,
    *,
    abilities: tuple[str, ...] = ("*",),
    expires_at: datetime | None = None,
) -> str:
    kind = TokenableType.user if isinstance(owner, User) else TokenableType.module
    _, plain = await TokenRegistry(session).issue(
        tokenable_type=kind,
        tokenable_id=owner.id,
        name="test-token",
        abilities=abilities,
        expires_at=expires_at,
    )
    await session.commit()
    return plain


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
