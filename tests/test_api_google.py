from __future__ import annotations

import json
from datetime import timedelta
from urllib.parse import parse_qs, urlsplit

import pytest
from sqlalchemy import select

from rbac_admin.auth.jwt import StateConfig, issue_state
from rbac_admin.auth.models import GoogleCredentials
from rbac_admin.db.models import PersonalAccessToken, User, utcnow
from rbac_admin.db.repositories.credentials import CredentialStore

from conftest import bearer, issue_token, make_module, make_user

MEETING = {
    "summary": "Weekly sync",
    "description": "Roadmap",
    "start": {"dateTime": "2026-03-02T10:00:00Z", "timeZone": "UTC"},
    "end": {"dateTime": "2026-03-02T11:00:00Z", "timeZone": "UTC"},
    "attendees": [{"email": "guest@example.com"}],
}


async def _connected_caller(session, **creds):
    user = await make_user(session)
    await CredentialStore(session).save(
        user.id,
        GoogleCredentials(
            access_token=creds.get("access_token", "a1"),
            refresh_token=creds.get("refresh_token", "r1"),
            expires_at=creds.get("expires_at", utcnow() + timedelta(hours=1)),
        ),
    )
    return user, await issue_token(session, user)


@pytest.mark.asyncio
async def test_meet_create_returns_event(client, app_session, google) -> None:
    _, token = await _connected_caller(app_session)
    google.api_replies.append((200, {"id": "evt1", "hangoutLink": "https://meet.google.com/abc"}))

    r = await client.post("/api/auth/google/meet/create", json=MEETING, headers=bearer(token))

    assert r.status_code == 200
    assert r.json()["hangoutLink"] == "https://meet.google.com/abc"
    sent = json.loads(google.api_requests[0].content)
    assert sent["summary"] == "Weekly sync"
    assert sent["attendees"] == [{"email": "guest@example.com"}]
    assert sent["conferenceData"]["createRequest"]["conferenceSolutionKey"]["type"] == "hangoutsMeet"


@pytest.mark.asyncio
async def test_meet_create_refreshes_stale_token_first(client, app_session, google) -> None:
    _, token = await _connected_caller(app_session, expires_at=utcnow() + timedelta(seconds=30))
    google.token_replies.append((200, {"access_token": "a2", "expires_in": 3600}))

    r = await client.post("/api/auth/google/meet/create", json=MEETING, headers=bearer(token))

    assert r.status_code == 200
    assert len(google.token_requests) == 1
    assert google.api_requests[0].headers["Authorization"] == "Bearer a2"


@pytest.mark.asyncio
async def test_meet_create_surfaces_provider_errors(client, app_session, google) -> None:
    _, token = await _connected_caller(app_session)
    google.api_replies.append((400, {"error": {"message": "Invalid attendee"}}))

    r = await client.post("/api/auth/google/meet/create", json=MEETING, headers=bearer(token))

    assert r.status_code == 400
    assert r.json() == {
        "error": "Error al crear la reunión en Google Meet.",
        "details": {"error": {"message": "Invalid attendee"}},
    }


@pytest.mark.asyncio
async def test_meet_create_with_invalid_token(client, google) -> None:
    r = await client.post("/api/auth/google/meet/create", json=MEETING, headers=bearer("1|bad"))

    assert r.status_code == 401
    assert r.json()["authorized"] is False
    assert google.api_requests == []


@pytest.mark.asyncio
async def test_meet_create_validates_times(client, app_session) -> None:
    _, token = await _connected_caller(app_session)
    body = {**MEETING, "end": MEETING["start"]}

    r = await client.post("/api/auth/google/meet/create", json=body, headers=bearer(token))

    assert r.status_code == 422


@pytest.mark.asyncio
async def test_meet_create_accepts_mixed_offset_and_local_times(client, app_session, google) -> None:
    _, token = await _connected_caller(app_session)
    google.api_replies.append((200, {"id": "evt2"}))
    body = {
        **MEETING,
        "start": {"dateTime": "2026-01-02T10:00:00Z"},
        "end": {"dateTime": "2026-01-02T11:00:00", "timeZone": "UTC"},
    }

    r = await client.post("/api/auth/google/meet/create", json=body, headers=bearer(token))

    assert r.status_code == 200
    sent = json.loads(google.api_requests[0].content)
    assert sent["end"] == {"dateTime": "2026-01-02T11:00:00", "timeZone": "UTC"}


@pytest.mark.asyncio
async def test_meet_create_orders_mixed_offset_and_local_times(client, app_session, google) -> None:
    _, token = await _connected_caller(app_session)
    body = {
        **MEETING,
        "start": {"dateTime": "2026-01-02T10:00:00+00:00"},
        "end": {"dateTime": "2026-01-02T09:30:00"},
    }

    r = await client.post("/api/auth/google/meet/create", json=body, headers=bearer(token))

    assert r.status_code == 422
    assert google.api_requests == []


@pytest.mark.asyncio
async def test_meet_create_rejects_module_tokens(client, app_session) -> None:
    module = await make_module(app_session, "pg")
    token = await issue_token(app_session, module)

    r = await client.post("/api/auth/google/meet/create", json=MEETING, headers=bearer(token))

    assert r.status_code == 401


@pytest.mark.asyncio
async def test_proxy_passes_status_and_body_through(client, app_session, google) -> None:
    _, token = await _connected_caller(app_session)
    google.api_replies.append((404, {"error": {"code": 404, "message": "Not Found"}}))

    r = await client.post(
        "/api/auth/google/calendar/proxy",
        json={"method": "GET", "path": "/calendars/missing/events", "query": {"maxResults": 3}},
        headers=bearer(token),
    )

    assert r.status_code == 404
    assert r.json()["error"]["message"] == "Not Found"
    assert google.api_requests[0].url.params["maxResults"] == "3"


@pytest.mark.asyncio
async def test_proxy_retries_once_after_401(client, app_session, google) -> None:
    _, token = await _connected_caller(app_session)
    google.api_replies.extend([(401, {}), (401, {"error": "still unauthorized"})])
    google.token_replies.append((200, {"access_token": "a2", "expires_in": 3600}))

    r = await client.post(
        "/api/auth/google/calendar/proxy",
        json={"method": "POST", "path": "/calendars/primary/events", "json": {"summary": "x"}},
        headers=bearer(token),
    )

    assert r.status_code == 401
    assert len(google.api_requests) == 2
    assert json.loads(google.api_requests[1].content) == {"summary": "x"}


@pytest.mark.asyncio
async def test_proxy_without_google_account(client, app_session, google) -> None:
    user = await make_user(app_session)
    token = await issue_token(app_session, user)

    r = await client.post(
        "/api/auth/google/calendar/proxy",
        json={"method": "GET", "path": "/colors"},
        headers=bearer(token),
    )

    assert r.status_code == 401
    assert r.json() == {"error": "No access token available for this user."}
    assert google.api_requests == []


@pytest.mark.asyncio
async def test_proxy_rejects_unknown_methods(client, app_session) -> None:
    _, token = await _connected_caller(app_session)

    r = await client.post(
        "/api/auth/google/calendar/proxy",
        json={"method": "TRACE", "path": "/colors"},
        headers=bearer(token),
    )

    assert r.status_code == 422


@pytest.mark.asyncio
async def test_login_redirects_to_consent_screen(client) -> None:
    r = await client.get("/auth/login")

    assert r.status_code in (302, 307)
    location = urlsplit(r.headers["location"])
    params = parse_qs(location.query)
    assert location.netloc == "accounts.google.com"
    assert params["access_type"] == ["offline"]
    assert params["client_id"] == ["client-id"]
    assert params["state"]


def _state(settings) -> str:
    return issue_state(
        cfg=StateConfig(secret=settings.state_secret, issuer=settings.service_name),
        ttl=timedelta(minutes=5),
    )


@pytest.mark.asyncio
async def test_callback_issues_token_and_stores_credentials(
    client, app_session, google, settings
) -> None:
    google.token_replies.append(
        (200, {"access_token": "ga1", "refresh_token": "gr1", "expires_in": 3600})
    )

    r = await client.get("/auth/callback", params={"code": "abc", "state": _state(settings)})

    assert r.status_code in (302, 307)
    location = urlsplit(r.headers["location"])
    assert f"{location.scheme}://{location.netloc}{location.path}" == (
        "http://frontend.test/login-success"
    )
    plain = parse_qs(location.query)["token"][0]

    user = (
        await app_session.execute(select(User).where(User.email == "test@example.com"))
    ).scalar_one()
    assert user.google_id == "google-123"
    creds = await CredentialStore(app_session).load(user.id)
    assert creds is not None
    assert (creds.access_token, creds.refresh_token) == ("ga1", "gr1")
    assert creds.expires_at is not None

    tokens = (
        await app_session.execute(
            select(PersonalAccessToken).where(PersonalAccessToken.tokenable_id == user.id)
        )
    ).scalars().all()
    assert [t.name for t in tokens] == ["auth_token"]

    verify = await client.post("/api/auth/token/verify", headers=bearer(plain))
    assert verify.status_code == 200
    assert verify.json()["user"]["email"] == "test@example.com"


@pytest.mark.asyncio
async def test_callback_keeps_previous_refresh_token(client, app_session, google, settings) -> None:
    user = await make_user(app_session, email="test@example.com")
    await CredentialStore(app_session).save(
        user.id, GoogleCredentials(access_token="old", refresh_token="keep-me", expires_at=None)
    )
    google.token_replies.append((200, {"access_token": "ga2", "expires_in": 3600}))

    r = await client.get("/auth/callback", params={"code": "abc", "state": _state(settings)})

    assert r.status_code in (302, 307)
    creds = await CredentialStore(app_session).load(user.id)
    assert creds is not None
    assert (creds.access_token, creds.refresh_token) == ("ga2", "keep-me")


@pytest.mark.asyncio
async def test_callback_rejects_forged_state(client, google) -> None:
    r = await client.get("/auth/callback", params={"code": "abc", "state": "forged"})

    assert r.status_code == 401
    assert google.token_requests == []


@pytest.mark.asyncio
async def test_callback_with_rejected_code(client, app_session, google, settings) -> None:
    google.token_replies.append((400, {"error": "invalid_grant"}))

    r = await client.get("/auth/callback", params={"code": "bad", "state": _state(settings)})

    assert r.status_code == 401
    users = (await app_session.execute(select(User))).scalars().all()
    assert users == []


@pytest.mark.asyncio
async def test_callback_tolerates_non_numeric_expires_in(
    client, app_session, google, settings
) -> None:
    google.token_replies.append(
        (200, {"access_token": "ga3", "refresh_token": "gr3", "expires_in": "soon"})
    )

    r = await client.get("/auth/callback", params={"code": "abc", "state": _state(settings)})

    assert r.status_code in (302, 307)
    user = (
        await app_session.execute(select(User).where(User.email == "test@example.com"))
    ).scalar_one()
    creds = await CredentialStore(app_session).load(user.id)
    assert creds == GoogleCredentials(access_token="ga3", refresh_token="gr3", expires_at=None)
