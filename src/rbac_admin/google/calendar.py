"""
rbac_admin.google.calendar

HTTP client boundary for the Google Calendar API.

Responsibilities:
- Attach the user's live Google access token to calendar calls.
- Retry exactly once after a 401, following a forced credential refresh.
- Compose the Meet-enabled event payload for meeting creation.
"""

from __future__ import annotations

import uuid
from typing import Any

import httpx
from starlette.status import HTTP_401_UNAUTHORIZED

from rbac_admin.db.repositories.credentials import CredentialStore
from rbac_admin.google.credentials import CredentialRefresher
from rbac_admin.observability.logging import get_logger
from rbac_admin.settings import Settings

log = get_logger(__name__)


class NoCredentials(Exception):
    status_code = HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "No access token available for this user.") -> None:
        super().__init__(message)
        self.message = message


class CalendarClient:
    """
    Provider responses are returned verbatim, error statuses included; only a 401 is
    acted upon, and only once.
    """

    def __init__(
        self,
        *,
        refresher: CredentialRefresher,
        store: CredentialStore,
        settings: Settings,
        http: httpx.AsyncClient,
    ) -> None:
        self._refresher = refresher
        self._store = store
        self._settings = settings
        self._http = http

    def _url(self, path: str) -> str:
        return self._settings.google_calendar_base_url.rstrip("/") + "/" + path.lstrip("/")

    async def _send(
        self,
        method: str,
        url: str,
        token: str,
        *,
        query: dict[str, Any] | None,
        json: Any,
        headers: dict[str, str] | None,
    ) -> httpx.Response:
        forwarded = {k: v for k, v in (headers or {}).items() if k.lower() != "authorization"}
        return await self._http.request(
            method.upper(),
            url,
            params=query,
            json=json,
            headers={**forwarded, "Authorization": f"Bearer {token}"},
            timeout=self._settings.http_timeout_seconds,
        )

    async def invoke(
        self,
        user_id: int,
        method: str,
        path: str,
        *,
        query: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        token = await self._refresher.ensure_live_access_token(user_id)
        if not token:
            raise NoCredentials()

        url = self._url(path)
        r = await self._send(method, url, token, query=query, json=json, headers=headers)
        if r.status_code != HTTP_401_UNAUTHORIZED:
            return r

        creds = await self._store.load(user_id)
        if creds is None or not creds.refresh_token:
            return r

        log.info("google_call_unauthorized_retrying", user_id=user_id, method=method.upper())
        await self._refresher.force_refresh(user_id)
        # Re-read rather than trust force_refresh: a failed refresh leaves the old token.
        creds = await self._store.load(user_id)
        retry_token = (creds.access_token if creds is not None else None) or token
        return await self._send(method, url, retry_token, query=query, json=json, headers=headers)

    async def create_meeting(self, user_id: int, event: dict[str, Any]) -> httpx.Response:
        payload = {
            **event,
            "conferenceData": {
                "createRequest": {
                    "requestId": f"meet_{uuid.uuid4().hex}",
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                }
            },
        }
        return await self.invoke(
            user_id,
            "POST",
            "/calendars/primary/events",
            query={"conferenceDataVersion": 1},
            json=payload,
        )


# --- Module Notes -----------------------------------------------------------
# Transport errors (`httpx.HTTPError`) propagate; routers log them and answer 500.
