"""
rbac_admin.google.credentials

Google access-token lifecycle.

Responsibilities:
- Decide whether a user's stored Google access token is stale (unset expiry, or
  expiring within the safety buffer).
- Exchange the refresh token for a new access token and persist the result.
- Coalesce concurrent refreshes for the same user within this process.
"""

from __future__ import annotations

import asyncio
import weakref
from collections.abc import Callable
from datetime import datetime, timedelta

import httpx

from rbac_admin.auth.models import GoogleCredentials
from rbac_admin.db.models import utcnow
from rbac_admin.db.repositories.credentials import CredentialStore
from rbac_admin.google.oauth import expires_in_seconds
from rbac_admin.observability.logging import get_logger
from rbac_admin.settings import Settings

log = get_logger(__name__)

_refresh_locks: weakref.WeakValueDictionary[int, asyncio.Lock] = weakref.WeakValueDictionary()


def _lock_for(user_id: int) -> asyncio.Lock:
    lock = _refresh_locks.get(user_id)
    if lock is None:
        lock = asyncio.Lock()
        _refresh_locks[user_id] = lock
    return lock


class CredentialRefresher:
    def __init__(
        self,
        *,
        store: CredentialStore,
        settings: Settings,
        http: httpx.AsyncClient,
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._settings = settings
        self._http = http
        self._now = now

    def is_stale(self, creds: GoogleCredentials) -> bool:
        if creds.expires_at is None:
            return True
        buffer = timedelta(seconds=self._settings.token_refresh_buffer_seconds)
        return creds.expires_at < self._now() + buffer

    async def ensure_live_access_token(self, user_id: int) -> str | None:
        """
        Return a usable access token, refreshing first when the stored one is stale.

        None means the user never connected a Google account. A failed refresh still
        returns the previous token; the proxy layer surfaces the resulting 401.
        """

        creds = await self._store.load(user_id)
        if creds is None or not creds.connected:
            return None
        if not (self.is_stale(creds) and creds.refresh_token):
            return creds.access_token

        async with _lock_for(user_id):
            # Re-read under the lock: a concurrent request may have refreshed already.
            creds = await self._store.load(user_id)
            if creds is None or not creds.connected:
                return None
            if self.is_stale(creds) and creds.refresh_token:
                refreshed = await self._refresh(user_id, creds)
                if refreshed is not None:
                    return refreshed
            return creds.access_token

    async def force_refresh(self, user_id: int) -> str | None:
        async with _lock_for(user_id):
            creds = await self._store.load(user_id)
            if creds is None:
                return None
            return await self._refresh(user_id, creds)

    async def _refresh(self, user_id: int, creds: GoogleCredentials) -> str | None:
        if not self._settings.google_oauth_configured or not creds.refresh_token:
            return None

        r = await self._http.post(
            self._settings.google_token_url,
            data={
                "client_id": self._settings.google_client_id,
                "client_secret": self._settings.google_client_secret,
                "grant_type": "refresh_token",
                "refresh_token": creds.refresh_token,
            },
            timeout=self._settings.http_timeout_seconds,
        )
        if not r.is_success:
            log.warning("google_token_refresh_rejected", user_id=user_id, status=r.status_code)
            return None

        try:
            data = r.json()
        except ValueError:
            log.warning("google_token_refresh_unparseable", user_id=user_id)
            return None
        access_token = data.get("access_token") if isinstance(data, dict) else None
        if not access_token:
            log.warning("google_token_refresh_missing_access_token", user_id=user_id)
            return None

        # Google may omit refresh_token on refresh; keep the one we have.
        new_refresh = data.get("refresh_token") or creds.refresh_token
        seconds = expires_in_seconds(data)
        expires_at = self._now() + timedelta(seconds=seconds) if seconds is not None else None

        await self._store.save(
            user_id,
            GoogleCredentials(
                access_token=access_token,
                refresh_token=new_refresh,
                expires_at=expires_at,
            ),
        )
        log.info(
            "google_token_refreshed",
            user_id=user_id,
            rotated=new_refresh != creds.refresh_token,
            expires_in=seconds,
        )
        return access_token


# --- Module Notes -----------------------------------------------------------
# Locks only coalesce refreshes inside one process; across replicas the last
# persisted credential set wins, which Google tolerates since each refresh yields
# a valid token.
