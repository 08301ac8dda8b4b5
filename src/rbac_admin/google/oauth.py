"""
rbac_admin.google.oauth

Google OAuth 2.0 login (authorization code flow).

Responsibilities:
- Build the consent-screen redirect URL (offline access so a refresh token is issued).
- Exchange the authorization code for tokens.
- Fetch the OpenID Connect profile of the signed-in user.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from rbac_admin.settings import Settings


class GoogleOAuthError(Exception):
    pass


def expires_in_seconds(data: dict[str, Any]) -> int | None:
    # Token endpoints send `expires_in` as a number or numeric string; anything else means unknown.
    raw = data.get("expires_in")
    try:
        seconds = int(raw)
    except (TypeError, ValueError):
        return None
    return seconds if seconds > 0 else None


@dataclass(frozen=True, slots=True)
class TokenGrant:
    access_token: str
    refresh_token: str | None
    expires_in: int | None


@dataclass(frozen=True, slots=True)
class GoogleProfile:
    id: str
    email: str
    name: str
    avatar: str | None


class GoogleOAuthClient:
    def __init__(self, *, settings: Settings, http: httpx.AsyncClient) -> None:
        self._settings = settings
        self._http = http

    def authorization_url(self, *, state: str) -> str:
        params = {
            "client_id": self._settings.google_client_id,
            "redirect_uri": self._settings.google_redirect_uri,
            "response_type": "code",
            "scope": self._settings.google_scopes,
            "access_type": "offline",
            "prompt": "consent",
            "include_granted_scopes": "true",
            "state": state,
        }
        return str(httpx.URL(self._settings.google_auth_url, params=params))

    async def exchange_code(self, code: str) -> TokenGrant:
        r = await self._http.post(
            self._settings.google_token_url,
            data={
                "client_id": self._settings.google_client_id,
                "client_secret": self._settings.google_client_secret,
                "grant_type": "authorization_code",
                "redirect_uri": self._settings.google_redirect_uri,
                "code": code,
            },
            timeout=self._settings.http_timeout_seconds,
        )
        if not r.is_success:
            raise GoogleOAuthError(f"code exchange failed with status {r.status_code}")
        try:
            data = r.json()
        except ValueError as e:
            raise GoogleOAuthError("code exchange returned a non-JSON body") from e
        if not isinstance(data, dict) or not data.get("access_token"):
            raise GoogleOAuthError("code exchange returned no access_token")
        return TokenGrant(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_in=expires_in_seconds(data),
        )

    async def fetch_profile(self, access_token: str) -> GoogleProfile:
        r = await self._http.get(
            self._settings.google_userinfo_url,
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=self._settings.http_timeout_seconds,
        )
        if not r.is_success:
            raise GoogleOAuthError(f"userinfo failed with status {r.status_code}")
        try:
            data = r.json()
        except ValueError as e:
            raise GoogleOAuthError("userinfo returned a non-JSON body") from e
        if not isinstance(data, dict) or not data.get("email") or not data.get("sub"):
            raise GoogleOAuthError("userinfo is missing sub/email")
        return GoogleProfile(
            id=str(data["sub"]),
            email=data["email"],
            name=data.get("name") or data["email"],
            avatar=data.get("picture"),
        )
