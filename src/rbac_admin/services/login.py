"""
rbac_admin.services.login

Google login completion service (transaction owner).

Responsibilities:
- Exchange the callback code, load the Google profile, upsert the user by email.
- Persist the Google credential set (keeping a previous refresh token if none is sent).
- Issue the internal bearer token handed to the frontend.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from rbac_admin.auth.models import GoogleCredentials
from rbac_admin.db.models import TokenableType, utcnow
from rbac_admin.db.repositories.credentials import CredentialStore
from rbac_admin.db.repositories.tokens import TokenRegistry
from rbac_admin.db.repositories.users import UserRepo
from rbac_admin.google.oauth import GoogleOAuthClient
from rbac_admin.observability.logging import get_logger

log = get_logger(__name__)

LOGIN_TOKEN_NAME = "auth_token"


@dataclass(frozen=True, slots=True)
class LoginResult:
    user_id: int
    plain_text_token: str


class LoginService:
    def __init__(
        self,
        *,
        session: AsyncSession,
        oauth: GoogleOAuthClient,
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session = session
        self._oauth = oauth
        self._now = now

        self._users = UserRepo(session)
        self._tokens = TokenRegistry(session)
        self._credentials = CredentialStore(session)

    async def complete(self, *, code: str) -> LoginResult:
        grant = await self._oauth.exchange_code(code)
        profile = await self._oauth.fetch_profile(grant.access_token)

        user = await self._users.upsert_from_google(
            email=profile.email,
            name=profile.name,
            google_id=profile.id,
            avatar=profile.avatar,
        )
        previous = await self._credentials.load(user.id)
        _, plain = await self._tokens.issue(
            tokenable_type=TokenableType.user,
            tokenable_id=user.id,
            name=LOGIN_TOKEN_NAME,
        )

        expires_at = (
            self._now() + timedelta(seconds=grant.expires_in) if grant.expires_in else None
        )
        refresh_token = grant.refresh_token or (previous.refresh_token if previous else None)
        # Commits the upsert and the new bearer token together with the credentials.
        await self._credentials.save(
            user.id,
            GoogleCredentials(
                access_token=grant.access_token,
                refresh_token=refresh_token,
                expires_at=expires_at,
            ),
        )
        log.info("google_login_completed", user_id=user.id, has_refresh_token=bool(refresh_token))
        return LoginResult(user_id=user.id, plain_text_token=plain)


# --- Module Notes -----------------------------------------------------------
# The frontend receives the bearer token via redirect; it is never logged.
