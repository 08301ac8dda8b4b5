"""
rbac_admin.db.repositories.credentials

Google credential store embedded in the `users` table.

Responsibilities:
- Load a user's Google access/refresh token and expiry as an immutable snapshot.
- Persist a complete credential set in a single committed write.
"""

from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_admin.auth.models import GoogleCredentials
from rbac_admin.db.models import User, utcnow


class CredentialStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def load(self, user_id: int) -> GoogleCredentials | None:
        # Column-level select so a stale identity-map copy of the user is never returned.
        stmt = select(
            User.google_token, User.google_refresh_token, User.google_token_expires_at
        ).where(User.id == user_id)
        row = (await self._session.execute(stmt)).one_or_none()
        if row is None:
            return None
        return GoogleCredentials(
            access_token=row.google_token,
            refresh_token=row.google_refresh_token,
            expires_at=row.google_token_expires_at,
        )

    async def save(self, user_id: int, creds: GoogleCredentials) -> None:
        """
        Overwrite all three fields and commit.

        Rotated refresh tokens must survive even if the surrounding request later fails,
        so this write is committed on its own rather than left to the caller.
        """

        await self._session.execute(
            update(User)
            .where(User.id == user_id)
            .values(
                google_token=creds.access_token,
                google_refresh_token=creds.refresh_token,
                google_token_expires_at=creds.expires_at,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session="fetch")
        )
        await self._session.commit()


# --- Module Notes -----------------------------------------------------------
# Last write wins: there is no version column. In-process coalescing of concurrent
# refreshes lives in `rbac_admin.google.credentials`.
