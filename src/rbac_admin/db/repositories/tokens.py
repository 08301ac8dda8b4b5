"""
rbac_admin.db.repositories.tokens

Token registry backed by `personal_access_tokens`.

Responsibilities:
- Look up bearer-token records from a presented `<id>|<secret>` value or by secret hash.
- Issue new tokens for users and modules, returning the plain text exactly once.
- Store pre-shared module secrets and revoke tokens.
"""

from __future__ import annotations

import hmac
from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_admin.auth.models import WILDCARD_ABILITY, AccessTokenRecord
from rbac_admin.auth.tokens import generate_secret, hash_secret, plain_text, split_bearer
from rbac_admin.db.models import PersonalAccessToken


def _snapshot(row: PersonalAccessToken) -> AccessTokenRecord:
    return AccessTokenRecord(
        id=row.id,
        token_hash=row.token,
        tokenable_type=row.tokenable_type,
        tokenable_id=row.tokenable_id,
        name=row.name,
        abilities=frozenset(row.abilities or ()),
        expires_at=row.expires_at,
        created_at=row.created_at,
        last_used_at=row.last_used_at,
    )


class TokenRegistry:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_by_hash(self, token_hash: str) -> AccessTokenRecord | None:
        stmt = select(PersonalAccessToken).where(PersonalAccessToken.token == token_hash)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _snapshot(row) if row is not None else None

    async def find_token(self, presented: str) -> AccessTokenRecord | None:
        """
        Resolve a presented bearer value.

        `<id>|<secret>` loads the record by id and compares hashes in constant time; a bare
        secret (provisioned module tokens) is looked up by hash.
        """
        record_id, secret = split_bearer(presented)
        if record_id is None:
            return await self.find_by_hash(hash_secret(secret))
        row = await self._session.get(PersonalAccessToken, record_id)
        if row is None or not hmac.compare_digest(row.token, hash_secret(secret)):
            return None
        return _snapshot(row)

    async def issue(
        self,
        *,
        tokenable_type: str,
        tokenable_id: int,
        name: str,
        abilities: Iterable[str] = (WILDCARD_ABILITY,),
        expires_at: datetime | None = None,
    ) -> tuple[AccessTokenRecord, str]:
        # The plain text is only ever available here; callers must hand it out immediately.
        secret = generate_secret()
        row = PersonalAccessToken(
            tokenable_type=tokenable_type,
            tokenable_id=tokenable_id,
            name=name,
            token=hash_secret(secret),
            abilities=list(abilities),
            expires_at=expires_at,
        )
        self._session.add(row)
        await self._session.flush()
        return _snapshot(row), plain_text(row.id, secret)

    async def store_secret(
        self,
        *,
        tokenable_type: str,
        tokenable_id: int,
        name: str,
        secret: str,
        abilities: Iterable[str],
        expires_at: datetime | None = None,
    ) -> AccessTokenRecord:
        """
        Upsert a named token whose secret is provisioned out of band (module seeding).
        """

        stmt = select(PersonalAccessToken).where(
            PersonalAccessToken.tokenable_type == tokenable_type,
            PersonalAccessToken.tokenable_id == tokenable_id,
            PersonalAccessToken.name == name,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            row = PersonalAccessToken(
                tokenable_type=tokenable_type, tokenable_id=tokenable_id, name=name
            )
            self._session.add(row)
        row.token = hash_secret(secret)
        row.abilities = list(abilities)
        row.expires_at = expires_at
        await self._session.flush()
        return _snapshot(row)

    async def revoke(self, token_id: int) -> bool:
        result = await self._session.execute(
            delete(PersonalAccessToken).where(PersonalAccessToken.id == token_id)
        )
        return bool(result.rowcount)

    async def revoke_all_for(self, *, tokenable_type: str, tokenable_id: int) -> int:
        result = await self._session.execute(
            delete(PersonalAccessToken).where(
                PersonalAccessToken.tokenable_type == tokenable_type,
                PersonalAccessToken.tokenable_id == tokenable_id,
            )
        )
        return int(result.rowcount or 0)


# --- Module Notes -----------------------------------------------------------
# Records are append/revoke-only: nothing here mutates a token's hash, owner or
# abilities after issue except `store_secret`, which re-keys a provisioned module token.
