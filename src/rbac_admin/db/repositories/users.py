"""
rbac_admin.db.repositories.users

Repository for `User` entities.

Responsibilities:
- CRUD for users and their direct role/permission assignments.
- Google-login upsert keyed by email.
- Permission queries (effective permissions, users holding a permission).
"""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import delete, desc, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_admin.auth.models import UserPrincipal
from rbac_admin.db.models import (
    Permission,
    Role,
    User,
    permission_user,
    role_user,
    utcnow,
)


def to_principal(user: User) -> UserPrincipal:
    return UserPrincipal(
        id=user.id,
        name=user.name,
        email=user.email,
        google_id=user.google_id,
        avatar=user.avatar,
    )


def effective_permissions(user: User) -> list[Permission]:
    # Direct permissions first, then those inherited through roles; de-duplicated by id.
    seen: dict[int, Permission] = {p.id: p for p in user.permissions}
    for role in user.roles:
        for p in role.permissions:
            seen.setdefault(p.id, p)
    return list(seen.values())


class UserRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: int) -> User | None:
        return await self._session.get(User, user_id)

    async def get_principal(self, user_id: int) -> UserPrincipal | None:
        user = await self.get(user_id)
        return to_principal(user) if user is not None else None

    async def get_by_email(self, email: str) -> User | None:
        stmt = select(User).where(User.email == email)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def list_all(self) -> list[User]:
        stmt = select(User).order_by(desc(User.updated_at), desc(User.id))
        return list((await self._session.execute(stmt)).scalars().all())

    async def create(
        self,
        *,
        name: str,
        email: str,
        roles: Sequence[Role] = (),
        permissions: Sequence[Permission] = (),
    ) -> User:
        user = User(name=name, email=email, roles=list(roles), permissions=list(permissions))
        self._session.add(user)
        await self._session.flush()
        return user

    async def update(
        self,
        user: User,
        *,
        name: str | None = None,
        email: str | None = None,
        roles: Sequence[Role] | None = None,
        permissions: Sequence[Permission] | None = None,
    ) -> User:
        if name is not None:
            user.name = name
        if email is not None:
            user.email = email
        if roles is not None:
            user.roles = list(roles)
        if permissions is not None:
            user.permissions = list(permissions)
        user.updated_at = utcnow()
        await self._session.flush()
        return user

    async def delete(self, user_id: int) -> None:
        # Core deletes keep the unit of work from lazy-loading collections.
        await self._session.execute(delete(role_user).where(role_user.c.user_id == user_id))
        await self._session.execute(
            delete(permission_user).where(permission_user.c.user_id == user_id)
        )
        await self._session.execute(delete(User).where(User.id == user_id))

    async def upsert_from_google(
        self,
        *,
        email: str,
        name: str,
        google_id: str | None,
        avatar: str | None,
    ) -> User:
        user = await self.get_by_email(email)
        if user is None:
            user = User(email=email, name=name, roles=[], permissions=[])
            self._session.add(user)
        user.name = name
        user.google_id = google_id
        user.avatar = avatar
        user.updated_at = utcnow()
        await self._session.flush()
        return user

    async def with_permission(self, permission_name: str) -> list[User]:
        stmt = (
            select(User)
            .where(
                or_(
                    User.permissions.any(Permission.name == permission_name),
                    User.roles.any(Role.permissions.any(Permission.name == permission_name)),
                )
            )
            .order_by(User.id)
        )
        return list((await self._session.execute(stmt)).scalars().all())


# --- Module Notes -----------------------------------------------------------
# Google credential columns are deliberately not touched here except via
# `CredentialStore` (see `credentials.py`).
