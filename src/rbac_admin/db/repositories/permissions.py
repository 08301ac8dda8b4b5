"""
rbac_admin.db.repositories.permissions

Repository for `Permission` entities.

Responsibilities:
- CRUD for permissions (unique by name + guard).
- First-or-create used by the module batch endpoint.
"""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import delete, desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_admin.db.models import Permission, permission_role, permission_user, utcnow


class PermissionRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, permission_id: int) -> Permission | None:
        return await self._session.get(Permission, permission_id)

    async def get_by_name(self, name: str, *, guard_name: str = "web") -> Permission | None:
        stmt = select(Permission).where(
            Permission.name == name, Permission.guard_name == guard_name
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def get_many(self, permission_ids: Sequence[int]) -> list[Permission]:
        if not permission_ids:
            return []
        stmt = select(Permission).where(Permission.id.in_(permission_ids))
        return list((await self._session.execute(stmt)).scalars().all())

    async def list_all(self) -> list[Permission]:
        stmt = select(Permission).order_by(desc(Permission.updated_at), desc(Permission.id))
        return list((await self._session.execute(stmt)).scalars().all())

    async def create(self, *, name: str, guard_name: str = "web") -> Permission:
        permission = Permission(name=name, guard_name=guard_name, roles=[])
        self._session.add(permission)
        await self._session.flush()
        return permission

    async def first_or_create(self, *, name: str, guard_name: str = "web") -> Permission:
        existing = await self.get_by_name(name, guard_name=guard_name)
        if existing is not None:
            return existing
        return await self.create(name=name, guard_name=guard_name)

    async def rename(self, permission: Permission, *, name: str) -> Permission:
        permission.name = name
        permission.updated_at = utcnow()
        await self._session.flush()
        return permission

    async def delete(self, permission_id: int) -> None:
        await self._session.execute(
            delete(permission_user).where(permission_user.c.permission_id == permission_id)
        )
        await self._session.execute(
            delete(permission_role).where(permission_role.c.permission_id == permission_id)
        )
        await self._session.execute(delete(Permission).where(Permission.id == permission_id))


# --- Module Notes -----------------------------------------------------------
# Guard names are kept for compatibility with existing permission catalogs; every
# endpoint in this service uses the default "web" guard unless told otherwise.
