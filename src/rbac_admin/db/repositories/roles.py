from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import delete, desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_admin.db.models import Permission, Role, permission_role, role_user, utcnow


class RoleRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, role_id: int) -> Role | None:
        return await self._session.get(Role, role_id)

    async def get_by_name(self, name: str, *, guard_name: str = "web") -> Role | None:
        stmt = select(Role).where(Role.name == name, Role.guard_name == guard_name)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def get_many(self, role_ids: Sequence[int]) -> list[Role]:
        if not role_ids:
            return []
        stmt = select(Role).where(Role.id.in_(role_ids))
        return list((await self._session.execute(stmt)).scalars().all())

    async def list_all(self) -> list[Role]:
        stmt = select(Role).order_by(desc(Role.updated_at), desc(Role.id))
        return list((await self._session.execute(stmt)).scalars().all())

    async def create(
        self, *, name: str, permissions: Sequence[Permission] = (), guard_name: str = "web"
    ) -> Role:
        role = Role(name=name, guard_name=guard_name, permissions=list(permissions))
        self._session.add(role)
        await self._session.flush()
        return role

    async def update(
        self,
        role: Role,
        *,
        name: str | None = None,
        permissions: Sequence[Permission] | None = None,
    ) -> Role:
        if name is not None:
            role.name = name
        if permissions is not None:
            role.permissions = list(permissions)
        role.updated_at = utcnow()
        await self._session.flush()
        return role

    async def delete(self, role_id: int) -> None:
        await self._session.execute(delete(role_user).where(role_user.c.role_id == role_id))
        await self._session.execute(
            delete(permission_role).where(permission_role.c.role_id == role_id)
        )
        await self._session.execute(delete(Role).where(Role.id == role_id))
