from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_admin.auth.models import ModulePrincipal
from rbac_admin.db.models import Module, utcnow


def to_principal(module: Module) -> ModulePrincipal:
    return ModulePrincipal(
        id=module.id,
        slug=module.slug,
        name=module.name,
        is_active=module.is_active,
        last_used_at=module.last_used_at,
    )


class ModuleRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, module_id: int) -> Module | None:
        return await self._session.get(Module, module_id)

    async def get_principal(self, module_id: int) -> ModulePrincipal | None:
        module = await self.get(module_id)
        return to_principal(module) if module is not None else None

    async def get_by_slug(self, slug: str) -> Module | None:
        stmt = select(Module).where(Module.slug == slug)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def upsert(
        self,
        *,
        slug: str,
        name: str,
        description: str | None = None,
        is_active: bool = True,
    ) -> Module:
        module = await self.get_by_slug(slug)
        if module is None:
            module = Module(slug=slug, name=name, description=description, is_active=is_active)
            self._session.add(module)
        else:
            module.name = name
            module.description = description
            module.is_active = is_active
            module.updated_at = utcnow()
        await self._session.flush()
        return module

    async def mark_used(self, module_id: int, *, at: datetime | None = None) -> None:
        await self._session.execute(
            update(Module)
            .where(Module.id == module_id)
            .values(last_used_at=at or utcnow())
            .execution_options(synchronize_session="fetch")
        )
        await self._session.flush()
