"""
rbac_admin.api.routers.admin.permissions

Permission endpoints.

Responsibilities:
- CRUD + dropdown for permissions.
- Batch first-or-create for service modules (`pg`) and users.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import (
    HTTP_201_CREATED,
    HTTP_404_NOT_FOUND,
    HTTP_422_UNPROCESSABLE_CONTENT,
)

from rbac_admin.api.deps import db_session
from rbac_admin.auth.deps import get_actor, require_module_or_user
from rbac_admin.auth.models import AuthorizedActor
from rbac_admin.db.models import Permission
from rbac_admin.db.repositories.permissions import PermissionRepo
from rbac_admin.observability.logging import get_logger

log = get_logger(__name__)

router = APIRouter()
_actor = [Depends(get_actor)]

NOT_FOUND = "Permiso no encontrado."


class PermissionWrite(BaseModel):
    name: str = Field(min_length=1, max_length=255)


class BatchPermissionItem(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    guard_name: str = Field(default="web", min_length=1, max_length=255)


class BatchPermissionRequest(BaseModel):
    permissions: list[BatchPermissionItem] = Field(min_length=1)

    @field_validator("permissions")
    @classmethod
    def _distinct_names(cls, v: list[BatchPermissionItem]) -> list[BatchPermissionItem]:
        names = [p.name for p in v]
        if len(names) != len(set(names)):
            raise ValueError("permission names must be distinct")
        return v


def permission_out(p: Permission) -> dict[str, Any]:
    return {
        "id": p.id,
        "name": p.name,
        "guard_name": p.guard_name,
        "roles_list": [r.id for r in p.roles],
        "created_at": p.created_at.isoformat(),
        "updated_at": p.updated_at.isoformat(),
    }


@router.get("", dependencies=_actor)
async def list_permissions(session: AsyncSession = Depends(db_session)) -> list[dict[str, Any]]:
    items = await PermissionRepo(session).list_all()
    return [
        {**permission_out(p), "roles_list": ", ".join(r.name for r in p.roles)} for p in items
    ]


@router.get("/dropdown", dependencies=_actor)
async def permissions_dropdown(
    session: AsyncSession = Depends(db_session),
) -> list[dict[str, Any]]:
    return [{"value": p.id, "label": p.name} for p in await PermissionRepo(session).list_all()]


@router.post("", status_code=HTTP_201_CREATED, dependencies=_actor)
async def create_permission(
    body: PermissionWrite,
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    repo = PermissionRepo(session)
    if await repo.get_by_name(body.name) is not None:
        raise HTTPException(status_code=HTTP_422_UNPROCESSABLE_CONTENT, detail="name already taken")
    p = await repo.create(name=body.name)
    await session.commit()
    return permission_out(p)


@router.post("/batch", status_code=HTTP_201_CREATED)
async def batch_create_permissions(
    body: BatchPermissionRequest,
    actor: AuthorizedActor = Depends(require_module_or_user("pg")),
    session: AsyncSession = Depends(db_session),
) -> list[dict[str, Any]]:
    repo = PermissionRepo(session)
    items = [
        await repo.first_or_create(name=item.name, guard_name=item.guard_name)
        for item in body.permissions
    ]
    await session.commit()
    log.info("permissions_batch_created", actor_kind=actor.kind, count=len(items))
    return [permission_out(p) for p in items]


@router.get("/{permission_id}", dependencies=_actor)
async def get_permission(
    permission_id: int,
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    p = await PermissionRepo(session).get(permission_id)
    if p is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    return permission_out(p)


@router.put("/{permission_id}", dependencies=_actor)
async def update_permission(
    permission_id: int,
    body: PermissionWrite,
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    repo = PermissionRepo(session)
    p = await repo.get(permission_id)
    if p is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    clash = await repo.get_by_name(body.name, guard_name=p.guard_name)
    if clash is not None and clash.id != p.id:
        raise HTTPException(status_code=HTTP_422_UNPROCESSABLE_CONTENT, detail="name already taken")
    await repo.rename(p, name=body.name)
    await session.commit()
    return permission_out(p)


@router.delete("/{permission_id}", dependencies=_actor)
async def delete_permission(
    permission_id: int,
    session: AsyncSession = Depends(db_session),
) -> dict[str, str]:
    repo = PermissionRepo(session)
    if await repo.get(permission_id) is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    await repo.delete(permission_id)
    await session.commit()
    return {"message": "Permiso eliminado correctamente."}


# --- Module Notes -----------------------------------------------------------
# `/batch` is the only route open to module tokens with an allow-list; it resolves the
# actor itself instead of using the shared `get_actor` dependency.
