from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import (
    HTTP_201_CREATED,
    HTTP_404_NOT_FOUND,
    HTTP_422_UNPROCESSABLE_CONTENT,
)

from rbac_admin.api.deps import db_session
from rbac_admin.auth.deps import get_actor
from rbac_admin.db.models import Role
from rbac_admin.db.repositories.permissions import PermissionRepo
from rbac_admin.db.repositories.roles import RoleRepo

router = APIRouter(dependencies=[Depends(get_actor)])

NOT_FOUND = "Rol no encontrado."


class RoleWrite(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    permissions: list[int] | None = None


def role_out(r: Role) -> dict[str, Any]:
    return {
        "id": r.id,
        "name": r.name,
        "guard_name": r.guard_name,
        "permissions_list": [p.id for p in r.permissions],
        "created_at": r.created_at.isoformat(),
        "updated_at": r.updated_at.isoformat(),
    }


@router.get("")
async def list_roles(session: AsyncSession = Depends(db_session)) -> list[dict[str, Any]]:
    return [
        {**role_out(r), "permissions_list": ", ".join(p.name for p in r.permissions)}
        for r in await RoleRepo(session).list_all()
    ]


@router.get("/dropdown")
async def roles_dropdown(session: AsyncSession = Depends(db_session)) -> list[dict[str, Any]]:
    return [{"value": r.id, "label": r.name} for r in await RoleRepo(session).list_all()]


@router.post("", status_code=HTTP_201_CREATED)
async def create_role(body: RoleWrite, session: AsyncSession = Depends(db_session)) -> dict[str, Any]:
    repo = RoleRepo(session)
    if await repo.get_by_name(body.name) is not None:
        raise HTTPException(status_code=HTTP_422_UNPROCESSABLE_CONTENT, detail="name already taken")
    perms = await PermissionRepo(session).get_many(body.permissions or [])
    role = await repo.create(name=body.name, permissions=perms)
    await session.commit()
    return role_out(role)


@router.get("/{role_id}")
async def get_role(role_id: int, session: AsyncSession = Depends(db_session)) -> dict[str, Any]:
    role = await RoleRepo(session).get(role_id)
    if role is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    return role_out(role)


@router.put("/{role_id}")
async def update_role(
    role_id: int,
    body: RoleWrite,
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    repo = RoleRepo(session)
    role = await repo.get(role_id)
    if role is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    clash = await repo.get_by_name(body.name, guard_name=role.guard_name)
    if clash is not None and clash.id != role.id:
        raise HTTPException(status_code=HTTP_422_UNPROCESSABLE_CONTENT, detail="name already taken")
    perms = (
        await PermissionRepo(session).get_many(body.permissions)
        if body.permissions is not None
        else None
    )
    await repo.update(role, name=body.name, permissions=perms)
    await session.commit()
    return role_out(role)


@router.delete("/{role_id}")
async def delete_role(role_id: int, session: AsyncSession = Depends(db_session)) -> dict[str, str]:
    repo = RoleRepo(session)
    if await repo.get(role_id) is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    await repo.delete(role_id)
    await session.commit()
    return {"message": "Rol eliminado correctamente."}
