"""
rbac_admin.api.routers.admin.users

User endpoints.

Responsibilities:
- CRUD + dropdown for users, with direct role/permission assignment.
- Read a user's roles and effective permissions.
- List users holding a given permission (directly or through a role).
"""

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
from rbac_admin.db.models import TokenableType, User
from rbac_admin.db.repositories.permissions import PermissionRepo
from rbac_admin.db.repositories.roles import RoleRepo
from rbac_admin.db.repositories.tokens import TokenRegistry
from rbac_admin.db.repositories.users import UserRepo, effective_permissions

router = APIRouter(dependencies=[Depends(get_actor)])

NOT_FOUND = "Usuario no encontrado."


class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    roles: list[int] = Field(default_factory=list)
    permissions: list[int] = Field(default_factory=list)


class UserUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: str | None = Field(default=None, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    roles: list[int] | None = None
    permissions: list[int] | None = None


def user_out(u: User) -> dict[str, Any]:
    # Google credentials never leave the service.
    return {
        "id": u.id,
        "name": u.name,
        "email": u.email,
        "google_id": u.google_id,
        "avatar": u.avatar,
        "roles_list": [r.id for r in u.roles],
        "permissions_list": [p.id for p in u.permissions],
        "created_at": u.created_at.isoformat(),
        "updated_at": u.updated_at.isoformat(),
    }


def _named(items: list[Any]) -> list[dict[str, Any]]:
    return [{"id": i.id, "name": i.name, "guard_name": i.guard_name} for i in items]


@router.get("")
async def list_users(session: AsyncSession = Depends(db_session)) -> list[dict[str, Any]]:
    return [user_out(u) for u in await UserRepo(session).list_all()]


@router.get("/dropdown")
async def users_dropdown(session: AsyncSession = Depends(db_session)) -> list[dict[str, Any]]:
    return [{"value": u.id, "label": u.name} for u in await UserRepo(session).list_all()]


@router.get("/by-permission/{permission_name}")
async def users_by_permission(
    permission_name: str,
    session: AsyncSession = Depends(db_session),
) -> list[dict[str, Any]]:
    if await PermissionRepo(session).get_by_name(permission_name) is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Permiso no encontrado.")
    users = await UserRepo(session).with_permission(permission_name)
    return [{"id": u.id, "name": u.name, "email": u.email} for u in users]


@router.post("", status_code=HTTP_201_CREATED)
async def create_user(body: UserCreate, session: AsyncSession = Depends(db_session)) -> dict[str, Any]:
    repo = UserRepo(session)
    if await repo.get_by_email(body.email) is not None:
        raise HTTPException(status_code=HTTP_422_UNPROCESSABLE_CONTENT, detail="email already taken")
    user = await repo.create(
        name=body.name,
        email=body.email,
        roles=await RoleRepo(session).get_many(body.roles),
        permissions=await PermissionRepo(session).get_many(body.permissions),
    )
    await session.commit()
    return user_out(user)


@router.get("/{user_id}")
async def get_user(user_id: int, session: AsyncSession = Depends(db_session)) -> dict[str, Any]:
    user = await UserRepo(session).get(user_id)
    if user is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    return user_out(user)


@router.get("/{user_id}/roles")
async def get_user_roles(user_id: int, session: AsyncSession = Depends(db_session)) -> dict[str, Any]:
    user = await UserRepo(session).get(user_id)
    if user is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    return {"roles": _named(user.roles)}


@router.get("/{user_id}/permissions")
async def get_user_permissions(
    user_id: int, session: AsyncSession = Depends(db_session)
) -> dict[str, Any]:
    user = await UserRepo(session).get(user_id)
    if user is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    return {"permissions": _named(effective_permissions(user))}


@router.put("/{user_id}")
async def update_user(
    user_id: int,
    body: UserUpdate,
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    repo = UserRepo(session)
    user = await repo.get(user_id)
    if user is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    if body.email is not None:
        clash = await repo.get_by_email(body.email)
        if clash is not None and clash.id != user.id:
            raise HTTPException(
                status_code=HTTP_422_UNPROCESSABLE_CONTENT, detail="email already taken"
            )
    await repo.update(
        user,
        name=body.name,
        email=body.email,
        roles=await RoleRepo(session).get_many(body.roles) if body.roles is not None else None,
        permissions=(
            await PermissionRepo(session).get_many(body.permissions)
            if body.permissions is not None
            else None
        ),
    )
    await session.commit()
    return user_out(user)


@router.delete("/{user_id}")
async def delete_user(user_id: int, session: AsyncSession = Depends(db_session)) -> dict[str, str]:
    repo = UserRepo(session)
    if await repo.get(user_id) is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    await TokenRegistry(session).revoke_all_for(
        tokenable_type=TokenableType.user, tokenable_id=user_id
    )
    await repo.delete(user_id)
    await session.commit()
    return {"message": "Usuario eliminado correctamente."}


# --- Module Notes -----------------------------------------------------------
# Static paths (`/dropdown`, `/by-permission/...`) are declared before `/{user_id}`.
