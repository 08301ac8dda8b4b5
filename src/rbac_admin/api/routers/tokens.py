from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_403_FORBIDDEN

from rbac_admin.api.deps import db_session
from rbac_admin.auth.deps import require_user
from rbac_admin.auth.errors import InvalidOrExpiredToken
from rbac_admin.auth.models import UserActor
from rbac_admin.db.repositories.users import UserRepo, effective_permissions
from rbac_admin.services.verification import verify_requirements

router = APIRouter(prefix="/api/auth/token", tags=["tokens"])


class TokenVerifyRequest(BaseModel):
    roles: list[str] | None = Field(default=None)
    permissions: list[str] | None = Field(default=None)


@router.post("/verify")
async def verify_token(
    body: TokenVerifyRequest | None = None,
    actor: UserActor = Depends(require_user),
    session: AsyncSession = Depends(db_session),
) -> Any:
    body = body or TokenVerifyRequest()
    user = await UserRepo(session).get(actor.user.id)
    if user is None:
        # Deleted between resolution and lookup; same answer as an unknown token.
        raise InvalidOrExpiredToken()

    result = verify_requirements(user, roles=body.roles or [], permissions=body.permissions or [])
    if not result.authorized:
        return JSONResponse(
            status_code=HTTP_403_FORBIDDEN,
            content={
                "authorized": False,
                "error": result.error,
                "missing_roles": result.missing_roles,
                "missing_permissions": result.missing_permissions,
            },
        )

    return {
        "authorized": True,
        "user": {
            "id": user.id,
            "name": user.name,
            "email": user.email,
            "roles_list": [str(r.id) for r in user.roles],
            "permissions_list": [str(p.id) for p in effective_permissions(user)],
            "updated_at": user.updated_at.isoformat(),
        },
        "token": {
            "abilities": sorted(actor.token.abilities),
            "expires_at": actor.token.expires_at.isoformat() if actor.token.expires_at else None,
        },
    }
