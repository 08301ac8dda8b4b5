"""
rbac_admin.api.routers.admin.router

RBAC administration router aggregator.

Responsibilities:
- Mount user/role/permission routers under `/api/auth`.
"""

from __future__ import annotations

from fastapi import APIRouter

from rbac_admin.api.routers.admin import permissions, roles, users

router = APIRouter(prefix="/api/auth")

# Each included router requires a valid user or module bearer token.
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(roles.router, prefix="/roles", tags=["roles"])
router.include_router(permissions.router, prefix="/permissions", tags=["permissions"])


# --- Module Notes -----------------------------------------------------------
# Token verification and Google routes share the `/api/auth` prefix but live in
# their own routers (`api/routers/tokens.py`, `api/routers/google.py`).
