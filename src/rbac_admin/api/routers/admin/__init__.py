"""
rbac_admin.api.routers.admin

RBAC administration API package.

Responsibilities:
- Host user, role and permission endpoints under `/api/auth/*`.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# These routers are thin CRUD glue; every route requires an authorized actor.
