"""
rbac_admin.services

Service layer.

Responsibilities:
- Own transactions for multi-step flows (Google login).
- Hold business checks that do not belong to routers (role/permission verification).
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services call repositories; routers call services. Auth gating stays in `auth`.
