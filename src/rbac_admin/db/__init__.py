"""
rbac_admin.db

Persistence package (SQLAlchemy async).

Responsibilities:
- Provide ORM models, engine/session setup, repositories and module provisioning.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The core auth code only sees snapshots returned by repositories, never ORM rows.
