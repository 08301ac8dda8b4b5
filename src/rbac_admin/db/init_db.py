"""
rbac_admin.db.init_db

DB initialization helpers (dev/test convenience).

Responsibilities:
- Create all RBAC/token tables for local development and tests.
- Keep production migration workflow separate (Alembic).
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine

from rbac_admin.db import models  # noqa: F401  # registers tables on Base.metadata
from rbac_admin.db.base import Base


async def init_db(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# --- Module Notes -----------------------------------------------------------
# Not used in prod: deployments run `alembic upgrade head` instead.
