"""
rbac_admin.db.seed

Module provisioning.

Responsibilities:
- Upsert the `pg` service module and its persistent bearer token from settings.
- Run standalone via `python -m rbac_admin.db.seed`.
"""

from __future__ import annotations

import asyncio

from sqlalchemy.ext.asyncio import AsyncSession

from rbac_admin.auth.models import AccessTokenRecord
from rbac_admin.db.init_db import init_db
from rbac_admin.db.models import TokenableType
from rbac_admin.db.repositories.modules import ModuleRepo
from rbac_admin.db.repositories.tokens import TokenRegistry
from rbac_admin.db.session import create_engine, create_sessionmaker, session_scope
from rbac_admin.observability.logging import configure_logging, get_logger
from rbac_admin.settings import Settings, get_settings

log = get_logger(__name__)

PG_SLUG = "pg"
PG_TOKEN_NAME = "PG Persistent Token"
PG_ABILITIES = ("permissions:batch",)


async def seed_pg_module(session: AsyncSession, settings: Settings) -> AccessTokenRecord | None:
    if not settings.pg_module_token:
        log.warning("pg_module_seed_skipped", reason="RBAC_PG_MODULE_TOKEN is not defined")
        return None

    module = await ModuleRepo(session).upsert(
        slug=PG_SLUG,
        name=settings.pg_module_name or PG_SLUG.upper(),
        description=settings.pg_module_description,
        is_active=True,
    )
    # Persistent: no expiry. The configured secret is presented as-is by the module.
    record = await TokenRegistry(session).store_secret(
        tokenable_type=TokenableType.module,
        tokenable_id=module.id,
        name=PG_TOKEN_NAME,
        secret=settings.pg_module_token,
        abilities=PG_ABILITIES,
        expires_at=None,
    )
    await session.commit()
    log.info("pg_module_seeded", module_id=module.id, token_id=record.id)
    return record


async def _run(settings: Settings) -> None:
    engine = create_engine(settings)
    try:
        if settings.env in ("dev", "test"):
            await init_db(engine)
        async with session_scope(create_sessionmaker(engine)) as session:
            await seed_pg_module(session, settings)
    finally:
        await engine.dispose()


def main() -> None:
    settings = get_settings()
    configure_logging(service_name=settings.service_name, level=settings.log_level)
    asyncio.run(_run(settings))


if __name__ == "__main__":
    main()


# --- Module Notes -----------------------------------------------------------
# Re-running the seed re-keys the token in place, so rotating RBAC_PG_MODULE_TOKEN
# only needs a redeploy plus one seed run.
