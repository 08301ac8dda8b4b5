"""
rbac_admin.auth.deps

FastAPI dependency functions for authentication and authorization.

Responsibilities:
- Extract the bearer secret from the Authorization header.
- Convert it into a typed `AuthorizedActor` via `ActorResolver`.
- Provide reusable gates: any actor, users only, modules-or-users with an allow-list.
"""

from __future__ import annotations

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_admin.api.deps import db_session
from rbac_admin.auth.errors import InvalidToken
from rbac_admin.auth.models import AuthorizedActor, ModuleActor, UserActor
from rbac_admin.auth.resolver import ActorResolver
from rbac_admin.db.repositories.modules import ModuleRepo
from rbac_admin.db.repositories.tokens import TokenRegistry
from rbac_admin.db.repositories.users import UserRepo
from rbac_admin.observability.logging import get_logger

log = get_logger(__name__)

# Ability module tokens need for the batch permission endpoint.
BATCH_ABILITY = "permissions:batch"

_bearer = HTTPBearer(auto_error=False)


def bearer_secret(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> str | None:
    if creds is None or not creds.credentials:
        return None
    return creds.credentials


def actor_resolver(session: AsyncSession = Depends(db_session)) -> ActorResolver:
    return ActorResolver(
        registry=TokenRegistry(session),
        users=UserRepo(session),
        modules=ModuleRepo(session),
    )


async def _persist_module_touch(session: AsyncSession, actor: AuthorizedActor) -> None:
    # last_used_at is best-effort; a failed commit must not reject an authorized call.
    if not isinstance(actor, ModuleActor):
        return
    try:
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        log.warning("module_mark_used_commit_failed", module=actor.module.slug, error=str(e))


async def get_actor(
    secret: str | None = Depends(bearer_secret),
    resolver: ActorResolver = Depends(actor_resolver),
    session: AsyncSession = Depends(db_session),
) -> AuthorizedActor:
    actor = await resolver.resolve(secret)
    await _persist_module_touch(session, actor)
    return actor


async def require_user(actor: AuthorizedActor = Depends(get_actor)) -> UserActor:
    if not isinstance(actor, UserActor):
        log.warning("user_token_required", kind=actor.kind, token_id=actor.token.id)
        raise InvalidToken()
    return actor


def require_module_or_user(*allowed_modules: str, ability: str = BATCH_ABILITY):
    allowed = frozenset(allowed_modules) or None

    async def _dep(
        secret: str | None = Depends(bearer_secret),
        resolver: ActorResolver = Depends(actor_resolver),
        session: AsyncSession = Depends(db_session),
    ) -> AuthorizedActor:
        actor = await resolver.resolve(secret, required_ability=ability, allowed_modules=allowed)
        await _persist_module_touch(session, actor)
        return actor

    return _dep


# --- Module Notes -----------------------------------------------------------
# All dependencies raise `AuthError` subclasses; `api/app.py` renders them as
# {"authorized": false, "error": ...} with 401/403.
