"""
rbac_admin.auth.resolver

Bearer-token actor resolution.

Responsibilities:
- Turn a raw bearer secret into an `AuthorizedActor` (user or module).
- Treat unknown and expired tokens identically.
- Apply module gating: active flag, required ability, slug allow-list.
- Record module usage (best-effort).
"""

from __future__ import annotations

from collections.abc import Callable, Collection
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from rbac_admin.auth.errors import (
    InsufficientAbilities,
    InvalidOrExpiredToken,
    InvalidToken,
    ModuleInactive,
    ModuleNotAllowed,
    NoToken,
)
from rbac_admin.auth.models import AuthorizedActor, ModuleActor, UserActor
from rbac_admin.db.models import TokenableType, utcnow
from rbac_admin.db.repositories.modules import ModuleRepo
from rbac_admin.db.repositories.tokens import TokenRegistry
from rbac_admin.db.repositories.users import UserRepo
from rbac_admin.observability.logging import get_logger

log = get_logger(__name__)


class ActorResolver:
    def __init__(
        self,
        *,
        registry: TokenRegistry,
        users: UserRepo,
        modules: ModuleRepo,
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        self._registry = registry
        self._users = users
        self._modules = modules
        self._now = now

    async def resolve(
        self,
        raw_secret: str | None,
        *,
        required_ability: str | None = None,
        allowed_modules: Collection[str] | None = None,
    ) -> AuthorizedActor:
        if not raw_secret:
            raise NoToken()

        record = await self._registry.find_token(raw_secret)
        now = self._now()
        # Unknown, mismatched and expired tokens must be indistinguishable to the caller.
        if record is None or record.is_expired(now):
            raise InvalidOrExpiredToken()

        match record.tokenable_type:
            case TokenableType.module:
                module = await self._modules.get_principal(record.tokenable_id)
                if module is None:
                    raise InvalidOrExpiredToken()
                if not module.is_active:
                    raise ModuleInactive()
                if required_ability is not None and not record.can(required_ability):
                    raise InsufficientAbilities()
                if allowed_modules and module.slug not in allowed_modules:
                    raise ModuleNotAllowed()
                await self._touch_module(module.id, now)
                return ModuleActor(module=module, token=record)
            case TokenableType.user:
                user = await self._users.get_principal(record.tokenable_id)
                if user is None:
                    raise InvalidOrExpiredToken()
                return UserActor(user=user, token=record)
            case _:
                log.warning(
                    "token_unsupported_tokenable",
                    tokenable_type=record.tokenable_type,
                    token_id=record.id,
                )
                raise InvalidToken()

    async def _touch_module(self, module_id: int, now: datetime) -> None:
        try:
            await self._modules.mark_used(module_id, at=now)
        except SQLAlchemyError as e:
            log.warning("module_mark_used_failed", module_id=module_id, error=str(e))


# --- Module Notes -----------------------------------------------------------
# Role/permission checks for human users are not done here; downstream endpoints
# receive the actor and decide (see `rbac_admin.services.verification`).
