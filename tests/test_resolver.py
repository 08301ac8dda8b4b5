from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from rbac_admin.auth.errors import (
    InsufficientAbilities,
    InvalidOrExpiredToken,
    InvalidToken,
    ModuleInactive,
    ModuleNotAllowed,
    NoToken,
)
from rbac_admin.auth.models import ModuleActor, UserActor
from rbac_admin.auth.resolver import ActorResolver
from rbac_admin.auth.tokens import hash_secret, split_bearer
from rbac_admin.db.models import Module, PersonalAccessToken
from rbac_admin.db.repositories.modules import ModuleRepo
from rbac_admin.db.repositories.tokens import TokenRegistry
from rbac_admin.db.repositories.users import UserRepo

from conftest import issue_token, make_module, make_user

NOW = datetime(2026, 1, 1, 12, 0, 0)


class CountingRegistry:
    def __init__(self) -> None:
        self.calls = 0

    async def find_token(self, presented: str):
        self.calls += 1
        return None


def _resolver(session, *, now: datetime = NOW, registry=None) -> ActorResolver:
    return ActorResolver(
        registry=registry or TokenRegistry(session),
        users=UserRepo(session),
        modules=ModuleRepo(session),
        now=lambda: now,
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", [None, ""])
async def test_missing_secret_never_touches_registry(session, raw) -> None:
    registry = CountingRegistry()
    with pytest.raises(NoToken) as exc:
        await _resolver(session, registry=registry).resolve(raw)
    assert exc.value.status_code == 401
    assert exc.value.message == "Token no enviado en la cabecera Authorization."
    assert registry.calls == 0


@pytest.mark.asyncio
async def test_unknown_and_expired_tokens_are_indistinguishable(session) -> None:
    user = await make_user(session)
    expired = await issue_token(session, user, expires_at=NOW - timedelta(seconds=1))

    with pytest.raises(InvalidOrExpiredToken) as unknown_exc:
        await _resolver(session).resolve("999|not-a-real-secret")
    with pytest.raises(InvalidOrExpiredToken) as expired_exc:
        await _resolver(session).resolve(expired)

    assert unknown_exc.value.status_code == expired_exc.value.status_code == 401
    assert unknown_exc.value.message == expired_exc.value.message == "Token inválido o expirado."


@pytest.mark.asyncio
async def test_expiry_boundary_is_exclusive(session) -> None:
    user = await make_user(session)
    token = await issue_token(session, user, expires_at=NOW)
    with pytest.raises(InvalidOrExpiredToken):
        await _resolver(session).resolve(token)


@pytest.mark.asyncio
async def test_id_prefix_must_match_record(session) -> None:
    user = await make_user(session)
    token = await issue_token(session, user)
    record_id, secret = split_bearer(token)
    assert record_id is not None

    with pytest.raises(InvalidOrExpiredToken):
        await _resolver(session).resolve(f"{record_id + 100}|{secret}")


@pytest.mark.asyncio
async def test_user_token_resolves_to_user_actor(session) -> None:
    user = await make_user(session, name="Ana", email="ana@example.com")
    token = await issue_token(session, user, expires_at=NOW + timedelta(days=1))

    actor = await _resolver(session).resolve(token)

    assert isinstance(actor, UserActor)
    assert actor.user.id == user.id
    assert actor.user.email == "ana@example.com"
    assert actor.token.tokenable_id == user.id


@pytest.mark.asyncio
async def test_user_token_ignores_module_gating(session) -> None:
    user = await make_user(session)
    token = await issue_token(session, user, abilities=("nothing",))

    actor = await _resolver(session).resolve(
        token, required_ability="permissions:batch", allowed_modules={"pg"}
    )
    assert isinstance(actor, UserActor)


@pytest.mark.asyncio
async def test_deleted_user_is_rejected(session) -> None:
    user = await make_user(session)
    token = await issue_token(session, user)
    await UserRepo(session).delete(user.id)
    await session.commit()
    session.expunge_all()

    with pytest.raises(InvalidOrExpiredToken):
        await _resolver(session).resolve(token)


@pytest.mark.asyncio
async def test_module_token_bumps_last_used_at(session) -> None:
    module = await make_module(session, "pg")
    token = await issue_token(session, module, abilities=("permissions:batch",))

    actor = await _resolver(session).resolve(
        token, required_ability="permissions:batch", allowed_modules={"pg"}
    )
    await session.commit()

    assert isinstance(actor, ModuleActor)
    assert actor.module.slug == "pg"
    last_used = (
        await session.execute(select(Module.last_used_at).where(Module.id == module.id))
    ).scalar_one()
    assert last_used == NOW


@pytest.mark.asyncio
async def test_module_resolves_when_last_used_write_fails(session, monkeypatch) -> None:
    module = await make_module(session, "pg")
    token = await issue_token(session, module, abilities=("permissions:batch",))

    async def failing_mark_used(self, module_id, *, at=None):
        raise OperationalError("UPDATE modules", {}, Exception("database is locked"))

    monkeypatch.setattr(ModuleRepo, "mark_used", failing_mark_used)

    actor = await _resolver(session).resolve(
        token, required_ability="permissions:batch", allowed_modules={"pg"}
    )

    assert isinstance(actor, ModuleActor)
    assert actor.module.id == module.id


@pytest.mark.asyncio
async def test_inactive_module_is_rejected_before_ability_checks(session) -> None:
    module = await make_module(session, "pg", is_active=False)
    token = await issue_token(session, module, abilities=("*",))

    with pytest.raises(ModuleInactive) as exc:
        await _resolver(session).resolve(token, required_ability="anything")
    assert exc.value.status_code == 403

    last_used = (
        await session.execute(select(Module.last_used_at).where(Module.id == module.id))
    ).scalar_one()
    assert last_used is None


@pytest.mark.asyncio
async def test_module_without_ability_is_rejected(session) -> None:
    module = await make_module(session, "pg")
    token = await issue_token(session, module, abilities=("calendar:read",))

    with pytest.raises(InsufficientAbilities) as exc:
        await _resolver(session).resolve(token, required_ability="permissions:batch")
    assert exc.value.status_code == 403


@pytest.mark.asyncio
async def test_wildcard_ability_grants_everything(session) -> None:
    module = await make_module(session, "pg")
    token = await issue_token(session, module, abilities=("*",))

    actor = await _resolver(session).resolve(token, required_ability="permissions:batch")
    assert isinstance(actor, ModuleActor)


@pytest.mark.asyncio
async def test_module_outside_allow_list_is_rejected(session) -> None:
    module = await make_module(session, "billing")
    token = await issue_token(session, module, abilities=("permissions:batch",))

    with pytest.raises(ModuleNotAllowed) as exc:
        await _resolver(session).resolve(
            token, required_ability="permissions:batch", allowed_modules={"pg"}
        )
    assert exc.value.status_code == 403


@pytest.mark.asyncio
async def test_empty_allow_list_admits_any_module(session) -> None:
    module = await make_module(session, "billing")
    token = await issue_token(session, module)

    actor = await _resolver(session).resolve(token, allowed_modules=())
    assert isinstance(actor, ModuleActor)
    assert actor.module.slug == "billing"


@pytest.mark.asyncio
async def test_unknown_tokenable_type_is_invalid(session) -> None:
    secret = "legacy-secret"
    session.add(
        PersonalAccessToken(
            tokenable_type="team",
            tokenable_id=1,
            name="legacy",
            token=hash_secret(secret),
            abilities=["*"],
        )
    )
    await session.commit()

    with pytest.raises(InvalidToken) as exc:
        await _resolver(session).resolve(secret)
    assert exc.value.status_code == 401
    assert exc.value.message == "Token inválido."


@pytest.mark.asyncio
async def test_issued_token_resolves_without_id_prefix(session) -> None:
    user = await make_user(session)
    token = await issue_token(session, user)
    _, secret = split_bearer(token)

    actor = await _resolver(session).resolve(secret)
    assert isinstance(actor, UserActor)
