from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from rbac_admin.db.models import User
from rbac_admin.db.repositories.users import effective_permissions


@dataclass(frozen=True, slots=True)
class VerificationResult:
    missing_roles: list[str] = field(default_factory=list)
    missing_permissions: list[str] = field(default_factory=list)

    @property
    def authorized(self) -> bool:
        return not self.missing_roles and not self.missing_permissions

    @property
    def error(self) -> str | None:
        if self.missing_roles and self.missing_permissions:
            return "El usuario no cuenta con los roles y permisos requeridos."
        if self.missing_roles:
            return "El usuario no cuenta con todos los roles requeridos."
        if self.missing_permissions:
            return "El usuario no cuenta con todos los permisos requeridos."
        return None


def _missing(required: Iterable[str], held: set[str]) -> list[str]:
    # Keep request order and drop duplicates.
    out: list[str] = []
    for name in required:
        if name not in held and name not in out:
            out.append(name)
    return out


def verify_requirements(
    user: User,
    *,
    roles: Iterable[str] = (),
    permissions: Iterable[str] = (),
) -> VerificationResult:
    held_roles = {r.name for r in user.roles}
    held_permissions = {p.name for p in effective_permissions(user)}
    return VerificationResult(
        missing_roles=_missing(roles, held_roles),
        missing_permissions=_missing(permissions, held_permissions),
    )
