"""
rbac_admin.auth.models

Auth domain models.

Responsibilities:
- Define immutable snapshots handed out by the token registry and principal stores.
- Define the authenticated caller type (`AuthorizedActor`) injected into endpoints.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

WILDCARD_ABILITY = "*"


@dataclass(frozen=True, slots=True)
class AccessTokenRecord:
    """
    Internal bearer-token metadata. `token_hash` is the sha256 hex digest of the secret.
    """

    id: int
    token_hash: str
    tokenable_type: str
    tokenable_id: int
    name: str
    abilities: frozenset[str]
    expires_at: datetime | None
    created_at: datetime
    last_used_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now

    def can(self, ability: str) -> bool:
        return WILDCARD_ABILITY in self.abilities or ability in self.abilities


@dataclass(frozen=True, slots=True)
class UserPrincipal:
    id: int
    name: str
    email: str
    google_id: str | None = None
    avatar: str | None = None


@dataclass(frozen=True, slots=True)
class ModulePrincipal:
    id: int
    slug: str
    name: str
    is_active: bool
    last_used_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class UserActor:
    user: UserPrincipal
    token: AccessTokenRecord
    kind: str = "user"


@dataclass(frozen=True, slots=True)
class ModuleActor:
    module: ModulePrincipal
    token: AccessTokenRecord
    kind: str = "module"


AuthorizedActor = UserActor | ModuleActor


@dataclass(frozen=True, slots=True)
class GoogleCredentials:
    """
    Google OAuth credentials stored on a user. Without `access_token` nothing else matters.
    """

    access_token: str | None
    refresh_token: str | None
    expires_at: datetime | None

    @property
    def connected(self) -> bool:
        return bool(self.access_token)


# --- Module Notes -----------------------------------------------------------
# Snapshots are frozen on purpose: downstream code learns who is calling only through
# `AuthorizedActor`, and state changes go through repository calls.
