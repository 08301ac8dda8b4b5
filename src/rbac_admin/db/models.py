"""
rbac_admin.db.models

Persistence schema for the RBAC admin backend.

Responsibilities:
- Define ORM models for the RBAC graph:
  - User: human principal, optionally connected to a Google account
  - Role / Permission: many-to-many assignments (user<->role, user<->permission,
    role<->permission)
  - Module: service-to-service caller identified by slug
  - PersonalAccessToken: hashed bearer tokens owned by a user or a module
"""

from __future__ import annotations

import enum
from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Column,
    ForeignKey,
    Index,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rbac_admin.db.base import Base


def utcnow() -> datetime:
    # Persist naive UTC timestamps; SQLite drops tzinfo anyway.
    return datetime.now(tz=UTC).replace(tzinfo=None)


class TokenableType(enum.StrEnum):
    # Stored in `personal_access_tokens.tokenable_type`; treat as stable contract.
    user = "user"
    module = "module"


role_user = Table(
    "role_user",
    Base.metadata,
    Column("role_id", ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)

permission_user = Table(
    "permission_user",
    Base.metadata,
    Column("permission_id", ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)

permission_role = Table(
    "permission_role",
    Base.metadata,
    Column("permission_id", ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)

    google_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    avatar: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Google credential store; only written by the OAuth callback and the refresher.
    google_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    google_refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    google_token_expires_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, onupdate=utcnow)

    roles: Mapped[list[Role]] = relationship(
        secondary=role_user, back_populates="users", lazy="selectin"
    )
    permissions: Mapped[list[Permission]] = relationship(
        secondary=permission_user, back_populates="users", lazy="selectin"
    )


class Role(Base):
    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    guard_name: Mapped[str] = mapped_column(String(255), nullable=False, default="web")

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, onupdate=utcnow)

    users: Mapped[list[User]] = relationship(secondary=role_user, back_populates="roles")
    permissions: Mapped[list[Permission]] = relationship(
        secondary=permission_role, back_populates="roles", lazy="selectin"
    )

    __table_args__ = (UniqueConstraint("name", "guard_name", name="uq_roles_name_guard"),)


class Permission(Base):
    __tablename__ = "permissions"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    guard_name: Mapped[str] = mapped_column(String(255), nullable=False, default="web")

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, onupdate=utcnow)

    users: Mapped[list[User]] = relationship(secondary=permission_user, back_populates="permissions")
    roles: Mapped[list[Role]] = relationship(
        secondary=permission_role, back_populates="permissions", lazy="selectin"
    )

    __table_args__ = (
        UniqueConstraint("name", "guard_name", name="uq_permissions_name_guard"),
    )


class Module(Base):
    __tablename__ = "modules"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(128), nullable=False, unique=True, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True)
    last_used_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, onupdate=utcnow)


class PersonalAccessToken(Base):
    __tablename__ = "personal_access_tokens"

    id: Mapped[int] = mapped_column(primary_key=True)
    tokenable_type: Mapped[str] = mapped_column(String(32), nullable=False)
    tokenable_id: Mapped[int] = mapped_column(nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # sha256 hex digest of the plain-text secret; the secret itself is never stored.
    token: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    abilities: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    expires_at: Mapped[datetime | None] = mapped_column(nullable=True)
    last_used_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)

    __table_args__ = (Index("ix_pat_tokenable", "tokenable_type", "tokenable_id"),)


# --- Module Notes -----------------------------------------------------------
# `tokenable_type` is stored as a plain string so unknown kinds can exist in the table
# and get rejected by the actor resolver instead of failing enum coercion on load.
