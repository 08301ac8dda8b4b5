"""
rbac_admin.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (Google client secret, state secret, module tokens).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Strict env-driven configuration; defaults are safe for local dev.
    """

    model_config = SettingsConfigDict(env_prefix="RBAC_", case_sensitive=False)

    # Environment controls toggle behavior like auto-init DB tables.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "rbac-admin"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./rbac.db"

    # Google OAuth client. Empty values mean "cannot refresh", not a startup error.
    google_client_id: str = ""
    google_client_secret: str = Field(default="", repr=False)
    google_redirect_uri: str = "http://localhost:8080/auth/callback"
    google_scopes: str = (
        "openid email profile "
        "https://www.googleapis.com/auth/calendar "
        "https://www.googleapis.com/auth/calendar.events"
    )
    google_auth_url: str = "https://accounts.google.com/o/oauth2/v2/auth"
    google_token_url: str = "https://oauth2.googleapis.com/token"
    google_userinfo_url: str = "https://openidconnect.googleapis.com/v1/userinfo"
    google_calendar_base_url: str = "https://www.googleapis.com/calendar/v3"

    # Stored Google tokens expiring within this window are refreshed before use.
    token_refresh_buffer_seconds: int = 60
    # Deadline applied to every outbound provider call.
    http_timeout_seconds: float = 10.0

    # Login flow
    frontend_url: str = "http://localhost:3000"
    state_secret: str = Field(default="dev-state-secret-change-me", repr=False)
    state_ttl_seconds: int = 600

    cors_allowed_origins: str = "http://localhost:3000"

    # Module provisioning (see `rbac_admin.db.seed`)
    pg_module_token: str = Field(default="", repr=False)
    pg_module_name: str = "PG"
    pg_module_description: str = "Permisos gestionados desde el módulo PG."

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]

    @property
    def google_oauth_configured(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Every layer depends on this module; keep field names stable since they map 1:1 to
# `RBAC_*` environment variables used by deployments.
