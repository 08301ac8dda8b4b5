"""
rbac_admin.auth.jwt

Signed OAuth `state` values.

Responsibilities:
- Issue a short-lived HS256 JWT used as the `state` parameter of the Google login redirect.
- Validate it on callback (signature, audience, expiry) so the flow stays stateless
  without accepting forged callbacks.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from jwt import InvalidTokenError

_STATE_AUDIENCE = "google-oauth-state"


@dataclass(frozen=True, slots=True)
class StateConfig:
    secret: str
    issuer: str
    alg: str = "HS256"


class StateValidationError(Exception):
    pass


def issue_state(*, cfg: StateConfig, ttl: timedelta = timedelta(minutes=10)) -> str:
    now = datetime.now(tz=UTC)
    payload: dict[str, Any] = {
        "iss": cfg.issuer,
        "aud": _STATE_AUDIENCE,
        "nonce": secrets.token_urlsafe(16),
        "iat": int(now.timestamp()),
        "exp": int((now + ttl).timestamp()),
    }
    return jwt.encode(payload, cfg.secret, algorithm=cfg.alg)


def verify_state(*, cfg: StateConfig, state: str) -> dict[str, Any]:
    try:
        return jwt.decode(
            state,
            cfg.secret,
            algorithms=[cfg.alg],
            issuer=cfg.issuer,
            audience=_STATE_AUDIENCE,
            options={"require": ["exp", "iat", "iss", "aud", "nonce"]},
        )
    except InvalidTokenError as e:
        raise StateValidationError(str(e)) from e


# --- Module Notes -----------------------------------------------------------
# Used only by `api/routers/google_auth.py`. Bearer tokens for API calls are opaque
# hashed secrets (see `auth/tokens.py`), not JWTs.
