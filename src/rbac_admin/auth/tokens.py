"""
rbac_admin.auth.tokens

Opaque bearer-token helpers.

Responsibilities:
- Generate plain-text secrets in the `<id>|<secret>` form handed to clients.
- Hash secrets (sha256 hex) for storage and lookup-by-equality.
- Split a presented bearer value into its optional record id and secret part.
"""

from __future__ import annotations

import hashlib
import secrets
import string

_ALPHABET = string.ascii_letters + string.digits
SECRET_LENGTH = 40


def generate_secret(length: int = SECRET_LENGTH) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def hash_secret(secret: str) -> str:
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


def split_bearer(raw: str) -> tuple[int | None, str]:
    """
    `"12|abc"` -> (12, "abc"); a bare secret -> (None, secret).

    A prefix that is not an integer is kept as part of the secret, so module
    tokens provisioned from arbitrary strings still resolve.
    """

    if "|" not in raw:
        return None, raw
    prefix, secret = raw.split("|", 1)
    if not prefix.isdigit():
        return None, raw
    return int(prefix), secret


def plain_text(record_id: int, secret: str) -> str:
    return f"{record_id}|{secret}"
