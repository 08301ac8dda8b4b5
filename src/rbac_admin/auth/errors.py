"""
rbac_admin.auth.errors

Authorization error taxonomy.

Responsibilities:
- Map every way a bearer token can be rejected to a stable code and HTTP status.
- Keep 401 messages generic so callers cannot tell *why* a token failed.
"""

from __future__ import annotations

from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN


class AuthError(Exception):
    code: str = "auth_error"
    status_code: int = HTTP_401_UNAUTHORIZED
    message: str = "Unauthenticated."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        if message is not None:
            self.message = message


class NoToken(AuthError):
    code = "no_token"
    message = "Token no enviado en la cabecera Authorization."


class InvalidOrExpiredToken(AuthError):
    code = "invalid_or_expired_token"
    message = "Token inválido o expirado."


class InvalidToken(AuthError):
    code = "invalid_token"
    message = "Token inválido."


class ModuleInactive(AuthError):
    code = "module_inactive"
    status_code = HTTP_403_FORBIDDEN
    message = "El módulo asociado al token está inactivo."


class InsufficientAbilities(AuthError):
    code = "insufficient_abilities"
    status_code = HTTP_403_FORBIDDEN
    message = "El token del módulo no cuenta con las habilidades necesarias."


class ModuleNotAllowed(AuthError):
    code = "module_not_allowed"
    status_code = HTTP_403_FORBIDDEN
    message = "El módulo no tiene permisos para acceder a este recurso."


# --- Module Notes -----------------------------------------------------------
# Rendered by the handler registered in `rbac_admin.api.app` as
# {"authorized": false, "error": <message>}.
