"""
rbac_admin.observability.logging

Structured logging configuration for the service.

Responsibilities:
- Configure `structlog` for JSON logs on top of stdlib logging.
- Scrub bearer/OAuth secrets from log events before rendering.
- Provide a small wrapper for obtaining bound loggers.
"""

from __future__ import annotations

import logging
import re
import sys
from typing import Any

import structlog

REDACTED = "[redacted]"

# Keys whose values are credentials, wherever they appear in an event.
SENSITIVE_KEYS = frozenset(
    {
        "authorization",
        "access_token",
        "refresh_token",
        "token",
        "client_secret",
        "code",
        "state",
    }
)

# Bearer values and OAuth query parameters embedded in free-text fields (httpx errors carry URLs).
_INLINE_SECRET = re.compile(
    r"(Bearer\s+)[^\s\"']+|\b((?:access_token|refresh_token|code|state)=)[^&\s\"']+",
    re.IGNORECASE,
)


def configure_logging(*, service_name: str, level: str) -> None:
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )
    # RequestContextMiddleware emits the access log; uvicorn's would duplicate it.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _add_service_name(service_name),
            redact_secrets,
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _add_service_name(service_name: str):
    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def _scrub(text: str) -> str:
    return _INLINE_SECRET.sub(lambda m: (m.group(1) or m.group(2)) + REDACTED, text)


def redact_secrets(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key, value in list(event_dict.items()):
        if value is None:
            continue
        if key.lower() in SENSITIVE_KEYS:
            event_dict[key] = REDACTED
        elif isinstance(value, str):
            event_dict[key] = _scrub(value)
    return event_dict


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


# --- Module Notes -----------------------------------------------------------
# Redaction is a safety net; call sites still avoid passing secrets as log fields.
