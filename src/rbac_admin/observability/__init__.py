"""
rbac_admin.observability

Observability package.

Responsibilities:
- Structured logging configuration (with secret redaction).
- Request context propagation and access logging.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Every module obtains its logger via `observability.logging.get_logger(__name__)`.
