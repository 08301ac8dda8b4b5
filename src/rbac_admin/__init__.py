"""
rbac_admin

Top-level package for the RBAC admin backend (users, roles, permissions, module tokens
and the Google Calendar/Meet integration).

Responsibilities:
- Expose package version metadata.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"


# --- Module Notes -----------------------------------------------------------
# Keep this file minimal to avoid import-time side effects across the codebase.
