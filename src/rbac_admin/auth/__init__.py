"""
rbac_admin.auth

Authentication/authorization package.

Responsibilities:
- Opaque bearer-token hashing and actor resolution (users and service modules).
- FastAPI auth dependencies and the 401/403 error taxonomy.
- Signed OAuth `state` values for the Google login flow.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Nothing here talks to Google; credential refresh lives in `rbac_admin.google`.
