"""
rbac_admin.google

Google integration package.

Responsibilities:
- OAuth login, credential refresh, and the Calendar/Meet API boundary.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# All outbound calls share one `httpx.AsyncClient` created at app startup.
