"""
rbac_admin.api.__main__

Entrypoint for running the service via `python -m rbac_admin.api`.

Responsibilities:
- Load settings from `RBAC_*` environment variables.
- Build the app and serve it with uvicorn (logging handled by structlog).
"""

from __future__ import annotations

import uvicorn

from rbac_admin.api.app import create_app
from rbac_admin.settings import get_settings


def main() -> None:
    settings = get_settings()

    uvicorn.run(
        create_app(settings=settings),
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,  # structlog
        proxy_headers=True,
    )


if __name__ == "__main__":
    main()


# --- Module Notes -----------------------------------------------------------
# The Google OAuth callback URL (`RBAC_GOOGLE_REDIRECT_URI`) must point at this
# process's public `/auth/callback`; proxy headers keep redirects correct behind ingress.
