"""
tests.test_smoke

Minimal smoke tests to validate the service can boot and serve core endpoints.

Responsibilities:
- Ensure the FastAPI app starts and the DB readiness probe works in test mode.
"""

from __future__ import annotations

import httpx
import pytest

from rbac_admin.api.app import create_app
from rbac_admin.settings import Settings


@pytest.mark.asyncio
async def test_health_endpoints(tmp_path) -> None:
    app = create_app(
        settings=Settings(env="test", database_url=f"sqlite+aiosqlite:///{tmp_path / 'smoke.db'}")
    )

    # httpx ASGITransport does not manage lifespan automatically; do it explicitly.
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            r = await client.get("/healthz")
            assert r.status_code == 200
            assert r.json()["status"] == "ok"

            r = await client.get("/readyz")
            assert r.status_code == 200
            assert r.json()["status"] == "ready"


@pytest.mark.asyncio
async def test_readyz_reports_google_configuration(client: httpx.AsyncClient) -> None:
    r = await client.get("/readyz")
    assert r.json()["google_oauth"] is True


# --- Module Notes -----------------------------------------------------------
# Endpoint behaviour is covered in test_api_*.py; this file only proves the app boots.
