"""
rbac_admin.api.app

FastAPI app factory for the RBAC admin service.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Initialize and dispose shared infrastructure (DB engine/session factory, outbound HTTP client).
- Render authorization errors in one place.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from rbac_admin import __version__
from rbac_admin.api.routers.admin.router import router as admin_router
from rbac_admin.api.routers.google import router as google_router
from rbac_admin.api.routers.google_auth import router as google_auth_router
from rbac_admin.api.routers.health import router as health_router
from rbac_admin.api.routers.tokens import router as tokens_router
from rbac_admin.auth.errors import AuthError
from rbac_admin.db.init_db import init_db
from rbac_admin.db.session import create_engine, create_sessionmaker
from rbac_admin.observability.logging import configure_logging, get_logger
from rbac_admin.observability.middleware import RequestContextMiddleware
from rbac_admin.settings import Settings

log = get_logger(__name__)


def create_app(
    *,
    settings: Settings,
    google_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    # Configure structured logging once at process startup (before app serves requests).
    configure_logging(service_name=settings.service_name, level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        # Engine, session factory and outbound client live on app.state; routers reach
        # them via dependencies (see `rbac_admin.api.deps`).
        engine = create_engine(settings)
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        app.state.google_http = httpx.AsyncClient(
            transport=google_transport,
            timeout=settings.http_timeout_seconds,
        )
        if settings.env in ("dev", "test"):
            # Dev/test convenience: create tables automatically. Prod should use Alembic migrations.
            await init_db(engine)
        try:
            yield
        finally:
            await app.state.google_http.aclose()
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="RBAC Admin",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Requested-With", "Accept"],
    )
    app.add_middleware(RequestContextMiddleware)

    @app.exception_handler(AuthError)
    async def _auth_error(_: Request, exc: AuthError) -> JSONResponse:
        log.info("request_unauthorized", error_code=exc.code, status=exc.status_code)
        return JSONResponse(
            status_code=exc.status_code,
            content={"authorized": False, "error": exc.message},
        )

    app.include_router(health_router, tags=["health"])
    app.include_router(google_auth_router)
    app.include_router(tokens_router)
    app.include_router(google_router)
    app.include_router(admin_router)

    return app


# --- Module Notes -----------------------------------------------------------
# This file is intentionally small: app composition stays here; business logic stays
# in routers/services/google layers.
