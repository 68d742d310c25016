"""
resto_api.api.app

FastAPI app factory for the restaurant service.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Initialize and dispose shared infrastructure (DB engine, identity clients).
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from resto_api.api.errors import install_exception_translation
from resto_api.api.routers.cards import router as cards_router
from resto_api.api.routers.dev_auth import router as dev_auth_router
from resto_api.api.routers.health import router as health_router
from resto_api.api.routers.users import router as users_router
from resto_api.auth.identity import (
    IdentityAdminClient,
    IdentityProvider,
    JwtIdentityProvider,
    build_http_client,
)
from resto_api.db.init_db import init_db
from resto_api.db.session import create_engine, create_sessionmaker
from resto_api.observability.logging import configure_logging, get_logger
from resto_api.observability.middleware import RequestContextMiddleware
from resto_api.settings import Settings

log = get_logger(__name__)


def create_app(
    *,
    settings: Settings,
    identity_provider: IdentityProvider | None = None,
    identity_admin: IdentityAdminClient | None = None,
) -> FastAPI:
    configure_logging(
        service_name=settings.service_name, level=settings.log_level, env=settings.env
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        engine = create_engine(settings)
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        if settings.env in ("dev", "test"):
            # Prod runs Alembic migrations instead.
            await init_db(engine)

        app.state.identity_provider = identity_provider or JwtIdentityProvider.from_settings(
            settings
        )
        http = None
        if identity_admin is None:
            http = build_http_client(settings)
            app.state.identity_admin = IdentityAdminClient(settings=settings, http=http)
        else:
            app.state.identity_admin = identity_admin
        try:
            yield
        finally:
            if http is not None:
                await http.aclose()
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="Restaurant API",
        version=settings.app_version,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Added first so it sits innermost, under the request context middleware.
    install_exception_translation(app, production=settings.is_production)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    )

    app.include_router(health_router, tags=["health"])
    app.include_router(dev_auth_router)
    app.include_router(users_router)
    app.include_router(cards_router)

    return app


# --- Module Notes -----------------------------------------------------------
# App composition stays here; business rules stay in services and auth.
