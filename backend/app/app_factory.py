"""Application factory.

``create_app`` builds one fully wired FastAPI instance: the service
container, middleware, exception handlers, routers and the static mount for
locally stored uploads. Tests build a fresh app per test by passing their own
settings.
"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from core.config import Settings, get_settings
from core.deps import build_services
from core.exceptions import register_exception_handlers
from core.file_service import BlobStore, LocalBlobStore
from core.response_middleware import RequestIDMiddleware

# Imported for their table definitions
import core.token_blacklist  # noqa: F401
import core.user_models  # noqa: F401

from modules.auth.routes import router as auth_router
from modules.health.routes.health_routes import router as health_router
from modules.restaurants.permissions import RESOURCE_LOADERS as restaurant_loaders
from modules.restaurants.routes import router as restaurant_router

from app.startup import run_startup_checks

LOGGER = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    blob_store: Optional[BlobStore] = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: configuration to use; read from the environment when omitted
        blob_store: storage for uploaded images; built from settings when omitted
    """
    settings = settings or get_settings()
    services = build_services(settings, blob_store=blob_store)
    services.resource_loaders.update(restaurant_loaders)

    if settings.auto_create_tables:
        services.database.create_all()

    app = FastAPI(
        title=settings.app_name,
        description="""
    Restaurant marketplace API: accounts, restaurants, menu items and image uploads.

    ## Authentication

    Use `/auth/login` to obtain a JWT. Send it as `Authorization: Bearer <token>`
    or let the browser carry the httpOnly `token` cookie set on login.
    """,
        version=settings.app_version,
        debug=settings.debug,
    )
    app.state.services = services

    register_exception_handlers(app)

    # Middleware executes in reverse order of addition
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router, prefix=settings.api_prefix)
    app.include_router(restaurant_router, prefix=settings.api_prefix)
    app.include_router(health_router, prefix=settings.api_prefix)

    store = services.blob_store
    if isinstance(store, LocalBlobStore):
        store.root.mkdir(parents=True, exist_ok=True)
        app.mount(
            store.base_url,
            StaticFiles(directory=str(store.root), check_dir=False),
            name="uploads",
        )

    @app.on_event("startup")
    async def startup_event():
        """Validate configuration and collaborators before serving requests"""
        run_startup_checks(services)

    @app.on_event("shutdown")
    async def shutdown_event():
        services.database.dispose()
        LOGGER.info("Database connections closed")

    @app.get("/", include_in_schema=False)
    def read_root():
        return {"message": f"{settings.app_name} is running"}

    return app
