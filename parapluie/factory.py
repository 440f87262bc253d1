"""Application factory for creating FastAPI instances."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from parapluie.core.logging import get_logger, install_middlewares, setup_logging
from parapluie.core.settings import Settings, get_settings
from parapluie.integrations.supabase import SupabaseBackend
from parapluie.services.sessions import (
    BackendFactory,
    PermissionRequesterFactory,
    SessionRegistry,
)
from parapluie.storage.session import create_local_engine, get_sessionmaker, init_local_store

logger = get_logger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    logger.info("Starting Parapluie", environment=app.state.settings.app_env)
    await init_local_store(app.state.local_engine)

    yield

    await app.state.sessions.close_all()
    await app.state.local_engine.dispose()
    logger.info("Shutting down Parapluie")


def create_app(
    settings: Optional[Settings] = None,
    *,
    backend_factory: Optional[BackendFactory] = None,
    permission_requester_factory: Optional[PermissionRequesterFactory] = None,
) -> FastAPI:
    """
    Application factory with settings injection.

    Args:
        settings: Optional settings instance. If None, read from environment.
        backend_factory: Builds the hosted backend for each new session.
            Defaults to a Supabase client per session.
        permission_requester_factory: Builds the device permission requester
            for each new session. Defaults to the simulated one.

    Returns:
        Configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    setup_logging()

    app = FastAPI(
        title="Parapluie",
        version=VERSION,
        description="Onboarding and trusted-contact invitations for the Parapluie scam protection app",
        lifespan=lifespan,
    )

    # Store settings and collaborators in app state for dependency injection
    app.state.settings = settings
    app.state.local_engine = create_local_engine(settings.local_store_url)

    registry_kwargs = {}
    if permission_requester_factory is not None:
        registry_kwargs["permission_requester_factory"] = permission_requester_factory
    app.state.sessions = SessionRegistry(
        settings,
        backend_factory or SupabaseBackend.create,
        get_sessionmaker(app.state.local_engine),
        **registry_kwargs,
    )

    install_middlewares(app)
    setup_routes(app, settings)
    setup_error_handlers(app)

    return app


def setup_routes(app: FastAPI, settings: Settings):
    """Configure application routes."""

    @app.get("/")
    async def root():
        return {
            "app": "parapluie",
            "version": VERSION,
            "environment": settings.app_env,
            "docs": "/docs",
        }

    from parapluie.api import api_router
    from parapluie.api.health import router as health_router
    from parapluie.api.metrics import router as metrics_router

    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(api_router)


def setup_error_handlers(app: FastAPI):
    """Configure error handlers."""

    @app.exception_handler(404)
    async def not_found_handler(request: Request, exc):
        detail = getattr(exc, "detail", None) or "Resource not found"
        return JSONResponse(status_code=404, content={"detail": detail})
