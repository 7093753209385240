"""
FastAPI application factory for the Live Crease API service.

Creates the app with:
- Match feed routes (live, commentary, stats, chat)
- Channel catalog routes
- Middleware stack
- Health and status endpoints
- Lifespan management (startup/shutdown)
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from fastapi import FastAPI

from shared.config import Settings, get_settings
from shared.utils.logging import get_logger, setup_logging
from shared.utils.metrics import start_metrics_server

from api.dependencies import init_dependencies
from api.middleware import setup_middleware
from api.routes.channels import matches_router
from api.routes.channels import router as channels_router
from api.routes.match import router as match_router
from catalog.service import ChannelCatalog
from ingest.providers.registry import MultiSourceResolver
from scheduler.service import build_services

logger = get_logger(__name__)


@asynccontextmanager
async def _noop_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """No-op lifespan for testing with injected services."""
    yield


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.
    Builds the services unless they were injected, and closes the provider
    HTTP clients on shutdown.
    """
    settings: Settings = app.state.settings
    setup_logging("api", settings=settings)
    start_metrics_server(settings)

    if getattr(app.state, "resolver", None) is None:
        resolver, _, catalog = build_services(settings)
        init_dependencies(app, resolver, catalog)

    resolver: MultiSourceResolver = app.state.resolver
    await resolver.start()

    logger.info(
        "api_service_started",
        host=settings.api_host,
        port=settings.api_port,
    )

    yield

    await resolver.close()
    logger.info("api_service_stopped")


def create_app(
    *,
    resolver: Optional[MultiSourceResolver] = None,
    catalog: Optional[ChannelCatalog] = None,
    settings: Optional[Settings] = None,
    use_lifespan: bool = True,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Pass `resolver` (and optionally `catalog`) to inject services; set
    use_lifespan=False for testing without provider clients or metrics.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Live Crease API",
        description="Live cricket match data and broadcaster catalog",
        version="1.0.0",
        lifespan=lifespan if use_lifespan else _noop_lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    if resolver is not None:
        init_dependencies(app, resolver, catalog or ChannelCatalog(resolver))

    # Middleware
    setup_middleware(app, settings)

    # REST routes
    app.include_router(match_router)
    app.include_router(channels_router)
    app.include_router(matches_router)

    # Health check
    @app.get("/health", tags=["system"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "service": "api"}

    @app.get("/v1/status", tags=["system"])
    async def system_status() -> dict[str, Any]:
        """Provider availability and circuit breaker state."""
        providers = get_resolver_status(app)
        return {
            "status": "ok" if any(p["enabled"] and p["state"] != "open" for p in providers.values()) else "degraded",
            "providers": providers,
        }

    return app


def get_resolver_status(app: FastAPI) -> dict[str, dict[str, Any]]:
    resolver = getattr(app.state, "resolver", None)
    return resolver.provider_status() if resolver is not None else {}


# For running with uvicorn directly
app = create_app()
