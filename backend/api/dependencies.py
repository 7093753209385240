"""
Dependency injection for the API service.
Provides the resolver and channel catalog to route handlers. Both live on
`app.state`, so every app instance carries its own services.
"""
from __future__ import annotations

from fastapi import FastAPI, Request

from catalog.service import ChannelCatalog
from ingest.providers.registry import MultiSourceResolver


def init_dependencies(app: FastAPI, resolver: MultiSourceResolver, catalog: ChannelCatalog) -> None:
    """Attach services to the app. Called once per app construction."""
    app.state.resolver = resolver
    app.state.catalog = catalog


def get_resolver(request: Request) -> MultiSourceResolver:
    """FastAPI dependency: returns the app's MultiSourceResolver."""
    resolver = getattr(request.app.state, "resolver", None)
    if resolver is None:
        raise RuntimeError("MultiSourceResolver not initialized; call init_dependencies first")
    return resolver


def get_catalog(request: Request) -> ChannelCatalog:
    """FastAPI dependency: returns the app's ChannelCatalog."""
    catalog = getattr(request.app.state, "catalog", None)
    if catalog is None:
        raise RuntimeError("ChannelCatalog not initialized; call init_dependencies first")
    return catalog
