"""
Channel catalog REST endpoints.

GET /v1/channels             - Live broadcaster channels.
GET /v1/channels/categories  - Channels grouped for browsing.
GET /v1/channels/search?q=   - Case-insensitive search over name, description and tags.
GET /v1/channels/{id}        - One channel.
GET /v1/matches/current      - Current matches with the channels that carry them.
"""
from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from shared.models.enums import ChannelCategory, ChannelCountry
from shared.utils.logging import get_logger

from api.dependencies import get_catalog
from catalog.service import ChannelCatalog

logger = get_logger(__name__)
router = APIRouter(prefix="/v1/channels", tags=["channels"])
matches_router = APIRouter(prefix="/v1/matches", tags=["channels"])


@router.get("")
async def list_channels(
    category: Optional[ChannelCategory] = Query(default=None),
    country: Optional[ChannelCountry] = Query(default=None),
    catalog: ChannelCatalog = Depends(get_catalog),
) -> list[dict[str, Any]]:
    """Live channels, optionally narrowed to one category or country."""
    channels = catalog.get_live_channels()
    if category is not None:
        ids = {c.id for c in catalog.get_channels_by_category(category)}
        channels = [c for c in channels if c.id in ids]
    if country is not None:
        ids = {c.id for c in catalog.get_channels_by_country(country)}
        channels = [c for c in channels if c.id in ids]
    return [c.to_wire() for c in channels]


@router.get("/categories")
async def channel_categories(catalog: ChannelCatalog = Depends(get_catalog)) -> list[dict[str, Any]]:
    return [g.to_wire() for g in catalog.get_channel_categories()]


@router.get("/search")
async def search_channels(
    q: str = Query(default="", max_length=100),
    catalog: ChannelCatalog = Depends(get_catalog),
) -> list[dict[str, Any]]:
    return [c.to_wire() for c in catalog.search_channels(q)]


@router.get("/{channel_id}")
async def get_channel(channel_id: str, catalog: ChannelCatalog = Depends(get_catalog)) -> dict[str, Any]:
    channel = catalog.get_channel_by_id(channel_id)
    if channel is None:
        raise HTTPException(status_code=404, detail=f"Channel {channel_id} not found")
    return channel.to_wire()


@matches_router.get("/current")
async def current_matches(catalog: ChannelCatalog = Depends(get_catalog)) -> list[dict[str, Any]]:
    matches = await catalog.get_current_matches()
    logger.debug("current_matches_served", count=len(matches))
    return [m.to_wire() for m in matches]
