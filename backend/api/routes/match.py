"""
Match feed REST endpoints.

GET /v1/match/live        - Current match snapshot.
GET /v1/match/commentary  - Ball-by-ball commentary, newest first.
GET /v1/match/stats       - Partnerships, fall of wickets and powerplays.
GET /v1/match/chat        - Live chat replica.

Every response is an envelope: `{success, data, timestamp}` on success or
`{success: false, error, timestamp}` with status 500. Other verbs get 405.
"""
from __future__ import annotations

from typing import Any, Awaitable, Callable

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from shared.models.domain import ApiEnvelope, DomainModel
from shared.utils.logging import get_logger

from api.dependencies import get_resolver
from ingest.providers.registry import MultiSourceResolver

logger = get_logger(__name__)
router = APIRouter(prefix="/v1/match", tags=["match"])


def _wire(value: Any) -> Any:
    if isinstance(value, DomainModel):
        return value.to_wire()
    if isinstance(value, list):
        return [_wire(v) for v in value]
    return value


async def _envelope(
    feed_label: str,
    fetch: Callable[[], Awaitable[Any]],
    error_message: str,
) -> JSONResponse:
    try:
        data = await fetch()
    except Exception as exc:
        logger.error("match_feed_failed", feed=feed_label, error=str(exc))
        body = ApiEnvelope(success=False, error=error_message)
        return JSONResponse(
            status_code=500,
            content=body.model_dump(mode="json", by_alias=True, exclude={"data"}),
        )
    body = ApiEnvelope(success=True, data=_wire(data))
    return JSONResponse(content=body.model_dump(mode="json", by_alias=True, exclude={"error"}))


@router.get("/live")
async def live_match(resolver: MultiSourceResolver = Depends(get_resolver)) -> JSONResponse:
    return await _envelope("live_match", resolver.get_live_match, "Failed to fetch live match data")


@router.get("/commentary")
async def commentary(resolver: MultiSourceResolver = Depends(get_resolver)) -> JSONResponse:
    return await _envelope("commentary", resolver.get_commentary, "Failed to fetch commentary")


@router.get("/stats")
async def match_stats(resolver: MultiSourceResolver = Depends(get_resolver)) -> JSONResponse:
    return await _envelope("match_stats", resolver.get_match_stats, "Failed to fetch match statistics")


@router.get("/chat")
async def live_chat(resolver: MultiSourceResolver = Depends(get_resolver)) -> JSONResponse:
    return await _envelope("live_chat", resolver.get_live_chat, "Failed to fetch live chat")
