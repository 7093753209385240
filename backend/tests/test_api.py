"""
API route tests. Services are injected, so no provider is contacted:
the resolver has no adapters and every feed comes from the synthesizer.

Run: pytest backend/tests/test_api.py -v
"""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from shared.config import Settings
from shared.models.enums import Feed
from api.app import create_app
from builder.timeline.synthetic import MatchSynthesizer
from ingest.providers.base import FeedFetchError
from ingest.providers.registry import MultiSourceResolver


@pytest.fixture
def client(settings: Settings, synthesizer: MatchSynthesizer) -> TestClient:
    """Test client with lifespan disabled and a synthesizer-only resolver."""
    resolver = MultiSourceResolver({}, synthesizer, settings)
    app = create_app(resolver=resolver, settings=settings, use_lifespan=False)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def failing_client(settings: Settings) -> TestClient:
    resolver = MagicMock()
    for feed, method in (
        (Feed.LIVE_MATCH, "get_live_match"),
        (Feed.COMMENTARY, "get_commentary"),
        (Feed.MATCH_STATS, "get_match_stats"),
        (Feed.LIVE_CHAT, "get_live_chat"),
        (Feed.CURRENT_MATCHES, "get_current_matches"),
    ):
        setattr(resolver, method, AsyncMock(side_effect=FeedFetchError(feed)))
    resolver.provider_status = MagicMock(return_value={})
    app = create_app(resolver=resolver, settings=settings, use_lifespan=False)
    with TestClient(app) as c:
        yield c


# ── System ──────────────────────────────────────────────────────────────

def test_health_returns_ok(client: TestClient) -> None:
    """GET /health returns 200 and status ok."""
    r = client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data.get("status") == "ok"
    assert data.get("service") == "api"


def test_health_returns_json(client: TestClient) -> None:
    """GET /health returns application/json."""
    r = client.get("/health")
    assert r.headers.get("content-type", "").startswith("application/json")


def test_request_id_is_echoed(client: TestClient) -> None:
    r = client.get("/health", headers={"X-Request-ID": "abc123"})
    assert r.headers["X-Request-ID"] == "abc123"
    assert client.get("/v1/match/live").headers.get("X-Request-ID")


def test_status_without_providers_is_degraded(client: TestClient) -> None:
    r = client.get("/v1/status")
    assert r.status_code == 200
    assert r.json() == {"status": "degraded", "providers": {}}


# ── Match feeds ─────────────────────────────────────────────────────────

def test_live_match_envelope(client: TestClient) -> None:
    r = client.get("/v1/match/live")
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert "error" not in body
    assert "timestamp" in body
    match = body["data"]
    assert match["status"] == "live"
    assert match["team1"]["shortName"] == "IND"
    assert match["currentInnings"] == 1
    assert match["score1"]["runs"] >= 68


def test_commentary_envelope_newest_first(client: TestClient) -> None:
    body = client.get("/v1/match/commentary").json()
    assert [(e["over"], e["ball"]) for e in body["data"]] == [(8, 2), (8, 1), (7, 6)]
    assert body["data"][0]["isBoundary"] is True


def test_stats_envelope(client: TestClient) -> None:
    body = client.get("/v1/match/stats").json()
    assert body["success"] is True
    assert sum(1 for p in body["data"]["partnerships"] if p["isActive"]) == 1
    assert body["data"]["fallOfWickets"] == []


def test_chat_envelope(client: TestClient) -> None:
    body = client.get("/v1/match/chat").json()
    assert body["success"] is True
    assert all(len(m["message"]) <= 200 for m in body["data"])


@pytest.mark.parametrize(
    "path, message",
    [
        ("/v1/match/live", "Failed to fetch live match data"),
        ("/v1/match/commentary", "Failed to fetch commentary"),
        ("/v1/match/stats", "Failed to fetch match statistics"),
        ("/v1/match/chat", "Failed to fetch live chat"),
    ],
)
def test_failure_envelope(failing_client: TestClient, path: str, message: str) -> None:
    r = failing_client.get(path)
    assert r.status_code == 500
    body = r.json()
    assert body["success"] is False
    assert body["error"] == message
    assert "data" not in body
    assert "timestamp" in body


@pytest.mark.parametrize("path", ["/v1/match/live", "/v1/match/commentary", "/v1/match/stats", "/v1/match/chat"])
def test_other_verbs_are_rejected(client: TestClient, path: str) -> None:
    r = client.post(path, json={})
    assert r.status_code == 405
    assert r.json() == {"error": "Method not allowed"}


# ── Channels ────────────────────────────────────────────────────────────

def test_list_channels(client: TestClient) -> None:
    r = client.get("/v1/channels")
    assert r.status_code == 200
    channels = r.json()
    assert len(channels) == 6
    assert channels[0]["streamUrl"].startswith("https://")
    assert "viewerCount" in channels[0]


def test_list_channels_filtered(client: TestClient) -> None:
    pk = client.get("/v1/channels", params={"country": "pk"}).json()
    assert [c["id"] for c in pk] == ["ptv-sports", "sky-sports-cricket", "willow-tv", "youtube-cricket"]

    sports = client.get("/v1/channels", params={"category": "sports"}).json()
    assert [c["id"] for c in sports] == ["sony-liv"]

    assert client.get("/v1/channels", params={"country": "zz"}).status_code == 422


def test_channel_categories(client: TestClient) -> None:
    groups = client.get("/v1/channels/categories").json()
    assert [g["id"] for g in groups] == ["cricket", "sports", "indian", "pakistani"]


def test_search_channels(client: TestClient) -> None:
    hits = client.get("/v1/channels/search", params={"q": "Willow"}).json()
    assert [c["id"] for c in hits] == ["willow-tv"]
    assert len(client.get("/v1/channels/search").json()) == 6


def test_get_channel_by_id(client: TestClient) -> None:
    r = client.get("/v1/channels/sony-liv")
    assert r.status_code == 200
    assert r.json()["category"] == "sports"


def test_unknown_channel_is_404(client: TestClient) -> None:
    r = client.get("/v1/channels/nope")
    assert r.status_code == 404
    assert r.json() == {"error": "not_found", "message": "Channel nope not found"}


def test_current_matches(client: TestClient) -> None:
    matches = client.get("/v1/matches/current").json()
    assert matches[0]["id"] == "ind-vs-pak-live"
    assert "ptv-sports" in matches[0]["streamingChannels"]


def test_current_matches_fallback_on_failure(failing_client: TestClient) -> None:
    r = failing_client.get("/v1/matches/current")
    assert r.status_code == 200
    assert r.json()[0]["team2"] == "Pakistan"
