"""
Provider adapter tests: payload validation and normalization through
httpx.MockTransport, without touching the network.

Run: pytest backend/tests/test_providers.py -v
"""
from __future__ import annotations

from typing import Any, Callable

import httpx
import pytest

from shared.config import Settings
from shared.models.enums import Feed, MatchStatus, ProviderName, TossDecision
from shared.utils.http_client import ProviderHTTPClient, retry_after_seconds
from ingest.normalization.normalizer import newest_first, team_short_name
from ingest.providers.base import PayloadError
from ingest.providers.cricapi import CricAPIProvider
from ingest.providers.espn import ESPNCricinfoProvider
from ingest.providers.registry import build_adapters
from ingest.providers.sportmonks import SportMonksProvider

TRACKED = ["india", "pakistan"]


def _client(name: str, handler: Callable[[httpx.Request], httpx.Response]) -> ProviderHTTPClient:
    return ProviderHTTPClient(
        provider_name=name,
        base_url="https://provider.test",
        max_retries=1,
        transport=httpx.MockTransport(handler),
    )


def _json(payload: Any, status: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=payload)
    return handler


CRICAPI_PAYLOAD = {
    "status": "success",
    "data": [
        {
            "id": "eng-aus-1",
            "name": "England vs Australia, 1st ODI",
            "matchType": "odi",
            "teams": ["England", "Australia"],
            "score": [],
            "matchStarted": False,
            "matchEnded": False,
        },
        {
            "id": "cric-ind-pak",
            "name": "India vs Pakistan, 12th Match",
            "matchType": "t20",
            "venue": "Dubai International Cricket Stadium",
            "dateTimeGMT": "2024-01-15T14:30:00",
            "teams": ["India", "Pakistan"],
            "score": [{"r": 120, "w": 3, "o": 14.4, "inning": "India Inning 1"}],
            "matchStarted": True,
            "matchEnded": False,
        },
    ],
}


# ── Normalizer helpers ──────────────────────────────────────────────────

def test_team_short_name_known_and_unknown() -> None:
    assert team_short_name("India") == "IND"
    assert team_short_name("Netherlands") == "NET"
    assert team_short_name("") == "TBD"
    assert team_short_name(None) == "TBD"


# ── CricAPI ─────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_cricapi_live_match_picks_tracked_fixture() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=CRICAPI_PAYLOAD)

    provider = CricAPIProvider(_client("cricapi", handler), api_key="k", tracked_teams=TRACKED)
    result = await provider.fetch(Feed.LIVE_MATCH)
    await provider.close()

    snap = result.data
    assert result.provider == ProviderName.CRICAPI
    assert snap.id == "cric-ind-pak"
    assert snap.status == MatchStatus.LIVE
    assert snap.team1.short_name == "IND"
    assert (snap.score1.runs, snap.score1.wickets, snap.score1.overs, snap.score1.balls) == (120, 3, 14, 4)
    assert snap.score2.runs == 0
    assert snap.match_type == "T20I"
    assert seen[0].url.path.endswith("/currentMatches")
    assert seen[0].url.params["apikey"] == "k"


@pytest.mark.asyncio
async def test_cricapi_current_matches_lists_two_team_fixtures() -> None:
    provider = CricAPIProvider(_client("cricapi", _json(CRICAPI_PAYLOAD)), api_key="k", tracked_teams=TRACKED)
    result = await provider.fetch(Feed.CURRENT_MATCHES)
    assert [m.id for m in result.data] == ["eng-aus-1", "cric-ind-pak"]
    assert result.data[0].status == MatchStatus.UPCOMING


@pytest.mark.asyncio
async def test_cricapi_without_tracked_match_is_payload_error() -> None:
    payload = {"status": "success", "data": [CRICAPI_PAYLOAD["data"][0]]}
    provider = CricAPIProvider(_client("cricapi", _json(payload)), api_key="k", tracked_teams=TRACKED)
    with pytest.raises(PayloadError):
        await provider.fetch(Feed.LIVE_MATCH)


@pytest.mark.asyncio
async def test_cricapi_failure_status_is_payload_error() -> None:
    provider = CricAPIProvider(
        _client("cricapi", _json({"status": "failure", "reason": "Invalid API Key"})),
        api_key="k",
        tracked_teams=TRACKED,
    )
    with pytest.raises(PayloadError):
        await provider.fetch(Feed.LIVE_MATCH)


@pytest.mark.asyncio
async def test_cricapi_schema_mismatch_is_payload_error() -> None:
    provider = CricAPIProvider(_client("cricapi", _json({"data": "nope"})), api_key="k", tracked_teams=TRACKED)
    with pytest.raises(PayloadError):
        await provider.fetch(Feed.LIVE_MATCH)


def test_cricapi_without_key_is_disabled() -> None:
    provider = CricAPIProvider(_client("cricapi", _json({})), api_key="", tracked_teams=TRACKED)
    assert not provider.enabled
    assert not provider.available_for(Feed.LIVE_MATCH)


# ── ESPN Cricinfo ───────────────────────────────────────────────────────

ESPN_MATCHES = {
    "matches": [
        {
            "objectId": 1415755,
            "title": "12th Match",
            "format": "T20I",
            "stage": "RUNNING",
            "status": {"type": 3, "description": "Live"},
            "venue": {"fullName": "Dubai International Cricket Stadium"},
            "startDate": "2024-01-15T14:30:00.000Z",
            "teams": [
                {"team": {"id": 6, "name": "India", "abbreviation": "IND"},
                 "score": {"innings": [{"runs": 68, "wickets": 0, "overs": 8.2}]}},
                {"team": {"id": 7, "name": "Pakistan", "abbreviation": "PAK"}},
            ],
        }
    ]
}


def _espn(handler: Callable[[httpx.Request], httpx.Response], ids: bool = True) -> ESPNCricinfoProvider:
    return ESPNCricinfoProvider(
        _client("espncricinfo", handler),
        tracked_teams=TRACKED,
        series_id="1415700" if ids else "",
        match_id="1415755" if ids else "",
    )


@pytest.mark.asyncio
async def test_espn_live_match_normalization() -> None:
    result = await _espn(_json(ESPN_MATCHES)).fetch(Feed.LIVE_MATCH)
    snap = result.data
    assert snap.id == "1415755"
    assert snap.status == MatchStatus.LIVE
    assert snap.team1.id == "6"
    assert snap.team2.short_name == "PAK"
    assert (snap.score1.overs, snap.score1.balls) == (8, 2)
    assert snap.current_innings == 1


@pytest.mark.asyncio
async def test_espn_commentary_is_reversed_to_newest_first() -> None:
    comments = {
        "comments": [
            {"id": 1, "overNumber": 7, "ballNumber": 6, "totalRuns": 6, "isSix": True,
             "title": "Shaheen to Rohit", "commentTextItems": [{"html": "SIX!"}]},
            {"id": 2, "overNumber": 8, "ballNumber": 1, "totalRuns": 1,
             "title": "Shaheen to Rohit", "commentTextItems": [{"html": "Single."}]},
            {"id": 3, "overNumber": 8, "ballNumber": 2, "totalRuns": 4, "isFour": True,
             "batsmanName": "Virat Kohli", "commentTextItems": [{"html": "FOUR!"}]},
        ]
    }
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=comments)

    result = await _espn(handler).fetch(Feed.COMMENTARY)
    entries = result.data
    assert [(e.over, e.ball) for e in entries] == [(8, 2), (8, 1), (7, 6)]
    assert entries[0].player == "Virat Kohli"
    assert entries[2].player == "Rohit"
    assert entries[2].is_boundary
    assert seen[0].url.params["sortDirection"] == "ASC"


@pytest.mark.asyncio
async def test_espn_scorecard_keeps_single_active_partnership() -> None:
    scorecard = {
        "content": {
            "innings": [
                {
                    "inningPartnerships": [
                        {"player1": {"longName": "Rohit Sharma"}, "player2": {"longName": "Shubman Gill"},
                         "runs": 30, "balls": 20, "isLive": True},
                        {"player1": {"longName": "Virat Kohli"}, "player2": {"longName": "Rohit Sharma"},
                         "runs": 38, "balls": 30, "isLive": True},
                    ],
                    "inningWickets": [
                        {"fowOrder": 1, "fowRuns": 30, "fowOvers": 3.2,
                         "player": {"longName": "Shubman Gill"}, "dismissalText": {"long": "c Rizwan b Shaheen"}},
                    ],
                    "inningPowerPlays": [
                        {"title": "Powerplay", "startOver": 1, "endOver": 6, "runs": 52, "wickets": 1},
                    ],
                }
            ]
        }
    }
    stats = (await _espn(_json(scorecard)).fetch(Feed.MATCH_STATS)).data
    assert [p.is_active for p in stats.partnerships] == [False, True]
    assert stats.fall_of_wickets[0].how_out == "c Rizwan b Shaheen"
    assert stats.powerplays[0].overs == "1-6"
    assert stats.powerplays[0].run_rate == round(52 / 6, 2)


def test_espn_without_ids_is_unavailable_for_match_feeds() -> None:
    provider = _espn(_json({}), ids=False)
    assert provider.available_for(Feed.LIVE_MATCH)
    assert not provider.available_for(Feed.COMMENTARY)
    assert not provider.available_for(Feed.MATCH_STATS)


@pytest.mark.asyncio
async def test_espn_http_error_propagates_as_httpx_error() -> None:
    provider = _espn(_json({"error": "forbidden"}, status=403))
    with pytest.raises(httpx.HTTPStatusError):
        await provider.fetch(Feed.LIVE_MATCH)


@pytest.mark.asyncio
async def test_non_json_response_is_payload_error() -> None:
    provider = _espn(lambda request: httpx.Response(200, text="<html>maintenance</html>"))
    with pytest.raises(PayloadError):
        await provider.fetch(Feed.LIVE_MATCH)


# ── SportMonks ──────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_sportmonks_livescores_normalization() -> None:
    payload = {
        "data": [
            {
                "id": 40123,
                "status": "1st Innings",
                "type": "T20I",
                "starting_at": "2024-01-15T14:30:00.000000Z",
                "toss_won_team_id": 10,
                "elected": "batting",
                "localteam": {"data": {"id": 11, "name": "Pakistan", "code": "PAK"}},
                "visitorteam": {"data": {"id": 10, "name": "India", "code": "IND"}},
                "runs": {"data": [{"team_id": 10, "inning": 1, "score": 68, "wickets": 0, "overs": 8.2}]},
                "venue": {"data": {"name": "Dubai International Cricket Stadium"}},
            }
        ]
    }
    provider = SportMonksProvider(_client("sportmonks", _json(payload)), api_key="k", tracked_teams=TRACKED)
    snap = (await provider.fetch(Feed.LIVE_MATCH)).data

    assert snap.status == MatchStatus.LIVE
    # The side batting first is team1
    assert snap.team1.name == "India"
    assert snap.score1.runs == 68
    assert snap.toss_winner == "India"
    assert snap.toss_decision == TossDecision.BAT
    assert snap.venue == "Dubai International Cricket Stadium"


# ── Factory ─────────────────────────────────────────────────────────────

def test_build_adapters_registers_every_provider(settings: Settings) -> None:
    adapters = build_adapters(settings)
    assert set(adapters) == set(ProviderName)
    assert all(a.enabled for a in adapters.values())


def test_newest_first_orders_by_over_then_ball() -> None:
    from shared.models.domain import CommentaryEntry

    entries = [
        CommentaryEntry(id="a", over=9, ball=1, text="a"),
        CommentaryEntry(id="b", over=8, ball=6, text="b"),
        CommentaryEntry(id="c", over=9, ball=2, text="c"),
    ]
    assert [e.id for e in newest_first(entries)] == ["c", "a", "b"]


# ── HTTP client ─────────────────────────────────────────────────────────

def test_retry_after_accepts_seconds_and_tolerates_http_dates() -> None:
    assert retry_after_seconds("3") == 3.0
    assert retry_after_seconds("120") == 10.0
    assert retry_after_seconds(None) == 2.0
    assert retry_after_seconds("Wed, 21 Oct 2015 07:28:00 GMT") == 2.0
    assert retry_after_seconds("nan") == 2.0
