"""
Tests for the multi-source resolver cascade, breaker integration and
synthesized fallback.

Run: pytest backend/tests/test_resolver.py -v
"""
from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from shared.config import Settings
from shared.models.enums import Feed, MatchStatus, ProviderName
from shared.utils.circuit_breaker import CircuitBreaker, CircuitBreakerOpen, CircuitState
from builder.timeline.synthetic import MatchSynthesizer, initial_simulation
from ingest.providers.base import FeedFetchError, PayloadError, ProviderAdapter
from ingest.providers.registry import MultiSourceResolver, build_adapters


class _StubAdapter(ProviderAdapter):
    """Adapter whose raw fetch replays a scripted sequence of results or errors."""

    requires_api_key = True

    def __init__(
        self,
        name: ProviderName,
        outcomes: list[Any],
        feeds: set[Feed] | None = None,
        enabled: bool = True,
    ) -> None:
        http = MagicMock()
        http.start = AsyncMock()
        http.close = AsyncMock()
        super().__init__(
            name=name,
            http_client=http,
            feeds=feeds or {Feed.LIVE_MATCH},
            tracked_teams=["india"],
            api_key="key" if enabled else "",
        )
        self._outcomes = list(outcomes)
        self.calls = 0

    async def fetch_raw(self, feed: Feed) -> Any:
        self.calls += 1
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def normalize(self, feed: Feed, raw: Any) -> Any:
        return raw


def _snapshot(match_id: str):
    return initial_simulation().match.model_copy(update={"id": match_id})


def _resolver(settings: Settings, adapters: list[_StubAdapter], synth: MatchSynthesizer | None = None):
    return MultiSourceResolver({a.name: a for a in adapters}, synth, settings)


# ── Cascade order ───────────────────────────────────────────────────────

@pytest.mark.asyncio
@pytest.mark.parametrize("winner", [0, 1, 2])
async def test_first_succeeding_provider_wins(settings: Settings, synthesizer: MatchSynthesizer, winner: int) -> None:
    order = [ProviderName.CRICAPI, ProviderName.ESPNCRICINFO, ProviderName.SPORTMONKS]
    adapters = [
        _StubAdapter(name, [_snapshot(name.value)] if idx == winner else [PayloadError(name.value, "bad")])
        for idx, name in enumerate(order)
    ]
    resolver = _resolver(settings, adapters, synthesizer)

    snap = await resolver.get_live_match()

    assert snap.id == order[winner].value
    assert [a.calls for a in adapters] == [1 if idx <= winner else 0 for idx in range(3)]


@pytest.mark.asyncio
async def test_disabled_provider_is_skipped_without_request(settings: Settings) -> None:
    cricapi = _StubAdapter(ProviderName.CRICAPI, [_snapshot("cricapi")], enabled=False)
    espn = _StubAdapter(ProviderName.ESPNCRICINFO, [_snapshot("espn")])
    resolver = _resolver(settings, [cricapi, espn])

    snap = await resolver.resolve(Feed.LIVE_MATCH)

    assert snap.id == "espn"
    assert cricapi.calls == 0
    assert resolver.breaker(ProviderName.CRICAPI).stats["failure_count"] == 0


@pytest.mark.asyncio
async def test_transport_and_validation_errors_fall_through(settings: Settings) -> None:
    request = httpx.Request("GET", "https://provider.test/currentMatches")
    cricapi = _StubAdapter(ProviderName.CRICAPI, [httpx.ConnectError("refused", request=request)])
    espn = _StubAdapter(ProviderName.ESPNCRICINFO, [ValueError("bad canonical value")])
    sportmonks = _StubAdapter(ProviderName.SPORTMONKS, [_snapshot("sportmonks")])
    resolver = _resolver(settings, [cricapi, espn, sportmonks])

    snap = await resolver.resolve(Feed.LIVE_MATCH)

    assert snap.id == "sportmonks"
    assert resolver.breaker(ProviderName.CRICAPI).stats["failure_count"] == 1
    assert resolver.breaker(ProviderName.ESPNCRICINFO).stats["failure_count"] == 1


@pytest.mark.asyncio
async def test_unexpected_adapter_error_falls_through(settings: Settings) -> None:
    cricapi = _StubAdapter(ProviderName.CRICAPI, [RuntimeError("adapter bug")])
    espn = _StubAdapter(ProviderName.ESPNCRICINFO, [_snapshot("espn")])
    resolver = _resolver(settings, [cricapi, espn])

    snap = await resolver.resolve(Feed.LIVE_MATCH)

    assert snap.id == "espn"
    assert resolver.breaker(ProviderName.CRICAPI).stats["failure_count"] == 1


@pytest.mark.asyncio
async def test_unexpected_errors_everywhere_still_synthesize(
    settings: Settings, synthesizer: MatchSynthesizer,
) -> None:
    adapters = [
        _StubAdapter(name, [OverflowError("timestamp out of range")])
        for name in (ProviderName.CRICAPI, ProviderName.ESPNCRICINFO, ProviderName.SPORTMONKS)
    ]
    resolver = _resolver(settings, adapters, synthesizer)

    snap = await resolver.get_live_match()

    assert snap.team1.short_name == "IND"
    assert all(a.calls == 1 for a in adapters)


def test_unknown_provider_in_order_is_ignored(settings: Settings) -> None:
    custom = settings.model_copy(update={"provider_order": {"live_match": ["nope", "sportmonks"]}})
    sportmonks = _StubAdapter(ProviderName.SPORTMONKS, [_snapshot("sportmonks")])
    resolver = _resolver(custom, [sportmonks])
    assert resolver.adapters_for(Feed.LIVE_MATCH) == [sportmonks]


# ── Synthesized fallback ────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_all_failing_falls_back_to_synthesizer(settings: Settings, synthesizer: MatchSynthesizer) -> None:
    adapters = [
        _StubAdapter(name, [PayloadError(name.value, "bad")])
        for name in (ProviderName.CRICAPI, ProviderName.ESPNCRICINFO, ProviderName.SPORTMONKS)
    ]
    resolver = _resolver(settings, adapters, synthesizer)

    snap = await resolver.get_live_match()

    assert snap.status == MatchStatus.LIVE
    assert snap.team1.short_name == "IND"
    assert snap.score1.runs >= 68


@pytest.mark.asyncio
async def test_feed_with_no_providers_is_synthesized(settings: Settings, synthesizer: MatchSynthesizer) -> None:
    resolver = _resolver(settings, [], synthesizer)
    chat = await resolver.get_live_chat()
    assert chat
    assert all(len(m.message) <= 200 for m in chat)


@pytest.mark.asyncio
async def test_without_synthesizer_raises_feed_fetch_error(settings: Settings) -> None:
    cricapi = _StubAdapter(ProviderName.CRICAPI, [PayloadError("cricapi", "bad")])
    resolver = _resolver(settings, [cricapi])

    with pytest.raises(FeedFetchError) as exc_info:
        await resolver.get_live_match()

    assert exc_info.value.feed == Feed.LIVE_MATCH
    assert str(exc_info.value) == "Failed to fetch live match"


# ── Circuit breaker integration ─────────────────────────────────────────

@pytest.mark.asyncio
async def test_breaker_opens_after_threshold_and_skips_provider(
    settings: Settings, synthesizer: MatchSynthesizer,
) -> None:
    cricapi = _StubAdapter(ProviderName.CRICAPI, [PayloadError("cricapi", "bad")])
    resolver = _resolver(settings, [cricapi], synthesizer)

    for _ in range(settings.provider_failure_threshold):
        await resolver.get_live_match()
    assert resolver.breaker(ProviderName.CRICAPI).state == CircuitState.OPEN

    await resolver.get_live_match()
    assert cricapi.calls == settings.provider_failure_threshold


@pytest.mark.asyncio
async def test_success_resets_failure_count(settings: Settings) -> None:
    cricapi = _StubAdapter(
        ProviderName.CRICAPI,
        [PayloadError("cricapi", "bad"), PayloadError("cricapi", "bad"), _snapshot("ok")],
    )
    resolver = _resolver(settings, [cricapi])

    for _ in range(2):
        with pytest.raises(FeedFetchError):
            await resolver.get_live_match()
    snap = await resolver.get_live_match()

    assert snap.id == "ok"
    assert resolver.breaker(ProviderName.CRICAPI).stats["failure_count"] == 0


def test_breaker_half_open_allows_single_trial_call() -> None:
    now = [0.0]
    breaker = CircuitBreaker("provider:test", failure_threshold=1, recovery_timeout_s=10, clock=lambda: now[0])

    breaker.record_failure("down")
    with pytest.raises(CircuitBreakerOpen):
        breaker.before_call()

    now[0] = 11.0
    assert breaker.state == CircuitState.HALF_OPEN
    breaker.before_call()
    with pytest.raises(CircuitBreakerOpen):
        breaker.before_call()

    breaker.record_success()
    assert breaker.state == CircuitState.CLOSED


# ── Real adapters ───────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_espn_without_ids_falls_back_for_commentary(
    settings: Settings, synthesizer: MatchSynthesizer,
) -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(500)

    no_ids = settings.model_copy(update={"espncricinfo_series_id": "", "espncricinfo_match_id": ""})
    resolver = MultiSourceResolver(build_adapters(no_ids, transport=httpx.MockTransport(handler)), synthesizer, no_ids)

    entries = await resolver.get_commentary()
    await resolver.close()

    assert [(e.over, e.ball) for e in entries][0] == (8, 2)
    assert requests == []
    assert resolver.breaker(ProviderName.ESPNCRICINFO).stats["failure_count"] == 0


def test_provider_status_reports_enabled_and_breaker(settings: Settings) -> None:
    no_keys = settings.model_copy(update={"cricapi_api_key": ""})
    resolver = MultiSourceResolver(build_adapters(no_keys), None, no_keys)

    status = resolver.provider_status()

    assert status["cricapi"]["enabled"] is False
    assert status["espncricinfo"]["enabled"] is True
    assert status["sportmonks"]["state"] == "closed"


@pytest.mark.asyncio
async def test_espn_out_of_range_timestamp_does_not_break_commentary(
    settings: Settings, synthesizer: MatchSynthesizer,
) -> None:
    payload = {"comments": [{"id": 1, "overNumber": 8, "ballNumber": 2, "timestamp": 10**25}]}
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=payload))
    resolver = MultiSourceResolver(build_adapters(settings, transport=transport), synthesizer, settings)

    entries = await resolver.get_commentary()
    await resolver.close()

    assert [(e.id, e.over, e.ball) for e in entries] == [("1", 8, 2)]
    assert entries[0].timestamp.year >= 2024
    assert resolver.breaker(ProviderName.ESPNCRICINFO).stats["failure_count"] == 0
