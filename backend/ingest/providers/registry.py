"""
Multi-source resolver with a deterministic failover cascade per feed.
Tries each configured provider in order and falls back to the synthesizer
when every provider is disabled, tripped or failing.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

import httpx

from shared.config import Settings, get_settings
from shared.models.domain import (
    ChatMessage,
    CommentaryEntry,
    CurrentMatch,
    MatchSnapshot,
    MatchStatisticsBundle,
)
from shared.models.enums import Feed, ProviderName
from shared.utils.circuit_breaker import CircuitBreaker, CircuitBreakerOpen
from shared.utils.http_client import ProviderHTTPClient
from shared.utils.logging import get_logger
from shared.utils.metrics import (
    FEED_RESOLUTIONS,
    FEED_RESOLVE_SECONDS,
    PROVIDER_FAILURES,
    atrack_latency,
)

from ingest.providers.base import FeedFetchError, PayloadError, ProviderAdapter, ProviderError
from ingest.providers.cricapi import CricAPIProvider
from ingest.providers.espn import ESPNCricinfoProvider
from ingest.providers.sportmonks import SportMonksProvider

if TYPE_CHECKING:
    from builder.timeline.synthetic import MatchSynthesizer

logger = get_logger(__name__)

SYNTHETIC_SOURCE = "synthetic"


def build_adapters(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[ProviderName, ProviderAdapter]:
    """Construct every known adapter with its own HTTP client."""
    settings = settings or get_settings()

    def client(name: ProviderName, base_url: str) -> ProviderHTTPClient:
        return ProviderHTTPClient(
            provider_name=name.value,
            base_url=base_url,
            timeout_s=settings.provider_request_timeout_s,
            max_retries=settings.provider_max_retries,
            transport=transport,
        )

    return {
        ProviderName.CRICAPI: CricAPIProvider(
            http_client=client(ProviderName.CRICAPI, settings.cricapi_base_url),
            api_key=settings.cricapi_api_key,
            tracked_teams=settings.tracked_teams,
        ),
        ProviderName.ESPNCRICINFO: ESPNCricinfoProvider(
            http_client=client(ProviderName.ESPNCRICINFO, settings.espncricinfo_base_url),
            tracked_teams=settings.tracked_teams,
            series_id=settings.espncricinfo_series_id,
            match_id=settings.espncricinfo_match_id,
        ),
        ProviderName.SPORTMONKS: SportMonksProvider(
            http_client=client(ProviderName.SPORTMONKS, settings.sportmonks_base_url),
            api_key=settings.sportmonks_api_key,
            tracked_teams=settings.tracked_teams,
        ),
    }


class MultiSourceResolver:
    """
    Resolves each feed from an ordered provider cascade.

    Selection logic per call:
    1. Walk the feed's configured providers in order
    2. Skip providers that are disabled (no API key) or whose circuit is open
    3. Return the first normalized payload
    4. Otherwise return the synthesizer's output, or raise FeedFetchError
       when the synthesizer has nothing for the feed

    Provider failures never escape `resolve`.
    """

    def __init__(
        self,
        adapters: dict[ProviderName, ProviderAdapter],
        synthesizer: Optional["MatchSynthesizer"] = None,
        settings: Settings | None = None,
    ) -> None:
        self._adapters = adapters
        self._synth = synthesizer
        self._settings = settings or get_settings()
        self._breakers: dict[ProviderName, CircuitBreaker] = {
            name: CircuitBreaker(
                name=f"provider:{name.value}",
                failure_threshold=self._settings.provider_failure_threshold,
                recovery_timeout_s=self._settings.provider_recovery_timeout_s,
            )
            for name in adapters
        }

    @property
    def adapters(self) -> dict[ProviderName, ProviderAdapter]:
        return self._adapters

    def breaker(self, name: ProviderName) -> CircuitBreaker:
        return self._breakers[name]

    def adapters_for(self, feed: Feed) -> list[ProviderAdapter]:
        """Configured cascade for a feed, limited to registered adapters that support it."""
        cascade: list[ProviderAdapter] = []
        for raw_name in self._settings.feed_order(feed.value):
            try:
                name = ProviderName(raw_name)
            except ValueError:
                logger.warning("unknown_provider_in_order", provider=raw_name, feed=feed.value)
                continue
            adapter = self._adapters.get(name)
            if adapter is not None and adapter.supports(feed):
                cascade.append(adapter)
        return cascade

    async def start(self) -> None:
        for adapter in self._adapters.values():
            await adapter.start()

    async def close(self) -> None:
        for adapter in self._adapters.values():
            try:
                await adapter.close()
            except Exception as exc:
                logger.warning("provider_close_failed", provider=adapter.name.value, error=str(exc))

    async def resolve(self, feed: Feed) -> Any:
        """
        Resolve one feed.

        Returns:
            The feed's canonical entity from the first usable provider, or
            the synthesizer's rendition.

        Raises:
            FeedFetchError: If every provider failed and nothing can be synthesized.
        """
        async with atrack_latency(FEED_RESOLVE_SECONDS, feed=feed.value):
            for adapter in self.adapters_for(feed):
                name = adapter.name
                if not adapter.available_for(feed):
                    PROVIDER_FAILURES.labels(provider=name.value, feed=feed.value, reason="disabled").inc()
                    logger.debug("provider_disabled_skipped", provider=name.value, feed=feed.value)
                    continue

                breaker = self._breakers[name]
                try:
                    breaker.before_call()
                except CircuitBreakerOpen as exc:
                    PROVIDER_FAILURES.labels(provider=name.value, feed=feed.value, reason="circuit_open").inc()
                    logger.info(
                        "provider_circuit_open_skipped",
                        provider=name.value,
                        feed=feed.value,
                        retry_after=round(exc.retry_after, 1),
                    )
                    continue

                try:
                    result = await adapter.fetch(feed)
                except (ProviderError, httpx.HTTPError, ValueError) as exc:
                    # ValueError covers pydantic validation of the canonical models.
                    reason = "payload" if isinstance(exc, (PayloadError, ValueError)) else "transport"
                    breaker.record_failure(str(exc))
                    PROVIDER_FAILURES.labels(provider=name.value, feed=feed.value, reason=reason).inc()
                    logger.warning(
                        "provider_fetch_failed",
                        provider=name.value,
                        feed=feed.value,
                        reason=reason,
                        error=str(exc),
                    )
                    continue
                except Exception as exc:
                    breaker.record_failure(str(exc))
                    PROVIDER_FAILURES.labels(provider=name.value, feed=feed.value, reason="unexpected").inc()
                    logger.error(
                        "provider_fetch_unexpected_error",
                        provider=name.value,
                        feed=feed.value,
                        error=str(exc),
                        exc_info=True,
                    )
                    continue

                breaker.record_success()
                FEED_RESOLUTIONS.labels(feed=feed.value, source=name.value).inc()
                logger.debug(
                    "feed_resolved",
                    feed=feed.value,
                    provider=name.value,
                    latency_ms=result.latency_ms,
                )
                return result.data

            return await self._synthesize(feed)

    async def _synthesize(self, feed: Feed) -> Any:
        if self._synth is None or not self._synth.supports(feed):
            logger.error("feed_exhausted", feed=feed.value)
            raise FeedFetchError(feed)
        data = await self._synth.render(feed)
        FEED_RESOLUTIONS.labels(feed=feed.value, source=SYNTHETIC_SOURCE).inc()
        logger.info("feed_synthesized", feed=feed.value)
        return data

    # ── Convenience accessors ───────────────────────────────────────────
    async def get_live_match(self) -> MatchSnapshot:
        return await self.resolve(Feed.LIVE_MATCH)

    async def get_commentary(self) -> list[CommentaryEntry]:
        return await self.resolve(Feed.COMMENTARY)

    async def get_match_stats(self) -> MatchStatisticsBundle:
        return await self.resolve(Feed.MATCH_STATS)

    async def get_live_chat(self) -> list[ChatMessage]:
        return await self.resolve(Feed.LIVE_CHAT)

    async def get_current_matches(self) -> list[CurrentMatch]:
        return await self.resolve(Feed.CURRENT_MATCHES)

    def provider_status(self) -> dict[str, dict[str, Any]]:
        """Enabled flag and breaker stats per provider, for the health endpoint."""
        return {
            name.value: {"enabled": adapter.enabled, **self._breakers[name].stats}
            for name, adapter in self._adapters.items()
        }
