"""
Abstract base class for all cricket data providers.
Defines the contract that every provider adapter must implement.
"""
from __future__ import annotations

import abc
import time
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from shared.models.enums import Feed, ProviderName
from shared.utils.http_client import ProviderHTTPClient
from shared.utils.logging import get_logger

logger = get_logger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class ProviderError(Exception):
    """Transport or status failure talking to one provider."""

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(f"{provider}: {message}")


class PayloadError(ProviderError):
    """Provider answered, but the payload is unparseable or not usable."""


class FeedFetchError(Exception):
    """Every provider and the synthesizer path for a feed are exhausted."""

    def __init__(self, feed: Feed, message: str | None = None) -> None:
        self.feed = feed
        super().__init__(message or f"Failed to fetch {feed.value.replace('_', ' ')}")


class ProviderResult:
    """Container for one provider attempt with metadata."""

    def __init__(
        self,
        provider: ProviderName,
        feed: Feed,
        success: bool,
        latency_ms: float,
        data: Any = None,
        error: Optional[str] = None,
    ) -> None:
        self.provider = provider
        self.feed = feed
        self.success = success
        self.latency_ms = latency_ms
        self.data = data
        self.error = error


def validate_payload(provider: str, schema: type[SchemaT], raw: Any) -> SchemaT:
    """Validate a raw payload at the adapter boundary."""
    try:
        return schema.model_validate(raw)
    except ValidationError as exc:
        raise PayloadError(provider, f"schema mismatch: {exc.error_count()} errors") from exc


class ProviderAdapter(abc.ABC):
    """
    Abstract base class for cricket data providers.

    Each adapter issues its own requests and normalizes the provider's
    idiosyncratic payloads into canonical domain models. The base class
    handles HTTP lifecycle, timing and the feed capability check.
    """

    requires_api_key: bool = False

    def __init__(
        self,
        name: ProviderName,
        http_client: ProviderHTTPClient,
        feeds: set[Feed],
        tracked_teams: list[str],
        api_key: str = "",
    ) -> None:
        self._name = name
        self._http = http_client
        self._feeds = feeds
        self._tracked = [t.lower() for t in tracked_teams]
        self._api_key = api_key

    @property
    def name(self) -> ProviderName:
        return self._name

    @property
    def feeds(self) -> set[Feed]:
        return self._feeds

    @property
    def enabled(self) -> bool:
        """A provider without its API key is treated as always failing."""
        return bool(self._api_key) or not self.requires_api_key

    def supports(self, feed: Feed) -> bool:
        return feed in self._feeds

    def available_for(self, feed: Feed) -> bool:
        """Whether a fetch of `feed` can be attempted at all with the current configuration."""
        return self.supports(feed) and self.enabled

    async def start(self) -> None:
        """Initialize the provider HTTP client."""
        await self._http.start()

    async def close(self) -> None:
        """Shutdown the provider HTTP client."""
        await self._http.close()

    async def fetch(self, feed: Feed) -> ProviderResult:
        """
        Fetch and normalize one feed.

        Raises ProviderError/PayloadError or httpx errors; the resolver is
        responsible for recovering from them.
        """
        if not self.supports(feed):
            raise ProviderError(self._name.value, f"feed {feed.value} not supported")
        if not self.enabled:
            raise ProviderError(self._name.value, "API key not configured")

        start = time.perf_counter()
        raw = await self.fetch_raw(feed)
        data = self.normalize(feed, raw)
        return ProviderResult(
            provider=self._name,
            feed=feed,
            success=True,
            latency_ms=round((time.perf_counter() - start) * 1000, 2),
            data=data,
        )

    async def _get_json(self, path: str, feed: Feed, params: dict[str, Any] | None = None) -> Any:
        if not self._http.started:
            await self._http.start()
        resp = await self._http.get(path, params=params, feed=feed.value)
        try:
            return resp.json()
        except ValueError as exc:
            raise PayloadError(self._name.value, "response is not JSON") from exc

    # ── Abstract methods (each provider implements these) ───────────────
    @abc.abstractmethod
    async def fetch_raw(self, feed: Feed) -> Any:
        """Issue the provider-specific request for a feed and return parsed JSON."""
        ...

    @abc.abstractmethod
    def normalize(self, feed: Feed, raw: Any) -> Any:
        """Validate a raw payload and convert it to the feed's canonical entity."""
        ...
