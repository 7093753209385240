"""
Channel catalog service.
Answers broadcaster lookups from the static catalog and decorates current
matches with the channels that carry them.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Union

from shared.models.domain import ChannelCategoryGroup, ChannelDescriptor, CurrentMatch, utcnow
from shared.models.enums import ChannelCategory, ChannelCountry
from shared.utils.logging import get_logger

from builder.timeline.synthetic import fallback_matches
from catalog.channels import DEFAULT_CHANNELS
from ingest.providers.base import FeedFetchError

if TYPE_CHECKING:
    from ingest.providers.registry import MultiSourceResolver

logger = get_logger(__name__)

GLOBAL_CHANNELS = ["sky-sports-cricket", "willow-tv", "youtube-cricket"]
TEAM_CHANNELS: dict[str, list[str]] = {
    "india": ["star-sports-1", "sony-liv"],
    "pakistan": ["ptv-sports"],
}


def streaming_channels_for(teams: list[str]) -> list[str]:
    """Channel ids carrying a match between `teams`; global channels always included."""
    lowered = [t.lower() for t in teams if t]
    channels: list[str] = []
    for fragment, ids in TEAM_CHANNELS.items():
        if any(fragment in name for name in lowered):
            channels.extend(ids)
    channels.extend(GLOBAL_CHANNELS)
    return channels


class ChannelCatalog:
    """Broadcaster catalog plus current-match listing backed by the resolver."""

    def __init__(
        self,
        resolver: Optional["MultiSourceResolver"] = None,
        channels: Optional[list[ChannelDescriptor]] = None,
    ) -> None:
        self._resolver = resolver
        self._channels = channels if channels is not None else list(DEFAULT_CHANNELS)

    @property
    def channels(self) -> list[ChannelDescriptor]:
        return list(self._channels)

    def get_live_channels(self) -> list[ChannelDescriptor]:
        return [c for c in self._channels if c.is_live]

    def get_channel_by_id(self, channel_id: str) -> Optional[ChannelDescriptor]:
        return next((c for c in self._channels if c.id == channel_id), None)

    def get_channels_by_category(self, category: Union[ChannelCategory, str]) -> list[ChannelDescriptor]:
        try:
            value = ChannelCategory(category)
        except ValueError:
            return []
        return [c for c in self._channels if c.category == value and c.is_live]

    def get_channels_by_country(self, country: Union[ChannelCountry, str]) -> list[ChannelDescriptor]:
        """Channels for a country, including global ones."""
        try:
            value = ChannelCountry(country)
        except ValueError:
            return []
        return [
            c for c in self._channels
            if c.country in (value, ChannelCountry.GLOBAL) and c.is_live
        ]

    def get_channel_categories(self) -> list[ChannelCategoryGroup]:
        return [
            ChannelCategoryGroup(
                id="cricket",
                name="Cricket Channels",
                description="Dedicated cricket broadcasting channels",
                icon="🏏",
                channels=self.get_channels_by_category(ChannelCategory.CRICKET),
            ),
            ChannelCategoryGroup(
                id="sports",
                name="Sports Networks",
                description="General sports channels with cricket coverage",
                icon="⚽",
                channels=self.get_channels_by_category(ChannelCategory.SPORTS),
            ),
            ChannelCategoryGroup(
                id="indian",
                name="Indian Channels",
                description="Indian broadcasting channels",
                icon="🇮🇳",
                channels=self.get_channels_by_country(ChannelCountry.INDIA),
            ),
            ChannelCategoryGroup(
                id="pakistani",
                name="Pakistani Channels",
                description="Pakistani broadcasting channels",
                icon="🇵🇰",
                channels=self.get_channels_by_country(ChannelCountry.PAKISTAN),
            ),
        ]

    def search_channels(self, query: str) -> list[ChannelDescriptor]:
        """Case-insensitive match on name, description or any tag; an empty query matches all."""
        needle = query.strip().lower()
        return [
            c for c in self._channels
            if needle in c.name.lower()
            or needle in c.description.lower()
            or any(needle in tag.lower() for tag in c.tags)
        ]

    async def get_current_matches(self) -> list[CurrentMatch]:
        """Current matches, each carrying the channels that broadcast it."""
        matches: list[CurrentMatch]
        if self._resolver is None:
            matches = fallback_matches(utcnow())
        else:
            try:
                matches = await self._resolver.get_current_matches()
            except FeedFetchError as exc:
                logger.warning("current_matches_fallback", error=str(exc))
                matches = fallback_matches(utcnow())

        return [
            m if m.streaming_channels
            else m.model_copy(update={"streaming_channels": streaming_channels_for([m.team1, m.team2])})
            for m in matches
        ]
