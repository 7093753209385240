"""
Static broadcaster catalog.
Current programs are anchored to the moment the catalog is built.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from shared.models.domain import ChannelDescriptor, CurrentProgram, StreamQuality, utcnow
from shared.models.enums import ChannelCategory, ChannelCountry, Resolution

LOGO_BASE_URL = "https://logos.livecrease.app"


def _quality(*tiers: tuple[Resolution, int, str]) -> list[StreamQuality]:
    return [StreamQuality(resolution=r, bitrate=b, codec=c) for r, b, c in tiers]


def _program(now: datetime, title: str, description: str, hours: int, category: str = "Cricket") -> CurrentProgram:
    return CurrentProgram(
        title=title,
        description=description,
        start_time=now,
        end_time=now + timedelta(hours=hours),
        is_live=True,
        category=category,
    )


def default_channels(now: Optional[datetime] = None) -> list[ChannelDescriptor]:
    now = now or utcnow()
    return [
        ChannelDescriptor(
            id="star-sports-1",
            name="Star Sports 1 HD",
            description="Official India cricket broadcaster",
            category=ChannelCategory.CRICKET,
            country=ChannelCountry.INDIA,
            logo=f"{LOGO_BASE_URL}/star-sports-1.png",
            stream_url="https://jiocinema.com/sports/cricket/live",
            backup_stream_url="https://www.hotstar.com/in/sports/cricket",
            quality=_quality(
                (Resolution.FHD_1080P, 8000, "h264"),
                (Resolution.HD_720P, 4000, "h264"),
                (Resolution.SD_480P, 2000, "h264"),
            ),
            languages=["Hindi", "English"],
            current_program=_program(now, "India vs Pakistan LIVE", "T20 International Cricket Match", 4),
            viewer_count=2_500_000,
            tags=["cricket", "live", "india", "pakistan", "official"],
        ),
        ChannelDescriptor(
            id="ptv-sports",
            name="PTV Sports HD",
            description="Pakistan national sports broadcaster",
            category=ChannelCategory.CRICKET,
            country=ChannelCountry.PAKISTAN,
            logo=f"{LOGO_BASE_URL}/ptv-sports.png",
            stream_url="https://www.ptvsports.tv/live",
            quality=_quality(
                (Resolution.FHD_1080P, 7000, "h264"),
                (Resolution.HD_720P, 3500, "h264"),
            ),
            languages=["Urdu", "English"],
            current_program=_program(now, "Pakistan vs India LIVE", "T20 International Cricket Match", 4),
            viewer_count=1_800_000,
            tags=["cricket", "live", "pakistan", "india", "official"],
        ),
        ChannelDescriptor(
            id="sky-sports-cricket",
            name="Sky Sports Cricket",
            description="UK premium cricket coverage",
            category=ChannelCategory.CRICKET,
            country=ChannelCountry.GLOBAL,
            logo=f"{LOGO_BASE_URL}/sky-sports-cricket.png",
            stream_url="https://www.skysports.com/watch/live-cricket",
            quality=_quality(
                (Resolution.UHD_4K, 15000, "h265"),
                (Resolution.FHD_1080P, 8000, "h264"),
                (Resolution.HD_720P, 4000, "h264"),
            ),
            languages=["English"],
            current_program=_program(now, "India vs Pakistan LIVE", "T20 International - Premium Coverage", 4),
            viewer_count=950_000,
            tags=["cricket", "live", "premium", "4k", "english"],
        ),
        ChannelDescriptor(
            id="willow-tv",
            name="Willow TV HD",
            description="Dedicated cricket channel for diaspora",
            category=ChannelCategory.CRICKET,
            country=ChannelCountry.GLOBAL,
            logo=f"{LOGO_BASE_URL}/willow-tv.png",
            stream_url="https://www.willow.tv/live",
            quality=_quality(
                (Resolution.FHD_1080P, 6000, "h264"),
                (Resolution.HD_720P, 3000, "h264"),
            ),
            languages=["English", "Hindi"],
            current_program=_program(now, "IND vs PAK T20 LIVE", "Complete match coverage with expert commentary", 4),
            viewer_count=680_000,
            tags=["cricket", "live", "diaspora", "subscription"],
        ),
        ChannelDescriptor(
            id="sony-liv",
            name="Sony LIV Sports",
            description="Sony's premium sports streaming",
            category=ChannelCategory.SPORTS,
            country=ChannelCountry.INDIA,
            logo=f"{LOGO_BASE_URL}/sony-liv.png",
            stream_url="https://www.sonyliv.com/sports/cricket",
            quality=_quality(
                (Resolution.FHD_1080P, 8000, "h264"),
                (Resolution.HD_720P, 4000, "h264"),
            ),
            languages=["Hindi", "English", "Tamil", "Telugu"],
            current_program=_program(now, "Cricket LIVE - Multiple Matches", "Premium cricket coverage", 6, "Sports"),
            viewer_count=1_200_000,
            tags=["sports", "cricket", "premium", "multilingual"],
        ),
        ChannelDescriptor(
            id="youtube-cricket",
            name="Cricket Official YouTube",
            description="Free official cricket streams",
            category=ChannelCategory.CRICKET,
            country=ChannelCountry.GLOBAL,
            logo=f"{LOGO_BASE_URL}/youtube-cricket.png",
            stream_url="https://www.youtube.com/c/cricket/live",
            quality=_quality(
                (Resolution.FHD_1080P, 5000, "h264"),
                (Resolution.HD_720P, 2500, "h264"),
                (Resolution.SD_480P, 1000, "h264"),
            ),
            languages=["English"],
            current_program=_program(now, "IND vs PAK Highlights & Live", "Free cricket content and live streams", 8),
            viewer_count=3_200_000,
            tags=["cricket", "free", "highlights", "youtube"],
        ),
    ]


DEFAULT_CHANNELS: list[ChannelDescriptor] = default_channels()
