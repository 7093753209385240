"""Domain enumerations for the Live Crease platform."""
from __future__ import annotations

from enum import Enum


class MatchStatus(str, Enum):
    UPCOMING = "upcoming"
    LIVE = "live"
    COMPLETED = "completed"

    @property
    def is_live(self) -> bool:
        return self == MatchStatus.LIVE


class PlayerRole(str, Enum):
    BATSMAN = "batsman"
    BOWLER = "bowler"
    ALLROUNDER = "allrounder"
    WICKETKEEPER = "wicketkeeper"


class TossDecision(str, Enum):
    BAT = "bat"
    BOWL = "bowl"


class ChatOrigin(str, Enum):
    INDIA = "in"
    PAKISTAN = "pk"
    OTHER = "other"


class Feed(str, Enum):
    """Independently resolved logical data streams."""
    LIVE_MATCH = "live_match"
    COMMENTARY = "commentary"
    MATCH_STATS = "match_stats"
    LIVE_CHAT = "live_chat"
    CURRENT_MATCHES = "current_matches"


class ProviderName(str, Enum):
    CRICAPI = "cricapi"
    ESPNCRICINFO = "espncricinfo"
    SPORTMONKS = "sportmonks"


class PollState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class OrchestratorPhase(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"


class ChannelCategory(str, Enum):
    CRICKET = "cricket"
    SPORTS = "sports"
    NEWS = "news"
    ENTERTAINMENT = "entertainment"


class ChannelCountry(str, Enum):
    INDIA = "in"
    PAKISTAN = "pk"
    GLOBAL = "global"


class Resolution(str, Enum):
    UHD_4K = "4K"
    FHD_1080P = "1080p"
    HD_720P = "720p"
    SD_480P = "480p"
    SD_360P = "360p"


class MatchFormat(str, Enum):
    TEST = "Test"
    ODI = "ODI"
    T20 = "T20"
    T10 = "T10"
