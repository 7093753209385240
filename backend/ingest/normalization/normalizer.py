"""
Normalization helpers shared by the provider adapters.
Supplies defaults for every optional upstream field so canonical entities
are always fully populated, whichever provider produced them.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from shared.models.domain import (
    BattingFigures,
    BowlingFigures,
    CommentaryEntry,
    InningsScore,
    PlayerState,
    TeamState,
    utcnow,
)
from shared.models.enums import MatchStatus, PlayerRole

# Short codes for well-known teams; anything else gets its first three letters.
TEAM_SHORT_NAMES: dict[str, str] = {
    "india": "IND",
    "pakistan": "PAK",
    "england": "ENG",
    "australia": "AUS",
    "south africa": "SA",
    "new zealand": "NZ",
    "west indies": "WI",
    "sri lanka": "SL",
    "bangladesh": "BAN",
    "afghanistan": "AFG",
}

FLAG_BASE_URL = "https://flags.livecrease.app"

# (id, name, role) per squad fragment; used when a provider ships no roster.
KNOWN_SQUADS: dict[str, list[tuple[str, str, PlayerRole]]] = {
    "india": [
        ("kohli", "Virat Kohli", PlayerRole.BATSMAN),
        ("rohit", "Rohit Sharma", PlayerRole.BATSMAN),
        ("bumrah", "Jasprit Bumrah", PlayerRole.BOWLER),
    ],
    "pakistan": [
        ("babar", "Babar Azam", PlayerRole.BATSMAN),
        ("shaheen", "Shaheen Afridi", PlayerRole.BOWLER),
    ],
}

# ESPN Cricinfo numeric status types
ESPN_STATUS_TYPES: dict[int, MatchStatus] = {
    3: MatchStatus.LIVE,
    4: MatchStatus.COMPLETED,
}

ESPN_STAGES: dict[str, MatchStatus] = {
    "running": MatchStatus.LIVE,
    "finished": MatchStatus.COMPLETED,
    "scheduled": MatchStatus.UPCOMING,
}


def team_short_name(name: Optional[str]) -> str:
    if not name or not name.strip():
        return "TBD"
    known = TEAM_SHORT_NAMES.get(name.strip().lower())
    return known or name.strip()[:3].upper()


def team_id(name: Optional[str], fallback: str) -> str:
    if not name or not name.strip():
        return fallback
    return "-".join(name.strip().lower().split())


def team_flag(name: Optional[str]) -> str:
    return f"{FLAG_BASE_URL}/{team_id(name, 'unknown')}.png"


def references_tracked(names: list[Optional[str]], tracked: list[str]) -> bool:
    """True if any team name textually references a tracked team fragment."""
    lowered = [n.lower() for n in names if n]
    return any(t in n for n in lowered for t in tracked)


def newest_first(entries: list[CommentaryEntry]) -> list[CommentaryEntry]:
    """Order commentary newest ball first; ties keep the latest-received first."""
    return sorted(reversed(entries), key=lambda e: (e.over, e.ball), reverse=True)


def default_roster(team_name: Optional[str]) -> list[PlayerState]:
    """Known squad with empty figures, or an empty roster for unknown teams."""
    lowered = (team_name or "").lower()
    for fragment, squad in KNOWN_SQUADS.items():
        if fragment in lowered:
            return [_blank_player(pid, name, role) for pid, name, role in squad]
    return []


def _blank_player(pid: str, name: str, role: PlayerRole) -> PlayerState:
    batting = None
    bowling = None
    if role in (PlayerRole.BATSMAN, PlayerRole.ALLROUNDER, PlayerRole.WICKETKEEPER):
        batting = BattingFigures.build(runs=0, balls=0)
    if role in (PlayerRole.BOWLER, PlayerRole.ALLROUNDER):
        bowling = BowlingFigures.build(balls=0, runs=0)
    return PlayerState(id=pid, name=name, role=role, batting=batting, bowling=bowling)


def build_team(
    name: Optional[str],
    fallback_id: str,
    provider_id: Optional[str] = None,
    short_name: Optional[str] = None,
) -> TeamState:
    """Canonical team with generated id, short code, flag and roster when missing."""
    display = name.strip() if name and name.strip() else f"Team {fallback_id[-1]}"
    return TeamState(
        id=provider_id or team_id(name, fallback_id),
        name=display,
        short_name=short_name or team_short_name(name),
        flag=team_flag(name),
        players=default_roster(name),
    )


def build_score(runs: Any = None, wickets: Any = None, overs: Any = None) -> InningsScore:
    """Innings score from loosely typed provider values; missing parts are zero."""
    return InningsScore.from_overs_notation(
        runs=safe_int(runs) or 0,
        wickets=safe_int(wickets) or 0,
        overs=safe_float(overs) or 0.0,
    )


def parse_start_time(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            pass
    return utcnow()


def safe_int(val: Any) -> int | None:
    if val is None or val == "":
        return None
    try:
        return int(float(val))
    except (ValueError, TypeError):
        return None


def safe_float(val: Any) -> float | None:
    if val is None or val == "":
        return None
    try:
        return float(val)
    except (ValueError, TypeError):
        return None
