"""
CricAPI provider adapter.
Fetches current matches from cricapi.com and normalizes them to canonical
domain models. Requires LC_CRICAPI_API_KEY; without it the adapter is skipped.
"""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from shared.models.domain import CurrentMatch, InningsScore, MatchSnapshot
from shared.models.enums import Feed, MatchFormat, MatchStatus, ProviderName
from shared.utils.http_client import ProviderHTTPClient
from shared.utils.logging import get_logger

from ingest.normalization.normalizer import (
    build_score,
    build_team,
    parse_start_time,
    references_tracked,
)
from ingest.providers.base import PayloadError, ProviderAdapter, validate_payload

logger = get_logger(__name__)

MATCH_FORMATS: dict[str, MatchFormat] = {
    "test": MatchFormat.TEST,
    "odi": MatchFormat.ODI,
    "t20": MatchFormat.T20,
    "t20i": MatchFormat.T20,
    "t10": MatchFormat.T10,
}


# ── Raw payload schema ──────────────────────────────────────────────────
class _Raw(BaseModel):
    model_config = ConfigDict(extra="ignore")


class CricAPIScore(_Raw):
    r: Optional[int] = None
    w: Optional[int] = None
    o: Optional[float] = None
    inning: str = ""


class CricAPIMatch(_Raw):
    id: str
    name: str = ""
    match_type: Optional[str] = Field(default=None, alias="matchType")
    status: Optional[str] = None
    venue: Optional[str] = None
    date: Optional[str] = None
    date_time_gmt: Optional[str] = Field(default=None, alias="dateTimeGMT")
    teams: list[str] = Field(default_factory=list)
    score: list[CricAPIScore] = Field(default_factory=list)
    match_started: bool = Field(default=False, alias="matchStarted")
    match_ended: bool = Field(default=False, alias="matchEnded")


class CricAPIResponse(_Raw):
    status: str
    data: list[CricAPIMatch] = Field(default_factory=list)


def match_type_label(raw: Optional[str]) -> str:
    if not raw or raw.lower() in ("t20", "t20i"):
        return "T20I"
    return raw.upper() if raw.lower() != "test" else "Test"


def _status(match: CricAPIMatch) -> MatchStatus:
    if not match.match_started:
        return MatchStatus.UPCOMING
    return MatchStatus.COMPLETED if match.match_ended else MatchStatus.LIVE


def _team_scores(match: CricAPIMatch) -> tuple[InningsScore, InningsScore, int]:
    """Assign innings to teams by inning label, falling back to list position."""
    team1 = match.teams[0].lower() if match.teams else ""
    team2 = match.teams[1].lower() if len(match.teams) > 1 else ""
    by_team: dict[int, CricAPIScore] = {}
    for idx, entry in enumerate(match.score):
        label = entry.inning.lower()
        if team1 and team1 in label:
            by_team.setdefault(1, entry)
        elif team2 and team2 in label:
            by_team.setdefault(2, entry)
        elif idx < 2:
            by_team.setdefault(idx + 1, entry)

    s1 = by_team.get(1)
    s2 = by_team.get(2)
    score1 = build_score(s1.r, s1.w, s1.o) if s1 else InningsScore()
    score2 = build_score(s2.r, s2.w, s2.o) if s2 else InningsScore()
    current = 2 if s2 and (score2.runs or score2.total_overs) else 1
    return score1, score2, current


class CricAPIProvider(ProviderAdapter):
    """cricapi.com `currentMatches` adapter for live match and current matches."""

    requires_api_key = True

    def __init__(
        self,
        http_client: ProviderHTTPClient,
        api_key: str,
        tracked_teams: list[str],
    ) -> None:
        super().__init__(
            name=ProviderName.CRICAPI,
            http_client=http_client,
            feeds={Feed.LIVE_MATCH, Feed.CURRENT_MATCHES},
            tracked_teams=tracked_teams,
            api_key=api_key,
        )

    async def fetch_raw(self, feed: Feed) -> Any:
        return await self._get_json(
            "/currentMatches",
            feed=feed,
            params={"apikey": self._api_key, "offset": 0},
        )

    def normalize(self, feed: Feed, raw: Any) -> Any:
        payload = validate_payload(self._name.value, CricAPIResponse, raw)
        if payload.status != "success":
            raise PayloadError(self._name.value, f"status={payload.status}")
        if not payload.data:
            raise PayloadError(self._name.value, "no current matches")

        if feed == Feed.CURRENT_MATCHES:
            matches = [self._to_current_match(m) for m in payload.data if len(m.teams) >= 2]
            if not matches:
                raise PayloadError(self._name.value, "no two-team matches")
            return matches

        match = next(
            (m for m in payload.data if references_tracked(m.teams, self._tracked)),
            None,
        )
        if match is None:
            raise PayloadError(self._name.value, "tracked match not found")
        return self._to_snapshot(match)

    def _to_snapshot(self, match: CricAPIMatch) -> MatchSnapshot:
        name1 = match.teams[0] if match.teams else None
        name2 = match.teams[1] if len(match.teams) > 1 else None
        score1, score2, current = _team_scores(match)
        return MatchSnapshot(
            id=match.id,
            status=_status(match),
            team1=build_team(name1, "team1"),
            team2=build_team(name2, "team2"),
            score1=score1,
            score2=score2,
            current_innings=current,
            venue=match.venue or "TBD",
            match_type=match_type_label(match.match_type),
            start_time=parse_start_time(match.date_time_gmt or match.date),
        )

    def _to_current_match(self, match: CricAPIMatch) -> CurrentMatch:
        return CurrentMatch(
            id=match.id,
            title=match.name or f"{match.teams[0]} vs {match.teams[1]}",
            team1=match.teams[0],
            team2=match.teams[1],
            match_type=MATCH_FORMATS.get((match.match_type or "").lower(), MatchFormat.T20),
            venue=match.venue or "TBD",
            start_time=parse_start_time(match.date_time_gmt or match.date),
            status=_status(match),
        )
