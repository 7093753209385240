"""
ESPN Cricinfo provider adapter.
Fetches data from the public hs-consumer API and normalizes it to canonical
domain models. Commentary and scorecard endpoints need the series and match
ids (LC_ESPNCRICINFO_SERIES_ID / LC_ESPNCRICINFO_MATCH_ID).
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from shared.models.domain import (
    CommentaryEntry,
    CurrentMatch,
    InningsScore,
    MatchSnapshot,
    MatchStatisticsBundle,
    Partnership,
    PowerplayPhase,
    WicketFall,
    utcnow,
)
from shared.models.enums import Feed, MatchFormat, MatchStatus, ProviderName
from shared.utils.http_client import ProviderHTTPClient
from shared.utils.logging import get_logger

from ingest.normalization.normalizer import (
    ESPN_STAGES,
    ESPN_STATUS_TYPES,
    build_score,
    build_team,
    newest_first,
    parse_start_time,
    references_tracked,
)
from ingest.providers.base import PayloadError, ProviderAdapter, ProviderError, validate_payload

logger = get_logger(__name__)

ESPN_FORMATS: dict[str, MatchFormat] = {
    "test": MatchFormat.TEST,
    "odi": MatchFormat.ODI,
    "t20i": MatchFormat.T20,
    "t20": MatchFormat.T20,
    "t10": MatchFormat.T10,
}


# ── Raw payload schema ──────────────────────────────────────────────────
class _Raw(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ESPNInnings(_Raw):
    runs: Optional[int] = None
    wickets: Optional[int] = None
    overs: Optional[float] = None


class ESPNTeamScore(_Raw):
    innings: list[ESPNInnings] = Field(default_factory=list)


class ESPNTeamRef(_Raw):
    id: Optional[Union[int, str]] = None
    name: Optional[str] = None
    abbreviation: Optional[str] = None


class ESPNTeamEntry(_Raw):
    team: ESPNTeamRef = Field(default_factory=ESPNTeamRef)
    score: Optional[ESPNTeamScore] = None


class ESPNStatus(_Raw):
    type: Optional[int] = None
    description: str = ""


class ESPNVenue(_Raw):
    full_name: Optional[str] = Field(default=None, alias="fullName")


class ESPNMatch(_Raw):
    object_id: Union[int, str] = Field(alias="objectId")
    title: str = ""
    format: Optional[str] = None
    teams: list[ESPNTeamEntry] = Field(default_factory=list)
    status: Optional[Union[ESPNStatus, str]] = None
    stage: Optional[str] = None
    venue: Optional[ESPNVenue] = None
    start_date: Optional[str] = Field(default=None, alias="startDate")


class ESPNMatchesResponse(_Raw):
    matches: list[ESPNMatch] = Field(default_factory=list)


class ESPNCommentText(_Raw):
    html: str = ""


class ESPNComment(_Raw):
    id: Union[int, str]
    over_number: int = Field(alias="overNumber")
    ball_number: int = Field(alias="ballNumber")
    total_runs: int = Field(default=0, alias="totalRuns")
    is_four: bool = Field(default=False, alias="isFour")
    is_six: bool = Field(default=False, alias="isSix")
    is_wicket: bool = Field(default=False, alias="isWicket")
    title: str = ""
    comment_text_items: list[ESPNCommentText] = Field(default_factory=list, alias="commentTextItems")
    batsman_name: Optional[str] = Field(default=None, alias="batsmanName")
    timestamp: Optional[Union[int, str]] = None


class ESPNCommentsResponse(_Raw):
    comments: list[ESPNComment]


class ESPNPlayerRef(_Raw):
    long_name: str = Field(default="", alias="longName")


class ESPNPartnership(_Raw):
    player1: ESPNPlayerRef
    player2: ESPNPlayerRef
    runs: int = 0
    balls: int = 0
    is_live: bool = Field(default=False, alias="isLive")


class ESPNDismissalText(_Raw):
    long: str = ""


class ESPNWicket(_Raw):
    fow_order: int = Field(alias="fowOrder")
    fow_runs: int = Field(default=0, alias="fowRuns")
    fow_overs: float = Field(default=0.0, alias="fowOvers")
    player: ESPNPlayerRef = Field(default_factory=ESPNPlayerRef)
    dismissal_text: ESPNDismissalText = Field(default_factory=ESPNDismissalText, alias="dismissalText")


class ESPNPowerPlay(_Raw):
    title: str = "Powerplay"
    start_over: int = Field(alias="startOver")
    end_over: int = Field(alias="endOver")
    runs: int = 0
    wickets: int = 0


class ESPNScorecardInnings(_Raw):
    inning_partnerships: list[ESPNPartnership] = Field(default_factory=list, alias="inningPartnerships")
    inning_wickets: list[ESPNWicket] = Field(default_factory=list, alias="inningWickets")
    inning_power_plays: list[ESPNPowerPlay] = Field(default_factory=list, alias="inningPowerPlays")


class ESPNScorecardContent(_Raw):
    innings: list[ESPNScorecardInnings] = Field(default_factory=list)


class ESPNScorecardResponse(_Raw):
    content: ESPNScorecardContent


# ── Mapping helpers ─────────────────────────────────────────────────────
def _parse_espn_status(match: ESPNMatch) -> MatchStatus:
    """Map ESPN status codes (numeric type or stage string) to MatchStatus."""
    if isinstance(match.status, ESPNStatus) and match.status.type is not None:
        return ESPN_STATUS_TYPES.get(match.status.type, MatchStatus.UPCOMING)
    stage = (match.stage or (match.status if isinstance(match.status, str) else "") or "").lower()
    return ESPN_STAGES.get(stage, MatchStatus.UPCOMING)


def _first_innings(entry: Optional[ESPNTeamEntry]) -> InningsScore:
    if entry is None or entry.score is None or not entry.score.innings:
        return InningsScore()
    inn = entry.score.innings[0]
    return build_score(inn.runs, inn.wickets, inn.overs)


def _comment_player(comment: ESPNComment) -> Optional[str]:
    if comment.batsman_name:
        return comment.batsman_name
    # Titles read "Bowler to Batter"
    if " to " in comment.title:
        return comment.title.split(" to ", 1)[1].strip() or None
    return None


def _comment_timestamp(value: Optional[Union[int, str]]) -> datetime:
    if isinstance(value, int):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return utcnow()
    return parse_start_time(value)


class ESPNCricinfoProvider(ProviderAdapter):
    """ESPN Cricinfo hs-consumer adapter."""

    def __init__(
        self,
        http_client: ProviderHTTPClient,
        tracked_teams: list[str],
        series_id: str = "",
        match_id: str = "",
    ) -> None:
        super().__init__(
            name=ProviderName.ESPNCRICINFO,
            http_client=http_client,
            feeds={Feed.LIVE_MATCH, Feed.CURRENT_MATCHES, Feed.COMMENTARY, Feed.MATCH_STATS},
            tracked_teams=tracked_teams,
        )
        self._series_id = series_id
        self._match_id = match_id

    def available_for(self, feed: Feed) -> bool:
        if feed in (Feed.COMMENTARY, Feed.MATCH_STATS) and not (self._series_id and self._match_id):
            return False
        return super().available_for(feed)

    def _match_params(self) -> dict[str, Any]:
        if not self._series_id or not self._match_id:
            raise ProviderError(self._name.value, "series/match id not configured")
        return {"seriesId": self._series_id, "matchId": self._match_id, "lang": "en"}

    async def fetch_raw(self, feed: Feed) -> Any:
        if feed == Feed.COMMENTARY:
            params = {**self._match_params(), "sortDirection": "ASC"}
            return await self._get_json("/match/comments", feed=feed, params=params)
        if feed == Feed.MATCH_STATS:
            return await self._get_json("/match/scorecard", feed=feed, params=self._match_params())
        return await self._get_json("/matches/current", feed=feed, params={"lang": "en"})

    def normalize(self, feed: Feed, raw: Any) -> Any:
        if feed == Feed.COMMENTARY:
            return self._normalize_commentary(raw)
        if feed == Feed.MATCH_STATS:
            return self._normalize_scorecard(raw)

        payload = validate_payload(self._name.value, ESPNMatchesResponse, raw)
        if not payload.matches:
            raise PayloadError(self._name.value, "no current matches")

        if feed == Feed.CURRENT_MATCHES:
            return [self._to_current_match(m) for m in payload.matches]

        match = next(
            (
                m for m in payload.matches
                if references_tracked([t.team.name for t in m.teams], self._tracked)
            ),
            None,
        )
        if match is None:
            raise PayloadError(self._name.value, "tracked match not found")
        return self._to_snapshot(match)

    # ── Live match / current matches ────────────────────────────────────
    def _to_snapshot(self, match: ESPNMatch) -> MatchSnapshot:
        entry1 = match.teams[0] if match.teams else None
        entry2 = match.teams[1] if len(match.teams) > 1 else None
        ref1 = entry1.team if entry1 else ESPNTeamRef()
        ref2 = entry2.team if entry2 else ESPNTeamRef()
        score1 = _first_innings(entry1)
        score2 = _first_innings(entry2)
        return MatchSnapshot(
            id=str(match.object_id),
            status=_parse_espn_status(match),
            team1=build_team(ref1.name, "team1", _str_id(ref1.id), ref1.abbreviation),
            team2=build_team(ref2.name, "team2", _str_id(ref2.id), ref2.abbreviation),
            score1=score1,
            score2=score2,
            current_innings=2 if (score2.runs or score2.total_overs) else 1,
            venue=(match.venue.full_name if match.venue else None) or "TBD",
            match_type=(match.format or "T20I"),
            start_time=parse_start_time(match.start_date),
        )

    def _to_current_match(self, match: ESPNMatch) -> CurrentMatch:
        name1 = match.teams[0].team.name if match.teams else None
        name2 = match.teams[1].team.name if len(match.teams) > 1 else None
        return CurrentMatch(
            id=str(match.object_id),
            title=match.title or f"{name1 or 'Team 1'} vs {name2 or 'Team 2'}",
            team1=name1 or "Team 1",
            team2=name2 or "Team 2",
            match_type=ESPN_FORMATS.get((match.format or "").lower(), MatchFormat.T20),
            venue=(match.venue.full_name if match.venue else None) or "TBD",
            start_time=parse_start_time(match.start_date),
            status=_parse_espn_status(match),
            official_stream="https://www.espncricinfo.com",
        )

    # ── Commentary ──────────────────────────────────────────────────────
    def _normalize_commentary(self, raw: Any) -> list[CommentaryEntry]:
        payload = validate_payload(self._name.value, ESPNCommentsResponse, raw)
        if not payload.comments:
            raise PayloadError(self._name.value, "no commentary")
        entries = [
            CommentaryEntry(
                id=str(c.id),
                over=c.over_number,
                ball=c.ball_number,
                runs=c.total_runs,
                text=" ".join(t.html for t in c.comment_text_items if t.html) or c.title or "",
                timestamp=_comment_timestamp(c.timestamp),
                is_wicket=c.is_wicket,
                is_boundary=c.is_four or c.is_six,
                player=_comment_player(c),
            )
            for c in payload.comments
        ]
        return newest_first(entries)

    # ── Scorecard ───────────────────────────────────────────────────────
    def _normalize_scorecard(self, raw: Any) -> MatchStatisticsBundle:
        payload = validate_payload(self._name.value, ESPNScorecardResponse, raw)
        if not payload.content.innings:
            raise PayloadError(self._name.value, "scorecard has no innings")
        current = payload.content.innings[-1]

        # A stale feed can flag several partnerships live; only the last one is.
        live_seen = False
        partnerships: list[Partnership] = []
        for p in reversed(current.inning_partnerships):
            active = p.is_live and not live_seen
            live_seen = live_seen or active
            partnerships.append(Partnership(
                player1=p.player1.long_name,
                player2=p.player2.long_name,
                runs=p.runs,
                balls=p.balls,
                is_active=active,
            ))
        partnerships.reverse()

        wickets = [
            WicketFall(
                wicket_number=w.fow_order,
                runs=w.fow_runs,
                overs=w.fow_overs,
                player=w.player.long_name,
                how_out=w.dismissal_text.long,
            )
            for w in current.inning_wickets
            if 1 <= w.fow_order <= 10
        ]

        powerplays = []
        for pp in current.inning_power_plays:
            span = max(pp.end_over - pp.start_over + 1, 1)
            powerplays.append(PowerplayPhase(
                phase=f"{pp.title} ({pp.start_over}-{pp.end_over})",
                overs=f"{pp.start_over}-{pp.end_over}",
                runs=pp.runs,
                wickets=pp.wickets,
                run_rate=round(pp.runs / span, 2),
            ))

        return MatchStatisticsBundle(
            partnerships=partnerships,
            fall_of_wickets=wickets,
            powerplays=powerplays,
        )


def _str_id(value: Optional[Union[int, str]]) -> Optional[str]:
    return str(value) if value is not None else None
