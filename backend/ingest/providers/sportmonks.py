"""
SportMonks cricket provider adapter.
Fetches livescores with team, run and venue includes. Requires
LC_SPORTMONKS_API_KEY; without it the adapter is skipped.
"""
from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from shared.models.domain import InningsScore, MatchSnapshot
from shared.models.enums import Feed, MatchStatus, ProviderName, TossDecision
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

LIVE_STATUSES = {"1st innings", "2nd innings", "innings break", "int.", "delayed"}
DONE_STATUSES = {"finished", "aban.", "cancl."}


# ── Raw payload schema ──────────────────────────────────────────────────
class _Raw(BaseModel):
    model_config = ConfigDict(extra="ignore")


class SMTeam(_Raw):
    id: Union[int, str]
    name: str = ""
    code: Optional[str] = None


class SMTeamInclude(_Raw):
    data: Optional[SMTeam] = None


class SMRun(_Raw):
    team_id: Union[int, str]
    inning: int = 1
    score: Optional[int] = None
    wickets: Optional[int] = None
    overs: Optional[float] = None


class SMRunsInclude(_Raw):
    data: list[SMRun] = Field(default_factory=list)


class SMVenue(_Raw):
    name: Optional[str] = None


class SMVenueInclude(_Raw):
    data: Optional[SMVenue] = None


class SMFixture(_Raw):
    id: Union[int, str]
    status: str = ""
    type: Optional[str] = None
    starting_at: Optional[str] = None
    toss_won_team_id: Optional[Union[int, str]] = None
    elected: Optional[str] = None
    localteam: SMTeamInclude = Field(default_factory=SMTeamInclude)
    visitorteam: SMTeamInclude = Field(default_factory=SMTeamInclude)
    runs: SMRunsInclude = Field(default_factory=SMRunsInclude)
    venue: SMVenueInclude = Field(default_factory=SMVenueInclude)


class SMLivescoresResponse(_Raw):
    data: list[SMFixture] = Field(default_factory=list)


def _status(raw: str) -> MatchStatus:
    value = raw.strip().lower()
    if value in LIVE_STATUSES:
        return MatchStatus.LIVE
    if value in DONE_STATUSES:
        return MatchStatus.COMPLETED
    return MatchStatus.UPCOMING


class SportMonksProvider(ProviderAdapter):
    """SportMonks v2 `livescores` adapter for the live match feed."""

    requires_api_key = True

    def __init__(
        self,
        http_client: ProviderHTTPClient,
        api_key: str,
        tracked_teams: list[str],
    ) -> None:
        super().__init__(
            name=ProviderName.SPORTMONKS,
            http_client=http_client,
            feeds={Feed.LIVE_MATCH},
            tracked_teams=tracked_teams,
            api_key=api_key,
        )

    async def fetch_raw(self, feed: Feed) -> Any:
        return await self._get_json(
            "/livescores",
            feed=feed,
            params={"api_token": self._api_key, "include": "localteam,visitorteam,runs,venue"},
        )

    def normalize(self, feed: Feed, raw: Any) -> Any:
        payload = validate_payload(self._name.value, SMLivescoresResponse, raw)
        fixture = next(
            (
                f for f in payload.data
                if references_tracked(
                    [
                        f.localteam.data.name if f.localteam.data else None,
                        f.visitorteam.data.name if f.visitorteam.data else None,
                    ],
                    self._tracked,
                )
            ),
            None,
        )
        if fixture is None:
            raise PayloadError(self._name.value, "tracked match not found")
        return self._to_snapshot(fixture)

    def _to_snapshot(self, fixture: SMFixture) -> MatchSnapshot:
        home = fixture.localteam.data
        away = fixture.visitorteam.data
        team1 = build_team(home.name if home else None, "team1", str(home.id) if home else None, home.code if home else None)
        team2 = build_team(away.name if away else None, "team2", str(away.id) if away else None, away.code if away else None)

        runs_by_team: dict[str, SMRun] = {}
        for run in sorted(fixture.runs.data, key=lambda r: r.inning):
            runs_by_team.setdefault(str(run.team_id), run)

        def score_for(team_key: str) -> InningsScore:
            run = runs_by_team.get(team_key)
            return build_score(run.score, run.wickets, run.overs) if run else InningsScore()

        # The side that batted first owns innings 1.
        ordered = sorted(fixture.runs.data, key=lambda r: r.inning)
        first_batting = str(ordered[0].team_id) if ordered else team1.id
        if first_batting == team2.id:
            team1, team2 = team2, team1
        score1 = score_for(team1.id)
        score2 = score_for(team2.id)

        toss_winner = None
        if fixture.toss_won_team_id is not None:
            toss_winner = next(
                (t.name for t in (team1, team2) if t.id == str(fixture.toss_won_team_id)),
                None,
            )
        toss_decision = None
        if fixture.elected:
            toss_decision = TossDecision.BAT if fixture.elected.lower().startswith("bat") else TossDecision.BOWL

        return MatchSnapshot(
            id=str(fixture.id),
            status=_status(fixture.status),
            team1=team1,
            team2=team2,
            score1=score1,
            score2=score2,
            current_innings=2 if (score2.runs or score2.total_overs) else 1,
            toss_winner=toss_winner,
            toss_decision=toss_decision,
            venue=(fixture.venue.data.name if fixture.venue.data else None) or "TBD",
            match_type=fixture.type or "T20I",
            start_time=parse_start_time(fixture.starting_at),
        )
