"""
Pydantic v2 domain models shared across the Live Crease services.
These are the canonical provider-agnostic representations. Every model is
frozen: a fetch replaces entities wholesale, it never patches them.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from shared.models.enums import (
    ChannelCategory,
    ChannelCountry,
    ChatOrigin,
    MatchFormat,
    MatchStatus,
    OrchestratorPhase,
    PlayerRole,
    Resolution,
    TossDecision,
)

BALLS_PER_OVER = 6
CHAT_MESSAGE_MAX_LEN = 200


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def overs_notation(balls: int) -> float:
    """Cricket overs notation for a ball count: 20 balls -> 3.2."""
    return round(balls // BALLS_PER_OVER + (balls % BALLS_PER_OVER) / 10, 1)


# ── Base ────────────────────────────────────────────────────────────────
class DomainModel(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
        frozen=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys for the boundary surface."""
        return self.model_dump(mode="json", by_alias=True)


# ── Player figures ──────────────────────────────────────────────────────
class BattingFigures(DomainModel):
    runs: int = Field(default=0, ge=0)
    balls: int = Field(default=0, ge=0)
    fours: int = Field(default=0, ge=0)
    sixes: int = Field(default=0, ge=0)
    strike_rate: float = 0.0
    not_out: bool = True

    @classmethod
    def build(cls, runs: int, balls: int, fours: int = 0, sixes: int = 0, not_out: bool = True) -> "BattingFigures":
        return cls(
            runs=runs,
            balls=balls,
            fours=fours,
            sixes=sixes,
            strike_rate=round(runs / balls * 100, 2) if balls else 0.0,
            not_out=not_out,
        )

    def with_delivery(self, runs: int) -> "BattingFigures":
        return BattingFigures.build(
            runs=self.runs + runs,
            balls=self.balls + 1,
            fours=self.fours + (1 if runs == 4 else 0),
            sixes=self.sixes + (1 if runs == 6 else 0),
            not_out=self.not_out,
        )


class BowlingFigures(DomainModel):
    overs: float = 0.0
    maidens: int = Field(default=0, ge=0)
    runs: int = Field(default=0, ge=0)
    wickets: int = Field(default=0, ge=0)
    economy: float = 0.0
    balls: int = Field(default=0, ge=0)

    @classmethod
    def build(cls, balls: int, runs: int, wickets: int = 0, maidens: int = 0) -> "BowlingFigures":
        return cls(
            overs=overs_notation(balls),
            maidens=maidens,
            runs=runs,
            wickets=wickets,
            economy=round(runs / (balls / BALLS_PER_OVER), 2) if balls else 0.0,
            balls=balls,
        )

    def with_delivery(self, runs: int) -> "BowlingFigures":
        return BowlingFigures.build(
            balls=self.balls + 1,
            runs=self.runs + runs,
            wickets=self.wickets,
            maidens=self.maidens,
        )


class PlayerState(DomainModel):
    id: str
    name: str
    role: PlayerRole
    is_on_field: bool = False
    batting: Optional[BattingFigures] = None
    bowling: Optional[BowlingFigures] = None


class TeamState(DomainModel):
    id: str
    name: str
    short_name: str
    flag: str = ""
    players: list[PlayerState] = Field(default_factory=list)


# ── Score ───────────────────────────────────────────────────────────────
class InningsScore(DomainModel):
    runs: int = Field(default=0, ge=0)
    wickets: int = Field(default=0, ge=0, le=10)
    overs: int = Field(default=0, ge=0)
    balls: int = Field(default=0, ge=0, lt=BALLS_PER_OVER)
    run_rate: float = 0.0
    required_run_rate: Optional[float] = None

    @classmethod
    def from_overs_notation(cls, runs: int, wickets: int, overs: float) -> "InningsScore":
        """Build from provider overs like 8.2 (8 overs, 2 balls)."""
        whole = int(overs)
        balls = int(round((overs - whole) * 10))
        if balls >= BALLS_PER_OVER:
            whole, balls = whole + balls // BALLS_PER_OVER, balls % BALLS_PER_OVER
        score = cls(runs=runs, wickets=min(wickets, 10), overs=whole, balls=balls)
        return score.model_copy(update={"run_rate": score.computed_run_rate()})

    @property
    def total_overs(self) -> float:
        return self.overs + self.balls / BALLS_PER_OVER

    def computed_run_rate(self) -> float:
        return round(self.runs / self.total_overs, 2) if self.total_overs else 0.0

    def add_ball(self, runs: int) -> "InningsScore":
        """One legal delivery; the 6th ball rolls into the next over."""
        overs, balls = self.overs, self.balls + 1
        if balls >= BALLS_PER_OVER:
            overs, balls = overs + 1, 0
        nxt = self.model_copy(update={"runs": self.runs + runs, "overs": overs, "balls": balls})
        return nxt.model_copy(update={"run_rate": nxt.computed_run_rate()})


class Weather(DomainModel):
    condition: str
    temperature: float
    humidity: float
    wind_speed: float


# ── Match snapshot ──────────────────────────────────────────────────────
class MatchSnapshot(DomainModel):
    id: str
    status: MatchStatus
    team1: TeamState
    team2: TeamState
    score1: InningsScore = Field(default_factory=InningsScore)
    score2: InningsScore = Field(default_factory=InningsScore)
    current_innings: int = Field(default=1, ge=1, le=2)
    toss_winner: Optional[str] = None
    toss_decision: Optional[TossDecision] = None
    venue: str = "TBD"
    match_type: str = "T20I"
    start_time: datetime = Field(default_factory=utcnow)
    weather: Optional[Weather] = None

    @property
    def active_score(self) -> InningsScore:
        return self.score1 if self.current_innings == 1 else self.score2

    @property
    def batting_team(self) -> TeamState:
        return self.team1 if self.current_innings == 1 else self.team2

    @property
    def bowling_team(self) -> TeamState:
        return self.team2 if self.current_innings == 1 else self.team1

    def with_active_score(self, score: InningsScore) -> "MatchSnapshot":
        key = "score1" if self.current_innings == 1 else "score2"
        return self.model_copy(update={key: score})

    def with_team(self, team: TeamState) -> "MatchSnapshot":
        key = "team1" if team.id == self.team1.id else "team2"
        return self.model_copy(update={key: team})


# ── Commentary / chat ───────────────────────────────────────────────────
class CommentaryEntry(DomainModel):
    id: str
    over: int = Field(ge=0)
    ball: int = Field(ge=0)
    runs: int = 0
    text: str
    timestamp: datetime = Field(default_factory=utcnow)
    is_wicket: bool = False
    is_boundary: bool = False
    player: Optional[str] = None


class ChatMessage(DomainModel):
    id: str
    user: str
    message: str = Field(min_length=1, max_length=CHAT_MESSAGE_MAX_LEN)
    timestamp: datetime = Field(default_factory=utcnow)
    origin: ChatOrigin = ChatOrigin.OTHER


# ── Match statistics ────────────────────────────────────────────────────
class Partnership(DomainModel):
    player1: str
    player2: str
    runs: int = Field(default=0, ge=0)
    balls: int = Field(default=0, ge=0)
    is_active: bool = False


class WicketFall(DomainModel):
    wicket_number: int = Field(ge=1, le=10)
    runs: int = Field(ge=0)
    overs: float = Field(ge=0)
    player: str
    how_out: str = ""


class PowerplayPhase(DomainModel):
    phase: str
    overs: str
    runs: int = 0
    wickets: int = 0
    run_rate: float = 0.0


class MatchStatisticsBundle(DomainModel):
    partnerships: list[Partnership] = Field(default_factory=list)
    fall_of_wickets: list[WicketFall] = Field(default_factory=list)
    powerplays: list[PowerplayPhase] = Field(default_factory=list)

    @field_validator("fall_of_wickets")
    @classmethod
    def _order_wickets(cls, value: list[WicketFall]) -> list[WicketFall]:
        return sorted(value, key=lambda w: w.wicket_number)

    @model_validator(mode="after")
    def _single_active_partnership(self) -> "MatchStatisticsBundle":
        if sum(1 for p in self.partnerships if p.is_active) > 1:
            raise ValueError("at most one partnership may be active")
        return self


# ── Channel catalog ─────────────────────────────────────────────────────
class StreamQuality(DomainModel):
    resolution: Resolution
    bitrate: int
    url: str = ""
    codec: str = "h264"


class CurrentProgram(DomainModel):
    title: str
    description: str
    start_time: datetime
    end_time: datetime
    is_live: bool = True
    category: str


class ChannelDescriptor(DomainModel):
    id: str
    name: str
    description: str = ""
    category: ChannelCategory
    country: ChannelCountry
    logo: str = ""
    stream_url: str
    backup_stream_url: Optional[str] = None
    is_live: bool = True
    quality: list[StreamQuality] = Field(default_factory=list)
    languages: list[str] = Field(default_factory=list)
    current_program: Optional[CurrentProgram] = None
    viewer_count: int = 0
    tags: list[str] = Field(default_factory=list)


class ChannelCategoryGroup(DomainModel):
    id: str
    name: str
    description: str
    icon: str
    channels: list[ChannelDescriptor] = Field(default_factory=list)


class CurrentMatch(DomainModel):
    id: str
    title: str
    team1: str
    team2: str
    match_type: MatchFormat = MatchFormat.T20
    venue: str = "TBD"
    start_time: datetime = Field(default_factory=utcnow)
    status: MatchStatus = MatchStatus.UPCOMING
    streaming_channels: list[str] = Field(default_factory=list)
    official_stream: Optional[str] = None
    highlights: list[str] = Field(default_factory=list)


# ── Aggregate view-state ────────────────────────────────────────────────
class LiveMatchState(DomainModel):
    """Everything a consumer renders, read as one consistent copy."""
    match: Optional[MatchSnapshot] = None
    commentary: list[CommentaryEntry] = Field(default_factory=list)
    stats: Optional[MatchStatisticsBundle] = None
    chat: list[ChatMessage] = Field(default_factory=list)
    loading: bool = False
    error: Optional[str] = None
    last_update: Optional[datetime] = None
    phase: OrchestratorPhase = OrchestratorPhase.IDLE


# ── Boundary envelope ───────────────────────────────────────────────────
class ApiEnvelope(DomainModel):
    success: bool
    data: Any = None
    error: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)
