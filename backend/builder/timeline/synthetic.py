"""
Synthetic match generator for Live Crease.
Produces a plausible, slowly progressing India vs Pakistan match when no
provider can serve a feed, so consumers always have something to render.
Progression is a pure function over an explicit state value.
"""
from __future__ import annotations

import asyncio
import random
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict

from shared.config import Settings, get_settings
from shared.models.domain import (
    BattingFigures,
    BowlingFigures,
    ChatMessage,
    CommentaryEntry,
    CurrentMatch,
    InningsScore,
    MatchSnapshot,
    MatchStatisticsBundle,
    Partnership,
    PlayerState,
    PowerplayPhase,
    TeamState,
    Weather,
    utcnow,
)
from shared.models.enums import (
    ChatOrigin,
    Feed,
    MatchFormat,
    MatchStatus,
    PlayerRole,
    TossDecision,
)
from shared.utils.logging import get_logger

from ingest.normalization.normalizer import newest_first, team_flag

logger = get_logger(__name__)

DELIVERY_PROBABILITY = 0.3
RUN_OUTCOMES = (1, 2, 3, 4, 6)
RUN_WEIGHTS = (40, 20, 5, 25, 10)

# Simulated upstream latency per feed, in milliseconds.
FEED_LATENCY_MS: dict[Feed, int] = {
    Feed.LIVE_MATCH: 500,
    Feed.COMMENTARY: 300,
    Feed.MATCH_STATS: 200,
    Feed.LIVE_CHAT: 100,
    Feed.CURRENT_MATCHES: 300,
}

VENUE = "Dubai International Cricket Stadium"


class SimulationState(BaseModel):
    """Synthesized match plus who is on strike and who is bowling."""

    model_config = ConfigDict(frozen=True)

    match: MatchSnapshot
    striker_id: str
    non_striker_id: str
    bowler_id: str
    deliveries: int = 0


def _batter(pid: str, name: str, runs: int, balls: int, fours: int, sixes: int) -> PlayerState:
    return PlayerState(
        id=pid,
        name=name,
        role=PlayerRole.BATSMAN,
        is_on_field=True,
        batting=BattingFigures.build(runs=runs, balls=balls, fours=fours, sixes=sixes),
    )


def initial_simulation() -> SimulationState:
    """IND 68/0 after 8.2 overs, Kohli and Rohit at the crease, Shaheen bowling."""
    india = TeamState(
        id="ind",
        name="India",
        short_name="IND",
        flag=team_flag("India"),
        players=[
            _batter("kohli", "Virat Kohli", runs=45, balls=32, fours=4, sixes=1),
            _batter("rohit", "Rohit Sharma", runs=23, balls=18, fours=3, sixes=0),
            PlayerState(
                id="bumrah",
                name="Jasprit Bumrah",
                role=PlayerRole.BOWLER,
                bowling=BowlingFigures.build(balls=0, runs=0),
            ),
        ],
    )
    pakistan = TeamState(
        id="pak",
        name="Pakistan",
        short_name="PAK",
        flag=team_flag("Pakistan"),
        players=[
            PlayerState(
                id="babar",
                name="Babar Azam",
                role=PlayerRole.BATSMAN,
                batting=BattingFigures.build(runs=0, balls=0),
            ),
            PlayerState(
                id="shaheen",
                name="Shaheen Afridi",
                role=PlayerRole.BOWLER,
                is_on_field=True,
                bowling=BowlingFigures.build(balls=20, runs=28),
            ),
        ],
    )
    match = MatchSnapshot(
        id="ind-vs-pak-2024",
        status=MatchStatus.LIVE,
        team1=india,
        team2=pakistan,
        score1=InningsScore.from_overs_notation(runs=68, wickets=0, overs=8.2),
        score2=InningsScore(),
        current_innings=1,
        toss_winner="India",
        toss_decision=TossDecision.BAT,
        venue=VENUE,
        match_type="T20I",
        start_time=datetime(2024, 1, 15, 14, 30, tzinfo=timezone.utc),
        weather=Weather(condition="Clear", temperature=28, humidity=45, wind_speed=12),
    )
    return SimulationState(match=match, striker_id="kohli", non_striker_id="rohit", bowler_id="shaheen")


def _update_player(team: TeamState, pid: str, fn: Callable[[PlayerState], PlayerState]) -> TeamState:
    players = [fn(p) if p.id == pid else p for p in team.players]
    return team.model_copy(update={"players": players})


def progress_simulation(state: SimulationState, rng: random.Random) -> SimulationState:
    """
    Advance the simulation by at most one legal delivery.

    With probability DELIVERY_PROBABILITY a ball is bowled for weighted runs
    in RUN_OUTCOMES. Runs, overs and wickets never decrease.
    """
    if state.match.status != MatchStatus.LIVE or rng.random() >= DELIVERY_PROBABILITY:
        return state

    runs = rng.choices(RUN_OUTCOMES, weights=RUN_WEIGHTS, k=1)[0]
    match = state.match
    score = match.active_score.add_ball(runs)

    batting = _update_player(
        match.batting_team,
        state.striker_id,
        lambda p: p.model_copy(update={"batting": (p.batting or BattingFigures()).with_delivery(runs)}),
    )
    bowling = _update_player(
        match.bowling_team,
        state.bowler_id,
        lambda p: p.model_copy(update={"bowling": (p.bowling or BowlingFigures()).with_delivery(runs)}),
    )
    match = match.with_active_score(score).with_team(batting).with_team(bowling)

    striker, non_striker = state.striker_id, state.non_striker_id
    # Odd runs cross the batters; the end of an over swaps ends again.
    if runs % 2 == 1:
        striker, non_striker = non_striker, striker
    if score.balls == 0:
        striker, non_striker = non_striker, striker

    return state.model_copy(
        update={
            "match": match,
            "striker_id": striker,
            "non_striker_id": non_striker,
            "deliveries": state.deliveries + 1,
        }
    )


def _static_commentary(now: datetime) -> list[CommentaryEntry]:
    chronological = [
        CommentaryEntry(
            id="3",
            over=7,
            ball=6,
            runs=6,
            text="SIX! What a shot! Rohit pulls it over deep mid-wicket for maximum!",
            timestamp=now - timedelta(seconds=60),
            is_boundary=True,
            player="Rohit Sharma",
        ),
        CommentaryEntry(
            id="2",
            over=8,
            ball=1,
            runs=1,
            text="Single taken to deep square leg, good running between the wickets",
            timestamp=now - timedelta(seconds=30),
            player="Rohit Sharma",
        ),
        CommentaryEntry(
            id="1",
            over=8,
            ball=2,
            runs=4,
            text="FOUR! Kohli drives beautifully through covers for his 4th boundary",
            timestamp=now,
            is_boundary=True,
            player="Virat Kohli",
        ),
    ]
    return newest_first(chronological)


def _static_chat(now: datetime) -> list[ChatMessage]:
    return [
        ChatMessage(
            id="1",
            user="CricketFan_IND",
            message="What a partnership! IND looking strong! 🇮🇳",
            timestamp=now,
            origin=ChatOrigin.INDIA,
        ),
        ChatMessage(
            id="2",
            user="PakCricketLover",
            message="Need early wickets here! Come on Pakistan! 🇵🇰",
            timestamp=now - timedelta(seconds=15),
            origin=ChatOrigin.PAKISTAN,
        ),
        ChatMessage(
            id="3",
            user="CricketExpert",
            message="This partnership is building nicely, 68/0 after 8 overs",
            timestamp=now - timedelta(seconds=30),
            origin=ChatOrigin.OTHER,
        ),
    ]


def _static_stats() -> MatchStatisticsBundle:
    return MatchStatisticsBundle(
        partnerships=[
            Partnership(player1="Rohit Sharma", player2="Virat Kohli", runs=68, balls=50, is_active=True),
        ],
        fall_of_wickets=[],
        powerplays=[
            PowerplayPhase(phase="Powerplay (1-6)", overs="1-6", runs=52, wickets=0, run_rate=8.67),
        ],
    )


def fallback_matches(now: datetime) -> list[CurrentMatch]:
    return [
        CurrentMatch(
            id="ind-vs-pak-live",
            title="India vs Pakistan T20 International",
            team1="India",
            team2="Pakistan",
            match_type=MatchFormat.T20,
            venue=VENUE,
            start_time=now,
            status=MatchStatus.LIVE,
            streaming_channels=["star-sports-1", "ptv-sports", "sky-sports-cricket", "willow-tv"],
            official_stream="https://www.hotstar.com/in/sports/cricket",
            highlights=[
                "https://www.youtube.com/watch?v=example1",
                "https://www.youtube.com/watch?v=example2",
            ],
        )
    ]


class MatchSynthesizer:
    """
    Owns the simulation state for the process lifetime.

    Every accessor returns a fresh value; callers can never mutate the
    simulation through what they receive.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        rng: Optional[random.Random] = None,
        state: Optional[SimulationState] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._rng = rng or random.Random(self._settings.synthetic_seed)
        self._state = state or initial_simulation()
        self._renderers: dict[Feed, Callable[[], Any]] = {
            Feed.LIVE_MATCH: self.live_match,
            Feed.COMMENTARY: self.commentary,
            Feed.MATCH_STATS: self.match_stats,
            Feed.LIVE_CHAT: self.live_chat,
            Feed.CURRENT_MATCHES: self.current_matches,
        }

    @property
    def state(self) -> SimulationState:
        return self._state

    def supports(self, feed: Feed) -> bool:
        return feed in self._renderers

    async def render(self, feed: Feed) -> Any:
        """Synthesized value for a feed after its simulated latency."""
        delay = FEED_LATENCY_MS.get(feed, 0) / 1000 * self._settings.synthetic_delay_scale
        if delay > 0:
            await asyncio.sleep(delay)
        return self._renderers[feed]()

    def live_match(self) -> MatchSnapshot:
        previous = self._state.match.active_score
        self._state = progress_simulation(self._state, self._rng)
        current = self._state.match.active_score
        if current != previous:
            logger.debug(
                "synthetic_delivery",
                runs=current.runs - previous.runs,
                score=f"{current.runs}/{current.wickets}",
                overs=f"{current.overs}.{current.balls}",
            )
        return self._state.match.model_copy(deep=True)

    def commentary(self) -> list[CommentaryEntry]:
        return _static_commentary(utcnow())

    def match_stats(self) -> MatchStatisticsBundle:
        return _static_stats()

    def live_chat(self) -> list[ChatMessage]:
        return _static_chat(utcnow())

    def current_matches(self) -> list[CurrentMatch]:
        return fallback_matches(utcnow())
