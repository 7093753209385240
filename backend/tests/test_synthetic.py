"""
Unit tests for the synthesized match feed.

Run: pytest backend/tests/test_synthetic.py -v
"""
from __future__ import annotations

import random

import pytest

from shared.models.domain import InningsScore
from shared.models.enums import Feed, MatchStatus
from builder.timeline.synthetic import (
    MatchSynthesizer,
    initial_simulation,
    progress_simulation,
)


def _player(state, pid):
    match = state.match
    for team in (match.team1, match.team2):
        for p in team.players:
            if p.id == pid:
                return p
    raise KeyError(pid)


class _FixedRng(random.Random):
    """Always bowls, always scores `runs`."""

    def __init__(self, runs: int) -> None:
        super().__init__(0)
        self._runs = runs

    def random(self) -> float:
        return 0.0

    def choices(self, population, weights=None, *, cum_weights=None, k=1):
        return [self._runs] * k


# ── Initial state ───────────────────────────────────────────────────────

def test_initial_state_matches_seed_scenario() -> None:
    state = initial_simulation()
    score = state.match.score1
    assert state.match.status == MatchStatus.LIVE
    assert (score.runs, score.wickets, score.overs, score.balls) == (68, 0, 8, 2)
    assert state.match.team1.short_name == "IND"
    assert state.match.venue == "Dubai International Cricket Stadium"
    assert _player(state, "kohli").batting.runs == 45
    assert _player(state, "shaheen").bowling.overs == 3.2


# ── progress_simulation ─────────────────────────────────────────────────

def test_progression_is_monotonic() -> None:
    rng = random.Random(42)
    state = initial_simulation()
    previous = state.match.score1
    for _ in range(200):
        state = progress_simulation(state, rng)
        current = state.match.score1
        assert current.runs >= previous.runs
        assert current.wickets >= previous.wickets
        assert current.total_overs >= previous.total_overs
        assert 0 <= current.balls < 6
        previous = current


def test_progression_does_not_mutate_input() -> None:
    state = initial_simulation()
    before = state.match.score1
    progress_simulation(state, _FixedRng(4))
    assert state.match.score1 == before


def test_sixth_ball_carries_into_next_over() -> None:
    state = initial_simulation()
    rng = _FixedRng(1)
    for _ in range(4):
        state = progress_simulation(state, rng)
    score = state.match.score1
    assert (score.overs, score.balls) == (9, 0)
    assert score.runs == 72


def test_delivery_updates_striker_and_bowler_figures() -> None:
    state = initial_simulation()
    nxt = progress_simulation(state, _FixedRng(4))

    kohli = _player(nxt, "kohli")
    assert kohli.batting.runs == 49
    assert kohli.batting.balls == 33
    assert kohli.batting.fours == 5
    assert kohli.batting.strike_rate == round(49 / 33 * 100, 2)

    shaheen = _player(nxt, "shaheen")
    assert shaheen.bowling.balls == 21
    assert shaheen.bowling.runs == 32
    assert shaheen.bowling.overs == 3.3
    assert shaheen.bowling.economy == round(32 / (21 / 6), 2)

    assert nxt.match.score1.run_rate == nxt.match.score1.computed_run_rate()


def test_odd_runs_rotate_strike() -> None:
    state = initial_simulation()
    nxt = progress_simulation(state, _FixedRng(1))
    assert nxt.striker_id == "rohit"
    assert nxt.non_striker_id == "kohli"


def test_no_delivery_returns_same_state() -> None:
    class _NoBall(random.Random):
        def random(self) -> float:
            return 0.99

    state = initial_simulation()
    assert progress_simulation(state, _NoBall()) is state


def test_add_ball_pure_carry() -> None:
    score = InningsScore(runs=10, overs=2, balls=5)
    nxt = score.add_ball(6)
    assert (nxt.runs, nxt.overs, nxt.balls) == (16, 3, 0)
    assert (score.runs, score.overs, score.balls) == (10, 2, 5)


# ── MatchSynthesizer ────────────────────────────────────────────────────

def test_live_match_returns_independent_copies(synthesizer: MatchSynthesizer) -> None:
    first = synthesizer.live_match()
    second = synthesizer.live_match()
    assert first is not second
    assert second.score1.runs >= first.score1.runs


def test_commentary_is_newest_first(synthesizer: MatchSynthesizer) -> None:
    entries = synthesizer.commentary()
    assert [(e.over, e.ball) for e in entries] == [(8, 2), (8, 1), (7, 6)]
    assert entries[0].is_boundary


def test_static_stats_have_one_active_partnership(synthesizer: MatchSynthesizer) -> None:
    stats = synthesizer.match_stats()
    assert sum(1 for p in stats.partnerships if p.is_active) == 1
    assert stats.powerplays[0].run_rate == 8.67
    assert stats.fall_of_wickets == []


def test_current_matches_fallback(synthesizer: MatchSynthesizer) -> None:
    matches = synthesizer.current_matches()
    assert matches[0].id == "ind-vs-pak-live"
    assert "ptv-sports" in matches[0].streaming_channels


@pytest.mark.asyncio
async def test_render_supports_every_feed(synthesizer: MatchSynthesizer) -> None:
    for feed in Feed:
        assert synthesizer.supports(feed)
        assert await synthesizer.render(feed) is not None
