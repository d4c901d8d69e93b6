from __future__ import annotations

from typing import Callable, Optional

import pytest

from scoring_api.engine import ScoringEngine
from scoring_api.innings import Innings
from scoring_api.models import MatchFormat, Team

HOME = Team("HOME", "Home XI", tuple(f"h{i}" for i in range(1, 12)))
AWAY = Team("AWAY", "Away XI", tuple(f"a{i}" for i in range(1, 12)))

T20 = MatchFormat(overs_limit=20, players_per_team=11, max_overs_per_bowler=4)


def make_innings(fmt: MatchFormat = T20, target: Optional[int] = None) -> Innings:
    return Innings(
        innings_id="inn-1",
        match_id="m-1",
        number=1 if target is None else 2,
        batting_team=HOME,
        bowling_team=AWAY,
        fmt=fmt,
        target=target,
    )


@pytest.fixture
def innings() -> Innings:
    """Live innings: h1 on strike, h2 at the other end, a1 bowling."""
    inn = make_innings()
    inn.set_batsmen("h1", "h2")
    inn.set_bowler("a1")
    return inn


@pytest.fixture
def engine() -> ScoringEngine:
    return ScoringEngine()


@pytest.fixture
def match_id(engine: ScoringEngine) -> str:
    return engine.create_match(HOME, AWAY, T20, match_id="m-1").match_id


@pytest.fixture
def innings_id(engine: ScoringEngine, match_id: str) -> str:
    inn_id = engine.start_innings(match_id, "HOME", "AWAY")
    engine.set_batsmen(inn_id, "h1", "h2")
    engine.set_bowler(inn_id, "a1")
    return inn_id


def play_balls(
    inn: Innings,
    n: int,
    runs_fn: Callable[[int], int] = lambda i: 0,
    bowlers=("a1", "a2", "a3", "a4", "a5"),
) -> None:
    """
    Records `n` fair deliveries, rotating through `bowlers` at each over end.
    """
    rotation = list(bowlers)
    for i in range(n):
        if inn.state.over.over_change_required:
            prev = inn.state.over.previous_over_bowler_id
            idx = rotation.index(prev) if prev in rotation else -1
            for step in range(1, len(rotation) + 1):
                candidate = rotation[(idx + step) % len(rotation)]
                if inn.state.bowling.legal_balls_for(candidate) < inn.format.bowler_ball_quota:
                    inn.set_bowler(candidate)
                    break
        inn.record_ball(runs=runs_fn(i))


def bowl_over(inn: Innings, bowler: str, runs: int = 0) -> None:
    if inn.state.bowling.bowler_id != bowler or inn.state.over.over_change_required:
        inn.set_bowler(bowler)
    for _ in range(6):
        inn.record_ball(runs=runs)
