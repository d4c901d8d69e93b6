# scoring_api/overs_math.py
from __future__ import annotations

from typing import Optional

from scoring_api.models import BALLS_PER_OVER


def balls_to_overs(balls: int) -> str:
    """118 -> "19.4" """
    if balls < 0:
        raise ValueError("Balls cannot be negative")
    return f"{balls // BALLS_PER_OVER}.{balls % BALLS_PER_OVER}"


def run_rate(runs: int, balls: int) -> float:
    """Runs per over; 0.0 before the first legal ball."""
    if balls <= 0:
        return 0.0
    return runs / balls * BALLS_PER_OVER


def required_run_rate(target: int, runs: int, balls_bowled: int, max_balls: int) -> Optional[float]:
    """
    Run rate needed from the remaining legal balls to reach `target`.

    - 0.0 once the target is met
    - None when no legal balls remain
    """
    runs_needed = target - runs
    if runs_needed <= 0:
        return 0.0
    remaining = max(0, max_balls - balls_bowled)
    if remaining == 0:
        return None
    return runs_needed / remaining * BALLS_PER_OVER


def strike_rate(runs: int, balls: int) -> float:
    if balls <= 0:
        return 0.0
    return runs / balls * 100


def economy(runs_conceded: int, legal_balls: int) -> float:
    return run_rate(runs_conceded, legal_balls)
