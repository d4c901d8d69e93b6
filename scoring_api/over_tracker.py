# scoring_api/over_tracker.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from scoring_api.errors import (
    OverChangeRequiredError,
    QuotaExceededError,
    SameBowlerConsecutiveOversError,
)
from scoring_api.models import BALLS_PER_OVER, BallRecord, MatchFormat


# ----------------------------------------------------------------------
# Ledger-level derivations (pure functions over the recorded balls)
# ----------------------------------------------------------------------
def legal_balls(ledger: Sequence[BallRecord]) -> int:
    return sum(1 for b in ledger if b.is_legal)


def legal_balls_in_over(ledger: Sequence[BallRecord]) -> int:
    """Legal deliveries since the last over boundary, always in [0, 6)."""
    return legal_balls(ledger) % BALLS_PER_OVER


def is_over_complete(ledger: Sequence[BallRecord]) -> bool:
    """True when the latest ball was the 6th legal delivery of its over."""
    if not ledger or not ledger[-1].is_legal:
        return False
    return legal_balls(ledger) % BALLS_PER_OVER == 0


# ----------------------------------------------------------------------
# Incremental over state (folded ball by ball)
# ----------------------------------------------------------------------
@dataclass
class OverSummary:
    number: int  # 1-based
    bowler_ids: List[str]
    runs: int
    bowler_runs: int
    wickets: int

    @property
    def is_maiden(self) -> bool:
        # Byes / leg-byes are not charged to the bowler and do not break a maiden.
        return len(self.bowler_ids) == 1 and self.bowler_runs == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "over": self.number,
            "bowler_ids": list(self.bowler_ids),
            "runs": self.runs,
            "wickets": self.wickets,
            "maiden": self.is_maiden,
        }


@dataclass
class OverState:
    legal_balls_in_over: int = 0
    bowler_ids: List[str] = field(default_factory=list)
    runs: int = 0
    bowler_runs: int = 0
    wickets: int = 0
    completed: List[OverSummary] = field(default_factory=list)
    previous_over_bowler_id: Optional[str] = None
    over_change_required: bool = False

    def advance(self, ball: BallRecord) -> Optional[OverSummary]:
        """
        Adds one ball to the current over.
        Returns the OverSummary when this ball completed the over, else None.
        """
        if ball.bowler_id not in self.bowler_ids:
            self.bowler_ids.append(ball.bowler_id)
        self.runs += ball.total_runs
        self.bowler_runs += ball.bowler_runs
        if ball.wicket is not None:
            self.wickets += 1

        if not ball.is_legal:
            return None

        self.legal_balls_in_over += 1
        if self.legal_balls_in_over < BALLS_PER_OVER:
            return None

        summary = OverSummary(
            number=len(self.completed) + 1,
            bowler_ids=list(self.bowler_ids),
            runs=self.runs,
            bowler_runs=self.bowler_runs,
            wickets=self.wickets,
        )
        self.completed.append(summary)
        self.previous_over_bowler_id = ball.bowler_id
        self.over_change_required = True

        self.legal_balls_in_over = 0
        self.bowler_ids = []
        self.runs = 0
        self.bowler_runs = 0
        self.wickets = 0
        return summary

    def on_bowler_selected(self) -> None:
        self.over_change_required = False


# ----------------------------------------------------------------------
# Bowler-change rules
# ----------------------------------------------------------------------
def check_bowler_selectable(
    over: OverState,
    bowler_id: str,
    balls_bowled: int,
    fmt: MatchFormat,
) -> None:
    """
    Raises when `bowler_id` may not bowl the next delivery:
    - the bowler's quota (max overs * 6 legal balls) is used up
    - the bowler bowled the over that just finished
    """
    if balls_bowled >= fmt.bowler_ball_quota:
        raise QuotaExceededError(
            f"Bowler {bowler_id} has bowled the maximum {fmt.max_overs_per_bowler} overs; "
            f"select a different bowler."
        )
    if over.previous_over_bowler_id == bowler_id:
        raise SameBowlerConsecutiveOversError(
            f"Bowler {bowler_id} bowled the previous over and cannot bowl consecutive overs; "
            f"select a different bowler."
        )


def check_over_change(over: OverState) -> None:
    if over.over_change_required:
        raise OverChangeRequiredError(
            "The over is complete; select a new bowler before recording this ball."
        )
