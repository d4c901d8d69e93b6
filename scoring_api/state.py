# scoring_api/state.py
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Iterable, Optional

from scoring_api.batting import BattingState
from scoring_api.bowling import BowlingState
from scoring_api.models import BallRecord
from scoring_api.over_tracker import OverState, OverSummary


@dataclass
class DerivedState:
    """
    Everything the engine knows beyond the ledger itself.

    It is a pure function of the ledger plus the current roster selection
    (striker / non-striker / bowler), so it can always be rebuilt by replay.
    """
    batting: BattingState = field(default_factory=BattingState)
    bowling: BowlingState = field(default_factory=BowlingState)
    over: OverState = field(default_factory=OverState)

    def apply(self, ball: BallRecord) -> Optional[OverSummary]:
        """
        Folds one ball into the state in place.
        Returns the OverSummary when the ball completed an over.
        """
        self.batting.apply(ball)
        self.bowling.apply(ball)
        summary = self.over.advance(ball)
        if summary is not None:
            self.bowling.on_over_complete(summary)
            # Over-end rotation is unconditional and runs after the runs-based one.
            self.batting.swap()
        return summary

    def restore_roster(self, striker_id: str, non_striker_id: str, bowler_id: str) -> None:
        """Puts back the selection that was live when a ball was proposed."""
        self.batting.set_batsmen(striker_id, non_striker_id)
        self.bowling.bowler_id = bowler_id
        self.over.on_bowler_selected()

    def snapshot(self) -> "DerivedState":
        return copy.deepcopy(self)


def replay(balls: Iterable[BallRecord]) -> DerivedState:
    """Rebuilds derived state from an empty innings."""
    state = DerivedState()
    for ball in balls:
        state.apply(ball)
    return state
