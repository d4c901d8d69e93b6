# scoring_api/ledger.py
from __future__ import annotations

from typing import Iterable, Iterator, List, Optional, Tuple

from scoring_api.errors import (
    BatsmanRequiredError,
    BatsmenNotSetError,
    BowlerNotSetError,
    InningsClosedError,
    InvalidBallError,
    InvalidDismissalError,
    InvalidRosterError,
    NothingToUndoError,
    QuotaExceededError,
    SameBowlerConsecutiveOversError,
)
from scoring_api.models import EITHER_END, BallRecord, ExtraKind, MatchFormat
from scoring_api.over_tracker import check_over_change
from scoring_api.state import DerivedState, replay


def validate_ball(ball: BallRecord, state: DerivedState, fmt: MatchFormat) -> None:
    """
    Checks a proposed ball against the current state.
    Raises a PreconditionError / InvalidBallError; never mutates anything.
    """
    batting = state.batting
    bowling = state.bowling

    # 1) Roster selection
    if batting.batsman_required:
        raise BatsmanRequiredError("A wicket has fallen; select the incoming batsman before recording this ball.")
    if batting.striker_id is None or batting.non_striker_id is None:
        raise BatsmenNotSetError("Select the striker and non-striker before recording this ball.")
    if bowling.bowler_id is None:
        raise BowlerNotSetError("Select a bowler before recording this ball.")

    check_over_change(state.over)

    if (ball.striker_id, ball.non_striker_id, ball.bowler_id) != (
        batting.striker_id, batting.non_striker_id, bowling.bowler_id
    ):
        raise InvalidRosterError("Ball does not match the batsmen and bowler currently selected.")

    check_ball_rules(ball, state, fmt)


def check_ball_rules(ball: BallRecord, state: DerivedState, fmt: MatchFormat) -> None:
    """
    Rules a ball must satisfy against the state folded from the balls before
    it. Shared by live appends and by rebuilding a persisted ledger.
    """
    bowling = state.bowling

    if len({ball.striker_id, ball.non_striker_id, ball.bowler_id}) != 3:
        raise InvalidRosterError("Striker, non-striker and bowler must be three different players.")

    # 2) Bowler quota
    if bowling.legal_balls_for(ball.bowler_id) >= fmt.bowler_ball_quota:
        raise QuotaExceededError(
            f"Bowler {ball.bowler_id} has bowled the maximum {fmt.max_overs_per_bowler} overs; "
            f"select a different bowler."
        )

    # 3) Runs / extras shape
    if ball.runs < 0:
        raise InvalidBallError("Runs cannot be negative.")
    if ball.extra is not None:
        kind = ball.extra.kind
        if ball.extra.runs < 0:
            raise InvalidBallError("Extra runs cannot be negative.")
        if kind in (ExtraKind.WIDE, ExtraKind.NO_BALL) and ball.extra.runs < 1:
            raise InvalidBallError(f"A {kind.value} carries at least one extra run.")
        if kind in (ExtraKind.WIDE, ExtraKind.BYE, ExtraKind.LEG_BYE) and ball.runs != 0:
            raise InvalidBallError(f"No runs off the bat can be scored from a {kind.value}.")

    # 4) Dismissal
    if ball.wicket is not None:
        out_id = ball.wicket.dismissed_player_id
        if out_id not in (ball.striker_id, ball.non_striker_id):
            raise InvalidDismissalError(
                f"Dismissed player {out_id} is not at the crease; choose the striker or non-striker."
            )
        if out_id == ball.non_striker_id and ball.wicket.type not in EITHER_END:
            raise InvalidDismissalError(
                f"The non-striker cannot be out {ball.wicket.type.value}; only run-outs can target either end."
            )


class BallLedger:
    """
    Append-only sequence of balls for one innings.

    Appending is the only way scoring state changes; sequence numbers are
    1-based ledger positions.
    """

    def __init__(self) -> None:
        self._balls: List[BallRecord] = []

    def __len__(self) -> int:
        return len(self._balls)

    def __iter__(self) -> Iterator[BallRecord]:
        return iter(self._balls)

    def __getitem__(self, idx):
        return self._balls[idx]

    @property
    def balls(self) -> List[BallRecord]:
        return list(self._balls)

    @property
    def next_sequence_number(self) -> int:
        return len(self._balls) + 1

    def last(self) -> Optional[BallRecord]:
        return self._balls[-1] if self._balls else None

    def _push(self, ball: BallRecord) -> int:
        if ball.sequence_number != self.next_sequence_number:
            raise InvalidBallError(
                f"Out-of-order ball: expected sequence {self.next_sequence_number}, got {ball.sequence_number}"
            )
        self._balls.append(ball)
        return ball.sequence_number

    def append(self, ball: BallRecord, state: DerivedState, fmt: MatchFormat) -> int:
        """Validates against `state` then appends. Returns the ledger position."""
        validate_ball(ball, state, fmt)
        return self._push(ball)

    def truncate_last(self) -> BallRecord:
        if not self._balls:
            raise NothingToUndoError("No balls recorded in this innings; nothing to undo.")
        return self._balls.pop()

    def replay(self) -> DerivedState:
        return replay(self._balls)

    @classmethod
    def rebuild(
        cls,
        balls: Iterable[BallRecord],
        fmt: MatchFormat,
        target: Optional[int] = None,
    ) -> Tuple["BallLedger", DerivedState]:
        """
        Loads persisted balls, re-checking each one against the state folded
        from the balls before it. Raises on the first ball a live append
        would have rejected.
        """
        ledger = cls()
        state = DerivedState()
        runs = wickets = legal = 0
        for ball in balls:
            if (
                wickets >= fmt.max_wickets
                or legal >= fmt.max_legal_balls
                or (target is not None and runs >= target)
            ):
                raise InningsClosedError(f"Ball #{ball.sequence_number} was recorded after the innings closed.")
            for pid in (ball.striker_id, ball.non_striker_id):
                if state.batting.is_dismissed(pid):
                    raise InvalidRosterError(f"Ball #{ball.sequence_number}: player {pid} is already out.")
            if ball.bowler_id == state.over.previous_over_bowler_id:
                raise SameBowlerConsecutiveOversError(
                    f"Ball #{ball.sequence_number}: bowler {ball.bowler_id} bowled the previous over."
                )
            check_ball_rules(ball, state, fmt)
            ledger._push(ball)
            state.apply(ball)
            runs += ball.total_runs
            if ball.wicket is not None:
                wickets += 1
            if ball.is_legal:
                legal += 1
        return ledger, state
