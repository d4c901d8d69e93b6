# scoring_api/innings.py
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from scoring_api import aggregator
from scoring_api.errors import (
    BatsmenNotSetError,
    InningsClosedError,
    InningsHaltedError,
    InvalidBallError,
    InvalidRosterError,
    ReplayInconsistencyError,
)
from scoring_api.ledger import BallLedger
from scoring_api.models import (
    NO_BALL_PENALTY,
    WIDE_PENALTY,
    BallRecord,
    DismissalType,
    Extra,
    ExtraKind,
    MatchFormat,
    Team,
    Wicket,
)
from scoring_api.over_tracker import check_bowler_selectable, legal_balls_in_over
from scoring_api.state import DerivedState
from scoring_api.undo import UndoController

logger = logging.getLogger(__name__)


class InningsPhase(str, Enum):
    NOT_STARTED = "notStarted"
    AWAITING_OPENERS = "awaitingOpeners"
    LIVE = "live"
    OVER_BOUNDARY = "overBoundary"
    CLOSED = "closed"


def build_ball(
    sequence_number: int,
    striker_id: str,
    non_striker_id: str,
    bowler_id: str,
    *,
    runs: int = 0,
    extra_kind: Optional[ExtraKind] = None,
    wicket_type: Optional[DismissalType] = None,
    dismissed_player_id: Optional[str] = None,
    fielder_id: Optional[str] = None,
) -> BallRecord:
    """
    Turns a scorer's input into a Ball Record.

    `runs` is what was scored on the ball:
    - fair ball : runs off the bat
    - wide      : runs run / boundary off the wide (penalty added here)
    - no-ball   : runs off the bat (penalty added here)
    - bye/leg-bye: runs run, credited to extras
    """
    if runs < 0:
        raise InvalidBallError("Runs cannot be negative.")

    off_bat = runs
    extra: Optional[Extra] = None
    if extra_kind == ExtraKind.WIDE:
        off_bat = 0
        extra = Extra(ExtraKind.WIDE, WIDE_PENALTY + runs)
    elif extra_kind == ExtraKind.NO_BALL:
        extra = Extra(ExtraKind.NO_BALL, NO_BALL_PENALTY)
    elif extra_kind in (ExtraKind.BYE, ExtraKind.LEG_BYE):
        off_bat = 0
        extra = Extra(extra_kind, runs)

    wicket: Optional[Wicket] = None
    if wicket_type is not None:
        wicket = Wicket(
            type=wicket_type,
            dismissed_player_id=dismissed_player_id or striker_id,
            fielder_id=fielder_id,
        )
    elif dismissed_player_id is not None:
        raise InvalidBallError("A dismissed player was given without a dismissal type.")

    return BallRecord(
        sequence_number=sequence_number,
        bowler_id=bowler_id,
        striker_id=striker_id,
        non_striker_id=non_striker_id,
        runs=off_bat,
        extra=extra,
        wicket=wicket,
    )


class Innings:
    """
    One team's innings: the ledger, the derived state folded from it, and
    the roster selection. All mutation goes through the methods below.
    """

    def __init__(
        self,
        innings_id: str,
        match_id: str,
        number: int,
        batting_team: Team,
        bowling_team: Team,
        fmt: MatchFormat,
        target: Optional[int] = None,
    ):
        self.innings_id = innings_id
        self.match_id = match_id
        self.number = number
        self.batting_team = batting_team
        self.bowling_team = bowling_team
        self.format = fmt
        self.target = target

        self.ledger = BallLedger()
        self.state = DerivedState()
        self.undo_controller = UndoController()

        self.declared = False
        self.frozen = False
        self.halted = False
        self.sync_failures: List[Dict[str, Any]] = []

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------
    def totals(self) -> aggregator.InningsTotals:
        return aggregator.totals(self.ledger)

    @property
    def closed_reason(self) -> Optional[str]:
        t = self.totals()
        if self.declared:
            return "declared"
        if t.wickets >= self.format.max_wickets:
            return "all_out"
        if self.target is not None and t.runs >= self.target:
            return "target_reached"
        if t.legal_balls >= self.format.max_legal_balls:
            return "overs_complete"
        return None

    @property
    def is_closed(self) -> bool:
        return self.closed_reason is not None

    @property
    def phase(self) -> InningsPhase:
        if self.is_closed:
            return InningsPhase.CLOSED
        if len(self.ledger) == 0:
            selection = (
                self.state.batting.striker_id,
                self.state.batting.non_striker_id,
                self.state.bowling.bowler_id,
            )
            if all(p is None for p in selection):
                return InningsPhase.NOT_STARTED
            if any(p is None for p in selection):
                return InningsPhase.AWAITING_OPENERS
        if self.state.over.over_change_required:
            return InningsPhase.OVER_BOUNDARY
        return InningsPhase.LIVE

    def summary(self) -> Dict[str, Any]:
        t = self.totals()
        rrr = aggregator.required_run_rate(self.target, self.ledger, self.format.overs_limit)
        out: Dict[str, Any] = {
            "innings_id": self.innings_id,
            "match_id": self.match_id,
            "innings_number": self.number,
            "batting_team_id": self.batting_team.team_id,
            "bowling_team_id": self.bowling_team.team_id,
            "phase": self.phase.value,
            "closed_reason": self.closed_reason,
            "runs": t.runs,
            "wickets": t.wickets,
            "overs": t.overs,
            "legal_balls": t.legal_balls,
            "legal_balls_in_over": legal_balls_in_over(self.ledger),
            "run_rate": round(aggregator.run_rate(self.ledger), 2),
            "required_run_rate": round(rrr, 2) if rrr is not None else None,
            "target": self.target,
            "powerplay": aggregator.powerplay(self.ledger, self.format.powerplay_overs),
            "extras": aggregator.extras_breakdown(self.ledger),
            "striker_id": self.state.batting.striker_id,
            "non_striker_id": self.state.batting.non_striker_id,
            "bowler_id": self.state.bowling.bowler_id,
            "over_change_required": self.state.over.over_change_required,
            "batsman_required": self.state.batting.batsman_required,
        }
        if self.target is not None:
            out["runs_needed"] = max(0, self.target - t.runs)
            out["balls_remaining"] = max(0, self.format.max_legal_balls - t.legal_balls)
        return out

    def scorecard(self) -> Dict[str, Any]:
        batting = self.state.batting
        bowling = self.state.bowling
        return {
            "innings_id": self.innings_id,
            "batting": [batting.records[p].to_dict() for p in batting.order],
            "bowling": [bowling.records[p].to_dict() for p in bowling.order],
            "fall_of_wickets": aggregator.fall_of_wickets(self.ledger),
            "partnerships": aggregator.partnerships(self.ledger),
            "overs": [o.to_dict() for o in self.state.over.completed],
            "extras": aggregator.extras_breakdown(self.ledger),
            "total": self.summary(),
        }

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------
    def _ensure_mutable(self) -> None:
        if self.halted:
            raise InningsHaltedError(
                f"Innings {self.innings_id} is halted after a replay inconsistency; reconcile it manually."
            )
        if self.frozen:
            raise InningsClosedError(f"Innings {self.innings_id} is finished and the next innings has started.")

    def _ensure_open(self) -> None:
        self._ensure_mutable()
        reason = self.closed_reason
        if reason is not None:
            raise InningsClosedError(f"Innings {self.innings_id} is closed ({reason}); no further changes accepted.")

    # ------------------------------------------------------------------
    # Roster selection (no ledger entry)
    # ------------------------------------------------------------------
    def set_batsmen(self, striker_id: str, non_striker_id: str) -> None:
        self._ensure_open()
        if not striker_id or not non_striker_id:
            raise BatsmenNotSetError("Both a striker and a non-striker must be selected.")
        if striker_id == non_striker_id:
            raise InvalidRosterError("Striker and non-striker must be different players.")
        for pid in (striker_id, non_striker_id):
            if not self.batting_team.has_player(pid):
                raise InvalidRosterError(f"Player {pid} is not in the batting team {self.batting_team.team_id}.")
            if self.state.batting.is_dismissed(pid):
                raise InvalidRosterError(f"Player {pid} is already out in this innings.")
            if pid == self.state.bowling.bowler_id:
                raise InvalidRosterError(f"Player {pid} is the current bowler.")

        self.state.batting.set_batsmen(striker_id, non_striker_id)
        logger.info("Innings %s: batsmen set striker=%s non_striker=%s", self.innings_id, striker_id, non_striker_id)

    def set_bowler(self, bowler_id: str) -> None:
        self._ensure_open()
        if not self.bowling_team.has_player(bowler_id):
            raise InvalidRosterError(f"Player {bowler_id} is not in the bowling team {self.bowling_team.team_id}.")
        if bowler_id in (self.state.batting.striker_id, self.state.batting.non_striker_id):
            raise InvalidRosterError(f"Player {bowler_id} is currently batting.")

        over = self.state.over
        if bowler_id == self.state.bowling.bowler_id and not over.over_change_required:
            return

        check_bowler_selectable(over, bowler_id, self.state.bowling.legal_balls_for(bowler_id), self.format)
        self.state.bowling.bowler_id = bowler_id
        over.on_bowler_selected()
        logger.info("Innings %s: bowler set %s", self.innings_id, bowler_id)

    def swap_batsmen(self) -> None:
        self._ensure_mutable()
        batting = self.state.batting
        if batting.striker_id is None or batting.non_striker_id is None:
            raise BatsmenNotSetError("Both batsmen must be at the crease to swap strike.")
        batting.swap()

    # ------------------------------------------------------------------
    # Ledger mutation
    # ------------------------------------------------------------------
    def record_ball(
        self,
        runs: int = 0,
        extra_kind: Optional[ExtraKind] = None,
        wicket_type: Optional[DismissalType] = None,
        dismissed_player_id: Optional[str] = None,
        fielder_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        self._ensure_open()
        batting = self.state.batting
        ball = build_ball(
            self.ledger.next_sequence_number,
            batting.striker_id or "",
            batting.non_striker_id or "",
            self.state.bowling.bowler_id or "",
            runs=runs,
            extra_kind=extra_kind,
            wicket_type=wicket_type,
            dismissed_player_id=dismissed_player_id,
            fielder_id=fielder_id,
        )

        before = self.state.snapshot()
        self.ledger.append(ball, self.state, self.format)
        self.undo_controller.remember(ball.sequence_number, before)
        over_summary = self.state.apply(ball)

        logger.debug("Innings %s: ball #%d %s", self.innings_id, ball.sequence_number, ball.to_dict())
        if ball.wicket is not None:
            logger.info(
                "Innings %s: wicket %s (%s)",
                self.innings_id, ball.wicket.dismissed_player_id, ball.wicket.type.value,
            )
        if over_summary is not None:
            logger.info(
                "Innings %s: over %d complete (%d runs)", self.innings_id, over_summary.number, over_summary.runs
            )
        reason = self.closed_reason
        if reason is not None:
            logger.info("Innings %s closed: %s", self.innings_id, reason)

        return {
            "ball": ball.to_dict(),
            "over_complete": over_summary is not None,
            "over": over_summary.to_dict() if over_summary is not None else None,
            "innings_closed": reason is not None,
            "summary": self.summary(),
        }

    def undo_last_ball(self) -> BallRecord:
        """Removes the latest ball; derived state goes back to just before it."""
        self._ensure_mutable()
        try:
            removed, state = self.undo_controller.undo(self.ledger)
        except ReplayInconsistencyError:
            self.halted = True
            raise
        self.state = state
        logger.info("Innings %s: undid ball #%d", self.innings_id, removed.sequence_number)
        return removed

    def end_innings(self) -> None:
        self._ensure_open()
        self.declared = True
        logger.info("Innings %s closed: declared", self.innings_id)

    # ------------------------------------------------------------------
    # Persistence layout: ledger + roster selection
    # ------------------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "innings_id": self.innings_id,
            "match_id": self.match_id,
            "number": self.number,
            "batting_team_id": self.batting_team.team_id,
            "bowling_team_id": self.bowling_team.team_id,
            "target": self.target,
            "declared": self.declared,
            "balls": [b.to_dict() for b in self.ledger],
            "roster": {
                "striker_id": self.state.batting.striker_id,
                "non_striker_id": self.state.batting.non_striker_id,
                "bowler_id": self.state.bowling.bowler_id,
            },
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        batting_team: Team,
        bowling_team: Team,
        fmt: MatchFormat,
    ) -> "Innings":
        inn = cls(
            innings_id=str(data["innings_id"]),
            match_id=str(data["match_id"]),
            number=int(data.get("number", 1)),
            batting_team=batting_team,
            bowling_team=bowling_team,
            fmt=fmt,
            target=data.get("target"),
        )
        balls = [BallRecord.from_dict(b) for b in data.get("balls", [])]
        for b in balls:
            for pid in (b.striker_id, b.non_striker_id):
                if not batting_team.has_player(pid):
                    raise InvalidRosterError(f"Ball #{b.sequence_number}: {pid} is not in team {batting_team.team_id}.")
            if not bowling_team.has_player(b.bowler_id):
                raise InvalidRosterError(f"Ball #{b.sequence_number}: {b.bowler_id} is not in team {bowling_team.team_id}.")
        inn.ledger, inn.state = BallLedger.rebuild(balls, fmt, inn.target)
        inn.declared = bool(data.get("declared", False))

        roster = data.get("roster") or {}
        batting = inn.state.batting
        striker, non_striker = roster.get("striker_id"), roster.get("non_striker_id")
        for pid in (striker, non_striker):
            if pid is not None and (batting.is_dismissed(pid) or not batting_team.has_player(pid)):
                raise InvalidRosterError(f"Persisted striker / non-striker {pid} cannot be at the crease.")
        batting.striker_id, batting.non_striker_id = striker, non_striker
        if striker is not None and non_striker is not None:
            batting.batsman_required = False

        bowler = roster.get("bowler_id")
        if bowler is not None and bowler != inn.state.bowling.bowler_id:
            if not bowling_team.has_player(bowler):
                raise InvalidRosterError(f"Persisted bowler {bowler} is not in team {bowling_team.team_id}.")
            check_bowler_selectable(inn.state.over, bowler, inn.state.bowling.legal_balls_for(bowler), fmt)
            inn.state.bowling.bowler_id = bowler
            inn.state.over.on_bowler_selected()
        return inn
