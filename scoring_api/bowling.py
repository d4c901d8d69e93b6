# scoring_api/bowling.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from scoring_api.models import BallRecord, ExtraKind
from scoring_api.over_tracker import OverSummary
from scoring_api.overs_math import balls_to_overs, economy


@dataclass
class BowlerInnings:
    player_id: str
    legal_balls: int = 0
    runs_conceded: int = 0
    wickets: int = 0
    maidens: int = 0
    wides: int = 0
    no_balls: int = 0

    @property
    def overs(self) -> str:
        return balls_to_overs(self.legal_balls)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "player_id": self.player_id,
            "overs": self.overs,
            "legal_balls": self.legal_balls,
            "maidens": self.maidens,
            "runs": self.runs_conceded,
            "wickets": self.wickets,
            "wides": self.wides,
            "no_balls": self.no_balls,
            "economy": round(economy(self.runs_conceded, self.legal_balls), 2),
        }


@dataclass
class BowlingState:
    """Current bowler plus per-bowler figures for the innings."""
    bowler_id: Optional[str] = None
    records: Dict[str, BowlerInnings] = field(default_factory=dict)
    order: List[str] = field(default_factory=list)

    def record_for(self, player_id: str) -> BowlerInnings:
        rec = self.records.get(player_id)
        if rec is None:
            rec = BowlerInnings(player_id=player_id)
            self.records[player_id] = rec
            self.order.append(player_id)
        return rec

    def legal_balls_for(self, player_id: str) -> int:
        rec = self.records.get(player_id)
        return rec.legal_balls if rec is not None else 0

    def apply(self, ball: BallRecord) -> "BowlingState":
        """
        Charges one ball to its bowler in place and returns self.

        Byes and leg-byes stay out of the bowler's runs. A wicket is credited
        unless it is a run-out / obstruction, or a no-ball protected the batsman.
        """
        self.bowler_id = ball.bowler_id
        rec = self.record_for(ball.bowler_id)

        rec.runs_conceded += ball.bowler_runs
        if ball.is_legal:
            rec.legal_balls += 1
        if ball.extra is not None:
            if ball.extra.kind == ExtraKind.WIDE:
                rec.wides += 1
            elif ball.extra.kind == ExtraKind.NO_BALL:
                rec.no_balls += 1
        if ball.wicket_credited_to_bowler:
            rec.wickets += 1
        return self

    def on_over_complete(self, summary: OverSummary) -> None:
        if summary.is_maiden:
            self.record_for(summary.bowler_ids[0]).maidens += 1
