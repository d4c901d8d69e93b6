# scoring_api/batting.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from scoring_api.models import (
    BallRecord,
    DismissalType,
    ExtraKind,
)
from scoring_api.overs_math import strike_rate


@dataclass
class Dismissal:
    type: DismissalType
    bowler_id: Optional[str] = None
    fielder_id: Optional[str] = None
    sequence_number: int = 0


@dataclass
class BatsmanInnings:
    player_id: str
    runs: int = 0
    balls: int = 0
    fours: int = 0
    sixes: int = 0
    dismissal: Optional[Dismissal] = None

    @property
    def is_out(self) -> bool:
        return self.dismissal is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "player_id": self.player_id,
            "runs": self.runs,
            "balls": self.balls,
            "fours": self.fours,
            "sixes": self.sixes,
            "strike_rate": round(strike_rate(self.runs, self.balls), 2),
            "dismissal": (
                {
                    "type": self.dismissal.type.value,
                    "bowler_id": self.dismissal.bowler_id,
                    "fielder_id": self.dismissal.fielder_id,
                }
                if self.dismissal is not None else "not out"
            ),
        }


@dataclass
class BattingState:
    """
    The two batsmen at the crease plus every batsman's innings record.

    Records are created lazily, the first time a player faces (or is
    dismissed without facing). A dismissed record is never touched again.
    """
    striker_id: Optional[str] = None
    non_striker_id: Optional[str] = None
    batsman_required: bool = False
    records: Dict[str, BatsmanInnings] = field(default_factory=dict)
    order: List[str] = field(default_factory=list)

    def record_for(self, player_id: str) -> BatsmanInnings:
        rec = self.records.get(player_id)
        if rec is None:
            rec = BatsmanInnings(player_id=player_id)
            self.records[player_id] = rec
            self.order.append(player_id)
        return rec

    def is_dismissed(self, player_id: str) -> bool:
        rec = self.records.get(player_id)
        return rec is not None and rec.is_out

    def set_batsmen(self, striker_id: str, non_striker_id: str) -> None:
        self.striker_id = striker_id
        self.non_striker_id = non_striker_id
        self.batsman_required = False

    def swap(self) -> None:
        self.striker_id, self.non_striker_id = self.non_striker_id, self.striker_id

    def apply(self, ball: BallRecord) -> "BattingState":
        """
        Applies one ball in place and returns self.

        Order matters:
        1) striker's tally (off-bat runs, balls faced, boundaries)
        2) rotation on odd off-bat runs (extras never rotate)
        3) dismissal vacates the dismissed batsman's end
        Over-end rotation is the caller's job (it runs after all of this).
        """
        self.striker_id = ball.striker_id
        self.non_striker_id = ball.non_striker_id

        striker = self.record_for(ball.striker_id)
        kind = ball.extra.kind if ball.extra is not None else None

        if kind != ExtraKind.WIDE:
            striker.balls += 1
        if kind not in (ExtraKind.BYE, ExtraKind.LEG_BYE, ExtraKind.WIDE):
            striker.runs += ball.runs
            if ball.runs == 4:
                striker.fours += 1
            elif ball.runs == 6:
                striker.sixes += 1

        if ball.runs % 2 == 1:
            self.swap()

        if ball.wicket is not None:
            out_id = ball.wicket.dismissed_player_id
            rec = self.record_for(out_id)
            rec.dismissal = Dismissal(
                type=ball.wicket.type,
                bowler_id=ball.bowler_id if ball.wicket_credited_to_bowler else None,
                fielder_id=ball.wicket.fielder_id,
                sequence_number=ball.sequence_number,
            )
            if self.striker_id == out_id:
                self.striker_id = None
            elif self.non_striker_id == out_id:
                self.non_striker_id = None
            self.batsman_required = True

        return self
