# scoring_api/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

BALLS_PER_OVER = 6
WIDE_PENALTY = 1
NO_BALL_PENALTY = 1


# -----------------------------
# Tagged ball outcomes
# -----------------------------
class ExtraKind(str, Enum):
    WIDE = "wide"
    NO_BALL = "noBall"
    BYE = "bye"
    LEG_BYE = "legBye"


class DismissalType(str, Enum):
    BOWLED = "bowled"
    CAUGHT = "caught"
    LBW = "lbw"
    RUN_OUT = "runOut"
    STUMPED = "stumped"
    HIT_WICKET = "hitWicket"
    OBSTRUCTING_THE_FIELD = "obstructingTheField"


# Dismissals a no-ball protects the batsman from (no bowler credit).
NO_BALL_PROTECTED = frozenset({
    DismissalType.BOWLED,
    DismissalType.CAUGHT,
    DismissalType.LBW,
    DismissalType.STUMPED,
    DismissalType.HIT_WICKET,
})

# Dismissals never credited to the bowler.
NOT_BOWLER_CREDITED = frozenset({
    DismissalType.RUN_OUT,
    DismissalType.OBSTRUCTING_THE_FIELD,
})

# Dismissals that may fall on the non-striker.
EITHER_END = frozenset({
    DismissalType.RUN_OUT,
    DismissalType.OBSTRUCTING_THE_FIELD,
})


@dataclass(frozen=True)
class Extra:
    kind: ExtraKind
    runs: int

    @property
    def is_illegal_delivery(self) -> bool:
        """Wides and no-balls do not count toward the over."""
        return self.kind in (ExtraKind.WIDE, ExtraKind.NO_BALL)

    @property
    def charged_to_bowler(self) -> bool:
        return self.kind in (ExtraKind.WIDE, ExtraKind.NO_BALL)


@dataclass(frozen=True)
class Wicket:
    type: DismissalType
    dismissed_player_id: str
    fielder_id: Optional[str] = None


# -----------------------------
# Ball Record (ledger entry)
# -----------------------------
@dataclass(frozen=True)
class BallRecord:
    """
    Immutable unit of the Ball Ledger.

    - runs  : runs off the bat only (0 for wides, byes and leg-byes)
    - extra : None for a fair delivery, else the extra kind and its runs
    - wicket: None, or the dismissal
    """
    sequence_number: int
    bowler_id: str
    striker_id: str
    non_striker_id: str
    runs: int = 0
    extra: Optional[Extra] = None
    wicket: Optional[Wicket] = None

    @property
    def is_legal(self) -> bool:
        return self.extra is None or not self.extra.is_illegal_delivery

    @property
    def extra_runs(self) -> int:
        return self.extra.runs if self.extra is not None else 0

    @property
    def total_runs(self) -> int:
        return self.runs + self.extra_runs

    @property
    def bowler_runs(self) -> int:
        """Runs charged to the bowler: off-bat runs plus wides / no-balls."""
        if self.extra is not None and self.extra.charged_to_bowler:
            return self.runs + self.extra.runs
        return self.runs

    @property
    def wicket_credited_to_bowler(self) -> bool:
        if self.wicket is None or self.wicket.type in NOT_BOWLER_CREDITED:
            return False
        if self.extra is not None and self.extra.kind == ExtraKind.NO_BALL:
            return self.wicket.type not in NO_BALL_PROTECTED
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sequenceNumber": self.sequence_number,
            "bowlerId": self.bowler_id,
            "strikerId": self.striker_id,
            "nonStrikerId": self.non_striker_id,
            "runs": self.runs,
            "extra": (
                {"kind": self.extra.kind.value, "runs": self.extra.runs}
                if self.extra is not None else None
            ),
            "wicket": (
                {
                    "type": self.wicket.type.value,
                    "dismissedPlayerId": self.wicket.dismissed_player_id,
                    "fielderId": self.wicket.fielder_id,
                }
                if self.wicket is not None else None
            ),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "BallRecord":
        extra = d.get("extra")
        wicket = d.get("wicket")
        return cls(
            sequence_number=int(d["sequenceNumber"]),
            bowler_id=str(d["bowlerId"]),
            striker_id=str(d["strikerId"]),
            non_striker_id=str(d["nonStrikerId"]),
            runs=int(d.get("runs", 0)),
            extra=Extra(ExtraKind(extra["kind"]), int(extra["runs"])) if extra else None,
            wicket=(
                Wicket(
                    DismissalType(wicket["type"]),
                    str(wicket["dismissedPlayerId"]),
                    wicket.get("fielderId"),
                )
                if wicket else None
            ),
        )


# -----------------------------
# Match / format (collaborator records)
# -----------------------------
@dataclass(frozen=True)
class MatchFormat:
    overs_limit: int = 20
    players_per_team: int = 11
    max_overs_per_bowler: int = 4
    powerplay_overs: int = 6

    @property
    def max_legal_balls(self) -> int:
        return self.overs_limit * BALLS_PER_OVER

    @property
    def bowler_ball_quota(self) -> int:
        return self.max_overs_per_bowler * BALLS_PER_OVER

    @property
    def max_wickets(self) -> int:
        return self.players_per_team - 1


@dataclass(frozen=True)
class Team:
    team_id: str
    name: str
    players: tuple = ()

    def has_player(self, player_id: str) -> bool:
        # An empty roster means the collaborator did not supply one.
        return not self.players or player_id in self.players


@dataclass
class Match:
    match_id: str
    team1: Team
    team2: Team
    format: MatchFormat
    innings_ids: List[str] = field(default_factory=list)

    def team(self, team_id: str) -> Optional[Team]:
        if team_id == self.team1.team_id:
            return self.team1
        if team_id == self.team2.team_id:
            return self.team2
        return None
