# scoring_api/aggregator.py
"""
Innings-level roll-ups.

Everything here is recomputed from the ledger on every call and never
cached across mutations.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from scoring_api.models import BALLS_PER_OVER, BallRecord, ExtraKind
from scoring_api.overs_math import balls_to_overs, required_run_rate as _rrr, run_rate as _rr


@dataclass(frozen=True)
class InningsTotals:
    runs: int = 0
    wickets: int = 0
    legal_balls: int = 0

    @property
    def overs(self) -> str:
        return balls_to_overs(self.legal_balls)


def totals(ledger: Sequence[BallRecord]) -> InningsTotals:
    runs = 0
    wickets = 0
    legal = 0
    for b in ledger:
        runs += b.total_runs
        if b.wicket is not None:
            wickets += 1
        if b.is_legal:
            legal += 1
    return InningsTotals(runs=runs, wickets=wickets, legal_balls=legal)


def run_rate(ledger: Sequence[BallRecord]) -> float:
    t = totals(ledger)
    return _rr(t.runs, t.legal_balls)


def target_for(first_innings_total: int) -> int:
    """Runs the chasing side needs to win."""
    return first_innings_total + 1


def required_run_rate(
    target: Optional[int],
    ledger: Sequence[BallRecord],
    overs_limit: int,
) -> Optional[float]:
    """
    (target - runs) / remaining legal balls * 6.
    None for a first innings (no target) or when no legal balls remain.
    """
    if target is None:
        return None
    t = totals(ledger)
    return _rrr(target, t.runs, t.legal_balls, overs_limit * BALLS_PER_OVER)


def powerplay(ledger: Sequence[BallRecord], powerplay_overs: int) -> Dict[str, Any]:
    """Mandatory fielding-restriction overs at the start of the innings."""
    overs_done = totals(ledger).legal_balls // BALLS_PER_OVER
    return {
        "overs": powerplay_overs,
        "completed": min(overs_done, powerplay_overs),
        "active": overs_done < powerplay_overs,
    }


def extras_breakdown(ledger: Sequence[BallRecord]) -> Dict[str, int]:
    out = {"wides": 0, "no_balls": 0, "byes": 0, "leg_byes": 0}
    keys = {
        ExtraKind.WIDE: "wides",
        ExtraKind.NO_BALL: "no_balls",
        ExtraKind.BYE: "byes",
        ExtraKind.LEG_BYE: "leg_byes",
    }
    for b in ledger:
        if b.extra is not None:
            out[keys[b.extra.kind]] += b.extra.runs
    out["total"] = sum(out.values())
    return out


def fall_of_wickets(ledger: Sequence[BallRecord]) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    runs = 0
    legal = 0
    for b in ledger:
        runs += b.total_runs
        if b.is_legal:
            legal += 1
        if b.wicket is None:
            continue
        out.append({
            "wicket": len(out) + 1,
            "runs": runs,
            "overs": balls_to_overs(legal),
            "player_id": b.wicket.dismissed_player_id,
            "type": b.wicket.type.value,
            "sequence_number": b.sequence_number,
        })
    return out


def partnerships(ledger: Sequence[BallRecord]) -> List[Dict[str, Any]]:
    """
    One entry per pair at the crease. A new partnership starts whenever the
    pair on a ball differs from the open one; a wicket closes it.
    """
    out: List[Dict[str, Any]] = []
    current: Optional[Dict[str, Any]] = None

    for b in ledger:
        pair = sorted([b.striker_id, b.non_striker_id])
        if current is None or current["ended"] or current["batsmen"] != pair:
            if current is not None:
                current["ended"] = True
            current = {"batsmen": pair, "runs": 0, "balls": 0, "ended": False}
            out.append(current)

        current["runs"] += b.total_runs
        if b.is_legal:
            current["balls"] += 1
        if b.wicket is not None:
            current["ended"] = True

    return out
