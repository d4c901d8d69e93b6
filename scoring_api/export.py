# scoring_api/export.py
from __future__ import annotations

from typing import Any, Dict, List

import pandas as pd

from scoring_api.innings import Innings
from scoring_api.overs_math import balls_to_overs

LEDGER_COLUMNS = [
    "sequence_number",
    "over",
    "bowler_id",
    "striker_id",
    "non_striker_id",
    "runs",
    "extra_kind",
    "extra_runs",
    "total_runs",
    "wicket_type",
    "dismissed_player_id",
    "score",
]


def ledger_frame(innings: Innings) -> pd.DataFrame:
    """Ball-by-ball ledger, one row per ball, with running score and overs."""
    rows: List[Dict[str, Any]] = []
    runs = 0
    wickets = 0
    legal = 0
    for b in innings.ledger:
        runs += b.total_runs
        if b.wicket is not None:
            wickets += 1
        if b.is_legal:
            legal += 1
        rows.append({
            "sequence_number": b.sequence_number,
            "over": balls_to_overs(legal),
            "bowler_id": b.bowler_id,
            "striker_id": b.striker_id,
            "non_striker_id": b.non_striker_id,
            "runs": b.runs,
            "extra_kind": b.extra.kind.value if b.extra is not None else None,
            "extra_runs": b.extra_runs,
            "total_runs": b.total_runs,
            "wicket_type": b.wicket.type.value if b.wicket is not None else None,
            "dismissed_player_id": b.wicket.dismissed_player_id if b.wicket is not None else None,
            "score": f"{runs}/{wickets}",
        })
    return pd.DataFrame(rows, columns=LEDGER_COLUMNS)


def batting_frame(innings: Innings) -> pd.DataFrame:
    batting = innings.state.batting
    rows = []
    for pid in batting.order:
        d = batting.records[pid].to_dict()
        dismissal = d.pop("dismissal")
        d["dismissal"] = dismissal if isinstance(dismissal, str) else dismissal["type"]
        rows.append(d)
    return pd.DataFrame(rows, columns=["player_id", "runs", "balls", "fours", "sixes", "strike_rate", "dismissal"])


def bowling_frame(innings: Innings) -> pd.DataFrame:
    bowling = innings.state.bowling
    rows = [bowling.records[pid].to_dict() for pid in bowling.order]
    return pd.DataFrame(
        rows,
        columns=["player_id", "overs", "legal_balls", "maidens", "runs", "wickets", "wides", "no_balls", "economy"],
    )
