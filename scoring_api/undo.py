# scoring_api/undo.py
from __future__ import annotations

import logging
from typing import Dict, Tuple

from scoring_api.errors import ReplayInconsistencyError
from scoring_api.ledger import BallLedger
from scoring_api.models import BallRecord
from scoring_api.state import DerivedState

logger = logging.getLogger(__name__)


class UndoController:
    """
    Reverts the latest ball by truncating the ledger and replaying the rest.

    A snapshot of the derived state is kept for every ball appended in this
    process; after replay the result must equal that snapshot exactly.
    """

    def __init__(self) -> None:
        self._snapshots: Dict[int, DerivedState] = {}

    def remember(self, sequence_number: int, state: DerivedState) -> None:
        self._snapshots[sequence_number] = state.snapshot()

    def undo(self, ledger: BallLedger) -> Tuple[BallRecord, DerivedState]:
        """
        Returns (removed ball, state as it was right before that ball).
        Raises NothingToUndoError on an empty ledger.
        """
        removed = ledger.truncate_last()
        state = ledger.replay()
        state.restore_roster(removed.striker_id, removed.non_striker_id, removed.bowler_id)

        expected = self._snapshots.pop(removed.sequence_number, None)
        if expected is not None and expected != state:
            logger.error("Replay after undo of ball #%d diverged from snapshot", removed.sequence_number)
            raise ReplayInconsistencyError(
                f"Replayed state after undoing ball #{removed.sequence_number} does not match the "
                f"state recorded before it; manual reconciliation required."
            )
        return removed, state
