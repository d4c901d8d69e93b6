# scoring_api/errors.py
from __future__ import annotations

from typing import Any, Dict


class ScoringError(Exception):
    """Base class for everything the scoring engine rejects or reports."""

    code = "scoring_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


# -----------------------------
# Precondition errors (nothing mutated, fix input and retry)
# -----------------------------
class PreconditionError(ScoringError):
    code = "precondition_failed"


class BatsmenNotSetError(PreconditionError):
    code = "batsmen_not_set"


class BowlerNotSetError(PreconditionError):
    code = "bowler_not_set"


class BatsmanRequiredError(PreconditionError):
    code = "batsman_required"


class OverChangeRequiredError(PreconditionError):
    code = "over_change_required"


class QuotaExceededError(PreconditionError):
    code = "quota_exceeded"


class SameBowlerConsecutiveOversError(PreconditionError):
    code = "same_bowler_consecutive_overs"


class InvalidRosterError(PreconditionError):
    code = "invalid_roster"


class InvalidDismissalError(PreconditionError):
    code = "invalid_dismissal"


class InningsClosedError(PreconditionError):
    code = "innings_closed"


class InningsNotReadyError(PreconditionError):
    code = "innings_not_ready"


class MutationInProgressError(PreconditionError):
    code = "mutation_in_progress"


# -----------------------------
# Other engine errors
# -----------------------------
class InvalidBallError(ScoringError):
    """Malformed ball proposal (bad runs / extra combination)."""
    code = "invalid_ball"


class NothingToUndoError(ScoringError):
    code = "nothing_to_undo"


class NotFoundError(ScoringError):
    code = "not_found"


class ReplayInconsistencyError(ScoringError):
    """Replayed state after undo differs from the snapshot taken at append time."""
    code = "replay_inconsistency"


class InningsHaltedError(ScoringError):
    code = "innings_halted"


class BackendSyncError(Exception):
    """Raised when pushing a ball to the persistence backend fails."""

    def __init__(self, message: str, *, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable
