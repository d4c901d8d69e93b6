# scoring_api/engine.py
from __future__ import annotations

import logging
import threading
import uuid
from collections import deque
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Deque, Dict, Iterator, List, Optional, Tuple

from scoring_api.aggregator import target_for
from scoring_api.errors import (
    BackendSyncError,
    InningsNotReadyError,
    InvalidRosterError,
    MutationInProgressError,
    NotFoundError,
    ScoringError,
)
from scoring_api.innings import Innings
from scoring_api.models import BallRecord, DismissalType, ExtraKind, Match, MatchFormat, Team

logger = logging.getLogger(__name__)

MAX_INNINGS = 2


class ScoringEngine:
    """
    Owns every match and innings in this process and exposes the scoring
    operations. One mutation per innings may be in flight at a time.

    `publisher` (optional) is the persistence collaborator. Committed balls
    and undos are queued per innings in commit order and only reach it
    through flush_sync.
    """

    def __init__(self, publisher=None):
        self.publisher = publisher
        self._matches: Dict[str, Match] = {}
        self._innings: Dict[str, Innings] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._sync_locks: Dict[str, threading.Lock] = {}
        self._outbox: Dict[str, Deque[Tuple[str, int, Optional[BallRecord]]]] = {}
        self._registry_lock = threading.Lock()

    # -----------------------
    # Lookup helpers
    # -----------------------
    def get_match(self, match_id: str) -> Match:
        m = self._matches.get(match_id)
        if m is None:
            raise NotFoundError(f"Unknown match: {match_id}")
        return m

    def get_innings(self, innings_id: str) -> Innings:
        inn = self._innings.get(innings_id)
        if inn is None:
            raise NotFoundError(f"Unknown innings: {innings_id}")
        return inn

    @contextmanager
    def _mutation(self, innings_id: str, op: str) -> Iterator[Innings]:
        inn = self.get_innings(innings_id)
        lock = self._locks[innings_id]
        if not lock.acquire(blocking=False):
            logger.warning("Innings %s: %s rejected, another change is in progress", innings_id, op)
            raise MutationInProgressError("Another change to this innings is still being processed; retry.")
        try:
            yield inn
        except ScoringError as e:
            logger.warning("Innings %s: %s rejected [%s] %s", innings_id, op, e.code, e.message)
            raise
        finally:
            lock.release()

    def _register(self, inn: Innings) -> None:
        with self._registry_lock:
            self._innings[inn.innings_id] = inn
            self._locks[inn.innings_id] = threading.Lock()
            self._sync_locks[inn.innings_id] = threading.Lock()
            self._outbox[inn.innings_id] = deque()

    # -----------------------
    # Match registry (collaborator shim)
    # -----------------------
    def create_match(
        self,
        team1: Team,
        team2: Team,
        fmt: Optional[MatchFormat] = None,
        match_id: Optional[str] = None,
    ) -> Match:
        if team1.team_id == team2.team_id:
            raise InvalidRosterError("team1 and team2 must be different")
        fmt = fmt or MatchFormat()
        if fmt.overs_limit <= 0 or fmt.max_overs_per_bowler <= 0 or fmt.players_per_team < 2:
            raise InvalidRosterError("Match format needs positive overs / bowler quota and at least 2 players")
        if fmt.max_overs_per_bowler > fmt.overs_limit:
            raise InvalidRosterError("max_overs_per_bowler cannot exceed overs_limit")
        if not 0 <= fmt.powerplay_overs <= fmt.overs_limit:
            raise InvalidRosterError("powerplay_overs must be between 0 and overs_limit")

        match = Match(match_id=match_id or uuid.uuid4().hex, team1=team1, team2=team2, format=fmt)
        with self._registry_lock:
            self._matches[match.match_id] = match
        logger.info("Match %s created: %s vs %s", match.match_id, team1.team_id, team2.team_id)
        return match

    # -----------------------
    # Scoring operations
    # -----------------------
    def start_innings(self, match_id: str, batting_team_id: str, bowling_team_id: str) -> str:
        match = self.get_match(match_id)
        batting = match.team(batting_team_id)
        bowling = match.team(bowling_team_id)
        if batting is None or bowling is None:
            raise InvalidRosterError(f"Teams must belong to match {match_id}")
        if batting.team_id == bowling.team_id:
            raise InvalidRosterError("Batting and bowling teams must be different")

        target: Optional[int] = None
        previous: Optional[Innings] = None
        if len(match.innings_ids) >= MAX_INNINGS:
            raise InningsNotReadyError(f"Match {match_id} already has {MAX_INNINGS} innings.")
        if match.innings_ids:
            previous = self.get_innings(match.innings_ids[-1])
            if not previous.is_closed:
                raise InningsNotReadyError("Close the first innings before starting the second.")
            if previous.batting_team.team_id == batting_team_id:
                raise InvalidRosterError(f"{batting_team_id} has already batted; the other team bats second.")
            target = target_for(previous.totals().runs)

        inn = Innings(
            innings_id=uuid.uuid4().hex,
            match_id=match_id,
            number=len(match.innings_ids) + 1,
            batting_team=batting,
            bowling_team=bowling,
            fmt=match.format,
            target=target,
        )
        self._register(inn)
        match.innings_ids.append(inn.innings_id)
        if previous is not None:
            previous.frozen = True
        logger.info(
            "Innings %s started (match %s, #%d): %s batting, target=%s",
            inn.innings_id, match_id, inn.number, batting_team_id, target,
        )
        return inn.innings_id

    def set_batsmen(self, innings_id: str, striker_id: str, non_striker_id: str) -> None:
        with self._mutation(innings_id, "set_batsmen") as inn:
            inn.set_batsmen(striker_id, non_striker_id)

    def set_bowler(self, innings_id: str, bowler_id: str) -> None:
        with self._mutation(innings_id, "set_bowler") as inn:
            inn.set_bowler(bowler_id)

    def swap_batsmen(self, innings_id: str) -> None:
        with self._mutation(innings_id, "swap_batsmen") as inn:
            inn.swap_batsmen()

    def record_ball(
        self,
        innings_id: str,
        runs: int = 0,
        extra_kind: Optional[ExtraKind] = None,
        wicket_type: Optional[DismissalType] = None,
        dismissed_player_id: Optional[str] = None,
        fielder_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        with self._mutation(innings_id, "record_ball") as inn:
            outcome = inn.record_ball(
                runs=runs,
                extra_kind=extra_kind,
                wicket_type=wicket_type,
                dismissed_player_id=dismissed_player_id,
                fielder_id=fielder_id,
            )
            ball = inn.ledger.last()
            self._enqueue(innings_id, "publish", ball.sequence_number, ball)
            return outcome

    def undo_last_ball(self, innings_id: str) -> Dict[str, Any]:
        with self._mutation(innings_id, "undo_last_ball") as inn:
            removed = inn.undo_last_ball()
            self._enqueue(innings_id, "retract", removed.sequence_number)
            return {"removed": removed.to_dict(), "summary": inn.summary()}

    def end_innings(self, innings_id: str) -> Dict[str, Any]:
        with self._mutation(innings_id, "end_innings") as inn:
            inn.end_innings()
            return inn.summary()

    def get_innings_summary(self, innings_id: str) -> Dict[str, Any]:
        return self.get_innings(innings_id).summary()

    def get_scorecard(self, innings_id: str) -> Dict[str, Any]:
        return self.get_innings(innings_id).scorecard()

    # -----------------------
    # Persistence layout
    # -----------------------
    def export_innings(self, innings_id: str) -> Dict[str, Any]:
        return self.get_innings(innings_id).to_dict()

    def restore_innings(self, data: Dict[str, Any]) -> str:
        """Rebuilds an innings (ledger + roster) for a match already registered."""
        match = self.get_match(str(data["match_id"]))
        batting = match.team(str(data["batting_team_id"]))
        bowling = match.team(str(data["bowling_team_id"]))
        if batting is None or bowling is None:
            raise InvalidRosterError("Persisted innings teams do not belong to the match")
        if len(match.innings_ids) >= MAX_INNINGS:
            raise InningsNotReadyError(f"Match {match.match_id} already has {MAX_INNINGS} innings.")
        if str(data["innings_id"]) in self._innings:
            raise InvalidRosterError(f"Innings {data['innings_id']} is already loaded")

        inn = Innings.from_dict(data, batting, bowling, match.format)
        self._register(inn)
        match.innings_ids.append(inn.innings_id)
        logger.info("Innings %s restored with %d balls", inn.innings_id, len(inn.ledger))
        return inn.innings_id

    # -----------------------
    # Backend confirmation (runs after the local change committed)
    # -----------------------
    def _enqueue(self, innings_id: str, op: str, seq: int, ball: Optional[BallRecord] = None) -> None:
        # Called with the mutation lock held, so outbox order is commit order.
        if self.publisher is not None:
            self._outbox[innings_id].append((op, seq, ball))

    def pending_sync(self, innings_id: str) -> int:
        self.get_innings(innings_id)
        return len(self._outbox[innings_id])

    def flush_sync(self, innings_id: str) -> bool:
        """
        Sends queued publish / retract calls for one innings, oldest first.
        Only one drainer per innings runs at a time; a concurrent caller waits
        on the sync lock and then sends whatever is still queued.
        Returns False if any call failed (failures are recorded, not raised).
        """
        outbox = self._outbox.get(innings_id)
        if outbox is None or self.publisher is None:
            return True
        ok = True
        with self._sync_locks[innings_id]:
            while outbox:
                op, seq, ball = outbox.popleft()
                try:
                    if op == "publish":
                        self.publisher.publish(innings_id, ball)
                    else:
                        self.publisher.retract(innings_id, seq)
                except BackendSyncError as e:
                    self._record_sync_failure(innings_id, op, seq, e)
                    ok = False
        return ok

    def _record_sync_failure(self, innings_id: str, op: str, seq: Any, err: Exception) -> None:
        logger.error("Innings %s: backend %s of ball #%s failed: %s", innings_id, op, seq, err)
        inn = self._innings.get(innings_id)
        if inn is None:
            return
        inn.sync_failures.append({
            "operation": op,
            "sequence_number": seq,
            "error": str(err),
            "time": datetime.utcnow().isoformat() + "Z",
        })

    def sync_failures(self, innings_id: str) -> List[Dict[str, Any]]:
        return list(self.get_innings(innings_id).sync_failures)
