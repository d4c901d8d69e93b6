# main.py (live scoring service)
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Literal, Optional

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from scoring_api.config import (
    validate_config,
    DEFAULT_OVERS_LIMIT,
    DEFAULT_PLAYERS_PER_TEAM,
    DEFAULT_MAX_OVERS_PER_BOWLER,
    DEFAULT_POWERPLAY_OVERS,
    LOG_LEVEL,
)
from scoring_api.engine import ScoringEngine
from scoring_api.errors import (
    InningsHaltedError,
    InvalidBallError,
    NotFoundError,
    NothingToUndoError,
    PreconditionError,
    ReplayInconsistencyError,
    ScoringError,
)
from scoring_api.export import batting_frame, bowling_frame, ledger_frame
from scoring_api.models import DismissalType, ExtraKind, MatchFormat, Team
from scoring_api.sync import build_publisher

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("scoring_api")

# -----------------------
# App
# -----------------------
app = FastAPI(
    title="Cricket Live Scoring API",
    version="0.1.0",
    description="Ball-by-ball live scoring engine: ledger, overs, strike rotation, bowler quotas and undo",
)

engine = ScoringEngine(publisher=build_publisher())


@app.on_event("startup")
def on_startup():
    validate_config()


@app.get("/health")
def health_check():
    return {"status": "ok", "time": datetime.utcnow().isoformat() + "Z"}


# -----------------------
# Helpers
# -----------------------
def _http_error(e: ScoringError) -> HTTPException:
    if isinstance(e, NotFoundError):
        status = 404
    elif isinstance(e, InvalidBallError):
        status = 400
    elif isinstance(e, (PreconditionError, NothingToUndoError)):
        status = 409
    elif isinstance(e, InningsHaltedError):
        status = 423
    elif isinstance(e, ReplayInconsistencyError):
        status = 500
    else:
        status = 400
    return HTTPException(status_code=status, detail=e.to_dict())


# -----------------------
# Matches (collaborator shim: teams + format)
# -----------------------
class TeamIn(BaseModel):
    team_id: str
    name: str = ""
    players: list[str] = Field(default_factory=list, description="Eligible player ids")


class MatchFormatIn(BaseModel):
    overs_limit: int = Field(DEFAULT_OVERS_LIMIT, ge=1)
    players_per_team: int = Field(DEFAULT_PLAYERS_PER_TEAM, ge=2)
    max_overs_per_bowler: int = Field(DEFAULT_MAX_OVERS_PER_BOWLER, ge=1)
    powerplay_overs: int = Field(DEFAULT_POWERPLAY_OVERS, ge=0)


class CreateMatchRequest(BaseModel):
    match_id: Optional[str] = None
    team1: TeamIn
    team2: TeamIn
    format: MatchFormatIn = Field(default_factory=MatchFormatIn)


def _team(t: TeamIn) -> Team:
    return Team(team_id=t.team_id.strip(), name=t.name or t.team_id, players=tuple(t.players))


@app.post("/api/matches")
def create_match(req: CreateMatchRequest):
    try:
        match = engine.create_match(
            _team(req.team1),
            _team(req.team2),
            MatchFormat(**req.format.model_dump()),
            match_id=req.match_id,
        )
    except ScoringError as e:
        raise _http_error(e)
    return {"match_id": match.match_id, "format": req.format.model_dump()}


class StartInningsRequest(BaseModel):
    batting_team_id: str
    bowling_team_id: str


@app.post("/api/matches/{match_id}/innings")
def start_innings(match_id: str, req: StartInningsRequest):
    try:
        innings_id = engine.start_innings(match_id, req.batting_team_id, req.bowling_team_id)
        return {"innings_id": innings_id, "summary": engine.get_innings_summary(innings_id)}
    except ScoringError as e:
        raise _http_error(e)


# -----------------------
# Roster selection
# -----------------------
class SetBatsmenRequest(BaseModel):
    striker_id: str
    non_striker_id: str


@app.put("/api/innings/{innings_id}/batsmen")
def set_batsmen(innings_id: str, req: SetBatsmenRequest):
    try:
        engine.set_batsmen(innings_id, req.striker_id, req.non_striker_id)
        return {"ok": True, "summary": engine.get_innings_summary(innings_id)}
    except ScoringError as e:
        raise _http_error(e)


class SetBowlerRequest(BaseModel):
    bowler_id: str


@app.put("/api/innings/{innings_id}/bowler")
def set_bowler(innings_id: str, req: SetBowlerRequest):
    try:
        engine.set_bowler(innings_id, req.bowler_id)
        return {"ok": True, "summary": engine.get_innings_summary(innings_id)}
    except ScoringError as e:
        raise _http_error(e)


@app.post("/api/innings/{innings_id}/swap")
def swap_batsmen(innings_id: str):
    try:
        engine.swap_batsmen(innings_id)
        return {"ok": True, "summary": engine.get_innings_summary(innings_id)}
    except ScoringError as e:
        raise _http_error(e)


# -----------------------
# Ball ledger
# -----------------------
class RecordBallRequest(BaseModel):
    runs: int = Field(0, ge=0, description="Runs scored on the ball (off the bat, or run as byes / off a wide)")
    extra_kind: Optional[ExtraKind] = Field(None, description="wide / noBall / bye / legBye")
    wicket_type: Optional[DismissalType] = None
    dismissed_player_id: Optional[str] = Field(None, description="Defaults to the striker")
    fielder_id: Optional[str] = None


@app.post("/api/innings/{innings_id}/balls")
def record_ball(innings_id: str, req: RecordBallRequest, background_tasks: BackgroundTasks):
    try:
        outcome = engine.record_ball(
            innings_id,
            runs=req.runs,
            extra_kind=req.extra_kind,
            wicket_type=req.wicket_type,
            dismissed_player_id=req.dismissed_player_id,
            fielder_id=req.fielder_id,
        )
    except ScoringError as e:
        raise _http_error(e)

    # Local ledger is authoritative; queued backend calls go out after the response, in order.
    background_tasks.add_task(engine.flush_sync, innings_id)
    return outcome


@app.delete("/api/innings/{innings_id}/balls/last")
def undo_last_ball(innings_id: str, background_tasks: BackgroundTasks):
    try:
        result = engine.undo_last_ball(innings_id)
    except ScoringError as e:
        raise _http_error(e)

    background_tasks.add_task(engine.flush_sync, innings_id)
    return result


@app.post("/api/innings/{innings_id}/end")
def end_innings(innings_id: str):
    try:
        return engine.end_innings(innings_id)
    except ScoringError as e:
        raise _http_error(e)


# -----------------------
# Read side
# -----------------------
@app.get("/api/innings/{innings_id}")
def get_innings_summary(innings_id: str):
    try:
        return engine.get_innings_summary(innings_id)
    except ScoringError as e:
        raise _http_error(e)


@app.get("/api/innings/{innings_id}/scorecard")
def get_scorecard(innings_id: str):
    try:
        return engine.get_scorecard(innings_id)
    except ScoringError as e:
        raise _http_error(e)


@app.get("/api/innings/{innings_id}/sync")
def get_sync_status(innings_id: str):
    try:
        failures = engine.sync_failures(innings_id)
        pending = engine.pending_sync(innings_id)
    except ScoringError as e:
        raise _http_error(e)
    return {
        "innings_id": innings_id,
        "backend_enabled": engine.publisher is not None,
        "pending": pending,
        "failures_count": len(failures),
        "failures": failures,
    }


@app.get("/api/innings/{innings_id}/export.csv", response_class=PlainTextResponse)
def export_csv(innings_id: str, table: Literal["ledger", "batting", "bowling"] = "ledger"):
    try:
        inn = engine.get_innings(innings_id)
    except ScoringError as e:
        raise _http_error(e)

    frames = {"ledger": ledger_frame, "batting": batting_frame, "bowling": bowling_frame}
    return PlainTextResponse(frames[table](inn).to_csv(index=False), media_type="text/csv")


# -----------------------
# Persistence layout (ledger + roster)
# -----------------------
class InningsExport(BaseModel):
    innings_id: str
    match_id: str
    number: int = Field(1, ge=1, le=2)
    batting_team_id: str
    bowling_team_id: str
    target: Optional[int] = Field(None, ge=1)
    declared: bool = False
    balls: list[Dict[str, Any]] = Field(default_factory=list)
    roster: Dict[str, Optional[str]] = Field(default_factory=dict)


@app.get("/api/innings/{innings_id}/export")
def export_innings(innings_id: str):
    try:
        return engine.export_innings(innings_id)
    except ScoringError as e:
        raise _http_error(e)


@app.post("/api/innings/restore")
def restore_innings(req: InningsExport):
    try:
        innings_id = engine.restore_innings(req.model_dump())
    except ScoringError as e:
        raise _http_error(e)
    except (KeyError, ValueError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid persisted innings: {str(e)}")
    return {"innings_id": innings_id, "summary": engine.get_innings_summary(innings_id)}
