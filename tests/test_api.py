import uuid

import pytest
from fastapi.testclient import TestClient

from main import app

client = TestClient(app)

HOME_PLAYERS = [f"h{i}" for i in range(1, 12)]
AWAY_PLAYERS = [f"a{i}" for i in range(1, 12)]


def _new_match() -> str:
    resp = client.post("/api/matches", json={
        "match_id": f"api-{uuid.uuid4().hex[:8]}",
        "team1": {"team_id": "HOME", "name": "Home XI", "players": HOME_PLAYERS},
        "team2": {"team_id": "AWAY", "name": "Away XI", "players": AWAY_PLAYERS},
        "format": {"overs_limit": 20, "players_per_team": 11, "max_overs_per_bowler": 4},
    })
    assert resp.status_code == 200
    return resp.json()["match_id"]


@pytest.fixture
def live_innings() -> str:
    match_id = _new_match()
    resp = client.post(f"/api/matches/{match_id}/innings", json={"batting_team_id": "HOME", "bowling_team_id": "AWAY"})
    assert resp.status_code == 200
    innings_id = resp.json()["innings_id"]

    assert client.put(f"/api/innings/{innings_id}/batsmen", json={"striker_id": "h1", "non_striker_id": "h2"}).status_code == 200
    assert client.put(f"/api/innings/{innings_id}/bowler", json={"bowler_id": "a1"}).status_code == 200
    return innings_id


def test_health():
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_over_flow_with_bowler_change_and_undo(live_innings):
    url = f"/api/innings/{live_innings}"
    for i in range(6):
        resp = client.post(f"{url}/balls", json={"runs": 1})
        assert resp.status_code == 200
    body = resp.json()
    assert body["over_complete"]
    assert body["over"]["over"] == 1
    assert body["summary"]["overs"] == "1.0"

    resp = client.post(f"{url}/balls", json={"runs": 0})
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "over_change_required"

    resp = client.put(f"{url}/bowler", json={"bowler_id": "a1"})
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "same_bowler_consecutive_overs"

    assert client.put(f"{url}/bowler", json={"bowler_id": "a2"}).status_code == 200
    resp = client.post(f"{url}/balls", json={"extra_kind": "wide"})
    assert resp.status_code == 200
    assert resp.json()["summary"]["runs"] == 7
    assert resp.json()["ball"]["sequenceNumber"] == 7

    resp = client.delete(f"{url}/balls/last")
    assert resp.status_code == 200
    assert resp.json()["removed"]["sequenceNumber"] == 7
    assert resp.json()["summary"]["runs"] == 6
    assert resp.json()["summary"]["bowler_id"] == "a2"


def test_wicket_requires_new_batsman(live_innings):
    url = f"/api/innings/{live_innings}"
    resp = client.post(f"{url}/balls", json={"wicket_type": "caught", "fielder_id": "a5"})
    assert resp.status_code == 200
    assert resp.json()["summary"]["wickets"] == 1

    resp = client.post(f"{url}/balls", json={"runs": 1})
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "batsman_required"

    assert client.put(f"{url}/batsmen", json={"striker_id": "h3", "non_striker_id": "h2"}).status_code == 200
    card = client.get(f"{url}/scorecard").json()
    assert card["batting"][0]["dismissal"]["type"] == "caught"
    assert card["fall_of_wickets"][0]["player_id"] == "h1"


def test_invalid_input_is_rejected(live_innings):
    url = f"/api/innings/{live_innings}"
    assert client.post(f"{url}/balls", json={"runs": -1}).status_code == 422
    assert client.post(f"{url}/balls", json={"extra_kind": "beamer"}).status_code == 422

    resp = client.post(f"{url}/balls", json={"wicket_type": "caught", "dismissed_player_id": "h9"})
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "invalid_dismissal"

    resp = client.delete(f"{url}/balls/last")
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "nothing_to_undo"


def test_unknown_innings_is_404():
    resp = client.get("/api/innings/does-not-exist")
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "not_found"


def test_csv_export_and_sync_status(live_innings):
    url = f"/api/innings/{live_innings}"
    for runs in (0, 4, 1):
        client.post(f"{url}/balls", json={"runs": runs})

    resp = client.get(f"{url}/export.csv")
    assert resp.status_code == 200
    lines = resp.text.strip().splitlines()
    assert lines[0].startswith("sequence_number,over,bowler_id")
    assert len(lines) == 4
    assert lines[-1].endswith("5/0")

    resp = client.get(f"{url}/export.csv", params={"table": "bowling"})
    assert resp.text.splitlines()[1].startswith("a1,0.3,3,0,5,0")

    sync = client.get(f"{url}/sync").json()
    assert sync["backend_enabled"] is False
    assert sync["failures_count"] == 0
    assert sync["pending"] == 0


def test_end_innings_and_restore(live_innings):
    url = f"/api/innings/{live_innings}"
    client.post(f"{url}/balls", json={"runs": 6})
    client.post(f"{url}/balls", json={"runs": 2, "extra_kind": "legBye"})

    exported = client.get(f"{url}/export").json()
    assert len(exported["balls"]) == 2

    ended = client.post(f"{url}/end").json()
    assert ended["closed_reason"] == "declared"
    assert client.post(f"{url}/balls", json={"runs": 1}).status_code == 409

    exported["match_id"] = _new_match()
    exported["innings_id"] = f"restored-{uuid.uuid4().hex[:8]}"
    resp = client.post("/api/innings/restore", json=exported)
    assert resp.status_code == 200
    summary = resp.json()["summary"]
    assert summary["runs"] == 8
    assert summary["phase"] == "live"


def test_penalty_runs_are_not_an_extra_kind(live_innings):
    url = f"/api/innings/{live_innings}"
    resp = client.post(f"{url}/balls", json={"runs": 5, "extra_kind": "penalty"})
    assert resp.status_code == 422

    summary = client.get(url).json()
    assert summary["runs"] == 0
    assert set(summary["extras"]) == {"wides", "no_balls", "byes", "leg_byes", "total"}


def test_summary_reports_powerplay(live_innings):
    url = f"/api/innings/{live_innings}"
    for _ in range(6):
        client.post(f"{url}/balls", json={"runs": 0})
    assert client.get(url).json()["powerplay"] == {"overs": 6, "completed": 1, "active": True}
