import pytest

from conftest import make_innings, play_balls
from scoring_api import aggregator
from scoring_api.innings import InningsPhase
from scoring_api.models import DismissalType, ExtraKind, MatchFormat


def test_total_is_bat_runs_plus_extras(innings):
    innings.record_ball(runs=1)
    innings.record_ball(runs=2, extra_kind=ExtraKind.WIDE)
    innings.record_ball(runs=2, extra_kind=ExtraKind.NO_BALL)
    innings.record_ball(runs=4, extra_kind=ExtraKind.BYE)
    innings.record_ball(runs=1, extra_kind=ExtraKind.LEG_BYE)
    innings.record_ball(runs=6)

    extras = aggregator.extras_breakdown(innings.ledger)
    assert extras == {"wides": 3, "no_balls": 1, "byes": 4, "leg_byes": 1, "total": 9}

    bat_runs = sum(b.runs for b in innings.ledger)
    assert bat_runs == 9
    assert innings.totals().runs == bat_runs + extras["total"] == 18
    assert innings.totals().legal_balls == 4
    assert innings.totals().overs == "0.4"


def test_run_rate_before_first_ball(innings):
    assert innings.summary()["run_rate"] == 0.0
    assert innings.summary()["overs"] == "0.0"


def test_first_innings_has_no_required_rate(innings):
    innings.record_ball(runs=4)
    s = innings.summary()
    assert s["target"] is None
    assert s["required_run_rate"] is None
    assert "runs_needed" not in s


def test_target_is_one_more_than_first_innings():
    assert aggregator.target_for(179) == 180


def test_chase_required_run_rate():
    inn = make_innings(target=180)
    inn.set_batsmen("h1", "h2")
    inn.set_bowler("a1")
    play_balls(inn, 100, lambda i: 2 if i % 2 == 0 else 1)

    s = inn.summary()
    assert s["runs"] == 150
    assert s["overs"] == "16.4"
    assert s["run_rate"] == pytest.approx(9.0)
    assert s["required_run_rate"] == pytest.approx(9.0)
    assert s["runs_needed"] == 30
    assert s["balls_remaining"] == 20


def test_chase_ends_when_target_reached():
    inn = make_innings(target=5)
    inn.set_batsmen("h1", "h2")
    inn.set_bowler("a1")
    inn.record_ball(runs=4)
    out = inn.record_ball(runs=1, extra_kind=ExtraKind.WIDE)

    assert out["innings_closed"]
    assert inn.closed_reason == "target_reached"
    assert inn.phase == InningsPhase.CLOSED
    assert inn.summary()["required_run_rate"] == 0.0


def test_fall_of_wickets_and_partnerships(innings):
    innings.record_ball(runs=1)
    innings.record_ball(runs=4)
    innings.record_ball(wicket_type=DismissalType.BOWLED)
    innings.set_batsmen("h3", "h1")
    innings.record_ball(runs=2)

    fow = aggregator.fall_of_wickets(innings.ledger)
    assert fow == [{
        "wicket": 1,
        "runs": 5,
        "overs": "0.3",
        "player_id": "h2",
        "type": "bowled",
        "sequence_number": 3,
    }]

    parts = aggregator.partnerships(innings.ledger)
    assert parts == [
        {"batsmen": ["h1", "h2"], "runs": 5, "balls": 3, "ended": True},
        {"batsmen": ["h1", "h3"], "runs": 2, "balls": 1, "ended": False},
    ]


def test_scorecard_lists_batting_order_and_overs(innings):
    innings.record_ball(runs=1)
    for _ in range(5):
        innings.record_ball()

    card = innings.scorecard()
    assert [b["player_id"] for b in card["batting"]] == ["h1", "h2"]
    assert card["batting"][0]["dismissal"] == "not out"
    assert [b["player_id"] for b in card["bowling"]] == ["a1"]
    assert card["overs"] == [{"over": 1, "bowler_ids": ["a1"], "runs": 1, "wickets": 0, "maiden": False}]
    assert card["total"]["runs"] == 1


def test_phase_progression():
    inn = make_innings()
    assert inn.phase == InningsPhase.NOT_STARTED
    inn.set_batsmen("h1", "h2")
    assert inn.phase == InningsPhase.AWAITING_OPENERS
    inn.set_bowler("a1")
    assert inn.phase == InningsPhase.LIVE


def test_powerplay_before_first_ball(innings):
    assert innings.summary()["powerplay"] == {"overs": 6, "completed": 0, "active": True}


def test_powerplay_counts_completed_overs_then_ends(innings):
    play_balls(innings, 6)
    assert innings.summary()["powerplay"] == {"overs": 6, "completed": 1, "active": True}

    # wides do not advance the powerplay
    play_balls(innings, 29)
    innings.record_ball(runs=1, extra_kind=ExtraKind.WIDE)
    assert innings.summary()["powerplay"]["completed"] == 5
    assert innings.summary()["powerplay"]["active"]

    play_balls(innings, 1)
    assert innings.summary()["powerplay"] == {"overs": 6, "completed": 6, "active": False}

    play_balls(innings, 12)
    assert innings.summary()["powerplay"]["completed"] == 6


def test_powerplay_follows_the_format():
    inn = make_innings(MatchFormat(overs_limit=10, players_per_team=11, max_overs_per_bowler=2, powerplay_overs=0))
    assert aggregator.powerplay(inn.ledger, inn.format.powerplay_overs) == {"overs": 0, "completed": 0, "active": False}
