import pytest

from conftest import bowl_over
from scoring_api.models import DismissalType, ExtraKind


def test_runs_conceded_exclude_byes_and_leg_byes(innings):
    innings.record_ball(runs=4)
    innings.record_ball(runs=2, extra_kind=ExtraKind.BYE)
    innings.record_ball(runs=1, extra_kind=ExtraKind.LEG_BYE)
    innings.record_ball(extra_kind=ExtraKind.WIDE)
    innings.record_ball(runs=1, extra_kind=ExtraKind.NO_BALL)

    a1 = innings.state.bowling.records["a1"]
    assert a1.runs_conceded == 4 + 1 + 2
    assert a1.legal_balls == 3
    assert a1.wides == 1
    assert a1.no_balls == 1
    assert innings.totals().runs == 4 + 2 + 1 + 1 + 2


@pytest.mark.parametrize("dismissal", [DismissalType.BOWLED, DismissalType.CAUGHT, DismissalType.LBW])
def test_wicket_credited_to_bowler(innings, dismissal):
    innings.record_ball(wicket_type=dismissal)
    assert innings.state.bowling.records["a1"].wickets == 1
    assert innings.totals().wickets == 1


def test_run_out_not_credited_to_bowler(innings):
    innings.record_ball(runs=1, wicket_type=DismissalType.RUN_OUT, dismissed_player_id="h1")
    assert innings.state.bowling.records["a1"].wickets == 0
    assert innings.totals().wickets == 1
    assert innings.state.batting.records["h1"].dismissal.bowler_id is None


def test_no_ball_protects_bowler_credit(innings):
    innings.record_ball(extra_kind=ExtraKind.NO_BALL, wicket_type=DismissalType.CAUGHT)
    ball = innings.ledger[-1]
    assert ball.extra.kind == ExtraKind.NO_BALL
    assert innings.state.bowling.records["a1"].wickets == 0


def test_stumped_off_a_wide_is_credited(innings):
    innings.record_ball(extra_kind=ExtraKind.WIDE, wicket_type=DismissalType.STUMPED)
    assert innings.state.bowling.records["a1"].wickets == 1


def test_maiden_over(innings):
    bowl_over(innings, "a1")
    assert innings.state.bowling.records["a1"].maidens == 1
    assert innings.state.over.completed[0].is_maiden


def test_byes_do_not_break_a_maiden(innings):
    innings.record_ball(runs=4, extra_kind=ExtraKind.BYE)
    innings.record_ball(runs=1, extra_kind=ExtraKind.LEG_BYE)
    for _ in range(4):
        innings.record_ball()
    assert innings.state.bowling.records["a1"].maidens == 1


def test_wide_breaks_a_maiden(innings):
    innings.record_ball(extra_kind=ExtraKind.WIDE)
    for _ in range(6):
        innings.record_ball()
    assert innings.state.bowling.records["a1"].maidens == 0


def test_shared_over_is_not_a_maiden(innings):
    for _ in range(3):
        innings.record_ball()
    innings.set_bowler("a2")
    for _ in range(3):
        innings.record_ball()
    assert innings.state.bowling.records["a1"].maidens == 0
    assert innings.state.bowling.records["a2"].maidens == 0


def test_bowler_card(innings):
    bowl_over(innings, "a1", runs=1)
    card = innings.state.bowling.records["a1"].to_dict()
    assert card["overs"] == "1.0"
    assert card["runs"] == 6
    assert card["economy"] == 6.0
