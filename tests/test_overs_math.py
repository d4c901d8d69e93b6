import pytest

from scoring_api.overs_math import (
    balls_to_overs,
    economy,
    required_run_rate,
    run_rate,
    strike_rate,
)


def test_balls_to_overs():
    assert balls_to_overs(0) == "0.0"
    assert balls_to_overs(118) == "19.4"
    assert balls_to_overs(24) == "4.0"


def test_run_rate_before_first_ball_is_zero():
    assert run_rate(0, 0) == 0.0
    assert run_rate(30, 24) == pytest.approx(7.5)


def test_required_run_rate_chase_scenario():
    # target 180, 150 scored after 100 of 120 balls -> 30 off 20
    assert required_run_rate(180, 150, 100, 120) == pytest.approx(9.0)


def test_required_run_rate_target_met_is_zero():
    assert required_run_rate(180, 185, 110, 120) == 0.0


def test_required_run_rate_no_balls_left():
    assert required_run_rate(180, 170, 120, 120) is None


def test_strike_rate_and_economy():
    assert strike_rate(50, 40) == pytest.approx(125.0)
    assert strike_rate(0, 0) == 0.0
    assert economy(30, 24) == pytest.approx(7.5)
