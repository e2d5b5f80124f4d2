"""
tests/test_gate.py: kickoff locking and countdown
"""

from datetime import datetime, timedelta, timezone

from predictor.utils.gate import (
    GateState,
    TimeRemaining,
    gate_info,
    gate_state,
    is_open,
    time_remaining,
)

KICKOFF = datetime(2026, 6, 11, 19, 0, tzinfo=timezone.utc)


def test_open_before_kickoff():
    assert gate_state(KICKOFF - timedelta(seconds=1), KICKOFF) is GateState.OPEN
    assert is_open(KICKOFF - timedelta(days=3), KICKOFF)


def test_locked_exactly_at_kickoff():
    assert gate_state(KICKOFF, KICKOFF) is GateState.LOCKED
    assert not is_open(KICKOFF, KICKOFF)


def test_locked_after_kickoff():
    assert gate_state(KICKOFF + timedelta(minutes=90), KICKOFF) is GateState.LOCKED


def test_naive_kickoff_is_treated_as_utc():
    naive_kickoff = KICKOFF.replace(tzinfo=None)
    assert gate_state(KICKOFF - timedelta(seconds=1), naive_kickoff) is GateState.OPEN
    assert gate_state(KICKOFF, naive_kickoff) is GateState.LOCKED


def test_other_timezones_compare_by_instant():
    plus_two = timezone(timedelta(hours=2))
    now = datetime(2026, 6, 11, 20, 59, tzinfo=plus_two)  # 18:59 UTC
    assert gate_state(now, KICKOFF) is GateState.OPEN


def test_time_remaining_breakdown():
    now = KICKOFF - timedelta(days=2, hours=3, minutes=4, seconds=5)
    assert time_remaining(now, KICKOFF) == TimeRemaining(2, 3, 4, 5, False)


def test_time_remaining_expired_at_and_after_kickoff():
    assert time_remaining(KICKOFF, KICKOFF) == TimeRemaining(0, 0, 0, 0, True)
    assert time_remaining(KICKOFF + timedelta(hours=1), KICKOFF).expired


def test_time_remaining_under_a_second_is_not_expired():
    remaining = time_remaining(KICKOFF - timedelta(milliseconds=500), KICKOFF)
    assert remaining == TimeRemaining(0, 0, 0, 0, False)


def test_gate_info_uses_one_now():
    info = gate_info(KICKOFF - timedelta(minutes=1), KICKOFF)
    assert info == {
        "state": "open",
        "time_remaining": {
            "days": 0,
            "hours": 0,
            "minutes": 1,
            "seconds": 0,
            "expired": False,
        },
    }
