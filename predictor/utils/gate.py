"""
Prediction gate: whether predictions for a match may still change.

The gate only looks at kickoff. A live or finished match is locked because
its kickoff is in the past. Callers sample ``now`` once per request and pass
the same value to every check made while handling that request.
"""

from collections import namedtuple
from enum import Enum

from predictor.utils.timezone_utils import ensure_utc


class GateState(str, Enum):
    OPEN = "open"
    LOCKED = "locked"


TimeRemaining = namedtuple(
    "TimeRemaining", ["days", "hours", "minutes", "seconds", "expired"]
)


def gate_state(now, kickoff_time):
    """LOCKED when now >= kickoff_time, OPEN otherwise"""
    if ensure_utc(now) >= ensure_utc(kickoff_time):
        return GateState.LOCKED
    return GateState.OPEN


def is_open(now, kickoff_time):
    return gate_state(now, kickoff_time) is GateState.OPEN


def time_remaining(now, kickoff_time):
    """Break the time until kickoff into days, hours, minutes and seconds.

    Once kickoff has passed all components are zero and ``expired`` is True.
    """
    delta = ensure_utc(kickoff_time) - ensure_utc(now)

    if delta.total_seconds() <= 0:
        return TimeRemaining(0, 0, 0, 0, True)

    # Sub-second remainders are dropped; the gate is still open
    days, remainder = divmod(int(delta.total_seconds()), 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes, seconds = divmod(remainder, 60)

    return TimeRemaining(days, hours, minutes, seconds, False)


def gate_info(now, kickoff_time):
    """Gate state and countdown for API responses, from one sampled ``now``"""
    return {
        "state": gate_state(now, kickoff_time).value,
        "time_remaining": time_remaining(now, kickoff_time)._asdict(),
    }
