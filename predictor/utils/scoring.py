"""
Scoring for match predictions.

This is the single implementation of the point rules. The recalculation
sweep, the per-match recalculation after a result is entered and the CLI all
call calculate_points(); nothing else decides how many points a prediction
is worth. For aggregated standings see predictor/services/leaderboard.py.
"""

from enum import Enum

# Point tiers, highest applicable tier wins (no stacking)
EXACT_SCORE = 3
CORRECT_WINNER_AND_DIFFERENCE = 2
CORRECT_WINNER_ONLY = 1
INCORRECT = 0

TIER_LABELS = {
    EXACT_SCORE: "exact_score",
    CORRECT_WINNER_AND_DIFFERENCE: "correct_winner_and_difference",
    CORRECT_WINNER_ONLY: "correct_winner",
    INCORRECT: "incorrect",
}


class Outcome(Enum):
    HOME_WIN = "home_win"
    AWAY_WIN = "away_win"
    DRAW = "draw"


def outcome_of(home, away):
    """Outcome class of a scoreline, from the sign of the goal difference"""
    if home > away:
        return Outcome.HOME_WIN
    if home < away:
        return Outcome.AWAY_WIN
    return Outcome.DRAW


def _check_score(value, name):
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")


def calculate_points(predicted_home, predicted_away, actual_home, actual_away):
    """
    Calculate points for a single prediction.

    Returns:
        3 for the exact score
        2 for the correct outcome with the same goal difference
        1 for the correct outcome only
        0 for the wrong outcome

    Raises:
        ValueError: if any score is missing, negative or not an integer.
            Callers must only score matches that have a final result.
    """
    _check_score(predicted_home, "predicted_home")
    _check_score(predicted_away, "predicted_away")
    _check_score(actual_home, "actual_home")
    _check_score(actual_away, "actual_away")

    if predicted_home == actual_home and predicted_away == actual_away:
        return EXACT_SCORE

    if outcome_of(predicted_home, predicted_away) != outcome_of(
        actual_home, actual_away
    ):
        return INCORRECT

    predicted_difference = abs(predicted_home - predicted_away)
    actual_difference = abs(actual_home - actual_away)

    if predicted_difference == actual_difference:
        return CORRECT_WINNER_AND_DIFFERENCE

    return CORRECT_WINNER_ONLY


def describe_points(points):
    """Label for a point value, e.g. for API responses"""
    return TIER_LABELS.get(points, "unknown")
