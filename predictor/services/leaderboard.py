"""
Leaderboard aggregation.

Standings are rebuilt from the full prediction set on every request; no
running totals are stored anywhere.
"""

from collections import defaultdict, namedtuple
from dataclasses import asdict, dataclass

from predictor.models import Prediction, User
from predictor.utils.scoring import CORRECT_WINNER_ONLY, EXACT_SCORE

Leaderboard = namedtuple("Leaderboard", ["entries", "requesting_user_entry"])


@dataclass
class LeaderboardEntry:
    user_id: int
    user_name: str
    department: str = None
    total_points: int = 0
    total_predictions: int = 0
    exact_scores: int = 0
    correct_winners: int = 0
    rank: int = 0

    def to_dict(self):
        return asdict(self)


def summarize_user(user, predictions):
    """Fold one user's predictions into an unranked entry"""
    entry = LeaderboardEntry(
        user_id=user.id,
        user_name=user.name,
        department=getattr(user, "department", None),
    )

    for prediction in predictions:
        entry.total_points += prediction.points
        entry.total_predictions += 1
        if prediction.points == EXACT_SCORE:
            entry.exact_scores += 1
        if prediction.points >= CORRECT_WINNER_ONLY:
            entry.correct_winners += 1

    return entry


def build_leaderboard(users, predictions_by_user, requesting_user_id=None):
    """
    Rank all users by their predictions.

    Ordering is total points (highest first), then number of predictions
    (fewest first). Users tied on both keep their input order. Ranks run
    1..n without gaps or shared positions.

    Args:
        users: iterable of objects with id, name and department
        predictions_by_user: mapping of user id to that user's predictions
        requesting_user_id: optional id whose entry is returned separately

    Returns:
        Leaderboard(entries, requesting_user_entry)
    """
    entries = [
        summarize_user(user, predictions_by_user.get(user.id, ())) for user in users
    ]

    # list.sort is stable, which gives full ties their input order
    entries.sort(key=lambda e: (-e.total_points, e.total_predictions))

    for position, entry in enumerate(entries, start=1):
        entry.rank = position

    requesting_user_entry = None
    if requesting_user_id is not None:
        requesting_user_entry = next(
            (e for e in entries if e.user_id == requesting_user_id), None
        )

    return Leaderboard(entries, requesting_user_entry)


def get_leaderboard(requesting_user_id=None):
    """Leaderboard over all active users, read fresh from the database"""
    users = User.query.filter(User.is_active.is_(True)).order_by(User.id).all()

    predictions_by_user = defaultdict(list)
    for prediction in Prediction.query.all():
        predictions_by_user[prediction.user_id].append(prediction)

    return build_leaderboard(users, predictions_by_user, requesting_user_id)
