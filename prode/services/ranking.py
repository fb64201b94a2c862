"""
Leaderboard computation

Totals are derived on demand from every prediction and every match; nothing
here is persisted. Ordering is points, then exact results, then correct
winners, all descending. Players still tied keep the order in which they
first appear in the predictions, and every player gets a distinct position.
"""

import logging
from dataclasses import dataclass

from prode.utils.scoring import EXACT, WINNER, evaluate_prediction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankingEntry:
    user_id: int
    display_name: str
    points: int
    exact_predictions: int
    winner_predictions: int
    total_predictions: int
    position: int

    def to_dict(self):
        return {
            "position": self.position,
            "user_id": self.user_id,
            "display_name": self.display_name,
            "points": self.points,
            "exact_predictions": self.exact_predictions,
            "winner_predictions": self.winner_predictions,
            "total_predictions": self.total_predictions,
        }


class _Tally:
    def __init__(self):
        self.points = 0
        self.exact = 0
        self.winner = 0
        self.total = 0


def compute_ranking(predictions, matches, display_names=None):
    """
    Rank every user who made at least one prediction.

    Args:
        predictions: iterable of PredictionRecord
        matches: iterable of MatchRecord
        display_names: optional {user_id: name}; the user id is used otherwise

    Returns:
        list of RankingEntry, position 1 first
    """
    display_names = display_names or {}

    matches_by_id = {}
    for match in matches:
        matches_by_id.setdefault(match.id, match)

    # dict keeps first-appearance order, which breaks the remaining ties
    tallies = {}
    for prediction in predictions:
        tally = tallies.setdefault(prediction.user_id, _Tally())
        tally.total += 1

        match = matches_by_id.get(prediction.match_id)
        if match is None:
            continue

        result = evaluate_prediction(prediction, match)
        tally.points += result.points
        if result.outcome == EXACT:
            tally.exact += 1
        elif result.outcome == WINNER:
            tally.winner += 1

    ordered = sorted(
        tallies.items(),
        key=lambda item: (item[1].points, item[1].exact, item[1].winner),
        reverse=True,
    )

    return [
        RankingEntry(
            user_id=user_id,
            display_name=display_names.get(user_id) or str(user_id),
            points=tally.points,
            exact_predictions=tally.exact,
            winner_predictions=tally.winner,
            total_predictions=tally.total,
            position=position,
        )
        for position, (user_id, tally) in enumerate(ordered, start=1)
    ]


class RankingService:
    """Loads predictions, matches and names from a store and ranks them"""

    def __init__(self, store):
        self.store = store

    def get_ranking(self):
        predictions = self.store.find_all_predictions()
        matches = self.store.find_all_matches()
        names = self.store.display_names({p.user_id for p in predictions})

        ranking = compute_ranking(predictions, matches, names)
        logger.debug(
            f"Computed ranking for {len(ranking)} players "
            f"from {len(predictions)} predictions"
        )
        return ranking
