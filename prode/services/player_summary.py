"""One player's fixture with their predictions scored, and their totals."""

from dataclasses import dataclass, field
from typing import List, Optional

from prode.records import MatchRecord, PredictionRecord
from prode.utils.scoring import EXACT, WINNER, evaluate_prediction


@dataclass(frozen=True)
class FixtureRow:
    match: MatchRecord
    prediction: Optional[PredictionRecord] = None
    points: int = 0
    outcome: Optional[str] = None

    def to_dict(self):
        data = self.match.to_dict()
        data["prediction"] = self.prediction.to_dict() if self.prediction else None
        data["points"] = self.points
        data["outcome"] = self.outcome
        return data


@dataclass
class PlayerSummary:
    rows: List[FixtureRow] = field(default_factory=list)
    total_predictions: int = 0
    total_points: int = 0
    exact_predictions: int = 0
    winner_predictions: int = 0

    def to_dict(self):
        return {
            "matches": [row.to_dict() for row in self.rows],
            "total_predictions": self.total_predictions,
            "total_points": self.total_points,
            "exact_predictions": self.exact_predictions,
            "winner_predictions": self.winner_predictions,
        }


def summarize_player(predictions, matches):
    """
    Join the fixture with one player's predictions.

    Rows follow the order of ``matches``. Totals only count predictions for
    matches in the fixture; points, exact and winner counts come from
    finished matches.
    """
    by_match = {}
    for prediction in predictions:
        by_match.setdefault(prediction.match_id, prediction)

    summary = PlayerSummary()
    for match in matches:
        prediction = by_match.get(match.id)
        if prediction is None:
            summary.rows.append(FixtureRow(match=match))
            continue

        result = evaluate_prediction(prediction, match)
        summary.rows.append(
            FixtureRow(
                match=match,
                prediction=prediction,
                points=result.points,
                outcome=result.outcome,
            )
        )
        summary.total_predictions += 1
        summary.total_points += result.points
        if result.outcome == EXACT:
            summary.exact_predictions += 1
        elif result.outcome == WINNER:
            summary.winner_predictions += 1

    return summary


class PlayerSummaryService:
    def __init__(self, store):
        self.store = store

    def for_user(self, user_id):
        return summarize_player(
            self.store.find_predictions_by_user(user_id),
            self.store.find_matches(),
        )
