"""
Scoring rules for the Prode application

This module is the only place the scoring rule lives. The ranking, the
player summary and the API all call evaluate().

    exact result       3 points
    correct winner     1 point  (includes a correctly predicted draw)
    anything else      0 points
    match not played   0 points, outcome "pending"
"""

from collections import namedtuple

EXACT = "exact"
WINNER = "winner"
WRONG = "wrong"
PENDING = "pending"

HOME = "home"
AWAY = "away"
DRAW = "draw"

EXACT_POINTS = 3
WINNER_POINTS = 1

ScoreResult = namedtuple("ScoreResult", ["points", "outcome"])


def match_result(home_score, away_score):
    """Which side a score line favours: home, away or draw"""
    if home_score > away_score:
        return HOME
    if home_score < away_score:
        return AWAY
    return DRAW


def evaluate(predicted_home, predicted_away, actual_home, actual_away):
    """
    Score one prediction against one match result.

    Args:
        predicted_home, predicted_away: predicted goals (non-negative ints)
        actual_home, actual_away: final goals, or None while the match is pending

    Returns:
        ScoreResult(points, outcome)
    """
    if actual_home is None or actual_away is None:
        return ScoreResult(0, PENDING)

    if predicted_home == actual_home and predicted_away == actual_away:
        return ScoreResult(EXACT_POINTS, EXACT)

    if match_result(predicted_home, predicted_away) == match_result(
        actual_home, actual_away
    ):
        return ScoreResult(WINNER_POINTS, WINNER)

    return ScoreResult(0, WRONG)


def evaluate_prediction(prediction, match):
    """evaluate() for a PredictionRecord and its MatchRecord"""
    return evaluate(
        prediction.predicted_home_score,
        prediction.predicted_away_score,
        match.home_score,
        match.away_score,
    )
