import logging
import re
from datetime import datetime, timezone

from prode.errors import InvalidInput, NotFound, SubmissionClosed, Unauthenticated
from prode.utils.match_status import (
    DEFAULT_MATCH_DURATION_HOURS,
    FINISHED,
    IN_PROGRESS,
    match_status,
)

logger = logging.getLogger(__name__)

_DIGITS = re.compile(r"[0-9]+")

# Largest score a prediction or result may carry
MAX_SCORE = 99
# Identifiers are 32-bit signed INTEGER columns
MAX_ID = 2**31 - 1


def parse_non_negative_int(value, field, maximum=MAX_SCORE):
    """Accept ints, integral floats and digit strings in [0, maximum]; reject everything else"""
    if value is None or isinstance(value, bool):
        raise InvalidInput(f"{field} is required")

    if isinstance(value, int):
        number = value
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    elif isinstance(value, str) and _DIGITS.fullmatch(value.strip()):
        digits = value.strip().lstrip("0") or "0"
        # int() refuses very long strings; anything this long is out of range
        if len(digits) > len(str(maximum)):
            raise InvalidInput(f"{field} must be at most {maximum}")
        number = int(digits)
    else:
        raise InvalidInput(f"{field} must be a non-negative integer")

    if number < 0:
        raise InvalidInput(f"{field} must be a non-negative integer")
    if number > maximum:
        raise InvalidInput(f"{field} must be at most {maximum}")
    return number


def parse_match_id(value):
    match_id = parse_non_negative_int(value, "match_id", maximum=MAX_ID)
    if match_id == 0:
        raise InvalidInput("match_id must be a positive integer")
    return match_id


class PredictionRepository:
    """
    Create, update and read one user's prediction for a match.

    Args:
        store: PredictionStore the repository reads from and writes to
        clock: callable returning the current aware datetime
        enforce_window: reject submissions once the match has kicked off
        match_duration_hours: how long a match counts as in progress
    """

    def __init__(
        self,
        store,
        clock=None,
        enforce_window=True,
        match_duration_hours=DEFAULT_MATCH_DURATION_HOURS,
    ):
        self.store = store
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.enforce_window = enforce_window
        self.match_duration_hours = match_duration_hours

    def submit(self, user_id, match_id, predicted_home, predicted_away):
        """Create or overwrite the caller's prediction; returns a PredictionRecord"""
        if user_id is None:
            raise Unauthenticated()

        match_id = parse_match_id(match_id)
        home = parse_non_negative_int(predicted_home, "predicted_home_score")
        away = parse_non_negative_int(predicted_away, "predicted_away_score")

        match = self.store.get_match(match_id)
        if match is None:
            raise NotFound(f"Match {match_id} not found")

        if self.enforce_window:
            self._check_window(match)

        prediction = self.store.upsert_prediction(user_id, match_id, home, away)
        logger.info(
            f"Saved prediction {prediction.id} for user {user_id}: "
            f"match {match_id} {home}-{away}"
        )
        return prediction

    def _check_window(self, match):
        status = match_status(
            match.match_date, self.clock(), self.match_duration_hours
        )
        if status == IN_PROGRESS:
            raise SubmissionClosed(
                f"Predictions cannot be saved while match {match.id} is in progress"
            )
        if status == FINISHED:
            raise SubmissionClosed(
                f"Predictions cannot be saved after match {match.id} has finished"
            )

    def get(self, user_id, match_id):
        match_id = parse_match_id(match_id)
        prediction = self.store.find_prediction(user_id, match_id)
        if prediction is None:
            raise NotFound(f"No prediction for match {match_id}")
        return prediction

    def list_for_user(self, user_id):
        return self.store.find_predictions_by_user(user_id)
