"""Where a match stands relative to its prediction window."""

from datetime import datetime, timedelta, timezone

from prode.utils.timezone_utils import as_utc

UPCOMING = "upcoming"
IN_PROGRESS = "in_progress"
FINISHED = "finished"

DEFAULT_MATCH_DURATION_HOURS = 2


def match_status(match_date, now=None, duration_hours=DEFAULT_MATCH_DURATION_HOURS):
    """
    Classify a match by its kick-off time.

    upcoming while now is strictly before kick-off, in_progress from kick-off
    through kick-off + duration_hours inclusive, finished afterwards.
    """
    kickoff = as_utc(match_date)
    now = as_utc(now) if now is not None else datetime.now(timezone.utc)

    if now < kickoff:
        return UPCOMING
    if now <= kickoff + timedelta(hours=duration_hours):
        return IN_PROGRESS
    return FINISHED
