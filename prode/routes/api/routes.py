import logging
from datetime import datetime, timedelta, timezone
from functools import wraps

from flask import current_app, jsonify, request
from flask_login import current_user, login_required

from prode import db, limiter
from prode.errors import InvalidInput, NotFound
from prode.routes.api import bp
from prode.services.player_summary import PlayerSummaryService
from prode.services.prediction_repository import PredictionRepository
from prode.services.ranking import RankingService
from prode.services.store import PredictionStore
from prode.utils.match_status import match_status
from prode.utils.timezone_utils import get_app_timezone

logger = logging.getLogger(__name__)


def add_no_store_header(f):
    """Responses carry per-user or live data and must not be cached"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        response = current_app.make_response(f(*args, **kwargs))
        response.headers["Cache-Control"] = (
            "no-store, no-cache, must-revalidate, max-age=0"
        )
        return response

    return decorated_function


def _store():
    return PredictionStore(db.session, tz=get_app_timezone())


def _repository():
    return PredictionRepository(
        _store(),
        enforce_window=current_app.config.get("ENFORCE_SUBMISSION_WINDOW", True),
        match_duration_hours=current_app.config.get("MATCH_DURATION_HOURS", 2),
    )


def _parse_date(value):
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise InvalidInput("date must use the YYYY-MM-DD format") from None


@bp.route("/matches")
def matches():
    """Fixture ordered by kick-off, optionally for one day or upcoming only"""
    date = request.args.get("date")
    upcoming = request.args.get("upcoming", "").lower() in ["1", "true", "yes"]

    now = datetime.now(timezone.utc)
    upcoming_after = None
    if upcoming:
        grace = current_app.config.get("UPCOMING_GRACE_HOURS", 3)
        upcoming_after = now - timedelta(hours=grace)

    fixture = _store().find_matches(
        date=_parse_date(date) if date else None, upcoming_after=upcoming_after
    )
    duration = current_app.config.get("MATCH_DURATION_HOURS", 2)

    data = []
    for match in fixture:
        item = match.to_dict()
        item["status"] = match_status(match.match_date, now, duration)
        data.append(item)

    return jsonify({"data": data})


@bp.route("/predictions", methods=["POST"])
@limiter.limit("60 per minute")
@login_required
@add_no_store_header
def submit_prediction():
    """Create or update the caller's prediction for a match"""
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise InvalidInput("Request body must be a JSON object")

    prediction = _repository().submit(
        current_user.id,
        body.get("match_id"),
        body.get("predicted_home_score"),
        body.get("predicted_away_score"),
    )
    return jsonify({"message": "Prediction saved", "data": prediction.to_dict()})


@bp.route("/predictions")
@login_required
@add_no_store_header
def get_prediction():
    """The caller's prediction for one match; data is null when there is none"""
    match_id = request.args.get("match_id")
    if not match_id:
        raise InvalidInput("match_id is required")

    try:
        prediction = _repository().get(current_user.id, match_id)
    except NotFound:
        return jsonify({"data": None})
    return jsonify({"data": prediction.to_dict()})


@bp.route("/my-prode")
@login_required
@add_no_store_header
def my_prode():
    """The caller's fixture with their predictions scored"""
    summary = PlayerSummaryService(_store()).for_user(current_user.id)
    return jsonify({"data": summary.to_dict()})


@bp.route("/ranking")
@add_no_store_header
def ranking():
    entries = RankingService(_store()).get_ranking()
    return jsonify(
        {
            "data": [entry.to_dict() for entry in entries],
            "participants": len(entries),
        }
    )
