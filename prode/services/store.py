"""
Record store for matches, predictions and player names.

The store wraps an explicit SQLAlchemy session handed in by the caller and
returns typed records (see prode.records). Database failures surface as
StoreUnavailable; writes are rolled back before the error leaves the store.
"""

import logging
from functools import wraps

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import FlushError

from prode.errors import (
    Conflict,
    InvalidInput,
    InvalidRecord,
    NotFound,
    StoreUnavailable,
)
from prode.models import Match, Prediction, User
from prode.records import MatchRecord, PredictionRecord
from prode.utils.timezone_utils import local_day_bounds, to_storage, utcnow

logger = logging.getLogger(__name__)

# Dialects that support INSERT ... ON CONFLICT DO UPDATE
NATIVE_UPSERT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def store_operation(func):
    """Roll back and translate connection failures into StoreUnavailable"""

    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except OperationalError as e:
            self.session.rollback()
            logger.error(f"Store operation {func.__name__} failed: {e}")
            raise StoreUnavailable() from e

    return wrapper


class PredictionStore:
    """Queryable store over the matches, predictions and users tables"""

    def __init__(self, session, tz=None):
        self.session = session
        self.tz = tz

    # Matches

    @store_operation
    def find_matches(self, date=None, upcoming_after=None):
        """
        Fixture ordered by kick-off.

        Args:
            date: only matches kicking off on this calendar day (app timezone)
            upcoming_after: only matches kicking off at or after this datetime
        """
        query = self.session.query(Match)
        if date is not None:
            start, end = local_day_bounds(date, self.tz)
            query = query.filter(Match.match_date >= start, Match.match_date < end)
        if upcoming_after is not None:
            query = query.filter(Match.match_date >= to_storage(upcoming_after))

        rows = query.order_by(Match.match_date, Match.id).all()
        return [MatchRecord.from_row(row) for row in rows]

    def find_all_matches(self):
        return self.find_matches()

    @store_operation
    def get_match(self, match_id):
        row = self.session.get(Match, match_id)
        return MatchRecord.from_row(row) if row is not None else None

    @store_operation
    def add_match(self, home_team, away_team, match_date, stage="", match_id=None):
        (record,) = self.load_matches(
            [
                {
                    "id": match_id,
                    "home_team": home_team,
                    "away_team": away_team,
                    "match_date": match_date,
                    "stage": stage,
                }
            ]
        )
        return record

    @store_operation
    def load_matches(self, entries):
        """
        Insert several matches in one transaction.

        Each entry is a dict with home_team, away_team, match_date and
        optionally id, stage, home_score and away_score. Either every match
        is stored or none is.
        """
        rows = []
        for entry in entries:
            row = Match(
                home_team=entry["home_team"],
                away_team=entry["away_team"],
                match_date=to_storage(entry["match_date"]),
                stage=entry.get("stage") or "",
                home_score=entry.get("home_score"),
                away_score=entry.get("away_score"),
            )
            if entry.get("id") is not None:
                row.id = entry["id"]
            rows.append(row)

        self.session.add_all(rows)
        try:
            self.session.flush()
            # SQLite stores whatever it is given; check before committing
            records = [MatchRecord.from_row(row) for row in rows]
            self.session.commit()
        except (IntegrityError, FlushError) as e:
            self.session.rollback()
            reason = getattr(e, "orig", e)
            raise InvalidInput(f"Matches rejected by the database: {reason}") from e
        except InvalidRecord as e:
            self.session.rollback()
            raise InvalidInput(e.message) from e

        for record in records:
            logger.info(f"Added match {record.id}: {record.home_team} vs {record.away_team}")
        return records

    @store_operation
    def record_result(self, match_id, home_score, away_score, overwrite=False):
        """Store the final score of a match; scores are set once unless overwrite"""
        row = self.session.get(Match, match_id)
        if row is None:
            raise NotFound(f"Match {match_id} not found")
        if row.is_final and not overwrite and (
            (row.home_score, row.away_score) != (home_score, away_score)
        ):
            raise InvalidInput(
                f"Match {match_id} already has a result "
                f"({row.home_score}-{row.away_score})"
            )

        row.home_score = home_score
        row.away_score = away_score
        self.session.commit()
        logger.info(f"Recorded result for match {match_id}: {home_score}-{away_score}")
        return MatchRecord.from_row(row)

    # Predictions

    @store_operation
    def find_prediction(self, user_id, match_id):
        row = (
            self.session.query(Prediction)
            .filter_by(user_id=user_id, match_id=match_id)
            .first()
        )
        return PredictionRecord.from_row(row) if row is not None else None

    @store_operation
    def find_predictions_by_user(self, user_id):
        rows = (
            self.session.query(Prediction)
            .filter_by(user_id=user_id)
            .order_by(Prediction.id)
            .all()
        )
        return [PredictionRecord.from_row(row) for row in rows]

    @store_operation
    def find_all_predictions(self):
        rows = self.session.query(Prediction).order_by(Prediction.id).all()
        return [PredictionRecord.from_row(row) for row in rows]

    @store_operation
    def upsert_prediction(self, user_id, match_id, home_score, away_score):
        """
        Insert the prediction or overwrite the scores of the existing one.

        A single conditional write keyed on the (user_id, match_id) unique
        constraint, so concurrent submissions end with exactly one row.
        The id and created_at of an existing row are kept.
        """
        dialect = self.session.get_bind().dialect.name
        try:
            if dialect in NATIVE_UPSERT:
                self._native_upsert(
                    NATIVE_UPSERT[dialect], user_id, match_id, home_score, away_score
                )
            else:
                self._savepoint_upsert(user_id, match_id, home_score, away_score)
            self.session.commit()
        except IntegrityError as e:
            # Foreign key or check constraint: nothing was written
            self.session.rollback()
            raise InvalidInput(f"Prediction rejected by the database: {e.orig}") from e
        except Exception:
            self.session.rollback()
            raise

        return self.find_prediction(user_id, match_id)

    def _native_upsert(self, insert, user_id, match_id, home_score, away_score):
        now = utcnow()
        stmt = insert(Prediction.__table__).values(
            user_id=user_id,
            match_id=match_id,
            predicted_home_score=home_score,
            predicted_away_score=away_score,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "match_id"],
            set_={
                "predicted_home_score": stmt.excluded.predicted_home_score,
                "predicted_away_score": stmt.excluded.predicted_away_score,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        self.session.execute(stmt)

    def _savepoint_upsert(self, user_id, match_id, home_score, away_score):
        if self._update_scores(user_id, match_id, home_score, away_score):
            return
        try:
            with self.session.begin_nested():
                self.session.add(
                    Prediction(
                        user_id=user_id,
                        match_id=match_id,
                        predicted_home_score=home_score,
                        predicted_away_score=away_score,
                    )
                )
        except IntegrityError:
            # Another submission inserted first; apply ours as an update
            logger.info(
                f"Prediction insert raced for user {user_id} match {match_id}, "
                "retrying as update"
            )
            if not self._update_scores(user_id, match_id, home_score, away_score):
                raise Conflict(
                    f"Could not store prediction for match {match_id}"
                ) from None

    def _update_scores(self, user_id, match_id, home_score, away_score):
        updated = (
            self.session.query(Prediction)
            .filter_by(user_id=user_id, match_id=match_id)
            .update(
                {
                    Prediction.predicted_home_score: home_score,
                    Prediction.predicted_away_score: away_score,
                    Prediction.updated_at: utcnow(),
                },
                synchronize_session=False,
            )
        )
        return updated > 0

    # Players

    @store_operation
    def display_names(self, user_ids):
        """Map user id to display name for the given users"""
        user_ids = list(user_ids)
        if not user_ids:
            return {}
        users = self.session.query(User).filter(User.id.in_(user_ids)).all()
        return {user.id: user.full_name for user in users}
