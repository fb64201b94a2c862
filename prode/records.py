"""
Typed records handed out by the store.

Rows are parsed and validated here so the scoring and ranking code never
works with a half-populated or oddly typed database row.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from prode.errors import InvalidRecord
from prode.utils.timezone_utils import as_utc


def _require_int(value, field, minimum=None):
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidRecord(f"{field} must be an integer, got {value!r}")
    if minimum is not None and value < minimum:
        raise InvalidRecord(f"{field} must be >= {minimum}, got {value}")
    return value


def _require_text(value, field):
    if not isinstance(value, str) or not value.strip():
        raise InvalidRecord(f"{field} must be a non-empty string")
    return value


def _require_datetime(value, field):
    if not isinstance(value, datetime):
        raise InvalidRecord(f"{field} must be a datetime, got {value!r}")
    return as_utc(value)


def _isoformat(dt):
    return dt.isoformat() if dt else None


@dataclass(frozen=True)
class MatchRecord:
    id: int
    home_team: str
    away_team: str
    match_date: datetime
    stage: str
    home_score: Optional[int] = None
    away_score: Optional[int] = None

    @property
    def is_final(self):
        return self.home_score is not None

    @classmethod
    def from_row(cls, row):
        home_score, away_score = row.home_score, row.away_score
        if (home_score is None) != (away_score is None):
            raise InvalidRecord(f"Match {row.id} has only one score recorded")
        if home_score is not None:
            _require_int(home_score, "home_score", minimum=0)
            _require_int(away_score, "away_score", minimum=0)

        return cls(
            id=_require_int(row.id, "id"),
            home_team=_require_text(row.home_team, "home_team"),
            away_team=_require_text(row.away_team, "away_team"),
            match_date=_require_datetime(row.match_date, "match_date"),
            stage=row.stage or "",
            home_score=home_score,
            away_score=away_score,
        )

    def to_dict(self):
        return {
            "id": self.id,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "match_date": _isoformat(self.match_date),
            "stage": self.stage,
            "home_score": self.home_score,
            "away_score": self.away_score,
        }


@dataclass(frozen=True)
class PredictionRecord:
    id: int
    user_id: int
    match_id: int
    predicted_home_score: int
    predicted_away_score: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row):
        return cls(
            id=_require_int(row.id, "id"),
            user_id=_require_int(row.user_id, "user_id"),
            match_id=_require_int(row.match_id, "match_id"),
            predicted_home_score=_require_int(
                row.predicted_home_score, "predicted_home_score", minimum=0
            ),
            predicted_away_score=_require_int(
                row.predicted_away_score, "predicted_away_score", minimum=0
            ),
            created_at=_require_datetime(row.created_at, "created_at"),
            updated_at=as_utc(row.updated_at),
        )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "match_id": self.match_id,
            "predicted_home_score": self.predicted_home_score,
            "predicted_away_score": self.predicted_away_score,
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }
