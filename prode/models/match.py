from prode import db
from prode.utils.timezone_utils import utcnow


class Match(db.Model):
    __tablename__ = "matches"

    id = db.Column(db.Integer, primary_key=True)

    # Teams
    home_team = db.Column(db.String(100), nullable=False)
    away_team = db.Column(db.String(100), nullable=False)

    # Kick-off, stored as naive UTC
    match_date = db.Column(db.DateTime, nullable=False)
    stage = db.Column(db.String(50), nullable=False, default="")

    # Final scores, both NULL until the match concludes
    home_score = db.Column(db.Integer)
    away_score = db.Column(db.Integer)

    # Timestamps
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    predictions = db.relationship(
        "Prediction", backref="match", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.Index("idx_match_date", "match_date"),
        db.CheckConstraint(
            "(home_score IS NULL AND away_score IS NULL) OR "
            "(home_score IS NOT NULL AND away_score IS NOT NULL)",
            name="scores_both_or_neither",
        ),
        db.CheckConstraint(
            "home_score IS NULL OR (home_score >= 0 AND away_score >= 0)",
            name="scores_non_negative",
        ),
    )

    def __repr__(self):
        return f"<Match {self.id} {self.home_team} vs {self.away_team}>"

    @property
    def is_final(self):
        return self.home_score is not None and self.away_score is not None
