from prode import db
from prode.utils.timezone_utils import utcnow


class Prediction(db.Model):
    __tablename__ = "predictions"

    id = db.Column(db.Integer, primary_key=True)

    # Ownership
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    match_id = db.Column(db.Integer, db.ForeignKey("matches.id"), nullable=False)

    # Predicted score
    predicted_home_score = db.Column(db.Integer, nullable=False)
    predicted_away_score = db.Column(db.Integer, nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    # One prediction per user and match; upserts conflict on this constraint
    __table_args__ = (
        db.UniqueConstraint("user_id", "match_id", name="unique_user_match_prediction"),
        db.Index("idx_prediction_match", "match_id"),
        db.CheckConstraint(
            "predicted_home_score >= 0 AND predicted_away_score >= 0",
            name="predicted_scores_non_negative",
        ),
    )

    def __repr__(self):
        return (
            f"<Prediction user_id={self.user_id} match_id={self.match_id} "
            f"{self.predicted_home_score}-{self.predicted_away_score}>"
        )
