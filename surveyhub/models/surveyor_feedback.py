"""SurveyorFeedback model — one review per quote of the surveyor's delivery."""

from surveyhub.models import _iso, _utcnow, _uuid, db

# field -> (min, max)
RATING_RANGES = {
    "quality": (1, 5),
    "responsiveness": (1, 5),
    "delivered_on_time": (0, 5),
    "overall_review": (1, 5),
}


class SurveyorFeedback(db.Model):
    __tablename__ = "surveyor_feedback"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_id = db.Column(
        db.String(36),
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    quote_id = db.Column(
        db.String(36),
        db.ForeignKey("quotes.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    quality = db.Column(db.Integer, nullable=True)
    responsiveness = db.Column(db.Integer, nullable=True)
    delivered_on_time = db.Column(db.Integer, nullable=True, comment="0 = not applicable")
    overall_review = db.Column(db.Integer, nullable=True, comment="Required on first write")
    notes = db.Column(db.Text, nullable=True)
    review_date = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    EDITABLE_FIELDS = (
        "quality",
        "responsiveness",
        "delivered_on_time",
        "overall_review",
        "notes",
        "review_date",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "quote_id": self.quote_id,
            "quality": self.quality,
            "responsiveness": self.responsiveness,
            "delivered_on_time": self.delivered_on_time,
            "overall_review": self.overall_review,
            "notes": self.notes,
            "review_date": _iso(self.review_date),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
