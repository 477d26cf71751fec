"""Fee quote requests sent to surveyors, and the log of request emails."""

from surveyhub.models import _iso, _utcnow, _uuid, db


class FeeQuoteRequest(db.Model):
    """A request for a fee quote sent to one surveying organisation."""

    __tablename__ = "fee_quote_requests"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_id = db.Column(
        db.String(36),
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    discipline = db.Column(db.String(100), nullable=False)
    organisation = db.Column(db.String(200), nullable=False)
    contact_name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone_number = db.Column(db.String(50), nullable=True)
    request_sent_date = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "discipline": self.discipline,
            "organisation": self.organisation,
            "contact_name": self.contact_name,
            "email": self.email,
            "phone_number": self.phone_number,
            "request_sent_date": _iso(self.request_sent_date),
        }


class FeeQuoteLog(db.Model):
    """One batch of fee quote request emails sent for a project."""

    __tablename__ = "fee_quote_logs"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_id = db.Column(
        db.String(36),
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    emails = db.Column(db.JSON, nullable=False, default=list, comment="Recipient addresses")
    sent_date = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "emails": list(self.emails or []),
            "sent_date": _iso(self.sent_date),
            "created_at": _iso(self.created_at),
        }
