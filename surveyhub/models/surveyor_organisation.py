"""
Surveyor directory models.

SurveyorOrganisation is the approved list of surveying firms, one row per
organisation and discipline. PendingSurveyor queues a firm first seen on a
quote until an admin approves it, merges it into an existing entry or
rejects it.

Review scores are not stored here; they are aggregated from
SurveyorFeedback on read.
"""

from surveyhub.models import _iso, _utcnow, _uuid, db

PENDING_PENDING = "pending"
PENDING_APPROVED = "approved"
PENDING_MERGED = "merged"
PENDING_REJECTED = "rejected"

VALID_PENDING_STATUSES = frozenset({
    PENDING_PENDING,
    PENDING_APPROVED,
    PENDING_MERGED,
    PENDING_REJECTED,
})


class SurveyorOrganisation(db.Model):
    __tablename__ = "surveyor_organisations"
    __table_args__ = (
        db.UniqueConstraint("organisation", "discipline", name="uq_surveyor_org_discipline"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    organisation = db.Column(db.String(200), nullable=False)
    discipline = db.Column(db.String(100), nullable=False)
    contacts = db.Column(
        db.JSON, nullable=False, default=list,
        comment="[{contact_name, email, phone_number}]",
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    def to_dict(self, ratings: dict | None = None) -> dict:
        result = {
            "id": self.id,
            "organisation": self.organisation,
            "discipline": self.discipline,
            "contacts": list(self.contacts or []),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if ratings is not None:
            result.update(ratings)
        return result

    def __repr__(self):
        return f"<SurveyorOrganisation {self.organisation} / {self.discipline}>"


class PendingSurveyor(db.Model):
    __tablename__ = "pending_surveyors"
    __table_args__ = (
        db.UniqueConstraint("organisation", "discipline", name="uq_pending_surveyor_org_discipline"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    organisation = db.Column(db.String(200), nullable=False)
    discipline = db.Column(db.String(100), nullable=False)
    status = db.Column(
        db.String(20), nullable=False, default=PENDING_PENDING, index=True,
        comment="pending | approved | merged | rejected",
    )
    source_quote_id = db.Column(
        db.String(36),
        db.ForeignKey("quotes.id", ondelete="SET NULL"),
        nullable=True,
    )
    source_contact = db.Column(
        db.JSON, nullable=True,
        comment="{contact_name, email} copied from the source quote",
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "organisation": self.organisation,
            "discipline": self.discipline,
            "status": self.status,
            "source_quote_id": self.source_quote_id,
            "source_contact": dict(self.source_contact) if self.source_contact else None,
            "created_at": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<PendingSurveyor {self.organisation} / {self.discipline} ({self.status})>"
