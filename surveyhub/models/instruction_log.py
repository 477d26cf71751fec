"""InstructionLog model — operational tracking for an instructed quote's survey work."""

from surveyhub.models import _iso, _utcnow, _uuid, db

WORK_NOT_STARTED = "not started"
WORK_IN_PROGRESS = "in progress"
WORK_COMPLETED = "completed"
WORK_TRP_REVIEWING = "TRP Reviewing"
WORK_CLIENT_REVIEWING = "Client reviewing"
WORK_BACK_WITH_AUTHOR = "Back with author"

VALID_WORK_STATUSES = frozenset({
    WORK_NOT_STARTED,
    WORK_IN_PROGRESS,
    WORK_COMPLETED,
    WORK_TRP_REVIEWING,
    WORK_CLIENT_REVIEWING,
    WORK_BACK_WITH_AUTHOR,
})


class InstructionLog(db.Model):
    """
    One per quote (unique ``quote_id``), created lazily by upsert.

    ``uploaded_works`` and ``custom_dates`` are ordered value lists kept on
    the row; each entry carries its own id so the UI can address it.
    """

    __tablename__ = "instruction_logs"

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
    work_status = db.Column(db.String(30), nullable=False, default=WORK_NOT_STARTED)
    dependencies = db.Column(db.Text, nullable=False, default="")
    site_visit_date = db.Column(db.Date, nullable=True)
    report_draft_date = db.Column(db.Date, nullable=True)
    operational_notes = db.Column(db.Text, nullable=False, default="")
    uploaded_works = db.Column(
        db.JSON, nullable=False, default=list,
        comment="[{id, file_name, title, version, date_uploaded, description, url}]",
    )
    custom_dates = db.Column(db.JSON, nullable=False, default=list, comment="[{id, title, date}]")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    EDITABLE_FIELDS = (
        "work_status",
        "dependencies",
        "site_visit_date",
        "report_draft_date",
        "operational_notes",
        "uploaded_works",
        "custom_dates",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "quote_id": self.quote_id,
            "work_status": self.work_status,
            "dependencies": self.dependencies,
            "site_visit_date": _iso(self.site_visit_date),
            "report_draft_date": _iso(self.report_draft_date),
            "operational_notes": self.operational_notes,
            "uploaded_works": [dict(w) for w in (self.uploaded_works or [])],
            "custom_dates": [dict(d) for d in (self.custom_dates or [])],
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<InstructionLog quote={self.quote_id} {self.work_status}>"
