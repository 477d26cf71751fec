"""
Quote model — a priced proposal from a surveying organisation.

Persist-time invariants (applied by ORM hooks before every INSERT/UPDATE):
    - total == sum(line_items[].cost)
    - partially_instructed_total is cleared unless the status is
      'partially instructed'
"""

from sqlalchemy import event

from surveyhub.models import _iso, _utcnow, _uuid, db

# ── Instruction status ───────────────────────────────────────────────────────

STATUS_PENDING = "pending"
STATUS_WILL_NOT_BE_INSTRUCTED = "will not be instructed"
STATUS_PARTIALLY_INSTRUCTED = "partially instructed"
STATUS_INSTRUCTED = "instructed"

VALID_INSTRUCTION_STATUSES = frozenset({
    STATUS_PENDING,
    STATUS_WILL_NOT_BE_INSTRUCTED,
    STATUS_PARTIALLY_INSTRUCTED,
    STATUS_INSTRUCTED,
})

# Statuses that commit the project to paying for the work.
INSTRUCTED_STATUSES = frozenset({STATUS_INSTRUCTED, STATUS_PARTIALLY_INSTRUCTED})


def compute_total(line_items) -> float:
    """Sum of line-item costs. Missing costs count as 0."""
    return sum((item.get("cost") or 0) for item in (line_items or []))


class Quote(db.Model):
    """Quote for one discipline of survey work on a project."""

    __tablename__ = "quotes"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_id = db.Column(
        db.String(36),
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    surveyor_id = db.Column(
        db.String(36),
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="User who submitted the quote",
    )
    discipline = db.Column(db.String(100), nullable=False, comment="e.g. Ecology, Noise")
    organisation = db.Column(db.String(200), nullable=False)
    contact_name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(255), nullable=True)

    line_items = db.Column(
        db.JSON, nullable=False, default=list,
        comment="[{item, description, cost}]",
    )
    total = db.Column(db.Float, nullable=False, default=0)
    instruction_status = db.Column(
        db.String(30), nullable=False, default=STATUS_PENDING,
        comment="pending | will not be instructed | partially instructed | instructed",
    )
    partially_instructed_total = db.Column(db.Float, nullable=True)

    additional_notes = db.Column(db.Text, nullable=True)
    quote_date = db.Column(db.Date, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    EDITABLE_FIELDS = (
        "discipline",
        "organisation",
        "contact_name",
        "email",
        "line_items",
        "instruction_status",
        "partially_instructed_total",
        "additional_notes",
        "quote_date",
    )

    def apply_invariants(self) -> None:
        """Recompute the derived total and clear a stale partial total."""
        self.total = compute_total(self.line_items)
        if self.instruction_status != STATUS_PARTIALLY_INSTRUCTED:
            self.partially_instructed_total = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "surveyor_id": self.surveyor_id,
            "discipline": self.discipline,
            "organisation": self.organisation,
            "contact_name": self.contact_name,
            "email": self.email,
            "line_items": [dict(item) for item in (self.line_items or [])],
            "total": self.total,
            "instruction_status": self.instruction_status,
            "partially_instructed_total": self.partially_instructed_total,
            "additional_notes": self.additional_notes,
            "quote_date": _iso(self.quote_date),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Quote {self.organisation} / {self.discipline} ({self.instruction_status})>"


@event.listens_for(Quote, "before_insert")
@event.listens_for(Quote, "before_update")
def _quote_before_persist(mapper, connection, target):
    target.apply_invariants()
