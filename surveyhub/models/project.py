"""Project model and the authorized-user association tables."""

from surveyhub.models import _iso, _utcnow, _uuid, db

VALID_PROJECT_TYPES = frozenset({"solar", "bess", "solarBess", "other"})

project_surveyors = db.Table(
    "project_surveyors",
    db.Column(
        "project_id", db.String(36),
        db.ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True,
    ),
    db.Column(
        "user_id", db.String(36),
        db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True,
    ),
)

project_clients = db.Table(
    "project_clients",
    db.Column(
        "project_id", db.String(36),
        db.ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True,
    ),
    db.Column(
        "user_id", db.String(36),
        db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True,
    ),
)


class Project(db.Model):
    """
    A development site for which survey work is quoted and instructed.

    ``client_id`` is a loose reference to a ClientOrganisation: it is not a
    foreign key, so it may point at an organisation that no longer exists.
    Readers resolve it with left-join semantics.
    """

    __tablename__ = "projects"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(255), nullable=False)
    client_id = db.Column(
        db.String(36), nullable=True, index=True,
        comment="ClientOrganisation.id (unenforced reference)",
    )
    client_or_spv_name = db.Column(db.String(255), nullable=True)
    project_lead = db.Column(db.String(100), nullable=True)
    project_manager = db.Column(db.String(100), nullable=True)
    team_members = db.Column(db.JSON, nullable=False, default=list, comment="List of initials")

    # ── Descriptive / technical fields (not read by the summary pipeline) ──
    detailed_description = db.Column(db.Text, nullable=True)
    project_type = db.Column(
        db.String(20), nullable=True,
        comment="solar | bess | solarBess | other",
    )
    address = db.Column(db.Text, nullable=True)
    area = db.Column(db.Float, nullable=True)
    local_planning_authority = db.Column(db.String(200), nullable=True)
    access_arrangements = db.Column(db.Text, nullable=True)
    additional_notes = db.Column(db.Text, nullable=True)
    sharepoint_link = db.Column(db.String(1000), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, index=True,
    )
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    authorized_surveyors = db.relationship(
        "User", secondary=project_surveyors, lazy="selectin",
        order_by="User.email",
    )
    authorized_clients = db.relationship(
        "User", secondary=project_clients, lazy="selectin",
        order_by="User.email",
    )

    # Fields an admin may set through create/update. Anything else in a
    # payload is ignored.
    EDITABLE_FIELDS = (
        "name",
        "client_id",
        "client_or_spv_name",
        "project_lead",
        "project_manager",
        "team_members",
        "detailed_description",
        "project_type",
        "address",
        "area",
        "local_planning_authority",
        "access_arrangements",
        "additional_notes",
        "sharepoint_link",
    )

    def to_dict(self) -> dict:
        """Serialize project fields for API responses."""
        return {
            "id": self.id,
            "name": self.name,
            "client_id": self.client_id,
            "client_or_spv_name": self.client_or_spv_name,
            "project_lead": self.project_lead,
            "project_manager": self.project_manager,
            "team_members": list(self.team_members or []),
            "detailed_description": self.detailed_description,
            "project_type": self.project_type,
            "address": self.address,
            "area": self.area,
            "local_planning_authority": self.local_planning_authority,
            "access_arrangements": self.access_arrangements,
            "additional_notes": self.additional_notes,
            "sharepoint_link": self.sharepoint_link,
            "authorized_surveyors": [u.id for u in self.authorized_surveyors],
            "authorized_clients": [u.id for u in self.authorized_clients],
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Project {self.name}>"
