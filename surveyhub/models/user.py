"""User and client organisation models."""

from surveyhub.models import _iso, _utcnow, _uuid, db

ROLE_ADMIN = "admin"
ROLE_SURVEYOR = "surveyor"
ROLE_CLIENT = "client"


class ClientOrganisation(db.Model):
    """A client company that commissions projects."""

    __tablename__ = "client_organisations"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    organisation_name = db.Column(db.String(200), nullable=False, unique=True)
    contacts = db.Column(
        db.JSON, nullable=False, default=list,
        comment="[{contact_name, email, phone_number}]",
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "organisation_name": self.organisation_name,
            "contacts": list(self.contacts or []),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<ClientOrganisation {self.organisation_name}>"


class User(db.Model):
    """
    Application user, created on first sight of a verified identity token.

    Credentials live with the identity provider; only the email, display
    name and role are kept here.
    """

    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    name = db.Column(db.String(200), nullable=True)
    role = db.Column(
        db.String(20), nullable=False, default=ROLE_SURVEYOR,
        comment="admin | surveyor | client",
    )
    client_organisation_id = db.Column(
        db.String(36),
        db.ForeignKey("client_organisations.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "client_organisation_id": self.client_organisation_id,
        }

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"
