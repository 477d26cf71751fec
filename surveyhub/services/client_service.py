"""Client organisation service."""

import logging

from sqlalchemy import func

from surveyhub.core.exceptions import ConflictError, NotFoundError, ValidationError
from surveyhub.models import db
from surveyhub.models.user import ClientOrganisation
from surveyhub.utils.helpers import clean_str, commit_or_raise, require_id

logger = logging.getLogger(__name__)


def list_organisations() -> list[ClientOrganisation]:
    return ClientOrganisation.query.order_by(ClientOrganisation.organisation_name).all()


def normalize_contacts(contacts) -> list[dict]:
    """Trim contact fields and lower-case emails. Shared with the surveyor directory."""
    if contacts is None:
        return []
    if not isinstance(contacts, list):
        raise ValidationError("contacts must be a list", details={"contacts": "must be a list"})
    normalized = []
    for idx, contact in enumerate(contacts):
        if not isinstance(contact, dict):
            raise ValidationError("Invalid contact", details={f"contacts[{idx}]": "must be an object"})
        normalized.append({
            "contact_name": clean_str(contact.get("contact_name")),
            "email": clean_str(contact.get("email")).lower(),
            "phone_number": clean_str(contact.get("phone_number")),
        })
    return normalized


def _require_name(data: dict) -> str:
    name = clean_str(data.get("organisation_name"))
    if not name:
        raise ValidationError(
            "organisation_name is required",
            details={"organisation_name": "required"},
        )
    return name


def _check_name_free(name: str, exclude_id: str | None = None) -> None:
    query = db.session.query(ClientOrganisation.id).filter(
        func.lower(ClientOrganisation.organisation_name) == name.lower()
    )
    if exclude_id is not None:
        query = query.filter(ClientOrganisation.id != exclude_id)
    if query.first():
        raise ConflictError("ClientOrganisation", "organisation_name", name)


def get_organisation(org_id: str) -> ClientOrganisation:
    require_id(org_id, "organisation_id")
    org = db.session.get(ClientOrganisation, org_id)
    if org is None:
        raise NotFoundError("ClientOrganisation", org_id)
    return org


def create_organisation(data: dict) -> ClientOrganisation:
    name = _require_name(data)
    _check_name_free(name)

    org = ClientOrganisation(
        organisation_name=name,
        contacts=normalize_contacts(data.get("contacts")),
    )
    db.session.add(org)
    commit_or_raise("ClientOrganisation", "organisation_name", name)
    logger.info("Created client organisation %s", org.id)
    return org


def update_organisation(org_id: str, data: dict) -> ClientOrganisation:
    """Rename an organisation and/or replace its contact list."""
    org = get_organisation(org_id)

    if "organisation_name" in data:
        name = _require_name(data)
        _check_name_free(name, exclude_id=org.id)
        org.organisation_name = name
    if "contacts" in data:
        org.contacts = normalize_contacts(data["contacts"])

    commit_or_raise("ClientOrganisation", "organisation_name", org.organisation_name)
    logger.info("Updated client organisation %s", org.id)
    return org
