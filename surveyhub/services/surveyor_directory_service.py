"""
Surveyor directory service.

Approved firms live in SurveyorOrganisation, one row per organisation and
discipline (matched case-insensitively). A quote from a firm that is not in
the directory queues a PendingSurveyor; an admin then:

    approve  → new directory entry from the pending row
    merge    → fold into an existing entry; quotes are re-labelled to it
    reject   → keep the row, mark it rejected

Review scores are averaged from SurveyorFeedback on every read, keyed by
the quote's organisation and discipline, so nothing needs recalculating
when feedback or quotes change.
"""

import logging

from sqlalchemy import func

from surveyhub.core.exceptions import ConflictError, NotFoundError, ValidationError
from surveyhub.models import db
from surveyhub.models.quote import Quote
from surveyhub.models.surveyor_feedback import SurveyorFeedback
from surveyhub.models.surveyor_organisation import (
    PENDING_APPROVED,
    PENDING_MERGED,
    PENDING_PENDING,
    PENDING_REJECTED,
    PendingSurveyor,
    SurveyorOrganisation,
)
from surveyhub.models.user import ROLE_SURVEYOR, User
from surveyhub.services.client_service import normalize_contacts
from surveyhub.utils.helpers import clean_str, commit_or_raise, require_id

logger = logging.getLogger(__name__)

RATING_FIELDS = ("quality", "responsiveness", "delivered_on_time", "overall_review")


def _key(organisation: str, discipline: str) -> tuple[str, str]:
    return (organisation or "").strip().lower(), (discipline or "").strip().lower()


def _find_organisation(organisation: str, discipline: str, exclude_id: str | None = None):
    query = SurveyorOrganisation.query.filter(
        func.lower(SurveyorOrganisation.organisation) == organisation.lower(),
        func.lower(SurveyorOrganisation.discipline) == discipline.lower(),
    )
    if exclude_id is not None:
        query = query.filter(SurveyorOrganisation.id != exclude_id)
    return query.first()


# ── Ratings ──────────────────────────────────────────────────────────────────


def _ratings_by_key() -> dict[tuple[str, str], dict]:
    """Review count, averages and project count per (organisation, discipline)."""
    org_col = func.lower(Quote.organisation)
    disc_col = func.lower(Quote.discipline)

    review_rows = (
        db.session.query(
            org_col, disc_col,
            func.count(SurveyorFeedback.id),
            *[func.avg(getattr(SurveyorFeedback, field)) for field in RATING_FIELDS],
        )
        .join(Quote, Quote.id == SurveyorFeedback.quote_id)
        .group_by(org_col, disc_col)
        .all()
    )
    project_rows = (
        db.session.query(org_col, disc_col, func.count(func.distinct(Quote.project_id)))
        .group_by(org_col, disc_col)
        .all()
    )

    ratings: dict[tuple[str, str], dict] = {}
    for org, disc, project_count in project_rows:
        ratings[(org, disc)] = _empty_ratings(project_count)
    for org, disc, review_count, *averages in review_rows:
        entry = ratings.setdefault((org, disc), _empty_ratings(0))
        entry["review_count"] = review_count
        for field, value in zip(RATING_FIELDS, averages):
            entry[f"average_{field}"] = round(float(value), 1) if value is not None else 0
    return ratings


def _empty_ratings(project_count: int) -> dict:
    result = {"project_count": project_count, "review_count": 0}
    result.update({f"average_{field}": 0 for field in RATING_FIELDS})
    return result


def with_ratings(orgs: list[SurveyorOrganisation]) -> list[dict]:
    ratings = _ratings_by_key()
    return [o.to_dict(ratings.get(_key(o.organisation, o.discipline), _empty_ratings(0))) for o in orgs]


# ── Directory CRUD ───────────────────────────────────────────────────────────


def _ensure_contact_users(contacts: list[dict], organisation: str) -> None:
    """Create a surveyor account for every contact email not yet known."""
    emails = {c["email"] for c in contacts if c.get("email")}
    if not emails:
        return
    known = {email for (email,) in db.session.query(User.email).filter(User.email.in_(emails))}
    for contact in contacts:
        email = contact.get("email")
        if email and email not in known:
            db.session.add(User(
                email=email,
                name=contact.get("contact_name") or organisation,
                role=ROLE_SURVEYOR,
            ))
            known.add(email)
            logger.info("Created surveyor account for %s (%s)", email, organisation)


def _validate_org_fields(data: dict, partial: bool = False) -> dict:
    fields = {}
    errors = {}
    for key in ("organisation", "discipline"):
        if key in data or not partial:
            fields[key] = clean_str(data.get(key))
            if not fields[key]:
                errors[key] = "required"
    if errors:
        raise ValidationError("Invalid surveyor organisation", details=errors)
    if "contacts" in data:
        fields["contacts"] = normalize_contacts(data["contacts"])
    return fields


def list_organisations() -> list[SurveyorOrganisation]:
    return (
        SurveyorOrganisation.query
        .order_by(func.lower(SurveyorOrganisation.organisation), func.lower(SurveyorOrganisation.discipline))
        .all()
    )


def get_organisation(org_id: str) -> SurveyorOrganisation:
    require_id(org_id, "organisation_id")
    org = db.session.get(SurveyorOrganisation, org_id)
    if org is None:
        raise NotFoundError("SurveyorOrganisation", org_id)
    return org


def create_organisation(data: dict) -> SurveyorOrganisation:
    fields = _validate_org_fields(data)
    if _find_organisation(fields["organisation"], fields["discipline"]):
        raise ConflictError(
            "SurveyorOrganisation", "organisation",
            f"{fields['organisation']} / {fields['discipline']}",
        )

    org = SurveyorOrganisation(**fields)
    db.session.add(org)
    _ensure_contact_users(org.contacts or [], org.organisation)
    commit_or_raise("SurveyorOrganisation", "organisation", org.organisation)
    logger.info("Created surveyor organisation %s (%s / %s)", org.id, org.organisation, org.discipline)
    return org


def update_organisation(org_id: str, data: dict) -> SurveyorOrganisation:
    org = get_organisation(org_id)
    fields = _validate_org_fields(data, partial=True)

    organisation = fields.get("organisation", org.organisation)
    discipline = fields.get("discipline", org.discipline)
    if _find_organisation(organisation, discipline, exclude_id=org.id):
        raise ConflictError("SurveyorOrganisation", "organisation", f"{organisation} / {discipline}")

    for key, value in fields.items():
        setattr(org, key, value)
    commit_or_raise("SurveyorOrganisation", "organisation", org.organisation)
    logger.info("Updated surveyor organisation %s", org.id)
    return org


def delete_organisation(org_id: str) -> None:
    org = get_organisation(org_id)
    db.session.delete(org)
    commit_or_raise("SurveyorOrganisation", value=org_id)
    logger.info("Deleted surveyor organisation %s", org_id)


# ── Pending surveyors ────────────────────────────────────────────────────────


def queue_unknown_surveyor(quote: Quote) -> PendingSurveyor | None:
    """Queue the quote's firm for review if it is neither approved nor already queued.

    Runs after the quote is committed. Losing a race to another request
    queueing the same firm leaves that request's row in place.
    """
    if _find_organisation(quote.organisation, quote.discipline):
        return None
    already_queued = PendingSurveyor.query.filter(
        func.lower(PendingSurveyor.organisation) == quote.organisation.lower(),
        func.lower(PendingSurveyor.discipline) == quote.discipline.lower(),
    ).first()
    if already_queued:
        return None

    pending = PendingSurveyor(
        organisation=quote.organisation,
        discipline=quote.discipline,
        source_quote_id=quote.id,
        source_contact={"contact_name": quote.contact_name, "email": quote.email or ""},
    )
    db.session.add(pending)
    try:
        commit_or_raise("PendingSurveyor", "organisation", quote.organisation)
    except ConflictError:
        logger.info("Surveyor %s / %s already queued", quote.organisation, quote.discipline)
        return None
    logger.info("Queued pending surveyor %s / %s from quote %s",
                quote.organisation, quote.discipline, quote.id,
                extra={"quote_id": quote.id, "project_id": quote.project_id})
    return pending


def list_pending() -> list[PendingSurveyor]:
    return (
        PendingSurveyor.query
        .filter_by(status=PENDING_PENDING)
        .order_by(PendingSurveyor.created_at.desc(), PendingSurveyor.id)
        .all()
    )


def _get_open_pending(pending_id) -> PendingSurveyor:
    require_id(pending_id, "pending_id")
    pending = db.session.get(PendingSurveyor, pending_id)
    if pending is None:
        raise NotFoundError("PendingSurveyor", pending_id)
    if pending.status != PENDING_PENDING:
        raise ValidationError(
            f"Pending surveyor has already been {pending.status}",
            details={"status": pending.status},
        )
    return pending


def _source_contacts(pending: PendingSurveyor) -> list[dict]:
    contact = pending.source_contact or {}
    if not (contact.get("contact_name") or contact.get("email")):
        return []
    return normalize_contacts([contact])


def approve_pending(pending_id) -> SurveyorOrganisation:
    """Turn a pending surveyor into a directory entry.

    If the same firm was added to the directory in the meantime, the pending
    row is marked rejected and ConflictError is raised.
    """
    pending = _get_open_pending(pending_id)

    if _find_organisation(pending.organisation, pending.discipline):
        pending.status = PENDING_REJECTED
        commit_or_raise("PendingSurveyor", value=pending.id)
        raise ConflictError(
            "SurveyorOrganisation", "organisation",
            f"{pending.organisation} / {pending.discipline}",
        )

    org = SurveyorOrganisation(
        organisation=pending.organisation,
        discipline=pending.discipline,
        contacts=_source_contacts(pending),
    )
    db.session.add(org)
    pending.status = PENDING_APPROVED
    commit_or_raise("SurveyorOrganisation", "organisation", org.organisation)
    logger.info("Approved pending surveyor %s as %s", pending.id, org.id)
    return org


def merge_pending(pending_id, target_id) -> SurveyorOrganisation:
    """Fold a pending surveyor into an existing directory entry.

    The pending contact is added unless its email is already listed, and
    quotes carrying the pending firm's name and discipline are re-labelled
    with the target's so their reviews count towards it.
    """
    pending = _get_open_pending(pending_id)
    target = get_organisation(target_id)

    contacts = list(target.contacts or [])
    known = {c.get("email") for c in contacts if c.get("email")}
    for contact in _source_contacts(pending):
        if contact["email"] and contact["email"] not in known:
            contacts.append(contact)
    target.contacts = contacts

    relabelled = (
        Quote.query
        .filter(
            func.lower(Quote.organisation) == pending.organisation.lower(),
            func.lower(Quote.discipline) == pending.discipline.lower(),
        )
        .update(
            {"organisation": target.organisation, "discipline": target.discipline},
            synchronize_session=False,
        )
    )
    pending.status = PENDING_MERGED
    commit_or_raise("SurveyorOrganisation", value=target.id)
    db.session.expire_all()
    logger.info("Merged pending surveyor %s into %s (%d quotes relabelled)",
                pending_id, target_id, relabelled)
    return get_organisation(target_id)


def reject_pending(pending_id) -> PendingSurveyor:
    pending = _get_open_pending(pending_id)
    pending.status = PENDING_REJECTED
    commit_or_raise("PendingSurveyor", value=pending.id)
    logger.info("Rejected pending surveyor %s", pending.id)
    return pending
