"""
Quote service.

Access:
    admin     → any quote
    surveyor  → quotes they submitted; may submit on projects they are authorized for
    client    → read-only, quotes on projects they are authorized for

Write-time rules (on top of the model's persist-time invariants):
    - discipline, organisation, contact_name required and trimmed
    - line item costs and partial totals are finite numbers ≥ 0
    - moving to 'partially instructed' requires partially_instructed_total ≥ 0

A quote from a firm missing from the surveyor directory queues it as a
pending surveyor (see surveyor_directory_service).
"""

import logging
import math

from surveyhub.core.exceptions import AuthError, NotFoundError, ValidationError
from surveyhub.models import db
from surveyhub.models.instruction_log import InstructionLog
from surveyhub.models.project import Project
from surveyhub.models.quote import (
    STATUS_PARTIALLY_INSTRUCTED,
    STATUS_PENDING,
    VALID_INSTRUCTION_STATUSES,
    Quote,
)
from surveyhub.models.surveyor_feedback import SurveyorFeedback
from surveyhub.models.surveyor_organisation import PendingSurveyor
from surveyhub.models.user import ROLE_ADMIN, ROLE_CLIENT, ROLE_SURVEYOR, User
from surveyhub.services import project_service, surveyor_directory_service
from surveyhub.utils.helpers import (
    clean_str,
    commit_or_raise,
    parse_date_input,
    pick_fields,
    require_id,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("discipline", "organisation", "contact_name")


# ── Validation ───────────────────────────────────────────────────────────────


def _non_negative_number(value):
    """Return ``(float, None)`` for a finite number >= 0, else ``(None, reason)``."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None, "must be a number"
    if not math.isfinite(number):
        return None, "must be a finite number"
    if number < 0:
        return None, "must be >= 0"
    return number, None


def _normalize_line_items(items) -> list[dict]:
    if items is None:
        return []
    if not isinstance(items, list):
        raise ValidationError("line_items must be a list", details={"line_items": "must be a list"})

    normalized = []
    errors = {}
    for idx, item in enumerate(items):
        if not isinstance(item, dict):
            errors[f"line_items[{idx}]"] = "must be an object"
            continue
        cost = item.get("cost")
        if cost in (None, ""):
            cost = 0
        cost, problem = _non_negative_number(cost)
        if problem:
            errors[f"line_items[{idx}].cost"] = problem
            continue
        normalized.append({
            "item": clean_str(item.get("item")),
            "description": clean_str(item.get("description")),
            "cost": cost,
        })
    if errors:
        raise ValidationError("Invalid line items", details=errors)
    return normalized


def _validate_fields(fields: dict) -> dict:
    errors = {}
    for key in REQUIRED_FIELDS:
        if key in fields:
            fields[key] = clean_str(fields[key])
            if not fields[key]:
                errors[key] = "required"
    if "email" in fields:
        fields["email"] = clean_str(fields["email"]).lower() or None
    status = fields.get("instruction_status")
    if status is not None and status not in VALID_INSTRUCTION_STATUSES:
        errors["instruction_status"] = f"must be one of {sorted(VALID_INSTRUCTION_STATUSES)}"
    if fields.get("partially_instructed_total") not in (None, ""):
        value, problem = _non_negative_number(fields["partially_instructed_total"])
        if problem:
            errors["partially_instructed_total"] = problem
        fields["partially_instructed_total"] = value
    elif "partially_instructed_total" in fields:
        fields["partially_instructed_total"] = None
    if errors:
        raise ValidationError("Invalid quote data", details=errors)

    if "line_items" in fields:
        fields["line_items"] = _normalize_line_items(fields["line_items"])
    if "quote_date" in fields:
        fields["quote_date"] = parse_date_input(fields["quote_date"], "quote_date")
    return fields


def _check_partial_total(status: str, partial_total) -> None:
    if status == STATUS_PARTIALLY_INSTRUCTED and partial_total is None:
        raise ValidationError(
            "partially_instructed_total is required when instruction_status is 'partially instructed'",
            details={"partially_instructed_total": "required"},
        )


# ── Access ───────────────────────────────────────────────────────────────────


def _can_read(quote: Quote, identity) -> bool:
    if identity.role == ROLE_ADMIN:
        return True
    if identity.role == ROLE_SURVEYOR:
        return quote.surveyor_id == identity.user_id
    if identity.role == ROLE_CLIENT:
        project = db.session.get(Project, quote.project_id)
        return project is not None and project_service.can_access(project, identity)
    return False


def _can_write(quote: Quote, identity) -> bool:
    if identity.role == ROLE_ADMIN:
        return True
    return identity.role == ROLE_SURVEYOR and quote.surveyor_id == identity.user_id


# ── Reads ────────────────────────────────────────────────────────────────────


def get_quote(quote_id: str, identity=None) -> Quote:
    require_id(quote_id, "quote_id")
    quote = db.session.get(Quote, quote_id)
    if quote is None:
        raise NotFoundError("Quote", quote_id)
    if identity is not None and not _can_read(quote, identity):
        raise AuthError("Not authorized for this quote", status_code=403)
    return quote


def list_quotes(identity, project_id: str | None = None) -> list[Quote]:
    query = Quote.query
    if project_id is not None:
        require_id(project_id, "project_id")
        query = query.filter(Quote.project_id == project_id)

    if identity.role == ROLE_SURVEYOR:
        query = query.filter(Quote.surveyor_id == identity.user_id)
    elif identity.role == ROLE_CLIENT:
        query = query.join(Project, Project.id == Quote.project_id).filter(
            Project.authorized_clients.any(User.id == identity.user_id)
        )
    elif identity.role != ROLE_ADMIN:
        return []
    return query.order_by(Quote.created_at, Quote.id).all()


# ── Writes ───────────────────────────────────────────────────────────────────


def create_quote(data: dict, identity) -> Quote:
    if identity.role not in (ROLE_ADMIN, ROLE_SURVEYOR):
        raise AuthError("Only admins and surveyors may submit quotes", status_code=403)

    project_id = data.get("project_id")
    if not project_id:
        raise ValidationError("project_id is required", details={"project_id": "required"})
    project_service.get_project(project_id, identity)

    fields = _validate_fields(pick_fields(data, Quote.EDITABLE_FIELDS))
    missing = [key for key in REQUIRED_FIELDS if not fields.get(key)]
    if missing:
        raise ValidationError(
            "Missing required fields for quote",
            details={key: "required" for key in missing},
        )

    _check_partial_total(
        fields.get("instruction_status", STATUS_PENDING),
        fields.get("partially_instructed_total"),
    )
    quote = Quote(project_id=project_id, surveyor_id=identity.user_id, **fields)
    db.session.add(quote)
    commit_or_raise("Quote")
    logger.info("Created quote %s on project %s", quote.id, project_id,
                extra={"quote_id": quote.id, "project_id": project_id})
    surveyor_directory_service.queue_unknown_surveyor(quote)
    return quote


def update_quote(quote_id: str, data: dict, identity) -> Quote:
    quote = get_quote(quote_id)
    if not _can_write(quote, identity):
        raise AuthError("Not authorized to modify this quote", status_code=403)

    fields = _validate_fields(pick_fields(data, Quote.EDITABLE_FIELDS))
    _check_partial_total(
        fields.get("instruction_status", quote.instruction_status),
        fields.get("partially_instructed_total", quote.partially_instructed_total),
    )
    for key, value in fields.items():
        setattr(quote, key, value)

    commit_or_raise("Quote", value=quote_id)
    logger.info("Updated quote %s", quote_id, extra={"quote_id": quote_id})
    return quote


def delete_quote(quote_id: str, identity) -> None:
    """Delete a quote together with its instruction log and feedback."""
    quote = get_quote(quote_id)
    if not _can_write(quote, identity):
        raise AuthError("Not authorized to delete this quote", status_code=403)

    SurveyorFeedback.query.filter_by(quote_id=quote_id).delete(synchronize_session=False)
    InstructionLog.query.filter_by(quote_id=quote_id).delete(synchronize_session=False)
    PendingSurveyor.query.filter_by(source_quote_id=quote_id).update(
        {"source_quote_id": None}, synchronize_session=False,
    )
    db.session.delete(quote)
    commit_or_raise("Quote", value=quote_id)
    logger.info("Deleted quote %s", quote_id, extra={"quote_id": quote_id})
