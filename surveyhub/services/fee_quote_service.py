"""
Fee quote tracking: requests sent to individual firms, and the log of
request emails sent per project. Both are listed newest first.
"""

import logging
import re
from datetime import datetime, time, timezone

from surveyhub.core.exceptions import NotFoundError, ValidationError
from surveyhub.models import db
from surveyhub.models.fee_quote import FeeQuoteLog, FeeQuoteRequest
from surveyhub.services import project_service
from surveyhub.utils.helpers import clean_str, commit_or_raise, parse_date_input, require_id

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

REQUEST_REQUIRED_FIELDS = ("discipline", "organisation", "contact_name", "email")


def _require_project_id(project_id) -> str:
    if not project_id:
        raise ValidationError("project_id is required", details={"project_id": "required"})
    return require_id(project_id, "project_id")


def _sent_at(value, field: str):
    """A date from the payload as midnight UTC, or None to use the column default."""
    parsed = parse_date_input(value, field)
    if parsed is None:
        return None
    return datetime.combine(parsed, time.min, tzinfo=timezone.utc)


# ── Requests ─────────────────────────────────────────────────────────────────


def list_requests(project_id, identity) -> list[FeeQuoteRequest]:
    project_service.get_project(_require_project_id(project_id), identity)
    return (
        FeeQuoteRequest.query
        .filter_by(project_id=project_id)
        .order_by(FeeQuoteRequest.request_sent_date.desc(), FeeQuoteRequest.id)
        .all()
    )


def create_request(data: dict) -> FeeQuoteRequest:
    project_id = _require_project_id(data.get("project_id"))
    project_service.get_project(project_id)

    fields = {key: clean_str(data.get(key)) for key in REQUEST_REQUIRED_FIELDS}
    errors = {key: "required" for key, value in fields.items() if not value}
    fields["email"] = fields["email"].lower()
    if fields["email"] and not _EMAIL_RE.match(fields["email"]):
        errors["email"] = "invalid email"
    if errors:
        raise ValidationError("Invalid fee quote request", details=errors)

    fee_request = FeeQuoteRequest(
        project_id=project_id,
        phone_number=clean_str(data.get("phone_number")) or None,
        **fields,
    )
    sent_at = _sent_at(data.get("request_sent_date"), "request_sent_date")
    if sent_at is not None:
        fee_request.request_sent_date = sent_at
    db.session.add(fee_request)
    commit_or_raise("FeeQuoteRequest")
    logger.info("Recorded fee quote request %s to %s", fee_request.id, fee_request.organisation,
                extra={"project_id": project_id})
    return fee_request


# ── Email log ────────────────────────────────────────────────────────────────


def list_logs(project_id, identity) -> list[FeeQuoteLog]:
    project_service.get_project(_require_project_id(project_id), identity)
    return (
        FeeQuoteLog.query
        .filter_by(project_id=project_id)
        .order_by(FeeQuoteLog.sent_date.desc(), FeeQuoteLog.id)
        .all()
    )


def get_log(log_id: str) -> FeeQuoteLog:
    require_id(log_id, "log_id")
    log = db.session.get(FeeQuoteLog, log_id)
    if log is None:
        raise NotFoundError("FeeQuoteLog", log_id)
    return log


def create_log(data: dict) -> FeeQuoteLog:
    project_id = _require_project_id(data.get("project_id"))
    project_service.get_project(project_id)

    emails = data.get("emails")
    if not isinstance(emails, list) or not emails:
        raise ValidationError(
            "At least one email address is required",
            details={"emails": "required"},
        )
    normalized = [clean_str(e).lower() for e in emails]
    invalid = [e for e in normalized if not _EMAIL_RE.match(e)]
    if invalid:
        raise ValidationError("All emails must be valid email addresses", details={"emails": invalid})

    log = FeeQuoteLog(project_id=project_id, emails=normalized)
    sent_at = _sent_at(data.get("sent_date"), "sent_date")
    if sent_at is not None:
        log.sent_date = sent_at
    db.session.add(log)
    commit_or_raise("FeeQuoteLog")
    logger.info("Logged %d fee quote emails", len(normalized), extra={"project_id": project_id})
    return log


def delete_log(log_id: str) -> None:
    log = get_log(log_id)
    db.session.delete(log)
    commit_or_raise("FeeQuoteLog", value=log_id)
    logger.info("Deleted fee quote log %s", log_id)
