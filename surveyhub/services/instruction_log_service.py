"""
Instruction log service.

An instruction log is created the first time anyone writes to it, keyed on
the quote. ``upsert_log`` is a single atomic statement so two concurrent
writers for the same quote leave exactly one row.
"""

import logging

from sqlalchemy.exc import IntegrityError

from surveyhub.core.exceptions import AuthError, ConflictError, ValidationError
from surveyhub.models import _uuid, db
from surveyhub.models.instruction_log import VALID_WORK_STATUSES, WORK_NOT_STARTED, InstructionLog
from surveyhub.models.user import ROLE_ADMIN, ROLE_SURVEYOR
from surveyhub.services import project_service, quote_service
from surveyhub.services.helpers.upsert import upsert_by_unique_key
from surveyhub.utils.helpers import clean_str, parse_date_input, pick_fields, require_id

logger = logging.getLogger(__name__)

UPLOADED_WORK_FIELDS = ("file_name", "title", "version", "date_uploaded", "description", "url")


def _normalize_uploaded_works(works) -> list[dict]:
    if not isinstance(works, list):
        raise ValidationError("uploaded_works must be a list", details={"uploaded_works": "must be a list"})
    normalized = []
    for idx, work in enumerate(works):
        if not isinstance(work, dict):
            raise ValidationError("Invalid uploaded work", details={f"uploaded_works[{idx}]": "must be an object"})
        entry = {"id": work.get("id") or _uuid()}
        for key in UPLOADED_WORK_FIELDS:
            entry[key] = work.get(key)
        if entry["date_uploaded"]:
            parsed = parse_date_input(entry["date_uploaded"], f"uploaded_works[{idx}].date_uploaded")
            entry["date_uploaded"] = parsed.isoformat()
        normalized.append(entry)
    return normalized


def _normalize_custom_dates(dates) -> list[dict]:
    if not isinstance(dates, list):
        raise ValidationError("custom_dates must be a list", details={"custom_dates": "must be a list"})
    normalized = []
    for idx, item in enumerate(dates):
        if not isinstance(item, dict):
            raise ValidationError("Invalid custom date", details={f"custom_dates[{idx}]": "must be an object"})
        parsed = parse_date_input(item.get("date"), f"custom_dates[{idx}].date")
        normalized.append({
            "id": item.get("id") or _uuid(),
            "title": clean_str(item.get("title")),
            "date": parsed.isoformat() if parsed else None,
        })
    return normalized


def _validate_fields(fields: dict) -> dict:
    if "work_status" in fields and fields["work_status"] not in VALID_WORK_STATUSES:
        raise ValidationError(
            "Invalid work_status",
            details={"work_status": f"must be one of {sorted(VALID_WORK_STATUSES)}"},
        )
    for key in ("site_visit_date", "report_draft_date"):
        if key in fields:
            fields[key] = parse_date_input(fields[key], key)
    for key in ("dependencies", "operational_notes"):
        if key in fields:
            fields[key] = fields[key] or ""
    if "uploaded_works" in fields:
        fields["uploaded_works"] = _normalize_uploaded_works(fields["uploaded_works"] or [])
    if "custom_dates" in fields:
        fields["custom_dates"] = _normalize_custom_dates(fields["custom_dates"] or [])
    return fields


def list_logs(identity, project_id: str | None = None, quote_id: str | None = None) -> list[InstructionLog]:
    """Logs for one project or one quote. Exactly one filter is required."""
    if project_id:
        project_service.get_project(project_id, identity)
        query = InstructionLog.query.filter_by(project_id=project_id)
    elif quote_id:
        quote_service.get_quote(quote_id, identity)
        query = InstructionLog.query.filter_by(quote_id=quote_id)
    else:
        raise ValidationError(
            "project_id or quote_id query parameter is required",
            details={"project_id": "required", "quote_id": "required"},
        )
    return query.order_by(InstructionLog.created_at, InstructionLog.id).all()


def upsert_log(quote_id: str, data: dict, identity) -> InstructionLog:
    """Create or update the instruction log for ``quote_id``.

    The log's project is taken from the quote, never from the payload.
    Surveyors may only log work on quotes they submitted, the same quotes
    they can read back.
    """
    require_id(quote_id, "quote_id")
    quote = quote_service.get_quote(quote_id, identity)
    if identity.role not in (ROLE_ADMIN, ROLE_SURVEYOR):
        raise AuthError("Not authorized to update this instruction log", status_code=403)

    fields = _validate_fields(pick_fields(data, InstructionLog.EDITABLE_FIELDS))

    insert_values = {
        "id": _uuid(),
        "project_id": quote.project_id,
        "quote_id": quote_id,
        "work_status": WORK_NOT_STARTED,
        "dependencies": "",
        "operational_notes": "",
        "uploaded_works": [],
        "custom_dates": [],
    }
    insert_values.update(fields)

    try:
        upsert_by_unique_key(
            InstructionLog,
            key="quote_id",
            insert_values=insert_values,
            update_fields=tuple(fields),
        )
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Instruction log upsert conflict for quote %s: %s", quote_id, exc.orig,
                       extra={"quote_id": quote_id})
        raise ConflictError("InstructionLog", "quote_id", quote_id) from exc

    # Core statements bypass the identity map; drop any stale instance.
    db.session.expire_all()
    log = InstructionLog.query.filter_by(quote_id=quote_id).one()
    logger.info("Upserted instruction log for quote %s (%s)", quote_id, log.work_status,
                extra={"quote_id": quote_id, "project_id": quote.project_id})
    return log
