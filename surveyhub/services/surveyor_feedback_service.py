"""
Surveyor feedback service — one review per quote, written by admins.

Ratings:
    quality, responsiveness, overall_review   integers 1-5
    delivered_on_time                         integer 0-5 (0 = not applicable)

``overall_review`` must be supplied when the review is first created;
later partial updates may omit it.
"""

import logging
from datetime import datetime, time, timezone

from sqlalchemy.exc import IntegrityError

from surveyhub.core.exceptions import ConflictError, NotFoundError, ValidationError
from surveyhub.models import _utcnow, _uuid, db
from surveyhub.models.surveyor_feedback import RATING_RANGES, SurveyorFeedback
from surveyhub.services import project_service, quote_service
from surveyhub.services.helpers.upsert import upsert_by_unique_key
from surveyhub.utils.helpers import commit_or_raise, parse_date, pick_fields, require_id

logger = logging.getLogger(__name__)


def _validate_fields(fields: dict) -> dict:
    errors = {}
    for key, (low, high) in RATING_RANGES.items():
        if key not in fields or fields[key] is None:
            continue
        value = fields[key]
        if isinstance(value, bool) or not isinstance(value, (int, float)) or int(value) != value:
            errors[key] = "must be an integer"
        elif not low <= value <= high:
            errors[key] = f"must be between {low} and {high}"
        else:
            fields[key] = int(value)
    if fields.get("overall_review", 0) is None:
        errors["overall_review"] = "cannot be cleared"
    if "review_date" in fields:
        if fields["review_date"] in (None, ""):
            fields["review_date"] = _utcnow()
        else:
            parsed = parse_date(fields["review_date"])
            if parsed is None:
                errors["review_date"] = "invalid date"
            else:
                fields["review_date"] = datetime.combine(parsed, time.min, tzinfo=timezone.utc)
    if errors:
        raise ValidationError("Invalid feedback", details=errors)
    return fields


def list_feedback(identity, project_id: str | None = None, quote_id: str | None = None):
    if project_id:
        project_service.get_project(project_id, identity)
        query = SurveyorFeedback.query.filter_by(project_id=project_id)
    elif quote_id:
        quote_service.get_quote(quote_id, identity)
        query = SurveyorFeedback.query.filter_by(quote_id=quote_id)
    else:
        raise ValidationError(
            "project_id or quote_id query parameter is required",
            details={"project_id": "required", "quote_id": "required"},
        )
    return query.order_by(SurveyorFeedback.created_at, SurveyorFeedback.id).all()


def upsert_feedback(quote_id: str, data: dict) -> SurveyorFeedback:
    require_id(quote_id, "quote_id")
    quote = quote_service.get_quote(quote_id)
    fields = _validate_fields(pick_fields(data, SurveyorFeedback.EDITABLE_FIELDS))

    existing = SurveyorFeedback.query.filter_by(quote_id=quote_id).first()
    if existing is None and fields.get("overall_review") is None:
        raise ValidationError(
            "overall_review is required",
            details={"overall_review": "required"},
        )

    insert_values = {
        "id": _uuid(),
        "project_id": quote.project_id,
        "quote_id": quote_id,
        "review_date": _utcnow(),
    }
    insert_values.update(fields)

    try:
        upsert_by_unique_key(
            SurveyorFeedback,
            key="quote_id",
            insert_values=insert_values,
            update_fields=tuple(fields),
        )
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Feedback upsert conflict for quote %s: %s", quote_id, exc.orig,
                       extra={"quote_id": quote_id})
        raise ConflictError("SurveyorFeedback", "quote_id", quote_id) from exc

    db.session.expire_all()
    feedback = SurveyorFeedback.query.filter_by(quote_id=quote_id).one()
    logger.info("Upserted feedback for quote %s", quote_id,
                extra={"quote_id": quote_id, "project_id": quote.project_id})
    return feedback


def delete_feedback(quote_id: str) -> None:
    require_id(quote_id, "quote_id")
    deleted = SurveyorFeedback.query.filter_by(quote_id=quote_id).delete(synchronize_session=False)
    if not deleted:
        raise NotFoundError("SurveyorFeedback", quote_id)
    commit_or_raise("SurveyorFeedback", "quote_id", quote_id)
    logger.info("Deleted feedback for quote %s", quote_id, extra={"quote_id": quote_id})
