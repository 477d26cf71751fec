"""Shared utility functions used by services and blueprints.

require_id:      reject non-id-shaped strings before any query runs
parse_date:      tolerant date parsing (returns None on bad input)
parse_date_input: strict date parsing (raises ValidationError)
pick_fields:     allow-list filter for update payloads
commit_or_raise: commit the session, mapping integrity errors to ConflictError
"""
import logging
from datetime import date, datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from surveyhub.core.exceptions import ConflictError, InvalidIdentifierError, ValidationError
from surveyhub.models import db, is_valid_id

logger = logging.getLogger(__name__)


def require_id(value, field: str = "id") -> str:
    """Return ``value`` if it is id-shaped, else raise InvalidIdentifierError."""
    if not is_valid_id(value):
        raise InvalidIdentifierError(field, value)
    return value


def parse_date(value):
    """Parse a date string (ISO or DD/MM/YYYY) to a date object.

    Returns None for empty/invalid input. Supports:
    - YYYY-MM-DD (ISO format)
    - YYYY-MM-DDTHH:MM:SS (datetime ISO → .date())
    - DD/MM/YYYY (UK format)
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()
    except (ValueError, TypeError):
        pass
    try:
        return datetime.strptime(str(value), "%d/%m/%Y").date()
    except (ValueError, TypeError):
        return None


def parse_date_input(value, field: str):
    """Parse a date, raising ValidationError on bad input. Empty → None."""
    if value in (None, ""):
        return None
    parsed = parse_date(value)
    if parsed is None:
        raise ValidationError(
            f"Invalid date for {field}. Use YYYY-MM-DD or DD/MM/YYYY.",
            details={field: "invalid date"},
        )
    return parsed


def pick_fields(data: dict | None, allowed) -> dict:
    """Keep only allow-listed keys of an incoming payload."""
    data = data or {}
    return {key: data[key] for key in allowed if key in data}


def clean_str(value) -> str:
    return str(value or "").strip()


# ── Database commit helper ───────────────────────────────────────────────────

def commit_or_raise(resource: str, field: str = "id", value=None) -> None:
    """Commit the current session.

    IntegrityError   → ConflictError (HTTP 409, caller may retry)
    SQLAlchemyError  → re-raised after rollback (HTTP 500)
    """
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit for %s: %s", resource, exc.orig)
        raise ConflictError(resource, field, value) from exc
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Database error on commit for %s", resource)
        raise
