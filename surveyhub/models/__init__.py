"""
SurveyHub
SQLAlchemy models package.

``db`` is the shared Flask-SQLAlchemy handle; entity modules import it from
here and ``create_app`` binds it to the application.
"""

import uuid
from datetime import date, datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    """ISO-8601 string for a date/datetime column, None when unset."""
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def is_valid_id(value) -> bool:
    """True if ``value`` is shaped like an entity id (a UUID string)."""
    if not isinstance(value, str) or not value:
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True
