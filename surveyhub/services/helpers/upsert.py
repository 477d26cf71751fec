"""
Atomic upsert keyed on a unique column.

InstructionLog and SurveyorFeedback are one-per-quote. Two requests writing
the same quote at the same time must leave exactly one row, so the write is
a single ``INSERT ... ON CONFLICT (key) DO UPDATE`` statement instead of a
read-then-write. The row that survives holds the values of whichever
statement the database applied last.

Supported dialects: PostgreSQL and SQLite (3.24+).

Usage:
    upsert_by_unique_key(
        InstructionLog,
        key="quote_id",
        insert_values={...all NOT NULL columns...},
        update_fields=("work_status",),
    )
"""

import logging

from sqlalchemy.dialects import postgresql, sqlite

from surveyhub.models import _utcnow, db

logger = logging.getLogger(__name__)

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def upsert_by_unique_key(model, *, key: str, insert_values: dict, update_fields) -> None:
    """Insert a row or, if ``key`` already exists, update ``update_fields`` on it.

    ``insert_values`` must contain every column needed for a fresh row,
    including ``key``. Only the columns named in ``update_fields`` (plus
    ``updated_at`` when the model has it) are overwritten on conflict;
    creation-time columns such as ``id`` and ``project_id`` are kept.

    The statement is executed on the current session; the caller commits.
    """
    dialect = db.session.get_bind().dialect.name
    insert = _INSERT_BY_DIALECT.get(dialect)
    if insert is None:
        raise RuntimeError(f"Atomic upsert is not supported on dialect '{dialect}'")

    table = model.__table__
    values = dict(insert_values)
    if "updated_at" in table.c:
        now = _utcnow()
        values.setdefault("created_at", now)
        values["updated_at"] = now

    stmt = insert(table).values(**values)
    set_ = {field: stmt.excluded[field] for field in update_fields}
    if "updated_at" in table.c:
        set_["updated_at"] = stmt.excluded["updated_at"]

    if set_:
        stmt = stmt.on_conflict_do_update(index_elements=[key], set_=set_)
    else:
        stmt = stmt.on_conflict_do_nothing(index_elements=[key])

    db.session.execute(stmt)
    logger.debug("Upserted %s %s=%s fields=%s",
                 table.name, key, values.get(key), sorted(update_fields))
