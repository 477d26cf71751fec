"""
Instructed spend and engaged-organisation counting.

Spend per quote:
    instructed            → total
    partially instructed  → partially_instructed_total
    anything else         → not counted

A missing (or negative) figure on an instructed quote contributes 0 and is
logged as a data-quality warning; it never raises.
"""

import logging

from surveyhub.models.quote import INSTRUCTED_STATUSES, STATUS_INSTRUCTED

logger = logging.getLogger(__name__)


def quote_spend(quote) -> float:
    """Amount committed by one quote (0 for quotes that are not instructed)."""
    if quote.instruction_status not in INSTRUCTED_STATUSES:
        return 0
    if quote.instruction_status == STATUS_INSTRUCTED:
        field = "total"
    else:
        field = "partially_instructed_total"
    value = getattr(quote, field, None)
    if value is None or value < 0:
        logger.warning(
            "Quote %s is %s but %s is %r; counting 0",
            quote.id, quote.instruction_status, field, value,
            extra={"quote_id": quote.id},
        )
        return 0
    return value


def instructed_spend(quotes) -> float:
    """Total committed spend across a project's quotes. Never negative."""
    return sum(quote_spend(q) for q in quotes)


def instructed_organisation_count(quotes) -> int:
    """Number of distinct organisations with an instructed or partially instructed quote."""
    return len({
        q.organisation for q in quotes
        if q.instruction_status in INSTRUCTED_STATUSES and q.organisation
    })
