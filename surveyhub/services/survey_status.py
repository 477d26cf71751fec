"""
Survey status classification.

Maps a quote's instruction status and its instruction log's work status to
one of three outcomes used by the project summary:

    excluded     quote is not instructed / partially instructed
    completed    instructed, and the log's work status is 'completed'
    outstanding  instructed, and there is no log or the log is not completed

Quotes without a log and quotes with an unfinished log are both
outstanding. ``partition_surveys`` classifies each quote exactly once, so a
quote can never be listed twice.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

from surveyhub.models.instruction_log import WORK_COMPLETED, WORK_NOT_STARTED
from surveyhub.models.quote import INSTRUCTED_STATUSES

EXCLUDED = "excluded"
OUTSTANDING = "outstanding"
COMPLETED = "completed"


@dataclass(frozen=True)
class OutstandingSurvey:
    quote_id: str
    organisation: str | None
    contact_name: str | None
    work_status: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class SurveyStatus:
    outcome: str
    outstanding: OutstandingSurvey | None = None


def classify_quote(quote, log_work_status: str | None = None) -> SurveyStatus:
    """Classify one quote.

    Args:
        quote: Anything with ``id``, ``instruction_status``, ``organisation``
            and ``contact_name`` attributes (a Quote row in practice).
        log_work_status: The linked InstructionLog's ``work_status``, or None
            when the quote has no log.
    """
    if quote.instruction_status not in INSTRUCTED_STATUSES:
        return SurveyStatus(EXCLUDED)
    if log_work_status == WORK_COMPLETED:
        return SurveyStatus(COMPLETED)
    return SurveyStatus(
        OUTSTANDING,
        OutstandingSurvey(
            quote_id=quote.id,
            organisation=quote.organisation,
            contact_name=quote.contact_name,
            work_status=log_work_status or WORK_NOT_STARTED,
        ),
    )


def partition_surveys(quotes, work_status_by_quote: dict) -> tuple[list[OutstandingSurvey], int]:
    """Split a project's quotes into outstanding surveys and a completed count.

    Args:
        quotes: The project's quotes (any status; excluded ones are skipped).
        work_status_by_quote: ``{quote_id: work_status}`` for quotes that have
            an instruction log.

    Returns:
        ``(outstanding, completed_count)`` where ``outstanding`` keeps the
        order of ``quotes``.
    """
    outstanding: list[OutstandingSurvey] = []
    completed = 0
    for quote in quotes:
        status = classify_quote(quote, work_status_by_quote.get(quote.id))
        if status.outcome == COMPLETED:
            completed += 1
        elif status.outcome == OUTSTANDING:
            outstanding.append(status.outstanding)
    return outstanding, completed
