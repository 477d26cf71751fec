"""
Project summary aggregation.

For every project matching a ProjectFilter, computes:
    client               resolved client organisation name ("" if unset or dangling)
    instructed_count     distinct organisations with an instructed quote
    completed_count      instructed quotes whose log is 'completed'
    outstanding_count    instructed quotes with no log or an unfinished log
    outstanding_surveys  [{quote_id, organisation, contact_name, work_status}]
    instructed_spend     committed spend (see services.spend)
    programme_events     the project's timeline markers, by date

Nothing is cached: each call reads the current state of projects, quotes,
instruction logs and programme events. Every stage is one batched query
over all matching projects; instruction logs are fetched after quotes
because they are selected by instructed quote id.

Failure semantics:
    - malformed ids in the filter → InvalidIdentifierError, before any query
    - any database error → AggregationError for the whole batch, no partial result
    - dangling client reference → empty client name, not an error

Results are ordered by project creation time, newest first.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from surveyhub.core.exceptions import AggregationError, NotFoundError
from surveyhub.models import db
from surveyhub.models.instruction_log import InstructionLog
from surveyhub.models.programme_event import ProgrammeEvent
from surveyhub.models.project import Project
from surveyhub.models.quote import INSTRUCTED_STATUSES, Quote
from surveyhub.models.user import ROLE_ADMIN, ROLE_CLIENT, ROLE_SURVEYOR, ClientOrganisation, User
from surveyhub.services.spend import instructed_organisation_count, instructed_spend
from surveyhub.services.summary_projection import project_summary
from surveyhub.services.survey_status import partition_surveys
from surveyhub.utils.helpers import require_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectFilter:
    """Which projects a summary request covers.

    All set criteria must hold. An empty filter matches every project.
    """

    project_ids: tuple[str, ...] | None = None
    authorized_surveyor_id: str | None = None
    authorized_client_id: str | None = None

    @classmethod
    def for_identity(cls, identity, project_ids=None) -> "ProjectFilter":
        """Scope to what the caller may see.

        Admins see everything, surveyors and clients their authorized
        projects. Any other role matches nothing.
        """
        ids = tuple(project_ids) if project_ids is not None else None
        if identity.role == ROLE_SURVEYOR:
            return cls(project_ids=ids, authorized_surveyor_id=identity.user_id)
        if identity.role == ROLE_CLIENT:
            return cls(project_ids=ids, authorized_client_id=identity.user_id)
        if identity.role == ROLE_ADMIN:
            return cls(project_ids=ids)
        return cls(project_ids=())

    def validate(self) -> None:
        for pid in self.project_ids or ():
            require_id(pid, "project_id")
        if self.authorized_surveyor_id is not None:
            require_id(self.authorized_surveyor_id, "authorized_surveyor_id")
        if self.authorized_client_id is not None:
            require_id(self.authorized_client_id, "authorized_client_id")


# ── Stages ───────────────────────────────────────────────────────────────────


def _match_projects(project_filter: ProjectFilter) -> list[Project]:
    query = Project.query
    if project_filter.project_ids is not None:
        if not project_filter.project_ids:
            return []
        query = query.filter(Project.id.in_(project_filter.project_ids))
    if project_filter.authorized_surveyor_id is not None:
        query = query.filter(
            Project.authorized_surveyors.any(User.id == project_filter.authorized_surveyor_id)
        )
    if project_filter.authorized_client_id is not None:
        query = query.filter(
            Project.authorized_clients.any(User.id == project_filter.authorized_client_id)
        )
    return query.order_by(Project.created_at.desc(), Project.id).all()


def _client_names(client_ids: set[str]) -> dict[str, str]:
    if not client_ids:
        return {}
    rows = (
        db.session.query(ClientOrganisation.id, ClientOrganisation.organisation_name)
        .filter(ClientOrganisation.id.in_(client_ids))
        .all()
    )
    return {cid: name for cid, name in rows}


def _quotes_by_project(project_ids: list[str]) -> dict[str, list[Quote]]:
    quotes = (
        Quote.query
        .filter(Quote.project_id.in_(project_ids))
        .order_by(Quote.created_at, Quote.id)
        .all()
    )
    grouped: dict[str, list[Quote]] = defaultdict(list)
    for quote in quotes:
        grouped[quote.project_id].append(quote)
    return grouped


def _work_status_by_quote(quote_ids: list[str]) -> dict[str, str]:
    if not quote_ids:
        return {}
    rows = (
        db.session.query(InstructionLog.quote_id, InstructionLog.work_status)
        .filter(InstructionLog.quote_id.in_(quote_ids))
        .all()
    )
    return {quote_id: work_status for quote_id, work_status in rows}


def _events_by_project(project_ids: list[str]) -> dict[str, list[dict]]:
    events = (
        ProgrammeEvent.query
        .filter(ProgrammeEvent.project_id.in_(project_ids))
        .order_by(ProgrammeEvent.date, ProgrammeEvent.id)
        .all()
    )
    grouped: dict[str, list[dict]] = defaultdict(list)
    for event in events:
        grouped[event.project_id].append(event.to_dict())
    return grouped


def _fold_project(project: Project, client_name: str, quotes: list[Quote],
                  work_statuses: dict[str, str], events: list[dict]) -> dict:
    """Merge a project's own fields with its computed aggregates."""
    instructed = [q for q in quotes if q.instruction_status in INSTRUCTED_STATUSES]
    outstanding, completed_count = partition_surveys(instructed, work_statuses)
    enriched = project.to_dict()
    enriched.update({
        "client": client_name,
        "quotes": quotes,
        "instructed_quotes": instructed,
        "instructed_logs": {q.id: work_statuses[q.id] for q in instructed if q.id in work_statuses},
        "instructed_count": instructed_organisation_count(instructed),
        "completed_count": completed_count,
        "outstanding_count": len(outstanding),
        "outstanding_surveys": [o.to_dict() for o in outstanding],
        "instructed_spend": instructed_spend(instructed),
        "programme_events": events,
    })
    return enriched


# ── Public API ───────────────────────────────────────────────────────────────


def summarize_projects(project_filter: ProjectFilter) -> list[dict]:
    """Summarize every project matching ``project_filter``, newest first.

    Raises:
        InvalidIdentifierError: an id in the filter is not id-shaped.
        AggregationError: the store failed; nothing is returned.
    """
    project_filter.validate()

    try:
        projects = _match_projects(project_filter)
        if not projects:
            return []
        project_ids = [p.id for p in projects]

        client_names = _client_names({p.client_id for p in projects if p.client_id})
        quotes_by_project = _quotes_by_project(project_ids)
        instructed_ids = [
            q.id
            for quotes in quotes_by_project.values()
            for q in quotes
            if q.instruction_status in INSTRUCTED_STATUSES
        ]
        work_statuses = _work_status_by_quote(instructed_ids)
        events_by_project = _events_by_project(project_ids)

        enriched = [
            _fold_project(
                project,
                client_names.get(project.client_id, "") if project.client_id else "",
                quotes_by_project.get(project.id, []),
                work_statuses,
                events_by_project.get(project.id, []),
            )
            for project in projects
        ]
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Project summary aggregation failed")
        raise AggregationError("Project summary aggregation failed", cause=exc) from exc

    logger.debug("Summarized %d projects", len(enriched), extra={"project_count": len(enriched)})
    return [project_summary(e) for e in enriched]


def summarize_project(project_id: str, project_filter: ProjectFilter | None = None) -> dict:
    """Summary for a single project, within the caller's visibility filter.

    Raises:
        InvalidIdentifierError: ``project_id`` is not id-shaped.
        NotFoundError: no such project, or not visible under ``project_filter``.
        AggregationError: the store failed.
    """
    require_id(project_id, "project_id")
    base = project_filter or ProjectFilter()
    scoped = ProjectFilter(
        project_ids=(project_id,),
        authorized_surveyor_id=base.authorized_surveyor_id,
        authorized_client_id=base.authorized_client_id,
    )
    if base.project_ids is not None and project_id not in base.project_ids:
        raise NotFoundError("Project", project_id)
    results = summarize_projects(scoped)
    if not results:
        raise NotFoundError("Project", project_id)
    return results[0]
