"""
Tests: project summary aggregation.

Covers:
  1. instructed / partially instructed / pending mix (spend 700, 1 completed, 1 outstanding)
  2. distinct organisation counting
  3. dangling and missing client references resolve to ""
  4. only the public summary fields leave the service
  5. repeated reads with no writes in between are identical
  6. malformed ids are rejected before any query
  7. a store failure aborts the whole batch
  8. visibility scoping by role, ordering, programme events
"""

from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from surveyhub.core.exceptions import AggregationError, InvalidIdentifierError, NotFoundError
from surveyhub.models import _uuid
from surveyhub.models import db as _db
from surveyhub.models.instruction_log import InstructionLog
from surveyhub.models.programme_event import ProgrammeEvent
from surveyhub.models.project import Project
from surveyhub.models.quote import Quote
from surveyhub.models.user import ClientOrganisation
from surveyhub.services import project_summary_service
from surveyhub.services.identity_service import RequestIdentity
from surveyhub.services.project_summary_service import (
    ProjectFilter,
    summarize_project,
    summarize_projects,
)
from surveyhub.services.summary_projection import SUMMARY_FIELDS


# ── ORM helpers ───────────────────────────────────────────────────────────────


def _make_project(name="Solar Farm North", created_at=None, **kw):
    p = Project(name=name, **kw)
    if created_at is not None:
        p.created_at = created_at
    _db.session.add(p)
    _db.session.commit()
    return p


def _make_quote(project_id, status="pending", cost=0, organisation="Acme Ecology", **kw):
    q = Quote(
        project_id=project_id,
        discipline=kw.pop("discipline", "Ecology"),
        organisation=organisation,
        contact_name=kw.pop("contact_name", "Jo Bloggs"),
        line_items=[{"item": "Survey", "description": "", "cost": cost}],
        instruction_status=status,
        **kw,
    )
    _db.session.add(q)
    _db.session.commit()
    return q


def _make_log(quote, work_status):
    log = InstructionLog(project_id=quote.project_id, quote_id=quote.id, work_status=work_status)
    _db.session.add(log)
    _db.session.commit()
    return log


def _identity(user):
    return RequestIdentity(user_id=user.id, email=user.email, role=user.role)


def _scenario_project():
    project = _make_project()
    q1 = _make_quote(project.id, "instructed", cost=500, organisation="Acme Ecology")
    q2 = _make_quote(
        project.id, "partially instructed", cost=1000, organisation="Noise Ltd",
        contact_name="Sam Smith", partially_instructed_total=200,
    )
    _make_quote(project.id, "pending", cost=9999, organisation="Pending Co")
    _make_log(q1, "completed")
    return project, q1, q2


# ── Aggregates ────────────────────────────────────────────────────────────────


def test_mixed_quotes_summary():
    project, _q1, q2 = _scenario_project()

    summary = summarize_project(project.id)

    assert summary["instructed_spend"] == 700
    assert summary["completed_count"] == 1
    assert summary["outstanding_count"] == 1
    assert summary["outstanding_surveys"] == [{
        "quote_id": q2.id,
        "organisation": "Noise Ltd",
        "contact_name": "Sam Smith",
        "work_status": "not started",
    }]
    assert summary["instructed_count"] == 2


def test_instructed_count_is_distinct_organisations():
    project = _make_project()
    _make_quote(project.id, "instructed", cost=100, organisation="Acme Ecology")
    _make_quote(project.id, "instructed", cost=100, organisation="Acme Ecology", discipline="Trees")
    _make_quote(project.id, "will not be instructed", organisation="Other Ltd")

    assert summarize_project(project.id)["instructed_count"] == 1


def test_unfinished_log_is_reported_with_its_status():
    project = _make_project()
    quote = _make_quote(project.id, "instructed", cost=100)
    _make_log(quote, "TRP Reviewing")

    summary = summarize_project(project.id)
    assert summary["outstanding_surveys"][0]["work_status"] == "TRP Reviewing"
    assert summary["completed_count"] == 0


def test_project_without_quotes_has_zero_aggregates():
    project = _make_project()
    summary = summarize_project(project.id)
    assert summary["instructed_count"] == 0
    assert summary["completed_count"] == 0
    assert summary["outstanding_count"] == 0
    assert summary["outstanding_surveys"] == []
    assert summary["instructed_spend"] == 0
    assert summary["programme_events"] == []


# ── Client resolution ─────────────────────────────────────────────────────────


def test_client_name_resolved():
    org = ClientOrganisation(organisation_name="Bright Energy")
    _db.session.add(org)
    _db.session.commit()
    project = _make_project(client_id=org.id)

    assert summarize_project(project.id)["client"] == "Bright Energy"


def test_dangling_client_reference_gives_empty_name():
    project = _make_project(client_id=_uuid())
    assert summarize_project(project.id)["client"] == ""


def test_missing_client_gives_empty_name():
    project = _make_project()
    assert summarize_project(project.id)["client"] == ""


# ── Projection ────────────────────────────────────────────────────────────────


def test_summary_exposes_only_public_fields():
    project, _q1, _q2 = _scenario_project()
    summary = summarize_project(project.id)

    assert set(summary) == set(SUMMARY_FIELDS)
    for internal in ("quotes", "instructed_quotes", "instructed_logs", "address", "client_id"):
        assert internal not in summary


def test_repeated_reads_are_identical():
    _scenario_project()
    _make_project(name="Second Site")

    first = summarize_projects(ProjectFilter())
    second = summarize_projects(ProjectFilter())
    assert first == second


# ── Failure semantics ─────────────────────────────────────────────────────────


def test_malformed_project_id_rejected():
    with pytest.raises(InvalidIdentifierError):
        summarize_project("not-an-id")


def test_malformed_filter_ids_rejected_before_query(monkeypatch):
    def _boom(_filter):
        raise AssertionError("query ran")

    monkeypatch.setattr(project_summary_service, "_match_projects", _boom)
    with pytest.raises(InvalidIdentifierError):
        summarize_projects(ProjectFilter(project_ids=(_uuid(), "123")))


def test_unknown_project_is_not_found():
    with pytest.raises(NotFoundError):
        summarize_project(_uuid())


def test_store_failure_aborts_whole_batch(monkeypatch):
    _scenario_project()
    _make_project(name="Second Site")

    def _fail(_project_ids):
        raise OperationalError("SELECT quotes", {}, Exception("connection lost"))

    monkeypatch.setattr(project_summary_service, "_quotes_by_project", _fail)
    with pytest.raises(AggregationError) as excinfo:
        summarize_projects(ProjectFilter())
    assert isinstance(excinfo.value.cause, OperationalError)


# ── Scoping, ordering, events ─────────────────────────────────────────────────


def test_projects_newest_first():
    now = datetime.now(timezone.utc)
    old = _make_project(name="Old", created_at=now - timedelta(days=2))
    new = _make_project(name="New", created_at=now)
    mid = _make_project(name="Mid", created_at=now - timedelta(days=1))

    ids = [s["id"] for s in summarize_projects(ProjectFilter())]
    assert ids == [new.id, mid.id, old.id]


def test_surveyor_sees_only_authorized_projects(surveyor):
    visible = _make_project(name="Visible")
    _make_project(name="Hidden")
    visible.authorized_surveyors.append(surveyor)
    _db.session.commit()

    summaries = summarize_projects(ProjectFilter.for_identity(_identity(surveyor)))
    assert [s["id"] for s in summaries] == [visible.id]
    assert summaries[0]["authorized_surveyors"] == [surveyor.id]


def test_client_scope_hides_unauthorized_project(client_user):
    project = _make_project()
    with pytest.raises(NotFoundError):
        summarize_project(project.id, ProjectFilter.for_identity(_identity(client_user)))


def test_admin_sees_everything(admin):
    _make_project(name="A")
    _make_project(name="B")
    assert len(summarize_projects(ProjectFilter.for_identity(_identity(admin)))) == 2


def test_unrecognised_role_sees_nothing():
    project = _make_project()
    identity = RequestIdentity(user_id=_uuid(), email="x@example.com", role="auditor")
    project_filter = ProjectFilter.for_identity(identity)

    assert summarize_projects(project_filter) == []
    with pytest.raises(NotFoundError):
        summarize_project(project.id, project_filter)


def test_programme_events_sorted_by_date():
    project = _make_project()
    for title, day in (("Submission", 20), ("Kick-off", 1), ("Site visit", 10)):
        _db.session.add(ProgrammeEvent(project_id=project.id, title=title, date=date(2025, 3, day)))
    _db.session.commit()

    events = summarize_project(project.id)["programme_events"]
    assert [e["title"] for e in events] == ["Kick-off", "Site visit", "Submission"]
    assert events[0]["color"] == "#007bff"
