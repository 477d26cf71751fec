"""
Tests: Quote API.

Covers submission rules, the partially-instructed write rule, per-role
visibility and the cascade of a quote delete to its log and feedback.
"""

import pytest

from surveyhub.models import _uuid
from surveyhub.models import db as _db
from surveyhub.models.instruction_log import InstructionLog
from surveyhub.models.project import Project
from surveyhub.models.surveyor_feedback import SurveyorFeedback


@pytest.fixture()
def project(surveyor, client_user):
    p = Project(name="Battery Site East")
    p.authorized_surveyors.append(surveyor)
    p.authorized_clients.append(client_user)
    _db.session.add(p)
    _db.session.commit()
    return p


def _quote_payload(project_id, **overrides):
    payload = {
        "project_id": project_id,
        "discipline": "Noise",
        "organisation": "Quiet Ltd",
        "contact_name": "Sam Smith",
        "email": "Sam@Quiet.example",
        "line_items": [
            {"item": "Baseline survey", "description": "3 nights", "cost": 1200},
            {"item": "Report", "cost": "300"},
        ],
    }
    payload.update(overrides)
    return payload


def _submit(client, headers, payload):
    res = client.post("/api/v1/quotes", json=payload, headers=headers)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def test_surveyor_submits_quote(client, project, surveyor, auth_headers):
    body = _submit(client, auth_headers(surveyor), _quote_payload(project.id))

    assert body["surveyor_id"] == surveyor.id
    assert body["total"] == 1500
    assert body["instruction_status"] == "pending"
    assert body["email"] == "sam@quiet.example"


def test_client_supplied_total_is_ignored(client, project, admin, auth_headers):
    body = _submit(client, auth_headers(admin), _quote_payload(project.id, total=1))
    assert body["total"] == 1500


def test_missing_required_fields(client, project, admin, auth_headers):
    res = client.post(
        "/api/v1/quotes",
        json={"project_id": project.id, "discipline": "Noise"},
        headers=auth_headers(admin),
    )
    assert res.status_code == 422
    assert set(res.get_json()["details"]) == {"organisation", "contact_name"}


def test_negative_line_item_cost_rejected(client, project, admin, auth_headers):
    payload = _quote_payload(project.id, line_items=[{"item": "X", "cost": -5}])
    res = client.post("/api/v1/quotes", json=payload, headers=auth_headers(admin))
    assert res.status_code == 422


@pytest.mark.parametrize("cost", ["NaN", "Infinity", "-Infinity"])
def test_non_finite_line_item_cost_rejected(client, project, admin, auth_headers, cost):
    payload = _quote_payload(
        project.id,
        instruction_status="instructed",
        line_items=[{"item": "X", "cost": cost}],
    )
    res = client.post("/api/v1/quotes", json=payload, headers=auth_headers(admin))
    assert res.status_code == 422
    assert res.get_json()["details"] == {"line_items[0].cost": "must be a finite number"}


@pytest.mark.parametrize("partial_total", ["NaN", "Infinity"])
def test_non_finite_partial_total_rejected(client, project, admin, auth_headers, partial_total):
    payload = _quote_payload(
        project.id,
        instruction_status="partially instructed",
        partially_instructed_total=partial_total,
    )
    res = client.post("/api/v1/quotes", json=payload, headers=auth_headers(admin))
    assert res.status_code == 422
    assert res.get_json()["details"] == {"partially_instructed_total": "must be a finite number"}


def test_non_finite_cost_rejected_on_update(client, project, admin, auth_headers):
    quote = _submit(client, auth_headers(admin), _quote_payload(project.id, instruction_status="instructed"))
    res = client.put(
        f"/api/v1/quotes/{quote['id']}",
        json={"line_items": [{"item": "X", "cost": "Infinity"}]},
        headers=auth_headers(admin),
    )
    assert res.status_code == 422

    res = client.get(f"/api/v1/projects/{project.id}/summary", headers=auth_headers(admin))
    assert res.status_code == 200
    assert res.get_json()["instructed_spend"] == 1500


def test_unknown_project_is_404(client, admin, auth_headers):
    res = client.post("/api/v1/quotes", json=_quote_payload(_uuid()), headers=auth_headers(admin))
    assert res.status_code == 404


def test_surveyor_cannot_quote_on_unauthorized_project(client, surveyor, auth_headers):
    other = Project(name="Elsewhere")
    _db.session.add(other)
    _db.session.commit()
    res = client.post("/api/v1/quotes", json=_quote_payload(other.id), headers=auth_headers(surveyor))
    assert res.status_code == 403


def test_client_cannot_submit_quotes(client, project, client_user, auth_headers):
    res = client.post("/api/v1/quotes", json=_quote_payload(project.id), headers=auth_headers(client_user))
    assert res.status_code == 403


# ── Instruction status ────────────────────────────────────────────────────────


def test_partially_instructed_requires_partial_total(client, project, admin, auth_headers):
    quote = _submit(client, auth_headers(admin), _quote_payload(project.id))
    res = client.put(
        f"/api/v1/quotes/{quote['id']}",
        json={"instruction_status": "partially instructed"},
        headers=auth_headers(admin),
    )
    assert res.status_code == 422
    assert res.get_json()["details"] == {"partially_instructed_total": "required"}


def test_partially_instructed_with_partial_total(client, project, admin, auth_headers):
    quote = _submit(client, auth_headers(admin), _quote_payload(project.id))
    res = client.put(
        f"/api/v1/quotes/{quote['id']}",
        json={"instruction_status": "partially instructed", "partially_instructed_total": 600},
        headers=auth_headers(admin),
    )
    assert res.status_code == 200
    assert res.get_json()["partially_instructed_total"] == 600

    res = client.put(
        f"/api/v1/quotes/{quote['id']}",
        json={"instruction_status": "instructed"},
        headers=auth_headers(admin),
    )
    assert res.get_json()["partially_instructed_total"] is None


def test_invalid_status_rejected(client, project, admin, auth_headers):
    quote = _submit(client, auth_headers(admin), _quote_payload(project.id))
    res = client.put(
        f"/api/v1/quotes/{quote['id']}",
        json={"instruction_status": "maybe"},
        headers=auth_headers(admin),
    )
    assert res.status_code == 422


def test_update_cannot_move_quote_to_another_project(client, project, admin, auth_headers):
    quote = _submit(client, auth_headers(admin), _quote_payload(project.id))
    res = client.put(
        f"/api/v1/quotes/{quote['id']}",
        json={"project_id": _uuid(), "discipline": "Ecology"},
        headers=auth_headers(admin),
    )
    assert res.status_code == 200
    assert res.get_json()["project_id"] == project.id
    assert res.get_json()["discipline"] == "Ecology"


# ── Visibility ────────────────────────────────────────────────────────────────


def test_surveyor_lists_only_own_quotes(client, project, admin, surveyor, auth_headers):
    _submit(client, auth_headers(admin), _quote_payload(project.id, organisation="Admin Entered"))
    mine = _submit(client, auth_headers(surveyor), _quote_payload(project.id))

    res = client.get(f"/api/v1/quotes?project_id={project.id}", headers=auth_headers(surveyor))
    assert [q["id"] for q in res.get_json()] == [mine["id"]]

    res = client.get(f"/api/v1/quotes?project_id={project.id}", headers=auth_headers(admin))
    assert len(res.get_json()) == 2


def test_client_reads_quotes_on_authorized_project(client, project, admin, client_user, auth_headers):
    quote = _submit(client, auth_headers(admin), _quote_payload(project.id))
    res = client.get("/api/v1/quotes", headers=auth_headers(client_user))
    assert [q["id"] for q in res.get_json()] == [quote["id"]]

    res = client.get(f"/api/v1/quotes/{quote['id']}", headers=auth_headers(client_user))
    assert res.status_code == 200


def test_surveyor_cannot_edit_someone_elses_quote(client, project, admin, surveyor, auth_headers):
    quote = _submit(client, auth_headers(admin), _quote_payload(project.id))
    res = client.put(
        f"/api/v1/quotes/{quote['id']}", json={"discipline": "Trees"}, headers=auth_headers(surveyor),
    )
    assert res.status_code == 403


def test_malformed_project_filter_is_400(client, admin, auth_headers):
    res = client.get("/api/v1/quotes?project_id=abc", headers=auth_headers(admin))
    assert res.status_code == 400


# ── Delete ────────────────────────────────────────────────────────────────────


def test_delete_quote_removes_log_and_feedback(client, project, admin, auth_headers):
    quote = _submit(client, auth_headers(admin), _quote_payload(project.id))
    client.put(f"/api/v1/instruction-logs/{quote['id']}", json={}, headers=auth_headers(admin))
    client.put(
        f"/api/v1/surveyor-feedback/{quote['id']}", json={"overall_review": 3}, headers=auth_headers(admin),
    )

    res = client.delete(f"/api/v1/quotes/{quote['id']}", headers=auth_headers(admin))
    assert res.status_code == 200

    assert InstructionLog.query.filter_by(quote_id=quote["id"]).count() == 0
    assert SurveyorFeedback.query.filter_by(quote_id=quote["id"]).count() == 0
    res = client.get(f"/api/v1/quotes/{quote['id']}", headers=auth_headers(admin))
    assert res.status_code == 404
