"""Tests: Programme event CRUD."""

import pytest

from surveyhub.models import _uuid
from surveyhub.models import db as _db
from surveyhub.models.project import Project


@pytest.fixture()
def project():
    p = Project(name="Solar Farm North")
    _db.session.add(p)
    _db.session.commit()
    return p


def _create(client, headers, project_id, **kw):
    payload = {"project_id": project_id, "title": "Kick-off", "date": "2025-02-03"}
    payload.update(kw)
    return client.post("/api/v1/programme-events", json=payload, headers=headers)


def test_create_defaults_color(client, project, admin, auth_headers):
    res = _create(client, auth_headers(admin), project.id)
    assert res.status_code == 201
    assert res.get_json()["color"] == "#007bff"
    assert res.get_json()["date"] == "2025-02-03"


def test_list_sorted_by_date(client, project, admin, auth_headers):
    _create(client, auth_headers(admin), project.id, title="Later", date="2025-06-01")
    _create(client, auth_headers(admin), project.id, title="Sooner", date="2025-01-15")

    res = client.get(f"/api/v1/programme-events/project/{project.id}", headers=auth_headers(admin))
    assert [e["title"] for e in res.get_json()] == ["Sooner", "Later"]


@pytest.mark.parametrize("payload", [
    {"title": ""},
    {"date": "someday"},
    {"color": "blue"},
])
def test_invalid_event_rejected(client, project, admin, auth_headers, payload):
    res = _create(client, auth_headers(admin), project.id, **payload)
    assert res.status_code == 422


def test_event_on_unknown_project_is_404(client, admin, auth_headers):
    res = _create(client, auth_headers(admin), _uuid())
    assert res.status_code == 404


def test_update_and_delete(client, project, admin, auth_headers):
    event = _create(client, auth_headers(admin), project.id).get_json()

    res = client.put(
        f"/api/v1/programme-events/{event['id']}",
        json={"title": "Planning submission", "color": "#ff0000"},
        headers=auth_headers(admin),
    )
    assert res.status_code == 200
    assert res.get_json()["title"] == "Planning submission"
    assert res.get_json()["date"] == "2025-02-03"

    res = client.delete(f"/api/v1/programme-events/{event['id']}", headers=auth_headers(admin))
    assert res.status_code == 204
    res = client.delete(f"/api/v1/programme-events/{event['id']}", headers=auth_headers(admin))
    assert res.status_code == 404


def test_surveyor_cannot_create_events(client, project, surveyor, auth_headers):
    res = _create(client, auth_headers(surveyor), project.id)
    assert res.status_code == 403
