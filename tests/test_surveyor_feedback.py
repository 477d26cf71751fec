"""Tests: Surveyor feedback upsert, rating ranges and delete."""

import pytest
from sqlalchemy.exc import IntegrityError

from surveyhub.core.exceptions import ConflictError
from surveyhub.models import db as _db
from surveyhub.models.project import Project
from surveyhub.models.quote import Quote
from surveyhub.models.surveyor_feedback import SurveyorFeedback
from surveyhub.services import surveyor_feedback_service


@pytest.fixture()
def quote():
    p = Project(name="Grid Connection South")
    _db.session.add(p)
    _db.session.flush()
    q = Quote(
        project_id=p.id,
        discipline="Landscape",
        organisation="View Partners",
        contact_name="Lee Chan",
        instruction_status="instructed",
    )
    _db.session.add(q)
    _db.session.commit()
    return q


def _put(client, headers, quote_id, payload):
    return client.put(f"/api/v1/surveyor-feedback/{quote_id}", json=payload, headers=headers)


def test_first_write_requires_overall_review(client, quote, admin, auth_headers):
    res = _put(client, auth_headers(admin), quote.id, {"quality": 4})
    assert res.status_code == 422
    assert res.get_json()["details"] == {"overall_review": "required"}
    assert SurveyorFeedback.query.count() == 0


def test_create_then_partial_update(client, quote, admin, auth_headers):
    res = _put(client, auth_headers(admin), quote.id,
               {"overall_review": 4, "quality": 5, "delivered_on_time": 0, "notes": "Good"})
    assert res.status_code == 200
    created = res.get_json()
    assert created["project_id"] == quote.project_id
    assert created["delivered_on_time"] == 0

    res = _put(client, auth_headers(admin), quote.id, {"responsiveness": 2})
    assert res.status_code == 200
    body = res.get_json()
    assert body["id"] == created["id"]
    assert body["overall_review"] == 4
    assert body["responsiveness"] == 2
    assert SurveyorFeedback.query.filter_by(quote_id=quote.id).count() == 1


@pytest.mark.parametrize("payload", [
    {"overall_review": 0},
    {"overall_review": 6},
    {"overall_review": 3, "quality": 0},
    {"overall_review": 3, "delivered_on_time": -1},
    {"overall_review": 3, "responsiveness": 2.5},
    {"overall_review": "five"},
])
def test_ratings_out_of_range_rejected(client, quote, admin, auth_headers, payload):
    res = _put(client, auth_headers(admin), quote.id, payload)
    assert res.status_code == 422


def test_only_admin_writes_feedback(client, quote, surveyor, auth_headers):
    res = _put(client, auth_headers(surveyor), quote.id, {"overall_review": 5})
    assert res.status_code == 403


def test_list_and_delete(client, quote, admin, auth_headers):
    _put(client, auth_headers(admin), quote.id, {"overall_review": 3})

    res = client.get(f"/api/v1/surveyor-feedback?quote_id={quote.id}", headers=auth_headers(admin))
    assert len(res.get_json()) == 1

    res = client.delete(f"/api/v1/surveyor-feedback/{quote.id}", headers=auth_headers(admin))
    assert res.status_code == 200
    res = client.delete(f"/api/v1/surveyor-feedback/{quote.id}", headers=auth_headers(admin))
    assert res.status_code == 404


def test_failed_delete_rolls_back_and_reports_conflict(monkeypatch, quote, admin, auth_headers, client):
    _put(client, auth_headers(admin), quote.id, {"overall_review": 3})

    def _fail(_session):
        raise IntegrityError("DELETE FROM surveyor_feedback", {}, Exception("locked"))

    monkeypatch.setattr(type(_db.session), "commit", _fail)
    with pytest.raises(ConflictError):
        surveyor_feedback_service.delete_feedback(quote.id)
    monkeypatch.undo()

    assert SurveyorFeedback.query.filter_by(quote_id=quote.id).count() == 1
