"""
Tests: survey status classification and the outstanding/completed partition.

Pure functions; quotes are stand-in objects, no database needed.
"""

import random
from types import SimpleNamespace

import pytest

from surveyhub.models.instruction_log import VALID_WORK_STATUSES, WORK_COMPLETED
from surveyhub.models.quote import INSTRUCTED_STATUSES, VALID_INSTRUCTION_STATUSES
from surveyhub.services.survey_status import (
    COMPLETED,
    EXCLUDED,
    OUTSTANDING,
    classify_quote,
    partition_surveys,
)


def _quote(quote_id, status, organisation="Acme Ecology", contact_name="Jo Bloggs"):
    return SimpleNamespace(
        id=quote_id,
        instruction_status=status,
        organisation=organisation,
        contact_name=contact_name,
    )


# ── classify_quote ───────────────────────────────────────────────────────


@pytest.mark.parametrize("status", ["pending", "will not be instructed"])
def test_uninstructed_quote_is_excluded_whatever_the_log_says(status):
    assert classify_quote(_quote("q1", status), WORK_COMPLETED).outcome == EXCLUDED
    assert classify_quote(_quote("q1", status), None).outcome == EXCLUDED


@pytest.mark.parametrize("status", sorted(INSTRUCTED_STATUSES))
def test_instructed_quote_with_completed_log_is_completed(status):
    result = classify_quote(_quote("q1", status), WORK_COMPLETED)
    assert result.outcome == COMPLETED
    assert result.outstanding is None


def test_instructed_quote_without_log_is_outstanding_not_started():
    result = classify_quote(_quote("q1", "instructed", "Noise Ltd", "Sam"), None)
    assert result.outcome == OUTSTANDING
    assert result.outstanding.to_dict() == {
        "quote_id": "q1",
        "organisation": "Noise Ltd",
        "contact_name": "Sam",
        "work_status": "not started",
    }


@pytest.mark.parametrize("work_status", sorted(VALID_WORK_STATUSES - {WORK_COMPLETED}))
def test_instructed_quote_with_unfinished_log_carries_log_status(work_status):
    result = classify_quote(_quote("q1", "partially instructed"), work_status)
    assert result.outcome == OUTSTANDING
    assert result.outstanding.work_status == work_status


# ── partition_surveys ────────────────────────────────────────────────────


@pytest.mark.parametrize("seed", range(25))
def test_partition_is_disjoint_and_covers_instructed_quotes(seed):
    rng = random.Random(seed)
    statuses = sorted(VALID_INSTRUCTION_STATUSES)
    work_statuses = sorted(VALID_WORK_STATUSES)

    quotes = [_quote(f"q{i}", rng.choice(statuses)) for i in range(rng.randint(0, 15))]
    logs = {
        q.id: rng.choice(work_statuses)
        for q in quotes
        if rng.random() < 0.6
    }

    outstanding, completed = partition_surveys(quotes, logs)

    instructed = [q for q in quotes if q.instruction_status in INSTRUCTED_STATUSES]
    expected_completed = {q.id for q in instructed if logs.get(q.id) == WORK_COMPLETED}
    outstanding_ids = [o.quote_id for o in outstanding]

    assert completed == len(expected_completed)
    assert len(outstanding_ids) == len(set(outstanding_ids))
    assert not set(outstanding_ids) & expected_completed
    assert len(outstanding) + completed == len(instructed)
    # order follows the input quotes
    assert outstanding_ids == [q.id for q in instructed if q.id not in expected_completed]


def test_partition_ignores_logs_of_uninstructed_quotes():
    quotes = [_quote("q1", "pending"), _quote("q2", "instructed")]
    outstanding, completed = partition_surveys(quotes, {"q1": WORK_COMPLETED})
    assert completed == 0
    assert [o.quote_id for o in outstanding] == ["q2"]


def test_partition_of_no_quotes_is_empty():
    assert partition_surveys([], {}) == ([], 0)
