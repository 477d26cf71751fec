"""Tests: instructed spend and engaged-organisation counting."""

import logging
import random
from types import SimpleNamespace

import pytest

from surveyhub.models.quote import VALID_INSTRUCTION_STATUSES
from surveyhub.services.spend import (
    instructed_organisation_count,
    instructed_spend,
    quote_spend,
)


def _quote(status, total=0, partial=None, organisation="Acme", quote_id="q"):
    return SimpleNamespace(
        id=quote_id,
        instruction_status=status,
        total=total,
        partially_instructed_total=partial,
        organisation=organisation,
    )


def test_instructed_counts_total():
    assert quote_spend(_quote("instructed", total=500)) == 500


def test_partially_instructed_counts_partial_total_not_total():
    assert quote_spend(_quote("partially instructed", total=1000, partial=200)) == 200


@pytest.mark.parametrize("status", ["pending", "will not be instructed"])
def test_uninstructed_quotes_cost_nothing(status):
    assert quote_spend(_quote(status, total=9999, partial=10)) == 0


def test_missing_partial_total_counts_zero_and_warns(caplog):
    with caplog.at_level(logging.WARNING, logger="surveyhub.services.spend"):
        assert quote_spend(_quote("partially instructed", total=300, partial=None, quote_id="q9")) == 0
    assert "q9" in caplog.text


def test_scenario_spend_excludes_pending_quote():
    quotes = [
        _quote("instructed", total=500),
        _quote("partially instructed", partial=200),
        _quote("pending", total=9999),
    ]
    assert instructed_spend(quotes) == 700


@pytest.mark.parametrize("seed", range(20))
def test_spend_is_never_negative(seed):
    rng = random.Random(seed)
    statuses = sorted(VALID_INSTRUCTION_STATUSES)
    quotes = [
        _quote(
            rng.choice(statuses),
            total=rng.uniform(-100, 1000),
            partial=rng.choice([None, rng.uniform(-50, 500)]),
        )
        for _ in range(rng.randint(0, 12))
    ]
    assert instructed_spend(quotes) >= 0


def test_organisation_count_is_distinct_and_instructed_only():
    quotes = [
        _quote("instructed", organisation="Acme"),
        _quote("partially instructed", organisation="Acme"),
        _quote("instructed", organisation="Noise Ltd"),
        _quote("pending", organisation="Other"),
        _quote("instructed", organisation=""),
    ]
    assert instructed_organisation_count(quotes) == 2
