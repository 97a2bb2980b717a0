"""
Test Suite: rental rate resolution and rate snapshots
"""

from datetime import date

import pytest

from aircraft_costs.models import RentalLog, RentalRate
from aircraft_costs.rates import current_rate, resolve_rate, snapshot_rate


def make_rate(rate_id, hourly_rate, effective_from):
    return RentalRate.from_row({"id": rate_id, "hourly_rate": hourly_rate, "effective_from": effective_from})


@pytest.fixture
def rates():
    # Deliberately unsorted
    return [
        make_rate("june", 175, "2025-06-01"),
        make_rate("jan", 150, "2025-01-01"),
        make_rate("sept", 190, "2025-09-15"),
    ]


class TestResolveRate:

    def test_latest_rate_on_or_before_date(self, rates):
        assert resolve_rate(rates, "2025-07-04").id == "june"
        assert resolve_rate(rates, date(2025, 12, 31)).id == "sept"

    def test_effective_date_itself_is_included(self, rates):
        assert resolve_rate(rates, "2025-06-01").id == "june"
        assert resolve_rate(rates, "2025-05-31").id == "jan"

    def test_falls_back_to_earliest_rate(self, rates):
        assert resolve_rate(rates, "2024-12-31").id == "jan"

    def test_empty_input(self):
        assert resolve_rate([], "2025-01-01") is None

    def test_later_record_wins_a_tie(self):
        tied = [make_rate("first", 100, "2025-01-01"), make_rate("second", 120, "2025-01-01")]
        assert resolve_rate(tied, "2025-02-01").id == "second"

    def test_earliest_fallback_keeps_first_of_tie(self):
        tied = [make_rate("first", 100, "2026-01-01"), make_rate("second", 120, "2026-01-01")]
        assert resolve_rate(tied, "2025-02-01").id == "first"

    def test_undated_rates_only_when_nothing_else(self):
        undated = make_rate("undated", 90, None)
        assert resolve_rate([undated, make_rate("dated", 100, "2026-01-01")], "2025-01-01").id == "dated"
        assert resolve_rate([undated], "2025-01-01").id == "undated"

    def test_result_is_effective_when_any_rate_is(self, rates):
        for day in ("2025-01-01", "2025-03-03", "2025-06-02", "2025-10-01"):
            resolved = resolve_rate(rates, day)
            assert resolved.effective_from <= date.fromisoformat(day)
            assert all(
                rate.effective_from <= resolved.effective_from
                for rate in rates
                if rate.effective_from <= date.fromisoformat(day)
            )


def test_current_rate_uses_today(rates):
    assert current_rate(rates, today=date(2025, 8, 1)).id == "june"


class TestSnapshotRate:

    def test_override_wins_even_when_zero(self, rates):
        assert snapshot_rate(rates, "2025-07-04", 0) == 0.0
        assert snapshot_rate(rates, "2025-07-04", "140") == 140.0

    def test_resolved_rate_without_override(self, rates):
        assert snapshot_rate(rates, "2025-07-04") == 175.0

    def test_no_rates_gives_zero(self):
        assert snapshot_rate([], "2025-07-04") == 0.0

    def test_later_rate_change_leaves_historical_income_unchanged(self, rates):
        hourly = snapshot_rate(rates, "2025-07-04")
        log = RentalLog.from_row({"rental_date": "2025-07-04", "hours": 2, "hourly_rate": hourly})
        assert log.income == 350.0

        # A new rate back-dated over the rental does not rewrite the stored log
        rates.append(make_rate("backdated", 250, "2025-07-01"))
        assert resolve_rate(rates, "2025-07-04").id == "backdated"
        assert log.income == 350.0
