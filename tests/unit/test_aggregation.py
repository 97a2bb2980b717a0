"""
Test Suite: entry aggregation over reporting periods
"""

import copy
from datetime import date

import pytest

from aircraft_costs.aggregation import (
    NO_DATE_GROUP,
    aggregate,
    category_breakdown,
    group_by_year,
    operating_totals,
)
from aircraft_costs.dates import DateRange
from aircraft_costs.models import MaintenanceEntry, OperatingExpense


@pytest.fixture
def entries(maintenance_rows):
    return [MaintenanceEntry.from_row(row) for row in maintenance_rows]


class TestAggregate:

    def test_all_entries_without_range(self, entries):
        result = aggregate(entries)
        assert result.count == 5
        assert result.total_amount == 1000.0

    def test_month_range(self, entries):
        result = aggregate(entries, DateRange.for_month(2025, 3))
        assert result.count == 2
        assert result.total_amount == 750.0
        assert result.by_category == {"Annual": 600.0, "Tires": 150.0}

    def test_all_time_range_excludes_undated(self, entries):
        result = aggregate(entries, DateRange.all_time())
        assert result.count == 4
        assert result.total_amount == 1000.0

    def test_string_bounds(self, entries):
        result = aggregate(entries, DateRange.between("2025-03-05", "2025-07-02"))
        assert result.count == 3
        assert result.total_amount == 850.0

    def test_missing_category_goes_to_other(self, entries):
        assert aggregate(entries).by_category["Other"] == 100.0

    def test_bad_amounts_count_as_zero(self):
        rows = [
            {"entry_date": "2025-01-01", "category": "Maintenance", "amount": "n/a"},
            {"entry_date": "2025-01-02", "category": "Maintenance", "amount": float("nan")},
            {"entry_date": "2025-01-03", "category": "Maintenance", "amount": 25},
        ]
        result = aggregate([MaintenanceEntry.from_row(row) for row in rows], DateRange.for_year(2025))
        assert result.count == 3
        assert result.total_amount == 25.0

    def test_idempotent_and_non_mutating(self, entries):
        before = copy.deepcopy(entries)
        first = aggregate(entries, DateRange.for_year(2025))
        second = aggregate(entries, DateRange.for_year(2025))
        assert first == second
        assert entries == before

    def test_wider_range_never_totals_less(self, entries):
        month = aggregate(entries, DateRange.for_month(2025, 3)).total_amount
        year = aggregate(entries, DateRange.for_year(2025)).total_amount
        everything = aggregate(entries, DateRange.all_time()).total_amount
        assert month <= year <= everything


class TestCategoryBreakdown:

    def test_top_category_and_average(self, entries):
        summary = category_breakdown(aggregate(entries, DateRange.for_year(2025)))
        assert summary.top_category == "Annual"
        assert summary.top_amount == 600.0
        assert summary.top_percent == pytest.approx(60.0)
        assert summary.average_per_entry == pytest.approx(250.0)

    def test_empty_period(self, entries):
        summary = category_breakdown(aggregate(entries, DateRange.for_month(2025, 2)))
        assert summary.top_category is None
        assert summary.top_percent == 0.0
        assert summary.average_per_entry == 0.0


def test_operating_totals_fixed_keys(operating_rows):
    expenses = [OperatingExpense.from_row(row) for row in operating_rows]
    expenses.append(OperatingExpense.from_row({"entry_date": "2025-03-02", "category": "landing fees", "amount": 20}))

    totals = operating_totals(expenses)
    assert totals == {
        "fuel": 300.0,
        "insurance": 1200.0,
        "hangar_tiedown": 250.0,
        "misc": 70.0,
        "total": 1820.0,
    }

    march = operating_totals(expenses, DateRange.for_month(2025, 3))
    assert march["fuel"] == 300.0
    assert march["insurance"] == 0.0
    assert march["total"] == 570.0


def test_group_by_year_newest_first_with_no_date_group(entries):
    groups = group_by_year(entries)
    assert [group["year"] for group in groups] == ["2025", NO_DATE_GROUP]
    assert [entry.id for entry in groups[0]["rows"]] == ["m4", "m3", "m2", "m1"]
    assert [entry.id for entry in groups[1]["rows"]] == ["m5"]

    older = MaintenanceEntry.from_row({"id": "old", "entry_date": "2023-05-01", "amount": 10})
    groups = group_by_year(entries + [older])
    assert [group["year"] for group in groups] == ["2025", "2023", NO_DATE_GROUP]
    assert groups[1]["rows"][0].date == date(2023, 5, 1)
