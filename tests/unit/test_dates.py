"""
Test Suite: date parsing, ranges and money formatting
"""

from datetime import date, datetime

import pytest

from aircraft_costs.dates import (
    DateRange,
    format_money,
    format_per_hour,
    last_of_month,
    parse_local_date,
    to_amount,
    to_optional_number,
    ymd,
)


class TestParseLocalDate:

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2025-03-05", date(2025, 3, 5)),
            (" 2025-03-05 ", date(2025, 3, 5)),
            ("2025-03-05T23:30:00+00:00", date(2025, 3, 5)),
            (date(2024, 2, 29), date(2024, 2, 29)),
            (datetime(2024, 2, 29, 18, 0), date(2024, 2, 29)),
        ],
    )
    def test_valid_values(self, value, expected):
        assert parse_local_date(value) == expected

    @pytest.mark.parametrize("value", [None, "", "2025-13-01", "2025-02-30", "03/05/2025", "2025-3-5", 20250305])
    def test_malformed_values_become_none(self, value):
        assert parse_local_date(value) is None


def test_ymd_zero_pads():
    assert ymd(date(2025, 3, 5)) == "2025-03-05"
    assert ymd(date.min) == "0001-01-01"


def test_last_of_month_handles_leap_years():
    assert last_of_month(2024, 2) == date(2024, 2, 29)
    assert last_of_month(2025, 2) == date(2025, 2, 28)
    assert last_of_month(2025, 12) == date(2025, 12, 31)


class TestNumbers:

    @pytest.mark.parametrize("value", [None, "abc", float("nan"), float("inf"), True, [1]])
    def test_to_amount_turns_bad_values_into_zero(self, value):
        assert to_amount(value) == 0.0

    def test_to_amount_accepts_numeric_strings(self):
        assert to_amount("12.5") == 12.5

    def test_to_optional_number_keeps_absent_distinct(self):
        assert to_optional_number(None) is None
        assert to_optional_number("nope") is None
        assert to_optional_number(0) == 0.0


class TestFormatting:

    def test_format_money(self):
        assert format_money(1234.5) == "$1,234.50"
        assert format_money(-12) == "-$12.00"
        assert format_money(None) == "$0.00"

    def test_format_per_hour(self):
        assert format_per_hour(None) == "—"
        assert format_per_hour(10) == "$10.00 / hr"


class TestDateRange:

    def test_bounds_are_inclusive(self):
        march = DateRange.for_month(2025, 3)
        assert march.contains(date(2025, 3, 1))
        assert march.contains(date(2025, 3, 31))
        assert not march.contains(date(2025, 4, 1))
        assert not march.contains(None)

    def test_labels(self):
        assert DateRange.for_month(2025, 3).label == "March 2025"
        assert DateRange.for_year(2025).label == "Year 2025"
        assert DateRange.all_time().label == "All Time"

    def test_between_accepts_strings_and_opens_bad_bounds(self):
        window = DateRange.between("2025-01-01", "2025-06-30")
        assert window.start == date(2025, 1, 1)
        assert window.end == date(2025, 6, 30)

        open_ended = DateRange.between("garbage", "2025-06-30")
        assert open_ended.start == date.min

    def test_for_view(self):
        assert DateRange.for_view("all", 2025, 3) == DateRange.all_time()
        assert DateRange.for_view("year", 2025, 3) == DateRange.for_year(2025)
        assert DateRange.for_view("month", 2025, 3) == DateRange.for_month(2025, 3)
        with pytest.raises(ValueError):
            DateRange.for_view("week", 2025, 3)
