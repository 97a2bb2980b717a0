"""
Money and date helpers shared by the cost model.

Backend rows carry dates as ``YYYY-MM-DD`` strings. They are parsed once into
``datetime.date`` so range checks never depend on string ordering.
"""

import calendar
import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union

DateLike = Union[date, str, None]

MONTH_NAMES = tuple(calendar.month_name[1:])
MONTH_ABBREVIATIONS = tuple(calendar.month_abbr[1:])

NO_VALUE = "—"


def parse_local_date(value: DateLike) -> Optional[date]:
    """
    Parse a ``YYYY-MM-DD`` value as a local calendar date

    Args:
        value: ISO date string, ``date``/``datetime`` instance or None

    Returns:
        Parsed date, or None when the value is missing or malformed
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    # Timestamps ("2025-03-05T10:00:00+00:00") keep their calendar day
    if len(text) > 10 and text[10] in ("T", " "):
        text = text[:10]
    if len(text) != 10:
        return None
    try:
        return datetime.strptime(text, "%Y-%m-%d").date()
    except ValueError:
        return None


def ymd(value: date) -> str:
    """Format a date as ``YYYY-MM-DD``."""
    # strftime("%Y") does not zero-pad years below 1000 on every platform
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def first_of_month(year: int, month: int) -> date:
    return date(year, month, 1)


def last_of_month(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def month_name(month: int) -> str:
    return MONTH_NAMES[month - 1]


def month_short(month: int) -> str:
    return MONTH_ABBREVIATIONS[month - 1]


def to_amount(value) -> float:
    """Coerce a monetary/numeric value to a finite float (bad data becomes 0)."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def to_optional_number(value) -> Optional[float]:
    """Like ``to_amount`` but keeps "absent" distinct from zero."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def format_money(value) -> str:
    """
    Format an amount as US dollars

    Args:
        value: Amount (None and bad values format as $0.00)

    Returns:
        String like ``$1,234.50`` or ``-$12.00``
    """
    amount = to_amount(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_per_hour(value: Optional[float]) -> str:
    """Format a per-hour figure, rendering "not available" as an em dash."""
    if value is None:
        return NO_VALUE
    return f"{format_money(value)} / hr"


@dataclass(frozen=True)
class DateRange:
    """Inclusive date range used to select entries for a reporting period."""

    start: date
    end: date
    label: str = ""

    def contains(self, value: Optional[date]) -> bool:
        if value is None:
            return False
        return self.start <= value <= self.end

    @classmethod
    def all_time(cls) -> "DateRange":
        return cls(date.min, date.max, "All Time")

    @classmethod
    def for_year(cls, year: int) -> "DateRange":
        return cls(date(year, 1, 1), date(year, 12, 31), f"Year {year}")

    @classmethod
    def for_month(cls, year: int, month: int) -> "DateRange":
        return cls(
            first_of_month(year, month),
            last_of_month(year, month),
            f"{month_name(month)} {year}",
        )

    @classmethod
    def between(cls, start: DateLike, end: DateLike, label: str = "") -> "DateRange":
        """
        Build a range from two ISO strings or dates

        A missing or malformed bound leaves that side open.
        """
        start_date = parse_local_date(start) or date.min
        end_date = parse_local_date(end) or date.max
        return cls(start_date, end_date, label or f"{ymd(start_date)} – {ymd(end_date)}")

    @classmethod
    def for_view(cls, view: str, year: int, month: int) -> "DateRange":
        """
        Resolve a dashboard view selector into a range

        Args:
            view: One of ``all``, ``year`` or ``month``
            year: Selected year (ignored for ``all``)
            month: Selected month 1-12 (only used for ``month``)

        Returns:
            Matching DateRange

        Raises:
            ValueError: Unknown view name
        """
        if view == "all":
            return cls.all_time()
        if view == "year":
            return cls.for_year(year)
        if view == "month":
            return cls.for_month(year, month)
        raise ValueError(f"Unknown view: {view}")
