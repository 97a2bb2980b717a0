"""
Chart series

Year views always have twelve points (January first); months without
entries report zero totals and no per-hour figure.
"""

from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from .aggregation import aggregate, in_range
from .dates import DateRange, first_of_month, month_short, to_amount, ymd
from .derivation import RentalPeriod, hours_flown, per_hour, rental_period

HoursFunction = Callable[[Sequence[Any]], float]


def usage_hours(entries: Sequence[Any]) -> float:
    """
    Hours represented by a bucket of entries

    Entries with logged ``hours`` (rental logs) are summed; everything else
    contributes its tach reading to a max-minus-min delta.
    """
    logged = 0.0
    samples = []
    for entry in entries:
        if hasattr(entry, "tach_hours"):
            samples.append(entry.tach_hours)
        elif hasattr(entry, "hours"):
            logged += to_amount(entry.hours)
    return logged + hours_flown(samples)


@dataclass(frozen=True)
class MonthBucket:
    """One month of a year series"""

    month: int
    total: float
    hours: float
    per_hour: Optional[float]
    count: int = 0

    @property
    def label(self) -> str:
        return month_short(self.month)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "month": self.month,
            "label": self.label,
            "total": self.total,
            "hours": self.hours,
            "per_hour": self.per_hour,
            "count": self.count,
        }


def monthly_series(
    entries: Iterable[Any],
    year: int,
    hours: HoursFunction = usage_hours,
) -> List[MonthBucket]:
    """
    Twelve monthly buckets for a year

    Args:
        entries: Dated entries
        year: Calendar year
        hours: Derives bucket hours from the entries in that bucket

    Returns:
        Exactly 12 MonthBucket values, January to December
    """
    entries = list(entries)
    buckets = []
    for month in range(1, 13):
        period = DateRange.for_month(year, month)
        month_entries = in_range(entries, period)
        result = aggregate(month_entries)
        month_hours = hours(month_entries)
        buckets.append(
            MonthBucket(
                month=month,
                total=result.total_amount,
                hours=month_hours,
                per_hour=per_hour(result.total_amount, month_hours),
                count=result.count,
            )
        )
    return buckets


def rental_year_series(logs: Iterable[Any], spend_entries: Iterable[Any], year: int) -> List[RentalPeriod]:
    """Twelve period-local rental profit rows for a year."""
    logs = list(logs)
    spend_entries = list(spend_entries)
    return [
        rental_period(logs, spend_entries, DateRange.for_month(year, month))
        for month in range(1, 13)
    ]


def recent_monthly_revenue(logs: Iterable[Any], months: int = 6) -> List[Dict[str, Any]]:
    """
    Revenue per month for the most recent months with rental activity

    Args:
        logs: RentalLog snapshots
        months: Number of months to keep

    Returns:
        Oldest-first list of ``{"month", "label", "total_hours", "total_income"}``
    """
    totals: Dict[Any, Dict[str, float]] = {}
    for log in logs:
        if log.date is None:
            continue
        key = first_of_month(log.date.year, log.date.month)
        bucket = totals.setdefault(key, {"total_hours": 0.0, "total_income": 0.0})
        bucket["total_hours"] += to_amount(log.hours)
        bucket["total_income"] += to_amount(log.hours) * to_amount(log.hourly_rate)

    ordered = OrderedDict(sorted(totals.items()))
    keys = list(ordered)[-months:] if months > 0 else []
    return [
        {
            "month": ymd(key),
            "label": month_short(key.month),
            "total_hours": ordered[key]["total_hours"],
            "total_income": ordered[key]["total_income"],
        }
        for key in keys
    ]
