"""
Entry aggregation

Sums dated financial entries (maintenance, operating expenses, rental logs)
over a reporting period. Bad amounts count as zero; entries are never
rejected or mutated.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .dates import DateRange, to_amount
from .models import OPERATING_CATEGORIES, OTHER_CATEGORY

NO_DATE_GROUP = "No Date"


@dataclass(frozen=True)
class Aggregate:
    """Count, total and per-category totals for one period"""

    count: int
    total_amount: float
    by_category: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "total_amount": self.total_amount,
            "by_category": dict(self.by_category),
        }


@dataclass(frozen=True)
class CategoryBreakdown:
    """Summary row shown under the category doughnut"""

    total: float
    top_category: Optional[str]
    top_amount: float
    top_percent: float
    entry_count: int
    average_per_entry: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "top_category": self.top_category,
            "top_amount": self.top_amount,
            "top_percent": self.top_percent,
            "entry_count": self.entry_count,
            "average_per_entry": self.average_per_entry,
        }


def in_range(entries: Iterable[Any], date_range: Optional[DateRange]) -> List[Any]:
    """
    Select the entries that fall inside a period

    Args:
        entries: Anything exposing a ``date`` attribute
        date_range: Inclusive range, or None for no filtering

    Returns:
        New list, input order preserved. Undated entries only survive
        when no range is given.
    """
    if date_range is None:
        return list(entries)
    return [entry for entry in entries if date_range.contains(entry.date)]


def category_of(entry: Any) -> str:
    return getattr(entry, "category", None) or OTHER_CATEGORY


def aggregate(entries: Iterable[Any], date_range: Optional[DateRange] = None) -> Aggregate:
    """
    Aggregate entries for a period

    Args:
        entries: Entries exposing ``date``, ``amount`` and ``category``
        date_range: Inclusive range; None counts every entry

    Returns:
        Aggregate with count, total and category totals (categories in
        first-seen order)
    """
    selected = in_range(entries, date_range)

    total = 0.0
    by_category: Dict[str, float] = {}
    for entry in selected:
        amount = to_amount(entry.amount)
        total += amount
        label = category_of(entry)
        by_category[label] = by_category.get(label, 0.0) + amount

    return Aggregate(count=len(selected), total_amount=total, by_category=by_category)


def total_amount(entries: Iterable[Any], date_range: Optional[DateRange] = None) -> float:
    return aggregate(entries, date_range).total_amount


def category_breakdown(result: Aggregate) -> CategoryBreakdown:
    """
    Pick the largest category and the average entry size

    Ties keep the first category seen.
    """
    top_category = None
    top_amount = 0.0
    for label, amount in result.by_category.items():
        if top_category is None or amount > top_amount:
            top_category, top_amount = label, amount

    total = result.total_amount
    return CategoryBreakdown(
        total=total,
        top_category=top_category,
        top_amount=top_amount,
        top_percent=(top_amount / total * 100) if total > 0 else 0.0,
        entry_count=result.count,
        average_per_entry=(total / result.count) if result.count > 0 else 0.0,
    )


def operating_totals(expenses: Iterable[Any], date_range: Optional[DateRange] = None) -> Dict[str, float]:
    """
    Operating expense totals with a fixed key per category

    Args:
        expenses: OperatingExpense snapshots
        date_range: Optional period filter

    Returns:
        Dict with ``fuel``, ``insurance``, ``hangar_tiedown``, ``misc`` and
        ``total``. Unknown categories count toward ``misc``.
    """
    totals = {category: 0.0 for category in OPERATING_CATEGORIES}
    totals["total"] = 0.0
    for expense in in_range(expenses, date_range):
        amount = to_amount(expense.amount)
        key = expense.category if expense.category in OPERATING_CATEGORIES else "misc"
        totals[key] += amount
        totals["total"] += amount
    return totals


def group_by_year(entries: Sequence[Any]) -> List[Dict[str, Any]]:
    """
    Group entries by year for the history table

    Dated entries come first, newest year first and newest entry first
    inside a year. Undated entries close the list in a "No Date" group,
    most recently created first.
    """
    dated = [entry for entry in entries if entry.date is not None]
    undated = [entry for entry in entries if entry.date is None]

    dated.sort(key=lambda entry: entry.date, reverse=True)
    undated.sort(key=lambda entry: getattr(entry, "created_at", None) or "", reverse=True)

    groups: List[Dict[str, Any]] = []
    for entry in dated:
        year = str(entry.date.year)
        if not groups or groups[-1]["year"] != year:
            groups.append({"year": year, "rows": [entry]})
        else:
            groups[-1]["rows"].append(entry)

    if undated:
        groups.append({"year": NO_DATE_GROUP, "rows": undated})

    return groups
