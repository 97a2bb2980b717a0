"""
Cost-per-hour and profit-per-hour derivation

``None`` means "not enough data" (no hours flown, no rate, no benchmark),
which is different from a genuine zero. Callers render it as an em dash.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from .aggregation import in_range, total_amount
from .dates import DateRange, to_amount, to_optional_number, ymd
from .models import OPERATING_CATEGORY_LABELS, AircraftSettings


def hours_flown(samples: Iterable[Any]) -> float:
    """
    Hours flown between the lowest and highest usage reading

    Args:
        samples: Tach readings; None and non-finite values are ignored

    Returns:
        ``max - min`` of the valid readings, or 0 with fewer than two
        readings or no forward movement
    """
    valid = sorted(
        value for value in (to_optional_number(sample) for sample in samples) if value is not None
    )
    if len(valid) < 2:
        return 0.0
    delta = valid[-1] - valid[0]
    return delta if delta > 0 else 0.0


def per_hour(total: Any, hours: Any) -> Optional[float]:
    """
    Divide a total by hours

    Returns:
        ``total / hours`` for positive hours, otherwise None
    """
    hours_value = to_optional_number(hours)
    if hours_value is None or hours_value <= 0:
        return None
    return to_amount(total) / hours_value


@dataclass(frozen=True)
class CostSummary:
    """All-time maintenance spend against tach hours"""

    total_spend: float
    hours_flown: float
    cost_per_hour: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_spend": self.total_spend,
            "hours_flown": self.hours_flown,
            "cost_per_hour": self.cost_per_hour,
        }


def cost_summary(entries: Iterable[Any]) -> CostSummary:
    """Total spend, tach hours flown and cost per hour across every entry."""
    entries = list(entries)
    spend = total_amount(entries)
    hours = hours_flown(entry.tach_hours for entry in entries)
    return CostSummary(total_spend=spend, hours_flown=hours, cost_per_hour=per_hour(spend, hours))


@dataclass(frozen=True)
class RentalPeriod:
    """Rental revenue against maintenance spend for one period"""

    label: str
    start: date
    end: date
    hours: float
    revenue: float
    spend: float

    @property
    def profit(self) -> float:
        return self.revenue - self.spend

    @property
    def profit_per_hour(self) -> Optional[float]:
        return per_hour(self.profit, self.hours)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "start": ymd(self.start),
            "end": ymd(self.end),
            "hours": self.hours,
            "revenue": self.revenue,
            "spend": self.spend,
            "profit": self.profit,
            "profit_per_hour": self.profit_per_hour,
        }


def rental_period(logs: Iterable[Any], spend_entries: Iterable[Any], date_range: DateRange) -> RentalPeriod:
    """
    Period-local rental profit

    Hours are the logged rental hours in the range and revenue uses each
    log's own snapshotted rate. Spend is whatever ``spend_entries`` fall in
    the same range.

    Args:
        logs: RentalLog snapshots
        spend_entries: Entries netted against revenue (maintenance by default)
        date_range: Reporting period

    Returns:
        RentalPeriod for the range
    """
    period_logs = in_range(logs, date_range)
    hours = sum(to_amount(log.hours) for log in period_logs)
    revenue = sum(to_amount(log.hours) * to_amount(log.hourly_rate) for log in period_logs)
    spend = total_amount(spend_entries, date_range)
    return RentalPeriod(
        label=date_range.label,
        start=date_range.start,
        end=date_range.end,
        hours=hours,
        revenue=revenue,
        spend=spend,
    )


def cost_per_hour_trend(entries: Iterable[Any]) -> List[Dict[str, Any]]:
    """
    Running cost per hour, one point per entry date

    Only entries carrying an amount, a tach reading and a date are used.
    Entries are walked in tach order; each point is cumulative spend over
    hours since the first reading. When several entries share a date the
    last point wins.

    Returns:
        List of ``{"date", "cost_per_hour"}`` dicts in walk order; empty
        when fewer than two entries are usable
    """
    usable = [
        entry
        for entry in entries
        if to_optional_number(entry.amount) is not None
        and to_optional_number(entry.tach_hours) is not None
        and entry.date is not None
    ]
    if len(usable) < 2:
        return []

    usable.sort(key=lambda entry: to_amount(entry.tach_hours))
    base_tach = to_amount(usable[0].tach_hours)
    cumulative = 0.0
    points: Dict[date, float] = {}

    for entry in usable:
        cumulative += to_amount(entry.amount)
        hours = to_amount(entry.tach_hours) - base_tach
        if hours <= 0:
            continue
        points[entry.date] = cumulative / hours

    return [
        {"date": ymd(point_date), "cost_per_hour": round(value, 2)}
        for point_date, value in points.items()
    ]


@dataclass(frozen=True)
class AllInCost:
    """Selected cost buckets divided by hours flown"""

    included_cost: float
    hours: float
    cost_per_hour: Optional[float]
    includes: List[str]

    @property
    def includes_label(self) -> str:
        return ", ".join(self.includes) if self.includes else "None"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "included_cost": self.included_cost,
            "hours": self.hours,
            "cost_per_hour": self.cost_per_hour,
            "includes": list(self.includes),
            "includes_label": self.includes_label,
        }


def all_in_cost(
    settings: AircraftSettings,
    maintenance_total: float,
    operating: Dict[str, float],
    hours: float,
) -> AllInCost:
    """
    All-in cost per hour

    Args:
        settings: Inclusion flags for the aircraft
        maintenance_total: All-time maintenance spend
        operating: Output of ``operating_totals``
        hours: Hours flown

    Returns:
        AllInCost; cost per hour is None without hours
    """
    included = 0.0
    labels: List[str] = []

    if settings.include_maintenance:
        included += to_amount(maintenance_total)
        labels.append("Maintenance")
    # Label order follows the settings panel
    for category in ("fuel", "insurance", "hangar_tiedown", "misc"):
        if getattr(settings, f"include_{category}"):
            included += to_amount(operating.get(category))
            labels.append(OPERATING_CATEGORY_LABELS[category])

    hours_value = to_amount(hours)
    return AllInCost(
        included_cost=included,
        hours=hours_value,
        cost_per_hour=per_hour(included, hours_value),
        includes=labels,
    )

