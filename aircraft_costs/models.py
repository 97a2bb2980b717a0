"""
Aircraft Cost Dashboard - data model

Every entity is an immutable snapshot of a backend row. ``from_row`` accepts
the raw dict returned by the backend and normalises dates and numbers once,
so the cost model never has to second-guess its inputs.

Aggregation works on any entry exposing ``date``, ``amount`` and ``category``.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Optional

from .dates import parse_local_date, to_amount, to_optional_number, ymd

MAINTENANCE_CATEGORIES = (
    "Maintenance",
    "Oil Change",
    "Annual",
    "Tires",
    "Brakes",
    "Avionics",
    "Engine",
    "Inspection",
    "Other",
)
DEFAULT_MAINTENANCE_CATEGORY = "Maintenance"
OTHER_CATEGORY = "Other"

OPERATING_CATEGORIES = ("fuel", "insurance", "hangar_tiedown", "misc")
OPERATING_CATEGORY_LABELS = {
    "fuel": "Fuel",
    "insurance": "Insurance",
    "hangar_tiedown": "Hangar/Tiedown",
    "misc": "Misc",
}

RENTAL_CATEGORY = "Rental"

ROLES = ("owner", "admin", "member")
EDITOR_ROLES = ("owner", "admin")
INVITE_ROLES = ("member", "owner")


def can_edit(role: Optional[str]) -> bool:
    """Owners and admins may change entries, logs and settings."""
    return role in EDITOR_ROLES


def _role(value: Any) -> Optional[str]:
    return value if value in ROLES else None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class Aircraft:
    """Aircraft record as seen by the current user"""

    id: str
    user_id: Optional[str] = None
    tail_number: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    created_at: Optional[str] = None
    role: Optional[str] = None

    @property
    def display_name(self) -> str:
        name = self.tail_number or "Untitled"
        return f"{name} — {self.model}" if self.model else name

    @classmethod
    def from_row(cls, row: Dict[str, Any], role: Optional[str] = None) -> "Aircraft":
        year = to_optional_number(row.get("year"))
        return cls(
            id=str(row.get("id")),
            user_id=row.get("user_id"),
            tail_number=_text(row.get("tail_number")),
            make=_text(row.get("make")),
            model=_text(row.get("model")),
            year=int(year) if year is not None else None,
            created_at=row.get("created_at"),
            role=_role(role or row.get("role")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "tail_number": self.tail_number,
            "make": self.make,
            "model": self.model,
            "year": self.year,
            "role": self.role,
            "display_name": self.display_name,
        }


@dataclass(frozen=True)
class MaintenanceEntry:
    """Dated maintenance cost with an optional tach reading"""

    id: Optional[str]
    aircraft_id: Optional[str]
    entry_date: Optional[date]
    category: Optional[str]
    amount: Optional[float]
    tach_hours: Optional[float]
    notes: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def date(self) -> Optional[date]:
        return self.entry_date

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "MaintenanceEntry":
        return cls(
            id=row.get("id"),
            aircraft_id=row.get("aircraft_id"),
            entry_date=parse_local_date(row.get("entry_date")),
            category=_text(row.get("category")),
            amount=to_optional_number(row.get("amount")),
            tach_hours=to_optional_number(row.get("tach_hours")),
            notes=_text(row.get("notes")),
            created_at=row.get("created_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "entry_date": ymd(self.entry_date) if self.entry_date else None,
            "category": self.category,
            "amount": self.amount,
            "tach_hours": self.tach_hours,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class OperatingExpense:
    """Fuel, insurance, hangar/tiedown or miscellaneous operating cost"""

    id: Optional[str]
    aircraft_id: Optional[str]
    entry_date: Optional[date]
    category: str
    amount: float
    note: Optional[str] = None

    @property
    def date(self) -> Optional[date]:
        return self.entry_date

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "OperatingExpense":
        category = _text(row.get("category")) or "misc"
        return cls(
            id=row.get("id"),
            aircraft_id=row.get("aircraft_id"),
            entry_date=parse_local_date(row.get("entry_date")),
            category=category,
            amount=to_amount(row.get("amount")),
            note=_text(row.get("note")),
        )


@dataclass(frozen=True)
class RentalRate:
    """Hourly rental rate effective from a given date"""

    id: Optional[str]
    aircraft_id: Optional[str]
    hourly_rate: float
    effective_from: Optional[date]

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "RentalRate":
        return cls(
            id=row.get("id"),
            aircraft_id=row.get("aircraft_id"),
            hourly_rate=to_amount(row.get("hourly_rate")),
            effective_from=parse_local_date(row.get("effective_from")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "hourly_rate": self.hourly_rate,
            "effective_from": ymd(self.effective_from) if self.effective_from else None,
        }


@dataclass(frozen=True)
class RentalLog:
    """
    Logged rental hours

    ``hourly_rate`` is the rate captured when the log was written. Later rate
    table edits never touch it, so historical income is stable.
    """

    id: Optional[str]
    aircraft_id: Optional[str]
    rental_date: Optional[date]
    hours: float
    hourly_rate: float
    note: Optional[str] = None
    created_by: Optional[str] = None

    @property
    def date(self) -> Optional[date]:
        return self.rental_date

    @property
    def income(self) -> float:
        return self.hours * self.hourly_rate

    @property
    def amount(self) -> float:
        return self.income

    @property
    def category(self) -> str:
        return RENTAL_CATEGORY

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "RentalLog":
        return cls(
            id=row.get("id"),
            aircraft_id=row.get("aircraft_id"),
            rental_date=parse_local_date(row.get("rental_date")),
            hours=to_amount(row.get("hours")),
            hourly_rate=to_amount(row.get("hourly_rate")),
            note=_text(row.get("note")),
            created_by=row.get("created_by"),
        )


@dataclass(frozen=True)
class Benchmark:
    """Industry-average hourly maintenance cost for an aircraft type"""

    id: Optional[str]
    aircraft_type: str
    hourly_cost: float
    annual_cost: Optional[float]
    effective_date: Optional[date]

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Benchmark":
        return cls(
            id=row.get("id"),
            aircraft_type=_text(row.get("aircraft_type")) or "",
            hourly_cost=to_amount(row.get("hourly_cost")),
            annual_cost=to_optional_number(row.get("annual_cost")),
            effective_date=parse_local_date(row.get("effective_date")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "aircraft_type": self.aircraft_type,
            "hourly_cost": self.hourly_cost,
            "annual_cost": self.annual_cost,
            "effective_date": ymd(self.effective_date) if self.effective_date else None,
        }


@dataclass(frozen=True)
class AircraftSettings:
    """Which cost buckets feed the all-in cost per hour"""

    aircraft_id: str = ""
    show_cost_per_hour_summary: bool = True
    include_maintenance: bool = True
    include_insurance: bool = False
    include_fuel: bool = False
    include_hangar_tiedown: bool = False
    include_misc: bool = False

    FLAGS = (
        "show_cost_per_hour_summary",
        "include_maintenance",
        "include_insurance",
        "include_fuel",
        "include_hangar_tiedown",
        "include_misc",
    )

    @classmethod
    def from_row(cls, row: Optional[Dict[str, Any]], aircraft_id: str = "") -> "AircraftSettings":
        """Merge a (possibly missing) settings row over the defaults."""
        row = row or {}
        defaults = cls(aircraft_id=aircraft_id)
        values = {
            flag: bool(row[flag]) if row.get(flag) is not None else getattr(defaults, flag)
            for flag in cls.FLAGS
        }
        return cls(aircraft_id=aircraft_id or str(row.get("aircraft_id") or ""), **values)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"aircraft_id": self.aircraft_id}
        for flag in self.FLAGS:
            payload[flag] = getattr(self, flag)
        return payload


@dataclass(frozen=True)
class AircraftSnapshot:
    """Everything the dashboard needs for one aircraft, fetched in one pass"""

    aircraft: Aircraft
    maintenance: tuple = ()
    operating_expenses: tuple = ()
    rental_rates: tuple = ()
    rental_logs: tuple = ()
    benchmarks: tuple = ()
    settings: AircraftSettings = field(default_factory=AircraftSettings)
