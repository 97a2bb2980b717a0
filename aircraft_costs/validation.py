"""
Write-time validation for entries, rates, logs, benchmarks and invites

The cost model tolerates bad data; this layer is where it gets rejected
before reaching the backend. Each ``validate_*`` returns the row payload to
insert, or raises EntryValidationError with a message fit for the user.
"""

import math
import re
import secrets
import string
from typing import Any, Dict, Iterable, Optional

from .dates import parse_local_date, ymd
from .models import (
    DEFAULT_MAINTENANCE_CATEGORY,
    INVITE_ROLES,
    MAINTENANCE_CATEGORIES,
    OPERATING_CATEGORIES,
    MaintenanceEntry,
    RentalRate,
)
from .rates import snapshot_rate

ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
INVITE_TOKEN_LENGTH = 40
INVITE_TOKEN_ALPHABET = string.ascii_letters + string.digits


class EntryValidationError(ValueError):
    """Raised when user input cannot be stored"""


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _number(value: Any, message: str) -> Optional[float]:
    """Parse an optional number; blank means absent."""
    if _blank(value):
        return None
    if isinstance(value, bool):
        raise EntryValidationError(message)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise EntryValidationError(message)
    if not math.isfinite(number):
        raise EntryValidationError(message)
    return number


def _required_date(value: Any, message: str, invalid: str = "Dates must be YYYY-MM-DD.") -> str:
    if _blank(value):
        raise EntryValidationError(message)
    parsed = parse_local_date(value) if ISO_DATE.match(str(value).strip()) else None
    if parsed is None:
        raise EntryValidationError(invalid)
    return ymd(parsed)


def _note(value: Any) -> Optional[str]:
    if _blank(value):
        return None
    return str(value).strip()


def validate_maintenance_entry(draft: Dict[str, Any], existing: Iterable[MaintenanceEntry] = ()) -> Dict[str, Any]:
    """
    Validate a new maintenance entry

    Args:
        draft: Form values (``entry_date``, ``category``, ``amount``,
            ``tach_hours``, ``notes``)
        existing: Entries already stored for the aircraft

    Returns:
        Row payload for ``maintenance_entries``

    Raises:
        EntryValidationError: Non-numeric amount/tach, tach going backwards,
            or a cost without a tach reading
    """
    amount = _number(draft.get("amount"), "Amount must be a number.")
    tach = _number(draft.get("tach_hours"), "Tach Hours must be a number.")

    entry_date = None
    if not _blank(draft.get("entry_date")):
        entry_date = _required_date(draft.get("entry_date"), "Dates must be YYYY-MM-DD.")

    readings = [entry.tach_hours for entry in existing if entry.tach_hours is not None]
    latest_tach = max(readings) if readings else None
    if tach is not None and latest_tach is not None and tach < latest_tach:
        raise EntryValidationError(
            f"Tach hours cannot go backwards. Latest recorded tach is {latest_tach:g}."
        )

    if amount is not None and tach is None:
        raise EntryValidationError("Tach hours are required when entering a cost.")

    category = draft.get("category")
    if category not in MAINTENANCE_CATEGORIES:
        category = DEFAULT_MAINTENANCE_CATEGORY

    return {
        "entry_date": entry_date,
        "category": category,
        "amount": amount,
        "tach_hours": tach,
        "notes": _note(draft.get("notes")),
    }


def validate_operating_expense(draft: Dict[str, Any]) -> Dict[str, Any]:
    entry_date = _required_date(draft.get("entry_date"), "Date is required.")

    category = draft.get("category")
    if category not in OPERATING_CATEGORIES:
        raise EntryValidationError(
            f"Category must be one of: {', '.join(OPERATING_CATEGORIES)}."
        )

    amount = _number(draft.get("amount"), "Amount must be a positive number.")
    if amount is None or amount <= 0:
        raise EntryValidationError("Amount must be a positive number.")

    return {
        "entry_date": entry_date,
        "category": category,
        "amount": amount,
        "note": _note(draft.get("note")),
    }


def validate_rental_rate(draft: Dict[str, Any]) -> Dict[str, Any]:
    rate = _number(draft.get("hourly_rate"), "Hourly rate must be a positive number.")
    if rate is None or rate <= 0:
        raise EntryValidationError("Hourly rate must be a positive number.")
    effective_from = _required_date(draft.get("effective_from"), "Effective From date is required.")
    return {"hourly_rate": rate, "effective_from": effective_from}


def validate_rental_log(draft: Dict[str, Any], rates: Iterable[RentalRate] = ()) -> Dict[str, Any]:
    """
    Validate a rental log and capture its hourly rate

    The rate typed by the user wins (0 is allowed for free flights);
    otherwise the rate in effect on the rental date is copied onto the log.

    Raises:
        EntryValidationError: Missing date, non-positive hours or a negative rate
    """
    rental_date = _required_date(draft.get("rental_date"), "Rental date is required.")

    hours = _number(draft.get("hours"), "Hours must be a positive number.")
    if hours is None or hours <= 0:
        raise EntryValidationError("Hours must be a positive number.")

    override = _number(draft.get("hourly_rate"), "Rate must be 0 or a positive number.")
    if override is not None and override < 0:
        raise EntryValidationError("Rate must be 0 or a positive number.")

    return {
        "rental_date": rental_date,
        "hours": hours,
        "hourly_rate": snapshot_rate(rates, rental_date, override),
        "note": _note(draft.get("note")),
    }


def validate_rental_log_update(draft: Dict[str, Any]) -> Dict[str, Any]:
    """Edited logs carry their own rate; nothing is re-snapshotted."""
    rental_date = _required_date(draft.get("rental_date"), "Rental date is required.")

    hours = _number(draft.get("hours"), "Hours must be a positive number.")
    if hours is None or hours <= 0:
        raise EntryValidationError("Hours must be a positive number.")

    rate = _number(draft.get("hourly_rate"), "Hourly rate must be a positive number.")
    if rate is None or rate <= 0:
        raise EntryValidationError("Hourly rate must be a positive number.")

    return {
        "rental_date": rental_date,
        "hours": hours,
        "hourly_rate": rate,
        "note": _note(draft.get("note")),
    }


def validate_aircraft(draft: Dict[str, Any]) -> Dict[str, Any]:
    year = None
    if not _blank(draft.get("year")):
        raw = str(draft.get("year")).strip()
        if not raw.isdigit():
            raise EntryValidationError("Year must be a number (or leave it blank).")
        year = int(raw)
    return {
        "tail_number": _note(draft.get("tail_number")),
        "make": _note(draft.get("make")),
        "model": _note(draft.get("model")),
        "year": year,
    }


def validate_benchmark(draft: Dict[str, Any]) -> Dict[str, Any]:
    aircraft_type = str(draft.get("aircraft_type") or "").strip()
    if not aircraft_type:
        raise EntryValidationError("Aircraft type is required.")

    hourly = _number(draft.get("hourly_cost"), "Hourly cost must be a positive number.")
    if hourly is None or hourly <= 0:
        raise EntryValidationError("Hourly cost must be a positive number.")

    annual = _number(draft.get("annual_cost"), "Annual cost must be blank or >= 0.")
    if annual is not None and annual < 0:
        raise EntryValidationError("Annual cost must be blank or >= 0.")

    message = "Effective date must be YYYY-MM-DD."
    effective_date = _required_date(draft.get("effective_date"), message, message)

    return {
        "aircraft_type": aircraft_type,
        "hourly_cost": hourly,
        "annual_cost": annual,
        "effective_date": effective_date,
    }


def validate_invite(email: Any, role: Any = "member") -> Dict[str, Any]:
    clean_email = str(email or "").strip().lower()
    if "@" not in clean_email:
        raise EntryValidationError("Enter a valid email.")
    if role not in INVITE_ROLES:
        raise EntryValidationError(f"Role must be one of: {', '.join(INVITE_ROLES)}.")
    return {
        "invited_email": clean_email,
        "role": role,
        "token": make_invite_token(),
        "status": "pending",
    }


def make_invite_token(length: int = INVITE_TOKEN_LENGTH) -> str:
    """Random alphanumeric invite token."""
    return "".join(secrets.choice(INVITE_TOKEN_ALPHABET) for _ in range(length))
