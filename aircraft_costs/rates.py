"""
Rental rate resolution

A rate applies from its ``effective_from`` date onward until a later rate
takes over. Rental logs copy the resolved rate at write time.
"""

from datetime import date
from typing import Iterable, Optional

from .dates import DateLike, parse_local_date, to_optional_number
from .models import RentalRate


def resolve_rate(rates: Iterable[RentalRate], as_of: DateLike) -> Optional[RentalRate]:
    """
    Resolve the rate in effect on a given date

    Args:
        rates: Rate records in any order
        as_of: Target date (date or ``YYYY-MM-DD``)

    Returns:
        The latest rate effective on or before ``as_of``. When every rate
        starts later, the earliest rate overall. None for no rates.
    """
    target = parse_local_date(as_of)
    best: Optional[RentalRate] = None
    earliest: Optional[RentalRate] = None
    first_seen: Optional[RentalRate] = None

    for rate in rates:
        if first_seen is None:
            first_seen = rate
        effective = rate.effective_from
        if effective is None:
            continue
        if earliest is None or effective < earliest.effective_from:
            earliest = rate
        if target is not None and effective <= target:
            # ">=" so that the later record wins a tie
            if best is None or effective >= best.effective_from:
                best = rate

    if best is not None:
        return best
    if earliest is not None:
        return earliest
    return first_seen


def current_rate(rates: Iterable[RentalRate], today: Optional[date] = None) -> Optional[RentalRate]:
    """Rate in effect today."""
    return resolve_rate(rates, today or date.today())


def snapshot_rate(rates: Iterable[RentalRate], on: DateLike, override=None) -> float:
    """
    Hourly rate to store on a new rental log

    Args:
        rates: Aircraft rate table
        on: Rental date
        override: Rate typed by the user; 0 is a valid choice

    Returns:
        The override when given, otherwise the rate resolved for ``on``,
        otherwise 0.0
    """
    explicit = to_optional_number(override)
    if explicit is not None:
        return explicit
    resolved = resolve_rate(rates, on)
    return resolved.hourly_rate if resolved is not None else 0.0
