"""Shared pytest configuration for the project test suite."""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, List

import pytest


# Ensure the repository root (which contains the ``aircraft_costs`` package) is importable.
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from aircraft_costs.models import (  # noqa: E402
    Aircraft,
    AircraftSettings,
    AircraftSnapshot,
    Benchmark,
    MaintenanceEntry,
    OperatingExpense,
    RentalLog,
    RentalRate,
)


AIRCRAFT_ID = "ac-1"
OWNER_ID = "user-owner"


@pytest.fixture
def aircraft_row() -> Dict[str, Any]:
    return {
        "id": AIRCRAFT_ID,
        "user_id": OWNER_ID,
        "tail_number": "N12345",
        "make": "Cessna",
        "model": "172N",
        "year": 1978,
        "created_at": "2024-01-01T00:00:00+00:00",
    }


@pytest.fixture
def maintenance_rows() -> List[Dict[str, Any]]:
    """Four dated entries (1,000 spend over 100 tach hours) plus one undated note."""
    return [
        {"id": "m1", "entry_date": "2025-01-10", "category": "Oil Change", "amount": 150, "tach_hours": 1000},
        {"id": "m2", "entry_date": "2025-03-05", "category": "Annual", "amount": 600, "tach_hours": 1040},
        {"id": "m3", "entry_date": "2025-03-20", "category": "Tires", "amount": 150, "tach_hours": 1060},
        {"id": "m4", "entry_date": "2025-07-02", "category": None, "amount": "100", "tach_hours": 1100},
        {"id": "m5", "entry_date": None, "category": "Other", "amount": None, "tach_hours": None,
         "notes": "Logbook scan", "created_at": "2025-02-01T12:00:00+00:00"},
    ]


@pytest.fixture
def operating_rows() -> List[Dict[str, Any]]:
    return [
        {"id": "o1", "entry_date": "2025-01-15", "category": "insurance", "amount": 1200},
        {"id": "o2", "entry_date": "2025-03-01", "category": "fuel", "amount": 300},
        {"id": "o3", "entry_date": "2025-03-18", "category": "hangar_tiedown", "amount": 250},
        {"id": "o4", "entry_date": "2024-12-30", "category": "misc", "amount": 50},
    ]


@pytest.fixture
def rate_rows() -> List[Dict[str, Any]]:
    return [
        {"id": "r1", "hourly_rate": 150, "effective_from": "2025-01-01"},
        {"id": "r2", "hourly_rate": 175, "effective_from": "2025-06-01"},
    ]


@pytest.fixture
def rental_log_rows() -> List[Dict[str, Any]]:
    return [
        {"id": "l1", "rental_date": "2025-03-10", "hours": 2, "hourly_rate": 150},
        {"id": "l2", "rental_date": "2025-03-22", "hours": 1.5, "hourly_rate": 150},
        {"id": "l3", "rental_date": "2025-07-04", "hours": 3, "hourly_rate": 175},
    ]


@pytest.fixture
def benchmark_rows() -> List[Dict[str, Any]]:
    return [
        {"id": "b1", "aircraft_type": "C172", "hourly_cost": 8, "annual_cost": 2500, "effective_date": "2023-01-01"},
        {"id": "b2", "aircraft_type": "172N", "hourly_cost": 9, "annual_cost": None, "effective_date": "2024-06-01"},
        {"id": "b3", "aircraft_type": "PA28", "hourly_cost": 11, "annual_cost": 3000, "effective_date": "2025-01-01"},
    ]


@pytest.fixture
def snapshot(
    aircraft_row,
    maintenance_rows,
    operating_rows,
    rate_rows,
    rental_log_rows,
    benchmark_rows,
) -> AircraftSnapshot:
    return AircraftSnapshot(
        aircraft=Aircraft.from_row(aircraft_row, role="owner"),
        maintenance=tuple(MaintenanceEntry.from_row(row) for row in maintenance_rows),
        operating_expenses=tuple(OperatingExpense.from_row(row) for row in operating_rows),
        rental_rates=tuple(RentalRate.from_row(row) for row in rate_rows),
        rental_logs=tuple(RentalLog.from_row(row) for row in rental_log_rows),
        benchmarks=tuple(Benchmark.from_row(row) for row in benchmark_rows),
        settings=AircraftSettings(aircraft_id=AIRCRAFT_ID),
    )


class StubBackend:
    """In-memory stand-in for ``SupabaseClient`` used by the service and HTTP tests."""

    def __init__(self, aircraft=None, maintenance=(), operating=(), rates=(), logs=(), benchmarks=()):
        self.aircraft = {row["id"]: row for row in (aircraft or [])}
        self.members: Dict[tuple, str] = {}
        self.app_admins: set = set()
        self.maintenance = list(maintenance)
        self.operating = list(operating)
        self.rates = list(rates)
        self.logs = list(logs)
        self.benchmarks = list(benchmarks)
        self.settings: Dict[str, Dict[str, Any]] = {}
        self.invites: List[Dict[str, Any]] = []
        self.inserted: List[tuple] = []
        self.tokens: List[str] = []

    def __call__(self, url=None, anon_key=None, access_token=None, **_kwargs):
        self.tokens.append(access_token)
        return self

    def fetch_aircraft(self, aircraft_id):
        return self.aircraft.get(aircraft_id)

    def fetch_member_role(self, aircraft_id, user_id):
        return self.members.get((aircraft_id, user_id))

    def is_app_admin(self, user_id):
        return user_id in self.app_admins

    def fetch_member_aircraft(self, user_id):
        return [
            {**self.aircraft[aircraft_id], "role": role}
            for (aircraft_id, member_id), role in self.members.items()
            if member_id == user_id and aircraft_id in self.aircraft
        ]

    def fetch_maintenance_entries(self, aircraft_id):
        return list(self.maintenance)

    def fetch_operating_expenses(self, aircraft_id):
        return list(self.operating)

    def fetch_rental_rates(self, aircraft_id):
        return list(self.rates)

    def fetch_rental_logs(self, aircraft_id):
        return list(self.logs)

    def fetch_benchmarks(self, aircraft_types=()):
        if not aircraft_types:
            return list(self.benchmarks)
        return [row for row in self.benchmarks if row["aircraft_type"] in aircraft_types]

    def fetch_settings(self, aircraft_id):
        return self.settings.get(aircraft_id)

    def _insert(self, table, row):
        stored = {"id": f"{table}-{len(self.inserted) + 1}", **row}
        self.inserted.append((table, stored))
        return stored

    def insert_maintenance_entry(self, aircraft_id, user_id, payload):
        return self._insert("maintenance_entries", {**payload, "aircraft_id": aircraft_id, "user_id": user_id})

    def insert_operating_expense(self, aircraft_id, user_id, payload):
        return self._insert("aircraft_operating_expenses", {**payload, "aircraft_id": aircraft_id, "created_by": user_id})

    def insert_rental_rate(self, aircraft_id, payload):
        return self._insert("aircraft_rental_rates", {**payload, "aircraft_id": aircraft_id})

    def insert_rental_log(self, aircraft_id, user_id, payload):
        return self._insert("aircraft_rental_logs", {**payload, "aircraft_id": aircraft_id, "created_by": user_id})

    def insert_benchmark(self, payload):
        return self._insert("maintenance_benchmarks", dict(payload))

    def save_settings(self, payload):
        self.settings[payload["aircraft_id"]] = dict(payload)
        return dict(payload)

    def create_invite(self, aircraft_id, invited_by, payload):
        row = {"id": f"inv-{len(self.invites) + 1}", **payload, "aircraft_id": aircraft_id, "invited_by": invited_by}
        self.invites.append(row)
        return row

    def fetch_invite(self, token):
        return next((row for row in self.invites if row.get("token") == token), None)

    def mark_invite_accepted(self, invite_id, user_id, accepted_at):
        rows = [row for row in self.invites if row["id"] == invite_id]
        for row in rows:
            row.update({"status": "accepted", "accepted_by": user_id, "accepted_at": accepted_at})
        return rows

    def insert_aircraft(self, user_id, payload):
        row = self._insert("aircraft", {**payload, "user_id": user_id})
        self.aircraft[row["id"]] = row
        return row

    def insert_member(self, aircraft_id, user_id, role):
        self.members[(aircraft_id, user_id)] = role
        return self._insert("aircraft_members", {"aircraft_id": aircraft_id, "user_id": user_id, "role": role})

    @staticmethod
    def _find(rows, row_id):
        return next((row for row in rows if row.get("id") == row_id), None)

    def update_operating_expense(self, aircraft_id, expense_id, payload):
        row = self._find(self.operating, expense_id)
        if row is not None:
            row.update(payload)
        return row

    def delete_operating_expense(self, aircraft_id, expense_id):
        row = self._find(self.operating, expense_id)
        if row is not None:
            self.operating.remove(row)
        return row is not None

    def update_rental_log(self, aircraft_id, log_id, payload):
        row = self._find(self.logs, log_id)
        if row is not None:
            row.update(payload)
        return row

    def delete_rental_log(self, aircraft_id, log_id):
        row = self._find(self.logs, log_id)
        if row is not None:
            self.logs.remove(row)
        return row is not None

    def update_benchmark(self, benchmark_id, payload):
        row = self._find(self.benchmarks, benchmark_id)
        if row is not None:
            row.update(payload)
        return row

    def delete_benchmark(self, benchmark_id):
        row = self._find(self.benchmarks, benchmark_id)
        if row is not None:
            self.benchmarks.remove(row)
        return row is not None


@pytest.fixture
def backend(aircraft_row, maintenance_rows, operating_rows, rate_rows, rental_log_rows, benchmark_rows) -> StubBackend:
    return StubBackend(
        aircraft=[aircraft_row],
        maintenance=maintenance_rows,
        operating=operating_rows,
        rates=rate_rows,
        logs=rental_log_rows,
        benchmarks=benchmark_rows,
    )
