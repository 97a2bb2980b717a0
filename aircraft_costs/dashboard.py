"""Async-friendly dashboard service on top of the backend client and cost model."""

from __future__ import annotations

import asyncio
import logging
import os
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .aggregation import aggregate, category_breakdown, group_by_year, operating_totals
from .auth import Identity
from .benchmark import DEFAULT_BENCHMARK_TYPES, compare, group_benchmarks, latest_benchmark
from .dates import DateRange, format_money, format_per_hour, ymd
from .derivation import all_in_cost, cost_per_hour_trend, cost_summary, rental_period
from .models import (
    INVITE_ROLES,
    Aircraft,
    AircraftSettings,
    AircraftSnapshot,
    Benchmark,
    MaintenanceEntry,
    OperatingExpense,
    RentalLog,
    RentalRate,
    can_edit,
)
from .rates import current_rate
from .series import monthly_series, recent_monthly_revenue, rental_year_series
from .supabase_client import SupabaseClient
from .validation import (
    EntryValidationError,
    validate_aircraft,
    validate_benchmark,
    validate_invite,
    validate_maintenance_entry,
    validate_operating_expense,
    validate_rental_log,
    validate_rental_log_update,
    validate_rental_rate,
)

LOGGER = logging.getLogger("aircraft_costs.dashboard")

VIEWS = ("all", "year", "month")


class RecordNotFound(LookupError):
    """Row missing or not visible to the caller"""


class AircraftNotFound(RecordNotFound):
    """Aircraft missing or not visible to the caller"""


def build_dashboard(
    snapshot: AircraftSnapshot,
    *,
    view: str = "all",
    year: Optional[int] = None,
    month: Optional[int] = None,
    today: Optional[date] = None,
    recent_months: int = 6,
    benchmark_types: Sequence[str] = DEFAULT_BENCHMARK_TYPES,
) -> Dict[str, Any]:
    """
    Assemble every dashboard figure for one aircraft

    Args:
        snapshot: Aircraft data fetched from the backend
        view: ``all``, ``year`` or ``month``
        year: Selected year (defaults to the current year)
        month: Selected month 1-12 (defaults to the current month)
        today: Reference date for "current" rate and defaults
        recent_months: Months shown in the recent revenue chart
        benchmark_types: Aircraft type aliases the benchmark is picked from

    Returns:
        JSON-serialisable dict
    """
    today = today or date.today()
    year = year or today.year
    month = month or today.month
    period = DateRange.for_view(view, year, month)

    maintenance = snapshot.maintenance
    summary = cost_summary(maintenance)
    period_costs = aggregate(maintenance, period)

    benchmark = latest_benchmark(snapshot.benchmarks, benchmark_types)
    comparison = compare(summary.cost_per_hour, benchmark.hourly_cost if benchmark else None)

    operating_all_time = operating_totals(snapshot.operating_expenses)
    all_in = None
    if snapshot.settings.show_cost_per_hour_summary:
        all_in = all_in_cost(
            snapshot.settings,
            summary.total_spend,
            operating_all_time,
            summary.hours_flown,
        ).to_dict()

    rate = current_rate(snapshot.rental_rates, today)
    series_year = today.year if view == "all" else year
    rental = rental_period(snapshot.rental_logs, maintenance, period)

    return {
        "aircraft": snapshot.aircraft.to_dict(),
        "can_edit": can_edit(snapshot.aircraft.role),
        "range": {
            "view": view,
            "label": period.label,
            "start": ymd(period.start),
            "end": ymd(period.end),
        },
        "maintenance": {
            "summary": summary.to_dict(),
            "period": period_costs.to_dict(),
            "breakdown": category_breakdown(period_costs).to_dict(),
            "trend": cost_per_hour_trend(maintenance),
            "history": [
                {"year": group["year"], "rows": [entry.to_dict() for entry in group["rows"]]}
                for group in group_by_year(maintenance)
            ],
        },
        "benchmark": {
            "benchmark": benchmark.to_dict() if benchmark else None,
            "comparison": comparison.to_dict() if comparison else None,
        },
        "operating": {
            "period": operating_totals(snapshot.operating_expenses, period),
            "all_time": operating_all_time,
        },
        "all_in": all_in,
        "settings": snapshot.settings.to_dict(),
        "rental": {
            "current_rate": rate.to_dict() if rate else None,
            "period": rental.to_dict(),
            "year": series_year,
            "year_series": [
                row.to_dict() for row in rental_year_series(snapshot.rental_logs, maintenance, series_year)
            ],
            "recent_months": recent_monthly_revenue(snapshot.rental_logs, recent_months),
        },
        "display": {
            "total_spend": format_money(summary.total_spend),
            "cost_per_hour": format_per_hour(summary.cost_per_hour),
            "period_spend": format_money(period_costs.total_amount),
            "rental_revenue": format_money(rental.revenue),
            "profit_per_hour": format_per_hour(rental.profit_per_hour),
        },
    }


def build_year_series(snapshot: AircraftSnapshot, year: int) -> Dict[str, Any]:
    """Twelve-month chart series for maintenance, operating costs and rentals."""
    return {
        "year": year,
        "maintenance": [bucket.to_dict() for bucket in monthly_series(snapshot.maintenance, year)],
        "operating": [bucket.to_dict() for bucket in monthly_series(snapshot.operating_expenses, year)],
        "rental": [row.to_dict() for row in rental_year_series(snapshot.rental_logs, snapshot.maintenance, year)],
    }


class DashboardService:
    """High-level wrapper exposing coroutine-friendly dashboard operations."""

    def __init__(
        self,
        *,
        url: Optional[str] = None,
        anon_key: Optional[str] = None,
        benchmark_types: Optional[Sequence[str]] = None,
        client_cls: Optional[Callable[..., SupabaseClient]] = None,
    ) -> None:
        self.url = url or os.getenv("SUPABASE_URL")
        self.anon_key = anon_key or os.getenv("SUPABASE_ANON_KEY")
        if benchmark_types is None:
            raw = os.getenv("BENCHMARK_AIRCRAFT_TYPES", "")
            benchmark_types = [value.strip() for value in raw.split(",") if value.strip()] or DEFAULT_BENCHMARK_TYPES
        self.benchmark_types = tuple(benchmark_types)
        self._client_cls = client_cls or SupabaseClient

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.anon_key)

    @classmethod
    def from_environment(cls) -> "DashboardService":
        return cls()

    def _client(self, identity: Identity) -> SupabaseClient:
        if not self.is_configured:
            raise RuntimeError("Backend credentials missing. Set SUPABASE_URL and SUPABASE_ANON_KEY.")
        return self._client_cls(url=self.url, anon_key=self.anon_key, access_token=identity.access_token)

    async def _resolve_role(self, client: SupabaseClient, identity: Identity, aircraft_row: Dict[str, Any]) -> Optional[str]:
        if aircraft_row.get("user_id") == identity.user_id:
            return "owner"
        role = await asyncio.to_thread(client.fetch_member_role, str(aircraft_row.get("id")), identity.user_id)
        if role:
            return role
        if await asyncio.to_thread(client.is_app_admin, identity.user_id):
            return "admin"
        return None

    async def _aircraft(self, client: SupabaseClient, identity: Identity, aircraft_id: str) -> Aircraft:
        row = await asyncio.to_thread(client.fetch_aircraft, aircraft_id)
        if not row:
            raise AircraftNotFound(f"Aircraft {aircraft_id} not found")
        role = await self._resolve_role(client, identity, row)
        return Aircraft.from_row(row, role=role)

    async def list_aircraft(self, identity: Identity) -> List[Aircraft]:
        client = self._client(identity)
        rows = await asyncio.to_thread(client.fetch_member_aircraft, identity.user_id)
        return [Aircraft.from_row(row) for row in rows]

    async def create_aircraft(self, identity: Identity, draft: Dict[str, Any]) -> Aircraft:
        """Create an aircraft and make the caller its owning member."""
        payload = validate_aircraft(draft)
        client = self._client(identity)
        row = await asyncio.to_thread(client.insert_aircraft, identity.user_id, payload)
        await asyncio.to_thread(client.insert_member, str(row["id"]), identity.user_id, "owner")
        return Aircraft.from_row(row, role="owner")

    async def load_snapshot(self, identity: Identity, aircraft_id: str) -> AircraftSnapshot:
        """
        Fetch everything needed to render one aircraft

        Args:
            identity: Authenticated caller
            aircraft_id: Aircraft identifier

        Returns:
            Immutable AircraftSnapshot

        Raises:
            AircraftNotFound: Aircraft missing or hidden by row-level security
            BackendError: Backend request failed
        """
        client = self._client(identity)
        aircraft = await self._aircraft(client, identity, aircraft_id)

        maintenance, operating, rates, logs, benchmarks, settings = await asyncio.gather(
            asyncio.to_thread(client.fetch_maintenance_entries, aircraft_id),
            asyncio.to_thread(client.fetch_operating_expenses, aircraft_id),
            asyncio.to_thread(client.fetch_rental_rates, aircraft_id),
            asyncio.to_thread(client.fetch_rental_logs, aircraft_id),
            asyncio.to_thread(client.fetch_benchmarks, self.benchmark_types),
            asyncio.to_thread(client.fetch_settings, aircraft_id),
        )

        LOGGER.debug(
            "Loaded aircraft %s: %d maintenance entries, %d rental logs", aircraft_id, len(maintenance), len(logs)
        )
        return AircraftSnapshot(
            aircraft=aircraft,
            maintenance=tuple(MaintenanceEntry.from_row(row) for row in maintenance),
            operating_expenses=tuple(OperatingExpense.from_row(row) for row in operating),
            rental_rates=tuple(RentalRate.from_row(row) for row in rates),
            rental_logs=tuple(RentalLog.from_row(row) for row in logs),
            benchmarks=tuple(Benchmark.from_row(row) for row in benchmarks),
            settings=AircraftSettings.from_row(settings, aircraft_id=aircraft_id),
        )

    async def _editable(self, identity: Identity, aircraft_id: str) -> SupabaseClient:
        client = self._client(identity)
        aircraft = await self._aircraft(client, identity, aircraft_id)
        if not can_edit(aircraft.role):
            LOGGER.warning("User %s attempted to edit aircraft %s as %s", identity.user_id, aircraft_id, aircraft.role)
            raise PermissionError("Owner or admin role required")
        return client

    async def add_maintenance_entry(self, identity: Identity, aircraft_id: str, draft: Dict[str, Any]) -> Dict[str, Any]:
        client = await self._editable(identity, aircraft_id)
        rows = await asyncio.to_thread(client.fetch_maintenance_entries, aircraft_id)
        payload = validate_maintenance_entry(draft, [MaintenanceEntry.from_row(row) for row in rows])
        return await asyncio.to_thread(client.insert_maintenance_entry, aircraft_id, identity.user_id, payload)

    async def add_operating_expense(self, identity: Identity, aircraft_id: str, draft: Dict[str, Any]) -> Dict[str, Any]:
        payload = validate_operating_expense(draft)
        client = await self._editable(identity, aircraft_id)
        return await asyncio.to_thread(client.insert_operating_expense, aircraft_id, identity.user_id, payload)

    async def add_rental_rate(self, identity: Identity, aircraft_id: str, draft: Dict[str, Any]) -> Dict[str, Any]:
        payload = validate_rental_rate(draft)
        client = await self._editable(identity, aircraft_id)
        return await asyncio.to_thread(client.insert_rental_rate, aircraft_id, payload)

    async def add_rental_log(self, identity: Identity, aircraft_id: str, draft: Dict[str, Any]) -> Dict[str, Any]:
        """Store a rental log with the hourly rate captured at write time."""
        client = await self._editable(identity, aircraft_id)
        rows = await asyncio.to_thread(client.fetch_rental_rates, aircraft_id)
        payload = validate_rental_log(draft, [RentalRate.from_row(row) for row in rows])
        return await asyncio.to_thread(client.insert_rental_log, aircraft_id, identity.user_id, payload)

    async def save_settings(self, identity: Identity, aircraft_id: str, patch: Dict[str, Any]) -> AircraftSettings:
        client = await self._editable(identity, aircraft_id)
        current = AircraftSettings.from_row(
            await asyncio.to_thread(client.fetch_settings, aircraft_id), aircraft_id=aircraft_id
        )
        merged = current.to_dict()
        merged.update({flag: bool(patch[flag]) for flag in AircraftSettings.FLAGS if flag in patch})
        merged["aircraft_id"] = aircraft_id
        saved = await asyncio.to_thread(client.save_settings, merged)
        return AircraftSettings.from_row(saved, aircraft_id=aircraft_id)

    async def create_invite(self, identity: Identity, aircraft_id: str, email: Any, role: Any = "member") -> Dict[str, Any]:
        payload = validate_invite(email, role)
        client = await self._editable(identity, aircraft_id)
        return await asyncio.to_thread(client.create_invite, aircraft_id, identity.user_id, payload)

    async def accept_invite(self, identity: Identity, token: str) -> Dict[str, Any]:
        """
        Redeem an invite token for the signed-in caller

        The caller joins the invite's aircraft with the invited role and the
        invite is marked accepted, so a token works once.

        Returns:
            ``aircraft_id`` and ``role`` of the new membership

        Raises:
            RecordNotFound: Unknown token
            EntryValidationError: Invite already used or revoked
        """
        client = self._client(identity)
        invite = await asyncio.to_thread(client.fetch_invite, token)
        if not invite:
            raise RecordNotFound("Invite not found or already used.")
        if invite.get("status") != "pending":
            raise EntryValidationError("This invite has already been used or is no longer valid.")

        aircraft_id = str(invite.get("aircraft_id"))
        role = invite.get("role") if invite.get("role") in INVITE_ROLES else "member"
        await asyncio.to_thread(client.insert_member, aircraft_id, identity.user_id, role)
        accepted_at = datetime.now(timezone.utc).isoformat()
        await asyncio.to_thread(client.mark_invite_accepted, str(invite.get("id")), identity.user_id, accepted_at)
        LOGGER.info("User %s accepted invite to aircraft %s as %s", identity.user_id, aircraft_id, role)
        return {"aircraft_id": aircraft_id, "role": role}

    async def update_operating_expense(
        self, identity: Identity, aircraft_id: str, expense_id: str, draft: Dict[str, Any]
    ) -> Dict[str, Any]:
        payload = validate_operating_expense(draft)
        client = await self._editable(identity, aircraft_id)
        row = await asyncio.to_thread(client.update_operating_expense, aircraft_id, expense_id, payload)
        if row is None:
            raise RecordNotFound(f"Operating expense {expense_id} not found")
        return row

    async def delete_operating_expense(self, identity: Identity, aircraft_id: str, expense_id: str) -> None:
        client = await self._editable(identity, aircraft_id)
        if not await asyncio.to_thread(client.delete_operating_expense, aircraft_id, expense_id):
            raise RecordNotFound(f"Operating expense {expense_id} not found")

    async def update_rental_log(
        self, identity: Identity, aircraft_id: str, log_id: str, draft: Dict[str, Any]
    ) -> Dict[str, Any]:
        payload = validate_rental_log_update(draft)
        client = await self._editable(identity, aircraft_id)
        row = await asyncio.to_thread(client.update_rental_log, aircraft_id, log_id, payload)
        if row is None:
            raise RecordNotFound(f"Rental log {log_id} not found")
        return row

    async def delete_rental_log(self, identity: Identity, aircraft_id: str, log_id: str) -> None:
        client = await self._editable(identity, aircraft_id)
        if not await asyncio.to_thread(client.delete_rental_log, aircraft_id, log_id):
            raise RecordNotFound(f"Rental log {log_id} not found")

    async def list_benchmarks(self, identity: Identity) -> List[Tuple[str, List[Benchmark]]]:
        client = self._client(identity)
        rows = await asyncio.to_thread(client.fetch_benchmarks)
        return group_benchmarks(Benchmark.from_row(row) for row in rows)

    async def _app_admin(self, identity: Identity) -> SupabaseClient:
        client = self._client(identity)
        if not await asyncio.to_thread(client.is_app_admin, identity.user_id):
            LOGGER.warning("User %s attempted a benchmark change without app admin role", identity.user_id)
            raise PermissionError("App admin role required")
        return client

    async def add_benchmark(self, identity: Identity, draft: Dict[str, Any]) -> Dict[str, Any]:
        payload = validate_benchmark(draft)
        client = await self._app_admin(identity)
        return await asyncio.to_thread(client.insert_benchmark, payload)

    async def update_benchmark(self, identity: Identity, benchmark_id: str, draft: Dict[str, Any]) -> Dict[str, Any]:
        payload = validate_benchmark(draft)
        client = await self._app_admin(identity)
        row = await asyncio.to_thread(client.update_benchmark, benchmark_id, payload)
        if row is None:
            raise RecordNotFound(f"Benchmark {benchmark_id} not found")
        return row

    async def delete_benchmark(self, identity: Identity, benchmark_id: str) -> None:
        client = await self._app_admin(identity)
        if not await asyncio.to_thread(client.delete_benchmark, benchmark_id):
            raise RecordNotFound(f"Benchmark {benchmark_id} not found")
