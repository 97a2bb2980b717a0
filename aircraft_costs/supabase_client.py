"""
Backend access for the dashboard

Thin client over the managed backend's PostgREST interface. Row-level
security runs on the backend, so every call is made with the caller's own
access token; this client never widens access.
"""

import logging
import os
from typing import Any, Dict, List, Optional, Sequence

import requests

LOGGER = logging.getLogger("aircraft_costs.backend")

DEFAULT_TIMEOUT = 15

MAINTENANCE_COLUMNS = "id, user_id, aircraft_id, entry_date, category, amount, tach_hours, notes, created_at"
OPERATING_COLUMNS = "id, aircraft_id, entry_date, category, amount, note, created_by, created_at"
RATE_COLUMNS = "id, aircraft_id, hourly_rate, effective_from"
RENTAL_LOG_COLUMNS = "id, aircraft_id, rental_date, hours, hourly_rate, note, created_by"
BENCHMARK_COLUMNS = "id, aircraft_type, hourly_cost, annual_cost, effective_date"
AIRCRAFT_COLUMNS = "id, user_id, tail_number, make, model, year, created_at"
INVITE_COLUMNS = "id, aircraft_id, invited_email, role, token, status, invited_by, accepted_by, accepted_at"
SETTINGS_COLUMNS = (
    "aircraft_id, show_cost_per_hour_summary, include_maintenance, include_insurance, "
    "include_fuel, include_hangar_tiedown, include_misc, updated_at"
)


class BackendError(RuntimeError):
    """Raised when the backend rejects a request or cannot be reached"""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


def _eq(value: Any) -> str:
    return f"eq.{value}"


def _in(values: Sequence[str]) -> str:
    quoted = ",".join(f'"{value}"' for value in values)
    return f"in.({quoted})"


class SupabaseClient:
    """Client for the dashboard tables"""

    def __init__(self, url: str = None, anon_key: str = None, access_token: str = None,
                 timeout: int = DEFAULT_TIMEOUT):
        """
        Initialize backend client

        Args:
            url: Project URL (defaults to SUPABASE_URL)
            anon_key: Public API key (defaults to SUPABASE_ANON_KEY)
            access_token: Signed-in user's access token; the anon key is used
                when absent
            timeout: Request timeout in seconds
        """
        self.url = (url or os.environ.get("SUPABASE_URL", "")).rstrip("/")
        self.anon_key = anon_key or os.environ.get("SUPABASE_ANON_KEY", "")
        self.access_token = access_token
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.anon_key)

    @property
    def rest_url(self) -> str:
        return f"{self.url}/rest/v1"

    def _headers(self, prefer: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {self.access_token or self.anon_key}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _request(self, method: str, table: str, *, params: Dict[str, Any] = None,
                 json: Any = None, prefer: Optional[str] = None) -> Any:
        url = f"{self.rest_url}/{table}"
        try:
            response = requests.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(prefer),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            LOGGER.error("Backend %s %s failed: %s", method, table, exc)
            raise BackendError(f"Backend request failed: {exc}") from exc

        if response.status_code >= 400:
            detail = None
            try:
                body = response.json() if response.text else None
            except ValueError:
                body = None
            if isinstance(body, dict):
                detail = body.get("message")
            message = detail or response.text or f"HTTP {response.status_code}"
            LOGGER.error("Backend %s %s returned %s: %s", method, table, response.status_code, message)
            raise BackendError(message, status=response.status_code)

        if not response.text:
            return None
        return response.json()

    def select(self, table: str, columns: str = "*", filters: Dict[str, str] = None,
               order: Sequence[str] = (), limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Read rows from a table

        Args:
            table: Table name
            columns: Column list for ``select``
            filters: Column -> PostgREST filter (e.g. ``"eq.123"``)
            order: Order clauses (e.g. ``"entry_date.asc"``)
            limit: Optional row limit

        Returns:
            List of row dicts
        """
        params: Dict[str, Any] = {"select": columns}
        params.update(filters or {})
        if order:
            params["order"] = ",".join(order)
        if limit:
            params["limit"] = limit
        return self._request("GET", table, params=params) or []

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        rows = self._request("POST", table, json=row, prefer="return=representation") or []
        return rows[0] if rows else dict(row)

    def upsert(self, table: str, row: Dict[str, Any], on_conflict: str) -> Dict[str, Any]:
        rows = self._request(
            "POST",
            table,
            params={"on_conflict": on_conflict},
            json=row,
            prefer="resolution=merge-duplicates,return=representation",
        ) or []
        return rows[0] if rows else dict(row)

    def update(self, table: str, filters: Dict[str, str], patch: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Patch matching rows

        Returns:
            Updated rows; empty when nothing matched or row-level security
            hid the row from the caller
        """
        return self._request("PATCH", table, params=filters, json=patch, prefer="return=representation") or []

    def delete(self, table: str, filters: Dict[str, str]) -> List[Dict[str, Any]]:
        return self._request("DELETE", table, params=filters, prefer="return=representation") or []

    # Reads

    def fetch_aircraft(self, aircraft_id: str) -> Optional[Dict[str, Any]]:
        rows = self.select("aircraft", AIRCRAFT_COLUMNS, {"id": _eq(aircraft_id)}, limit=1)
        return rows[0] if rows else None

    def fetch_member_role(self, aircraft_id: str, user_id: str) -> Optional[str]:
        rows = self.select(
            "aircraft_members",
            "role",
            {"aircraft_id": _eq(aircraft_id), "user_id": _eq(user_id)},
            limit=1,
        )
        if not rows:
            return None
        return rows[0].get("role") or "member"

    def is_app_admin(self, user_id: str) -> bool:
        return bool(self.select("app_admins", "user_id", {"user_id": _eq(user_id)}, limit=1))

    def fetch_member_aircraft(self, user_id: str) -> List[Dict[str, Any]]:
        """Aircraft visible through membership, each tagged with the member's role."""
        rows = self.select(
            "aircraft_members",
            f"role, aircraft:aircraft_id({AIRCRAFT_COLUMNS.replace(' ', '')})",
            {"user_id": _eq(user_id)},
        )
        aircraft = []
        for row in rows:
            record = row.get("aircraft")
            if record:
                aircraft.append({**record, "role": row.get("role") or "member"})
        aircraft.sort(key=lambda record: record.get("created_at") or "", reverse=True)
        return aircraft

    def fetch_maintenance_entries(self, aircraft_id: str) -> List[Dict[str, Any]]:
        return self.select(
            "maintenance_entries",
            MAINTENANCE_COLUMNS,
            {"aircraft_id": _eq(aircraft_id)},
            order=("entry_date.desc.nullslast", "created_at.desc"),
        )

    def fetch_operating_expenses(self, aircraft_id: str) -> List[Dict[str, Any]]:
        return self.select(
            "aircraft_operating_expenses",
            OPERATING_COLUMNS,
            {"aircraft_id": _eq(aircraft_id)},
            order=("entry_date.desc",),
        )

    def fetch_rental_rates(self, aircraft_id: str) -> List[Dict[str, Any]]:
        return self.select(
            "aircraft_rental_rates",
            RATE_COLUMNS,
            {"aircraft_id": _eq(aircraft_id)},
            order=("effective_from.asc",),
        )

    def fetch_rental_logs(self, aircraft_id: str) -> List[Dict[str, Any]]:
        return self.select(
            "aircraft_rental_logs",
            RENTAL_LOG_COLUMNS,
            {"aircraft_id": _eq(aircraft_id)},
            order=("rental_date.asc",),
        )

    def fetch_benchmarks(self, aircraft_types: Sequence[str] = ()) -> List[Dict[str, Any]]:
        filters = {"aircraft_type": _in(aircraft_types)} if aircraft_types else {}
        return self.select(
            "maintenance_benchmarks",
            BENCHMARK_COLUMNS,
            filters,
            order=("aircraft_type.asc", "effective_date.desc"),
        )

    def fetch_settings(self, aircraft_id: str) -> Optional[Dict[str, Any]]:
        rows = self.select("aircraft_settings", SETTINGS_COLUMNS, {"aircraft_id": _eq(aircraft_id)}, limit=1)
        return rows[0] if rows else None

    def fetch_invite(self, token: str) -> Optional[Dict[str, Any]]:
        rows = self.select("aircraft_invites", INVITE_COLUMNS, {"token": _eq(token)}, limit=1)
        return rows[0] if rows else None

    # Writes

    def insert_aircraft(self, user_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        LOGGER.info("Creating aircraft %s", payload.get("tail_number") or "(untitled)")
        return self.insert("aircraft", {**payload, "user_id": user_id})

    def insert_member(self, aircraft_id: str, user_id: str, role: str) -> Dict[str, Any]:
        LOGGER.info("Adding %s to aircraft %s as %s", user_id, aircraft_id, role)
        return self.insert("aircraft_members", {"aircraft_id": aircraft_id, "user_id": user_id, "role": role})

    def mark_invite_accepted(self, invite_id: str, user_id: str, accepted_at: str) -> List[Dict[str, Any]]:
        return self.update(
            "aircraft_invites",
            {"id": _eq(invite_id)},
            {"status": "accepted", "accepted_by": user_id, "accepted_at": accepted_at},
        )

    def insert_maintenance_entry(self, aircraft_id: str, user_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        row = {**payload, "aircraft_id": aircraft_id, "user_id": user_id}
        LOGGER.info("Inserting maintenance entry for aircraft %s", aircraft_id)
        return self.insert("maintenance_entries", row)

    def insert_operating_expense(self, aircraft_id: str, user_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        row = {**payload, "aircraft_id": aircraft_id, "created_by": user_id}
        LOGGER.info("Inserting operating expense for aircraft %s", aircraft_id)
        return self.insert("aircraft_operating_expenses", row)

    def insert_rental_rate(self, aircraft_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        LOGGER.info("Inserting rental rate for aircraft %s", aircraft_id)
        return self.insert("aircraft_rental_rates", {**payload, "aircraft_id": aircraft_id})

    def insert_rental_log(self, aircraft_id: str, user_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        row = {**payload, "aircraft_id": aircraft_id, "created_by": user_id}
        LOGGER.info("Inserting rental log for aircraft %s", aircraft_id)
        return self.insert("aircraft_rental_logs", row)

    def save_settings(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self.upsert("aircraft_settings", payload, on_conflict="aircraft_id")

    def create_invite(self, aircraft_id: str, invited_by: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        row = {**payload, "aircraft_id": aircraft_id, "invited_by": invited_by}
        LOGGER.info("Creating %s invite for aircraft %s", payload.get("role"), aircraft_id)
        return self.insert("aircraft_invites", row)

    def insert_benchmark(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        LOGGER.info("Inserting %s benchmark", payload.get("aircraft_type"))
        return self.insert("maintenance_benchmarks", payload)

    # Edits are scoped to the aircraft so an id from another aircraft never matches

    def update_operating_expense(self, aircraft_id: str, expense_id: str,
                                 payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        rows = self.update(
            "aircraft_operating_expenses",
            {"id": _eq(expense_id), "aircraft_id": _eq(aircraft_id)},
            payload,
        )
        return rows[0] if rows else None

    def delete_operating_expense(self, aircraft_id: str, expense_id: str) -> bool:
        LOGGER.info("Deleting operating expense %s from aircraft %s", expense_id, aircraft_id)
        return bool(self.delete(
            "aircraft_operating_expenses",
            {"id": _eq(expense_id), "aircraft_id": _eq(aircraft_id)},
        ))

    def update_rental_log(self, aircraft_id: str, log_id: str, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        rows = self.update(
            "aircraft_rental_logs",
            {"id": _eq(log_id), "aircraft_id": _eq(aircraft_id)},
            payload,
        )
        return rows[0] if rows else None

    def delete_rental_log(self, aircraft_id: str, log_id: str) -> bool:
        LOGGER.info("Deleting rental log %s from aircraft %s", log_id, aircraft_id)
        return bool(self.delete("aircraft_rental_logs", {"id": _eq(log_id), "aircraft_id": _eq(aircraft_id)}))

    def update_benchmark(self, benchmark_id: str, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        rows = self.update("maintenance_benchmarks", {"id": _eq(benchmark_id)}, payload)
        return rows[0] if rows else None

    def delete_benchmark(self, benchmark_id: str) -> bool:
        LOGGER.info("Deleting benchmark %s", benchmark_id)
        return bool(self.delete("maintenance_benchmarks", {"id": _eq(benchmark_id)}))
