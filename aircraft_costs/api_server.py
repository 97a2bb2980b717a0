"""HTTP API for the aircraft cost dashboard.

Every ``/api/`` route expects the caller's backend access token as a Bearer
credential. The token is forwarded to the backend, so row-level security
decides what each caller can read or write; this server only adds the
owner/admin checks the dashboard applies before writes.

Endpoints:

* ``GET /health``
* ``GET /api/aircraft`` – aircraft visible to the caller
* ``POST /api/aircraft`` – create an aircraft owned by the caller
* ``GET /api/aircraft/{id}/dashboard?view=all|year|month&year=&month=``
* ``GET /api/aircraft/{id}/series?year=``
* ``POST /api/aircraft/{id}/maintenance``
* ``POST /api/aircraft/{id}/operating-expenses``
* ``PUT/DELETE /api/aircraft/{id}/operating-expenses/{expense_id}``
* ``POST /api/aircraft/{id}/rental-rates``
* ``POST /api/aircraft/{id}/rental-logs``
* ``PUT/DELETE /api/aircraft/{id}/rental-logs/{log_id}``
* ``PUT /api/aircraft/{id}/settings``
* ``POST /api/aircraft/{id}/invites``
* ``POST /api/invites/{token}/accept``
* ``GET /api/benchmarks`` – benchmarks grouped by aircraft type
* ``POST /api/benchmarks``, ``PUT/DELETE /api/benchmarks/{benchmark_id}`` – app admins only
"""

from __future__ import annotations

import logging
import os
from datetime import date
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from aiohttp import web

from .auth import AuthError, Identity, TokenVerifier
from .dashboard import VIEWS, DashboardService, RecordNotFound, build_dashboard, build_year_series
from .supabase_client import BackendError
from .validation import EntryValidationError

LOGGER = logging.getLogger("aircraft_costs.api")

DEFAULT_ALLOWED_ORIGINS = ("http://localhost:3000", "http://127.0.0.1:3000")

IDENTITY_KEY = "identity"


def _allowed_origins() -> Tuple[str, ...]:
    raw = os.getenv("ALLOWED_ORIGINS", "")
    origins = tuple(value.strip() for value in raw.split(",") if value.strip())
    return origins or DEFAULT_ALLOWED_ORIGINS


def apply_cors_headers(response: web.StreamResponse, origin: Optional[str], allowed: Tuple[str, ...]) -> None:
    if origin and origin in allowed:
        response.headers["Access-Control-Allow-Origin"] = origin
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type, Accept, Authorization"


def _error(status: int, message: str) -> web.Response:
    return web.json_response({"error": message}, status=status)


@web.middleware
async def error_middleware(
    request: web.Request,
    handler: Callable[[web.Request], Awaitable[web.StreamResponse]],
) -> web.StreamResponse:
    """Translate domain errors into JSON HTTP responses."""
    try:
        return await handler(request)
    except AuthError as exc:
        return _error(401, str(exc))
    except PermissionError as exc:
        return _error(403, str(exc))
    except RecordNotFound as exc:
        return _error(404, str(exc))
    except EntryValidationError as exc:
        return _error(400, str(exc))
    except BackendError as exc:
        if exc.status in (401, 403):
            return _error(exc.status, str(exc))
        return _error(502, str(exc))


class DashboardApplication:
    """Encapsulates the aiohttp application and dashboard handlers."""

    def __init__(
        self,
        service: Optional[DashboardService] = None,
        verifier: Optional[TokenVerifier] = None,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self.service = service or DashboardService.from_environment()
        self.verifier = verifier or TokenVerifier.from_environment()
        self.allowed_origins = _allowed_origins()
        self._today = today or date.today
        self.app = web.Application(middlewares=[self.cors_middleware, error_middleware, self.auth_middleware])
        self.app.router.add_get("/health", self.handle_health)
        self.app.router.add_get("/api/aircraft", self.list_aircraft)
        self.app.router.add_post("/api/aircraft", self.post_aircraft)
        self.app.router.add_get("/api/aircraft/{aircraft_id}/dashboard", self.get_dashboard)
        self.app.router.add_get("/api/aircraft/{aircraft_id}/series", self.get_series)
        self.app.router.add_post("/api/aircraft/{aircraft_id}/maintenance", self.post_maintenance)
        self.app.router.add_post("/api/aircraft/{aircraft_id}/operating-expenses", self.post_operating_expense)
        self.app.router.add_put(
            "/api/aircraft/{aircraft_id}/operating-expenses/{expense_id}", self.put_operating_expense
        )
        self.app.router.add_delete(
            "/api/aircraft/{aircraft_id}/operating-expenses/{expense_id}", self.delete_operating_expense
        )
        self.app.router.add_post("/api/aircraft/{aircraft_id}/rental-rates", self.post_rental_rate)
        self.app.router.add_post("/api/aircraft/{aircraft_id}/rental-logs", self.post_rental_log)
        self.app.router.add_put("/api/aircraft/{aircraft_id}/rental-logs/{log_id}", self.put_rental_log)
        self.app.router.add_delete("/api/aircraft/{aircraft_id}/rental-logs/{log_id}", self.delete_rental_log)
        self.app.router.add_put("/api/aircraft/{aircraft_id}/settings", self.put_settings)
        self.app.router.add_post("/api/aircraft/{aircraft_id}/invites", self.post_invite)
        self.app.router.add_post("/api/invites/{token}/accept", self.accept_invite)
        self.app.router.add_get("/api/benchmarks", self.list_benchmarks)
        self.app.router.add_post("/api/benchmarks", self.post_benchmark)
        self.app.router.add_put("/api/benchmarks/{benchmark_id}", self.put_benchmark)
        self.app.router.add_delete("/api/benchmarks/{benchmark_id}", self.delete_benchmark)

    @web.middleware
    async def cors_middleware(
        self,
        request: web.Request,
        handler: Callable[[web.Request], Awaitable[web.StreamResponse]],
    ) -> web.StreamResponse:
        origin = request.headers.get("Origin")

        if request.method == "OPTIONS":
            response = web.Response(status=200)
            apply_cors_headers(response, origin, self.allowed_origins)
            return response

        if origin and origin not in self.allowed_origins:
            return _error(403, "Invalid origin")

        response = await handler(request)
        if not response.prepared:
            apply_cors_headers(response, origin, self.allowed_origins)
        return response

    @web.middleware
    async def auth_middleware(
        self,
        request: web.Request,
        handler: Callable[[web.Request], Awaitable[web.StreamResponse]],
    ) -> web.StreamResponse:
        if request.path.startswith("/api/"):
            request[IDENTITY_KEY] = self.verifier.identify(request.headers.get("Authorization"))
            if not self.service.is_configured:
                raise web.HTTPServiceUnavailable(
                    text="Backend credentials are not configured. Set SUPABASE_URL and SUPABASE_ANON_KEY."
                )
        return await handler(request)

    @staticmethod
    def _identity(request: web.Request) -> Identity:
        return request[IDENTITY_KEY]

    @staticmethod
    async def _json_body(request: web.Request) -> Dict[str, Any]:
        try:
            payload = await request.json()
        except ValueError:
            raise EntryValidationError("Request body must be JSON")
        if not isinstance(payload, dict):
            raise EntryValidationError("Request body must be a JSON object")
        return payload

    @staticmethod
    def _int_param(request: web.Request, name: str, default: int, low: int, high: int) -> int:
        raw = request.query.get(name)
        if raw is None or raw == "":
            return default
        try:
            value = int(raw)
        except ValueError:
            raise EntryValidationError(f"{name} must be an integer")
        if not low <= value <= high:
            raise EntryValidationError(f"{name} must be between {low} and {high}")
        return value

    async def handle_health(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "ok"})

    async def list_aircraft(self, request: web.Request) -> web.Response:
        aircraft = await self.service.list_aircraft(self._identity(request))
        return web.json_response({"aircraft": [record.to_dict() for record in aircraft]})

    async def post_aircraft(self, request: web.Request) -> web.Response:
        draft = await self._json_body(request)
        aircraft = await self.service.create_aircraft(self._identity(request), draft)
        return web.json_response(aircraft.to_dict(), status=201)

    async def get_dashboard(self, request: web.Request) -> web.Response:
        today = self._today()
        view = request.query.get("view", "all")
        if view not in VIEWS:
            raise EntryValidationError(f"view must be one of: {', '.join(VIEWS)}")
        year = self._int_param(request, "year", today.year, 1900, 9999)
        month = self._int_param(request, "month", today.month, 1, 12)

        snapshot = await self.service.load_snapshot(self._identity(request), request.match_info["aircraft_id"])
        payload = build_dashboard(
            snapshot,
            view=view,
            year=year,
            month=month,
            today=today,
            benchmark_types=self.service.benchmark_types,
        )
        return web.json_response(payload)

    async def get_series(self, request: web.Request) -> web.Response:
        year = self._int_param(request, "year", self._today().year, 1900, 9999)
        snapshot = await self.service.load_snapshot(self._identity(request), request.match_info["aircraft_id"])
        return web.json_response(build_year_series(snapshot, year))

    async def post_maintenance(self, request: web.Request) -> web.Response:
        draft = await self._json_body(request)
        row = await self.service.add_maintenance_entry(
            self._identity(request), request.match_info["aircraft_id"], draft
        )
        return web.json_response(row, status=201)

    async def post_operating_expense(self, request: web.Request) -> web.Response:
        draft = await self._json_body(request)
        row = await self.service.add_operating_expense(
            self._identity(request), request.match_info["aircraft_id"], draft
        )
        return web.json_response(row, status=201)

    async def put_operating_expense(self, request: web.Request) -> web.Response:
        draft = await self._json_body(request)
        row = await self.service.update_operating_expense(
            self._identity(request), request.match_info["aircraft_id"], request.match_info["expense_id"], draft
        )
        return web.json_response(row)

    async def delete_operating_expense(self, request: web.Request) -> web.Response:
        await self.service.delete_operating_expense(
            self._identity(request), request.match_info["aircraft_id"], request.match_info["expense_id"]
        )
        return web.Response(status=204)

    async def post_rental_rate(self, request: web.Request) -> web.Response:
        draft = await self._json_body(request)
        row = await self.service.add_rental_rate(
            self._identity(request), request.match_info["aircraft_id"], draft
        )
        return web.json_response(row, status=201)

    async def post_rental_log(self, request: web.Request) -> web.Response:
        draft = await self._json_body(request)
        row = await self.service.add_rental_log(
            self._identity(request), request.match_info["aircraft_id"], draft
        )
        return web.json_response(row, status=201)

    async def put_rental_log(self, request: web.Request) -> web.Response:
        draft = await self._json_body(request)
        row = await self.service.update_rental_log(
            self._identity(request), request.match_info["aircraft_id"], request.match_info["log_id"], draft
        )
        return web.json_response(row)

    async def delete_rental_log(self, request: web.Request) -> web.Response:
        await self.service.delete_rental_log(
            self._identity(request), request.match_info["aircraft_id"], request.match_info["log_id"]
        )
        return web.Response(status=204)

    async def put_settings(self, request: web.Request) -> web.Response:
        patch = await self._json_body(request)
        settings = await self.service.save_settings(
            self._identity(request), request.match_info["aircraft_id"], patch
        )
        return web.json_response(settings.to_dict())

    async def post_invite(self, request: web.Request) -> web.Response:
        body = await self._json_body(request)
        invite = await self.service.create_invite(
            self._identity(request),
            request.match_info["aircraft_id"],
            body.get("email"),
            body.get("role", "member"),
        )
        return web.json_response(
            {"token": invite.get("token"), "invite_path": f"/invite/{invite.get('token')}"},
            status=201,
        )

    async def accept_invite(self, request: web.Request) -> web.Response:
        membership = await self.service.accept_invite(self._identity(request), request.match_info["token"])
        return web.json_response(membership)

    async def list_benchmarks(self, request: web.Request) -> web.Response:
        groups = await self.service.list_benchmarks(self._identity(request))
        return web.json_response(
            {
                "groups": [
                    {"aircraft_type": aircraft_type, "benchmarks": [row.to_dict() for row in rows]}
                    for aircraft_type, rows in groups
                ]
            }
        )

    async def post_benchmark(self, request: web.Request) -> web.Response:
        draft = await self._json_body(request)
        row = await self.service.add_benchmark(self._identity(request), draft)
        return web.json_response(row, status=201)

    async def put_benchmark(self, request: web.Request) -> web.Response:
        draft = await self._json_body(request)
        row = await self.service.update_benchmark(
            self._identity(request), request.match_info["benchmark_id"], draft
        )
        return web.json_response(row)

    async def delete_benchmark(self, request: web.Request) -> web.Response:
        await self.service.delete_benchmark(self._identity(request), request.match_info["benchmark_id"])
        return web.Response(status=204)


def create_app() -> web.Application:
    # Configure logging to both console and file
    log_dir = os.getenv("LOG_DIR", "/var/log/aircraft-costs")
    log_file = os.path.join(log_dir, "api-server.log")

    handlers = [logging.StreamHandler()]
    try:
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, mode="a"))
        file_logging_status = f"Logging to {log_file}"
    except OSError as e:
        file_logging_status = f"File logging disabled for {log_dir}: {e}"

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )
    LOGGER.info("File logging configuration: %s", file_logging_status)

    server = DashboardApplication()
    if not server.service.is_configured:
        LOGGER.warning("SUPABASE_URL/SUPABASE_ANON_KEY not set; /api/ routes will return 503")
    return server.app


def main() -> None:
    app = create_app()
    host = os.getenv("API_HOST", "127.0.0.1")
    port = int(os.getenv("API_PORT", "8000"))
    web.run_app(app, host=host, port=port)


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    main()
