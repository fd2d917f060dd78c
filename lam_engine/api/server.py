"""HTTP control surface for the UI."""

import json
from datetime import datetime, timezone
from typing import Any, List, Optional

import pydantic
import structlog
from aiohttp import web
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic_core import to_jsonable_python

from .. import __version__
from ..engine import ActionEngine
from ..runs import RunStatus
from ..utils.rate_limiter import TenantRateLimiter

logger = structlog.get_logger(__name__)

TENANT_HEADER = "X-Tenant-Id"
MAX_LISTED_RUNS = 100


class SubmitRunRequest(pydantic.BaseModel):
    # Items stay untyped; malformed calls become failed actions in the run
    actions: List[Any] = pydantic.Field(min_length=1)


def _dumps(payload: Any) -> str:
    return json.dumps(to_jsonable_python(payload))


def _json(payload: Any, status: int = 200, headers: Optional[dict] = None) -> web.Response:
    return web.json_response(payload, status=status, headers=headers, dumps=_dumps)


def _error(status: int, message: str, headers: Optional[dict] = None) -> web.Response:
    return _json({"success": False, "message": message}, status=status, headers=headers)


class ApiServer:
    """aiohttp application exposing runs, approval and undo.

    The application is served with ``web.run_app`` (see ``main``) or mounted
    in ``aiohttp.test_utils`` for tests.
    """

    def __init__(self, engine: ActionEngine, rate_limiter: Optional[TenantRateLimiter] = None) -> None:
        """Initialize the API server.

        Args:
            engine: Engine the handlers delegate to
            rate_limiter: Per-tenant limiter for run submissions
        """
        self.engine = engine
        self.rate_limiter = rate_limiter or TenantRateLimiter(engine.settings.rate_limit_runs)
        self._startup_time = datetime.now(timezone.utc)

        self.app = web.Application()
        self.app.router.add_get("/healthz", self._health_handler)
        self.app.router.add_get("/stats", self._stats_handler)
        self.app.router.add_get("/metrics", self._metrics_handler)
        self.app.router.add_get("/actions", self._actions_handler)
        self.app.router.add_get("/runs", self._list_runs_handler)
        self.app.router.add_post("/runs", self._submit_handler)
        self.app.router.add_get("/runs/{run_id}", self._run_handler)
        self.app.router.add_get("/runs/{run_id}/events", self._events_handler)
        self.app.router.add_post("/runs/{run_id}/approve", self._approve_handler)
        self.app.router.add_post("/runs/{run_id}/discard", self._discard_handler)
        self.app.router.add_get("/undo", self._undo_status_handler)
        self.app.router.add_post("/undo", self._undo_handler)
        self.app.on_cleanup.append(self._on_cleanup)

        logger.info("Initialized ApiServer")

    async def _on_cleanup(self, app: web.Application) -> None:
        await self.engine.close()

    def _tenant(self, request: web.Request) -> Optional[str]:
        tenant_id = request.headers.get(TENANT_HEADER, "").strip()
        return tenant_id or None

    async def _health_handler(self, request: web.Request) -> web.Response:
        return _json(
            {
                "status": "healthy",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "uptime_seconds": (datetime.now(timezone.utc) - self._startup_time).total_seconds(),
                "version": __version__,
            }
        )

    async def _stats_handler(self, request: web.Request) -> web.Response:
        stats = self.engine.get_stats()
        stats["rate_limiter"] = self.rate_limiter.get_stats()
        return _json(stats)

    async def _metrics_handler(self, request: web.Request) -> web.Response:
        """Handle Prometheus metrics exposition."""
        return web.Response(body=generate_latest(), headers={"Content-Type": CONTENT_TYPE_LATEST})

    async def _actions_handler(self, request: web.Request) -> web.Response:
        return _json(
            {
                "actions": self.engine.describe_actions(),
                "text": self.engine.describe_actions_text(),
            }
        )

    async def _submit_handler(self, request: web.Request) -> web.Response:
        """Create a run from the proposed action calls."""
        tenant_id = self._tenant(request)
        if tenant_id is None:
            return _error(401, f"Missing {TENANT_HEADER} header")

        try:
            body = await request.json()
            payload = SubmitRunRequest.model_validate(body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return _error(400, "Request body must be JSON")
        except pydantic.ValidationError as e:
            reasons = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}"
                for err in e.errors(include_url=False)
            )
            return _error(400, f"Malformed run request: {reasons}")

        # Only well-formed requests count against the tenant's budget
        if not await self.rate_limiter.acquire(tenant_id):
            retry_after = await self.rate_limiter.retry_after(tenant_id)
            return _error(
                429,
                "Too many runs submitted, try again shortly",
                headers={"Retry-After": str(max(1, round(retry_after)))},
            )

        run = await self.engine.submit(tenant_id, payload.actions)
        return _json(run.to_dict(), status=201)

    async def _list_runs_handler(self, request: web.Request) -> web.Response:
        """List recent runs, e.g. ``?status=pending_approval`` after a reload."""
        tenant_id = self._tenant(request)
        if tenant_id is None:
            return _error(401, f"Missing {TENANT_HEADER} header")

        status = None
        if "status" in request.query:
            try:
                status = RunStatus(request.query["status"])
            except ValueError:
                return _error(400, f"Unknown run status: {request.query['status']}")

        try:
            limit = int(request.query.get("limit", "20"))
        except ValueError:
            return _error(400, "limit must be an integer")
        if not 1 <= limit <= MAX_LISTED_RUNS:
            return _error(400, f"limit must be between 1 and {MAX_LISTED_RUNS}")

        runs = await self.engine.list_runs(tenant_id, status=status, limit=limit)
        return _json({"runs": [run.to_dict() for run in runs]})

    async def _run_handler(self, request: web.Request) -> web.Response:
        tenant_id = self._tenant(request)
        if tenant_id is None:
            return _error(401, f"Missing {TENANT_HEADER} header")

        run = await self.engine.get_run(tenant_id, request.match_info["run_id"])
        if run is None:
            return _error(404, "Run not found.")
        return _json(run.to_dict())

    async def _events_handler(self, request: web.Request) -> web.Response:
        tenant_id = self._tenant(request)
        if tenant_id is None:
            return _error(401, f"Missing {TENANT_HEADER} header")

        run_id = request.match_info["run_id"]
        if await self.engine.get_run(tenant_id, run_id) is None:
            return _error(404, "Run not found.")
        events = await self.engine.run_events(tenant_id, run_id)
        return _json({"runId": run_id, "events": [e.to_dict() for e in events]})

    async def _approve_handler(self, request: web.Request) -> web.Response:
        tenant_id = self._tenant(request)
        if tenant_id is None:
            return _error(401, f"Missing {TENANT_HEADER} header")

        run_id = request.match_info["run_id"]
        if await self.engine.get_run(tenant_id, run_id) is None:
            return _error(404, "Run not found.")

        result = await self.engine.approve_run(tenant_id, run_id)
        return _json(result.to_dict())

    async def _discard_handler(self, request: web.Request) -> web.Response:
        tenant_id = self._tenant(request)
        if tenant_id is None:
            return _error(401, f"Missing {TENANT_HEADER} header")

        run_id = request.match_info["run_id"]
        if await self.engine.get_run(tenant_id, run_id) is None:
            return _error(404, "Run not found.")

        result = await self.engine.discard_run(tenant_id, run_id)
        return _json(result.to_dict())

    async def _undo_status_handler(self, request: web.Request) -> web.Response:
        tenant_id = self._tenant(request)
        if tenant_id is None:
            return _error(401, f"Missing {TENANT_HEADER} header")

        return _json(
            {
                "canUndo": await self.engine.can_undo(tenant_id),
                "lastRunId": await self.engine.last_run_id(tenant_id),
            }
        )

    async def _undo_handler(self, request: web.Request) -> web.Response:
        tenant_id = self._tenant(request)
        if tenant_id is None:
            return _error(401, f"Missing {TENANT_HEADER} header")

        result = await self.engine.undo_last_run(tenant_id)
        return _json(result.to_dict())
