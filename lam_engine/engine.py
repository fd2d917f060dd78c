"""Action engine facade wiring registry, router, runs and undo together."""

import time
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

import structlog

from .actions.base import ActionResult, ActionServices
from .actions.registry import ActionRegistry, build_registry
from .actions.router import ExecutionRouter
from .config import EngineSettings
from .events.audit import AuditEvent, AuditTrail
from .gateways import EmailGateway, SmsGateway
from .runs import Run, RunManager, RunStatus
from .runs.manager import CallLike
from .store import InMemoryRepository, Repository
from .undo import UndoManager
from .utils.clock import utcnow

logger = structlog.get_logger(__name__)


class ActionEngine:
    """UI-facing surface of the engine.

    Everything here returns results rather than raising, except
    ``DuplicateActionError`` while the registry is built.
    """

    def __init__(
        self,
        settings: EngineSettings,
        store: Repository,
        registry: ActionRegistry,
        router: ExecutionRouter,
        runs: RunManager,
        undo: UndoManager,
        audit: AuditTrail,
        gateways: Optional[List[Any]] = None,
    ) -> None:
        self.settings = settings
        self.store = store
        self.registry = registry
        self.router = router
        self.runs = runs
        self.undo = undo
        self.audit = audit
        self._gateways = gateways or []

    def describe_actions(self) -> List[Dict[str, str]]:
        return self.registry.describe_all()

    def describe_actions_text(self) -> str:
        """Catalog text handed to the upstream model."""
        return self.registry.describe_text()

    async def submit(self, tenant_id: str, calls: Iterable[CallLike]) -> Run:
        """Run one assistant turn's proposed calls.

        Args:
            tenant_id: Tenant the calls act on
            calls: ``ActionCall`` objects or ``{"name", "params"}`` mappings

        Returns:
            The created run; malformed calls appear in it as failed actions
        """
        return await self.runs.create_run(list(calls), tenant_id)

    async def approve_run(self, tenant_id: str, run_id: str) -> ActionResult:
        return await self.runs.approve(run_id, tenant_id)

    async def discard_run(self, tenant_id: str, run_id: str) -> ActionResult:
        return await self.runs.discard(run_id, tenant_id)

    async def undo_last_run(self, tenant_id: str) -> ActionResult:
        """Reverse the tenant's most recent undoable run."""
        result = await self.undo.undo_last(tenant_id)
        if result.success and result.data:
            await self.runs.mark_undone(result.data["runId"])
        return result

    async def can_undo(self, tenant_id: str) -> bool:
        return await self.undo.can_undo(tenant_id)

    async def last_run_id(self, tenant_id: str) -> Optional[str]:
        return await self.runs.last_run_id(tenant_id)

    async def get_run(self, tenant_id: str, run_id: str) -> Optional[Run]:
        return await self.runs.get_status(run_id, tenant_id)

    async def list_runs(
        self,
        tenant_id: str,
        status: Optional[RunStatus] = None,
        limit: int = 20,
    ) -> List[Run]:
        """Recent runs of the tenant, newest first; ``status`` narrows the list."""
        return await self.runs.list_runs(tenant_id, status=status, limit=limit)

    async def run_events(self, tenant_id: str, run_id: str) -> List[AuditEvent]:
        """Audit events of a run the tenant owns."""
        if await self.get_run(tenant_id, run_id) is None:
            return []
        return await self.audit.events_for(run_id)

    def get_stats(self) -> Dict[str, Any]:
        stats: Dict[str, Any] = {
            "registry": self.registry.get_stats(),
            "runs": self.runs.get_stats(),
            "undo": self.undo.get_stats(),
            "audit": self.audit.get_stats(),
        }
        if hasattr(self.store, "get_stats"):
            stats["store"] = self.store.get_stats()
        return stats

    async def close(self) -> None:
        """Release gateway HTTP sessions."""
        for gateway in self._gateways:
            await gateway.close()
        logger.info("Action engine closed")


def build_engine(
    settings: Optional[EngineSettings] = None,
    store: Optional[Repository] = None,
    sms: Optional[SmsGateway] = None,
    email: Optional[EmailGateway] = None,
    clock: Optional[Callable[[], datetime]] = None,
    monotonic: Callable[[], float] = time.monotonic,
) -> ActionEngine:
    """Assemble an engine with the built-in actions.

    Args:
        settings: Engine settings; read from the environment when omitted
        store: Repository; an in-memory one when omitted
        sms: SMS gateway; built from settings when omitted
        email: Email gateway; built from settings when omitted
        clock: Wall clock used by actions for due dates
        monotonic: Clock measuring the undo window

    Returns:
        Ready-to-use engine
    """
    settings = settings or EngineSettings()
    store = store or InMemoryRepository(clock=clock or utcnow)
    sms = sms or SmsGateway.from_settings(settings)
    email = email or EmailGateway.from_settings(settings)

    services = ActionServices(store=store, settings=settings, sms=sms, email=email, clock=clock)
    registry = build_registry(services)

    audit = AuditTrail()
    undo = UndoManager(store, window_seconds=settings.undo_window_seconds, clock=monotonic, audit=audit)
    router = ExecutionRouter(registry, undo=undo, timeout_seconds=settings.action_execution_timeout)
    runs = RunManager(router, undo=undo, audit=audit)

    logger.info(
        "Built action engine",
        actions=len(registry),
        undo_window_seconds=settings.undo_window_seconds,
        ambiguous_match_policy=settings.ambiguous_match_policy,
    )

    return ActionEngine(
        settings=settings,
        store=store,
        registry=registry,
        router=router,
        runs=runs,
        undo=undo,
        audit=audit,
        gateways=[sms, email],
    )
