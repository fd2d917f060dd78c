"""Run & approval management."""

import asyncio
from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import pydantic
import structlog

from ..actions.base import ActionCall, ActionContext, ActionResult, RiskTier
from ..actions.router import ExecutionRouter
from ..events.audit import AuditEventType, AuditTrail
from ..undo.manager import UndoManager
from ..utils.metrics import RUNS_TOTAL
from .models import ActionState, Run, RunAction, RunStatus

logger = structlog.get_logger(__name__)

EXTERNAL_COMMUNICATION_SENT = "the last run sent external communication, which cannot be unsent"

CallLike = Union[ActionCall, Mapping[str, Any]]


class RunManager:
    """Groups one assistant turn's calls into a run and drives approvals.

    Actions in a run execute strictly in order and one failure never stops
    the rest. Tier-2 calls wait in the run until ``approve`` is called.
    """

    def __init__(
        self,
        router: ExecutionRouter,
        undo: Optional[UndoManager] = None,
        audit: Optional[AuditTrail] = None,
        max_runs: int = 10000,
    ) -> None:
        """Initialize the run manager.

        Args:
            router: Router used to dispatch every call
            undo: Undo manager whose records are revoked when tier-2 actions run
            audit: Optional audit trail
            max_runs: Settled runs retained before the oldest are dropped
        """
        self.router = router
        self.undo = undo
        self.audit = audit
        self._runs: "OrderedDict[str, Run]" = OrderedDict()
        self._latest: Dict[str, str] = {}
        self._max_runs = max_runs
        self._lock = asyncio.Lock()

        logger.info("Initialized RunManager", max_runs=max_runs)

    async def create_run(self, calls: Iterable[CallLike], tenant_id: str) -> Run:
        """Create a run and execute everything that needs no approval.

        Args:
            calls: Action calls proposed in one assistant turn, in order, as
                ``ActionCall`` objects or raw ``{"name", "params"}`` mappings
            tenant_id: Tenant the run belongs to

        Returns:
            The run, in ``pending_approval`` if any tier-2 call is held,
            otherwise ``completed`` or ``partially_failed``
        """
        run = Run(tenant_id=tenant_id, actions=[self._run_action(call) for call in calls])

        async with self._lock:
            self._runs[run.id] = run
            self._latest[tenant_id] = run.id
            self._prune()

        logger.info(
            "Created run",
            run_id=run.id,
            tenant=tenant_id,
            actions=[a.call.name for a in run.actions],
        )
        await self._record(run, AuditEventType.RUN_CREATED, actions=[a.call.name for a in run.actions])

        context = ActionContext(tenant_id=tenant_id, run_id=run.id)
        for index, action in enumerate(run.actions):
            if action.state is ActionState.FAILED:
                # Malformed call, rejected before dispatch
                await self._settle_action(run, index, action, action.result)
                continue

            result = await self.router.dispatch(action.call, context)
            action.result = result

            if result.pending_approval:
                action.state = ActionState.PENDING_APPROVAL
                await self._record(run, AuditEventType.ACTION_HELD, index=index, action=action.call.name)
            else:
                await self._settle_action(run, index, action, result)

        self._finish(run)
        return run

    async def approve(self, run_id: str, tenant_id: str) -> ActionResult:
        """Execute every held tier-2 call of a run, in original order.

        Approving a run with nothing pending is a successful no-op. Each held
        call executes at most once, even when approvals race.

        Args:
            run_id: Run to approve
            tenant_id: Tenant issuing the approval

        Returns:
            Success if every approved call succeeded; ``data`` holds the run
        """
        async with self._lock:
            run = self._runs.get(run_id)
            refusal = self._check_access(run, tenant_id)
            if refusal is not None:
                return refusal

            pending = [
                (index, action)
                for index, action in enumerate(run.actions)
                if action.state is ActionState.PENDING_APPROVAL
            ]
            if not pending:
                return ActionResult.ok(
                    "Nothing is awaiting approval in this run.",
                    data=run.to_dict(),
                )

            for _, action in pending:
                action.state = ActionState.EXECUTING
            run.status = RunStatus.EXECUTING

        logger.info("Approving run", run_id=run_id, tenant=tenant_id, actions=len(pending))
        await self._record(run, AuditEventType.RUN_APPROVED, actions=[a.call.name for _, a in pending])

        context = ActionContext(tenant_id=tenant_id, run_id=run.id)
        succeeded = 0
        for index, action in pending:
            result = await self.router.execute_approved(action.call, context)
            action.result = result
            await self._settle_action(run, index, action, result)
            if result.success:
                succeeded += 1
                # Only communication that actually went out makes the run irreversible
                if action.risk_tier is RiskTier.EXTERNAL and self.undo is not None:
                    await self.undo.revoke(run.id, EXTERNAL_COMMUNICATION_SENT)

        self._finish(run)

        message = f"Approved {len(pending)} action(s): {succeeded} succeeded"
        if succeeded < len(pending):
            message += f", {len(pending) - succeeded} failed"
        return ActionResult(success=succeeded == len(pending), message=message + ".", data=run.to_dict())

    async def discard(self, run_id: str, tenant_id: str) -> ActionResult:
        """Drop every held call of a run without executing it."""
        async with self._lock:
            run = self._runs.get(run_id)
            refusal = self._check_access(run, tenant_id)
            if refusal is not None:
                return refusal

            discarded: List[str] = []
            for action in run.actions:
                if action.state is ActionState.PENDING_APPROVAL:
                    action.state = ActionState.DISCARDED
                    discarded.append(action.call.name)

            if not discarded:
                return ActionResult.ok("Nothing is awaiting approval in this run.", data=run.to_dict())

            self._finish(run)

        logger.info("Discarded held actions", run_id=run_id, tenant=tenant_id, actions=discarded)
        await self._record(run, AuditEventType.RUN_DISCARDED, actions=discarded)
        return ActionResult.ok(f"Discarded {len(discarded)} action(s) awaiting approval.", data=run.to_dict())

    async def get_status(self, run_id: str, tenant_id: Optional[str] = None) -> Optional[Run]:
        """Look up a run; with ``tenant_id`` set, foreign runs are not returned."""
        async with self._lock:
            run = self._runs.get(run_id)
        if run is None or (tenant_id is not None and run.tenant_id != tenant_id):
            return None
        return run

    async def last_run_id(self, tenant_id: str) -> Optional[str]:
        async with self._lock:
            return self._latest.get(tenant_id)

    async def list_runs(
        self,
        tenant_id: str,
        status: Optional[RunStatus] = None,
        limit: int = 20,
    ) -> List[Run]:
        """List a tenant's runs, newest first.

        Args:
            tenant_id: Tenant whose runs are listed
            status: Only runs in this status (e.g. held runs awaiting approval)
            limit: Maximum number of runs to return

        Returns:
            Matching runs
        """
        async with self._lock:
            runs = [
                run
                for run in reversed(self._runs.values())
                if run.tenant_id == tenant_id and (status is None or run.status is status)
            ]
        return runs[:limit]

    async def mark_undone(self, run_id: str) -> None:
        async with self._lock:
            run = self._runs.get(run_id)
            if run is not None:
                run.undone = True

    def get_stats(self) -> Dict[str, int]:
        return {
            "tracked_runs": len(self._runs),
            "pending_approval": sum(1 for r in self._runs.values() if r.status is RunStatus.PENDING_APPROVAL),
        }

    def _run_action(self, raw: CallLike) -> RunAction:
        """Parse one proposed call; a malformed one becomes a failed action."""
        if isinstance(raw, ActionCall):
            return RunAction(call=raw, risk_tier=self.router.risk_tier_of(raw.name))

        try:
            call = ActionCall.model_validate(raw)
        except pydantic.ValidationError as e:
            reasons = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'call'}: {err['msg']}"
                for err in e.errors(include_url=False)
            )
            logger.info("Rejected malformed action call", errors=reasons)

            name = raw.get("name") if isinstance(raw, Mapping) else None
            placeholder = ActionCall.model_construct(
                name=name if isinstance(name, str) else "",
                params=raw.get("params", {}) if isinstance(raw, Mapping) else {},
            )
            return RunAction(
                call=placeholder,
                risk_tier=None,
                state=ActionState.FAILED,
                result=ActionResult.fail(f"Invalid action call: {reasons}"),
            )

        return RunAction(call=call, risk_tier=self.router.risk_tier_of(call.name))

    def _check_access(self, run: Optional[Run], tenant_id: str) -> Optional[ActionResult]:
        if run is None:
            return ActionResult.fail("Run not found.")
        if run.tenant_id != tenant_id:
            logger.warning("Cross-tenant run access refused", run_id=run.id, tenant=tenant_id)
            return ActionResult.fail("Run belongs to a different account.")
        return None

    async def _settle_action(self, run: Run, index: int, action: RunAction, result: ActionResult) -> None:
        if result.success:
            action.state = ActionState.SUCCEEDED
            await self._record(run, AuditEventType.ACTION_SUCCEEDED, index=index, action=action.call.name)
        else:
            action.state = ActionState.FAILED
            await self._record(
                run,
                AuditEventType.ACTION_FAILED,
                index=index,
                action=action.call.name,
                message=result.message,
            )

    def _finish(self, run: Run) -> None:
        status = run.settle()
        if run.is_settled:
            RUNS_TOTAL.labels(status=status.value).inc()
        logger.info(
            "Run status updated",
            run_id=run.id,
            tenant=run.tenant_id,
            status=status.value,
            succeeded=run.actions_succeeded,
            failed=run.actions_failed,
            pending=run.actions_pending,
        )

    async def _record(self, run: Run, event_type: AuditEventType, **detail) -> None:
        if self.audit is not None:
            await self.audit.record(run.id, run.tenant_id, event_type, **detail)

    def _prune(self) -> None:
        # Caller holds the lock; runs awaiting approval are never dropped
        excess = len(self._runs) - self._max_runs
        if excess <= 0:
            return
        for run_id in [rid for rid, r in self._runs.items() if r.is_settled][:excess]:
            run = self._runs.pop(run_id)
            if self._latest.get(run.tenant_id) == run_id:
                del self._latest[run.tenant_id]
