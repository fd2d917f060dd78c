"""Bounded-window undo of the most recent run."""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

import structlog

from ..actions.base import ActionContext, ActionResult, RiskTier
from ..actions.errors import EngineError
from ..events.audit import AuditEventType, AuditTrail
from ..store.base import Repository
from ..utils.metrics import UNDO_TOTAL
from .reversal import Reversal

logger = structlog.get_logger(__name__)

NOTHING_TO_UNDO = "Nothing to undo."
ALREADY_UNDONE = "Nothing to undo: the last run was already undone."
WINDOW_EXPIRED = "Nothing to undo: the undo window for the last run has expired."


@dataclass
class UndoRecord:
    """Reversal data captured for one run."""

    run_id: str
    tenant_id: str
    valid_until: float
    reversals: List[Reversal] = field(default_factory=list)
    consumed: bool = False
    revoked_reason: Optional[str] = None

    def is_expired(self, now: float) -> bool:
        return now >= self.valid_until

    def is_available(self, now: float) -> bool:
        return not self.consumed and self.revoked_reason is None and not self.is_expired(now)


class UndoManager:
    """Keeps one undo record per run and applies a tenant's latest on request.

    Captures always append to their own run's record, so runs of one tenant
    may interleave. Only the run with the tenant's most recent capture is
    undoable: once its record is consumed, expired or revoked, older runs
    are not reachable.
    """

    def __init__(
        self,
        store: Repository,
        window_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
        audit: Optional[AuditTrail] = None,
    ) -> None:
        """Initialize the undo manager.

        Args:
            store: Repository the reversals are applied to
            window_seconds: How long a record stays valid after its last capture
            clock: Monotonic clock, replaceable in tests
            audit: Optional audit trail for RUN_UNDONE events
        """
        self.store = store
        self.window_seconds = window_seconds
        self._clock = clock
        self._audit = audit
        self._records: Dict[str, UndoRecord] = {}  # run_id -> record
        self._latest: Dict[str, str] = {}  # tenant_id -> run_id of the last capture
        self._lock = asyncio.Lock()

        logger.info("Initialized UndoManager", window_seconds=window_seconds)

    async def capture(
        self,
        context: ActionContext,
        reversal: Reversal,
        risk_tier: RiskTier = RiskTier.MUTATION,
    ) -> None:
        """Store reversal data for a successful tier-1 action.

        Args:
            context: Tenant and run the action executed in
            reversal: Descriptor returned by the executor
            risk_tier: Tier of the action; anything but MUTATION is ignored
        """
        if risk_tier is not RiskTier.MUTATION:
            logger.warning(
                "Refusing undo capture for non-mutation action",
                run_id=context.run_id,
                risk_tier=int(risk_tier),
            )
            return
        if not context.run_id:
            logger.debug("Skipping undo capture outside a run", tenant=context.tenant_id)
            return

        async with self._lock:
            now = self._clock()
            record = self._records.get(context.run_id)
            if record is None:
                record = UndoRecord(
                    run_id=context.run_id,
                    tenant_id=context.tenant_id,
                    valid_until=now + self.window_seconds,
                )
                self._records[context.run_id] = record
            elif record.tenant_id != context.tenant_id:
                logger.warning(
                    "Refusing undo capture for a run of another tenant",
                    run_id=context.run_id,
                    tenant=context.tenant_id,
                )
                return
            elif record.consumed or record.revoked_reason is not None:
                return

            record.reversals.append(reversal)
            record.valid_until = now + self.window_seconds
            self._latest[context.tenant_id] = context.run_id
            self._prune(now)

        logger.debug(
            "Captured undo data",
            tenant=context.tenant_id,
            run_id=context.run_id,
            reversal=reversal.describe(),
        )

    async def revoke(self, run_id: str, reason: str) -> bool:
        """Make a run's record permanently unavailable.

        Returns:
            True if a live record was revoked
        """
        async with self._lock:
            record = self._records.get(run_id)
            if record is None or record.revoked_reason is not None or record.consumed:
                return False
            record.revoked_reason = reason

        logger.info("Revoked undo record", run_id=run_id, reason=reason)
        return True

    async def can_undo(self, tenant_id: str) -> bool:
        async with self._lock:
            record = self._latest_record(tenant_id)
            return record is not None and record.is_available(self._clock())

    async def undoable_run_id(self, tenant_id: str) -> Optional[str]:
        """Run id that ``undo_last`` would reverse, if any."""
        async with self._lock:
            record = self._latest_record(tenant_id)
            if record is not None and record.is_available(self._clock()):
                return record.run_id
            return None

    async def undo_last(self, tenant_id: str) -> ActionResult:
        """Reverse the tenant's most recent undoable run.

        Args:
            tenant_id: Tenant requesting the undo

        Returns:
            Success when every captured change was reverted, otherwise a
            failure explaining why nothing (or not everything) was undone
        """
        async with self._lock:
            record = self._latest_record(tenant_id)
            refusal = self._refusal(record)
            if refusal is not None:
                UNDO_TOTAL.labels(outcome="refused").inc()
                logger.info("Undo refused", tenant=tenant_id, reason=refusal)
                return ActionResult.fail(refusal)
            # Claim before applying so a concurrent undo sees it consumed
            record.consumed = True
            reversals = list(record.reversals)

        reverted = 0
        errors: List[str] = []
        for reversal in reversed(reversals):
            try:
                await reversal.apply(self.store, tenant_id)
                reverted += 1
            except EngineError as e:
                errors.append(str(e))
            except Exception as e:
                logger.error(
                    "Reversal failed",
                    tenant=tenant_id,
                    run_id=record.run_id,
                    reversal=reversal.describe(),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                errors.append(f"{reversal.describe()}: {e}")

        if self._audit is not None:
            await self._audit.record(
                record.run_id,
                tenant_id,
                AuditEventType.RUN_UNDONE,
                reverted=reverted,
                errors=errors,
            )

        data = {"runId": record.run_id, "changesReverted": reverted}
        if errors:
            UNDO_TOTAL.labels(outcome="partial").inc()
            logger.warning("Undo incomplete", tenant=tenant_id, run_id=record.run_id, errors=errors)
            return ActionResult.fail(
                f"Undo incomplete: reverted {reverted} of {len(reversals)} change(s). " + "; ".join(errors),
                data=data,
            )

        UNDO_TOTAL.labels(outcome="undone").inc()
        logger.info("Undid last run", tenant=tenant_id, run_id=record.run_id, reverted=reverted)
        return ActionResult.ok(f"Undid {reverted} change(s) from the last run.", data=data)

    def _refusal(self, record: Optional[UndoRecord]) -> Optional[str]:
        if record is None:
            return NOTHING_TO_UNDO
        if record.consumed:
            return ALREADY_UNDONE
        if record.revoked_reason is not None:
            return f"Nothing to undo: {record.revoked_reason}."
        if record.is_expired(self._clock()):
            return WINDOW_EXPIRED
        return None

    def _latest_record(self, tenant_id: str) -> Optional[UndoRecord]:
        run_id = self._latest.get(tenant_id)
        return self._records.get(run_id) if run_id is not None else None

    def _prune(self, now: float) -> None:
        # Caller holds the lock; each tenant's latest record is always kept
        latest = set(self._latest.values())
        stale = [
            run_id
            for run_id, record in self._records.items()
            if run_id not in latest
            and (record.consumed or record.revoked_reason is not None or now >= record.valid_until + self.window_seconds)
        ]
        for run_id in stale:
            del self._records[run_id]

    def get_stats(self) -> Dict[str, int]:
        now = self._clock()
        latest = [self._records[run_id] for run_id in self._latest.values() if run_id in self._records]
        return {
            "tenants_tracked": len(self._latest),
            "tracked_runs": len(self._records),
            "undoable_runs": sum(1 for r in latest if r.is_available(now)),
        }
