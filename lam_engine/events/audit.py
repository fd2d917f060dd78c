"""Append-only audit trail of run activity."""

import asyncio
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List

import structlog

from ..utils.clock import utcnow

logger = structlog.get_logger(__name__)


class AuditEventType(Enum):
    """Kinds of audit events."""

    RUN_CREATED = "RUN_CREATED"
    ACTION_SUCCEEDED = "ACTION_SUCCEEDED"
    ACTION_FAILED = "ACTION_FAILED"
    ACTION_HELD = "ACTION_HELD"
    RUN_APPROVED = "RUN_APPROVED"
    RUN_DISCARDED = "RUN_DISCARDED"
    RUN_UNDONE = "RUN_UNDONE"


@dataclass
class AuditEvent:
    """One entry in a run's audit trail."""

    run_id: str
    tenant_id: str
    event_type: AuditEventType
    timestamp: datetime
    detail: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "runId": self.run_id,
            "type": self.event_type.value,
            "timestamp": self.timestamp.isoformat(),
            "detail": self.detail,
        }


class AuditTrail:
    """Keeps the events of the most recent runs in memory."""

    def __init__(self, max_runs: int = 1000) -> None:
        """Initialize the audit trail.

        Args:
            max_runs: Runs retained before the oldest trail is dropped
        """
        self._events: "OrderedDict[str, List[AuditEvent]]" = OrderedDict()
        self._max_runs = max_runs
        self._lock = asyncio.Lock()

        logger.info("Initialized AuditTrail", max_runs=max_runs)

    async def record(
        self,
        run_id: str,
        tenant_id: str,
        event_type: AuditEventType,
        **detail: Any,
    ) -> AuditEvent:
        """Append an event to a run's trail."""
        event = AuditEvent(
            run_id=run_id,
            tenant_id=tenant_id,
            event_type=event_type,
            timestamp=utcnow(),
            detail=detail,
        )

        async with self._lock:
            trail = self._events.get(run_id)
            if trail is None:
                trail = self._events[run_id] = []
                while len(self._events) > self._max_runs:
                    self._events.popitem(last=False)
            trail.append(event)

        logger.debug("Audit event", run_id=run_id, tenant=tenant_id, event_type=event_type.value, **detail)
        return event

    async def events_for(self, run_id: str) -> List[AuditEvent]:
        """Return a copy of a run's events in order."""
        async with self._lock:
            return list(self._events.get(run_id, []))

    def get_stats(self) -> Dict[str, int]:
        return {
            "tracked_runs": len(self._events),
            "events": sum(len(trail) for trail in self._events.values()),
        }
