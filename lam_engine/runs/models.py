"""Run data model."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from ..actions.base import ActionCall, ActionResult, RiskTier
from ..utils.clock import utcnow


class RunStatus(Enum):
    """Lifecycle of a run."""

    PENDING_APPROVAL = "pending_approval"
    EXECUTING = "executing"
    COMPLETED = "completed"
    PARTIALLY_FAILED = "partially_failed"


class ActionState(Enum):
    """Outcome of one action inside a run."""

    PENDING_APPROVAL = "pending_approval"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    DISCARDED = "discarded"


@dataclass
class RunAction:
    """One proposed call and what happened to it."""

    call: ActionCall
    risk_tier: Optional[RiskTier]
    state: ActionState = ActionState.EXECUTING
    result: Optional[ActionResult] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "name": self.call.name,
            "riskTier": int(self.risk_tier) if self.risk_tier is not None else None,
            "state": self.state.value,
        }
        if self.result is not None:
            payload["result"] = self.result.to_dict()
        return payload


@dataclass
class Run:
    """The actions proposed in one assistant turn."""

    tenant_id: str
    actions: List[RunAction] = field(default_factory=list)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    status: RunStatus = RunStatus.EXECUTING
    created_at: datetime = field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    undone: bool = False

    @property
    def actions_succeeded(self) -> int:
        return sum(1 for a in self.actions if a.state is ActionState.SUCCEEDED)

    @property
    def actions_failed(self) -> int:
        return sum(1 for a in self.actions if a.state is ActionState.FAILED)

    @property
    def actions_pending(self) -> int:
        return sum(1 for a in self.actions if a.state is ActionState.PENDING_APPROVAL)

    @property
    def is_settled(self) -> bool:
        return self.status in (RunStatus.COMPLETED, RunStatus.PARTIALLY_FAILED)

    @property
    def outcome(self) -> str:
        """Caller-facing summary: awaiting_approval, succeeded, partial or failed."""
        if self.status is RunStatus.PENDING_APPROVAL:
            return "awaiting_approval"
        if self.status is RunStatus.EXECUTING:
            return "executing"
        if self.actions_failed == 0:
            return "succeeded"
        if self.actions_succeeded == 0:
            return "failed"
        return "partial"

    def settle(self) -> RunStatus:
        """Set the final status from the per-action outcomes."""
        if self.actions_pending:
            self.status = RunStatus.PENDING_APPROVAL
            return self.status

        self.status = RunStatus.PARTIALLY_FAILED if self.actions_failed else RunStatus.COMPLETED
        self.completed_at = utcnow()
        return self.status

    def to_dict(self, include_actions: bool = True) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "status": self.status.value,
            "outcome": self.outcome,
            "actionsSucceeded": self.actions_succeeded,
            "actionsFailed": self.actions_failed,
            "actionsPending": self.actions_pending,
            "createdAt": self.created_at.isoformat(),
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "undone": self.undone,
        }
        if include_actions:
            payload["actions"] = [a.to_dict() for a in self.actions]
        return payload
