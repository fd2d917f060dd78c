"""Built-in action for scheduling follow-ups with a contact."""

from datetime import timedelta
from typing import Optional

import structlog
from pydantic import Field, model_validator

from ...store import TASKS
from ...undo.reversal import DeleteRecord
from ...utils.clock import as_utc, format_date
from ..base import ActionContext, ActionDefinition, ActionParams, ActionResult, RiskTier
from ..registry import register_action
from ..resolve import CONTACT, resolve
from .common import Priority

logger = structlog.get_logger(__name__)


class ScheduleFollowUpParams(ActionParams):
    contact_id: Optional[str] = None
    contact_name: Optional[str] = None
    note: Optional[str] = None
    days_from_now: int = Field(1, ge=1, le=365)
    priority: Priority = "medium"

    @model_validator(mode="after")
    def check_target(self) -> "ScheduleFollowUpParams":
        if not self.contact_id and not self.contact_name:
            raise ValueError("Either contactId or contactName is required")
        return self


@register_action
class ScheduleFollowUpAction(ActionDefinition):
    """Creates a "Follow up with <name>" task linked to a contact."""

    name = "scheduleFollowUp"
    description = (
        "Schedule a follow-up task for a contact. Provide contactId or contactName, "
        "an optional note, daysFromNow (default 1), and priority (default medium)."
    )
    risk_tier = RiskTier.MUTATION
    Params = ScheduleFollowUpParams

    async def execute(self, params: ScheduleFollowUpParams, context: ActionContext) -> ActionResult:
        contact = await resolve(
            self.store,
            CONTACT,
            context.tenant_id,
            record_id=params.contact_id,
            search=params.contact_name,
            policy=self.match_policy,
        )

        due_date = as_utc(self.now()) + timedelta(days=params.days_from_now)
        task = await self.store.insert(
            TASKS,
            {
                "tenant_id": context.tenant_id,
                "title": f"Follow up with {contact['name']}",
                "description": params.note,
                "due_date": due_date,
                "priority": params.priority,
                "contact_id": contact["id"],
                "deal_id": None,
                "property_id": None,
                "completed": False,
            },
        )

        logger.info(
            "Scheduled follow-up",
            task_id=task["id"],
            contact_id=contact["id"],
            tenant=context.tenant_id,
        )

        return ActionResult.ok(
            f"Scheduled follow-up with {contact['name']} for {format_date(due_date)}.",
            data=task,
            reversal=DeleteRecord(TASKS, task["id"]),
        )
