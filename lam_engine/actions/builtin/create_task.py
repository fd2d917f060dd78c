"""Built-in action for creating tasks."""

from datetime import datetime
from typing import Optional

import structlog
from pydantic import Field

from ...store import TASKS
from ...undo.reversal import DeleteRecord
from ...utils.clock import as_utc, format_date
from ..base import ActionContext, ActionDefinition, ActionParams, ActionResult, RiskTier
from ..registry import register_action
from ..resolve import check_links
from .common import Priority

logger = structlog.get_logger(__name__)


class CreateTaskParams(ActionParams):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: Priority = "medium"
    contact_id: Optional[str] = None
    deal_id: Optional[str] = None
    property_id: Optional[str] = None


@register_action
class CreateTaskAction(ActionDefinition):
    name = "createTask"
    description = (
        "Create a new task. Requires a title. Optionally include description, dueDate, "
        "priority (low/medium/high), contactId, dealId, or propertyId."
    )
    risk_tier = RiskTier.MUTATION
    Params = CreateTaskParams

    async def execute(self, params: CreateTaskParams, context: ActionContext) -> ActionResult:
        await check_links(
            self.store,
            context.tenant_id,
            {"contact_id": params.contact_id, "deal_id": params.deal_id, "property_id": params.property_id},
        )
        due_date = as_utc(params.due_date) if params.due_date else None

        task = await self.store.insert(
            TASKS,
            {
                "tenant_id": context.tenant_id,
                "title": params.title,
                "description": params.description,
                "due_date": due_date,
                "priority": params.priority,
                "contact_id": params.contact_id,
                "deal_id": params.deal_id,
                "property_id": params.property_id,
                "completed": False,
            },
        )

        logger.info("Created task", task_id=task["id"], tenant=context.tenant_id)

        due_part = f" due {format_date(due_date)}" if due_date else ""
        return ActionResult.ok(
            f'Created task "{task["title"]}"{due_part}.',
            data=task,
            reversal=DeleteRecord(TASKS, task["id"]),
        )
