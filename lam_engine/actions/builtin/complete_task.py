"""Built-in action for completing tasks."""

from typing import Optional

import structlog
from pydantic import model_validator

from ...undo.reversal import RestoreFields
from ..base import ActionContext, ActionDefinition, ActionParams, ActionResult, RiskTier
from ..errors import NotFoundError
from ..registry import register_action
from ..resolve import TASK, find_by_name, get_owned

logger = structlog.get_logger(__name__)


class CompleteTaskParams(ActionParams):
    id: Optional[str] = None
    title: Optional[str] = None

    @model_validator(mode="after")
    def check_target(self) -> "CompleteTaskParams":
        if not self.id and not self.title:
            raise ValueError("Either id or title is required to identify the task")
        return self


@register_action
class CompleteTaskAction(ActionDefinition):
    """Marks a task as done.

    Completing an already completed task succeeds without touching the
    record. Title lookups prefer open tasks; a title that only matches
    completed tasks reports the task as already done.
    """

    name = "completeTask"
    description = "Mark a task as complete. Identify the task by id or title."
    risk_tier = RiskTier.MUTATION
    Params = CompleteTaskParams

    async def execute(self, params: CompleteTaskParams, context: ActionContext) -> ActionResult:
        task_id = params.id
        if not task_id:
            task_id = await self._find_by_title(params.title, context.tenant_id)

        task = await get_owned(self.store, TASK, task_id, context.tenant_id)

        if task.get("completed"):
            return ActionResult.ok(f'"{task["title"]}" was already completed.', data=task)

        updated = await self.store.update(TASK.collection, task["id"], {"completed": True})

        logger.info("Completed task", task_id=task["id"], tenant=context.tenant_id)

        return ActionResult.ok(
            f'Completed task "{updated["title"]}".',
            data=updated,
            reversal=RestoreFields.from_snapshot(TASK.collection, task, ["completed"]),
        )

    async def _find_by_title(self, title: str, tenant_id: str) -> str:
        try:
            found = await find_by_name(
                self.store,
                TASK,
                tenant_id,
                title,
                where={"completed": False},
                qualifier="open",
                policy=self.match_policy,
            )
        except NotFoundError:
            done = await self.store.find(
                TASK.collection,
                tenant_id,
                where={"completed": True},
                contains={"title": title},
                limit=1,
            )
            if not done:
                raise
            found = done[0]
        return found["id"]
