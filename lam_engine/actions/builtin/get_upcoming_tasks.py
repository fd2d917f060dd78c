"""Built-in action listing open tasks that are due soon."""

from datetime import timedelta

from pydantic import Field

from ...store import TASKS
from ...utils.clock import as_utc, format_date
from ..base import ActionContext, ActionDefinition, ActionParams, ActionResult, RiskTier
from ..registry import register_action


class GetUpcomingTasksParams(ActionParams):
    days: int = Field(7, ge=1, le=90)
    limit: int = Field(10, ge=1, le=50)


@register_action
class GetUpcomingTasksAction(ActionDefinition):
    """Open tasks due before ``now + days``, overdue ones included."""

    name = "getUpcomingTasks"
    description = (
        "Get upcoming incomplete tasks for the next N days (default 7). "
        "Returns tasks sorted by due date."
    )
    risk_tier = RiskTier.READ_ONLY
    Params = GetUpcomingTasksParams

    async def execute(self, params: GetUpcomingTasksParams, context: ActionContext) -> ActionResult:
        cutoff = as_utc(self.now()) + timedelta(days=params.days)

        open_tasks = await self.store.find(
            TASKS,
            context.tenant_id,
            where={"completed": False},
            order_by="due_date",
            descending=False,
        )
        tasks = [t for t in open_tasks if t.get("due_date") and as_utc(t["due_date"]) <= cutoff]
        tasks = tasks[: params.limit]

        if not tasks:
            return ActionResult.ok(f"No upcoming tasks in the next {params.days} days.", data=[])

        lines = [f"• {t['title']} ({format_date(t['due_date'])}, {t['priority']})" for t in tasks]
        return ActionResult.ok(f"{len(tasks)} upcoming task(s):\n" + "\n".join(lines), data=tasks)
