"""Built-in action summarizing the deal pipeline."""

from typing import Any, Dict

from ...store import DEALS
from ..base import ActionContext, ActionDefinition, ActionResult, NoParams, RiskTier
from ..registry import register_action
from .common import STAGE_LABELS, format_money


@register_action
class GetPipelineSummaryAction(ActionDefinition):
    """Counts deals and sums their value per stage."""

    name = "getPipelineSummary"
    description = (
        "Get a summary of the user's deal pipeline: total deals, value by stage, "
        "and overall pipeline value."
    )
    risk_tier = RiskTier.READ_ONLY
    Params = NoParams

    async def execute(self, params: NoParams, context: ActionContext) -> ActionResult:
        deals = await self.store.find(DEALS, context.tenant_id, order_by="created_at", descending=False)

        if not deals:
            return ActionResult.ok(
                "Your pipeline is empty, no deals yet.",
                data={"totalDeals": 0, "totalValue": 0, "byStage": {}},
            )

        by_stage: Dict[str, Dict[str, Any]] = {}
        total_value = 0.0
        for deal in deals:
            value = deal.get("value") or 0
            entry = by_stage.setdefault(deal["stage"], {"count": 0, "value": 0.0})
            entry["count"] += 1
            entry["value"] += value
            total_value += value

        # Stage order follows the pipeline, not first appearance
        ordered = {stage: by_stage[stage] for stage in STAGE_LABELS if stage in by_stage}
        ordered.update({stage: info for stage, info in by_stage.items() if stage not in ordered})

        lines = [
            f"• {STAGE_LABELS.get(stage, stage)}: {info['count']} deal(s), ${format_money(info['value'])}"
            for stage, info in ordered.items()
        ]
        message = f"Pipeline: {len(deals)} deal(s), ${format_money(total_value)} total.\n" + "\n".join(lines)

        return ActionResult.ok(
            message,
            data={"totalDeals": len(deals), "totalValue": total_value, "byStage": ordered},
        )
