"""Built-in action for searching deals."""

from typing import Optional

from pydantic import Field

from ...store import DEALS
from ..base import ActionContext, ActionDefinition, ActionParams, ActionResult, RiskTier
from ..registry import register_action
from .common import DealStage, format_money


class SearchDealsParams(ActionParams):
    query: str = Field(min_length=1)
    stage: Optional[DealStage] = None
    limit: int = Field(10, ge=1, le=50)


@register_action
class SearchDealsAction(ActionDefinition):
    name = "searchDeals"
    description = (
        "Search deals by title. Optionally filter by stage "
        "(new_lead/qualified/showing/offer/negotiation/closed)."
    )
    risk_tier = RiskTier.READ_ONLY
    Params = SearchDealsParams

    async def execute(self, params: SearchDealsParams, context: ActionContext) -> ActionResult:
        deals = await self.store.find(
            DEALS,
            context.tenant_id,
            where={"stage": params.stage} if params.stage else None,
            contains={"title": params.query},
            limit=params.limit,
        )

        if not deals:
            return ActionResult.ok(f'No deals found for "{params.query}".', data=[])

        summary = ", ".join(_describe(d) for d in deals)
        return ActionResult.ok(f"Found {len(deals)} deal(s): {summary}.", data=deals)


def _describe(deal: dict) -> str:
    value = f" (${format_money(deal['value'])})" if deal.get("value") else ""
    return f"{deal['title']}{value}: {deal['stage']}"
