"""Built-in action for creating deals."""

from datetime import datetime
from typing import Optional

import structlog
from pydantic import Field

from ...store import DEALS
from ...undo.reversal import DeleteRecord
from ...utils.clock import as_utc
from ..base import ActionContext, ActionDefinition, ActionParams, ActionResult, RiskTier
from ..registry import register_action
from ..resolve import check_links
from .common import DealStage, format_money

logger = structlog.get_logger(__name__)


class CreateDealParams(ActionParams):
    title: str = Field(min_length=1)
    value: Optional[float] = None
    stage: DealStage = "new_lead"
    contact_id: Optional[str] = None
    property_id: Optional[str] = None
    expected_close_date: Optional[datetime] = None
    notes: Optional[str] = None


@register_action
class CreateDealAction(ActionDefinition):
    """Adds a deal to the caller's pipeline."""

    name = "createDeal"
    description = (
        "Create a new deal in the pipeline. Requires a title. "
        "Optionally include value, stage (new_lead/qualified/showing/offer/negotiation/closed), "
        "contactId, propertyId, expectedCloseDate, and notes."
    )
    risk_tier = RiskTier.MUTATION
    Params = CreateDealParams

    async def execute(self, params: CreateDealParams, context: ActionContext) -> ActionResult:
        await check_links(
            self.store,
            context.tenant_id,
            {"contact_id": params.contact_id, "property_id": params.property_id},
        )

        deal = await self.store.insert(
            DEALS,
            {
                "tenant_id": context.tenant_id,
                "title": params.title,
                "value": params.value,
                "stage": params.stage,
                "contact_id": params.contact_id,
                "property_id": params.property_id,
                "expected_close_date": (
                    as_utc(params.expected_close_date) if params.expected_close_date else None
                ),
                "notes": params.notes,
                "is_favorite": False,
            },
        )

        logger.info("Created deal", deal_id=deal["id"], stage=deal["stage"], tenant=context.tenant_id)

        value_part = f" worth ${format_money(deal['value'])}" if deal["value"] else ""
        return ActionResult.ok(
            f'Created deal "{deal["title"]}"{value_part}.',
            data=deal,
            reversal=DeleteRecord(DEALS, deal["id"]),
        )
