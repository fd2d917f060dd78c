"""Built-in action for updating deals, including stage moves."""

from datetime import datetime
from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

from ...undo.reversal import RestoreFields
from ...utils.clock import as_utc
from ..base import ActionContext, ActionDefinition, ActionParams, ActionResult, RiskTier
from ..registry import register_action
from ..resolve import DEAL, check_links, resolve
from .common import DealStage

logger = structlog.get_logger(__name__)


class DealPatch(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    title: Optional[str] = None
    value: Optional[float] = None
    stage: Optional[DealStage] = None
    contact_id: Optional[str] = None
    property_id: Optional[str] = None
    expected_close_date: Optional[datetime] = None
    notes: Optional[str] = None
    is_favorite: Optional[bool] = None

    @model_validator(mode="after")
    def check_not_empty(self) -> "DealPatch":
        if not self.model_dump(exclude_none=True):
            raise ValueError("patch must change at least one field")
        return self


class UpdateDealParams(ActionParams):
    id: Optional[str] = None
    title: Optional[str] = None
    patch: DealPatch

    @model_validator(mode="after")
    def check_target(self) -> "UpdateDealParams":
        if not self.id and not self.title:
            raise ValueError("Either id or title is required to identify the deal")
        return self


@register_action
class UpdateDealAction(ActionDefinition):
    name = "updateDeal"
    description = (
        "Update an existing deal. Identify the deal by id or title. "
        "Provide a patch object with fields to change: title, value, stage, contactId, propertyId, "
        "expectedCloseDate, notes, isFavorite. Use this to move a deal to a different stage as well."
    )
    risk_tier = RiskTier.MUTATION
    Params = UpdateDealParams

    async def execute(self, params: UpdateDealParams, context: ActionContext) -> ActionResult:
        before = await resolve(
            self.store,
            DEAL,
            context.tenant_id,
            record_id=params.id,
            search=params.title,
            policy=self.match_policy,
        )

        changes = params.patch.model_dump(exclude_none=True)
        await check_links(
            self.store,
            context.tenant_id,
            {key: changes.get(key) for key in ("contact_id", "property_id")},
        )
        if "expected_close_date" in changes:
            changes["expected_close_date"] = as_utc(changes["expected_close_date"])

        deal = await self.store.update(DEAL.collection, before["id"], changes)

        if "stage" in changes and changes["stage"] != before.get("stage"):
            logger.info(
                "Moved deal",
                deal_id=deal["id"],
                from_stage=before.get("stage"),
                to_stage=changes["stage"],
                tenant=context.tenant_id,
            )

        fields = ", ".join(to_camel(key) for key in changes)
        return ActionResult.ok(
            f'Updated deal "{deal["title"]}" ({fields}).',
            data=deal,
            reversal=RestoreFields.from_snapshot(DEAL.collection, before, changes),
        )
