"""Built-in action for updating contacts."""

from typing import List, Optional

import structlog
from pydantic import BaseModel, ConfigDict, EmailStr, model_validator
from pydantic.alias_generators import to_camel

from ...undo.reversal import RestoreFields
from ..base import ActionContext, ActionDefinition, ActionParams, ActionResult, RiskTier
from ..registry import register_action
from ..resolve import CONTACT, resolve
from .common import ContactType

logger = structlog.get_logger(__name__)


class ContactPatch(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    source: Optional[str] = None
    type: Optional[ContactType] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = None
    is_favorite: Optional[bool] = None

    @model_validator(mode="after")
    def check_not_empty(self) -> "ContactPatch":
        if not self.model_dump(exclude_none=True):
            raise ValueError("patch must change at least one field")
        return self


class UpdateContactParams(ActionParams):
    id: Optional[str] = None
    name: Optional[str] = None
    patch: ContactPatch

    @model_validator(mode="after")
    def check_target(self) -> "UpdateContactParams":
        if not self.id and not self.name:
            raise ValueError("Either id or name is required to identify the contact")
        return self


@register_action
class UpdateContactAction(ActionDefinition):
    """Applies a partial update to one contact."""

    name = "updateContact"
    description = (
        "Update an existing contact. Identify the contact by id or name. "
        "Provide a patch object with the fields to change: name, email, phone, source, type, tags, notes, isFavorite."
    )
    risk_tier = RiskTier.MUTATION
    Params = UpdateContactParams

    async def execute(self, params: UpdateContactParams, context: ActionContext) -> ActionResult:
        before = await resolve(
            self.store,
            CONTACT,
            context.tenant_id,
            record_id=params.id,
            search=params.name,
            policy=self.match_policy,
        )

        changes = params.patch.model_dump(exclude_none=True)
        contact = await self.store.update(CONTACT.collection, before["id"], changes)

        logger.info(
            "Updated contact",
            contact_id=contact["id"],
            fields=list(changes),
            tenant=context.tenant_id,
        )

        fields = ", ".join(to_camel(key) for key in changes)
        return ActionResult.ok(
            f"Updated {contact['name']} ({fields}).",
            data=contact,
            reversal=RestoreFields.from_snapshot(CONTACT.collection, before, changes),
        )
