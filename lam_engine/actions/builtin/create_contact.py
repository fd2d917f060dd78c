"""Built-in action for creating contacts."""

from typing import List, Optional

import structlog
from pydantic import EmailStr, Field

from ...store import CONTACTS
from ...undo.reversal import DeleteRecord
from ..base import ActionContext, ActionDefinition, ActionParams, ActionResult, RiskTier
from ..registry import register_action
from .common import ContactType

logger = structlog.get_logger(__name__)


class CreateContactParams(ActionParams):
    name: str = Field(min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    source: Optional[str] = None
    type: ContactType = "lead"
    tags: Optional[List[str]] = None
    notes: Optional[str] = None


@register_action
class CreateContactAction(ActionDefinition):
    """Adds a contact to the caller's CRM."""

    name = "createContact"
    description = (
        "Create a new contact in the CRM. Requires a name. "
        "Optionally include email, phone, source, type (lead/client/agent/vendor), tags, and notes."
    )
    risk_tier = RiskTier.MUTATION
    Params = CreateContactParams

    async def execute(self, params: CreateContactParams, context: ActionContext) -> ActionResult:
        contact = await self.store.insert(
            CONTACTS,
            {
                "tenant_id": context.tenant_id,
                "name": params.name,
                "email": params.email,
                "phone": params.phone,
                "source": params.source,
                "type": params.type,
                "tags": params.tags or [],
                "notes": params.notes,
                "is_favorite": False,
            },
        )

        logger.info("Created contact", contact_id=contact["id"], tenant=context.tenant_id)

        return ActionResult.ok(
            f'Created contact "{contact["name"]}".',
            data=contact,
            reversal=DeleteRecord(CONTACTS, contact["id"]),
        )
