"""Built-in action for searching contacts."""

from typing import Optional

from pydantic import Field

from ...store import CONTACTS
from ..base import ActionContext, ActionDefinition, ActionParams, ActionResult, RiskTier
from ..registry import register_action
from .common import ContactType


class SearchContactsParams(ActionParams):
    query: str = Field(min_length=1)
    type: Optional[ContactType] = None
    source: Optional[str] = None
    limit: int = Field(10, ge=1, le=50)


@register_action
class SearchContactsAction(ActionDefinition):
    name = "searchContacts"
    description = (
        "Search contacts by name, email, or phone number. "
        "Optionally filter by type (lead, client, agent, vendor) or source."
    )
    risk_tier = RiskTier.READ_ONLY
    Params = SearchContactsParams

    async def execute(self, params: SearchContactsParams, context: ActionContext) -> ActionResult:
        where = {}
        if params.type:
            where["type"] = params.type
        if params.source:
            where["source"] = params.source

        contacts = await self.store.find(
            CONTACTS,
            context.tenant_id,
            where=where,
            contains={"name": params.query, "email": params.query, "phone": params.query},
            limit=params.limit,
        )

        if not contacts:
            return ActionResult.ok(f'No contacts found for "{params.query}".', data=[])

        summary = ", ".join(
            f"{c['name']} ({c['email']})" if c.get("email") else c["name"] for c in contacts
        )
        return ActionResult.ok(f"Found {len(contacts)} contact(s): {summary}.", data=contacts)
