"""Vocabularies and helpers shared by the built-in actions."""

from typing import Any, Dict, Literal, Optional

import structlog

from ...store import MESSAGES, Repository

logger = structlog.get_logger(__name__)

ContactType = Literal["lead", "client", "agent", "vendor"]
DealStage = Literal["new_lead", "qualified", "showing", "offer", "negotiation", "closed"]
Priority = Literal["low", "medium", "high"]

STAGE_LABELS = {
    "new_lead": "New Lead",
    "qualified": "Qualified",
    "showing": "Showing",
    "offer": "Offer",
    "negotiation": "Negotiation",
    "closed": "Closed",
}

E164_PATTERN = r"^\+[1-9]\d{1,14}$"

HISTORY_NOT_SAVED = "The message was sent but could not be saved to the message history."


def format_money(value: Optional[float]) -> str:
    """Render an amount the way the CRM shows it: 450,000 or 1,234.50."""
    amount = float(value or 0)
    if amount.is_integer():
        return f"{int(amount):,}"
    return f"{amount:,.2f}"


async def record_outbound_message(store: Repository, message: Dict[str, Any]) -> Optional[str]:
    """Save a sent message to the tenant's history.

    The provider has already accepted the message at this point, so a storage
    failure must not turn the action into a failure.

    Returns:
        A warning for the caller when the record could not be saved, else None
    """
    try:
        await store.insert(MESSAGES, message)
    except Exception as e:
        logger.error(
            "Failed to record outbound message",
            channel=message.get("channel"),
            provider_id=message.get("provider_id"),
            tenant=message.get("tenant_id"),
            error=str(e),
            exc_info=True,
        )
        return HISTORY_NOT_SAVED
    return None
