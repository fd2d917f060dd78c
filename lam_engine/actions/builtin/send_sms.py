"""Built-in action for sending SMS messages."""

from typing import Optional

import structlog
from pydantic import Field, model_validator

from ..base import ActionContext, ActionDefinition, ActionParams, ActionResult, RiskTier
from ..errors import ExternalServiceError
from ..registry import register_action
from ..resolve import CONTACT, get_owned
from .common import E164_PATTERN, record_outbound_message

logger = structlog.get_logger(__name__)


class SendSmsParams(ActionParams):
    contact_id: Optional[str] = None
    phone_number: Optional[str] = Field(None, pattern=E164_PATTERN)
    message: str = Field(min_length=1, max_length=1600)

    @model_validator(mode="after")
    def check_recipient(self) -> "SendSmsParams":
        if not self.contact_id and not self.phone_number:
            raise ValueError("Either contactId or phoneNumber is required")
        return self


@register_action
class SendSmsAction(ActionDefinition):
    """Texts a contact or a phone number. Runs only after approval."""

    name = "sendSMS"
    description = (
        "Send an SMS message. Provide either a contactId (phone number will be looked up) "
        "or a direct phoneNumber in E.164 format. Message must be under 1600 characters. "
        "This is an external action that requires approval."
    )
    risk_tier = RiskTier.EXTERNAL
    Params = SendSmsParams

    async def execute(self, params: SendSmsParams, context: ActionContext) -> ActionResult:
        gateway = self.services.sms
        if gateway is None:
            raise ExternalServiceError("SMS gateway is not configured")

        to = params.phone_number
        recipient = params.phone_number
        contact_id = None

        if params.contact_id:
            contact = await get_owned(self.store, CONTACT, params.contact_id, context.tenant_id)
            if not contact.get("phone"):
                return ActionResult.fail(f"{contact['name']} doesn't have a phone number on file.")
            to = contact["phone"]
            recipient = contact["name"]
            contact_id = contact["id"]

        sid = await gateway.send(to, params.message)

        warning = await record_outbound_message(
            self.store,
            {
                "tenant_id": context.tenant_id,
                "channel": "sms",
                "direction": "outbound",
                "from": gateway.from_number,
                "to": to,
                "body": params.message,
                "contact_id": contact_id,
                "provider_id": sid,
                "status": "sent",
                "run_id": context.run_id,
            },
        )

        logger.info("Sent SMS", sid=sid, contact_id=contact_id, tenant=context.tenant_id, run_id=context.run_id)

        data = {"sid": sid, "to": to}
        if warning:
            data["warning"] = warning
        return ActionResult.ok(f"SMS sent to {recipient}.", data=data)
