"""Built-in action for sending email."""

from typing import Optional

import structlog
from pydantic import EmailStr, Field, model_validator

from ..base import ActionContext, ActionDefinition, ActionParams, ActionResult, RiskTier
from ..errors import ExternalServiceError
from ..registry import register_action
from ..resolve import CONTACT, resolve
from .common import record_outbound_message

logger = structlog.get_logger(__name__)


class SendEmailParams(ActionParams):
    contact_id: Optional[str] = None
    contact_name: Optional[str] = None
    to: Optional[EmailStr] = None
    subject: str = Field(min_length=1, max_length=998)
    body: str = Field(min_length=1)

    @model_validator(mode="after")
    def check_recipient(self) -> "SendEmailParams":
        if not (self.contact_id or self.contact_name or self.to):
            raise ValueError("One of contactId, contactName or to is required")
        return self


@register_action
class SendEmailAction(ActionDefinition):
    """Emails a contact or an address. Runs only after approval."""

    name = "sendEmail"
    description = (
        "Send an email. Provide a contactId or contactName (email address will be looked up) "
        "or a direct address in to, plus a subject and body. "
        "This is an external action that requires approval."
    )
    risk_tier = RiskTier.EXTERNAL
    Params = SendEmailParams

    async def execute(self, params: SendEmailParams, context: ActionContext) -> ActionResult:
        gateway = self.services.email
        if gateway is None:
            raise ExternalServiceError("Email gateway is not configured")

        to = params.to
        recipient = params.to
        contact_id = None

        if params.contact_id or params.contact_name:
            contact = await resolve(
                self.store,
                CONTACT,
                context.tenant_id,
                record_id=params.contact_id,
                search=params.contact_name,
                policy=self.match_policy,
            )
            if not contact.get("email"):
                return ActionResult.fail(f"{contact['name']} doesn't have an email address on file.")
            to = contact["email"]
            recipient = contact["name"]
            contact_id = contact["id"]

        message_id = await gateway.send(to, params.subject, params.body)

        warning = await record_outbound_message(
            self.store,
            {
                "tenant_id": context.tenant_id,
                "channel": "email",
                "direction": "outbound",
                "from": gateway.from_address,
                "to": to,
                "subject": params.subject,
                "body": params.body,
                "contact_id": contact_id,
                "provider_id": message_id,
                "status": "sent",
                "run_id": context.run_id,
            },
        )

        logger.info("Sent email", message_id=message_id, contact_id=contact_id, tenant=context.tenant_id)

        data = {"id": message_id, "to": to}
        if warning:
            data["warning"] = warning
        return ActionResult.ok(f"Email sent to {recipient}.", data=data)
