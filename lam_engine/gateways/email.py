"""Resend email gateway."""

from typing import Optional

import structlog

from ..config import EngineSettings
from .base import HttpGateway

logger = structlog.get_logger(__name__)


class EmailGateway(HttpGateway):
    """Sends plain-text email through the Resend REST API."""

    service_name = "Email"

    def __init__(
        self,
        api_key: Optional[str],
        from_address: Optional[str],
        base_url: str = "https://api.resend.com",
        timeout: float = 10,
    ) -> None:
        super().__init__(base_url, timeout)
        self.api_key = api_key
        self.from_address = from_address

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> "EmailGateway":
        return cls(
            api_key=settings.resend_api_key,
            from_address=settings.email_from_address,
            base_url=settings.resend_base_url,
            timeout=settings.gateway_timeout,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.from_address)

    async def send(self, to: str, subject: str, body: str) -> str:
        """Send one email and return the provider message id.

        Raises:
            ExternalServiceError: If unconfigured or the provider call fails
        """
        self._require_configured()

        logger.info("Sending email", to=to, subject=subject)

        payload = await self._post(
            "/emails",
            json={"from": self.from_address, "to": [to], "subject": subject, "text": body},
            headers={"Authorization": f"Bearer {self.api_key}"},
        )

        message_id = str(payload.get("id", ""))
        logger.info("Email accepted", to=to, message_id=message_id)
        return message_id
