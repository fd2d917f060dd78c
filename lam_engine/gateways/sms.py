"""Twilio SMS gateway."""

from typing import Optional

import aiohttp
import structlog

from ..config import EngineSettings
from .base import HttpGateway

logger = structlog.get_logger(__name__)


class SmsGateway(HttpGateway):
    """Sends SMS through the Twilio Messages REST API."""

    service_name = "SMS"

    def __init__(
        self,
        account_sid: Optional[str],
        auth_token: Optional[str],
        from_number: Optional[str],
        base_url: str = "https://api.twilio.com",
        timeout: float = 10,
    ) -> None:
        """Initialize the SMS gateway.

        Args:
            account_sid: Twilio account SID
            auth_token: Twilio auth token
            from_number: Sender number in E.164 format
            base_url: Twilio API root, overridable for tests
            timeout: Request timeout in seconds
        """
        super().__init__(base_url, timeout)
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> "SmsGateway":
        return cls(
            account_sid=settings.twilio_account_sid,
            auth_token=settings.twilio_auth_token,
            from_number=settings.twilio_from_number,
            base_url=settings.twilio_base_url,
            timeout=settings.gateway_timeout,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    async def send(self, to: str, body: str) -> str:
        """Send one SMS.

        Args:
            to: Recipient number
            body: Message text

        Returns:
            Provider message SID

        Raises:
            ExternalServiceError: If unconfigured or the provider call fails
        """
        self._require_configured()

        logger.info("Sending SMS", to=to, length=len(body))

        payload = await self._post(
            f"/2010-04-01/Accounts/{self.account_sid}/Messages.json",
            data={"To": to, "From": self.from_number, "Body": body},
            auth=aiohttp.BasicAuth(self.account_sid, self.auth_token),
        )

        sid = str(payload.get("sid", ""))
        logger.info("SMS accepted", to=to, sid=sid, status=payload.get("status"))
        return sid
