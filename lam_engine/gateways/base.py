"""Shared HTTP plumbing for outbound communication gateways."""

from typing import Any, Dict, Optional

import aiohttp
import structlog

from ..actions.errors import ExternalServiceError

logger = structlog.get_logger(__name__)

USER_AGENT = "lam-engine/0.1.0"


class HttpGateway:
    """Lazily opened aiohttp session plus uniform error handling."""

    service_name = "HTTP"

    def __init__(self, base_url: str, timeout: float = 10) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def is_configured(self) -> bool:
        return True

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            self._session = aiohttp.ClientSession(timeout=timeout, headers={"User-Agent": USER_AGENT})
        return self._session

    def _require_configured(self) -> None:
        if not self.is_configured:
            raise ExternalServiceError(f"{self.service_name} gateway is not configured")

    async def _post(self, path: str, **kwargs: Any) -> Dict[str, Any]:
        """POST to the provider and return its JSON body.

        Raises:
            ExternalServiceError: On transport errors or non-2xx responses
        """
        url = f"{self.base_url}{path}"
        session = await self._get_session()

        try:
            async with session.post(url, **kwargs) as response:
                if response.status < 200 or response.status >= 300:
                    body = await response.text()
                    logger.warning(
                        "Gateway returned error status",
                        service=self.service_name,
                        url=url,
                        status=response.status,
                        response=body[:200],
                    )
                    raise ExternalServiceError(
                        f"{self.service_name} request failed with HTTP {response.status}",
                        status=response.status,
                    )
                return await response.json(content_type=None)

        except aiohttp.ClientError as e:
            logger.error("HTTP error calling gateway", service=self.service_name, url=url, error=str(e))
            raise ExternalServiceError(f"{self.service_name} request failed: {e}") from e

    async def close(self) -> None:
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
