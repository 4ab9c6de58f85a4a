"""
API Client

Thin wrapper over httpx.AsyncClient for the finance API.

DESIGN DECISION: The network client is an explicit dependency handed to the
executors, never a module-level global. Tests substitute it by injecting an
httpx.MockTransport.

Every request carries:
- Content-Type: application/json
- Accept: application/json
- The session cookies held by the client's cookie jar

No retries and, unless configured, no timeout: a single attempt per call.
Transport failures propagate as httpx.TransportError for the caller to
normalize.
"""

from typing import Any, Optional

import httpx
import structlog

from finance_sync.config.settings import ApiSettings
from finance_sync.models.results import Endpoint


DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


class ApiClient:
    """Async HTTP client bound to one API base URL."""

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = None,
        verify: bool = True,
        cookies: Optional[dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._logger = structlog.get_logger(__name__)
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=DEFAULT_HEADERS,
            cookies=cookies,
            timeout=timeout,
            verify=verify,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: ApiSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ApiClient":
        return cls(
            base_url=settings.base_url,
            timeout=settings.timeout_seconds,
            verify=settings.verify_tls,
            transport=transport,
        )

    @property
    def cookies(self) -> httpx.Cookies:
        """Session cookies sent with every request."""
        return self._client.cookies

    async def send(
        self,
        endpoint: Endpoint,
        body: Optional[Any] = None,
    ) -> httpx.Response:
        """
        Issue one request.

        Args:
            endpoint: Resolved request target
            body: JSON body for POST/PUT, None otherwise

        Returns:
            The raw response, whatever its status

        Raises:
            httpx.TransportError: If no response was received
        """
        self._logger.debug(
            "api_request",
            method=endpoint.method,
            path=endpoint.path,
        )
        response = await self._client.request(
            endpoint.method,
            endpoint.path,
            json=body,
        )
        self._logger.debug(
            "api_response",
            method=endpoint.method,
            path=endpoint.path,
            status=response.status_code,
        )
        return response

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
