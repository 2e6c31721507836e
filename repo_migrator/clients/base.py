"""Shared async HTTP plumbing for the hosting provider clients."""

from typing import Any

import httpx
import structlog

from ..core.exceptions import ApiError
from ..core.retry import retrying
from ..migration.classifier import is_transient

logger = structlog.get_logger()


class ApiClient:
    """Thin wrapper over ``httpx.AsyncClient`` that raises ``ApiError`` on failure."""

    service_name = "API"

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str],
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_delay: float = 1.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.retry_delay = retry_delay
        self.logger = logger.bind(component=self.__class__.__name__.lower())
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
            follow_redirects=True,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _error_for(self, response: httpx.Response) -> ApiError:
        """Build the error raised for an unsuccessful response."""
        return ApiError(
            f"{self.service_name} API error: {response.status_code} "
            f"{response.reason_phrase} - {response.text}",
            status_code=response.status_code,
            response_text=response.text,
        )

    async def _send(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        response = await self._client.request(method, url, json=json, params=params)
        if response.is_error:
            raise self._error_for(response)
        return response

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        retry: bool = False,
    ) -> httpx.Response:
        """Send a request and return the successful response.

        Args:
            method: HTTP method
            url: Path relative to the base URL, or an absolute URL
            json: JSON body
            params: Query parameters
            retry: Retry transient failures up to the default attempt bound

        Raises:
            ApiError: If the provider answered with a 4xx/5xx status
            httpx.TransportError: If the request could not be delivered
        """
        if not retry:
            return await self._send(method, url, json=json, params=params)
        @retrying(f"{method} {url}", should_retry=is_transient, initial_delay=self.retry_delay)
        async def _send_with_retry() -> httpx.Response:
            return await self._send(method, url, json=json, params=params)

        return await _send_with_retry()

    async def request_json(self, method: str, url: str, **kwargs: Any) -> Any:
        response = await self.request(method, url, **kwargs)
        if not response.content:
            return {}
        return response.json()
