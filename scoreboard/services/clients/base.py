"""
Base HTTP client shared by the cabinet, leaderboard and catalog clients.

Provides:
- lazily created httpx.AsyncClient with connection limits
- JSON GET with tenacity retry on transient failures
- error wrapping with the failing URL
"""
from typing import Any, Optional

import httpx
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from scoreboard.core.logging import get_logger
from scoreboard.services.clients.errors import CabinetRequestError

logger = get_logger(__name__)


def is_transient(error: BaseException) -> bool:
    """Network errors, timeouts and 5xx responses are worth retrying."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code >= 500
    return isinstance(error, (httpx.RequestError, httpx.TimeoutException))


class BaseClient:
    """
    Async JSON client for one external service.

    Args:
        base_url: Service root URL
        timeout: Request timeout in seconds
        transport: Optional httpx transport (tests pass httpx.MockTransport)
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=20),
                headers={"Accept": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def url(self, *parts: Any) -> str:
        return "/".join([self.base_url, *(str(part).strip("/") for part in parts)])

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception(is_transient),
        reraise=True,
    )
    async def _fetch(self, url: str) -> httpx.Response:
        client = await self._get_client()
        response = await client.get(url)
        response.raise_for_status()
        return response

    async def get_json(self, url: str) -> Any:
        """
        GET a URL and decode the JSON body.

        Raises:
            CabinetRequestError: after retries are exhausted or on a
                non-retryable failure (4xx, undecodable body)
        """
        try:
            response = await self._fetch(url)
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.debug(f"Request failed: {url}: {e}")
            raise CabinetRequestError(url, e) from e

    async def get(self, url: str) -> None:
        """GET a URL for its side effect, ignoring the body."""
        try:
            await self._fetch(url)
        except httpx.HTTPError as e:
            raise CabinetRequestError(url, e) from e
