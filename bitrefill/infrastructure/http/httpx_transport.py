"""Concrete implementation of the Transport interface using httpx.

Hides the httpx client and turns network-level problems into
TransportFailure. HTTP error statuses are returned, not raised; status
handling belongs to the client facade.
"""

import logging
import time
from typing import Any, Dict, Optional

import httpx

from bitrefill.domain.exceptions import TransportFailure
from bitrefill.domain.interfaces.transport import Transport, TransportResponse
from bitrefill.domain.models.common import DEFAULT_BASE_URL

logger = logging.getLogger(__name__)


class HttpxTransport(Transport):
    """Transport backed by a long-lived httpx.AsyncClient with connection pooling."""

    DEFAULT_TIMEOUT_SECONDS = 30.0

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initializes the transport.

        Args:
            base_url: API root, e.g. https://api-bitrefill.com/v2.
            timeout: Per-request timeout in seconds.
            client: Pre-built client (tests pass one with a MockTransport).
        """
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
        )
        logger.debug(f"HttpxTransport initialized for {self.base_url} (timeout={timeout}s)")

    async def request(
        self,
        method: str,
        path: str,
        headers: Dict[str, str],
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
    ) -> TransportResponse:
        start_time = time.perf_counter()
        try:
            response = await self._client.request(method, path, headers=headers, params=params, json=json)
        except httpx.TimeoutException as e:
            raise TransportFailure(f"Request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise TransportFailure(f"HTTP error: {e}") from e
        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(f"{method} {path} -> {response.status_code} in {latency_ms:.2f}ms")

        body: Any = None
        if response.content:
            try:
                body = response.json()
            except ValueError as e:
                if response.status_code == 200:
                    raise TransportFailure(f"Invalid JSON in response to {method} {path}: {e}") from e
                body = response.text

        return TransportResponse(
            status=response.status_code,
            headers=response.headers,
            body=body,
            reason=response.reason_phrase,
        )

    async def aclose(self) -> None:
        await self._client.aclose()
