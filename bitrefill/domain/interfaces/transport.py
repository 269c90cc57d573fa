"""Interface for issuing a single HTTP request to the marketplace API.

The core never talks to an HTTP library directly; it sees status, headers
and the decoded body through TransportResponse.
"""

import abc
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional


@dataclass
class TransportResponse:
    """Structured response handed back by a Transport."""
    status: int
    headers: Mapping[str, str] = field(default_factory=dict) # Case-insensitive lookups expected
    body: Any = None
    reason: str = ""


class Transport(abc.ABC):
    """Abstract Base Class for HTTP transports."""

    @abc.abstractmethod
    async def request(
        self,
        method: str,
        path: str,
        headers: Dict[str, str],
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
    ) -> TransportResponse:
        """Sends one request and returns the response, whatever its status.

        Args:
            method: HTTP method (GET, POST).
            path: API path relative to the base URL, e.g. '/products'.
            headers: Request headers, including authorization.
            params: Optional query parameters.
            json: Optional JSON-serialisable request body.

        Returns:
            The TransportResponse for any HTTP status.

        Raises:
            TransportFailure: If no usable response was received.
        """
        pass

    @abc.abstractmethod
    async def aclose(self) -> None:
        """Releases pooled connections."""
        pass
