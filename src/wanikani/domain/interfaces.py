"""
Ports (interfaces) for I/O the core depends on.

These define the contract that infrastructure adapters must implement.
The client pipeline depends on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class TransportResponse:
    """
    Raw result of one HTTP exchange.

    Attributes:
        status: HTTP status code.
        headers: Response headers. Lookups through the pipeline are case-insensitive.
        body: Raw response body, or None when empty (e.g. 304).
    """

    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes | None = None


class Transport(ABC):
    """
    Port for performing HTTP requests.

    Implementations:
        - HttpxTransport: httpx.AsyncClient based adapter.
    """

    @abstractmethod
    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Any | None = None,
    ) -> TransportResponse:
        """
        Send one request.

        Args:
            method: HTTP verb.
            url: Absolute URL including the query string.
            headers: Request headers.
            body: JSON-serializable request body, if any.

        Raises:
            TransportError: On connection failure or timeout.
        """
        pass

    async def close(self) -> None:
        """Release any pooled connections."""
        return None
