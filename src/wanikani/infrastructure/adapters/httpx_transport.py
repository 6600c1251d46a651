import logging
from collections.abc import Mapping
from typing import Any

import httpx

from wanikani.domain.constants import REQUEST_TIMEOUT
from wanikani.domain.errors import TransportError
from wanikani.domain.interfaces import Transport, TransportResponse


class HttpxTransport(Transport):
    """Transport over a reused httpx.AsyncClient."""

    def __init__(
        self,
        timeout: float = REQUEST_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        self.logger = logging.getLogger(__name__)
        self.timeout = timeout
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Any | None = None,
    ) -> TransportResponse:
        client = self._get_client()
        try:
            resp = await client.request(method, url, headers=dict(headers), json=body)
        except httpx.HTTPError as e:
            self.logger.error(f"{method} {url} failed: {e!r}")
            raise TransportError(f"{method} {url} failed: {e}") from e

        self.logger.debug(f"{method} {url} -> {resp.status_code}")
        return TransportResponse(
            status=resp.status_code,
            headers=resp.headers,
            body=resp.content or None,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
