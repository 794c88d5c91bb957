"""Transport backed by :class:`httpx.AsyncClient`."""

from __future__ import annotations

import logging
from typing import Mapping, Optional

import httpx

from ..errors import TransportError
from .base import Transport, TransportResponse

LOGGER = logging.getLogger(__name__)


class HttpxTransport(Transport):
    """Send WebDriver requests through an ``httpx`` client.

    When no client is supplied one is created lazily and closed by
    :meth:`aclose`; a caller-supplied client is left open.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        timeout: float | httpx.Timeout = 60.0,
        verify: bool = True,
    ) -> None:
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout
        self._verify = verify

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, verify=self._verify)
        return self._client

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes],
    ) -> TransportResponse:
        client = self._get_client()
        LOGGER.debug("%s %s", method, url)
        try:
            response = await client.request(method, url, headers=dict(headers), content=body)
        except httpx.TimeoutException as exc:
            raise TransportError(f"webdriver did not respond in time: {exc}") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"webdriver could not be reached: {exc}") from exc
        LOGGER.debug("%s %s -> %s", method, url, response.status_code)
        return TransportResponse(
            status=response.status_code,
            headers=dict(response.headers),
            body=response.content,
        )

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
