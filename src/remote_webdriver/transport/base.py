"""Transport abstractions used by the session layer."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Mapping, Optional


@dataclass
class TransportResponse:
    """Raw reply from the remote end."""

    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""


class Transport(ABC):
    """Interface for sending one HTTP request to the WebDriver endpoint.

    Implementations must raise :class:`~remote_webdriver.errors.TransportError`
    for anything that prevents a complete response from being received.
    """

    @abstractmethod
    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes],
    ) -> TransportResponse:
        """Send a request and return the complete response."""

    async def aclose(self) -> None:
        """Release any pooled connections."""
