"""Access to the remote cookie jar and out-of-browser requests that reuse it."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional

import httpx
from pydantic import ValidationError

from .errors import MalformedResponse, TransportError
from .models import Cookie
from .protocol.commands import Command, CommandName

if TYPE_CHECKING:
    from .session import Session

LOGGER = logging.getLogger(__name__)


async def current_cookies(session: "Session") -> list[Cookie]:
    """Return every cookie visible to the current document."""

    value = await session.execute(Command(CommandName.GET_ALL_COOKIES))
    if not isinstance(value, list):
        raise MalformedResponse("webdriver returned an invalid cookie list", value)
    return [_to_cookie(item) for item in value]


async def named_cookie(session: "Session", name: str) -> Cookie:
    value = await session.execute(Command(CommandName.GET_NAMED_COOKIE, params={"name": name}))
    return _to_cookie(value)


async def add_cookie(session: "Session", cookie: Cookie) -> None:
    await session.execute(Command(CommandName.ADD_COOKIE, body={"cookie": cookie.to_wire()}))


async def delete_cookie(session: "Session", name: str) -> None:
    await session.execute(Command(CommandName.DELETE_COOKIE, params={"name": name}))


async def delete_all_cookies(session: "Session") -> None:
    await session.execute(Command(CommandName.DELETE_ALL_COOKIES))


def cookie_header(cookies: Iterable[Cookie]) -> str:
    """Render ``cookies`` as the value of a ``Cookie`` request header."""

    return "; ".join(f"{cookie.name}={cookie.value}" for cookie in cookies)


async def build_authenticated_request(
    session: "Session",
    method: str,
    url: str,
    *,
    headers: Optional[Mapping[str, str]] = None,
    content: Optional[bytes] = None,
) -> httpx.Request:
    """Prepare a request carrying the browser's cookies and user agent.

    Relative URLs are resolved against the session's current URL.
    """

    target = await session.resolve_url(url)
    cookies = await current_cookies(session)
    request_headers = httpx.Headers(headers or {})
    if cookies:
        request_headers["Cookie"] = cookie_header(cookies)
    if session.user_agent and "User-Agent" not in request_headers:
        request_headers["User-Agent"] = session.user_agent
    return httpx.Request(method.upper(), target, headers=request_headers, content=content)


async def fetch(
    session: "Session",
    method: str,
    url: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    headers: Optional[Mapping[str, str]] = None,
    content: Optional[bytes] = None,
) -> httpx.Response:
    """Send a request outside the browser as if the browser had sent it."""

    request = await build_authenticated_request(session, method, url, headers=headers, content=content)
    LOGGER.debug("Fetching %s %s with browser cookies", request.method, request.url)
    try:
        if client is not None:
            return await client.send(request)
        async with httpx.AsyncClient() as owned:
            return await owned.send(request)
    except httpx.HTTPError as exc:
        raise TransportError(f"request to {request.url} failed: {exc}") from exc


def _to_cookie(value: Any) -> Cookie:
    try:
        return Cookie.model_validate(value)
    except ValidationError as exc:
        raise MalformedResponse("webdriver returned an invalid cookie", value) from exc
