"""Element lookup and explicit waits."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Optional, Union

from .elements import Element
from .errors import MalformedResponse, NoSuchElement, Timeout
from .models import Locator
from .protocol.commands import Command, CommandName, ElementRef

if TYPE_CHECKING:
    from .session import Session

LOGGER = logging.getLogger(__name__)

Scope = Union["Session", Element]


class _Pending:
    """Marker returned by a poll attempt that has not succeeded yet."""

    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error


async def find(scope: Scope, locator: Locator) -> Element:
    """Return the first element matching ``locator`` under ``scope``.

    Raises :class:`~remote_webdriver.errors.NoSuchElement` when nothing
    matches.
    """

    session, command = _lookup(scope, locator, many=False)
    value = await session.execute(command)
    if not isinstance(value, ElementRef):
        raise MalformedResponse(f"webdriver returned no element for {locator}", value)
    return Element(session, value.id)


async def find_all(scope: Scope, locator: Locator) -> list[Element]:
    """Return every element matching ``locator``, possibly none."""

    session, command = _lookup(scope, locator, many=True)
    value = await session.execute(command)
    if not isinstance(value, list) or not all(isinstance(item, ElementRef) for item in value):
        raise MalformedResponse(f"webdriver returned an invalid element list for {locator}", value)
    return [Element(session, item.id) for item in value]


async def wait_for(
    scope: Scope,
    locator: Locator,
    *,
    timeout: Optional[float] = None,
    poll_interval: Optional[float] = None,
) -> Element:
    """Poll :func:`find` until it succeeds or ``timeout`` seconds pass.

    The first attempt is made immediately. Only ``NoSuchElement`` is
    retried; any other error is raised at once.
    """

    session = _session_of(scope)
    timeout = session.wait.timeout if timeout is None else timeout
    poll_interval = session.wait.poll_interval if poll_interval is None else poll_interval

    async def attempt() -> Any:
        try:
            return await find(scope, locator)
        except NoSuchElement as exc:
            return _Pending(exc)

    return await _poll(attempt, timeout, poll_interval, f"element {locator}")


async def wait_for_url(
    session: "Session",
    url: str,
    *,
    timeout: Optional[float] = None,
    poll_interval: Optional[float] = None,
) -> None:
    """Poll the current URL until it equals ``url``."""

    timeout = session.wait.timeout if timeout is None else timeout
    poll_interval = session.wait.poll_interval if poll_interval is None else poll_interval

    async def attempt() -> Any:
        current = await session.current_url()
        return None if current == url else _Pending()

    await _poll(attempt, timeout, poll_interval, f"URL {url!r}")


async def _poll(attempt: Any, timeout: float, poll_interval: float, what: str) -> Any:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        result = await attempt()
        if not isinstance(result, _Pending):
            return result
        remaining = deadline - loop.time()
        if remaining <= 0:
            raise Timeout(f"timed out after {timeout}s waiting for {what}", status="timeout") from result.error
        LOGGER.debug("Still waiting for %s (%.2fs left)", what, remaining)
        await asyncio.sleep(min(poll_interval, remaining))


def _session_of(scope: Scope) -> "Session":
    if isinstance(scope, Element):
        return scope.session
    return scope


def _lookup(scope: Scope, locator: Locator, *, many: bool) -> tuple["Session", Command]:
    if isinstance(scope, Element):
        name = CommandName.FIND_ELEMENTS_FROM_ELEMENT if many else CommandName.FIND_ELEMENT_FROM_ELEMENT
        command = Command(
            name,
            params={"element_id": scope.id},
            body=locator,
            expects_element_refs=True,
        )
        return scope.session, command
    name = CommandName.FIND_ELEMENTS if many else CommandName.FIND_ELEMENT
    return scope, Command(name, body=locator, expects_element_refs=True)
