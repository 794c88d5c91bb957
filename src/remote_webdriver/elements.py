"""Handles on remote DOM elements."""

from __future__ import annotations

import weakref
from typing import TYPE_CHECKING, Any, Optional

from .errors import MalformedResponse, SessionClosed
from .models import ElementRect, Locator
from .protocol import codec
from .protocol.commands import Command, CommandName, ElementRef

if TYPE_CHECKING:
    from .session import Session


class Element:
    """A DOM node in the session that produced it.

    The handle only holds a weak reference to its session; once the
    session is closed or garbage collected every operation raises
    :class:`~remote_webdriver.errors.SessionClosed`.
    """

    __slots__ = ("_session_ref", "_id", "__weakref__")

    def __init__(self, session: "Session", element_id: str) -> None:
        self._session_ref = weakref.ref(session)
        self._id = element_id

    @property
    def id(self) -> str:
        return self._id

    @property
    def ref(self) -> ElementRef:
        return ElementRef(self._id)

    @property
    def session(self) -> "Session":
        session = self._session_ref()
        if session is None:
            raise SessionClosed(
                f"the session that found element {self._id} no longer exists",
                status="session closed",
            )
        return session

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Element):
            return NotImplemented
        return self._id == other._id and self._session_ref() is other._session_ref()

    def __hash__(self) -> int:
        return hash(self._id)

    def __repr__(self) -> str:
        return f"<Element {self._id}>"

    async def _execute(
        self,
        command_name: CommandName,
        *,
        body: Any = None,
        expects_element_refs: bool = False,
        **params: str,
    ) -> Any:
        command = Command(
            command_name,
            params={"element_id": self._id, **params},
            body=body,
            expects_element_refs=expects_element_refs,
        )
        return await self.session.execute(command)

    # Lookups --------------------------------------------------------------

    async def find(self, locator: Locator) -> "Element":
        """Find the first descendant matching ``locator``."""

        from . import locators

        return await locators.find(self, locator)

    async def find_all(self, locator: Locator) -> list["Element"]:
        from . import locators

        return await locators.find_all(self, locator)

    async def wait_for(
        self,
        locator: Locator,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
    ) -> "Element":
        from . import locators

        return await locators.wait_for(self, locator, timeout=timeout, poll_interval=poll_interval)

    # State ----------------------------------------------------------------

    async def is_selected(self) -> bool:
        return codec.expect_bool(await self._execute(CommandName.IS_ELEMENT_SELECTED))

    async def is_enabled(self) -> bool:
        return codec.expect_bool(await self._execute(CommandName.IS_ELEMENT_ENABLED))

    async def is_displayed(self) -> bool:
        return codec.expect_bool(await self._execute(CommandName.IS_ELEMENT_DISPLAYED))

    async def attr(self, name: str) -> Optional[str]:
        """Return the attribute ``name``, or ``None`` if it is not set."""

        value = await self._execute(CommandName.GET_ELEMENT_ATTRIBUTE, name=name)
        if value is None or isinstance(value, str):
            return value
        raise MalformedResponse(f"webdriver returned an invalid value for attribute {name!r}", value)

    async def prop(self, name: str) -> Optional[str]:
        """Return the DOM property ``name`` rendered as a string."""

        value = await self._execute(CommandName.GET_ELEMENT_PROPERTY, name=name)
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return str(value)
        raise MalformedResponse(f"webdriver returned an invalid value for property {name!r}", value)

    async def css_value(self, name: str) -> str:
        return codec.expect_str(await self._execute(CommandName.GET_ELEMENT_CSS_VALUE, name=name))

    async def text(self) -> str:
        return codec.expect_str(await self._execute(CommandName.GET_ELEMENT_TEXT))

    async def tag_name(self) -> str:
        return codec.expect_str(await self._execute(CommandName.GET_ELEMENT_TAG_NAME))

    async def rect(self) -> ElementRect:
        value = await self._execute(CommandName.GET_ELEMENT_RECT)
        try:
            return ElementRect.model_validate(value)
        except ValueError as exc:
            raise MalformedResponse("webdriver returned an invalid element rect", value) from exc

    async def html(self, inner: bool = False) -> str:
        """Return the outer (or inner) HTML of the element."""

        value = await self.prop("innerHTML" if inner else "outerHTML")
        return value or ""

    async def screenshot(self) -> bytes:
        return codec.decode_png(await self._execute(CommandName.TAKE_ELEMENT_SCREENSHOT))

    # Interaction ----------------------------------------------------------

    async def click(self) -> None:
        await self._execute(CommandName.ELEMENT_CLICK)

    async def clear(self) -> None:
        await self._execute(CommandName.ELEMENT_CLEAR)

    async def send_keys(self, text: str) -> None:
        await self._execute(CommandName.ELEMENT_SEND_KEYS, body={"text": text})

    async def submit(self) -> None:
        """Submit the form this element is (or belongs to)."""

        await self._execute(CommandName.ELEMENT_SUBMIT)

    async def follow(self) -> None:
        """Navigate to this link's ``href``."""

        href = await self.attr("href")
        if href is None:
            raise MalformedResponse(f"element {self._id} has no href attribute")
        await self.session.goto(href)

    async def select_by(self, locator: Locator) -> None:
        """Click the first descendant option matching ``locator``."""

        option = await self.find(locator)
        await option.click()

    async def select_by_value(self, value: str) -> None:
        await self.select_by(Locator.css(f'option[value="{_css_string(value)}"]'))

    async def select_by_index(self, index: int) -> None:
        await self.select_by(Locator.css(f"option:nth-of-type({index + 1})"))

    async def select_by_label(self, label: str) -> None:
        await self.select_by(Locator.xpath(f".//option[normalize-space(.)={_xpath_string(label)}]"))

    async def enter_frame(self) -> None:
        """Switch the session into this ``<iframe>``."""

        await self.session.enter_frame(self)


def _css_string(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _xpath_string(value: str) -> str:
    if "'" not in value:
        return f"'{value}'"
    if '"' not in value:
        return f'"{value}"'
    parts = value.split("'")
    return "concat(" + ", \"'\", ".join(f"'{part}'" for part in parts) + ")"
