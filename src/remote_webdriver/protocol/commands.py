"""Dialect-neutral command descriptions and their HTTP routes."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..models import Dialect


class CommandName(str, enum.Enum):
    """Logical WebDriver commands issued by the client."""

    NEW_SESSION = "new_session"
    DELETE_SESSION = "delete_session"
    GET = "get"
    GET_CURRENT_URL = "get_current_url"
    BACK = "back"
    FORWARD = "forward"
    REFRESH = "refresh"
    GET_TITLE = "get_title"
    GET_PAGE_SOURCE = "get_page_source"
    GET_WINDOW_HANDLE = "get_window_handle"
    GET_WINDOW_HANDLES = "get_window_handles"
    CLOSE_WINDOW = "close_window"
    SWITCH_TO_WINDOW = "switch_to_window"
    NEW_WINDOW = "new_window"
    SWITCH_TO_FRAME = "switch_to_frame"
    SWITCH_TO_PARENT_FRAME = "switch_to_parent_frame"
    GET_WINDOW_RECT = "get_window_rect"
    SET_WINDOW_RECT = "set_window_rect"
    MAXIMIZE_WINDOW = "maximize_window"
    GET_TIMEOUTS = "get_timeouts"
    SET_TIMEOUTS = "set_timeouts"
    FIND_ELEMENT = "find_element"
    FIND_ELEMENTS = "find_elements"
    FIND_ELEMENT_FROM_ELEMENT = "find_element_from_element"
    FIND_ELEMENTS_FROM_ELEMENT = "find_elements_from_element"
    GET_ACTIVE_ELEMENT = "get_active_element"
    IS_ELEMENT_SELECTED = "is_element_selected"
    IS_ELEMENT_ENABLED = "is_element_enabled"
    IS_ELEMENT_DISPLAYED = "is_element_displayed"
    GET_ELEMENT_ATTRIBUTE = "get_element_attribute"
    GET_ELEMENT_PROPERTY = "get_element_property"
    GET_ELEMENT_CSS_VALUE = "get_element_css_value"
    GET_ELEMENT_TEXT = "get_element_text"
    GET_ELEMENT_TAG_NAME = "get_element_tag_name"
    GET_ELEMENT_RECT = "get_element_rect"
    ELEMENT_CLICK = "element_click"
    ELEMENT_CLEAR = "element_clear"
    ELEMENT_SEND_KEYS = "element_send_keys"
    ELEMENT_SUBMIT = "element_submit"
    EXECUTE_SCRIPT = "execute_script"
    EXECUTE_ASYNC_SCRIPT = "execute_async_script"
    GET_ALL_COOKIES = "get_all_cookies"
    GET_NAMED_COOKIE = "get_named_cookie"
    ADD_COOKIE = "add_cookie"
    DELETE_COOKIE = "delete_cookie"
    DELETE_ALL_COOKIES = "delete_all_cookies"
    TAKE_SCREENSHOT = "take_screenshot"
    TAKE_ELEMENT_SCREENSHOT = "take_element_screenshot"
    GET_ALERT_TEXT = "get_alert_text"
    SEND_ALERT_TEXT = "send_alert_text"
    ACCEPT_ALERT = "accept_alert"
    DISMISS_ALERT = "dismiss_alert"


@dataclass(frozen=True)
class ElementRef:
    """Opaque, dialect-neutral reference to a remote DOM node."""

    id: str


@dataclass(frozen=True)
class Command:
    """A single protocol interaction, built per call and never stored."""

    name: CommandName
    params: Mapping[str, str] = field(default_factory=dict)
    body: Any = None
    expects_element_refs: bool = False


@dataclass(frozen=True)
class Route:
    method: str
    path: str


_SESSION = "/session/{session_id}"
_ELEMENT = _SESSION + "/element/{element_id}"

W3C_ROUTES: dict[CommandName, Route] = {
    CommandName.NEW_SESSION: Route("POST", "/session"),
    CommandName.DELETE_SESSION: Route("DELETE", _SESSION),
    CommandName.GET: Route("POST", _SESSION + "/url"),
    CommandName.GET_CURRENT_URL: Route("GET", _SESSION + "/url"),
    CommandName.BACK: Route("POST", _SESSION + "/back"),
    CommandName.FORWARD: Route("POST", _SESSION + "/forward"),
    CommandName.REFRESH: Route("POST", _SESSION + "/refresh"),
    CommandName.GET_TITLE: Route("GET", _SESSION + "/title"),
    CommandName.GET_PAGE_SOURCE: Route("GET", _SESSION + "/source"),
    CommandName.GET_WINDOW_HANDLE: Route("GET", _SESSION + "/window"),
    CommandName.GET_WINDOW_HANDLES: Route("GET", _SESSION + "/window/handles"),
    CommandName.CLOSE_WINDOW: Route("DELETE", _SESSION + "/window"),
    CommandName.SWITCH_TO_WINDOW: Route("POST", _SESSION + "/window"),
    CommandName.NEW_WINDOW: Route("POST", _SESSION + "/window/new"),
    CommandName.SWITCH_TO_FRAME: Route("POST", _SESSION + "/frame"),
    CommandName.SWITCH_TO_PARENT_FRAME: Route("POST", _SESSION + "/frame/parent"),
    CommandName.GET_WINDOW_RECT: Route("GET", _SESSION + "/window/rect"),
    CommandName.SET_WINDOW_RECT: Route("POST", _SESSION + "/window/rect"),
    CommandName.MAXIMIZE_WINDOW: Route("POST", _SESSION + "/window/maximize"),
    CommandName.GET_TIMEOUTS: Route("GET", _SESSION + "/timeouts"),
    CommandName.SET_TIMEOUTS: Route("POST", _SESSION + "/timeouts"),
    CommandName.FIND_ELEMENT: Route("POST", _SESSION + "/element"),
    CommandName.FIND_ELEMENTS: Route("POST", _SESSION + "/elements"),
    CommandName.FIND_ELEMENT_FROM_ELEMENT: Route("POST", _ELEMENT + "/element"),
    CommandName.FIND_ELEMENTS_FROM_ELEMENT: Route("POST", _ELEMENT + "/elements"),
    CommandName.GET_ACTIVE_ELEMENT: Route("GET", _SESSION + "/element/active"),
    CommandName.IS_ELEMENT_SELECTED: Route("GET", _ELEMENT + "/selected"),
    CommandName.IS_ELEMENT_ENABLED: Route("GET", _ELEMENT + "/enabled"),
    CommandName.IS_ELEMENT_DISPLAYED: Route("GET", _ELEMENT + "/displayed"),
    CommandName.GET_ELEMENT_ATTRIBUTE: Route("GET", _ELEMENT + "/attribute/{name}"),
    CommandName.GET_ELEMENT_PROPERTY: Route("GET", _ELEMENT + "/property/{name}"),
    CommandName.GET_ELEMENT_CSS_VALUE: Route("GET", _ELEMENT + "/css/{name}"),
    CommandName.GET_ELEMENT_TEXT: Route("GET", _ELEMENT + "/text"),
    CommandName.GET_ELEMENT_TAG_NAME: Route("GET", _ELEMENT + "/name"),
    CommandName.GET_ELEMENT_RECT: Route("GET", _ELEMENT + "/rect"),
    CommandName.ELEMENT_CLICK: Route("POST", _ELEMENT + "/click"),
    CommandName.ELEMENT_CLEAR: Route("POST", _ELEMENT + "/clear"),
    CommandName.ELEMENT_SEND_KEYS: Route("POST", _ELEMENT + "/value"),
    # W3C has no submit endpoint; the codec turns this into a script call.
    CommandName.ELEMENT_SUBMIT: Route("POST", _SESSION + "/execute/sync"),
    CommandName.EXECUTE_SCRIPT: Route("POST", _SESSION + "/execute/sync"),
    CommandName.EXECUTE_ASYNC_SCRIPT: Route("POST", _SESSION + "/execute/async"),
    CommandName.GET_ALL_COOKIES: Route("GET", _SESSION + "/cookie"),
    CommandName.GET_NAMED_COOKIE: Route("GET", _SESSION + "/cookie/{name}"),
    CommandName.ADD_COOKIE: Route("POST", _SESSION + "/cookie"),
    CommandName.DELETE_COOKIE: Route("DELETE", _SESSION + "/cookie/{name}"),
    CommandName.DELETE_ALL_COOKIES: Route("DELETE", _SESSION + "/cookie"),
    CommandName.TAKE_SCREENSHOT: Route("GET", _SESSION + "/screenshot"),
    CommandName.TAKE_ELEMENT_SCREENSHOT: Route("GET", _ELEMENT + "/screenshot"),
    CommandName.GET_ALERT_TEXT: Route("GET", _SESSION + "/alert/text"),
    CommandName.SEND_ALERT_TEXT: Route("POST", _SESSION + "/alert/text"),
    CommandName.ACCEPT_ALERT: Route("POST", _SESSION + "/alert/accept"),
    CommandName.DISMISS_ALERT: Route("POST", _SESSION + "/alert/dismiss"),
}

# ``None`` marks commands the JSON-Wire protocol has no equivalent for.
LEGACY_OVERRIDES: dict[CommandName, Optional[Route]] = {
    CommandName.GET_WINDOW_HANDLE: Route("GET", _SESSION + "/window_handle"),
    CommandName.GET_WINDOW_HANDLES: Route("GET", _SESSION + "/window_handles"),
    CommandName.MAXIMIZE_WINDOW: Route("POST", _SESSION + "/window/current/maximize"),
    CommandName.GET_ACTIVE_ELEMENT: Route("POST", _SESSION + "/element/active"),
    CommandName.ELEMENT_SUBMIT: Route("POST", _ELEMENT + "/submit"),
    CommandName.EXECUTE_SCRIPT: Route("POST", _SESSION + "/execute"),
    CommandName.EXECUTE_ASYNC_SCRIPT: Route("POST", _SESSION + "/execute_async"),
    CommandName.GET_ALERT_TEXT: Route("GET", _SESSION + "/alert_text"),
    CommandName.SEND_ALERT_TEXT: Route("POST", _SESSION + "/alert_text"),
    CommandName.ACCEPT_ALERT: Route("POST", _SESSION + "/accept_alert"),
    CommandName.DISMISS_ALERT: Route("POST", _SESSION + "/dismiss_alert"),
    CommandName.NEW_WINDOW: None,
    CommandName.GET_WINDOW_RECT: None,
    CommandName.SET_WINDOW_RECT: None,
    CommandName.GET_TIMEOUTS: None,
    CommandName.GET_ELEMENT_PROPERTY: None,
    CommandName.GET_ELEMENT_RECT: None,
    CommandName.TAKE_ELEMENT_SCREENSHOT: None,
}


def lookup_route(dialect: Dialect, name: CommandName) -> Optional[Route]:
    """Return the route for ``name`` in ``dialect``, or ``None`` if it has none."""

    if dialect is Dialect.LEGACY and name in LEGACY_OVERRIDES:
        return LEGACY_OVERRIDES[name]
    return W3C_ROUTES[name]
