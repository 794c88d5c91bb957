"""Translation between dialect-neutral commands and the two wire encodings.

Everything in this module is a pure function of the negotiated
:class:`~remote_webdriver.models.Dialect` and the command or payload at hand.
The W3C dialect wraps every reply in a ``{"value": ...}`` envelope and
reports errors as strings; the legacy JSON-Wire dialect adds a numeric
``status`` next to ``value`` and puts ``sessionId`` at the top level.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Any, Mapping, Optional
from urllib.parse import quote

from ..errors import (
    MalformedResponse,
    SessionNotCreated,
    UnsupportedCommandError,
    WebDriverError,
    error_for_status,
)
from ..models import Dialect, Locator, LocatorStrategy
from .commands import Command, CommandName, ElementRef, Route, lookup_route

W3C_ELEMENT_KEY = "element-6066-11e4-a52e-4f735466cecf"
LEGACY_ELEMENT_KEY = "ELEMENT"

SUBMIT_SCRIPT = (
    "var form = arguments[0];"
    "if (typeof HTMLFormElement.prototype.requestSubmit === 'function') {"
    "  HTMLFormElement.prototype.requestSubmit.call(form);"
    "} else {"
    "  HTMLFormElement.prototype.submit.call(form);"
    "}"
)

# https://github.com/SeleniumHQ/selenium/wiki/JsonWireProtocol#response-status-codes
LEGACY_STATUS_CODES: dict[int, str] = {
    6: "invalid session id",
    7: "no such element",
    8: "no such frame",
    9: "unknown command",
    10: "stale element reference",
    11: "element not visible",
    12: "invalid element state",
    13: "unknown error",
    15: "element not selectable",
    17: "javascript error",
    19: "invalid selector",
    21: "timeout",
    23: "no such window",
    24: "invalid cookie domain",
    25: "unable to set cookie",
    26: "unexpected alert open",
    27: "no such alert",
    28: "script timeout",
    29: "invalid element coordinates",
    32: "invalid selector",
    33: "session not created",
    34: "move target out of bounds",
}

_LEGACY_TIMEOUT_TYPES = {"pageLoad": "page load"}

_LEGACY_HANDSHAKE_MARKERS = (
    "cannot find dict 'desiredCapabilities'",
    "Missing or invalid capabilities",
    "Unexpected server error.",
)


@dataclass(frozen=True)
class EncodedRequest:
    method: str
    path: str
    body: Optional[Any] = None


@dataclass(frozen=True)
class NewSession:
    session_id: str
    capabilities: dict[str, Any]


def element_key(dialect: Dialect) -> str:
    return LEGACY_ELEMENT_KEY if dialect is Dialect.LEGACY else W3C_ELEMENT_KEY


def route_for(dialect: Dialect, name: CommandName) -> Route:
    route = lookup_route(dialect, name)
    if route is None:
        raise UnsupportedCommandError(
            f"command {name.value!r} is not available in the {dialect.value} dialect",
            status="unsupported operation",
        )
    return route


# Encoding -------------------------------------------------------------------


def encode_value(dialect: Dialect, value: Any) -> Any:
    """Replace every :class:`ElementRef` in ``value`` with its wire object."""

    if isinstance(value, ElementRef):
        return {element_key(dialect): value.id}
    if isinstance(value, Locator):
        return encode_locator(dialect, value)
    if isinstance(value, Mapping):
        return {key: encode_value(dialect, item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(dialect, item) for item in value]
    return value


def encode_locator(dialect: Dialect, locator: Locator) -> dict[str, str]:
    if locator.strategy is LocatorStrategy.ID and dialect is Dialect.W3C:
        escaped = locator.value.replace("\\", "\\\\").replace('"', '\\"')
        return {"using": LocatorStrategy.CSS.value, "value": f'[id="{escaped}"]'}
    return {"using": locator.strategy.value, "value": locator.value}


def encode_command(dialect: Dialect, command: Command, session_id: Optional[str]) -> EncodedRequest:
    """Resolve the route and body of ``command`` for ``dialect``."""

    route = route_for(dialect, command.name)
    params = {key: quote(str(value), safe="") for key, value in command.params.items()}
    if session_id is not None:
        params["session_id"] = quote(session_id, safe="")
    try:
        path = route.path.format(**params)
    except KeyError as exc:
        raise ValueError(f"missing path parameter {exc.args[0]!r} for {command.name.value}") from exc

    body = _encode_body(dialect, command)
    if body is None and route.method == "POST":
        body = {}
    return EncodedRequest(method=route.method, path=path, body=body)


def _encode_body(dialect: Dialect, command: Command) -> Any:
    body = command.body
    if command.name is CommandName.ELEMENT_SUBMIT:
        if dialect is Dialect.LEGACY:
            return {}
        element = ElementRef(command.params["element_id"])
        return {"script": SUBMIT_SCRIPT, "args": [encode_value(dialect, element)]}
    if dialect is Dialect.LEGACY:
        if command.name is CommandName.ELEMENT_SEND_KEYS and isinstance(body, Mapping):
            return {"value": list(str(body.get("text", "")))}
        if command.name is CommandName.SWITCH_TO_WINDOW and isinstance(body, Mapping):
            return {"name": body.get("handle")}
        if command.name is CommandName.SET_TIMEOUTS and isinstance(body, Mapping):
            return _legacy_timeout_body(body)
    if body is None:
        return None
    return encode_value(dialect, body)


def _legacy_timeout_body(body: Mapping[str, Any]) -> dict[str, Any]:
    # JSON-Wire sets one timeout per request.
    if len(body) != 1:
        raise UnsupportedCommandError(
            "legacy endpoints accept exactly one timeout per request",
            status="unsupported operation",
        )
    ((key, value),) = body.items()
    return {"type": _LEGACY_TIMEOUT_TYPES.get(key, key), "ms": value}


def encode_new_session(dialect: Dialect, capabilities: Mapping[str, Any]) -> dict[str, Any]:
    caps = dict(capabilities)
    if dialect is Dialect.LEGACY:
        return {"desiredCapabilities": caps, "requiredCapabilities": {}}
    return {"capabilities": {"alwaysMatch": caps, "firstMatch": [{}]}}


# Decoding -------------------------------------------------------------------


def decode_value(dialect: Dialect, value: Any) -> Any:
    """Turn wire element objects in ``value`` back into :class:`ElementRef`."""

    key = element_key(dialect)
    if isinstance(value, dict):
        ref = value.get(key)
        if isinstance(ref, str):
            return ElementRef(ref)
        return {name: decode_value(dialect, item) for name, item in value.items()}
    if isinstance(value, list):
        return [decode_value(dialect, item) for item in value]
    return value


def decode_response(dialect: Dialect, command: Command, status: int, payload: Any) -> Any:
    """Return the command result or raise the matching taxonomy error."""

    if not isinstance(payload, dict):
        raise MalformedResponse("webdriver returned a non-object response", payload)

    if dialect is Dialect.LEGACY:
        legacy_status = payload.get("status")
        if not _is_int(legacy_status):
            raise MalformedResponse("legacy response has no numeric status", payload)
        if legacy_status == 0:
            value = payload.get("value")
        else:
            raise legacy_error(legacy_status, payload.get("value"))
    else:
        if "value" not in payload:
            raise MalformedResponse("webdriver response has no value envelope", payload)
        value = payload["value"]
        if not 200 <= status < 300:
            raise w3c_error(value)

    if command.expects_element_refs:
        return decode_value(dialect, value)
    return value


def w3c_error(value: Any) -> WebDriverError:
    if (
        not isinstance(value, dict)
        or not isinstance(value.get("error"), str)
        or not isinstance(value.get("message"), str)
    ):
        return MalformedResponse("webdriver returned a malformed error", value)
    stacktrace = value.get("stacktrace")
    return error_for_status(
        value["error"],
        value["message"],
        remote_stacktrace=stacktrace if isinstance(stacktrace, str) else None,
        data=value.get("data"),
    )


def legacy_error(code: int, value: Any) -> WebDriverError:
    if not isinstance(value, dict) or not isinstance(value.get("message"), str):
        return MalformedResponse(f"legacy error {code} without a message", value)
    details = {key: item for key, item in value.items() if key not in {"message", "screen", "stackTrace"}}
    status = LEGACY_STATUS_CODES.get(code, str(code))
    return error_for_status(
        status,
        value["message"],
        remote_stacktrace=_legacy_stacktrace(value.get("stackTrace")),
        data=details or None,
    )


def indicates_legacy(status: int, payload: Any) -> bool:
    """Whether a reply to the W3C new-session request came from a legacy end."""

    if isinstance(payload, str):
        return status >= 400 and payload.startswith("Missing Command Parameter")
    if not isinstance(payload, dict):
        return False
    if _is_int(payload.get("status")):
        return True
    if "value" not in payload or not isinstance(payload["value"], dict):
        return True
    value = payload["value"]
    message = value.get("message")
    if isinstance(message, str) and any(marker in message for marker in _LEGACY_HANDSHAKE_MARKERS):
        return True
    if isinstance(value.get("sessionId"), str):
        return False
    return not isinstance(value.get("error"), str)


def parse_new_session(dialect: Dialect, status: int, payload: Any) -> NewSession:
    """Extract the session id and capabilities from a new-session reply."""

    if not isinstance(payload, dict):
        raise SessionNotCreated("webdriver gave a non-conformant response", data=payload)

    if dialect is Dialect.LEGACY:
        legacy_status = payload.get("status")
        session_id = payload.get("sessionId")
        if legacy_status == 0 and isinstance(session_id, str):
            return NewSession(session_id, _capabilities(payload.get("value")))
        if _is_int(legacy_status) and legacy_status != 0:
            raise _as_session_not_created(legacy_error(legacy_status, payload.get("value")))
        raise SessionNotCreated("legacy webdriver gave a non-conformant response", data=payload)

    value = payload.get("value")
    if 200 <= status < 300 and isinstance(value, dict) and isinstance(value.get("sessionId"), str):
        return NewSession(value["sessionId"], _capabilities(value.get("capabilities")))
    if isinstance(value, dict) and isinstance(value.get("error"), str):
        raise _as_session_not_created(w3c_error(value))
    raise SessionNotCreated("webdriver gave a non-conformant response", data=payload)


def is_legacy_session(payload: Any) -> bool:
    """Whether ``payload`` already is a successful legacy new-session reply."""

    return (
        isinstance(payload, dict)
        and payload.get("status") == 0
        and _is_int(payload.get("status"))
        and isinstance(payload.get("sessionId"), str)
    )


def _as_session_not_created(error: WebDriverError) -> SessionNotCreated:
    if isinstance(error, SessionNotCreated):
        return error
    return SessionNotCreated(
        error.message,
        status=error.status,
        remote_stacktrace=error.remote_stacktrace,
        data=error.data,
    )


def _capabilities(value: Any) -> dict[str, Any]:
    return dict(value) if isinstance(value, dict) else {}


def _legacy_stacktrace(frames: Any) -> Optional[str]:
    if isinstance(frames, str):
        return frames
    if isinstance(frames, list):
        return "\n".join(str(frame) for frame in frames)
    return None


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


# Result helpers ---------------------------------------------------------------


def expect_str(value: Any) -> str:
    if not isinstance(value, str):
        raise MalformedResponse("webdriver returned a non-string value", value)
    return value


def expect_bool(value: Any) -> bool:
    if not isinstance(value, bool):
        raise MalformedResponse("webdriver returned a non-boolean value", value)
    return value


def decode_png(value: Any) -> bytes:
    """Decode a base64 screenshot payload."""

    if not isinstance(value, str):
        raise MalformedResponse("webdriver returned a non-string screenshot", value)
    try:
        return base64.b64decode(value, validate=True)
    except binascii.Error as exc:
        raise MalformedResponse("webdriver returned an invalid screenshot", value) from exc
