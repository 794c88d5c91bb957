"""Error taxonomy shared by every layer of the WebDriver client."""

from __future__ import annotations

import enum
from typing import Any, Optional


class ErrorKind(str, enum.Enum):
    """Closed set of failure kinds a caller can branch on."""

    TRANSPORT = "transport"
    SESSION_NOT_CREATED = "session not created"
    SESSION_CLOSED = "session closed"
    NO_SUCH_ELEMENT = "no such element"
    STALE_ELEMENT = "stale element"
    ELEMENT_NOT_INTERACTABLE = "element not interactable"
    TIMEOUT = "timeout"
    UNSUPPORTED_FIELD = "unsupported field"
    UNKNOWN_COMMAND = "unknown command"


class WebDriverError(RuntimeError):
    """Base class for all errors raised by :mod:`remote_webdriver`.

    ``status`` holds the raw error code reported by the remote end (for
    example ``"no such element"``) when the failure came from a protocol
    error envelope, and ``remote_stacktrace`` the stack trace it sent along.
    """

    kind: ErrorKind = ErrorKind.UNKNOWN_COMMAND

    def __init__(
        self,
        message: str,
        *,
        status: Optional[str] = None,
        remote_stacktrace: Optional[str] = None,
        data: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.remote_stacktrace = remote_stacktrace or None
        self.data = data
        self.operation_index: Optional[int] = None

    def __str__(self) -> str:
        if self.status and self.status != self.message:
            return f"{self.status}: {self.message}"
        return self.message


class TransportError(WebDriverError):
    """The request could not be delivered or the reply could not be read."""

    kind = ErrorKind.TRANSPORT


class MalformedResponse(TransportError):
    """The remote end replied with something that is not a protocol payload."""

    def __init__(self, message: str, payload: Any = None) -> None:
        super().__init__(message, data=payload)
        self.payload = payload


class SessionNotCreated(WebDriverError):
    kind = ErrorKind.SESSION_NOT_CREATED


class SessionClosed(WebDriverError):
    kind = ErrorKind.SESSION_CLOSED


class NoSuchElement(WebDriverError):
    kind = ErrorKind.NO_SUCH_ELEMENT


class StaleElement(WebDriverError):
    kind = ErrorKind.STALE_ELEMENT


class ElementNotInteractable(WebDriverError):
    kind = ErrorKind.ELEMENT_NOT_INTERACTABLE


class Timeout(WebDriverError):
    """Raised for remote timeouts, expired waits and expired caller deadlines."""

    kind = ErrorKind.TIMEOUT


class UnsupportedField(WebDriverError):
    kind = ErrorKind.UNSUPPORTED_FIELD


class UnknownCommandError(WebDriverError):
    """The remote end reported an error code outside the recognized set."""

    kind = ErrorKind.UNKNOWN_COMMAND


class UnsupportedCommandError(UnknownCommandError):
    """The command has no equivalent in the negotiated dialect."""


_ERRORS_BY_STATUS: dict[str, type[WebDriverError]] = {
    "no such element": NoSuchElement,
    "stale element reference": StaleElement,
    "element not interactable": ElementNotInteractable,
    "element not visible": ElementNotInteractable,
    "timeout": Timeout,
    "script timeout": Timeout,
    "session not created": SessionNotCreated,
    "invalid session id": SessionClosed,
}


def error_for_status(
    status: str,
    message: str,
    *,
    remote_stacktrace: Optional[str] = None,
    data: Any = None,
) -> WebDriverError:
    """Build the taxonomy error matching a remote error code."""

    error_cls = _ERRORS_BY_STATUS.get(status, UnknownCommandError)
    return error_cls(message, status=status, remote_stacktrace=remote_stacktrace, data=data)


def is_recognized_status(status: str) -> bool:
    return status in _ERRORS_BY_STATUS
