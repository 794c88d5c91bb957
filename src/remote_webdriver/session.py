"""WebDriver session lifecycle and the per-session command dispatcher."""

from __future__ import annotations

import asyncio
import base64
import json
import logging
import weakref
from types import MappingProxyType
from typing import Any, Mapping, Optional, Sequence, Union
from urllib.parse import unquote, urljoin, urlsplit, urlunsplit

from . import cookies as cookie_bridge
from . import forms, locators
from .config import WaitConfig
from .elements import Element
from .errors import (
    MalformedResponse,
    SessionClosed,
    SessionNotCreated,
    Timeout,
    WebDriverError,
)
from .models import (
    Cookie,
    Dialect,
    Locator,
    NewWindow,
    TimeoutConfiguration,
    WindowRect,
)
from .protocol import codec
from .protocol.commands import Command, CommandName, ElementRef
from .transport.base import Transport, TransportResponse
from .transport.httpx_transport import HttpxTransport

LOGGER = logging.getLogger(__name__)

_JSON_HEADERS = {
    "Content-Type": "application/json; charset=utf-8",
    "Accept": "application/json",
}

# Sessions owned by this process, keyed by (base URL, session id).
_LIVE_SESSIONS: "weakref.WeakValueDictionary[tuple[str, str], Session]" = weakref.WeakValueDictionary()
# Sessions this process deleted on the remote end.
_RETIRED_SESSIONS: set[tuple[str, str]] = set()


class Session:
    """A live WebDriver session.

    All commands on one session go through :meth:`execute`, which sends
    them one at a time in the order callers asked for them. Use
    :meth:`open` to create a remote session or :meth:`attach` to take
    over one that already exists.
    """

    def __init__(
        self,
        *,
        session_id: str,
        base_url: str,
        dialect: Dialect,
        transport: Transport,
        capabilities: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        owns_transport: bool = False,
        command_timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        wait: Optional[WaitConfig] = None,
    ) -> None:
        key = (base_url, session_id)
        if key in _RETIRED_SESSIONS:
            raise SessionNotCreated(f"session {session_id} was already deleted")
        if _live_owner(key) is not None:
            raise SessionNotCreated(f"session {session_id} is already owned by another client")
        _LIVE_SESSIONS[key] = self

        self._id = session_id
        self._base_url = base_url
        self._dialect = dialect
        self._transport = transport
        self._capabilities = dict(capabilities or {})
        self._headers = dict(headers or _JSON_HEADERS)
        self._owns_transport = owns_transport
        self._command_timeout = command_timeout
        self._user_agent = user_agent
        self.wait = wait or WaitConfig()
        self._lock = asyncio.Lock()
        self._poisoned: Optional[asyncio.Future[TransportResponse]] = None
        self._closed = False
        self._persist = False

    # Construction ---------------------------------------------------------

    @classmethod
    async def open(
        cls,
        base_url: str,
        capabilities: Optional[Mapping[str, Any]] = None,
        *,
        transport: Optional[Transport] = None,
        command_timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        wait: Optional[WaitConfig] = None,
        owns_transport: Optional[bool] = None,
    ) -> "Session":
        """Create a new remote session, negotiating the protocol dialect.

        The W3C request is tried first. If the reply shows the remote end
        only speaks the legacy protocol, a single legacy request follows.
        """

        root, auth_headers = _split_base_url(base_url)
        headers = _request_headers(auth_headers, user_agent)
        if owns_transport is None:
            owns_transport = transport is None
        if transport is None:
            transport = HttpxTransport()
        try:
            new_session, dialect = await _handshake(
                transport, root + "/session", headers, dict(capabilities or {})
            )
        except Exception:
            if owns_transport:
                await transport.aclose()
            raise
        try:
            session = cls(
                session_id=new_session.session_id,
                base_url=root,
                dialect=dialect,
                transport=transport,
                capabilities=new_session.capabilities,
                headers=headers,
                owns_transport=owns_transport,
                command_timeout=command_timeout,
                user_agent=user_agent,
                wait=wait,
            )
        except SessionNotCreated:
            # A live id belongs to another client; anything else was just created for us.
            if _live_owner((root, new_session.session_id)) is None:
                await _discard_remote(transport, root, headers, dialect, new_session.session_id)
            if owns_transport:
                await transport.aclose()
            raise
        LOGGER.info("Opened %s session %s at %s", dialect.value, new_session.session_id, root)
        return session

    @classmethod
    def attach(
        cls,
        base_url: str,
        session_id: str,
        *,
        dialect: Dialect = Dialect.W3C,
        transport: Optional[Transport] = None,
        command_timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        wait: Optional[WaitConfig] = None,
        owns_transport: Optional[bool] = None,
    ) -> "Session":
        """Take over an existing remote session without contacting the remote end."""

        root, auth_headers = _split_base_url(base_url)
        if owns_transport is None:
            owns_transport = transport is None
        session = cls(
            session_id=session_id,
            base_url=root,
            dialect=dialect,
            transport=transport or HttpxTransport(),
            headers=_request_headers(auth_headers, user_agent),
            owns_transport=owns_transport,
            command_timeout=command_timeout,
            user_agent=user_agent,
            wait=wait,
        )
        LOGGER.info("Attached to %s session %s at %s", dialect.value, session_id, root)
        return session

    # Properties -----------------------------------------------------------

    @property
    def id(self) -> str:
        return self._id

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    @property
    def capabilities(self) -> Mapping[str, Any]:
        return MappingProxyType(self._capabilities)

    @property
    def user_agent(self) -> Optional[str]:
        return self._user_agent

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def persisted(self) -> bool:
        return self._persist

    @property
    def has_pending_response(self) -> bool:
        """Whether a timed-out command is still waiting for its reply."""

        return self._poisoned is not None

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<Session {self._id} {self._dialect.value} {state}>"

    # Dispatch -------------------------------------------------------------

    async def execute(self, command: Command, *, timeout: Optional[float] = None) -> Any:
        """Send ``command`` and return its decoded result.

        Commands are serialized per session in arrival order. ``timeout``
        (or the session's ``command_timeout``) bounds how long the caller
        waits; the request itself keeps running and its late reply is
        discarded before the next command is sent.
        """

        self._ensure_open(command)
        request = codec.encode_command(self._dialect, command, self._id)
        async with self._lock:
            self._ensure_open(command)
            await self._drain_poisoned()
            deadline = self._command_timeout if timeout is None else timeout
            return await self._dispatch(command, request, deadline)

    async def _dispatch(
        self,
        command: Command,
        request: codec.EncodedRequest,
        timeout: Optional[float],
    ) -> Any:
        url = self._base_url + request.path
        data = None if request.body is None else json.dumps(request.body).encode("utf-8")
        LOGGER.debug("Session %s: %s %s", self._id, request.method, request.path)
        send = asyncio.ensure_future(
            self._transport.send(request.method, url, self._headers, data)
        )
        try:
            response = await asyncio.wait_for(asyncio.shield(send), timeout)
        except asyncio.TimeoutError:
            self._poisoned = send
            raise Timeout(
                f"{command.name.value} did not complete within {timeout}s",
                status="timeout",
            ) from None
        except asyncio.CancelledError:
            if not send.done():
                self._poisoned = send
            raise
        return codec.decode_response(self._dialect, command, response.status, _parse_body(response))

    async def _drain_poisoned(self) -> None:
        pending = self._poisoned
        if pending is None:
            return
        LOGGER.debug("Session %s: waiting for the reply to a timed-out command", self._id)
        try:
            response = await asyncio.shield(pending)
        except WebDriverError as exc:
            LOGGER.warning("Timed-out command on session %s failed late: %s", self._id, exc)
        else:
            LOGGER.debug("Session %s: discarded late reply (HTTP %s)", self._id, response.status)
        self._poisoned = None

    def _ensure_open(self, command: Command) -> None:
        if self._closed:
            raise SessionClosed(
                f"session {self._id} is closed; cannot run {command.name.value}",
                status="session closed",
            )

    # Lifecycle ------------------------------------------------------------

    def persist(self) -> None:
        """Keep the remote session alive when this client closes."""

        self._persist = True

    async def close(self) -> None:
        """End the session. Safe to call more than once.

        Commands still queued behind the close fail with
        :class:`~remote_webdriver.errors.SessionClosed`. Failures while
        deleting the remote session are logged, not raised. A delete that
        outlives ``command_timeout`` is cancelled before the transport closes.
        """

        if self._closed:
            return
        self._closed = True
        try:
            async with self._lock:
                await self._drain_poisoned()
                if self._persist:
                    LOGGER.info("Leaving session %s open at %s", self._id, self._base_url)
                else:
                    await self._delete_remote()
        finally:
            await self._abandon_poisoned()
            if self._owns_transport:
                await self._transport.aclose()

    async def _abandon_poisoned(self) -> None:
        # A DELETE that outlived command_timeout must not outlive the transport.
        pending, self._poisoned = self._poisoned, None
        if pending is None:
            return
        pending.cancel()
        await asyncio.wait([pending])
        if not pending.cancelled() and pending.exception() is not None:
            LOGGER.warning(
                "Timed-out command on session %s failed late: %s", self._id, pending.exception()
            )

    async def _delete_remote(self) -> None:
        command = Command(CommandName.DELETE_SESSION)
        request = codec.encode_command(self._dialect, command, self._id)
        _RETIRED_SESSIONS.add((self._base_url, self._id))
        try:
            await self._dispatch(command, request, self._command_timeout)
        except WebDriverError as exc:
            LOGGER.warning("Failed to delete session %s: %s", self._id, exc)
        else:
            LOGGER.info("Closed session %s", self._id)

    async def __aenter__(self) -> "Session":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # Navigation -----------------------------------------------------------

    async def goto(self, url: str) -> None:
        """Navigate to ``url``, resolved against the current URL if relative."""

        await self.execute(Command(CommandName.GET, body={"url": await self.resolve_url(url)}))

    async def resolve_url(self, url: str) -> str:
        if urlsplit(url).scheme:
            return url
        return urljoin(await self.current_url(), url)

    async def current_url(self) -> str:
        value = codec.expect_str(await self.execute(Command(CommandName.GET_CURRENT_URL)))
        return value or "about:blank"

    async def back(self) -> None:
        await self.execute(Command(CommandName.BACK))

    async def forward(self) -> None:
        await self.execute(Command(CommandName.FORWARD))

    async def refresh(self) -> None:
        await self.execute(Command(CommandName.REFRESH))

    async def title(self) -> str:
        return codec.expect_str(await self.execute(Command(CommandName.GET_TITLE)))

    async def source(self) -> str:
        return codec.expect_str(await self.execute(Command(CommandName.GET_PAGE_SOURCE)))

    # Scripts --------------------------------------------------------------

    async def execute_script(self, script: str, *args: Any) -> Any:
        """Run ``script`` synchronously in the page.

        :class:`Element` arguments are passed as element references and
        element references in the result come back as :class:`Element`.
        """

        return await self._run_script(CommandName.EXECUTE_SCRIPT, script, args)

    async def execute_async_script(self, script: str, *args: Any) -> Any:
        """Run ``script`` asynchronously; it must call ``arguments[arguments.length - 1]``."""

        return await self._run_script(CommandName.EXECUTE_ASYNC_SCRIPT, script, args)

    async def _run_script(self, name: CommandName, script: str, args: Sequence[Any]) -> Any:
        body = {"script": script, "args": [self._to_wire(arg) for arg in args]}
        result = await self.execute(Command(name, body=body, expects_element_refs=True))
        return self._from_wire(result)

    def _to_wire(self, value: Any) -> Any:
        if isinstance(value, Element):
            if value.session is not self:
                raise ValueError(f"{value!r} belongs to a different session")
            return value.ref
        if isinstance(value, Mapping):
            return {key: self._to_wire(item) for key, item in value.items()}
        if isinstance(value, (list, tuple)):
            return [self._to_wire(item) for item in value]
        return value

    def _from_wire(self, value: Any) -> Any:
        if isinstance(value, ElementRef):
            return Element(self, value.id)
        if isinstance(value, dict):
            return {key: self._from_wire(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self._from_wire(item) for item in value]
        return value

    # Windows and frames ---------------------------------------------------

    async def screenshot(self) -> bytes:
        """Return a PNG screenshot of the current viewport."""

        return codec.decode_png(await self.execute(Command(CommandName.TAKE_SCREENSHOT)))

    async def window(self) -> str:
        return codec.expect_str(await self.execute(Command(CommandName.GET_WINDOW_HANDLE)))

    async def windows(self) -> list[str]:
        handles = await self.execute(Command(CommandName.GET_WINDOW_HANDLES))
        if not isinstance(handles, list) or not all(isinstance(item, str) for item in handles):
            raise MalformedResponse("webdriver returned invalid window handles", handles)
        return handles

    async def switch_to_window(self, handle: str) -> None:
        await self.execute(Command(CommandName.SWITCH_TO_WINDOW, body={"handle": handle}))

    async def close_window(self) -> None:
        """Close the current window; the session stays open."""

        await self.execute(Command(CommandName.CLOSE_WINDOW))

    async def new_window(self, as_tab: bool = True) -> NewWindow:
        body = {"type": "tab" if as_tab else "window"}
        value = await self.execute(Command(CommandName.NEW_WINDOW, body=body))
        return _validate(NewWindow, value)

    async def enter_frame(self, frame: Union[int, Element, None] = None) -> None:
        """Switch to a child frame by index or element, or to the top document."""

        target = self._to_wire(frame)
        await self.execute(Command(CommandName.SWITCH_TO_FRAME, body={"id": target}))

    async def enter_parent_frame(self) -> None:
        await self.execute(Command(CommandName.SWITCH_TO_PARENT_FRAME))

    async def get_window_rect(self) -> WindowRect:
        return _validate(WindowRect, await self.execute(Command(CommandName.GET_WINDOW_RECT)))

    async def set_window_rect(
        self,
        x: Optional[int] = None,
        y: Optional[int] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> WindowRect:
        body = {
            key: value
            for key, value in {"x": x, "y": y, "width": width, "height": height}.items()
            if value is not None
        }
        value = await self.execute(Command(CommandName.SET_WINDOW_RECT, body=body))
        return _validate(WindowRect, value)

    async def maximize_window(self) -> None:
        await self.execute(Command(CommandName.MAXIMIZE_WINDOW))

    # Timeouts -------------------------------------------------------------

    async def get_timeouts(self) -> TimeoutConfiguration:
        value = await self.execute(Command(CommandName.GET_TIMEOUTS))
        return _validate(TimeoutConfiguration, value)

    async def update_timeouts(self, timeouts: TimeoutConfiguration) -> None:
        # One request per timeout so both dialects accept the body.
        for key, value in timeouts.to_wire().items():
            await self.execute(Command(CommandName.SET_TIMEOUTS, body={key: value}))

    # Alerts ---------------------------------------------------------------

    async def active_element(self) -> Element:
        value = await self.execute(Command(CommandName.GET_ACTIVE_ELEMENT, expects_element_refs=True))
        if not isinstance(value, ElementRef):
            raise MalformedResponse("webdriver returned no active element", value)
        return Element(self, value.id)

    async def get_alert_text(self) -> Optional[str]:
        value = await self.execute(Command(CommandName.GET_ALERT_TEXT))
        if value is not None and not isinstance(value, str):
            raise MalformedResponse("webdriver returned invalid alert text", value)
        return value

    async def send_alert_text(self, text: str) -> None:
        await self.execute(Command(CommandName.SEND_ALERT_TEXT, body={"text": text}))

    async def accept_alert(self) -> None:
        await self.execute(Command(CommandName.ACCEPT_ALERT))

    async def dismiss_alert(self) -> None:
        await self.execute(Command(CommandName.DISMISS_ALERT))

    # Delegates ------------------------------------------------------------

    async def find(self, locator: Locator) -> Element:
        return await locators.find(self, locator)

    async def find_all(self, locator: Locator) -> list[Element]:
        return await locators.find_all(self, locator)

    async def wait_for(
        self,
        locator: Locator,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
    ) -> Element:
        return await locators.wait_for(self, locator, timeout=timeout, poll_interval=poll_interval)

    async def wait_for_url(
        self,
        url: str,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
    ) -> None:
        await locators.wait_for_url(self, url, timeout=timeout, poll_interval=poll_interval)

    async def form(self, locator: Locator) -> "forms.Form":
        return await forms.Form.locate(self, locator)

    async def cookies(self) -> list[Cookie]:
        return await cookie_bridge.current_cookies(self)


async def _handshake(
    transport: Transport,
    url: str,
    headers: Mapping[str, str],
    capabilities: Mapping[str, Any],
) -> tuple[codec.NewSession, Dialect]:
    body = codec.encode_new_session(Dialect.W3C, capabilities)
    status, payload = await _roundtrip(transport, url, headers, body)
    if codec.is_legacy_session(payload):
        return codec.parse_new_session(Dialect.LEGACY, status, payload), Dialect.LEGACY
    if not codec.indicates_legacy(status, payload):
        return codec.parse_new_session(Dialect.W3C, status, payload), Dialect.W3C

    LOGGER.debug("W3C session request rejected (HTTP %s); retrying as legacy", status)
    body = codec.encode_new_session(Dialect.LEGACY, capabilities)
    status, payload = await _roundtrip(transport, url, headers, body)
    try:
        return codec.parse_new_session(Dialect.LEGACY, status, payload), Dialect.LEGACY
    except SessionNotCreated as exc:
        raise SessionNotCreated(
            f"webdriver rejected both W3C and legacy session requests: {exc.message}",
            status=exc.status,
            remote_stacktrace=exc.remote_stacktrace,
            data=exc.data,
        ) from exc


def _live_owner(key: tuple[str, str]) -> Optional["Session"]:
    existing = _LIVE_SESSIONS.get(key)
    if existing is None or existing.closed:
        return None
    return existing


async def _discard_remote(
    transport: Transport,
    root: str,
    headers: Mapping[str, str],
    dialect: Dialect,
    session_id: str,
) -> None:
    request = codec.encode_command(dialect, Command(CommandName.DELETE_SESSION), session_id)
    try:
        await transport.send(request.method, root + request.path, headers, None)
    except WebDriverError as exc:
        LOGGER.warning("Failed to delete refused session %s: %s", session_id, exc)
    else:
        LOGGER.info("Deleted refused session %s", session_id)


async def _roundtrip(
    transport: Transport,
    url: str,
    headers: Mapping[str, str],
    body: Any,
) -> tuple[int, Any]:
    response = await transport.send("POST", url, headers, json.dumps(body).encode("utf-8"))
    return response.status, _parse_body(response)


def _parse_body(response: TransportResponse) -> Any:
    """Return the decoded JSON body, or the raw text if it is not JSON."""

    text = response.body.decode("utf-8", errors="replace")
    if not text.strip():
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def _split_base_url(base_url: str) -> tuple[str, dict[str, str]]:
    parts = urlsplit(base_url.strip())
    if parts.scheme not in {"http", "https"} or not parts.hostname:
        raise ValueError(f"invalid WebDriver URL: {base_url!r}")
    headers: dict[str, str] = {}
    netloc = parts.netloc
    if "@" in netloc:
        credentials = f"{unquote(parts.username or '')}:{unquote(parts.password or '')}"
        token = base64.b64encode(credentials.encode("utf-8")).decode("ascii")
        headers["Authorization"] = f"Basic {token}"
        netloc = netloc.rsplit("@", 1)[1]
    return urlunsplit((parts.scheme, netloc, parts.path.rstrip("/"), "", "")), headers


def _request_headers(extra: Mapping[str, str], user_agent: Optional[str]) -> dict[str, str]:
    headers = dict(_JSON_HEADERS)
    headers.update(extra)
    if user_agent:
        headers["User-Agent"] = user_agent
    return headers


def _validate(model: Any, value: Any) -> Any:
    try:
        return model.model_validate(value)
    except ValueError as exc:
        raise MalformedResponse(f"webdriver returned an invalid {model.__name__}", value) from exc

