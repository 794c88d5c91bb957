import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

import httpx
import pytest
import pytest_asyncio
from fastapi import Body, FastAPI
from fastapi.responses import JSONResponse

from remote_webdriver import session as session_module
from remote_webdriver.protocol.codec import LEGACY_ELEMENT_KEY, W3C_ELEMENT_KEY
from remote_webdriver.transport.base import Transport, TransportResponse

BASE_URL = "http://webdriver.test"


def w3c(value: Any = None, status: int = 200) -> TransportResponse:
    return TransportResponse(status=status, body=json.dumps({"value": value}).encode())


def w3c_error(error: str, message: str, status: int = 404) -> TransportResponse:
    return w3c({"error": error, "message": message, "stacktrace": ""}, status=status)


def legacy(value: Any = None, code: int = 0, session_id: Optional[str] = "legacy-1") -> TransportResponse:
    payload = {"status": code, "value": value, "sessionId": session_id}
    return TransportResponse(status=200 if code == 0 else 500, body=json.dumps(payload).encode())


def raw(body: str, status: int = 200) -> TransportResponse:
    return TransportResponse(status=status, body=body.encode())


@dataclass
class RecordedRequest:
    method: str
    url: str
    headers: dict[str, str]
    body: Any

    @property
    def path(self) -> str:
        return self.url[len(BASE_URL):]


Reply = Union[TransportResponse, Exception, Callable[[RecordedRequest], Any]]


class RecordingTransport(Transport):
    """Transport stub that records requests in receipt order.

    Replies are taken from ``responses`` in order; once it runs out every
    request gets an empty W3C success. A reply may be a callable, which
    receives the request and may return an awaitable.
    """

    def __init__(self, responses: Optional[list[Reply]] = None) -> None:
        self.responses: list[Reply] = list(responses or [])
        self.requests: list[RecordedRequest] = []
        self.closed = False

    async def send(self, method, url, headers, body):  # type: ignore[no-untyped-def]
        request = RecordedRequest(method, url, dict(headers), json.loads(body) if body else None)
        self.requests.append(request)
        reply: Any = self.responses.pop(0) if self.responses else w3c(None)
        if callable(reply):
            reply = reply(request)
            if asyncio.iscoroutine(reply):
                reply = await reply
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def aclose(self) -> None:
        self.closed = True

    @property
    def paths(self) -> list[str]:
        return [request.path for request in self.requests]


@pytest.fixture(autouse=True)
def _reset_session_registry():
    yield
    session_module._LIVE_SESSIONS.clear()
    session_module._RETIRED_SESSIONS.clear()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@dataclass
class FakeBrowser:
    """State behind the FastAPI stand-in for a WebDriver endpoint."""

    legacy: bool = False
    url: str = ""
    title: str = "Fake page"
    elements: dict[str, str] = field(default_factory=dict)
    texts: dict[str, str] = field(default_factory=dict)
    cookies: list[dict[str, Any]] = field(default_factory=list)
    new_session_bodies: list[dict[str, Any]] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)


def build_fake_webdriver(browser: FakeBrowser) -> FastAPI:
    app = FastAPI()

    def ok(value: Any, session_id: str = "fake-1") -> dict[str, Any]:
        if browser.legacy:
            return {"status": 0, "sessionId": session_id, "value": value}
        return {"value": value}

    def element(element_id: str) -> dict[str, str]:
        return {LEGACY_ELEMENT_KEY if browser.legacy else W3C_ELEMENT_KEY: element_id}

    @app.post("/session")
    async def new_session(payload: dict = Body(...)):
        browser.new_session_bodies.append(payload)
        if browser.legacy:
            if "desiredCapabilities" not in payload:
                return JSONResponse(
                    status_code=500,
                    content={
                        "status": 13,
                        "value": {"message": "cannot find dict 'desiredCapabilities'"},
                    },
                )
            return {"status": 0, "sessionId": "fake-1", "value": {"browserName": "fake"}}
        return {"value": {"sessionId": "fake-1", "capabilities": {"browserName": "fake"}}}

    @app.delete("/session/{session_id}")
    async def delete_session(session_id: str):
        browser.deleted.append(session_id)
        return ok(None, session_id)

    @app.post("/session/{session_id}/url")
    async def navigate(session_id: str, payload: dict = Body(...)):
        browser.url = payload["url"]
        return ok(None, session_id)

    @app.get("/session/{session_id}/url")
    async def current_url(session_id: str):
        return ok(browser.url, session_id)

    @app.get("/session/{session_id}/title")
    async def title(session_id: str):
        return ok(browser.title, session_id)

    @app.post("/session/{session_id}/element")
    async def find_element(session_id: str, payload: dict = Body(...)):
        element_id = browser.elements.get(payload["value"])
        if element_id is not None:
            return ok(element(element_id), session_id)
        message = f"no element matches {payload['value']}"
        if browser.legacy:
            return JSONResponse(status_code=500, content={"status": 7, "value": {"message": message}})
        return JSONResponse(
            status_code=404,
            content={"value": {"error": "no such element", "message": message, "stacktrace": ""}},
        )

    @app.post("/session/{session_id}/elements")
    async def find_elements(session_id: str, payload: dict = Body(...)):
        element_id = browser.elements.get(payload["value"])
        return ok([element(element_id)] if element_id else [], session_id)

    @app.get("/session/{session_id}/element/{element_id}/text")
    async def element_text(session_id: str, element_id: str):
        return ok(browser.texts.get(element_id, ""), session_id)

    @app.get("/session/{session_id}/cookie")
    async def cookies(session_id: str):
        return ok(browser.cookies, session_id)

    return app


@pytest.fixture
def fake_browser() -> FakeBrowser:
    return FakeBrowser()


@pytest_asyncio.fixture
async def fake_client(fake_browser: FakeBrowser):
    app = build_fake_webdriver(fake_browser)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app)) as client:
        yield client
