import asyncio

import pytest

from conftest import BASE_URL, RecordingTransport, legacy, w3c, w3c_error
from remote_webdriver.config import WaitConfig
from remote_webdriver.errors import MalformedResponse, NoSuchElement, StaleElement, Timeout
from remote_webdriver.models import Dialect, Locator
from remote_webdriver.protocol.codec import LEGACY_ELEMENT_KEY, W3C_ELEMENT_KEY
from remote_webdriver.session import Session


def _session(transport: RecordingTransport, dialect: Dialect = Dialect.W3C) -> Session:
    return Session.attach(
        BASE_URL,
        "abc",
        dialect=dialect,
        transport=transport,
        wait=WaitConfig(timeout=1.0, poll_interval=0.02),
    )


@pytest.mark.asyncio
async def test_find_returns_element_bound_to_session() -> None:
    transport = RecordingTransport([w3c({W3C_ELEMENT_KEY: "e1"})])
    session = _session(transport)

    element = await session.find(Locator.xpath("//input"))

    assert element.id == "e1"
    assert element.session is session
    assert transport.requests[0].body == {"using": "xpath", "value": "//input"}


@pytest.mark.asyncio
async def test_find_raises_no_such_element() -> None:
    session = _session(RecordingTransport([w3c_error("no such element", "nothing")]))

    with pytest.raises(NoSuchElement):
        await session.find(Locator.css(".missing"))


@pytest.mark.asyncio
async def test_find_all_with_no_matches_is_empty() -> None:
    session = _session(RecordingTransport([w3c([])]))

    assert await session.find_all(Locator.css(".missing")) == []


@pytest.mark.asyncio
async def test_find_rejects_non_element_results() -> None:
    session = _session(RecordingTransport([w3c("not an element")]))

    with pytest.raises(MalformedResponse):
        await session.find(Locator.css("p"))


@pytest.mark.asyncio
async def test_scoped_find_uses_element_routes() -> None:
    transport = RecordingTransport(
        [w3c({W3C_ELEMENT_KEY: "form"}), w3c([{W3C_ELEMENT_KEY: "a"}, {W3C_ELEMENT_KEY: "b"}])]
    )
    session = _session(transport)

    form = await session.find(Locator.css("form"))
    inputs = await form.find_all(Locator.css("input"))

    assert [element.id for element in inputs] == ["a", "b"]
    assert transport.paths[1] == "/session/abc/element/form/elements"


@pytest.mark.asyncio
async def test_legacy_find_uses_legacy_element_key() -> None:
    transport = RecordingTransport([legacy({LEGACY_ELEMENT_KEY: "old-1"}, session_id="abc")])
    session = _session(transport, Dialect.LEGACY)

    element = await session.find(Locator.id("q"))

    assert element.id == "old-1"
    assert transport.requests[0].body == {"using": "id", "value": "q"}


@pytest.mark.asyncio
async def test_wait_for_returns_immediately_when_present() -> None:
    transport = RecordingTransport([w3c({W3C_ELEMENT_KEY: "e1"})])
    session = _session(transport)
    loop = asyncio.get_running_loop()

    started = loop.time()
    element = await session.wait_for(Locator.css("#ready"), timeout=5)

    assert element.id == "e1"
    assert loop.time() - started < 0.05
    assert len(transport.requests) == 1


@pytest.mark.asyncio
async def test_wait_for_polls_until_found() -> None:
    transport = RecordingTransport(
        [
            w3c_error("no such element", "not yet"),
            w3c_error("no such element", "not yet"),
            w3c({W3C_ELEMENT_KEY: "e1"}),
        ]
    )
    session = _session(transport)

    element = await session.wait_for(Locator.css("#later"), poll_interval=0.01)

    assert element.id == "e1"
    assert len(transport.requests) == 3


@pytest.mark.asyncio
async def test_wait_for_times_out_within_margin() -> None:
    transport = RecordingTransport([w3c_error("no such element", "never")] * 100)
    session = _session(transport)
    loop = asyncio.get_running_loop()

    started = loop.time()
    with pytest.raises(Timeout) as excinfo:
        await session.wait_for(Locator.css("#never"), timeout=0.1, poll_interval=0.02)
    elapsed = loop.time() - started

    assert 0.1 <= elapsed < 0.3
    assert isinstance(excinfo.value.__cause__, NoSuchElement)


@pytest.mark.asyncio
async def test_wait_for_propagates_other_errors() -> None:
    transport = RecordingTransport([w3c_error("stale element reference", "gone")])
    session = _session(transport)

    with pytest.raises(StaleElement):
        await session.wait_for(Locator.css("#x"), timeout=1)
    assert len(transport.requests) == 1


@pytest.mark.asyncio
async def test_wait_for_url() -> None:
    transport = RecordingTransport([w3c("https://example.com/login"), w3c("https://example.com/home")])
    session = _session(transport)

    await session.wait_for_url("https://example.com/home", poll_interval=0.01)

    assert len(transport.requests) == 2

