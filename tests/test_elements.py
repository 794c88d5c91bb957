import gc

import pytest

from conftest import BASE_URL, RecordingTransport, w3c
from remote_webdriver.elements import Element
from remote_webdriver.errors import MalformedResponse, SessionClosed, UnsupportedCommandError
from remote_webdriver.models import Dialect, ElementRect
from remote_webdriver.protocol.codec import W3C_ELEMENT_KEY
from remote_webdriver.session import Session


@pytest.mark.asyncio
async def test_state_queries() -> None:
    transport = RecordingTransport([w3c(True), w3c(False), w3c("INPUT"), w3c("search")])
    session = Session.attach(BASE_URL, "abc", transport=transport)
    element = Element(session, "e1")

    assert await element.is_displayed() is True
    assert await element.is_enabled() is False
    assert await element.tag_name() == "INPUT"
    assert await element.attr("type") == "search"
    assert transport.paths == [
        "/session/abc/element/e1/displayed",
        "/session/abc/element/e1/enabled",
        "/session/abc/element/e1/name",
        "/session/abc/element/e1/attribute/type",
    ]


@pytest.mark.asyncio
async def test_boolean_queries_reject_other_values() -> None:
    session = Session.attach(BASE_URL, "abc", transport=RecordingTransport([w3c("yes")]))

    with pytest.raises(MalformedResponse):
        await Element(session, "e1").is_selected()


@pytest.mark.asyncio
async def test_prop_renders_scalars_as_strings() -> None:
    transport = RecordingTransport([w3c(True), w3c(3), w3c(None)])
    session = Session.attach(BASE_URL, "abc", transport=transport)
    element = Element(session, "e1")

    assert await element.prop("checked") == "true"
    assert await element.prop("tabIndex") == "3"
    assert await element.prop("missing") is None


@pytest.mark.asyncio
async def test_rect_and_html() -> None:
    transport = RecordingTransport(
        [w3c({"x": 1, "y": 2.5, "width": 30, "height": 40}), w3c("<b>hi</b>")]
    )
    session = Session.attach(BASE_URL, "abc", transport=transport)
    element = Element(session, "e1")

    assert await element.rect() == ElementRect(x=1, y=2.5, width=30, height=40)
    assert await element.html(inner=True) == "<b>hi</b>"
    assert transport.paths[1] == "/session/abc/element/e1/property/innerHTML"


@pytest.mark.asyncio
async def test_send_keys_and_click() -> None:
    transport = RecordingTransport()
    session = Session.attach(BASE_URL, "abc", transport=transport)
    element = Element(session, "e1")

    await element.send_keys("hello")
    await element.click()

    assert transport.requests[0].body == {"text": "hello"}
    assert transport.paths[1] == "/session/abc/element/e1/click"


@pytest.mark.asyncio
async def test_follow_navigates_to_href() -> None:
    transport = RecordingTransport([w3c("/next"), w3c("https://example.com/page"), w3c(None)])
    session = Session.attach(BASE_URL, "abc", transport=transport)

    await Element(session, "link").follow()

    assert transport.requests[2].body == {"url": "https://example.com/next"}


@pytest.mark.asyncio
async def test_select_by_label_clicks_matching_option() -> None:
    transport = RecordingTransport([w3c({W3C_ELEMENT_KEY: "opt-2"}), w3c(None)])
    session = Session.attach(BASE_URL, "abc", transport=transport)

    await Element(session, "select-1").select_by_label("Bob's")

    assert transport.requests[0].body == {
        "using": "xpath",
        "value": ".//option[normalize-space(.)=\"Bob's\"]",
    }
    assert transport.paths[1] == "/session/abc/element/opt-2/click"


@pytest.mark.asyncio
async def test_w3c_only_element_commands_fail_locally_under_legacy() -> None:
    transport = RecordingTransport()
    session = Session.attach(BASE_URL, "abc", dialect=Dialect.LEGACY, transport=transport)

    with pytest.raises(UnsupportedCommandError):
        await Element(session, "e1").rect()
    assert transport.requests == []


def test_handle_does_not_keep_session_alive() -> None:
    session = Session.attach(BASE_URL, "abc", transport=RecordingTransport())
    element = Element(session, "e1")

    del session
    gc.collect()

    with pytest.raises(SessionClosed):
        element.session


def test_elements_compare_by_session_and_id() -> None:
    session = Session.attach(BASE_URL, "abc", transport=RecordingTransport())

    assert Element(session, "e1") == Element(session, "e1")
    assert Element(session, "e1") != Element(session, "e2")
    assert len({Element(session, "e1"), Element(session, "e1")}) == 1


@pytest.mark.asyncio
async def test_named_lookups_put_the_name_in_the_path() -> None:
    transport = RecordingTransport([w3c("rgb(0, 0, 0)"), w3c("text"), w3c(True)])
    session = Session.attach(BASE_URL, "abc", transport=transport)
    element = Element(session, "e1")

    assert await element.css_value("color") == "rgb(0, 0, 0)"
    assert await element.attr("type") == "text"
    assert await element.prop("disabled") == "true"
    assert transport.paths == [
        "/session/abc/element/e1/css/color",
        "/session/abc/element/e1/attribute/type",
        "/session/abc/element/e1/property/disabled",
    ]
