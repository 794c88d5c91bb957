import gc

import pytest

from conftest import BASE_URL, RecordingTransport, legacy, w3c, w3c_error
from remote_webdriver.elements import Element
from remote_webdriver.errors import NoSuchElement, SessionClosed, StaleElement, UnsupportedField
from remote_webdriver.forms import Form
from remote_webdriver.models import Dialect, Locator
from remote_webdriver.protocol.codec import LEGACY_ELEMENT_KEY, SUBMIT_SCRIPT, W3C_ELEMENT_KEY
from remote_webdriver.session import Session


async def _form(
    transport: RecordingTransport, dialect: Dialect = Dialect.W3C
) -> tuple[Session, Form]:
    # Elements only hold a weak reference, so callers keep the session alive.
    session = Session.attach(BASE_URL, "abc", dialect=dialect, transport=transport)
    form = await session.form(Locator.css("form#search"))
    transport.requests.clear()
    return session, form


@pytest.mark.asyncio
async def test_set_then_submit_makes_exactly_two_calls_in_order() -> None:
    transport = RecordingTransport([w3c({W3C_ELEMENT_KEY: "form-1"}), w3c(None), w3c(None)])
    session, form = await _form(transport)

    await form.set("q", "foo").submit()

    assert len(transport.requests) == 2
    assert not session.closed
    set_call, submit_call = transport.requests
    assert set_call.path == "/session/abc/execute/sync"
    assert set_call.body["args"] == [{W3C_ELEMENT_KEY: "form-1"}, None, "q", "foo"]
    assert submit_call.path == "/session/abc/execute/sync"
    assert submit_call.body == {"script": SUBMIT_SCRIPT, "args": [{W3C_ELEMENT_KEY: "form-1"}]}


@pytest.mark.asyncio
async def test_set_is_local_until_submit() -> None:
    transport = RecordingTransport([w3c({W3C_ELEMENT_KEY: "form-1"})])
    session, form = await _form(transport)

    form.set("q", "foo").set("remember", True)

    assert transport.requests == []
    assert [operation.field for operation in form.pending] == ["q", "remember"]


@pytest.mark.asyncio
async def test_legacy_submit_uses_submit_endpoint() -> None:
    transport = RecordingTransport(
        [
            legacy({LEGACY_ELEMENT_KEY: "form-1"}, session_id="abc"),
            legacy(None, session_id="abc"),
            legacy(None, session_id="abc"),
        ]
    )
    session, form = await _form(transport, Dialect.LEGACY)

    await form.set("q", "foo").submit()

    assert transport.paths == ["/session/abc/execute", "/session/abc/element/form-1/submit"]


@pytest.mark.asyncio
async def test_locator_fields_are_resolved_inside_the_form() -> None:
    transport = RecordingTransport(
        [w3c({W3C_ELEMENT_KEY: "form-1"}), w3c({W3C_ELEMENT_KEY: "field-9"}), w3c(None), w3c(None)]
    )
    session, form = await _form(transport)

    await form.set(Locator.css("input.query"), "bar").submit()

    assert transport.paths[0] == "/session/abc/element/form-1/element"
    assert transport.requests[1].body["args"] == [
        {W3C_ELEMENT_KEY: "form-1"},
        {W3C_ELEMENT_KEY: "field-9"},
        None,
        "bar",
    ]


def test_unsupported_values_are_rejected_immediately() -> None:
    transport = RecordingTransport()
    session = Session.attach(BASE_URL, "abc", transport=transport)
    form = Form(Element(session, "form-1"))

    with pytest.raises(UnsupportedField):
        form.set("upload", object())  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_unsupported_field_reports_operation_index() -> None:
    transport = RecordingTransport(
        [
            w3c({W3C_ELEMENT_KEY: "form-1"}),
            w3c(None),
            w3c({"error": "unsupported field", "message": "input[type=file]"}),
        ]
    )
    session, form = await _form(transport)

    with pytest.raises(UnsupportedField) as excinfo:
        await form.set("q", "foo").set("upload", "/tmp/x").submit()

    assert excinfo.value.operation_index == 1
    assert len(transport.requests) == 2
    assert form.pending == ()


@pytest.mark.asyncio
async def test_missing_field_raises_no_such_element() -> None:
    transport = RecordingTransport(
        [w3c({W3C_ELEMENT_KEY: "form-1"}), w3c({"error": "no such element", "message": "no field q"})]
    )
    session, form = await _form(transport)

    with pytest.raises(NoSuchElement) as excinfo:
        await form.set("q", "foo").submit()

    assert excinfo.value.operation_index == 0


@pytest.mark.asyncio
async def test_remote_error_while_setting_carries_index() -> None:
    transport = RecordingTransport(
        [w3c({W3C_ELEMENT_KEY: "form-1"}), w3c_error("stale element reference", "detached")]
    )
    session, form = await _form(transport)

    with pytest.raises(StaleElement) as excinfo:
        await form.set("q", "foo").submit()

    assert excinfo.value.operation_index == 0


@pytest.mark.asyncio
async def test_submit_with_clicks_button() -> None:
    transport = RecordingTransport(
        [w3c({W3C_ELEMENT_KEY: "form-1"}), w3c(None), w3c({W3C_ELEMENT_KEY: "button-2"}), w3c(None)]
    )
    session, form = await _form(transport)

    await form.set("q", "foo").submit_with(Locator.css("button.go"))

    assert transport.paths == [
        "/session/abc/execute/sync",
        "/session/abc/element/form-1/element",
        "/session/abc/element/button-2/click",
    ]


@pytest.mark.asyncio
async def test_submit_using_matches_button_value() -> None:
    transport = RecordingTransport(
        [w3c({W3C_ELEMENT_KEY: "form-1"}), w3c({W3C_ELEMENT_KEY: "button-2"}), w3c(None)]
    )
    session, form = await _form(transport)

    await form.submit_using("Search")

    assert 'value="Search" i' in transport.requests[0].body["value"]


@pytest.mark.asyncio
async def test_submit_after_session_is_dropped_raises_session_closed() -> None:
    transport = RecordingTransport([w3c({W3C_ELEMENT_KEY: "form-1"})])
    session, form = await _form(transport)
    del session
    gc.collect()

    with pytest.raises(SessionClosed):
        await form.set("q", "foo").submit()
    assert transport.requests == []
