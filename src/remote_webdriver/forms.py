"""Batched form filling and submission."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional, Union

from .elements import Element
from .errors import MalformedResponse, NoSuchElement, UnsupportedField, WebDriverError
from .locators import find
from .models import Locator

if TYPE_CHECKING:
    from .session import Session

LOGGER = logging.getLogger(__name__)

FieldValue = Union[str, bool, int, float]

_TEXT_TYPES = (
    "text",
    "search",
    "email",
    "url",
    "tel",
    "password",
    "number",
    "date",
    "datetime-local",
    "month",
    "week",
    "time",
    "color",
    "range",
    "hidden",
)

# arguments: form, field element or null, field name, value.
# Returns null on success or {error, message} describing the failure.
_SET_FIELD_SCRIPT = """
var form = arguments[0], field = arguments[1], name = arguments[2], value = arguments[3];
if (!field) {
  var candidates = form.elements;
  for (var i = 0; i < candidates.length; i++) {
    if (candidates[i].name === name) { field = candidates[i]; break; }
  }
}
if (!field) {
  return {error: 'no such element', message: 'form has no field named ' + name};
}
var tag = field.tagName.toLowerCase();
var type = (field.getAttribute('type') || 'text').toLowerCase();
function fire(kind) { field.dispatchEvent(new Event(kind, {bubbles: true})); }
if (tag === 'select') {
  var wanted = String(value);
  for (var j = 0; j < field.options.length; j++) {
    var option = field.options[j];
    if (option.value === wanted || option.text.trim() === wanted) {
      option.selected = true;
      fire('input');
      fire('change');
      return null;
    }
  }
  return {error: 'no such element', message: 'no option ' + wanted + ' in select ' + (field.name || '')};
}
if (tag === 'input' && (type === 'checkbox' || type === 'radio')) {
  var desired = typeof value === 'boolean'
    ? value
    : ['', 'false', '0', 'off'].indexOf(String(value).toLowerCase()) < 0;
  if (field.checked !== desired) {
    if (type === 'radio' && !desired) {
      field.checked = false;
      fire('change');
    } else {
      field.click();
    }
  }
  return null;
}
if (tag === 'textarea' || (tag === 'input' && %(text_types)s.indexOf(type) >= 0)) {
  field.value = String(value);
  fire('input');
  fire('change');
  return null;
}
return {error: 'unsupported field', message: tag === 'input' ? 'input[type=' + type + ']' : tag};
""" % {"text_types": "[" + ", ".join(f"'{kind}'" for kind in _TEXT_TYPES) + "]"}


@dataclass(frozen=True)
class FieldOperation:
    """A queued assignment of ``value`` to one form field."""

    field: Union[str, Locator]
    value: FieldValue


class Form:
    """A ``<form>`` element with locally queued field assignments.

    :meth:`set` only records what to do. The queue is sent, one script
    call per field in insertion order, when the form is submitted.
    """

    def __init__(self, element: Element) -> None:
        self._element = element
        self._pending: list[FieldOperation] = []

    @classmethod
    async def locate(cls, scope: Union["Session", Element], locator: Locator) -> "Form":
        return cls(await find(scope, locator))

    @property
    def element(self) -> Element:
        return self._element

    @property
    def pending(self) -> tuple[FieldOperation, ...]:
        return tuple(self._pending)

    def set(self, field: Union[str, Locator], value: FieldValue) -> "Form":
        """Queue setting ``field`` (a field name or a locator) to ``value``.

        Nothing is sent here, so only the value's type is checked now. A
        field that is missing or of a kind that cannot be set (a file
        input, say) is found when :meth:`submit` applies the queue, and
        raises :class:`~remote_webdriver.errors.UnsupportedField` or
        :class:`~remote_webdriver.errors.NoSuchElement` from there with
        ``operation_index`` pointing at this call.
        """

        if not isinstance(value, (str, bool, int, float)):
            raise UnsupportedField(
                f"cannot set {field} to a {type(value).__name__}",
                status="unsupported field",
            )
        if not isinstance(field, (str, Locator)):
            raise TypeError(f"field must be a name or a Locator, not {type(field).__name__}")
        self._pending.append(FieldOperation(field, value))
        return self

    async def submit(self) -> None:
        """Apply queued fields, then submit the form directly."""

        await self._flush()
        await self._element.submit()

    async def submit_with(self, button: Locator) -> None:
        """Apply queued fields, then click the submit control matching ``button``."""

        await self._flush()
        control = await self._element.find(button)
        await control.click()

    async def submit_using(self, label: str) -> None:
        """Apply queued fields, then click the submit control whose value is ``label``."""

        escaped = label.replace("\\", "\\\\").replace('"', '\\"')
        await self.submit_with(
            Locator.css(
                f'input[type=submit][value="{escaped}" i], button[type=submit][value="{escaped}" i]'
            )
        )

    async def _flush(self) -> None:
        operations, self._pending = self._pending, []
        for index, operation in enumerate(operations):
            try:
                await self._apply(operation)
            except WebDriverError as exc:
                exc.operation_index = index
                LOGGER.debug("Setting form field %s failed: %s", operation.field, exc)
                raise

    async def _apply(self, operation: FieldOperation) -> None:
        target: Optional[Element] = None
        name: Optional[str] = None
        if isinstance(operation.field, Locator):
            target = await self._element.find(operation.field)
        else:
            name = operation.field
        result = await self._element.session.execute_script(
            _SET_FIELD_SCRIPT, self._element, target, name, operation.value
        )
        _check_result(operation, result)


def _check_result(operation: FieldOperation, result: Any) -> None:
    if result is None:
        return
    if isinstance(result, dict):
        error = result.get("error")
        message = str(result.get("message", operation.field))
        if error == "unsupported field":
            raise UnsupportedField(f"cannot fill {message}", status="unsupported field")
        if error == "no such element":
            raise NoSuchElement(message, status="no such element")
    raise MalformedResponse(f"unexpected result while setting {operation.field}", result)
