"""Shared models used across the WebDriver client."""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Dialect(str, enum.Enum):
    """Wire protocol variant spoken by the remote end."""

    W3C = "w3c"
    LEGACY = "legacy"


class LocatorStrategy(str, enum.Enum):
    """Element lookup strategies understood by :class:`Locator`."""

    CSS = "css selector"
    XPATH = "xpath"
    ID = "id"
    LINK_TEXT = "link text"
    PARTIAL_LINK_TEXT = "partial link text"


class Locator(BaseModel):
    """How to find one or more elements in the remote document."""

    model_config = ConfigDict(frozen=True)

    strategy: LocatorStrategy
    value: str

    @classmethod
    def css(cls, selector: str) -> "Locator":
        return cls(strategy=LocatorStrategy.CSS, value=selector)

    @classmethod
    def xpath(cls, expression: str) -> "Locator":
        return cls(strategy=LocatorStrategy.XPATH, value=expression)

    @classmethod
    def id(cls, element_id: str) -> "Locator":
        return cls(strategy=LocatorStrategy.ID, value=element_id)

    @classmethod
    def link_text(cls, text: str) -> "Locator":
        return cls(strategy=LocatorStrategy.LINK_TEXT, value=text)

    @classmethod
    def partial_link_text(cls, text: str) -> "Locator":
        return cls(strategy=LocatorStrategy.PARTIAL_LINK_TEXT, value=text)

    def __str__(self) -> str:
        return f"{self.strategy.value}={self.value!r}"


class Cookie(BaseModel):
    """A cookie as reported by (or sent to) the remote cookie jar."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    value: str
    domain: Optional[str] = None
    path: Optional[str] = None
    secure: bool = False
    http_only: bool = Field(default=False, alias="httpOnly")
    expiry: Optional[int] = Field(default=None, description="Expiry as seconds since the epoch.")
    same_site: Optional[str] = Field(default=None, alias="sameSite")

    @field_validator("expiry", mode="before")
    @classmethod
    def _truncate_expiry(cls, value: Any) -> Any:
        # Some drivers report fractional expiry timestamps.
        if isinstance(value, float):
            return int(value)
        return value

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class WindowRect(BaseModel):
    x: int
    y: int
    width: int
    height: int


class ElementRect(BaseModel):
    x: float
    y: float
    width: float
    height: float


class TimeoutConfiguration(BaseModel):
    """Session timeouts in milliseconds."""

    model_config = ConfigDict(populate_by_name=True)

    script: Optional[int] = None
    page_load: Optional[int] = Field(default=None, alias="pageLoad")
    implicit: Optional[int] = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class NewWindowType(str, enum.Enum):
    TAB = "tab"
    WINDOW = "window"


class NewWindow(BaseModel):
    handle: str
    type: NewWindowType
