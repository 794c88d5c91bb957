"""Factories for constructing components from configuration."""

from __future__ import annotations

from typing import Optional

import httpx

from .config import ClientConfig, HttpConfig
from .models import Dialect
from .session import Session
from .transport.base import Transport
from .transport.httpx_transport import HttpxTransport


def build_transport(config: HttpConfig) -> HttpxTransport:
    timeout = httpx.Timeout(config.timeout, connect=config.connect_timeout)
    return HttpxTransport(timeout=timeout, verify=config.verify)


async def open_session(config: ClientConfig, *, transport: Optional[Transport] = None) -> Session:
    """Open a session at ``config.webdriver_url``.

    A transport built here is owned by the session and closed with it.
    """

    session = await Session.open(
        config.webdriver_url,
        config.capabilities,
        transport=transport or build_transport(config.http),
        command_timeout=config.command_timeout,
        user_agent=config.user_agent,
        wait=config.wait,
        owns_transport=transport is None,
    )
    if config.persist:
        session.persist()
    return session


def attach_session(
    config: ClientConfig,
    session_id: str,
    *,
    dialect: Dialect = Dialect.W3C,
    transport: Optional[Transport] = None,
) -> Session:
    session = Session.attach(
        config.webdriver_url,
        session_id,
        dialect=dialect,
        transport=transport or build_transport(config.http),
        command_timeout=config.command_timeout,
        user_agent=config.user_agent,
        wait=config.wait,
        owns_transport=transport is None,
    )
    if config.persist:
        session.persist()
    return session

