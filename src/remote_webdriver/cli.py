"""Command line interface for remote-webdriver."""

from __future__ import annotations

import asyncio
import logging
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import cookies as cookie_bridge
from .config import ClientConfig, load_config
from .errors import WebDriverError
from .factory import attach_session, open_session
from .models import Cookie, Dialect, Locator

app = typer.Typer(help="Drive a remote browser over the WebDriver protocol")

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to YAML configuration."),
]
EnvFileOption = Annotated[
    Optional[Path],
    typer.Option("--env-file", help="Path to an .env file with default configuration values."),
]
WebDriverOption = Annotated[
    Optional[str],
    typer.Option("--webdriver", help="WebDriver endpoint, e.g. http://localhost:4444."),
]
KeepOpenOption = Annotated[
    bool,
    typer.Option("--keep-open", help="Leave the browser session running afterwards."),
]


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Configure logging before executing any command."""

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # httpx logs every WebDriver round trip at INFO.
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


@app.command()
def version() -> None:
    """Print the package version."""

    try:
        installed = get_version("remote-webdriver")
    except PackageNotFoundError:  # pragma: no cover - when running from source tree
        installed = "unknown"
    typer.echo(f"remote-webdriver {installed}")


@app.command()
def inspect(
    url: Annotated[str, typer.Argument(help="Page to open.")],
    selector: Annotated[
        Optional[str],
        typer.Option("--selector", "-s", help="CSS selector whose text to print."),
    ] = None,
    config_path: ConfigOption = None,
    env_file: EnvFileOption = None,
    webdriver: WebDriverOption = None,
    keep_open: KeepOpenOption = False,
) -> None:
    """Open a page and print its URL, title and cookies."""

    config = _load(config_path, env_file, webdriver, persist=True if keep_open else None)
    report = _run(_inspect(config, url, selector))

    console = Console()
    console.print(f"[bold]URL:[/bold] {escape(report['url'])}")
    console.print(f"[bold]Title:[/bold] {escape(report['title'])}")
    if selector:
        console.print(f"[bold]{escape(selector)}:[/bold] {escape(report['text'])}")
    console.print(_cookie_table(report["cookies"]))
    if config.persist:
        console.print(f"Session {report['session_id']} left open at {config.webdriver_url}")


@app.command()
def fetch(
    page: Annotated[str, typer.Argument(help="Page to open first; its cookies are reused.")],
    resource: Annotated[str, typer.Argument(help="URL to download, relative to the page.")],
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Write the body to this file instead of stdout."),
    ] = None,
    config_path: ConfigOption = None,
    env_file: EnvFileOption = None,
    webdriver: WebDriverOption = None,
    keep_open: KeepOpenOption = False,
) -> None:
    """Download a resource with the browser's cookies."""

    config = _load(config_path, env_file, webdriver, persist=True if keep_open else None)
    status, body = _run(_fetch(config, page, resource))
    if output is not None:
        output.write_bytes(body)
        typer.echo(f"Saved {len(body)} bytes to {output}")
    else:
        typer.echo(body.decode("utf-8", errors="replace"))
    if status >= 400:
        typer.echo(f"Request failed with HTTP {status}", err=True)
        raise typer.Exit(code=1)


@app.command()
def close(
    session_id: Annotated[str, typer.Argument(help="Id of a session left open earlier.")],
    legacy: Annotated[
        bool,
        typer.Option("--legacy", help="The session speaks the legacy JSON-Wire protocol."),
    ] = False,
    config_path: ConfigOption = None,
    env_file: EnvFileOption = None,
    webdriver: WebDriverOption = None,
) -> None:
    """Delete a session that was kept open."""

    config = _load(config_path, env_file, webdriver, persist=False)
    dialect = Dialect.LEGACY if legacy else Dialect.W3C
    _run(_close(config, session_id, dialect))
    typer.echo(f"Closed session {session_id}")


def _load(
    config_path: Optional[Path],
    env_file: Optional[Path],
    webdriver: Optional[str],
    persist: Optional[bool],
) -> ClientConfig:
    return load_config(
        config_path, env_file=env_file, webdriver_url=webdriver or None, persist=persist
    )


def _run(coro: Any) -> Any:
    try:
        return asyncio.run(coro)
    except WebDriverError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


async def _inspect(config: ClientConfig, url: str, selector: Optional[str]) -> dict[str, Any]:
    async with await open_session(config) as session:
        await session.goto(url)
        report: dict[str, Any] = {
            "session_id": session.id,
            "url": await session.current_url(),
            "title": await session.title(),
            "text": None,
        }
        if selector:
            element = await session.wait_for(Locator.css(selector))
            report["text"] = await element.text()
        report["cookies"] = await session.cookies()
    return report


async def _fetch(config: ClientConfig, page: str, resource: str) -> tuple[int, bytes]:
    async with await open_session(config) as session:
        await session.goto(page)
        response = await cookie_bridge.fetch(session, "GET", resource)
    return response.status_code, response.content


async def _close(config: ClientConfig, session_id: str, dialect: Dialect) -> None:
    session = attach_session(config, session_id, dialect=dialect)
    await session.close()


def _cookie_table(cookies: list[Cookie]) -> Table:
    table = Table(title="Cookies")
    table.add_column("Name", style="cyan")
    table.add_column("Value")
    table.add_column("Domain")
    table.add_column("Path")
    table.add_column("Secure")
    table.add_column("HttpOnly")
    for cookie in cookies:
        table.add_row(
            cookie.name,
            cookie.value,
            cookie.domain or "",
            cookie.path or "",
            "yes" if cookie.secure else "no",
            "yes" if cookie.http_only else "no",
        )
    return table


if __name__ == "__main__":
    app()
