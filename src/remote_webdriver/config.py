"""Configuration models for the WebDriver client."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class HttpConfig(BaseModel):
    """Settings for the HTTP transport."""

    timeout: float = Field(default=60.0, gt=0)
    connect_timeout: Optional[float] = Field(default=10.0, gt=0)
    verify: bool = True


class WaitConfig(BaseModel):
    """Defaults for explicit waits."""

    timeout: float = Field(default=30.0, ge=0)
    poll_interval: float = Field(default=0.25, gt=0)


class ClientConfig(BaseSettings):
    """Top-level configuration for connecting to a WebDriver endpoint."""

    model_config = SettingsConfigDict(
        env_prefix="REMOTE_WEBDRIVER_",
        env_file=(".env",),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    webdriver_url: str = Field(default="http://localhost:4444")
    capabilities: dict[str, Any] = Field(default_factory=lambda: {"pageLoadStrategy": "normal"})
    command_timeout: Optional[float] = Field(
        default=None,
        description="Optional per-command deadline (in seconds) enforced locally.",
    )
    user_agent: Optional[str] = None
    persist: bool = Field(
        default=False,
        description="Leave the remote session open when the client closes.",
    )
    http: HttpConfig = Field(default_factory=HttpConfig)
    wait: WaitConfig = Field(default_factory=WaitConfig)


def load_config(
    path: Path | None = None,
    *,
    env_file: Path | None = None,
    **overrides: object,
) -> ClientConfig:
    """Build the client configuration.

    Values are layered, lowest first: field defaults, the ``.env`` file,
    ``REMOTE_WEBDRIVER_*`` environment variables, the YAML file at
    ``path`` and finally ``overrides``. Overrides that are ``None`` are
    skipped, so unset command line options leave lower layers alone.
    """

    data = _read_yaml(path) if path else {}
    _merge(data, {key: value for key, value in overrides.items() if value is not None})
    settings_kwargs: dict[str, object] = {}
    if env_file is not None:
        settings_kwargs["_env_file"] = env_file
    config = ClientConfig(**settings_kwargs)
    if not data:
        return config

    # Nested sections from the file only replace the keys they name.
    layered = config.model_dump(mode="python")
    _merge(layered, data)
    return ClientConfig.model_validate(layered)


def _read_yaml(path: Path) -> dict[str, Any]:
    import yaml

    loaded = yaml.safe_load(path.read_text())
    if loaded is None:
        return {}
    if not isinstance(loaded, Mapping):
        raise ValueError(f"{path}: expected a mapping of settings, got {type(loaded).__name__}")
    return dict(loaded)


def _merge(target: dict[str, Any], layer: Mapping[str, Any]) -> None:
    for key, value in layer.items():
        current = target.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            nested = dict(current)
            _merge(nested, value)
            target[key] = nested
        else:
            target[key] = value
