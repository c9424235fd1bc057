"""Connection configuration models and TOML loading helpers."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import tomllib

from pydantic import BaseModel, ConfigDict, Field, SecretStr

CONFIG_FILE = Path.home() / ".config" / "pgregistry" / "config.toml"


class ConnectionConfig(BaseModel):
    """Options handed to the PostgreSQL driver when a handle connects.

    Options outside the named fields are kept and forwarded to the driver
    untouched, so anything ``asyncpg.connect`` accepts can be supplied.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    dsn: str | None = None
    host: str | list[str] | None = None
    port: int | list[int] | None = None
    user: str | None = None
    password: SecretStr | Callable[[], Any] | None = None
    database: str | None = None
    ssl: Any = None
    timeout: float | None = None

    def connect_kwargs(self) -> dict[str, object]:
        """Keyword arguments for ``asyncpg.connect``."""

        kwargs: dict[str, object] = {}
        for key, value in self.model_dump(exclude_none=True).items():
            if isinstance(value, SecretStr):
                value = value.get_secret_value()
            kwargs[key] = value
        return kwargs


class RegistryConfig(BaseModel):
    """Named connection profiles plus registry-wide defaults."""

    connect_timeout: float = 5.0
    profiles: dict[str, ConnectionConfig] = Field(default_factory=dict)

    def profile(self, name: str) -> ConnectionConfig:
        """Return the named profile with the default timeout applied."""

        try:
            config = self.profiles[name]
        except KeyError:
            raise ValueError(f"Profile '{name}' not found.") from None
        if config.timeout is None:
            return config.model_copy(update={"timeout": self.connect_timeout})
        return config


def load_config(path: Path | None = None) -> RegistryConfig:
    """Load profiles from ``path``; fall back to defaults if missing."""

    try:
        data = _read_config_file(path or CONFIG_FILE)
    except FileNotFoundError:
        return RegistryConfig()
    except (tomllib.TOMLDecodeError, OSError):
        return RegistryConfig()
    return RegistryConfig.model_validate(data)


def _read_config_file(path: Path) -> dict[str, object]:
    with path.open("rb") as handle:
        raw = tomllib.load(handle)
    data: dict[str, object] = {}
    timeout = raw.get("connect_timeout")
    if isinstance(timeout, (int, float)) and not isinstance(timeout, bool):
        data["connect_timeout"] = float(timeout)
    profiles = raw.get("profiles")
    if isinstance(profiles, dict):
        data["profiles"] = {
            str(name): options
            for name, options in profiles.items()
            if isinstance(options, dict)
        }
    return data


__all__ = [
    "CONFIG_FILE",
    "ConnectionConfig",
    "RegistryConfig",
    "load_config",
]
