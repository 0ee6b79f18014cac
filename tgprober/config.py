"""Loading of the TOML configuration file."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from typing import Any

DEFAULT_LOG_LEVEL = "info"


class ConfigError(ValueError):
    """Raised when the configuration file is malformed or incomplete."""


@dataclass(frozen=True)
class TargetConfig:
    """A monitored endpoint as written in the configuration."""

    address: str
    alias: str


@dataclass
class Config:
    """Settings for the bot and the background monitor."""

    token: str
    admins: list[int] = field(default_factory=list)
    targets: list[TargetConfig] = field(default_factory=list)
    probe_count: int = 0
    log_level: str | None = None
    socks5_proxy: str | None = None

    def level_name(self) -> str:
        """Return the configured log level, or ``"info"`` when absent."""
        return self.log_level if self.log_level is not None else DEFAULT_LOG_LEVEL


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _required(data: dict[str, Any], key: str) -> Any:
    if key not in data:
        raise ConfigError(f"missing field `{key}`")
    return data[key]


def _string(data: dict[str, Any], key: str, *, optional: bool = False) -> str | None:
    if optional and key not in data:
        return None
    value = _required(data, key)
    if not isinstance(value, str):
        raise ConfigError(f"invalid type for `{key}`: expected a string")
    return value


def _targets(raw: Any) -> list[TargetConfig]:
    if not isinstance(raw, list):
        raise ConfigError("invalid type for `targets`: expected an array of tables")
    targets = []
    for entry in raw:
        if not isinstance(entry, dict):
            raise ConfigError("invalid entry in `targets`: expected a table")
        targets.append(
            TargetConfig(address=_string(entry, "address"), alias=_string(entry, "alias"))
        )
    return targets


def _from_mapping(data: dict[str, Any]) -> Config:
    admins = _required(data, "admins")
    if not isinstance(admins, list) or not all(_is_int(a) for a in admins):
        raise ConfigError("invalid type for `admins`: expected an array of integers")
    probe_count = _required(data, "probe_count")
    if not _is_int(probe_count) or probe_count < 0:
        raise ConfigError("invalid value for `probe_count`: expected a non-negative integer")
    return Config(
        token=_string(data, "token"),
        admins=list(admins),
        targets=_targets(_required(data, "targets")),
        probe_count=probe_count,
        log_level=_string(data, "log_level", optional=True),
        socks5_proxy=_string(data, "socks5_proxy", optional=True),
    )


def load_config(path: str | os.PathLike[str]) -> Config:
    """Read and validate the configuration stored at ``path``."""
    with open(path, "rb") as handle:
        try:
            data = tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"invalid TOML: {exc}") from exc
    return _from_mapping(data)