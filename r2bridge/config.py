#!/usr/bin/env python3
"""
r2bridge Configuration - Typed Dataclasses

Settings are resolved in three layers, later layers winning:

    1. dataclass defaults
    2. an optional JSON file ({"pipe": {...}, "native": {...}, "events": {...}})
    3. R2BRIDGE_* environment variables
"""

import os
import shlex
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any

from .config_store import ConfigStore
from .core.constants import (
    DEFAULT_CLOSE_TIMEOUT,
    DEFAULT_EVENT_POLL_INTERVAL,
    DEFAULT_NATIVE_LIBRARY,
    DEFAULT_R2_EXECUTABLE,
    DEFAULT_R2_FLAGS,
)


@dataclass(frozen=True)
class PipeConfig:
    """Subprocess transport configuration"""

    executable: str = DEFAULT_R2_EXECUTABLE
    flags: tuple[str, ...] = DEFAULT_R2_FLAGS
    close_timeout: float = DEFAULT_CLOSE_TIMEOUT

    def __post_init__(self):
        """Validate configuration values"""
        if not self.executable:
            raise ValueError("executable must not be empty")
        if self.close_timeout <= 0:
            raise ValueError("close_timeout must be positive")
        # JSON hands lists over; keep the dataclass hashable
        object.__setattr__(self, "flags", tuple(self.flags))


@dataclass(frozen=True)
class NativeConfig:
    """Native transport configuration"""

    library: str = DEFAULT_NATIVE_LIBRARY

    def __post_init__(self):
        """Validate configuration values"""
        if not self.library:
            raise ValueError("library must not be empty")


@dataclass(frozen=True)
class EventsConfig:
    """Side channel configuration"""

    poll_interval: float = DEFAULT_EVENT_POLL_INTERVAL

    def __post_init__(self):
        """Validate configuration values"""
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be positive")


@dataclass(frozen=True)
class BridgeConfig:
    """Complete r2bridge configuration"""

    pipe: PipeConfig = field(default_factory=PipeConfig)
    native: NativeConfig = field(default_factory=NativeConfig)
    events: EventsConfig = field(default_factory=EventsConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BridgeConfig":
        """Build a config from a nested dict, ignoring unknown sections."""
        return cls(
            pipe=PipeConfig(**data.get("pipe", {})),
            native=NativeConfig(**data.get("native", {})),
            events=EventsConfig(**data.get("events", {})),
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["pipe"]["flags"] = list(self.pipe.flags)
        return data

    def with_env(self, environ: dict[str, str] | None = None) -> "BridgeConfig":
        """Return a copy with R2BRIDGE_* environment overrides applied."""
        environ = dict(os.environ) if environ is None else environ
        pipe, native, events = self.pipe, self.native, self.events

        if environ.get("R2BRIDGE_R2_PATH"):
            pipe = replace(pipe, executable=environ["R2BRIDGE_R2_PATH"])
        if environ.get("R2BRIDGE_R2_FLAGS"):
            pipe = replace(pipe, flags=tuple(shlex.split(environ["R2BRIDGE_R2_FLAGS"])))
        if environ.get("R2BRIDGE_CLOSE_TIMEOUT"):
            pipe = replace(pipe, close_timeout=float(environ["R2BRIDGE_CLOSE_TIMEOUT"]))
        if environ.get("R2BRIDGE_NATIVE_LIBRARY"):
            native = replace(native, library=environ["R2BRIDGE_NATIVE_LIBRARY"])
        if environ.get("R2BRIDGE_EVENT_POLL_INTERVAL"):
            events = replace(events, poll_interval=float(environ["R2BRIDGE_EVENT_POLL_INTERVAL"]))

        return replace(self, pipe=pipe, native=native, events=events)


def default_config_path() -> str:
    """Get default configuration file path"""
    return str(Path.home() / ".r2bridge" / "config.json")


def load_config(
    path: str | None = None, environ: dict[str, str] | None = None
) -> BridgeConfig:
    """
    Resolve the effective configuration.

    Args:
        path: JSON config file; the default path is only read if it exists
        environ: Environment mapping, defaults to os.environ

    Raises:
        ValueError: If a value fails validation
    """
    config_path = path or default_config_path()
    data: dict[str, Any] = {}
    if path is not None or os.path.exists(config_path):
        data = ConfigStore.load(config_path) or {}
    return BridgeConfig.from_dict(data).with_env(environ)


def save_config(config: BridgeConfig, path: str | None = None) -> None:
    """Save configuration to ``path`` or the default location"""
    ConfigStore.save(path or default_config_path(), config.to_dict())


__all__ = [
    "PipeConfig",
    "NativeConfig",
    "EventsConfig",
    "BridgeConfig",
    "load_config",
    "save_config",
    "default_config_path",
]
