"""
Controller settings read from ``.pgcontrol.toml``.

The file holds a ``[server]`` table (where PGDATA lives, which pg_ctl to
use, port and listen addresses) and a ``[replication]`` table describing
the upstream a standby follows.  A ``.pgcontrol.local.toml`` next to it,
usually kept out of version control, may replace individual keys such as
the replication password.

    >>> config = ControllerConfig.load()
    >>> config.server_setup(port=6000).port
    6000
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pgcontrol.server import (
    DEFAULT_LISTEN_ADDRESSES,
    DEFAULT_MAXIMUM_BACKUP_RATE,
    DEFAULT_PORT,
    ReplicationSource,
    ServerSetup,
)

CONFIG_FILENAME = ".pgcontrol.toml"
LOCAL_CONFIG_FILENAME = ".pgcontrol.local.toml"


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Return the nearest ``.pgcontrol.toml`` at or above *start_dir* (default: cwd)."""
    here = (start_dir or Path.cwd()).resolve()
    for directory in (here, *here.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Layer *override* on top of *base*, table by table.

    Tables present on both sides are merged recursively; any other key from
    *override* replaces the one in *base*.  The result is a fresh dict.
    """
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            value = deep_merge(current, value)
        merged[key] = value
    return merged


@dataclass
class ControllerConfig:
    """
    Configuration loaded from ``.pgcontrol.toml``.

    Attributes:
        server: The ``[server]`` table (pgdata, pg_ctl, port, listen_addresses).
        replication: The ``[replication]`` table (host, port, user, password,
            slot_name, maximum_backup_rate).
        path: File the configuration was loaded from, if any.
    """

    server: dict[str, Any] = field(default_factory=dict)
    replication: dict[str, Any] = field(default_factory=dict)
    path: Path | None = None

    @classmethod
    def load(cls, start_dir: Path | None = None) -> ControllerConfig:
        """
        Find and load configuration, merging ``.pgcontrol.local.toml``.

        Raises:
            FileNotFoundError: If no ``.pgcontrol.toml`` is found.
        """
        config_path = find_config_file(start_dir)
        if config_path is None:
            raise FileNotFoundError(
                f"Could not find {CONFIG_FILENAME} in {start_dir or Path.cwd()} "
                f"or any parent directory"
            )
        return cls.from_file(config_path)

    @classmethod
    def from_file(cls, config_path: Path) -> ControllerConfig:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)

        local_path = config_path.parent / LOCAL_CONFIG_FILENAME
        if local_path.is_file():
            with open(local_path, "rb") as f:
                data = deep_merge(data, tomllib.load(f))

        config = cls.from_dict(data)
        config.path = config_path
        return config

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ControllerConfig:
        """Create from a parsed TOML dict (useful for testing)."""
        return cls(
            server=dict(data.get("server", {})),
            replication=dict(data.get("replication", {})),
        )

    def server_setup(self, **overrides: Any) -> ServerSetup:
        """
        Build a :class:`ServerSetup` from ``[server]``.

        Keyword *overrides* whose value is not ``None`` win over the file
        (used for command-line flags).
        """
        values = dict(self.server)
        values.update({k: v for k, v in overrides.items() if v is not None})

        return ServerSetup(
            pgdata=values.get("pgdata"),
            pg_ctl=values.get("pg_ctl"),
            listen_addresses=values.get("listen_addresses", DEFAULT_LISTEN_ADDRESSES),
            port=int(values.get("port", DEFAULT_PORT)),
        )

    def replication_source(self, **overrides: Any) -> ReplicationSource:
        """
        Build a :class:`ReplicationSource` from ``[replication]``.

        Raises:
            KeyError: If a required key (host, user, slot_name) is missing.
        """
        values = dict(self.replication)
        values.update({k: v for k, v in overrides.items() if v is not None})

        missing = [k for k in ("host", "user", "slot_name") if not values.get(k)]
        if missing:
            available = ", ".join(sorted(values)) or "(none)"
            raise KeyError(
                f"Missing replication settings: {', '.join(missing)}. "
                f"Available: {available}"
            )

        return ReplicationSource(
            host=values["host"],
            port=int(values.get("port", DEFAULT_PORT)),
            user_name=values["user"],
            slot_name=values["slot_name"],
            password=values.get("password"),
            maximum_backup_rate=str(
                values.get("maximum_backup_rate", DEFAULT_MAXIMUM_BACKUP_RATE)
            ),
        )
