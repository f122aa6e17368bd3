"""
Server and replication dataclasses.

Contains:
- ``ServerSetup``: One managed PostgreSQL instance (PGDATA, pg_ctl, port...).
- ``ControlData``: Snapshot of the ``pg_controldata`` header.
- ``ReplicationSource``: Upstream primary to replicate from.
- Default constants (``DEFAULT_PORT``, ``POSTGRES_CONNECT_TIMEOUT``, etc.).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_PORT = 5432
DEFAULT_LISTEN_ADDRESSES = "*"
DEFAULT_MAXIMUM_BACKUP_RATE = "100M"

# Passed to every database-connecting child as PGCONNECT_TIMEOUT
POSTGRES_CONNECT_TIMEOUT = "2"

# First pg_control version using standby.signal instead of recovery.conf
PG_CONTROL_VERSION_STANDBY_SIGNAL = 1200

POSTGRESQL_CONF_FILENAME = "postgresql.conf"


@dataclass
class ControlData:
    """
    Parsed ``pg_controldata`` output.

    Attributes:
        pg_control_version: e.g. 1300 for Postgres 13.
        catalog_version_no: Catalog version number.
        system_identifier: Database system identifier.
        cluster_state: e.g. ``"in production"``, ``"shut down"``.
        latest_checkpoint_lsn: e.g. ``"0/1634F28"``.
        timeline_id: Latest checkpoint's TimeLineID.
    """

    pg_control_version: int | None = None
    catalog_version_no: int | None = None
    system_identifier: int | None = None
    cluster_state: str | None = None
    latest_checkpoint_lsn: str | None = None
    timeline_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "pg_control_version": self.pg_control_version,
            "catalog_version_no": self.catalog_version_no,
            "system_identifier": self.system_identifier,
            "cluster_state": self.cluster_state,
            "latest_checkpoint_lsn": self.latest_checkpoint_lsn,
            "timeline_id": self.timeline_id,
        }


@dataclass
class ServerSetup:
    """
    A managed PostgreSQL instance.

    Owned by the caller and updated in place by :func:`find_pg_ctl` and
    :func:`pg_controldata`.

    Attributes:
        pgdata: Data directory.
        pg_ctl: Path to the pg_ctl binary; sibling tools are found next to it.
        pg_version: Version string reported by ``pg_ctl --version``.
        listen_addresses: Value for ``listen_addresses`` (unquoted).
        port: Port to listen on.
        control: Last parsed control data.
    """

    pgdata: Path | None = None
    pg_ctl: Path | None = None
    pg_version: str | None = None
    listen_addresses: str = DEFAULT_LISTEN_ADDRESSES
    port: int = DEFAULT_PORT
    control: ControlData = field(default_factory=ControlData)

    def __post_init__(self) -> None:
        if self.pgdata is not None:
            self.pgdata = Path(self.pgdata)
        if self.pg_ctl is not None:
            self.pg_ctl = Path(self.pg_ctl)

    @property
    def config_file(self) -> Path:
        """Path to the main ``postgresql.conf``."""
        if self.pgdata is None:
            raise ValueError("ServerSetup has no pgdata")
        return self.pgdata / POSTGRESQL_CONF_FILENAME

    def to_dict(self) -> dict[str, Any]:
        return {
            "pgdata": str(self.pgdata) if self.pgdata else None,
            "pg_ctl": str(self.pg_ctl) if self.pg_ctl else None,
            "pg_version": self.pg_version,
            "listen_addresses": self.listen_addresses,
            "port": self.port,
            "control": self.control.to_dict(),
        }


@dataclass(frozen=True)
class ReplicationSource:
    """
    Upstream primary a standby replicates from.

    Attributes:
        host: Primary hostname or address.
        port: Primary port.
        user_name: Replication role.
        slot_name: Replication slot reserved on the primary.
        password: Replication password, if any.
        maximum_backup_rate: ``pg_basebackup --max-rate`` value.
    """

    host: str
    port: int
    user_name: str
    slot_name: str
    password: str | None = None
    maximum_backup_rate: str = DEFAULT_MAXIMUM_BACKUP_RATE
