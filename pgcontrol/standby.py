"""
Standby (recovery) configuration.

Before Postgres 12 a standby is configured by ``recovery.conf`` in PGDATA.
From Postgres 12 on, an empty ``standby.signal`` file starts the server in
standby mode and the replication settings live in the main configuration;
we keep them in ``postgresql-auto-failover-standby.conf`` and include that
file from ``postgresql.conf``.  Exactly one of the two layouts is written,
chosen by the pg_control version.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pgcontrol.conf import (
    CONF_INCLUDE_COMMENT,
    STANDBY_CONF_FILENAME,
    STANDBY_CONF_INCLUDE_LINE,
    STANDBY_CONF_INCLUDE_REGEX,
    NamedSetting,
    ensure_included,
    ensure_settings_file,
    write_file,
)
from pgcontrol.errors import ConfigIOError, EscapeLengthError
from pgcontrol.escape import escape_conf_string
from pgcontrol.server import PG_CONTROL_VERSION_STANDBY_SIGNAL, ReplicationSource

logger = logging.getLogger(__name__)

RECOVERY_CONF_FILENAME = "recovery.conf"
STANDBY_SIGNAL_FILENAME = "standby.signal"

# Upper bound of an escaped primary_conninfo value
MAXCONNINFO = 1024


def build_conninfo(
    host: str,
    port: int,
    user: str,
    password: str | None = None,
    dbname: str | None = None,
) -> str:
    """Build a ``key=value`` libpq connection string."""
    fields = [f"host={host}", f"port={port}", f"user={user}"]
    if password is not None:
        fields.append(f"password={password}")
    if dbname is not None:
        fields.append(f"dbname={dbname}")
    return " ".join(fields)


def prepare_primary_conninfo(source: ReplicationSource) -> str:
    """
    Return the quoted ``primary_conninfo`` value for *source*.

    Raises:
        EscapeLengthError: If the escaped value exceeds ``MAXCONNINFO``.
    """
    conninfo = build_conninfo(
        source.host, source.port, source.user_name, password=source.password
    )
    return escape_conf_string(conninfo, max_length=MAXCONNINFO)


def uses_standby_signal(pg_control_version: int) -> bool:
    return pg_control_version >= PG_CONTROL_VERSION_STANDBY_SIGNAL


def pg_setup_standby_mode(
    pg_control_version: int,
    config_file: str | Path,
    pgdata: str | Path,
    source: ReplicationSource,
) -> bool:
    """
    Configure *pgdata* to start as a standby of *source*.

    Args:
        pg_control_version: From ``pg_controldata``; selects the layout.
        config_file: Main ``postgresql.conf`` path.
        pgdata: Data directory.
        source: Primary to follow.

    Returns:
        True when the configuration is complete.
    """
    try:
        primary_conninfo = prepare_primary_conninfo(source)
    except EscapeLengthError as e:
        logger.error(f"BUG: {e}")
        return False

    if not uses_standby_signal(pg_control_version):
        return pg_write_recovery_conf(Path(pgdata), primary_conninfo, source.slot_name)

    return pg_write_standby_signal(
        Path(config_file), Path(pgdata), primary_conninfo, source.slot_name
    )


def pg_write_recovery_conf(
    pgdata: Path, primary_conninfo: str, replication_slot_name: str
) -> bool:
    """Regenerate ``recovery.conf`` (pre-12 servers)."""
    content = (
        "standby_mode = 'on'\n"
        f"primary_conninfo = {primary_conninfo}\n"
        f"primary_slot_name = {escape_conf_string(replication_slot_name)}\n"
        "recovery_target_timeline = 'latest'\n"
    )

    recovery_conf = pgdata / RECOVERY_CONF_FILENAME
    logger.info(f'Writing recovery configuration to "{recovery_conf}"')

    try:
        write_file(recovery_conf, content)
    except ConfigIOError as e:
        logger.error(str(e))
        return False

    return True


def standby_settings(
    primary_conninfo: str, replication_slot_name: str
) -> tuple[NamedSetting, ...]:
    return (
        NamedSetting("primary_conninfo", primary_conninfo),
        NamedSetting("primary_slot_name", escape_conf_string(replication_slot_name)),
        NamedSetting("recovery_target_timeline", "'latest'"),
    )


def pg_write_standby_signal(
    config_file: Path,
    pgdata: Path,
    primary_conninfo: str,
    replication_slot_name: str,
) -> bool:
    """
    Write ``standby.signal`` and the included standby settings (12+).

    The signal file goes first: if a later step fails and Postgres is
    started anyway, it comes up as a standby with missing settings rather
    than as a writable clone of the primary.  The caller retries.
    """
    signal_file = pgdata / STANDBY_SIGNAL_FILENAME
    logger.info(f'Writing recovery configuration to "{signal_file}"')

    try:
        write_file(signal_file, "")
    except ConfigIOError as e:
        logger.error(str(e))
        return False

    standby_conf = config_file.parent / STANDBY_CONF_FILENAME
    settings = standby_settings(primary_conninfo, replication_slot_name)

    if not ensure_settings_file(standby_conf, settings, None):
        logger.error(f'Failed to write standby settings to "{standby_conf}"')
        return False

    if not ensure_included(
        config_file,
        STANDBY_CONF_INCLUDE_LINE,
        STANDBY_CONF_INCLUDE_REGEX,
        CONF_INCLUDE_COMMENT,
    ):
        logger.error(f'Failed to prepare "{config_file}" with standby settings')
        return False

    return True
