"""
Cloning and resynchronising a data directory from a primary.

``pg_basebackup`` streams a full copy into a scratch directory which then
replaces PGDATA; ``pg_rewind`` brings a diverged PGDATA back in line with a
new primary.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from pgcontrol.process import log_program_output, path_in_same_directory, run_program
from pgcontrol.server import POSTGRES_CONNECT_TIMEOUT, ReplicationSource
from pgcontrol.standby import build_conninfo

logger = logging.getLogger(__name__)


def connection_env(password: str | None) -> dict[str, str]:
    """Environment overlay for children connecting to a primary."""
    env = {"PGCONNECT_TIMEOUT": POSTGRES_CONNECT_TIMEOUT}
    if password is not None:
        env["PGPASSWORD"] = password
    return env


def ensure_empty_dir(path: Path, mode: int = 0o700) -> None:
    """Remove *path* if it exists and recreate it empty with *mode*."""
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, mode=mode)
    os.chmod(path, mode)


def pg_basebackup(
    pgdata: str | Path,
    pg_ctl: str | Path,
    backup_dir: str | Path,
    source: ReplicationSource,
) -> bool:
    """
    Clone *source* into *pgdata* through *backup_dir*.

    PGDATA is only touched once the transfer succeeded: it is removed and
    *backup_dir* is renamed in its place.

    Returns:
        True when *pgdata* now holds the fresh copy.
    """
    pgdata = Path(pgdata)
    backup_dir = Path(backup_dir)

    logger.debug(f'mkdir -p "{backup_dir}"')
    try:
        ensure_empty_dir(backup_dir, 0o700)
    except OSError as e:
        logger.error(f'Failed to prepare directory "{backup_dir}": {e}')
        return False

    program = path_in_same_directory(pg_ctl, "pg_basebackup")
    logger.info(
        f"Running {program} -w -h {source.host} -p {source.port} "
        f"--pgdata {backup_dir} -U {source.user_name} --write-recovery-conf "
        f"--max-rate {source.maximum_backup_rate} --wal-method=stream "
        f"--slot {source.slot_name} ..."
    )

    result = run_program(
        program,
        "-w",
        "-h", source.host,
        "-p", str(source.port),
        "--pgdata", str(backup_dir),
        "-U", source.user_name,
        "--verbose",
        "--progress",
        "--write-recovery-conf",
        "--max-rate", source.maximum_backup_rate,
        "--wal-method=stream",
        "--slot", source.slot_name,
        env=connection_env(source.password),
    )
    log_program_output(result)

    if not result.ok:
        if not result.launched:
            logger.error(f'Failed to run "{program}": {result.error_message}')
        logger.error(f"Failed to run pg_basebackup: exit code {result.returncode}")
        return False

    try:
        if pgdata.is_dir():
            shutil.rmtree(pgdata)
    except OSError as e:
        logger.error(f'Failed to remove directory "{pgdata}": {e}')
        return False

    logger.debug(f'mv "{backup_dir}" "{pgdata}"')
    try:
        os.rename(backup_dir, pgdata)
    except OSError as e:
        logger.error(
            f'Failed to install pg_basebackup dir "{backup_dir}" in "{pgdata}": {e}'
        )
        return False

    return True


def pg_rewind(
    pgdata: str | Path,
    pg_ctl: str | Path,
    source: ReplicationSource,
    dbname: str = "postgres",
) -> bool:
    """Rewind *pgdata* so that it can follow *source*."""
    conninfo = build_conninfo(source.host, source.port, source.user_name, dbname=dbname)
    program = path_in_same_directory(pg_ctl, "pg_rewind")

    logger.info(
        f'Running {program} --target-pgdata "{pgdata}" '
        f'--source-server "{conninfo}" --progress ...'
    )

    result = run_program(
        program,
        "--target-pgdata", str(pgdata),
        "--source-server", conninfo,
        "--progress",
        env=connection_env(source.password),
    )
    log_program_output(result)

    if not result.ok:
        if not result.launched:
            logger.error(f'Failed to run "{program}": {result.error_message}')
        logger.error(f"Failed to run pg_rewind: exit code {result.returncode}")
        return False

    return True
