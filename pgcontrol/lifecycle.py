"""
PostgreSQL server lifecycle via pg_ctl.

Initialise, start, stop, restart, promote and query a server.  Every
function blocks until pg_ctl exits and reports a plain verdict; non-zero
exit codes from ``start`` and ``stop`` are disambiguated with a follow-up
``pg_ctl status`` (see :mod:`pgcontrol.outcomes`).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pgcontrol.outcomes import (
    StartOutcome,
    StopOutcome,
    needs_status_check,
    resolve_start,
    resolve_stop,
)
from pgcontrol.process import ProcessResult, log_program_output, run_program

logger = logging.getLogger(__name__)

STARTUP_LOG_FILENAME = "startup.log"

# Read (never set) to point the server at a private socket directory in tests
REGRESS_SOCK_DIR_ENV = "PG_REGRESS_SOCK_DIR"


def pg_ctl_initdb(pg_ctl: str | Path, pgdata: str | Path) -> bool:
    """
    Initialise a data directory with ``pg_ctl initdb``.

    The child inherits our locale environment (LC_COLLATE, LC_ALL...).
    """
    result = run_program(pg_ctl, "initdb", "-s", "-D", str(pgdata))

    logger.info(f'Initialising a PostgreSQL cluster at "{pgdata}"')
    logger.debug(f"{result.command_line} [{result.returncode}]")

    if not result.ok:
        _log_launch_error(result)
        log_program_output(result)

    return result.ok


def pg_ctl_start(
    pg_ctl: str | Path,
    pgdata: str | Path,
    port: int,
    listen_addresses: str | None = None,
) -> bool:
    """
    Start the server and wait until it accepts connections.

    A non-zero exit is still a success when ``pg_ctl status`` then reports
    the server as running: that is what pg_ctl does when another postmaster
    already runs in *pgdata*.

    Returns:
        True if the server is running afterwards.
    """
    pgdata = Path(pgdata)

    # pg_ctl hands --options to the postmaster through a shell, so each
    # option is double-quoted to keep "-h *" from being glob-expanded.
    args = ["--pgdata", str(pgdata), "--options", f'"-p {port}"']

    if listen_addresses:
        args += ["--options", f'"-h {listen_addresses}"']

    sock_dir = os.environ.get(REGRESS_SOCK_DIR_ENV)
    if sock_dir is not None:
        # --options can be given several times
        args += ["--options", f'"-k "{sock_dir}""']

    args += ["--wait", "start"]

    result = run_program(pg_ctl, *args, new_session=True)
    logger.info(result.command_line)

    status_result = None
    if needs_status_check(result.returncode):
        status_result = _run_status(pg_ctl, pgdata)
        outcome = resolve_start(result.returncode, status_result.returncode)
    else:
        outcome = resolve_start(result.returncode)

    if outcome is StartOutcome.ALREADY_RUNNING and status_result is not None:
        # pg_ctl start writes all of its output to stdout
        logger.warning(
            f"Failed to start PostgreSQL. pg_ctl start returned: {result.returncode}"
        )
        if result.stdout:
            logger.warning(result.stdout.rstrip("\n"))
        logger.info(
            f"PostgreSQL is running. pg_ctl status returned {status_result.returncode}"
        )
        log_program_output(status_result)

    elif outcome is StartOutcome.FAILED:
        _log_launch_error(result)
        logger.error(
            f"Failed to start PostgreSQL. pg_ctl start returned: {result.returncode}"
        )
        if result.stdout:
            logger.error(result.stdout.rstrip("\n"))

    if result.stdout:
        _append_startup_log(pgdata, result.stdout)

    return outcome.succeeded


def pg_ctl_stop(pg_ctl: str | Path, pgdata: str | Path) -> bool:
    """
    Stop the server in fast mode and wait for it.

    Returns:
        True if the server is stopped afterwards, including when it was not
        running at all or *pgdata* does not exist.
    """
    pgdata = Path(pgdata)
    result = run_program(pg_ctl, "--pgdata", str(pgdata), "--wait", "stop", "--mode", "fast")
    logger.debug(f"{result.command_line} [{result.returncode}]")

    if not needs_status_check(result.returncode):
        return True

    pgdata_exists = pgdata.is_dir()
    status = None
    if pgdata_exists:
        status = pg_ctl_status(pg_ctl, pgdata, log_output=True)

    outcome = resolve_stop(result.returncode, pgdata_exists, status)

    if outcome is StopOutcome.NO_DATA_DIRECTORY:
        logger.info(
            f'pgdata "{pgdata}" does not exist, consider this as PostgreSQL '
            "not running"
        )
    elif outcome is StopOutcome.NOT_RUNNING:
        logger.info("pg_ctl stop failed, but PostgreSQL is not running anyway")
    elif outcome is StopOutcome.FAILED:
        logger.info(f"Stopping PostgreSQL server failed. pg_ctl status returned: {status}")
        _log_launch_error(result)
        log_program_output(result)

    return outcome.succeeded


def pg_ctl_restart(pg_ctl: str | Path, pgdata: str | Path) -> bool:
    """Restart the server in fast mode and wait for it."""
    result = run_program(
        pg_ctl,
        "restart",
        "--pgdata", str(pgdata),
        "--silent",
        "--wait",
        "--mode", "fast",
    )
    logger.debug(f"{result.command_line} [{result.returncode}]")

    if not result.ok:
        _log_launch_error(result)
        log_program_output(result)

    return result.ok


def pg_ctl_promote(pg_ctl: str | Path, pgdata: str | Path) -> bool:
    """Promote a standby and wait for the promotion to complete."""
    result = run_program(pg_ctl, "promote", "-D", str(pgdata), "-w")
    logger.debug(result.command_line)

    _log_launch_error(result)
    if result.stderr is not None:
        logger.error(result.stderr.rstrip("\n"))

    return result.ok


def pg_ctl_status(
    pg_ctl: str | Path, pgdata: str | Path, log_output: bool = False
) -> int:
    """
    Return the exit code of ``pg_ctl status``.

    0 means running and ``PROGRAM_NOT_RUNNING`` (3) means definitively not
    running.  Anything else, including a launch failure, is indeterminate.
    """
    result = _run_status(pg_ctl, pgdata)

    if log_output:
        _log_launch_error(result)
        log_program_output(result)

    return result.returncode


def pg_is_running(pg_ctl: str | Path, pgdata: str | Path) -> bool:
    return pg_ctl_status(pg_ctl, pgdata, log_output=False) == 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run_status(pg_ctl: str | Path, pgdata: str | Path) -> ProcessResult:
    result = run_program(pg_ctl, "status", "-D", str(pgdata))
    logger.debug(f"{result.command_line} [{result.returncode}]")
    return result


def _log_launch_error(result: ProcessResult) -> None:
    if not result.launched:
        logger.error(f'Failed to run "{result.program}": {result.error_message}')


def _append_startup_log(pgdata: Path, output: str) -> None:
    """Append pg_ctl start output to the startup log, as pg_ctl --log would."""
    log_file = pgdata / STARTUP_LOG_FILENAME
    try:
        with log_file.open("a", encoding="utf-8") as f:
            f.write(output)
    except OSError as e:
        logger.warning(f'Failed to append to "{log_file}": {e}')
