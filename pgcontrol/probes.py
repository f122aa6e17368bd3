"""
Probing the installed PostgreSQL tooling and data directory.

- ``pg_ctl_version``: version reported by ``pg_ctl --version``.
- ``find_pg_ctl``: locate pg_ctl on ``PATH``.
- ``pg_controldata``: read the control file header into a ServerSetup.
"""

from __future__ import annotations

import logging
import os
import time
from enum import Enum
from pathlib import Path

from pgcontrol.controldata import parse_controldata, parse_version_number
from pgcontrol.errors import LaunchFailure, ParseFailure
from pgcontrol.process import (
    ProcessResult,
    log_program_output,
    path_in_same_directory,
    run_program,
)
from pgcontrol.server import ServerSetup

logger = logging.getLogger(__name__)

# pg_controldata output is parsed, so force untranslated messages
CONTROLDATA_ENV = {"LANG": "C", "LC_ALL": "C"}

EMPTY_OUTPUT_RETRY_DELAY = 1.0


class ControlDataStatus(str, Enum):
    """Result of :func:`pg_controldata`."""

    OK = "ok"
    NOT_INITIALIZED = "not_initialized"
    ERROR = "error"

    def acceptable(self, missing_ok: bool = False) -> bool:
        """Collapse to a boolean, treating an uninitialised PGDATA as fine if asked."""
        if self is ControlDataStatus.OK:
            return True
        return missing_ok and self is ControlDataStatus.NOT_INITIALIZED


def pg_ctl_version(pg_ctl: str | Path) -> str | None:
    """Return the PostgreSQL version of *pg_ctl*, or None on failure."""
    try:
        result = run_program(pg_ctl, "--version").check_launched()
        if result.returncode != 0:
            logger.error(
                f'Failed to run "pg_ctl --version" using program "{pg_ctl}": '
                f"exit code {result.returncode}"
            )
            log_program_output(result)
            return None
        return parse_version_number(result.stdout or "")
    except LaunchFailure as e:
        logger.error(str(e))
        return None
    except ParseFailure as e:
        logger.error(f"{e}:\n{e.output}")
        return None


def _pg_ctl_candidates(search_path: str | None = None) -> list[Path]:
    if search_path is None:
        search_path = os.environ.get("PATH", "")

    found: list[Path] = []
    seen: set[Path] = set()
    for entry in search_path.split(os.pathsep):
        if not entry:
            continue
        candidate = Path(entry) / "pg_ctl"
        if not (candidate.is_file() and os.access(candidate, os.X_OK)):
            continue
        real = candidate.resolve()
        if real in seen:
            continue
        seen.add(real)
        found.append(candidate)
    return found


def find_pg_ctl(setup: ServerSetup, search_path: str | None = None) -> int:
    """
    Look for pg_ctl on ``PATH``.

    When exactly one is found, ``setup.pg_ctl`` and ``setup.pg_version``
    are set from it; otherwise both are reset to None.

    Returns:
        How many distinct pg_ctl programs were found.
    """
    setup.pg_ctl = None
    setup.pg_version = None

    candidates = _pg_ctl_candidates(search_path)

    if len(candidates) == 1:
        program = candidates[0]
        version = pg_ctl_version(program)
        logger.info(f"Found pg_ctl for PostgreSQL {version} at {program}")
        setup.pg_ctl = program
        setup.pg_version = version
    elif not candidates:
        logger.warning("Failed to find pg_ctl in PATH")
    else:
        for program in candidates:
            logger.info(f"Found {program} for pg version {pg_ctl_version(program)}")

    return len(candidates)


def _run_controldata(program: Path, pgdata: Path) -> ProcessResult:
    logger.debug(f"{program} {pgdata}")
    return run_program(program, str(pgdata), env=CONTROLDATA_ENV)


def pg_controldata(setup: ServerSetup, missing_ok: bool = False) -> ControlDataStatus:
    """
    Run pg_controldata on ``setup.pgdata`` and store the result in
    ``setup.control``.

    Empty output is retried once after a short delay.  A tool error on a
    directory without ``global/pg_control`` is reported as
    ``NOT_INITIALIZED``, any other failure as ``ERROR``; with *missing_ok*
    the tool's error output is not logged as an error.
    """
    if not setup.pgdata or not setup.pg_ctl:
        logger.debug("Failed to run pg_controldata on an empty server setup")
        return ControlDataStatus.ERROR

    program = path_in_same_directory(setup.pg_ctl, "pg_controldata")
    result = _run_controldata(program, setup.pgdata)

    if result.ok and result.stdout is None:
        logger.warning(
            f"Got empty output from `{program} {setup.pgdata}`, "
            f"trying again in {EMPTY_OUTPUT_RETRY_DELAY:g}s"
        )
        time.sleep(EMPTY_OUTPUT_RETRY_DELAY)
        result = _run_controldata(program, setup.pgdata)

    if result.ok:
        try:
            setup.control = parse_controldata(result.stdout or "")
        except ParseFailure as e:
            logger.error(f"{program} {setup.pgdata}")
            logger.warning(f"Failed to parse pg_controldata output:\n{e.output}")
            return ControlDataStatus.ERROR
        return ControlDataStatus.OK

    try:
        result.check_launched()
    except LaunchFailure as e:
        logger.error(str(e))
        return ControlDataStatus.ERROR

    initialized = (setup.pgdata / "global" / "pg_control").exists()
    status = (
        ControlDataStatus.ERROR if initialized else ControlDataStatus.NOT_INITIALIZED
    )

    if missing_ok:
        logger.debug(f'pg_controldata failed on "{setup.pgdata}": {status.value}')
    else:
        # pg_controldata errors out with lines prefixed by its own name
        for line in (result.stderr or "").splitlines():
            logger.error(line)
        logger.error(
            f'Failed to run "{program}" on "{setup.pgdata}", see above for details'
        )

    return status
