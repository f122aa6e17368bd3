"""
Decision tables for pg_ctl exit codes.

``pg_ctl start`` and ``pg_ctl stop`` return non-zero both on genuine
failure and when the server already is in the requested state.  These
functions turn the raw signals into an explicit outcome, so the lifecycle
functions only have to act on it.
"""

from __future__ import annotations

from enum import Enum

# "pg_ctl status" exit code when no server is running in the data directory
PROGRAM_NOT_RUNNING = 3

# "pg_ctl status" exit code when the data directory cannot be accessed
STATUS_UNKNOWN = 4


class StartOutcome(str, Enum):
    STARTED = "started"
    ALREADY_RUNNING = "already_running"
    FAILED = "failed"

    @property
    def succeeded(self) -> bool:
        return self is not StartOutcome.FAILED


class StopOutcome(str, Enum):
    STOPPED = "stopped"
    NO_DATA_DIRECTORY = "no_data_directory"
    NOT_RUNNING = "not_running"
    FAILED = "failed"

    @property
    def succeeded(self) -> bool:
        return self is not StopOutcome.FAILED


def needs_status_check(returncode: int) -> bool:
    """Any non-zero exit from start or stop is ambiguous."""
    return returncode != 0


def resolve_start(returncode: int, status: int | None = None) -> StartOutcome:
    """
    Classify a ``pg_ctl start`` attempt.

    Args:
        returncode: Exit status of ``pg_ctl start``.
        status: Exit status of the follow-up ``pg_ctl status``; only
            consulted when *returncode* is non-zero.
    """
    if returncode == 0:
        return StartOutcome.STARTED
    if status == 0:
        return StartOutcome.ALREADY_RUNNING
    return StartOutcome.FAILED


def resolve_stop(
    returncode: int,
    pgdata_exists: bool = True,
    status: int | None = None,
) -> StopOutcome:
    """
    Classify a ``pg_ctl stop`` attempt.

    Only the specific not-running status counts as stopped; any other
    non-zero status is indeterminate and fails closed.
    """
    if returncode == 0:
        return StopOutcome.STOPPED
    if not pgdata_exists:
        return StopOutcome.NO_DATA_DIRECTORY
    if status == PROGRAM_NOT_RUNNING:
        return StopOutcome.NOT_RUNNING
    return StopOutcome.FAILED
