"""Unit tests for the pg_ctl start/stop decision tables."""

from __future__ import annotations

import pytest

from pgcontrol.outcomes import (
    PROGRAM_NOT_RUNNING,
    StartOutcome,
    StopOutcome,
    needs_status_check,
    resolve_start,
    resolve_stop,
)


class TestResolveStart:
    """pg_ctl start: exit code, then pg_ctl status when ambiguous."""

    def test_zero_exit_is_started(self):
        assert resolve_start(0) is StartOutcome.STARTED

    def test_zero_exit_ignores_status(self):
        assert resolve_start(0, PROGRAM_NOT_RUNNING) is StartOutcome.STARTED

    def test_nonzero_exit_running_status(self):
        """Another postmaster was already up: success."""
        outcome = resolve_start(1, 0)
        assert outcome is StartOutcome.ALREADY_RUNNING
        assert outcome.succeeded

    def test_nonzero_exit_not_running(self):
        outcome = resolve_start(1, PROGRAM_NOT_RUNNING)
        assert outcome is StartOutcome.FAILED
        assert not outcome.succeeded

    @pytest.mark.parametrize("status", [1, 4, -1, None])
    def test_indeterminate_status_fails_closed(self, status):
        assert resolve_start(1, status) is StartOutcome.FAILED


class TestResolveStop:
    """pg_ctl stop: exit code, PGDATA existence, then pg_ctl status."""

    def test_zero_exit_is_stopped(self):
        assert resolve_stop(0) is StopOutcome.STOPPED

    @pytest.mark.parametrize("status", [0, 1, PROGRAM_NOT_RUNNING, None])
    def test_missing_pgdata_is_success(self, status):
        outcome = resolve_stop(1, pgdata_exists=False, status=status)
        assert outcome is StopOutcome.NO_DATA_DIRECTORY
        assert outcome.succeeded

    def test_not_running_status(self):
        outcome = resolve_stop(1, pgdata_exists=True, status=PROGRAM_NOT_RUNNING)
        assert outcome is StopOutcome.NOT_RUNNING
        assert outcome.succeeded

    def test_still_running(self):
        assert resolve_stop(1, pgdata_exists=True, status=0) is StopOutcome.FAILED

    @pytest.mark.parametrize("status", [1, 4, -1, None])
    def test_other_nonzero_status_fails_closed(self, status):
        """Only the specific not-running code counts as stopped."""
        assert resolve_stop(1, pgdata_exists=True, status=status) is StopOutcome.FAILED


def test_needs_status_check():
    assert not needs_status_check(0)
    assert needs_status_check(1)
    assert needs_status_check(-1)
