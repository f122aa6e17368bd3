"""Unit tests for rich table rendering."""

from __future__ import annotations

import io

from rich.console import Console

from pgcontrol.display import display_controldata, display_status, status_label
from pgcontrol.server import ControlData, ServerSetup


def _console() -> Console:
    return Console(file=io.StringIO(), width=120, color_system=None)


def test_status_labels():
    assert "running" in status_label(0)
    assert "not running" in status_label(3)
    assert "pg_ctl status returned 4" in status_label(4)


def test_display_status():
    console = _console()
    setup = ServerSetup(pgdata="/data/main", pg_ctl="/usr/bin/pg_ctl", port=5433)

    display_status(setup, 3, console)

    output = console.file.getvalue()
    assert "not running" in output
    assert "/data/main" in output
    assert "5433" in output


def test_display_controldata():
    console = _console()
    setup = ServerSetup(pgdata="/data/main")
    setup.control = ControlData(pg_control_version=1300, cluster_state="shut down")

    display_controldata(setup, console)

    output = console.file.getvalue()
    assert "pg_control_version" in output
    assert "1300" in output
    assert "shut down" in output
