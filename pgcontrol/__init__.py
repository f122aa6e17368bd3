"""
pgcontrol: Control a PostgreSQL server's lifecycle and configuration.

Wraps pg_ctl, pg_controldata, pg_basebackup and pg_rewind, disambiguates
their exit codes, and keeps generated configuration files idempotent.
"""

from pgcontrol.conf import (
    DEFAULT_SETTINGS,
    NamedSetting,
    add_default_settings,
    ensure_included,
    ensure_settings_file,
)
from pgcontrol.config import ControllerConfig
from pgcontrol.escape import escape_conf_string, unescape_conf_string
from pgcontrol.lifecycle import (
    pg_ctl_initdb,
    pg_ctl_promote,
    pg_ctl_restart,
    pg_ctl_start,
    pg_ctl_status,
    pg_ctl_stop,
    pg_is_running,
)
from pgcontrol.outcomes import PROGRAM_NOT_RUNNING, StartOutcome, StopOutcome
from pgcontrol.probes import ControlDataStatus, find_pg_ctl, pg_controldata, pg_ctl_version
from pgcontrol.process import NOT_RUN, ProcessResult, run_program
from pgcontrol.replication import pg_basebackup, pg_rewind
from pgcontrol.server import ControlData, ReplicationSource, ServerSetup
from pgcontrol.standby import build_conninfo, pg_setup_standby_mode

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_SETTINGS",
    "NOT_RUN",
    "PROGRAM_NOT_RUNNING",
    "ControlData",
    "ControlDataStatus",
    "ControllerConfig",
    "NamedSetting",
    "ProcessResult",
    "ReplicationSource",
    "ServerSetup",
    "StartOutcome",
    "StopOutcome",
    "add_default_settings",
    "build_conninfo",
    "ensure_included",
    "ensure_settings_file",
    "escape_conf_string",
    "find_pg_ctl",
    "pg_basebackup",
    "pg_controldata",
    "pg_ctl_initdb",
    "pg_ctl_promote",
    "pg_ctl_restart",
    "pg_ctl_start",
    "pg_ctl_status",
    "pg_ctl_stop",
    "pg_ctl_version",
    "pg_is_running",
    "pg_rewind",
    "pg_setup_standby_mode",
    "run_program",
    "unescape_conf_string",
]
