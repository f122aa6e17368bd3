"""
pgcontrol CLI: Command-line interface to the PostgreSQL controller.

Provides commands for:
- initdb, start, stop, restart, promote, status: pg_ctl lifecycle
- version, controldata: probes
- standby, basebackup, rewind: replication setup
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from rich.console import Console

from pgcontrol.config import ControllerConfig
from pgcontrol.display import display_controldata, display_status
from pgcontrol.lifecycle import (
    pg_ctl_initdb,
    pg_ctl_promote,
    pg_ctl_restart,
    pg_ctl_start,
    pg_ctl_status,
    pg_ctl_stop,
)
from pgcontrol.outcomes import STATUS_UNKNOWN
from pgcontrol.probes import (
    ControlDataStatus,
    find_pg_ctl,
    pg_controldata,
    pg_ctl_version,
)
from pgcontrol.replication import pg_basebackup, pg_rewind
from pgcontrol.server import ReplicationSource, ServerSetup
from pgcontrol.standby import pg_setup_standby_mode

logger = logging.getLogger(__name__)


def _add_replication_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--host", help="Primary host")
    parser.add_argument("--primary-port", type=int, help="Primary port")
    parser.add_argument("--user", help="Replication user")
    parser.add_argument("--password", help="Replication password")
    parser.add_argument("--slot", dest="slot_name", help="Replication slot name")
    parser.add_argument(
        "--max-rate",
        dest="maximum_backup_rate",
        help="pg_basebackup --max-rate (default: 100M)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pgcontrol",
        description="Control a PostgreSQL server through pg_ctl",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument("--config", help="Path to .pgcontrol.toml")
    parser.add_argument("--pgdata", "-D", help="PostgreSQL data directory")
    parser.add_argument("--pg-ctl", help="Path to pg_ctl (default: search PATH)")
    parser.add_argument("--port", "-p", type=int, help="PostgreSQL port")
    parser.add_argument("--listen", dest="listen_addresses", help="listen_addresses")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("initdb", help="Initialise the data directory")
    subparsers.add_parser("start", help="Start PostgreSQL")
    subparsers.add_parser("stop", help="Stop PostgreSQL (fast mode)")
    subparsers.add_parser("restart", help="Restart PostgreSQL (fast mode)")
    subparsers.add_parser("promote", help="Promote a standby")
    subparsers.add_parser("version", help="Show the pg_ctl version")

    status_parser = subparsers.add_parser("status", help="Check PostgreSQL status")
    status_parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Output as JSON",
    )

    controldata_parser = subparsers.add_parser(
        "controldata", help="Show pg_controldata information"
    )
    controldata_parser.add_argument(
        "--missing-ok",
        action="store_true",
        help="Succeed when the data directory is not initialised",
    )
    controldata_parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Output as JSON",
    )

    standby_parser = subparsers.add_parser(
        "standby", help="Write standby configuration for a primary"
    )
    _add_replication_args(standby_parser)
    standby_parser.add_argument(
        "--pg-control-version",
        type=int,
        help="pg_control version (default: read with pg_controldata)",
    )

    basebackup_parser = subparsers.add_parser(
        "basebackup", help="Clone the data directory from a primary"
    )
    _add_replication_args(basebackup_parser)
    basebackup_parser.add_argument(
        "--backup-dir",
        help="Scratch directory for the transfer (default: <pgdata>.backup)",
    )

    rewind_parser = subparsers.add_parser(
        "rewind", help="Resynchronise the data directory with a new primary"
    )
    _add_replication_args(rewind_parser)
    rewind_parser.add_argument("--dbname", default="postgres", help="Database to connect to")

    return parser


def load_config(path: str | None) -> ControllerConfig:
    """Load the given config file, or the nearest one; empty if none."""
    if path:
        return ControllerConfig.from_file(Path(path))
    try:
        return ControllerConfig.load()
    except FileNotFoundError:
        return ControllerConfig()


def resolve_setup(args: argparse.Namespace, config: ControllerConfig) -> ServerSetup:
    setup = config.server_setup(
        pgdata=args.pgdata,
        pg_ctl=args.pg_ctl,
        port=args.port,
        listen_addresses=args.listen_addresses,
    )
    if setup.pg_ctl is None:
        find_pg_ctl(setup)
    return setup


def resolve_source(args: argparse.Namespace, config: ControllerConfig) -> ReplicationSource:
    return config.replication_source(
        host=args.host,
        port=args.primary_port,
        user=args.user,
        password=args.password,
        slot_name=args.slot_name,
        maximum_backup_rate=args.maximum_backup_rate,
    )


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    try:
        config = load_config(args.config)
        setup = resolve_setup(args, config)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if setup.pg_ctl is None:
        print("Error: pg_ctl not found, use --pg-ctl", file=sys.stderr)
        return 1

    if args.command == "version":
        version = pg_ctl_version(setup.pg_ctl)
        if version is None:
            return 1
        print(version)
        return 0

    if setup.pgdata is None:
        print("Error: --pgdata is required", file=sys.stderr)
        return 1

    return handle_command(args, config, setup)


def handle_command(
    args: argparse.Namespace, config: ControllerConfig, setup: ServerSetup
) -> int:
    """Dispatch a subcommand that operates on a data directory."""
    if setup.pg_ctl is None or setup.pgdata is None:
        print("Error: both pg_ctl and --pgdata are required", file=sys.stderr)
        return 1

    console = Console()

    if args.command == "initdb":
        return 0 if pg_ctl_initdb(setup.pg_ctl, setup.pgdata) else 1

    elif args.command == "start":
        ok = pg_ctl_start(setup.pg_ctl, setup.pgdata, setup.port, setup.listen_addresses)
        return 0 if ok else 1

    elif args.command == "stop":
        return 0 if pg_ctl_stop(setup.pg_ctl, setup.pgdata) else 1

    elif args.command == "restart":
        return 0 if pg_ctl_restart(setup.pg_ctl, setup.pgdata) else 1

    elif args.command == "promote":
        return 0 if pg_ctl_promote(setup.pg_ctl, setup.pgdata) else 1

    elif args.command == "status":
        returncode = pg_ctl_status(setup.pg_ctl, setup.pgdata, log_output=args.verbose)
        if args.json_output:
            data = setup.to_dict()
            data["running"] = returncode == 0
            data["status"] = returncode
            print(json.dumps(data, indent=2))
        else:
            display_status(setup, returncode, console)
        # pg_ctl never exits negative; a launch failure is reported as unknown
        return returncode if returncode >= 0 else STATUS_UNKNOWN

    elif args.command == "controldata":
        status = pg_controldata(setup, missing_ok=args.missing_ok)
        if status is ControlDataStatus.OK:
            if args.json_output:
                print(json.dumps(setup.control.to_dict(), indent=2))
            else:
                display_controldata(setup, console)
        elif status is ControlDataStatus.NOT_INITIALIZED:
            console.print(f"[yellow]{setup.pgdata} is not initialised[/yellow]")
        return 0 if status.acceptable(args.missing_ok) else 1

    try:
        source = resolve_source(args, config)
    except KeyError as e:
        print(f"Error: {e.args[0]}", file=sys.stderr)
        return 1

    if args.command == "standby":
        version = args.pg_control_version
        if version is None:
            if pg_controldata(setup) is not ControlDataStatus.OK:
                return 1
            version = setup.control.pg_control_version
        ok = pg_setup_standby_mode(version, setup.config_file, setup.pgdata, source)
        return 0 if ok else 1

    elif args.command == "basebackup":
        backup_dir = (
            Path(args.backup_dir)
            if args.backup_dir
            else setup.pgdata.with_name(setup.pgdata.name + ".backup")
        )
        return 0 if pg_basebackup(setup.pgdata, setup.pg_ctl, backup_dir, source) else 1

    elif args.command == "rewind":
        return 0 if pg_rewind(setup.pgdata, setup.pg_ctl, source, args.dbname) else 1

    print(f"Unknown command: {args.command}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
