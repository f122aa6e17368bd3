"""Parsers for pg_controldata and pg_ctl --version output."""

from __future__ import annotations

import re

from pgcontrol.errors import ParseFailure
from pgcontrol.server import ControlData

_VERSION_RE = re.compile(r"\(PostgreSQL\)\s+(\d+(?:\.\d+)?)")

_REQUIRED_INT_KEYS = {
    "pg_control version number": "pg_control_version",
    "Catalog version number": "catalog_version_no",
    "Database system identifier": "system_identifier",
}


def parse_version_number(output: str) -> str:
    """
    Extract the version from ``pg_ctl --version`` output.

    >>> parse_version_number("pg_ctl (PostgreSQL) 13.4 (Debian 13.4-1)\\n")
    '13.4'
    """
    match = _VERSION_RE.search(output)
    if match is None:
        raise ParseFailure("Failed to parse pg_ctl --version output", output)
    return match.group(1)


def parse_controldata_lines(output: str) -> dict[str, str]:
    """Split ``key: value`` lines; lines without a colon are skipped."""
    values: dict[str, str] = {}
    for line in output.splitlines():
        if ":" not in line:
            continue
        key, value = line.split(":", 1)
        # Some keys are prefixed with "Current " depending on the major version
        key = key.strip()
        if key.startswith("Current "):
            key = key[len("Current "):]
        values[key] = value.strip()
    return values


def parse_controldata(output: str) -> ControlData:
    """
    Parse ``pg_controldata`` output (run with ``LANG=C``).

    Raises:
        ParseFailure: If a required key is missing or not an integer.
    """
    values = parse_controldata_lines(output)
    parsed: dict[str, int] = {}

    for key, attribute in _REQUIRED_INT_KEYS.items():
        raw = values.get(key)
        if raw is None:
            raise ParseFailure(f"Missing {key!r} in pg_controldata output", output)
        try:
            parsed[attribute] = int(raw)
        except ValueError:
            raise ParseFailure(
                f"Invalid {key!r} in pg_controldata output: {raw!r}", output
            ) from None

    timeline = values.get("Latest checkpoint's TimeLineID")

    return ControlData(
        pg_control_version=parsed["pg_control_version"],
        catalog_version_no=parsed["catalog_version_no"],
        system_identifier=parsed["system_identifier"],
        cluster_state=values.get("Database cluster state"),
        latest_checkpoint_lsn=values.get("Latest checkpoint location"),
        timeline_id=int(timeline) if timeline and timeline.isdigit() else None,
    )
