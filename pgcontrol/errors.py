"""
Exception taxonomy for pgcontrol.

These are raised inside the package and caught at each public operation,
which logs them and reports a plain success/failure verdict.
"""

from __future__ import annotations


class PgControlError(Exception):
    """Base class for all pgcontrol errors."""


class LaunchFailure(PgControlError):
    """An external program could not be started at all."""

    def __init__(self, program: str, errno: int | None, message: str) -> None:
        super().__init__(f"Failed to run {program!r}: {message}")
        self.program = program
        self.errno = errno


class ParseFailure(PgControlError):
    """External tool output could not be parsed."""

    def __init__(self, message: str, output: str | None = None) -> None:
        super().__init__(message)
        self.output = output


class ConfigIOError(PgControlError):
    """A configuration file could not be read or written."""


class ContractViolation(PgControlError):
    """A caller broke a documented contract (a programming defect)."""


class EscapeLengthError(ContractViolation):
    """An escaped value does not fit in the requested maximum length."""
