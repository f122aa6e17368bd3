"""
External program invocation.

``run_program`` is the single place where pgcontrol starts a child
process.  Arguments are always passed as discrete tokens (no shell), all of
stdout and stderr is captured, and environment changes are given as an
explicit per-call overlay instead of mutating ``os.environ``.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path

from pgcontrol.errors import LaunchFailure

logger = logging.getLogger(__name__)

# Exit status reported when the program could not be launched.
NOT_RUN = -1


@dataclass(frozen=True)
class ProcessResult:
    """
    Outcome of running an external program.

    Attributes:
        program: Path of the program that was run.
        args: Arguments passed after the program name.
        returncode: Exit status, or ``NOT_RUN`` when launching failed.
        stdout: Captured standard output, ``None`` when empty.
        stderr: Captured standard error, ``None`` when empty.
        error: OS errno when the program could not be launched.
    """

    program: str
    args: tuple[str, ...]
    returncode: int
    stdout: str | None = None
    stderr: str | None = None
    error: int | None = None

    @property
    def launched(self) -> bool:
        return self.error is None and self.returncode != NOT_RUN

    @property
    def ok(self) -> bool:
        return self.launched and self.returncode == 0

    @property
    def command_line(self) -> str:
        """Shell-quoted command line, for logs only."""
        return shlex.join([self.program, *self.args])

    @property
    def error_message(self) -> str:
        if self.error is None:
            return ""
        return os.strerror(self.error)

    def check_launched(self) -> ProcessResult:
        """Raise :class:`LaunchFailure` if the program never ran; else return self."""
        if not self.launched:
            raise LaunchFailure(self.program, self.error, self.error_message)
        return self


def run_program(
    program: str | Path,
    *args: str,
    env: dict[str, str] | None = None,
    new_session: bool = False,
) -> ProcessResult:
    """
    Run *program* with *args* and wait for it to exit.

    Args:
        program: Path to the executable.
        *args: Arguments, each passed as its own argv entry.
        env: Variables added on top of the current environment for this
            invocation only.
        new_session: Start the child in a new session (``setsid``), so it
            survives our own process group being signalled.

    Returns:
        A :class:`ProcessResult`.  Launch failures do not raise; they are
        reported through ``returncode == NOT_RUN`` and ``error``.
    """
    program = str(program)
    args = tuple(str(a) for a in args)

    full_env = os.environ.copy()
    if env:
        full_env.update(env)

    try:
        completed = subprocess.run(
            [program, *args],
            capture_output=True,
            text=True,
            # postmaster messages follow the server locale, not ours
            encoding="utf-8",
            errors="replace",
            env=full_env,
            start_new_session=new_session,
        )
    except OSError as e:
        logger.debug(f"Failed to launch {program}: {e}")
        return ProcessResult(
            program=program,
            args=args,
            returncode=NOT_RUN,
            error=e.errno if e.errno is not None else 0,
        )

    return ProcessResult(
        program=program,
        args=args,
        returncode=completed.returncode,
        stdout=completed.stdout or None,
        stderr=completed.stderr or None,
    )


def log_program_output(result: ProcessResult) -> None:
    """Log captured output; stderr goes to ERROR when the program failed."""
    if result.stdout is not None:
        logger.info(result.stdout.rstrip("\n"))

    if result.stderr is not None:
        if result.returncode == 0:
            logger.info(result.stderr.rstrip("\n"))
        else:
            logger.error(result.stderr.rstrip("\n"))


def path_in_same_directory(reference: str | Path, name: str) -> Path:
    """Return the path of *name* next to *reference* (e.g. pg_ctl's siblings)."""
    return Path(reference).parent / name
