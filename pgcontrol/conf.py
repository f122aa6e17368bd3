"""
postgresql.conf patching.

Two idempotent building blocks:

- ``ensure_included``: prepend an ``include`` line to a configuration file
  unless a line matching its detection pattern is already there.
- ``ensure_settings_file``: render a settings set to ``name = value`` lines
  and (re)write the file only when its contents differ.

``add_default_settings`` combines both to install
``postgresql-auto-failover.conf`` next to ``postgresql.conf``.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from pgcontrol.errors import ConfigIOError, ContractViolation
from pgcontrol.escape import escape_conf_string
from pgcontrol.server import ServerSetup

logger = logging.getLogger(__name__)

DEFAULTS_CONF_FILENAME = "postgresql-auto-failover.conf"
DEFAULTS_CONF_INCLUDE_LINE = f"include '{DEFAULTS_CONF_FILENAME}'"
DEFAULTS_CONF_INCLUDE_REGEX = r"^include 'postgresql-auto-failover\.conf'.*"

STANDBY_CONF_FILENAME = "postgresql-auto-failover-standby.conf"
STANDBY_CONF_INCLUDE_LINE = f"include '{STANDBY_CONF_FILENAME}'"
STANDBY_CONF_INCLUDE_REGEX = r"^include 'postgresql-auto-failover-standby\.conf'.*"

CONF_INCLUDE_COMMENT = " # Auto-generated by pg_auto_failover, do not remove\n"

SETTINGS_FILE_HEADER = "# Settings by pg_auto_failover\n"


@dataclass(frozen=True)
class NamedSetting:
    """
    One ``name = value`` line of a generated settings file.

    Either *value* is given verbatim (already quoted when Postgres needs it),
    or *placeholder* names a :class:`ServerSetup` attribute substituted at
    render time.  *needs_quoting* applies to the rendered value and is set
    explicitly, never guessed from the value's shape.
    """

    name: str
    value: str | None = None
    placeholder: str | None = None
    needs_quoting: bool = False

    @classmethod
    def from_setup(
        cls, name: str, attribute: str, *, needs_quoting: bool = False
    ) -> NamedSetting:
        return cls(name=name, placeholder=attribute, needs_quoting=needs_quoting)

    def render(self, setup: ServerSetup | None) -> str:
        """Render the ``name = value`` line (without newline)."""
        if self.placeholder is not None:
            if setup is None:
                raise ContractViolation(
                    f"setting {self.name!r} needs a server setup "
                    f"to substitute {self.placeholder!r}"
                )
            value = getattr(setup, self.placeholder)
            if value is None:
                raise ContractViolation(
                    f"setting {self.name!r}: server setup has no {self.placeholder!r}"
                )
            value = str(value)
        elif self.value is not None:
            value = self.value
        else:
            raise ContractViolation(f'setting "{self.name}" has no value')

        if self.needs_quoting:
            value = escape_conf_string(value)

        return f"{self.name} = {value}"


# The listen_addresses value stays unquoted on ServerSetup because the same
# value is passed to pg_ctl start --options "-h ...", where quotes would
# end up in the socket address.
DEFAULT_SETTINGS: tuple[NamedSetting, ...] = (
    NamedSetting("shared_preload_libraries", "'pg_stat_statements'"),
    NamedSetting.from_setup("listen_addresses", "listen_addresses", needs_quoting=True),
    NamedSetting.from_setup("port", "port"),
    NamedSetting("max_wal_senders", "12"),
    NamedSetting("max_replication_slots", "12"),
    NamedSetting("wal_level", "'replica'"),
    NamedSetting("wal_log_hints", "on"),
    NamedSetting("wal_sender_timeout", "'30s'"),
    NamedSetting("hot_standby_feedback", "on"),
    NamedSetting("hot_standby", "on"),
    NamedSetting("synchronous_commit", "on"),
    NamedSetting("logging_collector", "on"),
    NamedSetting("log_destination", "stderr"),
    NamedSetting("log_directory", "log"),
    NamedSetting("log_min_messages", "info"),
    NamedSetting("log_connections", "off"),
    NamedSetting("log_disconnections", "off"),
    NamedSetting("log_lock_waits", "on"),
    NamedSetting("ssl", "off"),
)


# ---------------------------------------------------------------------------
# File helpers
# ---------------------------------------------------------------------------


def read_file(path: Path) -> bytes:
    """Return the raw contents of *path*; the server encoding is not ours to guess."""
    try:
        return path.read_bytes()
    except OSError as e:
        raise ConfigIOError(f'Failed to read file "{path}": {e}') from e


def write_file(path: Path, content: str | bytes) -> None:
    """
    Replace *path* with *content* via a temporary file and rename.

    A symlinked *path* is followed, so the link stays and its target is
    rewritten.
    """
    data = content.encode("utf-8") if isinstance(content, str) else content
    try:
        target = path.resolve()
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            if target.exists():
                os.chmod(tmp_name, target.stat().st_mode & 0o7777)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as e:
        raise ConfigIOError(f'Failed to write file "{path}": {e}') from e


# ---------------------------------------------------------------------------
# Include lines
# ---------------------------------------------------------------------------


def ensure_included(
    config_path: Path,
    include_line: str,
    detection_pattern: str,
    comment: str = CONF_INCLUDE_COMMENT,
) -> bool:
    """
    Make sure *config_path* includes another configuration file.

    When no line matches *detection_pattern* (anchored at line start), the
    file is rewritten as *include_line* + *comment* + original contents.

    Returns:
        True when the include line is in place, False on I/O errors.
    """
    config_path = Path(config_path)
    try:
        current = read_file(config_path)

        if re.search(detection_pattern.encode("utf-8"), current, flags=re.MULTILINE):
            logger.debug(f'{include_line} found in "{config_path}"')
            return True

        logger.debug(f'Adding {include_line} to "{config_path}"')
        write_file(config_path, (include_line + comment).encode("utf-8") + current)
    except ConfigIOError as e:
        logger.error(str(e))
        return False

    return True


# ---------------------------------------------------------------------------
# Settings files
# ---------------------------------------------------------------------------


def render_settings(
    settings: Sequence[NamedSetting], setup: ServerSetup | None
) -> str:
    """Render *settings* to the full text of a settings file."""
    lines = [SETTINGS_FILE_HEADER]
    for setting in settings:
        lines.append(setting.render(setup) + "\n")
    return "".join(lines)


def ensure_settings_file(
    path: Path,
    settings: Sequence[NamedSetting],
    setup: ServerSetup | None,
) -> bool:
    """
    Write the rendered *settings* to *path* unless it already has them.

    An existing file with identical bytes is left untouched, so repeated
    calls never change its mtime.

    Returns:
        True on success, False on I/O errors or an invalid setting.
    """
    path = Path(path)
    try:
        contents = render_settings(settings, setup)
    except ContractViolation as e:
        logger.error(f"BUG: {e}")
        return False

    try:
        if path.exists():
            if read_file(path) == contents.encode("utf-8"):
                logger.debug(f'Default settings file "{path}" exists')
                return True
            logger.warning(f'Contents of "{path}" have changed, overwriting')
        else:
            logger.debug(
                f'Configuration file "{path}" doesn\'t exist yet, '
                f"creating with content:\n{contents}"
            )
        write_file(path, contents)
    except ConfigIOError as e:
        logger.error(str(e))
        return False

    return True


def add_default_settings(
    setup: ServerSetup,
    config_path: Path | None = None,
    settings: Sequence[NamedSetting] = DEFAULT_SETTINGS,
) -> bool:
    """
    Install our default settings and include them from postgresql.conf.

    The settings file must sit next to postgresql.conf for a relative
    include to work.
    """
    config_path = Path(config_path) if config_path else setup.config_file
    defaults_path = config_path.parent / DEFAULTS_CONF_FILENAME

    if not ensure_settings_file(defaults_path, settings, setup):
        return False

    return ensure_included(
        config_path,
        DEFAULTS_CONF_INCLUDE_LINE,
        DEFAULTS_CONF_INCLUDE_REGEX,
        CONF_INCLUDE_COMMENT,
    )
