"""
Quoting of values embedded in PostgreSQL configuration files.

A value such as ``primary_conninfo`` is written between single quotes, and
any single quote inside it is doubled.
"""

from __future__ import annotations

from pgcontrol.errors import EscapeLengthError, ParseFailure


def escape_conf_string(value: str, max_length: int | None = None) -> str:
    """
    Return *value* wrapped in single quotes with inner quotes doubled.

    Args:
        value: Raw string to embed.
        max_length: Optional upper bound on the escaped result length.

    Raises:
        EscapeLengthError: If *max_length* cannot hold the two surrounding
            quotes plus *value*, or the escaped result is longer than it.
    """
    if max_length is not None and max_length < len(value) + 2:
        raise EscapeLengthError(
            f"failed to escape a {len(value)} character value in {max_length} characters"
        )

    escaped = "'" + value.replace("'", "''") + "'"

    if max_length is not None and len(escaped) > max_length:
        raise EscapeLengthError(
            f"failed to escape a {len(value)} character value in {max_length} characters, "
            f"{len(escaped)} needed"
        )

    return escaped


def unescape_conf_string(text: str) -> str:
    """Reverse :func:`escape_conf_string`."""
    if len(text) < 2 or text[0] != "'" or text[-1] != "'":
        raise ParseFailure(f"not a single-quoted value: {text!r}", text)

    inner = text[1:-1]
    chars: list[str] = []
    i = 0
    while i < len(inner):
        if inner[i] == "'":
            if inner[i + 1 : i + 2] != "'":
                raise ParseFailure(f"unpaired quote in value: {text!r}", text)
            i += 1
        chars.append(inner[i])
        i += 1
    return "".join(chars)
