"""Verification of daemon log content.

The daemon writes into a pre-allocated, zero-padded log buffer, so log files
may contain runs of NUL bytes. They are dropped before matching.
"""

from __future__ import annotations

import re
from pathlib import Path

from loguru import logger

from sysmaster_testkit.core.expect import ExpectContext

# POSIX bracket expressions and their ASCII ranges
POSIX_CLASSES = {
    "alnum": r"0-9A-Za-z",
    "alpha": r"A-Za-z",
    "blank": r" \t",
    "cntrl": r"\x00-\x1f\x7f",
    "digit": r"0-9",
    "graph": r"!-~",
    "lower": r"a-z",
    "print": r" -~",
    "punct": r"!-/:-@\[-`{-~",
    "space": r" \t\n\r\f\v",
    "upper": r"A-Z",
    "xdigit": r"0-9A-Fa-f",
}

_POSIX_CLASS_RE = re.compile(r"\[:([a-z]+):\]")


def read_log_text(path: str | Path) -> str:
    """Read a log file with NUL padding removed."""
    data = Path(path).read_bytes()
    return data.replace(b"\x00", b"").decode("utf-8", errors="replace")


def translate_posix_classes(pattern: str) -> str:
    """Rewrite ``[:digit:]`` style classes into ranges ``re`` understands."""

    def replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in POSIX_CLASSES:
            raise re.error(f"unknown character class [:{name}:]")
        return POSIX_CLASSES[name]

    return _POSIX_CLASS_RE.sub(replace, pattern)


def compile_log_pattern(pattern: str) -> re.Pattern[str]:
    """Compile an extended regular expression as ``grep -E`` reads it."""
    return re.compile(translate_posix_classes(pattern))


def check_log(
    ctx: ExpectContext,
    path: str | Path,
    *patterns: str,
    stacklevel: int = 1,
) -> bool:
    """Check that every pattern occurs in the log at least once.

    Patterns are extended regular expressions matched case-sensitively against
    one line at a time, so no match spans a line break. POSIX classes such as
    ``[[:digit:]]`` are supported. Patterns are tried in the given order and
    the first one that does not match ends the check.

    Args:
        ctx: Context that records the failure.
        path: Log file to read.
        *patterns: Required patterns, at least one.
        stacklevel: Extra frames to skip when reporting the failing line.

    Returns:
        True if all patterns were found.
    """
    level = stacklevel + 1

    if not ctx.gt(len(patterns), 0, "Parameter missing: key log info not defined!", stacklevel=level):
        return False

    try:
        content = read_log_text(path)
    except OSError as e:
        return ctx.add_failure(f"cannot read log {path}: {e}", stacklevel=level)

    logger.debug(f"Content of {path}:\n{content}")
    lines = content.split("\n")

    for pattern in patterns:
        try:
            regex = compile_log_pattern(pattern)
        except re.error as e:
            return ctx.add_failure(f"invalid log pattern '{pattern}': {e}", stacklevel=level)

        if not any(regex.search(line) for line in lines):
            return ctx.add_failure(
                f"check log failed, '{pattern}' not found in {path}!",
                stacklevel=level,
            )
        logger.debug(f"Found '{pattern}' in {path}")

    return True
