"""Harness log output.

Every line looks like::

    [2024-05-01 12:00:00] [  INFO ] message
    [2024-05-01 12:00:00] [WARNING] message
    [2024-05-01 12:00:00] [ ERROR ] message
    [2024-05-01 12:00:00] [ DEBUG ] message

Warnings and errors are coloured when the sink is a terminal.
"""

from __future__ import annotations

import sys
from typing import Any, TextIO

from loguru import logger

# Fixed-width level tags
LEVEL_TAGS = {
    "INFO": "  INFO ",
    "WARNING": "WARNING",
    "ERROR": " ERROR ",
    "DEBUG": " DEBUG ",
}

LEVEL_COLORS = {
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red",
}


def level_tag(level_name: str) -> str:
    """Return the 7-character tag for a level name."""
    return LEVEL_TAGS.get(level_name, f"{level_name[:7]:^7}")


def format_record(record: dict[str, Any]) -> str:
    """Build the loguru format template for a single record."""
    name = record["level"].name
    line = f"[{{time:YYYY-MM-DD HH:mm:ss}}] [{level_tag(name)}] {{message}}"

    color = LEVEL_COLORS.get(name)
    if color:
        line = f"<{color}>{line}</{color}>"

    return line + "\n{exception}"


def setup_logging(
    sink: TextIO | None = None,
    verbose: bool = True,
    colorize: bool | None = None,
) -> int:
    """Install the harness log handler.

    Args:
        sink: Stream to write to (defaults to standard output).
        verbose: Emit DEBUG lines as well.
        colorize: Force colours on or off; ``None`` detects a terminal.

    Returns:
        The loguru handler id.
    """
    logger.remove()

    level = "DEBUG" if verbose else "INFO"

    # Stream sinks are flushed after every record, so a line is visible
    # before any process-table or file check that follows it.
    return logger.add(
        sink or sys.stdout,
        format=format_record,
        level=level,
        colorize=colorize,
        catch=False,
    )
