"""Polling checks against ``sctl status`` output.

Unit state changes inside the daemon are asynchronous, so state checks
query a few times with a pause in between before reporting a failure.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from loguru import logger

from sysmaster_testkit.core.expect import ExpectContext
from sysmaster_testkit.core.sctl import SctlClient
from sysmaster_testkit.models import PollConfig, UnitActiveState, UnitLoadState

ACTIVE_LABEL = "Active:"
LOADED_LABEL = "Loaded:"
PID_LABEL = "PID:"


@dataclass
class UnitStatus:
    """Fields parsed from one ``sctl status`` query."""

    unit: str
    raw: str
    active: str = ""
    loaded: str = ""
    pids: list[int] = field(default_factory=list)


def _whole_word(word: str) -> re.Pattern[str]:
    return re.compile(rf"(?<!\w){re.escape(word)}(?!\w)")


def extract_field(output: str, label: str) -> str:
    """Return the second field of the first line carrying ``label``."""
    label_re = _whole_word(label)
    for line in output.splitlines():
        if label_re.search(line):
            parts = line.split()
            return parts[1] if len(parts) > 1 else ""
    return ""


def extract_pids(output: str) -> list[int]:
    """Collect the pids listed from the ``PID:`` line to the end of the output."""
    lines = output.splitlines()
    for start, line in enumerate(lines):
        if PID_LABEL in line:
            break
    else:
        return []

    pids = []
    for line in lines[start:]:
        parts = line.replace(PID_LABEL, "", 1).split()
        if parts and parts[0].isdigit():
            pids.append(int(parts[0]))
    return pids


def parse_status(output: str, unit: str = "") -> UnitStatus:
    """Parse a full ``sctl status`` output."""
    return UnitStatus(
        unit=unit,
        raw=output,
        active=extract_field(output, ACTIVE_LABEL),
        loaded=extract_field(output, LOADED_LABEL),
        pids=extract_pids(output),
    )


def state_matches(token: str, expected: str) -> bool:
    """True if ``expected`` occurs in ``token`` as a whole word.

    ``expected`` is matched literally, not as a regular expression. Word
    boundaries follow ``grep -w``: only letters, digits and underscores join
    words, so ``found`` matches inside ``not-found`` but not ``not_found``.
    """
    return bool(expected) and _whole_word(expected).search(token) is not None


class UnitStatusPoller:
    """Checks unit state through the control command with bounded retries."""

    def __init__(
        self,
        ctx: ExpectContext,
        client: SctlClient | None = None,
        attempts: int = 3,
        interval: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the poller.

        Args:
            ctx: Context that records failures.
            client: Control command wrapper.
            attempts: Total number of queries per check.
            interval: Seconds to wait after a mismatching query.
            sleep: Sleep function, replaceable in tests.
        """
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self.ctx = ctx
        self.client = client or SctlClient()
        self.attempts = attempts
        self.interval = interval
        self._sleep = sleep

    @classmethod
    def from_config(cls, ctx: ExpectContext, config: PollConfig) -> "UnitStatusPoller":
        return cls(
            ctx,
            client=SctlClient(config.sctl, timeout=config.timeout),
            attempts=config.attempts,
            interval=config.interval,
        )

    def status(self, unit: str) -> UnitStatus:
        """Take a single status snapshot."""
        return parse_status(self.client.status(unit), unit)

    def _poll_field(
        self,
        check_name: str,
        unit: str,
        label: str,
        expected: str | Enum,
        stacklevel: int,
    ) -> bool:
        want = expected.value if isinstance(expected, Enum) else str(expected)
        output = ""
        token = ""

        for attempt in range(1, self.attempts + 1):
            output = self.client.status(unit)
            logger.debug(f"sctl status {unit} (attempt {attempt}/{self.attempts}):\n{output}")

            token = extract_field(output, label)
            if state_matches(token, want):
                return True

            if attempt < self.attempts:
                self._sleep(self.interval)

        self.ctx.add_failure(
            f"{check_name}({unit}, {want}) failed after {self.attempts} attempts, got '{token}'",
            stacklevel=stacklevel + 2,
        )
        logger.error(f"Last sctl status {unit} output:\n{output}")
        return False

    def check_status(
        self,
        unit: str,
        expected: str | UnitActiveState,
        *,
        stacklevel: int = 1,
    ) -> bool:
        """Wait for the unit's ``Active:`` state to match."""
        return self._poll_field("check_status", unit, ACTIVE_LABEL, expected, stacklevel)

    def check_load(
        self,
        unit: str,
        expected: str | UnitLoadState,
        *,
        stacklevel: int = 1,
    ) -> bool:
        """Wait for the unit's ``Loaded:`` state to match."""
        return self._poll_field("check_load", unit, LOADED_LABEL, expected, stacklevel)

    def get_pids(self, unit: str) -> list[int]:
        """Return the pids listed for the unit (single query)."""
        return extract_pids(self.client.status(unit))
