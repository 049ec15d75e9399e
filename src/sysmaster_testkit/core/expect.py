"""Non-fatal expectations for integration tests.

A failed expectation is recorded on the :class:`ExpectContext`, logged with
the location of the calling test line, and reported back as ``False``. The
test keeps running; the driver looks at :attr:`ExpectContext.fail_count` (or
:attr:`ExpectContext.exit_code`) once the run is over.

Example::

    ctx = ExpectContext("unit-start")
    if ctx.eq(proc.returncode, 0, "sctl start failed"):
        ctx.str_eq(state, "active")
    sys.exit(ctx.summary())
"""

from __future__ import annotations

import numbers
import operator
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from loguru import logger


class ExpectationUsageError(TypeError):
    """An expectation was called with missing or unusable operands."""


@dataclass(frozen=True)
class CallSite:
    """Source location of the line that invoked an expectation."""

    filename: str
    lineno: int

    def __str__(self) -> str:
        return f"{self.filename}: {self.lineno}"


@dataclass(frozen=True)
class ExpectFailure:
    """A single recorded failure."""

    operator: str
    actual: str | None
    expected: str | None
    message: str
    location: CallSite

    def __str__(self) -> str:
        if self.actual is None and self.expected is None:
            return f"{self.operator}(msg={self.message}) - {self.location}"
        return f"{self.operator}({self.actual}, {self.expected}, msg={self.message}) - {self.location}"


def _call_site(stacklevel: int = 1) -> CallSite:
    """Find the caller of the expectation.

    Frames belonging to this module are skipped, which lands on the line that
    called the expectation. Each extra ``stacklevel`` walks one frame further
    out, for helpers that check on behalf of their own caller.
    """
    frame = sys._getframe(1)
    while frame is not None and frame.f_globals.get("__name__") == __name__:
        frame = frame.f_back

    for _ in range(stacklevel - 1):
        if frame is None or frame.f_back is None:
            break
        frame = frame.f_back

    if frame is None:
        return CallSite("<unknown>", 0)
    return CallSite(Path(frame.f_code.co_filename).name, frame.f_lineno)


def _as_number(name: str, value: Any) -> numbers.Real:
    """Validate a numeric operand; integer strings are accepted like shell ``-eq``."""
    if value is None:
        raise ExpectationUsageError(f"{name}: operand is missing")
    if isinstance(value, bool):
        raise ExpectationUsageError(f"{name}: expected a number, got bool {value!r}")
    if isinstance(value, numbers.Real):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            raise ExpectationUsageError(f"{name}: {value!r} is not an integer") from None
    raise ExpectationUsageError(f"{name}: expected a number, got {type(value).__name__}")


def _render(value: Any) -> str:
    return repr(value) if isinstance(value, str) else str(value)


class ExpectContext:
    """Failure bookkeeping for one test run."""

    def __init__(self, name: str = ""):
        self.name = name
        self._failures: list[ExpectFailure] = []

    def __repr__(self) -> str:
        return f"ExpectContext({self.name!r}, failures={self.fail_count})"

    @property
    def failures(self) -> tuple[ExpectFailure, ...]:
        """All failures recorded so far, oldest first."""
        return tuple(self._failures)

    @property
    def fail_count(self) -> int:
        return len(self._failures)

    @property
    def passed(self) -> bool:
        return not self._failures

    @property
    def exit_code(self) -> int:
        """0 when nothing failed, otherwise 1."""
        return 0 if self.passed else 1

    def _record(
        self,
        op_name: str,
        actual: str | None,
        expected: str | None,
        msg: str,
        stacklevel: int,
    ) -> bool:
        failure = ExpectFailure(
            operator=op_name,
            actual=actual,
            expected=expected,
            message=msg,
            location=_call_site(stacklevel),
        )
        self._failures.append(failure)
        logger.error(str(failure))
        return False

    def _compare(
        self,
        op_name: str,
        op: Callable[[Any, Any], bool],
        actual: Any,
        expected: Any,
        msg: str,
        stacklevel: int,
    ) -> bool:
        lhs = _as_number(op_name, actual)
        rhs = _as_number(op_name, expected)
        if op(lhs, rhs):
            return True
        return self._record(op_name, _render(actual), _render(expected), msg, stacklevel)

    def eq(self, actual: Any, expected: Any, msg: str = "", *, stacklevel: int = 1) -> bool:
        """Numeric equality."""
        return self._compare("expect_eq", operator.eq, actual, expected, msg, stacklevel)

    def ne(self, actual: Any, expected: Any, msg: str = "", *, stacklevel: int = 1) -> bool:
        """Numeric inequality."""
        return self._compare("expect_ne", operator.ne, actual, expected, msg, stacklevel)

    def gt(self, actual: Any, expected: Any, msg: str = "", *, stacklevel: int = 1) -> bool:
        return self._compare("expect_gt", operator.gt, actual, expected, msg, stacklevel)

    def ge(self, actual: Any, expected: Any, msg: str = "", *, stacklevel: int = 1) -> bool:
        return self._compare("expect_ge", operator.ge, actual, expected, msg, stacklevel)

    def lt(self, actual: Any, expected: Any, msg: str = "", *, stacklevel: int = 1) -> bool:
        return self._compare("expect_lt", operator.lt, actual, expected, msg, stacklevel)

    def le(self, actual: Any, expected: Any, msg: str = "", *, stacklevel: int = 1) -> bool:
        return self._compare("expect_le", operator.le, actual, expected, msg, stacklevel)

    def str_eq(self, actual: Any, expected: Any, msg: str = "", *, stacklevel: int = 1) -> bool:
        """Exact string equality, no numeric coercion."""
        for value in (actual, expected):
            if not isinstance(value, str):
                raise ExpectationUsageError(
                    f"expect_str_eq: expected a string, got {type(value).__name__}"
                )
        if actual == expected:
            return True
        return self._record("expect_str_eq", _render(actual), _render(expected), msg, stacklevel)

    def add_failure(self, msg: str = "", *, stacklevel: int = 1) -> bool:
        """Record a failure unconditionally (e.g. a command exited non-zero)."""
        return self._record("add_failure", None, None, msg, stacklevel)

    def summary(self) -> int:
        """Log the outcome of the run and return its exit code."""
        label = f"'{self.name}' " if self.name else ""
        if self.passed:
            logger.info(f"Test run {label}passed")
        else:
            logger.error(f"Test run {label}failed with {self.fail_count} failed expectation(s)")
        return self.exit_code
