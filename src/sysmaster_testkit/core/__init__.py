"""sysmaster-testkit core components."""

from sysmaster_testkit.core.daemon import DaemonController, StartResult
from sysmaster_testkit.core.expect import ExpectationUsageError, ExpectContext, ExpectFailure
from sysmaster_testkit.core.log_check import check_log, read_log_text
from sysmaster_testkit.core.sctl import SctlClient, SctlError
from sysmaster_testkit.core.status import UnitStatus, UnitStatusPoller, parse_status

__all__ = [
    "DaemonController",
    "ExpectContext",
    "ExpectFailure",
    "ExpectationUsageError",
    "SctlClient",
    "SctlError",
    "StartResult",
    "UnitStatus",
    "UnitStatusPoller",
    "check_log",
    "parse_status",
    "read_log_text",
]
