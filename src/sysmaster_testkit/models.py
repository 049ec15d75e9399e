"""Pydantic models for sysmaster-testkit configuration and unit states."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator


class UnitActiveState(str, Enum):
    """Activity state reported on the ``Active:`` line of ``sctl status``."""

    ACTIVE = "active"
    RELOADING = "reloading"
    INACTIVE = "inactive"
    FAILED = "failed"
    ACTIVATING = "activating"
    DEACTIVATING = "deactivating"
    MAINTENANCE = "maintenance"


class UnitLoadState(str, Enum):
    """Load state reported on the ``Loaded:`` line of ``sctl status``."""

    STUB = "stub"
    LOADED = "loaded"
    NOT_FOUND = "not-found"
    ERROR = "error"
    MERGED = "merged"
    MASKED = "masked"


# Well-known locations used by the daemon under test
DEFAULT_LIB_PATH = Path("/usr/lib/sysmaster")
DEFAULT_ETC_PATH = Path("/etc/sysmaster")
DEFAULT_LOG_PATH = Path("/opt/sysmaster.log")
DEFAULT_RELIABILITY_PATH = Path("/run/sysmaster/reliability")


class DaemonConfig(BaseModel):
    """How the daemon under test is installed, launched and probed."""

    name: str = "sysmaster"
    binary: Path | None = None  # defaults to <lib_path>/<name>
    units_dir: Path = Path("tmp_units")
    units_glob: str = "*.target"

    # Degraded readiness mode: fixed wall-clock wait
    grace_period: float = 3.0

    # Preferred readiness mode: wait for the control socket to appear
    control_socket: Path | None = None
    readiness_timeout: float = 10.0
    readiness_interval: float = 0.2

    @field_validator("grace_period", "readiness_timeout", "readiness_interval")
    @classmethod
    def non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("delays must not be negative")
        return v


class PollConfig(BaseModel):
    """Retry policy for unit state checks."""

    attempts: int = 3
    interval: float = 1.0
    sctl: str = "sctl"
    timeout: float = 30.0

    @field_validator("attempts")
    @classmethod
    def positive_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("attempts must be at least 1")
        return v

    @field_validator("interval", "timeout")
    @classmethod
    def non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("delays must not be negative")
        return v


class HarnessConfig(BaseModel):
    """Top-level harness configuration."""

    lib_path: Path = DEFAULT_LIB_PATH
    etc_path: Path = DEFAULT_ETC_PATH
    log_path: Path = DEFAULT_LOG_PATH
    reliability_path: Path = DEFAULT_RELIABILITY_PATH
    reliability_switch: str = "switch.debug"
    reliability_clear: str = "clear.debug"

    daemon: DaemonConfig = Field(default_factory=DaemonConfig)
    poll: PollConfig = Field(default_factory=PollConfig)

    @model_validator(mode="after")
    def default_binary(self) -> "HarnessConfig":
        """Resolve the daemon binary relative to the library path."""
        if self.daemon.binary is None:
            # Copy so a DaemonConfig shared between configs is left untouched
            self.daemon = self.daemon.model_copy(
                update={"binary": self.lib_path / self.daemon.name}
            )
        return self

    @property
    def reliability_switch_file(self) -> Path:
        return self.reliability_path / self.reliability_switch

    @property
    def reliability_clear_file(self) -> Path:
        return self.reliability_path / self.reliability_clear
