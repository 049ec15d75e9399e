"""Lifecycle control for the daemon under test."""

from __future__ import annotations

import os
import shutil
import signal
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import IO

import psutil
from loguru import logger

from sysmaster_testkit.core.log_check import read_log_text
from sysmaster_testkit.models import HarnessConfig


@dataclass
class StartResult:
    """Outcome of a daemon start."""

    ok: bool
    pid: int | None = None
    message: str = ""
    log: str = ""  # captured daemon output, filled in on failure

    def __bool__(self) -> bool:
        return self.ok

    def __repr__(self) -> str:
        status = "started" if self.ok else "failed"
        return f"StartResult({status}, pid={self.pid}, {self.message!r})"


class DaemonController:
    """Installs units, launches the daemon and checks that it came up.

    There is no health-check protocol. When a control socket is configured
    the controller waits for it to appear; otherwise it sleeps for a fixed
    grace period. Either way it then looks the recorded pid up in the
    process table.
    """

    def __init__(self, config: HarnessConfig | None = None):
        self.config = config or HarnessConfig()
        self._process: subprocess.Popen[bytes] | None = None
        self._log_file: IO[bytes] | None = None

    @property
    def pid(self) -> int | None:
        """Pid of the most recently launched daemon."""
        return self._process.pid if self._process else None

    def install_units(self) -> bool:
        """Copy the unit definition files into the daemon's library path."""
        daemon = self.config.daemon
        src = daemon.units_dir
        dest = self.config.lib_path

        if not src.is_dir():
            logger.error(f"Unit directory not found: {src}")
            return False

        units = sorted(src.glob(daemon.units_glob))
        if not units:
            logger.error(f"No unit files matching '{daemon.units_glob}' in {src}")
            return False

        try:
            dest.mkdir(parents=True, exist_ok=True)
            for unit in units:
                if unit.is_dir():
                    shutil.copytree(unit, dest / unit.name, symlinks=True, dirs_exist_ok=True)
                else:
                    shutil.copy2(unit, dest / unit.name, follow_symlinks=False)
        except OSError as e:
            logger.error(f"Failed to install units into {dest}: {e}")
            return False

        logger.debug(f"Installed {len(units)} unit(s) into {dest}")
        return True

    def run_daemon(self) -> StartResult:
        """Install units, launch the daemon and confirm it is running."""
        daemon = self.config.daemon
        log_path = self.config.log_path

        if self._process is not None and self._process.poll() is None:
            logger.warning(
                f"{daemon.name} (PID: {self._process.pid}) is still running, stopping it first"
            )
            self.stop()

        if not self.install_units():
            return StartResult(False, message="failed to install unit files")

        self._close_log()
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            log_path.write_bytes(b"")
            # Append mode keeps later writes at the end after the log is cleared
            self._log_file = open(log_path, "ab")
            process = subprocess.Popen(
                [str(daemon.binary)],
                stdin=subprocess.DEVNULL,
                stdout=self._log_file,
                stderr=subprocess.STDOUT,
                start_new_session=True,
            )
        except OSError as e:
            self._close_log()
            logger.error(f"Failed to launch {daemon.binary}: {e}")
            return StartResult(False, message=f"failed to launch {daemon.binary}: {e}")

        self._process = process
        pid = process.pid
        logger.info(f"Launched {daemon.name} (PID: {pid})")

        self._wait_ready(process)

        if self.find_process(pid) is not None:
            self.clear_log()
            logger.info(f"{daemon.name} is running (PID: {pid})")
            return StartResult(True, pid=pid, message="running")

        captured = self.read_log()
        logger.error(f"{daemon.name} (PID: {pid}) is not running, captured log:\n{captured}")
        if process.poll() is None:
            self.stop()
        else:
            self._close_log()
        return StartResult(False, pid=pid, message=f"{daemon.name} is not running", log=captured)

    def _wait_ready(self, process: subprocess.Popen[bytes]) -> bool:
        """Block until the daemon is expected to have finished initializing."""
        daemon = self.config.daemon
        socket_path = daemon.control_socket

        if socket_path is None:
            logger.debug(f"Waiting {daemon.grace_period}s for {daemon.name} to initialize")
            time.sleep(daemon.grace_period)
            return True

        deadline = time.monotonic() + daemon.readiness_timeout
        while True:
            if socket_path.exists():
                logger.debug(f"Control socket {socket_path} is available")
                return True
            if process.poll() is not None:
                logger.warning(f"{daemon.name} exited with {process.returncode} during startup")
                return False
            if time.monotonic() >= deadline:
                logger.warning(
                    f"Control socket {socket_path} did not appear within {daemon.readiness_timeout}s"
                )
                return False
            time.sleep(daemon.readiness_interval)

    def find_process(self, pid: int) -> psutil.Process | None:
        """Look up a live process matching both the daemon name and ``pid``."""
        name = self.config.daemon.name

        for proc in psutil.process_iter(["pid", "name", "cmdline", "status"]):
            info = proc.info
            if info["pid"] != pid:
                continue
            if info["status"] == psutil.STATUS_ZOMBIE:
                return None
            cmdline = " ".join(info["cmdline"] or [])
            if name in (info["name"] or "") or name in cmdline:
                return proc
            return None

        return None

    def is_alive(self) -> bool:
        """Check whether the launched daemon is still in the process table."""
        pid = self.pid
        return pid is not None and self.find_process(pid) is not None

    def read_log(self) -> str:
        """Return the captured daemon output without NUL padding."""
        try:
            return read_log_text(self.config.log_path)
        except FileNotFoundError:
            return ""

    def clear_log(self) -> None:
        """Truncate the captured output so later checks start clean."""
        self.config.log_path.write_bytes(b"")

    def stop(self, timeout: float = 10.0) -> bool:
        """Terminate the daemon's session, killing it after ``timeout`` seconds."""
        process = self._process
        if process is None or process.poll() is not None:
            self._close_log()
            logger.warning(f"{self.config.daemon.name} is not running")
            return False

        logger.info(f"Stopping {self.config.daemon.name} (PID: {process.pid})")
        try:
            os.killpg(process.pid, signal.SIGTERM)
            try:
                process.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                logger.warning(f"{self.config.daemon.name} did not stop gracefully, killing")
                os.killpg(process.pid, signal.SIGKILL)
                process.wait(timeout=5)
        except ProcessLookupError:
            process.poll()
        finally:
            self._close_log()

        return True

    def _close_log(self) -> None:
        if self._log_file is not None:
            self._log_file.close()
            self._log_file = None

    def set_reliability_debug(self, enabled: bool) -> Path:
        """Create or remove the daemon's reliability debug switch file."""
        switch = self.config.reliability_switch_file
        if enabled:
            switch.parent.mkdir(parents=True, exist_ok=True)
            switch.touch()
            logger.debug(f"Enabled reliability debug switch {switch}")
        else:
            switch.unlink(missing_ok=True)
            logger.debug(f"Removed reliability debug switch {switch}")
        return switch

    def request_reliability_clear(self) -> Path:
        """Ask the daemon to clear its reliability data on next start."""
        marker = self.config.reliability_clear_file
        marker.parent.mkdir(parents=True, exist_ok=True)
        marker.touch()
        logger.debug(f"Requested reliability clear via {marker}")
        return marker
