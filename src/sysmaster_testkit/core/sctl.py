"""Thin wrapper around the ``sctl`` control command."""

from __future__ import annotations

import subprocess

from loguru import logger

from sysmaster_testkit.config import HarnessError


class SctlError(HarnessError):
    """The control command could not be run."""


class SctlClient:
    """Runs ``sctl <action> <unit>`` and hands back its output."""

    def __init__(self, binary: str = "sctl", timeout: float = 30.0):
        self.binary = binary
        self.timeout = timeout

    def _run(self, action: str, unit: str) -> subprocess.CompletedProcess[str]:
        cmd = [self.binary, action, unit]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise SctlError(f"Control command not found: {self.binary}") from e
        except subprocess.TimeoutExpired as e:
            raise SctlError(f"'{' '.join(cmd)}' timed out after {self.timeout}s") from e

        logger.debug(f"{' '.join(cmd)} exited with {result.returncode}")
        return result

    def status(self, unit: str) -> str:
        """Return the text printed by ``sctl status``.

        A non-zero exit status is expected for failed or unknown units, so
        the output is returned either way.
        """
        result = self._run("status", unit)
        if result.stderr:
            logger.debug(f"sctl status {unit} stderr: {result.stderr.strip()}")
        return result.stdout

    def start(self, unit: str) -> subprocess.CompletedProcess[str]:
        return self._run("start", unit)

    def stop(self, unit: str) -> subprocess.CompletedProcess[str]:
        return self._run("stop", unit)

    def restart(self, unit: str) -> subprocess.CompletedProcess[str]:
        return self._run("restart", unit)

    def reload(self, unit: str) -> subprocess.CompletedProcess[str]:
        return self._run("reload", unit)
