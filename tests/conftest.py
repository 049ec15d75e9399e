"""Shared fixtures for sysmaster-testkit tests."""

import io

import pytest
from loguru import logger

from sysmaster_testkit.log import setup_logging


@pytest.fixture(autouse=True)
def log_output():
    """Capture harness log lines in memory for the duration of a test."""
    buf = io.StringIO()
    setup_logging(sink=buf, verbose=True, colorize=False)
    yield buf
    logger.remove()
