"""Tests for harness log formatting."""

import io
import re

from loguru import logger

from sysmaster_testkit.log import level_tag, setup_logging

TIMESTAMP = r"\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\]"


def _capture(**kwargs):
    buf = io.StringIO()
    setup_logging(sink=buf, **kwargs)
    return buf


class TestLineFormat:
    def test_info_line(self):
        buf = _capture(colorize=False)
        logger.info("daemon launched")

        assert re.fullmatch(rf"{TIMESTAMP} \[  INFO \] daemon launched\n", buf.getvalue())

    def test_level_tags(self):
        buf = _capture(colorize=False)
        logger.warning("w")
        logger.error("e")
        logger.debug("d")

        lines = buf.getvalue().splitlines()
        assert re.fullmatch(rf"{TIMESTAMP} \[WARNING\] w", lines[0])
        assert re.fullmatch(rf"{TIMESTAMP} \[ ERROR \] e", lines[1])
        assert re.fullmatch(rf"{TIMESTAMP} \[ DEBUG \] d", lines[2])

    def test_tags_are_fixed_width(self):
        for name in ("INFO", "WARNING", "ERROR", "DEBUG", "SUCCESS"):
            assert len(level_tag(name)) == 7

    def test_message_markup_is_not_interpreted(self):
        buf = _capture(colorize=False)
        logger.info("pattern <red>^ready$</red> {braces}")

        assert "pattern <red>^ready$</red> {braces}" in buf.getvalue()


class TestVerbosity:
    def test_debug_hidden_when_not_verbose(self):
        buf = _capture(verbose=False, colorize=False)
        logger.debug("hidden")
        logger.info("shown")

        output = buf.getvalue()
        assert "hidden" not in output
        assert "shown" in output


class TestColors:
    def test_warning_and_error_colored(self):
        buf = _capture(colorize=True)
        logger.warning("careful")
        logger.error("broken")

        lines = buf.getvalue().splitlines()
        assert "\x1b[33m" in lines[0]
        assert "\x1b[31m" in lines[1]

    def test_plain_stream_not_colored(self, monkeypatch):
        monkeypatch.delenv("FORCE_COLOR", raising=False)
        buf = _capture()
        logger.error("broken")

        assert "\x1b[" not in buf.getvalue()
