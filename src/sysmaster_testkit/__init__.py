"""sysmaster-testkit - integration test support for the sysmaster init daemon."""

__version__ = "0.1.0"
