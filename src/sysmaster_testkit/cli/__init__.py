"""Command line interface for sysmaster-testkit."""
