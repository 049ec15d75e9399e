"""sysmaster-testkit CLI application.

Shell test scripts call these commands and act on the exit code: 0 when the
check passed, 1 when it failed.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from sysmaster_testkit import __version__
from sysmaster_testkit.config import ConfigError, dump_config, load_config
from sysmaster_testkit.core.daemon import DaemonController
from sysmaster_testkit.core.expect import ExpectContext
from sysmaster_testkit.core.log_check import check_log
from sysmaster_testkit.core.sctl import SctlError
from sysmaster_testkit.core.status import UnitStatusPoller
from sysmaster_testkit.log import setup_logging
from sysmaster_testkit.models import HarnessConfig

# Initialize
app = typer.Typer(
    name="sysmaster-testkit",
    help="sysmaster-testkit - integration test helpers for sysmaster",
    no_args_is_help=True,
)
console = Console()

# Sub-commands
config_app = typer.Typer(help="Configuration commands")
app.add_typer(config_app, name="config")


class State:
    """Options shared by all commands."""

    verbose: bool = False
    config_path: Path | None = None


state = State()


def get_config() -> HarnessConfig:
    """Load the configuration, exiting with 1 on errors."""
    try:
        return load_config(state.config_path)
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


def version_callback(value: bool) -> None:
    if value:
        console.print(f"sysmaster-testkit {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Emit debug lines"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Harness config file"),
    version: bool = typer.Option(
        False, "--version", callback=version_callback, is_eager=True, help="Show version"
    ),
) -> None:
    """Integration test helpers for the sysmaster daemon."""
    state.verbose = verbose
    state.config_path = config
    setup_logging(verbose=verbose)


# ============================================================================
# Daemon Commands
# ============================================================================


@app.command("run-daemon")
def run_daemon() -> None:
    """Install units, start the daemon and confirm it is running."""
    controller = DaemonController(get_config())
    result = controller.run_daemon()

    if not result:
        console.print(f"[red]✗ {result.message}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓ Daemon started (PID: {result.pid})[/green]")


# ============================================================================
# Check Commands
# ============================================================================


@app.command("check-log")
def check_log_cmd(
    file: Path = typer.Argument(..., help="Log file to check"),
    patterns: Optional[List[str]] = typer.Argument(None, help="Required regular expressions"),
) -> None:
    """Check that every pattern occurs in the log file."""
    ctx = ExpectContext("check-log")
    check_log(ctx, file, *(patterns or []))
    raise typer.Exit(ctx.exit_code)


def _poll(check: str, unit: str, expected: str) -> None:
    ctx = ExpectContext(check)
    poller = UnitStatusPoller.from_config(ctx, get_config().poll)
    try:
        if check == "check-status":
            poller.check_status(unit, expected)
        else:
            poller.check_load(unit, expected)
    except SctlError as e:
        ctx.add_failure(str(e))
    raise typer.Exit(ctx.exit_code)


@app.command("check-status")
def check_status_cmd(
    unit: str = typer.Argument(..., help="Unit name"),
    expected: str = typer.Argument(..., help="Expected active state"),
) -> None:
    """Wait for a unit's active state."""
    _poll("check-status", unit, expected)


@app.command("check-load")
def check_load_cmd(
    unit: str = typer.Argument(..., help="Unit name"),
    expected: str = typer.Argument(..., help="Expected load state"),
) -> None:
    """Wait for a unit's load state."""
    _poll("check-load", unit, expected)


@app.command("pids")
def pids_cmd(unit: str = typer.Argument(..., help="Unit name")) -> None:
    """Print the pids of a unit, one per line."""
    poller = UnitStatusPoller.from_config(ExpectContext("pids"), get_config().poll)
    try:
        pids = poller.get_pids(unit)
    except SctlError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    for pid in pids:
        typer.echo(pid)


# ============================================================================
# Config Commands
# ============================================================================


@config_app.command("show")
def config_show(
    raw: bool = typer.Option(False, "--yaml", help="Print as YAML"),
) -> None:
    """Show the resolved configuration."""
    config = get_config()

    if raw:
        typer.echo(dump_config(config), nl=False)
        return

    table = Table(title="Harness configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    rows = {
        "lib_path": config.lib_path,
        "etc_path": config.etc_path,
        "log_path": config.log_path,
        "reliability switch": config.reliability_switch_file,
        "reliability clear": config.reliability_clear_file,
        "daemon.binary": config.daemon.binary,
        "daemon.units": config.daemon.units_dir / config.daemon.units_glob,
        "daemon.grace_period": f"{config.daemon.grace_period}s",
        "daemon.control_socket": config.daemon.control_socket or "-",
        "poll.attempts": config.poll.attempts,
        "poll.interval": f"{config.poll.interval}s",
        "poll.sctl": config.poll.sctl,
    }
    for key, value in rows.items():
        table.add_row(key, str(value))

    console.print(table)


if __name__ == "__main__":
    app()
