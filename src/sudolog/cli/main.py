"""
sudolog CLI entry point.

Commands:
  sudolog run <command> [args]  — confirm, log, replicate, then run under sudo
  sudolog setup                 — first-time configuration
  sudolog config show|validate  — inspect configuration
  sudolog logs                  — decrypt and list local log entries
  sudolog scan                  — report tampering in the log history
  sudolog doctor                — environment and configuration health check
  sudolog version               — show version information
"""

from __future__ import annotations

import click
from rich.console import Console

from sudolog import __version__
from sudolog.cli._config_cmd import config_group

console = Console()
err_console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, "--version", "-V", message="sudolog %(version)s")
def cli() -> None:
    """sudolog — encrypted, tamper-evident audit log for sudo commands."""


cli.add_command(config_group)


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


@cli.command(
    context_settings={
        "ignore_unknown_options": True,
        "allow_interspersed_args": False,
        "help_option_names": [],
    }
)
@click.argument("command", nargs=-1, type=click.UNPROCESSED)
def run(command: tuple[str, ...]) -> None:
    """Confirm COMMAND, log it to the remote repository, then run it with sudo."""
    from sudolog.cli._run import cmd_run

    cmd_run(argv=list(command), console=console)


# ---------------------------------------------------------------------------
# setup
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--from-env", is_flag=True, default=False, help="Read settings from SUDOLOG_* env vars")
def setup(from_env: bool) -> None:
    """Interactive first-time configuration wizard."""
    from sudolog.cli._setup import run_setup

    run_setup(from_env=from_env, console=console)


# ---------------------------------------------------------------------------
# logs
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--limit", default=50, show_default=True, help="Number of recent entries to show")
@click.option("--json", "as_json", is_flag=True, default=False)
def logs(limit: int, as_json: bool) -> None:
    """Decrypt and show recent entries from the local working copy."""
    from sudolog.cli._logs import cmd_logs

    cmd_logs(limit=limit, as_json=as_json, console=console)


# ---------------------------------------------------------------------------
# scan
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--no-pull", is_flag=True, default=False, help="Scan the local history only")
@click.option("--json", "as_json", is_flag=True, default=False)
def scan(no_pull: bool, as_json: bool) -> None:
    """Report commits that deleted entries from the log (read-only)."""
    from sudolog.cli._scan import cmd_scan

    cmd_scan(pull=not no_pull, as_json=as_json, console=console)


# ---------------------------------------------------------------------------
# doctor
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--json", "as_json", is_flag=True, default=False)
def doctor(as_json: bool) -> None:
    """Environment and configuration health check."""
    from sudolog.cli._doctor import cmd_doctor

    cmd_doctor(as_json=as_json, console=console)


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--json", "as_json", is_flag=True, default=False)
def version(as_json: bool) -> None:
    """Show version information."""
    import platform
    import sys as _sys

    from sudolog.core.constants import PBKDF2_ITERATIONS, TOLERANCE

    info = {
        "sudolog": __version__,
        "python": _sys.version.split()[0],
        "platform": _sys.platform,
        "arch": platform.machine(),
        "pbkdf2_iterations": PBKDF2_ITERATIONS,
        "tamper_tolerance": TOLERANCE,
    }
    if as_json:
        import json

        click.echo(json.dumps(info, indent=2))
    else:
        console.print(f"sudolog {__version__}")
        console.print(f"Python {info['python']}")
        console.print(f"Platform: {info['platform']} {info['arch']}")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
