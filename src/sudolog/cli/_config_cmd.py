"""CLI commands: sudolog config show | validate."""

from __future__ import annotations

import json
import sys
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from sudolog.core.config import SudologConfig, redact_url
from sudolog.core.constants import ExitCode

console = Console()


@click.group("config")
def config_group() -> None:
    """Inspect the effective sudolog configuration."""


@config_group.command("show")
@click.option("--json", "as_json", is_flag=True, default=False, help="Output as JSON")
@click.option("--redact/--no-redact", default=True, help="Mask the password and token")
def config_show(as_json: bool, redact: bool) -> None:
    """Show the configuration after SUDOLOG_* overrides, with derived paths."""
    cfg = _load_or_exit()
    data = describe_config(cfg, redact=redact)

    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    table = Table(title=f"sudolog configuration ({data['paths']['config']})")
    table.add_column("Section", style="cyan")
    table.add_column("Key")
    table.add_column("Value")
    for section, values in data.items():
        for key, value in values.items():
            table.add_row(section, key, str(value))
            section = ""
    console.print(table)


@config_group.command("validate")
def config_validate() -> None:
    """Check that the config loads and the remote is usable."""
    cfg = _load_or_exit()
    console.print(f"[green]Config is valid:[/green] {cfg._config_path}")
    console.print(f"  remote:  {redact_url(cfg.remote.remote_url())}")
    console.print(f"  log:     {cfg.log_path}")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_or_exit() -> SudologConfig:
    from sudolog.core.config import load_config
    from sudolog.core.exceptions import ConfigError, ConfigNotFoundError

    try:
        return load_config()
    except ConfigNotFoundError as exc:
        console.print(f"[red]Config not found:[/red] {exc}")
        sys.exit(ExitCode.CONFIG_ERROR)
    except ConfigError as exc:
        console.print(f"[red]Config validation failed:[/red] {exc}")
        sys.exit(ExitCode.CONFIG_ERROR)


def describe_config(cfg: SudologConfig, redact: bool = True) -> dict[str, dict[str, Any]]:
    """Group the effective settings by section; secrets masked unless *redact* is off."""
    password = cfg.encryption_password.get_secret_value()
    token = cfg.remote.token.get_secret_value()
    push_url = cfg.remote.remote_url()

    return {
        "encryption": {
            "password": _mask(password) if redact else password,
        },
        "remote": {
            "repo": cfg.remote.repo,
            "user": cfg.remote.user,
            "token": _mask(token) if redact else token,
            "push_url": redact_url(push_url) if redact else push_url,
            "git_identity": f"{cfg.remote.git_user_name} <{cfg.remote.git_user_email}>",
        },
        "store": {
            "working_copy": str(cfg.repo_path),
            "log_file": cfg.store.log_file,
        },
        "execution": {
            "sudo_binary": cfg.sudo_binary,
        },
        "logging": {
            "level": cfg.logging.level,
            "format": cfg.logging.format,
        },
        "paths": {
            "config": str(cfg._config_path),
            "log": str(cfg.log_path),
            "reported_index": str(cfg.reported_index_path),
        },
    }


def _mask(secret: str) -> str:
    """Keep 4 characters at each end of long secrets; hide short ones entirely."""
    if not secret:
        return ""
    if len(secret) <= 12:
        return "***"
    return f"{secret[:4]}***{secret[-4:]}"
