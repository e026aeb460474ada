"""Helpers shared by CLI commands."""

from __future__ import annotations

import sys

from rich.console import Console

from sudolog.core.config import SudologConfig
from sudolog.core.constants import ExitCode


def load_config_or_exit(console: Console) -> SudologConfig:
    """Load config and configure logging; exit with CONFIG_ERROR on failure."""
    from sudolog.core.config import load_config
    from sudolog.core.exceptions import ConfigError, ConfigNotFoundError
    from sudolog.core.logging_config import configure_logging

    try:
        config = load_config()
    except ConfigNotFoundError as exc:
        console.print(f"[red]Not configured:[/red] {exc}")
        console.print("Run [cyan]sudolog setup[/cyan] first.")
        sys.exit(ExitCode.CONFIG_ERROR)
    except ConfigError as exc:
        console.print(f"[red]Config error:[/red] {exc}")
        sys.exit(ExitCode.CONFIG_ERROR)

    configure_logging(config.logging)
    return config
