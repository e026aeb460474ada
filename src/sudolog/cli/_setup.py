"""sudolog setup — interactive first-time configuration wizard."""

from __future__ import annotations

import os
import re
import sys
from collections.abc import Callable

from rich.console import Console
from rich.prompt import Prompt

from sudolog.core.constants import ExitCode

_REPO_RE = re.compile(r"[A-Za-z0-9_.\-]+/[A-Za-z0-9_.\-]+")


def _validate_repo(repo: str) -> bool:
    return bool(_REPO_RE.fullmatch(repo.strip()))


def _ask(
    console: Console,
    label: str,
    *,
    secret: bool = False,
    validate: Callable[[str], bool] | None = None,
    error: str = "",
) -> str:
    while True:
        value = Prompt.ask(f"[bold]{label}[/bold]", password=secret, console=console).strip()
        if value and (validate is None or validate(value)):
            return value
        console.print(f"[red]{error or 'A value is required.'}[/red]")


def run_setup(
    from_env: bool,
    console: Console,
) -> None:
    """Collect the password and remote settings and write the config file."""
    from sudolog.core.config import _config_file_path, load_config, save_config
    from sudolog.core.exceptions import ConfigError

    console.print("[bold]sudolog Setup[/bold]\n")

    password = os.environ.get("SUDOLOG_ENCRYPTION_PASSWORD", "")
    repo = os.environ.get("SUDOLOG_GITHUB_REPO", "")
    user = os.environ.get("SUDOLOG_GITHUB_USER", "")
    token = os.environ.get("SUDOLOG_GITHUB_TOKEN", "")
    url = os.environ.get("SUDOLOG_REMOTE_URL", "")

    if not from_env:
        console.print(
            "Entries are encrypted with a password you choose and pushed to a\n"
            "private GitHub repository before each sudo command runs.\n"
        )
        if not password:
            password = _ask(console, "Encryption password", secret=True)
        if not repo and not url:
            repo = _ask(
                console,
                "GitHub repository (owner/name)",
                validate=_validate_repo,
                error="Expected: owner/name",
            )
        if not user:
            user = _ask(console, "GitHub user")
        if not token and not url:
            token = _ask(console, "GitHub token", secret=True)

    missing = [
        name
        for name, value in (
            ("SUDOLOG_ENCRYPTION_PASSWORD", password),
            ("SUDOLOG_GITHUB_REPO", repo or url),
            ("SUDOLOG_GITHUB_USER", user),
            ("SUDOLOG_GITHUB_TOKEN", token or url),
        )
        if not value
    ]
    if missing:
        console.print(f"[red]Missing settings:[/red] {', '.join(missing)}")
        sys.exit(ExitCode.CONFIG_ERROR)

    if repo and not _validate_repo(repo):
        console.print(f"[red]Invalid repository {repo!r}.[/red] Expected: owner/name")
        sys.exit(ExitCode.CONFIG_ERROR)

    remote: dict[str, str] = {"repo": repo, "user": user, "token": token}
    if url:
        remote["url"] = url
    config_data = {"encryption_password": password, "remote": remote}

    cfg_path = _config_file_path()
    try:
        save_config(config_data, cfg_path)
        load_config(cfg_path)
    except ConfigError as exc:
        console.print(f"[red]Failed to save config: {exc}[/red]")
        sys.exit(ExitCode.CONFIG_ERROR)

    console.print(f"\n[green]Config saved:[/green] {cfg_path}")
    console.print("\n[green]Setup complete.[/green]")
    console.print("Run [cyan]sudolog run <command>[/cyan] to log and execute a sudo command.")
