"""sudolog doctor — environment and configuration health check."""

from __future__ import annotations

import json
import shutil
import sys

from rich.console import Console

from sudolog.core.constants import ExitCode


def _check_git() -> dict[str, str]:
    git = shutil.which("git")
    if git:
        return {"name": "git", "status": "pass", "detail": git}
    return {"name": "git", "status": "fail", "detail": "git executable not found on PATH"}


def _check_config() -> tuple[dict[str, str], object | None]:
    from sudolog.core.config import _config_file_path, load_config
    from sudolog.core.exceptions import ConfigError

    try:
        cfg = load_config()
    except ConfigError as exc:
        return {"name": "Config", "status": "fail", "detail": str(exc).splitlines()[0]}, None
    return {"name": "Config", "status": "pass", "detail": str(_config_file_path())}, cfg


def _check_working_copy(cfg) -> dict[str, str]:
    from sudolog.core.replication import GitReplicator

    replicator = GitReplicator(cfg)
    if replicator.has_working_copy():
        return {"name": "Working copy", "status": "pass", "detail": str(replicator.repo_path)}
    return {
        "name": "Working copy",
        "status": "warn",
        "detail": f"{replicator.repo_path} not cloned yet (cloned on first run)",
    }


def cmd_doctor(as_json: bool, console: Console) -> None:
    checks = [
        {"name": "Python version", "status": "pass", "detail": sys.version.split()[0]},
        {"name": "Platform", "status": "pass", "detail": sys.platform},
        _check_git(),
    ]
    config_check, cfg = _check_config()
    checks.append(config_check)
    if cfg is not None:
        checks.append(_check_working_copy(cfg))

    all_pass = all(c["status"] != "fail" for c in checks)

    if as_json:
        print(json.dumps({"checks": checks, "all_pass": all_pass}, indent=2))
    else:
        console.print("[bold]sudolog Doctor[/bold]\n")
        icons = {
            "pass": "[green]PASS[/green]",
            "warn": "[yellow]WARN[/yellow]",
            "fail": "[red]FAIL[/red]",
        }
        for c in checks:
            console.print(f"  {icons[c['status']]}  {c['name']}: {c['detail']}")

        console.print()
        if all_pass:
            console.print("[green]All checks passed.[/green]")
        else:
            console.print("[red]Some checks failed.[/red]")

    if not all_pass:
        sys.exit(ExitCode.ENV_ERROR)
