"""sudolog run — confirm, log, replicate, then execute a privileged command."""

from __future__ import annotations

import shutil
import sys

from rich.console import Console
from rich.prompt import Prompt

from sudolog.core.constants import ExitCode

_STEP_MESSAGES = {
    "pull": "Pulling log repository...",
    "scan": "Checking for tampering...",
    "log": "Encrypting and logging...",
    "push": "Pushing to remote...",
    "authorize": "Executing sudo...\n",
}


_AFFIRMATIVE = ("y", "yes")


def ask_confirmation(command: str, console: Console) -> bool:
    """
    Show the exact command and read one answer.

    Only ``y`` or ``yes`` (any case) approves. Anything else, a blank line or
    EOF declines on the first answer; there is no re-prompt.
    """
    console.print(f"\n[bold]Command:[/bold] sudo {command}")
    try:
        answer = Prompt.ask("Execute? (y/N)", default="", show_default=False, console=console)
    except (EOFError, KeyboardInterrupt):
        console.print()
        return False
    return answer.strip().lower() in _AFFIRMATIVE


def cmd_run(argv: list[str], console: Console) -> None:
    """Run the audit workflow for *argv* and exit with its status."""
    if not argv:
        console.print("Usage: sudolog run <command> [args...]")
        console.print("Example: sudolog run apt update")
        sys.exit(ExitCode.ERROR)

    from sudolog.cli._common import load_config_or_exit
    from sudolog.core.codec import EntryCodec
    from sudolog.core.executor import run_privileged
    from sudolog.core.replication import GitReplicator
    from sudolog.core.reported import ReportedIndex
    from sudolog.core.store import EntryStore
    from sudolog.core.workflow import AuditWorkflow, Step

    config = load_config_or_exit(console)
    if shutil.which("git") is None:
        console.print("[red]git executable not found on PATH.[/red] Run: sudolog doctor")
        sys.exit(ExitCode.ENV_ERROR)

    def execute(args: list[str]) -> int:
        try:
            return run_privileged(args, sudo=config.sudo_binary)
        except OSError as exc:
            console.print(f"[red]Cannot execute {config.sudo_binary}:[/red] {exc}")
            return 127

    def on_step(step: Step) -> None:
        message = _STEP_MESSAGES.get(step.value)
        if message:
            console.print(f"[dim]{message}[/dim]")

    workflow = AuditWorkflow(
        config,
        replicator=GitReplicator(config),
        store=EntryStore(config.log_path),
        codec=EntryCodec(config.encryption_password),
        confirm=lambda command: ask_confirmation(command, console),
        execute=execute,
        reported_index=ReportedIndex(config.reported_index_path),
        on_step=on_step,
    )
    result = workflow.run(argv)

    if result.step is Step.CONFIRM:
        console.print("[yellow]Cancelled.[/yellow]")
    elif result.findings:
        console.print(
            f"[bold red]TAMPERING DETECTED:[/bold red] {len(result.findings)} commit(s) "
            f"with deletions ({result.new_reports} newly recorded)"
        )
        for finding in result.findings:
            console.print(
                f"  [red]{finding.short_hash}[/red] by {finding.author}: "
                f"{finding.deletion_count} entries deleted"
            )

    if result.step is Step.PULL:
        console.print(f"[red]Cannot proceed - pull failed:[/red] {result.error}")
    elif result.step is Step.PUSH and not result.executed:
        console.print(f"[red]Cannot execute sudo - push failed:[/red] {result.error}")
        console.print("The entry is kept locally and will be pushed on the next run.")

    sys.exit(result.exit_code)
