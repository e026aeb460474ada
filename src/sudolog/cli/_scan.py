"""sudolog scan — report tampering in the log history without writing anything."""

from __future__ import annotations

import json
import sys

import click
from rich.console import Console

from sudolog.core.constants import ExitCode


def cmd_scan(pull: bool, as_json: bool, console: Console) -> None:
    from sudolog.cli._common import load_config_or_exit
    from sudolog.core.codec import EntryCodec
    from sudolog.core.exceptions import ReplicationError
    from sudolog.core.replication import GitReplicator
    from sudolog.core.reported import ReportedIndex
    from sudolog.core.store import EntryStore
    from sudolog.core.workflow import scan_history

    config = load_config_or_exit(console)
    replicator = GitReplicator(config)

    if pull:
        try:
            replicator.pull()
        except ReplicationError as exc:
            console.print(f"[red]Pull failed:[/red] {exc}")
            sys.exit(ExitCode.REPLICATION_ERROR)

    outcome = scan_history(
        replicator,
        EntryStore(config.log_path),
        EntryCodec(config.encryption_password),
        config.store.log_file,
        index=ReportedIndex(config.reported_index_path),
    )

    findings = [
        {
            "hash": f.hash,
            "short_hash": f.short_hash,
            "author": f.author,
            "date": f.date,
            "message": f.message,
            "deletion_count": f.deletion_count,
            "reported": f.short_hash in outcome.already_reported,
        }
        for f in outcome.findings
    ]

    if as_json:
        click.echo(
            json.dumps(
                {
                    "findings": findings,
                    "warnings": [{"hash": w.hash, "reason": w.reason} for w in outcome.warnings],
                },
                indent=2,
            )
        )
        return

    for w in outcome.warnings:
        console.print(f"[yellow]Could not check commit {w.hash[:7]}:[/yellow] {w.reason}")

    if not findings:
        console.print("[green]No tampering detected.[/green]")
        return

    console.print(f"[bold red]TAMPERING DETECTED:[/bold red] {len(findings)} commit(s)\n")
    for f in findings:
        status = "[dim]reported[/dim]" if f["reported"] else "[red]not yet reported[/red]"
        console.print(
            f"  [red]{f['short_hash']}[/red] {f['date']} by {f['author']}: "
            f"{f['deletion_count']} entries deleted ({status})"
        )
        console.print(f"    {f['message']}")
