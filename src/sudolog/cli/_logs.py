"""sudolog logs — decrypt and list entries from the local working copy."""

from __future__ import annotations

import json

import click
from rich.console import Console
from rich.table import Table

from sudolog.core.constants import TAMPER_EXIT_CODE


def cmd_logs(limit: int, as_json: bool, console: Console) -> None:
    from sudolog.cli._common import load_config_or_exit
    from sudolog.core.codec import EntryCodec
    from sudolog.core.exceptions import DecryptionError
    from sudolog.core.store import EntryStore

    config = load_config_or_exit(console)
    codec = EntryCodec(config.encryption_password)
    records = EntryStore(config.log_path).load_all()
    if limit > 0:
        records = records[-limit:]

    rows: list[dict[str, object]] = []
    for record in records:
        try:
            entry = codec.open(record.encrypted)
        except DecryptionError as exc:
            rows.append({"id": record.id, "error": str(exc)})
            continue
        rows.append({"id": record.id, **entry.model_dump(by_alias=True)})

    if as_json:
        click.echo(json.dumps(rows, indent=2))
        return

    if not rows:
        console.print(f"[dim]No entries in {config.log_path}[/dim]")
        return

    table = Table(title=f"Audit log ({config.log_path})")
    table.add_column("#", justify="right")
    table.add_column("Time")
    table.add_column("User@Host")
    table.add_column("Command")
    table.add_column("Exit", justify="right")

    for row in rows:
        if "error" in row:
            table.add_row(str(row["id"]), "", "", "[dim](cannot decrypt)[/dim]", "")
            continue
        exit_code = row["exitCode"]
        command = str(row["command"])
        style = "bold red" if exit_code == TAMPER_EXIT_CODE else None
        table.add_row(
            str(row["id"]),
            str(row["timestamp"]),
            f"{row['user']}@{row['hostname']}",
            command,
            "?" if exit_code is None else str(exit_code),
            style=style,
        )
    console.print(table)
