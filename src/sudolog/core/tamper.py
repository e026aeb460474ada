"""
Tamper detection over the log file's git history.

Legitimate growth of the log only ever appends records, so a commit's diff of
the log file is dominated by ``+`` lines. A commit is suspicious when::

    deletions > additions + TOLERANCE

``TOLERANCE`` (2) absorbs the bracket and trailing-comma churn that appending
to a pretty-printed JSON array produces. A suspicious commit's
``deletion_count`` is ``deletions - TOLERANCE``.

Known limitation: this is a line-count heuristic, not a proof. A rewrite that
deletes records and adds back at least as many decoy lines in the same commit
is classified as benign. Findings are evidence for the operator; they never
block logging or execution.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from sudolog.core.constants import SHORT_HASH_LEN, TAMPER_EXIT_CODE, TAMPER_MARKER, TOLERANCE
from sudolog.core.entry import LogEntry, utc_timestamp
from sudolog.core.replication import Commit

logger = logging.getLogger(__name__)

_REPORTED_HASH_RE = re.compile(r"commit ([a-f0-9]{%d})" % SHORT_HASH_LEN)


@dataclass(frozen=True)
class DiffStats:
    additions: int
    deletions: int


@dataclass(frozen=True)
class TamperRecord:
    """A commit whose diff removed more of the log than it added."""

    hash: str
    author: str
    date: str
    message: str
    deletion_count: int

    @property
    def short_hash(self) -> str:
        return self.hash[:SHORT_HASH_LEN]


@dataclass(frozen=True)
class ScanWarning:
    """A commit that could not be analysed. Never counts as tampering."""

    hash: str
    reason: str


@dataclass
class ScanResult:
    findings: list[TamperRecord] = field(default_factory=list)
    warnings: list[ScanWarning] = field(default_factory=list)


def count_changes(diff: str) -> DiffStats:
    """Count added/removed lines in a unified diff, ignoring ``+++``/``---`` headers."""
    additions = deletions = 0
    for line in diff.splitlines():
        if line.startswith("+") and not line.startswith("+++"):
            additions += 1
        elif line.startswith("-") and not line.startswith("---"):
            deletions += 1
    return DiffStats(additions=additions, deletions=deletions)


def classify(stats: DiffStats) -> int | None:
    """Return the deletion count for a suspicious diff, ``None`` if benign."""
    if stats.deletions > stats.additions + TOLERANCE:
        return stats.deletions - TOLERANCE
    return None


class TamperDetector:
    """Classifies commits touching the log file as benign or suspicious."""

    def scan(self, commits: Iterable[Commit]) -> ScanResult:
        result = ScanResult()
        for commit in commits:
            if commit.diff is None:
                warning = ScanWarning(
                    hash=commit.hash, reason=commit.diff_error or "diff unavailable"
                )
                logger.warning(
                    "Could not check commit %s: %s", commit.hash[:SHORT_HASH_LEN], warning.reason
                )
                result.warnings.append(warning)
                continue

            stats = count_changes(commit.diff)
            deletion_count = classify(stats)
            if deletion_count is None:
                continue

            logger.warning(
                "Suspicious commit %s by %s: +%d/-%d lines",
                commit.hash[:SHORT_HASH_LEN],
                commit.author,
                stats.additions,
                stats.deletions,
            )
            result.findings.append(
                TamperRecord(
                    hash=commit.hash,
                    author=commit.author,
                    date=commit.date,
                    message=commit.message,
                    deletion_count=deletion_count,
                )
            )
        return result


# ---------------------------------------------------------------------------
# Tamper-warning entries
# ---------------------------------------------------------------------------


def tamper_command(record: TamperRecord) -> str:
    return (
        f"{TAMPER_MARKER} {record.deletion_count} log entries deleted "
        f"in commit {record.short_hash} by {record.author}"
    )


def tamper_entry(record: TamperRecord, *, user: str, hostname: str, cwd: str) -> LogEntry:
    """Build the encrypted-to-be warning entry that makes a finding durable."""
    output = (
        "WARNING: Audit log tampering detected!\n"
        f"Commit: {record.hash}\n"
        f"Author: {record.author}\n"
        f"Date: {record.date}\n"
        f"Message: {record.message}\n"
        f"Deletions: {record.deletion_count} entries"
    )
    return LogEntry(
        timestamp=utc_timestamp(),
        user=user,
        hostname=hostname,
        command=tamper_command(record),
        exit_code=TAMPER_EXIT_CODE,
        output=output,
        cwd=cwd,
    )


def reported_hash(entry: LogEntry) -> str | None:
    """Return the short commit hash a tamper-warning entry reports, if any."""
    if TAMPER_MARKER not in entry.command:
        return None
    match = _REPORTED_HASH_RE.search(entry.command)
    return match.group(1) if match else None
