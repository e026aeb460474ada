"""Unit tests for sudolog.core.tamper — diff-shape classification."""

from __future__ import annotations

import pytest

from sudolog.core.constants import TAMPER_EXIT_CODE, TAMPER_MARKER, TOLERANCE
from sudolog.core.entry import LogEntry
from sudolog.core.replication import Commit
from sudolog.core.tamper import (
    DiffStats,
    TamperDetector,
    TamperRecord,
    classify,
    count_changes,
    reported_hash,
    tamper_command,
    tamper_entry,
)

HASH = "abcdef1234567890abcdef1234567890abcdef12"


def make_diff(additions: int, deletions: int) -> str:
    lines = [
        "diff --git a/audit-log.json b/audit-log.json",
        "index 1111111..2222222 100644",
        "--- a/audit-log.json",
        "+++ b/audit-log.json",
        "@@ -1,10 +1,10 @@",
        " [",
    ]
    lines += [f'-    "encrypted": "old{i}"' for i in range(deletions)]
    lines += [f'+    "encrypted": "new{i}"' for i in range(additions)]
    lines.append(" ]")
    return "\n".join(lines) + "\n"


def make_commit(additions: int, deletions: int, commit_hash: str = HASH) -> Commit:
    return Commit(
        hash=commit_hash,
        author="mallory",
        date="2026-10-01T12:00:00+00:00",
        message="cleanup",
        diff=make_diff(additions, deletions),
    )


class TestCountChanges:
    def test_headers_excluded(self) -> None:
        assert count_changes(make_diff(0, 0)) == DiffStats(additions=0, deletions=0)

    def test_counts_lines(self) -> None:
        assert count_changes(make_diff(3, 5)) == DiffStats(additions=3, deletions=5)

    def test_empty_diff(self) -> None:
        assert count_changes("") == DiffStats(additions=0, deletions=0)


class TestClassify:
    def test_tolerance_constant(self) -> None:
        assert TOLERANCE == 2

    @pytest.mark.parametrize(
        ("additions", "deletions", "expected"),
        [
            (5, 0, None),
            (0, 5, 3),
            (3, 5, 1),
            (3, 4, None),
            (0, 2, None),
            (0, 3, 1),
            (1, 1, None),
        ],
    )
    def test_threshold(self, additions: int, deletions: int, expected: int | None) -> None:
        assert classify(DiffStats(additions=additions, deletions=deletions)) == expected


class TestTamperDetector:
    def test_benign_append(self) -> None:
        result = TamperDetector().scan([make_commit(5, 1)])
        assert result.findings == []
        assert result.warnings == []

    def test_suspicious_commit_recorded(self) -> None:
        result = TamperDetector().scan([make_commit(0, 4)])
        assert result.findings == [
            TamperRecord(
                hash=HASH,
                author="mallory",
                date="2026-10-01T12:00:00+00:00",
                message="cleanup",
                deletion_count=2,
            )
        ]
        assert result.findings[0].short_hash == "abcdef1"

    def test_missing_diff_is_warning_not_finding(self) -> None:
        broken = Commit(
            hash=HASH, author="a", date="d", message="m", diff=None, diff_error="bad object"
        )
        result = TamperDetector().scan([broken, make_commit(0, 6, "1234567" + "0" * 33)])
        assert len(result.findings) == 1
        assert result.findings[0].short_hash == "1234567"
        assert len(result.warnings) == 1
        assert result.warnings[0].hash == HASH
        assert result.warnings[0].reason == "bad object"

    def test_order_preserved(self) -> None:
        commits = [make_commit(0, 5, f"{i}" * 40) for i in range(1, 4)]
        result = TamperDetector().scan(commits)
        assert [f.short_hash for f in result.findings] == ["1111111", "2222222", "3333333"]


class TestTamperEntry:
    def _record(self) -> TamperRecord:
        return TamperRecord(
            hash=HASH,
            author="mallory",
            date="2026-10-01T12:00:00+00:00",
            message="cleanup",
            deletion_count=2,
        )

    def test_command_format(self) -> None:
        assert tamper_command(self._record()) == (
            "[TAMPERING DETECTED] 2 log entries deleted in commit abcdef1 by mallory"
        )

    def test_entry_fields(self) -> None:
        entry = tamper_entry(self._record(), user="alice", hostname="box", cwd="/root")
        assert entry.exit_code == TAMPER_EXIT_CODE
        assert entry.is_tamper_warning
        assert TAMPER_MARKER in entry.command
        assert f"Commit: {HASH}" in entry.output
        assert "Author: mallory" in entry.output
        assert "Message: cleanup" in entry.output
        assert "Deletions: 2 entries" in entry.output

    def test_reported_hash_round_trip(self) -> None:
        entry = tamper_entry(self._record(), user="alice", hostname="box", cwd="/root")
        assert reported_hash(entry) == "abcdef1"

    def test_reported_hash_ignores_ordinary_entries(self) -> None:
        entry = LogEntry.for_command("git commit -m 'fix' # commit abcdef1", cwd="/")
        assert reported_hash(entry) is None
