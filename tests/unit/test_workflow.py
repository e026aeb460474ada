"""Unit tests for sudolog.core.workflow — the gated audit sequence."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import pytest

from sudolog.core.codec import EntryCodec
from sudolog.core.config import SudologConfig
from sudolog.core.constants import TAMPER_EXIT_CODE, ExitCode
from sudolog.core.exceptions import ReplicationError
from sudolog.core.replication import Commit
from sudolog.core.reported import ReportedIndex
from sudolog.core.store import EntryStore
from sudolog.core.workflow import AuditWorkflow, Step, scan_history

DELETING_HASH = "feedface" + "0" * 32


class FakeReplicator:
    def __init__(self) -> None:
        self.calls: list[str] = []
        self.pushed: list[list[str]] = []
        self.history: list[Commit] = []
        self.pull_error: ReplicationError | None = None
        self.push_error: ReplicationError | None = None
        self.history_error: ReplicationError | None = None

    def pull(self) -> None:
        self.calls.append("pull")
        if self.pull_error:
            raise self.pull_error

    def commit_and_push(self, paths: Sequence[str]) -> bool:
        self.calls.append("push")
        if self.push_error:
            raise self.push_error
        self.pushed.append(list(paths))
        return True

    def history_for(self, path: str) -> list[Commit]:
        self.calls.append("history")
        if self.history_error:
            raise self.history_error
        return list(self.history)


class FakeExecutor:
    def __init__(self, exit_code: int = 0) -> None:
        self.exit_code = exit_code
        self.calls: list[list[str]] = []

    def __call__(self, argv: Sequence[str]) -> int:
        self.calls.append(list(argv))
        return self.exit_code


def deletion_commit(lines: int = 5, commit_hash: str = DELETING_HASH) -> Commit:
    diff = "--- a/audit-log.json\n+++ b/audit-log.json\n" + "-x\n" * lines
    return Commit(
        hash=commit_hash,
        author="mallory",
        date="2026-10-01T12:00:00+00:00",
        message="tidy up",
        diff=diff,
    )


def fake_assets(repo_path: Path) -> list[str]:
    return ["index.html", ".nojekyll"]


@pytest.fixture
def replicator() -> FakeReplicator:
    return FakeReplicator()


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


def make_workflow(
    config: SudologConfig,
    replicator: FakeReplicator,
    store: EntryStore,
    codec: EntryCodec,
    executor: FakeExecutor,
    *,
    confirm: bool = True,
    **kwargs,
) -> AuditWorkflow:
    return AuditWorkflow(
        config,
        replicator=replicator,
        store=store,
        codec=codec,
        confirm=lambda command: confirm,
        execute=executor,
        install_assets=fake_assets,
        **kwargs,
    )


class TestHappyPath:
    def test_entry_written_pushed_then_executed(
        self, config, replicator, store, codec, executor
    ) -> None:
        result = make_workflow(config, replicator, store, codec, executor).run(["apt", "update"])

        assert result.step == Step.AUTHORIZE
        assert result.executed
        assert result.exit_code == 0
        assert result.entry_id == 1
        assert executor.calls == [["apt", "update"]]
        assert replicator.calls == ["pull", "history", "push"]
        assert replicator.pushed == [["audit-log.json", "index.html", ".nojekyll"]]

        records = store.load_all()
        assert len(records) == 1
        entry = codec.open(records[0].encrypted)
        assert entry.command == "apt update"
        assert entry.exit_code is None
        assert entry.output == ""

    def test_exit_code_propagated(self, config, replicator, store, codec) -> None:
        executor = FakeExecutor(exit_code=42)
        result = make_workflow(config, replicator, store, codec, executor).run(["false"])
        assert result.exit_code == 42

    def test_step_order(self, config, replicator, store, codec, executor) -> None:
        seen: list[Step] = []
        make_workflow(config, replicator, store, codec, executor, on_step=seen.append).run(
            ["ls"]
        )
        assert seen == [
            Step.CONFIRM,
            Step.PULL,
            Step.SCAN,
            Step.REPORT,
            Step.LOG,
            Step.PUSH,
            Step.AUTHORIZE,
        ]

    def test_ids_increase(self, config, replicator, store, codec, executor) -> None:
        workflow = make_workflow(config, replicator, store, codec, executor)
        assert workflow.run(["a"]).entry_id == 1
        assert workflow.run(["b"]).entry_id == 2


class TestGates:
    def test_decline_has_no_side_effects(
        self, config, replicator, store, codec, executor
    ) -> None:
        result = make_workflow(
            config, replicator, store, codec, executor, confirm=False
        ).run(["rm", "-rf", "/tmp/x"])

        assert result.step == Step.CONFIRM
        assert result.exit_code == ExitCode.DECLINED
        assert not result.executed
        assert replicator.calls == []
        assert executor.calls == []
        assert not config.log_path.exists()

    def test_pull_failure_stops_before_write(
        self, config, replicator, store, codec, executor
    ) -> None:
        replicator.pull_error = ReplicationError("network unreachable")
        result = make_workflow(config, replicator, store, codec, executor).run(["apt", "update"])

        assert result.step == Step.PULL
        assert result.exit_code == ExitCode.REPLICATION_ERROR
        assert "network unreachable" in result.error
        assert replicator.calls == ["pull"]
        assert executor.calls == []
        assert store.load_all() == []

    def test_push_failure_keeps_entry_but_does_not_execute(
        self, config, replicator, store, codec, executor
    ) -> None:
        replicator.push_error = ReplicationError("rejected: fetch first")
        result = make_workflow(config, replicator, store, codec, executor).run(["apt", "update"])

        assert result.step == Step.PUSH
        assert result.exit_code == ExitCode.REPLICATION_ERROR
        assert not result.executed
        assert executor.calls == []
        assert len(store.load_all()) == 1

    def test_asset_write_failure_is_a_push_failure(
        self, config, replicator, store, codec, executor
    ) -> None:
        def broken_assets(repo_path: Path) -> list[str]:
            raise PermissionError("read-only file system")

        workflow = AuditWorkflow(
            config,
            replicator=replicator,
            store=store,
            codec=codec,
            confirm=lambda command: True,
            execute=executor,
            install_assets=broken_assets,
        )
        result = workflow.run(["ls"])
        assert result.exit_code == ExitCode.REPLICATION_ERROR
        assert executor.calls == []


class TestTamperReporting:
    def test_warning_precedes_command_entry(
        self, config, replicator, store, codec, executor
    ) -> None:
        replicator.history = [deletion_commit(lines=5)]
        result = make_workflow(config, replicator, store, codec, executor).run(["apt", "update"])

        assert result.executed
        assert result.new_reports == 1
        assert [f.short_hash for f in result.findings] == ["feedfac"]

        entries = [codec.open(r.encrypted) for r in store.load_all()]
        assert len(entries) == 2
        warning, command = entries
        assert warning.exit_code == TAMPER_EXIT_CODE
        assert warning.command == (
            "[TAMPERING DETECTED] 3 log entries deleted in commit feedfac by mallory"
        )
        assert "Message: tidy up" in warning.output
        assert command.command == "apt update"
        assert result.entry_id == 2

    def test_each_commit_reported_once(
        self, config, replicator, store, codec, executor
    ) -> None:
        replicator.history = [deletion_commit()]
        workflow = make_workflow(
            config,
            replicator,
            store,
            codec,
            executor,
            reported_index=ReportedIndex(config.reported_index_path),
        )

        assert workflow.run(["one"]).new_reports == 1
        second = workflow.run(["two"])
        assert second.new_reports == 0
        assert len(second.findings) == 1

        commands = [codec.open(r.encrypted).command for r in store.load_all()]
        assert sum("TAMPERING DETECTED" in c for c in commands) == 1
        assert commands[-1] == "two"

    def test_duplicate_findings_reported_once_per_run(
        self, config, replicator, store, codec, executor
    ) -> None:
        replicator.history = [deletion_commit(), deletion_commit()]
        result = make_workflow(config, replicator, store, codec, executor).run(["ls"])
        assert result.new_reports == 1

    def test_history_failure_degrades_to_no_findings(
        self, config, replicator, store, codec, executor
    ) -> None:
        replicator.history_error = ReplicationError("fatal: bad revision")
        result = make_workflow(config, replicator, store, codec, executor).run(["ls"])

        assert result.executed
        assert result.findings == []
        assert len(store.load_all()) == 1

    def test_unreadable_diff_is_warning(
        self, config, replicator, store, codec, executor
    ) -> None:
        replicator.history = [
            Commit(hash="a" * 40, author="x", date="d", message="m", diff=None, diff_error="boom")
        ]
        result = make_workflow(config, replicator, store, codec, executor).run(["ls"])

        assert result.executed
        assert result.findings == []
        assert [w.reason for w in result.warnings] == ["boom"]
        assert len(store.load_all()) == 1


class TestScanHistory:
    def test_no_findings_skips_decryption(self, config, replicator, store) -> None:
        class ExplodingCodec(EntryCodec):
            def open(self, blob: str):
                raise AssertionError("should not decrypt without findings")

        store.append("garbage")
        outcome = scan_history(replicator, store, ExplodingCodec("pw"), "audit-log.json")
        assert outcome.findings == []
        assert outcome.already_reported == set()

    def test_reports_already_reported(
        self, config, replicator, store, codec, executor
    ) -> None:
        replicator.history = [deletion_commit()]
        make_workflow(config, replicator, store, codec, executor).run(["ls"])

        outcome = scan_history(replicator, store, codec, "audit-log.json")
        assert outcome.already_reported == {"feedfac"}
