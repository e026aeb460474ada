"""
Audit workflow.

``AuditWorkflow`` sequences one invocation through strictly ordered, gated
steps::

    CONFIRM → PULL → SCAN → REPORT → LOG → PUSH → AUTHORIZE

- CONFIRM   user approves the exact command string; decline stops with no
            side effects.
- PULL      rebase-pull (or first clone). Failure stops before any write.
- SCAN      classify the log file's history and collect the short hashes
            already reported. Never fatal: failures degrade to "no findings".
- REPORT    one encrypted tamper-warning entry per new suspicious commit.
- LOG       the encrypted pre-execution entry for the command.
- PUSH      viewer assets + log committed and pushed. Failure stops: the entry
            stays in the working copy for the next run, the command does not
            run.
- AUTHORIZE hand the argv to the execution collaborator.

The only concurrency control is pull-rebase-then-push; a push rejected because
another host pushed first is fatal for this invocation.

Collaborators are injected, so the workflow runs the same under test with
fakes as it does from the CLI::

    workflow = AuditWorkflow(
        config,
        replicator=GitReplicator(config),
        store=EntryStore(config.log_path),
        codec=EntryCodec(config.encryption_password),
        confirm=ask_confirmation,
        execute=run_privileged,
    )
    result = workflow.run(["apt", "update"])
"""

from __future__ import annotations

import logging
import os
import socket
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Protocol

from sudolog.core.codec import EntryCodec
from sudolog.core.config import SudologConfig
from sudolog.core.constants import ExitCode
from sudolog.core.entry import LogEntry, current_user
from sudolog.core.exceptions import ReplicationError
from sudolog.core.replication import Commit
from sudolog.core.reported import ReportedIndex, collect_reported
from sudolog.core.store import EntryStore
from sudolog.core.tamper import ScanWarning, TamperDetector, TamperRecord, tamper_entry
from sudolog.core.viewer import install_viewer

logger = logging.getLogger(__name__)

ConfirmFn = Callable[[str], bool]
ExecuteFn = Callable[[Sequence[str]], int]
ViewerFn = Callable[[Path], list[str]]
StepFn = Callable[["Step"], None]


class Replicator(Protocol):
    def pull(self) -> None: ...

    def commit_and_push(self, paths: Sequence[str]) -> bool: ...

    def history_for(self, path: str) -> list[Commit]: ...


class Step(str, Enum):
    CONFIRM = "confirm"
    PULL = "pull"
    SCAN = "scan"
    REPORT = "report"
    LOG = "log"
    PUSH = "push"
    AUTHORIZE = "authorize"


@dataclass
class WorkflowResult:
    """Outcome of one invocation. ``step`` is the last step entered."""

    step: Step
    exit_code: int
    executed: bool = False
    entry_id: int | None = None
    findings: list[TamperRecord] = field(default_factory=list)
    new_reports: int = 0
    warnings: list[ScanWarning] = field(default_factory=list)
    error: str = ""


@dataclass
class ScanOutcome:
    findings: list[TamperRecord] = field(default_factory=list)
    warnings: list[ScanWarning] = field(default_factory=list)
    already_reported: set[str] = field(default_factory=set)


def scan_history(
    replicator: Replicator,
    store: EntryStore,
    codec: EntryCodec,
    log_file: str,
    *,
    index: ReportedIndex | None = None,
    detector: TamperDetector | None = None,
) -> ScanOutcome:
    """
    Classify the log file's history and gather already-reported hashes.

    Never raises :class:`ReplicationError`: an unreadable history degrades to
    no findings with a warning. The already-reported set is only computed when
    there is something to compare it against.
    """
    outcome = ScanOutcome()
    try:
        commits = replicator.history_for(log_file)
    except ReplicationError as exc:
        logger.warning("Tamper check warning: %s", exc)
        commits = []

    scanned = (detector or TamperDetector()).scan(commits)
    outcome.findings = scanned.findings
    outcome.warnings = scanned.warnings

    if outcome.findings:
        logger.warning(
            "TAMPERING DETECTED: %d commit(s) with deletions found", len(outcome.findings)
        )
        outcome.already_reported = collect_reported(store.load_all(), codec, index)
    return outcome


class AuditWorkflow:
    """Runs the gated audit sequence for a single privileged command."""

    def __init__(
        self,
        config: SudologConfig,
        *,
        replicator: Replicator,
        store: EntryStore,
        codec: EntryCodec,
        confirm: ConfirmFn,
        execute: ExecuteFn,
        reported_index: ReportedIndex | None = None,
        install_assets: ViewerFn = install_viewer,
        detector: TamperDetector | None = None,
        on_step: StepFn | None = None,
    ) -> None:
        self._config = config
        self._replicator = replicator
        self._store = store
        self._codec = codec
        self._confirm = confirm
        self._execute = execute
        self._reported_index = reported_index
        self._install_assets = install_assets
        self._detector = detector or TamperDetector()
        self._on_step = on_step

    def run(self, argv: Sequence[str]) -> WorkflowResult:
        command = " ".join(argv)

        # 1. Confirm
        self._enter(Step.CONFIRM)
        if not self._confirm(command):
            logger.info("Command declined: %s", command)
            return WorkflowResult(step=Step.CONFIRM, exit_code=ExitCode.DECLINED)

        # 2. Pull
        self._enter(Step.PULL)
        try:
            self._replicator.pull()
        except ReplicationError as exc:
            logger.error("Pull failed, command not executed: %s", exc)
            return WorkflowResult(
                step=Step.PULL, exit_code=ExitCode.REPLICATION_ERROR, error=str(exc)
            )

        # 3. Scan
        self._enter(Step.SCAN)
        scan = self.scan()
        result = WorkflowResult(
            step=Step.SCAN,
            exit_code=ExitCode.SUCCESS,
            findings=scan.findings,
            warnings=scan.warnings,
        )

        # 4. Report new tampering
        result.step = self._enter(Step.REPORT)
        result.new_reports = self._report(scan)

        # 5. Log
        result.step = self._enter(Step.LOG)
        entry = LogEntry.for_command(command)
        result.entry_id = self._store.append(self._codec.seal(entry))

        # 6. Push
        result.step = self._enter(Step.PUSH)
        try:
            assets = self._install_assets(self._config.repo_path)
            self._replicator.commit_and_push([self._config.store.log_file, *assets])
        except (ReplicationError, OSError) as exc:
            logger.error("Push failed, command not executed: %s", exc)
            result.exit_code = ExitCode.REPLICATION_ERROR
            result.error = str(exc)
            return result

        # 7. Authorize
        result.step = self._enter(Step.AUTHORIZE)
        result.executed = True
        result.exit_code = self._execute(list(argv))
        return result

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _enter(self, step: Step) -> Step:
        logger.debug("Workflow step: %s", step.value)
        if self._on_step is not None:
            self._on_step(step)
        return step

    def scan(self) -> ScanOutcome:
        return scan_history(
            self._replicator,
            self._store,
            self._codec,
            self._config.store.log_file,
            index=self._reported_index,
            detector=self._detector,
        )

    def _report(self, scan: ScanOutcome) -> int:
        """Append one tamper-warning entry per finding not yet reported."""
        reported = set(scan.already_reported)
        user, hostname, cwd = current_user(), socket.gethostname(), os.getcwd()
        appended = 0
        for finding in scan.findings:
            if finding.short_hash in reported:
                continue
            logger.warning(
                "New tampering: commit %s by %s, %d entries deleted",
                finding.short_hash,
                finding.author,
                finding.deletion_count,
            )
            warning = tamper_entry(finding, user=user, hostname=hostname, cwd=cwd)
            self._store.append(self._codec.seal(warning))
            reported.add(finding.short_hash)
            appended += 1
        return appended
