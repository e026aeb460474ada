"""
Git replication of the log working copy.

The working copy (``~/.sudo-audit-logs`` by default) is a clone of the remote
log repository. Every invocation rebase-pulls ``main`` before scanning, then
stages, commits and pushes the log before the privileged command may run.
Rebasing keeps the log's history linear, which the tamper scan relies on.

All git calls go through :meth:`GitReplicator._git`, which raises
:class:`ReplicationError` with the access token redacted.

Lifecycle::

    replicator = GitReplicator(config)
    replicator.pull()                       # clones on first use
    commits = replicator.history_for("audit-log.json")
    replicator.commit_and_push(["audit-log.json", "index.html", ".nojekyll"])
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from sudolog.core.config import SudologConfig, url_credentials
from sudolog.core.constants import DEFAULT_BRANCH, DEFAULT_REMOTE, GIT_TIMEOUT_SECONDS
from sudolog.core.entry import utc_timestamp
from sudolog.core.exceptions import ReplicationError

logger = logging.getLogger(__name__)

# Unit / record separators keep commit subjects with spaces or tabs intact.
_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_LOG_FORMAT = f"%H{_FIELD_SEP}%an{_FIELD_SEP}%aI{_FIELD_SEP}%s{_RECORD_SEP}"


@dataclass(frozen=True)
class Commit:
    """One commit that touched the log file, with its diff against the parent."""

    hash: str
    author: str
    date: str
    message: str
    diff: str | None = None
    diff_error: str | None = None


class GitReplicator:
    """
    Synchronises the local log working copy with the remote repository.

    Uses the ``git`` executable via :mod:`subprocess`; credentials travel in
    the remote URL (``https://<token>@github.com/<owner>/<repo>.git``).
    """

    def __init__(
        self,
        config: SudologConfig,
        *,
        git_binary: str = "git",
        timeout: float = GIT_TIMEOUT_SECONDS,
    ) -> None:
        self._config = config
        self._git_binary = git_binary
        self._timeout = timeout
        self.repo_path: Path = config.repo_path
        self.branch = DEFAULT_BRANCH

    # ------------------------------------------------------------------
    # Working copy
    # ------------------------------------------------------------------

    def has_working_copy(self) -> bool:
        return (self.repo_path / ".git").exists()

    def ensure_cloned(self) -> None:
        """Clone the remote if there is no local working copy yet."""
        if self.has_working_copy():
            return

        logger.info("Cloning log repository into %s", self.repo_path)
        self.repo_path.parent.mkdir(parents=True, exist_ok=True)
        self._git(
            "clone",
            self._config.remote.remote_url(),
            str(self.repo_path),
            cwd=self.repo_path.parent,
        )

        remote = self._config.remote
        self._git("config", "user.name", remote.git_user_name)
        self._git("config", "user.email", remote.git_user_email)

        if self._remote_has_branch():
            self._git("checkout", "-B", self.branch, f"{DEFAULT_REMOTE}/{self.branch}")
        else:
            # Empty remote: the first push creates main.
            self._git("symbolic-ref", "HEAD", f"refs/heads/{self.branch}")
        logger.info("Repository cloned")

    def pull(self) -> None:
        """
        Bring the working copy up to date with the remote ``main``.

        Clones instead when there is no working copy. Uncommitted changes (an
        entry from an interrupted run) are committed locally first, so a clash
        with the remote fails the rebase instead of leaving conflict markers
        in the log.

        Raises:
            ReplicationError: network/auth failure, or a local entry that
                conflicts with the remote history (the rebase is aborted).
        """
        if not self.has_working_copy():
            self.ensure_cloned()
            return

        self._commit_pending()

        if not self._remote_has_branch():
            logger.info("Remote has no %s branch yet; nothing to pull", self.branch)
            return

        try:
            self._git("pull", "--rebase", DEFAULT_REMOTE, self.branch)
        except ReplicationError as exc:
            if not self._rebase_in_progress():
                raise
            self._git("rebase", "--abort", check=False)
            raise ReplicationError(
                f"{exc}\nLocal log entries conflict with {DEFAULT_REMOTE}/{self.branch}; "
                f"resolve the conflict in {self.repo_path} by hand."
            ) from exc

        unmerged = self._git("diff", "--name-only", "--diff-filter=U").stdout.split()
        if unmerged:
            raise ReplicationError(f"Unmerged paths after pull: {', '.join(unmerged)}")
        logger.info("Pulled latest changes")

    def commit_and_push(self, paths: Sequence[str]) -> bool:
        """
        Stage *paths*, commit if anything changed, and push to ``main``.

        Returns:
            True if a commit was pushed, False if there was nothing to commit.

        Raises:
            ReplicationError: staging, commit or push failed (including a push
                rejected because the remote moved on).
        """
        self._git("add", "--", *paths)
        if not self._commit_staged(f"Log entry: {utc_timestamp()}"):
            logger.info("No changes to push")
            return False

        self._git("push", DEFAULT_REMOTE, self.branch)
        logger.info("Pushed log to %s/%s", DEFAULT_REMOTE, self.branch)
        return True

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def history_for(self, path: str) -> list[Commit]:
        """
        Return every commit on any branch that touched *path*, newest first.

        A commit whose diff cannot be produced is returned with ``diff=None``
        and the reason in ``diff_error``.
        """
        if not self.has_working_copy() or not self._has_any_ref():
            return []

        result = self._git("log", "--all", f"--format={_LOG_FORMAT}", "--", path)

        commits: list[Commit] = []
        for chunk in result.stdout.split(_RECORD_SEP):
            chunk = chunk.strip("\n")
            if not chunk:
                continue
            fields = chunk.split(_FIELD_SEP)
            if len(fields) != 4:
                logger.debug("Skipping unparseable log record %r", chunk)
                continue
            commit_hash, author, date, message = fields
            diff, error = self._diff_for(commit_hash, path)
            commits.append(
                Commit(
                    hash=commit_hash,
                    author=author,
                    date=date,
                    message=message,
                    diff=diff,
                    diff_error=error,
                )
            )
        return commits

    def _diff_for(self, commit_hash: str, path: str) -> tuple[str | None, str | None]:
        shown = self._git(
            "show", "--format=", "--no-color", "--no-ext-diff", commit_hash, "--", path,
            check=False,
        )
        if shown.returncode != 0:
            return None, self._redact(shown.stderr.strip()) or f"exit {shown.returncode}"
        return shown.stdout, None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _commit_pending(self) -> None:
        """Commit whatever an interrupted run left uncommitted in the working copy."""
        self._git("add", "--all")
        if self._commit_staged(f"Pending log entry: {utc_timestamp()}"):
            logger.warning("Committed changes left by an interrupted run")

    def _commit_staged(self, message: str) -> bool:
        staged = self._git("diff", "--cached", "--quiet", check=False)
        if staged.returncode == 0:
            return False
        if staged.returncode != 1:
            raise ReplicationError(f"git diff --cached failed: {self._redact(staged.stderr)}")
        self._git("commit", "-m", message)
        return True

    def _remote_has_branch(self) -> bool:
        probe = self._git(
            "ls-remote", "--exit-code", "--heads", DEFAULT_REMOTE, self.branch, check=False
        )
        if probe.returncode == 0:
            return True
        if probe.returncode == 2:  # reachable, no matching ref
            return False
        raise ReplicationError(
            f"Cannot reach remote: {self._redact(probe.stderr.strip())}"
        )

    def _rebase_in_progress(self) -> bool:
        git_dir = self.repo_path / ".git"
        return (git_dir / "rebase-merge").exists() or (git_dir / "rebase-apply").exists()

    def _has_any_ref(self) -> bool:
        refs = self._git("for-each-ref", "--count=1", check=False)
        return refs.returncode == 0 and bool(refs.stdout.strip())

    def _redact(self, text: str) -> str:
        remote = self._config.remote
        for secret in (remote.token.get_secret_value(), url_credentials(remote.remote_url())):
            if secret:
                text = text.replace(secret, "***")
        return text

    def _git(
        self,
        *args: str,
        cwd: Path | None = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        """Run one git command in the working copy."""
        cmd = [self._git_binary, *args]
        try:
            result = subprocess.run(  # nosec B603
                cmd,
                cwd=cwd or self.repo_path,
                capture_output=True,
                text=True,
                timeout=self._timeout,
                env=_git_env(),
            )
        except FileNotFoundError as exc:
            raise ReplicationError(f"git executable not found: {self._git_binary}") from exc
        except subprocess.TimeoutExpired as exc:
            raise ReplicationError(
                f"git {args[0]} timed out after {self._timeout:.0f}s"
            ) from exc

        if check and result.returncode != 0:
            detail = self._redact((result.stderr or result.stdout).strip())
            raise ReplicationError(f"git {args[0]} failed: {detail}")
        return result


def _git_env() -> dict[str, str]:
    env = dict(os.environ)
    env["GIT_TERMINAL_PROMPT"] = "0"  # fail instead of prompting for credentials
    env["LC_ALL"] = "C"
    return env
