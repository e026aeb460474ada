"""
sudolog — encrypted, tamper-evident audit trail for privileged commands.

Every ``sudo`` invocation is confirmed, encrypted, appended to a JSON log in a
git working copy and pushed to a remote repository *before* the command is
allowed to run. Deletions in the log's history are detected and recorded as
encrypted tamper warnings.

Package layout (src/sudolog/):
  core/     — codec, entry store, git replication, tamper detection, workflow
  viewer/   — static browser viewer copied next to the log
  cli/      — Click CLI entry point
"""

__version__ = "0.3.0"
__all__ = ["__version__"]
