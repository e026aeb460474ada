"""LogEntry — the plaintext record that is encrypted into each log slot."""

from __future__ import annotations

import getpass
import os
import socket
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from sudolog.core.constants import EXIT_CODE_UNKNOWN, TAMPER_EXIT_CODE


def utc_timestamp() -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def current_user() -> str:
    user = os.environ.get("USER") or os.environ.get("USERNAME")
    if user:
        return user
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


class LogEntry(BaseModel):
    """
    One audited event.

    Field names on the wire are camelCase (``exitCode``) so the browser viewer
    can render entries written by any version of the tool.
    """

    model_config = ConfigDict(populate_by_name=True)

    timestamp: str
    user: str
    hostname: str
    command: str
    exit_code: int | None = Field(default=EXIT_CODE_UNKNOWN, alias="exitCode")
    output: str = ""
    cwd: str

    @classmethod
    def for_command(cls, command: str, cwd: str | None = None) -> LogEntry:
        """Build the pre-execution entry for *command* (exit code unknown)."""
        return cls(
            timestamp=utc_timestamp(),
            user=current_user(),
            hostname=socket.gethostname(),
            command=command,
            exit_code=EXIT_CODE_UNKNOWN,
            output="",
            cwd=cwd if cwd is not None else os.getcwd(),
        )

    @property
    def is_tamper_warning(self) -> bool:
        return self.exit_code == TAMPER_EXIT_CODE

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, raw: str) -> LogEntry:
        return cls.model_validate_json(raw)
