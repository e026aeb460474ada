"""
Entry store — the JSON document of encrypted records inside the working copy.

The document is a single array::

    [
      {
        "id": 1,
        "encrypted": "<base64 blob>"
      },
      ...
    ]

Two-space indentation keeps one key per line, which is what makes the
line-count heuristics in :mod:`sudolog.core.tamper` meaningful.

Every append rewrites the whole document. An absent, unparseable or
half-written document is treated as empty: corruption degrades to a fresh
sequence instead of blocking the audit trail.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Iterator
from dataclasses import asdict, dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EncryptedRecord:
    id: int
    encrypted: str


class EntryStore:
    """
    Append-only collection of :class:`EncryptedRecord`.

    Ids are ``len(records) + 1`` at append time. They follow file position and
    are not a cryptographic sequence; deletions are caught from git history,
    not from id gaps.

    Not safe for concurrent multi-process writes without an external lock.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def load_all(self) -> list[EncryptedRecord]:
        """Return all records in file order; ``[]`` if absent or unparseable."""
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("EntryStore: cannot parse %s, starting fresh: %s", self.path, exc)
            return []
        if not isinstance(raw, list):
            logger.warning("EntryStore: %s is not a JSON array, starting fresh", self.path)
            return []

        records: list[EncryptedRecord] = []
        for item in raw:
            if (
                isinstance(item, dict)
                and isinstance(item.get("id"), int)
                and isinstance(item.get("encrypted"), str)
            ):
                records.append(EncryptedRecord(id=item["id"], encrypted=item["encrypted"]))
            else:
                logger.debug("EntryStore: skipping malformed record %r", item)
        return records

    def append(self, blob: str) -> int:
        """Append one encrypted blob and return its id."""
        records = self.load_all()
        record = EncryptedRecord(id=len(records) + 1, encrypted=blob)
        records.append(record)
        self._write(records)
        logger.info("EntryStore: appended record %d to %s", record.id, self.path)
        return record.id

    def _write(self, records: list[EncryptedRecord]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        document = json.dumps([asdict(r) for r in records], indent=2)

        # Write atomically
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(document)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def __len__(self) -> int:
        return len(self.load_all())

    def __iter__(self) -> Iterator[EncryptedRecord]:
        return iter(self.load_all())
