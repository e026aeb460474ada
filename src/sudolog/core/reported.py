"""
Already-reported tamper hashes.

Tamper warnings live only inside encrypted entries, so finding which commits
were already reported means decrypting the log. Each decryption costs a full
PBKDF2 derivation, so results are cached per host in ``ReportedIndex``:
``sha256(blob) -> reported short hash`` (``""`` for ordinary entries).

The cache is keyed by blob content. A rewritten record is a new key and is
decrypted again; a missing or corrupt cache file only costs time.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Iterable
from pathlib import Path

from sudolog.core.codec import EntryCodec
from sudolog.core.exceptions import DecryptionError
from sudolog.core.store import EncryptedRecord
from sudolog.core.tamper import reported_hash

logger = logging.getLogger(__name__)


def blob_digest(blob: str) -> str:
    return hashlib.sha256(blob.encode("ascii", errors="replace")).hexdigest()


class ReportedIndex:
    """Local JSON cache of per-blob scan results. Not replicated."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._entries: dict[str, str] | None = None
        self._dirty = False

    def _load(self) -> dict[str, str]:
        if self._entries is not None:
            return self._entries
        self._entries = {}
        if self.path.exists():
            try:
                raw = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                logger.warning("ReportedIndex: ignoring unreadable %s: %s", self.path, exc)
            else:
                if isinstance(raw, dict):
                    self._entries = {
                        k: v for k, v in raw.items() if isinstance(k, str) and isinstance(v, str)
                    }
        return self._entries

    def get(self, digest: str) -> str | None:
        return self._load().get(digest)

    def put(self, digest: str, short_hash: str) -> None:
        entries = self._load()
        if entries.get(digest) != short_hash:
            entries[digest] = short_hash
            self._dirty = True

    def save(self) -> None:
        if not self._dirty or self._entries is None:
            return
        try:
            self.path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
            tmp = self.path.with_suffix(".tmp")
            tmp.write_text(json.dumps(self._entries), encoding="utf-8")
            tmp.replace(self.path)
            self._dirty = False
        except OSError as exc:
            # The cache is an optimisation; losing it must not block the workflow.
            logger.warning("ReportedIndex: cannot write %s: %s", self.path, exc)


def collect_reported(
    records: Iterable[EncryptedRecord],
    codec: EntryCodec,
    index: ReportedIndex | None = None,
) -> set[str]:
    """
    Return the short hashes already reported by tamper-warning entries.

    Records that cannot be decrypted are skipped (and not cached, so a later
    run with the right password still sees them).
    """
    reported: set[str] = set()
    for record in records:
        digest = blob_digest(record.encrypted)
        cached = index.get(digest) if index is not None else None
        if cached is None:
            try:
                entry = codec.open(record.encrypted)
            except DecryptionError as exc:
                logger.debug("Skipping record %d: %s", record.id, exc)
                continue
            cached = reported_hash(entry) or ""
            if index is not None:
                index.put(digest, cached)
        if cached:
            reported.add(cached)

    if index is not None:
        index.save()
    return reported
