"""
Per-entry authenticated encryption.

Blob layout (base64 of)::

    salt (16) || nonce (16) || GCM tag (16) || ciphertext

The key is PBKDF2-HMAC-SHA256(password, salt, 100 000 iterations, 32 bytes).
Salt and nonce are fresh for every call, so entries are independently
encrypted and independently decryptable under one long-lived password.
The same layout is decoded client-side by ``viewer/index.html``.
"""

from __future__ import annotations

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from pydantic import SecretStr, ValidationError

from sudolog.core.constants import (
    KEY_BYTES,
    NONCE_BYTES,
    PBKDF2_ITERATIONS,
    SALT_BYTES,
    TAG_BYTES,
)
from sudolog.core.entry import LogEntry
from sudolog.core.exceptions import DecryptionError

_HEADER_BYTES = SALT_BYTES + NONCE_BYTES + TAG_BYTES


def derive_key(password: str, salt: bytes) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_BYTES,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )
    return kdf.derive(password.encode("utf-8"))


def encrypt(plaintext: str, password: str) -> str:
    """Encrypt *plaintext* under *password*; returns a base64 text blob."""
    salt = os.urandom(SALT_BYTES)
    nonce = os.urandom(NONCE_BYTES)
    key = derive_key(password, salt)

    # AESGCM appends the tag to the ciphertext; the blob stores it up front.
    sealed = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), None)
    ciphertext, tag = sealed[:-TAG_BYTES], sealed[-TAG_BYTES:]

    return base64.b64encode(salt + nonce + tag + ciphertext).decode("ascii")


def decrypt(blob: str, password: str) -> str:
    """
    Decrypt a blob produced by :func:`encrypt`.

    Raises:
        DecryptionError: wrong password, altered blob (tag mismatch), or a
            malformed blob (bad base64, too short, non-UTF-8 plaintext).
    """
    try:
        raw = base64.b64decode(blob, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecryptionError(f"Blob is not valid base64: {exc}") from exc

    if len(raw) < _HEADER_BYTES:
        raise DecryptionError(
            f"Blob too short: {len(raw)} bytes, need at least {_HEADER_BYTES}"
        )

    salt = raw[:SALT_BYTES]
    nonce = raw[SALT_BYTES : SALT_BYTES + NONCE_BYTES]
    tag = raw[SALT_BYTES + NONCE_BYTES : _HEADER_BYTES]
    ciphertext = raw[_HEADER_BYTES:]

    key = derive_key(password, salt)
    try:
        plaintext = AESGCM(key).decrypt(nonce, ciphertext + tag, None)
    except InvalidTag as exc:
        raise DecryptionError("Authentication failed: wrong password or altered entry") from exc

    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecryptionError("Decrypted entry is not valid UTF-8") from exc


class EntryCodec:
    """Seals and opens :class:`LogEntry` values with one configured password."""

    def __init__(self, password: SecretStr | str) -> None:
        if isinstance(password, SecretStr):
            password = password.get_secret_value()
        self._password = password

    def seal(self, entry: LogEntry) -> str:
        return encrypt(entry.to_json(), self._password)

    def open(self, blob: str) -> LogEntry:
        text = decrypt(blob, self._password)
        try:
            return LogEntry.from_json(text)
        except ValidationError as exc:
            raise DecryptionError(f"Decrypted payload is not a log entry: {exc}") from exc
