"""sudolog exception hierarchy."""

from __future__ import annotations


class SudologError(Exception):
    """Base exception for all sudolog errors."""


class ConfigError(SudologError):
    """Raised when the configuration is invalid or cannot be read."""


class ConfigNotFoundError(ConfigError):
    """Raised when the configuration file does not exist."""


class ReplicationError(SudologError):
    """Raised when cloning, pulling, committing or pushing the log repository fails."""


class DecryptionError(SudologError):
    """Raised when a blob cannot be decrypted (wrong password, altered or malformed)."""
