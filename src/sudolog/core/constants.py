"""sudolog constants: exit codes, filesystem layout, crypto and scan parameters."""

from __future__ import annotations

from enum import IntEnum

# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------


class ExitCode(IntEnum):
    SUCCESS = 0
    ERROR = 1
    CONFIG_ERROR = 2
    ENV_ERROR = 3
    REPLICATION_ERROR = 4
    DECLINED = 6


# ---------------------------------------------------------------------------
# Filesystem layout
# ---------------------------------------------------------------------------

SUDOLOG_DIR_NAME = ".sudolog"
CONFIG_FILENAME = "config.toml"
REPORTED_INDEX_FILENAME = "reported-index.json"

DEFAULT_REPO_DIR_NAME = ".sudo-audit-logs"  # working copy under $HOME
DEFAULT_LOG_FILE = "audit-log.json"
VIEWER_FILENAME = "index.html"
NOJEKYLL_FILENAME = ".nojekyll"

# ---------------------------------------------------------------------------
# Remote
# ---------------------------------------------------------------------------

DEFAULT_BRANCH = "main"
DEFAULT_REMOTE = "origin"
DEFAULT_REMOTE_HOST = "github.com"
DEFAULT_GIT_USER_NAME = "sudolog"
GIT_TIMEOUT_SECONDS = 120.0

# ---------------------------------------------------------------------------
# Log entry sentinels
# ---------------------------------------------------------------------------

EXIT_CODE_UNKNOWN: int | None = None  # written before the command runs
TAMPER_EXIT_CODE = -1

# ---------------------------------------------------------------------------
# Codec — must stay in sync with viewer/index.html
# ---------------------------------------------------------------------------

SALT_BYTES = 16
NONCE_BYTES = 16
TAG_BYTES = 16
KEY_BYTES = 32
PBKDF2_ITERATIONS = 100_000

# ---------------------------------------------------------------------------
# Tamper detection
# ---------------------------------------------------------------------------

TOLERANCE = 2  # bracket / trailing-comma churn in the JSON document
TAMPER_MARKER = "[TAMPERING DETECTED]"
SHORT_HASH_LEN = 7
