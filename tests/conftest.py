"""Shared fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from sudolog.core.codec import EntryCodec
from sudolog.core.config import SudologConfig
from sudolog.core.store import EntryStore

PASSWORD = "correct horse battery staple"
TOKEN = "ghp_0123456789abcdefABCDEF"


def make_config(tmp_path: Path, **remote: str) -> SudologConfig:
    remote_data = {"repo": "alice/audit-logs", "user": "alice", "token": TOKEN, **remote}
    return SudologConfig.model_validate(
        {
            "encryption_password": PASSWORD,
            "remote": remote_data,
            "store": {"repo_path": str(tmp_path / "work")},
        }
    )


@pytest.fixture(autouse=True)
def isolated_home(
    tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch
) -> Path:
    """Keep ~/.sudolog and the default working copy inside a per-test temp dir."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    for var in (
        "SUDOLOG_CONFIG",
        "SUDOLOG_ENCRYPTION_PASSWORD",
        "SUDOLOG_GITHUB_REPO",
        "SUDOLOG_GITHUB_USER",
        "SUDOLOG_GITHUB_TOKEN",
        "SUDOLOG_REMOTE_URL",
        "SUDOLOG_REPO_PATH",
        "SUDOLOG_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture
def config(tmp_path: Path) -> SudologConfig:
    return make_config(tmp_path)


@pytest.fixture
def codec() -> EntryCodec:
    return EntryCodec(PASSWORD)


@pytest.fixture
def store(config: SudologConfig) -> EntryStore:
    return EntryStore(config.log_path)
