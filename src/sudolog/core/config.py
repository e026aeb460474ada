"""sudolog configuration: Pydantic model, load, and save."""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator

from sudolog.core.constants import (
    CONFIG_FILENAME,
    DEFAULT_GIT_USER_NAME,
    DEFAULT_LOG_FILE,
    DEFAULT_REMOTE_HOST,
    DEFAULT_REPO_DIR_NAME,
    REPORTED_INDEX_FILENAME,
    SUDOLOG_DIR_NAME,
)
from sudolog.core.exceptions import ConfigError, ConfigNotFoundError

_REPO_RE = re.compile(r"[A-Za-z0-9_.\-]+/[A-Za-z0-9_.\-]+")

# Flat config.json layout from releases before the TOML config
_LEGACY_KEYS = {
    "ENCRYPTION_PASSWORD": ("encryption_password",),
    "GITHUB_REPO": ("remote", "repo"),
    "GITHUB_USER": ("remote", "user"),
    "GITHUB_TOKEN": ("remote", "token"),
    "REPO_PATH": ("store", "repo_path"),
    "LOG_FILE": ("store", "log_file"),
}


def sudolog_dir() -> Path:
    """Return the sudolog state directory (~/.sudolog), creating it if needed."""
    d = Path.home() / SUDOLOG_DIR_NAME
    d.mkdir(mode=0o700, parents=True, exist_ok=True)
    return d


def url_credentials(url: str) -> str:
    """Return the ``user[:password]`` part of a URL's authority, or ``""``."""
    netloc = urlsplit(url).netloc
    userinfo, sep, _host = netloc.rpartition("@")
    return userinfo if sep else ""


def redact_url(url: str) -> str:
    creds = url_credentials(url)
    return url.replace(creds + "@", "***@", 1) if creds else url


def _secret(v: Any) -> str:
    return str(v.get_secret_value() if hasattr(v, "get_secret_value") else v)


# ---------------------------------------------------------------------------
# Sub-models
# ---------------------------------------------------------------------------


class RemoteConfig(BaseModel):
    repo: str = ""  # "owner/name"
    user: str = ""
    token: SecretStr = SecretStr("")
    host: str = DEFAULT_REMOTE_HOST
    url: str = ""  # explicit remote URL; overrides host/repo/token

    @field_validator("token", mode="before")
    @classmethod
    def strip_token(cls, v: Any) -> Any:
        return _secret(v).strip()

    @model_validator(mode="after")
    def repo_or_url(self) -> RemoteConfig:
        if self.url:
            return self
        if not _REPO_RE.fullmatch(self.repo):
            raise ValueError(
                f"Invalid remote repository {self.repo!r}. Expected: owner/name. "
                "Run 'sudolog setup' to configure the remote."
            )
        if not self.token.get_secret_value():
            raise ValueError("remote.token is required to push the audit log.")
        if not self.user:
            raise ValueError("remote.user is required.")
        return self

    @property
    def git_user_name(self) -> str:
        return self.user or DEFAULT_GIT_USER_NAME

    @property
    def git_user_email(self) -> str:
        return f"{self.git_user_name}@users.noreply.github.com"

    def remote_url(self) -> str:
        """Return the clone/push URL with the access token embedded."""
        if self.url:
            return self.url
        return f"https://{self.token.get_secret_value()}@{self.host}/{self.repo}.git"


class StoreConfig(BaseModel):
    repo_path: str = ""  # empty → ~/.sudo-audit-logs
    log_file: str = DEFAULT_LOG_FILE

    @field_validator("log_file")
    @classmethod
    def relative_log_file(cls, v: str) -> str:
        if not v or Path(v).is_absolute() or ".." in Path(v).parts:
            raise ValueError("store.log_file must be a path inside the working copy")
        return v


class LoggingConfig(BaseModel):
    level: str = "WARNING"
    format: str = "text"  # "text" | "json"

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v not in ("text", "json"):
            raise ValueError("Log format must be 'text' or 'json'")
        return v


# ---------------------------------------------------------------------------
# Root config
# ---------------------------------------------------------------------------


class SudologConfig(BaseModel):
    """Root sudolog configuration model."""

    encryption_password: SecretStr
    remote: RemoteConfig
    store: StoreConfig = Field(default_factory=StoreConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    sudo_binary: str = "sudo"

    @field_validator("encryption_password")
    @classmethod
    def password_required(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value():
            raise ValueError("encryption_password must not be empty")
        return v

    # Computed paths (not stored in config file)
    _config_path: Path | None = None

    @property
    def repo_path(self) -> Path:
        if self.store.repo_path:
            return Path(self.store.repo_path).expanduser()
        return Path.home() / DEFAULT_REPO_DIR_NAME

    @property
    def log_path(self) -> Path:
        return self.repo_path / self.store.log_file

    @property
    def reported_index_path(self) -> Path:
        return sudolog_dir() / REPORTED_INDEX_FILENAME


# ---------------------------------------------------------------------------
# Load / save
# ---------------------------------------------------------------------------


def _config_file_path() -> Path:
    if env_path := os.environ.get("SUDOLOG_CONFIG"):
        return Path(env_path).expanduser()
    return sudolog_dir() / CONFIG_FILENAME


def load_config(path: Path | None = None) -> SudologConfig:
    """
    Load SudologConfig from a TOML file, overlaid with environment variables.

    Priority (highest to lowest):
      1. Environment variables (SUDOLOG_*)
      2. Config file (~/.sudolog/config.toml, or a legacy config.json)
    """
    cfg_path = path or _config_file_path()

    if not cfg_path.exists():
        raise ConfigNotFoundError(
            f"sudolog is not configured. Run 'sudolog setup' first.\n"
            f"(Config file not found: {cfg_path})"
        )

    try:
        data = _read_config_file(cfg_path)
    except Exception as exc:
        raise ConfigError(f"Cannot read config file {cfg_path}: {exc}") from exc

    _apply_env_overrides(data)

    try:
        config = SudologConfig.model_validate(data)
    except Exception as exc:
        raise ConfigError(f"Invalid config at {cfg_path}: {exc}") from exc

    config._config_path = cfg_path
    return config


def _read_config_file(cfg_path: Path) -> dict[str, Any]:
    if cfg_path.suffix == ".json":
        with open(cfg_path, encoding="utf-8") as f:
            return _from_legacy_json(json.load(f))

    import tomllib

    with open(cfg_path, "rb") as f:
        return tomllib.load(f)


def _from_legacy_json(raw: dict[str, Any]) -> dict[str, Any]:
    """Map legacy flat UPPER_CASE keys onto the nested layout."""
    data: dict[str, Any] = {}
    for key, value in raw.items():
        target = _LEGACY_KEYS.get(key)
        if target is None:
            continue
        node = data
        for part in target[:-1]:
            node = node.setdefault(part, {})
        node[target[-1]] = value
    return data


def _apply_env_overrides(data: dict[str, Any]) -> None:
    """Overlay SUDOLOG_* environment variables onto the parsed file data."""
    if password := os.environ.get("SUDOLOG_ENCRYPTION_PASSWORD"):
        data["encryption_password"] = password
    if repo := os.environ.get("SUDOLOG_GITHUB_REPO"):
        data.setdefault("remote", {})["repo"] = repo
    if user := os.environ.get("SUDOLOG_GITHUB_USER"):
        data.setdefault("remote", {})["user"] = user
    if token := os.environ.get("SUDOLOG_GITHUB_TOKEN"):
        data.setdefault("remote", {})["token"] = token
    if url := os.environ.get("SUDOLOG_REMOTE_URL"):
        data.setdefault("remote", {})["url"] = url
    if repo_path := os.environ.get("SUDOLOG_REPO_PATH"):
        data.setdefault("store", {})["repo_path"] = repo_path
    if level := os.environ.get("SUDOLOG_LOG_LEVEL"):
        data.setdefault("logging", {})["level"] = level


def save_config(config_data: dict[str, Any], path: Path | None = None) -> Path:
    """Write config dict to TOML file with secure permissions (0600)."""
    import tomli_w

    cfg_path = path or _config_file_path()
    cfg_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    # Write atomically
    tmp_path = cfg_path.with_suffix(".tmp")
    try:
        with open(tmp_path, "wb") as f:
            tomli_w.dump(config_data, f)
        tmp_path.chmod(0o600)
        tmp_path.rename(cfg_path)
    except Exception as exc:
        tmp_path.unlink(missing_ok=True)
        raise ConfigError(f"Cannot write config to {cfg_path}: {exc}") from exc

    return cfg_path
