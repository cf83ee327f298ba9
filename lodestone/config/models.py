# Lodestone - Launcher Identity Core
# Copyright (C) 2026 Lodestone Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of Lodestone, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Central configuration module for Lodestone.

Defines Pydantic models for config.json and provides load / save / resolve
helpers with a module-level singleton cache.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError, field_validator

from lodestone.exceptions import ConfigError

logger = logging.getLogger("lodestone.config")

# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class SystemConfig(BaseModel):
    log_level: str = "INFO"


class AuthConfig(BaseModel):
    """Microsoft device-code login settings."""

    client_id: str = ""
    tenant: str = "consumers"
    scope: str = "XboxLive.signin offline_access"
    login_timeout: float = 300.0  # hard ceiling, independent of provider expiry
    default_poll_interval: int = 5

    @field_validator("login_timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("login_timeout must be positive")
        return value


class ProfileConfig(BaseModel):
    api_base_url: str = "https://api.minecraftservices.com"
    avatar_base_url: str = "https://minotar.net/helm"
    avatar_size: int = 64
    skin_base_url: str = "https://minotar.net/skin"
    request_timeout: float = 30.0


class SyncConfig(BaseModel):
    """Delays (seconds) before re-fetching the profile after a remote write.

    The profile service propagates skin changes asynchronously, so an
    immediate fetch usually still returns the previous skin.
    """

    upload_refresh_delay: float = 8.0
    library_refresh_delay: float = 3.0
    reset_refresh_delay: float = 2.0


class LodestoneConfig(BaseModel):
    version: int = 1
    system: SystemConfig = SystemConfig()
    auth: AuthConfig = AuthConfig()
    profile: ProfileConfig = ProfileConfig()
    sync: SyncConfig = SyncConfig()


# ---------------------------------------------------------------------------
# Singleton cache
# ---------------------------------------------------------------------------

_config: LodestoneConfig | None = None
_config_path: Path | None = None
_config_mtime: float = 0.0


def invalidate_cache() -> None:
    """Reset the module-level singleton cache."""
    global _config, _config_path, _config_mtime
    _config = None
    _config_path = None
    _config_mtime = 0.0


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------


def get_config_path(data_dir: Path | None = None) -> Path:
    """Return the path to config.json inside *data_dir*."""
    if data_dir is None:
        from lodestone.paths import get_data_dir

        data_dir = get_data_dir()
    return data_dir / "config.json"


# ---------------------------------------------------------------------------
# Load / Save
# ---------------------------------------------------------------------------


def load_config(path: Path | None = None) -> LodestoneConfig:
    """Load configuration from disk, returning cached instance when possible.

    When the file does not exist the default configuration is returned.
    The cache is invalidated automatically when the file's mtime changes.
    """
    global _config, _config_path, _config_mtime

    if path is None:
        path = get_config_path()

    if _config is not None and _config_path == path:
        try:
            disk_mtime = path.stat().st_mtime
        except OSError:
            disk_mtime = 0.0
        if disk_mtime == _config_mtime:
            return _config
        logger.debug("Config file changed on disk (mtime %.3f → %.3f); reloading", _config_mtime, disk_mtime)

    if path.is_file():
        logger.debug("Loading config from %s", path)
        try:
            data: dict[str, Any] = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            logger.error("Failed to parse %s: %s", path, exc)
            raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc
        try:
            config = LodestoneConfig.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration in {path}: {exc}") from exc
    else:
        logger.info("Config file not found at %s; using defaults", path)
        config = LodestoneConfig()

    _config = config
    _config_path = path
    try:
        _config_mtime = path.stat().st_mtime
    except OSError:
        _config_mtime = 0.0
    return config


def save_config(config: LodestoneConfig, path: Path | None = None) -> None:
    """Persist *config* to disk as pretty-printed JSON and refresh the cache."""
    global _config, _config_path, _config_mtime

    if path is None:
        path = get_config_path()

    path.parent.mkdir(parents=True, exist_ok=True)

    payload = config.model_dump(mode="json")
    text = json.dumps(payload, indent=2, ensure_ascii=False) + "\n"
    path.write_text(text, encoding="utf-8")

    logger.debug("Config saved to %s", path)

    _config = config
    _config_path = path
    try:
        _config_mtime = path.stat().st_mtime
    except OSError:
        _config_mtime = 0.0


# ---------------------------------------------------------------------------
# Resolution helpers
# ---------------------------------------------------------------------------


def resolve_client_id(config: LodestoneConfig, *, required: bool = True) -> str:
    """Return the Microsoft application id, preferring ``LODESTONE_MS_CLIENT_ID``.

    With ``required=False`` an empty string is returned instead of raising.

    Raises:
        ConfigError: Neither the environment nor config.json provide one.
    """
    client_id = os.environ.get("LODESTONE_MS_CLIENT_ID") or config.auth.client_id
    if not client_id and required:
        raise ConfigError(
            "Microsoft client id is not configured. "
            "Set LODESTONE_MS_CLIENT_ID or auth.client_id in config.json."
        )
    return client_id
