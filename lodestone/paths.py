# Lodestone - Launcher Identity Core
# Copyright (C) 2026 Lodestone Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of Lodestone, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Centralized path resolution for Lodestone.

All modules import directory paths from here instead of computing them ad-hoc.
Runtime data directory can be overridden via LODESTONE_DATA_DIR environment variable.
"""

from __future__ import annotations

import os
from pathlib import Path

# Default runtime data directory
_DEFAULT_DATA_DIR = Path.home() / ".lodestone"


def get_data_dir() -> Path:
    """Return the runtime data directory, respecting LODESTONE_DATA_DIR env var."""
    env_val = os.environ.get("LODESTONE_DATA_DIR")
    if env_val:
        return Path(env_val).expanduser().resolve()
    return _DEFAULT_DATA_DIR


def get_state_dir() -> Path:
    return get_data_dir() / "state"


def get_skins_dir() -> Path:
    """Return the directory holding skin library PNG files."""
    return get_data_dir() / "skins"


def get_log_dir() -> Path:
    return get_data_dir() / "logs"
