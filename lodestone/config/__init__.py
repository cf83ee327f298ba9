# Lodestone - Launcher Identity Core
# Copyright (C) 2026 Lodestone Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from lodestone.config.models import (
    AuthConfig,
    LodestoneConfig,
    ProfileConfig,
    SyncConfig,
    SystemConfig,
    get_config_path,
    invalidate_cache,
    load_config,
    resolve_client_id,
    save_config,
)
