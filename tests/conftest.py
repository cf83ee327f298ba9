# Lodestone - Launcher Identity Core
# Copyright (C) 2026 Lodestone Authors
# SPDX-License-Identifier: Apache-2.0
"""Global test fixtures for Lodestone.

Provides filesystem isolation and config cache management for all
test modules.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from tests.helpers.filesystem import create_test_data_dir


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's real client id and log level out of tests."""
    monkeypatch.delenv("LODESTONE_MS_CLIENT_ID", raising=False)
    monkeypatch.delenv("LODESTONE_LOG_LEVEL", raising=False)


@pytest.fixture
def data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create an isolated Lodestone runtime data directory.

    - Redirects ``LODESTONE_DATA_DIR`` to a temp directory
    - Invalidates the config cache before and after the test
    """
    from lodestone.config import invalidate_cache

    d = create_test_data_dir(tmp_path)
    monkeypatch.setenv("LODESTONE_DATA_DIR", str(d))
    invalidate_cache()

    yield d

    invalidate_cache()
