from __future__ import annotations
# Lodestone - Launcher Identity Core
# Copyright (C) 2026 Lodestone Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of Lodestone, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Key-value storage used by the account store and the skin library.

Callers treat values as opaque JSON-compatible data.  Each key is written
all-or-nothing: the value goes to a temporary file which then replaces the
previous one.
"""

import json
import logging
import os
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from lodestone.exceptions import StorageFailedError

logger = logging.getLogger("lodestone.storage")

_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyValueStore(ABC):
    """Abstract key-value storage collaborator."""

    @abstractmethod
    def persist(self, key: str, value: Any) -> None:
        """Store *value* under *key*.  Raises ``StorageFailedError``."""

    @abstractmethod
    def load(self, key: str) -> Any | None:
        """Return the value stored under *key*, or ``None`` if absent."""


class JsonFileStore(KeyValueStore):
    """One ``<key>.json`` document per key inside *root*."""

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, key: str) -> Path:
        if not _KEY_RE.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._root / f"{key}.json"

    def persist(self, key: str, value: Any) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(
                json.dumps(value, indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
            os.replace(tmp, path)
        except (OSError, TypeError, ValueError) as exc:
            tmp.unlink(missing_ok=True)
            raise StorageFailedError(f"Failed to persist '{key}': {exc}") from exc
        try:
            path.chmod(0o600)
        except OSError:
            pass
        logger.debug("Persisted %s to %s", key, path)

    def load(self, key: str) -> Any | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageFailedError(f"Failed to load '{key}': {exc}") from exc
