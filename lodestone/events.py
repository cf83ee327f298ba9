from __future__ import annotations
# Lodestone - Launcher Identity Core
# Copyright (C) 2026 Lodestone Authors
# SPDX-License-Identifier: Apache-2.0

"""In-process change notifications.

Components emit events here; the view layer subscribes and renders.
A failing handler is logged and never breaks the emitting operation.
"""

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger("lodestone.events")

SESSION_ESTABLISHED = "session_established"
ACTIVE_ACCOUNT_CHANGED = "active_account_changed"
SKIN_PREVIEW_CHANGED = "skin_preview_changed"
LIBRARY_CHANGED = "library_changed"
ERROR = "error"

Handler = Callable[[dict[str, Any]], None]


class EventBus:
    """Fan-out of ``{"type": ..., "data": ...}`` style events to subscribers."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = {}

    def subscribe(self, event_type: str, handler: Handler) -> Callable[[], None]:
        """Register *handler* for *event_type*.  Returns an unsubscribe callable."""
        self._handlers.setdefault(event_type, []).append(handler)

        def _unsubscribe() -> None:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

        return _unsubscribe

    def emit(self, event_type: str, data: dict[str, Any]) -> None:
        for handler in list(self._handlers.get(event_type, [])):
            try:
                handler(data)
            except Exception:
                logger.exception("Event handler failed for %s", event_type)

    def emit_error(self, exc: BaseException, *, context: str = "") -> None:
        """Emit an ``error`` event carrying a user-displayable message."""
        message = f"{context}: {exc}" if context else str(exc)
        self.emit(ERROR, {"message": message, "error": exc, "kind": type(exc).__name__})
