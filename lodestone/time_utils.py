from __future__ import annotations
# Lodestone - Launcher Identity Core
# Copyright (C) 2026 Lodestone Authors
# SPDX-License-Identifier: Apache-2.0

"""Timezone-aware datetime helpers.

All timestamps stored or compared by Lodestone (device-code expiry,
optimistic preview age, library item creation) are UTC-aware.
"""

from datetime import datetime, timedelta, timezone


def now_utc() -> datetime:
    """Return current time as timezone-aware UTC datetime."""
    return datetime.now(tz=timezone.utc)


def ensure_aware(dt: datetime) -> datetime:
    """Ensure *dt* is timezone-aware.  Naive datetimes are assumed UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def expires_after(seconds: float, *, start: datetime | None = None) -> datetime:
    """Return the aware datetime *seconds* after *start* (default: now)."""
    return ensure_aware(start or now_utc()) + timedelta(seconds=seconds)
