from __future__ import annotations
# Lodestone - Launcher Identity Core
# Copyright (C) 2026 Lodestone Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of Lodestone, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Display-URL resolution for account skins and avatar heads.

Fallback chain for a ``(uuid, kind)`` key:

1. no logged-in identity → placeholder
2. cached local copy → cached URI (no network)
3. key known to fail remotely → placeholder (no network)
4. remote URL with a ``t=<token>`` cache-busting parameter

A load failure reported for a URL issued in step 4 marks the key known-bad
for the rest of the process, until :meth:`ResourceCacheResolver.invalidate`
is called for it (typically after an upload or a successful profile reload).
The resolver is the only writer of its cache and known-bad set.
"""

import base64
import logging
from typing import NamedTuple

import httpx

from lodestone.auth.models import Account

logger = logging.getLogger("lodestone.skins.cache")

# 8x8 Steve face, shown whenever no remote avatar can be used.
STEVE_HEAD_DATA = (
    "data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAAgAAAAICAIAAABLbSncAAAARklEQVQI12NgoAbghLD+I4kwBqOjo+O/"
    "f/8YGBj+MzD8Z2D4z8Dwnwmq7P9/BoYL5y8g0/8hHP7/x0b/Y2D4D5b5/58ZAME2EVcxlvGVAAAAAElFTkSuQmCC"
)

KIND_HEAD = "head"
KIND_SKIN = "skin"


class ResourceKey(NamedTuple):
    identity: str
    kind: str = KIND_HEAD


class ResourceCacheResolver:
    """Resolves display URLs and remembers cached and known-bad resources."""

    def __init__(
        self,
        *,
        placeholder: str = STEVE_HEAD_DATA,
        avatar_base_url: str = "https://minotar.net/helm",
        avatar_size: int = 64,
        skin_base_url: str = "https://minotar.net/skin",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.placeholder = placeholder
        self._avatar_base_url = avatar_base_url.rstrip("/")
        self._avatar_size = avatar_size
        self._skin_base_url = skin_base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._cache: dict[ResourceKey, str] = {}
        self._known_bad: set[ResourceKey] = set()
        self._issued: dict[ResourceKey, set[str]] = {}

    # ── Keys ─────────────────────────────────────────────────

    @staticmethod
    def key_for(account: Account | None, kind: str = KIND_HEAD) -> ResourceKey | None:
        """Return the cache key for *account*, or ``None`` without a logged-in identity."""
        if account is None or not account.is_logged_in or not account.uuid:
            return None
        return ResourceKey(account.uuid, kind)

    # ── Resolution ───────────────────────────────────────────

    def resolve_display_url(
        self,
        account: Account | None,
        remote_base_url: str | None = None,
        cache_bust: str | int | None = None,
        *,
        kind: str = KIND_HEAD,
    ) -> str:
        key = self.key_for(account, kind)
        if key is None:
            return self.placeholder
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        if key in self._known_bad:
            return self.placeholder
        url = self._remote_url(key, remote_base_url, cache_bust)
        self._issued.setdefault(key, set()).add(url)
        return url

    def _remote_url(
        self,
        key: ResourceKey,
        remote_base_url: str | None,
        cache_bust: str | int | None,
    ) -> str:
        clean_id = key.identity.replace("-", "")
        if remote_base_url:
            url = httpx.URL(remote_base_url)
        elif key.kind == KIND_SKIN:
            url = httpx.URL(f"{self._skin_base_url}/{clean_id}")
        else:
            url = httpx.URL(f"{self._avatar_base_url}/{clean_id}/{self._avatar_size}.png")
        if cache_bust is not None:
            url = url.copy_merge_params({"t": str(cache_bust)})
        return str(url)

    def report_load_failure(self, account: Account | None, url: str, *, kind: str = KIND_HEAD) -> bool:
        """Record that *url* failed to load.  Returns True if the key is now known-bad.

        Only URLs this resolver issued for the key count; failures of cached
        or placeholder URIs are ignored.
        """
        key = self.key_for(account, kind)
        if key is None or url not in self._issued.get(key, set()):
            return False
        self._known_bad.add(key)
        self._issued.pop(key, None)
        logger.info("Marked %s/%s as known-bad after load failure", key.identity, key.kind)
        return True

    # ── Cache entries ────────────────────────────────────────

    def store(self, account: Account | None, uri: str, *, kind: str = KIND_HEAD) -> None:
        """Register a locally held copy (data: or file: URI) for *account*."""
        key = self.key_for(account, kind)
        if key is None:
            return
        self._cache[key] = uri
        self._known_bad.discard(key)

    def cached(self, account: Account | None, *, kind: str = KIND_HEAD) -> str | None:
        key = self.key_for(account, kind)
        return self._cache.get(key) if key else None

    def is_known_bad(self, account: Account | None, *, kind: str = KIND_HEAD) -> bool:
        key = self.key_for(account, kind)
        return key is not None and key in self._known_bad

    async def prefetch(
        self,
        account: Account | None,
        *,
        kind: str = KIND_HEAD,
        remote_base_url: str | None = None,
    ) -> str | None:
        """Download the remote resource once and cache it as a ``data:`` URI.

        Returns the cached URI, or ``None`` when there is nothing to fetch or
        the download failed (the key is then known-bad).
        """
        key = self.key_for(account, kind)
        if key is None:
            return None
        if key in self._cache:
            return self._cache[key]
        if key in self._known_bad:
            return None

        url = self._remote_url(key, remote_base_url, None)
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.get(url)
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            self._known_bad.add(key)
            logger.warning("Prefetch of %s failed, using placeholder: %s", url, exc)
            return None

        content_type = resp.headers.get("content-type", "image/png").split(";")[0]
        encoded = base64.b64encode(resp.content).decode("ascii")
        uri = f"data:{content_type};base64,{encoded}"
        self._cache[key] = uri
        logger.debug("Cached %s/%s (%d bytes)", key.identity, key.kind, len(resp.content))
        return uri

    # ── Invalidation ─────────────────────────────────────────

    def invalidate(self, account: Account | str | None, *, kind: str | None = None) -> None:
        """Clear cache entry and known-bad mark for *account* (all kinds by default).

        *account* may be an ``Account`` or a bare uuid.  Idempotent.
        """
        identity = account.uuid if isinstance(account, Account) else account
        if not identity:
            return
        for mapping in (self._cache, self._issued):
            for key in [k for k in mapping if k.identity == identity and kind in (None, k.kind)]:
                del mapping[key]
        self._known_bad = {
            k for k in self._known_bad
            if not (k.identity == identity and kind in (None, k.kind))
        }

    def clear(self) -> None:
        self._cache.clear()
        self._known_bad.clear()
        self._issued.clear()
