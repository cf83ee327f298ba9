from __future__ import annotations
# Lodestone - Launcher Identity Core
# Copyright (C) 2026 Lodestone Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of Lodestone, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Skin synchronisation between local files, the profile service and the UI.

Applying a skin is optimistic:

1. the local file is shown at once (``OptimisticPreview``);
2. the upload runs in a background task; its failure is reported but the
   preview stays, since only the remote copy is behind;
3. after the upload is accepted, the profile is re-fetched once after a
   fixed delay, because the service publishes writes asynchronously;
4. the fetched profile replaces the optimistic preview
   (``AuthoritativePreview``).  A failed fetch keeps the optimistic preview.

Each apply/reset bumps a per-account generation.  A deferred refresh whose
generation is outdated, or whose account is no longer active, is dropped so
it cannot overwrite newer state.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Coroutine
from pathlib import Path
from typing import Any

from lodestone import events as ev
from lodestone.accounts import AccountStore
from lodestone.auth.models import Account
from lodestone.config.models import SyncConfig
from lodestone.events import EventBus
from lodestone.exceptions import (
    AuthRequiredError,
    LodestoneError,
    RefreshFailedError,
    UploadFailedError,
    ValidationError,
)
from lodestone.logging_config import bind_account
from lodestone.skins.cache import KIND_SKIN, ResourceCacheResolver
from lodestone.skins.library import SkinLibrary
from lodestone.skins.models import (
    AuthoritativePreview,
    LibraryItem,
    OptimisticPreview,
    PreviewState,
    Profile,
    SkinVariant,
)
from lodestone.skins.profile_service import ProfileService
from lodestone.time_utils import now_utc

logger = logging.getLogger("lodestone.skins.coordinator")

SleepFn = Callable[[float], Awaitable[None]]


def reconcile(
    current: PreviewState | None,
    profile: Profile,
    resolve_url: Callable[[str], str],
) -> PreviewState:
    """Return the preview state after an authoritative *profile* arrived.

    The profile always wins over an optimistic preview.  An authoritative
    preview for the same remote skin and variant is kept as is; otherwise
    *resolve_url* turns the remote skin URL into a display URL.
    """
    skin = profile.active_skin
    source_url = skin.url if skin else None
    variant = skin.variant if skin else SkinVariant.CLASSIC
    if (
        isinstance(current, AuthoritativePreview)
        and current.source_url == source_url
        and current.variant == variant
    ):
        return current
    return AuthoritativePreview(
        url=resolve_url(source_url) if source_url else None,
        variant=variant,
        source_url=source_url,
    )


class SkinSyncCoordinator:
    """Optimistic apply / deferred reconcile of each account's skin."""

    def __init__(
        self,
        service: ProfileService,
        accounts: AccountStore,
        resolver: ResourceCacheResolver,
        library: SkinLibrary,
        *,
        events: EventBus | None = None,
        config: SyncConfig | None = None,
        sleep: SleepFn = asyncio.sleep,
        token_clock: Callable[[], float] = time.time,
    ) -> None:
        self._service = service
        self._accounts = accounts
        self._resolver = resolver
        self._library = library
        self._events = events
        self._config = config or SyncConfig()
        self._sleep = sleep
        self._token_clock = token_clock
        self._previews: dict[str, PreviewState] = {}
        self._generations: dict[str, int] = {}
        # Cache-busting token for the default-skin URL, renewed after remote writes.
        self._fallback_tokens: dict[str, int] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._tasks: set[asyncio.Task] = set()
        self._last_token = 0

    # ── Queries ──────────────────────────────────────────────

    def preview(self, username: str) -> PreviewState | None:
        return self._previews.get(username)

    def display_url(self, account: Account | None) -> str:
        """URL the view should render for *account*'s skin right now."""
        if account is None:
            return self._resolver.resolve_display_url(None)
        state = self._previews.get(account.username)
        if state is not None and state.url:
            return state.url
        if account.username not in self._fallback_tokens:
            self._fallback_tokens[account.username] = self._next_token()
        return self._resolver.resolve_display_url(
            account, None, self._fallback_tokens[account.username], kind=KIND_SKIN,
        )

    def list_library(self) -> list[LibraryItem]:
        return self._library.list()

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    # ── Apply / reset ────────────────────────────────────────

    async def apply_new_resource(
        self,
        account: Account,
        local_file: Path | None,
        variant: SkinVariant | str = SkinVariant.CLASSIC,
    ) -> asyncio.Task | None:
        """Show *local_file* at once and upload it in the background.

        ``local_file=None`` (file picker cancelled) does nothing.

        Returns:
            The background upload/refresh task, or ``None`` if cancelled.

        Raises:
            AuthRequiredError: *account* is not logged in.
        """
        if local_file is None:
            logger.debug("Skin selection cancelled")
            return None
        self._require_login(account)
        return self._apply_file(
            account,
            Path(local_file),
            SkinVariant.parse(variant),
            delay=self._config.upload_refresh_delay,
        )

    async def apply_from_library(self, account: Account, item: LibraryItem) -> asyncio.Task:
        """Apply a saved library skin with the same optimistic contract."""
        self._require_login(account)
        path = self._library.path_for(item)
        if not path.is_file():
            raise ValidationError(f"Library file for '{item.name}' is missing")
        return self._apply_file(
            account,
            path,
            item.variant,
            delay=self._config.library_refresh_delay,
        )

    async def reset_resource(self, account: Account) -> asyncio.Task:
        """Reset the remote skin to the default and reconcile later."""
        self._require_login(account)
        generation = self._next_generation(account.username)
        current = self._previews.get(account.username)
        if current is not None and current.optimistic:
            del self._previews[account.username]
            self._emit_preview(account)
        return self._spawn(
            self._reset_and_reconcile(account, generation),
            name=f"skin-reset-{account.username}",
        )

    async def load_profile(self, account: Account) -> Profile:
        """Fetch the authoritative profile now and reconcile with it.

        Raises:
            AuthRequiredError: *account* is not logged in.
            RefreshFailedError: The profile service could not be reached.
        """
        self._require_login(account)
        generation = self._generations.get(account.username, 0)
        try:
            profile = await self._service.fetch_profile(account)
        except RefreshFailedError as exc:
            logger.warning("Profile load failed for %s: %s", account.username, exc)
            raise
        if self._generations.get(account.username, 0) != generation:
            logger.info("Dropping stale profile load for %s", account.username)
            return profile
        self._apply_profile(account, profile)
        return profile

    # ── Library ──────────────────────────────────────────────

    async def save_to_library(
        self,
        name: str,
        source: str | Path,
        variant: SkinVariant | str = SkinVariant.CLASSIC,
    ) -> LibraryItem:
        """Save a local file or remote skin URL under *name*.

        Raises:
            ValidationError: *name* is empty or *source* is unreadable.
            StorageFailedError: The library index could not be persisted.
        """
        item = await self._library.add(name, source, variant)
        self._emit(ev.LIBRARY_CHANGED, {"added": item})
        return item

    def delete_from_library(self, item_id: str) -> LibraryItem:
        item = self._library.delete(item_id)
        self._emit(ev.LIBRARY_CHANGED, {"removed": item})
        return item

    # ── Lifecycle ────────────────────────────────────────────

    async def aclose(self) -> None:
        """Cancel pending uploads and deferred refreshes."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # ── Internals ────────────────────────────────────────────

    def _apply_file(
        self,
        account: Account,
        path: Path,
        variant: SkinVariant,
        *,
        delay: float,
    ) -> asyncio.Task:
        generation = self._next_generation(account.username)
        self._previews[account.username] = OptimisticPreview(
            url=path.resolve().as_uri(),
            variant=variant,
            since=now_utc(),
        )
        self._emit_preview(account)
        return self._spawn(
            self._upload_and_reconcile(account, path, variant, generation, delay),
            name=f"skin-upload-{account.username}",
        )

    async def _upload_and_reconcile(
        self,
        account: Account,
        path: Path,
        variant: SkinVariant,
        generation: int,
        delay: float,
    ) -> bool:
        bind_account(account.username)
        async with self._get_lock(account.username):
            try:
                loop = asyncio.get_running_loop()
                data = await loop.run_in_executor(None, path.read_bytes)
                await self._service.upload_resource(account, data, variant)
            except OSError as exc:
                self._report(UploadFailedError(f"Could not read {path.name}: {exc}"), "Upload failed")
                return False
            except LodestoneError as exc:
                self._report(exc, "Upload failed")
                return False
        logger.info("Skin upload accepted; refreshing in %.1fs", delay)
        self._invalidate(account)
        await self._deferred_refresh(account, generation, delay)
        return True

    async def _reset_and_reconcile(self, account: Account, generation: int) -> bool:
        bind_account(account.username)
        async with self._get_lock(account.username):
            try:
                await self._service.reset_resource(account)
            except LodestoneError as exc:
                self._report(exc, "Reset failed")
                return False
        self._invalidate(account)
        await self._deferred_refresh(account, generation, self._config.reset_refresh_delay)
        return True

    async def _deferred_refresh(self, account: Account, generation: int, delay: float) -> None:
        await self._sleep(delay)
        if self._is_stale(account, generation):
            logger.info("Dropping stale skin refresh for %s", account.username)
            return
        try:
            profile = await self._service.fetch_profile(account)
        except LodestoneError as exc:
            # The optimistic preview stays; the user still sees their upload.
            self._report(exc, "Failed to load skin profile")
            return
        if self._is_stale(account, generation):
            logger.info("Dropping stale skin refresh for %s", account.username)
            return
        self._apply_profile(account, profile)

    def _apply_profile(self, account: Account, profile: Profile) -> None:
        current = self._previews.get(account.username)

        def _resolve(remote_url: str) -> str:
            self._resolver.invalidate(account, kind=KIND_SKIN)
            return self._resolver.resolve_display_url(
                account, remote_url, self._next_token(), kind=KIND_SKIN,
            )

        state = reconcile(current, profile, _resolve)
        if state is current:
            return
        self._previews[account.username] = state
        self._fallback_tokens.pop(account.username, None)
        if current is not None and current.optimistic:
            logger.info("Optimistic skin for %s replaced by profile state", account.username)
        self._emit_preview(account)

    def _invalidate(self, account: Account) -> None:
        self._resolver.invalidate(account)
        self._fallback_tokens.pop(account.username, None)

    def _is_stale(self, account: Account, generation: int) -> bool:
        return (
            self._generations.get(account.username) != generation
            or self._accounts.active_username != account.username
        )

    def _require_login(self, account: Account | None) -> None:
        if account is None or not account.is_logged_in:
            raise AuthRequiredError(
                "You must be logged in with a Microsoft account to change skins"
            )

    def _next_generation(self, username: str) -> int:
        generation = self._generations.get(username, 0) + 1
        self._generations[username] = generation
        return generation

    def _next_token(self) -> int:
        now = int(self._token_clock() * 1000)
        self._last_token = max(now, self._last_token + 1)
        return self._last_token

    def _get_lock(self, username: str) -> asyncio.Lock:
        if username not in self._locks:
            self._locks[username] = asyncio.Lock()
        return self._locks[username]

    def _spawn(self, coro: Coroutine[Any, Any, bool], *, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _report(self, exc: Exception, context: str) -> None:
        logger.warning("%s: %s", context, exc)
        if self._events is not None:
            self._events.emit_error(exc, context=context)

    def _emit_preview(self, account: Account) -> None:
        state = self._previews.get(account.username)
        self._emit(ev.SKIN_PREVIEW_CHANGED, {
            "username": account.username,
            "url": self.display_url(account),
            "variant": (state.variant if state else SkinVariant.CLASSIC).value,
            "optimistic": bool(state and state.optimistic),
        })

    def _emit(self, event_type: str, data: dict[str, Any]) -> None:
        if self._events is not None:
            self._events.emit(event_type, data)
