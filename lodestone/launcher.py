from __future__ import annotations
# Lodestone - Launcher Identity Core
# Copyright (C) 2026 Lodestone Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of Lodestone, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Composition root for the launcher core.

``LauncherCore`` owns one instance of each component, routes finished
logins into the account store, and reloads the profile of an account that
becomes active.  The view layer talks to the components it exposes.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx

from lodestone import events as ev
from lodestone.accounts import AccountStore
from lodestone.auth.device_code import ClockFn, DeviceCodeAuthenticator, SleepFn
from lodestone.auth.models import Account, DeviceCodeSession
from lodestone.auth.provider import IdentityProvider, MicrosoftIdentityProvider
from lodestone.config.models import LodestoneConfig, load_config, resolve_client_id
from lodestone.events import EventBus
from lodestone.exceptions import AccountNotFoundError, LodestoneError
from lodestone.paths import get_data_dir
from lodestone.skins.cache import ResourceCacheResolver
from lodestone.skins.coordinator import SkinSyncCoordinator
from lodestone.skins.library import SkinLibrary
from lodestone.skins.profile_service import MinecraftProfileService, ProfileService
from lodestone.storage import JsonFileStore, KeyValueStore

logger = logging.getLogger("lodestone.launcher")


class LauncherCore:
    def __init__(
        self,
        *,
        config: LodestoneConfig,
        storage: KeyValueStore,
        skins_dir: Path,
        provider: IdentityProvider,
        profile_service: ProfileService,
        events: EventBus | None = None,
        sleep: SleepFn = asyncio.sleep,
        clock: ClockFn = time.monotonic,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.events = events or EventBus()
        self.accounts = AccountStore.load(storage, events=self.events)
        self.resolver = ResourceCacheResolver(
            avatar_base_url=config.profile.avatar_base_url,
            avatar_size=config.profile.avatar_size,
            skin_base_url=config.profile.skin_base_url,
            timeout=config.profile.request_timeout,
            transport=transport,
        )
        self.library = SkinLibrary(
            storage, skins_dir, timeout=config.profile.request_timeout, transport=transport,
        )
        self.authenticator = DeviceCodeAuthenticator(
            provider,
            events=self.events,
            timeout_seconds=config.auth.login_timeout,
            default_interval=config.auth.default_poll_interval,
            sleep=sleep,
            clock=clock,
        )
        self.skins = SkinSyncCoordinator(
            profile_service,
            self.accounts,
            self.resolver,
            self.library,
            events=self.events,
            config=config.sync,
            sleep=sleep,
        )
        self._background: set[asyncio.Task] = set()
        self._unsubscribe = [
            self.events.subscribe(ev.SESSION_ESTABLISHED, self._on_session_established),
            self.events.subscribe(ev.ACTIVE_ACCOUNT_CHANGED, self._on_active_changed),
        ]

    @classmethod
    def create(
        cls,
        data_dir: Path | None = None,
        config: LodestoneConfig | None = None,
    ) -> "LauncherCore":
        """Build a core backed by ``{data_dir}/state`` and the real services."""
        data_dir = data_dir or get_data_dir()
        config = config or load_config(data_dir / "config.json")
        provider = MicrosoftIdentityProvider(
            resolve_client_id(config, required=False),
            tenant=config.auth.tenant,
            scope=config.auth.scope,
            api_base_url=config.profile.api_base_url,
            timeout=config.profile.request_timeout,
        )
        service = MinecraftProfileService(
            api_base_url=config.profile.api_base_url,
            timeout=config.profile.request_timeout,
        )
        return cls(
            config=config,
            storage=JsonFileStore(data_dir / "state"),
            skins_dir=data_dir / "skins",
            provider=provider,
            profile_service=service,
        )

    @property
    def active_account(self) -> Account | None:
        return self.accounts.active_account

    # ── Intents ──────────────────────────────────────────────

    async def login(
        self,
        on_code: Callable[[DeviceCodeSession], None] | None = None,
    ) -> Account:
        """Run a full device-code login; the account is stored and made active.

        *on_code* receives the session so the user code can be displayed.
        """
        session = await self.authenticator.start_login()
        if on_code is not None:
            on_code(session)
        account = await self.authenticator.wait_for_completion()
        return self.accounts.get(account.username) or account

    def add_offline_account(self, username: str) -> Account:
        account = Account.offline(username)
        self.accounts.add_account(account)
        return account

    def logout(self, username: str) -> Account:
        """Drop the session of *username* but keep it as an offline account."""
        account = self.accounts.get(username)
        if account is None:
            raise AccountNotFoundError(f"Account '{username}' not found")
        offline = account.logged_out()
        self.accounts.update_account(offline)
        self.resolver.invalidate(account)
        return offline

    async def aclose(self) -> None:
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        await self.authenticator.aclose()
        await self.skins.aclose()
        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # ── Event routing ────────────────────────────────────────

    def _on_session_established(self, data: dict[str, Any]) -> None:
        account: Account = data["account"]
        try:
            if account.username in self.accounts:
                self.accounts.update_account(account)
            else:
                self.accounts.add_account(account)
            if self.accounts.active_username != account.username:
                self.accounts.switch_active(account.username)
        except LodestoneError as exc:
            logger.error("Could not store account '%s': %s", account.username, exc)
            self.events.emit_error(exc, context="Could not save account")

    def _on_active_changed(self, data: dict[str, Any]) -> None:
        account: Account | None = data.get("account")
        if account is None or not account.is_logged_in:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self._reload_profile(account), name=f"profile-load-{account.username}")
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _reload_profile(self, account: Account) -> None:
        try:
            await self.skins.load_profile(account)
        except LodestoneError as exc:
            self.events.emit_error(exc, context="Failed to load skin profile")
        await self.resolver.prefetch(account)
