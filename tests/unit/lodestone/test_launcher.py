"""Unit tests for lodestone.launcher.LauncherCore wiring."""

# Lodestone - Launcher Identity Core
# Copyright (C) 2026 Lodestone Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from lodestone import events as ev
from lodestone.auth.models import Account
from lodestone.config.models import LodestoneConfig
from lodestone.exceptions import (
    AccountNotFoundError,
    AuthRequiredError,
    ProviderDeniedError,
    ProviderPendingError,
)
from lodestone.launcher import LauncherCore
from lodestone.skins.cache import STEVE_HEAD_DATA
from tests.helpers.mocks import (
    MemoryStore,
    ScriptedProfileService,
    ScriptedProvider,
    VirtualClock,
    make_account,
    png_transport,
    refresh_failure,
)


def _core(tmp_path: Path, provider: ScriptedProvider, service: ScriptedProfileService | None = None,
          storage: MemoryStore | None = None) -> LauncherCore:
    clock = VirtualClock()
    return LauncherCore(
        config=LodestoneConfig(),
        storage=storage or MemoryStore(),
        skins_dir=tmp_path / "skins",
        provider=provider,
        profile_service=service or ScriptedProfileService(),
        sleep=clock.sleep,
        clock=clock,
        transport=png_transport(),
    )


async def _drain() -> None:
    for _ in range(20):
        await asyncio.sleep(0)


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_stores_and_activates_account(self, tmp_path: Path) -> None:
        service = ScriptedProfileService()
        core = _core(tmp_path, ScriptedProvider([ProviderPendingError("pending"), make_account()]), service)
        shown: list[str] = []

        account = await core.login(on_code=lambda session: shown.append(session.user_code))
        await _drain()

        assert shown == ["ABCD-EFGH"]
        assert account.username == "Steve"
        assert core.active_account == account
        assert service.fetches == 1
        assert core.skins.preview("Steve") is not None
        await core.aclose()

    @pytest.mark.asyncio
    async def test_login_upgrades_existing_offline_account(self, tmp_path: Path) -> None:
        core = _core(tmp_path, ScriptedProvider([make_account()]))
        core.add_offline_account("Steve")
        core.add_offline_account("Notch")

        await core.login()

        assert len(core.accounts) == 2
        assert core.accounts.get("Steve").is_logged_in is True
        assert core.accounts.active_username == "Steve"
        await core.aclose()

    @pytest.mark.asyncio
    async def test_login_switches_from_other_account(self, tmp_path: Path) -> None:
        core = _core(tmp_path, ScriptedProvider([make_account()]))
        core.add_offline_account("Notch")
        changes = MagicMock()
        core.events.subscribe(ev.ACTIVE_ACCOUNT_CHANGED, changes)

        await core.login()

        assert core.accounts.active_username == "Steve"
        assert changes.call_args.args[0]["previous"] == "Notch"
        await core.aclose()

    @pytest.mark.asyncio
    async def test_denied_login_changes_nothing(self, tmp_path: Path) -> None:
        core = _core(tmp_path, ScriptedProvider([ProviderDeniedError("declined")]))

        with pytest.raises(ProviderDeniedError):
            await core.login()

        assert len(core.accounts) == 0
        await core.aclose()

    @pytest.mark.asyncio
    async def test_storage_failure_on_login_is_reported(self, tmp_path: Path) -> None:
        storage = MemoryStore()
        core = _core(tmp_path, ScriptedProvider([make_account()]), storage=storage)
        errors = MagicMock()
        core.events.subscribe(ev.ERROR, errors)
        storage.fail_persist = True

        await core.login()

        assert len(core.accounts) == 0
        assert errors.call_args.args[0]["kind"] == "StorageFailedError"
        await core.aclose()

    @pytest.mark.asyncio
    async def test_profile_load_failure_is_reported(self, tmp_path: Path) -> None:
        service = ScriptedProfileService()
        service.fetch_error = refresh_failure()
        core = _core(tmp_path, ScriptedProvider([make_account()]), service)
        errors = MagicMock()
        core.events.subscribe(ev.ERROR, errors)

        await core.login()
        await _drain()

        assert errors.call_args.args[0]["message"].startswith("Failed to load skin profile")
        await core.aclose()

    @pytest.mark.asyncio
    async def test_auth_error_during_profile_load_is_reported(self, tmp_path: Path) -> None:
        service = ScriptedProfileService()
        service.fetch_error = AuthRequiredError("Account 'Steve' is not logged in")
        core = _core(tmp_path, ScriptedProvider([make_account()]), service)
        errors = MagicMock()
        core.events.subscribe(ev.ERROR, errors)

        await core.login()
        await _drain()

        assert errors.call_args.args[0]["kind"] == "AuthRequiredError"
        await core.aclose()

    @pytest.mark.asyncio
    async def test_login_prefetches_head(self, tmp_path: Path) -> None:
        core = _core(tmp_path, ScriptedProvider([make_account()]))

        account = await core.login()
        await _drain()

        assert core.resolver.cached(account).startswith("data:image/png;base64,")
        assert core.resolver.resolve_display_url(account) == core.resolver.cached(account)
        await core.aclose()


class TestAccountsAndLogout:
    def test_offline_account_needs_no_loop(self, tmp_path: Path) -> None:
        core = _core(tmp_path, ScriptedProvider())
        account = core.add_offline_account("Notch")
        assert core.active_account == account
        assert core.skins.display_url(account) == STEVE_HEAD_DATA

    @pytest.mark.asyncio
    async def test_logout_keeps_offline_copy(self, tmp_path: Path) -> None:
        core = _core(tmp_path, ScriptedProvider([make_account()]))
        await core.login()
        core.resolver.store(core.active_account, "data:image/png;base64,AAAA")

        offline = core.logout("Steve")

        assert offline == Account.offline("Steve")
        assert core.accounts.get("Steve").session_token is None
        assert core.accounts.active_username == "Steve"
        assert core.resolver.cached(make_account()) is None
        await core.aclose()

    def test_logout_unknown(self, tmp_path: Path) -> None:
        core = _core(tmp_path, ScriptedProvider())
        with pytest.raises(AccountNotFoundError):
            core.logout("Ghost")


class TestCreate:
    def test_create_uses_data_dir(self, data_dir: Path) -> None:
        core = LauncherCore.create(data_dir)
        core.add_offline_account("Notch")

        stored = json.loads((data_dir / "state" / "accounts.json").read_text(encoding="utf-8"))
        assert stored["active"] == "Notch"
        assert core.config.auth.client_id == "test-client-id"

    def test_create_without_client_id(self, tmp_path: Path) -> None:
        core = LauncherCore.create(tmp_path, config=LodestoneConfig())
        assert len(core.accounts) == 0

    def test_create_restores_state(self, data_dir: Path) -> None:
        LauncherCore.create(data_dir).add_offline_account("Notch")
        restored = LauncherCore.create(data_dir)
        assert restored.accounts.active_username == "Notch"
