# Lodestone - Launcher Identity Core
# Copyright (C) 2026 Lodestone Authors
# SPDX-License-Identifier: Apache-2.0

"""Shared helpers for CLI commands that drive a ``LauncherCore``."""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, NoReturn, TypeVar

if TYPE_CHECKING:
    from lodestone.auth.models import Account
    from lodestone.launcher import LauncherCore

T = TypeVar("T")


def fail(message: str) -> NoReturn:
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def open_core() -> LauncherCore:
    from lodestone.exceptions import LodestoneError
    from lodestone.launcher import LauncherCore

    try:
        return LauncherCore.create()
    except LodestoneError as e:
        fail(str(e))


def run_with_core(fn: Callable[[LauncherCore], Awaitable[T]]) -> T:
    """Run *fn* against a fresh core inside an event loop, closing it afterwards.

    Domain errors are printed and turn into exit status 1.
    """
    from lodestone.exceptions import LodestoneError

    async def _main() -> T:
        core = open_core()
        try:
            return await fn(core)
        finally:
            await core.aclose()

    try:
        return asyncio.run(_main())
    except LodestoneError as e:
        fail(str(e))


def require_active(core: LauncherCore) -> Account:
    account = core.active_account
    if account is None:
        fail("No active account. Use 'lodestone login' or 'lodestone accounts switch'.")
    return account


def describe_account(account: Account, *, active: bool = False) -> str:
    marker = "*" if active else " "
    uuid = account.uuid or "-"
    return f"{marker} {account.username:<20} {account.account_type:<10} {uuid}"
