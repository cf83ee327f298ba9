# Lodestone - Launcher Identity Core
# Copyright (C) 2026 Lodestone Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from cli._runtime import fail, open_core, require_active, run_with_core


def _print_errors(core) -> None:
    from lodestone import events as ev

    core.events.subscribe(ev.ERROR, lambda data: print(f"Error: {data['message']}", file=sys.stderr))


async def _finish_sync(core, task) -> None:
    """Wait for the background upload and deferred refresh, then report."""
    print(f"Preview: {core.skins.display_url(core.active_account)}")
    print("Uploading; the profile is refreshed once the service has published it...")
    ok = await task
    state = core.skins.preview(core.active_account.username)
    if not ok:
        fail("Skin change was not applied remotely; local preview kept")
    if state is not None and state.optimistic:
        print("Uploaded, but the profile could not be refreshed yet")
        return
    print(f"Current skin: {core.skins.display_url(core.active_account)}")


# ── Skin Show ─────────────────────────────────────────────

def cmd_skin_show(args: argparse.Namespace) -> None:
    """Show the active account's current skin."""

    async def _show(core) -> None:
        account = require_active(core)
        if not account.is_logged_in:
            print(f"{account.username} is an offline account; showing the default skin")
            print(core.skins.display_url(account))
            return
        profile = await core.skins.load_profile(account)
        skin = profile.active_skin
        variant = skin.variant.value if skin else "classic"
        print(f"{profile.name} ({variant})")
        print(core.skins.display_url(account))

    run_with_core(_show)


# ── Skin Apply / Reset ────────────────────────────────────

def cmd_skin_apply(args: argparse.Namespace) -> None:
    """Upload a local PNG as the active account's skin."""
    path = Path(args.file).expanduser()
    if not path.is_file():
        fail(f"File not found: {path}")

    async def _apply(core) -> None:
        _print_errors(core)
        account = require_active(core)
        task = await core.skins.apply_new_resource(account, path, args.variant)
        await _finish_sync(core, task)

    run_with_core(_apply)


def cmd_skin_reset(args: argparse.Namespace) -> None:
    """Reset the active account's skin to the default."""

    async def _reset(core) -> None:
        _print_errors(core)
        account = require_active(core)
        task = await core.skins.reset_resource(account)
        if not await task:
            fail("Skin reset failed")
        print("Skin reset to default")

    run_with_core(_reset)


# ── Skin Library ──────────────────────────────────────────

def cmd_library_list(args: argparse.Namespace) -> None:
    """List saved library skins."""
    core = open_core()
    items = core.skins.list_library()
    if not items:
        print("Skin library is empty")
        return
    for item in items:
        print(f"{item.id}  {item.name:<24} {item.variant.value:<8} {item.created_at:%Y-%m-%d %H:%M}")


def cmd_library_save(args: argparse.Namespace) -> None:
    """Save a local file, a URL, or the current skin to the library."""

    async def _save(core) -> None:
        source = args.source
        variant = args.variant
        if source is None:
            account = require_active(core)
            profile = await core.skins.load_profile(account)
            skin = profile.active_skin
            if skin is None:
                fail("The active account has no custom skin to save")
            source = skin.url
            variant = variant or skin.variant
        item = await core.skins.save_to_library(args.name, source, variant)
        print(f"Saved '{item.name}' as {item.id}")

    run_with_core(_save)


def cmd_library_apply(args: argparse.Namespace) -> None:
    """Apply a library skin to the active account."""

    async def _apply(core) -> None:
        _print_errors(core)
        account = require_active(core)
        item = core.library.get(args.item_id)
        task = await core.skins.apply_from_library(account, item)
        await _finish_sync(core, task)

    run_with_core(_apply)


def cmd_library_delete(args: argparse.Namespace) -> None:
    """Delete a library skin."""
    from lodestone.exceptions import LodestoneError

    core = open_core()
    try:
        item = core.skins.delete_from_library(args.item_id)
    except LodestoneError as e:
        fail(str(e))
    print(f"Deleted '{item.name}'")
