# Lodestone - Launcher Identity Core
# Copyright (C) 2026 Lodestone Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import argparse

from cli._runtime import describe_account, fail, open_core, run_with_core


# ── Login ─────────────────────────────────────────────────

def cmd_login(args: argparse.Namespace) -> None:
    """Sign in with a Microsoft account through the device-code flow."""

    def _show_code(session) -> None:
        print(f"To sign in, open {session.verification_uri} and enter the code {session.user_code}")
        print("Waiting for authorization (Ctrl+C to cancel)...")

    account = run_with_core(lambda core: core.login(on_code=_show_code))
    print(f"Logged in as {account.username} ({account.uuid})")


# ── Accounts List ─────────────────────────────────────────

def cmd_accounts_list(args: argparse.Namespace) -> None:
    """List stored accounts; the active one is marked with ``*``."""
    core = open_core()
    accounts = core.accounts.list()
    if not accounts:
        print("No accounts. Use 'lodestone login' or 'lodestone accounts add-offline NAME'.")
        return
    for account in accounts:
        print(describe_account(account, active=account.username == core.accounts.active_username))


# ── Accounts Mutations ────────────────────────────────────

def cmd_accounts_add_offline(args: argparse.Namespace) -> None:
    """Add an offline account."""
    from lodestone.exceptions import LodestoneError

    core = open_core()
    try:
        account = core.add_offline_account(args.username)
    except LodestoneError as e:
        fail(str(e))
    print(f"Added offline account '{account.username}'")


def cmd_accounts_switch(args: argparse.Namespace) -> None:
    """Make another stored account active."""
    from lodestone.exceptions import LodestoneError

    core = open_core()
    try:
        core.accounts.switch_active(args.username)
    except LodestoneError as e:
        fail(str(e))
    print(f"Active account: {args.username}")


def cmd_accounts_remove(args: argparse.Namespace) -> None:
    """Remove a stored account."""
    from lodestone.exceptions import LodestoneError

    core = open_core()
    try:
        core.accounts.remove_account(args.username)
    except LodestoneError as e:
        fail(str(e))
    print(f"Removed account '{args.username}'")
    if core.accounts.active_username is None and len(core.accounts):
        print("No account is active now. Use 'lodestone accounts switch NAME'.")


def cmd_accounts_logout(args: argparse.Namespace) -> None:
    """Forget the session of an account but keep it as offline."""
    from lodestone.exceptions import LodestoneError

    core = open_core()
    try:
        core.logout(args.username)
    except LodestoneError as e:
        fail(str(e))
    print(f"Logged out '{args.username}'")
