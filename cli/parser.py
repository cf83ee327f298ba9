# Lodestone - Launcher Identity Core
# Copyright (C) 2026 Lodestone Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import argparse
import os

VARIANTS = ["classic", "slim"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lodestone",
        description="Lodestone - launcher accounts and skins",
    )
    parser.add_argument(
        "--data-dir",
        default=None,
        help="Override runtime data directory (default: ~/.lodestone or LODESTONE_DATA_DIR)",
    )
    sub = parser.add_subparsers(dest="command")

    # ── Login ─────────────────────────────────────────────
    p_login = sub.add_parser("login", help="Sign in with a Microsoft account")
    p_login.set_defaults(func=_lazy_login)

    # ── Accounts ──────────────────────────────────────────
    p_accounts = sub.add_parser("accounts", help="Manage stored accounts")
    accounts_sub = p_accounts.add_subparsers(dest="accounts_command")

    # accounts list
    p_acc_list = accounts_sub.add_parser("list", help="List accounts")
    p_acc_list.set_defaults(func=_lazy_accounts_list)

    # accounts add-offline
    p_acc_add = accounts_sub.add_parser("add-offline", help="Add an offline account")
    p_acc_add.add_argument("username", help="Player name")
    p_acc_add.set_defaults(func=_lazy_accounts_add_offline)

    # accounts switch
    p_acc_switch = accounts_sub.add_parser("switch", help="Make an account active")
    p_acc_switch.add_argument("username", help="Account to activate")
    p_acc_switch.set_defaults(func=_lazy_accounts_switch)

    # accounts remove
    p_acc_remove = accounts_sub.add_parser("remove", help="Remove an account")
    p_acc_remove.add_argument("username", help="Account to remove")
    p_acc_remove.set_defaults(func=_lazy_accounts_remove)

    # accounts logout
    p_acc_logout = accounts_sub.add_parser(
        "logout", help="Forget an account's session, keep it as offline",
    )
    p_acc_logout.add_argument("username", help="Account to log out")
    p_acc_logout.set_defaults(func=_lazy_accounts_logout)

    # ── Skin ──────────────────────────────────────────────
    p_skin = sub.add_parser("skin", help="Show and change the active account's skin")
    skin_sub = p_skin.add_subparsers(dest="skin_command")

    # skin show
    p_skin_show = skin_sub.add_parser("show", help="Show the current skin")
    p_skin_show.set_defaults(func=_lazy_skin_show)

    # skin apply
    p_skin_apply = skin_sub.add_parser("apply", help="Upload a PNG skin")
    p_skin_apply.add_argument("file", help="Path to a 64x64 or 64x32 PNG")
    p_skin_apply.add_argument(
        "--variant", choices=VARIANTS, default="classic",
        help="Arm model (default: classic)",
    )
    p_skin_apply.set_defaults(func=_lazy_skin_apply)

    # skin reset
    p_skin_reset = skin_sub.add_parser("reset", help="Reset to the default skin")
    p_skin_reset.set_defaults(func=_lazy_skin_reset)

    # skin library
    p_library = skin_sub.add_parser("library", help="Local skin library")
    library_sub = p_library.add_subparsers(dest="library_command")

    p_lib_list = library_sub.add_parser("list", help="List saved skins")
    p_lib_list.set_defaults(func=_lazy_library_list)

    p_lib_save = library_sub.add_parser("save", help="Save a skin to the library")
    p_lib_save.add_argument("name", help="Display name")
    p_lib_save.add_argument(
        "source", nargs="?", default=None,
        help="PNG path or URL (default: the active account's current skin)",
    )
    p_lib_save.add_argument("--variant", choices=VARIANTS, default=None, help="Arm model")
    p_lib_save.set_defaults(func=_lazy_library_save)

    p_lib_apply = library_sub.add_parser("apply", help="Apply a saved skin")
    p_lib_apply.add_argument("item_id", help="Library item id")
    p_lib_apply.set_defaults(func=_lazy_library_apply)

    p_lib_delete = library_sub.add_parser("delete", help="Delete a saved skin")
    p_lib_delete.add_argument("item_id", help="Library item id")
    p_lib_delete.set_defaults(func=_lazy_library_delete)

    return parser


def cli_main(argv: list[str] | None = None) -> None:
    from dotenv import load_dotenv

    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)

    # Apply --data-dir override before any command
    if args.data_dir:
        os.environ["LODESTONE_DATA_DIR"] = args.data_dir

    from lodestone.logging_config import setup_logging
    from lodestone.paths import get_log_dir

    setup_logging(level=_resolve_log_level(), log_dir=get_log_dir())

    if hasattr(args, "func"):
        args.func(args)
    else:
        parser.print_help()


def _resolve_log_level() -> str:
    """LODESTONE_LOG_LEVEL, else ``system.log_level`` from config.json."""
    level = os.environ.get("LODESTONE_LOG_LEVEL")
    if level:
        return level

    from lodestone.config import load_config
    from lodestone.exceptions import ConfigError

    try:
        return load_config().system.log_level
    except ConfigError:
        # Reported by the command itself when it loads the config.
        return "WARNING"


# ── Lazy import wrappers ──────────────────────────────────


def _lazy_login(args: argparse.Namespace) -> None:
    from cli.commands.accounts import cmd_login

    cmd_login(args)


def _lazy_accounts_list(args: argparse.Namespace) -> None:
    from cli.commands.accounts import cmd_accounts_list

    cmd_accounts_list(args)


def _lazy_accounts_add_offline(args: argparse.Namespace) -> None:
    from cli.commands.accounts import cmd_accounts_add_offline

    cmd_accounts_add_offline(args)


def _lazy_accounts_switch(args: argparse.Namespace) -> None:
    from cli.commands.accounts import cmd_accounts_switch

    cmd_accounts_switch(args)


def _lazy_accounts_remove(args: argparse.Namespace) -> None:
    from cli.commands.accounts import cmd_accounts_remove

    cmd_accounts_remove(args)


def _lazy_accounts_logout(args: argparse.Namespace) -> None:
    from cli.commands.accounts import cmd_accounts_logout

    cmd_accounts_logout(args)


def _lazy_skin_show(args: argparse.Namespace) -> None:
    from cli.commands.skins import cmd_skin_show

    cmd_skin_show(args)


def _lazy_skin_apply(args: argparse.Namespace) -> None:
    from cli.commands.skins import cmd_skin_apply

    cmd_skin_apply(args)


def _lazy_skin_reset(args: argparse.Namespace) -> None:
    from cli.commands.skins import cmd_skin_reset

    cmd_skin_reset(args)


def _lazy_library_list(args: argparse.Namespace) -> None:
    from cli.commands.skins import cmd_library_list

    cmd_library_list(args)


def _lazy_library_save(args: argparse.Namespace) -> None:
    from cli.commands.skins import cmd_library_save

    cmd_library_save(args)


def _lazy_library_apply(args: argparse.Namespace) -> None:
    from cli.commands.skins import cmd_library_apply

    cmd_library_apply(args)


def _lazy_library_delete(args: argparse.Namespace) -> None:
    from cli.commands.skins import cmd_library_delete

    cmd_library_delete(args)
