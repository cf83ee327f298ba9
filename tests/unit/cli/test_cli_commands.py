"""Unit tests for the lodestone CLI (parser and offline commands)."""

# Lodestone - Launcher Identity Core
# Copyright (C) 2026 Lodestone Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from tests.helpers.filesystem import write_png


@pytest.fixture
def run_cli(data_dir: Path):
    """Invoke ``cli_main`` with logging setup and .env loading stubbed out."""
    from cli.parser import cli_main

    def _run(*argv: str) -> None:
        with patch("lodestone.logging_config.setup_logging"), patch("dotenv.load_dotenv"):
            cli_main(list(argv))

    return _run


class TestParser:
    def test_skin_apply_arguments(self) -> None:
        from cli.parser import build_parser

        args = build_parser().parse_args(["skin", "apply", "knight.png", "--variant", "slim"])
        assert args.file == "knight.png"
        assert args.variant == "slim"
        assert callable(args.func)

    def test_library_save_source_optional(self) -> None:
        from cli.parser import build_parser

        args = build_parser().parse_args(["skin", "library", "save", "Knight"])
        assert args.name == "Knight"
        assert args.source is None
        assert args.variant is None

    def test_invalid_variant_rejected(self) -> None:
        from cli.parser import build_parser

        with pytest.raises(SystemExit):
            build_parser().parse_args(["skin", "apply", "x.png", "--variant", "wide"])

    def test_no_command_prints_help(self, run_cli, capsys: pytest.CaptureFixture[str]) -> None:
        run_cli()
        assert "usage: lodestone" in capsys.readouterr().out


class TestAccountCommands:
    def test_add_switch_list(self, run_cli, capsys: pytest.CaptureFixture[str]) -> None:
        run_cli("accounts", "add-offline", "Notch")
        run_cli("accounts", "add-offline", "Jeb")
        run_cli("accounts", "switch", "Jeb")
        capsys.readouterr()

        run_cli("accounts", "list")

        lines = capsys.readouterr().out.splitlines()
        assert lines[0].startswith("  Notch")
        assert lines[1].startswith("* Jeb")
        assert "offline" in lines[1]

    def test_empty_list(self, run_cli, capsys: pytest.CaptureFixture[str]) -> None:
        run_cli("accounts", "list")
        assert "No accounts" in capsys.readouterr().out

    def test_duplicate_exits_with_error(self, run_cli, capsys: pytest.CaptureFixture[str]) -> None:
        run_cli("accounts", "add-offline", "Notch")

        with pytest.raises(SystemExit) as exc_info:
            run_cli("accounts", "add-offline", "Notch")

        assert exc_info.value.code == 1
        assert "already exists" in capsys.readouterr().err

    def test_remove_active(self, run_cli, capsys: pytest.CaptureFixture[str]) -> None:
        run_cli("accounts", "add-offline", "Notch")
        run_cli("accounts", "add-offline", "Jeb")

        run_cli("accounts", "remove", "Notch")

        out = capsys.readouterr().out
        assert "Removed account 'Notch'" in out
        assert "No account is active" in out

    def test_switch_unknown(self, run_cli, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit):
            run_cli("accounts", "switch", "Ghost")
        assert "not found" in capsys.readouterr().err


class TestSkinCommands:
    def test_apply_requires_existing_file(self, run_cli, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit):
            run_cli("skin", "apply", str(tmp_path / "missing.png"))
        assert "File not found" in capsys.readouterr().err

    def test_apply_with_offline_account_fails(
        self, run_cli, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        skin = write_png(tmp_path / "knight.png")
        run_cli("accounts", "add-offline", "Notch")

        with pytest.raises(SystemExit):
            run_cli("skin", "apply", str(skin))

        assert "logged in with a Microsoft account" in capsys.readouterr().err

    def test_library_save_list_delete(
        self, run_cli, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        skin = write_png(tmp_path / "knight.png")

        run_cli("skin", "library", "save", "Knight", str(skin), "--variant", "slim")
        saved = capsys.readouterr().out
        item_id = saved.strip().rsplit(" ", 1)[-1]

        run_cli("skin", "library", "list")
        listing = capsys.readouterr().out
        assert item_id in listing
        assert "Knight" in listing
        assert "slim" in listing

        run_cli("skin", "library", "delete", item_id)
        assert "Deleted 'Knight'" in capsys.readouterr().out

        run_cli("skin", "library", "list")
        assert "empty" in capsys.readouterr().out

    def test_library_save_blank_name(self, run_cli, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        skin = write_png(tmp_path / "knight.png")
        with pytest.raises(SystemExit):
            run_cli("skin", "library", "save", " ", str(skin))
        assert "Please enter a name for the skin" in capsys.readouterr().err


class TestLogLevel:
    def _level_for(self, *argv: str) -> str:
        from cli.parser import cli_main

        with patch("lodestone.logging_config.setup_logging") as setup, patch("dotenv.load_dotenv"):
            cli_main(list(argv))
        return setup.call_args.kwargs["level"]

    def test_config_level_used(self, data_dir: Path) -> None:
        assert self._level_for("accounts", "list") == "DEBUG"

    def test_env_overrides_config(self, data_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LODESTONE_LOG_LEVEL", "ERROR")
        assert self._level_for("accounts", "list") == "ERROR"

    def test_broken_config_falls_back_to_warning(self, data_dir: Path) -> None:
        (data_dir / "config.json").write_text("{not json", encoding="utf-8")
        assert self._level_for() == "WARNING"
