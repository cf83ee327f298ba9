"""Unit tests for lodestone.logging_config."""

# Lodestone - Launcher Identity Core
# Copyright (C) 2026 Lodestone Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import orjson
import pytest
import structlog

from lodestone.logging_config import bind_account, get_bound_account, setup_logging


@pytest.fixture
def _restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


class TestBindAccount:
    def test_default_is_dash(self) -> None:
        structlog.contextvars.clear_contextvars()
        assert get_bound_account() == "-"

    def test_bind_and_unbind(self) -> None:
        bind_account("Steve")
        assert get_bound_account() == "Steve"
        bind_account(None)
        assert get_bound_account() == "-"


@pytest.mark.usefixtures("_restore_root_logger")
class TestSetupLogging:
    def test_console_only(self) -> None:
        setup_logging(level="DEBUG")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1

    def test_file_handler_writes_json(self, tmp_path: Path) -> None:
        setup_logging(level="INFO", log_dir=tmp_path)
        bind_account("Steve")

        logging.getLogger("lodestone.test").info("skin uploaded")
        for handler in logging.getLogger().handlers:
            handler.flush()

        lines = (tmp_path / "lodestone.log").read_text(encoding="utf-8").splitlines()
        record = orjson.loads(lines[-1])
        assert record["event"] == "skin uploaded"
        assert record["account"] == "Steve"
        assert record["level"] == "info"
        assert record["logger"] == "lodestone.test"

    def test_file_handler_rotates(self, tmp_path: Path) -> None:
        setup_logging(log_dir=tmp_path)
        handlers = [h for h in logging.getLogger().handlers if isinstance(h, RotatingFileHandler)]
        assert len(handlers) == 1
        assert handlers[0].backupCount == 3

    def test_http_libraries_quieted(self) -> None:
        setup_logging(level="DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self) -> None:
        setup_logging(level="chatty")
        assert logging.getLogger().level == logging.INFO
