"""
tests/test_logger.py
---------------------
Unit tests for logger.py.
Run with: python -m pytest tests/
"""
from __future__ import annotations

import logging
from pathlib import Path

import pytest

import logger
from logger import SecretFilter, configure, get_logger


def _record(msg: str, *args) -> logging.LogRecord:
    return logging.LogRecord("d1.test", logging.INFO, __file__, 1, msg, args, None)


class TestSecretFilter:
    def test_masks_secret_in_args(self) -> None:
        record = _record("Authorization: Bearer %s", "tok-123")
        assert SecretFilter(["tok-123"]).filter(record)
        assert record.getMessage() == "Authorization: Bearer ***"

    def test_leaves_clean_records_alone(self) -> None:
        record = _record("Migrating up %s", "1_init.sql")
        SecretFilter(["tok-123"]).filter(record)
        assert record.args == ("1_init.sql",)

    def test_empty_secret_is_ignored(self) -> None:
        record = _record("plain")
        assert SecretFilter([""]).filter(record)
        assert record.getMessage() == "plain"


class TestConfigure:
    @pytest.fixture(autouse=True)
    def restore(self):
        yield
        configure()

    def test_get_logger_is_child_of_root(self) -> None:
        assert get_logger("d1migrate.migrator").name == "d1.d1migrate.migrator"

    def test_reconfigure_replaces_handlers(self) -> None:
        root = configure(logging.WARNING)
        before = len(root.handlers)
        configure(logging.WARNING)
        assert len(root.handlers) == before
        assert root.level == logging.WARNING

    def test_file_handler(self, tmp_path: Path) -> None:
        path = tmp_path / "logs" / "d1.log"
        configure(logging.INFO, log_file=path)
        get_logger("test").debug("written to file only")
        for handler in logger._installed:
            handler.flush()
        assert "written to file only" in path.read_text(encoding="utf-8")
