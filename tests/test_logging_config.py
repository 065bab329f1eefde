"""Tests for logging setup"""

import logging

import pytest
from rich.logging import RichHandler

from vote_gate.utils.logging_config import QUIET_LOGGERS, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def test_setup_logging_installs_rich_handler(restore_root_logger):
    setup_logging("debug")

    assert restore_root_logger.level == logging.DEBUG
    assert any(isinstance(h, RichHandler) for h in restore_root_logger.handlers)
    assert logging.getLogger("urllib3").level == logging.WARNING


def test_setup_logging_writes_file(restore_root_logger, tmp_path):
    log_file = tmp_path / "logs" / "vote-gate.log"

    setup_logging(logging.INFO, log_file)
    logging.getLogger("vote_gate.test").info("check run queued")
    for handler in restore_root_logger.handlers:
        handler.flush()

    assert "check run queued" in log_file.read_text(encoding="utf-8")


def test_setup_logging_quiets_http_stack(restore_root_logger):
    setup_logging("INFO")

    for name in QUIET_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING
    assert not logging.getLogger("uvicorn.access").isEnabledFor(logging.INFO)


def test_setup_logging_unknown_level_falls_back_to_info(restore_root_logger):
    setup_logging("chatty")

    assert restore_root_logger.level == logging.INFO


def test_setup_logging_replaces_handlers(restore_root_logger):
    setup_logging("INFO")
    setup_logging("INFO")

    assert len(restore_root_logger.handlers) == 1
