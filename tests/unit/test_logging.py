"""Tests for logging setup."""

import json
import logging
from logging.handlers import RotatingFileHandler

import pytest
import structlog

from src.shared.logging import log_context, setup_logging


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("httpx").setLevel(logging.NOTSET)
    logging.getLogger("httpcore").setLevel(logging.NOTSET)
    structlog.reset_defaults()


def test_stdout_only_by_default():
    setup_logging("warning")
    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert len(root.handlers) == 1


def test_file_handler_with_rotation(tmp_path):
    log_file = tmp_path / "logs" / "app.log"
    setup_logging("INFO", file_path=str(log_file), rotation_max_mb=1, rotation_backups=2)

    file_handlers = [h for h in logging.getLogger().handlers if isinstance(h, RotatingFileHandler)]
    assert len(file_handlers) == 1
    assert file_handlers[0].maxBytes == 1024 * 1024
    assert file_handlers[0].backupCount == 2

    logging.getLogger("src.test").info("step finished")
    file_handlers[0].flush()
    content = log_file.read_text(encoding="utf-8")
    assert '"event": "step finished"' in content
    assert '"logger": "src.test"' in content


def test_unopenable_file_keeps_stdout(tmp_path, capsys):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("")
    setup_logging("INFO", file_path=str(blocker / "app.log"))

    assert len(logging.getLogger().handlers) == 1
    assert "Log file disabled" in capsys.readouterr().err


def test_http_client_loggers_quieted():
    setup_logging("INFO")
    assert logging.getLogger("httpx").level == logging.WARNING
    setup_logging("DEBUG")
    assert logging.getLogger("httpx").level == logging.DEBUG


def test_log_context_tags_lines(tmp_path):
    log_file = tmp_path / "app.log"
    setup_logging("INFO", file_path=str(log_file))
    logger = logging.getLogger("src.application.workflow.use_case")

    with log_context(workflow_id=3, execution_id=12, user_id=None):
        logger.info("step finished")
    logger.info("outside")

    for handler in logging.getLogger().handlers:
        handler.flush()
    inside, outside = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    assert (inside["workflow_id"], inside["execution_id"]) == (3, 12)
    assert "user_id" not in inside
    assert "workflow_id" not in outside
