"""
Unit tests for shuttlebar/logging_config.py
"""

import logging

import pytest
from unittest.mock import patch


@pytest.fixture
def log_file(tmp_path):
    path = tmp_path / "Logs" / "shuttlebar.log"
    with (
        patch("shuttlebar.config.LOG_DIR", path.parent),
        patch("shuttlebar.config.LOG_FILE", path),
    ):
        yield path


@pytest.mark.unit
class TestSetupLogging:
    """Tests for the centralized logging setup."""

    def test_file_and_console_handlers(self, log_file):
        from shuttlebar.logging_config import setup_logging

        setup_logging(debug=False, force_reinit=True)

        handlers = logging.getLogger().handlers
        file_handlers = [h for h in handlers if isinstance(h, logging.FileHandler)]
        console_handlers = [h for h in handlers if not isinstance(h, logging.FileHandler)]
        assert len(file_handlers) == 1
        assert file_handlers[0].level == logging.DEBUG
        assert console_handlers[0].level == logging.INFO

        logging.getLogger("shuttlebar.test").debug("written to file only")
        file_handlers[0].flush()
        assert "written to file only" in log_file.read_text()

    def test_debug_lowers_console_level(self, log_file):
        from shuttlebar.logging_config import setup_logging

        setup_logging(debug=True, force_reinit=True)

        console_handlers = [
            h for h in logging.getLogger().handlers if not isinstance(h, logging.FileHandler)
        ]
        assert console_handlers[0].level == logging.DEBUG

    def test_setup_is_not_repeated(self, log_file):
        from shuttlebar.logging_config import get_logger, setup_logging

        setup_logging(force_reinit=True)
        handlers = list(logging.getLogger().handlers)

        setup_logging()
        logger = get_logger("shuttlebar.test")

        assert logging.getLogger().handlers == handlers
        assert logger.name == "shuttlebar.test"
