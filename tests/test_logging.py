"""
Tests for logging setup.
"""

import logging
import sys
from pathlib import Path

import pytest
from rich.logging import RichHandler

from interchange.utils.logging import (
    ROOT_LOGGER,
    FileFormatter,
    _parse_level,
    get_logger,
    setup_logging,
    setup_logging_from_config,
)


@pytest.fixture(autouse=True)
def restore_logger():
    logger = logging.getLogger(ROOT_LOGGER)
    handlers, level = list(logger.handlers), logger.level
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)


class TestSetupLogging:
    def test_rich_console_handler(self):
        logger = setup_logging("DEBUG")
        assert logger.level == logging.DEBUG
        assert [type(h) for h in logger.handlers] == [RichHandler]

    def test_plain_console_handler(self):
        logger = setup_logging("INFO", use_rich=False)
        assert type(logger.handlers[0]) is logging.StreamHandler

    def test_reconfigure_replaces_handlers(self):
        setup_logging("INFO")
        logger = setup_logging("INFO")
        assert len(logger.handlers) == 1

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "run.log"
        setup_logging("INFO", log_file=log_file, console_enabled=False)
        get_logger("interchange.outbound").info("Wrote batch EXP_1.txt")
        for handler in logging.getLogger(ROOT_LOGGER).handlers:
            handler.flush()
        text = log_file.read_text()
        assert "[INFO    ] interchange.outbound: Wrote batch EXP_1.txt" in text

    def test_file_formatter_includes_traceback(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord("interchange", logging.ERROR, __file__, 1, "failed", None, None)
            record.exc_info = sys.exc_info()
        text = FileFormatter().format(record)
        assert "failed" in text
        assert "ValueError: boom" in text


class TestSetupFromConfig:
    def test_defaults_write_project_log(self, tmp_path):
        logger = setup_logging_from_config({}, project_dir=tmp_path)
        files = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]
        assert Path(files[0].baseFilename) == tmp_path / "logs" / "interchange.log"

    def test_disabled_outputs(self, tmp_path):
        config = {"logging": {"file_enabled": False, "console_enabled": False, "level": "WARNING"}}
        logger = setup_logging_from_config(config, project_dir=tmp_path)
        assert logger.handlers == []
        assert logger.level == logging.WARNING

    def test_verbose_forces_debug(self, tmp_path):
        config = {"logging": {"file_enabled": False, "level": "ERROR"}}
        assert setup_logging_from_config(config, project_dir=tmp_path, verbose=True).level == logging.DEBUG


class TestParseLevel:
    @pytest.mark.parametrize("value,expected", [("debug", 10), ("WARNING", 30), (40, 40), ("LOUD", 20)])
    def test_parse(self, value, expected):
        assert _parse_level(value) == expected
