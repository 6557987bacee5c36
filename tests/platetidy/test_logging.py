"""Tests for the package level Loguru configuration."""

import io
import logging

import pytest

import platetidy
from platetidy import (
    LoggingConfigError,
    configure_file_logging,
    configure_test_logging,
    logger,
    reset_logging,
)


@pytest.fixture
def clean_logging():
    """Start from no sinks and leave no package sinks behind."""
    reset_logging()
    yield
    reset_logging()


def test_logger_basic_output(caplog):
    """Loguru records should reach caplog at their own level."""
    logger.info("info message")
    logger.debug("debug message")

    info_records = [record for record in caplog.records if record.levelno == logging.INFO]
    debug_records = [record for record in caplog.records if record.levelno == logging.DEBUG]

    assert any("info message" in record.getMessage() for record in info_records)
    assert any("debug message" in record.getMessage() for record in debug_records)


@pytest.mark.parametrize("level, expected", [("info", "INFO"), ("Warning", "WARNING"), ("TRACE", "TRACE")])
def test_validate_log_level(level, expected):
    assert platetidy.validate_log_level(level) == expected


def test_validate_log_level_rejects_unknown():
    with pytest.raises(LoggingConfigError, match="Invalid log level 'LOUD'"):
        platetidy.validate_log_level("LOUD")


def test_configure_file_logging_creates_parents(clean_logging, tmp_path):
    log_file = tmp_path / "logs" / "nested" / "platetidy.log"

    sink_id = configure_file_logging(log_file, level="INFO")
    logger.debug("hidden below INFO")
    logger.info("written to file")
    logger.remove(sink_id)

    content = log_file.read_text(encoding="utf-8")
    assert "written to file" in content
    assert "hidden below INFO" not in content
    assert sink_id in platetidy.get_logger_state().sink_ids


def test_configure_test_logging(clean_logging, tmp_path):
    stream = io.StringIO()

    sink_ids = configure_test_logging(
        console_level="WARNING",
        console_destination=stream,
        file_destination=tmp_path / "test.log",
    )
    logger.info("not shown")
    logger.warning("shown")

    assert set(sink_ids) == {"console", "file"}
    assert platetidy.is_logging_initialized()
    assert platetidy.get_logger_state().is_test_mode()
    assert "shown" in stream.getvalue()
    assert "not shown" not in stream.getvalue()


def test_configure_test_logging_rejects_bad_level(clean_logging):
    with pytest.raises(LoggingConfigError):
        configure_test_logging(console_level="chatty")


def test_reset_logging_clears_state(clean_logging):
    configure_test_logging(console_destination=io.StringIO())
    assert platetidy.is_logging_initialized()

    reset_logging()

    state = platetidy.get_logger_state()
    assert not state.is_initialized()
    assert state.sink_ids == []


def test_initialize_logging_installs_console_sink(clean_logging):
    sink_ids = platetidy.initialize_logging(console_level="ERROR")

    assert list(sink_ids) == ["console"]
    state = platetidy.get_logger_state()
    assert state.is_initialized()
    assert not state.is_test_mode()
