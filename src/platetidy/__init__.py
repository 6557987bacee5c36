"""
platetidy - Tidy, summarize and plot plate-reader assay spreadsheets.

The package exposes one pipeline: load a rectangular spreadsheet region against an
explicit layout, reshape the wide table into long format, compute mean and sample
standard deviation per group, and render bar/line/box charts.

This module also owns the Loguru configuration. Logging is configured once on
import (console only, INFO) unless pytest is running, in which case tests call
``configure_test_logging`` themselves.
"""

__version__ = "0.1.0"

import os
import sys
import warnings
from pathlib import Path
from typing import Dict, Optional, TextIO, Union

from loguru import logger


# --- Logger Configuration Classes and Types ---

class LoggingConfigError(Exception):
    """Raised when logging configuration fails validation or setup."""
    pass


class LoggerState:
    """Tracks which sinks this package installed so they can be removed again."""

    def __init__(self):
        self._initialized = False
        self._test_mode = False
        self._sink_ids = []

    def is_initialized(self) -> bool:
        return self._initialized

    def is_test_mode(self) -> bool:
        return self._test_mode

    def mark_initialized(self, test_mode: bool = False):
        self._initialized = True
        self._test_mode = test_mode

    def add_sink_id(self, sink_id: int):
        self._sink_ids.append(sink_id)

    @property
    def sink_ids(self):
        return list(self._sink_ids)

    def reset(self):
        self._initialized = False
        self._test_mode = False
        self._sink_ids.clear()


_logger_state = LoggerState()

VALID_LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


# --- Configuration Validation Functions ---

def validate_log_level(level: str) -> str:
    """
    Validate a log level name.

    Args:
        level: Log level string to validate (case-insensitive)

    Returns:
        Upper-cased log level

    Raises:
        LoggingConfigError: If the level is not a Loguru level name
    """
    level_upper = str(level).upper()

    if level_upper not in VALID_LOG_LEVELS:
        raise LoggingConfigError(
            f"Invalid log level '{level}'. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
        )

    return level_upper


# --- Core Logging Configuration Functions ---

def configure_console_logging(
    level: str = "INFO",
    format_template: Optional[str] = None,
    colorize: bool = True,
    destination: TextIO = sys.stderr
) -> int:
    """
    Add a console sink.

    Args:
        level: Log level for console output
        format_template: Custom format template (uses default if None)
        colorize: Enable colored console output
        destination: Console destination (default: sys.stderr)

    Returns:
        Sink ID for tracking and cleanup

    Raises:
        LoggingConfigError: If configuration fails
    """
    try:
        validated_level = validate_log_level(level)

        if format_template is None:
            format_template = (
                "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{module}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
            )

        sink_id = logger.add(
            destination,
            level=validated_level,
            format=format_template,
            colorize=colorize
        )

        _logger_state.add_sink_id(sink_id)
        return sink_id

    except LoggingConfigError:
        raise
    except Exception as e:
        raise LoggingConfigError(f"Failed to configure console logging: {e}") from e


def configure_file_logging(
    log_file_path: Union[str, Path],
    level: str = "DEBUG",
    rotation: str = "10 MB",
    retention: str = "7 days",
    format_template: Optional[str] = None,
    encoding: str = "utf-8",
) -> int:
    """
    Add a rotating file sink. Parent directories are created as needed.

    Args:
        log_file_path: Path to log file
        level: Log level for file output
        rotation: Loguru rotation setting
        retention: Loguru retention setting
        format_template: Custom format template (uses default if None)
        encoding: File encoding

    Returns:
        Sink ID for tracking and cleanup

    Raises:
        LoggingConfigError: If configuration fails
    """
    try:
        validated_level = validate_log_level(level)
        path = Path(log_file_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        if format_template is None:
            format_template = (
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
                "{level: <8} | "
                "{name}:{function}:{line} - {message}"
            )

        sink_id = logger.add(
            str(path),
            rotation=rotation,
            retention=retention,
            level=validated_level,
            format=format_template,
            encoding=encoding
        )

        _logger_state.add_sink_id(sink_id)
        return sink_id

    except LoggingConfigError:
        raise
    except Exception as e:
        raise LoggingConfigError(f"Failed to configure file logging: {e}") from e


def configure_test_logging(
    console_level: str = "DEBUG",
    console_destination: Optional[TextIO] = None,
    file_destination: Optional[Union[str, Path]] = None,
    capture_warnings: bool = False,
) -> Dict[str, int]:
    """
    Configure logging for test runs: uncolored console sink, optional file sink.

    Args:
        console_level: Console log level for tests
        console_destination: Console destination (None uses sys.stderr)
        file_destination: Optional file destination for test logs
        capture_warnings: Route ``warnings.warn`` output through the logger

    Returns:
        Dictionary mapping sink types to sink IDs
    """
    reset_logging()

    sink_ids = {}
    console_dest = console_destination if console_destination is not None else sys.stderr
    sink_ids['console'] = configure_console_logging(
        level=console_level,
        destination=console_dest,
        colorize=False,
    )

    if file_destination is not None:
        sink_ids['file'] = configure_file_logging(file_destination, level=console_level)

    if capture_warnings:
        warnings.showwarning = lambda *args: logger.warning(
            f"Warning: {args[0]} ({args[1]}:{args[2]})"
        )

    _logger_state.mark_initialized(test_mode=True)
    return sink_ids


def reset_logging():
    """
    Remove every Loguru sink and clear the package logger state.

    Raises:
        LoggingConfigError: If reset fails
    """
    try:
        logger.remove()
        _logger_state.reset()
    except Exception as e:
        raise LoggingConfigError(f"Failed to reset logging configuration: {e}") from e


def initialize_logging(console_level: str = "INFO") -> Dict[str, int]:
    """
    Install the default console sink, replacing Loguru's built-in handler.

    File logging is not enabled here; call ``configure_file_logging`` explicitly.
    """
    logger.remove()
    _logger_state.reset()

    sink_ids = {'console': configure_console_logging(level=console_level)}
    _logger_state.mark_initialized(test_mode=False)
    logger.debug("platetidy logging initialized")
    return sink_ids


def get_logger_state() -> LoggerState:
    return _logger_state


def is_logging_initialized() -> bool:
    return _logger_state.is_initialized()


def _is_pytest_running() -> bool:
    return "pytest" in sys.modules or "PYTEST_CURRENT_TEST" in os.environ


def _auto_initialize_logging():
    if not _logger_state.is_initialized() and not _is_pytest_running():
        try:
            initialize_logging()
        except LoggingConfigError as e:
            warnings.warn(f"Failed to initialize logging: {e}. Using basic stderr logging.")
            logger.add(sys.stderr, level="INFO")
            _logger_state.mark_initialized(test_mode=False)


_auto_initialize_logging()

# --- End Logger Configuration ---

from platetidy.exceptions import (  # noqa: E402
    ConfigError,
    DataTypeError,
    LoadError,
    PlateTidyError,
    RenderError,
    TransformError,
)
from platetidy.schema.models import CellRange, ColumnRole, ColumnSpec, SheetLayout, parse_cell_range  # noqa: E402
from platetidy.io.loaders import load_wide_table, read_region  # noqa: E402
from platetidy.io.transformers import interaction_column, split_key_column, to_long  # noqa: E402
from platetidy.analysis.summary import add_error_bounds, summarize, summarize_wide  # noqa: E402
from platetidy.plotting.renderers import PlotStyle, bar_chart, box_chart, line_chart  # noqa: E402
from platetidy.config.models import PipelineConfig  # noqa: E402
from platetidy.config.yaml_config import load_config  # noqa: E402
from platetidy.pipeline.data_pipeline import PipelineResult, run_pipeline, run_pipeline_from_yaml  # noqa: E402

__all__ = [
    "__version__",
    "logger",
    "LoggingConfigError",
    "configure_console_logging",
    "configure_file_logging",
    "configure_test_logging",
    "reset_logging",
    "initialize_logging",
    "PlateTidyError",
    "ConfigError",
    "LoadError",
    "DataTypeError",
    "TransformError",
    "RenderError",
    "CellRange",
    "ColumnRole",
    "ColumnSpec",
    "SheetLayout",
    "parse_cell_range",
    "load_wide_table",
    "read_region",
    "to_long",
    "split_key_column",
    "interaction_column",
    "summarize",
    "summarize_wide",
    "add_error_bounds",
    "PlotStyle",
    "bar_chart",
    "line_chart",
    "box_chart",
    "PipelineConfig",
    "load_config",
    "PipelineResult",
    "run_pipeline",
    "run_pipeline_from_yaml",
]
