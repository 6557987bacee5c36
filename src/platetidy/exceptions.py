"""
PlateTidy Exception Hierarchy

This module provides the domain-specific exception hierarchy for platetidy so that
every stage of the load → reshape → summarize → render pipeline fails with an
error that names what went wrong and carries enough context to fix the input.

The hierarchy follows the pipeline stages:
- PlateTidyError: Base exception for all platetidy-specific errors
- ConfigError: Pipeline configuration loading and validation failures
- LoadError: Spreadsheet missing, unreadable, or not matching its layout
- DataTypeError: A cell expected to be numeric is not
- TransformError: Reshaping, key splitting, or aggregation failures
- RenderError: Chart construction failures

Each exception class provides:
- Context preservation via ``with_context``
- Error codes for programmatic error handling
- A string form that includes the code and context for logging

Usage Examples:
    Basic error handling:
    >>> try:
    ...     wide = load_wide_table("plate.xlsx", layout)
    ... except LoadError as e:
    ...     if e.error_code == "LOAD_004":
    ...         logger.error(f"Layout does not match the sheet: {e}")

    Context preservation:
    >>> try:
    ...     values = pd.to_numeric(column)
    ... except ValueError as e:
    ...     raise DataTypeError("Column is not numeric").with_context({
    ...         "column": column.name,
    ...     }) from e
"""

from pathlib import Path
from typing import Any, Dict, Optional


class PlateTidyError(Exception):
    """
    Base exception class for all platetidy errors.

    Attributes:
        message (str): Human-readable error description
        error_code (str): Unique identifier for programmatic error handling
        context (Dict[str, Any]): Additional context information for debugging

    Error Codes:
        PLATETIDY_001: Generic platetidy error
    """

    def __init__(
        self,
        message: str,
        error_code: str = "PLATETIDY_001",
        context: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Initialize the error with message, error code, and context.

        Args:
            message: Human-readable error description
            error_code: Unique identifier for programmatic error handling
            context: Additional context information for debugging
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = dict(context or {})

    def with_context(self, context: Dict[str, Any]) -> 'PlateTidyError':
        """
        Add additional context to the exception and return self for chaining.

        Example:
            >>> raise LoadError("Sheet not found").with_context({
            ...     "file_path": "plate.xlsx",
            ...     "sheet": "Results",
            ... })
        """
        self.context.update(context)
        return self

    def __str__(self) -> str:
        message = super().__str__()
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{message} [Error Code: {self.error_code}, Context: {context_str}]"
        return f"{message} [Error Code: {self.error_code}]"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"context={self.context!r})"
        )


class ConfigError(PlateTidyError):
    """
    Pipeline configuration loading and validation errors.

    Error Codes:
        CONFIG_001: Configuration file not found
        CONFIG_002: YAML parsing error
        CONFIG_003: Pydantic validation failure
    """

    def __init__(
        self,
        message: str,
        error_code: str = "CONFIG_001",
        context: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(message, error_code, context)

        if context and isinstance(context.get('config_path'), Path):
            self.context['config_path'] = str(context['config_path'])


class LoadError(PlateTidyError):
    """
    Spreadsheet loading errors. All of these abort the pipeline.

    Error Codes:
        LOAD_001: File not found
        LOAD_002: Workbook or sheet could not be read
        LOAD_003: Sheet does not cover the declared cell range
        LOAD_004: Column count does not match the layout
    """

    def __init__(
        self,
        message: str,
        error_code: str = "LOAD_001",
        context: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(message, error_code, context)

        if context and isinstance(context.get('file_path'), Path):
            self.context['file_path'] = str(context['file_path'])


class DataTypeError(PlateTidyError, TypeError):
    """
    A column expected to hold numeric measurements holds something else.

    Subclasses ``TypeError`` so callers that only know the builtin still catch it.

    Error Codes:
        TYPE_001: Non-numeric value in a numeric column
    """

    def __init__(
        self,
        message: str,
        error_code: str = "TYPE_001",
        context: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(message, error_code, context)


class TransformError(PlateTidyError):
    """
    Reshaping, key splitting and aggregation errors.

    Error Codes:
        TRANSFORM_004: Column role conflict (a column is both key and value)
        TRANSFORM_005: No value columns to reshape
        TRANSFORM_006: Missing required columns
        TRANSFORM_007: Packed key could not be split into the requested parts
    """

    def __init__(
        self,
        message: str,
        error_code: str = "TRANSFORM_006",
        context: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(message, error_code, context)


class RenderError(PlateTidyError):
    """
    Chart construction errors.

    Error Codes:
        RENDER_001: Column required by the chart is missing
        RENDER_002: Unsupported chart kind
        RENDER_003: More than one row maps to the same bar
    """

    def __init__(
        self,
        message: str,
        error_code: str = "RENDER_001",
        context: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(message, error_code, context)


def log_and_raise(
    exception: PlateTidyError,
    logger: Optional[Any] = None,
    level: str = "error"
) -> None:
    """
    Log an exception with its context and then raise it.

    Args:
        exception: The exception to log and raise
        logger: Logger instance to use (optional)
        level: Log level ("error", "warning", "critical")

    Raises:
        The provided exception after logging
    """
    if logger is not None:
        log_method = getattr(logger, level, logger.error)
        log_method(f"{exception.__class__.__name__}: {exception.message}")

        for key, value in exception.context.items():
            log_method(f"  {key}: {value}")

    raise exception


__all__ = [
    'PlateTidyError',
    'ConfigError',
    'LoadError',
    'DataTypeError',
    'TransformError',
    'RenderError',
    'log_and_raise',
]
