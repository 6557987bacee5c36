"""Tests for the platetidy exception hierarchy."""

import logging
from pathlib import Path

import pytest
from loguru import logger

from platetidy.exceptions import (
    ConfigError,
    DataTypeError,
    LoadError,
    PlateTidyError,
    RenderError,
    TransformError,
    log_and_raise,
)


@pytest.mark.parametrize("exc_class, default_code", [
    (PlateTidyError, "PLATETIDY_001"),
    (ConfigError, "CONFIG_001"),
    (LoadError, "LOAD_001"),
    (DataTypeError, "TYPE_001"),
    (TransformError, "TRANSFORM_006"),
    (RenderError, "RENDER_001"),
])
def test_default_error_codes(exc_class, default_code):
    error = exc_class("boom")

    assert error.error_code == default_code
    assert isinstance(error, PlateTidyError)
    assert str(error) == f"boom [Error Code: {default_code}]"


def test_str_includes_context():
    error = TransformError("bad split", error_code="TRANSFORM_007", context={"column": "condition"})

    assert str(error) == "bad split [Error Code: TRANSFORM_007, Context: column=condition]"
    assert "TransformError(message='bad split'" in repr(error)


def test_with_context_chains_and_merges():
    error = LoadError("Sheet not found", context={"file_path": "plate.xlsx"})

    returned = error.with_context({"sheet": "Results"})

    assert returned is error
    assert error.context == {"file_path": "plate.xlsx", "sheet": "Results"}


def test_context_is_copied():
    context = {"column": "a"}
    error = DataTypeError("not numeric", context=context)
    error.with_context({"row": 3})

    assert context == {"column": "a"}


def test_paths_stored_as_strings():
    assert LoadError("x", context={"file_path": Path("data/plate.xlsx")}).context["file_path"] == str(
        Path("data/plate.xlsx")
    )
    assert ConfigError("x", context={"config_path": Path("lps.yaml")}).context["config_path"] == "lps.yaml"


def test_data_type_error_is_type_error():
    with pytest.raises(TypeError):
        raise DataTypeError("Column 'no_beads' holds non-numeric values")


def test_log_and_raise(caplog):
    error = LoadError("File not found", context={"file_path": "plate.xlsx"})

    with pytest.raises(LoadError) as exc_info:
        log_and_raise(error, logger)

    assert exc_info.value is error
    errors = [r.getMessage() for r in caplog.records if r.levelno == logging.ERROR]
    assert "LoadError: File not found" in errors
    assert "  file_path: plate.xlsx" in errors


def test_log_and_raise_without_logger(caplog):
    with pytest.raises(RenderError):
        log_and_raise(RenderError("no such column"))
    assert not caplog.records
