"""
YAML configuration loading.

Functions for reading a pipeline configuration from a YAML file and validating it
into a ``PipelineConfig``. Validation failures are reported field by field in a
single ``ConfigError`` so a user can fix every problem in one pass.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from loguru import logger
from pydantic import ValidationError

from platetidy.config.models import PipelineConfig
from platetidy.exceptions import ConfigError

ConfigSource = Union[str, Path, Dict[str, Any], PipelineConfig]


def _format_validation_errors(error: ValidationError) -> List[str]:
    details = []
    for item in error.errors():
        field_path = " -> ".join(str(loc) for loc in item['loc'])
        details.append(f"Field '{field_path}': {item['msg']}")
    return details


def validate_config_dict(data: Dict[str, Any], config_path: Optional[Union[str, Path]] = None) -> PipelineConfig:
    """
    Validate a configuration dictionary into a PipelineConfig.

    Args:
        data: Parsed configuration mapping
        config_path: Source file, used only in error messages

    Returns:
        PipelineConfig: The validated configuration

    Raises:
        ConfigError: If ``data`` is not a mapping or fails validation (CONFIG_003);
            the ``validation_errors`` context lists one line per failing field
    """
    context: Dict[str, Any] = {}
    if config_path is not None:
        context["config_path"] = str(config_path)

    if not isinstance(data, dict):
        raise ConfigError(
            f"Configuration must be a mapping, got {type(data).__name__}",
            error_code="CONFIG_003",
            context=context
        )

    try:
        config = PipelineConfig.model_validate(data)
    except ValidationError as e:
        error_details = _format_validation_errors(e)
        source = f" for {config_path}" if config_path is not None else ""
        detailed_error = f"Configuration validation failed{source}:\n" + "\n".join(error_details)
        logger.error(detailed_error)
        raise ConfigError(
            detailed_error,
            error_code="CONFIG_003",
            context={**context, "validation_errors": error_details}
        ) from e

    logger.debug(f"Validated configuration with {len(config.plots)} plot(s)")
    return config


def load_config(config_path: Union[str, Path]) -> PipelineConfig:
    """
    Load and validate a YAML pipeline configuration.

    Args:
        config_path: Path to the YAML file

    Returns:
        PipelineConfig: The validated configuration

    Raises:
        ConfigError: File not found (CONFIG_001), YAML parse error (CONFIG_002) or
            validation failure (CONFIG_003)

    Example:
        >>> config = load_config("examples/configs/lps_bargraph.yaml")
        >>> [plot.name for plot in config.plots]
        ['bar']
    """
    path = Path(config_path)
    if not path.is_file():
        raise ConfigError(
            f"Configuration file not found: {path}",
            error_code="CONFIG_001",
            context={"config_path": str(path)}
        )

    with open(path, 'r', encoding='utf-8') as f:
        try:
            # safe_load: configuration files never construct Python objects
            raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(
                f"Error parsing YAML configuration {path}: {e}",
                error_code="CONFIG_002",
                context={"config_path": str(path)}
            ) from e

    logger.debug(f"Raw YAML configuration loaded from {path}")
    config = validate_config_dict(raw_config, config_path=path)
    logger.info(f"Configuration loaded from {path}")
    return config


def get_config_from_source(source: ConfigSource) -> PipelineConfig:
    """
    Normalize a path, mapping or PipelineConfig into a PipelineConfig.

    Raises:
        ConfigError: As for ``load_config``/``validate_config_dict``
        TypeError: For any other input type
    """
    if isinstance(source, PipelineConfig):
        return source
    if isinstance(source, dict):
        return validate_config_dict(source)
    if isinstance(source, (str, Path)):
        return load_config(source)
    raise TypeError(
        f"Invalid configuration source type: {type(source).__name__}. "
        "Expected a path, a dictionary or a PipelineConfig."
    )


__all__ = [
    'load_config',
    'validate_config_dict',
    'get_config_from_source',
]
