"""
Configuration for platetidy pipelines.

- models.py: pydantic models describing a dataset, its reshaping, grouping and charts
- yaml_config.py: loading and validating those models from YAML files
"""

from platetidy.config.models import (
    DatasetConfig,
    InteractionConfig,
    PipelineConfig,
    PlotConfig,
    ReshapeConfig,
    SplitConfig,
    SummaryConfig,
)
from platetidy.config.yaml_config import get_config_from_source, load_config, validate_config_dict

__all__ = [
    'DatasetConfig',
    'InteractionConfig',
    'PipelineConfig',
    'PlotConfig',
    'ReshapeConfig',
    'SplitConfig',
    'SummaryConfig',
    'get_config_from_source',
    'load_config',
    'validate_config_dict',
]
