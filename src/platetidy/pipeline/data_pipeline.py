"""
data_pipeline.py - Complete load, reshape, summarize and render pipeline.

This module provides the high-level functions that run one dataset through every
stage, driven by a ``PipelineConfig``:

    load_wide_table -> to_long -> split_key_column -> interaction_column
    -> summarize -> render_chart (once per configured plot)

Errors from any stage propagate unchanged; there is no partial result and no retry.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import matplotlib.pyplot as plt
import pandas as pd
from loguru import logger
from matplotlib.figure import Figure

from platetidy.analysis.summary import summarize
from platetidy.config.models import PipelineConfig, PlotConfig
from platetidy.config.yaml_config import ConfigSource, get_config_from_source, load_config
from platetidy.io.loaders import load_wide_table
from platetidy.io.transformers import interaction_column, split_key_column, to_long
from platetidy.plotting.renderers import render_chart

PathLike = Union[str, Path]


@dataclass(frozen=True)
class PipelineResult:
    """
    Tables and charts produced by one pipeline run.

    Attributes:
        wide: Validated wide table as loaded
        long: Long table after reshaping, splitting and interaction labels
        summary: One row per group with mean and standard deviation
        figures: Plot name -> Figure (closed already when the run used ``close_figures``)
        outputs: Plot name -> saved file, for plots with an ``output``
    """

    wide: pd.DataFrame
    long: pd.DataFrame
    summary: pd.DataFrame
    figures: Dict[str, Figure] = field(default_factory=dict)
    outputs: Dict[str, Path] = field(default_factory=dict)

    def close(self) -> None:
        """Close every figure of this result."""
        for fig in self.figures.values():
            plt.close(fig)


def _resolve(path: PathLike, base_dir: Optional[Path]) -> Path:
    path = Path(path)
    if base_dir is not None and not path.is_absolute():
        return base_dir / path
    return path


def build_long_table(wide: pd.DataFrame, config: PipelineConfig) -> pd.DataFrame:
    """Reshape, split and label the wide table as configured."""
    layout = config.dataset.layout

    if config.reshape is not None:
        long = to_long(
            wide,
            value_columns=config.reshape.value_columns,
            key_columns=layout.key_columns,
            names_to=config.reshape.names_to,
            values_to=config.reshape.values_to,
        )
    else:
        long = wide.copy()

    if config.split is not None:
        long = split_key_column(
            long,
            config.split.column,
            into=config.split.into,
            sep=config.split.sep,
            from_right=config.split.from_right,
        )

    if config.interaction is not None:
        long = interaction_column(
            long,
            config.interaction.columns,
            sep=config.interaction.sep,
            name=config.interaction.name,
        )
    return long


def build_summary(long: pd.DataFrame, config: PipelineConfig) -> pd.DataFrame:
    """Summarize the long table; interaction labels are carried over when their sources are group keys."""
    summary = summarize(
        long,
        by=config.summary.by,
        value_column=config.value_column,
        mean_name=config.summary.mean_name,
        sd_name=config.summary.sd_name,
    )

    interaction = config.interaction
    if (
        interaction is not None
        and interaction.target not in summary.columns
        and all(column in summary.columns for column in interaction.columns)
    ):
        summary = interaction_column(summary, interaction.columns, sep=interaction.sep, name=interaction.name)
    return summary


def render_plot(
    plot: PlotConfig,
    long: pd.DataFrame,
    summary: pd.DataFrame,
    config: PipelineConfig,
    output_path: Optional[Path] = None,
) -> Figure:
    """Draw one configured plot, filling column defaults from the summary settings."""
    on_summary = plot.data == "summary"
    table = summary if on_summary else long
    y = plot.y or (config.summary.mean_name if on_summary else config.value_column)

    sd = plot.sd
    if sd is None and plot.error_bars and on_summary:
        sd = config.summary.sd_name

    options: Dict[str, Any] = {"x": plot.x, "y": y}
    if plot.kind == "bar":
        options.update(sd=sd if plot.error_bars else None, color=plot.color)
    elif plot.kind == "line":
        options.update(
            group=plot.group,
            sd=sd if plot.error_bars else None,
            points=long if plot.show_points else None,
            points_y=config.value_column,
        )
    else:
        options.update(
            color=plot.color,
            facet=plot.facet,
            facet_row=plot.facet_row,
            show_points=plot.show_points,
            summary=summary if plot.overlay_summary else None,
            summary_y=config.summary.mean_name,
        )

    return render_chart(plot.kind, table, style=plot.style, output_path=output_path, **options)


def run_pipeline(
    config: ConfigSource,
    base_dir: Optional[PathLike] = None,
    close_figures: bool = False,
) -> PipelineResult:
    """
    Run a full pipeline.

    Args:
        config: PipelineConfig, configuration mapping, or path to a YAML file
        base_dir: Directory that relative data and output paths resolve against;
            None leaves them relative to the working directory
        close_figures: Close every figure after saving (for batch runs that only
            want the files)

    Returns:
        PipelineResult with every intermediate table and the figures

    Raises:
        ConfigError, LoadError, DataTypeError, TransformError, RenderError: From
            the failing stage
    """
    config = get_config_from_source(config)
    base = Path(base_dir) if base_dir is not None else None

    data_path = _resolve(config.dataset.path, base)
    logger.info(f"Loading {data_path}")
    wide = load_wide_table(data_path, config.dataset.layout)

    long = build_long_table(wide, config)
    logger.info(f"Long table has {len(long)} row(s) and columns {list(long.columns)}")

    summary = build_summary(long, config)
    logger.info(f"Summary has {len(summary)} group(s) by {config.summary.by}")

    figures: Dict[str, Figure] = {}
    outputs: Dict[str, Path] = {}
    for plot in config.plots:
        output_path = _resolve(plot.output, base) if plot.output else None
        fig = render_plot(plot, long, summary, config, output_path=output_path)
        figures[plot.name] = fig
        if output_path is not None:
            outputs[plot.name] = output_path
        if close_figures:
            plt.close(fig)

    logger.info(f"Pipeline finished: {len(figures)} chart(s), {len(outputs)} file(s) written")
    return PipelineResult(wide=wide, long=long, summary=summary, figures=figures, outputs=outputs)


def run_pipeline_from_yaml(config_path: PathLike, close_figures: bool = False) -> PipelineResult:
    """Load a YAML configuration and run it, resolving relative paths against the YAML file's directory."""
    path = Path(config_path)
    config = load_config(path)
    return run_pipeline(config, base_dir=path.resolve().parent, close_figures=close_figures)


__all__ = [
    'PipelineResult',
    'build_long_table',
    'build_summary',
    'render_plot',
    'run_pipeline',
    'run_pipeline_from_yaml',
]
