"""
Chart rendering for summarized and long-format assay tables.

This module is the Renderer stage of the pipeline. It is a thin layer over
matplotlib and seaborn with one contract: given consistent columns, draw
consistent marks. Every chart function takes the table and the column names to
map, plus a ``PlotStyle`` holding all presentation choices (titles, palette, level
order and display labels), and returns the matplotlib ``Figure``. Passing
``output_path`` also saves the figure.

Charts:
    - bar_chart: one bar per x level (dodged by an optional colour column) with
      mean ± sd error bars; groups with NaN sd get no error bar
    - line_chart: one line per group across categorical x, optional raw points
    - box_chart: box plots per x level, optional jittered points, optional mean
      line overlay, optional facet panels (one row, or a rows x columns grid)
"""

import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from loguru import logger
from matplotlib.figure import Figure
from matplotlib.lines import Line2D
from matplotlib.patches import Patch
from pydantic import BaseModel, ConfigDict, Field, field_validator

from platetidy.exceptions import RenderError

PathLike = Union[str, Path]


class PlotStyle(BaseModel):
    """
    Presentation settings for one chart.

    Level-keyed settings (``palette``, ``labels``, ``order``, ``hue_order``) match
    levels by their string form, so ``{"1": ...}`` and ``{1: ...}`` are the same.

    Attributes:
        title, xlabel, ylabel, legend_title, caption: Text; axis labels default to
            the column names
        palette: Level -> colour for the colour/group column (or the x column when
            bars are coloured by x)
        order: x-axis level order; unlisted levels follow in natural order
        hue_order: Colour/group level order
        labels: Level -> display label for ticks and legend entries
        rotate_xticks: Tick label rotation in degrees
        color: Single colour used when nothing is mapped to colour
        default_palette: Seaborn palette name for levels missing from ``palette``
    """
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    xlabel: Optional[str] = None
    ylabel: Optional[str] = None
    legend_title: Optional[str] = None
    caption: Optional[str] = None
    palette: Dict[str, str] = Field(default_factory=dict)
    order: Optional[List[str]] = None
    hue_order: Optional[List[str]] = None
    labels: Dict[str, str] = Field(default_factory=dict)
    rotate_xticks: float = 0.0
    figsize: Tuple[float, float] = (6.4, 4.8)
    dpi: int = Field(default=150, gt=0)
    bar_width: float = Field(default=0.8, gt=0, le=1)
    capsize: float = Field(default=4.0, ge=0)
    linewidth: float = Field(default=1.5, gt=0)
    point_size: float = Field(default=12.0, gt=0)
    jitter: float = Field(default=0.1, ge=0)
    seed: int = 0
    color: str = "royalblue"
    default_palette: str = "Set2"
    show_legend: bool = True

    @field_validator('palette', 'labels', mode='before')
    @classmethod
    def stringify_keys(cls, v):
        if isinstance(v, dict):
            return {str(key): value for key, value in v.items()}
        return v

    @field_validator('order', 'hue_order', mode='before')
    @classmethod
    def stringify_levels(cls, v):
        if isinstance(v, (list, tuple)):
            return [str(level) for level in v]
        return v


# --- helpers -------------------------------------------------------------------

def _require(df: pd.DataFrame, columns: Sequence[Optional[str]], chart: str) -> None:
    wanted = [c for c in columns if c is not None]
    missing = [c for c in wanted if c not in df.columns]
    if missing:
        raise RenderError(
            f"{chart} chart needs column(s) {missing}",
            error_code="RENDER_001",
            context={"chart": chart, "expected_columns": wanted, "actual_columns": list(map(str, df.columns))}
        )


def _natural_key(value: Any) -> List[Any]:
    # "5min" sorts before "10min"; even/odd positions are always text/number.
    return [int(token) if token.isdigit() else token.lower() for token in re.split(r"(\d+)", str(value))]


def ordered_levels(values: pd.Series, order: Optional[Sequence[str]] = None) -> List[Any]:
    """
    Distinct non-missing levels of ``values``: those named in ``order`` first (in that
    order), then the rest in natural order.

    Rows with a missing level have no position on the chart; they are left out and
    logged at WARNING.
    """
    missing = int(values.isna().sum())
    if missing:
        logger.warning(f"{missing} row(s) with a missing '{values.name}' level are not drawn")

    present = list(pd.unique(values.dropna()))
    if not order:
        return sorted(present, key=_natural_key)

    by_text = {str(level): level for level in present}
    ordered = [by_text[name] for name in order if name in by_text]
    named = set(order)
    rest = [level for level in present if str(level) not in named]
    return ordered + sorted(rest, key=_natural_key)


def level_colors(levels: Sequence[Any], style: 'PlotStyle') -> Dict[Any, Any]:
    """Colour per level: ``style.palette`` where given, the default palette otherwise."""
    defaults = sns.color_palette(style.default_palette, max(len(levels), 1))
    return {
        level: style.palette.get(str(level), defaults[index % len(defaults)])
        for index, level in enumerate(levels)
    }


def _label(level: Any, style: PlotStyle) -> str:
    return style.labels.get(str(level), str(level))


def _new_figure(style: PlotStyle, ncols: int = 1, nrows: int = 1) -> Tuple[Figure, List[Any]]:
    # Axes are returned row by row.
    with sns.axes_style("ticks"):
        fig, axes = plt.subplots(nrows, ncols, figsize=style.figsize, sharey=True, squeeze=False)
    return fig, list(axes.flat)


def _set_xticks(ax, levels: Sequence[Any], style: PlotStyle) -> None:
    ax.set_xticks(np.arange(len(levels)))
    ax.set_xticklabels([_label(level, style) for level in levels])
    if style.rotate_xticks:
        plt.setp(ax.get_xticklabels(), rotation=style.rotate_xticks, ha="right", rotation_mode="anchor")


def _add_legend(ax, colors: Dict[Any, Any], style: PlotStyle, title: str, kind: str = "patch") -> None:
    if not style.show_legend or not colors:
        return
    if kind == "line":
        handles = [Line2D([0], [0], color=c, linewidth=style.linewidth, marker="o") for c in colors.values()]
    else:
        handles = [Patch(facecolor=c, edgecolor="black") for c in colors.values()]
    legend = ax.legend(
        handles,
        [_label(level, style) for level in colors],
        title=style.legend_title or title,
        frameon=True,
    )
    legend.get_frame().set_edgecolor("black")


def _errorbars(ax, xs: np.ndarray, ys: np.ndarray, errors: np.ndarray, style: PlotStyle, color="black") -> None:
    drawable = ~np.isnan(errors) & ~np.isnan(ys)
    if drawable.any():
        ax.errorbar(
            xs[drawable], ys[drawable], yerr=errors[drawable],
            fmt="none", ecolor=color, capsize=style.capsize, elinewidth=1,
        )


def save_figure(fig: Figure, output_path: PathLike, dpi: int = 150) -> Path:
    """Save ``fig`` to ``output_path`` (format from the suffix), creating parent directories."""
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=dpi, bbox_inches="tight")
    logger.info(f"Saved chart to {path}")
    return path


def _finish(fig: Figure, axes: List[Any], style: PlotStyle, x: str, y: str,
            output_path: Optional[PathLike], ncols: int = 1) -> Figure:
    xlabel = style.xlabel if style.xlabel is not None else x
    ylabel = style.ylabel if style.ylabel is not None else y
    nrows = len(axes) // ncols
    for index, ax in enumerate(axes):
        sns.despine(ax=ax)
        row, col = divmod(index, ncols)
        ax.set_xlabel(xlabel if row == nrows - 1 else "")
        ax.set_ylabel(ylabel if col == 0 else "")

    if style.title:
        if len(axes) > 1:
            fig.suptitle(style.title, fontweight="bold")
        else:
            axes[0].set_title(style.title, fontweight="bold")

    if style.caption:
        fig.text(0.01, 0.01, style.caption, ha="left", va="bottom", fontstyle="italic", fontsize="small")
        fig.tight_layout(rect=(0, 0.05, 1, 1))
    else:
        fig.tight_layout()

    if output_path is not None:
        save_figure(fig, output_path, dpi=style.dpi)
    return fig


def _positions(values: pd.Series, levels: Sequence[Any]) -> np.ndarray:
    lookup = {level: index for index, level in enumerate(levels)}
    return np.array([lookup[v] for v in values], dtype=float)


# --- charts --------------------------------------------------------------------

def bar_chart(
    summary: pd.DataFrame,
    x: str,
    y: str,
    sd: Optional[str] = None,
    color: Optional[str] = None,
    style: Optional[PlotStyle] = None,
    output_path: Optional[PathLike] = None,
) -> Figure:
    """
    Bar chart of a summary table with optional ±sd error bars.

    Args:
        summary: One row per bar
        x: Categorical column on the x axis
        y: Bar height column (usually the mean)
        sd: Standard deviation column; NaN means no error bar for that bar
        color: Column mapped to bar colour; equal to ``x`` colours each bar,
            another column dodges bars within each x level
        style: Presentation settings
        output_path: Save the figure here when given

    Raises:
        RenderError: Missing columns (RENDER_001) or more than one row per bar (RENDER_003)
    """
    style = style or PlotStyle()
    _require(summary, [x, y, sd, color], "bar")

    x_levels = ordered_levels(summary[x], style.order)
    hue = color if color is not None and color != x else None
    hue_levels = ordered_levels(summary[hue], style.hue_order) if hue else [None]
    if hue:
        colors = level_colors(hue_levels, style)
    elif color:
        colors = level_colors(x_levels, style)
    else:
        colors = {}

    fig, axes = _new_figure(style)
    ax = axes[0]
    positions = np.arange(len(x_levels), dtype=float)
    width = style.bar_width / len(hue_levels)

    for index, level in enumerate(hue_levels):
        subset = summary if hue is None else summary[summary[hue] == level]
        subset = subset[subset[x].isin(x_levels)]
        if subset[x].duplicated().any():
            raise RenderError(
                f"bar chart needs one row per bar; '{x}' repeats" + (f" within '{hue}'" if hue else ""),
                error_code="RENDER_003",
                context={"x": x, "color": color}
            )

        indexed = subset.set_index(x)
        heights = indexed[y].reindex(x_levels).to_numpy(dtype=float)
        xs = positions + (index - (len(hue_levels) - 1) / 2) * width

        if hue:
            bar_colors = colors[level]
        elif color:
            bar_colors = [colors[lvl] for lvl in x_levels]
        else:
            bar_colors = style.color

        ax.bar(xs, heights, width=width, color=bar_colors, edgecolor="black", linewidth=0.5)
        if sd is not None:
            errors = indexed[sd].reindex(x_levels).to_numpy(dtype=float)
            _errorbars(ax, xs, heights, errors, style)

    _set_xticks(ax, x_levels, style)
    if colors:
        _add_legend(ax, colors, style, title=color, kind="patch")

    logger.debug(f"Drew bar chart of {y} by {x} ({len(x_levels)} level(s))")
    return _finish(fig, axes, style, x, y, output_path)


def line_chart(
    summary: pd.DataFrame,
    x: str,
    y: str,
    group: Optional[str] = None,
    sd: Optional[str] = None,
    points: Optional[pd.DataFrame] = None,
    points_y: Optional[str] = None,
    style: Optional[PlotStyle] = None,
    output_path: Optional[PathLike] = None,
) -> Figure:
    """
    One line per group across a categorical x axis (e.g. treatment over timepoints).

    Args:
        summary: Summary table, one row per (group, x)
        x: Categorical x column
        y: Line value column (usually the mean)
        group: Column identifying each line and its colour
        sd: Optional standard deviation column drawn as error bars
        points: Optional long table whose observations are drawn as jittered dots
        points_y: Value column of ``points`` (defaults to ``y``)
        style: Presentation settings; ``seed`` fixes the jitter
        output_path: Save the figure here when given
    """
    style = style or PlotStyle()
    _require(summary, [x, y, group, sd], "line")

    x_levels = ordered_levels(summary[x], style.order)
    group_levels = ordered_levels(summary[group], style.hue_order) if group else [None]
    colors = level_colors(group_levels, style) if group else {None: style.color}

    fig, axes = _new_figure(style)
    ax = axes[0]

    if points is not None:
        points_y = points_y or y
        _require(points, [x, points_y, group], "line points")
        rng = np.random.default_rng(style.seed)
        dodge = style.bar_width / len(group_levels) if len(group_levels) > 1 else 0.0
        for index, level in enumerate(group_levels):
            subset = points if group is None else points[points[group] == level]
            subset = subset[subset[x].isin(x_levels)]
            base = _positions(subset[x], x_levels)
            offset = (index - (len(group_levels) - 1) / 2) * dodge
            jitter = rng.uniform(-style.jitter, style.jitter, size=len(base)) if style.jitter else 0.0
            ax.scatter(
                base + offset + jitter, subset[points_y].to_numpy(dtype=float),
                s=style.point_size, color=colors[level], alpha=0.6, linewidths=0,
            )

    for level in group_levels:
        subset = summary if group is None else summary[summary[group] == level]
        subset = subset[subset[x].isin(x_levels)]
        xs = _positions(subset[x], x_levels)
        order = np.argsort(xs, kind="stable")
        xs = xs[order]
        ys = subset[y].to_numpy(dtype=float)[order]
        ax.plot(xs, ys, color=colors[level], linewidth=style.linewidth, marker="o", markersize=4)
        if sd is not None:
            errors = subset[sd].to_numpy(dtype=float)[order]
            _errorbars(ax, xs, ys, errors, style, color=colors[level])

    _set_xticks(ax, x_levels, style)
    if group:
        _add_legend(ax, colors, style, title=group, kind="line")

    logger.debug(f"Drew line chart of {y} by {x} with {len(group_levels)} line(s)")
    return _finish(fig, axes, style, x, y, output_path)


def box_chart(
    long: pd.DataFrame,
    x: str,
    y: str,
    color: Optional[str] = None,
    facet: Optional[str] = None,
    facet_row: Optional[str] = None,
    show_points: bool = False,
    summary: Optional[pd.DataFrame] = None,
    summary_y: Optional[str] = None,
    style: Optional[PlotStyle] = None,
    output_path: Optional[PathLike] = None,
) -> Figure:
    """
    Box plots of the raw observations per x level.

    Args:
        long: Long table, one row per observation
        x: Categorical x column
        y: Observation value column
        color: Column mapped to box colour (boxes are dodged when it differs from x)
        facet: Column splitting the chart into side-by-side panels
        facet_row: Column splitting the chart into stacked panel rows; with
            ``facet`` this gives one panel per (row level, column level)
        show_points: Overlay jittered observations (outlier markers are then hidden)
        summary: Optional summary table drawn as a mean line per colour level
        summary_y: Mean column of ``summary`` (defaults to ``y``)
        style: Presentation settings
        output_path: Save the figure here when given
    """
    style = style or PlotStyle()
    _require(long, [x, y, color, facet, facet_row], "box")

    x_levels = [str(level) for level in ordered_levels(long[x], style.order)]
    hue_levels = [str(level) for level in ordered_levels(long[color], style.hue_order)] if color else []
    colors = level_colors(hue_levels, style) if color else {}
    col_levels = ordered_levels(long[facet]) if facet else [None]
    row_levels = ordered_levels(long[facet_row]) if facet_row else [None]
    dodge = bool(color) and color != x

    # Seaborn treats numeric hue as continuous; plot on string levels instead.
    data = long.copy()
    data[x] = data[x].astype(str)
    if color and color != x:
        data[color] = data[color].astype(str)

    fig, axes = _new_figure(style, ncols=len(col_levels), nrows=len(row_levels))
    panels = [(row_level, col_level) for row_level in row_levels for col_level in col_levels]

    for ax, (row_level, col_level) in zip(axes, panels):
        selected = pd.Series(True, index=long.index)
        if facet_row is not None:
            selected &= long[facet_row] == row_level
        if facet is not None:
            selected &= long[facet] == col_level
        panel = data[selected]

        mapping = dict(data=panel, x=x, y=y, order=x_levels, ax=ax)
        if color:
            mapping.update(hue=color, hue_order=hue_levels, palette=colors, dodge=dodge)
        else:
            mapping.update(color=style.color)

        if panel.empty:
            logger.debug(f"No observations for panel ({row_level}, {col_level})")
        else:
            sns.boxplot(**mapping, showfliers=not show_points, legend=False)
            if show_points:
                sns.stripplot(
                    **mapping, jitter=style.jitter if style.jitter else False,
                    size=4, alpha=0.6, edgecolor="none", legend=False,
                )

        if summary is not None:
            panel_filters = [(facet_row, row_level), (facet, col_level)]
            _overlay_means(ax, summary, x, summary_y or y, color, panel_filters, x_levels, colors, style)

        _set_xticks(ax, x_levels, style)
        titles = [str(level) for column, level in ((facet_row, row_level), (facet, col_level)) if column]
        if titles:
            ax.set_title(" | ".join(titles))

    if color:
        _add_legend(axes[-1], colors, style, title=color, kind="patch")

    logger.debug(f"Drew box chart of {y} by {x} in {len(panels)} panel(s)")
    return _finish(fig, axes, style, x, y, output_path, ncols=len(col_levels))


def _overlay_means(ax, summary, x, y, color, panel_filters, x_levels, colors, style) -> None:
    _require(summary, [x, y, color], "box summary")
    subset = summary
    for column, level in panel_filters:
        if column is not None and column in summary.columns:
            subset = subset[subset[column] == level]

    for level in (colors or {None: None}):
        part = subset if level is None else subset[subset[color].astype(str) == level]
        labels = part[x].astype(str)
        part = part[labels.isin(x_levels)]
        xs = _positions(part[x].astype(str), x_levels)
        order = np.argsort(xs, kind="stable")
        ys = part[y].to_numpy(dtype=float)[order]
        line_color = colors.get(level, "black") if colors else "black"
        ax.plot(xs[order], ys, color=line_color, linewidth=style.linewidth)


CHART_KINDS = {
    "bar": bar_chart,
    "line": line_chart,
    "box": box_chart,
}


def render_chart(kind: str, data: pd.DataFrame, **kwargs) -> Figure:
    """
    Dispatch to the chart function registered for ``kind``.

    Raises:
        RenderError: Unknown kind (RENDER_002)
    """
    try:
        renderer = CHART_KINDS[kind]
    except KeyError:
        raise RenderError(
            f"Unsupported chart kind '{kind}'",
            error_code="RENDER_002",
            context={"supported": sorted(CHART_KINDS)}
        ) from None
    return renderer(data, **kwargs)


__all__ = [
    'PlotStyle',
    'bar_chart',
    'line_chart',
    'box_chart',
    'render_chart',
    'save_figure',
    'ordered_levels',
    'level_colors',
    'CHART_KINDS',
]
