"""Chart rendering: bar, line and box charts from summary and long tables."""

from platetidy.plotting.renderers import (
    CHART_KINDS,
    PlotStyle,
    bar_chart,
    box_chart,
    line_chart,
    render_chart,
    save_figure,
)

__all__ = [
    'CHART_KINDS',
    'PlotStyle',
    'bar_chart',
    'box_chart',
    'line_chart',
    'render_chart',
    'save_figure',
]
