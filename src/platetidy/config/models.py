"""
Pydantic configuration models for platetidy pipelines.

A pipeline configuration describes one dataset end to end: where the workbook is
and how its cells are laid out, how to reshape and split the table, what to group
by, and which charts to draw. It replaces per-dataset scripts that differed only in
cell ranges, column names and palettes.

Every stage reads its settings from these models; no stage reads module-level
state.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from platetidy.analysis.summary import DEFAULT_MEAN_NAME, DEFAULT_SD_NAME
from platetidy.io.transformers import DEFAULT_NAMES_TO, DEFAULT_VALUES_TO
from platetidy.plotting.renderers import PlotStyle
from platetidy.schema.models import SheetLayout

ChartKind = Literal["bar", "line", "box"]
PlotData = Literal["summary", "long"]


def _as_list(v):
    if isinstance(v, str):
        return [v]
    return v


class DatasetConfig(BaseModel):
    """
    Where the data lives and how to read it.

    Attributes:
        path: Workbook or CSV path; relative paths resolve against the pipeline's base directory
        layout: Sheet, cell range and column schema of the data block
    """

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    path: str = Field(
        description="Path to the .xlsx/.xlsm or .csv file",
        json_schema_extra={"example": "lps_testdata.xlsx"}
    )
    layout: SheetLayout = Field(description="Layout of the data block")


class SplitConfig(BaseModel):
    """
    Split a packed key column of the long table into several key columns.

    ``{column: condition, into: [treatment, timepoint]}`` turns
    ``"Dex_2um_10min"`` into ``treatment="Dex_2um"`` and ``timepoint="10min"``.
    """

    model_config = ConfigDict(extra="forbid")

    column: str
    into: List[str] = Field(min_length=2)
    sep: str = Field(default="_", min_length=1)
    from_right: bool = True


class InteractionConfig(BaseModel):
    """Combine key columns into one label column (``"N2:empty"``) for colour grouping."""

    model_config = ConfigDict(extra="forbid")

    columns: List[str] = Field(min_length=2)
    sep: str = ":"
    name: Optional[str] = None

    @property
    def target(self) -> str:
        return self.name or self.sep.join(self.columns)


class ReshapeConfig(BaseModel):
    """
    Wide-to-long settings.

    Attributes:
        value_columns: Columns to reshape; None means every value column of the layout
        names_to: Column receiving the originating column name; null drops it
        values_to: Measurement column name
    """

    model_config = ConfigDict(extra="forbid")

    value_columns: Optional[List[str]] = None
    names_to: Optional[str] = DEFAULT_NAMES_TO
    values_to: str = DEFAULT_VALUES_TO

    @field_validator('value_columns', mode='before')
    @classmethod
    def validate_value_columns(cls, v):
        return _as_list(v)


class SummaryConfig(BaseModel):
    """
    Grouping and output names for the mean/sd summary.

    ``value_column`` defaults to the reshape's ``values_to`` (see ``PipelineConfig``).
    """

    model_config = ConfigDict(extra="forbid")

    by: List[str] = Field(min_length=1, description="Group key column(s)")
    value_column: Optional[str] = None
    mean_name: str = DEFAULT_MEAN_NAME
    sd_name: str = DEFAULT_SD_NAME

    @field_validator('by', mode='before')
    @classmethod
    def validate_by(cls, v):
        return _as_list(v)


class PlotConfig(BaseModel):
    """
    One chart of the pipeline.

    Attributes:
        name: Unique name; keys ``PipelineResult.figures``
        kind: bar, line or box
        data: Table to draw from; defaults to ``long`` for box charts and ``summary`` otherwise
        x: Categorical x column
        y: Value column; defaults to the summary mean (summary data) or the
            measurement column (long data)
        sd: Standard deviation column; defaults to the summary sd when ``error_bars``
        error_bars: Draw ±sd error bars for bar and line charts
        color: Colour column (bar and box charts)
        group: Line identity column (line charts)
        facet: Panel column (box charts); panels sit side by side
        facet_row: Panel row column (box charts); with ``facet`` it gives a grid
        show_points: Draw raw observations (line and box charts)
        overlay_summary: Draw the group means as lines over a box chart
        style: Presentation settings
        output: File to save the chart to; relative to the pipeline's base directory
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    kind: ChartKind
    data: Optional[PlotData] = None
    x: str
    y: Optional[str] = None
    sd: Optional[str] = None
    error_bars: bool = True
    color: Optional[str] = None
    group: Optional[str] = None
    facet: Optional[str] = None
    facet_row: Optional[str] = None
    show_points: bool = False
    overlay_summary: bool = False
    style: PlotStyle = Field(default_factory=PlotStyle)
    output: Optional[str] = None

    @model_validator(mode='after')
    def validate_kind_options(self):
        if self.data is None:
            self.data = "long" if self.kind == "box" else "summary"

        if self.kind == "box" and self.data != "long":
            raise ValueError(f"Plot '{self.name}': box charts draw observations and need data: long")
        if self.group is not None and self.kind != "line":
            raise ValueError(f"Plot '{self.name}': 'group' only applies to line charts; use 'color'")
        if self.color is not None and self.kind == "line":
            raise ValueError(f"Plot '{self.name}': line charts colour by 'group'")
        if self.facet is not None and self.kind != "box":
            raise ValueError(f"Plot '{self.name}': 'facet' only applies to box charts")
        if self.facet_row is not None and self.kind != "box":
            raise ValueError(f"Plot '{self.name}': 'facet_row' only applies to box charts")
        if self.overlay_summary and self.kind != "box":
            raise ValueError(f"Plot '{self.name}': 'overlay_summary' only applies to box charts")
        if self.show_points and self.kind == "bar":
            raise ValueError(f"Plot '{self.name}': bar charts do not draw points")
        return self


class PipelineConfig(BaseModel):
    """
    Complete configuration of one load, reshape, summarize and render run.

    Example:
        >>> config = PipelineConfig.model_validate({
        ...     "dataset": {"path": "lps.xlsx", "layout": {
        ...         "cell_range": "E29:F32", "columns": [{"name": "no_beads"}, {"name": "beads"}]}},
        ...     "reshape": {},
        ...     "summary": {"by": "condition"},
        ... })
        >>> config.summary.value_column
        'fluorescence_intensity'
    """

    model_config = ConfigDict(extra="forbid")

    dataset: DatasetConfig
    reshape: Optional[ReshapeConfig] = Field(
        default=None,
        description="Wide-to-long settings; omit when the loaded table is already long"
    )
    split: Optional[SplitConfig] = None
    interaction: Optional[InteractionConfig] = None
    summary: SummaryConfig
    plots: List[PlotConfig] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_pipeline(self):
        names = [plot.name for plot in self.plots]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Plot names must be unique, duplicated: {duplicates}")

        if self.summary.value_column is None:
            if self.reshape is not None:
                self.summary.value_column = self.reshape.values_to
            else:
                values = self.dataset.layout.value_columns
                if len(values) != 1:
                    raise ValueError(
                        "summary.value_column is required when there is no reshape step "
                        f"and the layout has {len(values)} value columns"
                    )
                self.summary.value_column = values[0]
        return self

    @property
    def value_column(self) -> str:
        """Measurement column of the long table."""
        return self.summary.value_column


__all__ = [
    'DatasetConfig',
    'SplitConfig',
    'InteractionConfig',
    'ReshapeConfig',
    'SummaryConfig',
    'PlotConfig',
    'PipelineConfig',
]
