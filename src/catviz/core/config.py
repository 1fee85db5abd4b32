from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, model_validator


class AggregationMode(str, Enum):
    count = "count"
    relative_frequency = "relative_frequency"
    joint_probability = "joint_probability"
    conditional_probability = "conditional_probability"

    @property
    def needs_secondary(self) -> bool:
        return self in (AggregationMode.joint_probability, AggregationMode.conditional_probability)


class OrderingPolicy(str, Enum):
    dataset_order = "dataset_order"
    ascending_value = "ascending_value"
    descending_value = "descending_value"
    descending_frequency = "descending_frequency"


class ArrangementPolicy(str, Enum):
    none = "none"
    stacked = "stacked"
    dodged = "dodged"


class ValueFormat(str, Enum):
    raw = "raw"
    percentage = "percentage"


class ChartTheme(str, Enum):
    grey = "grey"
    minimal = "minimal"
    classic = "classic"
    bw = "bw"


# Hue palette of the grammar-of-graphics default discrete fill scale.
DEFAULT_PALETTE = [
    "#F8766D",
    "#00BFC4",
    "#7CAE00",
    "#C77CFF",
    "#E68613",
    "#00A9FF",
    "#CD9600",
    "#FF61CC",
]


class AxisRange(BaseModel):
    """Explicit value axis range with a tick step."""

    min: float = 0.0
    max: float
    step: float

    @model_validator(mode="after")
    def _validate(self) -> "AxisRange":
        if self.max <= self.min:
            raise ValueError(f"Axis range max ({self.max}) must be greater than min ({self.min}).")
        if self.step <= 0:
            raise ValueError(f"Axis tick step must be positive, got {self.step}.")
        return self


class PlanOptions(BaseModel):
    """Presentation options consumed by :func:`catviz.layout.planner.plan`."""

    # Fraction of the category slot covered by bars.
    bar_width: float = Field(default=0.5, gt=0.0, le=1.0)
    value_format: ValueFormat = ValueFormat.raw

    # Decimal places for labels and ticks. None picks the per-format default.
    precision: Optional[int] = Field(default=None, ge=0)

    show_value_labels: bool = False
    # Label bars with the underlying record count instead of the cell value.
    label_with_count: bool = False
    axis_range: Optional[AxisRange] = None

    # Swap orientation: categories on the vertical axis.
    flip: bool = False

    title: str = ""
    x_label: Optional[str] = None
    y_label: Optional[str] = None
    legend_title: Optional[str] = None

    fill: str = "#595959"
    palette: List[str] = Field(default_factory=lambda: list(DEFAULT_PALETTE), min_length=1)


class ChartSpec(BaseModel):
    """One chart of a report: what to aggregate and how to lay it out."""

    name: str
    primary: str
    secondary: Optional[str] = None
    mode: AggregationMode = AggregationMode.count
    ordering: OrderingPolicy = OrderingPolicy.dataset_order
    arrangement: ArrangementPolicy = ArrangementPolicy.none
    options: PlanOptions = Field(default_factory=PlanOptions)
    theme: ChartTheme = ChartTheme.grey

    @model_validator(mode="after")
    def _validate(self) -> "ChartSpec":
        if self.mode.needs_secondary and self.secondary is None:
            raise ValueError(f"Chart '{self.name}': mode {self.mode.value} requires a secondary key.")
        if self.arrangement != ArrangementPolicy.none and self.secondary is None:
            raise ValueError(
                f"Chart '{self.name}': arrangement {self.arrangement.value} requires a secondary key."
            )
        return self


class ReportConfig(BaseModel):
    """Top-level report config: a dataset and the charts drawn from it."""

    project_name: str = "mtcars"

    # CSV/Parquet path. None uses the bundled mtcars dataset.
    dataset: Optional[str] = None

    # Per-column value relabelling, e.g. {"am": {0: "automatic", 1: "manual"}}.
    category_labels: Dict[str, Dict[Any, str]] = Field(default_factory=dict)

    charts: List[ChartSpec]

    @model_validator(mode="after")
    def _validate(self) -> "ReportConfig":
        names = [c.name for c in self.charts]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise ValueError(f"Duplicate chart names: {dupes}")
        return self

    @classmethod
    def from_yaml(cls, path: str | Path) -> "ReportConfig":
        path = Path(path)
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        cfg = cls.model_validate(data)
        # Relative dataset paths resolve against the config file.
        if cfg.dataset is not None and not Path(cfg.dataset).is_absolute():
            cfg = cfg.model_copy(update={"dataset": str(path.parent / cfg.dataset)})
        return cfg

    def chart_names(self) -> List[str]:
        return [c.name for c in self.charts]

    def get_chart(self, name: str) -> ChartSpec:
        for c in self.charts:
            if c.name == name:
                return c
        raise KeyError(f"Unknown chart '{name}'.")
