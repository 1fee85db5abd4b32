from __future__ import annotations

import math
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np

from catviz.core.config import AggregationMode, AxisRange, ValueFormat


def default_precision(value_format: ValueFormat, mode: AggregationMode) -> int:
    """Percentages show whole numbers; raw probabilities keep 2 decimals."""

    if value_format == ValueFormat.percentage or mode == AggregationMode.count:
        return 0
    return 2


def format_value(
    value: float,
    value_format: ValueFormat,
    *,
    precision: int,
    is_count: bool = False,
) -> str:
    if value_format == ValueFormat.percentage:
        return f"{value * 100:.{precision}f}%"
    if is_count:
        return str(int(round(value)))
    return f"{value:.{precision}f}"


def nice_step(span: float, target_intervals: int = 5) -> float:
    """Round ``span / target_intervals`` up to 1, 2, 2.5 or 5 times a power of ten."""

    if span <= 0:
        return 1.0
    raw = span / target_intervals
    magnitude = 10 ** math.floor(math.log10(raw))
    for m in (1.0, 2.0, 2.5, 5.0, 10.0):
        if raw <= m * magnitude + 1e-12:
            return m * magnitude
    return 10.0 * magnitude


def value_ticks(
    max_value: float,
    *,
    axis_range: Optional[AxisRange] = None,
    is_count: bool = False,
) -> Tuple[Tuple[float, float], List[float]]:
    """Return ``((lo, hi), ticks)`` for the value axis.

    An explicit ``axis_range`` is used as given. Otherwise the axis starts at
    zero and ends on the first tick at or above ``max_value``.
    """

    if axis_range is not None:
        lo, hi, step = axis_range.min, axis_range.max, axis_range.step
    else:
        lo = 0.0
        step = nice_step(max_value)
        if is_count:
            step = max(1.0, math.ceil(step))
        hi = step * math.ceil(max_value / step - 1e-9) if max_value > 0 else step

    n = int(math.floor((hi - lo) / step + 1e-9))
    ticks = [float(round(t, 10)) for t in lo + step * np.arange(n + 1)]
    return (float(lo), float(hi)), ticks


def assign_colors(levels: Sequence[Any], palette: Sequence[str]) -> List[Tuple[Any, str]]:
    """Pair each level with a palette colour, cycling when levels outnumber colours."""

    return [(level, palette[i % len(palette)]) for i, level in enumerate(levels)]
