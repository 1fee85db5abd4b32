from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from catviz.core.config import (
    AggregationMode,
    ArrangementPolicy,
    OrderingPolicy,
    PlanOptions,
    ValueFormat,
)
from catviz.core.errors import IncompatibleArrangement, InvalidAggregationRequest
from catviz.core.logging import get_logger
from catviz.layout.scales import assign_colors, default_precision, format_value, value_ticks
from catviz.stats.aggregate import AggregatedTable, canonical_levels

logger = get_logger(__name__)


@dataclass(frozen=True)
class ChartBar:
    """One positioned bar.

    ``label`` is the formatted cell value by default, or the underlying
    record count when ``PlanOptions.label_with_count`` is set. ``count`` always
    carries the record count.
    """

    primary: Any
    secondary: Optional[Any]
    slot: int
    height: float
    # Bar centre along the category axis; slot i is centred at i.
    x: float
    width: float
    # Distance from the left edge of the slot's bar group (dodged bars).
    offset: float
    # Cumulative height of the bars stacked below this one.
    stack_offset: float
    count: int
    label: Optional[str]
    fill: str

    @property
    def top(self) -> float:
        return self.stack_offset + self.height

    @property
    def left(self) -> float:
        return self.x - self.width / 2.0

    @property
    def right(self) -> float:
        return self.x + self.width / 2.0


@dataclass(frozen=True)
class AxisSpec:
    title: str
    range: Tuple[float, float]
    ticks: Tuple[float, ...]
    tick_labels: Tuple[str, ...]


@dataclass(frozen=True)
class ChartScene:
    """Renderer-independent description of a bar chart."""

    bars: Tuple[ChartBar, ...]
    categories: Tuple[Any, ...]
    category_axis: AxisSpec
    value_axis: AxisSpec
    legend: Tuple[Tuple[Any, str], ...]
    legend_title: Optional[str]
    title: str
    flipped: bool
    mode: AggregationMode
    arrangement: ArrangementPolicy

    def bars_for(self, primary: Any) -> List[ChartBar]:
        return [b for b in self.bars if b.primary == primary]


def _value_title(table: AggregatedTable) -> str:
    if table.mode == AggregationMode.count:
        return "count"
    if table.mode == AggregationMode.relative_frequency:
        return "proportion"
    if table.mode == AggregationMode.joint_probability:
        return f"P({table.primary}, {table.secondary})"
    return f"P({table.secondary} | {table.primary})"


def order_categories(table: AggregatedTable, ordering: OrderingPolicy) -> List[Any]:
    """Primary categories in presentation order.

    ``descending_frequency`` sorts by the primary total (summed over secondary
    groups); the sort is stable so ties keep dataset order.
    """

    levels = list(table.primary_levels)
    if ordering == OrderingPolicy.dataset_order:
        return levels
    if ordering == OrderingPolicy.descending_frequency:
        totals = table.primary_totals()
        return sorted(levels, key=lambda p: -totals[p])

    ascending = list(canonical_levels(levels))
    if ordering == OrderingPolicy.ascending_value:
        return ascending
    return ascending[::-1]


def plan(
    table: AggregatedTable,
    ordering: OrderingPolicy = OrderingPolicy.dataset_order,
    arrangement: ArrangementPolicy = ArrangementPolicy.none,
    options: Optional[PlanOptions] = None,
) -> ChartScene:
    """Lay out an aggregated table as positioned, coloured and labelled bars.

    Parameters
    ----------
    table:
        Output of :func:`catviz.stats.aggregate.aggregate`.
    ordering:
        Order of the primary categories along the category axis.
    arrangement:
        ``stacked`` or ``dodged`` for tables with a secondary category,
        ``none`` to draw every cell at its slot centre.
    options:
        Bar width, labels, value format, axis range, orientation and titles.
    """

    options = options or PlanOptions()
    try:
        ordering = OrderingPolicy(ordering)
        arrangement = ArrangementPolicy(arrangement)
    except ValueError as e:
        raise InvalidAggregationRequest(f"Unknown layout policy: {e}") from e

    if arrangement != ArrangementPolicy.none and not table.has_secondary:
        raise IncompatibleArrangement(
            f"Arrangement {arrangement.value} needs a secondary category; "
            f"table only has '{table.primary}'."
        )

    categories = order_categories(table, ordering)
    legend = assign_colors(table.secondary_levels, options.palette) if table.has_secondary else []
    colors: Dict[Any, str] = dict(legend)

    is_count = table.mode == AggregationMode.count
    precision = (
        options.precision
        if options.precision is not None
        else default_precision(options.value_format, table.mode)
    )

    def _label(value: float, count: int) -> Optional[str]:
        if not options.show_value_labels:
            return None
        if options.label_with_count:
            return str(count)
        return format_value(value, options.value_format, precision=precision, is_count=is_count)

    bars: List[ChartBar] = []
    for slot, p in enumerate(categories):
        if not table.has_secondary:
            value = table.cells[(p,)]
            bars.append(
                ChartBar(
                    primary=p,
                    secondary=None,
                    slot=slot,
                    height=value,
                    x=float(slot),
                    width=options.bar_width,
                    offset=0.0,
                    stack_offset=0.0,
                    count=table.counts[(p,)],
                    label=_label(value, table.counts[(p,)]),
                    fill=options.fill,
                )
            )
            continue

        groups = [s for s in table.secondary_levels if (p, s) in table.cells]
        n = len(groups)
        cumulative = 0.0
        for i, s in enumerate(groups):
            value = table.cells[(p, s)]
            if arrangement == ArrangementPolicy.dodged:
                width = options.bar_width / n
                offset = i * width
                x = slot - options.bar_width / 2.0 + offset + width / 2.0
            else:
                width = options.bar_width
                offset = 0.0
                x = float(slot)
            stack_offset = cumulative if arrangement == ArrangementPolicy.stacked else 0.0
            bars.append(
                ChartBar(
                    primary=p,
                    secondary=s,
                    slot=slot,
                    height=value,
                    x=x,
                    width=width,
                    offset=offset,
                    stack_offset=stack_offset,
                    count=table.counts[(p, s)],
                    label=_label(value, table.counts[(p, s)]),
                    fill=colors[s],
                )
            )
            cumulative += value

    max_top = max((b.top for b in bars), default=0.0)
    value_range, ticks = value_ticks(max_top, axis_range=options.axis_range, is_count=is_count)
    tick_labels = tuple(_tick_label(t, options.value_format, options.precision, is_count) for t in ticks)

    category_axis = AxisSpec(
        title=options.x_label if options.x_label is not None else table.primary,
        range=(-0.5, len(categories) - 0.5),
        ticks=tuple(float(i) for i in range(len(categories))),
        tick_labels=tuple(str(c) for c in categories),
    )
    value_axis = AxisSpec(
        title=options.y_label if options.y_label is not None else _value_title(table),
        range=value_range,
        ticks=tuple(ticks),
        tick_labels=tick_labels,
    )

    legend_title = None
    if table.has_secondary:
        legend_title = options.legend_title if options.legend_title is not None else table.secondary

    logger.debug(
        "Planned %d bars over %d categories (%s, %s)",
        len(bars),
        len(categories),
        ordering.value,
        arrangement.value,
    )
    return ChartScene(
        bars=tuple(bars),
        categories=tuple(categories),
        category_axis=category_axis,
        value_axis=value_axis,
        legend=tuple(legend),
        legend_title=legend_title,
        title=options.title,
        flipped=options.flip,
        mode=table.mode,
        arrangement=arrangement,
    )


def _tick_label(tick: float, value_format: ValueFormat, precision: Optional[int], is_count: bool) -> str:
    if value_format == ValueFormat.percentage:
        return format_value(tick, value_format, precision=precision or 0)
    if is_count and float(tick).is_integer():
        return str(int(tick))
    if precision is not None:
        return format_value(tick, value_format, precision=precision)
    return f"{tick:g}"
