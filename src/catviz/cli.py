from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import pandas as pd
import typer
from rich.console import Console
from rich.table import Table

from catviz.core.config import (
    AggregationMode,
    ArrangementPolicy,
    ChartTheme,
    OrderingPolicy,
    PlanOptions,
    ReportConfig,
    ValueFormat,
)
from catviz.core.data import resolve_dataset
from catviz.core.errors import CatvizError
from catviz.core.logging import configure_logging
from catviz.layout.planner import ChartScene, plan
from catviz.report.pipeline import build_report
from catviz.stats.aggregate import AggregatedTable, aggregate
from catviz.viz.bar_chart import save_bar_chart


app = typer.Typer(add_completion=False, help="Categorical frequency tables and bar charts")
console = Console()


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="DEBUG, INFO, WARNING... (default: $CATVIZ_LOG_LEVEL or WARNING)"
    ),
):
    configure_logging(log_level)


def _load_df(data: Optional[str], config: Optional[str]) -> pd.DataFrame:
    """Dataset from --data, else from --config, else the bundled mtcars data."""

    if config is None:
        return resolve_dataset(data)
    cfg = ReportConfig.from_yaml(config)
    return resolve_dataset(data or cfg.dataset, labels=cfg.category_labels)


def _print_dataframe(df: pd.DataFrame, title: str, max_rows: int = 40, index: bool = False) -> None:
    if index:
        df = df.reset_index()
    tbl = Table(title=title, show_lines=False)
    for c in df.columns:
        tbl.add_column(str(c))
    for row in df.head(max_rows).itertuples(index=False):
        tbl.add_row(*[str(v) for v in row])
    console.print(tbl)
    if len(df) > max_rows:
        console.print(f"(showing first {max_rows} of {len(df)} rows)")


def _print_scene(scene: ChartScene, title: str) -> None:
    tbl = Table(title=title)
    for col in ("slot", "primary", "secondary", "height", "x", "width", "stack_offset", "count", "label"):
        tbl.add_column(col)
    for b in scene.bars:
        tbl.add_row(
            str(b.slot),
            str(b.primary),
            "" if b.secondary is None else str(b.secondary),
            f"{b.height:.4g}",
            f"{b.x:.3f}",
            f"{b.width:.3f}",
            f"{b.stack_offset:.4g}",
            str(b.count),
            b.label or "",
        )
    console.print(tbl)
    val = scene.value_axis
    console.print(f"value axis: {val.title} {val.range} ticks={list(val.tick_labels)}")


def _aggregate_or_exit(
    df: pd.DataFrame, primary: str, secondary: Optional[str], mode: AggregationMode
) -> AggregatedTable:
    try:
        return aggregate(df, primary, secondary, mode=mode)
    except CatvizError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from e


def _plan_or_exit(
    table: AggregatedTable,
    ordering: OrderingPolicy,
    arrangement: ArrangementPolicy,
    options: PlanOptions,
) -> ChartScene:
    try:
        return plan(table, ordering, arrangement, options)
    except CatvizError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from e


@app.command("dataset")
def dataset_show(
    data: Optional[str] = typer.Option(None, "--data", help="CSV/Parquet (default: bundled mtcars)"),
    config: Optional[str] = typer.Option(None, "--config", help="Report YAML (dataset + relabelling)"),
    rows: int = typer.Option(40, "--rows"),
):
    df = _load_df(data, config)
    _print_dataframe(df, title="Dataset", max_rows=rows)
    console.print(f"{len(df)} records, {df.shape[1]} attributes")


@app.command("table")
def table_cmd(
    primary: str = typer.Option(..., "--primary", help="Primary category attribute"),
    secondary: Optional[str] = typer.Option(None, "--secondary", help="Secondary category attribute"),
    mode: AggregationMode = typer.Option(AggregationMode.count, "--mode"),
    data: Optional[str] = typer.Option(None, "--data"),
    config: Optional[str] = typer.Option(None, "--config"),
    decimals: int = typer.Option(2, "--decimals", help="Rounding for probabilities"),
    output: Optional[str] = typer.Option(None, "--output", help="If set, write the long-format table CSV"),
):
    df = _load_df(data, config)
    table = _aggregate_or_exit(df, primary, secondary, mode)

    _print_dataframe(table.to_wide(decimals=decimals), title=f"{mode.value}", index=True)

    if output:
        Path(output).parent.mkdir(parents=True, exist_ok=True)
        table.to_frame().to_csv(output, index=False)
        console.print(f"Wrote {len(table)} cells to {output}")


@app.command("plan")
def plan_cmd(
    primary: str = typer.Option(..., "--primary"),
    secondary: Optional[str] = typer.Option(None, "--secondary"),
    mode: AggregationMode = typer.Option(AggregationMode.count, "--mode"),
    ordering: OrderingPolicy = typer.Option(OrderingPolicy.dataset_order, "--ordering"),
    arrangement: ArrangementPolicy = typer.Option(ArrangementPolicy.none, "--arrangement"),
    value_format: ValueFormat = typer.Option(ValueFormat.raw, "--value-format"),
    bar_width: float = typer.Option(0.5, "--bar-width"),
    data: Optional[str] = typer.Option(None, "--data"),
    config: Optional[str] = typer.Option(None, "--config"),
):
    """Print the bar geometry of a chart without drawing it."""

    if not 0.0 < bar_width <= 1.0:
        raise typer.BadParameter("--bar-width must be in (0, 1]")

    df = _load_df(data, config)
    table = _aggregate_or_exit(df, primary, secondary, mode)
    options = PlanOptions(bar_width=bar_width, value_format=value_format, show_value_labels=True)
    scene = _plan_or_exit(table, ordering, arrangement, options)
    _print_scene(scene, title=f"{primary} ({mode.value}, {arrangement.value})")


@app.command("plot")
def plot_cmd(
    primary: str = typer.Option(..., "--primary"),
    secondary: Optional[str] = typer.Option(None, "--secondary"),
    mode: AggregationMode = typer.Option(AggregationMode.count, "--mode"),
    ordering: OrderingPolicy = typer.Option(OrderingPolicy.dataset_order, "--ordering"),
    arrangement: ArrangementPolicy = typer.Option(ArrangementPolicy.none, "--arrangement"),
    value_format: ValueFormat = typer.Option(ValueFormat.raw, "--value-format"),
    show_labels: bool = typer.Option(False, "--labels/--no-labels"),
    flip: bool = typer.Option(False, "--flip/--no-flip"),
    bar_width: float = typer.Option(0.5, "--bar-width"),
    title: str = typer.Option("", "--title"),
    theme: ChartTheme = typer.Option(ChartTheme.grey, "--theme"),
    data: Optional[str] = typer.Option(None, "--data"),
    config: Optional[str] = typer.Option(None, "--config"),
    out: str = typer.Option("plots/chart.png", "--out"),
):
    """Draw one bar chart to a PNG file."""

    if not 0.0 < bar_width <= 1.0:
        raise typer.BadParameter("--bar-width must be in (0, 1]")

    df = _load_df(data, config)
    table = _aggregate_or_exit(df, primary, secondary, mode)
    options = PlanOptions(
        bar_width=bar_width,
        value_format=value_format,
        show_value_labels=show_labels,
        flip=flip,
        title=title,
    )
    scene = _plan_or_exit(table, ordering, arrangement, options)
    out_path = save_bar_chart(scene, out_path=out, theme=theme)
    console.print(f"Wrote: {out_path}")


@app.command("report")
def report_cmd(
    config: str = typer.Option(..., "--config", help="Report YAML config"),
    out_dir: str = typer.Option("plots", "--out-dir"),
    charts: Optional[List[str]] = typer.Option(None, "--chart", help="Only build these charts"),
    render: bool = typer.Option(True, "--render/--no-render", help="Write PNGs as well as CSVs"),
):
    """Build every chart of a report config (tables + images)."""

    cfg = ReportConfig.from_yaml(config)
    unknown = [c for c in charts or [] if c not in cfg.chart_names()]
    if unknown:
        raise typer.BadParameter(f"Unknown charts: {unknown}. Available: {cfg.chart_names()}")

    try:
        artifacts = build_report(cfg, out_dir=out_dir, charts=charts, render=render)
    except CatvizError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from e

    tbl = Table(title=f"Report: {cfg.project_name}")
    tbl.add_column("chart")
    tbl.add_column("bars")
    tbl.add_column("table")
    tbl.add_column("image")
    for a in artifacts:
        tbl.add_row(a.name, str(len(a.scene.bars)), str(a.table_path), str(a.image_path or ""))
    console.print(tbl)
