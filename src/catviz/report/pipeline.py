from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import pandas as pd

from catviz.core.config import ChartSpec, ReportConfig
from catviz.core.data import resolve_dataset, validate_columns
from catviz.core.logging import get_logger
from catviz.layout.planner import ChartScene, plan
from catviz.stats.aggregate import AggregatedTable, aggregate
from catviz.viz.bar_chart import save_bar_chart

logger = get_logger(__name__)


@dataclass(frozen=True)
class ChartArtifact:
    name: str
    table: AggregatedTable
    scene: ChartScene
    image_path: Optional[Path]
    table_path: Optional[Path]


def build_chart(df: pd.DataFrame, spec: ChartSpec) -> Tuple[AggregatedTable, ChartScene]:
    """Aggregate and lay out one chart of a report."""

    table = aggregate(df, spec.primary, spec.secondary, mode=spec.mode)
    scene = plan(table, spec.ordering, spec.arrangement, spec.options)
    return table, scene


def build_report(
    cfg: ReportConfig,
    *,
    out_dir: str | Path,
    df: Optional[pd.DataFrame] = None,
    charts: Optional[Sequence[str]] = None,
    render: bool = True,
) -> List[ChartArtifact]:
    """Run every chart of ``cfg`` (or the named subset) and write its outputs.

    Each chart produces ``<name>.csv`` with the aggregated table (long format)
    and, when ``render`` is set, ``<name>.png``.
    """

    if df is None:
        df = resolve_dataset(cfg.dataset, labels=cfg.category_labels)

    specs = [cfg.get_chart(n) for n in charts] if charts else list(cfg.charts)
    needed = {s.primary for s in specs} | {s.secondary for s in specs if s.secondary is not None}
    validate_columns(df, sorted(needed))

    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    artifacts: List[ChartArtifact] = []
    for spec in specs:
        table, scene = build_chart(df, spec)

        table_path = out_dir / f"{spec.name}.csv"
        table.to_frame().to_csv(table_path, index=False)

        image_path = None
        if render:
            image_path = save_bar_chart(scene, out_path=out_dir / f"{spec.name}.png", theme=spec.theme)

        logger.info("Built chart %s (%d bars)", spec.name, len(scene.bars))
        artifacts.append(
            ChartArtifact(
                name=spec.name,
                table=table,
                scene=scene,
                image_path=image_path,
                table_path=table_path,
            )
        )
    return artifacts
