import pandas as pd
import pytest

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
from catviz.layout.planner import plan
from catviz.report.pipeline import build_report
from catviz.stats.aggregate import aggregate
from catviz.viz.bar_chart import save_bar_chart


@pytest.mark.parametrize("theme", list(ChartTheme))
def test_save_bar_chart_themes(mtcars, tmp_path, theme):
    table = aggregate(mtcars, "cyl", mode=AggregationMode.count)
    scene = plan(table, options=PlanOptions(show_value_labels=True, title="Cars by cylinders"))
    out = save_bar_chart(scene, out_path=tmp_path / f"cyl_{theme.value}.png", theme=theme)
    assert out.exists()
    assert out.stat().st_size > 0


def test_save_flipped_stacked_chart(mtcars, tmp_path):
    table = aggregate(mtcars, "cyl", "am", mode=AggregationMode.conditional_probability)
    options = PlanOptions(flip=True, show_value_labels=True, value_format=ValueFormat.percentage)
    scene = plan(table, OrderingPolicy.ascending_value, ArrangementPolicy.stacked, options)
    out = save_bar_chart(scene, out_path=tmp_path / "nested" / "am_given_cyl.png")
    assert out.exists()


def test_empty_scene_is_rejected(tmp_path):
    table = aggregate(pd.DataFrame({"cyl": []}), "cyl", mode=AggregationMode.count)
    scene = plan(table)
    with pytest.raises(ValueError):
        save_bar_chart(scene, out_path=tmp_path / "empty.png")


def test_build_report(report_config_path, tmp_path):
    cfg = ReportConfig.from_yaml(report_config_path)
    artifacts = build_report(cfg, out_dir=tmp_path)

    assert [a.name for a in artifacts] == cfg.chart_names()
    for a in artifacts:
        assert a.table_path.exists()
        assert a.image_path is not None and a.image_path.exists()

    by_name = {a.name: a for a in artifacts}
    dodged = by_name["cyl_am_dodged"].scene
    assert dodged.categories == (8, 4, 6)
    assert [level for level, _ in dodged.legend] == ["automatic", "manual"]
    assert dodged.legend_title == "transmission"

    ordered = by_name["cyl_counts_ordered"].scene
    assert [b.height for b in ordered.bars] == [14.0, 11.0, 7.0]


def test_build_report_subset_without_render(report_config_path, tmp_path):
    cfg = ReportConfig.from_yaml(report_config_path)
    df = resolve_dataset(cfg.dataset, labels=cfg.category_labels)
    artifacts = build_report(cfg, out_dir=tmp_path, df=df, charts=["am_given_cyl"], render=False)
    assert len(artifacts) == 1
    assert artifacts[0].image_path is None
    assert not (tmp_path / "am_given_cyl.png").exists()
    assert (tmp_path / "am_given_cyl.csv").read_text(encoding="utf-8").startswith("cyl,am,count,value")
