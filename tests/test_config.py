import pandas as pd
import pytest
from pydantic import ValidationError

from catviz.core.config import (
    AggregationMode,
    ArrangementPolicy,
    AxisRange,
    ChartSpec,
    PlanOptions,
    ReportConfig,
    ValueFormat,
)
from catviz.core.data import as_frame, load_dataset, relabel_categories, resolve_dataset


def test_report_config_from_yaml(report_config_path):
    cfg = ReportConfig.from_yaml(report_config_path)
    assert cfg.project_name == "mtcars"
    assert cfg.dataset is None
    assert "cyl_am_dodged" in cfg.chart_names()

    dodged = cfg.get_chart("cyl_am_dodged")
    assert dodged.mode == AggregationMode.joint_probability
    assert dodged.arrangement == ArrangementPolicy.dodged
    assert dodged.options.value_format == ValueFormat.percentage

    rel = cfg.get_chart("cyl_relative_frequency")
    assert rel.options.axis_range == AxisRange(min=0.0, max=0.5, step=0.1)

    with pytest.raises(KeyError):
        cfg.get_chart("nope")


def test_chart_spec_requires_secondary_for_joint_modes():
    with pytest.raises(ValidationError):
        ChartSpec(name="x", primary="cyl", mode=AggregationMode.conditional_probability)
    with pytest.raises(ValidationError):
        ChartSpec(name="x", primary="cyl", arrangement=ArrangementPolicy.stacked)


def test_plan_options_validation():
    with pytest.raises(ValidationError):
        PlanOptions(bar_width=0.0)
    with pytest.raises(ValidationError):
        PlanOptions(bar_width=1.5)
    with pytest.raises(ValidationError):
        AxisRange(min=1.0, max=0.5, step=0.1)
    with pytest.raises(ValidationError):
        AxisRange(max=1.0, step=0.0)


def test_duplicate_chart_names_rejected():
    with pytest.raises(ValidationError):
        ReportConfig(charts=[ChartSpec(name="a", primary="cyl"), ChartSpec(name="a", primary="am")])


def test_relative_dataset_path_resolves_against_config(tmp_path, mtcars):
    (tmp_path / "data").mkdir()
    mtcars.to_csv(tmp_path / "data" / "cars.csv", index=False)
    cfg_path = tmp_path / "report.yaml"
    cfg_path.write_text(
        "dataset: data/cars.csv\n"
        "charts:\n"
        "  - name: gears\n"
        "    primary: gear\n",
        encoding="utf-8",
    )
    cfg = ReportConfig.from_yaml(cfg_path)
    df = resolve_dataset(cfg.dataset)
    assert len(df) == 32


def test_relabel_categories(mtcars):
    out = relabel_categories(mtcars, {"am": {0: "automatic", 1: "manual"}, "vs": {"0": "V-shaped"}})
    assert set(out["am"]) == {"automatic", "manual"}
    assert set(out["vs"]) == {"V-shaped", 1}
    # Input is untouched
    assert set(mtcars["am"]) == {0, 1}

    with pytest.raises(ValueError):
        relabel_categories(mtcars, {"wheels": {4: "four"}})


def test_load_dataset_rejects_unknown_format(tmp_path):
    path = tmp_path / "cars.txt"
    path.write_text("cyl\n4\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_dataset(path)


def test_as_frame_accepts_records():
    df = as_frame([{"cyl": 4, "am": 1}, {"cyl": 6, "am": 0}])
    assert isinstance(df, pd.DataFrame)
    assert list(df.columns) == ["cyl", "am"]
    with pytest.raises(TypeError):
        as_frame([(4, 1)])
