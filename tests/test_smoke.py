from catviz.core.config import AggregationMode, ArrangementPolicy, OrderingPolicy, PlanOptions, ValueFormat
from catviz.core.data import load_mtcars, relabel_categories
from catviz.layout.planner import plan
from catviz.stats.aggregate import aggregate
from catviz.viz.bar_chart import save_bar_chart


def test_end_to_end_smoke(tmp_path):
    df = relabel_categories(load_mtcars(), {"am": {0: "automatic", 1: "manual"}})

    table = aggregate(df, "cyl", "am", mode=AggregationMode.conditional_probability)
    assert table[(4, "manual")] > table[(4, "automatic")]

    scene = plan(
        table,
        OrderingPolicy.ascending_value,
        ArrangementPolicy.dodged,
        PlanOptions(value_format=ValueFormat.percentage, show_value_labels=True),
    )
    assert scene.categories == (4, 6, 8)
    assert scene.bars[0].label == "27%"

    out = save_bar_chart(scene, out_path=tmp_path / "am_given_cyl.png")
    assert out.exists()
