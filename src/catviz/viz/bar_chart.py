from __future__ import annotations

from pathlib import Path
from typing import Tuple

from catviz.core.config import ArrangementPolicy, ChartTheme
from catviz.layout.planner import ChartScene


def _apply_theme(ax, theme: ChartTheme) -> None:
    """Approximate the grammar-of-graphics built-in themes on a matplotlib axes."""

    ax.set_axisbelow(True)
    if theme == ChartTheme.grey:
        ax.set_facecolor("#EBEBEB")
        ax.grid(True, color="white", linewidth=1.0)
        for spine in ax.spines.values():
            spine.set_visible(False)
    elif theme == ChartTheme.minimal:
        ax.grid(True, color="#EBEBEB", linewidth=0.8)
        for spine in ax.spines.values():
            spine.set_visible(False)
        ax.tick_params(length=0)
    elif theme == ChartTheme.classic:
        ax.grid(False)
        ax.spines["top"].set_visible(False)
        ax.spines["right"].set_visible(False)
    elif theme == ChartTheme.bw:
        ax.grid(True, color="#EBEBEB", linewidth=0.8)
        for spine in ax.spines.values():
            spine.set_visible(True)
            spine.set_color("#333333")


def save_bar_chart(
    scene: ChartScene,
    *,
    out_path: str | Path,
    theme: ChartTheme = ChartTheme.grey,
    figsize: Tuple[float, float] = (7.0, 4.5),
    dpi: int = 200,
) -> Path:
    """Draw a planned bar chart and save it to disk.

    Parameters
    ----------
    scene:
        Output of :func:`catviz.layout.planner.plan`.
    out_path:
        Output image path (PNG recommended).
    theme:
        Background, grid and spine style.
    """

    # Local import so the core package does not hard-require matplotlib at import time.
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt  # noqa: E402
    from matplotlib.patches import Patch  # noqa: E402

    if not scene.bars:
        raise ValueError("Scene has no bars to draw")

    fig, ax = plt.subplots(figsize=figsize)
    _apply_theme(ax, ChartTheme(theme))

    for bar in scene.bars:
        if scene.flipped:
            ax.barh(bar.x, bar.height, height=bar.width, left=bar.stack_offset, color=bar.fill)
        else:
            ax.bar(bar.x, bar.height, width=bar.width, bottom=bar.stack_offset, color=bar.fill)

        if bar.label is None:
            continue
        # Stacked labels sit inside their segment; others just past the bar end.
        if scene.arrangement == ArrangementPolicy.stacked:
            pos, kw = bar.stack_offset + bar.height / 2.0, {"ha": "center", "va": "center"}
        else:
            pos = bar.top
            kw = {"ha": "left", "va": "center"} if scene.flipped else {"ha": "center", "va": "bottom"}
        xy = (pos, bar.x) if scene.flipped else (bar.x, pos)
        ax.text(xy[0], xy[1], bar.label, fontsize=9, **kw)

    cat, val = scene.category_axis, scene.value_axis
    if scene.flipped:
        ax.set_yticks(cat.ticks, cat.tick_labels)
        ax.set_ylim(*cat.range)
        ax.set_xticks(val.ticks, val.tick_labels)
        ax.set_xlim(*val.range)
        ax.set_ylabel(cat.title)
        ax.set_xlabel(val.title)
    else:
        ax.set_xticks(cat.ticks, cat.tick_labels)
        ax.set_xlim(*cat.range)
        ax.set_yticks(val.ticks, val.tick_labels)
        ax.set_ylim(*val.range)
        ax.set_xlabel(cat.title)
        ax.set_ylabel(val.title)

    if scene.title:
        ax.set_title(scene.title)

    if scene.legend:
        handles = [Patch(facecolor=color, label=str(level)) for level, color in scene.legend]
        ax.legend(
            handles=handles,
            title=scene.legend_title,
            loc="upper left",
            bbox_to_anchor=(1.01, 1.0),
            frameon=False,
        )

    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(out_path, dpi=dpi)
    plt.close(fig)
    return out_path
