"""
Descriptive charts for the retirement and health study.

Every chart carries a dashed red vertical line at the state pension age
to aid interpretation.
"""

import logging
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd
from matplotlib.figure import Figure
from statsmodels.nonparametric.smoothers_lowess import lowess

from shared.errors import require_columns
from shared.model.local_randomization import WindowSelectionResult
from studies.retirement_health.src.survey_data import AGE_OFFSET

logger = logging.getLogger(__name__)

AXIS_LABELS = {
    AGE_OFFSET: "Age relative to state pension age",
    "propret": "Proportion retired",
    "meanElig": "Proportion eligible",
    "meanPH": "Mean physical health (SF-12 PCS)",
    "meanMH": "Mean mental health (SF-12 MCS)",
}


def _reference_line(ax, cutoff: float = 0.0) -> None:
    ax.axvline(cutoff, linestyle="--", color="red", linewidth=0.5)


def smoothed_scatter(
    table: pd.DataFrame,
    y: str,
    x: str = AGE_OFFSET,
    cutoff: float = 0.0,
    frac: float = 0.75,
    title: str | None = None,
    figsize: tuple[int, int] = (8, 5),
) -> Figure:
    """
    Scatter of y against x with a LOWESS trend.

    Args:
        table: Data (typically the age-group aggregates)
        y: Column on the vertical axis
        x: Column on the horizontal axis
        cutoff: Position of the reference line
        frac: Share of points used for each local fit
        title: Chart title

    Returns:
        Matplotlib figure
    """
    require_columns(table.columns, [x, y])
    df = table[[x, y]].dropna().sort_values(x)

    fig, ax = plt.subplots(figsize=figsize)
    ax.scatter(df[x], df[y], color="black", s=15, zorder=3)

    if len(df) >= 3:
        trend = lowess(df[y], df[x], frac=frac)
        ax.plot(trend[:, 0], trend[:, 1], color="steelblue", linewidth=1.5)
    else:
        logger.warning(f"Too few points ({len(df)}) for a smoothed trend of {y}")

    _reference_line(ax, cutoff)
    ax.set_xlabel(AXIS_LABELS.get(x, x))
    ax.set_ylabel(AXIS_LABELS.get(y, y))
    ax.set_title(title or f"{AXIS_LABELS.get(y, y)} by age")

    fig.tight_layout()
    return fig


def age_histogram(
    table: pd.DataFrame,
    x: str = AGE_OFFSET,
    bins: int = 30,
    cutoff: float = 0.0,
    figsize: tuple[int, int] = (8, 5),
) -> Figure:
    """Histogram of x with the reference line."""
    require_columns(table.columns, [x])

    fig, ax = plt.subplots(figsize=figsize)
    ax.hist(table[x].dropna(), bins=bins, color="grey", edgecolor="black", linewidth=0.5)

    _reference_line(ax, cutoff)
    ax.set_xlabel(AXIS_LABELS.get(x, x))
    ax.set_ylabel("Respondents")
    ax.set_title("Distribution of respondents by age")

    fig.tight_layout()
    return fig


def window_pvalue_plot(
    selection: WindowSelectionResult,
    figsize: tuple[int, int] = (8, 5),
) -> Figure:
    """Minimum covariate balance p-value against window half-width."""
    df = selection.to_frame()

    fig, ax = plt.subplots(figsize=figsize)
    ax.plot(df["half_width"], df["pvalue"], marker="o", color="black", linewidth=1)
    ax.axhline(selection.level, linestyle="--", color="red", linewidth=0.5)
    ax.axvline(selection.bandwidth, linestyle=":", color="grey", linewidth=0.8)

    ax.set_xlabel("Window half-width")
    ax.set_ylabel("Minimum balance p-value")
    ax.set_ylim(0, 1.05)
    ax.set_title("Covariate balance by window")

    fig.tight_layout()
    return fig


def save_figure(
    fig: Figure,
    name: str,
    output_dir: Path,
    show: bool = False,
    dpi: int = 150,
) -> Path:
    """
    Write a figure to ``output_dir/name.png`` and close it.

    With ``show`` the figure is displayed before being closed. pyplot shows
    every open figure, so each figure is saved before the next is drawn.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"{name}.png"

    fig.savefig(path, dpi=dpi)
    logger.info(f"Saved figure {path}")

    if show:
        plt.show()
    plt.close(fig)
    return path
