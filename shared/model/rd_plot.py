"""
RD plots: binned means with global polynomial fits on each side.

Bins are evenly spaced on each side of the cutoff. When the running
variable is discrete with few support points, every support point is
its own bin.
"""

import logging
from dataclasses import dataclass

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib.figure import Figure

from shared.errors import EmptyInputError

logger = logging.getLogger(__name__)

# Sides with at most this many distinct values get one bin per value
MASS_POINT_LIMIT = 50
DEFAULT_NBINS = 20
GRID_POINTS = 100


@dataclass
class RDPlotResult:
    """Binned means and polynomial fits for an RD plot."""

    bins: pd.DataFrame  # side, bin_left, bin_right, x_mean, y_mean, n
    fit: pd.DataFrame  # side, x, y_hat
    cutoff: float
    p: int
    nbins_left: int
    nbins_right: int
    n_left: int
    n_right: int

    def plot(
        self,
        title: str = "RD Plot",
        xlabel: str = "Running variable",
        ylabel: str = "Outcome",
        figsize: tuple[int, int] = (8, 5),
    ) -> Figure:
        """
        Draw bin means and fitted polynomials.

        Returns:
            Matplotlib figure
        """
        fig, ax = plt.subplots(figsize=figsize)

        ax.scatter(
            self.bins["x_mean"], self.bins["y_mean"],
            color="darkblue", s=25, zorder=3, label="Bin means",
        )
        for side in ("left", "right"):
            curve = self.fit[self.fit["side"] == side]
            ax.plot(curve["x"], curve["y_hat"], color="red", linewidth=1.5)

        ax.axvline(self.cutoff, color="red", linestyle="--", linewidth=0.5)

        ax.set_xlabel(xlabel)
        ax.set_ylabel(ylabel)
        ax.set_title(title)
        ax.text(
            0.02, 0.98,
            f"Polynomial order {self.p}; bins {self.nbins_left} | {self.nbins_right}",
            transform=ax.transAxes,
            verticalalignment="top",
            fontsize=8,
        )

        fig.tight_layout()
        return fig


def _bin_edges(lo: float, hi: float, nbins: int) -> np.ndarray:
    if hi <= lo:
        return np.array([lo, lo])
    return np.linspace(lo, hi, nbins + 1)


def _side_bins(x: np.ndarray, y: np.ndarray, side: str, nbins: int | None) -> pd.DataFrame:
    support = np.unique(x)
    if nbins is None and len(support) <= MASS_POINT_LIMIT:
        df = pd.DataFrame({"x": x, "y": y})
        grouped = df.groupby("x")["y"].agg(["mean", "size"]).reset_index()
        return pd.DataFrame({
            "side": side,
            "bin_left": grouped["x"],
            "bin_right": grouped["x"],
            "x_mean": grouped["x"],
            "y_mean": grouped["mean"],
            "n": grouped["size"],
        })

    nbins = nbins or DEFAULT_NBINS
    edges = _bin_edges(float(x.min()), float(x.max()), nbins)
    idx = np.clip(np.searchsorted(edges, x, side="right") - 1, 0, max(len(edges) - 2, 0))
    df = pd.DataFrame({"bin": idx, "x": x, "y": y})
    grouped = df.groupby("bin").agg(
        x_mean=("x", "mean"), y_mean=("y", "mean"), n=("y", "size"),
    ).reset_index()
    return pd.DataFrame({
        "side": side,
        "bin_left": edges[grouped["bin"]],
        "bin_right": edges[grouped["bin"] + 1],
        "x_mean": grouped["x_mean"],
        "y_mean": grouped["y_mean"],
        "n": grouped["n"],
    })


def _side_fit(x: np.ndarray, y: np.ndarray, side: str, p: int) -> pd.DataFrame:
    degree = min(p, len(np.unique(x)) - 1)
    if degree < p:
        logger.warning(
            f"Only {degree + 1} support points {side} of the cutoff; "
            f"fitting order {degree} instead of {p}"
        )
    grid = np.linspace(x.min(), x.max(), GRID_POINTS)
    if degree <= 0:
        y_hat = np.full_like(grid, y.mean())
    else:
        poly = np.polynomial.Polynomial.fit(x, y, degree)
        y_hat = poly(grid)
    return pd.DataFrame({"side": side, "x": grid, "y_hat": y_hat})


def rd_plot(
    y,
    x,
    cutoff: float = 0.0,
    p: int = 4,
    nbins: int | tuple[int, int] | None = None,
) -> RDPlotResult:
    """
    Compute an RD plot.

    Args:
        y: Outcome variable
        x: Running variable
        cutoff: RD cutoff
        p: Order of the global polynomial fitted on each side
        nbins: Bins per side (int or (left, right)); None picks one bin per
            support point for discrete running variables, otherwise 20

    Returns:
        RDPlotResult; call .plot() for the figure
    """
    y = np.asarray(y, dtype=float)
    x = np.asarray(x, dtype=float)
    if len(y) != len(x):
        raise ValueError(f"y has {len(y)} values but x has {len(x)}")

    ok = ~(np.isnan(y) | np.isnan(x))
    y, x = y[ok], x[ok]

    right = x >= cutoff
    if right.sum() == 0 or (~right).sum() == 0:
        raise EmptyInputError("RD plot needs observations on both sides of the cutoff")

    if isinstance(nbins, tuple):
        nbins_left, nbins_right = nbins
    else:
        nbins_left = nbins_right = nbins

    bins = pd.concat([
        _side_bins(x[~right], y[~right], "left", nbins_left),
        _side_bins(x[right], y[right], "right", nbins_right),
    ], ignore_index=True)

    fit = pd.concat([
        _side_fit(x[~right], y[~right], "left", p),
        _side_fit(x[right], y[right], "right", p),
    ], ignore_index=True)

    return RDPlotResult(
        bins=bins,
        fit=fit,
        cutoff=cutoff,
        p=p,
        nbins_left=int((bins["side"] == "left").sum()),
        nbins_right=int((bins["side"] == "right").sum()),
        n_left=int((~right).sum()),
        n_right=int(right.sum()),
    )
