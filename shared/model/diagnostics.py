"""
Diagnostic tests for RD windows.

Implements:
- Covariate balance tests (Welch) inside a window around the cutoff
- Binomial density test of the treated share inside a window
"""

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
from scipy import stats

from shared.errors import require_columns

logger = logging.getLogger(__name__)


@dataclass
class BalanceTestResult:
    """Results from a balance test in an RD window."""

    variable: str
    diff_at_cutoff: float
    se: float
    t_stat: float
    pvalue: float
    balanced: bool  # p > level
    n_treated: int
    n_control: int


@dataclass
class DensityTestResult:
    """Binomial test of P(R >= cutoff) = 0.5 inside a window."""

    n_left: int
    n_right: int
    pvalue: float
    window: tuple[float, float]

    @property
    def manipulation_detected(self) -> bool:
        return self.pvalue < 0.05


def window_mask(
    running: np.ndarray | pd.Series,
    window: tuple[float, float],
) -> np.ndarray:
    """Boolean mask of observations with wl <= R <= wr (bounds inclusive)."""
    r = np.asarray(running, dtype=float)
    wl, wr = window
    return (r >= wl) & (r <= wr)


def balance_test(
    data: pd.DataFrame,
    running_var: str,
    cutoff: float,
    covariates: list[str],
    window: tuple[float, float] | None = None,
    level: float = 0.05,
) -> list[BalanceTestResult]:
    """
    Test for covariate balance on each side of the cutoff.

    Args:
        data: DataFrame with variables
        running_var: Running variable name
        cutoff: RD cutoff
        covariates: Covariates to test
        window: (wl, wr) bounds on the running variable (all data if None)
        level: Balance is rejected when p <= level

    Returns:
        List of BalanceTestResult, one per covariate with enough data
    """
    require_columns(data.columns, [running_var] + list(covariates))

    df = data
    if window is not None:
        df = data[window_mask(data[running_var], window)]

    treated_mask = df[running_var] >= cutoff

    results = []
    for cov in covariates:
        treated = df.loc[treated_mask, cov].dropna()
        control = df.loc[~treated_mask, cov].dropna()

        if len(treated) < 2 or len(control) < 2:
            logger.debug(f"Skipping balance test for {cov}: too few observations")
            continue

        diff = treated.mean() - control.mean()
        se = np.sqrt(treated.var() / len(treated) + control.var() / len(control))

        if se > 0:
            # Welch's t-test
            t_stat, pvalue = stats.ttest_ind(treated, control, equal_var=False)
        else:
            # Constant within both groups
            t_stat = 0.0 if diff == 0 else np.inf
            pvalue = 1.0 if diff == 0 else 0.0

        results.append(BalanceTestResult(
            variable=cov,
            diff_at_cutoff=float(diff),
            se=float(se),
            t_stat=float(t_stat),
            pvalue=float(pvalue),
            balanced=pvalue > level,
            n_treated=len(treated),
            n_control=len(control),
        ))

    return results


def density_binomial_test(
    running: np.ndarray | pd.Series,
    cutoff: float,
    window: tuple[float, float],
) -> DensityTestResult:
    """
    Binomial test for the number of treated units in a window.

    Under local randomization with equal probability the count above the
    cutoff is Binomial(n, 0.5). A small p-value points to sorting around
    the cutoff.
    """
    r = np.asarray(running, dtype=float)
    inside = window_mask(r, window)
    n_right = int((r[inside] >= cutoff).sum())
    n_left = int(inside.sum()) - n_right

    if n_left + n_right == 0:
        pvalue = np.nan
    else:
        pvalue = stats.binomtest(n_right, n_left + n_right, p=0.5).pvalue

    return DensityTestResult(
        n_left=n_left,
        n_right=n_right,
        pvalue=float(pvalue),
        window=window,
    )
