"""
Shared model infrastructure for RD research.

Contains:
- ols.py: OLS fits with collinearity checks
- diagnostics.py: Covariate balance and binomial density tests in a window
- local_randomization.py: Window selection and randomization inference
- rd_plot.py: Binned-means RD plots with polynomial fits
"""

from shared.model.ols import OLSResult, fit_ols
from shared.model.diagnostics import (
    BalanceTestResult,
    DensityTestResult,
    balance_test,
    density_binomial_test,
)
from shared.model.local_randomization import (
    ConfidenceSetResult,
    RandInfResult,
    WindowSelectionResult,
    randinf_confidence_set,
    rd_randinf,
    select_window,
)
from shared.model.rd_plot import RDPlotResult, rd_plot

__all__ = [
    "OLSResult",
    "fit_ols",
    "BalanceTestResult",
    "DensityTestResult",
    "balance_test",
    "density_binomial_test",
    "ConfidenceSetResult",
    "RandInfResult",
    "WindowSelectionResult",
    "randinf_confidence_set",
    "rd_randinf",
    "select_window",
    "RDPlotResult",
    "rd_plot",
]
