"""
Ordinary least squares with collinearity checks.

Thin layer over statsmodels OLS that validates inputs, drops incomplete
rows, refuses rank-deficient designs and keeps the printable summary.
"""

import logging
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
import statsmodels.api as sm

from shared.errors import EmptyInputError, SingularMatrixError, require_columns

logger = logging.getLogger(__name__)


@dataclass
class OLSResult:
    """Results from an OLS fit."""

    response: str
    predictors: list[str]
    params: pd.Series
    std_errors: pd.Series
    t_stats: pd.Series
    pvalues: pd.Series
    r_squared: float
    adj_r_squared: float
    n_obs: int
    cov_type: str
    summary_text: str = field(default="", repr=False)

    @property
    def formula(self) -> str:
        return f"{self.response} ~ {' + '.join(self.predictors)}"

    def coefficient(self, name: str) -> float:
        return float(self.params[name])

    def to_frame(self) -> pd.DataFrame:
        """Coefficient table."""
        return pd.DataFrame({
            "coef": self.params,
            "std_err": self.std_errors,
            "t": self.t_stats,
            "pvalue": self.pvalues,
        })

    def summary(self) -> str:
        """Return the statsmodels regression summary."""
        return self.summary_text


def fit_ols(
    data: pd.DataFrame,
    response: str,
    predictors: list[str],
    add_constant: bool = True,
    cov_type: str = "nonrobust",
) -> OLSResult:
    """
    Fit ``response`` on ``predictors`` by OLS.

    With a single binary predictor the slope equals the difference in
    mean response between the two groups.

    Args:
        data: DataFrame with variables
        response: Response column
        predictors: Predictor columns
        add_constant: Include an intercept
        cov_type: statsmodels covariance type (nonrobust, HC1, ...)

    Returns:
        OLSResult with coefficients, standard errors and p-values

    Raises:
        MissingColumnError: If a column is absent
        EmptyInputError: If no complete rows remain
        SingularMatrixError: If the predictors are collinear
    """
    if not predictors:
        raise ValueError("At least one predictor is required")
    require_columns(data.columns, [response] + list(predictors))

    df = data[[response] + list(predictors)].dropna()
    if len(df) < len(data):
        logger.debug(f"Dropped {len(data) - len(df)} incomplete rows")
    if len(df) == 0:
        raise EmptyInputError(f"No complete rows for {response} ~ {predictors}")

    X = df[list(predictors)].astype(float)
    if add_constant:
        X = sm.add_constant(X, has_constant="add")
    y = df[response].astype(float)

    rank = np.linalg.matrix_rank(X.to_numpy())
    if rank < X.shape[1]:
        raise SingularMatrixError(
            f"Design matrix for {response} ~ {' + '.join(predictors)} has rank "
            f"{rank} < {X.shape[1]} columns; predictors are collinear"
        )

    model = sm.OLS(y, X).fit(cov_type=cov_type)

    return OLSResult(
        response=response,
        predictors=list(predictors),
        params=model.params,
        std_errors=model.bse,
        t_stats=model.tvalues,
        pvalues=model.pvalues,
        r_squared=float(model.rsquared),
        adj_r_squared=float(model.rsquared_adj),
        n_obs=int(model.nobs),
        cov_type=cov_type,
        summary_text=str(model.summary()),
    )
