"""
Local randomization inference for regression discontinuity designs.

Implements:
1. Window selection from pre-treatment covariate balance
2. Randomization inference for sharp and fuzzy RD inside a window
3. Confidence sets by inverting the randomization test

Within a small window around the cutoff, assignment Z = 1(R >= c) is
treated as if randomly assigned. Inference uses the permutation
distribution of Z (fixed margins) or independent Bernoulli draws.

References:
- Cattaneo, Frandsen, Titiunik (2015). "Randomization Inference in the
  Regression Discontinuity Design." Journal of Causal Inference.
- Cattaneo, Titiunik, Vazquez-Bare (2016). "Inference in Regression
  Discontinuity Designs under Local Randomization." Stata Journal.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterator, Literal

import numpy as np
import pandas as pd
import statsmodels.api as sm
from linearmodels.iv import IV2SLS
from scipy import stats

from shared.errors import EmptyInputError, NoValidWindowError
from shared.model.diagnostics import balance_test, density_binomial_test, window_mask

logger = logging.getLogger(__name__)

# Draws are evaluated in blocks to bound memory on large windows
_BATCH_SIZE = 200


@dataclass
class WindowBalance:
    """Balance results for one candidate window."""

    half_width: float
    wl: float
    wr: float
    pvalue: float  # minimum across covariates
    min_variable: str | None
    n_left: int
    n_right: int
    binomial_pvalue: float
    covariate_pvalues: dict[str, float] = field(default_factory=dict)

    @property
    def window(self) -> tuple[float, float]:
        return (self.wl, self.wr)


@dataclass
class WindowSelectionResult:
    """Results from window selection."""

    windows: list[WindowBalance]
    selected: WindowBalance
    cutoff: float
    level: float
    rule: str
    method: str  # randomization | approximate
    reps: int

    @property
    def window(self) -> tuple[float, float]:
        return self.selected.window

    @property
    def bandwidth(self) -> float:
        return self.selected.half_width

    def to_frame(self) -> pd.DataFrame:
        """One row per scanned window."""
        return pd.DataFrame([
            {
                "half_width": w.half_width,
                "wl": w.wl,
                "wr": w.wr,
                "pvalue": w.pvalue,
                "min_variable": w.min_variable,
                "binomial_pvalue": w.binomial_pvalue,
                "n_left": w.n_left,
                "n_right": w.n_right,
            }
            for w in self.windows
        ])

    def summary(self) -> str:
        """Return formatted summary."""
        lines = [
            "=" * 60,
            "Window Selection (covariate balance)",
            "=" * 60,
            f"Cutoff: {self.cutoff:g}",
            f"Balance test: {self.method} (reps={self.reps})",
            f"Significance level: {self.level:g}",
            f"Selection rule: {self.rule}",
            "",
            f"{'Window':>18} {'p-value':>9} {'Var. min p':>12} {'Bin. test':>10} "
            f"{'Obs<c':>7} {'Obs>=c':>7}",
        ]
        for w in self.windows:
            marker = " <" if w is self.selected else ""
            lines.append(
                f"[{w.wl:>7.3f}, {w.wr:>7.3f}] {w.pvalue:>9.3f} "
                f"{str(w.min_variable):>12} {w.binomial_pvalue:>10.3f} "
                f"{w.n_left:>7,} {w.n_right:>7,}{marker}"
            )
        lines.extend([
            "",
            f"Selected window: [{self.selected.wl:g}, {self.selected.wr:g}] "
            f"(half-width {self.selected.half_width:g})",
        ])
        return "\n".join(lines)


@dataclass
class RandInfResult:
    """Results from randomization inference in an RD window."""

    statistic: str  # diffmeans | ar | tsls
    design: str  # sharp | fuzzy
    obs_stat: float
    randomization_pvalue: float | None
    asymptotic_pvalue: float
    nulltau: float
    wl: float
    wr: float
    cutoff: float
    polynomial_order: int
    n_left: int
    n_right: int
    mean_left: float
    mean_right: float
    sd_left: float
    sd_right: float
    reps: int
    assignment: str  # fixed_margins | bernoulli
    estimate: float | None = None
    std_error: float | None = None
    window_selection: WindowSelectionResult | None = None

    @property
    def window(self) -> tuple[float, float]:
        return (self.wl, self.wr)

    @property
    def n_obs(self) -> int:
        return self.n_left + self.n_right

    def summary(self) -> str:
        """Return formatted summary."""
        lines = [
            "=" * 60,
            f"Randomization Inference ({self.design} RD)",
            "=" * 60,
            f"Cutoff: {self.cutoff:g}",
            f"Window: [{self.wl:g}, {self.wr:g}]",
            f"Polynomial order: {self.polynomial_order}",
            f"Assignment: {self.assignment}",
            f"Randomizations: {self.reps}",
            "",
            f"{'':>16} {'Left of c':>12} {'Right of c':>12}",
            f"{'Eff. obs':>16} {self.n_left:>12,} {self.n_right:>12,}",
            f"{'Mean outcome':>16} {self.mean_left:>12.4f} {self.mean_right:>12.4f}",
            f"{'S.d. outcome':>16} {self.sd_left:>12.4f} {self.sd_right:>12.4f}",
            "",
            f"Statistic: {self.statistic}",
            f"  Null hypothesis: tau = {self.nulltau:g}",
            f"  Observed statistic: {self.obs_stat:.4f}",
        ]
        if self.randomization_pvalue is not None:
            lines.append(f"  Finite-sample p-value: {self.randomization_pvalue:.4f}")
        lines.append(f"  Large-sample p-value: {self.asymptotic_pvalue:.4f}")

        if self.estimate is not None:
            lines.append(f"\nEstimated effect: {self.estimate:.4f}")
            if self.std_error is not None:
                lines.append(f"  Std. Error: {self.std_error:.4f}")
        elif self.design == "fuzzy":
            lines.append(
                "\nThe Anderson-Rubin statistic tests the sharp null only; "
                "no point estimate is reported."
            )

        return "\n".join(lines)


@dataclass
class ConfidenceSetResult:
    """Confidence set from inverting randomization tests."""

    grid: np.ndarray
    pvalues: np.ndarray
    level: float

    @property
    def accepted(self) -> np.ndarray:
        return self.grid[self.pvalues > self.level]

    @property
    def lower(self) -> float:
        return float(self.accepted.min()) if self.accepted.size else np.nan

    @property
    def upper(self) -> float:
        return float(self.accepted.max()) if self.accepted.size else np.nan

    @property
    def is_interval(self) -> bool:
        """True if accepted values form one contiguous run of the grid."""
        idx = np.flatnonzero(self.pvalues > self.level)
        return idx.size > 0 and bool(np.all(np.diff(idx) == 1))


def as_covariate_frame(covariates, n: int | None = None) -> pd.DataFrame:
    """
    Coerce a covariate matrix to a DataFrame of floats.

    Accepts a DataFrame, Series, or 1-D/2-D array. Unnamed columns
    are labelled cov1, cov2, ...
    """
    if isinstance(covariates, pd.DataFrame):
        df = covariates.reset_index(drop=True)
    elif isinstance(covariates, pd.Series):
        df = covariates.reset_index(drop=True).to_frame()
    else:
        arr = np.asarray(covariates, dtype=float)
        if arr.ndim == 1:
            arr = arr.reshape(-1, 1)
        if arr.ndim != 2:
            raise ValueError(f"Covariates must be 1-D or 2-D, got {arr.ndim} dimensions")
        df = pd.DataFrame(arr, columns=[f"cov{i + 1}" for i in range(arr.shape[1])])

    if n is not None and len(df) != n:
        raise ValueError(
            f"Covariates have {len(df)} rows but the running variable has {n}"
        )
    return df.astype(float)


def _support_step(rc: np.ndarray) -> float:
    """Smallest gap between distinct values of the running variable."""
    support = np.unique(rc)
    if support.size < 2:
        return 1.0
    return float(np.diff(support).min())


def _minimum_width(rc: np.ndarray, obsmin: int) -> float:
    """Smallest half-width with at least ``obsmin`` observations on each side."""
    left = np.sort(-rc[rc < 0])
    right = np.sort(rc[rc >= 0])
    if len(left) < obsmin or len(right) < obsmin:
        raise EmptyInputError(
            f"Fewer than {obsmin} observations on one side of the cutoff "
            f"(left={len(left)}, right={len(right)})"
        )
    return float(max(left[obsmin - 1], right[obsmin - 1]))


def _draw_assignments(
    z: np.ndarray,
    reps: int,
    rng: np.random.Generator,
    probs: np.ndarray | None = None,
) -> Iterator[np.ndarray]:
    """Yield blocks of re-randomized assignment vectors, shape (block, n)."""
    remaining = reps
    while remaining > 0:
        size = min(_BATCH_SIZE, remaining)
        if probs is None:
            block = rng.permuted(np.tile(z, (size, 1)), axis=1)
        else:
            block = rng.random((size, len(z))) < probs
        remaining -= size
        yield block


def _diffmeans_batch(y: np.ndarray, Z: np.ndarray) -> np.ndarray:
    """Difference in means of y between Z=1 and Z=0, one per row of Z."""
    Zf = Z.astype(float)
    n1 = Zf.sum(axis=1)
    n0 = Z.shape[1] - n1
    s1 = Zf @ y
    s0 = y.sum() - s1
    with np.errstate(divide="ignore", invalid="ignore"):
        return s1 / n1 - s0 / n0


def _poly_design(z: np.ndarray, rc: np.ndarray, p: int) -> np.ndarray:
    """Constant, assignment and side-specific polynomial terms."""
    zf = z.astype(float)
    cols = [np.ones_like(rc), zf]
    for k in range(1, p + 1):
        term = rc ** k
        cols.extend([term, zf * term])
    return np.column_stack(cols)


def _poly_jump(y: np.ndarray, z: np.ndarray, rc: np.ndarray, p: int) -> float:
    """Jump at the cutoff from polynomials of order p fitted on each side."""
    n1 = int(z.sum())
    if n1 <= p or len(z) - n1 <= p:
        return np.nan
    beta = np.linalg.lstsq(_poly_design(z, rc, p), y, rcond=None)[0]
    return float(beta[1])


def _statistic(y: np.ndarray, z: np.ndarray, rc: np.ndarray, p: int) -> float:
    if p == 0:
        return float(_diffmeans_batch(y, z.reshape(1, -1))[0])
    return _poly_jump(y, z, rc, p)


def _randomization_pvalue(
    y: np.ndarray,
    z: np.ndarray,
    rc: np.ndarray,
    p: int,
    reps: int,
    rng: np.random.Generator,
    probs: np.ndarray | None = None,
) -> tuple[float, float]:
    """Observed statistic and two-sided randomization p-value."""
    obs = _statistic(y, z, rc, p)

    null_stats = []
    for block in _draw_assignments(z, reps, rng, probs):
        if p == 0:
            null_stats.append(_diffmeans_batch(y, block))
        else:
            null_stats.append(np.array([_poly_jump(y, zb, rc, p) for zb in block]))
    null_dist = np.concatenate(null_stats)

    valid = ~np.isnan(null_dist)
    if valid.sum() < len(null_dist):
        logger.debug(f"{len(null_dist) - valid.sum()} draws left one side empty")
    if not valid.any() or np.isnan(obs):
        return obs, np.nan

    # Tolerance so exact ties on discrete data count as extreme
    tol = 1e-9 * max(1.0, abs(obs))
    pvalue = np.mean(np.abs(null_dist[valid]) >= abs(obs) - tol)
    return obs, float(pvalue)


def _asymptotic_pvalue(y: np.ndarray, z: np.ndarray, rc: np.ndarray, p: int) -> float:
    """Large-sample p-value for the same statistic."""
    treated = y[z]
    control = y[~z]
    if p == 0:
        if len(treated) < 2 or len(control) < 2:
            return np.nan
        if treated.var() == 0 and control.var() == 0:
            return 1.0 if treated.mean() == control.mean() else 0.0
        _, pvalue = stats.ttest_ind(treated, control, equal_var=False)
        return float(pvalue)

    if len(treated) <= p + 1 or len(control) <= p + 1:
        return np.nan
    model = sm.OLS(y, _poly_design(z, rc, p)).fit(cov_type="HC1")
    return float(model.pvalues[1])


def select_window(
    running,
    covariates,
    cutoff: float = 0.0,
    wmin: float | None = None,
    wstep: float | None = None,
    nwindows: int = 10,
    obsmin: int = 10,
    level: float = 0.15,
    reps: int = 1000,
    seed: int | None = 666,
    approx: bool = False,
    rule: Literal["smallest_balanced", "largest_before_rejection"] = "smallest_balanced",
) -> WindowSelectionResult:
    """
    Select a window around the cutoff from covariate balance.

    Scans symmetric windows [c - w, c + w] for w = wmin, wmin + wstep, ...
    and tests, for each pre-treatment covariate, the difference in means
    between units above and below the cutoff. The window p-value is the
    minimum across covariates.

    Args:
        running: Running variable
        covariates: Pre-treatment covariate matrix (DataFrame or array)
        cutoff: RD cutoff
        wmin: Smallest half-width (default: smallest with obsmin per side)
        wstep: Half-width increment (default: spacing of the running
            variable's support points)
        nwindows: Number of windows to scan
        obsmin: Minimum observations per side for the default wmin
        level: Balance holds when the window p-value exceeds this level
        reps: Randomization draws per covariate and window
        seed: Random seed
        approx: Use Welch t-tests instead of randomization p-values
        rule: smallest_balanced returns the first window with p > level;
            largest_before_rejection returns the window preceding the
            first rejection

    Returns:
        WindowSelectionResult with every scanned window and the selection

    Raises:
        NoValidWindowError: If no scanned window satisfies the rule
    """
    if rule not in ("smallest_balanced", "largest_before_rejection"):
        raise ValueError(f"Unknown selection rule: {rule}")
    if nwindows < 1:
        raise ValueError("nwindows must be at least 1")

    r = np.asarray(running, dtype=float)
    covs = as_covariate_frame(covariates, len(r))

    keep = ~np.isnan(r)
    r = r[keep]
    covs = covs[keep].reset_index(drop=True)
    rc = r - cutoff

    if len(rc) == 0:
        raise EmptyInputError("Running variable has no non-missing values")

    if wstep is None:
        wstep = _support_step(rc)
    if wstep <= 0:
        raise ValueError("wstep must be positive")
    if wmin is None:
        wmin = _minimum_width(rc, obsmin)

    max_width = float(np.abs(rc).max())
    widths = []
    for k in range(nwindows):
        w = wmin + k * wstep
        widths.append(w)
        if w >= max_width:
            if k < nwindows - 1:
                logger.info(f"Window half-width {w:g} covers all data; stopping scan")
            break

    method = "approximate" if approx else "randomization"
    logger.info(
        f"Scanning {len(widths)} windows from {widths[0]:g} by {wstep:g} "
        f"({method}, level={level:g})"
    )

    seeds = np.random.SeedSequence(seed).spawn(len(widths))
    frame = covs.assign(_running=r)

    windows = []
    for w, child in zip(widths, seeds):
        wl, wr = cutoff - w, cutoff + w
        inside = window_mask(r, (wl, wr))
        density = density_binomial_test(r, cutoff, (wl, wr))

        cov_pvalues: dict[str, float] = {}
        if approx:
            for bt in balance_test(frame, "_running", cutoff, list(covs.columns), (wl, wr)):
                cov_pvalues[bt.variable] = bt.pvalue
        else:
            rng = np.random.default_rng(child)
            z_all = rc[inside] >= 0
            for cov in covs.columns:
                x = covs.loc[inside, cov].to_numpy()
                ok = ~np.isnan(x)
                z = z_all[ok]
                if z.sum() == 0 or (~z).sum() == 0:
                    continue
                _, pval = _randomization_pvalue(
                    x[ok], z, rc[inside][ok], 0, reps, rng,
                )
                cov_pvalues[cov] = pval

        finite = {k: v for k, v in cov_pvalues.items() if not np.isnan(v)}
        if finite:
            min_var = min(finite, key=finite.get)
            pvalue = finite[min_var]
        else:
            min_var, pvalue = None, np.nan

        windows.append(WindowBalance(
            half_width=w,
            wl=wl,
            wr=wr,
            pvalue=pvalue,
            min_variable=min_var,
            n_left=density.n_left,
            n_right=density.n_right,
            binomial_pvalue=density.pvalue,
            covariate_pvalues=cov_pvalues,
        ))
        logger.debug(f"Window [{wl:g}, {wr:g}]: p={pvalue:.3f} ({min_var})")

    # NaN p-values (no testable covariate) never count as balanced
    balanced = [w.pvalue > level for w in windows]

    if rule == "smallest_balanced":
        if not any(balanced):
            raise NoValidWindowError(
                f"No window in [{widths[0]:g}, {widths[-1]:g}] has covariate "
                f"balance p-value above {level:g}"
            )
        selected = windows[balanced.index(True)]
    else:
        if all(balanced):
            logger.warning("Largest window does not reject balance; consider a larger scan")
            selected = windows[-1]
        else:
            first_rejection = balanced.index(False)
            if first_rejection == 0:
                raise NoValidWindowError(
                    f"Smallest window (half-width {widths[0]:g}) rejects covariate "
                    f"balance at level {level:g}; decrease wmin or the level"
                )
            selected = windows[first_rejection - 1]

    logger.info(f"Selected window [{selected.wl:g}, {selected.wr:g}]")

    return WindowSelectionResult(
        windows=windows,
        selected=selected,
        cutoff=cutoff,
        level=level,
        rule=rule,
        method=method,
        reps=reps,
    )


def _tsls_estimate(
    y: np.ndarray,
    d: np.ndarray,
    z: np.ndarray,
    rc: np.ndarray,
    p: int,
) -> tuple[float, float]:
    """2SLS of y on d instrumented by z, with side-specific polynomial controls."""
    design = _poly_design(z, rc, p)
    exog = pd.DataFrame(np.delete(design, 1, axis=1))
    exog.columns = ["const"] + [f"poly_{i}" for i in range(1, exog.shape[1])]
    endog = pd.DataFrame({"treatment": d})
    instruments = pd.DataFrame({"above_cutoff": z.astype(float)})

    result = IV2SLS(pd.Series(y, name="outcome"), exog, endog, instruments).fit(
        cov_type="robust",
    )
    estimate = float(result.params["treatment"])

    n_params = exog.shape[1] + 1
    if len(y) <= n_params:
        logger.warning(
            f"2SLS with {len(y)} observations and {n_params} parameters leaves no "
            f"residual degrees of freedom; standard error not reported"
        )
        return estimate, np.nan
    return estimate, float(result.std_errors["treatment"])


def rd_randinf(
    outcome,
    running,
    cutoff: float = 0.0,
    wl: float | None = None,
    wr: float | None = None,
    p: int = 0,
    fuzzy=None,
    fuzzy_stat: Literal["ar", "tsls"] = "ar",
    nulltau: float = 0.0,
    bernoulli=None,
    covariates=None,
    reps: int = 1000,
    seed: int | None = 666,
    **winselect_kwargs,
) -> RandInfResult:
    """
    Randomization inference for an RD design within a window.

    Only observations with wl <= R <= wr enter any computation.

    Sharp design: tests tau = nulltau using outcome Y - nulltau * Z and
    the difference in means (p = 0) or the jump in side-specific
    polynomials of order p.

    Fuzzy design (``fuzzy`` given): the Anderson-Rubin statistic tests
    tau = nulltau on Y - nulltau * D. It delivers a p-value but no
    estimate of the effect size. With ``fuzzy_stat="tsls"`` a 2SLS
    estimate with a large-sample p-value is reported instead.

    Args:
        outcome: Outcome variable
        running: Running variable
        cutoff: RD cutoff
        wl: Left window limit on the running variable
        wr: Right window limit on the running variable
        p: Polynomial order of the outcome model (0 = difference in means)
        fuzzy: Endogenous treatment for fuzzy designs
        fuzzy_stat: ar (Anderson-Rubin) or tsls
        nulltau: Treatment effect under the null hypothesis
        bernoulli: Per-unit treatment probabilities; draws are independent
            Bernoulli instead of fixed-margin permutations
        covariates: Pre-treatment covariates; used to select the window
            when wl/wr are not given
        reps: Number of randomization draws
        seed: Random seed
        **winselect_kwargs: Passed to select_window

    Returns:
        RandInfResult
    """
    if p < 0:
        raise ValueError("Polynomial order must be non-negative")
    if fuzzy is not None and fuzzy_stat not in ("ar", "tsls"):
        raise ValueError(f"Unknown fuzzy statistic: {fuzzy_stat}")

    y = np.asarray(outcome, dtype=float)
    r = np.asarray(running, dtype=float)
    if len(y) != len(r):
        raise ValueError(f"Outcome has {len(y)} values but running variable has {len(r)}")

    d = None
    if fuzzy is not None:
        d = np.asarray(fuzzy, dtype=float)
        if len(d) != len(r):
            raise ValueError("Fuzzy treatment must have the same length as the running variable")

    probs = None
    if bernoulli is not None:
        probs = np.asarray(bernoulli, dtype=float)
        if len(probs) != len(r):
            raise ValueError("Bernoulli probabilities must match the running variable length")
        if np.nanmin(probs) < 0 or np.nanmax(probs) > 1:
            raise ValueError("Bernoulli probabilities must lie in [0, 1]")

    selection = None
    if wl is None or wr is None:
        if covariates is None:
            raise ValueError("Provide wl and wr, or covariates to select the window")
        selection = select_window(
            r, covariates, cutoff=cutoff, seed=seed, **winselect_kwargs,
        )
        wl, wr = selection.window
    if wl > cutoff or wr < cutoff:
        raise ValueError(f"Window [{wl:g}, {wr:g}] must contain the cutoff {cutoff:g}")

    mask = window_mask(r, (wl, wr)) & ~np.isnan(y)
    if d is not None:
        mask &= ~np.isnan(d)
    if probs is not None:
        mask &= ~np.isnan(probs)

    y_w = y[mask]
    rc = r[mask] - cutoff
    z = rc >= 0
    n_right = int(z.sum())
    n_left = int(len(z) - n_right)
    if n_left == 0 or n_right == 0:
        raise EmptyInputError(
            f"Window [{wl:g}, {wr:g}] has {n_left} observations left and "
            f"{n_right} right of the cutoff"
        )
    if n_left + n_right < 10:
        logger.warning(f"Only {n_left + n_right} observations in window [{wl:g}, {wr:g}]")

    rng = np.random.default_rng(seed)
    probs_w = probs[mask] if probs is not None else None
    d_w = d[mask] if d is not None else None

    estimate = None
    std_error = None
    randomization_pvalue = None

    if d_w is None:
        design = "sharp"
        statistic = "diffmeans"
        y_adj = y_w - nulltau * z
        obs_stat, randomization_pvalue = _randomization_pvalue(
            y_adj, z, rc, p, reps, rng, probs_w,
        )
        asymptotic_pvalue = _asymptotic_pvalue(y_adj, z, rc, p)
        estimate = _statistic(y_w, z, rc, p)
    elif fuzzy_stat == "ar":
        design = "fuzzy"
        statistic = "ar"
        y_adj = y_w - nulltau * d_w
        obs_stat, randomization_pvalue = _randomization_pvalue(
            y_adj, z, rc, p, reps, rng, probs_w,
        )
        asymptotic_pvalue = _asymptotic_pvalue(y_adj, z, rc, p)
    else:
        design = "fuzzy"
        statistic = "tsls"
        estimate, std_error = _tsls_estimate(y_w, d_w, z, rc, p)
        obs_stat = estimate
        if np.isnan(std_error):
            asymptotic_pvalue = np.nan
        else:
            t_stat = (estimate - nulltau) / std_error if std_error > 0 else np.inf
            asymptotic_pvalue = float(2 * (1 - stats.norm.cdf(abs(t_stat))))

    def _sd(values: np.ndarray) -> float:
        return float(values.std(ddof=1)) if len(values) > 1 else np.nan

    return RandInfResult(
        statistic=statistic,
        design=design,
        obs_stat=obs_stat,
        randomization_pvalue=randomization_pvalue,
        asymptotic_pvalue=asymptotic_pvalue,
        nulltau=nulltau,
        wl=float(wl),
        wr=float(wr),
        cutoff=cutoff,
        polynomial_order=p,
        n_left=n_left,
        n_right=n_right,
        mean_left=float(y_w[~z].mean()),
        mean_right=float(y_w[z].mean()),
        sd_left=_sd(y_w[~z]),
        sd_right=_sd(y_w[z]),
        reps=reps,
        assignment="bernoulli" if probs is not None else "fixed_margins",
        estimate=estimate,
        std_error=std_error,
        window_selection=selection,
    )


def randinf_confidence_set(
    outcome,
    running,
    tau_grid,
    level: float = 0.05,
    **randinf_kwargs,
) -> ConfidenceSetResult:
    """
    Confidence set for tau by test inversion.

    Runs rd_randinf for every value in ``tau_grid`` as the null and keeps
    the values whose randomization p-value exceeds ``level``. The same
    seed is used at every grid point.
    """
    if randinf_kwargs.get("fuzzy_stat") == "tsls":
        raise ValueError("Confidence sets require a randomization statistic, not tsls")

    grid = np.asarray(tau_grid, dtype=float)
    pvalues = np.empty(len(grid))
    for i, tau in enumerate(grid):
        res = rd_randinf(outcome, running, nulltau=float(tau), **randinf_kwargs)
        pvalues[i] = res.randomization_pvalue

    result = ConfidenceSetResult(grid=grid, pvalues=pvalues, level=level)
    if result.accepted.size and not result.is_interval:
        logger.warning("Confidence set is not an interval on the supplied grid")
    return result
