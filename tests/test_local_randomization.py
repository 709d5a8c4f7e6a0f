"""Tests for window selection and randomization inference."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from shared.errors import EmptyInputError, NoValidWindowError
from shared.model.local_randomization import (
    as_covariate_frame,
    randinf_confidence_set,
    rd_randinf,
    select_window,
)
from tests.fixtures.synthetic_dgp import (
    make_covariate_pattern_dgp,
    make_retirement_survey_dgp,
    make_sharp_window_dgp,
)

# Smallest window unbalanced, balanced from half-width 2 on
IMBALANCED_NEAR_CUTOFF = {-3: 0.5, -2: 1.0, -1: 0.0, 0: 1.0, 1: 0.0, 2: 0.5}

# Balanced up to half-width 2, rejected at 3
IMBALANCED_FAR = {-3: 0.0, -2: 0.5, -1: 0.5, 0: 0.5, 1: 0.5, 2: 0.5, 3: 1.0}

# Covariate jumps at the cutoff in every window
IMBALANCED_EVERYWHERE = {-3: 0.0, -2: 0.0, -1: 0.0, 0: 1.0, 1: 1.0, 2: 1.0}


def _select(shares, **kwargs):
    df = make_covariate_pattern_dgp(shares)
    kwargs.setdefault("reps", 200)
    return select_window(df["R"], df[["x", "constant_mix"]], **kwargs)


@pytest.fixture
def sharp_exact():
    """Outcome whose noise is the same within every age, so tau=5 fits exactly."""
    rng = np.random.default_rng(3)
    ages = np.arange(-10, 11)
    noise = np.tile(rng.normal(0, 1, 30), len(ages))
    r = np.repeat(ages, 30).astype(float)
    y = 50 + 5.0 * (r >= 0) + noise
    return pd.DataFrame({"R": r, "Y": y})


class TestAsCovariateFrame:
    def test_array_columns_named(self):
        df = as_covariate_frame(np.zeros((4, 2)))
        assert list(df.columns) == ["cov1", "cov2"]

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            as_covariate_frame(np.zeros(3), n=4)


class TestSelectWindow:
    def test_balanced_everywhere_selects_smallest(self):
        df, _ = make_retirement_survey_dgp(ages=range(-5, 6), n_per_age=20)
        covs = df[["britishBorn", "white", "scend", "gor_dv"]]
        res = select_window(df["age_Sd"], covs, reps=200)

        assert res.bandwidth == 1.0
        assert res.window == (-1.0, 1.0)
        assert res.selected is res.windows[0]
        assert all(w.pvalue == 1.0 for w in res.windows)

    def test_scan_stops_when_window_covers_data(self):
        df, _ = make_retirement_survey_dgp(ages=range(-5, 6), n_per_age=20)
        res = select_window(df["age_Sd"], df[["scend"]], reps=50, nwindows=10)
        assert [w.half_width for w in res.windows] == [1.0, 2.0, 3.0, 4.0, 5.0]

    def test_window_counts(self):
        df, _ = make_retirement_survey_dgp(ages=range(-5, 6), n_per_age=20)
        res = select_window(df["age_Sd"], df[["scend"]], reps=50)

        first = res.windows[0]
        assert (first.n_left, first.n_right) == (20, 40)
        assert 0.0 <= first.binomial_pvalue <= 1.0

    def test_skips_unbalanced_smallest_window(self):
        res = _select(IMBALANCED_NEAR_CUTOFF)

        assert res.windows[0].pvalue <= 0.15
        assert res.windows[0].min_variable == "x"
        assert res.bandwidth == 2.0

    def test_more_windows_keep_selection(self):
        short = _select(IMBALANCED_NEAR_CUTOFF, nwindows=2)
        long = _select(IMBALANCED_NEAR_CUTOFF, nwindows=10)

        assert short.window == long.window
        for a, b in zip(short.windows, long.windows):
            assert a.pvalue == b.pvalue

    def test_level_override(self):
        assert _select(IMBALANCED_NEAR_CUTOFF, level=0.15).bandwidth == 2.0
        with pytest.raises(NoValidWindowError):
            _select(IMBALANCED_NEAR_CUTOFF, level=1.0)

    def test_rules_differ(self):
        smallest = _select(IMBALANCED_FAR)
        largest = _select(IMBALANCED_FAR, rule="largest_before_rejection")

        assert smallest.bandwidth == 1.0
        assert largest.bandwidth == 2.0
        assert largest.windows[2].pvalue <= 0.15

    def test_no_balanced_window(self):
        with pytest.raises(NoValidWindowError):
            _select(IMBALANCED_EVERYWHERE)
        with pytest.raises(NoValidWindowError):
            _select(IMBALANCED_EVERYWHERE, rule="largest_before_rejection")

    def test_approximate_balance_tests(self):
        res = _select(IMBALANCED_NEAR_CUTOFF, approx=True)
        assert res.method == "approximate"
        assert res.bandwidth == 2.0

    def test_same_seed_same_pvalues(self):
        a = _select(IMBALANCED_FAR, seed=11)
        b = _select(IMBALANCED_FAR, seed=11)
        assert [w.pvalue for w in a.windows] == [w.pvalue for w in b.windows]

    def test_too_few_observations(self):
        df = make_covariate_pattern_dgp({-1: 0.5, 0: 0.5}, n_per_age=5)
        with pytest.raises(EmptyInputError):
            select_window(df["R"], df[["x"]], obsmin=10)

    def test_unknown_rule(self):
        with pytest.raises(ValueError):
            _select(IMBALANCED_FAR, rule="widest")

    def test_summary_and_frame(self):
        res = _select(IMBALANCED_NEAR_CUTOFF)
        assert len(res.to_frame()) == len(res.windows)
        assert "Selected window: [-2, 2]" in res.summary()


class TestRandInfWindow:
    def test_only_window_observations_used(self):
        df, _ = make_sharp_window_dgp()
        res = rd_randinf(df["Y"], df["R"], wl=-4, wr=4, reps=200)

        assert res.n_obs == int(((df["R"] >= -4) & (df["R"] <= 4)).sum())
        assert (res.n_left, res.n_right) == (120, 150)

    def test_outcomes_outside_window_ignored(self):
        df, _ = make_sharp_window_dgp()
        outside = (df["R"] < -4) | (df["R"] > 4)
        changed = df.assign(Y=df["Y"].where(~outside, 1e6))

        a = rd_randinf(df["Y"], df["R"], wl=-4, wr=4, reps=200, seed=5)
        b = rd_randinf(changed["Y"], changed["R"], wl=-4, wr=4, reps=200, seed=5)

        assert a.obs_stat == b.obs_stat
        assert a.randomization_pvalue == b.randomization_pvalue

    def test_window_must_contain_cutoff(self):
        df, _ = make_sharp_window_dgp()
        with pytest.raises(ValueError):
            rd_randinf(df["Y"], df["R"], wl=1, wr=4)

    def test_empty_side(self):
        df, _ = make_sharp_window_dgp()
        with pytest.raises(EmptyInputError):
            rd_randinf(df["Y"], df["R"], wl=-0.5, wr=4)

    def test_window_required(self):
        df, _ = make_sharp_window_dgp()
        with pytest.raises(ValueError):
            rd_randinf(df["Y"], df["R"])

    def test_window_from_covariates(self):
        df = make_covariate_pattern_dgp(IMBALANCED_FAR)
        y = np.random.default_rng(0).normal(size=len(df))

        res = rd_randinf(y, df["R"], covariates=df[["x", "constant_mix"]], reps=100)

        assert res.window_selection is not None
        assert res.window == res.window_selection.window == (-1.0, 1.0)


class TestSharpRandInf:
    def test_detects_jump(self):
        df, truth = make_sharp_window_dgp(tau=5.0)
        res = rd_randinf(df["Y"], df["R"], wl=-4, wr=4, reps=500)

        assert res.design == "sharp"
        assert res.statistic == "diffmeans"
        assert abs(res.estimate - truth["tau"]) < 0.5
        assert res.randomization_pvalue < 0.01
        assert res.asymptotic_pvalue < 0.01

    def test_true_null_not_rejected(self, sharp_exact):
        res = rd_randinf(sharp_exact["Y"], sharp_exact["R"], wl=-4, wr=4, nulltau=5.0, reps=200)
        assert res.randomization_pvalue == 1.0

    def test_polynomial_jump(self):
        r = np.repeat(np.arange(-6, 7), 10).astype(float)
        y = 1.0 + 0.5 * r + 2.0 * (r >= 0)
        res = rd_randinf(y, r, wl=-6, wr=6, p=1, reps=100)

        assert res.polynomial_order == 1
        assert res.obs_stat == pytest.approx(2.0, abs=1e-8)
        assert res.estimate == pytest.approx(2.0, abs=1e-8)

    def test_bernoulli_assignment(self):
        df, _ = make_sharp_window_dgp()
        res = rd_randinf(
            df["Y"], df["R"], wl=-4, wr=4, bernoulli=np.full(len(df), 0.5), reps=200,
        )
        assert res.assignment == "bernoulli"
        assert res.randomization_pvalue < 0.01

    def test_degenerate_bernoulli_probabilities(self):
        """Probabilities equal to the assignment reproduce it in every draw."""
        df, _ = make_sharp_window_dgp()
        probs = (df["R"] >= 0).astype(float)
        res = rd_randinf(df["Y"], df["R"], wl=-4, wr=4, bernoulli=probs, reps=100)
        assert res.randomization_pvalue == 1.0

    def test_invalid_bernoulli_probabilities(self):
        df, _ = make_sharp_window_dgp()
        with pytest.raises(ValueError):
            rd_randinf(df["Y"], df["R"], wl=-4, wr=4, bernoulli=np.full(len(df), 1.5))


class TestFuzzyRandInf:
    @pytest.fixture
    def fuzzy_data(self):
        rng = np.random.default_rng(21)
        r = np.repeat(np.arange(-10, 11), 30).astype(float)
        z = r >= 0
        d = rng.binomial(1, np.where(z, 0.8, 0.2))
        y = 50 + 3.0 * d + rng.normal(0, 1, len(r))
        return pd.DataFrame({"R": r, "D": d, "Y": y})

    def test_anderson_rubin_has_no_estimate(self, fuzzy_data):
        res = rd_randinf(
            fuzzy_data["Y"], fuzzy_data["R"], wl=-4, wr=4,
            fuzzy=fuzzy_data["D"], fuzzy_stat="ar", reps=200,
        )
        assert res.design == "fuzzy"
        assert res.statistic == "ar"
        assert res.estimate is None
        assert 0.0 <= res.randomization_pvalue <= 1.0
        assert "no point estimate" in res.summary()

    def test_tsls_recovers_effect(self, fuzzy_data):
        res = rd_randinf(
            fuzzy_data["Y"], fuzzy_data["R"], wl=-4, wr=4,
            fuzzy=fuzzy_data["D"], fuzzy_stat="tsls",
        )
        assert res.statistic == "tsls"
        assert abs(res.estimate - 3.0) < 1.2
        assert res.std_error > 0
        assert res.randomization_pvalue is None
        assert "Estimated effect" in res.summary()

    def test_tsls_with_full_compliance_is_difference_in_means(self):
        df, _ = make_sharp_window_dgp()
        inside = df[(df["R"] >= -4) & (df["R"] <= 4)]

        res = rd_randinf(df["Y"], df["R"], wl=-4, wr=4, fuzzy=df["Z"], fuzzy_stat="tsls")

        diff = inside.loc[inside["Z"] == 1, "Y"].mean() - inside.loc[inside["Z"] == 0, "Y"].mean()
        assert res.estimate == pytest.approx(diff, rel=1e-8)

    def test_tsls_without_residual_degrees_of_freedom(self):
        """One group per side fits exactly; no standard error is reported."""
        res = rd_randinf(
            [50.0, 48.5], [-1.0, 0.0], wl=-1, wr=0,
            fuzzy=[0.0, 1.0], fuzzy_stat="tsls",
        )
        assert res.estimate == pytest.approx(-1.5)
        assert np.isnan(res.std_error)
        assert np.isnan(res.asymptotic_pvalue)

    def test_unknown_statistic(self, fuzzy_data):
        with pytest.raises(ValueError):
            rd_randinf(
                fuzzy_data["Y"], fuzzy_data["R"], wl=-4, wr=4,
                fuzzy=fuzzy_data["D"], fuzzy_stat="wald",
            )


class TestConfidenceSet:
    def test_inverts_to_true_effect(self, sharp_exact):
        cs = randinf_confidence_set(
            sharp_exact["Y"], sharp_exact["R"], [0.0, 2.5, 5.0, 7.5, 10.0],
            wl=-4, wr=4, reps=200,
        )
        assert cs.accepted.tolist() == [5.0]
        assert cs.lower == cs.upper == 5.0
        assert cs.is_interval

    def test_rejects_tsls(self, sharp_exact):
        with pytest.raises(ValueError):
            randinf_confidence_set(
                sharp_exact["Y"], sharp_exact["R"], [0.0], wl=-4, wr=4,
                fuzzy=(sharp_exact["R"] >= 0).astype(float), fuzzy_stat="tsls",
            )
