"""
End-to-end tests for the retirement and health analysis.
"""

import io
from pathlib import Path

import matplotlib.pyplot as plt
import pytest
from rich.console import Console

from config.settings import Settings
from shared.errors import MissingColumnError
from studies.retirement_health.src.analysis import RetirementHealthAnalysis
from tests.fixtures.synthetic_dgp import make_retirement_survey_dgp, write_survey_dta

FIGURES = {
    "retirement_by_age",
    "physical_health_by_age",
    "age_histogram",
    "rdplot_physical_health",
    "rdplot_retirement",
    "window_pvalues",
}


@pytest.fixture
def settings(tmp_path):
    return Settings(project_root=tmp_path, output_dir=Path("figures"), ri_reps=100)


@pytest.fixture
def survey_path(tmp_path):
    df, _ = make_retirement_survey_dgp(n_per_age=20, seed=42)
    return write_survey_dta(df, tmp_path / "us_c_50_75.dta")


class TestRetirementHealthAnalysis:
    """Test the full pipeline on a synthetic survey."""

    @pytest.fixture
    def report(self, settings, survey_path):
        return RetirementHealthAnalysis(settings=settings, data_path=survey_path).run()

    def test_counts(self, report):
        assert report.n_respondents == 25 * 20
        assert len(report.aggregates) == 25

    def test_figures_written(self, report, tmp_path):
        assert set(report.figures) == FIGURES
        for path in report.figures.values():
            assert path.parent == tmp_path / "figures"
            assert path.exists()

    def test_ols_models(self, report):
        assert report.ols["difference_in_means"].predictors == ["retired"]
        assert report.ols["linear_trend"].predictors == ["retired", "age_Sd"]

    def test_window_selection(self, report):
        assert report.window_selection.window == (-1.0, 1.0)

    def test_individual_randinf(self, report):
        res = report.randinf_individual
        assert res.statistic == "ar"
        assert res.estimate is None
        assert res.window == (-4.0, 4.0)
        assert res.n_obs == 9 * 20

    def test_aggregated_randinf(self, report):
        res = report.randinf_aggregated
        agg = report.aggregates
        inside = agg[agg["age_Sd"].between(-4, 4)]
        diff = (
            inside.loc[inside["age_Sd"] >= 0, "meanPH"].mean()
            - inside.loc[inside["age_Sd"] < 0, "meanPH"].mean()
        )

        assert res.statistic == "tsls"
        assert res.n_obs == 9
        assert res.estimate == pytest.approx(diff, rel=1e-8)

    def test_window_override(self, settings, survey_path):
        analysis = RetirementHealthAnalysis(settings=settings, data_path=survey_path)
        res = analysis.randinf_individual(wl=-2, wr=2)
        assert res.n_obs == 5 * 20

    def test_summaries_printed(self, settings, survey_path):
        buffer = io.StringIO()
        console = Console(file=buffer, width=120)
        analysis = RetirementHealthAnalysis(settings=settings, data_path=survey_path, console=console)

        analysis.fit_ols()
        analysis.randinf_individual()

        text = buffer.getvalue()
        assert "OLS (difference_in_means)" in text
        assert "OLS (linear_trend)" in text
        assert "Anderson-Rubin" in text

    def test_aggregated_randinf_does_not_print_table(self, settings, survey_path):
        buffer = io.StringIO()
        console = Console(file=buffer, width=120)
        analysis = RetirementHealthAnalysis(settings=settings, data_path=survey_path, console=console)

        analysis.randinf_aggregated()

        text = buffer.getvalue()
        assert "Means by age_Sd" not in text
        assert "Estimated effect" in text
        assert analysis.console is console

    def test_quiet_aggregate(self, settings, survey_path):
        buffer = io.StringIO()
        analysis = RetirementHealthAnalysis(
            settings=settings, data_path=survey_path, console=Console(file=buffer),
        )
        agg = analysis.aggregate(echo=False)

        assert len(agg) == 25
        assert buffer.getvalue() == ""

    def test_each_figure_shown_alone(self, settings, survey_path, monkeypatch):
        open_at_show = []
        monkeypatch.setattr(plt, "show", lambda *a, **k: open_at_show.append(len(plt.get_fignums())))
        plt.close("all")

        analysis = RetirementHealthAnalysis(
            settings=settings.model_copy(update={"show_plots": True}), data_path=survey_path,
        )
        analysis.descriptive_plots()
        analysis.rd_plots()

        assert open_at_show == [1] * 5
        assert plt.get_fignums() == []

    def test_missing_file(self, settings, tmp_path):
        analysis = RetirementHealthAnalysis(settings=settings, data_path=tmp_path / "absent.dta")
        with pytest.raises(FileNotFoundError):
            analysis.run()

    def test_missing_covariate_aborts(self, settings, tmp_path):
        df, _ = make_retirement_survey_dgp(n_per_age=20)
        path = write_survey_dta(df.drop(columns=["scend"]), tmp_path / "survey.dta")

        analysis = RetirementHealthAnalysis(settings=settings, data_path=path)
        with pytest.raises(MissingColumnError):
            analysis.run()
        assert not (tmp_path / "figures").exists()
