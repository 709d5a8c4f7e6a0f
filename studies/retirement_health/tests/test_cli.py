"""
Tests for the retirement-health CLI.
"""

import pytest
from typer.testing import CliRunner

from studies.retirement_health.src.cli import app
from tests.fixtures.synthetic_dgp import make_retirement_survey_dgp, write_survey_dta

runner = CliRunner()


@pytest.fixture
def survey_path(tmp_path):
    df, _ = make_retirement_survey_dgp(n_per_age=20, seed=42)
    return write_survey_dta(df, tmp_path / "us_c_50_75.dta")


class TestCLI:
    def test_run(self, survey_path, tmp_path):
        out_dir = tmp_path / "figs"
        result = runner.invoke(
            app,
            ["run", "--data-path", str(survey_path), "--output-dir", str(out_dir), "--reps", "50"],
        )

        assert result.exit_code == 0, result.output
        assert (out_dir / "rdplot_physical_health.png").exists()

    def test_aggregate(self, survey_path):
        result = runner.invoke(app, ["aggregate", "--data-path", str(survey_path)])
        assert result.exit_code == 0, result.output
        assert "Means by age_Sd" in result.output

    def test_randinf_aggregated(self, survey_path):
        result = runner.invoke(
            app, ["randinf", "--data-path", str(survey_path), "--aggregated", "--reps", "50"],
        )
        assert result.exit_code == 0, result.output
        assert "Estimated effect" in result.output

    def test_missing_file_exits_nonzero(self, tmp_path):
        result = runner.invoke(app, ["ols", "--data-path", str(tmp_path / "absent.dta")])
        assert result.exit_code == 1
        assert "FileNotFoundError" in result.output

    def test_info(self):
        result = runner.invoke(app, ["info"])
        assert result.exit_code == 0
        assert "age_Sd" in result.output
