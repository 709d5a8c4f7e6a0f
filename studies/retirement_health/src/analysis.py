"""
End-to-end analysis of retirement and health at the state pension age.

Steps, in order:
1. Load the survey extract
2. Aggregate outcomes and treatment by age_Sd
3. Descriptive charts (retirement and physical health by age, age histogram)
4. OLS: difference in means, then with a linear age trend
5. RD plots of physical health and retirement
6. Window selection from pre-treatment covariate balance
7. Fuzzy randomization inference on respondents (Anderson-Rubin)
8. Fuzzy estimation on the age-group means (2SLS effect size)

Any failure aborts the remaining steps.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

import pandas as pd
from matplotlib.figure import Figure
from rich.console import Console

from config.settings import Settings, get_settings
from shared.model.local_randomization import (
    RandInfResult,
    WindowSelectionResult,
    rd_randinf,
    select_window,
)
from shared.model.ols import OLSResult, fit_ols
from shared.model.rd_plot import RDPlotResult, rd_plot
from studies.retirement_health.src.aggregation import aggregate_by_age
from studies.retirement_health.src.plots import (
    age_histogram,
    save_figure,
    smoothed_scatter,
    window_pvalue_plot,
)
from studies.retirement_health.src.survey_data import (
    AGE_OFFSET,
    ELIGIBLE,
    PHYSICAL_HEALTH,
    RETIRED,
    load_survey,
    pre_treatment_matrix,
)

logger = logging.getLogger(__name__)


@dataclass
class AnalysisReport:
    """Everything produced by a full run."""

    n_respondents: int = 0
    aggregates: pd.DataFrame | None = None
    figures: dict[str, Path] = field(default_factory=dict)
    ols: dict[str, OLSResult] = field(default_factory=dict)
    rd_plots: dict[str, RDPlotResult] = field(default_factory=dict)
    window_selection: WindowSelectionResult | None = None
    randinf_individual: RandInfResult | None = None
    randinf_aggregated: RandInfResult | None = None


class RetirementHealthAnalysis:
    """
    Local-randomization RD analysis of retirement and health.

    Running variable: age_Sd (years relative to state pension age)
    Instrument: elig (eligible for the state pension)
    Endogenous: retired
    Outcome: sf12pcs_dv (physical health)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        data_path: Path | None = None,
        console: Console | None = None,
    ):
        """
        Initialize analysis.

        Args:
            settings: Settings (default: cached environment settings)
            data_path: Survey file, overriding settings.data_path
            console: Console for printing summaries as steps complete
        """
        self.settings = settings or get_settings()
        self.data_path = Path(data_path) if data_path else self.settings.data_path
        self.console = console
        self.data: pd.DataFrame | None = None
        self.aggregates: pd.DataFrame | None = None

    def _echo(self, text: str, title: str | None = None) -> None:
        if self.console is None:
            return
        if title:
            self.console.print(f"\n[bold cyan]{title}[/bold cyan]")
        self.console.print(text, markup=False, highlight=False)

    def _require_data(self) -> pd.DataFrame:
        if self.data is None:
            self.load()
        return self.data

    def _require_aggregates(self) -> pd.DataFrame:
        if self.aggregates is None:
            self.aggregate(echo=False)
        return self.aggregates

    def load(self) -> pd.DataFrame:
        """Load the survey extract."""
        logger.info(f"Loading survey from {self.data_path}")
        self.data = load_survey(self.data_path)
        return self.data

    def aggregate(self, echo: bool = True) -> pd.DataFrame:
        """Compute means by age relative to the pension age."""
        self.aggregates = aggregate_by_age(self._require_data(), AGE_OFFSET)
        if echo:
            self._echo(self.aggregates.to_string(index=False), "Means by age_Sd")
        return self.aggregates

    def descriptive_plots(self) -> dict[str, Path]:
        """Retirement and physical health by age, and the age histogram."""
        data = self._require_data()
        agg = self._require_aggregates()
        cutoff = self.settings.cutoff

        figures = {
            "retirement_by_age": lambda: smoothed_scatter(agg, "propret", AGE_OFFSET, cutoff=cutoff),
            "physical_health_by_age": lambda: smoothed_scatter(agg, "meanPH", AGE_OFFSET, cutoff=cutoff),
            "age_histogram": lambda: age_histogram(data, AGE_OFFSET, cutoff=cutoff),
        }
        return self._save_all(figures)

    def fit_ols(self) -> dict[str, OLSResult]:
        """
        Difference in means, then adding a linear age trend.

        The first coefficient on retired is the raw difference in mean
        health; it ignores the decline of health with age.
        """
        data = self._require_data()

        results = {
            "difference_in_means": fit_ols(data, PHYSICAL_HEALTH, [RETIRED]),
            "linear_trend": fit_ols(data, PHYSICAL_HEALTH, [RETIRED, AGE_OFFSET]),
        }
        for name, res in results.items():
            self._echo(res.summary(), f"OLS ({name}): {res.formula}")
        return results

    def rd_plots(self) -> tuple[dict[str, RDPlotResult], dict[str, Path]]:
        """RD plots of physical health and retirement against age_Sd."""
        data = self._require_data()
        cutoff = self.settings.cutoff

        plots = {
            "rdplot_physical_health": rd_plot(data[PHYSICAL_HEALTH], data[AGE_OFFSET], cutoff=cutoff),
            "rdplot_retirement": rd_plot(data[RETIRED], data[AGE_OFFSET], cutoff=cutoff),
        }
        figures = {
            "rdplot_physical_health": lambda: plots["rdplot_physical_health"].plot(
                title="Physical health at the state pension age",
                xlabel="Age relative to state pension age",
                ylabel="SF-12 PCS",
            ),
            "rdplot_retirement": lambda: plots["rdplot_retirement"].plot(
                title="Retirement at the state pension age",
                xlabel="Age relative to state pension age",
                ylabel="Retired",
            ),
        }
        return plots, self._save_all(figures)

    def select_window(self, level: float | None = None) -> WindowSelectionResult:
        """Window selection from pre-treatment covariate balance."""
        data = self._require_data()
        s = self.settings

        selection = select_window(
            data[AGE_OFFSET],
            pre_treatment_matrix(data),
            cutoff=s.cutoff,
            wstep=s.winselect_wstep,
            nwindows=s.winselect_nwindows,
            obsmin=s.winselect_obsmin,
            level=s.winselect_level if level is None else level,
            reps=s.ri_reps,
            seed=s.ri_seed,
        )
        self._echo(selection.summary())
        return selection

    def randinf_individual(
        self,
        wl: float | None = None,
        wr: float | None = None,
    ) -> RandInfResult:
        """
        Fuzzy randomization inference on respondents.

        Assignment is age_Sd >= cutoff and the fuzzy take-up variable is
        pension eligibility. The Anderson-Rubin statistic gives a p-value
        for the sharp null but no effect size.
        """
        data = self._require_data()
        s = self.settings

        result = rd_randinf(
            data[PHYSICAL_HEALTH],
            data[AGE_OFFSET],
            cutoff=s.cutoff,
            wl=s.window_left if wl is None else wl,
            wr=s.window_right if wr is None else wr,
            p=0,
            fuzzy=data[ELIGIBLE],
            fuzzy_stat="ar",
            reps=s.ri_reps,
            seed=s.ri_seed,
        )
        self._echo(result.summary())
        return result

    def randinf_aggregated(
        self,
        wl: float | None = None,
        wr: float | None = None,
    ) -> RandInfResult:
        """
        Fuzzy estimation on the age-group means.

        Mean physical health on mean eligibility per age group, with a 2SLS
        statistic that reports the size of the effect alongside its test.
        """
        agg = self._require_aggregates()
        s = self.settings

        result = rd_randinf(
            agg["meanPH"],
            agg[AGE_OFFSET],
            cutoff=s.cutoff,
            wl=s.window_left if wl is None else wl,
            wr=s.window_right if wr is None else wr,
            p=0,
            fuzzy=agg["meanElig"],
            fuzzy_stat="tsls",
            reps=s.ri_reps,
            seed=s.ri_seed,
        )
        self._echo(result.summary())
        return result

    def _save_all(self, figures: dict[str, Callable[[], Figure]]) -> dict[str, Path]:
        """Draw, save and close each figure before drawing the next."""
        return {
            name: save_figure(draw(), name, self.settings.figures_dir, show=self.settings.show_plots)
            for name, draw in figures.items()
        }

    def run(self) -> AnalysisReport:
        """Run every step in order."""
        report = AnalysisReport()

        report.n_respondents = len(self.load())
        report.aggregates = self.aggregate()
        report.figures.update(self.descriptive_plots())
        report.ols = self.fit_ols()

        plots, paths = self.rd_plots()
        report.rd_plots = plots
        report.figures.update(paths)

        report.window_selection = self.select_window()
        report.figures.update(
            self._save_all({"window_pvalues": lambda: window_pvalue_plot(report.window_selection)})
        )

        report.randinf_individual = self.randinf_individual()
        report.randinf_aggregated = self.randinf_aggregated()

        logger.info(f"Analysis complete: {len(report.figures)} figures written")
        return report
