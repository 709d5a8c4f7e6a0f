"""
CLI for the retirement and health study.

Usage:
    retirement-health run
    retirement-health aggregate
    retirement-health ols
    retirement-health plots
    retirement-health winselect
    retirement-health randinf
    retirement-health info
"""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from shared.errors import AnalysisError

app = typer.Typer(
    name="retirement-health",
    help="Retirement and Health: Local Randomization RD at the State Pension Age",
    no_args_is_help=True,
)
console = Console()


def setup_logging(level: str = "INFO") -> None:
    """Configure logging with rich output."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _build_analysis(
    data_path: Optional[Path],
    output_dir: Optional[Path] = None,
    show: bool = False,
    reps: Optional[int] = None,
    seed: Optional[int] = None,
):
    from config.settings import get_settings
    from studies.retirement_health.src.analysis import RetirementHealthAnalysis

    settings = get_settings()
    setup_logging(settings.log_level)

    update: dict = {"show_plots": show or settings.show_plots}
    if output_dir is not None:
        update["output_dir"] = output_dir
    if reps is not None:
        update["ri_reps"] = reps
    if seed is not None:
        update["ri_seed"] = seed
    settings = settings.model_copy(update=update)

    return RetirementHealthAnalysis(settings=settings, data_path=data_path, console=console)


def _abort(error: Exception) -> None:
    console.print(f"[red]{type(error).__name__}: {error}[/red]")
    raise typer.Exit(1)


@app.command()
def run(
    data_path: Optional[Path] = typer.Option(None, help="Path to the survey .dta file"),
    output_dir: Optional[Path] = typer.Option(None, help="Directory for figures"),
    show: bool = typer.Option(False, help="Display figures interactively"),
    reps: Optional[int] = typer.Option(None, help="Randomization draws"),
    seed: Optional[int] = typer.Option(None, help="Random seed"),
):
    """Run the full analysis."""
    analysis = _build_analysis(data_path, output_dir, show, reps, seed)

    console.print("\n[bold cyan]Retirement and Health at the State Pension Age[/bold cyan]\n")
    try:
        report = analysis.run()
    except (AnalysisError, FileNotFoundError) as e:
        _abort(e)

    console.print(f"\n[bold green]Done.[/bold green] {report.n_respondents:,} respondents.")
    for name, path in report.figures.items():
        console.print(f"  {name}: {path}")


@app.command()
def aggregate(
    data_path: Optional[Path] = typer.Option(None, help="Path to the survey .dta file"),
):
    """Show outcome and treatment means by age relative to pension age."""
    analysis = _build_analysis(data_path)
    try:
        agg = analysis.aggregate(echo=False)
    except (AnalysisError, FileNotFoundError) as e:
        _abort(e)

    table = Table(title="Means by age_Sd")
    for col in agg.columns:
        table.add_column(col, justify="right")
    for row in agg.itertuples(index=False):
        table.add_row(*[f"{v:.3f}" if isinstance(v, float) else str(v) for v in row])
    console.print(table)


@app.command()
def ols(
    data_path: Optional[Path] = typer.Option(None, help="Path to the survey .dta file"),
):
    """Fit the difference-in-means and linear-trend regressions."""
    analysis = _build_analysis(data_path)
    try:
        analysis.fit_ols()
    except (AnalysisError, FileNotFoundError) as e:
        _abort(e)


@app.command()
def plots(
    data_path: Optional[Path] = typer.Option(None, help="Path to the survey .dta file"),
    output_dir: Optional[Path] = typer.Option(None, help="Directory for figures"),
    show: bool = typer.Option(False, help="Display figures interactively"),
):
    """Draw descriptive charts and RD plots."""
    analysis = _build_analysis(data_path, output_dir, show)

    try:
        paths = analysis.descriptive_plots()
        _, rd_paths = analysis.rd_plots()
    except (AnalysisError, FileNotFoundError) as e:
        _abort(e)

    paths.update(rd_paths)
    for name, path in paths.items():
        console.print(f"{name}: {path}")


@app.command()
def winselect(
    data_path: Optional[Path] = typer.Option(None, help="Path to the survey .dta file"),
    level: Optional[float] = typer.Option(None, help="Significance level (default 0.15)"),
    reps: Optional[int] = typer.Option(None, help="Randomization draws"),
    seed: Optional[int] = typer.Option(None, help="Random seed"),
):
    """Select the window from pre-treatment covariate balance."""
    analysis = _build_analysis(data_path, reps=reps, seed=seed)
    try:
        analysis.select_window(level=level)
    except (AnalysisError, FileNotFoundError) as e:
        _abort(e)


@app.command()
def randinf(
    data_path: Optional[Path] = typer.Option(None, help="Path to the survey .dta file"),
    wl: Optional[float] = typer.Option(None, help="Left window limit (default -4)"),
    wr: Optional[float] = typer.Option(None, help="Right window limit (default 4)"),
    aggregated: bool = typer.Option(False, help="Use age-group means (2SLS estimate)"),
    reps: Optional[int] = typer.Option(None, help="Randomization draws"),
    seed: Optional[int] = typer.Option(None, help="Random seed"),
):
    """Fuzzy RD randomization inference in a window."""
    analysis = _build_analysis(data_path, reps=reps, seed=seed)
    try:
        if aggregated:
            analysis.randinf_aggregated(wl=wl, wr=wr)
        else:
            analysis.randinf_individual(wl=wl, wr=wr)
    except (AnalysisError, FileNotFoundError) as e:
        _abort(e)


@app.command()
def info():
    """Describe the study design and settings."""
    from config.settings import get_settings

    settings = get_settings()

    console.print("\n[bold cyan]Retirement and Health Study[/bold cyan]\n")
    console.print("Running variable: age_Sd (years relative to state pension age)")
    console.print("Assignment: age_Sd >= 0 (pension eligibility)")
    console.print("Endogenous treatment: retired")
    console.print("Outcome: sf12pcs_dv (SF-12 physical component summary)")
    console.print("Pre-treatment covariates: britishBorn, white, scend, gor_dv\n")

    table = Table(title="Settings")
    table.add_column("Setting")
    table.add_column("Value")
    for key in [
        "data_path", "figures_dir", "cutoff", "winselect_level", "winselect_wstep",
        "winselect_nwindows", "ri_reps", "ri_seed", "window_left", "window_right",
    ]:
        table.add_row(key, str(getattr(settings, key)))
    console.print(table)


if __name__ == "__main__":
    app()
