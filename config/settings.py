"""
Retirement & health study settings.
"""

from pathlib import Path
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Directories
    project_root: Path = Field(
        default_factory=lambda: Path(__file__).parent.parent,
        description="Project root directory",
    )
    data_dir: Path = Field(default=Path("data"), description="Data directory")
    output_dir: Path = Field(
        default=Path("outputs/retirement_health"),
        description="Directory for exported figures",
    )
    survey_file: str = Field(
        default="us_c_50_75.dta",
        description="Stata extract of the survey, relative to the raw data directory",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    # Design
    cutoff: float = Field(default=0.0, description="State pension age cutoff on age_Sd")

    # Window selection
    winselect_level: float = Field(
        default=0.15, description="Significance level for covariate balance"
    )
    winselect_wstep: float = Field(
        default=1.0, description="Increment of the window half-width (years)"
    )
    winselect_nwindows: int = Field(default=10, description="Number of windows scanned")
    winselect_obsmin: int = Field(
        default=10, description="Minimum observations per side in the smallest window"
    )

    # Randomization inference
    ri_reps: int = Field(default=1000, description="Number of randomization draws")
    ri_seed: int = Field(default=666, description="Seed for randomization draws")
    window_left: float = Field(default=-4.0, description="Left window bound (wl)")
    window_right: float = Field(default=4.0, description="Right window bound (wr)")

    # Plots
    show_plots: bool = Field(default=False, description="Display figures interactively")

    @property
    def raw_data_dir(self) -> Path:
        return self.data_dir / "raw"

    @property
    def data_path(self) -> Path:
        return self.project_root / self.raw_data_dir / self.survey_file

    @property
    def figures_dir(self) -> Path:
        return self.project_root / self.output_dir


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
