"""
Survey extract for the retirement and health study.

One row per respondent aged 50-75. Health is measured by the SF-12
physical (PCS) and mental (MCS) component summaries; age_Sd is age in
whole years relative to the state pension age.
"""

import logging
from pathlib import Path

import pandas as pd

from config.settings import get_settings
from shared.data.stata_file import read_stata_table
from shared.errors import require_columns

logger = logging.getLogger(__name__)

PHYSICAL_HEALTH = "sf12pcs_dv"
MENTAL_HEALTH = "sf12mcs_dv"
RETIRED = "retired"
ELIGIBLE = "elig"
AGE_OFFSET = "age_Sd"

# Determined before reaching pension age, so they cannot respond to retirement
PRE_TREATMENT_COVARIATES = ["britishBorn", "white", "scend", "gor_dv"]

REQUIRED_COLUMNS = [
    PHYSICAL_HEALTH,
    MENTAL_HEALTH,
    RETIRED,
    ELIGIBLE,
    AGE_OFFSET,
] + PRE_TREATMENT_COVARIATES


def load_survey(
    path: Path | str | None = None,
    columns: list[str] | None = None,
) -> pd.DataFrame:
    """
    Load the survey extract.

    Args:
        path: Stata file (default: settings.data_path)
        columns: Columns that must be present (default: REQUIRED_COLUMNS)

    Returns:
        Observation table with the study columns

    Raises:
        FileNotFoundError: If the file does not exist
        DataFormatError: If the file is not a readable Stata file
        MissingColumnError: If study columns are missing
    """
    if path is None:
        path = get_settings().data_path

    df = read_stata_table(path, columns=columns or REQUIRED_COLUMNS)

    if {ELIGIBLE, RETIRED, AGE_OFFSET} <= set(df.columns):
        n_elig = int((df[ELIGIBLE] == 1).sum())
        n_ret = int((df[RETIRED] == 1).sum())
        logger.info(
            f"Survey: {len(df):,} respondents, {n_elig:,} eligible, {n_ret:,} retired, "
            f"age_Sd in [{df[AGE_OFFSET].min():g}, {df[AGE_OFFSET].max():g}]"
        )
    return df


def pre_treatment_matrix(data: pd.DataFrame) -> pd.DataFrame:
    """Covariate matrix of the pre-treatment variables, in fixed order."""
    require_columns(data.columns, PRE_TREATMENT_COVARIATES)
    return data[PRE_TREATMENT_COVARIATES].astype(float).reset_index(drop=True)
