"""
Means of outcomes and treatment by age relative to the pension age.

Plotting respondent-level data directly is uninformative; the
age-group means show the trends and the jump at the cutoff.
"""

import logging

import pandas as pd

from shared.errors import EmptyInputError, require_columns
from studies.retirement_health.src.survey_data import (
    AGE_OFFSET,
    ELIGIBLE,
    MENTAL_HEALTH,
    PHYSICAL_HEALTH,
    RETIRED,
)

logger = logging.getLogger(__name__)

# Output column -> source column
AGE_GROUP_MEANS = {
    "propret": RETIRED,
    "meanElig": ELIGIBLE,
    "meanPH": PHYSICAL_HEALTH,
    "meanMH": MENTAL_HEALTH,
}


def aggregate_by_age(
    data: pd.DataFrame,
    group_col: str = AGE_OFFSET,
    means: dict[str, str] | None = None,
) -> pd.DataFrame:
    """
    Aggregate the observation table by age group.

    Args:
        data: Observation table
        group_col: Grouping column
        means: Output name -> source column (default: AGE_GROUP_MEANS)

    Returns:
        One row per distinct value of group_col, sorted, with the requested
        means and the group size in n_obs

    Raises:
        EmptyInputError: If data has no rows
        MissingColumnError: If a column is absent
    """
    means = means or AGE_GROUP_MEANS

    if len(data) == 0:
        raise EmptyInputError("Cannot aggregate an empty table")
    require_columns(data.columns, [group_col] + list(means.values()))

    agg = (
        data.groupby(group_col, sort=True)
        .agg(
            **{name: (col, "mean") for name, col in means.items()},
            n_obs=(group_col, "size"),
        )
        .reset_index()
    )

    logger.info(f"Aggregated {len(data):,} rows into {len(agg)} {group_col} groups")
    return agg
