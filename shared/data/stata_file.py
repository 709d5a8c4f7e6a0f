"""
Reader for Stata (.dta) extracts.

Survey microdata is distributed as Stata files. Value labels are not
applied: labelled columns keep their numeric codes so they can enter
regressions and balance tests directly.
"""

import logging
from pathlib import Path

import pandas as pd

from shared.errors import DataFormatError, EmptyInputError, require_columns

logger = logging.getLogger(__name__)


def read_stata_table(
    path: Path | str,
    columns: list[str] | None = None,
    allow_empty: bool = False,
) -> pd.DataFrame:
    """
    Read a Stata file into a DataFrame.

    Args:
        path: Location of the .dta file
        columns: Columns that must be present (all columns are returned)
        allow_empty: Accept a file with zero rows

    Returns:
        DataFrame with one row per record in the file

    Raises:
        FileNotFoundError: If the path does not exist
        DataFormatError: If the file cannot be parsed as Stata
        MissingColumnError: If a required column is absent
        EmptyInputError: If the file has no rows and allow_empty is False
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Stata file not found: {path}")

    try:
        df = pd.read_stata(path, convert_categoricals=False)
    except Exception as e:
        # Corrupt files surface as arbitrary errors inside the pandas parser
        raise DataFormatError(f"Cannot read {path} as a Stata file: {e}") from e

    logger.info(f"Loaded {path.name}: {df.shape[0]:,} rows x {df.shape[1]} columns")

    if columns:
        require_columns(df.columns, columns)

    if len(df) == 0 and not allow_empty:
        raise EmptyInputError(f"Stata file {path} contains no rows")

    return df
