"""
Exceptions raised by the data and model layers.

Missing input files raise the builtin FileNotFoundError.
"""


class AnalysisError(Exception):
    """Base class for analysis failures that abort the pipeline."""


class DataFormatError(AnalysisError, ValueError):
    """Input file exists but cannot be parsed as the expected format."""


class EmptyInputError(AnalysisError, ValueError):
    """A table or window contains no usable rows."""


class MissingColumnError(AnalysisError, ValueError):
    """One or more referenced columns are absent."""

    def __init__(self, missing: list[str], available: list[str] | None = None):
        self.missing = list(missing)
        self.available = list(available) if available is not None else None
        msg = f"Missing required columns: {self.missing}"
        if self.available is not None:
            msg += f" (available: {self.available})"
        super().__init__(msg)


class SingularMatrixError(AnalysisError, ValueError):
    """Design matrix is rank deficient (collinear predictors)."""


class NoValidWindowError(AnalysisError, ValueError):
    """No scanned window satisfies the covariate balance criterion."""


def require_columns(columns, required: list[str]) -> None:
    """Raise MissingColumnError if any of ``required`` is not in ``columns``."""
    available = list(columns)
    missing = [c for c in required if c not in available]
    if missing:
        raise MissingColumnError(missing, available)
