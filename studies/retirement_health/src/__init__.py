"""
Retirement and health study source modules.
"""

from studies.retirement_health.src.survey_data import (
    PRE_TREATMENT_COVARIATES,
    REQUIRED_COLUMNS,
    load_survey,
    pre_treatment_matrix,
)
from studies.retirement_health.src.aggregation import (
    AGE_GROUP_MEANS,
    aggregate_by_age,
)
from studies.retirement_health.src.analysis import (
    AnalysisReport,
    RetirementHealthAnalysis,
)

__all__ = [
    "PRE_TREATMENT_COVARIATES",
    "REQUIRED_COLUMNS",
    "load_survey",
    "pre_treatment_matrix",
    "AGE_GROUP_MEANS",
    "aggregate_by_age",
    "AnalysisReport",
    "RetirementHealthAnalysis",
]
