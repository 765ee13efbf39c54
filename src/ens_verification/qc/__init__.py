"""Quality control modules."""

from ens_verification.qc.common_cases import common_cases
from ens_verification.qc.data_validation import (
    check_obs_against_fcst,
    gross_error_check,
    join_to_fcst,
    resolve_obs_column,
)
from ens_verification.qc.warnings import WARNING_CATEGORIES, WarningManager

__all__ = [
    "common_cases",
    "resolve_obs_column",
    "gross_error_check",
    "join_to_fcst",
    "check_obs_against_fcst",
    "WarningManager",
    "WARNING_CATEGORIES",
]
