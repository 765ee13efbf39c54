"""Restriction of forecasts from several models to their common cases."""

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Dict, List

import pandas as pd

from ens_verification.data_access.tables import CASE_COLUMNS
from ens_verification.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

XTRA_COLS_ERROR = (
    "common_cases_xtra_cols must be a list of column names, "
    "e.g. common_cases_xtra_cols=['p']."
)


def common_cases(
    fcst_data: Dict[str, pd.DataFrame], extra_cols: Any = None
) -> Dict[str, pd.DataFrame]:
    """
    Keep only the cases that every model has a forecast for.

    A case is a station, valid time and lead time, plus any extra columns.

    Parameters
    ----------
    fcst_data : Dict[str, pd.DataFrame]
        Forecast table per model
    extra_cols : Any, optional
        List of extra column names that must also match, e.g. ["p"]

    Returns
    -------
    Dict[str, pd.DataFrame]
        Forecast tables restricted to the common cases. If the models have
        no case in common, every table is empty.

    Raises
    ------
    ConfigurationError
        If extra_cols is not a list of column names, or names columns that
        are not in the data

    Examples
    --------
    >>> aligned = common_cases({"eps1": eps1_df, "eps2": eps2_df})
    >>> len(aligned["eps1"]) == len(aligned["eps2"])
    True
    """
    case_cols = CASE_COLUMNS + check_extra_cols(extra_cols, fcst_data)

    keys = None
    for df in fcst_data.values():
        model_keys = df[case_cols].drop_duplicates()
        if keys is None:
            keys = model_keys
        else:
            keys = keys.merge(model_keys, on=case_cols, how="inner")

    if keys is None:
        return {}

    aligned = {model: df.merge(keys, on=case_cols, how="inner") for model, df in fcst_data.items()}

    logger.info(f"{len(keys)} common cases across {len(fcst_data)} model(s)")
    return aligned


def check_extra_cols(extra_cols: Any, fcst_data: Dict[str, pd.DataFrame]) -> List[str]:
    """Validate the extra case columns and return them as a list."""
    if extra_cols is None:
        return []

    if isinstance(extra_cols, (str, bytes, Mapping)) or not isinstance(extra_cols, Iterable):
        raise ConfigurationError(XTRA_COLS_ERROR)

    extra_cols = list(extra_cols)
    if not all(isinstance(col, str) for col in extra_cols):
        raise ConfigurationError(XTRA_COLS_ERROR)

    for model, df in fcst_data.items():
        missing = [col for col in extra_cols if col not in df.columns]
        if missing:
            raise ConfigurationError(
                f"Column(s) '{', '.join(missing)}' for selecting common cases "
                f"not found in data for '{model}'."
            )

    return [col for col in extra_cols if col not in CASE_COLUMNS]
