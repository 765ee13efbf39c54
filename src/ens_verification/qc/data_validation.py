"""Observation quality control and joining of observations to forecasts."""

import logging
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from ens_verification.data_access.tables import CASE_COLUMNS, OBS_KEY_COLUMNS, member_columns
from ens_verification.parameters.resolver import ParameterInfo
from ens_verification.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def resolve_obs_column(obs: pd.DataFrame, parameter: ParameterInfo) -> pd.DataFrame:
    """
    Make sure the observations have a column named after the parameter.

    The full parameter name is used if present, otherwise the base name is
    renamed to the full name.

    Parameters
    ----------
    obs : pd.DataFrame
        Observation table
    parameter : ParameterInfo
        Parameter being verified

    Returns
    -------
    pd.DataFrame
        Observations with a column named parameter.full_name

    Raises
    ------
    ConfigurationError
        If neither the full nor the base name is a column
    """
    if parameter.full_name in obs.columns:
        return obs

    if parameter.base_name in obs.columns:
        logger.debug(
            f"Using observation column '{parameter.base_name}' for '{parameter.full_name}'"
        )
        return obs.rename(columns={parameter.base_name: parameter.full_name})

    raise ConfigurationError(f"Don't know what to do with parameter '{parameter.full_name}'.")


def gross_error_check(
    obs: pd.DataFrame,
    parameter: str,
    min_allowed: Optional[float] = None,
    max_allowed: Optional[float] = None,
) -> pd.DataFrame:
    """
    Remove missing observations and observations outside the allowed range.

    Parameters
    ----------
    obs : pd.DataFrame
        Observation table
    parameter : str
        Observation column to check
    min_allowed : float, optional
        Smallest allowed value. No lower bound if None.
    max_allowed : float, optional
        Largest allowed value. No upper bound if None.

    Returns
    -------
    pd.DataFrame
        Observations that passed the check

    Examples
    --------
    >>> obs = pd.DataFrame({"SID": [1, 2], "valid_dttm": [t, t], "T2m": [280.0, 999.0]})
    >>> len(gross_error_check(obs, "T2m", 223.0, 333.0))
    1
    """
    values = obs[parameter]
    valid_mask = values.notna()

    if min_allowed is not None:
        valid_mask &= values >= min_allowed
    if max_allowed is not None:
        valid_mask &= values <= max_allowed

    num_removed = int((~valid_mask).sum())
    if num_removed > 0:
        logger.warning(
            f"{parameter}: {num_removed} observation(s) removed by gross error check "
            f"(allowed range [{min_allowed}, {max_allowed}])"
        )

    return obs[valid_mask].reset_index(drop=True)


def join_to_fcst(
    fcst_data: Dict[str, pd.DataFrame],
    obs: pd.DataFrame,
    parameter: str,
    extra_cols: Optional[List[str]] = None,
) -> Dict[str, pd.DataFrame]:
    """
    Join observations to the forecasts of every model on station and valid time.

    Extra case columns that the observations also have, such as the level
    of upper air data, are part of the join. Forecast rows without an
    observation are dropped.

    Parameters
    ----------
    fcst_data : Dict[str, pd.DataFrame]
        Forecast table per model
    obs : pd.DataFrame
        Observation table
    parameter : str
        Observation column
    extra_cols : List[str], optional
        Extra columns that identify a case, e.g. ["p"]

    Returns
    -------
    Dict[str, pd.DataFrame]
        Forecast tables with an observation column
    """
    keys = OBS_KEY_COLUMNS + [col for col in extra_cols or [] if col in obs.columns]
    obs_values = obs[keys + [parameter]].dropna(subset=[parameter])
    obs_values = obs_values.drop_duplicates(subset=keys)

    joined = {}
    for model, df in fcst_data.items():
        if parameter in df.columns:
            df = df.drop(columns=[parameter])
        joined[model] = df.merge(obs_values, on=keys, how="inner")

    return joined


def check_obs_against_fcst(
    fcst_data: Dict[str, pd.DataFrame],
    parameter: str,
    num_sd_allowed: float,
    extra_cols: Optional[List[str]] = None,
) -> Dict[str, pd.DataFrame]:
    """
    Remove cases where the observation is implausibly far from the forecast.

    For each case the members of all models are pooled. If the observation
    differs from the pooled mean by more than num_sd_allowed pooled standard
    deviations, the case is removed from every model, keeping the cases
    common between models.

    Parameters
    ----------
    fcst_data : Dict[str, pd.DataFrame]
        Forecast tables joined to observations
    parameter : str
        Observation column
    num_sd_allowed : float
        Number of standard deviations the observation may be from the mean
    extra_cols : List[str], optional
        Extra columns that identify a case, e.g. ["p"]

    Returns
    -------
    Dict[str, pd.DataFrame]
        Forecast tables without the rejected cases
    """
    case_cols = CASE_COLUMNS + [col for col in extra_cols or [] if col not in CASE_COLUMNS]
    pooled = _pool_members(fcst_data, parameter, case_cols)
    if pooled.empty:
        return fcst_data

    mean = pooled["sum"] / pooled["n"]
    variance = (pooled["sum_sq"] - pooled["n"] * mean**2) / (pooled["n"] - 1)
    sd = np.sqrt(np.maximum(variance.where(pooled["n"] > 1), 0.0))

    rejected = (pooled["obs"] - mean).abs() > num_sd_allowed * sd
    bad_cases = pooled.index[rejected.fillna(False).to_numpy()].to_frame(index=False)

    if bad_cases.empty:
        return fcst_data

    logger.warning(
        f"{parameter}: {len(bad_cases)} case(s) removed with observations more than "
        f"{num_sd_allowed} standard deviations from the forecast mean"
    )

    checked = {}
    for model, df in fcst_data.items():
        flagged = df[case_cols].merge(
            bad_cases.assign(_rejected=True), on=case_cols, how="left"
        )["_rejected"]
        checked[model] = df[flagged.isna().to_numpy()].reset_index(drop=True)

    return checked


def _pool_members(
    fcst_data: Dict[str, pd.DataFrame], parameter: str, case_cols: List[str]
) -> pd.DataFrame:
    """Sum, sum of squares and count of members per case over all models."""
    pieces = []
    for df in fcst_data.values():
        values = df[member_columns(df)].to_numpy(dtype=float)
        piece = df[case_cols].copy()
        piece["obs"] = df[parameter].to_numpy()
        piece["n"] = np.sum(~np.isnan(values), axis=1)
        piece["sum"] = np.nansum(values, axis=1)
        piece["sum_sq"] = np.nansum(values**2, axis=1)
        pieces.append(piece)

    if not pieces:
        return pd.DataFrame(columns=case_cols + ["obs", "n", "sum", "sum_sq"])

    pooled = pd.concat(pieces, ignore_index=True)
    return pooled.groupby(case_cols).agg(
        obs=("obs", "first"), n=("n", "sum"), sum=("sum", "sum"), sum_sq=("sum_sq", "sum")
    )
