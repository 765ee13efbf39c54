"""Unit scaling of forecast and observation values."""

import logging

import pandas as pd

from ens_verification.data_access.tables import member_columns
from ens_verification.ensemble.options import ScaleSpec
from ens_verification.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def _scale_values(values: pd.DataFrame, spec: ScaleSpec) -> pd.DataFrame:
    if spec.multiplicative:
        return values * spec.scale_factor
    return values + spec.scale_factor


def scale_forecast(df: pd.DataFrame, spec: ScaleSpec) -> pd.DataFrame:
    """
    Scale every ensemble member of a forecast table.

    Parameters
    ----------
    df : pd.DataFrame
        Forecast table
    spec : ScaleSpec
        Scaling to apply

    Returns
    -------
    pd.DataFrame
        Scaled copy with units set to spec.new_units

    Examples
    --------
    >>> spec = ScaleSpec(scale_factor=-273.15, new_units="degC", multiplicative=False)
    >>> celsius = scale_forecast(kelvin_df, spec)
    """
    df = df.copy()
    members = member_columns(df)
    df[members] = _scale_values(df[members], spec)
    df["units"] = spec.new_units
    return df


def scale_obs(df: pd.DataFrame, parameter: str, spec: ScaleSpec) -> pd.DataFrame:
    """
    Scale the observed values of a parameter.

    Raises
    ------
    ConfigurationError
        If the parameter column does not exist
    """
    if parameter not in df.columns:
        raise ConfigurationError(f"Cannot scale observations: no column '{parameter}'")

    df = df.copy()
    df[parameter] = _scale_values(df[parameter], spec)
    df["units"] = spec.new_units
    logger.info(f"Scaled {parameter} observations to {spec.new_units}")
    return df
