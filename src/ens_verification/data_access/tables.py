"""Column conventions shared by forecast and observation tables."""

import re
from typing import List, Optional

import pandas as pd

from ens_verification.utils.exceptions import ConfigurationError, DataAccessError

# Columns identifying one forecast of one model
KEY_COLUMNS = ["SID", "fcst_dttm", "valid_dttm", "lead_time"]

# Columns identifying one verification case across models
CASE_COLUMNS = ["SID", "valid_dttm", "lead_time"]

OBS_KEY_COLUMNS = ["SID", "valid_dttm"]

# Level column for each vertical coordinate of upper air data
LEVEL_COLUMNS = {"pressure": "p", "model": "ml", "height": "z"}

MEMBER_PATTERN = re.compile(r"^(?P<source>.+)_mbr(?P<member>\d{3})(?:_lag(?P<lag>\d+)h)?$")

UNSHIFTED_SUFFIX = "_unshifted"


def member_columns(df: pd.DataFrame) -> List[str]:
    """Get the ensemble member columns of a forecast table, in column order."""
    return [col for col in df.columns if MEMBER_PATTERN.match(str(col))]


def parse_member_column(name: str) -> Optional[re.Match]:
    """Split a member column name into source, member number and lag."""
    return MEMBER_PATTERN.match(name)


def source_model(fcst_model: str) -> str:
    """Name of the stored model a (possibly unshifted) variant is read from."""
    if fcst_model.endswith(UNSHIFTED_SUFFIX):
        return fcst_model[: -len(UNSHIFTED_SUFFIX)]
    return fcst_model


def rename_members_with_lag(df: pd.DataFrame, lag_hours: int) -> pd.DataFrame:
    """Tag member columns with the lag they came from."""
    if lag_hours == 0:
        return df
    mapping = {col: f"{col}_lag{lag_hours}h" for col in member_columns(df)}
    return df.rename(columns=mapping)


def vertical_level_column(vertical_coordinate: Optional[str]) -> Optional[str]:
    """
    Get the level column for a vertical coordinate.

    Raises
    ------
    ConfigurationError
        If the vertical coordinate is not None, "pressure", "model" or "height"
    """
    if vertical_coordinate is None:
        return None
    if vertical_coordinate not in LEVEL_COLUMNS:
        raise ConfigurationError(
            f"vertical_coordinate must be one of {', '.join(LEVEL_COLUMNS)} or None, "
            f"got {vertical_coordinate!r}"
        )
    return LEVEL_COLUMNS[vertical_coordinate]


def row_key_columns(level_column: Optional[str] = None) -> List[str]:
    """Columns identifying one forecast row, including the level for upper air data."""
    if level_column is None:
        return list(KEY_COLUMNS)
    return KEY_COLUMNS + [level_column]


def normalize_station_ids(sid: pd.Series) -> pd.Series:
    """
    Give station ids one type: integers when all are whole numbers, else strings.

    CSV files give integer ids while in-memory tables may hold the same ids
    as strings, so both are brought to the same type before joining.
    """
    numeric = pd.to_numeric(sid, errors="coerce")
    if numeric.notna().all() and (numeric % 1 == 0).all():
        return numeric.astype("int64")
    return sid.astype(str)


def check_level_column(df: pd.DataFrame, level_column: Optional[str], source: str) -> None:
    """Raise DataAccessError if upper air data has no level column."""
    if level_column is not None and level_column not in df.columns:
        raise DataAccessError(f"{source} has no '{level_column}' column for its vertical level")


def add_fcst_cycle(df: pd.DataFrame) -> pd.DataFrame:
    """Add the two digit forecast cycle hour, used for grouping."""
    df = df.copy()
    df["fcst_cycle"] = df["fcst_dttm"].dt.strftime("%H")
    return df


def normalize_forecast_table(df: pd.DataFrame, fcst_model: str) -> pd.DataFrame:
    """
    Check and normalize a forecast table.

    Parameters
    ----------
    df : pd.DataFrame
        Raw forecast table with SID, fcst_dttm, lead_time and member columns
    fcst_model : str
        Model name for error messages

    Returns
    -------
    pd.DataFrame
        Table with datetime columns, integer lead times and valid_dttm

    Raises
    ------
    DataAccessError
        If required columns are missing
    """
    missing = [col for col in ["SID", "fcst_dttm", "lead_time"] if col not in df.columns]
    if missing:
        raise DataAccessError(
            f"Forecast table for '{fcst_model}' is missing column(s): {', '.join(missing)}"
        )

    if not member_columns(df):
        raise DataAccessError(
            f"Forecast table for '{fcst_model}' has no ensemble member columns "
            "(expected names like '<model>_mbr000')"
        )

    df = df.copy()
    df["SID"] = normalize_station_ids(df["SID"])
    df["fcst_dttm"] = pd.to_datetime(df["fcst_dttm"])
    df["lead_time"] = df["lead_time"].astype(int)

    if "valid_dttm" in df.columns:
        df["valid_dttm"] = pd.to_datetime(df["valid_dttm"])
    else:
        df["valid_dttm"] = df["fcst_dttm"] + pd.to_timedelta(df["lead_time"], unit="h")

    return df


def normalize_obs_table(df: pd.DataFrame) -> pd.DataFrame:
    """
    Check and normalize an observation table.

    Raises
    ------
    DataAccessError
        If SID or valid_dttm are missing
    """
    missing = [col for col in OBS_KEY_COLUMNS if col not in df.columns]
    if missing:
        raise DataAccessError(f"Observation table is missing column(s): {', '.join(missing)}")

    df = df.copy()
    df["SID"] = normalize_station_ids(df["SID"])
    df["valid_dttm"] = pd.to_datetime(df["valid_dttm"])
    return df
