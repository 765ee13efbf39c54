"""Lagging of ensembles after reading: attach earlier or later cycles to parent cycles."""

import logging
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from ens_verification.data_access.tables import (
    member_columns,
    rename_members_with_lag,
    row_key_columns,
)
from ens_verification.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def lag_forecast(
    fcst_data: Dict[str, pd.DataFrame],
    lag_fcst_models: Sequence[str],
    parent_cycles: Sequence[int],
    direction: int = 1,
    level_column: Optional[str] = None,
) -> Dict[str, pd.DataFrame]:
    """
    Combine the members of several cycles into lagged ensembles.

    Each cycle is attached to a parent cycle. With direction 1 a cycle is
    attached to the next parent cycle at or after it (earlier cycles lagged
    onto the parent); with direction -1 to the previous parent at or before
    it. Members of attached cycles are renamed with a "_lagLh" suffix and
    matched to the parent on valid time, so the rows of non-parent cycles
    disappear.

    Parameters
    ----------
    fcst_data : Dict[str, pd.DataFrame]
        Forecast table per model, as read without merging lags
    lag_fcst_models : Sequence[str]
        Models to lag
    parent_cycles : Sequence[int]
        Cycle hours (0-23) of the parent forecasts
    direction : int, optional
        1 or -1, by default 1
    level_column : str, optional
        Level column of upper air data, matched as well as valid time

    Returns
    -------
    Dict[str, pd.DataFrame]
        Forecast tables with lagged models replaced
    """
    if direction not in (1, -1):
        raise ConfigurationError(f"'lag_direction' must be 1 or -1, got {direction!r}")

    parents = sorted({int(cycle) for cycle in parent_cycles})
    if not parents or any(cycle < 0 or cycle > 23 for cycle in parents):
        raise ConfigurationError(
            f"'parent_cycles' must be cycle hours between 0 and 23, got {list(parent_cycles)}"
        )

    missing = [model for model in lag_fcst_models if model not in fcst_data]
    if missing:
        raise ConfigurationError(
            f"{', '.join(missing)} supplied in 'lag_fcst_models', but no data were read for them."
        )

    lagged = dict(fcst_data)
    for model in lag_fcst_models:
        lagged[model] = _lag_model(
            fcst_data[model], parents, direction, row_key_columns(level_column)
        )
        logger.info(f"Lagged {model} onto parent cycles {parents}")

    return lagged


def _lag_model(
    df: pd.DataFrame, parents: List[int], direction: int, key_columns: List[str]
) -> pd.DataFrame:
    offsets = _parent_offset_hours(df["fcst_dttm"], parents, direction)

    df = df.copy()
    df["fcst_dttm"] = df["fcst_dttm"] + pd.to_timedelta(offsets, unit="h").to_numpy()
    df["lead_time"] = df["lead_time"] - offsets
    lag_hours = np.abs(offsets)

    parent_rows = df[lag_hours == 0]
    if "fcst_cycle" in parent_rows.columns:
        parent_rows = parent_rows.assign(fcst_cycle=parent_rows["fcst_dttm"].dt.strftime("%H"))

    merged = parent_rows
    for lag in sorted(set(lag_hours[lag_hours > 0])):
        child_rows = rename_members_with_lag(df[lag_hours == lag], int(lag))
        merged = merged.merge(
            child_rows[key_columns + member_columns(child_rows)], on=key_columns, how="inner"
        )

    return merged[merged["lead_time"] >= 0].reset_index(drop=True)


def _parent_offset_hours(
    cycle_times: pd.Series, parents: List[int], direction: int
) -> np.ndarray:
    """Hours from each cycle to the parent cycle it belongs to."""
    days = cycle_times.dt.normalize()
    candidates = np.column_stack(
        [
            ((days + pd.Timedelta(days=day, hours=hour)) - cycle_times)
            / pd.Timedelta(hours=1)
            for day in (-1, 0, 1)
            for hour in parents
        ]
    )

    if direction == 1:
        return np.where(candidates >= 0, candidates, np.inf).min(axis=1).astype(int)
    return np.where(candidates <= 0, candidates, -np.inf).max(axis=1).astype(int)
