"""Readers serving forecasts and observations from in-memory DataFrames."""

from typing import Dict, Optional

import pandas as pd

from ens_verification.data_access.base import ForecastReader, ObservationReader
from ens_verification.utils.exceptions import DataAccessError


class FrameForecastReader(ForecastReader):
    """
    Forecast reader backed by one DataFrame per model.

    Examples
    --------
    >>> reader = FrameForecastReader({"eps1": eps1_df, "eps2": eps2_df})
    >>> fcst = reader.read_forecast("2024010100", "2024010200", ["eps1"], "T2m", [6, 12])
    """

    def __init__(self, tables: Dict[str, pd.DataFrame]):
        self.tables = dict(tables)

    def _load_model_table(
        self, fcst_model: str, parameter: str, file_template: Optional[str]
    ) -> pd.DataFrame:
        if fcst_model not in self.tables:
            raise DataAccessError(f"No forecast data for model '{fcst_model}'")
        return self.tables[fcst_model].copy()


class FrameObservationReader(ObservationReader):
    """Observation reader backed by a single DataFrame."""

    def __init__(self, obs: pd.DataFrame):
        self.obs = obs

    def _load_obs_table(self, parameter: str) -> pd.DataFrame:
        return self.obs.copy()
