"""Readers for forecast and observation tables stored as CSV files."""

import logging
from pathlib import Path
from typing import Optional

import pandas as pd

from ens_verification.data_access.base import ForecastReader, ObservationReader
from ens_verification.utils.exceptions import DataAccessError

logger = logging.getLogger(__name__)

DEFAULT_FCTABLE_TEMPLATE = "{fcst_model}/FCTABLE_{parameter}.csv"
DEFAULT_OBSTABLE_TEMPLATE = "OBSTABLE_{parameter}.csv"


class FctableReader(ForecastReader):
    """
    Reader for forecast tables stored as one CSV file per model and parameter.

    File names are built from a template with `str.format` placeholders
    {fcst_model} and {parameter}, relative to fcst_path.
    """

    def __init__(self, fcst_path: Path, file_template: Optional[str] = None):
        """
        Initialize forecast table reader.

        Parameters
        ----------
        fcst_path : Path
            Base directory of the forecast tables
        file_template : str, optional
            Default file template, by default "{fcst_model}/FCTABLE_{parameter}.csv"
        """
        self.fcst_path = Path(fcst_path)
        self.file_template = file_template or DEFAULT_FCTABLE_TEMPLATE

    def _load_model_table(
        self, fcst_model: str, parameter: str, file_template: Optional[str]
    ) -> pd.DataFrame:
        file_path = self._get_file_path(fcst_model, parameter, file_template)

        if not file_path.exists():
            raise DataAccessError(f"Forecast file not found: {file_path}")

        logger.info(f"Reading {file_path}")
        return _read_csv(file_path)

    def _get_file_path(
        self, fcst_model: str, parameter: str, file_template: Optional[str] = None
    ) -> Path:
        template = file_template or self.file_template
        try:
            filename = template.format(fcst_model=fcst_model, parameter=parameter)
        except KeyError as e:
            raise DataAccessError(f"Unknown placeholder {e} in file template '{template}'")
        return self.fcst_path / filename


class ObstableReader(ObservationReader):
    """Reader for observation tables stored as one CSV file per parameter."""

    def __init__(self, obs_path: Path, obsfile_template: Optional[str] = None):
        self.obs_path = Path(obs_path)
        self.obsfile_template = obsfile_template or DEFAULT_OBSTABLE_TEMPLATE

    def _load_obs_table(self, parameter: str) -> pd.DataFrame:
        try:
            filename = self.obsfile_template.format(parameter=parameter)
        except KeyError as e:
            raise DataAccessError(
                f"Unknown placeholder {e} in file template '{self.obsfile_template}'"
            )
        file_path = self.obs_path / filename

        if not file_path.exists():
            raise DataAccessError(f"Observation file not found: {file_path}")

        logger.info(f"Reading {file_path}")
        return _read_csv(file_path)


def _read_csv(file_path: Path) -> pd.DataFrame:
    try:
        return pd.read_csv(file_path)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise DataAccessError(f"Could not read {file_path}: {e}")
