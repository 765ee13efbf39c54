"""Time management for verification runs."""

import logging
from typing import Sequence, Tuple, Union

import pandas as pd

from ens_verification.temporal.periods import parse_date, to_seconds
from ens_verification.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class TimeManager:
    """
    Manages the forecast cycles and observation window of a verification run.

    Forecast cycles run from start_date to end_date every `by`. Observations
    are needed from the first cycle until the valid time of the longest lead
    time of the last cycle.
    """

    def __init__(
        self,
        start_date: Union[str, int, pd.Timestamp],
        end_date: Union[str, int, pd.Timestamp],
        by: Union[str, int] = "6h",
    ):
        """
        Initialize time manager.

        Parameters
        ----------
        start_date : Union[str, int, pd.Timestamp]
            First forecast cycle, YYYYMMDD(HH)(mm)
        end_date : Union[str, int, pd.Timestamp]
            Last forecast cycle, YYYYMMDD(HH)(mm)
        by : Union[str, int], optional
            Frequency of forecast cycles, by default "6h"

        Examples
        --------
        >>> tm = TimeManager("2024010100", "2024010212", by="12h")
        >>> len(tm.get_cycle_times())
        4
        """
        self.start_date = parse_date(start_date)
        self.end_date = parse_date(end_date)
        self.by_seconds = to_seconds(by)

        if self.end_date < self.start_date:
            raise ConfigurationError(
                f"end_date ({self.end_date}) is before start_date ({self.start_date})"
            )

        if self.by_seconds <= 0:
            raise ConfigurationError(f"Cycle frequency must be positive, got '{by}'")

    def get_cycle_times(self) -> pd.DatetimeIndex:
        """
        Get all forecast cycle times in the verification period.

        Returns
        -------
        pd.DatetimeIndex
            Cycle times from start_date to end_date (inclusive)
        """
        return pd.date_range(
            self.start_date, self.end_date, freq=pd.Timedelta(seconds=self.by_seconds)
        )

    def observation_window(self, lead_times: Sequence[int]) -> Tuple[pd.Timestamp, pd.Timestamp]:
        """
        Compute the period observations must be read for.

        Parameters
        ----------
        lead_times : Sequence[int]
            Lead times (hours) being verified

        Returns
        -------
        Tuple[pd.Timestamp, pd.Timestamp]
            (first_obs, last_obs)
        """
        max_lead = max(lead_times) if len(lead_times) > 0 else 0
        last_obs = self.end_date + pd.Timedelta(hours=int(max_lead))

        logger.debug(f"Observation window: {self.start_date} to {last_obs}")
        return self.start_date, last_obs
