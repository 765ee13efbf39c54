"""Base classes for forecast and observation readers."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from ens_verification.data_access.tables import (
    KEY_COLUMNS,
    add_fcst_cycle,
    check_level_column,
    member_columns,
    normalize_forecast_table,
    normalize_obs_table,
    normalize_station_ids,
    parse_member_column,
    rename_members_with_lag,
    row_key_columns,
    source_model,
    vertical_level_column,
)
from ens_verification.temporal.periods import parse_date, to_hours
from ens_verification.temporal.time_manager import TimeManager
from ens_verification.utils.exceptions import DataAccessError

logger = logging.getLogger(__name__)


class ForecastReader(ABC):
    """
    Base class for reading ensemble point forecasts.

    Subclasses only load the full table of one stored model. Selection of
    cycles, lead times, lags, members and stations happens here, so every
    reader handles lagging the same way.
    """

    def read_forecast(
        self,
        start_date: Any,
        end_date: Any,
        fcst_models: Sequence[str],
        parameter: str,
        lead_times: Sequence[int],
        lags: Optional[Dict[str, List[str]]] = None,
        by: str = "6h",
        merge_lags: bool = True,
        members: Optional[Dict[str, Any]] = None,
        file_template: Optional[Dict[str, str]] = None,
        stations: Optional[Sequence[Any]] = None,
        vertical_coordinate: Optional[str] = None,
    ) -> Dict[str, pd.DataFrame]:
        """
        Read forecasts for a set of cycles and lead times.

        Parameters
        ----------
        start_date, end_date : Any
            First and last forecast cycle, YYYYMMDD(HH)(mm)
        fcst_models : Sequence[str]
            Models to read. "<model>_unshifted" variants read <model>.
        parameter : str
            Parameter to read
        lead_times : Sequence[int]
            Lead times (hours) to read
        lags : Dict[str, List[str]], optional
            Lag periods per model. Missing models are not lagged.
        by : str, optional
            Cycle frequency, by default "6h"
        merge_lags : bool, optional
            If True, members from lagged cycles are attached to the cycle they
            are lagged onto. If False, rows of the lagged cycles are returned
            as they are stored. By default True.
        members : Dict[str, Any], optional
            Member numbers per model, or per sub model for multi model ensembles
        file_template : Dict[str, str], optional
            File template per model
        stations : Sequence[Any], optional
            Station ids to keep
        vertical_coordinate : str, optional
            Vertical coordinate of upper air data. The tables must then have
            its level column, and rows are matched on level as well.

        Returns
        -------
        Dict[str, pd.DataFrame]
            Forecast table per model

        Raises
        ------
        DataAccessError
            If a table cannot be read or lacks required columns
        """
        cycles = TimeManager(start_date, end_date, by).get_cycle_times()
        lags = lags or {}
        members = members or {}
        file_template = file_template or {}
        level_column = vertical_level_column(vertical_coordinate)

        fcst_data = {}
        for fcst_model in fcst_models:
            table = self._load_model_table(
                source_model(fcst_model), parameter, file_template.get(fcst_model)
            )
            table = normalize_forecast_table(table, fcst_model)
            check_level_column(table, level_column, f"Forecast table for '{fcst_model}'")

            if stations is not None:
                table = table[table["SID"].isin(_station_list(stations))]

            if members.get(fcst_model) is not None:
                table = select_members(table, members[fcst_model], fcst_model)

            model_lags = _unique_lag_hours(lags.get(fcst_model, ["0s"]))
            if merge_lags:
                table = merge_lagged_cycles(
                    table, cycles, lead_times, model_lags, row_key_columns(level_column)
                )
            else:
                table = select_lagged_cycles(table, cycles, lead_times, model_lags)

            fcst_data[fcst_model] = add_fcst_cycle(table).reset_index(drop=True)
            logger.debug(f"Read {len(table)} rows of {parameter} for {fcst_model}")

        return fcst_data

    @abstractmethod
    def _load_model_table(
        self, fcst_model: str, parameter: str, file_template: Optional[str]
    ) -> pd.DataFrame:
        """
        Load every stored forecast of one model and parameter.

        Raises
        ------
        DataAccessError
            If the data cannot be found or read
        """
        pass


class ObservationReader(ABC):
    """Base class for reading point observations."""

    def read_obs(
        self,
        start_date: Any,
        end_date: Any,
        parameter: str,
        stations: Optional[Sequence[Any]] = None,
        vertical_coordinate: Optional[str] = None,
    ) -> pd.DataFrame:
        """
        Read observations valid between start_date and end_date (inclusive).

        Parameters
        ----------
        start_date, end_date : Any
            Observation window, YYYYMMDD(HH)(mm) or timestamps
        parameter : str
            Parameter to read
        stations : Sequence[Any], optional
            Station ids to keep
        vertical_coordinate : str, optional
            Vertical coordinate of upper air data, whose level column must
            then be in the table

        Returns
        -------
        pd.DataFrame
            Observation table
        """
        obs = normalize_obs_table(self._load_obs_table(parameter))
        check_level_column(obs, vertical_level_column(vertical_coordinate), "Observation table")

        start = parse_date(start_date)
        end = parse_date(end_date)
        obs = obs[(obs["valid_dttm"] >= start) & (obs["valid_dttm"] <= end)]

        if stations is not None:
            obs = obs[obs["SID"].isin(_station_list(stations))]

        logger.debug(f"Read {len(obs)} observations of {parameter}")
        return obs.reset_index(drop=True)

    @abstractmethod
    def _load_obs_table(self, parameter: str) -> pd.DataFrame:
        """Load every stored observation of a parameter."""
        pass


def select_members(table: pd.DataFrame, selection: Any, fcst_model: str) -> pd.DataFrame:
    """
    Keep the selected ensemble members.

    Parameters
    ----------
    table : pd.DataFrame
        Forecast table
    selection : Any
        List of member numbers, or mapping of sub model name to member numbers
    fcst_model : str
        Model name for error messages

    Returns
    -------
    pd.DataFrame
        Table with only the selected member columns
    """
    keep = []
    for col in member_columns(table):
        parts = parse_member_column(col)
        member = int(parts.group("member"))
        if isinstance(selection, dict):
            wanted = member in selection.get(parts.group("source"), [])
        else:
            wanted = member in selection
        if wanted:
            keep.append(col)

    if not keep:
        raise DataAccessError(f"None of the requested members {selection} found for '{fcst_model}'")

    drop = [col for col in member_columns(table) if col not in keep]
    return table.drop(columns=drop)


def merge_lagged_cycles(
    table: pd.DataFrame,
    cycles: pd.DatetimeIndex,
    lead_times: Sequence[int],
    lag_hours: Sequence[int],
    key_columns: Optional[List[str]] = None,
) -> pd.DataFrame:
    """
    Build forecasts for the requested cycles from the current and lagged cycles.

    For a lag L, the forecast issued at cycle t - L for lead time lt + L is
    valid at the same time as cycle t lead time lt, so its members are
    re-keyed onto (t, lt) and renamed with a "_lagLh" suffix. Cases missing
    from any lag are dropped. Rows are matched on key_columns, by default
    station, cycle, valid time and lead time.
    """
    key_columns = key_columns or KEY_COLUMNS
    merged = None
    for lag in lag_hours:
        offset = pd.Timedelta(hours=lag)
        wanted = table["fcst_dttm"].isin(cycles - offset) & table["lead_time"].isin(
            [lead_time + lag for lead_time in lead_times]
        )
        piece = table[wanted].copy()
        piece["fcst_dttm"] = piece["fcst_dttm"] + offset
        piece["lead_time"] = piece["lead_time"] - lag
        piece = rename_members_with_lag(piece, lag)

        if merged is None:
            merged = piece
        else:
            merged = merged.merge(
                piece[key_columns + member_columns(piece)], on=key_columns, how="inner"
            )

    return merged


def select_lagged_cycles(
    table: pd.DataFrame,
    cycles: pd.DatetimeIndex,
    lead_times: Sequence[int],
    lag_hours: Sequence[int],
) -> pd.DataFrame:
    """Keep the stored rows of all cycles and lead times needed for lagging later."""
    wanted_cycles = set()
    wanted_leads = set()
    for lag in lag_hours:
        wanted_cycles.update(cycles - pd.Timedelta(hours=lag))
        wanted_leads.update(lead_time + lag for lead_time in lead_times)

    wanted = table["fcst_dttm"].isin(list(wanted_cycles)) & table["lead_time"].isin(
        list(wanted_leads)
    )
    return table[wanted].copy()


def _station_list(stations: Sequence[Any]) -> List[Any]:
    return normalize_station_ids(pd.Series(list(stations), dtype=object)).tolist()


def _unique_lag_hours(lags: Sequence[str]) -> List[int]:
    return list(dict.fromkeys(to_hours(lag) for lag in lags))
