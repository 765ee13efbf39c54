"""Processing of one iteration: read, transform, align, check and score."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from ens_verification.accumulation.accumulator_base import IterationOutcome
from ens_verification.accumulation.results import ChunkResult
from ens_verification.data_access.base import ForecastReader
from ens_verification.ensemble.variants import ModelVariants
from ens_verification.metrics.climatology import Climatology
from ens_verification.metrics.scoring import ens_verify
from ens_verification.parameters.resolver import ParameterInfo
from ens_verification.qc.common_cases import check_extra_cols, common_cases
from ens_verification.qc.data_validation import check_obs_against_fcst, join_to_fcst
from ens_verification.temporal.time_manager import TimeManager
from ens_verification.transforms.lagging import lag_forecast
from ens_verification.transforms.scaling import scale_forecast
from ens_verification.transforms.shifting import rename_shifted_models, shift_forecast
from ens_verification.utils.exceptions import SkippedIteration
from ens_verification.workflow.chunking_strategy import IterationPlan

logger = logging.getLogger(__name__)


@dataclass
class ProcessingOptions:
    """Options that control how every iteration is processed."""

    groupings: Any = ("lead_time",)
    thresholds: Optional[List[float]] = None
    verify_members: bool = True
    jitter_fcst: Optional[Callable[[pd.DataFrame], pd.DataFrame]] = None
    merge_lags_on_read: bool = True
    lag_fcst_models: Optional[List[str]] = None
    parent_cycles: Optional[List[int]] = None
    lag_direction: int = 1
    drop_neg_lead_times: bool = True
    stations: Optional[Sequence[Any]] = None
    common_cases_only: bool = True
    common_cases_xtra_cols: Any = None
    check_obs_fcst: bool = True
    num_sd_allowed: Optional[float] = None
    show_progress: bool = False
    extra_attributes: Dict[str, Any] = field(default_factory=dict)


class ChunkProcessor:
    """
    Verifies the lead times of one iteration.

    The observations are read once for the whole run and shared by all
    iterations; forecasts are read per iteration so that only the lead
    times of one iteration are in memory at a time. Iterations do not
    share any mutable state, so they can run in parallel.
    """

    def __init__(
        self,
        forecast_reader: ForecastReader,
        parameter: ParameterInfo,
        variants: ModelVariants,
        time_manager: TimeManager,
        obs: pd.DataFrame,
        climatology: Climatology,
        options: ProcessingOptions,
        by: str = "6h",
    ):
        """
        Initialize chunk processor.

        Parameters
        ----------
        forecast_reader : ForecastReader
            Reader for the forecasts
        parameter : ParameterInfo
            Parameter being verified
        variants : ModelVariants
            Models to verify with their lags, shifts, scaling and members
        time_manager : TimeManager
            Forecast cycles of the run
        obs : pd.DataFrame
            Checked observations with a column named parameter.full_name
        climatology : Climatology
            Reference forecast for the Brier Skill Score
        options : ProcessingOptions
            Processing options
        by : str, optional
            Cycle frequency, by default "6h"
        """
        self.forecast_reader = forecast_reader
        self.parameter = parameter
        self.variants = variants
        self.time_manager = time_manager
        self.obs = obs
        self.climatology = climatology
        self.options = options
        self.by = by

    def process(self, plan: IterationPlan) -> IterationOutcome:
        """
        Process one iteration.

        Skipped iterations are returned as outcomes without a result; every
        other error propagates.

        Parameters
        ----------
        plan : IterationPlan
            Lead times of the iteration

        Returns
        -------
        IterationOutcome
            Scores and stations, or the reason the iteration was skipped

        Examples
        --------
        >>> outcome = processor.process(plan)
        >>> outcome.skipped
        False
        """
        try:
            result, stations = self.verify_lead_times(plan.lead_times)
        except SkippedIteration as skip:
            return IterationOutcome(
                lead_times=plan.requested_lead_times, stations=skip.stations, skip=skip
            )

        return IterationOutcome(
            lead_times=plan.requested_lead_times, result=result, stations=stations
        )

    def verify_lead_times(self, lead_times: List[int]) -> Tuple[ChunkResult, List[Any]]:
        """
        Read, align, check and score the forecasts for some lead times.

        Stations are taken as soon as the observations are joined, so stations
        of an iteration that is skipped afterwards are still counted.

        Raises
        ------
        SkippedIteration
            If there is nothing to verify for these lead times
        """
        if not lead_times:
            raise SkippedIteration(
                f"Accumulation time of {self.parameter.accum_hours}h is longer than "
                "all lead times of this iteration. Skipping.",
                category="accumulation",
            )

        fcst_data = self.read_forecast(lead_times)
        _skip_if_any_empty(fcst_data, "No forecast data", "no_forecast_data")

        fcst_data = self.transform_forecast(fcst_data, lead_times)
        _skip_if_any_empty(
            fcst_data, "No forecast data after lagging and shifting", "no_forecast_data"
        )

        extra_cols = self.case_columns(fcst_data)
        if self.options.common_cases_only:
            fcst_data = common_cases(fcst_data, extra_cols)
            _skip_if_any_empty(fcst_data, "No common cases", "no_common_cases")

        fcst_data = join_to_fcst(fcst_data, self.obs, self.parameter.full_name, extra_cols)
        stations = sorted(
            set().union(*(set(df["SID"].unique().tolist()) for df in fcst_data.values()))
        )
        _skip_if_any_empty(
            fcst_data, "No observations for the forecasts", "no_common_cases", stations
        )

        if self.options.check_obs_fcst:
            num_sd = self.options.num_sd_allowed
            if num_sd is None:
                num_sd = self.parameter.num_sd_allowed
            fcst_data = check_obs_against_fcst(
                fcst_data, self.parameter.full_name, num_sd, extra_cols
            )
            _skip_if_any_empty(
                fcst_data, "No data left after observation check", "quality_control", stations
            )

        result = ens_verify(
            fcst_data,
            self.parameter.full_name,
            groupings=self.options.groupings,
            thresholds=self.options.thresholds,
            verify_members=self.options.verify_members,
            jitter_fcst=self.options.jitter_fcst,
            climatology=self.climatology,
            show_progress=self.options.show_progress,
        )
        result.attributes.update(self.options.extra_attributes)

        return result, stations

    def case_columns(self, fcst_data: Dict[str, pd.DataFrame]) -> List[str]:
        """
        Columns that identify a case besides station, valid time and lead time.

        These are the level column of upper air data followed by any
        common_cases_xtra_cols.
        """
        extra_cols = check_extra_cols(self.options.common_cases_xtra_cols, fcst_data)
        level_column = self.parameter.level_column
        if level_column is not None and level_column not in extra_cols:
            extra_cols = [level_column] + extra_cols
        return extra_cols

    def read_forecast(self, lead_times: List[int]) -> Dict[str, pd.DataFrame]:
        """Read the forecasts of all model variants for some lead times."""
        return self.forecast_reader.read_forecast(
            self.time_manager.start_date,
            self.time_manager.end_date,
            self.variants.fcst_models,
            self.parameter.full_name,
            lead_times,
            lags=self.variants.lags,
            by=self.by,
            merge_lags=self.options.merge_lags_on_read,
            members=self.variants.members,
            file_template=self.variants.file_template,
            stations=self.options.stations,
            vertical_coordinate=self.parameter.vertical_coordinate,
        )

    def transform_forecast(
        self, fcst_data: Dict[str, pd.DataFrame], lead_times: List[int]
    ) -> Dict[str, pd.DataFrame]:
        """
        Scale, lag and shift forecasts, then keep the cycles and lead times
        of the iteration.

        Scaling uses the names the models were read with, so it is applied
        before shifted models are renamed.
        """
        scale = self.variants.scale
        fcst_data = {
            model: scale_forecast(df, scale[model]) if model in scale else df
            for model, df in fcst_data.items()
        }

        if self.options.merge_lags_on_read:
            fcst_data = rename_shifted_models(fcst_data, self.variants.shifts)
        else:
            if self.options.lag_fcst_models:
                fcst_data = lag_forecast(
                    fcst_data,
                    self.options.lag_fcst_models,
                    self.options.parent_cycles,
                    self.options.lag_direction,
                    level_column=self.parameter.level_column,
                )
            fcst_data = shift_forecast(
                fcst_data,
                self.variants.shifts,
                drop_negative_lead_times=self.options.drop_neg_lead_times,
            )

        cycles = self.time_manager.get_cycle_times()
        restricted = {}
        for model, df in fcst_data.items():
            wanted = df["fcst_dttm"].isin(cycles) & df["lead_time"].isin(lead_times)
            restricted[model] = df[wanted].reset_index(drop=True)
        return restricted


def _skip_if_any_empty(
    fcst_data: Dict[str, pd.DataFrame],
    reason: str,
    category: str,
    stations: Optional[List[Any]] = None,
) -> None:
    empty = [model for model, df in fcst_data.items() if len(df) == 0]
    if not fcst_data or empty:
        models = ", ".join(empty) or "any model"
        raise SkippedIteration(f"{reason} for {models}. Skipping.", category, stations)
