"""Main verification workflow: the verify entry point and the config-driven orchestrator."""

import inspect
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

import pandas as pd
from tqdm import tqdm

from ens_verification.accumulation.accumulator_base import IterationOutcome, VerificationAccumulator
from ens_verification.accumulation.results import VerificationResult
from ens_verification.data_access.base import ForecastReader, ObservationReader
from ens_verification.data_access.fctable_reader import FctableReader, ObstableReader
from ens_verification.ensemble.options import ScaleSpec
from ens_verification.ensemble.variants import resolve_model_variants
from ens_verification.metrics.climatology import resolve_climatology
from ens_verification.parameters.resolver import ParameterInfo, resolve_parameter
from ens_verification.qc.data_validation import gross_error_check as check_gross_errors
from ens_verification.qc.data_validation import resolve_obs_column
from ens_verification.qc.warnings import WarningManager
from ens_verification.storage.metadata import MetadataTracker
from ens_verification.storage.output_writer import save_point_verif
from ens_verification.temporal.time_manager import TimeManager
from ens_verification.transforms.scaling import scale_obs as apply_obs_scaling
from ens_verification.utils.config_parser import load_config
from ens_verification.utils.exceptions import ConfigurationError
from ens_verification.utils.logging import setup_logging
from ens_verification.workflow.chunking_strategy import ChunkingStrategy, IterationPlan
from ens_verification.workflow.processor import ChunkProcessor, ProcessingOptions

logger = logging.getLogger(__name__)

DEFAULT_LEAD_TIMES = range(0, 49, 3)


def verify(
    start_date: Any,
    end_date: Any,
    parameter: str,
    fcst_models: Union[str, Sequence[str]],
    forecast_reader: ForecastReader,
    observation_reader: ObservationReader,
    lead_times: Iterable[int] = DEFAULT_LEAD_TIMES,
    num_iterations: Optional[int] = None,
    verify_members: bool = True,
    thresholds: Optional[Sequence[float]] = None,
    members: Any = None,
    file_template: Any = None,
    groupings: Any = ("lead_time",),
    by: str = "6h",
    lags: Any = "0s",
    merge_lags_on_read: bool = True,
    lag_fcst_models: Optional[Sequence[str]] = None,
    parent_cycles: Optional[Sequence[int]] = None,
    lag_direction: int = 1,
    fcst_shifts: Any = None,
    keep_unshifted: bool = False,
    drop_neg_lead_times: bool = True,
    climatology: Any = "sample",
    stations: Optional[Sequence[Any]] = None,
    vertical_coordinate: Optional[str] = None,
    scale_fcst: Any = None,
    scale_obs: Any = None,
    jitter_fcst: Optional[Callable[[pd.DataFrame], pd.DataFrame]] = None,
    common_cases_only: bool = True,
    common_cases_xtra_cols: Any = None,
    check_obs_fcst: bool = True,
    gross_error_check: bool = True,
    min_allowed: Optional[float] = None,
    max_allowed: Optional[float] = None,
    num_sd_allowed: Optional[float] = None,
    show_progress: bool = False,
    verif_path: Optional[Union[str, Path]] = None,
    max_workers: int = 1,
    warning_manager: Optional[WarningManager] = None,
    metadata: Optional[MetadataTracker] = None,
) -> VerificationResult:
    """
    Read, check and verify ensemble forecasts against point observations.

    Lead times are processed in num_iterations iterations so that only part
    of the forecast data is in memory at a time. Each iteration reads the
    forecasts for its lead times, applies scaling, lagging and shifting,
    restricts the models to their common cases, joins the observations,
    removes cases where the observation is implausible and computes the
    scores. The results of all iterations are then bound together.

    Parameters
    ----------
    start_date, end_date : Any
        First and last forecast cycle, YYYYMMDD(HH)(mm)
    parameter : str
        Parameter to verify, e.g. "T2m" or "AccPcp6h"
    fcst_models : Union[str, Sequence[str]]
        Forecast model(s) to verify
    forecast_reader : ForecastReader
        Reader for the forecasts
    observation_reader : ObservationReader
        Reader for the observations
    lead_times : Iterable[int], optional
        Lead times in hours, by default 0 to 48 every 3 hours
    num_iterations : int, optional
        Number of iterations to split the lead times into, by default one
        per lead time
    verify_members : bool, optional
        Also verify each member deterministically, by default True
    thresholds : Sequence[float], optional
        Thresholds for the probabilistic scores
    members : Any, optional
        Members to read: a list for all models, a mapping per model, or a
        mapping per model of mappings per sub model
    file_template : Any, optional
        File template(s) for the forecast reader
    groupings : Any, optional
        Columns to group the scores by, by default ("lead_time",)
    by : str, optional
        Time between forecast cycles, by default "6h"
    lags : Any, optional
        Lag period(s), for all models or as a mapping per model, by default "0s"
    merge_lags_on_read : bool, optional
        Merge lagged members while reading, by default True
    lag_fcst_models : Sequence[str], optional
        Models to lag after reading, used when merge_lags_on_read is False
    parent_cycles : Sequence[int], optional
        Parent cycles for lag_fcst_models
    lag_direction : int, optional
        1 to lag earlier cycles onto later parents, -1 the other way round
    fcst_shifts : Any, optional
        Shift in hours per model
    keep_unshifted : bool, optional
        Also verify shifted models without the shift, by default False
    drop_neg_lead_times : bool, optional
        Drop negative lead times created by shifting, by default True
    climatology : Any, optional
        Reference for the Brier Skill Score, by default "sample"
    stations : Sequence[Any], optional
        Station ids to verify, by default all
    vertical_coordinate : str, optional
        "pressure", "model" or "height" for upper air parameters. Forecasts
        and observations then carry a level column ("p", "ml" or "z") that
        is part of every case.
    scale_fcst : Any, optional
        Scaling of the forecasts, a ScaleSpec mapping, a list of them or a
        mapping per model
    scale_obs : Any, optional
        Scaling of the observations, a ScaleSpec mapping
    jitter_fcst : Callable, optional
        Function applied to each forecast table before scoring
    common_cases_only : bool, optional
        Verify only cases all models have, by default True
    common_cases_xtra_cols : Any, optional
        Extra columns that define a case, e.g. ["p"]
    check_obs_fcst : bool, optional
        Remove cases whose observation is far from the forecasts, by default True
    gross_error_check : bool, optional
        Remove observations outside the allowed range, by default True
    min_allowed, max_allowed : float, optional
        Allowed observation range, by default that of the parameter
    num_sd_allowed : float, optional
        Standard deviations allowed in the observation check, by default
        that of the parameter
    show_progress : bool, optional
        Show progress bars, by default False
    verif_path : Union[str, Path], optional
        Directory to save the verification to (CSV)
    max_workers : int, optional
        Number of iterations to run at the same time, by default 1
    warning_manager : WarningManager, optional
        Collects the warnings of skipped iterations
    metadata : MetadataTracker, optional
        Receives the processing statistics of the run

    Returns
    -------
    VerificationResult
        Score tables for all models and lead times

    Raises
    ------
    ConfigurationError
        For invalid arguments
    DataAccessError
        If forecasts or observations cannot be read
    DataUnavailableError
        If no iteration had any data to verify

    Examples
    --------
    >>> result = verify(
    ...     "2024010100", "2024010112", "T2m", ["eps1", "eps2"],
    ...     FctableReader("/data/FCTABLE"), ObstableReader("/data/OBSTABLE"),
    ...     lead_times=[0, 3, 6, 9], num_iterations=2,
    ... )
    >>> result["summary_scores"].head()
    """
    if isinstance(max_workers, bool) or not isinstance(max_workers, int) or max_workers < 1:
        raise ConfigurationError(f"max_workers must be a positive integer, got {max_workers!r}")
    if jitter_fcst is not None and not callable(jitter_fcst):
        raise ConfigurationError("jitter_fcst must be a function that takes a data frame")

    param = resolve_parameter(parameter, vertical_coordinate)
    time_manager = TimeManager(start_date, end_date, by)
    variants = resolve_model_variants(
        fcst_models,
        lags=lags,
        fcst_shifts=fcst_shifts,
        keep_unshifted=keep_unshifted,
        scale_fcst=scale_fcst,
        members=members,
        file_template=file_template,
        lag_fcst_models=lag_fcst_models,
        parent_cycles=parent_cycles,
    )
    if lag_fcst_models is not None and merge_lags_on_read:
        logger.info("lag_fcst_models is only used when merge_lags_on_read is False")

    obs_scaling = ScaleSpec.from_mapping(scale_obs, "scale_obs") if scale_obs is not None else None
    clim = resolve_climatology(climatology)
    chunking = ChunkingStrategy(lead_times, num_iterations, param)
    plans = chunking.get_processing_plan()

    warning_manager = warning_manager if warning_manager is not None else WarningManager()
    _warn_dropped_lead_times(plans, param, warning_manager)

    obs = _read_obs(
        observation_reader,
        time_manager,
        chunking.lead_times,
        param,
        stations,
        gross_error_check,
        min_allowed,
        max_allowed,
        obs_scaling,
    )

    options = ProcessingOptions(
        groupings=groupings,
        thresholds=list(thresholds) if thresholds is not None else None,
        verify_members=verify_members,
        jitter_fcst=jitter_fcst,
        merge_lags_on_read=merge_lags_on_read,
        lag_fcst_models=list(lag_fcst_models) if lag_fcst_models is not None else None,
        parent_cycles=list(parent_cycles) if parent_cycles is not None else None,
        lag_direction=lag_direction,
        drop_neg_lead_times=drop_neg_lead_times,
        stations=stations,
        common_cases_only=common_cases_only,
        common_cases_xtra_cols=common_cases_xtra_cols,
        check_obs_fcst=check_obs_fcst,
        num_sd_allowed=num_sd_allowed,
        show_progress=show_progress and max_workers == 1,
        extra_attributes={
            "start_date": str(time_manager.start_date),
            "end_date": str(time_manager.end_date),
        },
    )
    processor = ChunkProcessor(
        forecast_reader, param, variants, time_manager, obs, clim, options, by=by
    )

    accumulator = VerificationAccumulator(warning_manager)
    for outcome in _run_iterations(processor, plans, max_workers, show_progress):
        accumulator.update(outcome)

    if metadata is not None:
        for key, value in accumulator.get_summary().items():
            metadata.add_processing_stat(key, value)

    result = accumulator.finalize()

    if verif_path is not None:
        save_point_verif(result, verif_path)

    return result


def _warn_dropped_lead_times(
    plans: List[IterationPlan], param: ParameterInfo, warning_manager: WarningManager
) -> None:
    for plan in plans:
        if plan.dropped_lead_times and plan.lead_times:
            warning_manager.add_warning(
                "accumulation",
                f"Accumulation time of {param.accum_hours}h is longer than lead time(s) "
                f"{plan.dropped_lead_times}. Skipping those lead times.",
                {"lead_times": plan.dropped_lead_times},
            )


def _read_obs(
    observation_reader: ObservationReader,
    time_manager: TimeManager,
    lead_times: List[int],
    param: ParameterInfo,
    stations: Optional[Sequence[Any]],
    gross_error_check: bool,
    min_allowed: Optional[float],
    max_allowed: Optional[float],
    obs_scaling: Optional[ScaleSpec],
) -> pd.DataFrame:
    """Read the observations for the whole run once, then check and scale them."""
    first_obs, last_obs = time_manager.observation_window(lead_times)
    obs = observation_reader.read_obs(
        first_obs, last_obs, param.full_name, stations, param.vertical_coordinate
    )
    obs = resolve_obs_column(obs, param)

    if gross_error_check:
        obs = check_gross_errors(
            obs,
            param.full_name,
            min_allowed if min_allowed is not None else param.min_allowed,
            max_allowed if max_allowed is not None else param.max_allowed,
        )

    if obs_scaling is not None:
        obs = apply_obs_scaling(obs, param.full_name, obs_scaling)

    return obs


def _run_iterations(
    processor: ChunkProcessor,
    plans: List[IterationPlan],
    max_workers: int,
    show_progress: bool,
) -> Iterable[IterationOutcome]:
    """Run the iterations in order, or on a thread pool keeping their order."""
    progress = tqdm(total=len(plans), desc="Verifying", disable=not show_progress)

    def run(plan: IterationPlan) -> IterationOutcome:
        logger.info(plan.describe())
        return processor.process(plan)

    try:
        if max_workers == 1:
            for plan in plans:
                yield run(plan)
                progress.update(1)
        else:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                for outcome in pool.map(run, plans):
                    yield outcome
                    progress.update(1)
    finally:
        progress.close()


class VerificationOrchestrator:
    """
    Runs a verification described by a YAML configuration file.

    Forecasts and observations are read from CSV tables with FctableReader
    and ObstableReader. The result, the run metadata and the warnings are
    saved under output.verif_path when it is configured.
    """

    def __init__(self, config_path: Path):
        """
        Initialize verification orchestrator.

        Parameters
        ----------
        config_path : Path
            Path to verification configuration file

        Examples
        --------
        >>> orchestrator = VerificationOrchestrator(Path("config/t2m_verification.yaml"))
        >>> result = orchestrator.run()
        """
        self.config = load_config(config_path)
        self.run_config = self.config["verification_run"]

        log_config = self.run_config.get("logging", {})
        log_file = log_config.get("log_file")
        setup_logging(
            log_level=log_config.get("level", "INFO"),
            log_file=Path(log_file) if log_file else None,
        )

        self.options = self._verify_options()
        self.warning_manager = WarningManager()
        self.metadata_tracker = MetadataTracker(self.run_config["name"])
        self.result: Optional[VerificationResult] = None

        self.forecast_reader: Optional[ForecastReader] = None
        self.observation_reader: Optional[ObservationReader] = None

        logger.info(f"Initialized verification run: {self.run_config['name']}")

    def run(self) -> VerificationResult:
        """
        Execute the complete verification workflow.

        Returns
        -------
        VerificationResult
            Merged verification
        """
        logger.info("=" * 80)
        logger.info(f"Starting verification run: {self.run_config['name']}")
        logger.info("=" * 80)

        try:
            self._preprocessing_phase()
            self._main_processing_loop()
            self._finalization_phase()
            logger.info("Verification run completed successfully")

        except Exception as e:
            logger.error(f"Verification run failed: {e}", exc_info=True)
            self.metadata_tracker.mark_failed(str(e))
            self._save_run_records()
            raise

        return self.result

    def _verify_options(self) -> Dict[str, Any]:
        """Check that the configured options are arguments of verify."""
        options = dict(self.run_config.get("options") or {})
        allowed = set(inspect.signature(verify).parameters) - {
            "start_date",
            "end_date",
            "parameter",
            "fcst_models",
            "forecast_reader",
            "observation_reader",
            "lead_times",
            "verif_path",
            "warning_manager",
            "metadata",
        }
        unknown = sorted(set(options) - allowed)
        if unknown:
            raise ConfigurationError(f"Unknown option(s) in verification_run.options: {unknown}")
        return options

    def _preprocessing_phase(self) -> None:
        """Initialize data readers and record the configuration."""
        logger.info("-" * 80)
        logger.info("Phase 1: Preprocessing")
        logger.info("-" * 80)

        data_sources = self.run_config["data_sources"]
        self.forecast_reader = FctableReader(
            Path(data_sources["fcst_path"]), data_sources.get("fcst_template")
        )
        self.observation_reader = ObstableReader(
            Path(data_sources["obs_path"]), data_sources.get("obs_template")
        )

        self.metadata_tracker.set_configuration(self.run_config)

    def _main_processing_loop(self) -> None:
        """Run the verification over all lead times."""
        logger.info("-" * 80)
        logger.info("Phase 2: Main Processing")
        logger.info("-" * 80)

        self.result = verify(
            self.run_config["start_date"],
            self.run_config["end_date"],
            self.run_config["parameter"],
            self.run_config["fcst_models"],
            self.forecast_reader,
            self.observation_reader,
            lead_times=self.run_config.get("lead_times", DEFAULT_LEAD_TIMES),
            warning_manager=self.warning_manager,
            metadata=self.metadata_tracker,
            **self.options,
        )

    def _finalization_phase(self) -> None:
        """Save the verification, metadata and warnings."""
        logger.info("-" * 80)
        logger.info("Phase 3: Finalization")
        logger.info("-" * 80)

        self.metadata_tracker.add_processing_stat("stations", self.result.stations)
        self.metadata_tracker.mark_complete()

        output = self.run_config.get("output")
        if output is not None:
            save_point_verif(self.result, output["verif_path"], output.get("format", "csv"))

        self._save_run_records()
        logger.info("Finalization complete")

    def _save_run_records(self) -> None:
        output = self.run_config.get("output")
        if output is None:
            return

        verif_path = Path(output["verif_path"])
        self.metadata_tracker.save(verif_path)
        self.warning_manager.save(verif_path / "warnings")
