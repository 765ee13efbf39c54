"""Scoring of aligned forecast and observation tables."""

import logging
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from tqdm import tqdm

from ens_verification.accumulation.results import (
    DET_SUMMARY_SCORES,
    RANK_HISTOGRAM,
    SUMMARY_SCORES,
    THRESHOLD_SCORES,
    ChunkResult,
)
from ens_verification.data_access.tables import member_columns
from ens_verification.metrics.climatology import Climatology, resolve_climatology
from ens_verification.metrics.continuous import (
    compute_all_continuous_metrics,
    compute_bias,
    compute_rmse,
    compute_stde,
)
from ens_verification.metrics.probabilistic import (
    compute_brier_score,
    compute_brier_skill_score,
    compute_crps_ensemble,
    compute_ensemble_mean,
    compute_ensemble_probability,
    compute_rank_histogram,
    compute_spread,
)
from ens_verification.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Value of grouping columns a grouping set does not group by
ALL_GROUPS = "All"


def ens_verify(
    fcst_data: Dict[str, pd.DataFrame],
    parameter: str,
    groupings: Any = ("lead_time",),
    thresholds: Optional[Sequence[float]] = None,
    verify_members: bool = True,
    jitter_fcst: Optional[Callable[[pd.DataFrame], pd.DataFrame]] = None,
    climatology: Any = "sample",
    show_progress: bool = False,
) -> ChunkResult:
    """
    Compute ensemble scores for forecast tables joined to observations.

    Parameters
    ----------
    fcst_data : Dict[str, pd.DataFrame]
        Forecast table per model, with member columns and an observation
        column named after the parameter
    parameter : str
        Name of the observation column
    groupings : Any, optional
        Columns to group the scores by. A list of column names is one
        grouping; a list of lists gives several groupings whose rows are
        stacked, with "All" in the columns a grouping does not use. By
        default ("lead_time",).
    thresholds : Sequence[float], optional
        Thresholds for the probabilistic scores. No threshold scores if None.
    verify_members : bool, optional
        Also verify each member as a deterministic forecast, by default True
    jitter_fcst : Callable, optional
        Function applied to each forecast table before scoring, e.g. to add
        observation error to the members
    climatology : Any, optional
        Reference forecast for the Brier Skill Score, by default "sample"
    show_progress : bool, optional
        Show a progress bar over the models, by default False

    Returns
    -------
    ChunkResult
        Tables summary_scores, rank_histogram and threshold_scores, plus
        det_summary_scores when members are verified

    Raises
    ------
    ConfigurationError
        If the groupings or the climatology are invalid

    Examples
    --------
    >>> result = ens_verify(aligned, "T2m", thresholds=[273.15])
    >>> result.tables["summary_scores"].columns.tolist()[:3]
    ['fcst_model', 'lead_time', 'num_cases']
    """
    grouping_sets = _normalize_groupings(groupings)
    _check_grouping_columns(fcst_data, grouping_sets)
    grouping_cols = _all_grouping_columns(grouping_sets)
    thresholds = [float(threshold) for threshold in (thresholds or [])]
    clim = resolve_climatology(climatology)

    if jitter_fcst is not None:
        fcst_data = {model: jitter_fcst(df) for model, df in fcst_data.items()}
    if thresholds:
        fcst_data = clim.prepare(fcst_data)

    tables: Dict[str, List[pd.DataFrame]] = {
        SUMMARY_SCORES: [],
        RANK_HISTOGRAM: [],
        THRESHOLD_SCORES: [],
        DET_SUMMARY_SCORES: [],
    }

    models = tqdm(fcst_data.items(), desc="Scoring", disable=not show_progress)
    for model, df in models:
        members = member_columns(df)
        for grouping in grouping_sets:
            for group_values, group in _iter_groups(df, grouping):
                labels = _group_labels(model, grouping, grouping_cols, group_values)
                ens = group[members].to_numpy(dtype=float)
                obs = group[parameter].to_numpy(dtype=float)

                tables[SUMMARY_SCORES].append(_summary_row(labels, ens, obs))
                tables[RANK_HISTOGRAM].append(_rank_histogram_rows(labels, ens, obs))
                for threshold in thresholds:
                    tables[THRESHOLD_SCORES].append(
                        _threshold_row(labels, group, ens, obs, threshold, clim)
                    )
                if verify_members:
                    tables[DET_SUMMARY_SCORES].append(
                        _det_summary_rows(labels, group, members, obs)
                    )

        logger.debug(f"Scored {model}: {len(df)} cases, {len(members)} members")

    label_cols = ["fcst_model"] + grouping_cols
    result_tables = {
        SUMMARY_SCORES: _stack(tables[SUMMARY_SCORES], label_cols),
        RANK_HISTOGRAM: _stack(tables[RANK_HISTOGRAM], label_cols),
        THRESHOLD_SCORES: _stack(tables[THRESHOLD_SCORES], label_cols + ["threshold"]),
    }
    if verify_members:
        result_tables[DET_SUMMARY_SCORES] = _stack(
            tables[DET_SUMMARY_SCORES], label_cols + ["member"]
        )

    attributes = {
        "parameter": parameter,
        "groupings": grouping_sets,
        "thresholds": thresholds,
        "climatology": clim.name,
        "verify_members": verify_members,
    }
    return ChunkResult(tables=result_tables, attributes=attributes)


def _normalize_groupings(groupings: Any) -> List[List[str]]:
    """Turn the groupings argument into a list of grouping column lists."""
    if groupings is None:
        return [[]]
    if isinstance(groupings, str):
        return [[groupings]]

    groupings = list(groupings)
    if all(isinstance(col, str) for col in groupings):
        return [groupings]

    grouping_sets = []
    for grouping in groupings:
        if isinstance(grouping, str):
            grouping_sets.append([grouping])
        elif isinstance(grouping, (list, tuple)) and all(isinstance(c, str) for c in grouping):
            grouping_sets.append(list(grouping))
        else:
            raise ConfigurationError(
                f"groupings must be column names or lists of column names, got {grouping!r}"
            )
    return grouping_sets


def _check_grouping_columns(fcst_data: Dict[str, pd.DataFrame], grouping_sets: List[List[str]]):
    for model, df in fcst_data.items():
        missing = [col for col in _all_grouping_columns(grouping_sets) if col not in df.columns]
        if missing:
            raise ConfigurationError(
                f"Grouping column(s) '{', '.join(missing)}' not found in data for '{model}'."
            )


def _all_grouping_columns(grouping_sets: List[List[str]]) -> List[str]:
    columns = []
    for grouping in grouping_sets:
        columns.extend(col for col in grouping if col not in columns)
    return columns


def _iter_groups(df: pd.DataFrame, grouping: List[str]) -> Iterator[Tuple[tuple, pd.DataFrame]]:
    if not grouping:
        if len(df) > 0:
            yield (), df
        return

    for key, group in df.groupby(grouping, sort=True):
        yield (key if isinstance(key, tuple) else (key,)), group


def _group_labels(
    model: str, grouping: List[str], grouping_cols: List[str], group_values: tuple
) -> Dict[str, Any]:
    values = dict(zip(grouping, group_values))
    labels = {"fcst_model": model}
    for col in grouping_cols:
        labels[col] = values.get(col, ALL_GROUPS)
    return labels


def _summary_row(labels: Dict[str, Any], ens: np.ndarray, obs: np.ndarray) -> pd.DataFrame:
    ens_mean = compute_ensemble_mean(ens)
    valid_mask = ~(np.isnan(ens_mean) | np.isnan(obs))
    rmse = compute_rmse(ens_mean, obs)
    spread = compute_spread(ens[valid_mask])

    row = dict(labels)
    row.update(
        {
            "num_cases": int(valid_mask.sum()),
            "mean_bias": compute_bias(ens_mean, obs),
            "rmse": rmse,
            "stde": compute_stde(ens_mean, obs),
            "spread": spread,
            "spread_skill_ratio": spread / rmse if rmse and not np.isnan(rmse) else np.nan,
            "crps": float(np.mean(compute_crps_ensemble(ens[valid_mask], obs[valid_mask])))
            if valid_mask.any()
            else np.nan,
        }
    )
    return pd.DataFrame([row])


def _rank_histogram_rows(labels: Dict[str, Any], ens: np.ndarray, obs: np.ndarray) -> pd.DataFrame:
    counts = compute_rank_histogram(ens, obs)
    rows = pd.DataFrame({"rank": np.arange(1, len(counts) + 1), "rank_count": counts})
    return rows.assign(**labels)


def _threshold_row(
    labels: Dict[str, Any],
    group: pd.DataFrame,
    ens: np.ndarray,
    obs: np.ndarray,
    threshold: float,
    clim: Climatology,
) -> pd.DataFrame:
    fcst_prob = compute_ensemble_probability(ens, threshold)
    valid_mask = ~(np.isnan(fcst_prob) | np.isnan(obs))
    obs_event = (obs[valid_mask] >= threshold).astype(float)
    fcst_prob = fcst_prob[valid_mask]

    reference = clim.reference_probability(group[valid_mask], threshold, obs_event)
    brier_score = compute_brier_score(fcst_prob, obs_event)
    reference_brier_score = compute_brier_score(reference, obs_event)

    row = dict(labels)
    row.update(
        {
            "threshold": threshold,
            "num_cases": int(valid_mask.sum()),
            "fcst_prob": float(np.mean(fcst_prob)) if len(fcst_prob) else np.nan,
            "obs_freq": float(np.mean(obs_event)) if len(obs_event) else np.nan,
            "brier_score": brier_score,
            "climatology": float(np.nanmean(reference))
            if np.any(~np.isnan(reference))
            else np.nan,
            "brier_skill_score": compute_brier_skill_score(brier_score, reference_brier_score),
        }
    )
    return pd.DataFrame([row])


def _det_summary_rows(
    labels: Dict[str, Any], group: pd.DataFrame, members: List[str], obs: np.ndarray
) -> pd.DataFrame:
    rows = []
    for member in members:
        row = dict(labels)
        row["member"] = member
        row.update(compute_all_continuous_metrics(group[member].to_numpy(dtype=float), obs))
        rows.append(row)
    return pd.DataFrame(rows)


def _stack(frames: List[pd.DataFrame], label_cols: List[str]) -> pd.DataFrame:
    """Concatenate score rows and put the label columns first."""
    frames = [frame for frame in frames if len(frame) > 0]
    if not frames:
        return pd.DataFrame(columns=label_cols)

    table = pd.concat(frames, ignore_index=True)
    return table[label_cols + [col for col in table.columns if col not in label_cols]]
