"""Merging of per-iteration results into one verification result."""

import logging
from typing import Iterable, List, Optional

import pandas as pd

from ens_verification.accumulation.results import ChunkResult, VerificationResult
from ens_verification.data_access.tables import UNSHIFTED_SUFFIX
from ens_verification.utils.exceptions import DataUnavailableError

logger = logging.getLogger(__name__)


def bind_point_verif(
    results: List[Optional[ChunkResult]], stations: Iterable = ()
) -> VerificationResult:
    """
    Bind the results of all iterations together.

    Each table is concatenated over the results in iteration order. The
    attributes of the first result are kept, model names lose their
    "_unshifted" suffix and the stations seen in any iteration are attached.

    Parameters
    ----------
    results : List[Optional[ChunkResult]]
        Result per iteration. None for skipped iterations.
    stations : Iterable, optional
        Station ids used in the verification

    Returns
    -------
    VerificationResult
        Merged verification

    Raises
    ------
    DataUnavailableError
        If no iteration produced a result

    Examples
    --------
    >>> merged = bind_point_verif([result_1, None, result_2], stations={1001, 1002})
    >>> merged.num_stations
    '2'
    """
    results = [result for result in results if result is not None and not result.is_empty()]
    if not results:
        raise DataUnavailableError("No data to verify")

    table_names = []
    for result in results:
        table_names.extend(name for name in result.tables if name not in table_names)

    tables = {}
    for name in table_names:
        frames = [result.tables[name] for result in results if name in result.tables]
        non_empty = [frame for frame in frames if len(frame) > 0]
        table = pd.concat(non_empty, ignore_index=True) if non_empty else frames[0].copy()
        tables[name] = strip_unshifted(table)

    station_ids = sorted(set(stations))
    attributes = dict(results[0].attributes)
    attributes["stations"] = station_ids
    attributes["num_stations"] = str(len(station_ids))

    logger.info(
        f"Merged {len(results)} result(s) into {len(tables)} table(s) "
        f"covering {len(station_ids)} station(s)"
    )
    return VerificationResult(tables=tables, attributes=attributes)


def strip_unshifted(table: pd.DataFrame) -> pd.DataFrame:
    """Remove the "_unshifted" suffix from model names."""
    if "fcst_model" not in table.columns:
        return table

    table = table.copy()
    table["fcst_model"] = table["fcst_model"].astype(str).str.replace(
        f"{UNSHIFTED_SUFFIX}$", "", regex=True
    )
    return table
