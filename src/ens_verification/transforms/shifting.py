"""Time shifting of forecasts so earlier cycles can be compared as later ones."""

import logging
from typing import Dict

import pandas as pd

from ens_verification.ensemble.variants import shifted_name

logger = logging.getLogger(__name__)


def shift_forecast(
    fcst_data: Dict[str, pd.DataFrame],
    fcst_shifts: Dict[str, int],
    keep_unshifted: bool = False,
    drop_negative_lead_times: bool = True,
) -> Dict[str, pd.DataFrame]:
    """
    Shift forecasts forward in time.

    The cycle time moves forward and the lead time back by the shift, so the
    valid time is unchanged. Shifted models are renamed
    "<model>_shifted_<hours>h".

    Parameters
    ----------
    fcst_data : Dict[str, pd.DataFrame]
        Forecast table per model
    fcst_shifts : Dict[str, int]
        Shift in hours per model
    keep_unshifted : bool, optional
        Keep the original table under its own name as well, by default False
    drop_negative_lead_times : bool, optional
        Drop rows whose lead time becomes negative, by default True

    Returns
    -------
    Dict[str, pd.DataFrame]
        Forecast tables, in the original model order

    Examples
    --------
    >>> shifted = shift_forecast({"eps1": df}, {"eps1": 6})
    >>> list(shifted)
    ['eps1_shifted_6h']
    """
    shifted_data = {}
    for model, df in fcst_data.items():
        if model not in fcst_shifts:
            shifted_data[model] = df
            continue

        shift = int(fcst_shifts[model])
        shifted = df.copy()
        shifted["fcst_dttm"] = shifted["fcst_dttm"] + pd.Timedelta(hours=shift)
        shifted["lead_time"] = shifted["lead_time"] - shift
        if "fcst_cycle" in shifted.columns:
            shifted["fcst_cycle"] = shifted["fcst_dttm"].dt.strftime("%H")
        if drop_negative_lead_times:
            shifted = shifted[shifted["lead_time"] >= 0]

        if keep_unshifted:
            shifted_data[model] = df
        shifted_data[shifted_name(model, shift)] = shifted.reset_index(drop=True)
        logger.debug(f"Shifted {model} by {shift}h")

    return shifted_data


def rename_shifted_models(
    fcst_data: Dict[str, pd.DataFrame], fcst_shifts: Dict[str, int]
) -> Dict[str, pd.DataFrame]:
    """Rename models that were shifted while reading to "<model>_shifted_<hours>h"."""
    return {
        (shifted_name(model, fcst_shifts[model]) if model in fcst_shifts else model): df
        for model, df in fcst_data.items()
    }
