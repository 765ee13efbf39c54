"""Forecast and observation transforms applied after reading."""

from ens_verification.transforms.lagging import lag_forecast
from ens_verification.transforms.scaling import scale_forecast, scale_obs
from ens_verification.transforms.shifting import rename_shifted_models, shift_forecast

__all__ = [
    "lag_forecast",
    "scale_forecast",
    "scale_obs",
    "shift_forecast",
    "rename_shifted_models",
]
