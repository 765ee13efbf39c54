"""Deterministic verification metrics (Bias, RMSE, MAE, STDE)."""

from typing import Tuple

import numpy as np


def _valid_pairs(forecasts: np.ndarray, observations: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Drop pairs where either the forecast or the observation is missing."""
    forecasts = np.asarray(forecasts, dtype=float)
    observations = np.asarray(observations, dtype=float)
    valid_mask = ~(np.isnan(forecasts) | np.isnan(observations))
    return forecasts[valid_mask], observations[valid_mask]


def compute_mae(forecasts: np.ndarray, observations: np.ndarray) -> float:
    """
    Compute Mean Absolute Error.

    MAE = mean(|forecast - observation|)

    Parameters
    ----------
    forecasts : np.ndarray
        Array of forecast values
    observations : np.ndarray
        Array of observation values

    Returns
    -------
    float
        Mean Absolute Error

    Examples
    --------
    >>> forecasts = np.array([1.0, 2.0, 3.0])
    >>> observations = np.array([1.1, 2.2, 2.8])
    >>> mae = compute_mae(forecasts, observations)
    """
    valid_forecasts, valid_obs = _valid_pairs(forecasts, observations)
    if len(valid_forecasts) == 0:
        return np.nan

    return float(np.mean(np.abs(valid_forecasts - valid_obs)))


def compute_bias(forecasts: np.ndarray, observations: np.ndarray) -> float:
    """
    Compute Mean Error (Bias).

    Bias = mean(forecast - observation)

    Parameters
    ----------
    forecasts : np.ndarray
        Array of forecast values
    observations : np.ndarray
        Array of observation values

    Returns
    -------
    float
        Mean Error (Bias)
    """
    valid_forecasts, valid_obs = _valid_pairs(forecasts, observations)
    if len(valid_forecasts) == 0:
        return np.nan

    return float(np.mean(valid_forecasts - valid_obs))


def compute_rmse(forecasts: np.ndarray, observations: np.ndarray) -> float:
    """
    Compute Root Mean Square Error.

    RMSE = sqrt(mean((forecast - observation)^2))

    Parameters
    ----------
    forecasts : np.ndarray
        Array of forecast values
    observations : np.ndarray
        Array of observation values

    Returns
    -------
    float
        Root Mean Square Error
    """
    valid_forecasts, valid_obs = _valid_pairs(forecasts, observations)
    if len(valid_forecasts) == 0:
        return np.nan

    return float(np.sqrt(np.mean((valid_forecasts - valid_obs) ** 2)))


def compute_stde(forecasts: np.ndarray, observations: np.ndarray) -> float:
    """
    Compute the Standard Deviation of the Error.

    STDE = sd(forecast - observation), with n - 1 degrees of freedom

    Parameters
    ----------
    forecasts : np.ndarray
        Array of forecast values
    observations : np.ndarray
        Array of observation values

    Returns
    -------
    float
        Standard deviation of the error, NaN for fewer than two pairs

    Examples
    --------
    >>> compute_stde(np.array([1.0, 3.0]), np.array([0.0, 0.0]))
    1.4142135623730951
    """
    valid_forecasts, valid_obs = _valid_pairs(forecasts, observations)
    if len(valid_forecasts) < 2:
        return np.nan

    return float(np.std(valid_forecasts - valid_obs, ddof=1))


def compute_all_continuous_metrics(forecasts: np.ndarray, observations: np.ndarray) -> dict:
    """
    Compute all deterministic verification metrics.

    Parameters
    ----------
    forecasts : np.ndarray
        Array of forecast values
    observations : np.ndarray
        Array of observation values

    Returns
    -------
    dict
        Dictionary with num_cases, bias, rmse, mae and stde

    Examples
    --------
    >>> forecasts = np.array([1.0, 2.0, 3.0])
    >>> observations = np.array([1.1, 2.2, 2.8])
    >>> metrics = compute_all_continuous_metrics(forecasts, observations)
    >>> metrics["num_cases"]
    3
    """
    valid_forecasts, _ = _valid_pairs(forecasts, observations)
    return {
        "num_cases": int(len(valid_forecasts)),
        "bias": compute_bias(forecasts, observations),
        "rmse": compute_rmse(forecasts, observations),
        "mae": compute_mae(forecasts, observations),
        "stde": compute_stde(forecasts, observations),
    }
