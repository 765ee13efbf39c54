"""Ensemble verification metrics (CRPS, spread, rank histogram, Brier Score)."""

import numpy as np


def compute_ensemble_mean(ensemble_forecasts: np.ndarray) -> np.ndarray:
    """Mean over members for each case (shape: n_samples x n_members)."""
    ensemble_forecasts = np.atleast_2d(np.asarray(ensemble_forecasts, dtype=float))
    result = np.full(ensemble_forecasts.shape[0], np.nan)
    has_members = ~np.all(np.isnan(ensemble_forecasts), axis=1)
    result[has_members] = np.nanmean(ensemble_forecasts[has_members], axis=1)
    return result


def compute_spread(ensemble_forecasts: np.ndarray) -> float:
    """
    Compute the ensemble spread.

    Spread = sqrt(mean over cases of the member variance)

    Parameters
    ----------
    ensemble_forecasts : np.ndarray
        Array of ensemble forecast values (shape: n_samples x n_members)

    Returns
    -------
    float
        Ensemble spread, NaN when no case has two members
    """
    ensemble_forecasts = np.atleast_2d(np.asarray(ensemble_forecasts, dtype=float))
    counts = np.sum(~np.isnan(ensemble_forecasts), axis=1)
    usable = ensemble_forecasts[counts > 1]
    if len(usable) == 0:
        return np.nan

    return float(np.sqrt(np.mean(np.nanvar(usable, axis=1, ddof=1))))


def compute_crps_ensemble(ensemble_forecasts: np.ndarray, observations: np.ndarray) -> np.ndarray:
    """
    Compute the Continuous Ranked Probability Score of each case.

    CRPS = mean|x_i - y| - 0.5 * mean|x_i - x_j|

    where x are the members and y the observation. Missing members are
    ignored.

    Parameters
    ----------
    ensemble_forecasts : np.ndarray
        Array of ensemble forecast values (shape: n_samples x n_members)
    observations : np.ndarray
        Array of observation values

    Returns
    -------
    np.ndarray
        CRPS per case (lower is better, 0 is perfect). NaN where the
        observation or all members are missing.

    Examples
    --------
    >>> ens = np.array([[1.0, 2.0, 3.0]])
    >>> compute_crps_ensemble(ens, np.array([2.0]))
    array([0.22222222])
    """
    ensemble_forecasts = np.atleast_2d(np.asarray(ensemble_forecasts, dtype=float))
    observations = np.asarray(observations, dtype=float)

    crps = np.full(len(observations), np.nan)
    for i, (members, obs) in enumerate(zip(ensemble_forecasts, observations)):
        members = members[~np.isnan(members)]
        if np.isnan(obs) or len(members) == 0:
            continue
        skill = np.mean(np.abs(members - obs))
        spread = np.mean(np.abs(members[:, None] - members[None, :]))
        crps[i] = skill - 0.5 * spread

    return crps


def compute_rank_histogram(ensemble_forecasts: np.ndarray, observations: np.ndarray) -> np.ndarray:
    """
    Count the rank of each observation among the ensemble members.

    The rank is one plus the number of members below the observation, so
    for an ensemble of m members there are m + 1 possible ranks. Cases
    with missing members are left out.

    Parameters
    ----------
    ensemble_forecasts : np.ndarray
        Array of ensemble forecast values (shape: n_samples x n_members)
    observations : np.ndarray
        Array of observation values

    Returns
    -------
    np.ndarray
        Counts for ranks 1 to m + 1

    Examples
    --------
    >>> ens = np.array([[1.0, 2.0], [1.0, 2.0], [1.0, 2.0]])
    >>> compute_rank_histogram(ens, np.array([0.0, 1.5, 3.0]))
    array([1, 1, 1])
    """
    ensemble_forecasts = np.atleast_2d(np.asarray(ensemble_forecasts, dtype=float))
    observations = np.asarray(observations, dtype=float)
    num_members = ensemble_forecasts.shape[1]

    complete = ~np.isnan(observations) & ~np.any(np.isnan(ensemble_forecasts), axis=1)
    ranks = np.sum(ensemble_forecasts[complete] < observations[complete, None], axis=1)

    return np.bincount(ranks, minlength=num_members + 1)


def compute_ensemble_probability(ensemble_forecasts: np.ndarray, threshold: float) -> np.ndarray:
    """Fraction of members at or above the threshold for each case."""
    ensemble_forecasts = np.atleast_2d(np.asarray(ensemble_forecasts, dtype=float))
    counts = np.sum(~np.isnan(ensemble_forecasts), axis=1)
    exceed = np.sum(ensemble_forecasts >= threshold, axis=1)

    probability = np.full(len(counts), np.nan)
    has_members = counts > 0
    probability[has_members] = exceed[has_members] / counts[has_members]
    return probability


def compute_brier_score(
    probabilistic_forecasts: np.ndarray, binary_observations: np.ndarray
) -> float:
    """
    Compute Brier Score for probabilistic forecasts.

    BS = mean((probability - observation)^2)

    where observation is 0 or 1.

    Parameters
    ----------
    probabilistic_forecasts : np.ndarray
        Array of probabilistic forecast values (0-1)
    binary_observations : np.ndarray
        Array of binary observation values (0 or 1)

    Returns
    -------
    float
        Brier Score (lower is better, 0 is perfect)

    Examples
    --------
    >>> prob_fcst = np.array([0.1, 0.5, 0.9])
    >>> obs = np.array([0, 1, 1])
    >>> bs = compute_brier_score(prob_fcst, obs)
    """
    probabilistic_forecasts = np.asarray(probabilistic_forecasts, dtype=float)
    binary_observations = np.asarray(binary_observations, dtype=float)
    valid_mask = ~(np.isnan(probabilistic_forecasts) | np.isnan(binary_observations))

    if not valid_mask.any():
        return np.nan

    errors = probabilistic_forecasts[valid_mask] - binary_observations[valid_mask]
    return float(np.mean(errors**2))


def compute_brier_skill_score(brier_score: float, reference_brier_score: float) -> float:
    """
    Compute Brier Skill Score against a reference forecast.

    BSS = 1 - (BS_forecast / BS_reference)

    Returns
    -------
    float
        Brier Skill Score (1 is perfect, 0 is same as the reference, negative
        is worse). NaN when the reference score is 0 or missing.
    """
    if np.isnan(brier_score) or np.isnan(reference_brier_score) or reference_brier_score == 0:
        return np.nan

    return float(1 - brier_score / reference_brier_score)
