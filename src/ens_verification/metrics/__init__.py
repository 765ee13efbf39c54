"""Verification metrics modules."""

from ens_verification.metrics.climatology import (
    MemberClimatology,
    SampleClimatology,
    TableClimatology,
    resolve_climatology,
)
from ens_verification.metrics.continuous import (
    compute_all_continuous_metrics,
    compute_bias,
    compute_mae,
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
from ens_verification.metrics.scoring import ens_verify

__all__ = [
    "ens_verify",
    "resolve_climatology",
    "SampleClimatology",
    "MemberClimatology",
    "TableClimatology",
    "compute_mae",
    "compute_bias",
    "compute_rmse",
    "compute_stde",
    "compute_all_continuous_metrics",
    "compute_brier_score",
    "compute_brier_skill_score",
    "compute_crps_ensemble",
    "compute_ensemble_mean",
    "compute_ensemble_probability",
    "compute_rank_histogram",
    "compute_spread",
]
