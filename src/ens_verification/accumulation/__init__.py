"""Accumulation of per-iteration results."""

from ens_verification.accumulation.accumulator_base import (
    IterationOutcome,
    VerificationAccumulator,
)
from ens_verification.accumulation.merger import bind_point_verif, strip_unshifted
from ens_verification.accumulation.results import (
    DET_SUMMARY_SCORES,
    RANK_HISTOGRAM,
    SUMMARY_SCORES,
    THRESHOLD_SCORES,
    ChunkResult,
    VerificationResult,
)

__all__ = [
    "ChunkResult",
    "VerificationResult",
    "IterationOutcome",
    "VerificationAccumulator",
    "bind_point_verif",
    "strip_unshifted",
    "SUMMARY_SCORES",
    "THRESHOLD_SCORES",
    "DET_SUMMARY_SCORES",
    "RANK_HISTOGRAM",
]
