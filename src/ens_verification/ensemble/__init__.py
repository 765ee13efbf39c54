"""Ensemble model options and variant resolution."""

from ens_verification.ensemble.options import (
    OptionValue,
    PerModel,
    PerSubModel,
    Scalar,
    ScaleSpec,
)
from ens_verification.ensemble.variants import (
    ModelVariants,
    resolve_model_variants,
    shifted_name,
    unshifted_name,
)

__all__ = [
    "OptionValue",
    "Scalar",
    "PerModel",
    "PerSubModel",
    "ScaleSpec",
    "ModelVariants",
    "resolve_model_variants",
    "shifted_name",
    "unshifted_name",
]
