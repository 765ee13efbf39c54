"""Parameter metadata lookup."""

from ens_verification.parameters.resolver import ParameterInfo, resolve_parameter

__all__ = ["ParameterInfo", "resolve_parameter"]
