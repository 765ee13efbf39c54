"""Utility modules for ensemble verification system."""

from ens_verification.utils.config_parser import get_nested_value, load_config
from ens_verification.utils.exceptions import (
    ConfigurationError,
    DataAccessError,
    DataUnavailableError,
    EnsVerificationError,
    SkippedIteration,
)
from ens_verification.utils.logging import get_logger, setup_logging

__all__ = [
    "load_config",
    "get_nested_value",
    "EnsVerificationError",
    "ConfigurationError",
    "DataAccessError",
    "DataUnavailableError",
    "SkippedIteration",
    "setup_logging",
    "get_logger",
]
