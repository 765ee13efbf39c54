"""
Ensemble Point Verification

Verifies ensemble forecasts against point observations, lead time by lead
time, producing ensemble, probabilistic and deterministic member scores.
"""

__version__ = "0.1.0"

from ens_verification.utils.logging import setup_logging
from ens_verification.utils.config_parser import load_config
from ens_verification.utils.exceptions import (
    EnsVerificationError,
    ConfigurationError,
    DataAccessError,
    DataUnavailableError,
    SkippedIteration,
)
from ens_verification.data_access import (
    FctableReader,
    FrameForecastReader,
    FrameObservationReader,
    ObstableReader,
)
from ens_verification.accumulation.results import VerificationResult
from ens_verification.storage.output_writer import save_point_verif
from ens_verification.workflow.orchestrator import VerificationOrchestrator, verify

__all__ = [
    "verify",
    "VerificationOrchestrator",
    "VerificationResult",
    "save_point_verif",
    "FctableReader",
    "ObstableReader",
    "FrameForecastReader",
    "FrameObservationReader",
    "setup_logging",
    "load_config",
    "EnsVerificationError",
    "ConfigurationError",
    "DataAccessError",
    "DataUnavailableError",
    "SkippedIteration",
]
