"""Data access modules for point forecasts and observations."""

from ens_verification.data_access.base import ForecastReader, ObservationReader
from ens_verification.data_access.fctable_reader import FctableReader, ObstableReader
from ens_verification.data_access.frame_reader import (
    FrameForecastReader,
    FrameObservationReader,
)

__all__ = [
    "ForecastReader",
    "ObservationReader",
    "FctableReader",
    "ObstableReader",
    "FrameForecastReader",
    "FrameObservationReader",
]
