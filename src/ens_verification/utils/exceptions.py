"""Custom exception classes for ensemble verification system."""


class EnsVerificationError(Exception):
    """Base exception class for ensemble verification system."""

    pass


class ConfigurationError(EnsVerificationError):
    """Exception raised for invalid arguments or configuration."""

    pass


class DataAccessError(EnsVerificationError):
    """Exception raised when forecast or observation sources cannot be read."""

    pass


class DataUnavailableError(EnsVerificationError):
    """Exception raised when no iteration produced data to verify."""

    pass


class SkippedIteration(EnsVerificationError):
    """
    Raised inside a verification iteration that cannot contribute any data.

    This is not a failure. The chunk scheduler catches it, logs a warning
    and moves on to the next iteration.

    Parameters
    ----------
    message : str
        Reason for skipping
    category : str, optional
        Warning category used by the WarningManager, by default "other"
    stations : list, optional
        Stations joined to forecasts before the iteration was skipped
    """

    def __init__(self, message: str, category: str = "other", stations=None):
        super().__init__(message)
        self.category = category
        self.stations = list(stations) if stations is not None else []
