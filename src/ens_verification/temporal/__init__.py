"""Temporal processing modules."""

from ens_verification.temporal.periods import parse_date, to_hours, to_seconds
from ens_verification.temporal.time_manager import TimeManager

__all__ = ["TimeManager", "parse_date", "to_hours", "to_seconds"]
