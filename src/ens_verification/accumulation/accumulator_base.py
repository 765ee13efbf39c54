"""Fold of iteration outcomes into a verification result."""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Set

from ens_verification.accumulation.merger import bind_point_verif
from ens_verification.accumulation.results import ChunkResult, VerificationResult
from ens_verification.qc.warnings import WarningManager
from ens_verification.utils.exceptions import SkippedIteration

logger = logging.getLogger(__name__)


@dataclass
class IterationOutcome:
    """
    What one iteration over a group of lead times produced.

    Attributes
    ----------
    lead_times : List[int]
        Lead times of the iteration
    result : ChunkResult, optional
        Scores, None if the iteration was skipped
    stations : List
        Station ids with observations joined to forecasts
    skip : SkippedIteration, optional
        Reason the iteration was skipped
    """

    lead_times: List[int]
    result: Optional[ChunkResult] = None
    stations: List[Any] = field(default_factory=list)
    skip: Optional[SkippedIteration] = None

    @property
    def skipped(self) -> bool:
        return self.result is None


class VerificationAccumulator:
    """
    Collects iteration outcomes and merges them once all are in.

    Only the accumulator holds the list of results and the set of
    stations. Outcomes must be passed to update in iteration order.

    Examples
    --------
    >>> acc = VerificationAccumulator()
    >>> for outcome in outcomes:
    ...     acc.update(outcome)
    >>> result = acc.finalize()
    """

    def __init__(self, warning_manager: Optional[WarningManager] = None):
        self.warning_manager = warning_manager or WarningManager()
        self.results: List[Optional[ChunkResult]] = []
        self.stations: Set[Any] = set()
        self.iterations_run = 0
        self.iterations_skipped = 0

    def update(self, outcome: IterationOutcome) -> None:
        """
        Add the outcome of one iteration.

        Parameters
        ----------
        outcome : IterationOutcome
            Outcome of the next iteration
        """
        if outcome.skip is not None:
            self.warning_manager.record_skip(outcome.skip, outcome.lead_times)

        if outcome.skipped:
            self.iterations_skipped += 1
        else:
            self.iterations_run += 1

        self.results.append(outcome.result)
        self.stations.update(outcome.stations)

    def merge(self, other: "VerificationAccumulator") -> None:
        """
        Merge another accumulator, whose iterations come after these ones.

        Parameters
        ----------
        other : VerificationAccumulator
            Accumulator to merge into this one
        """
        self.results.extend(other.results)
        self.stations.update(other.stations)
        self.iterations_run += other.iterations_run
        self.iterations_skipped += other.iterations_skipped
        for category, warnings in other.warning_manager.warnings.items():
            self.warning_manager.warnings[category].extend(warnings)

    def finalize(self) -> VerificationResult:
        """
        Merge all results.

        Raises
        ------
        DataUnavailableError
            If no iteration produced a result
        """
        return bind_point_verif(self.results, self.stations)

    def get_summary(self) -> dict:
        """Counts of iterations and stations, for run metadata."""
        return {
            "iterations_run": self.iterations_run,
            "iterations_skipped": self.iterations_skipped,
            "num_stations": len(self.stations),
            "warnings": self.warning_manager.get_warning_counts(),
        }
