"""Splitting of lead times into iterations for memory-bounded processing."""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

import numpy as np

from ens_verification.parameters.resolver import ParameterInfo
from ens_verification.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def split_lead_times(
    lead_times: Iterable[int], num_iterations: Optional[int] = None
) -> List[List[int]]:
    """
    Split lead times into groups, one group per iteration.

    Lead time i goes to group i % num_iterations, so every group spans the
    whole forecast range and the groups are about the same size.

    Parameters
    ----------
    lead_times : Iterable[int]
        Lead times in hours
    num_iterations : int, optional
        Number of groups. Defaults to one group per lead time and is never
        more than the number of lead times.

    Returns
    -------
    List[List[int]]
        Groups of lead times, each in input order

    Raises
    ------
    ConfigurationError
        If lead times are missing or negative, or num_iterations is below 1

    Examples
    --------
    >>> split_lead_times([0, 3, 6, 9], 2)
    [[0, 6], [3, 9]]
    """
    lead_times = _check_lead_times(lead_times)

    if num_iterations is None:
        num_iterations = len(lead_times)

    if isinstance(num_iterations, bool) or not isinstance(num_iterations, (int, np.integer)):
        raise ConfigurationError(f"num_iterations must be an integer, got {num_iterations!r}")
    if num_iterations < 1:
        raise ConfigurationError(f"num_iterations must be at least 1, got {num_iterations}")

    num_iterations = min(int(num_iterations), len(lead_times))
    return [lead_times[i::num_iterations] for i in range(num_iterations)]


def _check_lead_times(lead_times: Iterable[int]) -> List[int]:
    if isinstance(lead_times, (int, np.integer)) and not isinstance(lead_times, bool):
        lead_times = [lead_times]

    checked = []
    for lead_time in lead_times:
        if isinstance(lead_time, bool) or not isinstance(lead_time, (int, np.integer)):
            raise ConfigurationError(f"Lead times must be whole hours, got {lead_time!r}")
        if lead_time < 0:
            raise ConfigurationError(f"Lead times must not be negative, got {lead_time}")
        checked.append(int(lead_time))

    if not checked:
        raise ConfigurationError("At least one lead time must be given")

    return checked


@dataclass
class IterationPlan:
    """
    Lead times handled by one iteration.

    Attributes
    ----------
    index : int
        Iteration number, starting at 1
    num_iterations : int
        Total number of iterations
    requested_lead_times : List[int]
        Lead times assigned to the iteration
    lead_times : List[int]
        Lead times that will be verified
    dropped_lead_times : List[int]
        Lead times shorter than the accumulation period of the parameter
    """

    index: int
    num_iterations: int
    requested_lead_times: List[int]
    lead_times: List[int]
    dropped_lead_times: List[int] = field(default_factory=list)

    def describe(self) -> str:
        return (
            f"Lead time: {self.requested_lead_times} "
            f"(Iteration {self.index} of {self.num_iterations})"
        )


class ChunkingStrategy:
    """
    Decides which lead times each iteration verifies.

    Lead times are split over the iterations with split_lead_times. Lead
    times that are shorter than the accumulation period of the parameter
    are taken out of their iteration, which leaves the iteration empty if
    none of its lead times can be verified.
    """

    def __init__(
        self,
        lead_times: Iterable[int],
        num_iterations: Optional[int] = None,
        parameter: Optional[ParameterInfo] = None,
    ):
        """
        Initialize chunking strategy.

        Parameters
        ----------
        lead_times : Iterable[int]
            Lead times in hours
        num_iterations : int, optional
            Number of iterations, by default one per lead time
        parameter : ParameterInfo, optional
            Parameter being verified, used for the accumulation check
        """
        self.groups = split_lead_times(lead_times, num_iterations)
        self.parameter = parameter

    @property
    def lead_times(self) -> List[int]:
        return [lead_time for group in self.groups for lead_time in group]

    def get_processing_plan(self) -> List[IterationPlan]:
        """
        Create the plan of iterations.

        Returns
        -------
        List[IterationPlan]
            One plan per iteration, in order

        Examples
        --------
        >>> plan = ChunkingStrategy([0, 3, 6, 9], 2, resolve_parameter("AccPcp6h"))
        >>> [(p.lead_times, p.dropped_lead_times) for p in plan.get_processing_plan()]
        [([6], [0]), ([9], [3])]
        """
        plans = []
        for index, group in enumerate(self.groups, start=1):
            if self.parameter is None:
                keep, dropped = list(group), []
            else:
                keep = [lt for lt in group if self.parameter.can_verify_lead_time(lt)]
                dropped = [lt for lt in group if not self.parameter.can_verify_lead_time(lt)]
            plans.append(IterationPlan(index, len(self.groups), list(group), keep, dropped))

        logger.info(
            f"Processing plan: {len(self.lead_times)} lead time(s) in {len(plans)} iteration(s)"
        )
        return plans
