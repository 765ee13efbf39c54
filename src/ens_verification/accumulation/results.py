"""Result containers for scored chunks and merged verification output."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping

import pandas as pd

SUMMARY_SCORES = "summary_scores"
THRESHOLD_SCORES = "threshold_scores"
DET_SUMMARY_SCORES = "det_summary_scores"
RANK_HISTOGRAM = "rank_histogram"


@dataclass
class ChunkResult:
    """
    Scores computed for the lead times of one iteration.

    Attributes
    ----------
    tables : Dict[str, pd.DataFrame]
        Score tables by name, e.g. "summary_scores" and "threshold_scores"
    attributes : Dict[str, Any]
        Run attributes such as the parameter, groupings and thresholds
    """

    tables: Dict[str, pd.DataFrame]
    attributes: Dict[str, Any] = field(default_factory=dict)

    def is_empty(self) -> bool:
        """True if no table has any rows."""
        return all(len(table) == 0 for table in self.tables.values())


@dataclass(frozen=True)
class VerificationResult:
    """
    Verification output merged over all iterations.

    Tables and attributes are exposed through read-only mappings. Tables can
    also be looked up by indexing the result.

    Examples
    --------
    >>> result["summary_scores"].columns[:2].tolist()
    ['fcst_model', 'lead_time']
    >>> result.num_stations
    '12'
    """

    tables: Mapping[str, pd.DataFrame]
    attributes: Mapping[str, Any]

    def __post_init__(self):
        object.__setattr__(self, "tables", MappingProxyType(dict(self.tables)))
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    def __getitem__(self, table_name: str) -> pd.DataFrame:
        return self.tables[table_name]

    def __contains__(self, table_name: str) -> bool:
        return table_name in self.tables

    @property
    def table_names(self) -> List[str]:
        return list(self.tables)

    @property
    def stations(self) -> List:
        return list(self.attributes.get("stations", []))

    @property
    def num_stations(self) -> str:
        return self.attributes.get("num_stations", "0")
