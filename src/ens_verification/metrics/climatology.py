"""Reference forecasts for the Brier Skill Score."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Union

import numpy as np
import pandas as pd

from ens_verification.data_access.tables import CASE_COLUMNS, member_columns, parse_member_column
from ens_verification.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Column holding the reference member in forecast tables
CLIM_MEMBER_COLUMN = "clim_member"

CLIMATOLOGY_ERROR = (
    "climatology must be 'sample', a mapping with 'eps_model' and 'member', "
    "or a data frame with columns 'threshold' and 'climatology'."
)


@dataclass(frozen=True)
class SampleClimatology:
    """Observed frequency of the event in the verified sample."""

    name = "sample"

    def prepare(self, fcst_data: Dict[str, pd.DataFrame]) -> Dict[str, pd.DataFrame]:
        return fcst_data

    def reference_probability(
        self, group: pd.DataFrame, threshold: float, obs_event: np.ndarray
    ) -> np.ndarray:
        return np.full(len(group), np.mean(obs_event) if len(obs_event) else np.nan)


@dataclass(frozen=True)
class MemberClimatology:
    """
    One member of one model, as a binary forecast, is the reference.

    Parameters
    ----------
    eps_model : str
        Model the member belongs to
    member : int
        Member number, e.g. 0 for "<model>_mbr000"
    """

    eps_model: str
    member: int

    name = "member"

    def prepare(self, fcst_data: Dict[str, pd.DataFrame]) -> Dict[str, pd.DataFrame]:
        """Attach the reference member to every forecast table as CLIM_MEMBER_COLUMN."""
        if self.eps_model not in fcst_data:
            raise ConfigurationError(
                f"climatology eps_model '{self.eps_model}' not found in 'fcst_models'."
            )

        ref_table = fcst_data[self.eps_model]
        ref_column = self._member_column(ref_table)
        reference = ref_table[CASE_COLUMNS + [ref_column]].rename(
            columns={ref_column: CLIM_MEMBER_COLUMN}
        )
        reference = reference.drop_duplicates(subset=CASE_COLUMNS)

        prepared = {}
        for model, df in fcst_data.items():
            if CLIM_MEMBER_COLUMN in df.columns:
                df = df.drop(columns=[CLIM_MEMBER_COLUMN])
            prepared[model] = df.merge(reference, on=CASE_COLUMNS, how="left")
        return prepared

    def reference_probability(
        self, group: pd.DataFrame, threshold: float, obs_event: np.ndarray
    ) -> np.ndarray:
        values = group[CLIM_MEMBER_COLUMN].to_numpy(dtype=float)
        return np.where(np.isnan(values), np.nan, (values >= threshold).astype(float))

    def _member_column(self, df: pd.DataFrame) -> str:
        # Unlagged members first
        candidates = []
        for col in member_columns(df):
            match = parse_member_column(col)
            if int(match.group("member")) == self.member:
                candidates.append((match.group("lag") is not None, col))

        if not candidates:
            raise ConfigurationError(
                f"climatology member {self.member} not found for '{self.eps_model}'."
            )
        return sorted(candidates)[0][1]


@dataclass(frozen=True, eq=False)
class TableClimatology:
    """
    Climatological probabilities by threshold, and optionally by lead time.

    Parameters
    ----------
    table : pd.DataFrame
        Columns "threshold", "climatology" and optionally "lead_time"
    """

    table: pd.DataFrame

    name = "table"

    def __post_init__(self):
        missing = [col for col in ("threshold", "climatology") if col not in self.table.columns]
        if missing:
            raise ConfigurationError(
                f"climatology data frame is missing column(s): {', '.join(missing)}"
            )

        values = self.table["climatology"].to_numpy(dtype=float)
        if np.any((values < 0) | (values > 1)):
            raise ConfigurationError("climatology values must be probabilities between 0 and 1.")

    @property
    def by_lead_time(self) -> bool:
        return "lead_time" in self.table.columns

    def prepare(self, fcst_data: Dict[str, pd.DataFrame]) -> Dict[str, pd.DataFrame]:
        return fcst_data

    def reference_probability(
        self, group: pd.DataFrame, threshold: float, obs_event: np.ndarray
    ) -> np.ndarray:
        rows = self.table[np.isclose(self.table["threshold"].to_numpy(dtype=float), threshold)]
        if rows.empty:
            logger.warning(f"No climatology for threshold {threshold}")
            return np.full(len(group), np.nan)

        if not self.by_lead_time:
            return np.full(len(group), float(rows["climatology"].iloc[0]))

        lookup = rows.drop_duplicates(subset="lead_time").set_index("lead_time")["climatology"]
        return group["lead_time"].map(lookup).to_numpy(dtype=float)


Climatology = Union[SampleClimatology, MemberClimatology, TableClimatology]


def resolve_climatology(climatology: Any) -> Climatology:
    """
    Turn a climatology argument into a reference forecast.

    Parameters
    ----------
    climatology : Any
        "sample", a mapping {"eps_model": name, "member": n}, a data frame
        with threshold and climatology columns, or an already resolved
        climatology

    Returns
    -------
    Climatology
        The reference forecast

    Raises
    ------
    ConfigurationError
        For anything else

    Examples
    --------
    >>> resolve_climatology({"eps_model": "eps1", "member": 0})
    MemberClimatology(eps_model='eps1', member=0)
    """
    if isinstance(climatology, (SampleClimatology, MemberClimatology, TableClimatology)):
        return climatology

    if isinstance(climatology, str):
        if climatology == "sample":
            return SampleClimatology()
        raise ConfigurationError(CLIMATOLOGY_ERROR)

    if isinstance(climatology, pd.DataFrame):
        return TableClimatology(climatology)

    if isinstance(climatology, dict):
        if set(climatology) != {"eps_model", "member"}:
            raise ConfigurationError(CLIMATOLOGY_ERROR)
        member = climatology["member"]
        if isinstance(member, bool) or not isinstance(member, (int, np.integer)):
            raise ConfigurationError("climatology member must be a single member number.")
        return MemberClimatology(str(climatology["eps_model"]), int(member))

    raise ConfigurationError(CLIMATOLOGY_ERROR)
