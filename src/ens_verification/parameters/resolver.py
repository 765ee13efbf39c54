"""Parameter metadata: canonical names, accumulation windows, units and QC defaults."""

import logging
import re
from dataclasses import dataclass
from typing import Dict, Optional

from ens_verification.data_access.tables import vertical_level_column

logger = logging.getLogger(__name__)

# Accumulated parameters carry the window as a suffix, e.g. "AccPcp12h".
ACCUM_PATTERN = re.compile(r"^(?P<base>[A-Za-z]+?)(?P<accum>\d+)h$")

DEFAULT_NUM_SD_ALLOWED = 6.0

# base_name: (unit, min_allowed, max_allowed, num_sd_allowed, accumulating)
PARAMETER_TABLE: Dict[str, tuple] = {
    "T2m": ("K", 223.0, 333.0, 6.0, False),
    "Td2m": ("K", 223.0, 333.0, 6.0, False),
    "Tmax": ("K", 223.0, 333.0, 6.0, True),
    "Tmin": ("K", 223.0, 333.0, 6.0, True),
    "Q2m": ("kg/kg", 0.0, 0.05, 6.0, False),
    "RH2m": ("percent", 0.0, 100.0, 6.0, False),
    "S10m": ("m/s", 0.0, 100.0, 6.0, False),
    "D10m": ("degrees", 0.0, 360.0, 6.0, False),
    "Gmax": ("m/s", 0.0, 150.0, 6.0, True),
    "Pmsl": ("hPa", 900.0, 1100.0, 6.0, False),
    "Ps": ("hPa", 400.0, 1100.0, 6.0, False),
    "AccPcp": ("kg/m^2", 0.0, 500.0, 8.0, True),
    "Pcp": ("kg/m^2", 0.0, 500.0, 8.0, True),
    "CCtot": ("oktas", 0.0, 8.0, 4.0, False),
    "CClow": ("oktas", 0.0, 8.0, 4.0, False),
    "vis": ("m", 0.0, 100000.0, 4.0, False),
    # Upper air
    "T": ("K", 173.0, 333.0, 6.0, False),
    "Td": ("K", 173.0, 333.0, 6.0, False),
    "Q": ("kg/kg", 0.0, 0.05, 6.0, False),
    "RH": ("percent", 0.0, 100.0, 6.0, False),
    "S": ("m/s", 0.0, 150.0, 6.0, False),
    "D": ("degrees", 0.0, 360.0, 6.0, False),
    "Z": ("m", -500.0, 35000.0, 6.0, False),
}


@dataclass(frozen=True)
class ParameterInfo:
    """
    Resolved description of a verification parameter.

    Attributes
    ----------
    full_name : str
        Name as requested, including any accumulation suffix ("AccPcp12h")
    base_name : str
        Name without accumulation suffix ("AccPcp")
    accum_hours : int
        Accumulation window in hours, 0 for instantaneous parameters
    unit : str
        Canonical unit, empty when the parameter is unknown
    min_allowed, max_allowed : float, optional
        Default gross error check bounds
    num_sd_allowed : float
        Default number of ensemble standard deviations for the obs check
    vertical_coordinate : str, optional
        "pressure", "model" or "height" for upper air data, None at the surface
    """

    full_name: str
    base_name: str
    accum_hours: int = 0
    unit: str = ""
    min_allowed: Optional[float] = None
    max_allowed: Optional[float] = None
    num_sd_allowed: float = DEFAULT_NUM_SD_ALLOWED
    vertical_coordinate: Optional[str] = None

    @property
    def is_accumulated(self) -> bool:
        return self.accum_hours > 0

    @property
    def level_column(self) -> Optional[str]:
        """Column holding the vertical level, None for surface parameters."""
        return vertical_level_column(self.vertical_coordinate)

    def can_verify_lead_time(self, lead_time: int) -> bool:
        """Check that the accumulation window fits within the lead time."""
        return not self.is_accumulated or lead_time >= self.accum_hours

    def describe_accumulation(self) -> str:
        return f"{self.accum_hours}h {self.base_name}"


def resolve_parameter(name: str, vertical_coordinate: Optional[str] = None) -> ParameterInfo:
    """
    Resolve a parameter name to its canonical description.

    Parameters
    ----------
    name : str
        Parameter name, e.g. "T2m" or "AccPcp12h"
    vertical_coordinate : str, optional
        "pressure", "model" or "height" for upper air parameters

    Returns
    -------
    ParameterInfo
        Resolved parameter information

    Raises
    ------
    ConfigurationError
        If the vertical coordinate is unknown

    Examples
    --------
    >>> info = resolve_parameter("AccPcp12h")
    >>> info.base_name, info.accum_hours
    ('AccPcp', 12)
    >>> resolve_parameter("T", "pressure").level_column
    'p'
    """
    vertical_level_column(vertical_coordinate)

    base_name = name
    accum_hours = 0

    match = ACCUM_PATTERN.match(name)
    if match is not None and match.group("base") in PARAMETER_TABLE:
        base_name = match.group("base")
        accum_hours = int(match.group("accum"))

    if base_name not in PARAMETER_TABLE:
        logger.warning(
            f"Unknown parameter '{name}': no default units or quality control bounds"
        )
        return ParameterInfo(
            full_name=name, base_name=base_name, vertical_coordinate=vertical_coordinate
        )

    unit, min_allowed, max_allowed, num_sd, accumulating = PARAMETER_TABLE[base_name]

    if accum_hours > 0 and not accumulating:
        logger.warning(f"Parameter '{base_name}' is not usually accumulated")

    return ParameterInfo(
        full_name=name,
        base_name=base_name,
        accum_hours=accum_hours,
        unit=unit,
        min_allowed=min_allowed,
        max_allowed=max_allowed,
        num_sd_allowed=num_sd,
        vertical_coordinate=vertical_coordinate,
    )
