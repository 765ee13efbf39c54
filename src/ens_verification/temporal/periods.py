"""Parsing of time periods ("6h", "0s", "30m") and verification dates."""

import re
from datetime import datetime
from typing import Union

import pandas as pd

from ens_verification.utils.exceptions import ConfigurationError

PERIOD_PATTERN = re.compile(r"^\s*(?P<value>-?\d+(?:\.\d+)?)\s*(?P<unit>[smhd]?)\s*$")

SECONDS_PER_UNIT = {"s": 1, "m": 60, "h": 3600, "d": 86400}

DATE_FORMATS = {8: "%Y%m%d", 10: "%Y%m%d%H", 12: "%Y%m%d%H%M"}


def to_seconds(period: Union[str, int, float]) -> int:
    """
    Convert a time period to seconds.

    Strings carry an optional unit suffix (s, m, h, d). Bare numbers and
    strings without a unit are taken to be hours.

    Parameters
    ----------
    period : Union[str, int, float]
        Period such as "6h", "0s", "90m" or 6

    Returns
    -------
    int
        Period in seconds

    Raises
    ------
    ConfigurationError
        If the period cannot be parsed

    Examples
    --------
    >>> to_seconds("6h")
    21600
    >>> to_seconds("0s")
    0
    """
    if isinstance(period, bool):
        raise ConfigurationError(f"Cannot interpret {period!r} as a time period")

    if isinstance(period, (int, float)):
        return int(round(period * SECONDS_PER_UNIT["h"]))

    if not isinstance(period, str):
        raise ConfigurationError(f"Cannot interpret {period!r} as a time period")

    match = PERIOD_PATTERN.match(period)
    if match is None:
        raise ConfigurationError(
            f"Cannot interpret '{period}' as a time period. "
            "Use a number followed by s, m, h or d, e.g. '6h'."
        )

    unit = match.group("unit") or "h"
    return int(round(float(match.group("value")) * SECONDS_PER_UNIT[unit]))


def to_hours(period: Union[str, int, float]) -> int:
    """
    Convert a time period to a whole number of hours.

    Raises
    ------
    ConfigurationError
        If the period is not a whole number of hours
    """
    seconds = to_seconds(period)
    if seconds % SECONDS_PER_UNIT["h"] != 0:
        raise ConfigurationError(
            f"Time period '{period}' is not a whole number of hours"
        )
    return seconds // SECONDS_PER_UNIT["h"]


def parse_date(value: Union[str, int, datetime, pd.Timestamp]) -> pd.Timestamp:
    """
    Parse a verification date given as YYYYMMDD(HH)(mm).

    Parameters
    ----------
    value : Union[str, int, datetime, pd.Timestamp]
        Date as string/integer, or an already parsed datetime

    Returns
    -------
    pd.Timestamp
        Parsed timestamp

    Examples
    --------
    >>> parse_date("2024010112")
    Timestamp('2024-01-01 12:00:00')
    """
    if isinstance(value, (datetime, pd.Timestamp)):
        return pd.Timestamp(value)

    text = str(value).strip()
    date_format = DATE_FORMATS.get(len(text))

    if not text.isdigit() or date_format is None:
        raise ConfigurationError(
            f"Cannot parse date '{value}'. Dates must be YYYYMMDD, YYYYMMDDHH or YYYYMMDDHHmm."
        )

    try:
        return pd.Timestamp(datetime.strptime(text, date_format))
    except ValueError as e:
        raise ConfigurationError(f"Invalid date '{value}': {e}")
