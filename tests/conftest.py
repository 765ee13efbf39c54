"""
Shared fixtures: small synthetic ensemble forecasts and observations.

Member k of an n member model at station s and lead time lt is

    280 + (s - 1000) / 10 + lt / 100 + offset + (k - (n - 1) / 2) / 2

and the observation at station s is 280 + (s - 1000) / 10 + 0.1 at every valid
time, so observations are always well within the ensemble spread.
"""

import numpy as np
import pandas as pd
import pytest

STATIONS = [1001, 1002, 1003]
CYCLES = pd.date_range("2024-01-01 00:00", "2024-01-02 00:00", freq="12h")
LEAD_TIMES = list(range(0, 25, 3))


def make_fcst_table(
    model,
    stations=STATIONS,
    cycles=CYCLES,
    lead_times=LEAD_TIMES,
    num_members=3,
    offset=0.0,
):
    rows = []
    for cycle in cycles:
        for lead_time in lead_times:
            for sid in stations:
                row = {
                    "SID": sid,
                    "fcst_dttm": cycle,
                    "lead_time": lead_time,
                    "valid_dttm": cycle + pd.Timedelta(hours=lead_time),
                    "units": "K",
                }
                base = 280.0 + (sid - 1000) / 10.0 + lead_time / 100.0 + offset
                for k in range(num_members):
                    row[f"{model}_mbr{k:03d}"] = base + (k - (num_members - 1) / 2) / 2
                rows.append(row)
    return pd.DataFrame(rows)


def make_obs_table(parameter="T2m", stations=STATIONS, cycles=CYCLES, lead_times=LEAD_TIMES):
    valid_times = sorted({cycle + pd.Timedelta(hours=lt) for cycle in cycles for lt in lead_times})
    rows = [
        {
            "SID": sid,
            "valid_dttm": valid_dttm,
            parameter: 280.0 + (sid - 1000) / 10.0 + 0.1,
            "units": "K",
        }
        for valid_dttm in valid_times
        for sid in stations
    ]
    return pd.DataFrame(rows)


@pytest.fixture
def fcst_table_factory():
    """Factory for synthetic forecast tables."""
    return make_fcst_table


@pytest.fixture
def obs_table_factory():
    """Factory for synthetic observation tables."""
    return make_obs_table


@pytest.fixture
def fcst_tables():
    """Forecast tables for two models."""
    return {
        "eps1": make_fcst_table("eps1"),
        "eps2": make_fcst_table("eps2", offset=0.3),
    }


@pytest.fixture
def obs_table():
    """Observations of T2m matching the forecast tables."""
    return make_obs_table()


@pytest.fixture
def aligned_chunk():
    """
    Forecasts joined to observations, as passed to the scoring.

    Members are obs - 1, obs and obs + 1 for eps1 and one more for eps2,
    except at station 4 where the observation is far above every member.
    """
    obs_values = {1: 1.0, 2: 2.0, 3: 3.0, 4: 10.0}
    tables = {}
    for model, offset in (("eps1", 0.0), ("eps2", 1.0)):
        rows = []
        for sid, obs in obs_values.items():
            rows.append(
                {
                    "SID": sid,
                    "fcst_dttm": pd.Timestamp("2024-01-01 00:00"),
                    "valid_dttm": pd.Timestamp("2024-01-01 06:00"),
                    "lead_time": 6 if sid < 3 else 12,
                    "fcst_cycle": "00",
                    f"{model}_mbr000": sid - 1.0 + offset,
                    f"{model}_mbr001": sid + 0.0 + offset,
                    f"{model}_mbr002": sid + 1.0 + offset,
                    "T2m": obs,
                }
            )
        tables[model] = pd.DataFrame(rows)
    return tables


@pytest.fixture
def rng():
    """Seeded random generator."""
    return np.random.default_rng(42)
