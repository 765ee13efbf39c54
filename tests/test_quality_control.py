"""
Unit tests for common cases, observation checks and the warning ledger.
"""

import numpy as np
import pandas as pd
import pytest

from ens_verification.parameters.resolver import resolve_parameter
from ens_verification.qc.common_cases import common_cases
from ens_verification.qc.data_validation import (
    check_obs_against_fcst,
    gross_error_check,
    join_to_fcst,
    resolve_obs_column,
)
from ens_verification.qc.warnings import WarningManager
from ens_verification.utils.exceptions import ConfigurationError, SkippedIteration

VALID_TIME = pd.Timestamp("2024-01-01 06:00")


def _table(model, sids, extra=None):
    df = pd.DataFrame(
        {
            "SID": sids,
            "fcst_dttm": pd.Timestamp("2024-01-01 00:00"),
            "valid_dttm": VALID_TIME,
            "lead_time": 6,
            f"{model}_mbr000": np.arange(len(sids), dtype=float),
        }
    )
    if extra is not None:
        df["p"] = extra
    return df


def _overlapping():
    return {"eps1": _table("eps1", [1, 2, 3]), "eps2": _table("eps2", [2, 3, 4])}


def _two_levels():
    """Members around 280 K at 850 hPa and around 250 K at 500 hPa for two models."""
    tables = {}
    for model in ("eps1", "eps2"):
        rows = []
        for level, centre in ((850, 280.0), (500, 250.0)):
            rows.append(
                {
                    "SID": 1,
                    "fcst_dttm": pd.Timestamp("2024-01-01 00:00"),
                    "valid_dttm": VALID_TIME,
                    "lead_time": 6,
                    "p": level,
                    f"{model}_mbr000": centre - 0.5,
                    f"{model}_mbr001": centre,
                    f"{model}_mbr002": centre + 0.5,
                }
            )
        tables[model] = pd.DataFrame(rows)
    return tables


def _level_obs(t850, t500):
    return pd.DataFrame(
        {"SID": [1, 1], "valid_dttm": VALID_TIME, "p": [850, 500], "T": [t850, t500]}
    )


class TestCommonCases:
    """Test restriction of models to their common cases."""

    def test_intersection(self):
        """Test only the shared stations remain."""
        aligned = common_cases(_overlapping())

        assert aligned["eps1"]["SID"].tolist() == [2, 3]
        assert aligned["eps2"]["SID"].tolist() == [2, 3]

    def test_members_kept(self):
        """Test member values follow their rows."""
        aligned = common_cases(_overlapping())
        assert aligned["eps1"]["eps1_mbr000"].tolist() == [1.0, 2.0]
        assert aligned["eps2"]["eps2_mbr000"].tolist() == [0.0, 1.0]

    def test_empty_intersection(self):
        """Test disjoint cases give empty tables without an error."""
        aligned = common_cases({"eps1": _table("eps1", [1, 2]), "eps2": _table("eps2", [3, 4])})

        assert len(aligned["eps1"]) == 0
        assert len(aligned["eps2"]) == 0

    def test_single_model(self):
        """Test a single model is returned unchanged."""
        aligned = common_cases({"eps1": _table("eps1", [1, 2])})
        assert aligned["eps1"]["SID"].tolist() == [1, 2]

    def test_extra_columns(self):
        """Test extra columns are part of the case."""
        aligned = common_cases(
            {
                "eps1": _table("eps1", [1, 1], extra=[850, 500]),
                "eps2": _table("eps2", [1, 1], extra=[850, 700]),
            },
            extra_cols=["p"],
        )
        assert aligned["eps1"]["p"].tolist() == [850]

    def test_extra_columns_as_string(self):
        """Test a bare string is rejected."""
        with pytest.raises(ConfigurationError, match="list of column names"):
            common_cases({"eps1": _table("eps1", [1], extra=[850])}, extra_cols="p")

    def test_extra_columns_as_mapping(self):
        """Test a mapping is rejected."""
        with pytest.raises(ConfigurationError, match="list of column names"):
            common_cases({"eps1": _table("eps1", [1], extra=[850])}, extra_cols={"p": 1})

    def test_extra_columns_not_strings(self):
        """Test non-string column names are rejected."""
        with pytest.raises(ConfigurationError, match="list of column names"):
            common_cases({"eps1": _table("eps1", [1], extra=[850])}, extra_cols=[1])

    def test_extra_columns_missing(self):
        """Test missing extra columns are named."""
        with pytest.raises(ConfigurationError, match="'p'"):
            common_cases({"eps1": _table("eps1", [1])}, extra_cols=["p"])


class TestObservationColumn:
    """Test resolution of the observation column."""

    def test_full_name(self):
        """Test the full parameter name is used as is."""
        obs = pd.DataFrame({"SID": [1], "valid_dttm": [VALID_TIME], "AccPcp6h": [1.0]})
        resolved = resolve_obs_column(obs, resolve_parameter("AccPcp6h"))
        assert "AccPcp6h" in resolved.columns

    def test_base_name_renamed(self):
        """Test the base name is renamed to the full name."""
        obs = pd.DataFrame({"SID": [1], "valid_dttm": [VALID_TIME], "AccPcp": [1.0]})
        resolved = resolve_obs_column(obs, resolve_parameter("AccPcp6h"))
        assert resolved["AccPcp6h"].tolist() == [1.0]

    def test_unknown_column(self):
        """Test neither name present."""
        obs = pd.DataFrame({"SID": [1], "valid_dttm": [VALID_TIME], "T2m": [280.0]})
        with pytest.raises(ConfigurationError, match="Don't know what to do with parameter 'S10m'"):
            resolve_obs_column(obs, resolve_parameter("S10m"))


class TestGrossErrorCheck:
    """Test removal of impossible observations."""

    def test_range(self):
        """Test values outside the range and missing values are removed."""
        obs = pd.DataFrame(
            {"SID": [1, 2, 3, 4], "valid_dttm": VALID_TIME, "T2m": [280.0, 999.0, np.nan, 100.0]}
        )
        checked = gross_error_check(obs, "T2m", 223.0, 333.0)
        assert checked["SID"].tolist() == [1]

    def test_open_bounds(self):
        """Test no bounds only removes missing values."""
        obs = pd.DataFrame({"SID": [1, 2], "valid_dttm": VALID_TIME, "T2m": [-5000.0, np.nan]})
        assert gross_error_check(obs, "T2m")["SID"].tolist() == [1]


class TestJoinToForecast:
    """Test joining observations to forecasts."""

    def test_join(self):
        """Test forecasts without observations are dropped."""
        obs = pd.DataFrame({"SID": [1, 2], "valid_dttm": VALID_TIME, "T2m": [280.0, 281.0]})
        joined = join_to_fcst({"eps1": _table("eps1", [1, 2, 3])}, obs, "T2m")

        assert joined["eps1"]["SID"].tolist() == [1, 2]
        assert joined["eps1"]["T2m"].tolist() == [280.0, 281.0]

    def test_join_on_level(self):
        """Test each level gets the observation of its own level."""
        joined = join_to_fcst(_two_levels(), _level_obs(280.1, 250.1), "T", ["p"])

        for df in joined.values():
            assert df["p"].tolist() == [850, 500]
            assert df["T"].tolist() == [280.1, 250.1]


class TestObsAgainstForecast:
    """Test removal of observations far from the ensemble."""

    def test_outlier_removed_from_all_models(self, aligned_chunk):
        """Test a rejected case is removed from every model."""
        checked = check_obs_against_fcst(aligned_chunk, "T2m", num_sd_allowed=3)

        assert checked["eps1"]["SID"].tolist() == [1, 2, 3]
        assert checked["eps2"]["SID"].tolist() == [1, 2, 3]

    def test_outlier_kept_with_wider_tolerance(self, aligned_chunk):
        """Test nothing is removed when the tolerance is wide enough."""
        checked = check_obs_against_fcst(aligned_chunk, "T2m", num_sd_allowed=6)
        assert checked["eps1"]["SID"].tolist() == [1, 2, 3, 4]

    def test_values_not_changed(self, aligned_chunk):
        """Test the check removes rows without changing values."""
        checked = check_obs_against_fcst(aligned_chunk, "T2m", num_sd_allowed=3)
        pd.testing.assert_frame_equal(checked["eps1"], aligned_chunk["eps1"].iloc[:3])

    def test_levels_checked_separately(self):
        """Test an outlier at one level is removed while the other level is kept."""
        joined = join_to_fcst(_two_levels(), _level_obs(280.1, 300.0), "T", ["p"])
        checked = check_obs_against_fcst(joined, "T", num_sd_allowed=6, extra_cols=["p"])

        assert checked["eps1"]["p"].tolist() == [850]
        assert checked["eps2"]["p"].tolist() == [850]


class TestWarningManager:
    """Test the ledger of skipped iterations."""

    def test_record_skip(self):
        """Test a skipped iteration is filed under its category."""
        wm = WarningManager()
        wm.record_skip(SkippedIteration("No common cases", "no_common_cases"), [3, 9])

        warnings = wm.get_warnings("no_common_cases")
        assert len(warnings) == 1
        assert warnings[0]["details"] == {"lead_times": [3, 9]}
        assert wm.has_warnings()

    def test_unknown_category(self):
        """Test unknown categories are filed as other."""
        wm = WarningManager()
        wm.add_warning("strange", "Something odd")
        assert wm.get_warning_counts()["other"] == 1

    def test_save(self, tmp_path):
        """Test warnings are written per category with a summary."""
        wm = WarningManager()
        wm.add_warning("accumulation", "Lead time 0 too short")
        wm.save(tmp_path)

        assert (tmp_path / "accumulation.log").exists()
        assert "accumulation: 1" in (tmp_path / "summary.txt").read_text()
