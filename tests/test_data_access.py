"""
Unit tests for forecast and observation readers.
"""

import pandas as pd
import pytest

from ens_verification.data_access.base import select_members
from ens_verification.data_access.fctable_reader import FctableReader, ObstableReader
from ens_verification.data_access.frame_reader import FrameForecastReader, FrameObservationReader
from ens_verification.data_access.tables import normalize_station_ids
from ens_verification.utils.exceptions import DataAccessError


class TestFrameForecastReader:
    """Test reading forecasts with and without merged lags."""

    def test_read_cycles_and_lead_times(self, fcst_tables):
        """Test only the requested cycles and lead times are returned."""
        reader = FrameForecastReader(fcst_tables)
        fcst = reader.read_forecast(
            "2024010100", "2024010112", ["eps1", "eps2"], "T2m", [6, 12], by="12h"
        )

        assert list(fcst) == ["eps1", "eps2"]
        assert sorted(fcst["eps1"]["lead_time"].unique()) == [6, 12]
        assert fcst["eps1"]["fcst_dttm"].nunique() == 2
        assert len(fcst["eps1"]) == 2 * 2 * 3
        assert set(fcst["eps1"]["fcst_cycle"]) == {"00", "12"}

    def test_merge_lags(self, fcst_tables):
        """Test lagged members are attached to the cycle they are lagged onto."""
        reader = FrameForecastReader(fcst_tables)
        fcst = reader.read_forecast(
            "2024010112",
            "2024010200",
            ["eps1"],
            "T2m",
            [0, 6],
            lags={"eps1": ["0s", "12h"]},
            by="12h",
        )
        df = fcst["eps1"]

        assert "eps1_mbr000_lag12h" in df.columns
        assert len(df) == 2 * 2 * 3
        difference = df["eps1_mbr000_lag12h"] - df["eps1_mbr000"]
        assert difference.round(6).unique().tolist() == [0.12]

    def test_merge_lags_by_level(self, fcst_table_factory):
        """Test lagged members of upper air data are matched on level."""
        table = pd.concat(
            [
                fcst_table_factory("eps1").assign(p=850),
                fcst_table_factory("eps1", offset=-30.0).assign(p=500),
            ],
            ignore_index=True,
        )
        reader = FrameForecastReader({"eps1": table})
        fcst = reader.read_forecast(
            "2024010112",
            "2024010200",
            ["eps1"],
            "T",
            [0, 6],
            lags={"eps1": ["0s", "12h"]},
            by="12h",
            vertical_coordinate="pressure",
        )
        df = fcst["eps1"]

        assert len(df) == 2 * 2 * 3 * 2
        difference = df["eps1_mbr000_lag12h"] - df["eps1_mbr000"]
        assert difference.round(6).unique().tolist() == [0.12]

    def test_missing_level_column(self, fcst_tables):
        """Test upper air forecasts without a level column."""
        reader = FrameForecastReader(fcst_tables)
        with pytest.raises(DataAccessError, match="'p'"):
            reader.read_forecast(
                "2024010100", "2024010100", ["eps1"], "T", [6], vertical_coordinate="pressure"
            )

    def test_string_station_ids(self, fcst_table_factory):
        """Test numeric station ids given as strings are read as integers."""
        table = fcst_table_factory("eps1")
        table["SID"] = table["SID"].astype(str)
        reader = FrameForecastReader({"eps1": table})
        fcst = reader.read_forecast(
            "2024010100", "2024010100", ["eps1"], "T2m", [6], by="12h", stations=["1002"]
        )
        assert fcst["eps1"]["SID"].tolist() == [1002]

    def test_lags_without_merge(self, fcst_tables):
        """Test stored rows of lagged cycles are returned unchanged."""
        reader = FrameForecastReader(fcst_tables)
        fcst = reader.read_forecast(
            "2024010112",
            "2024010200",
            ["eps1"],
            "T2m",
            [0, 6],
            lags={"eps1": ["0s", "12h"]},
            by="12h",
            merge_lags=False,
        )
        df = fcst["eps1"]

        assert "eps1_mbr000_lag12h" not in df.columns
        assert df["fcst_dttm"].nunique() == 3
        assert sorted(df["lead_time"].unique()) == [0, 6, 12, 18]

    def test_unshifted_variant_reads_parent(self, fcst_tables):
        """Test an unshifted variant is read from its parent model."""
        reader = FrameForecastReader(fcst_tables)
        fcst = reader.read_forecast(
            "2024010100", "2024010100", ["eps1_unshifted"], "T2m", [6], by="12h"
        )
        assert "eps1_mbr000" in fcst["eps1_unshifted"].columns

    def test_station_filter(self, fcst_tables):
        """Test the station selection."""
        reader = FrameForecastReader(fcst_tables)
        fcst = reader.read_forecast(
            "2024010100", "2024010100", ["eps1"], "T2m", [6], by="12h", stations=[1002]
        )
        assert fcst["eps1"]["SID"].unique().tolist() == [1002]

    def test_unknown_model(self, fcst_tables):
        """Test a model without data."""
        reader = FrameForecastReader(fcst_tables)
        with pytest.raises(DataAccessError, match="eps3"):
            reader.read_forecast("2024010100", "2024010100", ["eps3"], "T2m", [6])

    def test_missing_columns(self):
        """Test a table without lead times."""
        reader = FrameForecastReader({"eps1": pd.DataFrame({"SID": [1], "eps1_mbr000": [1.0]})})
        with pytest.raises(DataAccessError, match="lead_time"):
            reader.read_forecast("2024010100", "2024010100", ["eps1"], "T2m", [6])


class TestSelectMembers:
    """Test selection of ensemble members."""

    def test_member_list(self, fcst_table_factory):
        """Test a list of member numbers."""
        table = fcst_table_factory("eps1", num_members=4)
        selected = select_members(table, [0, 2], "eps1")
        assert [col for col in selected.columns if "_mbr" in col] == ["eps1_mbr000", "eps1_mbr002"]

    def test_sub_models(self):
        """Test members selected per sub model of a multi model ensemble."""
        table = pd.DataFrame(
            {
                "SID": [1],
                "sub1_mbr000": [1.0],
                "sub1_mbr001": [2.0],
                "sub2_mbr000": [3.0],
                "sub2_mbr001": [4.0],
            }
        )
        selected = select_members(table, {"sub1": [1], "sub2": [0]}, "mme")
        assert list(selected.columns) == ["SID", "sub1_mbr001", "sub2_mbr000"]

    def test_no_matching_members(self, fcst_table_factory):
        """Test a selection that matches nothing."""
        with pytest.raises(DataAccessError, match="None of the requested members"):
            select_members(fcst_table_factory("eps1"), [10], "eps1")


class TestObservationReader:
    """Test reading observations."""

    def test_window(self, obs_table):
        """Test observations are limited to the window."""
        reader = FrameObservationReader(obs_table)
        obs = reader.read_obs("2024010103", "2024010106", "T2m")

        assert obs["valid_dttm"].min() == pd.Timestamp("2024-01-01 03:00")
        assert obs["valid_dttm"].max() == pd.Timestamp("2024-01-01 06:00")
        assert len(obs) == 2 * 3

    def test_missing_keys(self):
        """Test an observation table without valid times."""
        reader = FrameObservationReader(pd.DataFrame({"SID": [1], "T2m": [280.0]}))
        with pytest.raises(DataAccessError, match="valid_dttm"):
            reader.read_obs("2024010100", "2024010200", "T2m")

    def test_missing_level_column(self, obs_table):
        """Test upper air observations without a level column."""
        reader = FrameObservationReader(obs_table)
        with pytest.raises(DataAccessError, match="'p'"):
            reader.read_obs("2024010100", "2024010200", "T", vertical_coordinate="pressure")


class TestStationIds:
    """Test station ids are given one type."""

    def test_numeric_strings(self):
        """Test whole numbers as strings become integers."""
        sids = normalize_station_ids(pd.Series(["1001", "1002"]))
        assert sids.tolist() == [1001, 1002]
        assert sids.dtype == "int64"

    def test_names(self):
        """Test ids that are not numbers all become strings."""
        sids = normalize_station_ids(pd.Series([1001, "ENGM"], dtype=object))
        assert sids.tolist() == ["1001", "ENGM"]


class TestCsvReaders:
    """Test readers of tables stored as CSV files."""

    def test_fctable(self, tmp_path, fcst_table_factory):
        """Test forecasts read from the default file layout."""
        (tmp_path / "eps1").mkdir()
        fcst_table_factory("eps1").to_csv(tmp_path / "eps1" / "FCTABLE_T2m.csv", index=False)

        reader = FctableReader(tmp_path)
        fcst = reader.read_forecast("2024010100", "2024010112", ["eps1"], "T2m", [3], by="12h")

        assert len(fcst["eps1"]) == 2 * 3
        assert pd.api.types.is_datetime64_any_dtype(fcst["eps1"]["fcst_dttm"])

    def test_fctable_template_per_model(self, tmp_path, fcst_table_factory):
        """Test a file template given for one model."""
        fcst_table_factory("eps1").to_csv(tmp_path / "eps1_T2m.csv", index=False)

        reader = FctableReader(tmp_path)
        fcst = reader.read_forecast(
            "2024010100",
            "2024010100",
            ["eps1"],
            "T2m",
            [3],
            file_template={"eps1": "{fcst_model}_{parameter}.csv"},
        )
        assert len(fcst["eps1"]) == 3

    def test_fctable_missing_file(self, tmp_path):
        """Test a missing forecast file."""
        reader = FctableReader(tmp_path)
        with pytest.raises(DataAccessError, match="not found"):
            reader.read_forecast("2024010100", "2024010100", ["eps1"], "T2m", [3])

    def test_bad_template(self, tmp_path):
        """Test a template with an unknown placeholder."""
        reader = FctableReader(tmp_path, "{model}.csv")
        with pytest.raises(DataAccessError, match="placeholder"):
            reader.read_forecast("2024010100", "2024010100", ["eps1"], "T2m", [3])

    def test_obstable(self, tmp_path, obs_table):
        """Test observations read from the default file layout."""
        obs_table.to_csv(tmp_path / "OBSTABLE_T2m.csv", index=False)

        obs = ObstableReader(tmp_path).read_obs("2024010100", "2024010100", "T2m")
        assert obs["SID"].tolist() == [1001, 1002, 1003]

    def test_obstable_missing_file(self, tmp_path):
        """Test a missing observation file."""
        with pytest.raises(DataAccessError, match="not found"):
            ObstableReader(tmp_path).read_obs("2024010100", "2024010100", "T2m")
