"""
Unit tests for scoring of aligned forecasts and observations.
"""

import numpy as np
import pandas as pd
import pytest

from ens_verification.data_access.tables import member_columns
from ens_verification.metrics.climatology import (
    MemberClimatology,
    SampleClimatology,
    TableClimatology,
    resolve_climatology,
)
from ens_verification.metrics.scoring import ALL_GROUPS, ens_verify
from ens_verification.utils.exceptions import ConfigurationError


def _row(table, model="eps1", **labels):
    mask = table["fcst_model"] == model
    for col, value in labels.items():
        mask &= table[col] == value
    rows = table[mask]
    assert len(rows) == 1
    return rows.iloc[0]


class TestEnsVerify:
    """Test the score tables of ens_verify."""

    def test_tables(self, aligned_chunk):
        """Test the tables and their columns."""
        result = ens_verify(aligned_chunk, "T2m", thresholds=[1.5])

        assert set(result.tables) == {
            "summary_scores",
            "rank_histogram",
            "threshold_scores",
            "det_summary_scores",
        }
        assert result.tables["summary_scores"].columns.tolist() == [
            "fcst_model",
            "lead_time",
            "num_cases",
            "mean_bias",
            "rmse",
            "stde",
            "spread",
            "spread_skill_ratio",
            "crps",
        ]
        assert result.tables["threshold_scores"].columns.tolist()[:3] == [
            "fcst_model",
            "lead_time",
            "threshold",
        ]

    def test_summary_scores(self, aligned_chunk):
        """Test summary scores of an ensemble centred on the observations."""
        summary = ens_verify(aligned_chunk, "T2m").tables["summary_scores"]
        row = _row(summary, lead_time=6)

        assert row["num_cases"] == 2
        assert row["mean_bias"] == pytest.approx(0.0)
        assert row["rmse"] == pytest.approx(0.0)
        assert row["spread"] == pytest.approx(1.0)
        assert np.isnan(row["spread_skill_ratio"])
        assert row["crps"] == pytest.approx(2.0 / 9.0)

    def test_summary_scores_offset_model(self, aligned_chunk):
        """Test the bias of a model offset from the observations."""
        summary = ens_verify(aligned_chunk, "T2m").tables["summary_scores"]
        row = _row(summary, model="eps2", lead_time=6)

        assert row["mean_bias"] == pytest.approx(1.0)
        assert row["rmse"] == pytest.approx(1.0)
        assert row["spread_skill_ratio"] == pytest.approx(1.0)

    def test_rank_histogram(self, aligned_chunk):
        """Test observations equal to the middle member have rank 2."""
        ranks = ens_verify(aligned_chunk, "T2m").tables["rank_histogram"]
        eps1 = ranks[(ranks["fcst_model"] == "eps1") & (ranks["lead_time"] == 6)]

        assert eps1["rank"].tolist() == [1, 2, 3, 4]
        assert eps1["rank_count"].tolist() == [0, 2, 0, 0]

    def test_threshold_scores_sample_climatology(self, aligned_chunk):
        """Test Brier scores against the sample climatology."""
        scores = ens_verify(aligned_chunk, "T2m", thresholds=[1.5]).tables["threshold_scores"]
        row = _row(scores, lead_time=6)

        assert row["fcst_prob"] == pytest.approx(0.5)
        assert row["obs_freq"] == pytest.approx(0.5)
        assert row["brier_score"] == pytest.approx(1.0 / 9.0)
        assert row["climatology"] == pytest.approx(0.5)
        assert row["brier_skill_score"] == pytest.approx(5.0 / 9.0)

    def test_threshold_scores_member_climatology(self, aligned_chunk):
        """Test Brier skill against one member of one model."""
        scores = ens_verify(
            aligned_chunk,
            "T2m",
            thresholds=[1.5],
            climatology={"eps_model": "eps1", "member": 2},
        ).tables["threshold_scores"]

        for model in ("eps1", "eps2"):
            row = _row(scores, model=model, lead_time=6)
            assert row["climatology"] == pytest.approx(1.0)
        assert _row(scores, lead_time=6)["brier_skill_score"] == pytest.approx(7.0 / 9.0)

    def test_threshold_scores_table_climatology(self, aligned_chunk):
        """Test Brier skill against climatological probabilities."""
        clim = pd.DataFrame({"threshold": [1.5], "climatology": [0.25]})
        scores = ens_verify(aligned_chunk, "T2m", thresholds=[1.5], climatology=clim).tables[
            "threshold_scores"
        ]
        row = _row(scores, lead_time=6)

        reference_brier_score = (0.25**2 + 0.75**2) / 2
        assert row["climatology"] == pytest.approx(0.25)
        assert row["brier_skill_score"] == pytest.approx(1 - (1.0 / 9.0) / reference_brier_score)

    def test_member_scores(self, aligned_chunk):
        """Test deterministic scores of each member."""
        members = ens_verify(aligned_chunk, "T2m").tables["det_summary_scores"]
        row = _row(members, lead_time=6, member="eps1_mbr000")

        assert row["bias"] == pytest.approx(-1.0)
        assert row["mae"] == pytest.approx(1.0)
        assert row["stde"] == pytest.approx(0.0)

    def test_without_member_scores(self, aligned_chunk):
        """Test member scores can be left out."""
        result = ens_verify(aligned_chunk, "T2m", verify_members=False)
        assert "det_summary_scores" not in result.tables

    def test_several_groupings(self, aligned_chunk):
        """Test several groupings are stacked with All in unused columns."""
        summary = ens_verify(
            aligned_chunk, "T2m", groupings=[["lead_time"], ["fcst_cycle"]]
        ).tables["summary_scores"]

        assert len(summary) == 2 * 3
        row = _row(summary, lead_time=ALL_GROUPS, fcst_cycle="00")
        assert row["num_cases"] == 4
        assert _row(summary, lead_time=12)["fcst_cycle"] == ALL_GROUPS

    def test_missing_grouping_column(self, aligned_chunk):
        """Test a grouping column that is not in the data."""
        with pytest.raises(ConfigurationError, match="fcst_hour"):
            ens_verify(aligned_chunk, "T2m", groupings="fcst_hour")

    def test_jitter(self, aligned_chunk):
        """Test the jitter function is applied before scoring."""

        def warm(df):
            return df.assign(**{col: df[col] + 100.0 for col in member_columns(df)})

        summary = ens_verify(aligned_chunk, "T2m", jitter_fcst=warm).tables["summary_scores"]
        assert _row(summary, lead_time=6)["mean_bias"] == pytest.approx(100.0)

    def test_attributes(self, aligned_chunk):
        """Test the attributes describe the scoring."""
        attributes = ens_verify(aligned_chunk, "T2m", thresholds=[1]).attributes

        assert attributes["parameter"] == "T2m"
        assert attributes["groupings"] == [["lead_time"]]
        assert attributes["thresholds"] == [1.0]
        assert attributes["climatology"] == "sample"


class TestClimatology:
    """Test resolution of reference forecasts."""

    def test_sample(self):
        """Test the default climatology."""
        assert isinstance(resolve_climatology("sample"), SampleClimatology)

    def test_member(self):
        """Test a member of a model."""
        clim = resolve_climatology({"eps_model": "eps1", "member": 0})
        assert clim == MemberClimatology("eps1", 0)

    def test_table(self):
        """Test a data frame of probabilities."""
        clim = resolve_climatology(pd.DataFrame({"threshold": [1.0], "climatology": [0.1]}))
        assert isinstance(clim, TableClimatology)

    def test_unknown_string(self):
        """Test a string other than sample."""
        with pytest.raises(ConfigurationError, match="climatology must be"):
            resolve_climatology("climate")

    def test_mapping_with_extra_keys(self):
        """Test a mapping with more than eps_model and member."""
        with pytest.raises(ConfigurationError):
            resolve_climatology({"eps_model": "eps1", "member": 0, "lag": 6})

    def test_member_not_a_number(self):
        """Test a list of members."""
        with pytest.raises(ConfigurationError, match="single member"):
            resolve_climatology({"eps_model": "eps1", "member": [0, 1]})

    def test_table_probabilities(self):
        """Test climatological values outside 0 to 1."""
        with pytest.raises(ConfigurationError, match="between 0 and 1"):
            TableClimatology(pd.DataFrame({"threshold": [1.0], "climatology": [10.0]}))

    def test_member_model_not_verified(self, aligned_chunk):
        """Test a reference model that is not in the data."""
        with pytest.raises(ConfigurationError, match="eps9"):
            ens_verify(
                aligned_chunk,
                "T2m",
                thresholds=[1.5],
                climatology={"eps_model": "eps9", "member": 0},
            )

    def test_table_by_lead_time(self, aligned_chunk):
        """Test climatology looked up by lead time."""
        clim = TableClimatology(
            pd.DataFrame(
                {"threshold": [1.5, 1.5], "lead_time": [6, 12], "climatology": [0.2, 0.8]}
            )
        )
        reference = clim.reference_probability(aligned_chunk["eps1"], 1.5, np.array([]))
        np.testing.assert_allclose(reference, [0.2, 0.2, 0.8, 0.8])
