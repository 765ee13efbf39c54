"""
Unit tests for option parsing and model variant resolution.
"""

import copy
import logging

import pytest

from ens_verification.ensemble.options import (
    PerModel,
    PerSubModel,
    Scalar,
    ScaleSpec,
    parse_members,
    parse_scale_fcst,
    resolve_for_models,
)
from ens_verification.ensemble.variants import resolve_model_variants
from ens_verification.utils.exceptions import ConfigurationError

TO_CELSIUS = {"scale_factor": -273.15, "new_units": "degC", "multiplicative": False}


class TestScaleSpec:
    """Test validation of scaling specifications."""

    def test_valid_mapping(self):
        """Test a complete scaling mapping."""
        spec = ScaleSpec.from_mapping(TO_CELSIUS)
        assert spec == ScaleSpec(-273.15, "degC", False)

    def test_missing_field(self):
        """Test a mapping without multiplicative."""
        with pytest.raises(ConfigurationError, match="scale_factor, new_units and multiplicative"):
            ScaleSpec.from_mapping({"scale_factor": 1.0, "new_units": "K"})

    def test_extra_field(self):
        """Test a mapping with an unknown field."""
        with pytest.raises(ConfigurationError):
            ScaleSpec.from_mapping({**TO_CELSIUS, "offset": 1})

    def test_non_numeric_factor(self):
        """Test a scale factor that is not a number."""
        with pytest.raises(ConfigurationError, match="must be a number"):
            ScaleSpec.from_mapping({**TO_CELSIUS, "scale_factor": "a lot"})


class TestOptionParsing:
    """Test parsing of per-model options."""

    def test_scalar_broadcast(self):
        """Test a scalar applies to every model."""
        resolved = resolve_for_models("lags", Scalar(["0s", "6h"]), ["eps1", "eps2"])
        assert resolved == {"eps1": ["0s", "6h"], "eps2": ["0s", "6h"]}

    def test_unknown_model_named(self):
        """Test unknown names are listed in the error."""
        with pytest.raises(ConfigurationError, match="eps3 supplied in 'lags'"):
            resolve_for_models("lags", PerModel({"eps3": ["0s"]}), ["eps1", "eps2"])

    def test_members_list(self):
        """Test a plain member list."""
        assert parse_members([0, 1, 2]) == Scalar([0, 1, 2])

    def test_members_per_sub_model(self):
        """Test nested member selection for multi model ensembles."""
        option = parse_members({"mme": {"sub1": [0, 1], "sub2": 3}})
        assert option == PerSubModel({"mme": {"sub1": [0, 1], "sub2": [3]}})

    def test_members_not_integers(self):
        """Test member numbers that are not integers."""
        with pytest.raises(ConfigurationError, match="integers"):
            parse_members(["first"])

    def test_single_scaling_broadcast_warns(self, caplog):
        """Test one unnamed scaling for several models is broadcast with a warning."""
        with caplog.at_level(logging.WARNING):
            option = parse_scale_fcst(TO_CELSIUS, ["eps1", "eps2"])

        assert isinstance(option, Scalar)
        assert "Applying scaling to all elements" in caplog.text

    def test_scaling_list_matched_by_position(self, caplog):
        """Test an unnamed list with one scaling per model."""
        to_kelvin = {"scale_factor": 273.15, "new_units": "K", "multiplicative": False}
        with caplog.at_level(logging.WARNING):
            option = parse_scale_fcst([TO_CELSIUS, to_kelvin], ["eps1", "eps2"])

        assert option.values["eps2"].new_units == "K"
        assert "same order" in caplog.text

    def test_scaling_list_wrong_length(self):
        """Test an unnamed list that does not match the models."""
        with pytest.raises(ConfigurationError, match="2 unnamed scalings"):
            parse_scale_fcst([TO_CELSIUS, TO_CELSIUS], ["eps1", "eps2", "eps3"])

    def test_scaling_wrong_shape(self):
        """Test a scaling that is neither a mapping nor a list."""
        with pytest.raises(ConfigurationError, match="named mapping"):
            parse_scale_fcst(1.5, ["eps1"])


class TestResolveModelVariants:
    """Test resolution of the working set of models."""

    def test_defaults(self):
        """Test models without options."""
        variants = resolve_model_variants(["eps1", "eps2"])

        assert variants.fcst_models == ["eps1", "eps2"]
        assert variants.lags == {"eps1": ["0s"], "eps2": ["0s"]}
        assert variants.scale == {}
        assert variants.members is None

    def test_single_model_name(self):
        """Test a model given as a string."""
        assert resolve_model_variants("eps1").fcst_models == ["eps1"]

    def test_duplicate_models(self):
        """Test duplicated model names."""
        with pytest.raises(ConfigurationError, match="Duplicate"):
            resolve_model_variants(["eps1", "eps1"])

    def test_scale_for_unknown_model(self):
        """Test scaling named for a model that is not verified."""
        with pytest.raises(ConfigurationError, match="modelX"):
            resolve_model_variants(["eps1", "eps2"], scale_fcst={"modelX": TO_CELSIUS})

    def test_named_scaling(self):
        """Test scaling for one named model."""
        variants = resolve_model_variants(["eps1", "eps2"], scale_fcst={"eps2": TO_CELSIUS})
        assert list(variants.scale) == ["eps2"]

    def test_shift_overrides_lag(self):
        """Test a shifted model reads with its shift as lag."""
        variants = resolve_model_variants(["eps1", "eps2"], lags="3h", fcst_shifts={"eps1": 6})

        assert variants.lags["eps1"] == ["6h"]
        assert variants.lags["eps2"] == ["3h"]
        assert variants.shifts == {"eps1": 6}

    def test_keep_unshifted_copies_parent(self):
        """Test unshifted variants copy the parent configuration."""
        variants = resolve_model_variants(
            ["eps1", "eps2"],
            lags={"eps1": ["0s", "12h"]},
            fcst_shifts={"eps1": 6},
            keep_unshifted=True,
            scale_fcst={"eps1": TO_CELSIUS},
            members={"eps1": [0, 1]},
            file_template={"eps1": "{fcst_model}/{parameter}.csv"},
        )

        assert variants.fcst_models == ["eps1", "eps2", "eps1_unshifted"]
        assert variants.lags["eps1"] == ["6h"]
        assert variants.lags["eps1_unshifted"] == ["0s", "12h"]
        assert variants.scale["eps1_unshifted"] == variants.scale["eps1"]
        assert variants.members["eps1_unshifted"] == [0, 1]
        assert variants.file_template["eps1_unshifted"] == "{fcst_model}/{parameter}.csv"

    def test_expand_unshifted_idempotent(self):
        """Test expanding unshifted variants twice changes nothing."""
        variants = resolve_model_variants(
            ["eps1", "eps2"], fcst_shifts={"eps1": 6, "eps2": 12}, keep_unshifted=True
        )
        before = copy.deepcopy(variants)

        variants.expand_unshifted()

        assert variants == before
        assert variants.fcst_models.count("eps1_unshifted") == 1

    def test_no_unshifted_without_keep(self):
        """Test shifted models are not duplicated by default."""
        variants = resolve_model_variants(["eps1"], fcst_shifts=6)
        assert variants.fcst_models == ["eps1"]
        assert variants.shifts == {"eps1": 6}

    def test_lag_models_need_parent_cycles(self):
        """Test lag_fcst_models without parent_cycles."""
        with pytest.raises(ConfigurationError, match="parent_cycles"):
            resolve_model_variants(["eps1"], lag_fcst_models=["eps1"])

    def test_file_templates_by_position(self):
        """Test an unnamed list of templates."""
        variants = resolve_model_variants(["eps1", "eps2"], file_template=["a.csv", "b.csv"])
        assert variants.file_template == {"eps1": "a.csv", "eps2": "b.csv"}

    def test_file_templates_wrong_length(self):
        """Test an unnamed list of templates of the wrong length."""
        with pytest.raises(ConfigurationError, match="one template per model"):
            resolve_model_variants(["eps1", "eps2", "eps3"], file_template=["a.csv", "b.csv"])

    def test_fractional_lag_rejected(self):
        """Test lags that are not whole hours."""
        with pytest.raises(ConfigurationError, match="whole number of hours"):
            resolve_model_variants(["eps1"], lags="90m")
