"""Per-model option values and scaling specifications."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence, Union

from ens_verification.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

SCALE_FIELDS = ("multiplicative", "new_units", "scale_factor")


@dataclass(frozen=True)
class Scalar:
    """A single value that applies to every forecast model."""

    value: Any


@dataclass(frozen=True)
class PerModel:
    """Values keyed by forecast model name."""

    values: Dict[str, Any]


@dataclass(frozen=True)
class PerSubModel:
    """Values keyed by forecast model, then by sub model of a multi model ensemble."""

    values: Dict[str, Dict[str, Any]]


OptionValue = Union[Scalar, PerModel, PerSubModel]


def check_model_names(option_name: str, names: Sequence[str], fcst_models: Sequence[str]) -> None:
    """
    Check that the names used in an option all refer to forecast models.

    Raises
    ------
    ConfigurationError
        Naming every unknown model
    """
    bad_names = [name for name in names if name not in fcst_models]
    if bad_names:
        raise ConfigurationError(
            f"{', '.join(bad_names)} supplied in '{option_name}', "
            f"but do not exist in 'fcst_models' ({', '.join(fcst_models)})."
        )


def resolve_for_models(
    option_name: str, option: OptionValue, fcst_models: Sequence[str]
) -> Dict[str, Any]:
    """
    Turn an option value into a mapping of model name to value.

    A Scalar is broadcast to every model. Named values are checked against
    the model list and returned for the named models only.

    Parameters
    ----------
    option_name : str
        Argument name used in error messages
    option : OptionValue
        Parsed option
    fcst_models : Sequence[str]
        Forecast models

    Returns
    -------
    Dict[str, Any]
        Value per model
    """
    if isinstance(option, Scalar):
        return {model: option.value for model in fcst_models}

    if isinstance(option, (PerModel, PerSubModel)):
        check_model_names(option_name, list(option.values), fcst_models)
        return dict(option.values)

    raise TypeError(f"Unsupported option value: {option!r}")


@dataclass(frozen=True)
class ScaleSpec:
    """
    Scaling applied to forecast or observation values.

    Attributes
    ----------
    scale_factor : float
        Value to multiply by or add
    new_units : str
        Units after scaling
    multiplicative : bool
        Multiply by scale_factor if True, otherwise add it
    """

    scale_factor: float
    new_units: str
    multiplicative: bool

    @classmethod
    def from_mapping(cls, data: Any, option_name: str = "scale_fcst") -> "ScaleSpec":
        """
        Build a ScaleSpec from a mapping with exactly the three scaling fields.

        Raises
        ------
        ConfigurationError
            If the mapping has missing or extra fields
        """
        if isinstance(data, ScaleSpec):
            return data

        if not isinstance(data, Mapping) or sorted(data) != sorted(SCALE_FIELDS):
            raise ConfigurationError(
                f"'{option_name}' must be a mapping with names scale_factor, "
                f"new_units and multiplicative, got {data!r}"
            )

        if isinstance(data["scale_factor"], bool) or not isinstance(
            data["scale_factor"], (int, float)
        ):
            raise ConfigurationError(
                f"scale_factor in '{option_name}' must be a number, got {data['scale_factor']!r}"
            )

        return cls(
            scale_factor=float(data["scale_factor"]),
            new_units=str(data["new_units"]),
            multiplicative=bool(data["multiplicative"]),
        )


def is_scale_mapping(value: Any) -> bool:
    """Check if a value looks like a single scaling specification."""
    if isinstance(value, ScaleSpec):
        return True
    return isinstance(value, Mapping) and any(key in SCALE_FIELDS for key in value)


def parse_lags(lags: Any) -> OptionValue:
    """Parse lags given as a period, a list of periods or a mapping per model."""
    if isinstance(lags, Mapping):
        return PerModel({model: _as_list(value) for model, value in lags.items()})
    return Scalar(_as_list(lags))


def parse_members(members: Any) -> OptionValue:
    """
    Parse member selection.

    A list of member numbers applies to all models. A mapping per model
    selects members for that model, and a nested mapping selects members per
    sub model of a multi model ensemble.
    """
    if isinstance(members, Mapping):
        if members and all(isinstance(value, Mapping) for value in members.values()):
            return PerSubModel(
                {
                    model: {sub: _as_int_list(value) for sub, value in sub_members.items()}
                    for model, sub_members in members.items()
                }
            )
        return PerModel({model: _as_int_list(value) for model, value in members.items()})
    return Scalar(_as_int_list(members))


def parse_file_template(file_template: Any, fcst_models: Sequence[str]) -> OptionValue:
    """
    Parse file templates.

    An unnamed list is matched to the forecast models by position.
    """
    if isinstance(file_template, Mapping):
        return PerModel(dict(file_template))

    if isinstance(file_template, (list, tuple)):
        if len(file_template) == 1:
            return Scalar(file_template[0])
        if len(file_template) != len(fcst_models):
            raise ConfigurationError(
                "'file_template' must be a single template, a named mapping or a list "
                f"with one template per model. Got {len(file_template)} templates for "
                f"{len(fcst_models)} models."
            )
        return PerModel(dict(zip(fcst_models, file_template)))

    return Scalar(file_template)


def parse_scale_fcst(scale_fcst: Any, fcst_models: Sequence[str]) -> OptionValue:
    """
    Parse forecast scaling.

    Accepts a single scaling mapping, an unnamed list of scalings or a mapping
    of model name to scaling. A single unnamed scaling for several models is
    broadcast with a warning; an unnamed list with one entry per model is
    matched by position with a warning.

    Raises
    ------
    ConfigurationError
        For any other shape, or for malformed scalings
    """
    if is_scale_mapping(scale_fcst):
        unnamed = [scale_fcst]
    elif isinstance(scale_fcst, Mapping):
        return PerModel(
            {
                model: ScaleSpec.from_mapping(value, f"scale_fcst[{model!r}]")
                for model, value in scale_fcst.items()
            }
        )
    elif isinstance(scale_fcst, (list, tuple)):
        unnamed = list(scale_fcst)
    else:
        raise ConfigurationError(
            "'scale_fcst' must be a named mapping with names as in 'fcst_models', "
            f"got {scale_fcst!r}"
        )

    specs = [ScaleSpec.from_mapping(value, "scale_fcst") for value in unnamed]

    if len(specs) == 1:
        if len(fcst_models) > 1:
            logger.warning(
                "Only one scaling given in 'scale_fcst'. "
                "Applying scaling to all elements of 'fcst_models'."
            )
        return Scalar(specs[0])

    if len(specs) == len(fcst_models):
        logger.warning(
            "No names given in 'scale_fcst'. Assuming same order as elements of 'fcst_models'."
        )
        return PerModel(dict(zip(fcst_models, specs)))

    raise ConfigurationError(
        f"'scale_fcst' must be a named mapping with names as in 'fcst_models'. "
        f"Got {len(specs)} unnamed scalings {scale_fcst!r} for {len(fcst_models)} models."
    )


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _as_int_list(value: Any) -> List[int]:
    if isinstance(value, (int, str)):
        value = [value]
    try:
        return [int(member) for member in value]
    except (TypeError, ValueError):
        raise ConfigurationError(f"Members must be given as integers, got {value!r}")
