"""Resolution of lagged, shifted, scaled and member-selected model variants."""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from ens_verification.ensemble.options import (
    PerModel,
    Scalar,
    ScaleSpec,
    check_model_names,
    parse_file_template,
    parse_lags,
    parse_members,
    parse_scale_fcst,
    resolve_for_models,
)
from ens_verification.data_access.tables import UNSHIFTED_SUFFIX
from ens_verification.temporal.periods import to_hours, to_seconds
from ens_verification.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def unshifted_name(model: str) -> str:
    return f"{model}{UNSHIFTED_SUFFIX}"


def shifted_name(model: str, shift_hours: int) -> str:
    return f"{model}_shifted_{shift_hours}h"


@dataclass
class ModelVariants:
    """
    Concrete per-model options for one verification run.

    Attributes
    ----------
    fcst_models : List[str]
        Models to read, including any synthesized "<model>_unshifted" variants
    lags : Dict[str, List[str]]
        Lag periods per model
    shifts : Dict[str, int]
        Shift in hours per shifted model
    scale : Dict[str, ScaleSpec]
        Forecast scaling per model
    members : Dict[str, Any], optional
        Member selection per model; a list of members or, for multi model
        ensembles, a mapping of sub model to members
    file_template : Dict[str, str], optional
        File template per model
    keep_unshifted : bool
        Whether shifted models are also verified unshifted
    """

    fcst_models: List[str]
    lags: Dict[str, List[str]]
    shifts: Dict[str, int] = field(default_factory=dict)
    scale: Dict[str, ScaleSpec] = field(default_factory=dict)
    members: Optional[Dict[str, Any]] = None
    file_template: Optional[Dict[str, str]] = None
    keep_unshifted: bool = False

    def has_unshifted(self) -> bool:
        return any(model.endswith(UNSHIFTED_SUFFIX) for model in self.fcst_models)

    def expand_unshifted(self) -> None:
        """
        Add "<model>_unshifted" variants for shifted models.

        Each variant copies the lag, scaling, member selection and file
        template of its parent as they are now. Does nothing if the variants
        already exist, so repeated calls leave the configuration unchanged.
        """
        if not self.keep_unshifted or not self.shifts or self.has_unshifted():
            return

        for model in self.shifts:
            variant = unshifted_name(model)
            self.fcst_models.append(variant)
            self.lags[variant] = list(self.lags[model])
            if model in self.scale:
                self.scale[variant] = self.scale[model]
            if self.members is not None and model in self.members:
                self.members[variant] = copy.deepcopy(self.members[model])
            if self.file_template is not None and model in self.file_template:
                self.file_template[variant] = self.file_template[model]

        logger.info(
            f"Added unshifted variants: {', '.join(unshifted_name(m) for m in self.shifts)}"
        )

    def apply_shift_lags(self) -> None:
        """Replace the lag of each shifted model by its shift."""
        for model, shift_hours in self.shifts.items():
            self.lags[model] = [f"{shift_hours}h"]


def resolve_model_variants(
    fcst_models: Union[str, Sequence[str]],
    lags: Any = "0s",
    fcst_shifts: Any = None,
    keep_unshifted: bool = False,
    scale_fcst: Any = None,
    members: Any = None,
    file_template: Any = None,
    lag_fcst_models: Optional[Sequence[str]] = None,
    parent_cycles: Optional[Sequence[int]] = None,
) -> ModelVariants:
    """
    Expand the requested models and options into a ModelVariants.

    Parameters
    ----------
    fcst_models : Union[str, Sequence[str]]
        Forecast model name(s)
    lags : Any, optional
        Lag period(s), for all models or as a mapping per model, by default "0s"
    fcst_shifts : Any, optional
        Shift in hours as a mapping per model (a bare number applies to all)
    keep_unshifted : bool, optional
        Also verify shifted models without the shift, by default False
    scale_fcst : Any, optional
        Forecast scaling, see parse_scale_fcst
    members : Any, optional
        Member selection, see parse_members
    file_template : Any, optional
        File template(s), see parse_file_template
    lag_fcst_models : Sequence[str], optional
        Models to lag after reading
    parent_cycles : Sequence[int], optional
        Parent cycles for lag_fcst_models

    Returns
    -------
    ModelVariants
        Resolved options

    Raises
    ------
    ConfigurationError
        For malformed options or options naming unknown models

    Examples
    --------
    >>> variants = resolve_model_variants(
    ...     ["eps1", "eps2"], fcst_shifts={"eps1": 6}, keep_unshifted=True
    ... )
    >>> variants.fcst_models
    ['eps1', 'eps2', 'eps1_unshifted']
    >>> variants.lags["eps1"], variants.lags["eps1_unshifted"]
    (['6h'], ['0s'])
    """
    models = [fcst_models] if isinstance(fcst_models, str) else list(fcst_models)

    if not models:
        raise ConfigurationError("At least one forecast model must be given")
    if len(set(models)) != len(models):
        raise ConfigurationError(f"Duplicate names in 'fcst_models': {models}")

    if lag_fcst_models is not None:
        if parent_cycles is None:
            raise ConfigurationError(
                "'parent_cycles' must be passed as well as 'lag_fcst_models'."
            )
        check_model_names("lag_fcst_models", list(lag_fcst_models), models)

    resolved_lags = {model: ["0s"] for model in models}
    resolved_lags.update(resolve_for_models("lags", parse_lags(lags), models))
    for model_lags in resolved_lags.values():
        for lag in model_lags:
            if to_seconds(lag) < 0:
                raise ConfigurationError(f"Lags must not be negative, got '{lag}'")
            to_hours(lag)

    variants = ModelVariants(
        fcst_models=models,
        lags=resolved_lags,
        shifts=_resolve_shifts(fcst_shifts, models),
        keep_unshifted=keep_unshifted,
    )

    if scale_fcst is not None:
        variants.scale = resolve_for_models(
            "scale_fcst", parse_scale_fcst(scale_fcst, models), models
        )

    if members is not None:
        variants.members = resolve_for_models("members", parse_members(members), models)

    if file_template is not None:
        variants.file_template = resolve_for_models(
            "file_template", parse_file_template(file_template, models), models
        )

    variants.expand_unshifted()
    variants.apply_shift_lags()

    return variants


def _resolve_shifts(fcst_shifts: Any, fcst_models: Sequence[str]) -> Dict[str, int]:
    """Resolve shifts to whole hours per model."""
    if fcst_shifts is None:
        return {}

    if isinstance(fcst_shifts, dict):
        option = PerModel(dict(fcst_shifts))
    else:
        option = Scalar(fcst_shifts)

    shifts = resolve_for_models("fcst_shifts", option, fcst_models)
    return {model: to_hours(shift) for model, shift in shifts.items()}
