"""Configuration file parsing for ensemble verification system."""

import logging
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from ens_verification.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("csv", "netcdf")


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load and validate verification configuration from YAML file.

    Parameters
    ----------
    config_path : Union[str, Path]
        Path to YAML configuration file

    Returns
    -------
    Dict[str, Any]
        Parsed configuration dictionary

    Raises
    ------
    ConfigurationError
        If configuration file is invalid or missing required fields

    Examples
    --------
    >>> config = load_config("config/t2m_verification.yaml")
    >>> print(config["verification_run"]["parameter"])
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Error parsing YAML configuration: {e}")

    if not isinstance(config, dict):
        raise ConfigurationError(f"Configuration file is empty or malformed: {config_path}")

    _validate_config(config)

    logger.info(f"Loaded configuration from {config_path}")
    return config


def _validate_config(config: Dict[str, Any]) -> None:
    """
    Validate configuration structure and required fields.

    Parameters
    ----------
    config : Dict[str, Any]
        Configuration dictionary to validate

    Raises
    ------
    ConfigurationError
        If required fields are missing or invalid
    """
    if "verification_run" not in config:
        raise ConfigurationError("Configuration must contain 'verification_run' key")

    run_config = config["verification_run"]

    required_fields = [
        "name",
        "parameter",
        "start_date",
        "end_date",
        "fcst_models",
        "data_sources",
    ]
    for field in required_fields:
        if field not in run_config:
            raise ConfigurationError(f"Missing required field: verification_run.{field}")

    _validate_models_config(run_config["fcst_models"])
    _validate_lead_times_config(run_config.get("lead_times"))
    _validate_data_sources_config(run_config["data_sources"])

    if "options" in run_config and not isinstance(run_config["options"], dict):
        raise ConfigurationError("verification_run.options must be a mapping")

    if "output" in run_config:
        _validate_output_config(run_config["output"])


def _validate_models_config(fcst_models: Any) -> None:
    """Validate forecast model list."""
    if isinstance(fcst_models, str):
        return

    if not isinstance(fcst_models, list) or len(fcst_models) == 0:
        raise ConfigurationError("fcst_models must be a model name or a non-empty list")

    if len(set(fcst_models)) != len(fcst_models):
        raise ConfigurationError("fcst_models must not contain duplicates")


def _validate_lead_times_config(lead_times: Any) -> None:
    """Validate lead times (optional, defaults apply when absent)."""
    if lead_times is None:
        return

    if not isinstance(lead_times, list) or len(lead_times) == 0:
        raise ConfigurationError("lead_times must be a non-empty list")

    for lead_time in lead_times:
        if not isinstance(lead_time, int) or lead_time < 0:
            raise ConfigurationError(
                f"lead_times must be non-negative integers, got {lead_time!r}"
            )


def _validate_data_sources_config(data_sources: Dict[str, Any]) -> None:
    """Validate data sources section."""
    if not isinstance(data_sources, dict):
        raise ConfigurationError("data_sources must be a mapping")

    for field in ["fcst_path", "obs_path"]:
        if field not in data_sources:
            raise ConfigurationError(f"Missing required data_sources field: {field}")


def _validate_output_config(output: Dict[str, Any]) -> None:
    """Validate output configuration section."""
    if not isinstance(output, dict):
        raise ConfigurationError("output must be a mapping")

    if "verif_path" not in output:
        raise ConfigurationError("output must have 'verif_path' field")

    fmt = output.get("format", "csv")
    if fmt not in OUTPUT_FORMATS:
        raise ConfigurationError(
            f"output.format must be one of {OUTPUT_FORMATS}, got '{fmt}'"
        )


def get_nested_value(config: Dict[str, Any], key_path: str, default: Any = None) -> Any:
    """
    Get a value from nested dictionary using dot notation.

    Parameters
    ----------
    config : Dict[str, Any]
        Configuration dictionary
    key_path : str
        Dot-separated path to value (e.g., "verification_run.output.verif_path")
    default : Any, optional
        Default value if key not found, by default None

    Returns
    -------
    Any
        Value at the specified path, or default if not found

    Examples
    --------
    >>> config = {"verification_run": {"name": "test_run"}}
    >>> get_nested_value(config, "verification_run.name")
    'test_run'
    """
    keys = key_path.split(".")
    value = config

    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value
