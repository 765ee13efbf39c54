"""Output writer for verification results in CSV and NetCDF formats."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import pandas as pd
import xarray as xr

from ens_verification.accumulation.results import VerificationResult
from ens_verification.utils.config_parser import OUTPUT_FORMATS
from ens_verification.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class OutputWriter:
    """
    Writes verification results to disk.

    CSV output is one file per score table plus a JSON file with the
    attributes. NetCDF output is a single file with one group per score
    table and the attributes as global attributes.
    """

    def __init__(self, verif_path: Union[str, Path], fmt: str = "csv"):
        """
        Initialize output writer.

        Parameters
        ----------
        verif_path : Union[str, Path]
            Output directory, created if it does not exist
        fmt : str, optional
            "csv" or "netcdf", by default "csv"
        """
        if fmt not in OUTPUT_FORMATS:
            raise ConfigurationError(
                f"Output format must be one of {', '.join(OUTPUT_FORMATS)}, got '{fmt}'"
            )

        self.verif_path = Path(verif_path)
        self.fmt = fmt
        self.verif_path.mkdir(parents=True, exist_ok=True)

    def write(self, result: VerificationResult) -> List[Path]:
        """
        Write a verification result.

        Parameters
        ----------
        result : VerificationResult
            Merged verification

        Returns
        -------
        List[Path]
            Paths of the files written

        Examples
        --------
        >>> writer = OutputWriter("/output/verif", "csv")
        >>> paths = writer.write(result)
        """
        file_stem = self._file_stem(result)
        if self.fmt == "netcdf":
            return [self.write_netcdf(result, file_stem)]
        return self.write_csv(result, file_stem)

    def write_csv(self, result: VerificationResult, file_stem: str) -> List[Path]:
        """Write each table to "<stem>_<table>.csv" and attributes to "<stem>_attributes.json"."""
        paths = []
        for name, table in result.tables.items():
            output_path = self.verif_path / f"{file_stem}_{name}.csv"
            table.to_csv(output_path, index=False)
            logger.debug(f"Wrote {name}: {output_path}")
            paths.append(output_path)

        attributes_path = self.verif_path / f"{file_stem}_attributes.json"
        with open(attributes_path, "w") as f:
            json.dump(dict(result.attributes), f, indent=2, default=str)
        paths.append(attributes_path)

        logger.info(f"Wrote {len(result.tables)} table(s) to {self.verif_path}")
        return paths

    def write_netcdf(self, result: VerificationResult, file_stem: str) -> Path:
        """Write all non-empty tables as groups of "<stem>.nc"."""
        output_path = self.verif_path / f"{file_stem}.nc"

        root = xr.Dataset(attrs=_netcdf_attrs(result.attributes))
        root.to_netcdf(output_path, mode="w")

        for name, table in result.tables.items():
            if len(table) == 0:
                logger.debug(f"Not writing empty table {name}")
                continue
            ds = xr.Dataset.from_dataframe(_netcdf_ready(table))
            ds.to_netcdf(output_path, mode="a", group=name)

        logger.info(f"Wrote verification to {output_path}")
        return output_path

    @staticmethod
    def _file_stem(result: VerificationResult) -> str:
        return str(result.attributes.get("parameter", "verification"))


def save_point_verif(
    result: VerificationResult, verif_path: Union[str, Path], fmt: str = "csv"
) -> List[Path]:
    """
    Save a verification result.

    Parameters
    ----------
    result : VerificationResult
        Merged verification
    verif_path : Union[str, Path]
        Output directory
    fmt : str, optional
        "csv" or "netcdf", by default "csv"

    Returns
    -------
    List[Path]
        Paths of the files written
    """
    return OutputWriter(verif_path, fmt).write(result)


def _netcdf_ready(table: pd.DataFrame) -> pd.DataFrame:
    """Make object columns (e.g. grouping columns holding "All") plain strings."""
    table = table.reset_index(drop=True)
    for col in table.columns:
        if table[col].dtype == object:
            table[col] = table[col].astype(str)
    return table


def _netcdf_attrs(attributes: Dict[str, Any]) -> Dict[str, Any]:
    """NetCDF attributes must be strings or numbers; encode the rest as JSON."""
    attrs = {}
    for key, value in attributes.items():
        if isinstance(value, bool):
            attrs[key] = int(value)
        elif isinstance(value, (str, int, float)):
            attrs[key] = value
        else:
            attrs[key] = json.dumps(value, default=str)
    return attrs
