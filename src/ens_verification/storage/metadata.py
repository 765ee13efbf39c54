"""Metadata tracking for verification runs."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)


class MetadataTracker:
    """
    Tracks metadata for verification runs.

    Records the run arguments, processing statistics (iterations run and
    skipped, stations, warnings) and whether the run completed.
    """

    def __init__(self, run_name: str):
        """
        Initialize metadata tracker.

        Parameters
        ----------
        run_name : str
            Verification run name
        """
        self.run_name = run_name
        self.metadata: Dict[str, Any] = {
            "run_name": run_name,
            "start_time": datetime.now().isoformat(),
            "end_time": None,
            "status": "running",
            "configuration": {},
            "processing_stats": {},
            "errors": [],
        }

    def set_configuration(self, config: Dict) -> None:
        """Store the run arguments."""
        self.metadata["configuration"] = config

    def add_processing_stat(self, key: str, value: Any) -> None:
        """
        Add a processing statistic.

        Parameters
        ----------
        key : str
            Statistic key, e.g. "iterations_skipped"
        value : Any
            Statistic value
        """
        self.metadata["processing_stats"][key] = value

    def mark_complete(self) -> None:
        """Mark run as complete."""
        self.metadata["end_time"] = datetime.now().isoformat()
        self.metadata["status"] = "completed"

    def mark_failed(self, error_message: str) -> None:
        """Mark run as failed and record the error."""
        self.metadata["end_time"] = datetime.now().isoformat()
        self.metadata["status"] = "failed"
        self.metadata["errors"].append(
            {"timestamp": datetime.now().isoformat(), "message": error_message}
        )

    def save(self, output_dir: Path) -> Path:
        """
        Save metadata to "metadata.json".

        Values that JSON cannot represent (timestamps, callables) are written
        as strings.

        Parameters
        ----------
        output_dir : Path
            Output directory

        Returns
        -------
        Path
            Path to metadata file
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        metadata_path = output_dir / "metadata.json"
        with open(metadata_path, "w") as f:
            json.dump(self.metadata, f, indent=2, default=str)

        logger.info(f"Saved metadata to {metadata_path}")
        return metadata_path

    def get_summary(self) -> Dict[str, Any]:
        """Run name, status, timing and error count."""
        return {
            "run_name": self.run_name,
            "status": self.metadata["status"],
            "start_time": self.metadata["start_time"],
            "end_time": self.metadata["end_time"],
            "num_errors": len(self.metadata["errors"]),
        }
