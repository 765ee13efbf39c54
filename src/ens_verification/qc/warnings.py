"""Ledger of non-fatal problems met while verifying."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ens_verification.utils.exceptions import SkippedIteration

logger = logging.getLogger(__name__)

WARNING_CATEGORIES = (
    "accumulation",
    "no_forecast_data",
    "no_common_cases",
    "quality_control",
    "other",
)


class WarningManager:
    """
    Collects warnings raised while iterating over lead times.

    Iterations that are skipped (accumulation longer than the lead time, no
    forecast data, no common cases, nothing left after quality control) are
    recorded here by category so that they can be summarised after the run.
    """

    def __init__(self):
        self.warnings: Dict[str, List[Dict]] = {category: [] for category in WARNING_CATEGORIES}

    def add_warning(self, category: str, message: str, details: Dict = None) -> None:
        """
        Add a warning and log it.

        Parameters
        ----------
        category : str
            One of WARNING_CATEGORIES. Unknown categories are filed as "other".
        message : str
            Warning message
        details : Dict, optional
            Additional details, e.g. the lead times of the iteration

        Examples
        --------
        >>> wm = WarningManager()
        >>> wm.add_warning("no_common_cases", "No common cases", {"lead_times": [3, 9]})
        """
        if category not in self.warnings:
            category = "other"

        self.warnings[category].append(
            {
                "timestamp": datetime.now().isoformat(),
                "message": message,
                "details": details or {},
            }
        )

        logger.warning(f"[{category}] {message}")

    def record_skip(
        self, skip: SkippedIteration, lead_times: Optional[Sequence[int]] = None
    ) -> None:
        """Record a skipped iteration under the category it was raised with."""
        details = {"lead_times": list(lead_times)} if lead_times is not None else None
        self.add_warning(skip.category, str(skip), details)

    def get_warnings(self, category: str = None) -> List[Dict]:
        """
        Get warnings, optionally filtered by category.

        Parameters
        ----------
        category : str, optional
            Category to filter by. If None, returns all warnings.

        Returns
        -------
        List[Dict]
            List of warning entries
        """
        if category:
            return self.warnings.get(category, [])

        all_warnings = []
        for cat_warnings in self.warnings.values():
            all_warnings.extend(cat_warnings)
        return all_warnings

    def get_warning_counts(self) -> Dict[str, int]:
        """Number of warnings per category."""
        return {category: len(warnings) for category, warnings in self.warnings.items()}

    def has_warnings(self, category: str = None) -> bool:
        """True if there are warnings in the category, or in any category if None."""
        if category:
            return len(self.warnings.get(category, [])) > 0

        return any(len(warnings) > 0 for warnings in self.warnings.values())

    def save(self, output_dir: Path) -> None:
        """
        Save warnings to one log file per category plus a summary.

        Parameters
        ----------
        output_dir : Path
            Output directory for warning files
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        for category, warnings in self.warnings.items():
            if len(warnings) == 0:
                continue

            warning_file = output_dir / f"{category}.log"
            with open(warning_file, "w") as f:
                f.write(f"# {category.upper()} WARNINGS\n")
                f.write(f"# Total: {len(warnings)}\n")
                f.write("#" + "=" * 78 + "\n\n")

                for warning in warnings:
                    f.write(f"[{warning['timestamp']}]\n")
                    f.write(f"{warning['message']}\n")
                    if warning["details"]:
                        f.write(f"Details: {warning['details']}\n")
                    f.write("-" * 80 + "\n\n")

            logger.info(f"Saved {len(warnings)} {category} warnings to {warning_file}")

        summary_file = output_dir / "summary.txt"
        counts = self.get_warning_counts()
        with open(summary_file, "w") as f:
            f.write("VERIFICATION WARNINGS SUMMARY\n")
            f.write("=" * 80 + "\n\n")
            f.write(f"Total warnings: {sum(counts.values())}\n\n")
            for category, count in counts.items():
                if count > 0:
                    f.write(f"  {category}: {count}\n")

        logger.info(f"Saved warning summary to {summary_file}")
