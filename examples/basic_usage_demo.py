#!/usr/bin/env python
"""
Example script demonstrating the ensemble point verification system.

This script builds synthetic forecasts for two ensembles and matching
observations, verifies them in chunks of lead times and prints the scores.
"""

import sys
import tempfile
from pathlib import Path

import numpy as np
import pandas as pd

from ens_verification import (
    FrameForecastReader,
    FrameObservationReader,
    save_point_verif,
    setup_logging,
    verify,
)
from ens_verification.metrics.continuous import compute_all_continuous_metrics
from ens_verification.qc.warnings import WarningManager

STATIONS = [1001, 1002, 1003, 1004, 1005]
CYCLES = pd.date_range("2024-01-01 00:00", "2024-01-03 00:00", freq="12h")
LEAD_TIMES = list(range(0, 25, 3))
NUM_MEMBERS = 5


def make_data(rng):
    """Create forecast tables for eps_a and eps_b and the observations."""
    truth = {}
    obs_rows = []
    for valid_dttm in sorted({c + pd.Timedelta(hours=lt) for c in CYCLES for lt in LEAD_TIMES}):
        for sid in STATIONS:
            value = 275.0 + 5.0 * np.sin(valid_dttm.hour / 24 * 2 * np.pi) + rng.normal(0, 1)
            truth[(sid, valid_dttm)] = value
            obs_rows.append({"SID": sid, "valid_dttm": valid_dttm, "T2m": value, "units": "K"})

    tables = {}
    for model, bias, spread in (("eps_a", 0.0, 1.0), ("eps_b", 0.8, 0.5)):
        rows = []
        for cycle in CYCLES:
            for lead_time in LEAD_TIMES:
                valid_dttm = cycle + pd.Timedelta(hours=lead_time)
                for sid in STATIONS:
                    error_sd = spread * (1 + lead_time / 24)
                    row = {
                        "SID": sid,
                        "fcst_dttm": cycle,
                        "lead_time": lead_time,
                        "valid_dttm": valid_dttm,
                        "units": "K",
                    }
                    members = truth[(sid, valid_dttm)] + bias + rng.normal(0, error_sd, NUM_MEMBERS)
                    for k, value in enumerate(members):
                        row[f"{model}_mbr{k:03d}"] = value
                    rows.append(row)
        tables[model] = pd.DataFrame(rows)

    return tables, pd.DataFrame(obs_rows)


def demonstrate_member_metrics(tables, obs):
    """Demonstrate deterministic metrics of one member."""
    print("=" * 80)
    print("Ensemble Verification - Deterministic Metrics of One Member")
    print("=" * 80)
    print()

    joined = tables["eps_a"].merge(obs, on=["SID", "valid_dttm"])
    metrics = compute_all_continuous_metrics(
        joined["eps_a_mbr000"].to_numpy(), joined["T2m"].to_numpy()
    )

    print(f"   - Cases: {metrics['num_cases']}")
    print(f"   - Bias:  {metrics['bias']:.3f} K")
    print(f"   - RMSE:  {metrics['rmse']:.3f} K")
    print(f"   - MAE:   {metrics['mae']:.3f} K")
    print(f"   - STDE:  {metrics['stde']:.3f} K")
    print()


def demonstrate_chunked_verification(tables, obs):
    """Demonstrate verification of both ensembles in chunks of lead times."""
    print("=" * 80)
    print("Ensemble Verification - Chunked Verification")
    print("=" * 80)
    print()

    warning_manager = WarningManager()
    result = verify(
        "2024010100",
        "2024010300",
        "T2m",
        ["eps_a", "eps_b"],
        FrameForecastReader(tables),
        FrameObservationReader(obs),
        lead_times=LEAD_TIMES,
        num_iterations=3,
        thresholds=[273.15, 278.15],
        by="12h",
        lags={"eps_b": ["0s", "12h"]},
        groupings=[["lead_time"], ["lead_time", "fcst_cycle"]],
        warning_manager=warning_manager,
    )

    summary = result["summary_scores"]
    overall = summary[summary["fcst_cycle"] == "All"]
    print(overall[["fcst_model", "lead_time", "num_cases", "mean_bias", "rmse", "spread", "crps"]])
    print()

    brier = result["threshold_scores"]
    brier = brier[(brier["fcst_cycle"] == "All") & (brier["lead_time"] == 12)]
    print(brier[["fcst_model", "threshold", "brier_score", "brier_skill_score"]])
    print()

    print(f"   - Stations verified: {result.num_stations}")
    print(f"   - Warnings: {warning_manager.get_warning_counts()}")
    print()

    output_dir = Path(tempfile.mkdtemp(prefix="ens_verification_"))
    paths = save_point_verif(result, output_dir)
    print(f"   - Wrote {len(paths)} files to {output_dir}")
    print()


def main():
    """Run all demonstrations."""
    print()
    print("#" * 80)
    print("# ENSEMBLE POINT VERIFICATION DEMONSTRATION")
    print("#" * 80)
    print()

    setup_logging("WARNING")
    rng = np.random.default_rng(42)
    tables, obs = make_data(rng)

    try:
        demonstrate_member_metrics(tables, obs)
        demonstrate_chunked_verification(tables, obs)

        print("=" * 80)
        print("All demonstrations completed successfully!")
        print("=" * 80)
        print()

    except Exception as e:
        print(f"\nERROR: {e}")
        import traceback
        traceback.print_exc()
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
