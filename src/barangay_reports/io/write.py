from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import pandas as pd

from barangay_reports.features.aggregates import NumericReport, format_number


def summary_frame(counts: Mapping[str, int], report: NumericReport) -> pd.DataFrame:
    """Summary counts followed by every numeric metric as ``metric,value`` rows."""
    summary = pd.DataFrame(list(counts.items()), columns=["metric", "value"])
    frame = pd.concat([summary, report.to_frame()], ignore_index=True)
    frame["value"] = frame["value"].map(format_number)
    return frame


def write_summary_csv(
    counts: Mapping[str, int],
    report: NumericReport,
    path: Path,
) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    summary_frame(counts, report).to_csv(path, index=False)
    return path


def write_rows_csv(rows: Sequence[Mapping[str, Any]], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame.from_records([dict(row) for row in rows]).to_csv(path, index=False)
    return path
