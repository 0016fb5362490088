from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Any, Literal

import numpy as np
import pandas as pd

from barangay_reports.io.schema import CATEGORIES, SCHEMAS, Category

StatusMatching = Literal["canonical", "substring"]

DAYS_PER_YEAR = 365.25
SECONDS_PER_DAY = 86_400.0

AGE_BAND_LABELS = ("Youth", "Young Adult", "Middle Age", "Senior")
AGE_BAND_EDGES = (0.0, 18.0, 35.0, 60.0, math.inf)

CERTIFICATE_STATUSES = ("PENDING", "APPROVED", "CLAIMED", "REJECTED")
COMPLAINT_STATUSES = ("PENDING", "IN_PROGRESS", "RESOLVED")
IN_PROGRESS = "IN_PROGRESS"

DEMOGRAPHIC_FLAGS: dict[str, str] = {
    "fourps": "is_4ps_member",
    "pwd": "is_pwd",
    "indigenous": "is_indigenous",
    "slp": "is_slp_beneficiary",
}
TRUTHY_STRINGS = frozenset({"true", "yes", "y", "1"})


@dataclass(frozen=True)
class SeriesPoint:
    name: str
    value: float


@dataclass(frozen=True)
class NumericReport:
    """Immutable snapshot of cross-category metrics for one report build."""

    metrics: Mapping[str, float]

    def __getitem__(self, key: str) -> float:
        return self.metrics[key]

    def get(self, key: str, default: float = 0) -> float:
        return self.metrics.get(key, default)

    def items(self) -> Iterable[tuple[str, float]]:
        return self.metrics.items()

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(list(self.metrics.items()), columns=["metric", "value"])


def rows_frame(rows: Sequence[Mapping[str, Any]] | pd.DataFrame) -> pd.DataFrame:
    if isinstance(rows, pd.DataFrame):
        return rows
    return pd.DataFrame.from_records([dict(row) for row in rows])


def format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}"


def safe_ratio(numerator: float, denominator: float) -> float:
    if not denominator:
        return 0.0
    value = float(numerator) / float(denominator)
    return value if math.isfinite(value) else 0.0


def safe_percentage(numerator: float, denominator: float, digits: int = 1) -> float:
    return round(safe_ratio(numerator, denominator) * 100.0, digits)


def _present_mask(values: pd.Series) -> pd.Series:
    blank = values.map(lambda value: isinstance(value, str) and not value.strip())
    return values.notna() & ~blank.astype(bool)


def truthy_mask(values: pd.Series) -> pd.Series:
    def _truthy(value: Any) -> bool:
        if value is None or (isinstance(value, float) and math.isnan(value)):
            return False
        if isinstance(value, (bool, np.bool_)):
            return bool(value)
        if isinstance(value, (int, float, np.integer, np.floating)):
            return value != 0
        return str(value).strip().lower() in TRUTHY_STRINGS

    return values.map(_truthy).astype(bool)


def aggregate(
    rows: Sequence[Mapping[str, Any]] | pd.DataFrame,
    group_field: str,
    missing_label: str | None = None,
) -> list[SeriesPoint]:
    """Count rows per distinct value of ``group_field`` in first-seen order.

    Rows without the field are skipped unless ``missing_label`` is given, in
    which case they are counted under that label.
    """
    if isinstance(rows, pd.DataFrame):
        if group_field in rows.columns:
            values = rows[group_field].astype(object)
        else:
            values = pd.Series([None] * len(rows), dtype=object)
    else:
        # Read the row values directly: a frame column turns ints into floats
        # as soon as one row lacks the field.
        values = pd.Series([row.get(group_field) for row in rows], dtype=object)
    if values.empty:
        return []

    present = _present_mask(values)
    if missing_label is None:
        labels = values[present].map(str)
    else:
        labels = values.map(str).where(present, missing_label)
    if labels.empty:
        return []

    counts = labels.groupby(labels, sort=False).size()
    return [SeriesPoint(name=str(name), value=int(count)) for name, count in counts.items()]


def _reference_time(now: datetime | pd.Timestamp | None) -> pd.Timestamp:
    reference = pd.Timestamp.now() if now is None else pd.Timestamp(now)
    if reference.tzinfo is not None:
        reference = reference.tz_convert("UTC").tz_localize(None)
    return reference


def parse_dates(values: pd.Series) -> pd.Series:
    parsed = pd.to_datetime(values, errors="coerce", utc=True, format="mixed")
    return parsed.dt.tz_localize(None)


def age_in_years(
    birthdate: Any,
    now: datetime | pd.Timestamp | None = None,
) -> int | None:
    ages = age_series(pd.DataFrame({"birthdate": [birthdate]}), now=now)
    value = ages.iloc[0]
    return None if pd.isna(value) else int(value)


def age_series(
    frame: pd.DataFrame,
    now: datetime | pd.Timestamp | None = None,
    field: str = "birthdate",
) -> pd.Series:
    if field not in frame.columns:
        return pd.Series(np.nan, index=frame.index, dtype=float)
    births = parse_dates(frame[field])
    elapsed = (_reference_time(now) - births).dt.total_seconds()
    ages = np.floor(elapsed / (DAYS_PER_YEAR * SECONDS_PER_DAY))
    # Birth dates in the future are malformed input, not negative ages.
    return ages.where(ages >= 0)


def age_bucket_series(
    rows: Sequence[Mapping[str, Any]] | pd.DataFrame,
    now: datetime | pd.Timestamp | None = None,
    field: str = "birthdate",
) -> list[SeriesPoint]:
    frame = rows_frame(rows)
    if frame.empty:
        return []
    ages = age_series(frame, now=now, field=field).dropna()
    if ages.empty:
        return []
    bands = pd.cut(ages, bins=list(AGE_BAND_EDGES), right=False, labels=list(AGE_BAND_LABELS))
    counts = bands.value_counts().reindex(list(AGE_BAND_LABELS), fill_value=0)
    return [SeriesPoint(name=str(name), value=int(count)) for name, count in counts.items()]


def normalize_status(value: Any) -> str:
    return re.sub(r"[\s_\-]+", " ", str(value)).strip().lower()


def match_status(
    value: Any,
    statuses: Sequence[str],
    matching: StatusMatching = "canonical",
) -> str | None:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    if matching == "substring":
        lowered = str(value).strip().lower()
        for status in statuses:
            if status == IN_PROGRESS:
                if "in progress" in lowered.replace("_", " "):
                    return status
            elif lowered == status.lower():
                return status
        return None

    normalized = normalize_status(value)
    for status in statuses:
        if normalized == normalize_status(status):
            return status
    return None


def status_series(
    rows: Sequence[Mapping[str, Any]] | pd.DataFrame,
    statuses: Sequence[str],
    field: str = "status",
    matching: StatusMatching = "canonical",
) -> list[SeriesPoint]:
    """Count rows per canonical status, keeping every canonical status in order.

    Statuses outside the canonical list are appended afterwards in first-seen
    order under their normalized upper-case spelling.
    """
    frame = rows_frame(rows)
    if frame.empty or field not in frame.columns:
        return []
    values = frame[field][_present_mask(frame[field])]
    if values.empty:
        return []

    counts: dict[str, int] = {status: 0 for status in statuses}
    for value in values:
        status = match_status(value, statuses, matching=matching)
        if status is None:
            status = normalize_status(value).upper().replace(" ", "_")
        counts[status] = counts.get(status, 0) + 1
    return [SeriesPoint(name=name, value=count) for name, count in counts.items()]


def visibility_series(
    rows: Sequence[Mapping[str, Any]] | pd.DataFrame,
    field: str = "is_public",
) -> list[SeriesPoint]:
    frame = rows_frame(rows)
    if frame.empty or field not in frame.columns:
        return []
    values = frame[field][frame[field].notna()]
    if values.empty:
        return []
    public = int(truthy_mask(values).sum())
    return [
        SeriesPoint(name="Public", value=public),
        SeriesPoint(name="Private", value=len(values) - public),
    ]


def month_series(
    rows: Sequence[Mapping[str, Any]] | pd.DataFrame,
    field: str = "created_at",
) -> list[SeriesPoint]:
    frame = rows_frame(rows)
    if frame.empty or field not in frame.columns:
        return []
    dates = parse_dates(frame[field]).dropna().sort_values()
    if dates.empty:
        return []
    return aggregate(pd.DataFrame({"month": dates.dt.strftime("%Y-%m")}), "month")


def series_total(series: Sequence[SeriesPoint]) -> float:
    return float(sum(point.value for point in series))


def fold_series(
    series: Sequence[SeriesPoint],
    limit: int,
    other_label: str = "Other",
    keep_latest: bool = False,
) -> list[SeriesPoint]:
    """Keep at most ``limit`` points, summing the overflow into ``other_label``.

    The total is unchanged. With ``keep_latest`` the trailing points are kept
    and the folded point leads the series.
    """
    points = list(series)
    if limit < 2 or len(points) <= limit:
        return points
    if keep_latest:
        cut = len(points) - limit + 1
        folded, kept = points[:cut], points[cut:]
        return [SeriesPoint(name=other_label, value=series_total(folded)), *kept]
    kept, folded = points[: limit - 1], points[limit - 1 :]
    return [*kept, SeriesPoint(name=other_label, value=series_total(folded))]


def series_value(series: Sequence[SeriesPoint], name: str) -> float:
    """Look up a series value by case- and separator-insensitive name; absent is 0."""
    wanted = normalize_status(name)
    for point in series:
        if normalize_status(point.name) == wanted:
            return point.value
    return 0


def demographic_subgroup(
    rows: Sequence[Mapping[str, Any]] | pd.DataFrame,
    subgroup: str,
    now: datetime | pd.Timestamp | None = None,
) -> list[dict[str, Any]]:
    frame = rows_frame(rows)
    if frame.empty:
        return []

    if subgroup == "seniors":
        mask = (age_series(frame, now=now) >= AGE_BAND_EDGES[3]).fillna(False).astype(bool)
        if "senior_mode" in frame.columns:
            mask = mask | truthy_mask(frame["senior_mode"])
    elif subgroup in DEMOGRAPHIC_FLAGS:
        flag = DEMOGRAPHIC_FLAGS[subgroup]
        if flag not in frame.columns:
            return []
        mask = truthy_mask(frame[flag])
    else:
        raise ValueError(f"Unknown demographic subgroup: {subgroup}")

    if not isinstance(rows, pd.DataFrame):
        source = list(rows)
        return [dict(source[position]) for position in np.flatnonzero(mask.to_numpy())]
    return [
        {key: value for key, value in record.items() if not _is_missing(value)}
        for record in frame[mask].to_dict(orient="records")
    ]


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def _flag_count(frame: pd.DataFrame, column: str) -> int:
    if frame.empty or column not in frame.columns:
        return 0
    return int(truthy_mask(frame[column]).sum())


def _numeric_column(frame: pd.DataFrame, column: str) -> pd.Series:
    if column not in frame.columns:
        return pd.Series(0.0, index=frame.index)
    return pd.to_numeric(frame[column], errors="coerce").fillna(0.0)


def build_summary_counts(
    rows_by_category: Mapping[Category, Sequence[Mapping[str, Any]]],
) -> dict[str, int]:
    return {
        SCHEMAS[category].label: len(rows_by_category.get(category, []))
        for category in CATEGORIES
    }


def build_numeric_report(
    rows_by_category: Mapping[Category, Sequence[Mapping[str, Any]]],
    now: datetime | pd.Timestamp | None = None,
    matching: StatusMatching = "canonical",
) -> NumericReport:
    frames = {
        category: rows_frame(rows_by_category.get(category, [])) for category in CATEGORIES
    }
    totals = {category: len(frame) for category, frame in frames.items()}

    certificates = status_series(
        frames["certificates"], CERTIFICATE_STATUSES, matching=matching
    )
    complaints = status_series(frames["complaints"], COMPLAINT_STATUSES, matching=matching)
    households = frames["households"]
    household_people = (
        _numeric_column(households, "member_count")
        + _numeric_column(households, "staff_member_count")
    ).sum()
    ages = {point.name: point.value for point in age_bucket_series(frames["residents"], now=now)}
    visibility = {point.name: point.value for point in visibility_series(frames["announcements"])}

    certificates_done = series_value(certificates, "APPROVED") + series_value(
        certificates, "CLAIMED"
    )
    residents = frames["residents"]

    metrics: dict[str, float] = {
        "total_residents": totals["residents"],
        "total_staff": totals["staff"],
        "total_certificates": totals["certificates"],
        "total_complaints": totals["complaints"],
        "total_households": totals["households"],
        "total_announcements": totals["announcements"],
        "certificates_pending": series_value(certificates, "PENDING"),
        "certificates_approved": series_value(certificates, "APPROVED"),
        "certificates_claimed": series_value(certificates, "CLAIMED"),
        "certificates_rejected": series_value(certificates, "REJECTED"),
        "certificate_completion_rate": safe_percentage(
            certificates_done, totals["certificates"]
        ),
        "complaints_pending": series_value(complaints, "PENDING"),
        "complaints_in_progress": series_value(complaints, IN_PROGRESS),
        "complaints_resolved": series_value(complaints, "RESOLVED"),
        "complaint_resolution_rate": safe_percentage(
            series_value(complaints, "RESOLVED"), totals["complaints"]
        ),
        "average_household_size": round(
            safe_ratio(household_people, totals["households"]), 2
        ),
        "announcements_public": visibility.get("Public", 0),
        "announcements_private": visibility.get("Private", 0),
        "residents_youth": ages.get("Youth", 0),
        "residents_young_adult": ages.get("Young Adult", 0),
        "residents_middle_age": ages.get("Middle Age", 0),
        "residents_senior": ages.get("Senior", 0),
        "residents_4ps": _flag_count(residents, "is_4ps_member"),
        "residents_pwd": _flag_count(residents, "is_pwd"),
        "residents_indigenous": _flag_count(residents, "is_indigenous"),
        "residents_slp": _flag_count(residents, "is_slp_beneficiary"),
        "residents_senior_mode": _flag_count(residents, "senior_mode"),
        "residents_per_staff": round(safe_ratio(totals["residents"], totals["staff"]), 2),
    }
    return NumericReport(metrics=MappingProxyType(metrics))
