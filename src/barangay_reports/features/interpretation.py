from __future__ import annotations

from collections.abc import Callable, Sequence

from barangay_reports.features.aggregates import (
    SeriesPoint,
    format_number,
    safe_percentage,
    series_total,
    series_value,
)

Interpreter = Callable[[Sequence[SeriesPoint]], list[str]]

AGE_BAND_RANGES = {
    "Youth": "0-17",
    "Young Adult": "18-34",
    "Middle Age": "35-59",
    "Senior": "60+",
}


def format_share(label: str, value: float, total: float) -> str:
    return f"{label}: {format_number(value)} ({safe_percentage(value, total):.1f}%)"


def _largest(series: Sequence[SeriesPoint]) -> SeriesPoint | None:
    candidates = [point for point in series if point.value > 0]
    if not candidates:
        return None
    return max(candidates, key=lambda point: point.value)


def interpret_certificates(series: Sequence[SeriesPoint]) -> list[str]:
    total = series_total(series)
    pending = series_value(series, "Pending")
    approved = series_value(series, "Approved")
    claimed = series_value(series, "Claimed")
    rejected = series_value(series, "Rejected")
    completed = approved + claimed
    lines = [
        f"Certificate requests received: {format_number(total)}.",
        format_share("Pending", pending, total),
        format_share("Approved", approved, total),
        format_share("Claimed", claimed, total),
        format_share("Rejected", rejected, total),
        (
            f"{format_number(completed)} of {format_number(total)} requests "
            f"({safe_percentage(completed, total):.1f}%) were approved or claimed."
        ),
    ]
    if pending > completed:
        lines.append("Pending requests exceed completed ones; processing is falling behind.")
    return lines


def interpret_complaints(series: Sequence[SeriesPoint]) -> list[str]:
    total = series_total(series)
    pending = series_value(series, "Pending")
    in_progress = series_value(series, "In Progress")
    resolved = series_value(series, "Resolved")
    lines = [
        f"Complaints filed: {format_number(total)}.",
        format_share("Pending", pending, total),
        format_share("In Progress", in_progress, total),
        format_share("Resolved", resolved, total),
        f"Resolution rate: {safe_percentage(resolved, total):.1f}%.",
    ]
    if pending > resolved:
        lines.append("Unresolved complaints outnumber resolved ones; follow-up is advised.")
    return lines


def interpret_age_groups(series: Sequence[SeriesPoint]) -> list[str]:
    total = series_total(series)
    lines = [f"Residents with a recorded birth date: {format_number(total)}."]
    for band, age_range in AGE_BAND_RANGES.items():
        lines.append(format_share(f"{band} ({age_range})", series_value(series, band), total))
    largest = _largest(series)
    if largest is not None:
        lines.append(f"The largest age group is {largest.name}.")
    return lines


def interpret_visibility(series: Sequence[SeriesPoint]) -> list[str]:
    total = series_total(series)
    return [
        f"Announcements posted: {format_number(total)}.",
        format_share("Public", series_value(series, "Public"), total),
        format_share("Private", series_value(series, "Private"), total),
    ]


def interpret_monthly(series: Sequence[SeriesPoint]) -> list[str]:
    total = series_total(series)
    lines = [f"Staff accounts created: {format_number(total)}."]
    busiest = _largest(series)
    if busiest is not None:
        lines.append(
            f"Most accounts were created in {busiest.name} ({format_number(busiest.value)})."
        )
    lines.extend(f"{point.name}: {format_number(point.value)}" for point in series)
    return lines


def interpret_distribution(series: Sequence[SeriesPoint]) -> list[str]:
    total = series_total(series)
    lines = [f"Total: {format_number(total)}."]
    lines.extend(format_share(point.name, point.value, total) for point in series)
    largest = _largest(series)
    if largest is not None:
        lines.append(f"Most common: {largest.name}.")
    return lines


INTERPRETERS: dict[str, Interpreter] = {
    "certificate_status": interpret_certificates,
    "complaint_status": interpret_complaints,
    "age_groups": interpret_age_groups,
    "announcement_visibility": interpret_visibility,
    "staff_monthly": interpret_monthly,
}


def interpret(key: str, series: Sequence[SeriesPoint]) -> list[str]:
    return INTERPRETERS.get(key, interpret_distribution)(series)
