from __future__ import annotations

from barangay_reports.features.aggregates import CERTIFICATE_STATUSES, SeriesPoint, status_series
from barangay_reports.features.interpretation import (
    format_share,
    interpret,
    interpret_age_groups,
    interpret_complaints,
)


def _certificate_rows() -> list[dict]:
    statuses = ["PENDING"] * 3 + ["APPROVED"] * 4 + ["CLAIMED"] * 2 + ["REJECTED"]
    return [{"request_id": index, "status": status} for index, status in enumerate(statuses)]


def test_certificate_status_end_to_end() -> None:
    series = status_series(_certificate_rows(), CERTIFICATE_STATUSES)

    assert series == [
        SeriesPoint("PENDING", 3),
        SeriesPoint("APPROVED", 4),
        SeriesPoint("CLAIMED", 2),
        SeriesPoint("REJECTED", 1),
    ]
    lines = interpret("certificate_status", series)
    assert "Certificate requests received: 10." in lines
    assert "Pending: 3 (30.0%)" in lines
    assert "Approved: 4 (40.0%)" in lines
    assert "Rejected: 1 (10.0%)" in lines
    assert "6 of 10 requests (60.0%) were approved or claimed." in lines


def test_complaints_default_absent_statuses_to_zero() -> None:
    lines = interpret_complaints([SeriesPoint("pending", 2)])

    assert "Pending: 2 (100.0%)" in lines
    assert "In Progress: 0 (0.0%)" in lines
    assert "Resolved: 0 (0.0%)" in lines
    assert "Resolution rate: 0.0%." in lines
    assert lines[-1].startswith("Unresolved complaints outnumber")


def test_lookup_is_case_and_separator_insensitive() -> None:
    lines = interpret_complaints([SeriesPoint("in_progress", 1), SeriesPoint("Resolved", 3)])

    assert "In Progress: 1 (25.0%)" in lines
    assert "Resolved: 3 (75.0%)" in lines


def test_empty_series_reports_zero_percentages() -> None:
    lines = interpret("certificate_status", [])

    assert "Pending: 0 (0.0%)" in lines
    assert "Certificate requests received: 0." in lines


def test_age_groups_names_largest_band() -> None:
    lines = interpret_age_groups(
        [
            SeriesPoint("Youth", 1),
            SeriesPoint("Young Adult", 5),
            SeriesPoint("Middle Age", 2),
            SeriesPoint("Senior", 0),
        ]
    )

    assert "Young Adult (18-34): 5 (62.5%)" in lines
    assert "Senior (60+): 0 (0.0%)" in lines
    assert lines[-1] == "The largest age group is Young Adult."


def test_unknown_key_uses_generic_distribution() -> None:
    lines = interpret("gender", [SeriesPoint("Female", 3), SeriesPoint("N/A", 1)])

    assert lines == [
        "Total: 4.",
        "Female: 3 (75.0%)",
        "N/A: 1 (25.0%)",
        "Most common: Female.",
    ]
    assert format_share("Claimed", 1, 3) == "Claimed: 1 (33.3%)"
