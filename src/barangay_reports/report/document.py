from __future__ import annotations

import logging
import math
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from barangay_reports.config import AppConfig
from barangay_reports.features.aggregates import (
    CERTIFICATE_STATUSES,
    COMPLAINT_STATUSES,
    NumericReport,
    SeriesPoint,
    StatusMatching,
    age_bucket_series,
    aggregate,
    build_numeric_report,
    build_summary_counts,
    demographic_subgroup,
    fold_series,
    format_number,
    month_series,
    status_series,
    visibility_series,
)
from barangay_reports.features.interpretation import interpret
from barangay_reports.io.schema import SCHEMAS, Category
from barangay_reports.report.layout import (
    TABLE_HEADER_HEIGHT,
    TABLE_ROW_HEIGHT,
    Block,
    ChartWithInterpretation,
    DocumentBuilder,
    DocumentPlan,
    HeaderBand,
    Heading,
    PageGeometry,
    Paragraph,
    Table,
    chart_block_height,
    compose,
    has_chart_data,
)

LOGGER = logging.getLogger(__name__)

Rows = Sequence[Mapping[str, Any]]
SeriesBuilder = Callable[[Rows, datetime, StatusMatching], list[SeriesPoint]]

CHART_ORDER: tuple[Category, ...] = (
    "certificates",
    "complaints",
    "residents",
    "staff",
    "announcements",
)

DETAIL_COLUMNS: dict[Category, tuple[str, ...]] = {
    "residents": (
        "resident_id",
        "first_name",
        "last_name",
        "gender",
        "birthdate",
        "contact_no",
        "address",
    ),
    "staff": ("staff_id", "first_name", "last_name", "contact_no", "address", "created_at"),
    "certificates": (
        "request_id",
        "certificate_type",
        "status",
        "resident_first_name",
        "resident_last_name",
        "requested_at",
    ),
    "complaints": (
        "feedback_id",
        "category_name",
        "status",
        "resident_first_name",
        "resident_last_name",
        "submitted_at",
    ),
    "announcements": ("announcement_id", "title", "is_public", "posted_by_name", "posted_at"),
    "households": (
        "id",
        "address",
        "head_resident_first_name",
        "head_resident_last_name",
        "member_count",
        "created_at",
    ),
}
FALLBACK_COLUMN_LIMIT = 6

SUBGROUP_LABELS = {
    "seniors": "Senior Citizens",
    "pwd": "Persons with Disability",
    "fourps": "4Ps Members",
    "indigenous": "Indigenous Peoples",
    "slp": "SLP Beneficiaries",
}

METRIC_LABELS = {
    "residents_4ps": "Residents in 4Ps",
    "residents_pwd": "Residents with disability (PWD)",
    "residents_slp": "Residents in SLP",
    "residents_senior_mode": "Residents with senior mode",
}


@dataclass(frozen=True)
class ChartSpec:
    category: Category
    title: str
    kind: Literal["pie", "bar"]
    interpretation_key: str
    build: SeriesBuilder
    fold_label: str = "Other"
    keep_latest: bool = False


def _certificate_status(
    rows: Rows, now: datetime, matching: StatusMatching
) -> list[SeriesPoint]:
    return status_series(rows, CERTIFICATE_STATUSES, matching=matching)


def _complaint_status(
    rows: Rows, now: datetime, matching: StatusMatching
) -> list[SeriesPoint]:
    return status_series(rows, COMPLAINT_STATUSES, matching=matching)


CHART_SPECS: tuple[ChartSpec, ...] = (
    ChartSpec(
        category="certificates",
        title="Certificate Request Status",
        kind="pie",
        interpretation_key="certificate_status",
        build=_certificate_status,
    ),
    ChartSpec(
        category="certificates",
        title="Certificate Types",
        kind="bar",
        interpretation_key="certificate_types",
        build=lambda rows, now, matching: aggregate(rows, "certificate_type"),
    ),
    ChartSpec(
        category="complaints",
        title="Complaint Status",
        kind="pie",
        interpretation_key="complaint_status",
        build=_complaint_status,
    ),
    ChartSpec(
        category="complaints",
        title="Complaints by Category Group",
        kind="bar",
        interpretation_key="complaint_groups",
        build=lambda rows, now, matching: aggregate(rows, "category_group"),
    ),
    ChartSpec(
        category="residents",
        title="Residents by Age Group",
        kind="bar",
        interpretation_key="age_groups",
        build=lambda rows, now, matching: age_bucket_series(rows, now=now),
    ),
    ChartSpec(
        category="residents",
        title="Residents by Gender",
        kind="pie",
        interpretation_key="gender",
        build=lambda rows, now, matching: aggregate(rows, "gender", missing_label="N/A"),
    ),
    ChartSpec(
        category="staff",
        title="Staff Accounts by Month",
        kind="bar",
        interpretation_key="staff_monthly",
        build=lambda rows, now, matching: month_series(rows, "created_at"),
        fold_label="Earlier",
        keep_latest=True,
    ),
    ChartSpec(
        category="announcements",
        title="Announcement Visibility",
        kind="pie",
        interpretation_key="announcement_visibility",
        build=lambda rows, now, matching: visibility_series(rows),
    ),
)


def display_label(name: str) -> str:
    if name.isupper():
        return name.replace("_", " ").title()
    return name


def metric_label(metric: str) -> str:
    if metric in METRIC_LABELS:
        return METRIC_LABELS[metric]
    label = metric.replace("_", " ").capitalize()
    if metric.endswith("_rate"):
        label = f"{label} (%)"
    return label


def format_cell(value: Any) -> str:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, float):
        return format_number(value)
    return str(value)


def column_label(column: str) -> str:
    return re.sub(r"\bId\b", "ID", column.replace("_", " ").title())


def detail_columns(category: Category, rows: Rows) -> tuple[str, ...]:
    present: dict[str, None] = {}
    for row in rows:
        present.update(dict.fromkeys(row))
    preferred = tuple(column for column in DETAIL_COLUMNS[category] if column in present)
    if preferred:
        return preferred
    return tuple(present)[:FALLBACK_COLUMN_LIMIT]


def detail_table(category: Category, rows: Rows) -> Table:
    columns = detail_columns(category, rows)
    return Table(
        head=tuple(column_label(column) for column in columns),
        rows=tuple(tuple(format_cell(row.get(column)) for column in columns) for row in rows),
    )


def summary_table(counts: Mapping[str, int]) -> Table:
    return Table(
        head=("Category", "Records"),
        rows=tuple((label, str(count)) for label, count in counts.items()),
        column_widths=(3.0, 1.0),
    )


def numeric_table(report: NumericReport) -> Table:
    return Table(
        head=("Metric", "Value"),
        rows=tuple(
            (metric_label(metric), format_number(value)) for metric, value in report.items()
        ),
        column_widths=(3.0, 1.0),
    )


def _keep_with_table(rows: int) -> float:
    return TABLE_HEADER_HEIGHT + (TABLE_ROW_HEIGHT if rows else 0.0)


def chart_blocks(
    category: Category,
    rows: Rows,
    config: AppConfig,
    now: datetime,
) -> list[Block]:
    """Heading plus chart pair for every chart of ``category`` that has data."""
    if not rows:
        LOGGER.info("Skipping %s charts: no rows", category)
        return []

    height_limit = PageGeometry.from_config(config.page).chart_height_limit
    blocks: list[Block] = []
    for spec in CHART_SPECS:
        if spec.category != category:
            continue
        series = spec.build(rows, now, config.report.status_matching)
        shown = fold_series(
            series,
            config.charts.max_series_points,
            spec.fold_label,
            keep_latest=spec.keep_latest,
        )
        chart = ChartWithInterpretation(
            kind=spec.kind,
            series=tuple(
                SeriesPoint(name=display_label(point.name), value=point.value)
                for point in shown
            ),
            interpretation=tuple(interpret(spec.interpretation_key, series)),
        )
        if not has_chart_data(chart):
            LOGGER.info("Skipping chart '%s': no data", spec.title)
            continue
        keep = chart_block_height(chart, config.charts, height_limit)
        blocks.append(Heading(spec.title, keep_with_next=keep))
        blocks.append(chart)
    return blocks


def detail_blocks(residents: Rows, subgroup: str, now: datetime) -> list[Block]:
    members = demographic_subgroup(residents, subgroup, now=now)
    label = SUBGROUP_LABELS.get(subgroup, subgroup)
    blocks: list[Block] = [
        HeaderBand(title=label, subtitle=f"{len(members)} resident(s) in this group")
    ]
    if not members:
        blocks.append(Paragraph(lines=("No residents belong to this group.",)))
        return blocks
    blocks.append(detail_table("residents", members))
    return blocks


def build_report_blocks(
    rows_by_category: Mapping[Category, Rows],
    config: AppConfig,
    now: datetime | None = None,
) -> list[Block]:
    now = now or datetime.now()
    counts = build_summary_counts(rows_by_category)
    report = build_numeric_report(
        rows_by_category, now=now, matching=config.report.status_matching
    )

    blocks: list[Block] = [
        HeaderBand(
            title=config.report.title,
            subtitle=f"{config.report.organization} | Generated {now:%Y-%m-%d %H:%M}",
        ),
        Heading("Summary Statistics", keep_with_next=_keep_with_table(len(counts))),
        summary_table(counts),
        Heading("Numeric Analytics", keep_with_next=_keep_with_table(len(report.metrics))),
        numeric_table(report),
    ]
    for category in CHART_ORDER:
        blocks.extend(chart_blocks(category, rows_by_category.get(category, []), config, now))
    blocks.extend(
        detail_blocks(rows_by_category.get("residents", []), config.report.detail_subgroup, now)
    )
    return blocks


def build_report_document(
    rows_by_category: Mapping[Category, Rows],
    config: AppConfig,
    now: datetime | None = None,
) -> DocumentPlan:
    blocks = build_report_blocks(rows_by_category, config, now=now)
    plan = compose(DocumentBuilder.from_config(config), blocks, config.report.title)
    LOGGER.info("Composed report with %d blocks over %d page(s)", len(blocks), plan.page_count)
    return plan


def build_category_document(
    category: Category,
    rows: Rows,
    config: AppConfig,
    now: datetime | None = None,
) -> DocumentPlan:
    """Detailed single-category document: charts followed by every row."""
    now = now or datetime.now()
    label = SCHEMAS[category].label
    title = f"{label} Report"
    blocks: list[Block] = [
        HeaderBand(
            title=title,
            subtitle=f"{len(rows)} record(s) | Generated {now:%Y-%m-%d %H:%M}",
        )
    ]
    blocks.extend(chart_blocks(category, rows, config, now))
    if rows:
        blocks.append(Heading("Records", keep_with_next=_keep_with_table(len(rows))))
        blocks.append(detail_table(category, rows))
    else:
        blocks.append(Paragraph(lines=(f"No {label.lower()} records found.",)))
    plan = compose(DocumentBuilder.from_config(config), blocks, title)
    LOGGER.info("Composed %s document over %d page(s)", category, plan.page_count)
    return plan
