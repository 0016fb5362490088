from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from barangay_reports.config import AppConfig
from barangay_reports.features.aggregates import build_numeric_report, build_summary_counts
from barangay_reports.features.flatten import FlatRow, flatten_records
from barangay_reports.io.schema import CATEGORIES, Category
from barangay_reports.io.sources import (
    DateRange,
    RecordSource,
    collect_records,
    source_from_config,
)
from barangay_reports.io.write import write_rows_csv, write_summary_csv
from barangay_reports.paths import build_output_paths
from barangay_reports.report.document import build_category_document, build_report_document
from barangay_reports.report.render import render_pdf

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReportArtifacts:
    document: Path
    summary_csv: Path
    page_count: int


def load_rows(
    config: AppConfig,
    categories: Iterable[Category] = CATEGORIES,
    *,
    date_range: DateRange | None = None,
    source: RecordSource | None = None,
) -> dict[Category, list[FlatRow]]:
    """Fetch every category, then flatten once all fetches have settled."""
    wanted = list(dict.fromkeys(categories))
    raw = collect_records(source or source_from_config(config), wanted, date_range)
    return {category: flatten_records(category, raw.get(category, [])) for category in wanted}


def run_export_csv(
    out_dir: Path,
    config: AppConfig,
    *,
    date_range: DateRange | None = None,
    source: RecordSource | None = None,
    now: datetime | None = None,
    rows_by_category: dict[Category, list[FlatRow]] | None = None,
) -> Path:
    paths = build_output_paths(out_dir)
    if rows_by_category is None:
        rows_by_category = load_rows(config, date_range=date_range, source=source)
    report = build_numeric_report(
        rows_by_category, now=now, matching=config.report.status_matching
    )
    return write_summary_csv(
        build_summary_counts(rows_by_category),
        report,
        paths.exports / config.outputs.summary_csv_name,
    )


def run_all(
    out_dir: Path,
    config: AppConfig,
    *,
    date_range: DateRange | None = None,
    source: RecordSource | None = None,
    now: datetime | None = None,
) -> ReportArtifacts:
    paths = build_output_paths(out_dir)
    rows_by_category = load_rows(config, date_range=date_range, source=source)
    plan = build_report_document(rows_by_category, config, now=now)
    document = render_pdf(plan, paths.documents / config.outputs.document_name)
    summary_csv = run_export_csv(out_dir, config, now=now, rows_by_category=rows_by_category)
    LOGGER.info("Report complete: %s, %s", document, summary_csv)
    return ReportArtifacts(document=document, summary_csv=summary_csv, page_count=plan.page_count)


def run_category_report(
    category: Category,
    out_dir: Path,
    config: AppConfig,
    *,
    date_range: DateRange | None = None,
    source: RecordSource | None = None,
    now: datetime | None = None,
    include_rows_csv: bool = False,
) -> Path:
    paths = build_output_paths(out_dir)
    rows = load_rows(config, [category], date_range=date_range, source=source)[category]
    plan = build_category_document(category, rows, config, now=now)
    document = render_pdf(plan, paths.documents / f"{category}_report.pdf")
    if include_rows_csv:
        write_rows_csv(rows, paths.exports / f"{category}.csv")
    return document
