from __future__ import annotations

from datetime import datetime
from pathlib import Path

import typer

from barangay_reports.browse import filter_rows, page_window, paginate, sort_rows
from barangay_reports.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from barangay_reports.io.schema import Category, require_category
from barangay_reports.io.sources import DateRange
from barangay_reports.logging import configure_logging
from barangay_reports.pipeline.run_all import (
    load_rows,
    run_all,
    run_category_report,
    run_export_csv,
)
from barangay_reports.report.document import column_label, detail_columns, format_cell

app = typer.Typer(no_args_is_help=True, add_completion=False)

DATE_FORMATS = ["%Y-%m-%d"]


def _load_app_config(config_path: Path) -> AppConfig:
    try:
        return load_config(config_path)
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid config {config_path}: {exc}") from exc


def _date_range(date_from: datetime | None, date_to: datetime | None) -> DateRange | None:
    if date_from is None and date_to is None:
        return None
    try:
        return DateRange(
            start=date_from.date() if date_from else None,
            end=date_to.date() if date_to else None,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _category(value: str) -> Category:
    try:
        return require_category(value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.command()
def report(
    out: Path = typer.Option(Path("out"), resolve_path=True),
    config: Path = typer.Option(
        DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True
    ),
    date_from: datetime | None = typer.Option(None, "--from", formats=DATE_FORMATS),
    date_to: datetime | None = typer.Option(None, "--to", formats=DATE_FORMATS),
) -> None:
    """Build the full multi-page report PDF and its summary CSV."""
    configure_logging()
    cfg = _load_app_config(config)
    artifacts = run_all(out_dir=out, config=cfg, date_range=_date_range(date_from, date_to))
    typer.echo(f"Report written to: {artifacts.document} ({artifacts.page_count} page(s))")
    typer.echo(f"Summary CSV written to: {artifacts.summary_csv}")


@app.command("category-report")
def category_report(
    category: str = typer.Argument(..., help="residents, staff, certificates, complaints, ..."),
    out: Path = typer.Option(Path("out"), resolve_path=True),
    config: Path = typer.Option(
        DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True
    ),
    date_from: datetime | None = typer.Option(None, "--from", formats=DATE_FORMATS),
    date_to: datetime | None = typer.Option(None, "--to", formats=DATE_FORMATS),
    rows_csv: bool = typer.Option(False, help="Also export the flattened rows as CSV."),
) -> None:
    """Build the detailed document for a single category."""
    configure_logging()
    selected = _category(category)
    cfg = _load_app_config(config)
    document = run_category_report(
        selected,
        out_dir=out,
        config=cfg,
        date_range=_date_range(date_from, date_to),
        include_rows_csv=rows_csv,
    )
    typer.echo(f"Category report written to: {document}")


@app.command("export-csv")
def export_csv(
    out: Path = typer.Option(Path("out"), resolve_path=True),
    config: Path = typer.Option(
        DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True
    ),
    date_from: datetime | None = typer.Option(None, "--from", formats=DATE_FORMATS),
    date_to: datetime | None = typer.Option(None, "--to", formats=DATE_FORMATS),
) -> None:
    """Export summary counts and numeric metrics as a metric,value CSV."""
    configure_logging()
    cfg = _load_app_config(config)
    path = run_export_csv(out_dir=out, config=cfg, date_range=_date_range(date_from, date_to))
    typer.echo(f"Summary CSV written to: {path}")


@app.command()
def browse(
    category: str = typer.Argument(...),
    config: Path = typer.Option(
        DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True
    ),
    query: str | None = typer.Option(None, "--query", "-q", help="Case-insensitive search."),
    sort: str | None = typer.Option(None, help="Column to sort by."),
    descending: bool = typer.Option(False, "--desc", help="Sort in descending order."),
    page: int = typer.Option(1, min=1),
    page_size: int | None = typer.Option(None, help="One of 5, 10, 20, 50."),
) -> None:
    """Print one page of a category's flattened rows."""
    configure_logging("WARNING")
    selected = _category(category)
    cfg = _load_app_config(config)
    rows = load_rows(cfg, [selected])[selected]
    rows = filter_rows(rows, query)
    if sort:
        rows = sort_rows(rows, sort, descending=descending)
    try:
        current = paginate(rows, page, page_size or cfg.browse.page_size)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    columns = detail_columns(selected, current.rows)
    if columns:
        typer.echo("\t".join(column_label(column) for column in columns))
    for row in current.rows:
        typer.echo("\t".join(format_cell(row.get(column)) for column in columns))
    links = " ".join(
        "..." if link is None else (f"[{link}]" if link == current.page else str(link))
        for link in page_window(current.page, current.total_pages)
    )
    typer.echo(
        f"Showing {current.first_index}-{current.last_index} of {current.total_rows} "
        f"| page {links}"
    )


if __name__ == "__main__":
    app()
