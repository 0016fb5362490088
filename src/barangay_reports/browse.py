from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, TypeVar

from barangay_reports.config import ALLOWED_PAGE_SIZES

Row = TypeVar("Row", bound=Mapping[str, Any])


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def filter_rows(rows: Sequence[Row], query: str | None) -> list[Row]:
    """Rows where any field value contains ``query``, ignoring case."""
    needle = (query or "").strip().lower()
    if not needle:
        return list(rows)
    return [
        row
        for row in rows
        if any(
            needle in str(value).lower() for value in row.values() if not _is_missing(value)
        )
    ]


@dataclass(frozen=True)
class SortState:
    key: str | None = None
    descending: bool = False

    def toggle(self, key: str) -> SortState:
        if key == self.key:
            return SortState(key=key, descending=not self.descending)
        return SortState(key=key, descending=False)


def _sort_key(value: Any) -> tuple[int, Any]:
    # Values of different runtime types never compare directly; rank the type first.
    if isinstance(value, bool):
        return (0, int(value))
    if isinstance(value, (int, float)):
        return (1, value)
    if isinstance(value, datetime):
        return (2, value.isoformat())
    if isinstance(value, date):
        return (2, value.isoformat())
    return (3, str(value).lower())


def sort_rows(rows: Sequence[Row], key: str, descending: bool = False) -> list[Row]:
    """Stable sort on ``key``; rows missing the key stay last in either direction."""
    present = [row for row in rows if not _is_missing(row.get(key))]
    missing = [row for row in rows if _is_missing(row.get(key))]
    ordered = sorted(present, key=lambda row: _sort_key(row[key]), reverse=descending)
    return ordered + missing


@dataclass(frozen=True)
class Page:
    rows: tuple[Any, ...]
    page: int
    page_size: int
    total_rows: int
    total_pages: int

    @property
    def first_index(self) -> int:
        """1-based index of the first row shown, 0 when there are no rows."""
        return (self.page - 1) * self.page_size + 1 if self.rows else 0

    @property
    def last_index(self) -> int:
        return self.first_index + len(self.rows) - 1 if self.rows else 0


def require_page_size(page_size: int) -> int:
    if page_size not in ALLOWED_PAGE_SIZES:
        allowed = ", ".join(str(size) for size in ALLOWED_PAGE_SIZES)
        raise ValueError(f"page_size must be one of {allowed}, got {page_size}")
    return page_size


def paginate(rows: Sequence[Row], page: int, page_size: int) -> Page:
    require_page_size(page_size)
    total_pages = max(math.ceil(len(rows) / page_size), 1)
    current = min(max(int(page), 1), total_pages)
    start = (current - 1) * page_size
    return Page(
        rows=tuple(rows[start : start + page_size]),
        page=current,
        page_size=page_size,
        total_rows=len(rows),
        total_pages=total_pages,
    )


def page_window(current: int, total_pages: int) -> list[int | None]:
    """Page links to show: first, last and the neighbours of ``current``.

    ``None`` marks an elided gap between non-adjacent pages.
    """
    if total_pages <= 0:
        return []
    current = min(max(current, 1), total_pages)
    wanted = sorted(
        page for page in {1, total_pages, current - 1, current, current + 1}
        if 1 <= page <= total_pages
    )
    window: list[int | None] = []
    previous = 0
    for page in wanted:
        if page - previous > 1:
            window.append(None)
        window.append(page)
        previous = page
    return window
