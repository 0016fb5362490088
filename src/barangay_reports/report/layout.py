from __future__ import annotations

import logging
import textwrap
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from enum import Enum
from typing import Literal, Union

from barangay_reports.config import AppConfig, ChartConfig, PageConfig
from barangay_reports.features.aggregates import SeriesPoint, fold_series, series_total
from barangay_reports.report.geometry import (
    ChartGeometry,
    Primitive,
    TEXT_COLOR,
    Rect,
    Text,
    bar_chart,
    pie_chart,
)

LOGGER = logging.getLogger(__name__)

TITLE_SIZE = 16.0
SECTION_SIZE = 12.0
BODY_SIZE = 9.0
TABLE_SIZE = 8.0
FOOTER_SIZE = 8.0

HEADER_BAND_HEIGHT = 18.0
HEADING_HEIGHT = 9.0
TABLE_HEADER_HEIGHT = 8.0
TABLE_ROW_HEIGHT = 7.0
BLOCK_GAP = 4.0
PIE_LEGEND_TOP = 3.0
CHAR_WIDTH_PER_POINT = 0.18
STRIPE_COLOR = "#F3F4F6"
WHITE = "#FFFFFF"
MUTED_TEXT = "#6B7280"


class LayoutState(str, Enum):
    IDLE = "idle"
    WRITING = "writing"
    PAGE_BREAK = "page_break"
    DONE = "done"


@dataclass(frozen=True)
class Cursor:
    page_index: int = 0
    y: float = 0.0

    def advance(self, height: float) -> Cursor:
        return Cursor(page_index=self.page_index, y=self.y + height)


@dataclass(frozen=True)
class PageGeometry:
    width: float = 210.0
    height: float = 297.0
    break_height: float = 270.0
    margin_top: float = 20.0
    margin_left: float = 14.0
    margin_right: float = 14.0
    banner_height: float = 12.0

    @property
    def content_width(self) -> float:
        return self.width - self.margin_left - self.margin_right

    @property
    def usable_height(self) -> float:
        return self.break_height - self.margin_top

    @property
    def chart_height_limit(self) -> float:
        """Tallest chart pair that still fits on a fresh page under its heading."""
        return self.usable_height - HEADING_HEIGHT

    @classmethod
    def from_config(cls, config: PageConfig) -> PageGeometry:
        return cls(**config.model_dump())


@dataclass(frozen=True)
class HeaderBand:
    title: str
    subtitle: str | None = None


@dataclass(frozen=True)
class Heading:
    text: str
    keep_with_next: float = 0.0


@dataclass(frozen=True)
class Paragraph:
    lines: tuple[str, ...]
    width_chars: int = 100
    size: float = BODY_SIZE


@dataclass(frozen=True)
class Table:
    head: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]
    column_widths: tuple[float, ...] | None = None


@dataclass(frozen=True)
class ChartWithInterpretation:
    kind: Literal["pie", "bar"]
    series: tuple[SeriesPoint, ...]
    interpretation: tuple[str, ...]


@dataclass(frozen=True)
class Spacer:
    height: float


Block = Union[HeaderBand, Heading, Paragraph, Table, ChartWithInterpretation, Spacer]


@dataclass(frozen=True)
class DocumentPlan:
    """Every page's primitives in page units, y growing downward."""

    title: str
    page_width: float
    page_height: float
    pages: tuple[tuple[Primitive, ...], ...]

    @property
    def page_count(self) -> int:
        return len(self.pages)


def has_chart_data(block: ChartWithInterpretation) -> bool:
    if not block.series:
        return False
    if block.kind == "pie":
        return series_total(block.series) > 0
    return True


def chart_graphic_height(block: ChartWithInterpretation, charts: ChartConfig) -> float:
    if block.kind == "pie":
        legend = PIE_LEGEND_TOP + len(block.series) * charts.legend_step
        return max(charts.pie_height, legend)
    return charts.bar_height


def side_line_limit(max_height: float, charts: ChartConfig) -> int:
    return max(int(max_height // charts.line_height), 1)


def chart_block_height(
    block: ChartWithInterpretation,
    charts: ChartConfig,
    max_height: float | None = None,
) -> float:
    """Height of a chart pair: the tallest of the chart, its legend and its text column.

    With ``max_height`` only the text lines that fit beside the chart count;
    the rest flow below it.
    """
    lines = len(wrap_lines(block.interpretation, charts.interpretation_width_chars))
    if max_height is not None:
        lines = min(lines, side_line_limit(max_height, charts))
    return max(chart_graphic_height(block, charts), lines * charts.line_height)


def wrap_lines(lines: Iterable[str], width: int) -> list[str]:
    wrapped: list[str] = []
    for line in lines:
        wrapped.extend(textwrap.wrap(str(line), width=width) or [""])
    return wrapped


def fit_text(text: str, width: float, size: float) -> str:
    max_chars = max(int(width / (size * CHAR_WIDTH_PER_POINT)), 3)
    if len(text) <= max_chars:
        return text
    return f"{text[: max_chars - 3]}..."


class DocumentBuilder:
    """Places blocks onto pages, breaking pages when a block will not fit.

    The cursor is never stored here: every write takes the current cursor and
    returns the next one, so composing a document is a fold over its blocks.
    """

    def __init__(
        self,
        page: PageGeometry,
        charts: ChartConfig,
        banner_text: str,
        banner_color: str,
    ) -> None:
        self.page = page
        self.charts = charts
        self.banner_text = banner_text
        self.banner_color = banner_color
        self.state = LayoutState.IDLE
        self._pages: list[list[Primitive]] = []

    @classmethod
    def from_config(cls, config: AppConfig) -> DocumentBuilder:
        return cls(
            page=PageGeometry.from_config(config.page),
            charts=config.charts,
            banner_text=f"{config.report.organization} | {config.report.title}",
            banner_color=config.report.banner_color,
        )

    def start(self) -> Cursor:
        if self.state is not LayoutState.IDLE:
            raise RuntimeError(f"cannot start a document in state {self.state.value}")
        self._open_page()
        self.state = LayoutState.WRITING
        return Cursor(page_index=0, y=self.page.margin_top)

    def _require_writing(self) -> None:
        if self.state is not LayoutState.WRITING:
            raise RuntimeError(f"cannot write blocks in state {self.state.value}")

    def _open_page(self) -> None:
        primitives: list[Primitive] = []
        if self.page.banner_height > 0:
            primitives.append(
                Rect(
                    x=0.0,
                    y=0.0,
                    width=self.page.width,
                    height=self.page.banner_height,
                    fill=self.banner_color,
                )
            )
            primitives.append(
                Text(
                    x=self.page.margin_left,
                    y=self.page.banner_height * 0.65,
                    text=self.banner_text,
                    size=BODY_SIZE,
                    bold=True,
                    color=WHITE,
                )
            )
        self._pages.append(primitives)

    def _draw(self, cursor: Cursor, *primitives: Primitive) -> None:
        self._pages[cursor.page_index].extend(primitives)

    def page_break(self, cursor: Cursor) -> Cursor:
        self._require_writing()
        self.state = LayoutState.PAGE_BREAK
        self._open_page()
        self.state = LayoutState.WRITING
        return Cursor(page_index=cursor.page_index + 1, y=self.page.margin_top)

    def ensure_space(self, cursor: Cursor, height: float) -> Cursor:
        if cursor.y + height > self.page.break_height:
            return self.page_break(cursor)
        return cursor

    def write_block(self, cursor: Cursor, block: Block) -> tuple[Cursor, float]:
        self._require_writing()
        if isinstance(block, HeaderBand):
            return self._write_header_band(cursor, block)
        if isinstance(block, Heading):
            return self._write_heading(cursor, block)
        if isinstance(block, Paragraph):
            return self._write_paragraph(cursor, block)
        if isinstance(block, Table):
            return self._write_table(cursor, block)
        if isinstance(block, ChartWithInterpretation):
            return self._write_chart(cursor, block)
        if isinstance(block, Spacer):
            return cursor.advance(block.height), block.height
        raise TypeError(f"Unsupported block type: {type(block).__name__}")

    def _write_header_band(self, cursor: Cursor, block: HeaderBand) -> tuple[Cursor, float]:
        height = HEADER_BAND_HEIGHT + BLOCK_GAP
        cursor = self.ensure_space(cursor, height)
        primitives: list[Primitive] = [
            Rect(
                x=self.page.margin_left,
                y=cursor.y,
                width=self.page.content_width,
                height=HEADER_BAND_HEIGHT,
                fill=self.banner_color,
            ),
            Text(
                x=self.page.margin_left + 4.0,
                y=cursor.y + 8.0,
                text=block.title,
                size=TITLE_SIZE,
                bold=True,
                color=WHITE,
            ),
        ]
        if block.subtitle:
            primitives.append(
                Text(
                    x=self.page.margin_left + 4.0,
                    y=cursor.y + 14.5,
                    text=block.subtitle,
                    size=BODY_SIZE,
                    color=WHITE,
                )
            )
        self._draw(cursor, *primitives)
        return cursor.advance(height), height

    def _write_heading(self, cursor: Cursor, block: Heading) -> tuple[Cursor, float]:
        keep = min(HEADING_HEIGHT + block.keep_with_next, self.page.usable_height)
        cursor = self.ensure_space(cursor, keep)
        self._draw(
            cursor,
            Text(
                x=self.page.margin_left,
                y=cursor.y + 6.0,
                text=block.text,
                size=SECTION_SIZE,
                bold=True,
            ),
        )
        return cursor.advance(HEADING_HEIGHT), HEADING_HEIGHT

    def _write_paragraph(self, cursor: Cursor, block: Paragraph) -> tuple[Cursor, float]:
        line_height = self.charts.line_height
        lines = wrap_lines(block.lines, block.width_chars)
        height = len(lines) * line_height + BLOCK_GAP
        cursor = self.ensure_space(cursor, min(height, self.page.usable_height))
        for line in lines:
            cursor = self.ensure_space(cursor, line_height)
            self._draw(
                cursor,
                Text(x=self.page.margin_left, y=cursor.y + 4.0, text=line, size=block.size),
            )
            cursor = cursor.advance(line_height)
        return cursor.advance(BLOCK_GAP), height

    def _column_widths(self, block: Table) -> list[float]:
        columns = max(len(block.head), 1)
        if block.column_widths and len(block.column_widths) == columns:
            total = sum(block.column_widths)
            return [self.page.content_width * width / total for width in block.column_widths]
        return [self.page.content_width / columns] * columns

    def _table_row(
        self,
        cursor: Cursor,
        cells: Sequence[str],
        widths: Sequence[float],
        *,
        height: float,
        fill: str | None,
        bold: bool,
        color: str = TEXT_COLOR,
    ) -> None:
        primitives: list[Primitive] = []
        if fill is not None:
            primitives.append(
                Rect(
                    x=self.page.margin_left,
                    y=cursor.y,
                    width=self.page.content_width,
                    height=height,
                    fill=fill,
                )
            )
        x = self.page.margin_left
        for cell, width in zip(cells, widths):
            primitives.append(
                Text(
                    x=x + 1.5,
                    y=cursor.y + height - 2.3,
                    text=fit_text(str(cell), width - 3.0, TABLE_SIZE),
                    size=TABLE_SIZE,
                    bold=bold,
                    color=color,
                )
            )
            x += width
        self._draw(cursor, *primitives)

    def _write_table(self, cursor: Cursor, block: Table) -> tuple[Cursor, float]:
        """Flow a table row by row; the header row repeats on every new page.

        The returned cursor is measured from what was actually drawn, so
        callers must continue from it rather than from a precomputed height.
        """
        widths = self._column_widths(block)
        first_row = TABLE_ROW_HEIGHT if block.rows else 0.0
        cursor = self.ensure_space(cursor, TABLE_HEADER_HEIGHT + first_row)
        drawn = 0.0

        def header(at: Cursor) -> Cursor:
            self._table_row(
                at,
                block.head,
                widths,
                height=TABLE_HEADER_HEIGHT,
                fill=self.banner_color,
                bold=True,
                color=WHITE,
            )
            return at.advance(TABLE_HEADER_HEIGHT)

        cursor = header(cursor)
        drawn += TABLE_HEADER_HEIGHT
        for index, row in enumerate(block.rows):
            if cursor.y + TABLE_ROW_HEIGHT > self.page.break_height:
                cursor = header(self.page_break(cursor))
                drawn += TABLE_HEADER_HEIGHT
            self._table_row(
                cursor,
                row,
                widths,
                height=TABLE_ROW_HEIGHT,
                fill=STRIPE_COLOR if index % 2 else None,
                bold=False,
            )
            cursor = cursor.advance(TABLE_ROW_HEIGHT)
            drawn += TABLE_ROW_HEIGHT
        return cursor.advance(BLOCK_GAP), drawn + BLOCK_GAP

    def chart_height(self, block: ChartWithInterpretation) -> float:
        return chart_block_height(block, self.charts, self.page.chart_height_limit)

    def fit_legend(self, block: ChartWithInterpretation) -> ChartWithInterpretation:
        """Fold pie slices whose legend rows would not fit on one page."""
        if block.kind != "pie":
            return block
        rows = int((self.page.chart_height_limit - PIE_LEGEND_TOP) // self.charts.legend_step)
        if len(block.series) <= rows:
            return block
        LOGGER.info("Folding %d pie slices into %d legend rows", len(block.series), rows)
        return replace(block, series=tuple(fold_series(block.series, rows)))

    def chart_geometry(self, cursor: Cursor, block: ChartWithInterpretation) -> ChartGeometry:
        left = self.page.margin_left
        if block.kind == "pie":
            radius = self.charts.pie_radius
            return pie_chart(
                block.series,
                center=(left + radius + 2.0, cursor.y + radius + PIE_LEGEND_TOP),
                radius=radius,
                legend_step=self.charts.legend_step,
            )
        return bar_chart(
            block.series,
            origin=(left + 4.0, cursor.y + 6.0),
            width=self.charts.chart_column_width - 8.0,
            height=self.charts.bar_height - 14.0,
        )

    def _write_chart(
        self, cursor: Cursor, block: ChartWithInterpretation
    ) -> tuple[Cursor, float]:
        """Draw the chart on the left and its text on the right.

        Text lines that do not fit beside the chart continue below it in the
        same column, breaking pages as needed.
        """
        if not has_chart_data(block):
            LOGGER.debug("Skipping %s chart without data", block.kind)
            return cursor, 0.0

        block = self.fit_legend(block)
        height = self.chart_height(block)
        cursor = self.ensure_space(cursor, height)
        self._draw(cursor, *self.chart_geometry(cursor, block).primitives)

        line_height = self.charts.line_height
        text_x = self.page.margin_left + self.charts.chart_column_width + BLOCK_GAP
        lines = wrap_lines(block.interpretation, self.charts.interpretation_width_chars)
        side = side_line_limit(self.page.chart_height_limit, self.charts)
        for index, line in enumerate(lines[:side]):
            self._draw(
                cursor,
                Text(x=text_x, y=cursor.y + 4.0 + index * line_height, text=line, size=BODY_SIZE),
            )
        cursor = cursor.advance(height)
        drawn = height
        for line in lines[side:]:
            cursor = self.ensure_space(cursor, line_height)
            self._draw(cursor, Text(x=text_x, y=cursor.y + 4.0, text=line, size=BODY_SIZE))
            cursor = cursor.advance(line_height)
            drawn += line_height
        return cursor.advance(BLOCK_GAP), drawn

    def finish(self, title: str) -> DocumentPlan:
        self._require_writing()
        total = len(self._pages)
        for index, primitives in enumerate(self._pages, start=1):
            primitives.append(
                Text(
                    x=self.page.width - self.page.margin_right,
                    y=self.page.height - 10.0,
                    text=f"Page {index} of {total}",
                    size=FOOTER_SIZE,
                    color=MUTED_TEXT,
                    align="right",
                )
            )
        self.state = LayoutState.DONE
        return DocumentPlan(
            title=title,
            page_width=self.page.width,
            page_height=self.page.height,
            pages=tuple(tuple(primitives) for primitives in self._pages),
        )


def compose(builder: DocumentBuilder, blocks: Iterable[Block], title: str) -> DocumentPlan:
    cursor = builder.start()
    for block in blocks:
        cursor, _ = builder.write_block(cursor, block)
    return builder.finish(title)
