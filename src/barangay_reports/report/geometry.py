from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal, Union

from barangay_reports.features.aggregates import SeriesPoint, format_number, safe_percentage

Point = tuple[float, float]
Align = Literal["left", "center", "right"]

# Shared by every chart in a document; slices and bars take colours by index.
CHART_PALETTE = (
    "#0072B2",
    "#009E73",
    "#E69F00",
    "#CC79A7",
    "#56B4E9",
    "#D55E00",
)
TEXT_COLOR = "#1F2937"
AXIS_COLOR = "#475569"

PIE_START_ANGLE = -90.0
MIN_ARC_SEGMENTS = 16
FULL_CIRCLE_SEGMENTS = 48
LEGEND_GAP = 6.0
LEGEND_SWATCH = 3.0
LEGEND_FONT_SIZE = 7.0
BAR_WIDTH_FRACTION = 0.6
BAR_LABEL_FONT_SIZE = 7.0
BAR_LABEL_MAX_CHARS = 8


@dataclass(frozen=True)
class Polygon:
    points: tuple[Point, ...]
    fill: str


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float
    fill: str | None = None
    stroke: str | None = None


@dataclass(frozen=True)
class Line:
    start: Point
    end: Point
    color: str = AXIS_COLOR
    width: float = 0.3


@dataclass(frozen=True)
class Text:
    x: float
    y: float
    text: str
    size: float = 9.0
    bold: bool = False
    color: str = TEXT_COLOR
    align: Align = "left"


Primitive = Union[Polygon, Rect, Line, Text]


@dataclass(frozen=True)
class LegendEntry:
    swatch: Rect
    label: Text


@dataclass(frozen=True)
class Slice:
    name: str
    value: float
    percentage: float
    start_angle: float
    span: float
    color: str
    polygon: Polygon | None
    legend: LegendEntry


@dataclass(frozen=True)
class Bar:
    name: str
    value: float
    rect: Rect
    value_label: Text
    name_label: Text


@dataclass(frozen=True)
class ChartGeometry:
    primitives: tuple[Primitive, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.primitives


def palette_color(index: int) -> str:
    return CHART_PALETTE[index % len(CHART_PALETTE)]


def arc_segment_count(span: float) -> int:
    return max(MIN_ARC_SEGMENTS, math.ceil((span / 360.0) * FULL_CIRCLE_SEGMENTS))


def _arc_polygon(center: Point, radius: float, start: float, span: float) -> tuple[Point, ...]:
    cx, cy = center
    segments = arc_segment_count(span)
    arc = []
    for step in range(segments + 1):
        angle = math.radians(start + span * step / segments)
        arc.append((cx + radius * math.cos(angle), cy + radius * math.sin(angle)))
    return (center, *arc)


def legend_entry(
    index: int,
    label: str,
    center: Point,
    radius: float,
    step: float,
) -> LegendEntry:
    x = center[0] + radius + LEGEND_GAP
    y = center[1] - radius + index * step
    swatch = Rect(
        x=x,
        y=y,
        width=LEGEND_SWATCH,
        height=LEGEND_SWATCH,
        fill=palette_color(index),
    )
    text = Text(
        x=x + LEGEND_SWATCH + 2.0,
        y=y + LEGEND_SWATCH - 0.4,
        text=label,
        size=LEGEND_FONT_SIZE,
    )
    return LegendEntry(swatch=swatch, label=text)


def pie_slices(
    series: Sequence[SeriesPoint],
    center: Point,
    radius: float,
    legend_step: float = 6.0,
) -> list[Slice]:
    """Lay out pie slices clockwise from 12 o'clock.

    Coordinates are page units with y growing downward. A zero-valued point
    keeps its legend row and palette slot but gets no polygon.
    """
    values = [max(float(point.value), 0.0) for point in series]
    total = sum(values)
    if total <= 0:
        return []

    slices: list[Slice] = []
    start = PIE_START_ANGLE
    for index, (point, value) in enumerate(zip(series, values)):
        span = (value / total) * 360.0
        percentage = safe_percentage(value, total)
        color = palette_color(index)
        polygon = None
        if span > 0:
            polygon = Polygon(points=_arc_polygon(center, radius, start, span), fill=color)
        label = f"{point.name}: {format_number(value)} ({percentage:.1f}%)"
        slices.append(
            Slice(
                name=point.name,
                value=value,
                percentage=percentage,
                start_angle=start,
                span=span,
                color=color,
                polygon=polygon,
                legend=legend_entry(index, label, center, radius, legend_step),
            )
        )
        start += span
    return slices


def truncate_label(name: str, limit: int = BAR_LABEL_MAX_CHARS) -> str:
    if len(name) <= limit:
        return name
    return f"{name[:limit]}..."


def bar_geometry(
    series: Sequence[SeriesPoint],
    origin: Point,
    width: float,
    height: float,
) -> list[Bar]:
    if not series:
        return []

    maximum = max(max(float(point.value) for point in series), 1.0)
    slot = width / len(series)
    bar_width = slot * BAR_WIDTH_FRACTION
    baseline = origin[1] + height

    bars: list[Bar] = []
    for index, point in enumerate(series):
        value = max(float(point.value), 0.0)
        bar_height = (value / maximum) * height
        x = origin[0] + index * slot + (slot - bar_width) / 2.0
        top = baseline - bar_height
        middle = x + bar_width / 2.0
        bars.append(
            Bar(
                name=point.name,
                value=float(point.value),
                rect=Rect(
                    x=x,
                    y=top,
                    width=bar_width,
                    height=bar_height,
                    fill=palette_color(index),
                ),
                value_label=Text(
                    x=middle,
                    y=top - 1.5,
                    text=format_number(point.value),
                    size=BAR_LABEL_FONT_SIZE,
                    align="center",
                ),
                name_label=Text(
                    x=middle,
                    y=baseline + 4.0,
                    text=truncate_label(point.name),
                    size=BAR_LABEL_FONT_SIZE,
                    align="center",
                ),
            )
        )
    return bars


def bar_axes(origin: Point, width: float, height: float) -> tuple[Line, Line]:
    x, y = origin
    baseline = y + height
    return (
        Line(start=(x, y), end=(x, baseline)),
        Line(start=(x, baseline), end=(x + width, baseline)),
    )


def pie_chart(
    series: Sequence[SeriesPoint],
    center: Point,
    radius: float,
    legend_step: float = 6.0,
) -> ChartGeometry:
    slices = pie_slices(series, center, radius, legend_step=legend_step)
    polygons = [piece.polygon for piece in slices if piece.polygon is not None]
    legend: list[Primitive] = []
    for piece in slices:
        legend.extend((piece.legend.swatch, piece.legend.label))
    return ChartGeometry(primitives=(*polygons, *legend))


def bar_chart(
    series: Sequence[SeriesPoint],
    origin: Point,
    width: float,
    height: float,
) -> ChartGeometry:
    bars = bar_geometry(series, origin, width, height)
    if not bars:
        return ChartGeometry()
    primitives: list[Primitive] = list(bar_axes(origin, width, height))
    for bar in bars:
        primitives.extend((bar.rect, bar.value_label, bar.name_label))
    return ChartGeometry(primitives=tuple(primitives))
