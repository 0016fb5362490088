from __future__ import annotations

import math

import pytest

from barangay_reports.features.aggregates import SeriesPoint
from barangay_reports.report.geometry import (
    CHART_PALETTE,
    Line,
    Polygon,
    Rect,
    Text,
    arc_segment_count,
    bar_axes,
    bar_chart,
    bar_geometry,
    pie_chart,
    pie_slices,
    truncate_label,
)

CENTER = (50.0, 50.0)


def test_pie_spans_sum_to_full_circle_with_zero_slices() -> None:
    series = [
        SeriesPoint("A", 3),
        SeriesPoint("B", 0),
        SeriesPoint("C", 1),
        SeriesPoint("D", 0),
        SeriesPoint("E", 7),
    ]

    slices = pie_slices(series, CENTER, 20.0)

    assert len(slices) == 5
    assert sum(piece.span for piece in slices) == pytest.approx(360.0)
    assert [piece.polygon is None for piece in slices] == [False, True, False, True, False]


def test_pie_degenerate_series_produce_no_slices() -> None:
    assert pie_slices([], CENTER, 20.0) == []
    assert pie_slices([SeriesPoint("A", 0)], CENTER, 20.0) == []
    assert pie_chart([SeriesPoint("A", 0)], CENTER, 20.0).is_empty


def test_pie_starts_at_twelve_o_clock_and_advances_past_zero_slices() -> None:
    series = [SeriesPoint("A", 1), SeriesPoint("B", 0), SeriesPoint("C", 1)]

    slices = pie_slices(series, CENTER, 20.0)

    assert slices[0].start_angle == -90.0
    assert slices[1].start_angle == pytest.approx(90.0)
    assert slices[2].start_angle == pytest.approx(90.0)
    # First arc point sits straight above the center (y grows downward).
    first_arc_point = slices[0].polygon.points[1]
    assert first_arc_point[0] == pytest.approx(50.0)
    assert first_arc_point[1] == pytest.approx(30.0)


def test_pie_polygon_uses_center_plus_arc_segments() -> None:
    full = pie_slices([SeriesPoint("A", 5)], CENTER, 20.0)[0]
    small = pie_slices([SeriesPoint("A", 1), SeriesPoint("B", 9)], CENTER, 20.0)[0]

    assert full.polygon.points[0] == CENTER
    assert len(full.polygon.points) == 1 + 48 + 1
    assert len(small.polygon.points) == 1 + 16 + 1
    assert arc_segment_count(180.0) == 24
    assert arc_segment_count(10.0) == 16


def test_pie_legend_labels_and_palette_cycle() -> None:
    series = [SeriesPoint(f"S{index}", index + 1) for index in range(7)]

    slices = pie_slices(series, CENTER, 20.0, legend_step=6.0)

    assert slices[6].color == CHART_PALETTE[0]
    assert slices[1].legend.swatch.y - slices[0].legend.swatch.y == pytest.approx(6.0)
    assert slices[0].legend.swatch.x == pytest.approx(50.0 + 20.0 + 6.0)

    labelled = pie_slices([SeriesPoint("Yes", 3), SeriesPoint("No", 1)], CENTER, 20.0)
    assert labelled[0].legend.label.text == "Yes: 3 (75.0%)"
    assert labelled[1].legend.label.text == "No: 1 (25.0%)"


def test_pie_chart_emits_polygons_before_legend() -> None:
    geometry = pie_chart([SeriesPoint("A", 1), SeriesPoint("B", 0)], CENTER, 20.0)

    kinds = [type(primitive) for primitive in geometry.primitives]
    assert kinds == [Polygon, Rect, Text, Rect, Text]


def test_bar_tallest_bar_fills_chart_height() -> None:
    series = [SeriesPoint("A", 4), SeriesPoint("B", 8), SeriesPoint("C", 2)]

    bars = bar_geometry(series, origin=(10.0, 20.0), width=90.0, height=40.0)

    assert bars[1].rect.height == pytest.approx(40.0)
    assert bars[1].rect.y == pytest.approx(20.0)
    assert bars[0].rect.height == pytest.approx(20.0)
    for bar in bars:
        assert bar.rect.y + bar.rect.height == pytest.approx(60.0)
    assert bars[0].rect.width == pytest.approx(18.0)
    assert bars[0].rect.x == pytest.approx(16.0)


def test_bar_scale_has_floor_of_one() -> None:
    bars = bar_geometry([SeriesPoint("A", 0.5), SeriesPoint("B", 0)], (0.0, 0.0), 40.0, 40.0)

    assert bars[0].rect.height == pytest.approx(20.0)
    assert bars[1].rect.height == 0.0
    assert not any(math.isnan(bar.rect.height) for bar in bars)


def test_bar_labels_and_truncation() -> None:
    bars = bar_geometry([SeriesPoint("Certificate of Indigency", 3)], (0.0, 0.0), 30.0, 40.0)

    assert bars[0].value_label.text == "3"
    assert bars[0].value_label.y < bars[0].rect.y
    assert bars[0].name_label.text == "Certific..."
    assert bars[0].name_label.y > 40.0
    assert truncate_label("Road") == "Road"


def test_bar_empty_series_and_axes() -> None:
    assert bar_geometry([], (0.0, 0.0), 90.0, 40.0) == []
    assert bar_chart([], (0.0, 0.0), 90.0, 40.0).is_empty

    vertical, horizontal = bar_axes((5.0, 10.0), 90.0, 40.0)
    assert vertical == Line(start=(5.0, 10.0), end=(5.0, 50.0))
    assert horizontal == Line(start=(5.0, 50.0), end=(95.0, 50.0))


def test_bar_value_label_shows_series_value_and_clamps_only_height() -> None:
    bars = bar_geometry([SeriesPoint("A", 4), SeriesPoint("B", -2)], (0.0, 0.0), 40.0, 40.0)

    assert bars[1].value_label.text == "-2"
    assert bars[1].value == -2.0
    assert bars[1].rect.height == 0.0
