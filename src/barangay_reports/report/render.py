from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import BinaryIO

from reportlab.lib.colors import HexColor
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from barangay_reports.report.geometry import Line, Polygon, Primitive, Rect, Text
from barangay_reports.report.layout import DocumentPlan

LOGGER = logging.getLogger(__name__)

REGULAR_FONT = "Helvetica"
BOLD_FONT = "Helvetica-Bold"


class CanvasPainter:
    """Draws top-left-origin page primitives onto a bottom-left-origin canvas."""

    def __init__(self, c: canvas.Canvas, page_height: float) -> None:
        self.c = c
        self.page_height = page_height

    def _x(self, value: float) -> float:
        return value * mm

    def _y(self, value: float) -> float:
        return (self.page_height - value) * mm

    def paint(self, primitive: Primitive) -> None:
        if isinstance(primitive, Polygon):
            self._polygon(primitive)
        elif isinstance(primitive, Rect):
            self._rect(primitive)
        elif isinstance(primitive, Line):
            self._line(primitive)
        elif isinstance(primitive, Text):
            self._text(primitive)
        else:
            raise TypeError(f"Unsupported primitive: {type(primitive).__name__}")

    def _polygon(self, polygon: Polygon) -> None:
        if len(polygon.points) < 3:
            return
        path = self.c.beginPath()
        first, *rest = polygon.points
        path.moveTo(self._x(first[0]), self._y(first[1]))
        for x, y in rest:
            path.lineTo(self._x(x), self._y(y))
        path.close()
        self.c.setFillColor(HexColor(polygon.fill))
        self.c.drawPath(path, fill=1, stroke=0)

    def _rect(self, rect: Rect) -> None:
        if rect.fill is None and rect.stroke is None:
            return
        if rect.fill is not None:
            self.c.setFillColor(HexColor(rect.fill))
        if rect.stroke is not None:
            self.c.setStrokeColor(HexColor(rect.stroke))
        # reportlab anchors rectangles at their lower-left corner.
        self.c.rect(
            self._x(rect.x),
            self._y(rect.y + rect.height),
            rect.width * mm,
            rect.height * mm,
            fill=int(rect.fill is not None),
            stroke=int(rect.stroke is not None),
        )

    def _line(self, line: Line) -> None:
        self.c.setStrokeColor(HexColor(line.color))
        self.c.setLineWidth(line.width * mm)
        self.c.line(
            self._x(line.start[0]),
            self._y(line.start[1]),
            self._x(line.end[0]),
            self._y(line.end[1]),
        )

    def _text(self, text: Text) -> None:
        self.c.setFont(BOLD_FONT if text.bold else REGULAR_FONT, text.size)
        self.c.setFillColor(HexColor(text.color))
        x, y = self._x(text.x), self._y(text.y)
        if text.align == "center":
            self.c.drawCentredString(x, y, text.text)
        elif text.align == "right":
            self.c.drawRightString(x, y, text.text)
        else:
            self.c.drawString(x, y, text.text)


def _render(plan: DocumentPlan, target: str | BinaryIO) -> None:
    c = canvas.Canvas(target, pagesize=(plan.page_width * mm, plan.page_height * mm))
    c.setTitle(plan.title)
    painter = CanvasPainter(c, plan.page_height)
    for primitives in plan.pages:
        for primitive in primitives:
            painter.paint(primitive)
        c.showPage()
    c.save()


def render_pdf(plan: DocumentPlan, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    _render(plan, str(path))
    LOGGER.info("Wrote %d page(s) to %s", plan.page_count, path)
    return path


def render_pdf_bytes(plan: DocumentPlan) -> bytes:
    buffer = io.BytesIO()
    _render(plan, buffer)
    return buffer.getvalue()
