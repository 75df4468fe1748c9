"""
Annotation models for the Autonate focus editor.

This module provides the data models for every mark that can be placed on a
locked focus capture. Each annotation knows how to:
- Paint itself on a QPainter
- Hit-test its body and its drag handles
- Move (and, for arrows and text, reshape) itself
- Clone and serialize itself

Annotation Types:
- HighlighterAnnotation: Wide translucent flat-capped stroke
- LineAnnotation: Freehand round-capped ink
- ArrowAnnotation: Line with filled arrowhead
- XMarkAnnotation: Stamped X glyph
- QuestionAnnotation: Stamped ? glyph
- TextAnnotation: Word-wrapped text label in a box
"""

import itertools
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, List, Optional

from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import (
    QColor,
    QFont,
    QFontMetricsF,
    QPainter,
    QPainterPath,
    QPen,
    QPolygonF,
)

from autonate.editor.geometry import clamp, dist_sq, midpoint, point_segment_dist_sq


MIN_THICKNESS = 1
MAX_THICKNESS = 20
MIN_SIZE = 4
MAX_SIZE = 200

# Hit-test thresholds, in viewport pixels
SEGMENT_HIT_DIST_SQ = 100
ARROW_HANDLE_RADIUS = 12
TEXT_HANDLE_RADIUS = 15

TEXT_MIN_WIDTH = 50
TEXT_MIN_HEIGHT = 30
TEXT_PADDING_X = 8
TEXT_PADDING_Y = 4
TEXT_PANEL_COLOR = QColor(0, 0, 0, 90)

# Process-wide id source, ids are never reused
_annotation_ids = itertools.count(1)


class AnnotationType(Enum):
    """Enum for annotation kinds."""
    HIGHLIGHTER = auto()
    LINE = auto()
    ARROW = auto()
    XMARK = auto()
    QUESTION = auto()
    TEXT = auto()


class DragHandle(Enum):
    """Which part of a selected annotation a drag acts on."""
    NONE = auto()
    MOVE = auto()
    START = auto()
    END = auto()
    RESIZE = auto()


@dataclass
class AnnotationStyle:
    """
    Style shared by every annotation kind.

    thickness is the stroke width, size is the stamp glyph / font size.
    Both are clamped on construction.
    """
    color: QColor = field(default_factory=lambda: QColor("#FF0055"))
    thickness: int = 6
    size: int = 24

    def __post_init__(self) -> None:
        self.thickness = int(clamp(self.thickness, MIN_THICKNESS, MAX_THICKNESS))
        self.size = int(clamp(self.size, MIN_SIZE, MAX_SIZE))

    def clone(self) -> "AnnotationStyle":
        """Create a copy of this style."""
        return AnnotationStyle(
            color=QColor(self.color),
            thickness=self.thickness,
            size=self.size,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "color": self.color.name(),
            "thickness": self.thickness,
            "size": self.size,
        }


def _point_to_list(point: QPointF) -> List[float]:
    return [point.x(), point.y()]


class AnnotationBase(ABC):
    """
    Base class for all annotations.

    Provides the common id/style bookkeeping and the default handle and
    serialization behaviour.
    """

    def __init__(
        self,
        style: Optional[AnnotationStyle] = None,
        annotation_id: Optional[int] = None,
    ) -> None:
        """
        Initialize the annotation.

        Args:
            style: The style to use, or None for defaults.
            annotation_id: Existing id to keep (used by clone()), or None to
                           draw a fresh one.
        """
        self.id: int = annotation_id if annotation_id is not None else next(_annotation_ids)
        self.style: AnnotationStyle = style or AnnotationStyle()

    @property
    @abstractmethod
    def annotation_type(self) -> AnnotationType:
        """Return the kind of this annotation."""
        pass

    @property
    @abstractmethod
    def bounding_rect(self) -> QRectF:
        """Return the bounding rectangle of this annotation."""
        pass

    @property
    @abstractmethod
    def anchor(self) -> QPointF:
        """Point the follow-up label prompt is placed relative to."""
        pass

    @abstractmethod
    def paint(self, painter: QPainter) -> None:
        """
        Paint the annotation.

        Args:
            painter: The QPainter to use. Its state is restored afterwards.
        """
        pass

    @abstractmethod
    def hit_test(self, point: QPointF) -> bool:
        """
        Test if a point hits the annotation body.

        Args:
            point: The point to test (viewport coordinates).

        Returns:
            True if the point hits the annotation.
        """
        pass

    @abstractmethod
    def move_by(self, dx: float, dy: float) -> None:
        """
        Translate the whole annotation.

        Args:
            dx: Delta X in viewport pixels.
            dy: Delta Y in viewport pixels.
        """
        pass

    @abstractmethod
    def clone(self) -> "AnnotationBase":
        """Create a deep copy of this annotation, keeping its id."""
        pass

    @abstractmethod
    def _payload(self) -> Dict[str, Any]:
        pass

    def hit_test_handle(self, point: QPointF) -> DragHandle:
        """
        Test if a point hits one of the annotation's handles.

        Returns:
            The hit handle, or DragHandle.NONE.
        """
        return DragHandle.NONE

    def drag_handle(self, handle: DragHandle, pos: QPointF, dx: float, dy: float) -> None:
        """
        Apply a drag sample to a handle.

        Args:
            handle: Handle being dragged.
            pos: Current pointer position.
            dx: Delta since the last sample.
            dy: Delta since the last sample.
        """
        if handle == DragHandle.MOVE:
            self.move_by(dx, dy)

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data form of the annotation, used for comparisons and logs."""
        data = {
            "id": self.id,
            "kind": self.annotation_type.name.lower(),
        }
        data.update(self.style.to_dict())
        data.update(self._payload())
        return data

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id}>"


# ─── Polylines ────────────────────────────────────────────────────────────────


class PolylineAnnotation(AnnotationBase):
    """
    Freehand polyline shared by the line and highlighter tools.

    Points are appended while the stroke is being drawn.
    """

    def __init__(
        self,
        points: Optional[List[QPointF]] = None,
        style: Optional[AnnotationStyle] = None,
        annotation_id: Optional[int] = None,
    ) -> None:
        super().__init__(style, annotation_id)
        self._points: List[QPointF] = list(points or [])
        self._cached_path: Optional[QPainterPath] = None

    @property
    def points(self) -> List[QPointF]:
        return self._points

    def add_point(self, point: QPointF) -> None:
        """Append a point to the stroke."""
        self._points.append(QPointF(point))
        self._cached_path = None

    @property
    def stroke_width(self) -> float:
        return self.style.thickness

    @property
    def bounding_rect(self) -> QRectF:
        if not self._points:
            return QRectF()

        xs = [p.x() for p in self._points]
        ys = [p.y() for p in self._points]
        padding = self.stroke_width / 2

        return QRectF(
            min(xs) - padding, min(ys) - padding,
            max(xs) - min(xs) + padding * 2,
            max(ys) - min(ys) + padding * 2
        )

    @property
    def anchor(self) -> QPointF:
        if not self._points:
            return QPointF()
        return midpoint(self._points[0], self._points[-1])

    def _build_path(self) -> QPainterPath:
        path = QPainterPath()
        if not self._points:
            return path

        path.moveTo(self._points[0])
        if len(self._points) == 1:
            # Zero-length segment so a single click still leaves a dot
            path.lineTo(self._points[0])
        for point in self._points[1:]:
            path.lineTo(point)
        return path

    def _pen(self) -> QPen:
        pen = QPen(self.style.color)
        pen.setWidthF(self.stroke_width)
        pen.setCapStyle(Qt.PenCapStyle.RoundCap)
        pen.setJoinStyle(Qt.PenJoinStyle.RoundJoin)
        return pen

    def _opacity(self) -> float:
        return 1.0

    def paint(self, painter: QPainter) -> None:
        if not self._points:
            return

        if self._cached_path is None:
            self._cached_path = self._build_path()

        painter.save()
        painter.setPen(self._pen())
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.setOpacity(self._opacity())
        painter.drawPath(self._cached_path)
        painter.restore()

    def hit_test(self, point: QPointF) -> bool:
        if not self._points:
            return False
        if len(self._points) == 1:
            return dist_sq(point, self._points[0]) < SEGMENT_HIT_DIST_SQ

        for a, b in zip(self._points, self._points[1:]):
            if point_segment_dist_sq(point, a, b) < SEGMENT_HIT_DIST_SQ:
                return True
        return False

    def move_by(self, dx: float, dy: float) -> None:
        self._points = [QPointF(p.x() + dx, p.y() + dy) for p in self._points]
        self._cached_path = None

    def clone(self) -> "PolylineAnnotation":
        return type(self)(
            [QPointF(p) for p in self._points],
            self.style.clone(),
            self.id,
        )

    def _payload(self) -> Dict[str, Any]:
        return {"points": [_point_to_list(p) for p in self._points]}


class LineAnnotation(PolylineAnnotation):
    """Freehand ink, round caps at full opacity."""

    @property
    def annotation_type(self) -> AnnotationType:
        return AnnotationType.LINE


class HighlighterAnnotation(PolylineAnnotation):
    """
    Highlighter stroke: four times the thickness, flat caps, 40% opacity.
    """

    OPACITY = 0.4

    @property
    def annotation_type(self) -> AnnotationType:
        return AnnotationType.HIGHLIGHTER

    @property
    def stroke_width(self) -> float:
        return self.style.thickness * 4

    def _pen(self) -> QPen:
        pen = super()._pen()
        pen.setCapStyle(Qt.PenCapStyle.FlatCap)
        return pen

    def _opacity(self) -> float:
        return self.OPACITY


# ─── Arrow ────────────────────────────────────────────────────────────────────


class ArrowAnnotation(AnnotationBase):
    """
    Arrow annotation with line and filled arrowhead at the end point.
    """

    HEAD_HALF_ANGLE = math.pi / 6

    def __init__(
        self,
        start: QPointF,
        end: QPointF,
        style: Optional[AnnotationStyle] = None,
        annotation_id: Optional[int] = None,
    ) -> None:
        super().__init__(style, annotation_id)
        self._start = QPointF(start)
        self._end = QPointF(end)

    @property
    def annotation_type(self) -> AnnotationType:
        return AnnotationType.ARROW

    @property
    def start(self) -> QPointF:
        return self._start

    @start.setter
    def start(self, point: QPointF) -> None:
        self._start = QPointF(point)

    @property
    def end(self) -> QPointF:
        return self._end

    @end.setter
    def end(self, point: QPointF) -> None:
        self._end = QPointF(point)

    @property
    def head_length(self) -> float:
        return max(10, self.style.thickness * 3)

    @property
    def bounding_rect(self) -> QRectF:
        padding = self.head_length + self.style.thickness
        left = min(self._start.x(), self._end.x()) - padding
        top = min(self._start.y(), self._end.y()) - padding
        right = max(self._start.x(), self._end.x()) + padding
        bottom = max(self._start.y(), self._end.y()) + padding
        return QRectF(left, top, right - left, bottom - top)

    @property
    def anchor(self) -> QPointF:
        return self._start

    def paint(self, painter: QPainter) -> None:
        painter.save()
        pen = QPen(self.style.color)
        pen.setWidth(self.style.thickness)
        pen.setCapStyle(Qt.PenCapStyle.RoundCap)
        pen.setJoinStyle(Qt.PenJoinStyle.RoundJoin)
        painter.setPen(pen)
        painter.drawLine(self._start, self._end)

        head = self.arrowhead_polygon()
        if head is not None:
            painter.setPen(Qt.PenStyle.NoPen)
            painter.setBrush(self.style.color)
            painter.drawPolygon(head)
        painter.restore()

    def arrowhead_polygon(self) -> Optional[QPolygonF]:
        """Triangle at the end point, or None for a zero-length arrow."""
        dx = self._end.x() - self._start.x()
        dy = self._end.y() - self._start.y()
        if dx == 0 and dy == 0:
            return None

        theta = math.atan2(dy, dx)
        length = self.head_length
        tip = self._end
        left = QPointF(
            tip.x() - length * math.cos(theta - self.HEAD_HALF_ANGLE),
            tip.y() - length * math.sin(theta - self.HEAD_HALF_ANGLE),
        )
        right = QPointF(
            tip.x() - length * math.cos(theta + self.HEAD_HALF_ANGLE),
            tip.y() - length * math.sin(theta + self.HEAD_HALF_ANGLE),
        )
        return QPolygonF([tip, left, right])

    def hit_test(self, point: QPointF) -> bool:
        return point_segment_dist_sq(point, self._start, self._end) < SEGMENT_HIT_DIST_SQ

    def hit_test_handle(self, point: QPointF) -> DragHandle:
        radius_sq = ARROW_HANDLE_RADIUS * ARROW_HANDLE_RADIUS
        if dist_sq(point, self._start) < radius_sq:
            return DragHandle.START
        if dist_sq(point, self._end) < radius_sq:
            return DragHandle.END
        return DragHandle.NONE

    def drag_handle(self, handle: DragHandle, pos: QPointF, dx: float, dy: float) -> None:
        if handle == DragHandle.START:
            self._start = QPointF(self._start.x() + dx, self._start.y() + dy)
        elif handle == DragHandle.END:
            self._end = QPointF(self._end.x() + dx, self._end.y() + dy)
        else:
            super().drag_handle(handle, pos, dx, dy)

    def move_by(self, dx: float, dy: float) -> None:
        self._start = QPointF(self._start.x() + dx, self._start.y() + dy)
        self._end = QPointF(self._end.x() + dx, self._end.y() + dy)

    def clone(self) -> "ArrowAnnotation":
        return ArrowAnnotation(
            QPointF(self._start), QPointF(self._end), self.style.clone(), self.id
        )

    def _payload(self) -> Dict[str, Any]:
        return {"start": _point_to_list(self._start), "end": _point_to_list(self._end)}


# ─── Stamps ───────────────────────────────────────────────────────────────────


class StampAnnotation(AnnotationBase):
    """
    Single-click glyph centred on a point, sized by style.size.
    """

    def __init__(
        self,
        center: QPointF,
        style: Optional[AnnotationStyle] = None,
        annotation_id: Optional[int] = None,
    ) -> None:
        super().__init__(style, annotation_id)
        self._center = QPointF(center)

    @property
    def center(self) -> QPointF:
        return self._center

    @property
    def bounding_rect(self) -> QRectF:
        r = self.style.size
        return QRectF(self._center.x() - r, self._center.y() - r, r * 2, r * 2)

    @property
    def anchor(self) -> QPointF:
        return self._center

    def hit_test(self, point: QPointF) -> bool:
        return dist_sq(point, self._center) < self.style.size * self.style.size

    def move_by(self, dx: float, dy: float) -> None:
        self._center = QPointF(self._center.x() + dx, self._center.y() + dy)

    def clone(self) -> "StampAnnotation":
        return type(self)(QPointF(self._center), self.style.clone(), self.id)

    def _payload(self) -> Dict[str, Any]:
        return {"center": _point_to_list(self._center)}


class XMarkAnnotation(StampAnnotation):
    """Two crossing round-capped strokes."""

    @property
    def annotation_type(self) -> AnnotationType:
        return AnnotationType.XMARK

    def paint(self, painter: QPainter) -> None:
        half = self.style.size / 2
        x, y = self._center.x(), self._center.y()

        painter.save()
        pen = QPen(self.style.color)
        pen.setWidthF(max(2, self.style.size / 2))
        pen.setCapStyle(Qt.PenCapStyle.RoundCap)
        painter.setPen(pen)
        painter.drawLine(QPointF(x - half, y - half), QPointF(x + half, y + half))
        painter.drawLine(QPointF(x + half, y - half), QPointF(x - half, y + half))
        painter.restore()


class QuestionAnnotation(StampAnnotation):
    """Bold question mark, filled then outlined for weight."""

    OUTLINE_WIDTH = 2

    @property
    def annotation_type(self) -> AnnotationType:
        return AnnotationType.QUESTION

    def _glyph_path(self) -> QPainterPath:
        font = QFont()
        font.setPixelSize(self.style.size * 2)
        font.setBold(True)

        path = QPainterPath()
        path.addText(0, 0, font, "?")
        # Centre the glyph on the stamp point
        box = path.boundingRect()
        path.translate(
            self._center.x() - box.center().x(),
            self._center.y() - box.center().y(),
        )
        return path

    def paint(self, painter: QPainter) -> None:
        path = self._glyph_path()

        painter.save()
        painter.fillPath(path, self.style.color)
        pen = QPen(self.style.color)
        pen.setWidth(self.OUTLINE_WIDTH)
        painter.strokePath(path, pen)
        painter.restore()


# ─── Text ─────────────────────────────────────────────────────────────────────


def text_font(size: int) -> QFont:
    """Font used for text annotations and the text editor."""
    font = QFont()
    font.setPixelSize(size)
    return font


def wrap_text(text: str, font: QFont, max_width: float) -> List[str]:
    """
    Greedy word wrap.

    Explicit newlines are kept, blank lines stay blank and a single word
    wider than max_width gets a line of its own.
    """
    metrics = QFontMetricsF(font)
    lines: List[str] = []
    for raw_line in text.split("\n"):
        if not raw_line:
            lines.append("")
            continue

        current = ""
        for word in raw_line.split(" "):
            candidate = f"{current} {word}" if current else word
            if current and metrics.horizontalAdvance(candidate) > max_width:
                lines.append(current)
                current = word
            else:
                current = candidate
        lines.append(current)
    return lines


class TextAnnotation(AnnotationBase):
    """
    Text label laid out inside a box.

    The box is anchored at its top-left corner (start) and can be resized
    from its bottom-right corner, never below 50x30.
    """

    def __init__(
        self,
        start: QPointF,
        text: str = "",
        width: float = 200,
        height: float = 40,
        style: Optional[AnnotationStyle] = None,
        annotation_id: Optional[int] = None,
    ) -> None:
        super().__init__(style, annotation_id)
        self._start = QPointF(start)
        self.text = text
        self.width = max(TEXT_MIN_WIDTH, width)
        self.height = max(TEXT_MIN_HEIGHT, height)

    @property
    def annotation_type(self) -> AnnotationType:
        return AnnotationType.TEXT

    @property
    def start(self) -> QPointF:
        return self._start

    @property
    def rect(self) -> QRectF:
        return QRectF(self._start.x(), self._start.y(), self.width, self.height)

    @property
    def bounding_rect(self) -> QRectF:
        return self.rect

    @property
    def anchor(self) -> QPointF:
        return self._start

    @property
    def line_height(self) -> float:
        return self.style.size * 1.2

    def layout_lines(self) -> List[str]:
        return wrap_text(
            self.text, text_font(self.style.size), self.width - 2 * TEXT_PADDING_X
        )

    def paint(self, painter: QPainter) -> None:
        rect = self.rect

        painter.save()
        painter.setClipRect(rect, Qt.ClipOperation.IntersectClip)
        painter.fillRect(rect, TEXT_PANEL_COLOR)

        painter.setFont(text_font(self.style.size))
        painter.setPen(self.style.color)
        ascent = QFontMetricsF(painter.font()).ascent()

        y = rect.top() + TEXT_PADDING_Y
        for line in self.layout_lines():
            if line:
                painter.drawText(QPointF(rect.left() + TEXT_PADDING_X, y + ascent), line)
            y += self.line_height
            if y > rect.bottom():
                break
        painter.restore()

    def hit_test(self, point: QPointF) -> bool:
        return (
            self._start.x() <= point.x() <= self._start.x() + self.width
            and self._start.y() <= point.y() <= self._start.y() + self.height
        )

    def hit_test_handle(self, point: QPointF) -> DragHandle:
        corner = self.rect.bottomRight()
        if dist_sq(point, corner) < TEXT_HANDLE_RADIUS * TEXT_HANDLE_RADIUS:
            return DragHandle.RESIZE
        return DragHandle.NONE

    def resize_by(self, dw: float, dh: float) -> None:
        """Grow or shrink the box, keeping the minimum size."""
        self.width = max(TEXT_MIN_WIDTH, self.width + dw)
        self.height = max(TEXT_MIN_HEIGHT, self.height + dh)

    def drag_handle(self, handle: DragHandle, pos: QPointF, dx: float, dy: float) -> None:
        if handle == DragHandle.RESIZE:
            # Corner follows the pointer
            self.width = max(TEXT_MIN_WIDTH, pos.x() - self._start.x())
            self.height = max(TEXT_MIN_HEIGHT, pos.y() - self._start.y())
        else:
            super().drag_handle(handle, pos, dx, dy)

    def move_by(self, dx: float, dy: float) -> None:
        self._start = QPointF(self._start.x() + dx, self._start.y() + dy)

    def clone(self) -> "TextAnnotation":
        return TextAnnotation(
            QPointF(self._start),
            self.text,
            self.width,
            self.height,
            self.style.clone(),
            self.id,
        )

    def _payload(self) -> Dict[str, Any]:
        return {
            "start": _point_to_list(self._start),
            "text": self.text,
            "width": self.width,
            "height": self.height,
        }


ANNOTATION_CLASSES = {
    AnnotationType.HIGHLIGHTER: HighlighterAnnotation,
    AnnotationType.LINE: LineAnnotation,
    AnnotationType.ARROW: ArrowAnnotation,
    AnnotationType.XMARK: XMarkAnnotation,
    AnnotationType.QUESTION: QuestionAnnotation,
    AnnotationType.TEXT: TextAnnotation,
}


def create_annotation(
    kind: AnnotationType, point: QPointF, style: AnnotationStyle
) -> AnnotationBase:
    """
    Create a fresh annotation of the given kind rooted at point.

    Polylines start with the single point, arrows start and end at it,
    stamps are centred on it and text boxes have their top-left corner there.
    """
    if kind in (AnnotationType.HIGHLIGHTER, AnnotationType.LINE):
        return ANNOTATION_CLASSES[kind]([point], style)
    if kind == AnnotationType.ARROW:
        return ArrowAnnotation(point, point, style)
    if kind in (AnnotationType.XMARK, AnnotationType.QUESTION):
        return ANNOTATION_CLASSES[kind](point, style)
    return TextAnnotation(point, style=style)
