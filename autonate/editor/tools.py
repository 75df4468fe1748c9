"""
Annotation tools for the focus editor.

Each tool creates one annotation kind. This module also draws the tool
glyphs used as the pointer cursor and as palette icons.
"""

from enum import Enum
from typing import Optional

from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import QColor, QCursor, QFont, QIcon, QPainter, QPen, QPixmap

from autonate.editor.annotations import AnnotationType


class ToolType(Enum):
    """Palette tools, in palette order."""
    HIGHLIGHTER = "highlighter"
    LINE = "line"
    ARROW = "arrow"
    TEXT = "text"
    XMARK = "xmark"
    QUESTION = "question"

    @property
    def annotation_type(self) -> AnnotationType:
        return AnnotationType[self.name]

    @property
    def label(self) -> str:
        return TOOL_LABELS[self]


TOOL_LABELS = {
    ToolType.HIGHLIGHTER: "Highlight",
    ToolType.LINE: "Draw",
    ToolType.ARROW: "Arrow",
    ToolType.TEXT: "Text",
    ToolType.XMARK: "X Mark",
    ToolType.QUESTION: "Question",
}

# Digit shortcuts follow palette order, 0 clears the tool
TOOL_SHORTCUTS = {
    Qt.Key.Key_1: ToolType.HIGHLIGHTER,
    Qt.Key.Key_2: ToolType.LINE,
    Qt.Key.Key_3: ToolType.ARROW,
    Qt.Key.Key_4: ToolType.TEXT,
    Qt.Key.Key_5: ToolType.XMARK,
    Qt.Key.Key_6: ToolType.QUESTION,
}

CURSOR_OPACITY = 0.5


def _paint_glyph(
    painter: QPainter, tool: ToolType, center: QPointF, size: float, color: QColor
) -> None:
    """Draw a tool glyph of the given size centred on center."""
    half = size / 2
    x, y = center.x(), center.y()

    if tool == ToolType.HIGHLIGHTER:
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(color)
        painter.drawEllipse(center, half, half)

    elif tool == ToolType.LINE:
        r = max(1.0, size / 4)
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(color)
        painter.drawEllipse(center, r, r)

    elif tool == ToolType.XMARK:
        pen = QPen(color)
        pen.setWidthF(max(2.0, size / 2))
        pen.setCapStyle(Qt.PenCapStyle.RoundCap)
        painter.setPen(pen)
        painter.drawLine(QPointF(x - half, y - half), QPointF(x + half, y + half))
        painter.drawLine(QPointF(x + half, y - half), QPointF(x - half, y + half))

    elif tool == ToolType.ARROW:
        pen = QPen(color)
        pen.setWidthF(max(2.0, size / 4))
        pen.setCapStyle(Qt.PenCapStyle.RoundCap)
        pen.setJoinStyle(Qt.PenJoinStyle.RoundJoin)
        painter.setPen(pen)
        tip = QPointF(x + half, y - half)
        painter.drawLine(QPointF(x - half, y + half), tip)
        painter.drawLine(tip, QPointF(x, y - half))
        painter.drawLine(tip, QPointF(x + half, y))

    elif tool in (ToolType.TEXT, ToolType.QUESTION):
        font = QFont()
        font.setBold(True)
        glyph = "T" if tool == ToolType.TEXT else "?"
        font.setPixelSize(max(1, int(size if tool == ToolType.TEXT else size * 2)))
        painter.setFont(font)
        painter.setPen(color)
        box = QRectF(x - size * 2, y - size * 2, size * 4, size * 4)
        painter.drawText(box, Qt.AlignmentFlag.AlignCenter, glyph)


def create_tool_pixmap(tool: ToolType, color: QColor, size: int) -> QPixmap:
    """
    Render the translucent pointer glyph for a tool.

    The pixmap is size * 2 + 20 pixels square with the glyph centred.
    """
    extent = int(size * 2 + 20)
    pixmap = QPixmap(extent, extent)
    pixmap.fill(Qt.GlobalColor.transparent)

    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    painter.setRenderHint(QPainter.RenderHint.TextAntialiasing)
    painter.setOpacity(CURSOR_OPACITY)
    _paint_glyph(painter, tool, QPointF(extent / 2, extent / 2), size, color)
    painter.end()
    return pixmap


def create_tool_cursor(tool: Optional[ToolType], color: QColor, size: int) -> QCursor:
    """
    Cursor for the active tool, hot spot at the glyph centre.

    No tool gives the plain arrow cursor.
    """
    if tool is None:
        return QCursor(Qt.CursorShape.ArrowCursor)
    pixmap = create_tool_pixmap(tool, color, size)
    hot = pixmap.width() // 2
    return QCursor(pixmap, hot, hot)


def create_tool_icon(tool: ToolType, extent: int = 24, color: QColor = QColor(220, 220, 220)) -> QIcon:
    """Opaque palette icon for a tool."""
    pixmap = QPixmap(extent, extent)
    pixmap.fill(Qt.GlobalColor.transparent)

    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    glyph_size = extent * 0.55 if tool in (ToolType.TEXT, ToolType.QUESTION) else extent * 0.6
    if tool == ToolType.QUESTION:
        glyph_size /= 2
    _paint_glyph(painter, tool, QPointF(extent / 2, extent / 2), glyph_size, color)
    painter.end()
    return QIcon(pixmap)
