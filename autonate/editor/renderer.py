"""
Rendering for the focus editor.

Two modes share one cached backdrop (the capture, optionally blurred, under
a dark dimming layer):
- preview: the sharp capture shows through the live focus window
- locked: the sharp capture shows through the locked window, with the
  annotation layer and selection decorations painted on top
"""

from typing import Optional

import cv2
import numpy as np
from PySide6.QtCore import QPointF, QRectF, QSize, Qt
from PySide6.QtGui import QBrush, QColor, QImage, QPainter, QPainterPath, QPen

from autonate.editor.annotation_store import AnnotationStore
from autonate.editor.annotations import (
    AnnotationBase,
    ArrowAnnotation,
    DragHandle,
    TextAnnotation,
)
from autonate.editor.focus_region import FocusRegionController
from autonate.services.logging_service import get_logger


DIM_COLOR = QColor(0, 0, 0, 153)
BORDER_COLOR = QColor(255, 255, 255, 128)
BORDER_WIDTH = 2
ANCHOR_COLOR = QColor(255, 255, 255, 204)
ANCHOR_RADIUS = 4

SELECTION_COLOR = QColor(255, 255, 255, 220)
SELECTION_PADDING = 6
HANDLE_RADIUS = 6
HANDLE_FILL = QColor(6, 182, 212)


def blur_image(image: QImage, radius: int) -> QImage:
    """
    Gaussian-blur an image with OpenCV.

    Args:
        image: Source image.
        radius: Blur sigma in pixels. 0 returns a plain copy.

    Returns:
        A new blurred image in RGBA8888 format.
    """
    rgba_image = image.convertToFormat(QImage.Format.Format_RGBA8888)
    if radius <= 0 or rgba_image.isNull():
        return rgba_image.copy()

    width = rgba_image.width()
    height = rgba_image.height()
    stride = rgba_image.bytesPerLine()

    arr = np.frombuffer(rgba_image.constBits(), np.uint8).reshape((height, stride // 4, 4))
    bgr = cv2.cvtColor(arr[:, :width], cv2.COLOR_RGBA2BGR)

    # ksize (0, 0) lets OpenCV derive the kernel from sigma
    blurred = cv2.GaussianBlur(bgr, (0, 0), sigmaX=radius, sigmaY=radius)

    rgba = np.ascontiguousarray(cv2.cvtColor(blurred, cv2.COLOR_BGR2RGBA))
    return QImage(
        rgba.data, width, height, width * 4, QImage.Format.Format_RGBA8888
    ).copy()


def build_backdrop(source: QImage, size: QSize, blur_radius: int) -> QImage:
    """
    Compose the dimmed backdrop at viewport size.

    Args:
        source: The captured image.
        size: Viewport size.
        blur_radius: Blur sigma, 0 for none.
    """
    scaled = source.scaled(
        size,
        Qt.AspectRatioMode.IgnoreAspectRatio,
        Qt.TransformationMode.SmoothTransformation,
    )
    backdrop = blur_image(scaled, blur_radius).convertToFormat(
        QImage.Format.Format_ARGB32_Premultiplied
    )

    painter = QPainter(backdrop)
    painter.fillRect(backdrop.rect(), DIM_COLOR)
    painter.end()
    return backdrop


class FocusRenderer:
    """
    Paints one editor session.

    The renderer only reads the focus controller and the annotation store.
    """

    def __init__(
        self,
        source: QImage,
        viewport_size: QSize,
        focus: FocusRegionController,
        store: AnnotationStore,
    ) -> None:
        self._logger = get_logger(__name__)
        self._source = source
        self._viewport_size = QSize(viewport_size)
        self._focus = focus
        self._store = store
        self._backdrop: Optional[QImage] = None
        self._backdrop_blurred: Optional[bool] = None

        focus.backdrop_invalidated.connect(self.invalidate_backdrop)

    @property
    def viewport_rect(self) -> QRectF:
        return QRectF(0, 0, self._viewport_size.width(), self._viewport_size.height())

    def set_viewport_size(self, size: QSize) -> None:
        if size != self._viewport_size:
            self._viewport_size = QSize(size)
            self.invalidate_backdrop()

    def invalidate_backdrop(self) -> None:
        self._backdrop = None

    @property
    def backdrop(self) -> QImage:
        """Cached backdrop, rebuilt when invalidated or the blur state flips."""
        blurred = self._focus.backdrop_blurred
        if self._backdrop is None or blurred != self._backdrop_blurred:
            radius = self._focus.blur_radius if blurred else 0
            self._backdrop = build_backdrop(self._source, self._viewport_size, radius)
            self._backdrop_blurred = blurred
            self._logger.debug(f"Backdrop rebuilt (blur={radius})")
        return self._backdrop

    # ─── Modes ────────────────────────────────────────────────────────────

    def paint(
        self,
        painter: QPainter,
        pointer: Optional[QPointF] = None,
        hidden_id: Optional[int] = None,
    ) -> None:
        """Paint whichever mode the focus region is in."""
        if self._focus.is_locked:
            self.paint_locked(painter, hidden_id=hidden_id)
        else:
            self.paint_preview(painter, pointer)

    def paint_preview(self, painter: QPainter, pointer: Optional[QPointF]) -> None:
        painter.drawImage(self.viewport_rect, self.backdrop)

        path = self._focus.clip_path(pointer)
        if path is None:
            return

        self._paint_window(painter, path)

        anchor = self._focus.custom_box_start
        if self._focus.is_drawing_box and anchor is not None:
            painter.save()
            painter.setRenderHint(QPainter.RenderHint.Antialiasing)
            painter.setPen(Qt.PenStyle.NoPen)
            painter.setBrush(ANCHOR_COLOR)
            painter.drawEllipse(anchor, ANCHOR_RADIUS, ANCHOR_RADIUS)
            painter.restore()

    def paint_locked(
        self,
        painter: QPainter,
        hidden_id: Optional[int] = None,
        decorations: bool = True,
    ) -> None:
        """
        Paint the locked composite.

        Args:
            painter: Target painter.
            hidden_id: Annotation being edited in the text editor, not drawn.
            decorations: Whether to draw selection affordances.
        """
        painter.drawImage(self.viewport_rect, self.backdrop)

        path = self._focus.clip_path()
        if path is not None:
            self._paint_window(painter, path)

        painter.save()
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.TextAntialiasing)
        for annotation in self._store.annotations:
            if annotation.id != hidden_id:
                annotation.paint(painter)

        if self._store.in_progress is not None:
            self._store.in_progress.paint(painter)

        if decorations:
            selected = self._store.selected
            if selected is not None and selected.id != hidden_id:
                self._paint_selection(painter, selected)
        painter.restore()

    def render_to_image(self) -> QImage:
        """Render the locked composite without selection decorations."""
        image = QImage(self._viewport_size, QImage.Format.Format_ARGB32_Premultiplied)
        image.fill(Qt.GlobalColor.black)

        painter = QPainter(image)
        self.paint_locked(painter, decorations=False)
        painter.end()
        return image

    # ─── Pieces ───────────────────────────────────────────────────────────

    def _paint_window(self, painter: QPainter, path: QPainterPath) -> None:
        """Sharp capture through the focus path plus its border."""
        painter.save()
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.setClipPath(path)
        painter.drawImage(self.viewport_rect, self._source)
        painter.restore()

        painter.save()
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        pen = QPen(BORDER_COLOR)
        pen.setWidth(BORDER_WIDTH)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawPath(path)
        painter.restore()

    def _paint_selection(self, painter: QPainter, annotation: AnnotationBase) -> None:
        painter.save()
        if isinstance(annotation, ArrowAnnotation):
            self._paint_handle(painter, annotation.start, self._is_active(DragHandle.START))
            self._paint_handle(painter, annotation.end, self._is_active(DragHandle.END))
            painter.restore()
            return

        pen = QPen(SELECTION_COLOR)
        pen.setWidth(1)
        pen.setStyle(Qt.PenStyle.DashLine)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(
            annotation.bounding_rect.adjusted(
                -SELECTION_PADDING, -SELECTION_PADDING, SELECTION_PADDING, SELECTION_PADDING
            )
        )

        if isinstance(annotation, TextAnnotation):
            self._paint_handle(
                painter, annotation.rect.bottomRight(), self._is_active(DragHandle.RESIZE)
            )
        painter.restore()

    def _is_active(self, handle: DragHandle) -> bool:
        return self._store.selection.active_handle == handle

    def _paint_handle(self, painter: QPainter, center: QPointF, active: bool) -> None:
        painter.setPen(QPen(Qt.GlobalColor.white, 1.5))
        painter.setBrush(QBrush(HANDLE_FILL if active else QColor(255, 255, 255)))
        painter.drawEllipse(center, HANDLE_RADIUS, HANDLE_RADIUS)
