"""
Focus region state machine for the Autonate editor.

While unlocked the focus window follows the pointer (or, for the custom-box
shape, is drawn with two clicks). Locking freezes the geometry for the rest
of the session.
"""

from enum import Enum
from typing import Optional

from PySide6.QtCore import QObject, QPointF, QRectF, Signal
from PySide6.QtGui import QPainterPath

from autonate.editor.geometry import clamp, midpoint, normalized_rect
from autonate.services.logging_service import get_logger


MIN_RADIUS = 25
MAX_RADIUS = 600
MIN_BLUR = 0
MAX_BLUR = 20


class FocusShape(Enum):
    """Focus window shapes. Values match the stored preference strings."""
    CIRCLE = "circle"
    SQUARE = "square"
    RECTANGLE = "rectangle"
    CUSTOM_BOX = "custom-box"

    @classmethod
    def from_name(cls, name: str) -> "FocusShape":
        try:
            return cls(name)
        except ValueError:
            return cls.CIRCLE


def shape_path(shape: FocusShape, center: QPointF, radius: float) -> QPainterPath:
    """
    Clip path for a fixed-radius focus window centred on a point.

    Rectangles are 3r wide and 2r tall.
    """
    x, y, r = center.x(), center.y(), radius
    path = QPainterPath()
    if shape == FocusShape.CIRCLE:
        path.addEllipse(center, r, r)
    elif shape == FocusShape.SQUARE:
        path.addRect(QRectF(x - r, y - r, 2 * r, 2 * r))
    elif shape == FocusShape.RECTANGLE:
        path.addRect(QRectF(x - 1.5 * r, y - r, 3 * r, 2 * r))
    return path


class FocusRegionController(QObject):
    """
    Owns the focus window for one editor session.

    Signals:
        radius_changed(int): Radius adjusted while unlocked.
        shape_changed(str): Shape changed while unlocked.
        locked(QPointF): The region locked at the given centre.
        backdrop_invalidated(): The cached backdrop must be rebuilt.
    """

    radius_changed = Signal(int)
    shape_changed = Signal(str)
    locked = Signal(QPointF)
    backdrop_invalidated = Signal()

    def __init__(
        self,
        shape: FocusShape = FocusShape.CIRCLE,
        radius: int = 150,
        blur_radius: int = 8,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)

        self._shape = shape
        self._radius = int(clamp(radius, MIN_RADIUS, MAX_RADIUS))
        self._blur_radius = int(clamp(blur_radius, MIN_BLUR, MAX_BLUR))
        self._custom_box_start: Optional[QPointF] = None
        self._custom_box_end: Optional[QPointF] = None
        self._is_locked = False
        self._lock_center: Optional[QPointF] = None
        self._locked_path: Optional[QPainterPath] = None

    # ─── State ────────────────────────────────────────────────────────────

    @property
    def shape(self) -> FocusShape:
        return self._shape

    @property
    def radius(self) -> int:
        return self._radius

    @property
    def blur_radius(self) -> int:
        return self._blur_radius

    @property
    def custom_box_start(self) -> Optional[QPointF]:
        return self._custom_box_start

    @property
    def custom_box_end(self) -> Optional[QPointF]:
        return self._custom_box_end

    @property
    def is_locked(self) -> bool:
        return self._is_locked

    @property
    def lock_center(self) -> Optional[QPointF]:
        return self._lock_center

    @property
    def is_custom_box(self) -> bool:
        return self._shape == FocusShape.CUSTOM_BOX

    @property
    def is_drawing_box(self) -> bool:
        """True while a custom box has its first corner but is not locked."""
        return self.is_custom_box and not self._is_locked and self._custom_box_start is not None

    @property
    def backdrop_blurred(self) -> bool:
        """Whether the backdrop should carry blur in the current state."""
        if self._blur_radius <= 0:
            return False
        return not (self.is_custom_box and not self._is_locked)

    def has_visible_window(self) -> bool:
        """An unlocked custom box without an anchor shows no window."""
        if self._is_locked:
            return True
        return not self.is_custom_box or self._custom_box_start is not None

    # ─── Preview adjustments ──────────────────────────────────────────────

    def set_shape(self, shape: FocusShape) -> bool:
        """
        Change the focus shape. Ignored once locked.

        Returns:
            True if the shape changed.
        """
        if self._is_locked or shape == self._shape:
            return False

        self._shape = shape
        self._custom_box_start = None
        self._custom_box_end = None
        self._logger.debug(f"Focus shape set to {shape.value}")
        self.shape_changed.emit(shape.value)
        # Switching to or from custom-box toggles backdrop blur
        self.backdrop_invalidated.emit()
        return True

    def adjust_radius(self, delta: float) -> bool:
        """
        Grow or shrink the focus window, saturating at [25, 600].

        Ignored once locked and for the custom-box shape.

        Returns:
            True if the radius changed.
        """
        if self._is_locked or self.is_custom_box:
            return False

        new_radius = int(clamp(self._radius + delta, MIN_RADIUS, MAX_RADIUS))
        if new_radius == self._radius:
            return False

        self._radius = new_radius
        self.radius_changed.emit(new_radius)
        return True

    # ─── Custom box ───────────────────────────────────────────────────────

    def begin_custom_box(self, point: QPointF) -> bool:
        """Place the first corner of a custom box."""
        if self._is_locked or not self.is_custom_box:
            return False
        self._custom_box_start = QPointF(point)
        self._custom_box_end = None
        self._logger.debug(f"Custom box started at ({point.x():.0f}, {point.y():.0f})")
        return True

    def cancel_custom_box(self) -> bool:
        """Drop a pending first corner."""
        if self._is_locked or self._custom_box_start is None:
            return False
        self._custom_box_start = None
        self._custom_box_end = None
        self._logger.debug("Custom box cancelled")
        return True

    def complete_custom_box(self, point: QPointF) -> bool:
        """Place the second corner and lock."""
        if not self.is_drawing_box:
            return False
        self._custom_box_end = QPointF(point)
        return self.lock(point)

    # ─── Lock ─────────────────────────────────────────────────────────────

    def lock(self, point: QPointF) -> bool:
        """
        Freeze the focus geometry.

        Non-custom shapes lock centred on point. A custom box locks around
        its two corners and needs both of them.

        Returns:
            True if the region locked.
        """
        if self._is_locked:
            return False

        if self.is_custom_box:
            if self._custom_box_start is None or self._custom_box_end is None:
                return False
            self._lock_center = midpoint(self._custom_box_start, self._custom_box_end)
            self._locked_path = QPainterPath()
            self._locked_path.addRect(
                normalized_rect(self._custom_box_start, self._custom_box_end)
            )
        else:
            self._lock_center = QPointF(point)
            self._locked_path = shape_path(self._shape, self._lock_center, self._radius)

        self._is_locked = True
        self._logger.info(
            f"Focus locked: shape={self._shape.value} "
            f"center=({self._lock_center.x():.0f}, {self._lock_center.y():.0f}) "
            f"radius={self._radius}"
        )
        self.locked.emit(QPointF(self._lock_center))
        if self.is_custom_box:
            self.backdrop_invalidated.emit()
        return True

    def clip_path(self, pointer: Optional[QPointF] = None) -> Optional[QPainterPath]:
        """
        Path of the sharp focus window.

        Args:
            pointer: Current pointer position, used while unlocked.

        Returns:
            The clip path, or None when no window is visible.
        """
        if self._is_locked:
            return QPainterPath(self._locked_path)

        if self.is_custom_box:
            if self._custom_box_start is None:
                return None
            corner = pointer if pointer is not None else self._custom_box_start
            path = QPainterPath()
            path.addRect(normalized_rect(self._custom_box_start, corner))
            return path

        if pointer is None:
            return None
        return shape_path(self._shape, pointer, self._radius)
