"""
Per-capture editor session.

A session owns everything one capture needs: the source image, the focus
region, the annotation store and the current tool settings. A new session
is built for every capture and dropped when the overlay closes.
"""

from typing import Optional

from PySide6.QtGui import QColor, QImage

from autonate.editor.annotation_store import AnnotationStore
from autonate.editor.annotations import (
    AnnotationStyle,
    MAX_SIZE,
    MAX_THICKNESS,
    MIN_SIZE,
    MIN_THICKNESS,
)
from autonate.editor.focus_region import FocusRegionController, FocusShape
from autonate.editor.geometry import clamp
from autonate.editor.tools import ToolType
from autonate.services.logging_service import get_logger


def thickness_for_size(size: int) -> int:
    """Stroke thickness that goes with a stamp size."""
    return int(clamp(round(size / 4), MIN_THICKNESS, MAX_THICKNESS))


class EditorSession:
    """
    State of one focus-and-annotate session.

    Attributes:
        source: The captured image.
        focus: Focus region controller.
        store: Annotation store, including selection.
        tool: Active tool, None for selection mode. Starts on the highlighter.
        color: Color for new annotations.
        stamp_size: Size for stamps and text, in [4, 200].
        thickness: Stroke width for lines and arrows, in [1, 20].
        default_action: "copy" or "save", used by the export gesture.
    """

    def __init__(
        self,
        source: QImage,
        shape: FocusShape = FocusShape.CIRCLE,
        radius: int = 150,
        blur_radius: int = 8,
        color: QColor = QColor("#FF0055"),
        stamp_size: int = 24,
        default_action: str = "copy",
    ) -> None:
        self._logger = get_logger(__name__)
        self.source = source
        self.focus = FocusRegionController(shape, radius, blur_radius)
        self.store = AnnotationStore()
        self.tool: Optional[ToolType] = ToolType.HIGHLIGHTER
        self.color = QColor(color)
        self.stamp_size = int(clamp(stamp_size, MIN_SIZE, MAX_SIZE))
        self.thickness = thickness_for_size(self.stamp_size)
        self.default_action = default_action
        self.ended = False

        self._logger.info(
            f"Session started: {source.width()}x{source.height()} "
            f"shape={shape.value} radius={self.focus.radius} blur={self.focus.blur_radius}"
        )

    @classmethod
    def from_config(cls, source: QImage, config) -> "EditorSession":
        """Build a session from ConfigService preferences."""
        return cls(
            source,
            shape=FocusShape.from_name(config.shape),
            radius=config.focus_radius,
            blur_radius=config.blur_radius,
            color=QColor(config.color),
            stamp_size=config.stamp_size,
            default_action=config.default_action,
        )

    def style(self) -> AnnotationStyle:
        """Style for the next annotation."""
        return AnnotationStyle(QColor(self.color), self.thickness, self.stamp_size)

    def adjust_stamp_size(self, delta: int) -> bool:
        """
        Grow or shrink the stamp size, saturating at [4, 200].

        The stroke thickness follows the size.
        """
        new_size = int(clamp(self.stamp_size + delta, MIN_SIZE, MAX_SIZE))
        if new_size == self.stamp_size:
            return False
        self.stamp_size = new_size
        self.thickness = thickness_for_size(new_size)
        return True

    def end(self) -> None:
        """Drop annotation and focus state."""
        if self.ended:
            return
        self.ended = True
        self.store = AnnotationStore()
        self._logger.info("Session ended")
