"""
Floating tool palette shown once the focus region is locked.

A color button on top, then one checkable button per tool. Clicking the
active tool again deselects it, which returns the editor to selection mode.
"""

from typing import Dict, Optional

from PySide6.QtCore import QSize, Qt, Signal
from PySide6.QtGui import QColor
from PySide6.QtWidgets import QColorDialog, QFrame, QPushButton, QVBoxLayout, QWidget

from autonate.editor.tools import ToolType, create_tool_icon
from autonate.services.logging_service import get_logger


PALETTE_MARGIN_X = 15
# Palette height at scale 1.0, used to centre it vertically
PALETTE_NOMINAL_HEIGHT = 520


class ColorButton(QPushButton):
    """Button that shows a color and opens a color picker on click."""

    color_changed = Signal(QColor)

    def __init__(self, color: QColor, extent: int = 32, parent=None):
        super().__init__(parent)
        self._color = QColor(color)
        self.setFixedSize(extent, extent)
        self.setToolTip("Pick Color")
        self.clicked.connect(self._on_click)
        self._update_style()

    @property
    def color(self) -> QColor:
        return self._color

    @color.setter
    def color(self, value: QColor) -> None:
        self._color = QColor(value)
        self._update_style()

    def _update_style(self) -> None:
        self.setStyleSheet(f"""
            QPushButton {{
                background-color: {self._color.name()};
                border: none;
                border-radius: {max(3, self.width() // 5)}px;
            }}
        """)

    def _on_click(self) -> None:
        color = QColorDialog.getColor(self._color, self, "Pick Color")
        if color.isValid():
            self.color = color
            self.color_changed.emit(color)


class ToolPalette(QFrame):
    """
    Vertical palette anchored to the middle of the left screen edge.

    Signals:
        tool_changed(object): New tool (ToolType) or None when deselected.
        color_changed(QColor): New annotation color.
    """

    tool_changed = Signal(object)
    color_changed = Signal(QColor)

    def __init__(self, color: QColor, scale: float = 0.5, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._scale = scale
        self._current_tool: Optional[ToolType] = None
        self._buttons: Dict[ToolType, QPushButton] = {}

        self.setObjectName("toolPalette")
        self.setCursor(Qt.CursorShape.ArrowCursor)
        self._setup_ui(color)

    def _px(self, value: float, minimum: int) -> int:
        return max(minimum, int(value * self._scale))

    def _setup_ui(self, color: QColor) -> None:
        self.setStyleSheet(f"""
            QFrame#toolPalette {{
                background: rgba(15, 23, 42, 217);
                border: 1px solid rgba(100, 180, 255, 51);
                border-radius: {self._px(14, 4)}px;
            }}
            QPushButton[tool="true"] {{
                background: rgba(30, 41, 59, 204);
                border: 1px solid rgba(255, 255, 255, 26);
                border-radius: {self._px(10, 4)}px;
            }}
            QPushButton[tool="true"]:hover {{
                background: rgba(6, 182, 212, 51);
                border-color: rgba(6, 182, 212, 102);
            }}
            QPushButton[tool="true"]:checked {{
                background: rgba(6, 182, 212, 77);
                border-color: #06b6d4;
            }}
        """)

        layout = QVBoxLayout(self)
        padding = self._px(10, 4)
        layout.setContentsMargins(padding, padding, padding, padding)
        layout.setSpacing(self._px(6, 2))

        self._color_button = ColorButton(color, self._px(32, 16), self)
        self._color_button.color_changed.connect(self._on_color_changed)
        layout.addWidget(self._color_button, 0, Qt.AlignmentFlag.AlignHCenter)

        extent = self._px(44, 22)
        icon_extent = self._px(24, 12)
        for tool in ToolType:
            button = QPushButton(self)
            button.setProperty("tool", True)
            button.setCheckable(True)
            button.setFixedSize(extent, extent)
            button.setIcon(create_tool_icon(tool, icon_extent))
            button.setIconSize(QSize(icon_extent, icon_extent))
            button.setToolTip(tool.label)
            button.clicked.connect(lambda checked=False, t=tool: self._on_tool_clicked(t))
            layout.addWidget(button)
            self._buttons[tool] = button

        self.adjustSize()

    # ─── State ────────────────────────────────────────────────────────────

    @property
    def current_tool(self) -> Optional[ToolType]:
        return self._current_tool

    @property
    def color(self) -> QColor:
        return self._color_button.color

    def set_tool(self, tool: Optional[ToolType]) -> None:
        """Select a tool (or none) without emitting tool_changed."""
        self._current_tool = tool
        for button_tool, button in self._buttons.items():
            button.setChecked(button_tool == tool)

    def place(self, viewport: QSize) -> None:
        """Move to the middle of the left edge of the viewport."""
        y = viewport.height() / 2 - PALETTE_NOMINAL_HEIGHT / 2 * self._scale
        self.move(PALETTE_MARGIN_X, max(0, int(y)))

    # ─── Handlers ─────────────────────────────────────────────────────────

    def _on_tool_clicked(self, tool: ToolType) -> None:
        new_tool = None if tool == self._current_tool else tool
        self.set_tool(new_tool)
        self._logger.debug(f"Tool selected: {new_tool.value if new_tool else 'none'}")
        self.tool_changed.emit(new_tool)

    def _on_color_changed(self, color: QColor) -> None:
        self._logger.debug(f"Color changed to {color.name()}")
        self.color_changed.emit(color)
