"""
Fullscreen focus overlay for Autonate.

This module provides the frameless window a focus session runs in. It
shows the frozen capture, forwards pointer, wheel and key input to the
InteractionRouter and hosts the inline text editor and the tool palette.

The workflow is:
1. Move the focus window with the mouse, resize it with the wheel
2. Right-click (or draw a custom box) to lock it
3. Annotate with the palette tools
4. Right-click again to export, Escape to discard
"""

from typing import Optional

from PySide6.QtCore import QPointF, QRect, Qt, Signal
from PySide6.QtGui import QColor, QCursor, QImage, QPainter
from PySide6.QtWidgets import QWidget

from autonate.editor.interaction import InteractionRouter
from autonate.editor.renderer import FocusRenderer
from autonate.editor.session import EditorSession
from autonate.editor.text_overlay import TextEditController
from autonate.editor.tool_palette import ToolPalette
from autonate.editor.tools import create_tool_cursor
from autonate.services.logging_service import get_logger


class FocusOverlay(QWidget):
    """
    Fullscreen window for one editor session.

    Signals:
        export_ready(QImage, str): Final composite and the export action.
        closed(): The session ended, with or without export.
    """

    export_ready = Signal(QImage, str)
    closed = Signal()

    def __init__(
        self,
        session: EditorSession,
        palette_scale: float = 0.5,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._session = session
        self._closing = False

        self._renderer = FocusRenderer(session.source, self.size(), session.focus, session.store)
        self._text_editor = TextEditController(session.store, self)
        self._router = InteractionRouter(session, self._text_editor, self)

        self._palette = ToolPalette(session.color, palette_scale, self)
        self._palette.set_tool(session.tool)
        self._palette.hide()

        self._setup_window()
        self._connect_signals()
        self._update_cursor()

    def _setup_window(self) -> None:
        """Configure the overlay window properties."""
        self.setWindowFlags(
            Qt.WindowType.FramelessWindowHint
            | Qt.WindowType.WindowStaysOnTopHint
        )
        self.setAttribute(Qt.WidgetAttribute.WA_DeleteOnClose)
        self.setAttribute(Qt.WidgetAttribute.WA_OpaquePaintEvent)
        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)

    def _connect_signals(self) -> None:
        self._router.redraw_requested.connect(self.repaint)
        self._router.cursor_changed.connect(self._update_cursor)
        self._router.tool_changed.connect(self._palette.set_tool)
        self._router.export_requested.connect(self._export)
        self._router.close_requested.connect(self.end_session)

        self._palette.tool_changed.connect(self._router.set_tool)
        self._palette.color_changed.connect(self._router.set_color)

        self._session.focus.locked.connect(self._on_locked)
        self._session.focus.shape_changed.connect(lambda _shape: self._update_cursor())

    # ─── Accessors ────────────────────────────────────────────────────────

    @property
    def session(self) -> EditorSession:
        return self._session

    @property
    def router(self) -> InteractionRouter:
        return self._router

    @property
    def renderer(self) -> FocusRenderer:
        return self._renderer

    @property
    def text_editor(self) -> TextEditController:
        return self._text_editor

    @property
    def palette(self) -> ToolPalette:
        return self._palette

    # ─── Lifecycle ────────────────────────────────────────────────────────

    def start(self, geometry: QRect) -> None:
        """Cover the given screen geometry and take focus."""
        self.setGeometry(geometry)
        self._renderer.set_viewport_size(geometry.size())
        self.showFullScreen()
        self.raise_()
        self.activateWindow()
        self.setFocus()
        self._logger.info(f"Focus overlay shown, geometry: {geometry}")

    def end_session(self) -> None:
        """Discard the session and close the window."""
        if self._closing:
            return
        self._closing = True
        self._text_editor.cancel()
        self._session.end()
        self.closed.emit()
        self.close()

    def _export(self, action: str) -> None:
        try:
            image = self._renderer.render_to_image()
            self._logger.info(f"Rendered export {image.width()}x{image.height()} ({action})")
            self.export_ready.emit(image, action)
        finally:
            self.end_session()

    def _on_locked(self, center: QPointF) -> None:
        self._palette.place(self.size())
        self._palette.show()
        self._palette.raise_()
        self._update_cursor()

    def _update_cursor(self) -> None:
        session = self._session
        if not session.focus.is_locked:
            if session.focus.is_custom_box:
                self.setCursor(QCursor(Qt.CursorShape.CrossCursor))
            else:
                self.setCursor(QCursor(Qt.CursorShape.BlankCursor))
            return
        self.setCursor(create_tool_cursor(session.tool, session.color, session.stamp_size))

    # ─── Qt events ────────────────────────────────────────────────────────

    def paintEvent(self, event) -> None:
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor(0, 0, 0))
        if not self._session.ended:
            self._renderer.paint(
                painter, self._router.pointer, hidden_id=self._text_editor.editing_id
            )
        painter.end()

    def resizeEvent(self, event) -> None:
        self._renderer.set_viewport_size(self.size())
        super().resizeEvent(event)

    def mousePressEvent(self, event) -> None:
        self._router.mouse_press(event.position(), event.button())

    def mouseMoveEvent(self, event) -> None:
        self._router.mouse_move(event.position())

    def mouseReleaseEvent(self, event) -> None:
        self._router.mouse_release(event.position(), event.button())

    def wheelEvent(self, event) -> None:
        self._router.wheel(event.angleDelta().y())
        event.accept()

    def contextMenuEvent(self, event) -> None:
        # Right-click is handled on press
        event.accept()

    def keyPressEvent(self, event) -> None:
        if self._router.key_press(event.key(), event.modifiers()):
            event.accept()
        else:
            super().keyPressEvent(event)

    def focusNextPrevChild(self, next: bool) -> bool:
        # Tab cycles focus shapes instead of widget focus
        return False

    def closeEvent(self, event) -> None:
        if not self._closing:
            self._closing = True
            self._session.end()
            self.closed.emit()
        super().closeEvent(event)

