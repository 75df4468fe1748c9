"""
Capture service for Autonate.

Supplies the image a focus session starts from: either a grab of the
screen under the cursor, or an image file given on the command line.
"""

from pathlib import Path
from typing import Optional

from PySide6.QtCore import QObject, QPoint, QRect, QTimer, Signal
from PySide6.QtGui import QCursor, QGuiApplication, QImage, QScreen

from autonate.services.logging_service import get_logger


# Delay before grabbing so the launching window can repaint
CAPTURE_DELAY_MS = 200


class CaptureService(QObject):
    """
    Service for acquiring the source image.

    Signals:
        capture_completed(QImage, QRect): Image and the screen geometry the
            editor should cover.
        capture_cancelled(): No image could be acquired.
    """

    capture_completed = Signal(QImage, QRect)
    capture_cancelled = Signal()

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)

    def capture_fullscreen(self, delay_ms: int = CAPTURE_DELAY_MS) -> None:
        """
        Capture the screen the cursor is on.

        The result is delivered through capture_completed.
        """
        self._logger.info("Starting fullscreen capture")
        QTimer.singleShot(delay_ms, self._do_fullscreen_capture)

    def _cursor_screen(self) -> Optional[QScreen]:
        cursor_pos: QPoint = QCursor.pos()
        for screen in QGuiApplication.screens():
            if screen.geometry().contains(cursor_pos):
                self._logger.debug(f"Cursor is on screen: {screen.name()}")
                return screen

        screen = QGuiApplication.primaryScreen()
        if screen is not None:
            self._logger.warning(
                f"Could not find cursor screen, using primary: {screen.name()}"
            )
        return screen

    def _do_fullscreen_capture(self) -> None:
        screen = self._cursor_screen()
        if screen is None:
            self._logger.error("No screen available for capture!")
            self.capture_cancelled.emit()
            return

        # grabWindow(0) captures the whole screen
        image = screen.grabWindow(0).toImage()
        if image.isNull():
            self._logger.error(f"Screen grab failed on {screen.name()}")
            self.capture_cancelled.emit()
            return

        self._logger.info(
            f"Fullscreen captured: {image.width()}x{image.height()} from {screen.name()}"
        )
        self.capture_completed.emit(image, screen.geometry())

    def load_image(self, path: Path) -> None:
        """
        Use an image file as the capture.

        The editor covers the screen under the cursor, with the image
        stretched to fit like a screen grab would be.
        """
        image = QImage(str(path))
        if image.isNull():
            self._logger.error(f"Could not load image: {path}")
            self.capture_cancelled.emit()
            return

        screen = self._cursor_screen()
        geometry = screen.geometry() if screen is not None else image.rect()
        self._logger.info(f"Loaded image {path} ({image.width()}x{image.height()})")
        self.capture_completed.emit(image, geometry)
