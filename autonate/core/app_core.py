"""
Application core for Autonate.

This module contains the AppCore class which is responsible for:
- Initializing the services (config, capture, export)
- Starting a capture and opening a focus session on it
- Writing back the preferences a session changes
- Delivering the exported image and quitting afterwards
"""

from pathlib import Path
from typing import Optional

from PySide6.QtCore import QObject, QRect, Slot
from PySide6.QtGui import QImage
from PySide6.QtWidgets import QApplication

from autonate.core.capture_service import CaptureService
from autonate.core.export_service import ExportService
from autonate.core.focus_overlay import FocusOverlay
from autonate.editor.session import EditorSession
from autonate.services.config_service import ConfigService
from autonate.services.logging_service import get_logger


class AppCore(QObject):
    """
    Wires one capture-to-export run together.

    The flow is:
    1. CaptureService grabs the screen (or loads the given file)
    2. A new EditorSession and FocusOverlay are created for the image
    3. The overlay exports through ExportService or is dismissed
    4. The application quits once the overlay closes
    """

    def __init__(
        self,
        app: QApplication,
        image_path: Optional[Path] = None,
        config: Optional[ConfigService] = None,
        quit_on_close: bool = True,
    ) -> None:
        """
        Initialize the application core.

        Args:
            app: The QApplication instance.
            image_path: Optional image file to annotate instead of a screen grab.
            config: Optional preloaded ConfigService.
            quit_on_close: Quit the application when the session ends.
        """
        super().__init__()
        self._app = app
        self._logger = get_logger(__name__)
        self._image_path = image_path
        self._quit_on_close = quit_on_close

        self._config_service = config or ConfigService()
        self._capture_service = CaptureService(self)
        self._export_service = ExportService(self._config_service, self)
        self._session: Optional[EditorSession] = None
        self._overlay: Optional[FocusOverlay] = None

        self._connect_signals()
        self._logger.info("Autonate core initialized")

    def _connect_signals(self) -> None:
        self._capture_service.capture_completed.connect(self._on_capture_completed)
        self._capture_service.capture_cancelled.connect(self._on_capture_cancelled)

    def start(self) -> None:
        """Acquire the source image. The session opens when it arrives."""
        if self._image_path is not None:
            self._capture_service.load_image(self._image_path)
        else:
            self._capture_service.capture_fullscreen()

    # ─── Capture Flow Handlers ────────────────────────────────────────────

    @Slot(QImage, QRect)
    def _on_capture_completed(self, image: QImage, geometry: QRect) -> None:
        self._logger.info(f"Capture completed: {image.width()}x{image.height()}")
        self.open_session(image, geometry)

    @Slot()
    def _on_capture_cancelled(self) -> None:
        self._logger.info("Capture cancelled")
        self._finish()

    def open_session(self, image: QImage, geometry: QRect) -> FocusOverlay:
        """
        Start a focus session on an image.

        Args:
            image: The source image.
            geometry: Screen geometry the overlay covers.
        """
        config = self._config_service
        self._session = EditorSession.from_config(image, config)
        self._session.focus.radius_changed.connect(self._on_radius_changed)
        self._session.focus.shape_changed.connect(self._on_shape_changed)

        self._overlay = FocusOverlay(self._session, config.palette_scale)
        self._overlay.export_ready.connect(self._on_export_ready)
        self._overlay.closed.connect(self._on_session_closed)
        self._overlay.start(geometry)
        return self._overlay

    # ─── Preference write-back ────────────────────────────────────────────

    @Slot(int)
    def _on_radius_changed(self, radius: int) -> None:
        self._config_service.remember_focus(radius=radius)

    @Slot(str)
    def _on_shape_changed(self, shape: str) -> None:
        self._config_service.remember_focus(shape=shape)

    # ─── Export ───────────────────────────────────────────────────────────

    @Slot(QImage, str)
    def _on_export_ready(self, image: QImage, action: str) -> None:
        if not self._export_service.export(image, action):
            self._logger.warning(f"Export '{action}' failed, closing anyway")

    @Slot()
    def _on_session_closed(self) -> None:
        self._logger.info("Focus session closed")
        self._session = None
        self._overlay = None
        self._finish()

    def _finish(self) -> None:
        if self._quit_on_close:
            self._logger.info("Shutting down Autonate...")
            self._app.quit()

    # ─── Properties ───────────────────────────────────────────────────────

    @property
    def config(self) -> ConfigService:
        return self._config_service

    @property
    def export_service(self) -> ExportService:
        return self._export_service

    @property
    def session(self) -> Optional[EditorSession]:
        return self._session

    @property
    def overlay(self) -> Optional[FocusOverlay]:
        return self._overlay
