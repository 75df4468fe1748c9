"""
Export service for Autonate.

Delivers the final composite either to the system clipboard or to a PNG
file in the configured save folder. Failures are logged and reported as a
False return value, never raised.
"""

import time
from pathlib import Path
from typing import Optional

from PySide6.QtCore import QObject
from PySide6.QtGui import QClipboard, QGuiApplication, QImage

from autonate.services.config_service import ConfigService
from autonate.services.logging_service import get_logger


ACTION_COPY = "copy"
ACTION_SAVE = "save"


def capture_filename(timestamp_ms: Optional[int] = None) -> str:
    """File name for a saved capture, e.g. autonate-capture-1700000000000.png."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"autonate-capture-{timestamp_ms}.png"


class ExportService(QObject):
    """Copies or saves rendered captures."""

    def __init__(self, config: ConfigService, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._config = config
        self.last_saved_path: Optional[Path] = None

    def export(self, image: QImage, action: str) -> bool:
        """
        Deliver an image with the given action.

        Args:
            image: The final composite.
            action: "copy" or "save". Anything else falls back to copy.

        Returns:
            True on success.
        """
        if action == ACTION_SAVE:
            return self.save_image(image)
        if action != ACTION_COPY:
            self._logger.warning(f"Unknown export action '{action}', copying instead")
        return self.copy_image(image)

    def copy_image(self, image: QImage) -> bool:
        """
        Put an image on the system clipboard.

        Returns:
            True if the clipboard accepted the image.
        """
        if image.isNull():
            self._logger.error("Nothing to copy: rendered image is empty")
            return False

        try:
            clipboard: QClipboard = QGuiApplication.clipboard()
            clipboard.setImage(image)
        except RuntimeError as e:
            self._logger.error(f"Failed to copy capture to clipboard: {e}")
            return False

        self._logger.info(f"Capture copied to clipboard ({image.width()}x{image.height()})")
        return True

    def save_image(self, image: QImage, folder: Optional[Path] = None) -> bool:
        """
        Save an image as a timestamped PNG.

        Args:
            image: The image to save.
            folder: Target folder. Defaults to the configured save folder.

        Returns:
            True if the file was written.
        """
        if image.isNull():
            self._logger.error("Nothing to save: rendered image is empty")
            return False

        save_folder = Path(folder or self._config.save_folder).expanduser()
        try:
            save_folder.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self._logger.error(f"Could not create save folder: {e}")
            return False

        filepath = save_folder / capture_filename()
        if not image.save(str(filepath), "PNG"):
            self._logger.error(f"Failed to save capture to: {filepath}")
            return False

        self.last_saved_path = filepath
        self._logger.info(f"Capture saved to: {filepath}")
        return True
