"""
Autonate - focus and annotate a screenshot.

This is the main entry point for the application.
Run with: python -m autonate.app [IMAGE]

Without IMAGE the screen under the cursor is captured.
"""

import argparse
import fcntl
import os
import signal
import sys
from pathlib import Path
from typing import List, Optional

from PySide6.QtCore import QTimer
from PySide6.QtWidgets import QApplication

from autonate import __version__
from autonate.core.app_core import AppCore
from autonate.services.logging_service import get_logger, setup_logging


# Lock file for single-instance enforcement
LOCK_FILE = Path.home() / ".cache" / "autonate" / "autonate.lock"

_app: Optional[QApplication] = None
_lock_fd: Optional[int] = None
_should_quit = False


def acquire_single_instance_lock(lock_file: Path = LOCK_FILE) -> bool:
    """
    Acquire a file lock so only one focus session runs at a time.

    Returns:
        True if the lock was acquired, False if another instance holds it.
    """
    global _lock_fd

    lock_file.parent.mkdir(parents=True, exist_ok=True)
    try:
        lock_fd = os.open(str(lock_file), os.O_CREAT | os.O_RDWR)
        fcntl.flock(lock_fd, fcntl.LOCK_EX | fcntl.LOCK_NB)

        os.ftruncate(lock_fd, 0)
        os.write(lock_fd, str(os.getpid()).encode())

        # The lock lives as long as the descriptor stays open
        _lock_fd = lock_fd
        return True
    except OSError:
        return False


def request_quit(signum, frame) -> None:
    """Signal handler, the quit itself happens on the Qt side."""
    global _should_quit
    _should_quit = True


def check_for_quit() -> None:
    """Timer callback to check if we should quit."""
    if _should_quit and _app is not None:
        get_logger(__name__).info("Signal received, quitting...")
        _app.quit()


def parse_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="autonate",
        description="Capture the screen, focus on a region and annotate it.",
    )
    parser.add_argument(
        "image",
        nargs="?",
        type=Path,
        help="annotate this image instead of capturing the screen",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="logging level (DEBUG, INFO, WARNING, ...)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for Autonate.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    global _app

    args = parse_args(sys.argv[1:] if argv is None else argv)

    setup_logging(args.log_level)
    logger = get_logger(__name__)

    try:
        logger.info(f"Starting Autonate {__version__}...")

        if not acquire_single_instance_lock():
            logger.warning("Another Autonate session is already running. Exiting.")
            return 1

        _app = QApplication(sys.argv[:1])
        _app.setApplicationName("Autonate")
        _app.setOrganizationName("Autonate")
        _app.setApplicationVersion(__version__)

        signal.signal(signal.SIGINT, request_quit)
        signal.signal(signal.SIGTERM, request_quit)

        # Qt's event loop blocks Python signal handlers, poll for them
        quit_timer = QTimer()
        quit_timer.timeout.connect(check_for_quit)
        quit_timer.start(100)

        core = AppCore(_app, image_path=args.image)
        core.start()

        logger.info("Autonate initialization complete. Entering event loop...")
        exit_code = _app.exec()

        logger.info(f"Autonate exiting with code {exit_code}")
        return exit_code

    except Exception as e:
        logger.critical(f"Fatal error during startup: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
