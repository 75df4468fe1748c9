"""
Logging service for Autonate.

Centralised logging setup shared by every module. Records go to the console
and, unless disabled, to a dated file in ~/.local/share/autonate/logs/.
The level can be overridden with the AUTONATE_LOG_LEVEL environment variable.
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional, Union


DEFAULT_LOG_DIR = Path.home() / ".local" / "share" / "autonate" / "logs"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_LEVEL_ENV = "AUTONATE_LOG_LEVEL"

_logging_initialized = False


def resolve_log_level(log_level: Union[int, str]) -> int:
    """
    Turn a level name or number into a logging level.

    The AUTONATE_LOG_LEVEL environment variable wins over the argument.
    Unknown names resolve to INFO.
    """
    override = os.environ.get(LOG_LEVEL_ENV)
    if override:
        log_level = override

    if isinstance(log_level, int):
        return log_level

    level = logging.getLevelName(str(log_level).upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(
    log_level: Union[int, str] = logging.INFO,
    log_to_file: bool = True,
    log_dir: Optional[Path] = None,
) -> None:
    """
    Configure the root logger for Autonate.

    Args:
        log_level: Level number or name (e.g. "DEBUG").
        log_to_file: Whether to also write a dated log file.
        log_dir: Directory for log files. Defaults to ~/.local/share/autonate/logs/

    Only the first call has any effect.
    """
    global _logging_initialized

    if _logging_initialized:
        return

    level = resolve_log_level(log_level)
    log_dir = log_dir or DEFAULT_LOG_DIR
    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_to_file:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            log_path = log_dir / f"autonate_{datetime.now().strftime('%Y%m%d')}.log"

            file_handler = logging.FileHandler(log_path, encoding="utf-8")
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

        except (OSError, PermissionError) as e:
            console_handler.setLevel(logging.WARNING)
            root_logger.warning(f"Could not create log file: {e}. Logging to console only.")

    _logging_initialized = True


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module.

    Args:
        name: Usually the calling module's __name__.

    Returns:
        The named Logger.
    """
    return logging.getLogger(name)
