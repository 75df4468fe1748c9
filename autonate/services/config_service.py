"""
Configuration service for Autonate.

Loads, validates and persists user preferences. Preferences are stored as
JSON in ~/.config/autonate/config.json following the XDG Base Directory
Specification. The focus editor writes back the last used focus radius and
shape so the next capture starts where the user left off.
"""

import copy
import json
from pathlib import Path
from typing import Any, Dict, Optional

from autonate.services.logging_service import get_logger

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "autonate"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"

FOCUS_SHAPES = ("circle", "square", "rectangle", "custom-box")
DEFAULT_ACTIONS = ("copy", "save")

MIN_FOCUS_RADIUS = 25
MAX_FOCUS_RADIUS = 600
MIN_BLUR_RADIUS = 0
MAX_BLUR_RADIUS = 20
MIN_PALETTE_SCALE = 0.25
MAX_PALETTE_SCALE = 2.0

DEFAULT_CONFIG: Dict[str, Any] = {
    # Focus window shape used when a capture starts
    "shape": "circle",
    # Gaussian blur applied to everything outside the focus window
    "blur_radius": 8,
    # Radius of circle/square/rectangle focus windows, written back on change
    "focus_radius": 150,
    # What right-click does once locked: "copy" to clipboard or "save" to disk
    "default_action": "copy",
    # Scale factor for the floating tool palette
    "palette_scale": 0.5,
    # Initial annotation color
    "color": "#FF0055",
    # Initial stamp size for X / ? stamps and text
    "stamp_size": 24,
    "save_folder": str(Path.home() / "Pictures" / "Autonate"),
}


class ConfigService:
    """
    Service for managing Autonate preferences.

    Missing or corrupted files fall back to defaults. Values read through the
    typed properties are validated and clamped, so callers never see an
    out-of-range preference.
    """

    def __init__(self, config_path: Optional[Path] = None) -> None:
        """
        Initialize the ConfigService.

        Args:
            config_path: Optional path to config file. Defaults to
                        ~/.config/autonate/config.json
        """
        self._logger = get_logger(__name__)
        self._config_path = Path(config_path) if config_path else DEFAULT_CONFIG_FILE
        self._config: Dict[str, Any] = {}

        self._load()

    @property
    def config_path(self) -> Path:
        return self._config_path

    def _load(self) -> None:
        """Load configuration from file, using defaults if needed."""
        self._config = copy.deepcopy(DEFAULT_CONFIG)

        if not self._config_path.exists():
            self._logger.info(
                f"Config file not found at {self._config_path}. Using defaults."
            )
            self._save_to_file()
            return

        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                loaded_config = json.load(f)

            if not isinstance(loaded_config, dict):
                raise ValueError("Config file does not contain a valid JSON object")

            self._deep_merge(self._config, loaded_config)
            self._logger.info(f"Configuration loaded from {self._config_path}")
            # Persist any keys added since the file was written
            self._save_to_file()

        except (json.JSONDecodeError, ValueError) as e:
            self._logger.warning(
                f"Config file corrupted or invalid: {e}. Recreating with defaults."
            )
            self._config = copy.deepcopy(DEFAULT_CONFIG)
            self._save_to_file()

        except OSError as e:
            self._logger.warning(f"Could not read config file: {e}. Using defaults.")

    def _deep_merge(self, base: Dict, override: Dict) -> None:
        """Recursively merge override dict into base dict."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _save_to_file(self) -> None:
        try:
            self._config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._config_path, "w", encoding="utf-8") as f:
                json.dump(self._config, f, indent=2)
            self._logger.debug(f"Configuration saved to {self._config_path}")

        except OSError as e:
            self._logger.error(f"Could not save config file: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a raw configuration value.

        Args:
            key: The configuration key to retrieve.
            default: Default value if key doesn't exist.

        Returns:
            The configuration value, or default if not found.
        """
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value in memory. Call save() to persist it.
        """
        self._config[key] = value
        self._logger.debug(f"Config key '{key}' set to '{value}'")

    def save(self) -> None:
        """Persist current configuration to disk."""
        self._save_to_file()

    def _number(self, key: str, low: float, high: float, cast=int):
        value = self.get(key, DEFAULT_CONFIG[key])
        try:
            value = cast(value)
        except (TypeError, ValueError):
            self._logger.warning(f"Invalid value for '{key}': {value!r}. Using default.")
            value = DEFAULT_CONFIG[key]
        return max(low, min(high, value))

    def _choice(self, key: str, choices) -> str:
        value = self.get(key, DEFAULT_CONFIG[key])
        if value not in choices:
            self._logger.warning(f"Unknown value for '{key}': {value!r}. Using default.")
            return DEFAULT_CONFIG[key]
        return value

    # ─── Focus Settings ───────────────────────────────────────────────────

    @property
    def shape(self) -> str:
        """Focus window shape name, one of FOCUS_SHAPES."""
        return self._choice("shape", FOCUS_SHAPES)

    @property
    def blur_radius(self) -> int:
        """Backdrop blur radius, clamped to [0, 20]."""
        return self._number("blur_radius", MIN_BLUR_RADIUS, MAX_BLUR_RADIUS)

    @property
    def focus_radius(self) -> int:
        """Focus window radius, clamped to [25, 600]."""
        return self._number("focus_radius", MIN_FOCUS_RADIUS, MAX_FOCUS_RADIUS)

    def remember_focus(self, shape: Optional[str] = None, radius: Optional[int] = None) -> None:
        """
        Write back the focus shape and/or radius chosen during a session.

        Args:
            shape: New shape name, ignored if unknown.
            radius: New radius, clamped before saving.
        """
        if shape is not None and shape in FOCUS_SHAPES:
            self.set("shape", shape)
        if radius is not None:
            self.set("focus_radius", max(MIN_FOCUS_RADIUS, min(MAX_FOCUS_RADIUS, int(radius))))
        self.save()

    # ─── Annotation Settings ──────────────────────────────────────────────

    @property
    def color(self) -> str:
        return self.get("color", DEFAULT_CONFIG["color"])

    @property
    def stamp_size(self) -> int:
        return self._number("stamp_size", 4, 200)

    @property
    def palette_scale(self) -> float:
        """Tool palette scale factor."""
        return self._number("palette_scale", MIN_PALETTE_SCALE, MAX_PALETTE_SCALE, cast=float)

    # ─── Export Settings ──────────────────────────────────────────────────

    @property
    def default_action(self) -> str:
        """Export action on right-click once locked: "copy" or "save"."""
        return self._choice("default_action", DEFAULT_ACTIONS)

    @property
    def save_folder(self) -> str:
        return self.get("save_folder", DEFAULT_CONFIG["save_folder"])
