"""
settings.py

Persistent default configuration for seqlayout.

Handles cross-platform settings storage using TOML format with platformdirs
for proper user config directory detection.  The persisted values are the
starting point for every diagram; ``%%{init}%%`` / ``%%{config}%%``
directives in a diagram then override them.

Settings file location:
    - Windows: %APPDATA%/seqlayout/settings.toml
    - macOS: ~/Library/Application Support/seqlayout/settings.toml
    - Linux: ~/.config/seqlayout/settings.toml

Default values are documented in comments throughout this file.
If settings.toml is corrupted, these defaults will be used.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

import platformdirs

# TOML reading - use tomllib for Python 3.11+, tomli for earlier versions
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

from sequence.config import DiagramConfig

log = logging.getLogger(__name__)

APP_NAME = "seqlayout"

# Global settings manager instance (singleton)
_settings_manager: Optional["SettingsManager"] = None


def get_settings() -> "SettingsManager":
    """Get the global settings manager instance.

    Returns:
        The singleton SettingsManager instance.
    """
    global _settings_manager
    if _settings_manager is None:
        _settings_manager = SettingsManager()
    return _settings_manager


# =============================================================================
# General Settings
# =============================================================================

@dataclass
class GeneralSettings:
    """Diagram-wide settings.

    Defaults:
        theme: "default"
        log_level: 5 (fatal)
        wrap: False
    """
    theme: str = "default"  # Default: "default"
    log_level: int = 5      # Default: 5 (fatal only)
    wrap: bool = False      # Default: no automatic wrapping


@dataclass
class FontSettings:
    """Font used to measure message, note and label text.

    Defaults:
        family: '"trebuchet ms", verdana, arial'
        size: 16
        weight: 400
    """
    family: str = '"trebuchet ms", verdana, arial'
    size: float = 16        # Default: 16 pixels
    weight: int = 400       # Default: 400 (normal)


@dataclass
class SequenceSettings:
    """Sequence diagram layout settings.

    Defaults:
        diagram_margin_x: 50
        diagram_margin_y: 10
        actor_margin: 50
        width: 150
        height: 65
        box_margin: 10
        box_text_margin: 5
        note_margin: 10
        message_margin: 35
        mirror_actors: True
        bottom_margin_adj: 1
        activation_width: 10
        text_placement: "tspan"
    """
    diagram_margin_x: float = 50    # Default: 50 pixels
    diagram_margin_y: float = 10    # Default: 10 pixels
    actor_margin: float = 50        # Default: 50 pixels between actor boxes
    width: float = 150              # Default: 150 pixel actor box width
    height: float = 65              # Default: 65 pixel actor box height
    box_margin: float = 10          # Default: 10 pixels around block frames
    box_text_margin: float = 5      # Default: 5 pixels
    note_margin: float = 10         # Default: 10 pixels inside notes
    message_margin: float = 35      # Default: 35 pixels between messages
    mirror_actors: bool = True      # Default: repeat actors at the bottom
    bottom_margin_adj: float = 1    # Default: 1 pixel
    activation_width: float = 10    # Default: 10 pixels
    text_placement: str = "tspan"   # Default: "tspan" (one of tspan, fo, old)


# =============================================================================
# Main App Settings
# =============================================================================

@dataclass
class AppSettings:
    """Application settings with default values.

    Attributes:
        general: Theme, log level and wrapping.
        font: Text measurement font.
        sequence: Layout margins and sizes.
    """
    general: GeneralSettings = field(default_factory=GeneralSettings)
    font: FontSettings = field(default_factory=FontSettings)
    sequence: SequenceSettings = field(default_factory=SequenceSettings)


def _read_section(target: Any, data: Dict[str, Any]) -> None:
    """Copy known keys of one TOML table onto a settings dataclass."""
    for f in fields(target):
        if f.name in data:
            setattr(target, f.name, data[f.name])


def _section_dict(source: Any) -> Dict[str, Any]:
    return {f.name: getattr(source, f.name) for f in fields(source)}


# =============================================================================
# Settings Manager
# =============================================================================

class SettingsManager:
    """Manages loading, saving, and accessing seqlayout settings.

    Settings are stored in a TOML file at the platform-appropriate location.
    If the settings file doesn't exist, defaults are used and the file is
    created on first save.

    Args:
        app_name: Application name used for the config directory.
    """

    def __init__(self, app_name: str = APP_NAME):
        self.settings_dir = Path(platformdirs.user_config_dir(app_name))
        self.settings_file = self.settings_dir / "settings.toml"
        self.settings = self.load()
        self._needs_save = not self.settings_file.exists()  # Save if file didn't exist

    def ensure_file_complete(self) -> None:
        """Ensure settings file exists with all sections. Call once at startup."""
        if self._needs_save or not self.settings_file.exists():
            self.save()
            self._needs_save = False

    def load(self) -> AppSettings:
        """Load settings from the TOML file.

        Returns:
            AppSettings instance with values from file or defaults if file
            doesn't exist or is invalid.
        """
        if not self.settings_file.exists():
            return AppSettings()

        try:
            with open(self.settings_file, "rb") as f:
                data = tomllib.load(f)

            return self._parse_toml(data)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            # If file is corrupted or invalid, return defaults
            log.warning("Ignoring unreadable settings file %s: %s", self.settings_file, exc)
            return AppSettings()

    def _parse_toml(self, data: Dict[str, Any]) -> AppSettings:
        """Parse TOML data into AppSettings.

        Args:
            data: Parsed TOML dictionary.

        Returns:
            AppSettings instance populated from TOML data.
        """
        settings = AppSettings()
        _read_section(settings.general, data.get("general", {}))
        _read_section(settings.font, data.get("font", {}))
        _read_section(settings.sequence, data.get("sequence", {}))
        return settings

    def save(self) -> None:
        """Save current settings to the TOML file.

        Creates the settings directory if it doesn't exist.
        """
        self.settings_dir.mkdir(parents=True, exist_ok=True)

        data = self._to_toml_dict()

        with open(self.settings_file, "wb") as f:
            tomli_w.dump(data, f)

    def _to_toml_dict(self) -> Dict[str, Any]:
        """Convert settings to a TOML-compatible dictionary structure.

        Returns:
            Dictionary organized by TOML sections.
        """
        s = self.settings
        return {
            "general": _section_dict(s.general),
            "font": _section_dict(s.font),
            "sequence": _section_dict(s.sequence),
        }

    def to_toml(self) -> str:
        """Convert current settings to a TOML-formatted string.

        Returns:
            TOML representation of the current settings.
        """
        data = self._to_toml_dict()
        return tomli_w.dumps(data)

    def diagram_config(self) -> DiagramConfig:
        """Build the base :class:`DiagramConfig` for a new diagram.

        Returns:
            A config carrying the persisted general, font and layout values.

        Raises:
            ConfigParseError: If a persisted value has the wrong type.
        """
        s = self.settings
        payload: Dict[str, Any] = {
            "theme": s.general.theme,
            "logLevel": s.general.log_level,
            "wrap": s.general.wrap,
            "fontFamily": s.font.family,
            "fontSize": s.font.size,
            "fontWeight": s.font.weight,
            "sequence": {
                "diagramMarginX": s.sequence.diagram_margin_x,
                "diagramMarginY": s.sequence.diagram_margin_y,
                "actorMargin": s.sequence.actor_margin,
                "width": s.sequence.width,
                "height": s.sequence.height,
                "boxMargin": s.sequence.box_margin,
                "boxTextMargin": s.sequence.box_text_margin,
                "noteMargin": s.sequence.note_margin,
                "messageMargin": s.sequence.message_margin,
                "mirrorActors": s.sequence.mirror_actors,
                "bottomMarginAdj": s.sequence.bottom_margin_adj,
                "activationWidth": s.sequence.activation_width,
                "textPlacement": s.sequence.text_placement,
            },
        }
        return DiagramConfig.from_dict(payload)

    def get_settings_path(self) -> Path:
        """Get the path to the settings file.

        Returns:
            Path object pointing to the settings file location.
        """
        return self.settings_file
