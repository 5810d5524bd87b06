"""Configuration file locations.

- System: /etc/devlog/config.yaml (%PROGRAMDATA% on Windows)
- User: $XDG_CONFIG_HOME/devlog, ~/.config/devlog, or ~/.devlog (%APPDATA% on Windows)
- Project: <storage root>/.devlog/config.yaml
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

CONFIG_FILENAME = "config.yaml"
APP_NAME = "devlog"
SHORT_NAME = ".devlog"


def get_system_config_path() -> Path | None:
    if sys.platform == "win32":
        program_data = os.environ.get("PROGRAMDATA")
        if program_data:
            return Path(program_data) / APP_NAME / CONFIG_FILENAME
        return None
    return Path("/etc") / APP_NAME / CONFIG_FILENAME


def get_user_config_path() -> Path | None:
    if sys.platform == "win32":
        app_data = os.environ.get("APPDATA")
        if app_data:
            return Path(app_data) / APP_NAME / CONFIG_FILENAME
        return None

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / APP_NAME / CONFIG_FILENAME

    home = Path.home()
    if (home / ".config").exists():
        return home / ".config" / APP_NAME / CONFIG_FILENAME
    return home / SHORT_NAME / CONFIG_FILENAME


def get_project_config_path(root: str | os.PathLike[str]) -> Path:
    return Path(root) / SHORT_NAME / CONFIG_FILENAME


def get_config_paths(root: str | os.PathLike[str] | None = None) -> list[Path]:
    """Config paths from lowest to highest priority (system, user, project)."""
    paths: list[Path] = []
    for path in (get_system_config_path(), get_user_config_path()):
        if path:
            paths.append(path)
    if root is not None:
        paths.append(get_project_config_path(root))
    return paths
