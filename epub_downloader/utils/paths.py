"""
Resolves the platform-standard directories used for configuration, data,
and downloads.
"""

import os
from pathlib import Path

APP_NAME = "epub-downloader"


def _base_dir(windows_var: str, xdg_var: str, xdg_default: str) -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv(windows_var, "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv(xdg_var) or xdg_default)
    return base_dir.expanduser()


def get_config_dir() -> Path:
    """$XDG_CONFIG_HOME/epub-downloader, or %APPDATA% on Windows."""
    return _base_dir("APPDATA", "XDG_CONFIG_HOME", "~/.config") / APP_NAME


def get_data_dir() -> Path:
    """$XDG_DATA_HOME/epub-downloader, or %LOCALAPPDATA% on Windows."""
    return _base_dir("LOCALAPPDATA", "XDG_DATA_HOME", "~/.local/share") / APP_NAME


def get_download_dir() -> Path:
    return Path("~/Books/OReilly").expanduser()


def get_config_file_path() -> Path:
    return get_config_dir() / "config.yaml"


def get_cookies_file_path() -> Path:
    return get_config_dir() / "cookies.json"


def get_database_path() -> Path:
    return get_data_dir() / "app.db"


def get_default_log_path() -> Path:
    return get_data_dir() / "app.log"
