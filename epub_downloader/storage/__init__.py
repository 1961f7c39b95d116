"""
Storage Layer.

This package handles all data persistence: the YAML configuration file and
the saved session cookies.
"""

from .config_manager import ConfigManager
from .cookie_store import CookieStore, parse_cookies

__all__ = ["ConfigManager", "CookieStore", "parse_cookies"]
