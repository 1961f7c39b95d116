"""
Terminal user interface.

``App`` is the screen state machine, ``Program`` runs it on an asyncio loop
and renders it with Rich.
"""

from .app import App
from .messages import Screen
from .runtime import Program
from .styles import build_theme

__all__ = ["App", "Program", "Screen", "build_theme"]
