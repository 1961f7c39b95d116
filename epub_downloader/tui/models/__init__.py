"""
Screen models. Each owns its view state for the life of the process.
"""

from .auth import AuthModel
from .base import ScreenModel, SessionContext
from .home import HomeModel

__all__ = ["AuthModel", "HomeModel", "ScreenModel", "SessionContext"]
