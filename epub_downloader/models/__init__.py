"""
Data Models Layer.

This package contains Pydantic models that define the core data structures
used throughout the application: configuration, session cookies, and the
user profile.
"""

from .config import AppConfig
from .cookie import SameSite, SessionCookie
from .profile import Subscription, UserProfile

__all__ = ["AppConfig", "SameSite", "SessionCookie", "Subscription", "UserProfile"]
