"""
O'Reilly Learning API Layer.

This package handles all communication with the O'Reilly Learning API.
"""

from .client import APIClient, APIResponse
from .rate_limiter import RateLimiter

__all__ = ["APIClient", "APIResponse", "RateLimiter"]
