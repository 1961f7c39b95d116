"""
Pydantic models for the profile returned by the session validation endpoint.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class Subscription(BaseModel):
    """Subscription entitlement attached to a user profile."""

    active: bool = False
    type: str = ""
    expires_at: Optional[datetime] = None


class UserProfile(BaseModel):
    """The signed-in user, as reported by ``/api/v1/me/``."""

    id: str = ""
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    username: str = ""
    subscription: Subscription = Field(default_factory=Subscription)
    created_at: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        """The API has returned both numeric and string identifiers."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @property
    def display_name(self) -> str:
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.username or self.email
