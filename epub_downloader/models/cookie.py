"""
Pydantic model for an imported browser session cookie.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class SameSite(str, Enum):
    """Cookie SameSite policy as written in browser cookie exports."""

    STRICT = "Strict"
    LAX = "Lax"
    NONE = "None"
    DEFAULT = "Default"


class SessionCookie(BaseModel):
    """A name/value credential plus its scoping attributes."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1)
    value: str = Field(min_length=1)
    domain: str = ""
    path: str = ""
    expires: str = ""
    max_age: int = Field(0, alias="maxAge")
    secure: bool = False
    http_only: bool = Field(False, alias="httpOnly")
    same_site: SameSite = Field(SameSite.DEFAULT, alias="sameSite")

    @field_validator(
        "domain", "path", "max_age", "secure", "http_only", mode="before"
    )
    @classmethod
    def null_to_default(cls, v: Any, info: ValidationInfo) -> Any:
        """Treats an explicit null attribute as if it were absent."""
        if v is None:
            return cls.model_fields[info.field_name].default
        return v

    @field_validator("same_site", mode="before")
    @classmethod
    def coerce_same_site(cls, v: Any) -> SameSite:
        """Maps unknown or missing policies to the default one."""
        if isinstance(v, SameSite):
            return v
        try:
            return SameSite(v)
        except ValueError:
            return SameSite.DEFAULT

    @field_validator("expires", mode="before")
    @classmethod
    def coerce_expires(cls, v: Any) -> str:
        # Some exporters write a unix timestamp instead of a date string
        if v is None:
            return ""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @property
    def key(self) -> tuple[str, str, str]:
        """Identity used when comparing cookie sets."""
        return (self.name, self.value, self.domain)

    def to_wire(self) -> dict[str, Any]:
        """Serializes to the import format, omitting empty attributes."""
        data = self.model_dump(
            mode="json", by_alias=True, exclude_defaults=True, exclude={"same_site"}
        )
        data["sameSite"] = self.same_site.value
        return data
