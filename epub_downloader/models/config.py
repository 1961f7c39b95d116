"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, field_validator

LOG_LEVELS = ("debug", "info", "warn", "error")
THEMES = ("dark", "light")


class AppConfig(BaseModel):
    """A validated configuration model for the application."""

    # Download Settings
    download_path: str = ""
    concurrent_downloads: int = 5
    rate_limit_rps: int = 10
    auto_open_after_download: bool = False

    # Interface
    theme: str = "dark"

    # Logging
    log_level: str = "info"
    log_path: str = ""
    pretty_log: bool = True

    # Storage
    database_path: str = ""
    cookies_path: str = ""

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("concurrent_downloads")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        """Ensures a reasonable number of simultaneous downloads."""
        if v < 1 or v > 20:
            raise ValueError("concurrent_downloads must be between 1 and 20")
        return v

    @field_validator("rate_limit_rps")
    @classmethod
    def validate_rate_limit(cls, v: int) -> int:
        if v < 1 or v > 100:
            raise ValueError("rate_limit_rps must be between 1 and 100")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.lower()
        if v not in LOG_LEVELS:
            raise ValueError("invalid log_level: must be debug, info, warn, or error")
        return v

    @field_validator("theme")
    @classmethod
    def validate_theme(cls, v: str) -> str:
        v = v.lower()
        if v not in THEMES:
            raise ValueError("invalid theme: must be dark or light")
        return v
