"""
Manages loading, validation, and first-run creation of the YAML configuration file.
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from epub_downloader.exceptions import (
    AppValidationError,
    ErrorCode,
    config_not_found,
    wrap,
)
from epub_downloader.models.config import AppConfig
from epub_downloader.utils import paths

log = logging.getLogger(__name__)


def default_config() -> AppConfig:
    """Builds a configuration with defaults resolved from the platform directories."""
    return AppConfig(
        download_path=str(paths.get_download_dir()),
        log_path=str(paths.get_default_log_path()),
        database_path=str(paths.get_database_path()),
        cookies_path=str(paths.get_cookies_file_path()),
    )


class ConfigManager:
    """Handles all operations related to the application's YAML config file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = Path(config_file_path)

    def load_config(self, overrides: dict[str, Any] | None = None) -> AppConfig:
        """
        Loads configuration from the YAML file, applies overrides, and validates it.

        A missing file is not fatal: a default configuration is written and
        returned.

        Args:
            overrides: Settings that take precedence over the file, e.g. from the
            command line.

        Returns:
            A validated AppConfig object.

        Raises:
            ConfigurationError: If the file cannot be read, parsed, or created.
            AppValidationError: If a setting is out of bounds.
        """
        if not self.config_file_path.is_file():
            log.info(str(config_not_found(str(self.config_file_path))))
            config = default_config()
            self.save_config(config)
            return self._apply_overrides(config, overrides)

        try:
            raw = self.config_file_path.read_text(encoding="utf-8")
        except OSError as e:
            raise wrap(e, ErrorCode.CONFIG, "failed to read config file") from e

        try:
            data = yaml.safe_load(raw) or {}
        except yaml.YAMLError as e:
            raise wrap(
                e,
                ErrorCode.CONFIG_INVALID_YAML,
                "failed to parse config file",
                f"The configuration file '{self.config_file_path}' is not valid YAML.",
            ) from e

        if not isinstance(data, dict):
            raise wrap(
                TypeError(f"expected a mapping, got {type(data).__name__}"),
                ErrorCode.CONFIG_INVALID_YAML,
                "failed to parse config file",
            )

        return self._validate({**data, **(overrides or {})})

    def save_config(self, config: AppConfig) -> None:
        """
        Writes the configuration file, creating its directory if needed.

        Raises:
            ConfigurationError: If the file cannot be written.
        """
        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as f:
                yaml.safe_dump(config.model_dump(), f, sort_keys=False)
        except OSError as e:
            raise wrap(e, ErrorCode.CONFIG, "failed to write config file") from e
        log.debug(f"Configuration saved to {self.config_file_path}")

    def _apply_overrides(
        self, config: AppConfig, overrides: dict[str, Any] | None
    ) -> AppConfig:
        if not overrides:
            return config
        return self._validate({**config.model_dump(), **overrides})

    def _validate(self, data: dict[str, Any]) -> AppConfig:
        known = {k: v for k, v in data.items() if k in AppConfig.model_fields}
        unknown = set(data) - set(known)
        if unknown:
            log.debug(f"Ignoring unknown configuration keys: {sorted(unknown)}")
        try:
            return AppConfig(**known)
        except ValidationError as e:
            raise AppValidationError(
                ErrorCode.VALIDATION,
                f"configuration validation failed:\n{e}",
                f"The configuration file '{self.config_file_path}' has invalid "
                "values. Check concurrent_downloads, rate_limit_rps, log_level "
                "and theme.",
                cause=e,
            ) from e
