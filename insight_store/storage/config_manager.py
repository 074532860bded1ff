"""
Manages loading, validation, and migration of the INI configuration file.
"""

import configparser
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from insight_store.exceptions import ConfigurationError
from insight_store.models.config import StoreConfig

log = logging.getLogger(__name__)


class ConfigManager:
    """Handles all operations related to the storage layer's INI config file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser()

    def load_config(self, overrides: dict[str, Any] | None = None) -> StoreConfig:
        """
        Loads configuration from the INI file, applies overrides, and validates it.

        Args:
            overrides: A dictionary of options that take precedence over the file.

        Returns:
            A validated StoreConfig object.

        Raises:
            ConfigurationError: If the config file is missing, invalid, or validation
            fails.
        """
        if not self.config_file_path.is_file():
            raise ConfigurationError(
                f"Configuration file not found at '{self.config_file_path}'. "
                "Please run 'insight-store init' first."
            )

        try:
            self._parser.read(self.config_file_path)
            if self._migrate_if_needed():
                log.info("Configuration file was updated with new default values.")
            config_from_file = self._get_config_as_dict()
        except (configparser.Error, ValueError) as e:
            raise ConfigurationError(f"Error parsing configuration file: {e}") from e

        if overrides:
            config_from_file.update(overrides)

        try:
            return StoreConfig(
                **config_from_file, profile_dir=str(self.config_file_path.parent)
            )
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any] | None = None) -> None:
        """
        Creates and saves a new configuration file, filling every key the settings
        don't provide with its default.
        """
        settings = settings or {}
        config = configparser.ConfigParser()
        config["DEFAULT"] = {}

        defaults = StoreConfig.model_construct()
        for key in sorted(StoreConfig.get_ini_keys()):
            value = settings.get(key, getattr(defaults, key, None))
            config["DEFAULT"][key] = self._to_ini(value)

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                config.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    @staticmethod
    def _to_ini(value: Any) -> str:
        # An empty quota means "unbounded".
        return "" if value is None else str(value)

    def _get_config_as_dict(self) -> dict[str, Any]:
        """Reads the 'DEFAULT' section of the INI file into a dictionary."""
        section = self._parser["DEFAULT"]
        quota = section.get("quota_bytes", "").strip()
        return {
            "max_capacity": section.getint("max_capacity", 500),
            "warning_threshold": section.getint("warning_threshold", 450),
            "trash_retention_days": section.getint("trash_retention_days", 7),
            "data_minimization_window_days": section.getint(
                "data_minimization_window_days", 30
            ),
            "max_queries": section.getint("max_queries", 200),
            "prune_threshold_days": section.getint("prune_threshold_days", 30),
            "cache_ttl_hours": section.getint("cache_ttl_hours", 24),
            "system_log_limit": section.getint("system_log_limit", 50),
            "quota_bytes": int(quota) if quota else None,
        }

    def _migrate_if_needed(self) -> bool:
        """Adds missing default values to an existing config file."""
        defaults = StoreConfig.model_construct()
        needs_saving = False

        config_section = self._parser["DEFAULT"]

        for key in sorted(StoreConfig.get_ini_keys()):
            if key not in config_section:
                config_section[key] = self._to_ini(getattr(defaults, key))
                needs_saving = True
                log.debug(
                    f"Migrating config: added missing key '{key}' with "
                    f"value '{config_section[key]}'."
                )

        if needs_saving:
            try:
                with open(self.config_file_path, "w", encoding="utf-8") as f:
                    self._parser.write(f)
            except OSError as e:
                log.error(f"Could not save migrated configuration file: {e}")
                return False

        return needs_saving
