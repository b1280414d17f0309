"""
Configuration Manager - JSON-based settings management.

This module loads, validates and persists the application settings file,
replacing a corrupted file with defaults after backing it up.
"""

import json
import logging
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from mangarunners.core.config_schemas import AppSettings, RunnerSettings
from mangarunners.core.exceptions import ConfigurationError


logger = logging.getLogger(__name__)


class ConfigManager:
    """
    Manages application configuration with JSON persistence and validation.
    """

    def __init__(self, config_dir: Optional[Union[str, Path]] = None):
        """
        Initialize configuration manager.

        Args:
            config_dir: Directory containing configuration files.
                       Defaults to './config' if not specified.
        """
        self.config_dir = Path(config_dir or "config")
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self._settings_file = self.config_dir / "settings.json"

        self._lock = Lock()
        self._settings: Optional[AppSettings] = None

        try:
            self._settings = self._load_settings()
            logger.info("Configuration loaded successfully")
        except OSError as e:
            logger.error(f"Failed to load configuration: {e}")
            raise ConfigurationError(
                f"Configuration loading failed: {e}",
                config_path=str(self._settings_file)
            )

    def _load_settings(self) -> AppSettings:
        """Load and validate application settings."""
        if not self._settings_file.exists():
            logger.info("Settings file not found, creating default configuration")
            settings = AppSettings()
            self._save_settings(settings)
            return settings

        try:
            with open(self._settings_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return AppSettings.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Invalid settings file, using defaults: {e}")
            backup_path = self._settings_file.with_suffix('.json.backup')
            self._settings_file.replace(backup_path)
            logger.info(f"Corrupted settings backed up to {backup_path}")

            settings = AppSettings()
            self._save_settings(settings)
            return settings

    def _save_settings(self, settings: AppSettings) -> None:
        """Write settings to disk."""
        with open(self._settings_file, 'w', encoding='utf-8') as f:
            json.dump(settings.model_dump(mode='json'), f, indent=2)

    @property
    def settings(self) -> AppSettings:
        """Get current application settings."""
        with self._lock:
            return self._require_settings()

    def _require_settings(self) -> AppSettings:
        if self._settings is None:
            raise ConfigurationError(
                "Configuration has not been loaded",
                config_path=str(self._settings_file)
            )
        return self._settings

    def get_runner_config(self, runner_name: str) -> Dict[str, Any]:
        """
        Get the runner-specific configuration dictionary.

        Args:
            runner_name: Runner key, e.g. "atsumaru"

        Returns:
            Configuration dictionary (empty when the runner has no entry)
        """
        runner = self.settings.get_runner(runner_name)
        return dict(runner.config) if runner else {}

    def update_runner_config(self, runner_name: str, config: Dict[str, Any]) -> None:
        """
        Merge new values into a runner's configuration and persist them.

        Raises:
            ConfigurationError: If the resulting configuration is invalid
        """
        with self._lock:
            settings = self._require_settings()
            current = settings.runners.get(runner_name) or RunnerSettings()
            merged = {**current.config, **config}
            try:
                settings.runners[runner_name] = RunnerSettings(
                    enabled=current.enabled, config=merged
                )
            except ValidationError as e:
                raise ConfigurationError(
                    f"Invalid configuration for runner '{runner_name}': {e}",
                    config_path=str(self._settings_file),
                )
            self._save_settings(settings)

        logger.debug(f"Updated configuration for runner '{runner_name}'")


__all__ = ["ConfigManager"]
