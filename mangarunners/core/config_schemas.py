"""
Configuration Schemas - Pydantic models for configuration validation.

This module defines the data structures and validation rules for
application settings and per-runner configuration using Pydantic models.
"""

import logging
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field, field_validator


logger = logging.getLogger(__name__)


class LoggingSettings(BaseModel):
    """Logging configuration settings."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level"
    )
    quiet_http: bool = Field(
        default=True,
        description="Reduce aiohttp log noise below WARNING"
    )


class DisplaySettings(BaseModel):
    """Terminal output settings for the CLI."""

    show_covers: bool = Field(
        default=False,
        description="Show cover URLs in result tables"
    )
    table_style: Literal["rounded", "simple", "minimal"] = Field(
        default="rounded",
        description="Style for data tables"
    )


class RunnerSettings(BaseModel):
    """Configuration for an individual runner."""

    enabled: bool = Field(
        default=True,
        description="Whether the runner is enabled"
    )
    config: Dict[str, Any] = Field(
        default_factory=dict,
        description="Runner-specific configuration"
    )

    @field_validator('config')
    @classmethod
    def validate_config(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        """Validate common runner configuration keys."""
        if 'rate_limit' in v and not isinstance(v['rate_limit'], (int, float)):
            raise ValueError("rate_limit must be a number")

        if 'timeout' in v and (not isinstance(v['timeout'], int) or v['timeout'] < 1):
            raise ValueError("timeout must be a positive integer")

        return v


class AppSettings(BaseModel):
    """Main application settings container."""

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    display: DisplaySettings = Field(default_factory=DisplaySettings)
    runners: Dict[str, RunnerSettings] = Field(
        default_factory=lambda: {"atsumaru": RunnerSettings()},
        description="Per-runner settings keyed by runner name"
    )

    def get_runner(self, name: str) -> Optional[RunnerSettings]:
        """Get settings for a specific runner."""
        return self.runners.get(name)


__all__ = [
    "LoggingSettings",
    "DisplaySettings",
    "RunnerSettings",
    "AppSettings",
]
