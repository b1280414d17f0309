"""
Atsumaru Runner Configuration

This module handles configuration validation and defaults for the Atsumaru runner.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from mangarunners.core.exceptions import ConfigurationError


logger = logging.getLogger(__name__)


class AtsumaruConfig(BaseModel):
    """Configuration model for the Atsumaru runner."""

    enabled: bool = Field(default=True, description="Enable/disable the runner")
    timeout: int = Field(default=30, description="Request timeout in seconds")
    max_retries: int = Field(default=0, ge=0, description="Transport-level retries per request")
    rate_limit: float = Field(default=0.0, ge=0.0, description="Minimum seconds between requests")

    base_url: str = Field(default="https://atsu.moe", description="Site base URL")
    search_path: str = Field(
        default="/collections/manga/documents/search",
        description="Full-text search endpoint path"
    )

    # Pagination
    default_per_page: int = Field(default=24, description="Page size when the host sends none")
    min_per_page: int = Field(default=12, ge=1, description="Smallest accepted page size")
    max_per_page: int = Field(default=48, ge=1, description="Largest accepted page size")

    # Search resolution
    transient_retries: int = Field(default=2, ge=0, le=5, description="Extra page-1 attempts after an empty result")
    strategy_timeout: Optional[float] = Field(default=None, description="Per-strategy timeout in seconds")
    cache_size: int = Field(default=50, ge=0, description="Results kept in the last-query cache")

    placeholder_cover: str = Field(default="/assets/atsu_logo.png", description="Cover used when none is available")

    user_agent: str = Field(
        default="Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/138.0.0.0 Safari/537.36",
        description="User agent string for requests"
    )

    @field_validator('timeout')
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        if v < 5:
            raise ValueError("Timeout must be at least 5 seconds")
        return v

    @field_validator('strategy_timeout')
    @classmethod
    def validate_strategy_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("Strategy timeout must be positive")
        return v

    @field_validator('base_url')
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        return v.rstrip('/')

    @model_validator(mode='after')
    def validate_page_bounds(self) -> 'AtsumaruConfig':
        """Ensure the page size bounds are consistent."""
        if self.min_per_page > self.max_per_page:
            raise ValueError("min_per_page cannot exceed max_per_page")
        if not self.min_per_page <= self.default_per_page <= self.max_per_page:
            logger.warning(
                f"default_per_page {self.default_per_page} outside "
                f"[{self.min_per_page}, {self.max_per_page}], clamping"
            )
            self.default_per_page = self.clamp_per_page(self.default_per_page)
        return self

    def clamp_per_page(self, per_page: Any) -> int:
        """
        Bound a requested page size to the configured range.

        Unparseable or zero values fall back to the default page size.
        """
        try:
            value = int(per_page)
        except (TypeError, ValueError):
            value = 0
        if value <= 0:
            value = self.default_per_page
        return max(self.min_per_page, min(self.max_per_page, value))

    @property
    def search_url(self) -> str:
        return f"{self.base_url}{self.search_path}"


def get_default_config() -> Dict[str, Any]:
    """Get default configuration for the Atsumaru runner."""
    return AtsumaruConfig().model_dump()


def validate_config(config: Dict[str, Any]) -> AtsumaruConfig:
    """
    Validate and create AtsumaruConfig from dictionary.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    try:
        return AtsumaruConfig(**config)
    except ValueError as e:
        logger.error(f"Invalid Atsumaru configuration: {e}")
        raise ConfigurationError(f"Invalid Atsumaru configuration: {e}", details=config)


def merge_with_defaults(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Merge provided config with defaults.

    Args:
        config: User configuration dictionary

    Returns:
        Merged configuration dictionary
    """
    merged = get_default_config()
    if config:
        merged.update(config)
    return merged
