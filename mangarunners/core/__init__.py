"""
Core Layer - Data models, configuration and exceptions.

This module contains the host-facing data models, configuration handling and
the exception hierarchy shared by every runner.
"""

from mangarunners.core.config_manager import ConfigManager
from mangarunners.core.config_schemas import AppSettings, RunnerSettings
from mangarunners.core.exceptions import (
    MangaRunnersError,
    ConfigurationError,
    NetworkError,
    RunnerError,
    SearchError,
    ValidationError,
)
from mangarunners.core.models import (
    Chapter,
    ChapterData,
    ChapterPage,
    Content,
    DirectoryRequest,
    Highlight,
    PagedResult,
    PageSection,
    PublicationStatus,
    SectionStyle,
    Tag,
)

__all__ = [
    # Data Models
    "Chapter",
    "ChapterData",
    "ChapterPage",
    "Content",
    "DirectoryRequest",
    "Highlight",
    "PagedResult",
    "PageSection",
    "PublicationStatus",
    "SectionStyle",
    "Tag",
    # Configuration Management
    "ConfigManager",
    "AppSettings",
    "RunnerSettings",
    # Exceptions
    "MangaRunnersError",
    "ConfigurationError",
    "NetworkError",
    "RunnerError",
    "SearchError",
    "ValidationError",
]
