"""
Runner Layer - Content-source implementations.

This module contains the runner interface and the individual source
implementations that adapt manga websites to the host's content API.
"""

from mangarunners.runners.base import BaseRunner, RunnerMetadata
from mangarunners.runners.common import (
    ContentId,
    TextCleaner,
    URLHelper,
    normalize_title,
)

__all__ = [
    # Base Runner Architecture
    "BaseRunner",
    "RunnerMetadata",
    # Runner Development Utilities
    "ContentId",
    "TextCleaner",
    "URLHelper",
    "normalize_title",
]
