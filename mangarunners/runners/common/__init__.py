"""
Common utilities for runner development.

This package contains shared helpers used across multiple runners.
"""

from .utils import (
    ContentId,
    TextCleaner,
    URLHelper,
    normalize_title,
    parse_date_like,
    parse_timestamp,
)

__all__ = [
    "ContentId",
    "TextCleaner",
    "URLHelper",
    "normalize_title",
    "parse_date_like",
    "parse_timestamp",
]
