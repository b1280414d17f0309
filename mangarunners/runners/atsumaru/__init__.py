"""
Atsumaru Runner - Manga content source for atsu.moe

This runner provides ranked full-text search, home sections, series
metadata, chapter listing and chapter page resolution for atsu.moe.
"""

from .runner import AtsumaruRunner, runner_metadata
from .config import AtsumaruConfig, get_default_config, validate_config
from .search import FetchOutcome, OutcomeStatus, QueryCache, SearchResolver

__all__ = [
    "AtsumaruRunner",
    "runner_metadata",
    "AtsumaruConfig",
    "get_default_config",
    "validate_config",
    "FetchOutcome",
    "OutcomeStatus",
    "QueryCache",
    "SearchResolver",
]
