"""
Core Exceptions - Custom exception classes for mangarunners.

This module defines the exception hierarchy shared by the runners, the
configuration layer and the CLI.
"""

from typing import Optional, Any


class MangaRunnersError(Exception):
    """Base exception class for all mangarunners-specific errors."""

    def __init__(self, message: str, details: Optional[Any] = None):
        """
        Initialize mangarunners error.

        Args:
            message: Human-readable error message
            details: Additional error details for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        return self.message


class ConfigurationError(MangaRunnersError):
    """Raised when configuration-related errors occur."""

    def __init__(self, message: str, config_path: Optional[str] = None, details: Optional[Any] = None):
        super().__init__(message, details)
        self.config_path = config_path


class RunnerError(MangaRunnersError):
    """Raised when a runner cannot produce the requested content."""

    def __init__(self, message: str, runner_name: Optional[str] = None, details: Optional[Any] = None):
        """
        Initialize runner error.

        Args:
            message: Error description
            runner_name: Name of the runner that failed
            details: Additional error context
        """
        super().__init__(message, details)
        self.runner_name = runner_name


class NetworkError(MangaRunnersError):
    """Raised when network-related errors occur."""

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None, details: Optional[Any] = None):
        """
        Initialize network error.

        Args:
            message: Error description
            url: URL that caused the error
            status_code: HTTP status code if applicable
            details: Additional error context
        """
        super().__init__(message, details)
        self.url = url
        self.status_code = status_code


class ValidationError(MangaRunnersError):
    """Raised when data validation errors occur."""

    def __init__(self, message: str, field_name: Optional[str] = None, invalid_value: Optional[Any] = None, details: Optional[Any] = None):
        super().__init__(message, details)
        self.field_name = field_name
        self.invalid_value = invalid_value


class SearchError(MangaRunnersError):
    """Raised when search-related errors occur."""

    def __init__(self, message: str, query: Optional[str] = None, source: Optional[str] = None, details: Optional[Any] = None):
        """
        Initialize search error.

        Args:
            message: Error description
            query: Search query that caused the error
            source: Runner that failed
            details: Additional error context
        """
        super().__init__(message, details)
        self.query = query
        self.source = source


# Export all exception classes
__all__ = [
    "MangaRunnersError",
    "ConfigurationError",
    "RunnerError",
    "NetworkError",
    "ValidationError",
    "SearchError",
]
