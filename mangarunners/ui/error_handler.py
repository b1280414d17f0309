"""
Error Handler - Rich error panels with context and suggestions.

This module renders mangarunners exceptions consistently across CLI commands.
"""

from typing import List, Optional

from rich.panel import Panel

from mangarunners.core.exceptions import (
    ConfigurationError,
    MangaRunnersError,
    NetworkError,
    RunnerError,
    SearchError,
    ValidationError,
)
from mangarunners.ui.console import get_console


class ErrorHandler:
    """Handles error display with consistent formatting and helpful context."""

    def __init__(self):
        self.console = get_console()

    def handle_error(self, error: Exception, context: Optional[str] = None, show_traceback: bool = False) -> None:
        """
        Display an error with appropriate formatting.

        Args:
            error: Exception to handle
            context: Additional context about where the error occurred
            show_traceback: Whether to show the full traceback
        """
        if not isinstance(error, MangaRunnersError):
            self._handle_generic_error(error, context, show_traceback)
            return

        title, lines, suggestions = self._describe(error)
        parts = [f"[error]{error.message}[/error]", *lines]
        if context:
            parts.append(f"\n[muted]Context:[/muted] {context}")

        if suggestions:
            parts.append("\n\n[info]Suggestions:[/info]")
            parts.extend(f"• {s}" for s in suggestions)

        if show_traceback and error.details:
            parts.append(f"\n\n[muted]Details:[/muted]\n{error.details}")

        self.console.print(Panel("\n".join(parts), title=title, border_style="red", padding=(1, 2)))

    def _describe(self, error: MangaRunnersError):
        lines: List[str] = []

        if isinstance(error, ConfigurationError):
            if error.config_path:
                lines.append(f"\n[muted]Configuration file:[/muted] [cyan]{error.config_path}[/cyan]")
            return "Configuration Error", lines, [
                "Check configuration file syntax and format",
                "Delete the settings file to regenerate defaults",
            ]

        if isinstance(error, NetworkError):
            if error.url:
                lines.append(f"\n[muted]URL:[/muted] [blue]{error.url}[/blue]")
            if error.status_code:
                lines.append(f"\n[muted]Status Code:[/muted] {error.status_code}")
            suggestions = ["Check your internet connection", "Try again in a few moments"]
            if error.status_code and error.status_code >= 500:
                suggestions.insert(0, "The source server is experiencing issues")
            return "Network Error", lines, suggestions

        if isinstance(error, RunnerError):
            if error.runner_name:
                lines.append(f"\n[muted]Runner:[/muted] [cyan]{error.runner_name}[/cyan]")
            return "Runner Error", lines, [
                "The source may be offline or the content removed",
                "Retry later or use cached data",
            ]

        if isinstance(error, SearchError):
            if error.query:
                lines.append(f"\n[muted]Query:[/muted] '{error.query}'")
            return "Search Error", lines, ["Try a different or shorter query"]

        if isinstance(error, ValidationError):
            if error.field_name:
                lines.append(f"\n[muted]Field:[/muted] {error.field_name} = {error.invalid_value!r}")
            return "Invalid Input", lines, []

        return "Error", lines, []

    def _handle_generic_error(self, error: Exception, context: Optional[str], show_traceback: bool) -> None:
        parts = [f"[error]{type(error).__name__}: {error}[/error]"]
        if context:
            parts.append(f"\n[muted]Context:[/muted] {context}")
        self.console.print(Panel("\n".join(parts), title="Unexpected Error", border_style="red", padding=(1, 2)))
        if show_traceback:
            self.console.print_exception()

    def display_warning(self, message: str, title: str = "Warning") -> None:
        self.console.print(Panel(f"[warning]{message}[/warning]", title=title, border_style="yellow"))


_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    global _error_handler
    if _error_handler is None:
        _error_handler = ErrorHandler()
    return _error_handler


def handle_error(error: Exception, context: Optional[str] = None, show_traceback: bool = False) -> None:
    """Display an error using the global error handler."""
    get_error_handler().handle_error(error, context, show_traceback)


def display_warning(message: str, title: str = "Warning") -> None:
    get_error_handler().display_warning(message, title)
