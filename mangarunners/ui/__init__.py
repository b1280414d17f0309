"""
UI Layer - Rich console and error display helpers for the CLI.
"""

from mangarunners.ui.console import get_console, setup_console
from mangarunners.ui.error_handler import ErrorHandler, display_warning, handle_error

__all__ = [
    "get_console",
    "setup_console",
    "ErrorHandler",
    "display_warning",
    "handle_error",
]
