"""
Console Management - Centralized Rich console configuration.
"""

from typing import Optional

from rich.console import Console
from rich.theme import Theme


# Styles referenced by the CLI and error panels
DEFAULT_THEME = Theme({
    "error": "bold red",
    "warning": "yellow",
    "info": "cyan",
    "muted": "dim",
    "title": "bold magenta",
})

_console: Optional[Console] = None


def setup_console(force_terminal: Optional[bool] = None, width: Optional[int] = None) -> Console:
    """
    Set up and configure the global Rich console.

    Args:
        force_terminal: Force terminal mode detection
        width: Console width override

    Returns:
        Configured Rich Console instance
    """
    global _console

    console_kwargs = {
        "theme": DEFAULT_THEME,
        "force_terminal": force_terminal,
        "color_system": "auto",
    }
    if width is not None:
        console_kwargs["width"] = width

    _console = Console(**console_kwargs)
    return _console


def get_console() -> Console:
    """Get the global Rich console instance, creating a default one if needed."""
    global _console

    if _console is None:
        _console = setup_console()

    return _console
