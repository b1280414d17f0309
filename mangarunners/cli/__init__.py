"""
CLI Layer - Typer commands for running searches and lookups from a terminal.
"""

from mangarunners.cli.main import app, cli_main

__all__ = ["app", "cli_main"]
