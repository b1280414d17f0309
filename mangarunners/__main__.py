"""
Main Entry Point - allows running the CLI with `python -m mangarunners`.
"""

from mangarunners.cli.main import cli_main

if __name__ == "__main__":
    cli_main()
