"""
CLI Main Application - Typer app for exercising runners from a terminal.

Commands map one-to-one onto runner operations: search, info, chapters,
pages and home.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, Type

import typer
from rich import box
from rich.table import Table

from mangarunners import __version__
from mangarunners.core import ConfigManager, DirectoryRequest, SearchError
from mangarunners.core.exceptions import MangaRunnersError
from mangarunners.runners.atsumaru import AtsumaruRunner
from mangarunners.runners.base import BaseRunner
from mangarunners.ui import display_warning, get_console, handle_error


logger = logging.getLogger(__name__)

RUNNERS: Dict[str, Type[BaseRunner]] = {
    "atsumaru": AtsumaruRunner,
}

app = typer.Typer(
    name="mangarunners",
    help="Manga content-source runners",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)

console = get_console()


class _State:
    config_manager: Optional[ConfigManager] = None
    debug: bool = False
    runner_name: str = "atsumaru"


state = _State()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"[title]mangarunners[/title] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-v",
        help="Show version information and exit",
        callback=_version_callback, is_eager=True,
    ),
    config_dir: Optional[Path] = typer.Option(
        None, "--config-dir",
        help="Configuration directory path",
        file_okay=False, dir_okay=True,
    ),
    runner: str = typer.Option("atsumaru", "--runner", "-r", help="Runner to use"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """
    Search and browse manga sources through their runners.
    """
    try:
        state.config_manager = ConfigManager(config_dir)
    except MangaRunnersError as e:
        handle_error(e, "During startup")
        raise typer.Exit(1)

    state.debug = debug
    _setup_logging(debug, state.config_manager.settings.logging.level, state.config_manager.settings.logging.quiet_http)

    if runner not in RUNNERS:
        display_warning(f"Unknown runner '{runner}'. Available: {', '.join(RUNNERS)}")
        raise typer.Exit(2)
    state.runner_name = runner


def _setup_logging(debug: bool, level_name: str = "INFO", quiet_http: bool = True) -> None:
    """
    Set up application logging.

    Args:
        debug: Force DEBUG level
        level_name: Configured level when not in debug mode
        quiet_http: Raise aiohttp loggers to WARNING
    """
    level = logging.DEBUG if debug else getattr(logging, level_name, logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    if quiet_http and not debug:
        logging.getLogger("aiohttp").setLevel(logging.WARNING)


def _build_runner() -> BaseRunner:
    runner_cls = RUNNERS[state.runner_name]
    config: Dict[str, Any] = {}
    if state.config_manager is not None:
        config = state.config_manager.get_runner_config(state.runner_name)
    return runner_cls(config)


def _run(operation: Callable[[BaseRunner], Awaitable[None]], context: str) -> None:
    async def runner_scope() -> None:
        async with _build_runner() as runner:
            await operation(runner)

    try:
        asyncio.run(runner_scope())
    except KeyboardInterrupt:
        console.print("\n[warning]Cancelled by user[/warning]")
        raise typer.Exit(130)
    except Exception as e:
        handle_error(e, context, show_traceback=state.debug)
        raise typer.Exit(1)


def _table(title: str) -> Table:
    style = state.config_manager.settings.display.table_style if state.config_manager else "rounded"
    box_obj = getattr(box, style.upper(), box.ROUNDED)
    return Table(title=title, box=box_obj, title_style="title", header_style="bold cyan", show_lines=False)


@app.command()
def search(
    query: str = typer.Argument(..., help="Title to search for"),
    page: int = typer.Option(1, "--page", "-p", min=1, help="Page number"),
    per_page: Optional[int] = typer.Option(None, "--per-page", "-n", help="Results per page"),
) -> None:
    """
    Search the source directory.

    Examples:

        mangarunners search "one piece"

        mangarunners search "solo leveling" --page 2 --per-page 12
    """
    if not query.strip():
        handle_error(SearchError("Search query cannot be empty", query=query))
        raise typer.Exit(1)

    show_covers = state.config_manager.settings.display.show_covers if state.config_manager else False

    async def operation(runner: BaseRunner) -> None:
        result = await runner.get_directory(
            DirectoryRequest(query=query, page=page, page_size=per_page)
        )
        table = _table(f"Results for '{query.strip()}' (page {page})")
        table.add_column("#", justify="right", style="muted")
        table.add_column("Title", style="bold")
        table.add_column("ID", style="cyan")
        table.add_column("Match", style="muted")
        if show_covers:
            table.add_column("Cover", style="muted")

        for i, item in enumerate(result.results, 1):
            row = [str(i), item.title, item.id, item.subtitle or ""]
            if show_covers:
                row.append(item.cover)
            table.add_row(*row)

        console.print(table)
        footer = "last page" if result.is_last_page else f"more results on page {page + 1}"
        console.print(f"[muted]{len(result.results)} results, {footer}[/muted]")

    _run(operation, "During search")


@app.command()
def info(content_id: str = typer.Argument(..., help="Content id, e.g. atsu|<slug>")) -> None:
    """Show series metadata."""

    async def operation(runner: BaseRunner) -> None:
        content = await runner.get_content(content_id)
        console.print(f"[title]{content.title}[/title]")
        if content.creators:
            console.print(f"[muted]By[/muted] {', '.join(content.creators)}")
        if content.status:
            console.print(f"[muted]Status:[/muted] {content.status}")
        if content.tags:
            console.print(f"[muted]Tags:[/muted] {', '.join(t.title for t in content.tags)}")
        console.print(f"[muted]Cover:[/muted] {content.cover}")
        console.print()
        console.print(content.summary)

    _run(operation, f"Loading content {content_id}")


@app.command()
def chapters(
    content_id: str = typer.Argument(..., help="Content id, e.g. atsu|<slug>"),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", min=1, help="Show only the newest N chapters"),
) -> None:
    """List chapters, newest first."""

    async def operation(runner: BaseRunner) -> None:
        items = await runner.get_chapters(content_id)
        table = _table(f"Chapters of {content_id}")
        table.add_column("No.", justify="right")
        table.add_column("Title", style="bold")
        table.add_column("Date", style="muted")
        table.add_column("ID", style="cyan")

        for chapter in items[:limit] if limit else items:
            table.add_row(f"{chapter.number:g}", chapter.title, chapter.date.strftime("%Y-%m-%d"), chapter.chapter_id)

        console.print(table)
        console.print(f"[muted]{len(items)} chapters[/muted]")

    _run(operation, f"Loading chapters of {content_id}")


@app.command()
def pages(
    content_id: str = typer.Argument(..., help="Content id, e.g. atsu|<slug>"),
    chapter_id: str = typer.Argument(..., help="Chapter id"),
) -> None:
    """Print the page image URLs of a chapter."""

    async def operation(runner: BaseRunner) -> None:
        data = await runner.get_chapter_data(content_id, chapter_id)
        for page_image in data.pages:
            console.print(page_image.url, highlight=False)

    _run(operation, f"Loading chapter {chapter_id}")


@app.command()
def home() -> None:
    """Show the home page sections."""

    async def operation(runner: BaseRunner) -> None:
        if not isinstance(runner, AtsumaruRunner):
            display_warning(f"Runner '{state.runner_name}' has no home sections")
            return
        for section in await runner.get_sections():
            table = _table(section.title)
            table.add_column("Title", style="bold")
            table.add_column("ID", style="cyan")
            table.add_column("Latest", style="muted")
            for item in section.items:
                table.add_row(item.title, item.id, item.subtitle or "")
            console.print(table)

    _run(operation, "Loading home sections")


def cli_main() -> None:
    """Main entry point for the CLI application."""
    app()


__all__ = ["app", "cli_main"]
