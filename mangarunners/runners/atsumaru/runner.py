"""
Atsumaru Runner - Main runner implementation for atsu.moe

This module implements the Atsumaru runner that provides directory search,
home sections, content metadata, chapter listing and chapter page
resolution.
"""

import asyncio
import logging
import re
from typing import Any, Dict, List, Optional

from mangarunners.core.exceptions import MangaRunnersError, RunnerError
from mangarunners.core.models import (
    Chapter,
    ChapterData,
    Content,
    DirectoryRequest,
    Highlight,
    PagedResult,
    PageSection,
    SectionStyle,
)
from mangarunners.runners.base import BaseRunner, RunnerMetadata

from .api import AtsumaruAPI, FetchText
from .config import AtsumaruConfig, merge_with_defaults, validate_config
from .parser import AtsumaruParser, merge_chapter_lists, parse_series_id
from .search import QueryCache, SearchResolver


logger = logging.getLogger(__name__)


runner_metadata = RunnerMetadata(
    id="moe.atsu",
    name="Atsumaru",
    version="0.6.0",
    website="https://atsu.moe",
    supported_languages=["en_US"],
)

_POPULAR = re.compile(r"popular|featured", re.IGNORECASE)

# Transport errors and payloads that fail model validation
_CONTENT_ERRORS = (MangaRunnersError, ValueError, TypeError)


class AtsumaruRunner(BaseRunner):
    """
    Atsumaru runner for manga content from atsu.moe

    Searches run through SearchResolver; the remaining operations read the
    site's JSON API.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, fetch_text: Optional[FetchText] = None):
        """
        Initialize Atsumaru runner.

        Args:
            config: Runner configuration dictionary
            fetch_text: Text-fetch coroutine function; defaults to the
                runner's own aiohttp-backed `_get_text`
        """
        merged_config = merge_with_defaults(config)
        super().__init__(merged_config)

        self.runner_config: AtsumaruConfig = validate_config(merged_config)

        self.api = AtsumaruAPI(fetch_text or self._get_text, self.runner_config)
        self.parser = AtsumaruParser(
            base_url=self.runner_config.base_url,
            placeholder_cover=self.runner_config.placeholder_cover,
        )
        self.cache = QueryCache(max_results=self.runner_config.cache_size)
        self.resolver = SearchResolver(self.api, self.runner_config, self.parser, self.cache)

        logger.debug("Atsumaru runner initialized successfully")

    @property
    def metadata(self) -> RunnerMetadata:
        return runner_metadata

    @property
    def base_url(self) -> str:
        return self.runner_config.base_url

    async def get_directory(self, request: DirectoryRequest) -> PagedResult:
        """
        Search the catalogue, or list popular titles for a blank query.

        Never raises: failures produce a single placeholder result.
        """
        query = request.clean_query
        if not query:
            return await self._popular_directory()

        try:
            page_size = request.page_size or self.runner_config.default_per_page
            result = await self.resolver.search(query, request.page, page_size)
            if result is not None and result.results:
                return result
        except Exception as e:
            logger.error(f"Search failed for '{query}': {e}", exc_info=True)

        return PagedResult(
            results=[Highlight(
                id="atsu_no_results",
                title="No results found",
                cover=self.runner_config.placeholder_cover,
                subtitle=f'No manga found for "{query}"',
            )],
            is_last_page=True,
        )

    async def get_directory_config(self) -> Dict[str, Any]:
        """Directory configuration; this source exposes no filters."""
        return {"filters": []}

    async def _popular_directory(self) -> PagedResult:
        try:
            sections = await self._fetch_sections()
            chosen = next(
                (s for s in sections if _POPULAR.search(s.title) or s.style is SectionStyle.GALLERY),
                None,
            ) or next((s for s in sections if s.items), None)
            if chosen is not None and chosen.items:
                return PagedResult(results=chosen.items, is_last_page=True)
        except Exception as e:
            logger.warning(f"Failed to load popular titles: {e}")

        return PagedResult(
            results=[Highlight(
                id="top_searched",
                title="Top searched",
                cover=self.runner_config.placeholder_cover,
                subtitle="Browse popular titles from the homepage",
            )],
            is_last_page=True,
        )

    async def get_sections(self) -> List[PageSection]:
        """
        Get the home page sections.

        Falls back to a single "Top searched" section when the home page
        cannot be loaded.
        """
        try:
            sections = await self._fetch_sections()
            if sections:
                return sections
        except Exception as e:
            logger.warning(f"Failed to load home sections: {e}")

        return [PageSection(
            id="top_searched",
            title="Top searched",
            style=SectionStyle.PADDED_LIST,
            items=[Highlight(
                id="popular",
                title="Popular on Atsumaru",
                cover=self.runner_config.placeholder_cover,
                subtitle="Shows the popular/featured carousel from the homepage.",
            )],
        )]

    async def _fetch_sections(self) -> List[PageSection]:
        home = self.parser.extract_home_payload(await self.api.get_home_page())
        slugs = self.parser.home_item_ids(home)

        details = await asyncio.gather(
            *(self.api.get_manga_page(slug) for slug in slugs),
            return_exceptions=True,
        )
        detail_map = {
            slug: detail for slug, detail in zip(slugs, details)
            if isinstance(detail, dict)
        }
        logger.debug(f"Loaded details for {len(detail_map)}/{len(slugs)} home items")

        return self.parser.build_sections(home, detail_map)

    async def get_content(self, content_id: str) -> Content:
        """
        Get series metadata.

        Raises:
            ValidationError: If the id does not belong to this runner
            RunnerError: If the content is unavailable (the host may fall
                back to cached metadata)
        """
        slug = parse_series_id(content_id)

        try:
            manga = await self.api.get_manga_page(slug)
            await self._merge_info_chapters(slug, manga)
            content = self.parser.parse_content(manga)
            if content is not None:
                return content
        except _CONTENT_ERRORS as e:
            logger.warning(f"Detailed content request failed for '{slug}': {e}")

        try:
            home = self.parser.extract_home_payload(await self.api.get_home_page())
            content = self.parser.find_home_content(home, slug)
            if content is not None:
                return content
        except _CONTENT_ERRORS as e:
            logger.warning(f"Home page fallback failed for '{slug}': {e}")

        raise RunnerError("Content unavailable (offline)", runner_name=self.metadata.name)

    async def _merge_info_chapters(self, slug: str, manga: Dict[str, Any]) -> None:
        # The info endpoint sometimes has the correct chapter list when the
        # detailed one does not.
        try:
            info = await self.api.get_manga_info(slug)
        except MangaRunnersError as e:
            logger.debug(f"Info endpoint unavailable for '{slug}': {e}")
            return

        info_chapters = info.get("chapters")
        if isinstance(info_chapters, list) and info_chapters:
            detailed = manga.get("chapters") if isinstance(manga.get("chapters"), list) else []
            manga["chapters"] = merge_chapter_lists(detailed, info_chapters)

    async def get_chapters(self, content_id: str) -> List[Chapter]:
        """
        Get the full chapter list, newest first.

        Raises:
            RunnerError: If the first chapter page cannot be fetched
        """
        slug = parse_series_id(content_id)

        try:
            first = await self.api.get_chapter_page(slug, 0)
        except MangaRunnersError as e:
            raise RunnerError(
                "Chapters unavailable (offline)",
                runner_name=self.metadata.name,
                details=str(e),
            )

        collected = list(first.get("chapters") or [])
        try:
            total_pages = int(first.get("pages") or 0)
        except (TypeError, ValueError, OverflowError):
            total_pages = 0

        # Pages are zero-based; page 0 is already in hand
        for page in range(1, total_pages):
            try:
                data = await self.api.get_chapter_page(slug, page)
                collected.extend(data.get("chapters") or [])
            except MangaRunnersError as e:
                logger.warning(f"Skipping chapter page {page} for '{slug}': {e}")

        chapters = self.parser.parse_chapters(collected)
        logger.info(f"Found {len(chapters)} chapters for '{slug}'")
        return chapters

    async def get_chapter_data(self, content_id: str, chapter_id: str) -> ChapterData:
        """
        Resolve the page images of a chapter.

        Raises:
            RunnerError: If the reader payload is unavailable or has no
                readable pages
        """
        slug = parse_series_id(content_id)

        try:
            read_chapter = await self.api.get_read_chapter(slug, chapter_id)
        except MangaRunnersError as e:
            raise RunnerError(
                f"Failed to fetch chapter data for {chapter_id}",
                runner_name=self.metadata.name,
                details=str(e),
            )

        if not read_chapter:
            raise RunnerError(
                f"Failed to fetch chapter data for {chapter_id}",
                runner_name=self.metadata.name,
            )

        data = self.parser.parse_chapter_pages(read_chapter)
        if not data.pages:
            raise RunnerError(
                f"No readable pages in chapter {chapter_id}",
                runner_name=self.metadata.name,
            )
        return data

    def __repr__(self) -> str:
        return f"AtsumaruRunner(base_url='{self.base_url}', enabled={self.runner_config.enabled})"


__all__ = ["AtsumaruRunner", "runner_metadata"]
