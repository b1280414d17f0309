"""
Atsumaru Data Parser

This module turns Atsumaru API payloads into host models: series content,
chapter lists, chapter pages and home page sections.
"""

import json
import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urlparse, urlunparse

from pydantic import ValidationError

from mangarunners.core.models import (
    Chapter,
    ChapterData,
    ChapterPage,
    Content,
    Highlight,
    PageSection,
    PublicationStatus,
    SectionStyle,
    Tag,
)
from mangarunners.runners.common import ContentId, URLHelper, parse_date_like, parse_timestamp


logger = logging.getLogger(__name__)


NAMESPACE = "atsu"

_HOME_BLOB = re.compile(r"window\.homePage\s*=\s*(\{[\s\S]*?\});")
_REPEATED_POSTERS = re.compile(r"(/static/posters/)+", re.IGNORECASE)
_BARE_POSTERS = re.compile(r"^/posters/", re.IGNORECASE)

# Section types rendered on the home page
HOME_SECTION_TYPES = ("carousel", "slideshow")


def build_series_id(slug: str) -> str:
    return ContentId.build(NAMESPACE, slug)


def parse_series_id(content_id: str) -> str:
    """
    Extract the series slug from a content id.

    Raises:
        ValidationError: If the id does not belong to this runner
    """
    _, slug = ContentId.parse(content_id, NAMESPACE)
    return slug


def normalize_poster_url(path: Optional[str], base_url: str) -> str:
    """
    Resolve a poster reference to an absolute URL under /static/posters/.

    Args:
        path: Absolute URL, site-relative path or bare "posters/..." path
        base_url: Site base URL

    Returns:
        Absolute URL, or "" when there is no usable reference
    """
    if not path or not str(path).strip():
        return ""

    url = str(path).strip()
    if not URLHelper.is_absolute(url):
        url = f"{base_url.rstrip('/')}/{url.lstrip('/')}"

    parsed = urlparse(url)
    if parsed.netloc == urlparse(base_url).netloc:
        clean_path = _BARE_POSTERS.sub("/static/posters/", parsed.path)
        clean_path = _REPEATED_POSTERS.sub("/static/posters/", clean_path)
        url = urlunparse(parsed._replace(path=clean_path))

    return url


def merge_chapter_lists(detailed: Optional[List[Any]], info: Optional[List[Any]]) -> List[Dict[str, Any]]:
    """
    Merge two raw chapter lists, newest first.

    Detailed entries replace info entries sharing the same id.
    """
    merged: Dict[str, Dict[str, Any]] = {}
    for position, chapter in enumerate([*(info or []), *(detailed or [])]):
        if not isinstance(chapter, dict):
            continue
        key = _first_present(chapter, "id", "chapterId", "_id", "number", "index")
        merged[str(key) if key is not None else f"#{position}"] = chapter

    ordered = list(merged.values())
    # Id descending is the tie-break, then a stable sort by index/number descending
    ordered.sort(key=lambda c: str(c.get("id") or ""), reverse=True)
    ordered.sort(key=lambda c: _as_float(_first_present(c, "index", "number")), reverse=True)
    return ordered


def _first_present(data: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def _as_float(value: Any, default: float = 0.0) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


class AtsumaruParser:
    """Parser for Atsumaru API responses."""

    def __init__(self, base_url: str = "https://atsu.moe", placeholder_cover: str = "/assets/atsu_logo.png"):
        """
        Initialize parser.

        Args:
            base_url: Base URL for constructing full URLs
            placeholder_cover: Cover used when a record has no image
        """
        self.base_url = base_url.rstrip('/')
        self.placeholder_cover = placeholder_cover

    def cover_for(self, path: Optional[str]) -> str:
        return normalize_poster_url(path, self.base_url) or self.placeholder_cover

    def parse_content(self, manga: Dict[str, Any]) -> Optional[Content]:
        """
        Parse a detailed series payload.

        Returns:
            Content, or None when the payload has no title
        """
        title = manga.get("englishTitle") or manga.get("title")
        if not title:
            return None

        poster = manga.get("poster")
        poster_path = None
        if isinstance(poster, dict):
            if poster.get("image"):
                poster_path = poster["image"]
            elif poster.get("id"):
                poster_path = f"/static/{poster['id']}"
        elif isinstance(poster, str):
            poster_path = poster

        authors = manga.get("authors") or []
        status = manga.get("status")

        return Content(
            title=title,
            cover=self.cover_for(poster_path),
            summary=manga.get("synopsis") or f'No description available for "{title}"',
            creators=[a["name"] for a in authors if isinstance(a, dict) and a.get("name")],
            status=PublicationStatus.from_text(status) if isinstance(status, str) and status else None,
            tags=self._parse_tags(manga.get("tags") or manga.get("genres")),
            chapters=self.parse_chapters(manga.get("chapters") or []),
        )

    def find_home_content(self, home: Dict[str, Any], slug: str) -> Optional[Content]:
        """Build minimal content from a home page item matching the slug."""
        for item in self._iter_home_items(home):
            if (item.get("id") or item.get("slug")) == slug and item.get("title"):
                title = item["title"]
                summary = item.get("synopsis") or item.get("description") or item.get("summary")
                return Content(
                    title=title,
                    cover=self.cover_for(item.get("banner") or item.get("image")),
                    summary=summary or f'No description available for "{title}"',
                    tags=self._parse_tags(item.get("tags")),
                )
        return None

    def _parse_tags(self, raw_tags: Any) -> List[Tag]:
        tags = []
        for tag in raw_tags if isinstance(raw_tags, list) else []:
            if isinstance(tag, dict) and tag.get("name"):
                tags.append(Tag(id=str(tag.get("id") or tag["name"]), title=tag["name"]))
            elif isinstance(tag, str) and tag:
                tags.append(Tag(id=tag, title=tag))
        return tags

    def parse_chapters(self, raw_chapters: List[Dict[str, Any]]) -> List[Chapter]:
        """
        Convert raw chapter records into a newest-first chapter list.

        Args:
            raw_chapters: Chapter dictionaries collected from all pages

        Returns:
            List of Chapter models
        """
        collected = [c for c in raw_chapters if isinstance(c, dict)]
        if not collected:
            return []

        has_index = any(c.get("index") is not None for c in collected)
        has_number = any(c.get("number") is not None for c in collected)

        if has_index:
            ordered = sorted(collected, key=lambda c: _as_float(c.get("index")), reverse=True)
        elif has_number:
            ordered = sorted(collected, key=lambda c: _as_float(c.get("number")), reverse=True)
        else:
            ordered = list(reversed(collected))

        chapters = []
        for position, raw in enumerate(ordered):
            try:
                chapter_id = str(
                    _first_present(raw, "id", "_id", "slug", "title") or position
                )
                if raw.get("number") is not None:
                    number = _as_float(raw["number"], position + 1)
                elif has_index and raw.get("index") is not None:
                    number = _as_float(raw["index"], position + 1)
                else:
                    number = float(position + 1)

                chapters.append(Chapter(
                    chapter_id=chapter_id,
                    number=number,
                    title=raw.get("title") or f"Chapter {number:g}",
                    date=self._chapter_date(raw, position),
                    index=position,
                    page_count=int(_as_float(_first_present(raw, "pageCount", "pages"))),
                ))
            except ValidationError as e:
                logger.warning(f"Failed to create Chapter: {e}")
                continue

        logger.debug(f"Parsed {len(chapters)} chapters")
        return chapters

    @staticmethod
    def _chapter_date(raw: Dict[str, Any], position: int) -> datetime:
        date = parse_date_like(raw.get("createdAt")) or parse_date_like(raw.get("publishedAt"))
        if date is None and raw.get("timestamp") is not None:
            date = parse_timestamp(raw["timestamp"])
        if date is None:
            # Keeps undated chapters in list order
            date = datetime.fromtimestamp(position, tz=timezone.utc)
        return date

    def parse_chapter_pages(self, read_chapter: Dict[str, Any]) -> ChapterData:
        """Resolve reader pages to absolute image URLs."""
        raw_pages = read_chapter.get("pages")
        pages = []
        for position, page in enumerate(raw_pages if isinstance(raw_pages, list) else []):
            if not isinstance(page, dict) or not isinstance(page.get("image"), str) or not page["image"]:
                continue
            try:
                pages.append(ChapterPage(
                    url=URLHelper.make_absolute(page["image"], f"{self.base_url}/"),
                    width=page.get("width"),
                    height=page.get("height"),
                ))
            except ValidationError as e:
                logger.warning(f"Skipping malformed page {position}: {e.error_count()} errors")
                continue
        return ChapterData(pages=pages)

    @staticmethod
    def extract_home_payload(text: str) -> Dict[str, Any]:
        """
        Decode the home page payload.

        Accepts the JSON API response or an HTML page assigning
        `window.homePage`. Returns {} when neither decodes.
        """
        if not text:
            return {}

        match = _HOME_BLOB.search(text)
        try:
            data = json.loads(match.group(1) if match else text)
        except json.JSONDecodeError:
            logger.debug("Home page payload is not valid JSON")
            return {}

        if isinstance(data, dict) and isinstance(data.get("homePage"), dict):
            data = data["homePage"]
        return data if isinstance(data, dict) else {}

    @staticmethod
    def _iter_home_items(home: Dict[str, Any]) -> Iterable[Dict[str, Any]]:
        for section in home.get("sections") or []:
            if not isinstance(section, dict):
                continue
            for item in section.get("items") or []:
                if isinstance(item, dict):
                    yield item

    def home_item_ids(self, home: Dict[str, Any]) -> List[str]:
        """Unique item slugs across all home sections, in first-seen order."""
        ids = (item.get("id") or item.get("slug") for item in self._iter_home_items(home))
        return list(dict.fromkeys(i for i in ids if i))

    def build_sections(self, home: Dict[str, Any], details: Optional[Dict[str, Dict[str, Any]]] = None) -> List[PageSection]:
        """
        Build home page sections from carousel and slideshow blocks.

        Args:
            home: Decoded home page payload
            details: Detailed series payloads keyed by slug, used for posters

        Returns:
            Sections with at least one item
        """
        details = details or {}
        images = {}
        for item in self._iter_home_items(home):
            slug = item.get("id") or item.get("slug")
            if slug and item.get("image"):
                images[slug] = item["image"]

        sections = []
        for raw in home.get("sections") or []:
            if not isinstance(raw, dict) or raw.get("type") not in HOME_SECTION_TYPES:
                continue

            items = []
            for item in raw.get("items") or []:
                slug = item.get("id") or item.get("slug") if isinstance(item, dict) else None
                if not slug:
                    continue
                poster = self._detail_poster(details.get(slug)) or images.get(slug) or item.get("banner")
                chapter = item.get("chapter") if isinstance(item.get("chapter"), dict) else {}
                items.append(Highlight(
                    id=build_series_id(slug),
                    title=item.get("title") or "Series",
                    cover=self.cover_for(poster),
                    subtitle=chapter.get("title") or None,
                ))

            if not items:
                continue

            is_slideshow = raw.get("type") == "slideshow"
            title = raw.get("title") or ("Featured" if is_slideshow else "Browse")
            sections.append(PageSection(
                id=raw.get("key") or re.sub(r"\s+", "_", title.lower()),
                title=title,
                style=SectionStyle.GALLERY if is_slideshow else SectionStyle.STANDARD_GRID,
                items=items,
            ))

        return sections

    @staticmethod
    def _detail_poster(detail: Optional[Dict[str, Any]]) -> Optional[str]:
        if not isinstance(detail, dict):
            return None
        for candidate in (detail.get("mangaPage"), detail):
            if isinstance(candidate, dict):
                poster = candidate.get("poster")
                if isinstance(poster, dict) and poster.get("image"):
                    return poster["image"]
        return detail.get("image")
