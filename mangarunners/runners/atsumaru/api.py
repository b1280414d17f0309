"""
Atsumaru API Client

This module builds Atsumaru endpoint URLs and performs the requests through
an injected text-fetch callable.
"""

import json
import logging
import random
import string
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional
from urllib.parse import quote, urlencode

from mangarunners.core.exceptions import NetworkError

from .config import AtsumaruConfig


logger = logging.getLogger(__name__)


FetchText = Callable[[str], Awaitable[str]]


class SearchStrategy(str, Enum):
    """Query relaxation variants issued side by side for every search."""

    PRIMARY = "primary"
    FALLBACK = "fallback"


# Parameters shared by both strategies
SEARCH_FIELDS = {
    "query_by": "title,englishTitle,otherNames",
    "query_by_weights": "3,2,1",
    "include_fields": "id,title,englishTitle,poster",
    "prioritize_exact_match": "true",
    "prefix": "true",
}

# Extra relaxation for the fallback strategy only
FALLBACK_FIELDS = {
    "infix": "always",
    "drop_tokens_threshold": "0",
}


def _cache_buster() -> str:
    alphabet = string.ascii_lowercase + string.digits
    return "".join(random.choices(alphabet, k=11))


class AtsumaruAPI:
    """Client for interacting with the Atsumaru site API."""

    def __init__(self, fetch_text: FetchText, config: Optional[AtsumaruConfig] = None):
        """
        Initialize Atsumaru API client.

        Args:
            fetch_text: Coroutine function performing GET and returning the body
            config: Runner configuration
        """
        self.fetch_text = fetch_text
        self.config = config or AtsumaruConfig()
        self.base_url = self.config.base_url

    def build_search_url(self, query: str, page: int, per_page: int, strategy: SearchStrategy) -> str:
        """
        Build the search URL for one strategy.

        The raw query is sent; each URL carries its own cache-busting pair so
        the two strategies are never served the same cached response.
        """
        params: Dict[str, Any] = {
            "q": query.strip(),
            "per_page": max(1, int(per_page)),
            "page": max(1, int(page)),
            **SEARCH_FIELDS,
        }
        now_ms = int(time.time() * 1000)
        if strategy is SearchStrategy.FALLBACK:
            params.update(FALLBACK_FIELDS)
            now_ms += 1
        params["_"] = now_ms
        params["cb"] = _cache_buster()

        return f"{self.config.search_url}?{urlencode(params, quote_via=quote)}"

    async def get_json(self, url: str) -> Any:
        """
        Fetch a URL and decode its body as JSON.

        Raises:
            NetworkError: On transport failure, empty body or invalid JSON
        """
        text = await self.fetch_text(url)
        if not text:
            raise NetworkError(f"Empty response from {url}", url=url)
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise NetworkError(f"Invalid JSON from {url}: {e}", url=url, details=text[:200])

    async def get_home_page(self) -> str:
        """Get the raw home page payload (JSON or HTML with an embedded blob)."""
        return await self.fetch_text(f"{self.base_url}/api/home/page")

    async def get_manga_page(self, slug: str) -> Dict[str, Any]:
        """
        Get detailed series information.

        Returns:
            The `mangaPage` object, or the root object if not wrapped
        """
        data = await self.get_json(f"{self.base_url}/api/manga/page?id={quote(slug)}")
        if isinstance(data, dict) and isinstance(data.get("mangaPage"), dict):
            return data["mangaPage"]
        if not isinstance(data, dict):
            raise NetworkError(f"Unexpected manga page payload for '{slug}'")
        return data

    async def get_manga_info(self, slug: str) -> Dict[str, Any]:
        """Get the lightweight series info (carries its own chapter list)."""
        data = await self.get_json(f"{self.base_url}/api/manga/info?mangaId={quote(slug)}")
        return data if isinstance(data, dict) else {}

    async def get_chapter_page(self, slug: str, page: int) -> Dict[str, Any]:
        """
        Get one zero-based page of the chapter list.

        Returns:
            Payload with `chapters` and the total `pages` count
        """
        url = (
            f"{self.base_url}/api/manga/chapters?id={quote(slug)}"
            f"&filter=all&sort=desc&page={page}"
        )
        data = await self.get_json(url)
        return data if isinstance(data, dict) else {}

    async def get_read_chapter(self, slug: str, chapter_id: str) -> Optional[Dict[str, Any]]:
        """Get the reader payload for a chapter."""
        url = (
            f"{self.base_url}/api/read/chapter?mangaId={quote(slug)}"
            f"&chapterId={quote(chapter_id)}"
        )
        data = await self.get_json(url)
        if isinstance(data, dict) and isinstance(data.get("readChapter"), dict):
            return data["readChapter"]
        return None
