"""
Base Runner Interface - Abstract base class for manga content-source runners.

This module defines the interface that every runner must implement, providing
a consistent API for directory listing, content metadata, chapter listing and
page-image resolution, plus the shared HTTP text-fetch helper.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin, urlparse

import aiohttp
from pydantic import BaseModel, Field

from mangarunners.core.exceptions import NetworkError
from mangarunners.core.models import (
    Chapter,
    ChapterData,
    Content,
    DirectoryRequest,
    PagedResult,
)


logger = logging.getLogger(__name__)


class RunnerMetadata(BaseModel):
    """Metadata information for a runner."""

    id: str = Field(..., description="Reverse-domain runner identifier")
    name: str = Field(..., description="Runner display name")
    version: str = Field(default="1.0.0", description="Runner version")
    website: Optional[str] = Field(None, description="Source website URL")
    supported_languages: List[str] = Field(
        default_factory=lambda: ["en_US"],
        description="Languages served by the source"
    )
    rate_limit: float = Field(default=0.0, ge=0.0, description="Minimum seconds between requests")


class BaseRunner(ABC):
    """
    Abstract base class for manga content-source runners.

    Subclasses implement the four host-facing operations; the base class owns
    the aiohttp session used by `_get_text`.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the runner with configuration.

        Args:
            config: Runner-specific configuration dictionary
        """
        self.config = config or {}
        self._session: Optional[aiohttp.ClientSession] = None
        self._last_request_time = 0.0

        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        self._initialize_config()

    def _initialize_config(self) -> None:
        """Initialize shared HTTP settings with defaults."""
        self.timeout = self.config.get('timeout', 30)
        self.user_agent = self.config.get(
            'user_agent',
            'mangarunners/0.1.0'
        )
        self.max_retries = self.config.get('max_retries', 0)
        self.retry_delay = self.config.get('retry_delay', 1.0)
        self.rate_limit = float(self.config.get('rate_limit', 0.0) or 0.0)

    @property
    @abstractmethod
    def metadata(self) -> RunnerMetadata:
        """Get runner metadata information."""
        pass

    @property
    @abstractmethod
    def base_url(self) -> str:
        """Get the base URL for the content source."""
        pass

    @property
    def session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session with proper configuration."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout)

            headers = {
                'User-Agent': self.user_agent,
                'Accept': 'text/html,application/json;q=0.9,*/*;q=0.8',
                'Accept-Language': 'en-US,en;q=0.5',
                'Referer': f"{self.base_url.rstrip('/')}/",
            }

            self._session = aiohttp.ClientSession(timeout=timeout, headers=headers)

        return self._session

    async def _rate_limit(self) -> None:
        """
        Enforce rate limiting between requests.

        The configured interval applies unless the runner metadata demands a
        longer one.
        """
        interval = max(self.rate_limit, self.metadata.rate_limit)
        current_time = time.time()
        time_since_last = current_time - self._last_request_time

        if time_since_last < interval:
            await asyncio.sleep(interval - time_since_last)

        self._last_request_time = time.time()

    async def _get_text(self, url: str, **kwargs) -> str:
        """
        Get text content from URL.

        Args:
            url: Absolute or site-relative URL
            **kwargs: Additional arguments for the request

        Returns:
            Response body as text

        Raises:
            NetworkError: On non-2xx status or when all attempts fail
        """
        await self._rate_limit()

        if not urlparse(url).netloc:
            url = urljoin(self.base_url, url)

        last_exception: Optional[BaseException] = None

        for attempt in range(self.max_retries + 1):
            try:
                self.logger.debug(f"Making GET request to {url} (attempt {attempt + 1})")

                async with self.session.get(url, **kwargs) as response:
                    if response.status < 200 or response.status >= 300:
                        error_text = await response.text()
                        raise NetworkError(
                            f"HTTP {response.status} error for {url}",
                            url=url,
                            status_code=response.status,
                            details=error_text
                        )

                    return await response.text()

            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_exception = e
                self.logger.warning(f"Request failed (attempt {attempt + 1}): {e}")

                if attempt < self.max_retries:
                    await asyncio.sleep(self.retry_delay * (attempt + 1))

        raise NetworkError(
            f"Request failed after {self.max_retries + 1} attempts: {last_exception}",
            url=url,
            details=str(last_exception)
        )

    @abstractmethod
    async def get_directory(self, request: DirectoryRequest) -> PagedResult:
        """
        List or search the source directory.

        Never raises; failures degrade to a placeholder page.
        """
        pass

    @abstractmethod
    async def get_content(self, content_id: str) -> Content:
        """
        Get series metadata.

        Raises:
            RunnerError: If the content cannot be fetched
        """
        pass

    @abstractmethod
    async def get_chapters(self, content_id: str) -> List[Chapter]:
        """
        Get the newest-first chapter list of a series.

        Raises:
            RunnerError: If the chapter list cannot be fetched
        """
        pass

    @abstractmethod
    async def get_chapter_data(self, content_id: str, chapter_id: str) -> ChapterData:
        """
        Resolve the page images of a chapter.

        Raises:
            RunnerError: If the chapter pages cannot be fetched
        """
        pass

    async def cleanup(self) -> None:
        """Clean up resources used by the runner."""
        if self._session and not self._session.closed:
            await self._session.close()
            self.logger.debug("HTTP session closed")
        self._session = None

    async def __aenter__(self) -> "BaseRunner":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.cleanup()

    def __str__(self) -> str:
        return f"{self.metadata.name} v{self.metadata.version}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.metadata.name}')"


__all__ = ["BaseRunner", "RunnerMetadata"]
