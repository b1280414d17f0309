"""
Runner Utilities - Common helpers for runner development.

This module provides the title normalizer used for exact-match detection,
text cleaning for highlight snippets, content id encoding, URL helpers and
lenient date parsing.
"""

import logging
import re
import unicodedata
from datetime import datetime, timezone
from typing import Any, Optional, Tuple
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from mangarunners.core.exceptions import ValidationError


logger = logging.getLogger(__name__)


_APOSTROPHES = re.compile(r"['’`´]")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_title(value: Optional[str]) -> str:
    """
    Normalize a title for case, diacritic and punctuation insensitive comparison.

    Used only for comparison; raw queries are what get sent upstream.

    Args:
        value: Title or query text (None is treated as empty)

    Returns:
        Canonical comparison form, e.g. "Naïve Don't!" -> "naive dont"
    """
    if not value:
        return ""

    decomposed = unicodedata.normalize("NFKD", str(value))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    lowered = stripped.lower()
    lowered = _APOSTROPHES.sub("", lowered)
    return _NON_ALNUM.sub(" ", lowered).strip()


class TextCleaner:
    """Utility class for cleaning text content."""

    @staticmethod
    def strip_tags(html: Optional[str]) -> str:
        """
        Remove markup from a snippet.

        Args:
            html: Snippet that may contain <mark> or other tags

        Returns:
            Plain text with surrounding whitespace trimmed
        """
        if not html:
            return ""
        if "<" not in html:
            return html.strip()
        return BeautifulSoup(html, "html.parser").get_text().strip()


class ContentId:
    """Encodes and decodes namespaced content identifiers."""

    SEPARATOR = "|"

    @classmethod
    def build(cls, namespace: str, slug: str) -> str:
        """Build an identifier like "atsu|<slug>"."""
        return f"{namespace}{cls.SEPARATOR}{slug}"

    @classmethod
    def parse(cls, content_id: str, namespace: str) -> Tuple[str, str]:
        """
        Split an identifier into namespace and slug.

        Raises:
            ValidationError: If the id is not "<namespace>|<slug>"
        """
        prefix, _, slug = (content_id or "").partition(cls.SEPARATOR)
        if prefix != namespace or not slug:
            raise ValidationError(
                f"Unsupported content id; expected {namespace}{cls.SEPARATOR}<slug>",
                field_name="content_id",
                invalid_value=content_id,
            )
        return prefix, slug


class URLHelper:
    """Utility class for URL manipulation."""

    @staticmethod
    def is_absolute(url: str) -> bool:
        """Check if URL is absolute."""
        return bool(urlparse(url).netloc)

    @staticmethod
    def make_absolute(url: str, base_url: str) -> str:
        """Convert relative URL to absolute."""
        if URLHelper.is_absolute(url):
            return url
        return urljoin(base_url, url)


def parse_date_like(value: Any) -> Optional[datetime]:
    """
    Parse an upstream date value.

    Accepts ISO-8601 strings, epoch milliseconds and numeric strings.

    Returns:
        A timezone-aware datetime, or None when the value is unusable
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        return _from_epoch_millis(value)

    text = str(value).strip()
    if not text:
        return None

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    except ValueError:
        pass

    try:
        return _from_epoch_millis(float(text))
    except ValueError:
        return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an epoch timestamp given in seconds or milliseconds."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    # Values above 1e10 are already milliseconds
    return _from_epoch_millis(number if number > 1e10 else number * 1000)


def _from_epoch_millis(millis: float) -> Optional[datetime]:
    try:
        return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


__all__ = [
    "normalize_title",
    "TextCleaner",
    "ContentId",
    "URLHelper",
    "parse_date_like",
    "parse_timestamp",
]
