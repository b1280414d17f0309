"""
Atsumaru Upstream Types

Pydantic models for the JSON returned by the Atsumaru full-text search
endpoint. Parsing is tolerant: unknown fields are ignored and malformed hits
are skipped instead of failing the whole response.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from mangarunners.runners.common import TextCleaner, normalize_title


logger = logging.getLogger(__name__)


# Document title fields in display preference order
TITLE_PREFERENCE: Tuple[str, ...] = ("english_title", "title")

# Highlight fields checked for a subtitle snippet, in order
SNIPPET_FIELDS: Tuple[str, ...] = ("title", "englishTitle")


class SearchDocument(BaseModel):
    """A manga record as indexed by the search engine."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., min_length=1)
    title: Optional[str] = None
    english_title: Optional[str] = Field(None, alias="englishTitle")
    poster: Optional[str] = None

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v

    @property
    def display_title(self) -> str:
        """First non-empty title in TITLE_PREFERENCE order."""
        for field_name in TITLE_PREFERENCE:
            value = getattr(self, field_name)
            if value:
                return value
        return ""

    @property
    def normalized_titles(self) -> Tuple[str, ...]:
        """Normalized form of every title field, in preference order."""
        return tuple(normalize_title(getattr(self, name)) for name in TITLE_PREFERENCE)

    @property
    def has_poster(self) -> bool:
        return bool(self.poster)


class SearchHit(BaseModel):
    """One search result with its relevance score and highlights."""

    model_config = ConfigDict(extra="ignore")

    document: SearchDocument
    highlight: Dict[str, Any] = Field(default_factory=dict)
    highlights: List[Dict[str, Any]] = Field(default_factory=list)
    text_match: int = 0

    @field_validator('text_match', mode='before')
    @classmethod
    def coerce_score(cls, v: Any) -> int:
        try:
            return int(v)
        except (TypeError, ValueError, OverflowError):
            return 0

    @field_validator('highlight', mode='before')
    @classmethod
    def coerce_highlight(cls, v: Any) -> Dict[str, Any]:
        return v if isinstance(v, dict) else {}

    @field_validator('highlights', mode='before')
    @classmethod
    def coerce_highlights(cls, v: Any) -> List[Dict[str, Any]]:
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, dict)]

    def is_exact(self, normalized_query: str) -> bool:
        """Whether any title field normalizes to the query."""
        return bool(normalized_query) and normalized_query in self.document.normalized_titles

    def has_prefix(self, normalized_query: str) -> bool:
        """Whether any normalized title starts with the query."""
        return any(title.startswith(normalized_query) for title in self.document.normalized_titles)

    def exact_tier(self, normalized_query: str) -> int:
        """2 for an English-title match, 1 for a primary-title match, else 0."""
        english, primary = (
            normalize_title(self.document.english_title),
            normalize_title(self.document.title),
        )
        if english == normalized_query:
            return 2
        if primary == normalized_query:
            return 1
        return 0

    @property
    def group_key(self) -> str:
        """Normalized display title used to collapse duplicate records."""
        return normalize_title(self.document.display_title)

    @property
    def snippet(self) -> str:
        """Plain-text highlight snippet, or an empty string."""
        for field_name in SNIPPET_FIELDS:
            entry = self.highlight.get(field_name)
            if isinstance(entry, dict) and entry.get("snippet") is not None:
                return TextCleaner.strip_tags(str(entry["snippet"]))

        for field_name in SNIPPET_FIELDS:
            for entry in self.highlights:
                if entry.get("field") == field_name and entry.get("snippet") is not None:
                    return TextCleaner.strip_tags(str(entry["snippet"]))

        return ""


class SearchResponse(BaseModel):
    """A parsed search response."""

    found: Optional[int] = None
    page: int = 1
    hits: List[SearchHit] = Field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["SearchResponse"]:
        """
        Build a response from decoded JSON.

        Returns:
            The response, or None if the payload is not a search response
        """
        if not isinstance(payload, dict):
            return None

        raw_hits = payload.get("hits")
        hits: List[SearchHit] = []
        for raw in raw_hits if isinstance(raw_hits, list) else []:
            try:
                hits.append(SearchHit.model_validate(raw))
            except ValidationError as e:
                logger.debug(f"Skipping malformed search hit: {e.error_count()} errors")

        found = payload.get("found")
        page = payload.get("page")
        return cls(
            found=found if isinstance(found, int) and not isinstance(found, bool) else None,
            page=page if isinstance(page, int) and page > 0 else 1,
            hits=hits,
        )

    @classmethod
    def exact_only(cls, hits: List[SearchHit]) -> "SearchResponse":
        """Synthetic single-page response holding only exact matches."""
        return cls(found=len(hits), page=1, hits=list(hits))

    @property
    def has_hits(self) -> bool:
        return bool(self.hits)

    def __len__(self) -> int:
        return len(self.hits)
