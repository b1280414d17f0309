"""
Core Data Models - Pydantic models for type safety and validation.

This module defines the host-facing data structures produced by every
runner: directory highlights and pages, content metadata, chapters and
chapter page images. All models use Pydantic for validation and
serialization.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class PublicationStatus(str, Enum):
    """Publication status of a series."""

    ONGOING = "ongoing"
    COMPLETED = "completed"
    HIATUS = "hiatus"
    CANCELLED = "cancelled"

    @classmethod
    def from_text(cls, status: str) -> "PublicationStatus":
        """Map a free-form status label to a PublicationStatus."""
        lowered = (status or "").lower().strip()

        if "ongoing" in lowered or "publishing" in lowered:
            return cls.ONGOING
        if "completed" in lowered or "finished" in lowered:
            return cls.COMPLETED
        if "hiatus" in lowered or "paused" in lowered:
            return cls.HIATUS
        if "cancelled" in lowered or "canceled" in lowered or "dropped" in lowered:
            return cls.CANCELLED

        # Unclear labels are treated as ongoing
        return cls.ONGOING

    def __str__(self) -> str:
        return self.value


class SectionStyle(str, Enum):
    """Layout hint for a home page section."""

    GALLERY = "gallery"
    STANDARD_GRID = "standard_grid"
    PADDED_LIST = "padded_list"


class Highlight(BaseModel):
    """
    A single entry in a directory listing or home section.

    Search results are mapped into this shape after ranking.
    """

    id: str = Field(..., min_length=1, description="Stable content identifier")
    title: str = Field(..., description="Display title")
    cover: str = Field(..., description="Cover image URL or asset path")
    subtitle: Optional[str] = Field(None, description="Secondary text line")

    @field_validator('title')
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Ensure title is properly formatted."""
        return v.strip()

    def __str__(self) -> str:
        return f"{self.title} ({self.id})"


class PagedResult(BaseModel):
    """One page of directory results."""

    results: List[Highlight] = Field(default_factory=list, description="Ordered results")
    is_last_page: bool = Field(True, description="Whether no further pages exist")

    def __len__(self) -> int:
        return len(self.results)


class DirectoryRequest(BaseModel):
    """A directory / search request issued by the host."""

    query: Optional[str] = Field(None, description="Free-text search query")
    page: int = Field(1, description="1-based page number")
    page_size: Optional[int] = Field(None, description="Requested results per page")

    @field_validator('page', mode='before')
    @classmethod
    def validate_page(cls, v) -> int:
        """Coerce the page number to an integer of at least 1."""
        try:
            return max(1, int(v))
        except (TypeError, ValueError):
            return 1

    @property
    def clean_query(self) -> str:
        return (self.query or "").strip()


class Tag(BaseModel):
    """Genre or tag attached to a series."""

    id: str
    title: str


class Chapter(BaseModel):
    """A chapter entry in a series chapter list."""

    chapter_id: str = Field(..., min_length=1, description="Upstream chapter identifier")
    number: float = Field(..., description="Chapter number")
    title: str = Field(..., description="Chapter title")
    date: datetime = Field(..., description="Publication date")
    index: int = Field(..., ge=0, description="Position in the newest-first list")
    language: str = Field("en", description="Language code")
    page_count: int = Field(0, ge=0, description="Number of pages if known")

    def __str__(self) -> str:
        return f"Chapter {self.number:g}: {self.title}"


class Content(BaseModel):
    """Series metadata shown on the content page."""

    title: str = Field(..., min_length=1, description="Series title")
    cover: str = Field(..., description="Cover image URL")
    summary: str = Field("", description="Synopsis")
    creators: List[str] = Field(default_factory=list, description="Authors and artists")
    status: Optional[PublicationStatus] = Field(None, description="Publication status")
    tags: List[Tag] = Field(default_factory=list, description="Genre tags")
    chapters: List[Chapter] = Field(default_factory=list, description="Chapters shipped with the metadata")

    def __str__(self) -> str:
        return self.title


class ChapterPage(BaseModel):
    """A single page image of a chapter."""

    url: str
    width: Optional[int] = None
    height: Optional[int] = None


class ChapterData(BaseModel):
    """Resolved page images for a chapter."""

    pages: List[ChapterPage] = Field(default_factory=list)


class PageSection(BaseModel):
    """A titled group of highlights on the home page."""

    id: str
    title: str
    style: SectionStyle = SectionStyle.STANDARD_GRID
    items: List[Highlight] = Field(default_factory=list)


__all__ = [
    "PublicationStatus",
    "SectionStyle",
    "Highlight",
    "PagedResult",
    "DirectoryRequest",
    "Tag",
    "Content",
    "Chapter",
    "ChapterPage",
    "ChapterData",
    "PageSection",
]
