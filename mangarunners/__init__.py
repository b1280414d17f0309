"""
mangarunners - Content-source runners for a manga-reading host.

Each runner adapts one manga website into a common interface: search and
directory listing, content metadata, chapter listing and page-image
resolution.
"""

__version__ = "0.1.0"
__title__ = "mangarunners"
__license__ = "MIT"

# Version info tuple for programmatic access
VERSION_INFO = tuple(map(int, __version__.split(".")))

from mangarunners.core.models import Chapter, ChapterData, Content, Highlight, PagedResult

__all__ = [
    "__version__",
    "Chapter",
    "ChapterData",
    "Content",
    "Highlight",
    "PagedResult",
]
