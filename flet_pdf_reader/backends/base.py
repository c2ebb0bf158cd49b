"""
Abstract backend protocol for PDF parsing.

Backends must implement these protocols to work with the reader.
"""

from abc import ABC, abstractmethod
from typing import List, Tuple

from ..types import PageSize


class PageBackend(ABC):
    """Abstract interface for a PDF page."""

    @property
    @abstractmethod
    def width(self) -> float:
        """Page width in points."""
        ...

    @property
    @abstractmethod
    def height(self) -> float:
        """Page height in points."""
        ...

    @property
    @abstractmethod
    def index(self) -> int:
        """Page index (0-based)."""
        ...

    @abstractmethod
    def render_png(self, scale: float) -> Tuple[bytes, int, int]:
        """Rasterize the page.

        Args:
            scale: Pixels per PDF point

        Returns:
            (png_bytes, pixel_width, pixel_height)
        """
        ...


class DocumentBackend(ABC):
    """Abstract interface for a PDF document."""

    @property
    @abstractmethod
    def page_count(self) -> int:
        """Number of pages in the document."""
        ...

    @abstractmethod
    def get_page(self, index: int) -> PageBackend:
        """Get a page by index."""
        ...

    def page_sizes(self) -> List[PageSize]:
        """(width, height) of every page, in points."""
        sizes = []
        for index in range(self.page_count):
            page = self.get_page(index)
            sizes.append((page.width, page.height))
        return sizes

    @abstractmethod
    def close(self) -> None:
        """Close and release resources."""
        ...

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
