"""
Shared data types for the PDF reader.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class RasterStatus(Enum):
    """Lifecycle of a single page render job."""

    PENDING = "pending"
    RENDERING = "rendering"
    COMPLETE = "complete"
    CANCELLED = "cancelled"
    FAILED = "failed"


class PageState(Enum):
    """Lazy-load state of a page container."""

    UNLOADED = "unloaded"
    RENDERING = "rendering"
    RENDERED = "rendered"


class ReaderState(Enum):
    """Top level state of a reader session."""

    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class SaveStatus(Enum):
    """Outcome of the last progress save, as shown in the header."""

    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"
    FAILED = "failed"
    UNAUTHORIZED = "unauthorized"


@dataclass(frozen=True)
class LoadProgress:
    """Bytes received so far while downloading a document."""

    bytes_loaded: int
    bytes_total: Optional[int] = None

    @property
    def fraction(self) -> Optional[float]:
        """Completed fraction in [0, 1], or None when the size is unknown."""
        if not self.bytes_total:
            return None
        return min(1.0, self.bytes_loaded / self.bytes_total)

    @property
    def percent(self) -> Optional[int]:
        fraction = self.fraction
        return None if fraction is None else int(fraction * 100)


@dataclass
class Raster:
    """Painted pixels of one page.

    ``pixel_width``/``pixel_height`` are the raster dimensions; ``css_width``
    and ``css_height`` are the presented (layout) size, which stays
    independent of the device pixel ratio.
    """

    page_number: int
    png: bytes
    pixel_width: int
    pixel_height: int
    css_width: float
    css_height: float


@dataclass
class ZoomState:
    """Current zoom of a reader session."""

    scale: float = 1.0
    base_scale: float = 1.0
    anchor: Tuple[float, float] = (0.0, 0.0)  # document space


@dataclass(frozen=True)
class GestureSnapshot:
    """Values captured once when a pinch gesture starts."""

    start_distance: float
    base_scale: float
    focal: Tuple[float, float] = (0.0, 0.0)


@dataclass(frozen=True)
class ReadingProgress:
    """Last saved reading position of a user in a book."""

    user_id: str
    book_id: int
    page: int


@dataclass
class SaveResult:
    """Result of a progress save, surfaced to the UI."""

    status: SaveStatus
    page: int
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status == SaveStatus.SAVED


@dataclass
class Book:
    """A catalog book record."""

    id: int
    title: str
    pdf_url: Optional[str] = None
    subtitle: Optional[str] = None
    price: int = 0
    currency: str = "$"
    cover_url: str = ""
    category: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_record(cls, payload: Any) -> "Book":
        """Build a book from a store response.

        Accepts a bare record, a ``{"data": ...}`` envelope, or a list whose
        first item is the record. Both ``pdfUrl`` and ``pdf_url`` are read.
        """
        record = payload
        if isinstance(record, dict) and "data" in record:
            record = record["data"]
        if isinstance(record, list):
            if not record:
                raise ValueError("Empty book record")
            record = record[0]
        if not isinstance(record, dict):
            raise ValueError(f"Unexpected book record: {type(record).__name__}")

        known = {
            "id", "title", "subtitle", "price", "currency",
            "coverUrl", "cover_url", "category", "pdfUrl", "pdf_url",
        }
        return cls(
            id=int(record["id"]),
            title=str(record.get("title") or ""),
            pdf_url=record.get("pdfUrl") or record.get("pdf_url") or None,
            subtitle=record.get("subtitle"),
            price=int(record.get("price") or 0),
            currency=str(record.get("currency") or "$"),
            cover_url=str(record.get("coverUrl") or record.get("cover_url") or ""),
            category=str(record.get("category") or ""),
            extra={k: v for k, v in record.items() if k not in known},
        )


# Type aliases for clarity
Point = Tuple[float, float]
PageSize = Tuple[float, float]
