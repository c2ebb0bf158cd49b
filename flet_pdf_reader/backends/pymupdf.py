"""
PyMuPDF backend implementation.
"""

from __future__ import annotations

import warnings
from typing import Dict, List, Tuple

warnings.filterwarnings("ignore", message="builtin type Swig")

import pymupdf

from ..errors import LoadError  # noqa: E402
from ..types import PageSize  # noqa: E402
from .base import DocumentBackend, PageBackend  # noqa: E402


class PyMuPDFPage(PageBackend):
    """PyMuPDF page implementation."""

    def __init__(self, page: pymupdf.Page, index: int):
        self._page = page
        self._index = index

    @property
    def width(self) -> float:
        return self._page.rect.width

    @property
    def height(self) -> float:
        return self._page.rect.height

    @property
    def index(self) -> int:
        return self._index

    def render_png(self, scale: float) -> Tuple[bytes, int, int]:
        if scale <= 0:
            raise ValueError(f"Render scale must be positive, got {scale}")
        pix = self._page.get_pixmap(matrix=pymupdf.Matrix(scale, scale), alpha=False)
        return pix.tobytes("png"), pix.width, pix.height


class PyMuPDFBackend(DocumentBackend):
    """PyMuPDF document backend over downloaded bytes.

    Raises:
        LoadError: If the data is not a readable PDF, has no pages, or is
                   encrypted.
    """

    def __init__(self, data: bytes):
        try:
            self._doc = pymupdf.open(stream=bytes(data), filetype="pdf")
        except Exception as exc:
            raise LoadError(f"Not a readable PDF: {exc}") from exc

        if self._doc.needs_pass:
            self._doc.close()
            raise LoadError("Document is encrypted and requires a password")
        if len(self._doc) < 1:
            self._doc.close()
            raise LoadError("Document has no pages")

        self._pages: Dict[int, PyMuPDFPage] = {}

    @property
    def page_count(self) -> int:
        return len(self._doc)

    def get_page(self, index: int) -> PyMuPDFPage:
        if index in self._pages:
            return self._pages[index]

        if index < 0 or index >= len(self._doc):
            raise IndexError(f"Page index {index} out of range")

        pdf_page = PyMuPDFPage(self._doc[index], index)
        self._pages[index] = pdf_page
        return pdf_page

    def page_sizes(self) -> List[PageSize]:
        # Geometry only; pages are not kept in the cache.
        sizes = []
        for index in range(len(self._doc)):
            rect = self._doc.load_page(index).rect
            sizes.append((rect.width, rect.height))
        return sizes

    def close(self) -> None:
        if self._doc:
            self._doc.close()
        self._pages.clear()
