"""
Book store client - resolves a book id to its record and PDF location.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote

import httpx

from .errors import BookNotFound, NetworkError
from .types import Book

logger = logging.getLogger(__name__)


class BookStoreClient:
    """Reads book records from the store's HTTP API.

    Args:
        base_url: Store root, e.g. ``http://localhost:3000``
        client: Shared ``httpx.AsyncClient`` (one is created per call if None)
        timeout: Seconds per request
        proxy_path: Path of the range-capable PDF proxy
    """

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
        proxy_path: str = "/api/proxy-pdf",
    ):
        self.base_url = base_url.rstrip("/")
        self._client = client
        self._timeout = timeout
        self._proxy_path = "/" + proxy_path.lstrip("/")

    async def get_book(self, book_id: int) -> Book:
        """Fetch ``GET /api/books/{id}``.

        Raises:
            BookNotFound: If the store has no such book, or it has no PDF
            NetworkError: On transport failures or unexpected statuses
        """
        url = f"{self.base_url}/api/books/{book_id}"
        try:
            response = await self._get(url)
        except httpx.HTTPError as exc:
            raise NetworkError(f"Could not reach book store: {exc}") from exc

        if response.status_code == 404:
            raise BookNotFound(f"Book {book_id} not found")
        if response.status_code >= 400:
            raise NetworkError(f"Book store returned HTTP {response.status_code}")

        try:
            book = Book.from_record(response.json())
        except (ValueError, KeyError, TypeError) as exc:
            raise BookNotFound(f"Book {book_id} not found: {exc}") from exc

        if not book.pdf_url:
            raise BookNotFound(f"Book {book_id} has no PDF available")
        return book

    def proxy_url(self, pdf_url: str) -> str:
        """URL of ``pdf_url`` routed through the store's PDF proxy."""
        return f"{self.base_url}{self._proxy_path}?url={quote(pdf_url, safe='')}"

    async def _get(self, url: str) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url, timeout=self._timeout)
        async with httpx.AsyncClient(follow_redirects=True, timeout=self._timeout) as client:
            return await client.get(url)
