"""Test doubles shared by the reader tests."""

from __future__ import annotations

import json
from typing import Dict, List, Optional, Tuple

import httpx
import pymupdf

from flet_pdf_reader.backends.base import DocumentBackend, PageBackend

PDF_URL = "https://cdn.example.com/books/ten-pages.pdf"


def make_pdf(pages: int = 3, width: float = 300, height: float = 400) -> bytes:
    doc = pymupdf.open()
    for i in range(pages):
        page = doc.new_page(width=width, height=height)
        page.insert_text((36, 72), f"Page {i + 1}", fontsize=24)
    data = doc.tobytes()
    doc.close()
    return data


class FakePage(PageBackend):
    def __init__(self, index: int, width: float = 100, height: float = 200, fail: bool = False):
        self._index = index
        self._width = width
        self._height = height
        self.fail = fail
        self.renders: List[float] = []

    @property
    def width(self) -> float:
        return self._width

    @property
    def height(self) -> float:
        return self._height

    @property
    def index(self) -> int:
        return self._index

    def render_png(self, scale: float) -> Tuple[bytes, int, int]:
        self.renders.append(scale)
        if self.fail:
            raise RuntimeError("corrupt content stream")
        return b"png", round(self._width * scale), round(self._height * scale)


class FakeBackend(DocumentBackend):
    def __init__(self, pages: int = 3, failing: Tuple[int, ...] = ()):
        self.pages = [FakePage(i, fail=(i + 1) in failing) for i in range(pages)]
        self.closed = False

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def get_page(self, index: int) -> FakePage:
        return self.pages[index]

    def close(self) -> None:
        self.closed = True


class FakeStore:
    """Book store, PDF proxy and progress store behind one mock transport."""

    def __init__(
        self,
        pdf: bytes,
        book_id: int = 1,
        pdf_status: int = 200,
        progress_status: int = 200,
        progress_error: Optional[Exception] = None,
    ):
        self.pdf = pdf
        self.book_id = book_id
        self.pdf_status = pdf_status
        self.progress_status = progress_status
        self.progress_error = progress_error
        self.saved: Dict[Tuple[str, int], int] = {}
        self.posts: List[dict] = []
        self.proxied: List[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == f"/api/books/{self.book_id}":
            return httpx.Response(
                200,
                json={
                    "data": [
                        {
                            "id": self.book_id,
                            "title": "Ten Pages",
                            "price": 12,
                            "currency": "$",
                            "coverUrl": "https://cdn.example.com/cover.png",
                            "category": "fiction",
                            "pdfUrl": PDF_URL,
                        }
                    ]
                },
            )
        if path.startswith("/api/books/"):
            return httpx.Response(404, json={"error": "not found"})
        if path == "/api/proxy-pdf":
            self.proxied.append(request.url.params["url"])
            if self.pdf_status != 200:
                return httpx.Response(self.pdf_status, text="Failed to fetch Source PDF")
            return httpx.Response(
                200, content=self.pdf, headers={"content-type": "application/pdf"}
            )
        if path == "/api/progress":
            if self.progress_error is not None:
                raise self.progress_error
            if self.progress_status != 200:
                return httpx.Response(self.progress_status)
            if request.method == "GET":
                key = (request.url.params["userId"], int(request.url.params["bookId"]))
                return httpx.Response(200, json={"page": self.saved.get(key)})
            body = json.loads(request.content)
            self.posts.append(body)
            self.saved[(body["userId"], body["bookId"])] = body["page"]
            return httpx.Response(200, json={"success": True})
        return httpx.Response(404)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
