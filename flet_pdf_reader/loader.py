"""
Document loader - streams a remote PDF and opens it.

Usage:
    loader = DocumentLoader(timeout=60)
    document = await loader.open(url, on_progress=lambda p: print(p.percent))
    page = await document.get_page(1)
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Tuple

import httpx

from .backends.base import DocumentBackend, PageBackend
from .backends.pymupdf import PyMuPDFBackend
from .errors import LoadError, LoadTimeout, RenderCancelled
from .types import LoadProgress, PageSize

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[LoadProgress], None]
BackendFactory = Callable[[bytes], DocumentBackend]


class CancellationToken:
    """Cooperative abort signal checked by the engine at safe points."""

    def __init__(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def raise_if_cancelled(self, page_number: Optional[int] = None) -> None:
        if self._cancelled:
            raise RenderCancelled(page_number)


class PageHandle:
    """A page of an open document (1-based ``page_number``).

    Every call to :meth:`render` is a separate paint; geometry is fixed.
    """

    def __init__(self, document: "DocumentHandle", page: PageBackend):
        self._document = document
        self._page = page

    @property
    def page_number(self) -> int:
        return self._page.index + 1

    @property
    def width(self) -> float:
        """Native width in points."""
        return self._page.width

    @property
    def height(self) -> float:
        """Native height in points."""
        return self._page.height

    async def render(
        self, scale: float, token: Optional[CancellationToken] = None
    ) -> Tuple[bytes, int, int]:
        """Paint the page at ``scale`` pixels per point.

        Raises:
            RenderCancelled: If ``token`` was cancelled before or during the paint
        """
        token = token or CancellationToken()
        page_number = self.page_number

        def paint():
            # Jobs queued behind a long paint may be superseded before they start.
            token.raise_if_cancelled(page_number)
            return self._page.render_png(scale)

        result = await self._document.run(paint)
        token.raise_if_cancelled(page_number)
        return result


class DocumentHandle:
    """An open, parsed PDF owned by one reader session.

    All engine calls run on one worker thread; PyMuPDF documents must not be
    used from several threads at once.
    """

    def __init__(
        self,
        backend: DocumentBackend,
        source_url: str,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self._backend = backend
        self._source_url = source_url
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="pdf-engine"
        )
        self._closed = False

    @property
    def page_count(self) -> int:
        return self._backend.page_count

    @property
    def source_url(self) -> str:
        return self._source_url

    @property
    def closed(self) -> bool:
        return self._closed

    async def run(self, func, *args):
        """Run ``func(*args)`` on the engine thread."""
        if self._closed:
            raise LoadError("Document is closed")
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, func, *args)

    async def get_page(self, page_number: int) -> PageHandle:
        """Fetch a page (1-based)."""
        if not 1 <= page_number <= self.page_count:
            raise ValueError(
                f"Page {page_number} out of range 1..{self.page_count}"
            )
        page = await self.run(self._backend.get_page, page_number - 1)
        return PageHandle(self, page)

    async def page_sizes(self) -> List[PageSize]:
        """Native (width, height) of every page."""
        return await self.run(self._backend.page_sizes)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Let an in-flight paint finish before the document goes away.
        self._executor.submit(self._backend.close)
        self._executor.shutdown(wait=False, cancel_futures=False)


class DocumentLoader:
    """Opens remote PDFs.

    Args:
        client: Shared ``httpx.AsyncClient`` (one is created per load if None)
        timeout: Seconds allowed for download plus parse
        backend_factory: Builds a backend from the downloaded bytes
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
        backend_factory: BackendFactory = PyMuPDFBackend,
    ):
        self._client = client
        self._timeout = timeout
        self._backend_factory = backend_factory

    async def open(
        self, source_url: str, on_progress: Optional[ProgressCallback] = None
    ) -> DocumentHandle:
        """Download and parse ``source_url``.

        Raises:
            LoadTimeout: If the timeout elapsed
            LoadError: If the resource is unreachable, truncated, or not a PDF
        """
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pdf-engine")
        try:
            backend = await asyncio.wait_for(
                self._load(source_url, on_progress, executor), self._timeout
            )
        except asyncio.TimeoutError:
            executor.shutdown(wait=False)
            logger.error("Timed out loading %s after %.1fs", source_url, self._timeout)
            raise LoadTimeout(f"Timed out loading {source_url}") from None
        except BaseException:
            executor.shutdown(wait=False)
            raise

        logger.info("Opened %s (%d pages)", source_url, backend.page_count)
        return DocumentHandle(backend, source_url, executor)

    async def _load(
        self,
        source_url: str,
        on_progress: Optional[ProgressCallback],
        executor: ThreadPoolExecutor,
    ) -> DocumentBackend:
        data = await self._download(source_url, on_progress)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(executor, self._backend_factory, data)

    async def _download(
        self, source_url: str, on_progress: Optional[ProgressCallback]
    ) -> bytes:
        if self._client is not None:
            return await self._stream(self._client, source_url, on_progress)
        async with httpx.AsyncClient(follow_redirects=True, timeout=self._timeout) as client:
            return await self._stream(client, source_url, on_progress)

    async def _stream(
        self,
        client: httpx.AsyncClient,
        source_url: str,
        on_progress: Optional[ProgressCallback],
    ) -> bytes:
        chunks = []
        reported = -1
        try:
            async with client.stream("GET", source_url) as response:
                if response.status_code >= 400:
                    raise LoadError(
                        f"Failed to fetch {source_url}: HTTP {response.status_code}"
                    )
                total = _content_length(response)
                received = 0
                async for chunk in response.aiter_bytes():
                    chunks.append(chunk)
                    received += len(chunk)
                    # Raw count tracks Content-Length for encoded bodies; it stays
                    # at 0 when the body was already buffered.
                    loaded = max(response.num_bytes_downloaded, received)
                    if on_progress and loaded > reported:
                        reported = loaded
                        on_progress(LoadProgress(loaded, total))
                loaded = max(response.num_bytes_downloaded, received)
                if total is not None and loaded < total:
                    raise LoadError(
                        f"Stream interrupted after {loaded} of {total} bytes"
                    )
        except httpx.TimeoutException as exc:
            raise LoadTimeout(f"Timed out loading {source_url}") from exc
        except httpx.HTTPError as exc:
            raise LoadError(f"Failed to fetch {source_url}: {exc}") from exc

        data = b"".join(chunks)
        if not data:
            raise LoadError(f"Empty response from {source_url}")
        return data


def _content_length(response: httpx.Response) -> Optional[int]:
    value = response.headers.get("content-length")
    try:
        return int(value) if value else None
    except ValueError:
        return None
