"""
Reader session - everything a reader view does, without the widgets.

Usage:
    session = ReaderSession(book_id=3, config=ReaderConfig.from_env())
    await session.open()
    session.set_viewport(800, 1000)
    session.on_scroll(0, 2400)
    await session.save()
    await session.close()
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, List, Optional

import httpx

from .auth import UserSession
from .catalog import BookStoreClient
from .config import ReaderConfig
from .errors import ReaderError
from .interactions.zoom import ZoomHandler
from .loader import DocumentHandle, DocumentLoader
from .progress import ProgressClient, ProgressSaver
from .rendering.scheduler import RenderHandle, RenderScheduler
from .rendering.surface import RasterSurface
from .rendering.viewport import PageLayout, ViewportController
from .types import (
    Book,
    LoadProgress,
    PageSize,
    RasterStatus,
    ReaderState,
    SaveResult,
)

logger = logging.getLogger(__name__)


class ReaderSession:
    """
    One open book.

    Args:
        book_id: Catalog id of the book
        config: Reader settings
        session: Signed-in reader (None reads anonymously, without saving)
        client: Shared HTTP client for the default collaborators
        books, progress, loader: Collaborators, built from ``config`` if None
        surface_factory: Allocates the raster surface of a page
        on_state_change: ``(ReaderState)``
        on_load_progress: ``(LoadProgress)`` while the document downloads
        on_layout_change: ``(PageLayout)`` after zoom or resize
        on_scroll_request: ``(x, y)`` scroll offset the view must apply
        on_page_change: ``(page_number)`` new reading position
        on_surface_change: ``(page_number, surface or None)``
        on_save_result: ``(SaveResult)``
    """

    def __init__(
        self,
        book_id: int,
        config: Optional[ReaderConfig] = None,
        *,
        session: Optional[UserSession] = None,
        client: Optional[httpx.AsyncClient] = None,
        books: Optional[BookStoreClient] = None,
        progress: Optional[ProgressClient] = None,
        loader: Optional[DocumentLoader] = None,
        surface_factory: Callable[[int], RasterSurface] = RasterSurface,
        on_state_change: Optional[Callable[[ReaderState], None]] = None,
        on_load_progress: Optional[Callable[[LoadProgress], None]] = None,
        on_layout_change: Optional[Callable[[PageLayout], None]] = None,
        on_scroll_request: Optional[Callable[[float, float], None]] = None,
        on_page_change: Optional[Callable[[int], None]] = None,
        on_surface_change: Optional[Callable[[int, Optional[RasterSurface]], None]] = None,
        on_save_result: Optional[Callable[[SaveResult], None]] = None,
    ):
        self.book_id = int(book_id)
        self.config = config or ReaderConfig()
        cfg = self.config

        self._books = books or BookStoreClient(
            cfg.backend_url, client=client, timeout=cfg.progress_timeout,
            proxy_path=cfg.proxy_path,
        )
        self._progress = progress or ProgressClient(
            cfg.backend_url, session, client=client, timeout=cfg.progress_timeout
        )
        self._loader = loader or DocumentLoader(client=client, timeout=cfg.load_timeout)
        self._surface_factory = surface_factory

        self._on_state_change = on_state_change
        self._on_load_progress = on_load_progress
        self._on_layout_change = on_layout_change
        self._on_scroll_request = on_scroll_request
        self._on_page_change = on_page_change
        self._on_surface_change = on_surface_change

        self._saver = ProgressSaver(
            self._progress, self.book_id, delay=cfg.save_debounce,
            on_result=on_save_result,
        )
        self._zoom = ZoomHandler(
            min_scale=cfg.min_zoom,
            max_scale=cfg.max_zoom,
            epsilon=cfg.zoom_epsilon,
            on_change=self._on_zoom,
        )

        self._state = ReaderState.LOADING
        self._error: Optional[str] = None
        self._book: Optional[Book] = None
        self._document: Optional[DocumentHandle] = None
        self._scheduler: Optional[RenderScheduler] = None
        self._viewport: Optional[ViewportController] = None
        self._page_sizes: List[PageSize] = []
        self._surfaces: Dict[int, RasterSurface] = {}
        self._load_progress = LoadProgress(0)

        self._current_page = 1
        self._pending_jump: Optional[int] = None
        self._viewport_size = (0.0, 0.0)
        self._scroll = (0.0, 0.0)

    # Properties

    @property
    def state(self) -> ReaderState:
        return self._state

    @property
    def error(self) -> Optional[str]:
        """Message of the terminal load failure, if any."""
        return self._error

    @property
    def book(self) -> Optional[Book]:
        return self._book

    @property
    def title(self) -> str:
        return self._book.title if self._book else ""

    @property
    def document(self) -> Optional[DocumentHandle]:
        return self._document

    @property
    def scheduler(self) -> Optional[RenderScheduler]:
        return self._scheduler

    @property
    def viewport(self) -> Optional[ViewportController]:
        return self._viewport

    @property
    def layout(self) -> Optional[PageLayout]:
        return self._viewport.layout if self._viewport else None

    @property
    def zoom(self) -> ZoomHandler:
        return self._zoom

    @property
    def surfaces(self) -> Dict[int, RasterSurface]:
        """Allocated raster surfaces by page number."""
        return dict(self._surfaces)

    @property
    def load_progress(self) -> LoadProgress:
        return self._load_progress

    @property
    def page_count(self) -> int:
        return self._document.page_count if self._document else 0

    @property
    def current_page(self) -> int:
        """Reading position (1-based)."""
        return self._current_page

    @property
    def scroll(self):
        return self._scroll

    @property
    def can_save(self) -> bool:
        return self._progress.can_save

    @property
    def last_save(self) -> SaveResult:
        return self._saver.last_result

    # Lifecycle

    async def open(self) -> bool:
        """Fetch the book, restore progress, and open the document.

        Returns:
            True when the reader is ready; False when it ended in ERROR
        """
        self._set_state(ReaderState.LOADING)
        try:
            book, saved_page = await asyncio.gather(
                self._books.get_book(self.book_id), self._load_saved_page()
            )
            self._book = book
            self._current_page = saved_page

            self._document = await self._loader.open(
                self._books.proxy_url(book.pdf_url), on_progress=self._report_load_progress
            )
            self._page_sizes = await self._document.page_sizes()
        except ReaderError as exc:
            return self._fail(str(exc))
        except Exception as exc:
            logger.exception("Unexpected failure opening book %d", self.book_id)
            return self._fail(f"Failed to load PDF: {exc}")

        self._scheduler = RenderScheduler(self._document, self.config.resize_debounce)
        self._current_page = self._clamp_page(self._current_page)
        self._pending_jump = self._current_page
        self._set_state(ReaderState.READY)
        self._apply_layout(rerender=False)
        return True

    async def close(self) -> None:
        """Flush pending progress and release the document."""
        await self._saver.flush()
        self._saver.close()
        if self._scheduler:
            self._scheduler.close()
        for page_number in list(self._surfaces):
            self._release_surface(page_number)
        if self._document:
            self._document.close()

    # Viewport and scrolling

    def set_viewport(self, width: float, height: float) -> None:
        """Size of the scroll container."""
        size = (max(0.0, float(width)), max(0.0, float(height)))
        if size == self._viewport_size:
            return
        old_width = self._viewport_size[0]
        self._viewport_size = size
        self._zoom.update_viewport(*size)
        if self._state == ReaderState.READY:
            self._apply_layout(rerender=size[0] != old_width)

    def on_scroll(self, x: float, y: float) -> None:
        """Scroll offset reported by the view."""
        self._scroll = (max(0.0, x), max(0.0, y))
        self._zoom.update_scroll(*self._scroll)
        self._refresh_viewport()

    def goto(self, page_number: int) -> bool:
        """Scroll the page's top edge to the viewport top."""
        if self._state != ReaderState.READY:
            return False
        page_number = self._clamp_page(page_number)
        if self.layout is None:
            self._pending_jump = page_number
        else:
            self._scroll_to(self._scroll[0], self.layout.offset_of(page_number))
        self._set_current_page(page_number)
        return True

    def next_page(self) -> bool:
        if self._current_page >= self.page_count:
            return False
        return self.goto(self._current_page + 1)

    def previous_page(self) -> bool:
        if self._current_page <= 1:
            return False
        return self.goto(self._current_page - 1)

    # Zoom

    def set_zoom(
        self, scale: float, anchor_x: Optional[float] = None, anchor_y: Optional[float] = None
    ) -> bool:
        if self._state != ReaderState.READY:
            return False
        return self._zoom.set_zoom(scale, anchor_x, anchor_y)

    def zoom_in(self) -> bool:
        return self.set_zoom(self._zoom.scale * self.config.zoom_step)

    def zoom_out(self) -> bool:
        return self.set_zoom(self._zoom.scale / self.config.zoom_step)

    def begin_pinch(self, focal_x: float, focal_y: float, start_distance: float = 1.0) -> None:
        self._zoom.begin_gesture(start_distance, focal_x, focal_y)

    def update_pinch(
        self, distance: float, focal_x: Optional[float] = None, focal_y: Optional[float] = None
    ) -> bool:
        if self._state != ReaderState.READY:
            return False
        return self._zoom.update_gesture(distance, focal_x, focal_y)

    def end_pinch(self) -> None:
        self._zoom.end_gesture()

    # Progress

    async def save(self) -> SaveResult:
        """Save the current page now."""
        return await self._saver.save_now(self._current_page)

    # Private methods

    async def _load_saved_page(self) -> int:
        try:
            return await self._progress.load(self.book_id)
        except Exception as exc:
            logger.warning("Ignoring saved progress: %s", exc)
            return 1

    def _fail(self, message: str) -> bool:
        logger.error("Book %d: %s", self.book_id, message)
        self._error = message
        if self._document:
            self._document.close()
            self._document = None
        self._set_state(ReaderState.ERROR)
        return False

    def _set_state(self, state: ReaderState) -> None:
        self._state = state
        if self._on_state_change:
            self._on_state_change(state)

    def _report_load_progress(self, progress: LoadProgress) -> None:
        if progress.bytes_loaded <= self._load_progress.bytes_loaded:
            return
        self._load_progress = progress
        if self._on_load_progress:
            self._on_load_progress(progress)

    def _clamp_page(self, page_number: int) -> int:
        page_number = max(1, int(page_number))
        if self.page_count:
            page_number = min(page_number, self.page_count)
        return page_number

    def _set_current_page(self, page_number: int) -> None:
        page_number = self._clamp_page(page_number)
        if page_number == self._current_page:
            return
        self._current_page = page_number
        if self._on_page_change:
            self._on_page_change(page_number)
        self._saver.schedule(page_number)

    def _build_layout(self) -> PageLayout:
        cfg = self.config
        scale = self._zoom.scale
        base_width = max(1.0, self._viewport_size[0] - 2 * cfg.page_padding)
        return PageLayout(
            self._page_sizes,
            content_width=base_width * scale,
            gap=cfg.page_gap * scale,
            padding=cfg.page_padding * scale,
        )

    def _apply_layout(self, rerender: bool) -> None:
        """Rebuild geometry for the current viewport width and zoom."""
        if self._viewport_size[0] <= 0 or not self._page_sizes:
            return

        layout = self._build_layout()
        previous = self.layout
        if self._viewport is None:
            cfg = self.config
            self._viewport = ViewportController(
                layout,
                prefetch_margin=cfg.prefetch_margin,
                evict_margin=cfg.evict_margin,
                center_band=cfg.center_band,
                on_enter=self._on_page_enter,
                on_evict=self._on_page_evict,
                on_center=self._set_current_page,
            )
        else:
            self._viewport.relayout(layout)

        if self._on_layout_change:
            self._on_layout_change(layout)
        if rerender:
            self._rerender_surfaces(stretch=False)

        if self._pending_jump is not None:
            target = self._pending_jump
            self._pending_jump = None
            self._scroll_to(self._scroll[0], layout.offset_of(target))
        elif previous is not None and rerender:
            # Width changed without a zoom anchor: keep the same document point on top.
            ratio = layout.content_width / previous.content_width
            self._scroll_to(self._scroll[0] * ratio, self._scroll[1] * ratio)
        else:
            self._refresh_viewport()

    def _scroll_to(self, x: float, y: float) -> None:
        layout = self.layout
        width, height = self._viewport_size
        if layout is not None:
            x = min(x, max(0.0, layout.total_width - width))
            y = min(y, max(0.0, layout.total_height - height))
        self._scroll = (max(0.0, x), max(0.0, y))
        self._zoom.update_scroll(*self._scroll)
        if self._on_scroll_request:
            self._on_scroll_request(*self._scroll)
        self._refresh_viewport()

    def _refresh_viewport(self) -> None:
        if self._viewport is not None:
            self._viewport.update(self._scroll[1], self._viewport_size[1])

    def _on_zoom(self, scale: float, scroll_x: float, scroll_y: float) -> None:
        # Layout and scroll change together, before anything reads the offset.
        if self._viewport is None:
            return
        layout = self._build_layout()
        self._viewport.relayout(layout)
        if self._on_layout_change:
            self._on_layout_change(layout)
        self._rerender_surfaces(stretch=True)
        self._scroll_to(scroll_x, scroll_y)

    def _rerender_surfaces(self, stretch: bool) -> None:
        """Repaint at the new width after the debounce.

        With ``stretch`` the current rasters are shown at the new size until
        then; otherwise they keep their painted size.
        """
        layout = self.layout
        if layout is None or self._scheduler is None:
            return
        width = layout.content_width
        for page_number, surface in self._surfaces.items():
            if stretch and surface.painted:
                surface.resize(width, layout.height(page_number))
            self._scheduler.schedule(
                page_number,
                width,
                self.config.device_pixel_ratio,
                surface,
                on_done=self._on_render_done,
            )

    def _on_page_enter(self, page_number: int) -> None:
        if self._scheduler is None or self.layout is None:
            return
        surface = self._surfaces.get(page_number)
        if surface is None:
            surface = self._surface_factory(page_number)
            self._surfaces[page_number] = surface
            if self._on_surface_change:
                self._on_surface_change(page_number, surface)
        handle = self._scheduler.render(
            page_number,
            self.layout.content_width,
            self.config.device_pixel_ratio,
            surface,
        )
        handle.add_done_callback(self._on_render_done)

    def _on_render_done(self, handle: RenderHandle) -> None:
        if self._viewport is None:
            return
        page_number = handle.job.page_number
        if handle.status == RasterStatus.COMPLETE:
            self._viewport.mark_rendered(page_number)
        elif handle.status == RasterStatus.FAILED:
            self._viewport.mark_failed(page_number)

    def _on_page_evict(self, page_number: int) -> None:
        if self._scheduler is not None:
            self._scheduler.cancel(page_number)
        self._release_surface(page_number)

    def _release_surface(self, page_number: int) -> None:
        surface = self._surfaces.pop(page_number, None)
        if surface is None:
            return
        surface.clear()
        if self._on_surface_change:
            self._on_surface_change(page_number, None)

