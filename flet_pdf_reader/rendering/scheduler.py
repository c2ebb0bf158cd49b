"""
Render scheduler - paints pages into surfaces, one active job per page.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from ..errors import RenderCancelled, RenderError
from ..loader import CancellationToken, DocumentHandle
from ..types import Raster, RasterStatus
from .surface import RasterSurface

logger = logging.getLogger(__name__)


@dataclass
class RenderJob:
    """One attempt to render ``page_number`` at ``target_width`` CSS pixels."""

    page_number: int
    target_width: float
    device_pixel_ratio: float = 1.0
    status: RasterStatus = RasterStatus.PENDING
    error: Optional[RenderError] = None


class RenderHandle:
    """Caller side of a render job."""

    def __init__(self, job: RenderJob):
        self.job = job
        self._token = CancellationToken()
        self._task: Optional[asyncio.Task] = None

    @property
    def token(self) -> CancellationToken:
        return self._token

    @property
    def status(self) -> RasterStatus:
        return self.job.status

    @property
    def error(self) -> Optional[RenderError]:
        return self.job.error

    @property
    def done(self) -> bool:
        return self.job.status in (
            RasterStatus.COMPLETE,
            RasterStatus.CANCELLED,
            RasterStatus.FAILED,
        )

    def cancel(self) -> None:
        """Stop the paint. The surface keeps its previous raster."""
        self._token.cancel()
        if self.job.status == RasterStatus.PENDING and self._task is None:
            self.job.status = RasterStatus.CANCELLED

    def add_done_callback(self, callback: Callable[["RenderHandle"], None]) -> None:
        """Call ``callback(handle)`` once the job settles."""
        if self._task is None:
            callback(self)
            return
        self._task.add_done_callback(lambda _task: callback(self))

    async def wait(self) -> RasterStatus:
        """Wait until the job settles and return its final status."""
        if self._task is not None:
            await asyncio.shield(self._task)
        return self.job.status


DoneCallback = Callable[[RenderHandle], None]


class RenderScheduler:
    """Schedules page paints for one document.

    Args:
        document: The open document
        resize_debounce: Delay in seconds that collapses bursts of
                         :meth:`schedule` calls for a page into one render
    """

    def __init__(self, document: DocumentHandle, resize_debounce: float = 0.1):
        self._document = document
        self._resize_debounce = resize_debounce
        self._active: Dict[int, RenderHandle] = {}
        self._timers: Dict[int, asyncio.TimerHandle] = {}
        self._pending: Dict[
            int, Tuple[float, float, RasterSurface, Optional[DoneCallback]]
        ] = {}
        self._closed = False

    def active(self, page_number: int) -> Optional[RenderHandle]:
        """The page's unsettled job, if any."""
        handle = self._active.get(page_number)
        if handle is not None and handle.done:
            return None
        return handle

    def render(
        self,
        page_number: int,
        target_width: float,
        device_pixel_ratio: float,
        surface: RasterSurface,
    ) -> RenderHandle:
        """Start painting a page, superseding its previous job."""
        if target_width <= 0:
            raise ValueError(f"Target width must be positive, got {target_width}")
        if self._closed:
            raise RuntimeError("Scheduler is closed")

        self._drop_timer(page_number)
        prior = self.active(page_number)
        if prior is not None:
            prior.cancel()
            logger.debug("Page %d: superseding render at %.1fpx", page_number, prior.job.target_width)

        job = RenderJob(
            page_number=page_number,
            target_width=float(target_width),
            device_pixel_ratio=max(1.0, float(device_pixel_ratio)),
        )
        handle = RenderHandle(job)
        self._active[page_number] = handle
        handle._task = asyncio.get_running_loop().create_task(
            self._run(handle, surface, prior)
        )
        return handle

    def schedule(
        self,
        page_number: int,
        target_width: float,
        device_pixel_ratio: float,
        surface: RasterSurface,
        on_done: Optional[DoneCallback] = None,
    ) -> None:
        """Render after the debounce delay; later calls replace earlier ones.

        ``on_done`` is attached to the render that eventually fires.
        """
        self._drop_timer(page_number)
        self._pending[page_number] = (target_width, device_pixel_ratio, surface, on_done)
        loop = asyncio.get_running_loop()
        self._timers[page_number] = loop.call_later(
            self._resize_debounce, self._fire, page_number
        )

    def scheduled(self, page_number: int) -> bool:
        return page_number in self._timers

    def cancel(self, page_number: int) -> None:
        """Cancel both the pending and the active render of a page."""
        self._drop_timer(page_number)
        handle = self.active(page_number)
        if handle is not None:
            handle.cancel()

    async def drain(self) -> None:
        """Wait for all pending and in-flight renders to settle."""
        while self._timers or any(not h.done for h in self._active.values()):
            if self._timers:
                await asyncio.sleep(self._resize_debounce)
                continue
            handles = [h for h in self._active.values() if not h.done]
            await asyncio.gather(*(h.wait() for h in handles))

    def close(self) -> None:
        """Cancel everything; no new renders are accepted."""
        self._closed = True
        for page_number in list(self._timers):
            self._drop_timer(page_number)
        for handle in self._active.values():
            handle.cancel()

    def _fire(self, page_number: int) -> None:
        self._timers.pop(page_number, None)
        params = self._pending.pop(page_number, None)
        if params is None or self._closed:
            return
        target_width, device_pixel_ratio, surface, on_done = params
        handle = self.render(page_number, target_width, device_pixel_ratio, surface)
        if on_done is not None:
            handle.add_done_callback(on_done)

    def _drop_timer(self, page_number: int) -> None:
        timer = self._timers.pop(page_number, None)
        if timer is not None:
            timer.cancel()
        self._pending.pop(page_number, None)

    async def _run(
        self,
        handle: RenderHandle,
        surface: RasterSurface,
        prior: Optional[RenderHandle],
    ) -> None:
        job = handle.job
        token = handle.token
        try:
            if prior is not None:
                # The superseded job must settle before this one may paint.
                await prior.wait()
            token.raise_if_cancelled(job.page_number)
            job.status = RasterStatus.RENDERING

            page = await self._document.get_page(job.page_number)
            token.raise_if_cancelled(job.page_number)

            scale = job.target_width / page.width
            png, pixel_width, pixel_height = await page.render(
                scale * job.device_pixel_ratio, token
            )
            token.raise_if_cancelled(job.page_number)

            surface.commit(
                Raster(
                    page_number=job.page_number,
                    png=png,
                    pixel_width=pixel_width,
                    pixel_height=pixel_height,
                    css_width=job.target_width,
                    css_height=page.height * scale,
                )
            )
            job.status = RasterStatus.COMPLETE
            logger.debug(
                "Page %d: rendered %dx%d px at %.1fpx",
                job.page_number, pixel_width, pixel_height, job.target_width,
            )
        except RenderCancelled:
            job.status = RasterStatus.CANCELLED
            logger.debug("Page %d: render cancelled", job.page_number)
        except asyncio.CancelledError:
            job.status = RasterStatus.CANCELLED
            raise
        except Exception as exc:
            job.status = RasterStatus.FAILED
            job.error = RenderError(job.page_number, f"Failed to render page {job.page_number}: {exc}")
            logger.warning("Page %d: render failed: %s", job.page_number, exc)
        finally:
            if self._active.get(job.page_number) is handle:
                del self._active[job.page_number]
