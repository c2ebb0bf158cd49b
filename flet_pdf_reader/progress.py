"""
Reading progress persistence.

``ProgressClient`` talks to the progress store; ``ProgressSaver`` debounces
automatic saves and turns failures into :class:`SaveResult` values the UI
can show.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

import httpx

from .auth import UserSession
from .errors import NetworkError, ProgressError, ProgressTimeout, Unauthorized
from .types import ReadingProgress, SaveResult, SaveStatus

logger = logging.getLogger(__name__)


class ProgressClient:
    """Client of ``/api/progress``.

    Args:
        base_url: Store root
        session: Signed-in reader, or None for anonymous reading
        client: Shared ``httpx.AsyncClient`` (one is created per call if None)
        timeout: Seconds per request
    """

    def __init__(
        self,
        base_url: str,
        session: Optional[UserSession],
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session
        self._client = client
        self._timeout = timeout

    @property
    def can_save(self) -> bool:
        return self.session is not None

    async def load(self, book_id: int) -> int:
        """Saved page for ``book_id``; 1 when there is none or it can't be read."""
        if self.session is None:
            return 1
        params = {"userId": self.session.user_id, "bookId": str(book_id)}
        try:
            response = await self._request("GET", "/api/progress", params=params)
            if response.status_code != 200:
                logger.warning("Progress load returned HTTP %d", response.status_code)
                return 1
            page = int(response.json().get("page") or 1)
        except (httpx.HTTPError, ValueError, TypeError, AttributeError) as exc:
            logger.warning("Progress load failed, starting at page 1: %s", exc)
            return 1
        return max(1, page)

    async def save(self, book_id: int, page: int) -> ReadingProgress:
        """Store ``page`` as the reading position.

        Raises:
            Unauthorized: With no session, or when the store rejects it
            ProgressTimeout: When the store does not answer in time
            NetworkError: On transport failures or unexpected statuses
        """
        if self.session is None:
            raise Unauthorized("Login required")

        progress = ReadingProgress(
            user_id=self.session.user_id, book_id=int(book_id), page=int(page)
        )
        payload = {
            "userId": progress.user_id,
            "bookId": progress.book_id,
            "page": progress.page,
        }
        try:
            response = await self._request("POST", "/api/progress", json=payload)
        except httpx.TimeoutException as exc:
            raise ProgressTimeout("Progress store timed out") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"Failed to save: {exc}") from exc

        if response.status_code in (401, 403):
            raise Unauthorized("Login required")
        if response.status_code >= 400:
            raise NetworkError(f"Failed to save: HTTP {response.status_code}")

        logger.info("Saved page %d of book %d", progress.page, progress.book_id)
        return progress

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = f"{self.base_url}{path}"
        if self._client is not None:
            return await self._client.request(method, url, timeout=self._timeout, **kwargs)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.request(method, url, **kwargs)


class ProgressSaver:
    """Debounced saves of the current page for one book.

    Args:
        client: The progress client
        book_id: Book being read
        delay: Seconds of inactivity before an automatic save
        on_result: Called with every :class:`SaveResult`, including SAVING
    """

    def __init__(
        self,
        client: ProgressClient,
        book_id: int,
        delay: float = 2.0,
        on_result: Optional[Callable[[SaveResult], None]] = None,
    ):
        self._client = client
        self._book_id = book_id
        self._delay = delay
        self._on_result = on_result
        self._pending: Optional[int] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None
        self._last_saved: Optional[int] = None
        self.last_result = SaveResult(SaveStatus.IDLE, 0)

    @property
    def pending(self) -> Optional[int]:
        return self._pending

    def schedule(self, page: int) -> None:
        """Save ``page`` once no other page was scheduled for ``delay`` seconds."""
        if not self._client.can_save or page == self._last_saved:
            return
        self._pending = page
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._delay, self._fire)

    async def flush(self) -> Optional[SaveResult]:
        """Save the pending page now, if any."""
        self._cancel_timer()
        if self._task is not None and not self._task.done():
            await self._task
        if self._pending is None:
            return None
        return await self.save_now(self._pending)

    async def save_now(self, page: int) -> SaveResult:
        """Save immediately. Never raises."""
        self._cancel_timer()
        self._pending = None
        self._report(SaveResult(SaveStatus.SAVING, page))
        try:
            await self._client.save(self._book_id, page)
        except Unauthorized as exc:
            result = SaveResult(SaveStatus.UNAUTHORIZED, page, str(exc))
        except ProgressError as exc:
            logger.warning("Saving page %d failed: %s", page, exc)
            result = SaveResult(SaveStatus.FAILED, page, str(exc))
        else:
            self._last_saved = page
            result = SaveResult(SaveStatus.SAVED, page)
        self._report(result)
        return result

    def close(self) -> None:
        self._cancel_timer()
        self._pending = None

    def _fire(self) -> None:
        self._timer = None
        if self._pending is None:
            return
        self._task = asyncio.get_running_loop().create_task(self.save_now(self._pending))

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _report(self, result: SaveResult) -> None:
        self.last_result = result
        if self._on_result:
            self._on_result(result)
