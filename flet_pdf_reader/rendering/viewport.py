"""
Viewport lazy loading - decides which pages get rasters and which page is
the current reading position.
"""

from __future__ import annotations

import bisect
import logging
from typing import Callable, Dict, List, Optional, Sequence, Set

from ..types import PageSize, PageState

logger = logging.getLogger(__name__)


class PageLayout:
    """Vertical stack of pages, all scaled to the same width.

    Every length (page size, gap, padding) scales with ``content_width``, so
    a zoom change maps every document point by the same ratio.

    Args:
        page_sizes: Native (width, height) of each page, in points
        content_width: Width of each page in CSS pixels
        gap: Space between pages
        padding: Space around the stack
    """

    def __init__(
        self,
        page_sizes: Sequence[PageSize],
        content_width: float,
        gap: float = 16.0,
        padding: float = 20.0,
    ):
        if not page_sizes:
            raise ValueError("Layout needs at least one page")
        self.page_sizes = list(page_sizes)
        self.content_width = max(1.0, float(content_width))
        self.gap = gap
        self.padding = padding

        self._tops: List[float] = []
        self._heights: List[float] = []
        y = padding
        for width, height in self.page_sizes:
            scaled = height * (self.content_width / width) if width else 0.0
            self._tops.append(y)
            self._heights.append(scaled)
            y += scaled + gap
        self._total_height = y - gap + padding

    @property
    def page_count(self) -> int:
        return len(self.page_sizes)

    @property
    def total_height(self) -> float:
        return self._total_height

    @property
    def total_width(self) -> float:
        return self.content_width + 2 * self.padding

    def top(self, page_number: int) -> float:
        return self._tops[page_number - 1]

    def height(self, page_number: int) -> float:
        return self._heights[page_number - 1]

    def bottom(self, page_number: int) -> float:
        return self.top(page_number) + self.height(page_number)

    def offset_of(self, page_number: int) -> float:
        """Scroll offset that puts the page's top edge at the viewport top."""
        page_number = min(max(page_number, 1), self.page_count)
        return self.top(page_number)

    def page_at(self, y: float) -> int:
        """Page whose box (or following gap) contains ``y``."""
        index = bisect.bisect_right(self._tops, y) - 1
        return min(max(index, 0), self.page_count - 1) + 1

    def pages_between(self, y0: float, y1: float) -> List[int]:
        """Pages overlapping the closed interval [y0, y1]."""
        first = self.page_at(y0)
        pages = []
        for page_number in range(first, self.page_count + 1):
            if self.top(page_number) > y1:
                break
            if self.bottom(page_number) >= y0:
                pages.append(page_number)
        return pages

    def scaled(self, content_width: float, gap: float, padding: float) -> "PageLayout":
        return PageLayout(self.page_sizes, content_width, gap, padding)


class ViewportController:
    """Tracks page membership in the pre-fetch band and the centered page.

    Pages move ``UNLOADED -> RENDERING -> RENDERED``; pages that drift past
    the eviction band go back to ``UNLOADED``.

    Args:
        layout: Current page geometry
        prefetch_margin: Distance beyond the viewport where rendering starts
        evict_margin: Distance beyond the viewport where rasters are dropped
        center_band: Fraction of the viewport height, centered, that decides
                     the reading position
        on_enter: Called with a page number that should start rendering
        on_evict: Called with a page number whose raster should be released
        on_center: Called when the centered page changes
    """

    def __init__(
        self,
        layout: PageLayout,
        prefetch_margin: float = 800.0,
        evict_margin: float = 3200.0,
        center_band: float = 0.5,
        on_enter: Optional[Callable[[int], None]] = None,
        on_evict: Optional[Callable[[int], None]] = None,
        on_center: Optional[Callable[[int], None]] = None,
    ):
        self._layout = layout
        self._prefetch_margin = prefetch_margin
        self._evict_margin = max(evict_margin, prefetch_margin)
        self._center_band = center_band
        self._on_enter = on_enter
        self._on_evict = on_evict
        self._on_center = on_center

        self._states: Dict[int, PageState] = {}
        self._members: Set[int] = set()
        self._failed: Set[int] = set()
        self._centered: Optional[int] = None
        self._scroll_y = 0.0
        self._viewport_height = 0.0

    @property
    def layout(self) -> PageLayout:
        return self._layout

    @property
    def members(self) -> Set[int]:
        """Pages currently inside the pre-fetch band."""
        return set(self._members)

    @property
    def centered_page(self) -> Optional[int]:
        return self._centered

    def state(self, page_number: int) -> PageState:
        return self._states.get(page_number, PageState.UNLOADED)

    def pages_in(self, state: PageState) -> List[int]:
        return sorted(n for n, s in self._states.items() if s == state)

    def update(self, scroll_y: float, viewport_height: float) -> None:
        """Re-evaluate membership for a new scroll position or viewport size."""
        self._scroll_y = max(0.0, scroll_y)
        self._viewport_height = max(0.0, viewport_height)
        if self._viewport_height <= 0:
            return

        top = self._scroll_y
        bottom = self._scroll_y + self._viewport_height

        members = set(
            self._layout.pages_between(
                top - self._prefetch_margin, bottom + self._prefetch_margin
            )
        )
        keep = set(
            self._layout.pages_between(
                top - self._evict_margin, bottom + self._evict_margin
            )
        )

        entered = sorted(members - self._members, key=lambda n: abs(n - self._layout.page_at(top)))
        self._members = members

        for page_number in sorted(self._states):
            if page_number in keep:
                continue
            if self._states[page_number] != PageState.UNLOADED or page_number in self._failed:
                self._states[page_number] = PageState.UNLOADED
                self._failed.discard(page_number)
                logger.debug("Page %d: evicted", page_number)
                if self._on_evict:
                    self._on_evict(page_number)

        for page_number in entered:
            if self.state(page_number) == PageState.UNLOADED:
                self._states[page_number] = PageState.RENDERING
                self._failed.discard(page_number)
                logger.debug("Page %d: entered viewport", page_number)
                if self._on_enter:
                    self._on_enter(page_number)

        self._update_center(top, bottom)

    def relayout(self, layout: PageLayout) -> None:
        """Swap geometry (zoom or resize). Follow with :meth:`update`."""
        if layout.page_count != self._layout.page_count:
            raise ValueError("Layout page count changed")
        self._layout = layout

    def mark_rendered(self, page_number: int) -> None:
        if (
            self._states.get(page_number) == PageState.RENDERING
            or page_number in self._failed
        ):
            self._states[page_number] = PageState.RENDERED
            self._failed.discard(page_number)

    def mark_failed(self, page_number: int) -> None:
        """Back to UNLOADED; retried once the page re-enters the band."""
        if self._states.get(page_number) != PageState.UNLOADED:
            self._states[page_number] = PageState.UNLOADED
            self._failed.add(page_number)

    def _update_center(self, top: float, bottom: float) -> None:
        height = bottom - top
        margin = height * (1.0 - self._center_band) / 2.0
        band_top = top + margin
        band_bottom = bottom - margin

        best = None
        best_overlap = 0.0
        for page_number in self._layout.pages_between(band_top, band_bottom):
            overlap = min(band_bottom, self._layout.bottom(page_number)) - max(
                band_top, self._layout.top(page_number)
            )
            if overlap > best_overlap:
                best = page_number
                best_overlap = overlap

        if best is not None and best != self._centered:
            self._centered = best
            if self._on_center:
                self._on_center(best)
