"""
Raster surfaces - the pixel buffers pages are painted into.
"""

from __future__ import annotations

import base64
from typing import Callable, List, Optional

import flet as ft

from ..types import Raster

SurfaceListener = Callable[["RasterSurface"], None]


class RasterSurface:
    """Holds the last successfully painted raster of one page.

    A commit replaces the raster in a single step, so readers never observe
    a partially painted page.
    """

    def __init__(self, page_number: int):
        self.page_number = page_number
        self._raster: Optional[Raster] = None
        self._css_size: Optional[tuple] = None
        self._listeners: List[SurfaceListener] = []
        self.commits = 0

    @property
    def raster(self) -> Optional[Raster]:
        return self._raster

    @property
    def painted(self) -> bool:
        return self._raster is not None

    @property
    def pixel_width(self) -> int:
        return self._raster.pixel_width if self._raster else 0

    @property
    def pixel_height(self) -> int:
        return self._raster.pixel_height if self._raster else 0

    @property
    def css_width(self) -> float:
        if self._css_size:
            return self._css_size[0]
        return self._raster.css_width if self._raster else 0.0

    @property
    def css_height(self) -> float:
        if self._css_size:
            return self._css_size[1]
        return self._raster.css_height if self._raster else 0.0

    def add_listener(self, listener: SurfaceListener) -> None:
        self._listeners.append(listener)

    def commit(self, raster: Raster) -> None:
        """Replace the displayed raster."""
        self._check(raster)
        self._raster = raster
        self._css_size = None
        self.commits += 1
        self._notify()

    def _check(self, raster: Raster) -> None:
        if raster.page_number != self.page_number:
            raise ValueError(
                f"Raster of page {raster.page_number} committed to page {self.page_number}"
            )

    def resize(self, css_width: float, css_height: float) -> None:
        """Change the presented size without repainting."""
        self._css_size = (css_width, css_height)
        self._notify()

    def clear(self) -> None:
        """Release the raster."""
        self._raster = None
        self._css_size = None
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)


class ImageSurface(RasterSurface):
    """Raster surface shown through a Flet image control."""

    def __init__(self, page_number: int):
        super().__init__(page_number)
        self._image: Optional[ft.Image] = None

    @property
    def control(self) -> Optional[ft.Image]:
        """The image control, or None until something was painted."""
        return self._image

    def commit(self, raster: Raster) -> None:
        self._check(raster)
        encoded = base64.b64encode(raster.png).decode("ascii")
        if self._image is None:
            self._image = ft.Image(
                src_base64=encoded,
                width=raster.css_width,
                height=raster.css_height,
                fit=ft.ImageFit.FILL,
                gapless_playback=True,
            )
        else:
            self._image.src_base64 = encoded
            self._image.width = raster.css_width
            self._image.height = raster.css_height
        super().commit(raster)

    def resize(self, css_width: float, css_height: float) -> None:
        if self._image is not None:
            self._image.width = css_width
            self._image.height = css_height
        super().resize(css_width, css_height)

    def clear(self) -> None:
        self._image = None
        super().clear()
