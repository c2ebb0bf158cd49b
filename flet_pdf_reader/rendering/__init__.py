"""
Rendering - surfaces, render scheduling and viewport lazy loading.
"""

from .scheduler import RenderHandle, RenderJob, RenderScheduler
from .surface import ImageSurface, RasterSurface
from .viewport import PageLayout, ViewportController

__all__ = [
    "ImageSurface",
    "PageLayout",
    "RasterSurface",
    "RenderHandle",
    "RenderJob",
    "RenderScheduler",
    "ViewportController",
]
