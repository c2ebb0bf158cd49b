"""
Flet PDF Reader

A book reader built with Flet and PyMuPDF: streamed loading, lazy page
rendering, pinch and slider zoom, and saved reading progress.

Usage:
    import flet as ft
    from flet_pdf_reader import ReaderConfig, ReaderView

    async def main(page: ft.Page):
        view = ReaderView(book_id=3, config=ReaderConfig.from_env())
        page.add(view.control)
        view.set_size(page.width, page.height)
        await view.open()

    ft.app(main)
"""

from .auth import UserSession, parse_session_cookie, session_from_cookie_header
from .catalog import BookStoreClient
from .config import ReaderConfig
from .errors import (
    BookNotFound,
    LoadError,
    LoadTimeout,
    NetworkError,
    ProgressError,
    ProgressTimeout,
    ReaderError,
    RenderCancelled,
    RenderError,
    Unauthorized,
)
from .interactions.zoom import ZoomHandler
from .loader import DocumentHandle, DocumentLoader, PageHandle
from .progress import ProgressClient, ProgressSaver
from .reader import ReaderSession
from .rendering import (
    ImageSurface,
    PageLayout,
    RasterSurface,
    RenderHandle,
    RenderScheduler,
    ViewportController,
)
from .types import (
    Book,
    GestureSnapshot,
    LoadProgress,
    PageState,
    RasterStatus,
    ReaderState,
    ReadingProgress,
    SaveResult,
    SaveStatus,
    ZoomState,
)
from .viewer import ReaderView

__version__ = "0.1.0"

__all__ = [
    "Book",
    "BookNotFound",
    "BookStoreClient",
    "DocumentHandle",
    "DocumentLoader",
    "GestureSnapshot",
    "ImageSurface",
    "LoadError",
    "LoadProgress",
    "LoadTimeout",
    "NetworkError",
    "PageHandle",
    "PageLayout",
    "PageState",
    "ProgressClient",
    "ProgressError",
    "ProgressSaver",
    "ProgressTimeout",
    "RasterStatus",
    "RasterSurface",
    "ReaderConfig",
    "ReaderError",
    "ReaderSession",
    "ReaderState",
    "ReaderView",
    "ReadingProgress",
    "RenderCancelled",
    "RenderError",
    "RenderHandle",
    "RenderScheduler",
    "SaveResult",
    "SaveStatus",
    "Unauthorized",
    "UserSession",
    "ViewportController",
    "ZoomHandler",
    "ZoomState",
    "parse_session_cookie",
    "session_from_cookie_header",
    "__version__",
]
