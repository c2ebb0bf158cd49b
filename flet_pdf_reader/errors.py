"""
Error taxonomy of the reader.
"""

from typing import Optional


class ReaderError(Exception):
    """Base class for reader failures."""


class LoadError(ReaderError):
    """Document unreachable, unparseable, or its stream was interrupted."""


class LoadTimeout(LoadError):
    """Document did not arrive within the client-side timeout."""


class BookNotFound(ReaderError):
    """Book record is missing or has no PDF."""


class RenderError(ReaderError):
    """A page failed to paint for a reason other than cancellation."""

    def __init__(self, page_number: int, message: str = ""):
        self.page_number = page_number
        super().__init__(message or f"Failed to render page {page_number}")


class RenderCancelled(ReaderError):
    """A render job was superseded or cancelled. Expected, never shown."""

    def __init__(self, page_number: Optional[int] = None):
        self.page_number = page_number
        super().__init__(
            "Render cancelled"
            if page_number is None
            else f"Render of page {page_number} cancelled"
        )


class ProgressError(ReaderError):
    """Reading progress could not be loaded or saved."""


class Unauthorized(ProgressError):
    """No session, or the store rejected it."""


class NetworkError(ProgressError):
    """Transport failure or unexpected status from a remote store."""


class ProgressTimeout(NetworkError):
    """Progress store did not answer within the client-side timeout."""
