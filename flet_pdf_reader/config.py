"""
Reader configuration.

Defaults can be overridden with ``READER_*`` environment variables through
:meth:`ReaderConfig.from_env`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional

_ENV_FIELDS = {
    "backend_url": "READER_BACKEND_URL",
    "proxy_path": "READER_PROXY_PATH",
    "catalog_url": "READER_CATALOG_URL",
    "session_cookie": "READER_SESSION_COOKIE",
    "load_timeout": "READER_LOAD_TIMEOUT",
    "progress_timeout": "READER_PROGRESS_TIMEOUT",
    "device_pixel_ratio": "READER_DEVICE_PIXEL_RATIO",
    "prefetch_margin": "READER_PREFETCH_MARGIN",
    "evict_margin": "READER_EVICT_MARGIN",
    "save_debounce": "READER_SAVE_DEBOUNCE",
}


@dataclass
class ReaderConfig:
    """Settings shared by every part of a reader session."""

    backend_url: str = "http://localhost:3000"
    proxy_path: str = "/api/proxy-pdf"
    catalog_url: Optional[str] = None
    session_cookie: str = "user_session"

    # Seconds
    load_timeout: float = 60.0
    progress_timeout: float = 10.0
    resize_debounce: float = 0.1
    save_debounce: float = 2.0

    device_pixel_ratio: float = 1.0

    # Pixels beyond the viewport edges
    prefetch_margin: float = 800.0
    evict_margin: float = 3200.0
    center_band: float = 0.5

    min_zoom: float = 0.5
    max_zoom: float = 3.0
    zoom_epsilon: float = 1e-3
    zoom_step: float = 1.25

    page_gap: float = 16.0
    page_padding: float = 20.0

    def __post_init__(self):
        self.backend_url = self.backend_url.rstrip("/")
        if not self.catalog_url:
            self.catalog_url = self.backend_url
        self.device_pixel_ratio = max(1.0, float(self.device_pixel_ratio))
        if self.evict_margin < self.prefetch_margin:
            self.evict_margin = self.prefetch_margin
        if not 0.0 < self.center_band <= 1.0:
            raise ValueError("center_band must be in (0, 1]")
        if self.min_zoom <= 0 or self.min_zoom > self.max_zoom:
            raise ValueError("min_zoom must be positive and <= max_zoom")

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None, **overrides
    ) -> "ReaderConfig":
        """Build a config from environment variables plus explicit overrides."""
        environ = os.environ if environ is None else environ
        types = {f.name: f.type for f in fields(cls)}
        values = {}
        for name, var in _ENV_FIELDS.items():
            raw = environ.get(var)
            if raw is None or raw == "":
                continue
            if types[name] in ("float", float):
                try:
                    values[name] = float(raw)
                except ValueError:
                    raise ValueError(f"{var} must be a number, got {raw!r}") from None
            else:
                values[name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

