"""
Reader view - Flet skin over a reader session.

Composes the header, the lazily rendered page stack, pinch zoom, and the
loading and error screens into a single component.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

import flet as ft

from .auth import UserSession
from .config import ReaderConfig
from .reader import ReaderSession
from .rendering.surface import ImageSurface, RasterSurface
from .rendering.viewport import PageLayout
from .types import LoadProgress, ReaderState, SaveResult, SaveStatus

HEADER_HEIGHT = 56

COLORS = {
    "bg": "#0f172a",
    "header": "#1e293b",
    "border": "#334155",
    "reading": "#475569",
    "page": "#ffffff",
    "text": "#ffffff",
    "text_muted": "#94a3b8",
    "accent": "#2563eb",
    "error": "#f87171",
    "ok": "#4ade80",
}

_SAVE_LABELS = {
    SaveStatus.IDLE: ("", COLORS["text_muted"]),
    SaveStatus.SAVING: ("Saving…", COLORS["text_muted"]),
    SaveStatus.SAVED: ("Saved", COLORS["ok"]),
    SaveStatus.FAILED: ("Save failed", COLORS["error"]),
    SaveStatus.UNAUTHORIZED: ("Login required", COLORS["error"]),
}


class ReaderView:
    """
    Reader component.

    Usage:
        from flet_pdf_reader import ReaderView

        view = ReaderView(book_id=3, on_back=lambda: page.launch_url("/"))
        page.add(view.control)
        view.set_size(page.width, page.height)
        await view.open()
    """

    def __init__(
        self,
        book_id: int,
        config: Optional[ReaderConfig] = None,
        user_session: Optional[UserSession] = None,
        on_back: Optional[Callable[[], None]] = None,
        **session_options,
    ):
        self._config = config or ReaderConfig()
        self._on_back = on_back
        self._session = ReaderSession(
            book_id,
            self._config,
            session=user_session,
            surface_factory=ImageSurface,
            on_state_change=self._on_state_change,
            on_load_progress=self._on_load_progress,
            on_layout_change=self._on_layout_change,
            on_scroll_request=self._on_scroll_request,
            on_page_change=self._on_page_change,
            on_surface_change=self._on_surface_change,
            on_save_result=self._on_save_result,
            **session_options,
        )

        # UI state
        self._wrapper: Optional[ft.Container] = None
        self._slots: List[ft.Container] = []
        self._top_spacer: Optional[ft.Container] = None
        self._bottom_spacer: Optional[ft.Container] = None
        self._surface_controls: Dict[int, RasterSurface] = {}

        self._build()

    # Properties

    @property
    def control(self) -> ft.Control:
        """The Flet control to add to a page."""
        return self._wrapper

    @property
    def session(self) -> ReaderSession:
        return self._session

    # Lifecycle

    async def open(self) -> bool:
        """Load the book. Failures end in the error screen."""
        return await self._session.open()

    async def close(self) -> None:
        await self._session.close()

    def set_size(self, width: Optional[float], height: Optional[float]) -> None:
        """Size available to the whole view."""
        if not width or not height:
            return
        reading_height = max(0.0, height - HEADER_HEIGHT)
        self._pages_column.height = reading_height
        self._session.set_viewport(width, reading_height)
        self._update(self._pages_column)

    # Private methods

    def _build(self):
        """Build the viewer UI."""
        self._title = ft.Text(
            self._session.title,
            size=14,
            weight=ft.FontWeight.BOLD,
            color=COLORS["text"],
            max_lines=1,
            overflow=ft.TextOverflow.ELLIPSIS,
            width=160,
        )
        self._page_label = ft.Text("", size=10, color=COLORS["text_muted"])
        self._save_label = ft.Text("", size=11, color=COLORS["text_muted"])
        self._zoom_label = ft.Text("100%", size=11, color=COLORS["text_muted"], width=40)
        self._zoom_slider = ft.Slider(
            min=self._config.min_zoom,
            max=self._config.max_zoom,
            value=1.0,
            width=140,
            on_change=self._on_slider_change,
        )
        self._prev_button = ft.IconButton(
            icon=ft.Icons.CHEVRON_LEFT, icon_color=COLORS["text"], on_click=self._on_prev_click,
            tooltip="Previous page",
        )
        self._next_button = ft.IconButton(
            icon=ft.Icons.CHEVRON_RIGHT, icon_color=COLORS["text"], on_click=self._on_next_click,
            tooltip="Next page",
        )
        self._save_button = ft.ElevatedButton(
            "Save",
            bgcolor=COLORS["accent"],
            color=COLORS["text"],
            on_click=self._on_save_click,
        )

        header = ft.Container(
            content=ft.Row(
                controls=[
                    ft.Row(
                        controls=[
                            ft.IconButton(
                                icon=ft.Icons.ARROW_BACK,
                                icon_color=COLORS["text"],
                                tooltip="Back to catalog",
                                on_click=self._on_back_click,
                            ),
                            ft.Column(
                                controls=[self._title, self._page_label],
                                spacing=0,
                                alignment=ft.MainAxisAlignment.CENTER,
                            ),
                        ],
                        spacing=8,
                    ),
                    ft.Row(
                        controls=[
                            ft.IconButton(
                                icon=ft.Icons.ZOOM_OUT, icon_color=COLORS["text_muted"],
                                on_click=lambda e: self._session.zoom_out(),
                            ),
                            self._zoom_slider,
                            ft.IconButton(
                                icon=ft.Icons.ZOOM_IN, icon_color=COLORS["text_muted"],
                                on_click=lambda e: self._session.zoom_in(),
                            ),
                            self._zoom_label,
                            self._prev_button,
                            self._save_button,
                            self._save_label,
                            self._next_button,
                        ],
                        spacing=4,
                    ),
                ],
                alignment=ft.MainAxisAlignment.SPACE_BETWEEN,
            ),
            height=HEADER_HEIGHT,
            bgcolor=COLORS["header"],
            border=ft.border.only(bottom=ft.BorderSide(1, COLORS["border"])),
            padding=ft.padding.symmetric(horizontal=12),
        )

        self._top_spacer = ft.Container(height=0)
        self._bottom_spacer = ft.Container(height=0)
        self._pages_column = ft.Column(
            controls=[self._top_spacer, self._bottom_spacer],
            spacing=0,
            scroll=ft.ScrollMode.AUTO,
            on_scroll=self._on_vertical_scroll,
            on_scroll_interval=50,
            horizontal_alignment=ft.CrossAxisAlignment.CENTER,
        )
        self._pages_row = ft.Row(
            controls=[self._pages_column],
            scroll=ft.ScrollMode.AUTO,
            on_scroll=self._on_horizontal_scroll,
            vertical_alignment=ft.CrossAxisAlignment.START,
            expand=True,
        )
        reading_area = ft.Container(
            content=ft.GestureDetector(
                content=self._pages_row,
                on_scale_start=self._on_scale_start,
                on_scale_update=self._on_scale_update,
                on_scale_end=self._on_scale_end,
            ),
            bgcolor=COLORS["reading"],
            expand=True,
        )

        self._progress_bar = ft.ProgressBar(width=220, value=None, color=COLORS["accent"])
        self._progress_label = ft.Text("Loading…", color=COLORS["text"])
        self._loading_overlay = ft.Container(
            content=ft.Column(
                controls=[self._progress_bar, self._progress_label],
                horizontal_alignment=ft.CrossAxisAlignment.CENTER,
                alignment=ft.MainAxisAlignment.CENTER,
            ),
            bgcolor=ft.Colors.with_opacity(0.9, COLORS["bg"]),
            alignment=ft.alignment.center,
            expand=True,
            visible=True,
        )

        self._error_label = ft.Text("", color=COLORS["error"])
        self._error_view = ft.Container(
            content=ft.Column(
                controls=[
                    self._error_label,
                    ft.TextButton("Back to catalog", on_click=self._on_back_click),
                ],
                horizontal_alignment=ft.CrossAxisAlignment.CENTER,
                alignment=ft.MainAxisAlignment.CENTER,
            ),
            bgcolor=COLORS["bg"],
            alignment=ft.alignment.center,
            expand=True,
            visible=False,
        )

        self._wrapper = ft.Container(
            content=ft.Stack(
                controls=[
                    ft.Column(controls=[header, reading_area], spacing=0, expand=True),
                    self._loading_overlay,
                    self._error_view,
                ],
                expand=True,
            ),
            bgcolor=COLORS["bg"],
            expand=True,
        )

    def _build_slots(self, layout: PageLayout) -> None:
        """One placeholder container per page; rasters are attached lazily."""
        self._slots = [
            ft.Container(
                content=self._placeholder(n),
                bgcolor=COLORS["page"],
                border_radius=2,
                alignment=ft.alignment.center,
                shadow=ft.BoxShadow(
                    spread_radius=0,
                    blur_radius=20,
                    color=ft.Colors.with_opacity(0.3, "#000000"),
                ),
            )
            for n in range(1, layout.page_count + 1)
        ]
        self._pages_column.controls = [self._top_spacer, *self._slots, self._bottom_spacer]

    def _placeholder(self, page_number: int) -> ft.Control:
        return ft.Text(str(page_number), color=COLORS["text_muted"])

    def _update(self, *controls: ft.Control):
        for control in controls:
            if control is not None and control.page:
                control.update()

    def _update_header(self):
        session = self._session
        self._title.value = session.title
        self._page_label.value = (
            f"Page {session.current_page} of {session.page_count}" if session.page_count else ""
        )
        self._prev_button.disabled = session.current_page <= 1
        self._next_button.disabled = session.current_page >= session.page_count
        self._save_button.disabled = not session.can_save
        self._update(
            self._title, self._page_label, self._prev_button, self._next_button, self._save_button
        )

    # Session callbacks

    def _on_state_change(self, state: ReaderState):
        self._loading_overlay.visible = state == ReaderState.LOADING
        self._error_view.visible = state == ReaderState.ERROR
        if state == ReaderState.ERROR:
            self._error_label.value = f"Error: {self._session.error}"
        self._update_header()
        self._update(self._loading_overlay, self._error_view)

    def _on_load_progress(self, progress: LoadProgress):
        self._progress_bar.value = progress.fraction
        percent = progress.percent
        self._progress_label.value = (
            f"Loading… {percent}%"
            if percent is not None
            else f"Loading… {progress.bytes_loaded // 1024} KB"
        )
        self._update(self._progress_bar, self._progress_label)

    def _on_layout_change(self, layout: PageLayout):
        if len(self._slots) != layout.page_count:
            self._build_slots(layout)
        for n, slot in enumerate(self._slots, start=1):
            slot.width = layout.content_width
            slot.height = layout.height(n)
            slot.margin = ft.margin.only(bottom=0 if n == layout.page_count else layout.gap)
        self._top_spacer.height = layout.padding
        self._bottom_spacer.height = layout.padding
        self._pages_column.width = layout.total_width

        scale = self._session.zoom.scale
        self._zoom_slider.value = scale
        self._zoom_label.value = f"{round(scale * 100)}%"
        self._update(self._pages_column, self._zoom_slider, self._zoom_label)

    def _on_scroll_request(self, x: float, y: float):
        if self._pages_column.page:
            self._pages_column.scroll_to(offset=y, duration=0)
        if self._pages_row.page:
            self._pages_row.scroll_to(offset=x, duration=0)

    def _on_page_change(self, page_number: int):
        self._update_header()

    def _on_surface_change(self, page_number: int, surface: Optional[RasterSurface]):
        if page_number > len(self._slots):
            return
        slot = self._slots[page_number - 1]
        if surface is None:
            self._surface_controls.pop(page_number, None)
            slot.content = self._placeholder(page_number)
        else:
            self._surface_controls[page_number] = surface
            surface.add_listener(self._on_surface_painted)
        self._update(slot)

    def _on_surface_painted(self, surface: RasterSurface):
        page_number = surface.page_number
        if self._surface_controls.get(page_number) is not surface:
            return
        slot = self._slots[page_number - 1]
        image = getattr(surface, "control", None)
        slot.content = image if image is not None else self._placeholder(page_number)
        self._update(slot)

    def _on_save_result(self, result: SaveResult):
        text, color = _SAVE_LABELS[result.status]
        self._save_label.value = text
        self._save_label.color = color
        self._update(self._save_label)

    # Event handlers

    def _on_vertical_scroll(self, e: ft.OnScrollEvent):
        self._session.on_scroll(self._session.scroll[0], e.pixels)

    def _on_horizontal_scroll(self, e: ft.OnScrollEvent):
        self._session.on_scroll(e.pixels, self._session.scroll[1])

    def _on_scale_start(self, e: ft.ScaleStartEvent):
        if e.pointer_count >= 2:
            # Flet reports the pinch as a ratio, so the start distance is 1.
            self._session.begin_pinch(e.local_focal_point_x, e.local_focal_point_y)

    def _on_scale_update(self, e: ft.ScaleUpdateEvent):
        if self._session.zoom.gesture is None:
            return
        self._session.update_pinch(e.scale, e.local_focal_point_x, e.local_focal_point_y)

    def _on_scale_end(self, e: ft.ScaleEndEvent):
        self._session.end_pinch()

    def _on_slider_change(self, e: ft.ControlEvent):
        self._session.set_zoom(float(e.control.value))

    def _on_prev_click(self, e):
        self._session.previous_page()

    def _on_next_click(self, e):
        self._session.next_page()

    async def _on_save_click(self, e):
        await self._session.save()

    async def _on_back_click(self, e):
        # Leaving the reader saves any pending position first.
        await self._session.close()
        if self._on_back:
            self._on_back()
