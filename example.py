"""
Minimal reader example.
For the command line app run ``flet-pdf-reader BOOK_ID``.
"""

import flet as ft

from flet_pdf_reader import ReaderConfig, ReaderView, parse_session_cookie


async def main(page: ft.Page):
    page.title = "Reader"
    page.padding = 0

    config = ReaderConfig.from_env()
    view = ReaderView(
        book_id=1,
        config=config,
        user_session=parse_session_cookie('{"id": "demo-user"}'),
        on_back=lambda: page.launch_url(config.catalog_url),
    )

    page.on_resized = lambda e: view.set_size(page.width, page.height)
    page.add(view.control)
    view.set_size(page.width, page.height)

    await view.open()


if __name__ == "__main__":
    ft.app(target=main)
