"""
Command line entry point.

    flet-pdf-reader 3 --backend-url http://localhost:3000 --session '{"id": "42"}'
"""

from __future__ import annotations

import argparse
import logging
import os
from typing import List, Optional

import flet as ft

from .auth import UserSession, parse_session_cookie, session_from_cookie_header
from .config import ReaderConfig
from .viewer import ReaderView

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flet-pdf-reader", description="Read a catalog book as a PDF."
    )
    parser.add_argument("book_id", type=int, help="Catalog id of the book")
    parser.add_argument("--backend-url", help="Book and progress store root")
    parser.add_argument(
        "--session",
        help="Value of the session cookie (defaults to $READER_SESSION)",
    )
    parser.add_argument(
        "--cookie", help="Full Cookie header; the session is read from the session cookie"
    )
    parser.add_argument("--dpr", type=float, help="Device pixel ratio for rasters")
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    parser.add_argument("--web", action="store_true", help="Serve in the browser")
    return parser


def make_target(book_id: int, config: ReaderConfig, user_session: Optional[UserSession]):
    """Build the Flet ``target`` coroutine for one book."""

    async def main(page: ft.Page):
        page.title = "Reader"
        page.padding = 0
        page.spacing = 0
        page.theme_mode = ft.ThemeMode.DARK

        def go_back():
            page.launch_url(config.catalog_url, web_window_name="_self")

        view = ReaderView(book_id, config, user_session=user_session, on_back=go_back)

        def on_resized(e):
            view.set_size(page.width, page.height)

        async def on_disconnect(e):
            await view.close()

        page.on_resized = on_resized
        page.on_disconnect = on_disconnect
        page.add(view.control)
        view.set_size(page.width, page.height)

        if await view.open():
            page.title = view.session.title or page.title
            page.update()

    return main


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = ReaderConfig.from_env(
        backend_url=args.backend_url, device_pixel_ratio=args.dpr
    )
    if args.cookie:
        user_session = session_from_cookie_header(args.cookie, config.session_cookie)
    else:
        user_session = parse_session_cookie(args.session or os.environ.get("READER_SESSION"))
    if user_session is None:
        logger.info("No session; reading anonymously, progress will not be saved")

    ft.app(
        target=make_target(args.book_id, config, user_session),
        view=ft.AppView.WEB_BROWSER if args.web else ft.AppView.FLET_APP,
    )


if __name__ == "__main__":
    main()
