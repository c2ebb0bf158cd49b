from __future__ import annotations

import asyncio

import pytest

from flet_pdf_reader.backends import PyMuPDFBackend
from flet_pdf_reader.errors import RenderError
from flet_pdf_reader.loader import DocumentHandle
from flet_pdf_reader.rendering import RasterSurface, RenderScheduler
from flet_pdf_reader.types import Raster, RasterStatus

from .support import FakeBackend, make_pdf


def _document(pages: int = 3) -> DocumentHandle:
    return DocumentHandle(PyMuPDFBackend(make_pdf(pages=pages, width=300, height=400)), "memory")


def test_second_render_supersedes_first():
    async def scenario():
        document = _document()
        scheduler = RenderScheduler(document)
        surface = RasterSurface(1)
        first = scheduler.render(1, 200, 1.0, surface)
        second = scheduler.render(1, 300, 1.0, surface)
        await second.wait()
        await first.wait()
        document.close()
        return first, second, surface

    first, second, surface = asyncio.run(scenario())
    assert first.status == RasterStatus.CANCELLED
    assert first.error is None
    assert second.status == RasterStatus.COMPLETE
    assert surface.commits == 1
    assert surface.css_width == 300
    assert (surface.pixel_width, surface.pixel_height) == (300, 400)


def test_device_pixel_ratio_scales_pixels_not_layout():
    async def scenario():
        document = _document()
        scheduler = RenderScheduler(document)
        surface = RasterSurface(2)
        status = await scheduler.render(2, 150, 2.0, surface).wait()
        document.close()
        return status, surface

    status, surface = asyncio.run(scenario())
    assert status == RasterStatus.COMPLETE
    assert (surface.pixel_width, surface.pixel_height) == (300, 400)
    assert (surface.css_width, surface.css_height) == (150, 200)
    assert surface.raster.png.startswith(b"\x89PNG")


def test_cancel_keeps_previous_raster():
    async def scenario():
        document = _document()
        scheduler = RenderScheduler(document)
        surface = RasterSurface(1)
        await scheduler.render(1, 200, 1.0, surface).wait()
        before = surface.raster

        handle = scheduler.render(1, 400, 1.0, surface)
        scheduler.cancel(1)
        status = await handle.wait()
        document.close()
        return status, before, surface

    status, before, surface = asyncio.run(scenario())
    assert status == RasterStatus.CANCELLED
    assert surface.raster is before
    assert surface.commits == 1


def test_failure_is_reported_and_isolated():
    async def scenario():
        document = DocumentHandle(FakeBackend(pages=2, failing=(1,)), "memory")
        scheduler = RenderScheduler(document)
        broken, healthy = RasterSurface(1), RasterSurface(2)
        failed = scheduler.render(1, 100, 1.0, broken)
        ok = scheduler.render(2, 100, 1.0, healthy)
        await scheduler.drain()
        document.close()
        return failed, ok, broken, healthy

    failed, ok, broken, healthy = asyncio.run(scenario())
    assert failed.status == RasterStatus.FAILED
    assert isinstance(failed.error, RenderError)
    assert failed.error.page_number == 1
    assert not broken.painted
    assert ok.status == RasterStatus.COMPLETE
    assert healthy.painted


def test_schedule_collapses_bursts():
    async def scenario():
        backend = FakeBackend(pages=1)
        document = DocumentHandle(backend, "memory")
        scheduler = RenderScheduler(document, resize_debounce=0.02)
        surface = RasterSurface(1)
        for width in (100, 150, 250):
            scheduler.schedule(1, width, 1.0, surface)
        assert scheduler.scheduled(1)
        await scheduler.drain()
        document.close()
        return backend, surface

    backend, surface = asyncio.run(scenario())
    assert surface.commits == 1
    assert surface.css_width == 250
    assert backend.pages[0].renders == [2.5]


def test_done_callback_and_active():
    async def scenario():
        document = DocumentHandle(FakeBackend(pages=1), "memory")
        scheduler = RenderScheduler(document)
        settled = []
        handle = scheduler.render(1, 100, 1.0, RasterSurface(1))
        assert scheduler.active(1) is handle
        handle.add_done_callback(settled.append)
        await handle.wait()
        await asyncio.sleep(0)
        assert scheduler.active(1) is None
        document.close()
        return handle, settled

    handle, settled = asyncio.run(scenario())
    assert settled == [handle]


def test_invalid_and_closed():
    async def scenario():
        document = DocumentHandle(FakeBackend(pages=1), "memory")
        scheduler = RenderScheduler(document)
        with pytest.raises(ValueError):
            scheduler.render(1, 0, 1.0, RasterSurface(1))
        scheduler.close()
        with pytest.raises(RuntimeError):
            scheduler.render(1, 100, 1.0, RasterSurface(1))
        document.close()

    asyncio.run(scenario())


def test_commit_rejects_other_page():
    surface = RasterSurface(1)
    events = []
    surface.add_listener(events.append)

    with pytest.raises(ValueError):
        surface.commit(Raster(2, b"", 1, 1, 1.0, 1.0))
    assert surface.commits == 0
    surface.commit(Raster(1, b"", 10, 20, 5.0, 10.0))
    surface.resize(10.0, 20.0)
    assert (surface.css_width, surface.pixel_width) == (10.0, 10)
    surface.clear()
    assert not surface.painted
    assert events == [surface, surface, surface]


def test_scheduled_render_reports_its_outcome():
    async def scenario():
        document = DocumentHandle(FakeBackend(pages=2, failing=(2,)), "memory")
        scheduler = RenderScheduler(document, resize_debounce=0.02)
        settled = []
        for width in (100, 150):
            scheduler.schedule(1, width, 1.0, RasterSurface(1), on_done=settled.append)
        scheduler.schedule(2, 150, 1.0, RasterSurface(2), on_done=settled.append)
        await scheduler.drain()
        await asyncio.sleep(0)
        document.close()
        return settled

    settled = asyncio.run(scenario())
    outcomes = sorted((h.job.page_number, h.job.target_width, h.status) for h in settled)
    assert outcomes == [
        (1, 150, RasterStatus.COMPLETE),
        (2, 150, RasterStatus.FAILED),
    ]
