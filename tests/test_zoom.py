import dataclasses

import pytest

from flet_pdf_reader.interactions import ZoomHandler, pinch_distance


def _handler(**kwargs):
    changes = []
    handler = ZoomHandler(on_change=lambda *args: changes.append(args), **kwargs)
    handler.update_viewport(400, 600)
    return handler, changes


def test_anchor_stays_under_the_pointer():
    handler, _ = _handler()
    handler.update_scroll(1000, 1000)
    for scale, ax, ay in [(2.0, 10, 20), (0.7, 300, 500), (2.9, 0, 0), (1.3, None, None)]:
        px = 200 if ax is None else ax
        py = 300 if ay is None else ay
        sx, sy = handler.scroll
        before = ((sx + px) / handler.scale, (sy + py) / handler.scale)

        assert handler.set_zoom(scale, ax, ay)

        sx, sy = handler.scroll
        after = ((sx + px) / handler.scale, (sy + py) / handler.scale)
        assert after == pytest.approx(before)
        assert handler.state.anchor == pytest.approx(before)


def test_on_change_reports_scale_and_scroll_together():
    handler, changes = _handler()
    handler.update_scroll(0, 100)
    handler.set_zoom(2.0, 0, 0)
    assert changes == [(2.0, 0.0, 200.0)]


def test_scale_is_clamped():
    handler, _ = _handler()
    handler.set_zoom(10)
    assert handler.scale == 3.0
    handler.set_zoom(0.01)
    assert handler.scale == 0.5
    assert not handler.set_zoom(-5)
    assert handler.scale == 0.5


def test_tiny_changes_are_ignored():
    handler, changes = _handler()
    assert not handler.set_zoom(1.0 + 1e-4)
    assert changes == []
    assert handler.scale == 1.0


def test_scroll_never_goes_negative():
    handler, _ = _handler()
    handler.update_scroll(10, 10)
    handler.set_zoom(0.5, 300, 300)
    assert handler.scroll == (0.0, 0.0)


def test_zoom_steps():
    handler, _ = _handler()
    handler.zoom_in()
    assert handler.scale == pytest.approx(1.25)
    handler.zoom_out()
    handler.zoom_out()
    assert handler.scale == pytest.approx(0.8)


def test_pinch_is_relative_to_gesture_start():
    handler, _ = _handler()
    snapshot = handler.begin_gesture(100, 50, 50)
    assert snapshot.base_scale == 1.0

    handler.update_gesture(150)
    assert handler.scale == pytest.approx(1.5)
    handler.update_gesture(200)
    assert handler.scale == pytest.approx(2.0)
    assert handler.state.base_scale == 1.0
    assert handler.gesture is snapshot

    handler.end_gesture()
    assert handler.gesture is None
    assert handler.state.base_scale == pytest.approx(2.0)


def test_gesture_snapshot_is_frozen():
    handler, _ = _handler()
    snapshot = handler.begin_gesture(100, 0, 0)
    with pytest.raises(dataclasses.FrozenInstanceError):
        snapshot.base_scale = 2.0
    with pytest.raises(ValueError):
        handler.begin_gesture(0, 0, 0)


def test_update_without_gesture_is_ignored():
    handler, changes = _handler()
    assert not handler.update_gesture(120)
    assert changes == []


def test_pinch_distance():
    assert pinch_distance((0, 0), (3, 4)) == 5.0
