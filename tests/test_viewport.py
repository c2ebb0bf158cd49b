import pytest

from flet_pdf_reader.rendering import PageLayout, ViewportController
from flet_pdf_reader.types import PageState


def _layout(pages: int = 10) -> PageLayout:
    # 100px pages, 10px gaps: page n spans [110 * (n - 1), 110 * (n - 1) + 100]
    return PageLayout([(50, 50)] * pages, content_width=100, gap=10, padding=0)


def _controller(layout=None):
    calls = {"enter": [], "evict": [], "center": []}
    controller = ViewportController(
        layout or _layout(),
        prefetch_margin=50,
        evict_margin=200,
        on_enter=calls["enter"].append,
        on_evict=calls["evict"].append,
        on_center=calls["center"].append,
    )
    return controller, calls


def test_layout_geometry():
    layout = PageLayout([(100, 200), (200, 100)], content_width=400, gap=16, padding=20)
    assert layout.top(1) == 20
    assert layout.height(1) == 800
    assert layout.top(2) == 20 + 800 + 16
    assert layout.height(2) == 200
    assert layout.total_height == 20 + 800 + 16 + 200 + 20
    assert layout.total_width == 440
    assert layout.offset_of(2) == layout.top(2)
    assert layout.offset_of(99) == layout.top(2)
    assert layout.page_at(0) == 1
    assert layout.page_at(830) == 1
    assert layout.page_at(836) == 2
    assert layout.pages_between(810, 840) == [1, 2]

    with pytest.raises(ValueError):
        PageLayout([], content_width=100)


def test_scaled_layout_maps_points_linearly():
    layout = PageLayout([(300, 400)] * 3, content_width=600, gap=16, padding=20)
    doubled = layout.scaled(1200, 32, 40)
    for page_number in (1, 2, 3):
        assert doubled.top(page_number) == 2 * layout.top(page_number)
    assert doubled.total_height == 2 * layout.total_height


def test_initial_membership_and_center():
    controller, calls = _controller()
    controller.update(0, 100)
    assert controller.members == {1, 2}
    assert calls["enter"] == [1, 2]
    assert calls["center"] == [1]
    assert controller.state(1) == PageState.RENDERING
    assert controller.state(5) == PageState.UNLOADED


def test_scrolling_enters_and_evicts():
    controller, calls = _controller()
    controller.update(0, 100)
    controller.mark_rendered(1)
    controller.update(550, 100)

    assert controller.members == {5, 6, 7}
    assert calls["evict"] == [1, 2]
    assert calls["enter"][2:] == [6, 5, 7]
    assert calls["center"] == [1, 6]
    assert controller.centered_page == 6
    assert controller.pages_in(PageState.UNLOADED) == [1, 2]


def test_pages_inside_eviction_band_are_kept():
    controller, calls = _controller()
    controller.update(0, 100)
    controller.update(150, 100)
    assert calls["evict"] == []
    assert controller.state(1) == PageState.RENDERING


def test_never_visited_pages_stay_unloaded():
    controller, calls = _controller()
    controller.update(0, 100)
    assert 10 not in calls["enter"]
    assert controller.state(10) == PageState.UNLOADED


def test_failed_page_retries_on_reentry_only():
    controller, calls = _controller()
    controller.update(0, 100)
    controller.mark_failed(1)
    assert controller.state(1) == PageState.UNLOADED

    controller.update(10, 100)
    assert calls["enter"].count(1) == 1

    controller.update(800, 100)
    controller.update(0, 100)
    assert calls["enter"].count(1) == 2
    assert controller.state(1) == PageState.RENDERING


def test_center_tie_prefers_lower_page():
    # Band [25, 75] of a 100px viewport at 55 -> covers [80, 130]; the gap
    # at [100, 110] splits it into 20px of page 1 and 20px of page 2.
    controller, calls = _controller()
    controller.update(55, 100)
    assert controller.centered_page == 1


def test_center_unchanged_when_band_hits_only_gap():
    layout = PageLayout([(50, 50)] * 3, content_width=100, gap=400, padding=0)
    controller, calls = _controller(layout)
    controller.update(0, 100)
    controller.update(300, 100)
    assert controller.centered_page == 1
    assert calls["center"] == [1]


def test_relayout_requires_same_page_count():
    controller, _ = _controller()
    with pytest.raises(ValueError):
        controller.relayout(_layout(pages=3))


def test_failed_page_is_still_evicted():
    controller, calls = _controller()
    controller.update(0, 100)
    controller.mark_failed(1)

    controller.update(550, 100)
    assert calls["evict"] == [1, 2]
    assert controller.state(1) == PageState.UNLOADED

    controller.update(1000, 100)
    assert calls["evict"].count(1) == 1


def test_late_success_promotes_failed_page():
    controller, calls = _controller()
    controller.update(0, 100)
    controller.mark_failed(1)
    controller.mark_rendered(1)
    assert controller.state(1) == PageState.RENDERED

    controller.mark_rendered(5)
    assert controller.state(5) == PageState.UNLOADED
