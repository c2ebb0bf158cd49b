"""
Zoom handler - manages zoom scale, pinch gestures and anchored scrolling.
"""

from __future__ import annotations

import math
from typing import Callable, Optional

from ..types import GestureSnapshot, Point, ZoomState

ZoomListener = Callable[[float, float, float], None]


def pinch_distance(p1: Point, p2: Point) -> float:
    """Distance between two touch points."""
    return math.hypot(p2[0] - p1[0], p2[1] - p1[1])


class ZoomHandler:
    """Handles zoom logic for a scrollable page stack.

    The handler mirrors the scroll container's offset and viewport size.
    Every accepted scale change produces the scroll offset that keeps the
    anchor point still, and both are reported through ``on_change`` in the
    same call.

    Args:
        min_scale: Lower clamp
        max_scale: Upper clamp
        epsilon: Smallest scale change that is applied
        scale: Initial scale
        on_change: ``on_change(scale, scroll_x, scroll_y)``
    """

    def __init__(
        self,
        min_scale: float = 0.5,
        max_scale: float = 3.0,
        epsilon: float = 1e-3,
        scale: float = 1.0,
        on_change: Optional[ZoomListener] = None,
    ):
        self._min_scale = min_scale
        self._max_scale = max_scale
        self._epsilon = epsilon
        self._on_change = on_change
        initial = self.clamp(scale)
        self._state = ZoomState(scale=initial, base_scale=initial)
        self._gesture: Optional[GestureSnapshot] = None
        self._scroll = (0.0, 0.0)
        self._viewport = (0.0, 0.0)

    @property
    def scale(self) -> float:
        """Current zoom scale."""
        return self._state.scale

    @property
    def state(self) -> ZoomState:
        return self._state

    @property
    def scroll(self) -> Point:
        return self._scroll

    @property
    def gesture(self) -> Optional[GestureSnapshot]:
        """Snapshot of the active pinch, if any."""
        return self._gesture

    def clamp(self, scale: float) -> float:
        return max(self._min_scale, min(self._max_scale, scale))

    def update_viewport(self, width: float, height: float) -> None:
        self._viewport = (max(0.0, width), max(0.0, height))

    def update_scroll(self, x: float, y: float) -> None:
        self._scroll = (x, y)

    def set_zoom(
        self,
        new_scale: float,
        anchor_x: Optional[float] = None,
        anchor_y: Optional[float] = None,
    ) -> bool:
        """Zoom keeping the point under (anchor_x, anchor_y) in place.

        Anchor coordinates are relative to the viewport; the viewport center
        is used when they are omitted.

        Returns:
            True if the scale changed
        """
        s0 = self._state.scale
        s1 = self.clamp(new_scale)
        if abs(s1 - s0) < self._epsilon:
            return False

        ax = self._viewport[0] / 2 if anchor_x is None else anchor_x
        ay = self._viewport[1] / 2 if anchor_y is None else anchor_y
        scroll_x, scroll_y = self._scroll

        doc_x = scroll_x + ax
        doc_y = scroll_y + ay
        ratio = s1 / s0
        new_scroll_x = max(0.0, doc_x * ratio - ax)
        new_scroll_y = max(0.0, doc_y * ratio - ay)

        self._state.scale = s1
        self._state.anchor = (doc_x / s0, doc_y / s0)
        if self._gesture is None:
            self._state.base_scale = s1
        self._scroll = (new_scroll_x, new_scroll_y)

        if self._on_change:
            self._on_change(s1, new_scroll_x, new_scroll_y)
        return True

    def zoom_in(self, factor: float = 1.25) -> bool:
        """Increase zoom around the viewport center."""
        return self.set_zoom(self._state.scale * factor)

    def zoom_out(self, factor: float = 1.25) -> bool:
        """Decrease zoom around the viewport center."""
        return self.set_zoom(self._state.scale / factor)

    def begin_gesture(
        self, start_distance: float, focal_x: float, focal_y: float
    ) -> GestureSnapshot:
        """Capture the pinch start. Later updates are relative to it."""
        if start_distance <= 0:
            raise ValueError("Pinch start distance must be positive")
        self._gesture = GestureSnapshot(
            start_distance=start_distance,
            base_scale=self._state.scale,
            focal=(focal_x, focal_y),
        )
        self._state.base_scale = self._state.scale
        return self._gesture

    def update_gesture(
        self,
        current_distance: float,
        focal_x: Optional[float] = None,
        focal_y: Optional[float] = None,
    ) -> bool:
        """Apply ``base_scale * current_distance / start_distance``."""
        snapshot = self._gesture
        if snapshot is None or current_distance <= 0:
            return False
        if focal_x is None or focal_y is None:
            focal_x, focal_y = snapshot.focal
        target = snapshot.base_scale * (current_distance / snapshot.start_distance)
        return self.set_zoom(target, focal_x, focal_y)

    def end_gesture(self) -> None:
        self._gesture = None
        self._state.base_scale = self._state.scale
