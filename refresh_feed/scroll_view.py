"""Scrollable container that dispatches touch events to registered listeners."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

from refresh_feed.touch_types import TouchEvent, TouchPhase

TouchListener = Callable[[TouchEvent], object]


class ScrollView:
    """A vertically scrollable region with a touch-listener registry.

    ``scroll_top`` is the current offset in pixels, clamped to
    ``[0, content_height - viewport_height]``. Listeners run before the
    default drag-to-scroll behaviour; a listener that calls
    ``event.prevent_default()`` keeps the view from scrolling for that move.
    """

    def __init__(self, viewport_height: float, content_height: float = 0.0, name: str = "view") -> None:
        self.name = name
        self.viewport_height = float(viewport_height)
        self.content_height = float(content_height)
        self.scroll_top = 0.0
        self._listeners: Dict[TouchPhase, List[TouchListener]] = {phase: [] for phase in TouchPhase}
        self._drag_y: Optional[float] = None
        self._drag_finger: Optional[int] = None

    @property
    def max_scroll(self) -> float:
        return max(0.0, self.content_height - self.viewport_height)

    def scroll_to(self, offset: float) -> None:
        self.scroll_top = max(0.0, min(self.max_scroll, float(offset)))

    def add_listener(self, phase: TouchPhase, listener: TouchListener) -> None:
        """Register ``listener``; registering the same callable twice is a no-op."""

        listeners = self._listeners[phase]
        if listener not in listeners:
            listeners.append(listener)

    def remove_listener(self, phase: TouchPhase, listener: TouchListener) -> None:
        """Unregister ``listener``; removing an unknown callable is a no-op."""

        listeners = self._listeners[phase]
        if listener in listeners:
            listeners.remove(listener)

    def listener_count(self, phase: Optional[TouchPhase] = None) -> int:
        if phase is not None:
            return len(self._listeners[phase])
        return sum(len(listeners) for listeners in self._listeners.values())

    def dispatch(self, event: TouchEvent) -> List[object]:
        """Deliver ``event`` to listeners, then apply the default scroll.

        Returns whatever the listeners returned so callers can keep track of
        scheduled work (the tracker returns a refresh task on release).
        """

        # Copy so listeners may detach themselves while being notified.
        results = [listener(event) for listener in list(self._listeners[event.phase])]
        scheduled = [result for result in results if result is not None]

        # Only the finger that started the drag scrolls the view.
        if self._drag_finger is not None and event.finger_id != self._drag_finger:
            return scheduled

        if event.phase is TouchPhase.START:
            self._drag_y = event.y
            self._drag_finger = event.finger_id
        elif event.phase is TouchPhase.MOVE and self._drag_y is not None:
            if not event.default_prevented:
                self.scroll_to(self.scroll_top - (event.y - self._drag_y))
            self._drag_y = event.y
        elif event.phase is TouchPhase.END:
            self._drag_y = None
            self._drag_finger = None
        return scheduled
