"""Viewport form-factor classification recomputed on every window resize."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Tuple

import pygame

logger = logging.getLogger(__name__)

# Matches the ``md`` breakpoint of common CSS frameworks.
MOBILE_BREAKPOINT = 768


def resize_event_size(event: object) -> Optional[Tuple[int, int]]:
    """New window size carried by a pygame resize event, or ``None`` for other events."""

    kind = getattr(event, "type", None)
    if kind == pygame.VIDEORESIZE:
        return int(event.w), int(event.h)
    if kind == pygame.WINDOWSIZECHANGED:
        return int(event.x), int(event.y)
    return None


class FormFactor:
    """Tracks whether the current viewport counts as a touch/mobile form factor."""

    def __init__(self, width: int, breakpoint: int = MOBILE_BREAKPOINT) -> None:
        self.breakpoint = breakpoint
        self.width = int(width)
        self._subscribers: List[Callable[[bool], None]] = []

    @property
    def is_mobile(self) -> bool:
        return self.width < self.breakpoint

    def resize(self, width: int) -> bool:
        """Record a new viewport width; returns ``True`` when the classification flipped."""

        was_mobile = self.is_mobile
        self.width = int(width)
        if self.is_mobile == was_mobile:
            return False

        logger.debug("Form factor changed: mobile=%s (width=%d)", self.is_mobile, self.width)
        for callback in list(self._subscribers):
            callback(self.is_mobile)
        return True

    def handle_event(self, event: object) -> bool:
        """Feed pygame resize events; anything else is ignored."""

        size = resize_event_size(event)
        if size is None:
            return False
        return self.resize(size[0])

    def subscribe(self, callback: Callable[[bool], None]) -> Callable[[], None]:
        """Call ``callback(is_mobile)`` on every flip; returns the unsubscribe function."""

        if callback not in self._subscribers:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe
