"""Typed touch interface shared between the feed host and the gesture tracker.

This module centralizes the touch data model so that pygame finger events, the
mouse fallback, and the camera-based touch source all feed the tracker the
same ``TouchEvent`` objects. Coordinates are window pixels so thresholds stay
meaningful regardless of where the event came from.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterable, List, Protocol, Tuple

import pygame


class TouchPhase(enum.Enum):
    """Lifecycle phase of a single contact point."""

    START = "touchstart"
    MOVE = "touchmove"
    END = "touchend"


@dataclass
class TouchEvent:
    """One phase of a touch contact, delivered to container listeners.

    Attributes:
        phase: Whether the contact began, moved, or lifted.
        y: Vertical position in window pixels.
        x: Horizontal position in window pixels.
        finger_id: Identifier of the contact point (0 for mouse emulation).
        default_prevented: Set by listeners that capture the gesture so the
            container skips its own scrolling for this event.
    """

    phase: TouchPhase
    y: float
    x: float = 0.0
    finger_id: int = 0
    default_prevented: bool = field(default=False, compare=False)

    def prevent_default(self) -> None:
        """Ask the container not to apply its default scroll for this event."""

        self.default_prevented = True


class TouchSource(Protocol):
    """Interface implemented by touch providers (camera emulation, replay, etc.)."""

    def read(self) -> List[TouchEvent]:  # pragma: no cover - protocol definition
        ...

    def close(self) -> None:  # pragma: no cover - protocol definition
        ...

    def resize(self, size: Tuple[int, int]) -> None:  # pragma: no cover - optional extension point
        ...


def touch_events_from_pygame(
    events: Iterable[object],
    size: Tuple[int, int],
    *,
    mouse_touch: bool = False,
) -> List[TouchEvent]:
    """Translate pygame finger (and optionally mouse) events into ``TouchEvent``s.

    Finger coordinates arrive normalized to ``[0, 1]`` and are scaled by the
    window ``size``. Mouse events that SDL synthesizes from touches carry
    ``touch=True`` and are skipped so one contact is never delivered twice.
    """

    width, height = size
    translated: List[TouchEvent] = []
    for event in events:
        kind = getattr(event, "type", None)
        if kind in (pygame.FINGERDOWN, pygame.FINGERMOTION, pygame.FINGERUP):
            phase = {
                pygame.FINGERDOWN: TouchPhase.START,
                pygame.FINGERMOTION: TouchPhase.MOVE,
                pygame.FINGERUP: TouchPhase.END,
            }[kind]
            translated.append(
                TouchEvent(
                    phase=phase,
                    y=float(event.y) * height,
                    x=float(event.x) * width,
                    finger_id=int(getattr(event, "finger_id", 0)),
                )
            )
            continue

        if not mouse_touch or getattr(event, "touch", False):
            continue
        if kind == pygame.MOUSEBUTTONDOWN and event.button == 1:
            translated.append(TouchEvent(TouchPhase.START, y=float(event.pos[1]), x=float(event.pos[0])))
        elif kind == pygame.MOUSEMOTION and event.buttons[0]:
            translated.append(TouchEvent(TouchPhase.MOVE, y=float(event.pos[1]), x=float(event.pos[0])))
        elif kind == pygame.MOUSEBUTTONUP and event.button == 1:
            translated.append(TouchEvent(TouchPhase.END, y=float(event.pos[1]), x=float(event.pos[0])))
    return translated
