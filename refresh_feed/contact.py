"""Pure finger-contact detector with hysteresis for camera touch emulation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class ContactState:
    """Contact status for one camera frame, with press/lift edges."""

    down: bool
    pressed: bool = False
    lifted: bool = False


@dataclass
class ContactDetector:
    """Turns a normalized thumb-index distance into touch down/up edges.

    The contact goes down at or below ``on_threshold`` and only lifts at or
    above ``off_threshold`` so jitter near a single cut-off cannot produce
    phantom taps. A missing measurement (hand lost) lifts an active contact,
    otherwise a gesture could never end once the hand leaves the frame.
    """

    on_threshold: float
    off_threshold: float
    active: bool = False

    def update(self, distance: Optional[float]) -> ContactState:
        was_active = self.active
        if distance is None:
            self.active = False
        elif not self.active and distance <= self.on_threshold:
            self.active = True
        elif self.active and distance >= self.off_threshold:
            self.active = False
        return ContactState(
            down=self.active,
            pressed=self.active and not was_active,
            lifted=was_active and not self.active,
        )
