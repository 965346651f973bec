"""Pull-to-refresh gesture tracker with an explicit ``Idle/Tracking/Refreshing`` state.

The transition functions are pure so the gesture rules can be tested without a
container, an event loop, or pygame. ``PullToRefreshTracker`` wires them to a
``ScrollView`` and owns the asyncio task running the refresh action.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple, Union

from refresh_feed.form_factor import FormFactor
from refresh_feed.scroll_view import ScrollView
from refresh_feed.touch_types import TouchEvent, TouchPhase

logger = logging.getLogger(__name__)

PULL_THRESHOLD = 100  # Pixels to pull down to trigger a refresh.

RefreshAction = Callable[[], Awaitable[object]]


@dataclass(frozen=True)
class Idle:
    """No gesture in progress."""


@dataclass(frozen=True)
class Tracking:
    """A gesture that started at the top of the container."""

    start_y: float
    current_y: float
    finger_id: int = 0

    @property
    def pull_distance(self) -> float:
        return self.current_y - self.start_y


@dataclass(frozen=True)
class Refreshing:
    """The refresh action is in flight; touch input is ignored."""

    pull_distance: float


PullState = Union[Idle, Tracking, Refreshing]
IDLE = Idle()


def begin(state: PullState, y: float, scroll_top: float, finger_id: int = 0) -> PullState:
    """Touch start: only a contact at scroll offset 0 starts tracking.

    A second finger landing while another one is tracked leaves the gesture alone.
    """

    if isinstance(state, Refreshing):
        return state
    if isinstance(state, Tracking) and state.finger_id != finger_id:
        return state
    if scroll_top == 0:
        return Tracking(start_y=y, current_y=y, finger_id=finger_id)
    return IDLE


def advance(state: PullState, y: float, finger_id: int = 0) -> Tuple[PullState, float]:
    """Touch move: update the current position and report the pull distance."""

    if not isinstance(state, Tracking) or state.finger_id != finger_id:
        return state, 0.0
    moved = Tracking(start_y=state.start_y, current_y=y, finger_id=finger_id)
    return moved, moved.pull_distance


def release(state: PullState, threshold: float = PULL_THRESHOLD, finger_id: int = 0) -> Tuple[PullState, bool]:
    """Touch end: refresh only when the pull strictly exceeded ``threshold``."""

    if not isinstance(state, Tracking) or state.finger_id != finger_id:
        return state, False
    if state.pull_distance > threshold:
        return Refreshing(pull_distance=state.pull_distance), True
    return IDLE, False


class PullToRefreshTracker:
    """Classifies touches on a container as scrolls or pull-to-refresh gestures.

    The tracker is inert on non-mobile form factors and while a refresh is in
    flight. The refresh action's outcome is never surfaced to the caller:
    success, failure, cancellation, and the optional timeout all settle back to
    ``Idle``. Failures are logged.
    """

    def __init__(
        self,
        on_refresh: RefreshAction,
        form_factor: FormFactor,
        document: ScrollView,
        *,
        threshold: float = PULL_THRESHOLD,
        refresh_timeout: Optional[float] = None,
    ) -> None:
        self._on_refresh = on_refresh
        self.form_factor = form_factor
        self.document = document
        self.threshold = threshold
        self.refresh_timeout = refresh_timeout
        self.container: Optional[ScrollView] = None
        self.last_scroll_top = 0.0
        self.active_finger: Optional[int] = None
        self._state: PullState = IDLE
        self._attached_to: Optional[ScrollView] = None
        self._refresh_task: Optional[asyncio.Task] = None

    # State accessors -----------------------------------------------------

    @property
    def state(self) -> PullState:
        return self._state

    @property
    def is_refreshing(self) -> bool:
        return isinstance(self._state, Refreshing)

    @property
    def start_y(self) -> float:
        return self._state.start_y if isinstance(self._state, Tracking) else 0.0

    @property
    def current_y(self) -> float:
        return self._state.current_y if isinstance(self._state, Tracking) else 0.0

    @property
    def pull_distance(self) -> float:
        """Live pull distance for indicators; 0 when not pulling downward."""

        if isinstance(self._state, Tracking):
            return max(0.0, self._state.pull_distance)
        return 0.0

    # Touch handlers ------------------------------------------------------

    def _inactive(self) -> bool:
        return not self.form_factor.is_mobile or self.is_refreshing

    def _other_finger(self, event: TouchEvent) -> bool:
        return self.active_finger is not None and event.finger_id != self.active_finger

    def handle_touch_start(self, event: TouchEvent) -> None:
        # Only the first finger down drives the gesture until it lifts.
        if self._inactive() or self._other_finger(event):
            return
        self.active_finger = event.finger_id
        target = self.container or self.document
        self.last_scroll_top = target.scroll_top
        self._state = begin(self._state, event.y, self.last_scroll_top, event.finger_id)

    def handle_touch_move(self, event: TouchEvent) -> None:
        # Scroll offset is sampled once at touch start, never mid-gesture.
        if self._inactive() or self._other_finger(event) or self.last_scroll_top != 0:
            return
        self._state, pull_delta = advance(self._state, event.y, event.finger_id)
        if pull_delta > 0:
            event.prevent_default()

    def handle_touch_end(self, event: TouchEvent) -> Optional[asyncio.Task]:
        if self._other_finger(event):
            return None
        # The primary contact is released even when the lift itself is ignored.
        self.active_finger = None
        if self._inactive() or self.last_scroll_top != 0:
            return None
        next_state, should_refresh = release(self._state, self.threshold, event.finger_id)
        if not should_refresh:
            self._state = next_state
            return None

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._state = IDLE
            raise
        self._state = next_state
        logger.info("Pull of %.0fpx crossed %.0fpx threshold; refreshing", next_state.pull_distance, self.threshold)
        self._refresh_task = loop.create_task(self._run_refresh())
        return self._refresh_task

    async def _run_refresh(self) -> None:
        try:
            if self.refresh_timeout is None:
                await self._on_refresh()
            else:
                await asyncio.wait_for(self._on_refresh(), timeout=self.refresh_timeout)
        except asyncio.TimeoutError:
            logger.warning("Refresh action did not settle within %.1fs", self.refresh_timeout)
        except Exception:
            logger.warning("Refresh action failed", exc_info=True)
        finally:
            self._state = IDLE
            self._refresh_task = None

    # Listener lifecycle --------------------------------------------------

    def set_refresh_action(self, on_refresh: RefreshAction) -> None:
        """Swap the refresh action; registered listeners stay as they are."""

        self._on_refresh = on_refresh

    def set_container(self, node: Optional[ScrollView]) -> None:
        """Observe ``node`` instead of the document; live listeners follow it."""

        attached = self._attached_to is not None
        if attached:
            self.detach()
        self.container = node
        if attached:
            self.attach()

    def attach(self) -> "PullToRefreshTracker":
        target = self.container or self.document
        if self._attached_to is target:
            return self
        if self._attached_to is not None:
            self.detach()
        target.add_listener(TouchPhase.START, self.handle_touch_start)
        target.add_listener(TouchPhase.MOVE, self.handle_touch_move)
        target.add_listener(TouchPhase.END, self.handle_touch_end)
        self._attached_to = target
        return self

    def detach(self) -> None:
        target = self._attached_to
        if target is None:
            return
        target.remove_listener(TouchPhase.START, self.handle_touch_start)
        target.remove_listener(TouchPhase.MOVE, self.handle_touch_move)
        target.remove_listener(TouchPhase.END, self.handle_touch_end)
        self._attached_to = None

    def __enter__(self) -> "PullToRefreshTracker":
        return self.attach()

    def __exit__(self, *exc_info: object) -> None:
        self.detach()
