"""Camera + MediaPipe touch emulation for machines without a touch screen.

A thumb/index pinch acts as a finger contact and the index fingertip height is
the touch position, so pinching near the top of the frame and dragging down
performs a pull gesture. Inference runs on a background thread; the feed's
frame loop drains the queued ``TouchEvent``s with ``read()``.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from typing import List, Optional, Tuple

import cv2
import mediapipe as mp
import numpy as np

from refresh_feed.contact import ContactDetector, ContactState
from refresh_feed.touch_types import TouchEvent, TouchPhase, TouchSource

logger = logging.getLogger(__name__)

# Some mediapipe builds do not expose ``solutions`` at the top level.
try:
    from mediapipe import solutions as mp_solutions
except ImportError:
    mp_solutions = getattr(mp, "solutions", None)
if mp_solutions is None:
    MP_IMPORT_ERROR: Optional[ImportError] = ImportError(
        "mediapipe.solutions could not be imported. Try reinstalling mediapipe "
        "or upgrading to 0.10.14+. (pip install --upgrade mediapipe)"
    )
else:
    MP_IMPORT_ERROR = None

THUMB_TIP = 4
INDEX_TIP = 8
WRIST = 0
MIDDLE_MCP = 9
# Ignore fingertip jitter smaller than this many window pixels between moves.
MOVE_EPSILON = 2.0


def pinch_distance(landmarks: List[object]) -> float:
    """Thumb-index distance normalized by the wrist-to-knuckle span."""

    wrist, middle_mcp = landmarks[WRIST], landmarks[MIDDLE_MCP]
    thumb, index = landmarks[THUMB_TIP], landmarks[INDEX_TIP]
    scale = float(np.linalg.norm([middle_mcp.x - wrist.x, middle_mcp.y - wrist.y])) or 1.0
    return float(np.linalg.norm([thumb.x - index.x, thumb.y - index.y])) / scale


class CameraTouchSource(TouchSource):
    """Encapsulates OpenCV capture and MediaPipe Hands inference."""

    def __init__(
        self,
        view_size: Tuple[int, int],
        camera_index: int = 0,
        pinch_on_threshold: float = 0.17,
        pinch_off_threshold: float = 0.22,
        min_detection_confidence: float = 0.6,
        min_tracking_confidence: float = 0.5,
        mirror: bool = True,
        show_debug_overlay: bool = False,
    ) -> None:
        if MP_IMPORT_ERROR:
            raise MP_IMPORT_ERROR

        self.view_size = view_size
        self.mirror = mirror
        self.show_debug_overlay = show_debug_overlay
        self.window_name = "Touch Debug"
        self.cap = cv2.VideoCapture(camera_index)
        if not self.cap.isOpened():
            raise RuntimeError(f"camera {camera_index} could not be opened")
        self.hands = mp_solutions.hands.Hands(
            model_complexity=0,
            max_num_hands=1,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )
        self.detector = ContactDetector(on_threshold=pinch_on_threshold, off_threshold=pinch_off_threshold)
        self._events: "queue.Queue[TouchEvent]" = queue.Queue()
        self._last_position: Optional[Tuple[float, float]] = None
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._capture_loop, daemon=True)
        self._thread.start()

    def _to_view(self, landmark: object) -> Tuple[float, float]:
        width, height = self.view_size
        x = 1.0 - landmark.x if self.mirror else landmark.x
        return max(0.0, min(1.0, x)) * width, max(0.0, min(1.0, landmark.y)) * height

    def _emit(self, contact: ContactState, position: Optional[Tuple[float, float]]) -> None:
        if contact.pressed and position is not None:
            self._events.put(TouchEvent(TouchPhase.START, y=position[1], x=position[0]))
            self._last_position = position
        elif contact.down and position is not None and self._last_position is not None:
            if abs(position[1] - self._last_position[1]) >= MOVE_EPSILON:
                self._events.put(TouchEvent(TouchPhase.MOVE, y=position[1], x=position[0]))
                self._last_position = position
        elif contact.lifted:
            last_x, last_y = self._last_position or (0.0, 0.0)
            self._events.put(TouchEvent(TouchPhase.END, y=last_y, x=last_x))
            self._last_position = None

    def _overlay_debug(self, frame: np.ndarray, contact: ContactState, distance: Optional[float]) -> None:
        lines = [
            f"Contact: {'DOWN' if contact.down else 'up'}",
            f"Pinch distance: {distance:.3f}" if distance is not None else "Pinch distance: no hand",
            "Pinch near the top and drag down to refresh",
        ]
        for idx, text in enumerate(lines):
            cv2.putText(frame, text, (12, 28 + idx * 24), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (0, 255, 255), 2)
        if self._last_position is not None:
            height, width, _ = frame.shape
            y = int(self._last_position[1] / self.view_size[1] * height)
            cv2.line(frame, (0, y), (width, y), (0, 200, 120), 1)

    def _capture_loop(self) -> None:
        while not self._stop_event.is_set():
            success, frame = self.cap.read()
            if not success:
                time.sleep(0.01)
                continue

            rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            rgb_frame.flags.writeable = False
            results = self.hands.process(rgb_frame)

            distance: Optional[float] = None
            position: Optional[Tuple[float, float]] = None
            if results.multi_hand_landmarks:
                landmarks = results.multi_hand_landmarks[0].landmark
                distance = pinch_distance(landmarks)
                position = self._to_view(landmarks[INDEX_TIP])

            contact = self.detector.update(distance)
            self._emit(contact, position)

            if self.show_debug_overlay:
                debug_frame = cv2.flip(frame, 1) if self.mirror else frame.copy()
                self._overlay_debug(debug_frame, contact, distance)
                cv2.imshow(self.window_name, debug_frame)
                cv2.waitKey(1)

        if self.show_debug_overlay:
            cv2.destroyWindow(self.window_name)

    def resize(self, size: Tuple[int, int]) -> None:
        """Scale later touches to the new window size; the capture thread reads it per frame."""

        self.view_size = (int(size[0]), int(size[1]))

    def read(self) -> List[TouchEvent]:
        events: List[TouchEvent] = []
        while True:
            try:
                events.append(self._events.get_nowait())
            except queue.Empty:
                return events

    def close(self) -> None:
        self._stop_event.set()
        if self._thread.is_alive():
            self._thread.join(timeout=1.5)
        if self.cap.isOpened():
            self.cap.release()
        self.hands.close()
        logger.debug("Camera touch source closed")
