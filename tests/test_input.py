import json
from datetime import date
from pathlib import Path

import pygame

from refresh_feed.contact import ContactDetector
from refresh_feed.form_factor import MOBILE_BREAKPOINT, FormFactor
from refresh_feed.scroll_view import ScrollView
from refresh_feed.touch_types import TouchEvent, TouchPhase, touch_events_from_pygame
from refresh_feed.transactions import balance, load_transactions, sample_transactions


def test_form_factor_flips_at_breakpoint_and_notifies_once() -> None:
    factor = FormFactor(width=MOBILE_BREAKPOINT - 1)
    seen = []
    unsubscribe = factor.subscribe(seen.append)
    factor.subscribe(seen.append)
    assert factor.is_mobile is True

    assert factor.resize(MOBILE_BREAKPOINT) is True
    assert factor.resize(1200) is False
    assert factor.handle_event(pygame.event.Event(pygame.VIDEORESIZE, w=500, h=900, size=(500, 900))) is True
    assert seen == [False, True]

    unsubscribe()
    factor.resize(1024)
    assert seen == [False, True]


def test_finger_events_scale_to_window_and_skip_synthetic_mouse() -> None:
    events = [
        pygame.event.Event(pygame.FINGERDOWN, x=0.5, y=0.25, dx=0.0, dy=0.0, finger_id=3, touch_id=1),
        pygame.event.Event(pygame.FINGERMOTION, x=0.5, y=0.5, dx=0.0, dy=0.25, finger_id=3, touch_id=1),
        pygame.event.Event(pygame.MOUSEBUTTONDOWN, pos=(10, 10), button=1, touch=True),
        pygame.event.Event(pygame.FINGERUP, x=0.5, y=0.5, dx=0.0, dy=0.0, finger_id=3, touch_id=1),
    ]
    touches = touch_events_from_pygame(events, (400, 800), mouse_touch=True)
    assert [(t.phase, t.y, t.x, t.finger_id) for t in touches] == [
        (TouchPhase.START, 200.0, 200.0, 3),
        (TouchPhase.MOVE, 400.0, 200.0, 3),
        (TouchPhase.END, 400.0, 200.0, 3),
    ]


def test_mouse_drags_only_count_when_enabled() -> None:
    events = [
        pygame.event.Event(pygame.MOUSEBUTTONDOWN, pos=(20, 30), button=1, touch=False),
        pygame.event.Event(pygame.MOUSEMOTION, pos=(20, 90), rel=(0, 60), buttons=(1, 0, 0), touch=False),
        pygame.event.Event(pygame.MOUSEMOTION, pos=(20, 95), rel=(0, 5), buttons=(0, 0, 0), touch=False),
        pygame.event.Event(pygame.MOUSEBUTTONUP, pos=(20, 90), button=1, touch=False),
    ]
    assert touch_events_from_pygame(events, (400, 800)) == []
    phases = [t.phase for t in touch_events_from_pygame(events, (400, 800), mouse_touch=True)]
    assert phases == [TouchPhase.START, TouchPhase.MOVE, TouchPhase.END]


def test_scroll_view_drags_unless_prevented() -> None:
    view = ScrollView(viewport_height=500, content_height=1500)
    view.scroll_to(400)
    view.dispatch(TouchEvent(TouchPhase.START, y=300))
    view.dispatch(TouchEvent(TouchPhase.MOVE, y=200))
    assert view.scroll_top == 500

    view.add_listener(TouchPhase.MOVE, lambda event: event.prevent_default())
    view.dispatch(TouchEvent(TouchPhase.MOVE, y=100))
    assert view.scroll_top == 500

    view.scroll_to(5000)
    assert view.scroll_top == view.max_scroll == 1000


def test_scroll_view_follows_only_the_first_finger() -> None:
    view = ScrollView(viewport_height=500, content_height=1500)
    view.scroll_to(400)
    view.dispatch(TouchEvent(TouchPhase.START, y=300, finger_id=1))
    view.dispatch(TouchEvent(TouchPhase.START, y=100, finger_id=2))
    view.dispatch(TouchEvent(TouchPhase.MOVE, y=400, finger_id=2))
    assert view.scroll_top == 400

    view.dispatch(TouchEvent(TouchPhase.END, y=400, finger_id=2))
    view.dispatch(TouchEvent(TouchPhase.MOVE, y=250, finger_id=1))
    assert view.scroll_top == 450

    view.dispatch(TouchEvent(TouchPhase.END, y=250, finger_id=1))
    view.dispatch(TouchEvent(TouchPhase.START, y=300, finger_id=2))
    view.dispatch(TouchEvent(TouchPhase.MOVE, y=200, finger_id=2))
    assert view.scroll_top == 550


def test_contact_detector_hysteresis_and_lost_hand() -> None:
    detector = ContactDetector(on_threshold=0.1, off_threshold=0.2)
    assert detector.update(0.15).down is False
    state = detector.update(0.09)
    assert state.down is True and state.pressed is True
    assert detector.update(0.18).down is True  # still inside the hysteresis band
    state = detector.update(None)
    assert state.down is False and state.lifted is True
    assert detector.update(0.25).lifted is False


def test_transactions_fall_back_to_samples_and_skip_bad_rows(tmp_path: Path) -> None:
    assert len(load_transactions(None)) == len(sample_transactions())
    broken = tmp_path / "broken.json"
    broken.write_text("{not json")
    assert load_transactions(broken)

    path = tmp_path / "rows.json"
    path.write_text(
        json.dumps(
            [
                {"id": 1, "description": "Coffee", "amount": -3.5, "category": "Dining", "date": "2024-05-01"},
                {"id": 2, "description": "Salary", "amount": "2500", "category": "Salary", "date": "2024-05-03"},
                {"description": "missing id and amount"},
            ]
        )
    )
    rows = load_transactions(path)
    assert [row.description for row in rows] == ["Salary", "Coffee"]
    assert rows[0].is_income is True
    assert balance(rows) == 2496.5


def test_sample_transactions_are_deterministic_with_seed() -> None:
    today = date(2024, 6, 1)
    first = sample_transactions(10, seed=7, today=today)
    assert first == sample_transactions(10, seed=7, today=today)
    assert first[0].date == "2024-06-01"
    assert all(row.amount > 0 for row in first if row.category == "Salary")
