"""Pygame transaction feed hosting the pull-to-refresh tracker.

This module owns the window, the scrollable transaction list, and drawing.
Touch input arrives as pygame finger events (or from an optional
``TouchSource``) and is dispatched to the list's ``ScrollView``; the tracker
listening there decides whether a gesture scrolls the list or reloads it.
The frame loop is a coroutine so the refresh action can run between frames.
"""

from __future__ import annotations

import asyncio
import logging
import math
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
import pygame

from refresh_feed.form_factor import FormFactor, resize_event_size
from refresh_feed.meta import MetaUpdater
from refresh_feed.pull import PULL_THRESHOLD, PullToRefreshTracker
from refresh_feed.scroll_view import ScrollView
from refresh_feed.settings import SettingsCache
from refresh_feed.touch_types import TouchSource, touch_events_from_pygame
from refresh_feed.transactions import Transaction, balance, load_transactions

logger = logging.getLogger(__name__)

FPS = 60
HEADER_HEIGHT = 96
ROW_HEIGHT = 64
INDICATOR_RADIUS = 16
INDICATOR_MAX_OFFSET = 90
# Fraction of the remaining distance the indicator closes each frame.
INDICATOR_EASE = 0.35
SPINNER_SPEED = 6.0  # Radians per second.
REFRESH_DELAY = 1.5  # Simulated reload latency in seconds.
LOGO_SIZE = 40
INCOME_COLOR = (96, 214, 140)
EXPENSE_COLOR = (240, 110, 110)


def parse_color(value: str, fallback: Tuple[int, int, int] = (90, 140, 255)) -> pygame.Color:
    """Accept ``#rrggbb`` style settings; anything unparsable uses ``fallback``."""

    try:
        return pygame.Color(value)
    except (ValueError, TypeError):
        return pygame.Color(*fallback)


class FeedApp:
    """Scrollable transaction list with a pull-to-refresh indicator."""

    def __init__(
        self,
        settings: SettingsCache,
        *,
        size: Tuple[int, int] = (420, 760),
        transactions_path: Optional[Path] = None,
        pull_threshold: float = PULL_THRESHOLD,
        refresh_delay: float = REFRESH_DELAY,
        refresh_timeout: Optional[float] = None,
        mouse_touch: bool = False,
        touch_source: Optional[TouchSource] = None,
    ) -> None:
        pygame.init()
        self.screen = pygame.display.set_mode(size, pygame.RESIZABLE)
        self.clock = pygame.time.Clock()
        self.font = pygame.font.SysFont("montserrat", 18)
        self.small_font = pygame.font.SysFont("montserrat", 14)
        self.title_font = pygame.font.SysFont("montserrat", 24, bold=True)

        self.settings = settings
        self.transactions_path = transactions_path
        self.refresh_delay = refresh_delay
        self.mouse_touch = mouse_touch
        self.touch_source = touch_source
        self.size = size
        self.transactions: List[Transaction] = load_transactions(transactions_path)
        self.refresh_count = 0

        width, height = size
        self.document = ScrollView(height, height, name="document")
        self.list_view = ScrollView(height - HEADER_HEIGHT, self._content_height(), name="transactions")
        self.form_factor = FormFactor(width)
        self.tracker = PullToRefreshTracker(
            self.reload,
            self.form_factor,
            self.document,
            threshold=pull_threshold,
            refresh_timeout=refresh_timeout,
        )
        self.tracker.set_container(self.list_view)
        self.meta_updater = MetaUpdater(settings)
        self.logo: Optional[pygame.Surface] = None
        self._logo_path = ""
        self._unsubscribe_logo = settings.subscribe(self._load_logo)
        self._unsubscribe_form_factor = self.form_factor.subscribe(self._on_form_factor_change)
        self.settings.load()

        self.indicator_offset = 0.0
        self.spinner_angle = 0.0
        self.background = self._build_background(size)

    def _content_height(self) -> float:
        return float(len(self.transactions) * ROW_HEIGHT)

    @staticmethod
    def _build_background(size: Tuple[int, int]) -> pygame.Surface:
        """Pre-render a vertical gradient once per window size."""

        width, height = size
        surface = pygame.Surface(size)
        top = np.array([24, 28, 44], dtype=float)
        bottom = np.array([10, 10, 18], dtype=float)
        for y in range(height):
            t = y / max(1, height - 1)
            color = (top * (1 - t) + bottom * t).astype(int)
            pygame.draw.line(surface, color.tolist(), (0, y), (width, y))
        return surface

    async def reload(self) -> None:
        """Refresh action: re-read transactions and settings after a simulated delay."""

        await asyncio.sleep(self.refresh_delay)
        self.transactions = load_transactions(self.transactions_path)
        self.list_view.content_height = self._content_height()
        self.list_view.scroll_to(self.list_view.scroll_top)
        self.settings.invalidate()
        self.settings.ensure_fresh()
        self.refresh_count += 1
        logger.info("Feed reloaded (%d rows)", len(self.transactions))

    def _handle_resize(self, size: Tuple[int, int]) -> None:
        """Relayout after the window changed size; the form factor has already seen the event."""

        self.size = size
        height = size[1]
        self.document.viewport_height = self.document.content_height = float(height)
        self.list_view.viewport_height = float(height - HEADER_HEIGHT)
        self.list_view.scroll_to(self.list_view.scroll_top)
        self.background = self._build_background(size)
        if self.touch_source is not None:
            self.touch_source.resize(size)

    def _on_form_factor_change(self, is_mobile: bool) -> None:
        # Drop any half-drawn indicator when pull-to-refresh switches on or off.
        self.indicator_offset = 0.0
        logger.info("Pull-to-refresh %s", "enabled" if is_mobile else "disabled for wide window")

    def _load_logo(self) -> None:
        """Reload the header logo whenever the platform logo setting changes."""

        path = self.settings.platform_logo()
        if path == self._logo_path:
            return
        self._logo_path = path
        self.logo = None
        if not path:
            return
        logo_path = Path(path).expanduser()
        if not logo_path.is_file():
            logger.warning("Logo %s not found", logo_path)
            return
        try:
            self.logo = pygame.transform.scale(pygame.image.load(str(logo_path)), (LOGO_SIZE, LOGO_SIZE))
        except pygame.error:
            logger.warning("Could not load logo %s", logo_path, exc_info=True)

    def _update_indicator(self, dt: float) -> None:
        if self.tracker.is_refreshing:
            target = INDICATOR_MAX_OFFSET * 0.6
            self.spinner_angle = (self.spinner_angle + SPINNER_SPEED * dt) % (2 * math.pi)
        else:
            # Damped so the indicator trails the finger instead of tracking it 1:1.
            target = min(INDICATOR_MAX_OFFSET, self.tracker.pull_distance * 0.5)
        self.indicator_offset += (target - self.indicator_offset) * INDICATOR_EASE

    def _draw_header(self, surface: pygame.Surface, accent: pygame.Color) -> None:
        width = surface.get_width()
        pygame.draw.rect(surface, (18, 20, 32), pygame.Rect(0, 0, width, HEADER_HEIGHT))
        pygame.draw.line(surface, accent, (0, HEADER_HEIGHT - 2), (width, HEADER_HEIGHT - 2), 2)
        title = self.title_font.render(self.settings.platform_name(), True, (240, 240, 255))
        tagline = self.small_font.render(self.settings.platform_tagline(), True, (170, 170, 200))
        total = balance(self.transactions)
        total_text = self.font.render(
            f"Balance: {total:,.2f}", True, INCOME_COLOR if total >= 0 else EXPENSE_COLOR
        )
        surface.blit(title, (16, 12))
        surface.blit(tagline, (16, 44))
        surface.blit(total_text, (16, 66))
        if self.logo is not None:
            surface.blit(self.logo, (width - 16 - LOGO_SIZE, 12))
        if not self.form_factor.is_mobile:
            hint = self.small_font.render("Pull-to-refresh needs a narrow window", True, (150, 150, 170))
            surface.blit(hint, hint.get_rect(bottomright=(width - 12, HEADER_HEIGHT - 10)))

    def _draw_rows(self, surface: pygame.Surface) -> None:
        width = surface.get_width()
        top = HEADER_HEIGHT + int(self.indicator_offset)
        first = int(self.list_view.scroll_top // ROW_HEIGHT)
        visible = int(self.list_view.viewport_height // ROW_HEIGHT) + 2
        clip = pygame.Rect(0, HEADER_HEIGHT, width, surface.get_height() - HEADER_HEIGHT)
        surface.set_clip(clip)
        for idx in range(first, min(len(self.transactions), first + visible)):
            row = self.transactions[idx]
            y = top + idx * ROW_HEIGHT - int(self.list_view.scroll_top)
            card = pygame.Rect(10, y + 4, width - 20, ROW_HEIGHT - 8)
            pygame.draw.rect(surface, (34, 38, 58), card, border_radius=8)
            surface.blit(self.font.render(row.description, True, (235, 235, 245)), (card.x + 12, card.y + 8))
            surface.blit(
                self.small_font.render(f"{row.category} · {row.date}", True, (160, 160, 185)),
                (card.x + 12, card.y + 32),
            )
            amount = self.font.render(f"{row.amount:+,.2f}", True, INCOME_COLOR if row.is_income else EXPENSE_COLOR)
            surface.blit(amount, amount.get_rect(midright=(card.right - 12, card.centery)))
        surface.set_clip(None)

    def _draw_indicator(self, surface: pygame.Surface, accent: pygame.Color) -> None:
        if self.indicator_offset < 1.0:
            return
        center = (surface.get_width() // 2, HEADER_HEIGHT + int(self.indicator_offset) // 2)
        pygame.draw.circle(surface, (30, 34, 52), center, INDICATOR_RADIUS + 4)
        rect = pygame.Rect(0, 0, INDICATOR_RADIUS * 2, INDICATOR_RADIUS * 2)
        rect.center = center
        if self.tracker.is_refreshing:
            start = self.spinner_angle
            pygame.draw.arc(surface, accent, rect, start, start + math.pi * 1.5, 3)
        else:
            # Arc fills up as the pull approaches the threshold.
            progress = min(1.0, self.tracker.pull_distance / max(1.0, self.tracker.threshold))
            pygame.draw.arc(surface, accent, rect, math.pi / 2, math.pi / 2 + progress * 2 * math.pi, 3)

    def _draw(self) -> None:
        accent = parse_color(self.settings.primary_color())
        canvas = self.background.copy()
        self._draw_rows(canvas)
        self._draw_indicator(canvas, accent)
        self._draw_header(canvas, accent)
        self.screen.blit(canvas, (0, 0))

    def process_events(self, events: List[pygame.event.Event]) -> bool:
        """Handle one frame of pygame events; returns ``False`` once the user quits."""

        running = True
        for event in events:
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                running = False
            self.form_factor.handle_event(event)
            size = resize_event_size(event)
            if size is not None and size != self.size:
                self._handle_resize(size)

        touches = touch_events_from_pygame(events, self.size, mouse_touch=self.mouse_touch)
        if self.touch_source is not None:
            try:
                touches.extend(self.touch_source.read())
            except Exception:
                # A failing camera must not take the feed down with it.
                logger.warning("Touch source read failed", exc_info=True)
        for touch in touches:
            self.list_view.dispatch(touch)
        return running

    def close(self) -> None:
        self._unsubscribe_logo()
        self._unsubscribe_form_factor()
        self.meta_updater.close()
        self.settings.close()
        pygame.quit()

    async def run(self, touch_source: Optional[TouchSource] = None) -> None:
        """Main frame loop; yields to asyncio every frame so refreshes progress."""

        if touch_source is not None:
            self.touch_source = touch_source
        running = True
        with self.tracker:
            while running:
                dt = self.clock.tick(FPS) / 1000.0
                running = self.process_events(pygame.event.get())
                self._update_indicator(dt)
                self._draw()
                pygame.display.flip()
                await asyncio.sleep(0)
        self.close()
