"""Mirror public platform settings into the window caption and icon."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import pygame

from refresh_feed.settings import SettingsCache

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "Aplicativo de controle financeiro pessoal"


@dataclass
class PageMeta:
    title: str
    favicon: str
    description: str


def build_page_meta(cache: SettingsCache) -> PageMeta:
    return PageMeta(
        title=cache.platform_name(),
        favicon=cache.platform_favicon(),
        description=cache.get_setting_value("platform_description", DEFAULT_DESCRIPTION),
    )


def apply_page_meta(meta: PageMeta) -> None:
    """Set the caption (with the description as icon title) and, if present, the icon."""

    pygame.display.set_caption(meta.title, meta.description)
    if not meta.favicon:
        return
    icon_path = Path(meta.favicon).expanduser()
    if not icon_path.is_file():
        logger.warning("Favicon %s not found; keeping the current icon", icon_path)
        return
    try:
        pygame.display.set_icon(pygame.image.load(str(icon_path)))
    except pygame.error:
        logger.warning("Could not load favicon %s", icon_path, exc_info=True)


class MetaUpdater:
    """Reapplies page metadata whenever the settings cache reports a change."""

    def __init__(self, cache: SettingsCache, apply: Callable[[PageMeta], None] = apply_page_meta) -> None:
        self.cache = cache
        self._apply = apply
        self.last_applied: Optional[PageMeta] = None
        self._unsubscribe = cache.subscribe(self.update)

    def update(self) -> Optional[PageMeta]:
        if self.cache.loading:
            return None
        meta = build_page_meta(self.cache)
        if meta != self.last_applied:
            self._apply(meta)
            self.last_applied = meta
        return meta

    def close(self) -> None:
        self._unsubscribe()
