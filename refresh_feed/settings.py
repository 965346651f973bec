"""Platform settings: a key/value store plus an explicitly invalidated cache.

Two pieces live here:

* ``JsonSettingsStore`` keeps the ``platform_settings`` rows in a JSON file and
  notifies subscribers with the changed row whenever a value is written.
* ``SettingsCache`` holds the rows one screen needs. It loads on mount, and
  a change notification from the store calls ``invalidate()`` and reloads it.
  Consumers read through typed getters instead of touching rows directly.

File handling mirrors the rest of the package: a missing or corrupt file
falls back to defaults instead of crashing the window.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)

SETTINGS_PATH = Path.home() / ".refresh_feed_settings.json"
SETTING_TYPES = ("text", "boolean", "number", "json", "file")

DEFAULT_PLATFORM_NAME = "Finance Inc"
DEFAULT_PLATFORM_TAGLINE = "Controle Financeiro Inteligente"
DEFAULT_PRIMARY_COLOR = "#000000"


class SettingsError(Exception):
    """Raised by a settings store when a read or write cannot be completed."""


@dataclass
class PlatformSetting:
    """One row of the ``platform_settings`` table."""

    id: str
    setting_key: str
    setting_value: Optional[str]
    setting_type: str = "text"
    description: Optional[str] = None
    category: str = "general"
    is_public: bool = False
    created_at: str = ""
    updated_at: str = ""


@dataclass
class PlatformSettingsGroup:
    """Settings sharing a category, as listed on the admin settings screen."""

    category: str
    title: str
    description: str
    settings: List[PlatformSetting] = field(default_factory=list)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def default_settings() -> List[PlatformSetting]:
    """Rows seeded into a fresh settings file."""

    stamp = _now_iso()
    rows = [
        ("platform_name", DEFAULT_PLATFORM_NAME, "text", "branding", True, "Display name"),
        ("platform_tagline", DEFAULT_PLATFORM_TAGLINE, "text", "branding", True, "Tagline under the name"),
        ("platform_description", "Aplicativo de controle financeiro pessoal", "text", "branding", True, "Meta description"),
        ("platform_logo_url", "", "file", "branding", True, "Logo image"),
        ("platform_favicon_url", "", "file", "branding", True, "Window icon"),
        ("platform_primary_color", DEFAULT_PRIMARY_COLOR, "text", "appearance", True, "Accent color"),
        ("maintenance_mode", "false", "boolean", "system", False, "Hide the feed for maintenance"),
    ]
    return [
        PlatformSetting(
            id=str(idx),
            setting_key=key,
            setting_value=value,
            setting_type=kind,
            description=description,
            category=category,
            is_public=public,
            created_at=stamp,
            updated_at=stamp,
        )
        for idx, (key, value, kind, category, public, description) in enumerate(rows, start=1)
    ]


def _decode_setting(data: Dict[str, Any]) -> Optional[PlatformSetting]:
    if "setting_key" not in data:
        return None
    setting_type = data.get("setting_type", "text")
    if setting_type not in SETTING_TYPES:
        setting_type = "text"
    value = data.get("setting_value")
    return PlatformSetting(
        id=str(data.get("id", data["setting_key"])),
        setting_key=str(data["setting_key"]),
        setting_value=None if value is None else str(value),
        setting_type=setting_type,
        description=data.get("description"),
        category=str(data.get("category", "general")),
        is_public=bool(data.get("is_public", False)),
        created_at=str(data.get("created_at", "")),
        updated_at=str(data.get("updated_at", "")),
    )


class SettingsStore(Protocol):
    """Where settings rows come from (a remote table, a JSON file, a test double)."""

    def fetch(self, public_only: bool = False) -> List[PlatformSetting]:  # pragma: no cover - protocol definition
        ...

    def update(self, setting_key: str, value: str) -> PlatformSetting:  # pragma: no cover - protocol definition
        ...

    def subscribe(self, callback: Callable[[PlatformSetting], None]) -> Callable[[], None]:  # pragma: no cover - protocol definition
        ...


class JsonSettingsStore:
    """File-backed settings table; writes notify every subscriber."""

    def __init__(self, path: Path = SETTINGS_PATH) -> None:
        self.path = path
        self._subscribers: List[Callable[[PlatformSetting], None]] = []

    def _read_rows(self) -> List[PlatformSetting]:
        if not self.path.exists():
            return default_settings()
        try:
            data = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError):
            logger.warning("Unreadable settings file %s; using defaults", self.path)
            return default_settings()
        if not isinstance(data, list):
            return default_settings()
        rows = [_decode_setting(item) for item in data if isinstance(item, dict)]
        return [row for row in rows if row is not None]

    def _write_rows(self, rows: List[PlatformSetting]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps([asdict(row) for row in rows], indent=2))
        except OSError as exc:
            raise SettingsError(f"could not write {self.path}: {exc}") from exc

    def fetch(self, public_only: bool = False) -> List[PlatformSetting]:
        rows = self._read_rows()
        if public_only:
            return [row for row in rows if row.is_public]
        return sorted(rows, key=lambda row: (row.category, row.setting_key))

    def update(self, setting_key: str, value: str) -> PlatformSetting:
        rows = self._read_rows()
        for row in rows:
            if row.setting_key == setting_key:
                row.setting_value = value
                row.updated_at = _now_iso()
                break
        else:
            raise SettingsError(f"unknown setting {setting_key!r}")

        self._write_rows(rows)
        for callback in list(self._subscribers):
            callback(row)
        return row

    def subscribe(self, callback: Callable[[PlatformSetting], None]) -> Callable[[], None]:
        if callback not in self._subscribers:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe


class SettingsCache:
    """In-memory view of a store's rows with an explicit invalidation trigger.

    ``public_only`` picks the visibility scope: public rows are what branding
    and page metadata read before sign-in, while the full set backs the admin
    screen. Store change notifications invalidate and reload the cache, and
    cache listeners are told after every successful load or local update.
    """

    def __init__(self, store: SettingsStore, public_only: bool = False) -> None:
        self.store = store
        self.public_only = public_only
        self.settings: List[PlatformSetting] = []
        self.loading = True
        self.stale = True
        self._listeners: List[Callable[[], None]] = []
        self._unsubscribe_store: Optional[Callable[[], None]] = store.subscribe(self._on_store_change)

    def _on_store_change(self, changed: PlatformSetting) -> None:
        # A public cache never sees private rows, so their writes are not its concern.
        if self.public_only and not changed.is_public:
            return
        self.invalidate()
        self.load()

    def _notify(self) -> None:
        for callback in list(self._listeners):
            callback()

    def invalidate(self) -> None:
        self.stale = True

    def load(self) -> List[PlatformSetting]:
        """Fetch rows from the store; on failure keep whatever was cached."""

        self.loading = True
        try:
            self.settings = list(self.store.fetch(public_only=self.public_only))
            self.stale = False
        except SettingsError:
            logger.error("Error fetching platform settings", exc_info=True)
        finally:
            self.loading = False
        self._notify()
        return self.settings

    def ensure_fresh(self) -> List[PlatformSetting]:
        if self.stale:
            return self.load()
        return self.settings

    def get_setting(self, key: str) -> Optional[PlatformSetting]:
        for setting in self.settings:
            if setting.setting_key == key:
                return setting
        return None

    def get_setting_value(self, key: str, default: str = "") -> str:
        setting = self.get_setting(key)
        # Empty strings count as unset so blank admin fields fall back too.
        return (setting.setting_value if setting else None) or default

    def update_setting(self, key: str, value: str) -> bool:
        try:
            updated = self.store.update(key, value)
        except SettingsError:
            logger.error("Error updating setting %s", key, exc_info=True)
            return False

        for idx, setting in enumerate(self.settings):
            if setting.setting_key == key:
                self.settings[idx] = updated
        self._notify()
        return True

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        if callback not in self._listeners:
            self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def close(self) -> None:
        if self._unsubscribe_store is not None:
            self._unsubscribe_store()
            self._unsubscribe_store = None
        self._listeners.clear()

    # Branding getters ------------------------------------------------------

    def platform_name(self) -> str:
        return self.get_setting_value("platform_name", DEFAULT_PLATFORM_NAME)

    def platform_tagline(self) -> str:
        return self.get_setting_value("platform_tagline", DEFAULT_PLATFORM_TAGLINE)

    def platform_logo(self) -> str:
        return self.get_setting_value("platform_logo_url", "")

    def platform_favicon(self) -> str:
        return self.get_setting_value("platform_favicon_url", "")

    def primary_color(self) -> str:
        return self.get_setting_value("platform_primary_color", DEFAULT_PRIMARY_COLOR)


def group_settings(settings: List[PlatformSetting]) -> List[PlatformSettingsGroup]:
    """Bucket rows by category, keeping the first-seen category order."""

    groups: Dict[str, PlatformSettingsGroup] = {}
    for setting in settings:
        group = groups.get(setting.category)
        if group is None:
            group = PlatformSettingsGroup(
                category=setting.category,
                title=setting.category.replace("_", " ").title(),
                description=f"{setting.category} settings",
            )
            groups[setting.category] = group
        group.settings.append(setting)
    return list(groups.values())
