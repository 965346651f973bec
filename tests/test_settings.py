import json
from pathlib import Path
from typing import List

from refresh_feed.meta import MetaUpdater, PageMeta
from refresh_feed.settings import (
    DEFAULT_PLATFORM_NAME,
    JsonSettingsStore,
    PlatformSetting,
    SettingsCache,
    SettingsError,
    group_settings,
)


class BrokenStore(JsonSettingsStore):
    def fetch(self, public_only: bool = False) -> List[PlatformSetting]:
        raise SettingsError("connection refused")


def test_missing_file_seeds_defaults_and_filters_public(tmp_path: Path) -> None:
    store = JsonSettingsStore(tmp_path / "settings.json")
    everything = store.fetch()
    public = store.fetch(public_only=True)
    assert {row.setting_key for row in everything} - {row.setting_key for row in public} == {"maintenance_mode"}
    # The full listing is ordered by category, then key.
    assert [(row.category, row.setting_key) for row in everything] == sorted(
        (row.category, row.setting_key) for row in everything
    )


def test_cache_reads_with_defaults_for_blank_values(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(
        json.dumps(
            [
                {"setting_key": "platform_name", "setting_value": "", "is_public": True},
                {"setting_key": "platform_primary_color", "setting_value": "#ff8800", "is_public": True},
                {"setting_value": "row without a key"},
            ]
        )
    )
    cache = SettingsCache(JsonSettingsStore(path), public_only=True)
    assert cache.loading is True
    cache.load()
    assert cache.loading is False
    assert len(cache.settings) == 2
    assert cache.platform_name() == DEFAULT_PLATFORM_NAME
    assert cache.primary_color() == "#ff8800"
    assert cache.platform_favicon() == ""
    assert cache.get_setting("missing") is None


def test_store_change_invalidates_and_reloads_other_caches(tmp_path: Path) -> None:
    store = JsonSettingsStore(tmp_path / "settings.json")
    admin = SettingsCache(store)
    public = SettingsCache(store, public_only=True)
    admin.load()
    public.load()
    notified = []
    public.subscribe(lambda: notified.append(public.platform_name()))

    assert admin.update_setting("platform_name", "Ledgerly") is True
    assert admin.get_setting_value("platform_name") == "Ledgerly"
    assert public.stale is False
    assert notified == ["Ledgerly"]

    saved = json.loads((tmp_path / "settings.json").read_text())
    assert any(row["setting_key"] == "platform_name" and row["setting_value"] == "Ledgerly" for row in saved)


def test_public_cache_skips_reload_for_private_rows(tmp_path: Path) -> None:
    store = JsonSettingsStore(tmp_path / "settings.json")
    admin = SettingsCache(store)
    public = SettingsCache(store, public_only=True)
    admin.load()
    public.load()
    admin_notified: List[str] = []
    public_notified: List[str] = []
    admin.subscribe(lambda: admin_notified.append("admin"))
    public.subscribe(lambda: public_notified.append("public"))

    assert admin.update_setting("maintenance_mode", "true") is True
    assert admin.get_setting_value("maintenance_mode") == "true"
    assert admin_notified
    assert public_notified == []
    assert public.get_setting("maintenance_mode") is None

    store.update("platform_tagline", "Novo")
    assert public_notified == ["public"]
    assert public.platform_tagline() == "Novo"


def test_failures_keep_cached_rows(tmp_path: Path) -> None:
    cache = SettingsCache(JsonSettingsStore(tmp_path / "settings.json"))
    cache.load()
    assert cache.update_setting("no_such_key", "x") is False

    broken = SettingsCache(BrokenStore(tmp_path / "settings.json"))
    broken.load()
    assert broken.settings == []
    assert broken.stale is True
    assert broken.loading is False


def test_close_stops_reacting_to_store_changes(tmp_path: Path) -> None:
    store = JsonSettingsStore(tmp_path / "settings.json")
    cache = SettingsCache(store)
    cache.load()
    cache.close()
    store.update("platform_name", "Other")
    assert cache.platform_name() == DEFAULT_PLATFORM_NAME


def test_group_settings_by_category(tmp_path: Path) -> None:
    groups = group_settings(JsonSettingsStore(tmp_path / "settings.json").fetch())
    assert [group.category for group in groups] == ["appearance", "branding", "system"]
    assert groups[0].title == "Appearance"
    assert [row.setting_key for row in groups[0].settings] == ["platform_primary_color"]


def test_meta_updater_applies_after_load_and_on_change(tmp_path: Path) -> None:
    store = JsonSettingsStore(tmp_path / "settings.json")
    cache = SettingsCache(store, public_only=True)
    applied: List[PageMeta] = []
    updater = MetaUpdater(cache, apply=applied.append)

    # Nothing is applied while the cache is still loading.
    assert updater.update() is None
    cache.load()
    assert applied == [
        PageMeta(title="Finance Inc", favicon="", description="Aplicativo de controle financeiro pessoal")
    ]

    store.update("platform_name", "Pocket Ledger")
    assert applied[-1].title == "Pocket Ledger"

    # Unchanged metadata is not reapplied.
    cache.load()
    assert len(applied) == 2
    updater.close()
