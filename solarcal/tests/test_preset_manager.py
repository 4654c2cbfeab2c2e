"""Tests for anchor preset management.

Covers:
- Default anchor and initial state
- Create / select / update / delete rules
- Active-anchor fallback on delete
- Change notifications and revision counter
"""

import logging
from datetime import date, datetime, timezone

import pytest

from solarcal.core.config import Settings
from solarcal.core.errors import NotFoundError, ValidationError
from solarcal.features.calendar.conversion import to_solar_position
from solarcal.features.calendar.identifiers import encode
from solarcal.features.presets.service import PresetManager, PresetRegistry, default_anchor
from solarcal.features.presets.store import InMemoryPresetStore, PresetStore
from solarcal.models.anchor import DEFAULT_ANCHOR_ID, AnchorPreset, PresetUpdateRequest

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def manager(test_settings):
    return PresetManager(settings_obj=test_settings, user_id="tester", clock=lambda: FIXED_NOW)


@pytest.fixture
def changes(manager):
    received = []
    manager.on_anchor_change(received.append)
    return received


# ========== Default Anchor ==========

class TestDefaultAnchor:
    def test_fresh_manager_uses_default(self, manager):
        active = manager.get_active_anchor()

        assert active.id == DEFAULT_ANCHOR_ID
        assert active.is_default
        assert active.start_date == date(2024, 3, 20)
        assert manager.list_presets() == []
        assert manager.revision == 0

    def test_default_from_month_day(self):
        cfg = Settings(DEFAULT_ANCHOR_DATE=None, DEFAULT_ANCHOR_MONTH=3, DEFAULT_ANCHOR_DAY=25)
        assert default_anchor(cfg, today=date(2031, 7, 1)).start_date == date(2031, 3, 25)

    def test_default_leap_day_in_common_year(self):
        cfg = Settings(DEFAULT_ANCHOR_DATE=None, DEFAULT_ANCHOR_MONTH=2, DEFAULT_ANCHOR_DAY=29)
        with pytest.raises(ValidationError):
            default_anchor(cfg, today=date(2023, 5, 1))

    def test_get_default_by_id(self, manager):
        assert manager.get_preset(DEFAULT_ANCHOR_ID) == manager.default_anchor


# ========== Create ==========

class TestCreatePreset:
    def test_create_selects_by_default(self, manager, changes):
        preset = manager.create_preset("Spring 2024", "2024-03-20")

        assert manager.get_active_anchor() == preset
        assert manager.revision == 1
        assert len(changes) == 1
        assert changes[0].reason == "created"
        assert changes[0].previous.id == DEFAULT_ANCHOR_ID
        assert changes[0].current == preset

    def test_create_without_select(self, manager, changes):
        preset = manager.create_preset("Later", date(2025, 3, 20), select=False)

        assert manager.get_active_anchor().id == DEFAULT_ANCHOR_ID
        assert manager.list_presets() == [preset]
        assert changes == []
        assert manager.revision == 0

    def test_name_is_trimmed(self, manager):
        assert manager.create_preset("  Spring  ", "2024-03-20").name == "Spring"

    def test_duplicate_name_case_insensitive(self, manager):
        manager.create_preset("Spring", "2024-03-20")
        with pytest.raises(ValidationError):
            manager.create_preset(" spring ", "2025-03-20")

    @pytest.mark.parametrize("name", ["equinox default", "  EQUINOX DEFAULT "])
    def test_default_anchor_name_reserved(self, manager, name):
        with pytest.raises(ValidationError):
            manager.create_preset(name, "2024-03-20")
        assert manager.list_presets() == []

    def test_rename_to_default_anchor_name(self, manager):
        spring = manager.create_preset("Spring", "2024-03-20")
        with pytest.raises(ValidationError):
            manager.update_preset(spring.id, {"name": "Equinox Default"})

    @pytest.mark.parametrize("name", ["", "   ", "ab", None, 42])
    def test_invalid_names(self, manager, name):
        with pytest.raises(ValidationError):
            manager.create_preset(name, "2024-03-20")

    @pytest.mark.parametrize("start_date", ["2023-02-29", "March 20", "", None])
    def test_invalid_start_dates(self, manager, start_date):
        with pytest.raises(ValidationError):
            manager.create_preset("Spring", start_date)

    def test_failed_create_leaves_state_untouched(self, manager, changes):
        with pytest.raises(ValidationError):
            manager.create_preset("Spring", "2023-02-29")
        assert manager.list_presets() == []
        assert changes == []

    def test_created_at_strictly_increasing_with_frozen_clock(self, manager):
        first = manager.create_preset("First", "2024-03-20")
        second = manager.create_preset("Second", "2024-03-21")

        assert second.created_at > first.created_at
        assert manager.list_presets() == [first, second]


# ========== Select ==========

class TestSelectPreset:
    def test_select_switches_identifiers(self, manager, changes):
        first = manager.create_preset("First", "2024-03-20")
        second = manager.create_preset("Second", "2024-03-27", select=False)
        day = date(2024, 4, 15)

        before = encode(to_solar_position(day, manager.get_active_anchor()))
        manager.select_preset(second.id)
        after = encode(to_solar_position(day, manager.get_active_anchor()))

        assert before == "0000-01-27"
        assert after == "0000-01-20"
        assert changes[-1].reason == "selected"
        assert changes[-1].previous == first
        assert changes[-1].current == second

    def test_select_default(self, manager):
        manager.create_preset("First", "2024-01-01")
        assert manager.select_preset(DEFAULT_ANCHOR_ID).id == DEFAULT_ANCHOR_ID

    def test_reselect_active_is_no_change(self, manager, changes):
        preset = manager.create_preset("First", "2024-01-01")
        revision = manager.revision

        manager.select_preset(preset.id)

        assert manager.revision == revision
        assert len(changes) == 1

    def test_select_unknown(self, manager):
        with pytest.raises(NotFoundError):
            manager.select_preset("missing")


# ========== Update ==========

class TestUpdatePreset:
    def test_rename(self, manager, changes):
        preset = manager.create_preset("First", "2024-01-01")
        updated = manager.update_preset(preset.id, {"name": "Renamed"})

        assert updated.id == preset.id
        assert updated.name == "Renamed"
        assert updated.created_at == preset.created_at
        # Renaming does not move the anchor
        assert len(changes) == 1

    def test_change_active_date_notifies(self, manager, changes):
        preset = manager.create_preset("First", "2024-01-01")
        manager.update_preset(preset.id, PresetUpdateRequest(start_date="2024-01-08"))

        assert manager.get_active_anchor().start_date == date(2024, 1, 8)
        assert changes[-1].reason == "updated"
        assert manager.revision == 2

    def test_change_inactive_date_is_silent(self, manager, changes):
        preset = manager.create_preset("First", "2024-01-01", select=False)
        manager.update_preset(preset.id, {"start_date": "2024-02-01"})

        assert changes == []

    def test_case_change_of_own_name_allowed(self, manager):
        preset = manager.create_preset("spring", "2024-01-01")
        assert manager.update_preset(preset.id, {"name": "SPRING"}).name == "SPRING"

    def test_rename_to_existing_name(self, manager):
        manager.create_preset("First", "2024-01-01")
        second = manager.create_preset("Second", "2024-02-01")
        with pytest.raises(ValidationError):
            manager.update_preset(second.id, {"name": "FIRST"})

    def test_unknown_field(self, manager):
        preset = manager.create_preset("First", "2024-01-01")
        with pytest.raises(ValidationError):
            manager.update_preset(preset.id, {"colour": "red"})

    def test_null_field(self, manager):
        preset = manager.create_preset("First", "2024-01-01")
        with pytest.raises(ValidationError):
            manager.update_preset(preset.id, {"name": None})

    def test_default_cannot_be_edited(self, manager):
        with pytest.raises(ValidationError):
            manager.update_preset(DEFAULT_ANCHOR_ID, {"name": "Mine"})

    def test_unknown_preset(self, manager):
        with pytest.raises(NotFoundError):
            manager.update_preset("missing", {"name": "Mine"})


# ========== Delete ==========

class TestDeletePreset:
    def test_delete_active_falls_back_to_earliest(self, manager, changes):
        first = manager.create_preset("First", "2024-01-01")
        second = manager.create_preset("Second", "2024-02-01")
        third = manager.create_preset("Third", "2024-03-01")

        assert manager.delete_preset(third.id) == first
        assert changes[-1].reason == "deleted"
        assert changes[-1].previous == third

        assert manager.delete_preset(first.id) == second
        assert manager.delete_preset(second.id).id == DEFAULT_ANCHOR_ID
        assert manager.list_presets() == []

    def test_delete_inactive_keeps_active(self, manager, changes):
        first = manager.create_preset("First", "2024-01-01")
        second = manager.create_preset("Second", "2024-02-01", select=False)
        revision = manager.revision

        assert manager.delete_preset(second.id) == first
        assert manager.revision == revision
        assert len(changes) == 1

    def test_default_cannot_be_deleted(self, manager):
        with pytest.raises(ValidationError):
            manager.delete_preset(DEFAULT_ANCHOR_ID)

    def test_unknown_preset(self, manager):
        with pytest.raises(NotFoundError):
            manager.delete_preset("missing")

    def test_get_deleted_preset(self, manager):
        preset = manager.create_preset("First", "2024-01-01")
        manager.delete_preset(preset.id)
        with pytest.raises(NotFoundError):
            manager.get_preset(preset.id)


# ========== Listeners ==========

class TestListeners:
    def test_failing_listener_does_not_block_others(self, manager, caplog):
        received = []

        def broken(change):
            raise RuntimeError("listener exploded")

        manager.on_anchor_change(broken)
        manager.on_anchor_change(received.append)

        with caplog.at_level(logging.ERROR, logger="solarcal"):
            preset = manager.create_preset("First", "2024-01-01")

        assert manager.get_active_anchor() == preset
        assert len(received) == 1
        assert any(r.getMessage() == "anchor listener failed" for r in caplog.records)

    def test_unsubscribe(self, manager):
        received = []
        unsubscribe = manager.on_anchor_change(received.append)
        unsubscribe()
        unsubscribe()

        manager.create_preset("First", "2024-01-01")
        assert received == []

    def test_listener_can_read_new_anchor(self, manager):
        seen = []
        manager.on_anchor_change(lambda change: seen.append(manager.get_active_anchor()))

        preset = manager.create_preset("First", "2024-01-01")
        assert seen == [preset]


# ========== Stores and registry ==========

def test_manager_reloads_from_store(test_settings):
    store = InMemoryPresetStore()
    first_manager = PresetManager(store, settings_obj=test_settings)
    first = first_manager.create_preset("First", "2024-01-01")
    second = first_manager.create_preset("Second", "2024-03-20")

    reloaded = PresetManager(store, settings_obj=test_settings)

    assert reloaded.list_presets() == [first, second]
    assert reloaded.get_active_anchor() == second
    assert encode(to_solar_position("2024-04-15", reloaded.get_active_anchor())) == "0000-01-27"


def test_reload_keeps_explicit_default_selection(test_settings):
    store = InMemoryPresetStore()
    manager = PresetManager(store, settings_obj=test_settings)
    manager.create_preset("First", "2024-01-01")
    manager.select_preset(DEFAULT_ANCHOR_ID)

    assert PresetManager(store, settings_obj=test_settings).get_active_anchor().id == DEFAULT_ANCHOR_ID


def test_stale_stored_selection_falls_back_to_earliest(test_settings):
    first = AnchorPreset(id="p1", name="First", start_date=date(2024, 1, 1),
                         created_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
    store = InMemoryPresetStore([first], active_id="deleted-elsewhere")

    assert PresetManager(store, settings_obj=test_settings).get_active_anchor().id == "p1"


def test_delete_fallback_is_stored(test_settings):
    store = InMemoryPresetStore()
    manager = PresetManager(store, settings_obj=test_settings)
    first = manager.create_preset("First", "2024-01-01")
    second = manager.create_preset("Second", "2024-02-01")
    manager.delete_preset(second.id)

    assert store.load_active() == first.id


def test_in_memory_store_satisfies_protocol():
    assert isinstance(InMemoryPresetStore(), PresetStore)


def test_registry_scopes_managers_per_user(test_settings):
    registry = PresetRegistry(settings_obj=test_settings)
    alice = registry.manager_for("alice")

    assert registry.manager_for("alice") is alice
    alice.create_preset("Alice Spring", "2024-03-20")

    bob = registry.manager_for("bob")
    assert bob.list_presets() == []
    assert bob.get_active_anchor().id == DEFAULT_ANCHOR_ID


class TestRegistryBound:
    def test_least_recently_used_dropped(self, test_settings):
        registry = PresetRegistry(settings_obj=test_settings, max_managers=2)
        alice = registry.manager_for("alice")
        registry.manager_for("bob")
        registry.manager_for("alice")
        registry.manager_for("carol")

        assert len(registry) == 2
        assert registry.manager_for("alice") is alice
        assert len(registry) == 2

    def test_many_users_stay_within_cap(self, test_settings):
        registry = PresetRegistry(settings_obj=test_settings, max_managers=16)
        for n in range(500):
            registry.manager_for(f"user-{n}")
        assert len(registry) == 16

    def test_cap_from_settings(self, test_settings):
        cfg = test_settings.model_copy(update={"PRESET_MANAGER_CACHE_SIZE": 3})
        registry = PresetRegistry(settings_obj=cfg)
        for n in range(10):
            registry.manager_for(f"user-{n}")
        assert len(registry) == 3

    def test_evicted_manager_rebuilt_from_store(self, test_settings):
        registry = PresetRegistry(settings_obj=test_settings, max_managers=1)
        alice = registry.manager_for("alice")
        spring = alice.create_preset("Alice Spring", "2024-03-20")
        registry.manager_for("bob")

        rebuilt = registry.manager_for("alice")

        assert rebuilt is not alice
        assert rebuilt.list_presets() == [spring]
        assert rebuilt.get_active_anchor() == spring

    def test_invalid_cap(self, test_settings):
        with pytest.raises(ValidationError):
            PresetRegistry(settings_obj=test_settings.model_copy(update={"PRESET_MANAGER_CACHE_SIZE": 0}))
