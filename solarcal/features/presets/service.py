"""Anchor preset management.

PresetManager owns one user's presets and the single active anchor.
The active anchor is explicit state on the manager handle: consumers read
it with get_active_anchor() and learn about changes through
on_anchor_change(). Changing the anchor never rewrites stored day-keyed
content; identifiers computed under the old anchor simply go stale.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections import OrderedDict
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Dict, List, Mapping, Optional, Union

from solarcal.core.config import Settings, settings
from solarcal.core.errors import InvalidDateError, NotFoundError, ValidationError
from solarcal.core.logging import log_event
from solarcal.features.calendar.conversion import coerce_date
from solarcal.features.presets.store import InMemoryPresetStore, PresetStore
from solarcal.models.anchor import (
    DEFAULT_ANCHOR_ID,
    AnchorChange,
    AnchorChangeReason,
    AnchorPreset,
    PresetUpdateRequest,
)

logger = logging.getLogger(__name__)

AnchorListener = Callable[[AnchorChange], None]

# Fixed creation timestamp for the default anchor
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def default_anchor(settings_obj: Optional[Settings] = None, today: Optional[date] = None) -> AnchorPreset:
    """The fallback anchor used when a user has no presets.

    DEFAULT_ANCHOR_DATE wins when set; otherwise DEFAULT_ANCHOR_MONTH/DAY in
    the current UTC year (March 25 unless configured).
    """
    cfg = settings_obj or settings
    if cfg.DEFAULT_ANCHOR_DATE is not None:
        start = cfg.DEFAULT_ANCHOR_DATE
    else:
        year = (today or datetime.now(timezone.utc).date()).year
        try:
            start = date(year, cfg.DEFAULT_ANCHOR_MONTH, cfg.DEFAULT_ANCHOR_DAY)
        except ValueError as exc:
            raise ValidationError(
                f"Default anchor month/day is not a date in {year}: "
                f"{cfg.DEFAULT_ANCHOR_MONTH}/{cfg.DEFAULT_ANCHOR_DAY}"
            ) from exc
    return AnchorPreset(
        id=DEFAULT_ANCHOR_ID,
        name=cfg.DEFAULT_ANCHOR_NAME,
        start_date=start,
        created_at=_EPOCH,
    )


def _name_key(name: str) -> str:
    return name.strip().casefold()


class PresetManager:
    """CRUD over anchor presets plus the active-anchor selection.

    All state changes happen under one lock; listeners are called after the
    lock is released, in subscription order.
    """

    def __init__(
        self,
        store: Optional[PresetStore] = None,
        *,
        default: Optional[AnchorPreset] = None,
        settings_obj: Optional[Settings] = None,
        user_id: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._settings = settings_obj or settings
        self._store = store if store is not None else InMemoryPresetStore()
        self._default = default or default_anchor(self._settings)
        self._user_id = user_id
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.RLock()
        self._listeners: List[AnchorListener] = []
        self._revision = 0

        self._presets: Dict[str, AnchorPreset] = {}
        for preset in self._store.load():
            self._presets[preset.id] = preset
        self._active_id = self._restore_active()

    # Reads -------------------------------------------------------------
    @property
    def default_anchor(self) -> AnchorPreset:
        return self._default

    @property
    def revision(self) -> int:
        """Bumped on every active-anchor change; grids built at an older revision are stale."""
        with self._lock:
            return self._revision

    def get_active_anchor(self) -> AnchorPreset:
        with self._lock:
            return self._presets.get(self._active_id, self._default)

    def list_presets(self) -> List[AnchorPreset]:
        with self._lock:
            return self._ordered()

    def get_preset(self, preset_id: str) -> AnchorPreset:
        with self._lock:
            if preset_id == DEFAULT_ANCHOR_ID:
                return self._default
            preset = self._presets.get(preset_id)
            if preset is None:
                raise NotFoundError(f"Preset {preset_id} not found")
            return preset

    # Subscriptions -----------------------------------------------------
    def on_anchor_change(self, listener: AnchorListener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # Writes ------------------------------------------------------------
    def create_preset(self, name: str, start_date, *, select: bool = True) -> AnchorPreset:
        clean_name = self._validate_name(name)
        start = self._validate_start_date(start_date)

        with self._lock:
            self._ensure_unique_name(clean_name)
            created_at = self._clock()
            ordered = self._ordered()
            # Creation order must be strict for the delete fallback
            if ordered and created_at <= ordered[-1].created_at:
                created_at = ordered[-1].created_at + timedelta(microseconds=1)
            preset = AnchorPreset(
                id=uuid.uuid4().hex,
                name=clean_name,
                start_date=start,
                created_at=created_at,
            )
            self._store.save(preset)
            self._presets[preset.id] = preset
            change = self._set_active(preset.id, "created") if select else None

        log_event("info", "preset.created", user_id=self._user_id, preset_id=preset.id,
                  event_type="preset.created", extra={"start_date": preset.start_date.isoformat()})
        self._notify(change)
        return preset

    def select_preset(self, preset_id: str) -> AnchorPreset:
        with self._lock:
            if preset_id != DEFAULT_ANCHOR_ID and preset_id not in self._presets:
                raise NotFoundError(f"Preset {preset_id} not found")
            change = self._set_active(preset_id, "selected")
            active = self.get_active_anchor()

        self._notify(change)
        return active

    def update_preset(
        self,
        preset_id: str,
        patch: Union[PresetUpdateRequest, Mapping[str, object]],
    ) -> AnchorPreset:
        changes = self._patch_changes(patch)
        if preset_id == DEFAULT_ANCHOR_ID:
            raise ValidationError("The default anchor cannot be edited")

        updates: Dict[str, object] = {}
        if changes.get("name") is not None:
            updates["name"] = self._validate_name(changes["name"])
        if changes.get("start_date") is not None:
            updates["start_date"] = self._validate_start_date(changes["start_date"])
        for key in ("name", "start_date"):
            if key in changes and changes[key] is None:
                raise ValidationError(f"{key} cannot be null")

        with self._lock:
            current = self._presets.get(preset_id)
            if current is None:
                raise NotFoundError(f"Preset {preset_id} not found")
            if "name" in updates:
                self._ensure_unique_name(updates["name"], exclude_id=preset_id)

            updated = current.model_copy(update=updates)
            self._store.save(updated)
            self._presets[preset_id] = updated

            change = None
            if preset_id == self._active_id and updated.start_date != current.start_date:
                change = self._record_change(current, updated, "updated")

        log_event("info", "preset.updated", user_id=self._user_id, preset_id=preset_id,
                  event_type="preset.updated", extra={"fields": sorted(updates)})
        self._notify(change)
        return updated

    def delete_preset(self, preset_id: str) -> AnchorPreset:
        """Delete a preset; returns the active anchor afterwards.

        Deleting the active preset falls back to the earliest-created remaining
        preset, or to the default anchor when none remain.
        """
        if preset_id == DEFAULT_ANCHOR_ID:
            raise ValidationError("The default anchor cannot be deleted")

        with self._lock:
            if preset_id not in self._presets:
                raise NotFoundError(f"Preset {preset_id} not found")
            was_active = preset_id == self._active_id
            previous = self.get_active_anchor()

            self._store.remove(preset_id)
            del self._presets[preset_id]

            change = None
            if was_active:
                self._active_id = self._fallback_id()
                self._store.save_active(self._active_id)
                change = self._record_change(previous, self.get_active_anchor(), "deleted")
            active = self.get_active_anchor()

        log_event("info", "preset.deleted", user_id=self._user_id, preset_id=preset_id,
                  event_type="preset.deleted", extra={"fallback": active.id if was_active else None})
        self._notify(change)
        return active

    # Internal helpers -------------------------------------------------
    def _ordered(self) -> List[AnchorPreset]:
        return sorted(self._presets.values(), key=lambda p: (p.created_at, p.id))

    def _fallback_id(self) -> str:
        remaining = self._ordered()
        return remaining[0].id if remaining else DEFAULT_ANCHOR_ID

    def _restore_active(self) -> str:
        """Stored selection when it still names a preset, else the fallback."""
        stored = self._store.load_active()
        if stored == DEFAULT_ANCHOR_ID or stored in self._presets:
            return stored
        if stored is not None:
            logger.info("stale active preset dropped", extra={"user_id": self._user_id, "preset_id": stored})
        return self._fallback_id()

    def _set_active(self, preset_id: str, reason: AnchorChangeReason) -> Optional[AnchorChange]:
        previous = self.get_active_anchor()
        self._store.save_active(preset_id)
        self._active_id = preset_id
        current = self.get_active_anchor()
        if previous == current:
            return None
        return self._record_change(previous, current, reason)

    def _record_change(self, previous: AnchorPreset, current: AnchorPreset, reason: AnchorChangeReason) -> AnchorChange:
        self._revision += 1
        return AnchorChange(previous=previous, current=current, reason=reason, revision=self._revision)

    def _notify(self, change: Optional[AnchorChange]) -> None:
        if change is None:
            return
        log_event("info", "anchor.changed", user_id=self._user_id, anchor_id=change.current.id,
                  event_type="anchor.changed",
                  extra={"reason": change.reason, "revision": change.revision,
                         "start_date": change.current.start_date.isoformat()})
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(change)
            except Exception:
                logger.exception("anchor listener failed", extra={"anchor_id": change.current.id})

    def _validate_name(self, name) -> str:
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Preset name is required")
        clean = name.strip()
        min_length = self._settings.PRESET_NAME_MIN_LENGTH
        if len(clean) < min_length:
            raise ValidationError(f"Preset name must be at least {min_length} characters long")
        if len(clean) > 200:
            raise ValidationError("Preset name must be at most 200 characters long")
        return clean

    def _validate_start_date(self, start_date) -> date:
        if start_date is None:
            raise ValidationError("Preset start date is required")
        try:
            return coerce_date(start_date)
        except InvalidDateError as exc:
            raise ValidationError(f"Invalid preset start date: {exc.message}") from exc

    def _ensure_unique_name(self, name: str, exclude_id: Optional[str] = None) -> None:
        key = _name_key(name)
        if key == _name_key(self._default.name):
            raise ValidationError(f"{name!r} is the default anchor's name")
        for preset in self._presets.values():
            if preset.id != exclude_id and _name_key(preset.name) == key:
                raise ValidationError(f"A preset named {name!r} already exists")

    @staticmethod
    def _patch_changes(patch) -> dict:
        if isinstance(patch, PresetUpdateRequest):
            return patch.changes()
        if not isinstance(patch, Mapping):
            raise ValidationError("Preset patch must be a mapping")
        unknown = set(patch) - {"name", "start_date"}
        if unknown:
            raise ValidationError(f"Unknown preset fields: {', '.join(sorted(unknown))}")
        return dict(patch)


StoreFactory = Callable[[str], PresetStore]


class PresetRegistry:
    """One PresetManager per user id, created on first use.

    At most ``max_managers`` managers are held; the least recently used one
    is dropped first and rebuilt from its store on the next request.
    Listeners registered on a dropped manager go with it.
    """

    def __init__(
        self,
        store_factory: Optional[StoreFactory] = None,
        *,
        settings_obj: Optional[Settings] = None,
        max_managers: Optional[int] = None,
    ):
        self._settings = settings_obj or settings
        self._store_factory = store_factory or _memory_store_factory()
        self._max_managers = max_managers or self._settings.PRESET_MANAGER_CACHE_SIZE
        if self._max_managers < 1:
            raise ValidationError("max_managers must be at least 1")
        self._managers: "OrderedDict[str, PresetManager]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._managers)

    def manager_for(self, user_id: str) -> PresetManager:
        with self._lock:
            manager = self._managers.get(user_id)
            if manager is not None:
                self._managers.move_to_end(user_id)
                return manager

            manager = PresetManager(
                self._store_factory(user_id),
                settings_obj=self._settings,
                user_id=user_id,
            )
            self._managers[user_id] = manager
            while len(self._managers) > self._max_managers:
                evicted, _ = self._managers.popitem(last=False)
                logger.debug("preset manager evicted", extra={"user_id": evicted})
            return manager


def _memory_store_factory() -> StoreFactory:
    """In-memory stores kept per user, so an evicted manager can be rebuilt."""
    stores: Dict[str, InMemoryPresetStore] = {}
    lock = threading.Lock()

    def factory(user_id: str) -> InMemoryPresetStore:
        with lock:
            store = stores.get(user_id)
            if store is None:
                store = stores[user_id] = InMemoryPresetStore()
            return store

    return factory
