"""Preset persistence contract and the in-memory store.

Stores are opaque key-value persistence for one user's presets and the id
of the preset that user has selected. The manager keeps its own in-memory
view and writes through on every change.
"""

from __future__ import annotations

import threading
from typing import Dict, List, Optional, Protocol, runtime_checkable

from solarcal.models.anchor import AnchorPreset


@runtime_checkable
class PresetStore(Protocol):
    def load(self) -> List[AnchorPreset]:
        ...

    def save(self, preset: AnchorPreset) -> None:
        ...

    def remove(self, preset_id: str) -> None:
        ...

    def load_active(self) -> Optional[str]:
        ...

    def save_active(self, preset_id: str) -> None:
        ...


class InMemoryPresetStore:
    """Dict-backed store; used for guests and tests."""

    def __init__(self, presets: List[AnchorPreset] | None = None, active_id: Optional[str] = None):
        self._presets: Dict[str, AnchorPreset] = {p.id: p for p in presets or []}
        self._active_id = active_id
        self._lock = threading.Lock()

    def load(self) -> List[AnchorPreset]:
        with self._lock:
            return sorted(self._presets.values(), key=lambda p: (p.created_at, p.id))

    def save(self, preset: AnchorPreset) -> None:
        with self._lock:
            self._presets[preset.id] = preset

    def remove(self, preset_id: str) -> None:
        with self._lock:
            self._presets.pop(preset_id, None)

    def load_active(self) -> Optional[str]:
        with self._lock:
            return self._active_id

    def save_active(self, preset_id: str) -> None:
        with self._lock:
            self._active_id = preset_id
