"""Presets API: manage M1 D1 anchor presets and the active anchor.

Each user (X-User-Id) has an independent preset set and active anchor.
Selecting, editing or deleting the active preset changes the identifier
space; clients must re-fetch grids afterwards.
"""

from fastapi import APIRouter, Depends, Path, Request

from solarcal.core.auth import get_current_user_id
from solarcal.core.logging import get_request_id
from solarcal.features.presets.service import PresetManager, PresetRegistry
from solarcal.models.anchor import AnchorPreset, PresetCreateRequest, PresetUpdateRequest

router = APIRouter(prefix="/v1/presets", tags=["presets"])


def get_preset_manager(
    request: Request,
    user_id: str = Depends(get_current_user_id),
) -> PresetManager:
    registry: PresetRegistry = request.app.state.preset_registry
    return registry.manager_for(user_id)


def _rid(request: Request):
    return getattr(request.state, "request_id", None) or get_request_id()


def _preset_payload(preset: AnchorPreset, active: AnchorPreset) -> dict:
    data = preset.model_dump(mode="json")
    data["is_active"] = preset.id == active.id
    data["is_default"] = preset.is_default
    return data


@router.get("")
async def list_presets_endpoint(
    request: Request,
    manager: PresetManager = Depends(get_preset_manager),
):
    """List presets in creation order, plus the active anchor."""
    active = manager.get_active_anchor()
    return {
        "data": {
            "presets": [_preset_payload(p, active) for p in manager.list_presets()],
            "active": _preset_payload(active, active),
            "default": _preset_payload(manager.default_anchor, active),
            "revision": manager.revision,
        },
        "request_id": _rid(request),
    }


@router.get("/active")
async def get_active_endpoint(
    request: Request,
    manager: PresetManager = Depends(get_preset_manager),
):
    active = manager.get_active_anchor()
    return {
        "data": {**_preset_payload(active, active), "revision": manager.revision},
        "request_id": _rid(request),
    }


@router.post("", status_code=201)
async def create_preset_endpoint(
    body: PresetCreateRequest,
    request: Request,
    manager: PresetManager = Depends(get_preset_manager),
):
    """Create a preset; it becomes active unless ``select`` is false."""
    preset = manager.create_preset(body.name, body.start_date, select=body.select)
    return {
        "data": _preset_payload(preset, manager.get_active_anchor()),
        "request_id": _rid(request),
    }


@router.patch("/{preset_id}")
async def update_preset_endpoint(
    body: PresetUpdateRequest,
    request: Request,
    preset_id: str = Path(..., description="Preset ID"),
    manager: PresetManager = Depends(get_preset_manager),
):
    preset = manager.update_preset(preset_id, body)
    return {
        "data": _preset_payload(preset, manager.get_active_anchor()),
        "request_id": _rid(request),
    }


@router.delete("/{preset_id}")
async def delete_preset_endpoint(
    request: Request,
    preset_id: str = Path(..., description="Preset ID"),
    manager: PresetManager = Depends(get_preset_manager),
):
    """Delete a preset; returns the active anchor afterwards (fallback when it was active)."""
    active = manager.delete_preset(preset_id)
    return {
        "data": {"deleted": preset_id, "active": _preset_payload(active, active)},
        "request_id": _rid(request),
    }


@router.post("/{preset_id}/select")
async def select_preset_endpoint(
    request: Request,
    preset_id: str = Path(..., description="Preset ID or 'default'"),
    manager: PresetManager = Depends(get_preset_manager),
):
    active = manager.select_preset(preset_id)
    return {
        "data": {**_preset_payload(active, active), "revision": manager.revision},
        "request_id": _rid(request),
    }
