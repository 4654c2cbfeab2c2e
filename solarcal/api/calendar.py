"""Calendar API: conversions, identifiers, grids, export and day search.

Every endpoint works under the caller's active anchor unless a
``preset_id`` query parameter names another of their presets.
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Path, Query, Request

from solarcal.api.presets import get_preset_manager
from solarcal.core.errors import ValidationError
from solarcal.core.logging import get_request_id
from solarcal.features.calendar.conversion import from_solar_position, to_solar_position, today_position
from solarcal.features.calendar.export import export_service
from solarcal.features.calendar.grid import build_day, build_month, build_year
from solarcal.features.calendar.identifiers import decode
from solarcal.features.calendar.rules import appointments_in_month, month_info
from solarcal.features.calendar.search import parse_day_query, resolve_day_query
from solarcal.features.presets.service import PresetManager
from solarcal.models.anchor import AnchorPreset

router = APIRouter(prefix="/v1/calendar", tags=["calendar"])


def _rid(request: Request):
    return getattr(request.state, "request_id", None) or get_request_id()


def _resolve_anchor(manager: PresetManager, preset_id: Optional[str]) -> AnchorPreset:
    if preset_id:
        return manager.get_preset(preset_id)
    return manager.get_active_anchor()


def _anchor_payload(anchor: AnchorPreset) -> dict:
    return {"id": anchor.id, "name": anchor.name, "start_date": anchor.start_date.isoformat()}


@router.get("/position")
async def position_endpoint(
    request: Request,
    date: str = Query(..., description="Gregorian date, YYYY-MM-DD"),
    preset_id: Optional[str] = Query(None, description="Convert under this preset instead of the active one"),
    manager: PresetManager = Depends(get_preset_manager),
):
    """Solar position, identifier and day descriptor for a Gregorian date."""
    anchor = _resolve_anchor(manager, preset_id)
    position = to_solar_position(date, anchor)
    day = build_day(position, anchor)
    return {
        "data": {
            "anchor": _anchor_payload(anchor),
            "identifier": day.identifier,
            "day": day.model_dump(mode="json"),
        },
        "request_id": _rid(request),
    }


@router.get("/today")
async def today_endpoint(
    request: Request,
    manager: PresetManager = Depends(get_preset_manager),
):
    anchor = manager.get_active_anchor()
    day = build_day(today_position(anchor), anchor)
    return {
        "data": {"anchor": _anchor_payload(anchor), "identifier": day.identifier, "day": day.model_dump(mode="json")},
        "request_id": _rid(request),
    }


@router.get("/gregorian/{identifier}")
async def gregorian_endpoint(
    request: Request,
    identifier: str = Path(..., description="Date identifier, e.g. 0001-07-15"),
    preset_id: Optional[str] = Query(None),
    manager: PresetManager = Depends(get_preset_manager),
):
    """Gregorian date for a date identifier under the anchor."""
    anchor = _resolve_anchor(manager, preset_id)
    position = decode(identifier)
    return {
        "data": {
            "anchor": _anchor_payload(anchor),
            "identifier": identifier,
            "position": position.to_dict(),
            "gregorian_date": from_solar_position(position, anchor).isoformat(),
        },
        "request_id": _rid(request),
    }


@router.get("/years/{year}/months/{month}")
async def month_endpoint(
    request: Request,
    year: int = Path(..., description="Solar year (0 starts at the anchor)"),
    month: int = Path(..., description="Month 1..13"),
    preset_id: Optional[str] = Query(None),
    manager: PresetManager = Depends(get_preset_manager),
):
    anchor = _resolve_anchor(manager, preset_id)
    grid = build_month(year, month, anchor)
    return {"data": grid.model_dump(mode="json"), "revision": manager.revision, "request_id": _rid(request)}


@router.get("/years/{year}")
async def year_endpoint(
    request: Request,
    year: int = Path(..., description="Solar year (0 starts at the anchor)"),
    preset_id: Optional[str] = Query(None),
    manager: PresetManager = Depends(get_preset_manager),
):
    anchor = _resolve_anchor(manager, preset_id)
    grid = build_year(year, anchor)
    return {"data": grid.model_dump(mode="json"), "revision": manager.revision, "request_id": _rid(request)}


@router.get("/years/{year}/export")
async def export_endpoint(
    request: Request,
    year: int = Path(..., description="Solar year"),
    format: Literal["ics", "json"] = Query("ics", description="Export format"),
    preset_id: Optional[str] = Query(None),
    manager: PresetManager = Depends(get_preset_manager),
):
    """Appointed times of a solar year as ICS or JSON.

    Response includes:
    - filename: suggested download filename
    - content_type: MIME type
    - content: full export content
    """
    anchor = _resolve_anchor(manager, preset_id)
    result = export_service.export_year(year, anchor, export_format=format)
    return {"data": result.model_dump(), "request_id": _rid(request)}


@router.get("/search")
async def search_endpoint(
    request: Request,
    q: str = Query(..., min_length=1, max_length=40, description="Day query such as m1d15, month 3, d4"),
    year: Optional[int] = Query(None, description="Solar year; defaults to the year containing today"),
    manager: PresetManager = Depends(get_preset_manager),
):
    anchor = manager.get_active_anchor()
    query = parse_day_query(q)
    if query is None:
        raise ValidationError(f"Unrecognized day query: {q!r}", request_id=_rid(request))
    target_year = year if year is not None else today_position(anchor).year
    days = resolve_day_query(query, target_year, anchor)
    return {
        "data": {
            "query": {"kind": query.kind, "month": query.month, "day": query.day, "label": query.label()},
            "year": target_year,
            "days": [d.model_dump(mode="json") for d in days],
        },
        "request_id": _rid(request),
    }


@router.get("/months/{month}/info")
async def month_info_endpoint(
    request: Request,
    month: int = Path(..., description="Month 1..13"),
):
    """Background for a month plus the appointed times it holds."""
    info = month_info(month)
    return {
        "data": {
            **info.model_dump(mode="json"),
            "appointments": [a.model_dump(mode="json") for a in appointments_in_month(month)],
        },
        "request_id": _rid(request),
    }
