"""Export service: appointed times of a solar year as ICS or JSON.

Each appointment is placed on the Gregorian date it falls on under the
given anchor, so the same year exports differently per anchor.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Literal, Optional

from ics import Calendar, Event
from pydantic import BaseModel, ConfigDict

from solarcal.core.config import settings
from solarcal.core.errors import ValidationError
from solarcal.features.calendar.conversion import anchor_start_date, from_solar_position
from solarcal.features.calendar.identifiers import encode
from solarcal.features.calendar.rules import APPOINTMENTS
from solarcal.models.calendar import CalendarPosition

logger = logging.getLogger(__name__)

ExportFormat = Literal["ics", "json"]


class ExportResponse(BaseModel):
    """Export response model."""
    model_config = ConfigDict(frozen=True)

    year: int
    anchor_id: str
    format: str
    filename: str
    content_type: str
    content: str


def _describe(appointment) -> str:
    text = appointment.meaning
    if appointment.prophetic:
        text = f"{text} {appointment.prophetic}"
    if appointment.instructions:
        text = f"{text} {appointment.instructions}"
    return f"{text} ({appointment.refs})"


class CalendarExportService:
    """Service for exporting a solar year's appointed times."""

    def __init__(self, prodid: Optional[str] = None):
        self._prodid = prodid or settings.CALENDAR_PRODID

    def export_year(
        self,
        year: int,
        anchor,
        export_format: ExportFormat = "ics",
        generated_at: Optional[datetime] = None,
    ) -> ExportResponse:
        """Export the appointments of solar ``year`` under ``anchor``.

        Args:
            year: Solar year (0 is the year starting at the anchor)
            anchor: Anchor preset (or anything with a start_date)
            export_format: "ics" or "json"
            generated_at: Timestamp stamped into the export (defaults to now, UTC)

        Raises:
            ValidationError: If the format is unknown
        """
        if export_format not in ("ics", "json"):
            raise ValidationError(f"Unsupported export format: {export_format}")

        anchor_start_date(anchor)
        anchor_id = getattr(anchor, "id", None) or "default"
        stamp = (generated_at or datetime.now(timezone.utc)).astimezone(timezone.utc)
        entries = self._entries(year, anchor)

        if export_format == "ics":
            content = self._generate_ics(anchor_id, entries, stamp)
            filename = f"solar-calendar-{year}.ics"
            content_type = "text/calendar"
        else:
            content = self._generate_json(year, anchor, anchor_id, entries, stamp)
            filename = f"solar-calendar-{year}.json"
            content_type = "application/json"

        logger.info("calendar.export", extra={"anchor_id": anchor_id, "event_type": export_format})
        return ExportResponse(
            year=year,
            anchor_id=anchor_id,
            format=export_format,
            filename=filename,
            content_type=content_type,
            content=content,
        )

    def _entries(self, year: int, anchor) -> list[tuple]:
        entries = []
        for appointment in APPOINTMENTS:
            position = CalendarPosition.of(year, appointment.month, appointment.day)
            entries.append((appointment, position, from_solar_position(position, anchor)))
        return entries

    def _generate_ics(self, anchor_id: str, entries, stamp: datetime) -> str:
        cal = Calendar(creator=self._prodid)
        for appointment, position, gregorian in entries:
            ev = Event(
                name=appointment.label,
                begin=gregorian.isoformat(),
                uid=f"{encode(position)}-{anchor_id}@solar-calendar",
                description=_describe(appointment),
                created=stamp,
            )
            ev.make_all_day()
            cal.events.add(ev)
        return "".join(cal.serialize_iter())

    def _generate_json(self, year: int, anchor, anchor_id: str, entries, stamp: datetime) -> str:
        export_data = {
            "year": year,
            "anchor_id": anchor_id,
            "anchor_start_date": anchor_start_date(anchor).isoformat(),
            "generated_at": stamp.isoformat(),
            "appointments": [
                {
                    "identifier": encode(position),
                    "gregorian_date": gregorian.isoformat(),
                    "month": appointment.month,
                    "day": appointment.day,
                    "label": appointment.label,
                    "kind": appointment.kind,
                    "refs": appointment.refs,
                    "meaning": appointment.meaning,
                    "prophetic": appointment.prophetic,
                    "day_cycle": appointment.day_cycle,
                }
                for appointment, position, gregorian in entries
            ],
        }
        return json.dumps(export_data, indent=2)


# Singleton service instance
export_service = CalendarExportService()
