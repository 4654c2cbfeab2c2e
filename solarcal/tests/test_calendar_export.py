"""Tests for ICS / JSON export of appointed times."""

import json
from datetime import date, datetime, timezone

import pytest
from ics import Calendar

from solarcal.core.errors import ValidationError
from solarcal.features.calendar.export import CalendarExportService, export_service

GENERATED_AT = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _events_by_uid(content):
    return {ev.uid: ev for ev in Calendar(content).events}


class TestIcsExport:
    def test_calendar_envelope(self, anchor):
        result = export_service.export_year(0, anchor, "ics", generated_at=GENERATED_AT)

        assert result.content.startswith("BEGIN:VCALENDAR")
        assert result.content.rstrip().endswith("END:VCALENDAR")
        assert len(Calendar(result.content).events) == 15
        assert result.filename == "solar-calendar-0.ics"
        assert result.content_type == "text/calendar"
        assert result.anchor_id == "preset-2020"

    def test_events_placed_on_anchor_dates(self, anchor):
        events = _events_by_uid(export_service.export_year(0, anchor, "ics", generated_at=GENERATED_AT).content)

        passover = events["0000-01-14-preset-2020@solar-calendar"]
        assert passover.name == "Passover (Pesach)"
        assert passover.begin.date() == date(2020, 1, 14)
        assert passover.all_day
        # Month 7 day 1 is 168 days after the anchor
        assert events["0000-07-01-preset-2020@solar-calendar"].begin.date() == date(2020, 6, 17)

    def test_description_carries_prophetic_meaning(self, anchor):
        events = _events_by_uid(export_service.export_year(0, anchor, "ics").content)

        assert events["0000-01-14-preset-2020@solar-calendar"].description == (
            "The Lamb is slain. Yahusha crucified. (Exodus 12:6)"
        )
        assert events["0000-07-10-preset-2020@solar-calendar"].description == (
            "Final judgment. Cleansing of the people. Afflict your soul; complete rest. (Lev 23:26-32)"
        )
        # Sukkot day 6 has no prophetic line
        assert events["0000-07-20-preset-2020@solar-calendar"].description == (
            "Preparation for completion. (Lev 23:34, 39-43)"
        )

    def test_text_is_escaped(self, anchor):
        content = export_service.export_year(0, anchor, "ics", generated_at=GENERATED_AT).content
        assert "23:34\\, 39-43" in content

    def test_custom_prodid(self, anchor):
        service = CalendarExportService(prodid="-//Test//EN")
        content = service.export_year(0, anchor, "ics").content
        assert "PRODID:-//Test//EN" in content

    def test_plain_date_anchor(self):
        result = export_service.export_year(0, date(2024, 3, 20), "ics")
        assert result.anchor_id == "default"
        events = _events_by_uid(result.content)
        assert events["0000-01-14-default@solar-calendar"].begin.date() == date(2024, 4, 2)


class TestJsonExport:
    def test_json_structure(self, anchor):
        result = export_service.export_year(1, anchor, "json", generated_at=GENERATED_AT)
        data = json.loads(result.content)

        assert result.filename == "solar-calendar-1.json"
        assert result.content_type == "application/json"
        assert data["year"] == 1
        assert data["anchor_id"] == "preset-2020"
        assert data["anchor_start_date"] == "2020-01-01"
        assert data["generated_at"] == "2024-01-01T00:00:00+00:00"
        assert len(data["appointments"]) == 15

        first = data["appointments"][0]
        assert first["identifier"] == "0001-01-14"
        assert first["gregorian_date"] == "2021-01-12"
        assert first["kind"] == "moedim"
        assert first["prophetic"] == "Yahusha crucified."
        assert first["day_cycle"] == "Sunrise → Sunrise"

    def test_same_year_differs_per_anchor(self, anchor):
        first = json.loads(export_service.export_year(0, anchor, "json").content)
        second = json.loads(export_service.export_year(0, date(2024, 3, 20), "json").content)

        assert [a["identifier"] for a in first["appointments"]] == [a["identifier"] for a in second["appointments"]]
        assert first["appointments"][0]["gregorian_date"] != second["appointments"][0]["gregorian_date"]


def test_unknown_format_rejected(anchor):
    with pytest.raises(ValidationError):
        export_service.export_year(0, anchor, "pdf")
