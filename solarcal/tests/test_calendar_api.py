"""Tests for the calendar HTTP endpoints.

The default anchor is pinned to 2024-03-20 by the test settings.
"""

import json
from datetime import date

from ics import Calendar

from solarcal.features.calendar.identifiers import is_identifier


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_readyz_in_memory(client):
    resp = client.get("/readyz")
    assert resp.status_code == 200
    assert resp.json()["store"] == "memory"


class TestPosition:
    def test_anchor_day(self, client):
        resp = client.get("/v1/calendar/position", params={"date": "2024-03-20"})
        assert resp.status_code == 200
        data = resp.json()["data"]

        assert data["identifier"] == "0000-01-01"
        assert data["anchor"]["id"] == "default"
        assert data["day"]["position"] == {"year": 0, "month": 1, "day": 1, "day_of_year": 1}
        assert data["day"]["flags"] == ["month_start"]
        assert data["day"]["weekday_name"] == "Yom Rishon"

    def test_day_before_anchor(self, client):
        data = client.get("/v1/calendar/position", params={"date": "2024-03-19"}).json()["data"]
        assert data["identifier"] == "-9999-13-28"

    def test_invalid_date(self, client):
        resp = client.get("/v1/calendar/position", params={"date": "2023-02-29"})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "invalid_date"

    def test_unknown_preset_id(self, client):
        resp = client.get("/v1/calendar/position", params={"date": "2024-03-20", "preset_id": "missing"})
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"

    def test_today(self, client):
        resp = client.get("/v1/calendar/today")
        assert resp.status_code == 200
        assert is_identifier(resp.json()["data"]["identifier"])


class TestGregorian:
    def test_identifier_to_gregorian(self, client):
        data = client.get("/v1/calendar/gregorian/0000-01-14").json()["data"]
        assert data["gregorian_date"] == "2024-04-02"
        assert data["position"]["day_of_year"] == 14

    def test_negative_identifier(self, client):
        data = client.get("/v1/calendar/gregorian/-9999-13-28").json()["data"]
        assert data["gregorian_date"] == "2024-03-19"

    def test_malformed_identifier(self, client):
        resp = client.get("/v1/calendar/gregorian/0001-1-01")
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "malformed_identifier"


class TestGrids:
    def test_month_grid(self, client):
        resp = client.get("/v1/calendar/years/0/months/1")
        assert resp.status_code == 200
        body = resp.json()

        assert body["data"]["month_name"] == "Aviv"
        assert len(body["data"]["days"]) == 28
        assert body["data"]["anchor_id"] == "default"
        assert body["revision"] == 0

    def test_month_out_of_range(self, client):
        resp = client.get("/v1/calendar/years/0/months/14")
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "invalid_date"

    def test_year_grid(self, client):
        data = client.get("/v1/calendar/years/-1").json()["data"]

        assert len(data["months"]) == 13
        assert data["months"][-1]["days"][-1]["identifier"] == "-9999-13-28"
        assert data["anchor_start_date"] == "2024-03-20"


class TestExport:
    def test_ics_export(self, client):
        data = client.get("/v1/calendar/years/0/export").json()["data"]

        assert data["filename"] == "solar-calendar-0.ics"
        assert data["content_type"] == "text/calendar"
        begins = {ev.begin.date() for ev in Calendar(data["content"]).events}
        assert date(2024, 4, 2) in begins

    def test_json_export(self, client):
        data = client.get("/v1/calendar/years/0/export", params={"format": "json"}).json()["data"]
        content = json.loads(data["content"])

        assert data["filename"] == "solar-calendar-0.json"
        assert content["anchor_id"] == "default"
        assert len(content["appointments"]) == 15

    def test_unknown_format(self, client):
        resp = client.get("/v1/calendar/years/0/export", params={"format": "pdf"})
        assert resp.status_code == 422


class TestSearch:
    def test_date_query(self, client):
        data = client.get("/v1/calendar/search", params={"q": "m1d15", "year": 0}).json()["data"]

        assert data["query"]["kind"] == "date"
        assert data["query"]["label"] == "Month 1, Day 15"
        assert [d["identifier"] for d in data["days"]] == ["0000-01-15"]
        assert data["days"][0]["gregorian_date"] == "2024-04-03"

    def test_day_query_defaults_to_current_year(self, client):
        data = client.get("/v1/calendar/search", params={"q": "d4"}).json()["data"]

        assert len(data["days"]) == 13
        assert all(d["position"]["year"] == data["year"] for d in data["days"])

    def test_unparseable_query(self, client):
        resp = client.get("/v1/calendar/search", params={"q": "zzz"})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "validation_error"


def test_calendar_follows_active_preset(client):
    created = client.post("/v1/presets", json={"name": "New Year 2020", "start_date": "2020-01-01"})
    preset_id = created.json()["data"]["id"]

    data = client.get("/v1/calendar/position", params={"date": "2020-01-01"}).json()["data"]
    assert data["identifier"] == "0000-01-01"
    assert data["anchor"]["id"] == preset_id

    # Explicit preset_id overrides the active anchor
    data = client.get(
        "/v1/calendar/position", params={"date": "2024-03-20", "preset_id": "default"}
    ).json()["data"]
    assert data["identifier"] == "0000-01-01"


class TestMonthInfo:
    def test_month_with_appointments(self, client):
        data = client.get("/v1/calendar/months/7/info").json()["data"]

        assert data["month"] == 7
        assert data["name"].startswith("Ethanim")
        assert [a["day"] for a in data["appointments"]] == [1, 10, 15, 16, 17, 18, 19, 20, 21, 22]
        assert data["appointments"][1]["day_cycle"] == "Evening → Evening"

    def test_thirteenth_month(self, client):
        data = client.get("/v1/calendar/months/13/info").json()["data"]

        assert data["name"] == "The Thirteenth Month"
        assert data["appointments"] == []

    def test_month_out_of_range(self, client):
        resp = client.get("/v1/calendar/months/14/info")
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "invalid_date"
