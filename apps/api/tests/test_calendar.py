from __future__ import annotations

from typing import Any, Dict

import pytest

from .app_helpers import client, create_baby, create_caretaker, reset_state, system_headers


def _event(headers: Dict[str, str], **overrides: Any) -> dict:
    payload = {
        "title": "Checkup",
        "startTime": "2099-03-01T15:00:00Z",
        "endTime": "2099-03-01T15:30:00Z",
        "allDay": False,
        "type": "APPOINTMENT",
        **overrides,
    }
    resp = client.post("/api/calendar-event", json=payload, headers=headers)
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


@pytest.fixture
def family():
    reset_state()
    headers = system_headers()
    baby = create_baby(headers)
    caretaker = create_caretaker(headers, loginId="CL", name="Casey")
    contact = client.post(
        "/api/contact", json={"name": "Dr. Lee", "role": "Pediatrician"}, headers=headers
    ).json()["data"]
    return headers, baby, caretaker, contact


def test_create_event_with_links(family) -> None:
    headers, baby, caretaker, contact = family
    event = _event(
        headers,
        babyIds=[baby["id"], baby["id"]],
        caretakerIds=[caretaker["id"]],
        contactIds=[contact["id"]],
        reminderTime=30,
    )

    assert event["notificationSent"] is False
    assert event["recurring"] is False
    assert event["reminderTime"] == 30
    assert event["babies"] == [{"id": baby["id"], "firstName": "June", "lastName": "Rivera"}]
    assert event["caretakers"] == [{"id": caretaker["id"], "name": "Casey", "type": None}]
    assert event["contacts"][0]["name"] == "Dr. Lee"
    assert event["startTime"].startswith("2099-03-01T15:00:00")


def test_missing_fields_and_unknown_links_are_rejected(family) -> None:
    headers, *_ = family
    resp = client.post(
        "/api/calendar-event",
        json={"title": "No type", "startTime": "2099-03-01T15:00:00Z", "allDay": True},
        headers=headers,
    )
    assert resp.status_code == 422

    resp = client.post(
        "/api/calendar-event",
        json={
            "title": "Ghost",
            "startTime": "2099-03-01T15:00:00Z",
            "allDay": True,
            "type": "REMINDER",
            "babyIds": ["missing"],
        },
        headers=headers,
    )
    assert resp.status_code == 404
    assert resp.json()["error"] == "Baby not found"
    assert client.get("/api/calendar-event", headers=headers).json()["data"] == []


def test_list_filters(family) -> None:
    headers, baby, caretaker, contact = family
    _event(headers, title="Late", startTime="2099-03-05T09:00:00Z", babyIds=[baby["id"]])
    _event(
        headers,
        title="Shift",
        type="CARETAKER_SCHEDULE",
        startTime="2099-03-02T08:00:00Z",
        caretakerIds=[caretaker["id"]],
        recurring=True,
        recurrencePattern="WEEKLY",
    )
    _event(headers, title="Call", type="REMINDER", startTime="2099-02-01T08:00:00Z", contactIds=[contact["id"]])

    def titles(**params):
        resp = client.get("/api/calendar-event", params=params, headers=headers)
        assert resp.status_code == 200, resp.text
        return [row["title"] for row in resp.json()["data"]]

    assert titles() == ["Call", "Shift", "Late"]
    assert titles(babyId=baby["id"]) == ["Late"]
    assert titles(caretakerId=caretaker["id"]) == ["Shift"]
    assert titles(contactId=contact["id"]) == ["Call"]
    assert titles(type="REMINDER") == ["Call"]
    assert titles(recurring="true") == ["Shift"]
    assert titles(startDate="2099-03-01T00:00:00Z", endDate="2099-03-31T23:59:59Z") == ["Shift", "Late"]
    assert titles(startDate="2099-03-01T00:00:00Z") == ["Call", "Shift", "Late"]

    resp = client.get("/api/calendar-event", params={"type": "PARTY"}, headers=headers)
    assert resp.status_code == 400


def test_update_replaces_event_and_links(family) -> None:
    headers, baby, caretaker, contact = family
    event = _event(headers, babyIds=[baby["id"]], contactIds=[contact["id"]], location="Clinic")

    resp = client.put(
        "/api/calendar-event",
        params={"id": event["id"]},
        json={
            "title": "Checkup moved",
            "startTime": "2099-03-03T10:00:00Z",
            "allDay": True,
            "type": "APPOINTMENT",
            "caretakerIds": [caretaker["id"]],
        },
        headers=headers,
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["title"] == "Checkup moved"
    assert data["allDay"] is True
    assert data["location"] is None
    assert data["endTime"] is None
    assert data["babies"] == []
    assert data["contacts"] == []
    assert [row["id"] for row in data["caretakers"]] == [caretaker["id"]]

    resp = client.put(
        "/api/calendar-event",
        params={"id": event["id"]},
        json={"title": "Bad", "startTime": "2099-03-03T10:00:00Z", "allDay": True, "type": "APPOINTMENT",
              "contactIds": ["missing"]},
        headers=headers,
    )
    assert resp.status_code == 404
    kept = client.get("/api/calendar-event", params={"id": event["id"]}, headers=headers).json()["data"]
    assert kept["title"] == "Checkup moved"
    assert [row["id"] for row in kept["caretakers"]] == [caretaker["id"]]


def test_delete_event(family) -> None:
    headers, *_ = family
    event = _event(headers)
    assert client.delete("/api/calendar-event", headers=headers).status_code == 400
    assert client.delete("/api/calendar-event", params={"id": event["id"]}, headers=headers).status_code == 200
    resp = client.get("/api/calendar-event", params={"id": event["id"]}, headers=headers)
    assert resp.status_code == 404
    assert resp.json()["error"] == "Calendar event not found"


def test_upcoming_events_for_baby(family) -> None:
    headers, baby, _, _ = family
    _event(headers, title="Past", startTime="2020-01-01T10:00:00Z", babyIds=[baby["id"]])
    for day in range(1, 8):
        _event(headers, title=f"Visit {day}", startTime=f"2099-04-0{day}T10:00:00Z", babyIds=[baby["id"]])
    _event(headers, title="Other baby", startTime="2099-01-01T10:00:00Z")

    resp = client.get("/api/baby-upcoming-events", params={"babyId": baby["id"]}, headers=headers)
    assert resp.status_code == 200
    assert [row["title"] for row in resp.json()["data"]] == [f"Visit {day}" for day in range(1, 6)]

    resp = client.get("/api/baby-upcoming-events", params={"babyId": baby["id"], "limit": 2}, headers=headers)
    assert len(resp.json()["data"]) == 2

    assert client.get("/api/baby-upcoming-events", headers=headers).status_code == 400
