from __future__ import annotations

import pytest

from .app_helpers import (
    caretaker_headers,
    client,
    create_baby,
    create_caretaker,
    create_log,
    reset_state,
    system_headers,
)


@pytest.fixture
def seeded():
    reset_state()
    headers = system_headers()
    baby = create_baby(headers)
    return headers, baby["id"]


def test_sleep_duration_is_derived(seeded) -> None:
    headers, baby_id = seeded
    log = create_log(
        "/api/sleep-log",
        headers,
        {
            "babyId": baby_id,
            "startTime": "2024-06-01T13:00:00Z",
            "endTime": "2024-06-01T14:31:20Z",
            "type": "NAP",
            "quality": "GOOD",
        },
    )
    assert log["duration"] == 91
    assert log["caretakerId"] is None


def test_sleep_update_keeps_start_and_recomputes(seeded) -> None:
    headers, baby_id = seeded
    log = create_log(
        "/api/sleep-log",
        headers,
        {"babyId": baby_id, "startTime": "2024-06-01T20:00:00Z", "type": "NIGHT_SLEEP"},
    )
    assert log["duration"] is None
    assert log["endTime"] is None

    resp = client.put(
        "/api/sleep-log",
        params={"id": log["id"]},
        json={"endTime": "2024-06-02T06:00:00Z"},
        headers=headers,
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["startTime"].startswith("2024-06-01T20:00:00")
    assert data["duration"] == 600
    assert data["type"] == "NIGHT_SLEEP"


def test_update_requires_id_and_existing_row(seeded) -> None:
    headers, _ = seeded
    resp = client.put("/api/sleep-log", json={"location": "Crib"}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Sleep log ID is required"

    resp = client.put("/api/sleep-log", params={"id": "missing"}, json={"location": "Crib"}, headers=headers)
    assert resp.status_code == 404
    assert resp.json()["error"] == "Sleep log not found"


def test_enum_values_are_validated(seeded) -> None:
    headers, baby_id = seeded
    resp = client.post(
        "/api/diaper-log",
        json={"babyId": baby_id, "time": "2024-06-01T10:00:00Z", "type": "DAMP"},
        headers=headers,
    )
    assert resp.status_code == 422

    resp = client.get("/api/diaper-log", params={"babyId": baby_id, "type": "DAMP"}, headers=headers)
    assert resp.status_code == 400


def test_log_for_unknown_baby_is_rejected(seeded) -> None:
    headers, _ = seeded
    resp = client.post(
        "/api/note",
        json={"babyId": "nope", "time": "2024-06-01T10:00:00Z", "content": "Hello"},
        headers=headers,
    )
    assert resp.status_code == 404


def test_feed_filters_and_range(seeded) -> None:
    headers, baby_id = seeded
    for time, feed_type in [
        ("2024-06-01T08:00:00Z", "BOTTLE"),
        ("2024-06-01T11:00:00Z", "BREAST"),
        ("2024-06-02T08:00:00Z", "BOTTLE"),
    ]:
        create_log(
            "/api/feed-log",
            headers,
            {"babyId": baby_id, "time": time, "type": feed_type, "amount": 3, "unitAbbr": "OZ"},
        )

    rows = client.get("/api/feed-log", params={"babyId": baby_id}, headers=headers).json()["data"]
    assert [row["time"][:10] for row in rows] == ["2024-06-02", "2024-06-01", "2024-06-01"]

    rows = client.get(
        "/api/feed-log", params={"babyId": baby_id, "type": "BOTTLE"}, headers=headers
    ).json()["data"]
    assert len(rows) == 2

    rows = client.get(
        "/api/feed-log",
        params={
            "babyId": baby_id,
            "startDate": "2024-06-01T00:00:00Z",
            "endDate": "2024-06-01T23:59:59Z",
        },
        headers=headers,
    ).json()["data"]
    assert [row["type"] for row in rows] == ["BREAST", "BOTTLE"]

    rows = client.get(
        "/api/feed-log",
        params={"babyId": baby_id, "startDate": "2024-06-01T00:00:00Z"},
        headers=headers,
    ).json()["data"]
    assert len(rows) == 3


def test_breast_feed_duration_from_times(seeded) -> None:
    headers, baby_id = seeded
    log = create_log(
        "/api/feed-log",
        headers,
        {
            "babyId": baby_id,
            "time": "2024-06-01T08:00:00Z",
            "startTime": "2024-06-01T08:00:00Z",
            "endTime": "2024-06-01T08:12:30Z",
            "type": "BREAST",
            "side": "LEFT",
        },
    )
    assert log["feedDuration"] == 750
    assert log["side"] == "LEFT"


def test_last_feed(seeded) -> None:
    headers, baby_id = seeded
    resp = client.get("/api/feed-log/last", params={"babyId": baby_id}, headers=headers)
    assert resp.json() == {"success": True, "data": None, "error": None}

    create_log("/api/feed-log", headers, {"babyId": baby_id, "time": "2024-06-01T08:00:00Z", "type": "SOLIDS"})
    create_log("/api/feed-log", headers, {"babyId": baby_id, "time": "2024-06-01T09:00:00Z", "type": "BOTTLE"})

    latest = client.get("/api/feed-log/last", params={"babyId": baby_id}, headers=headers).json()["data"]
    assert latest["type"] == "BOTTLE"
    solids = client.get(
        "/api/feed-log/last", params={"babyId": baby_id, "type": "SOLIDS"}, headers=headers
    ).json()["data"]
    assert solids["time"].startswith("2024-06-01T08:00:00")


def test_soft_deleted_log_disappears(seeded) -> None:
    headers, baby_id = seeded
    log = create_log("/api/diaper-log", headers, {"babyId": baby_id, "time": "2024-06-01T10:00:00Z", "type": "WET"})

    assert client.delete("/api/diaper-log", params={"id": log["id"]}, headers=headers).status_code == 200
    assert client.get("/api/diaper-log", params={"babyId": baby_id}, headers=headers).json()["data"] == []
    assert client.get("/api/diaper-log", params={"id": log["id"]}, headers=headers).status_code == 404


def test_caretaker_is_stamped_on_logs(seeded) -> None:
    headers, baby_id = seeded
    caretaker = create_caretaker(headers, loginId="MK", name="Morgan", securityPin="808080")
    morgan = caretaker_headers("MK", "808080")

    log = create_log("/api/note", morgan, {"babyId": baby_id, "time": "2024-06-01T10:00:00Z", "content": "Giggles"})
    assert log["caretakerId"] == caretaker["id"]
    assert log["caretakerName"] == "Morgan"


def test_pump_totals_and_duration(seeded) -> None:
    headers, baby_id = seeded
    log = create_log(
        "/api/pump-log",
        headers,
        {
            "babyId": baby_id,
            "startTime": "2024-06-01T06:00:00Z",
            "endTime": "2024-06-01T06:20:00Z",
            "leftAmount": 2.5,
            "rightAmount": 3,
            "unitAbbr": "OZ",
        },
    )
    assert log["duration"] == 20
    assert log["totalAmount"] == 5.5

    resp = client.put("/api/pump-log", params={"id": log["id"]}, json={"rightAmount": 4}, headers=headers)
    assert resp.json()["data"]["totalAmount"] == 6.5


def test_pump_explicit_total_survives_unrelated_update(seeded) -> None:
    headers, baby_id = seeded
    log = create_log(
        "/api/pump-log",
        headers,
        {
            "babyId": baby_id,
            "startTime": "2024-06-01T06:00:00Z",
            "leftAmount": 2,
            "rightAmount": 3,
            "totalAmount": 4,
        },
    )
    assert log["totalAmount"] == 4

    resp = client.put("/api/pump-log", params={"id": log["id"]}, json={"notes": "x"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["totalAmount"] == 4
    assert resp.json()["data"]["notes"] == "x"


def test_bath_flags_round_trip_as_booleans(seeded) -> None:
    headers, baby_id = seeded
    log = create_log(
        "/api/bath-log",
        headers,
        {"babyId": baby_id, "time": "2024-06-01T19:00:00Z", "soapUsed": True},
    )
    assert log["soapUsed"] is True
    assert log["shampooUsed"] is False


def test_mood_intensity_bounds(seeded) -> None:
    headers, baby_id = seeded
    resp = client.post(
        "/api/mood-log",
        json={"babyId": baby_id, "time": "2024-06-01T10:00:00Z", "mood": "HAPPY", "intensity": 9},
        headers=headers,
    )
    assert resp.status_code == 422
    log = create_log(
        "/api/mood-log",
        headers,
        {"babyId": baby_id, "time": "2024-06-01T10:00:00Z", "mood": "FUSSY", "intensity": 3},
    )
    rows = client.get("/api/mood-log", params={"babyId": baby_id, "mood": "FUSSY"}, headers=headers).json()["data"]
    assert [row["id"] for row in rows] == [log["id"]]


def test_play_milestone_and_measurement(seeded) -> None:
    headers, baby_id = seeded
    play = create_log(
        "/api/play-log",
        headers,
        {
            "babyId": baby_id,
            "startTime": "2024-06-01T10:00:00Z",
            "endTime": "2024-06-01T10:15:00Z",
            "type": "TUMMY_TIME",
        },
    )
    assert play["duration"] == 15

    milestone = create_log(
        "/api/milestone-log",
        headers,
        {"babyId": baby_id, "date": "2024-06-01T00:00:00Z", "title": "First smile", "category": "SOCIAL"},
    )
    assert milestone["category"] == "SOCIAL"
    rows = client.get(
        "/api/milestone-log", params={"babyId": baby_id, "category": "MOTOR"}, headers=headers
    ).json()["data"]
    assert rows == []

    measurement = create_log(
        "/api/measurement-log",
        headers,
        {"babyId": baby_id, "date": "2024-06-01T00:00:00Z", "type": "WEIGHT", "value": 12.4, "unit": "LB"},
    )
    assert measurement["value"] == 12.4
    resp = client.put(
        "/api/measurement-log", params={"id": measurement["id"]}, json={"value": 12.6}, headers=headers
    )
    assert resp.json()["data"]["value"] == 12.6
    assert resp.json()["data"]["type"] == "WEIGHT"
