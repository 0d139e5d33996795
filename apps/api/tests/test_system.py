from __future__ import annotations

import pytest

from sprouttrack.config import CONFIG

from .app_helpers import client, reset_state


def test_units_are_seeded() -> None:
    reset_state()
    units = client.get("/api/units").json()["data"]
    abbreviations = {unit["unitAbbr"] for unit in units}
    assert {"OZ", "ML", "TBSP", "LB", "IN", "CM", "G", "KG", "F", "C"} <= abbreviations
    names = [unit["unitName"] for unit in units]
    assert names == sorted(names)


def test_system_timezone_prefers_tz_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TZ", "America/Chicago")
    data = client.get("/api/system-timezone").json()["data"]
    assert data["systemTimezone"] == "America/Chicago"
    assert data["currentTime"].endswith("Z")

    data = client.get("/api/timezone").json()["data"]
    assert data["timezone"] == "America/Chicago"


def test_convert_local_time_to_utc() -> None:
    resp = client.post("/api/timezone", json={"date": "2024-01-15T08:30", "timezone": "America/New_York"})
    assert resp.json()["data"] == {"utcDate": "2024-01-15T13:30:00.000Z"}

    resp = client.post("/api/timezone", json={"date": "yesterday", "timezone": "UTC"})
    assert resp.status_code == 400


def test_changelog() -> None:
    path = CONFIG.resolved_changelog_path
    path.write_text("# Changelog\n\n## 0.9.0\n- Pump logs\n", encoding="utf-8")
    resp = client.get("/api/changelog")
    assert resp.json()["data"]["content"].startswith("# Changelog")

    path.unlink()
    resp = client.get("/api/changelog")
    assert resp.status_code == 404
    assert resp.json()["error"] == "Changelog file not found"


def test_health() -> None:
    assert client.get("/health").json() == {"status": "ok"}
