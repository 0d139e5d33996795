from __future__ import annotations

import time

import pytest

from sprouttrack.auth import LOCKOUTS, create_token

from .app_helpers import (
    SYSTEM_PIN,
    bearer,
    caretaker_headers,
    client,
    create_caretaker,
    login,
    reset_state,
    system_headers,
)


def test_system_pin_login_when_no_caretakers() -> None:
    reset_state()
    resp = login(SYSTEM_PIN)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["id"] == "system"
    assert data["role"] == "ADMIN"
    assert data["token"]
    assert "authToken" in resp.cookies


def test_wrong_pin_is_rejected() -> None:
    reset_state()
    resp = login("999999")
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "error": "Invalid credentials"}


def test_missing_pin_is_rejected() -> None:
    reset_state()
    resp = login("")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Security PIN is required"


def test_system_pin_stops_working_once_caretakers_exist() -> None:
    reset_state()
    headers = system_headers()
    create_caretaker(headers, loginId="JD", securityPin="246810")

    assert login(SYSTEM_PIN).status_code == 401
    resp = login("246810", "JD")
    assert resp.status_code == 200
    assert resp.json()["data"]["name"] == "Alex"
    assert login("246810", "XX").status_code == 401


def test_inactive_caretaker_cannot_log_in() -> None:
    reset_state()
    headers = system_headers()
    create_caretaker(headers, loginId="IN", securityPin="135790", inactive=True)
    assert login("135790", "IN").status_code == 401


def test_caretaker_exists_flag() -> None:
    reset_state()
    assert client.get("/api/auth/caretaker-exists").json()["data"] == {"exists": False}
    create_caretaker(system_headers())
    assert client.get("/api/auth/caretaker-exists").json()["data"] == {"exists": True}


def test_three_failures_lock_the_ip(monkeypatch: pytest.MonkeyPatch) -> None:
    reset_state()
    clock = [1_000_000.0]
    monkeypatch.setattr(LOCKOUTS, "clock", lambda: clock[0])
    ip_headers = {"X-Forwarded-For": "203.0.113.9"}

    for _ in range(3):
        assert login("000000", headers=ip_headers).status_code == 401

    resp = login(SYSTEM_PIN, headers=ip_headers)
    assert resp.status_code == 429
    assert "Too many failed attempts" in resp.json()["error"]

    status = client.get("/api/auth/ip-lockout", headers=ip_headers).json()["data"]
    assert status["locked"] is True
    assert status["remainingTime"] == 300_000

    other = client.get("/api/auth/ip-lockout", headers={"X-Forwarded-For": "198.51.100.1"}).json()["data"]
    assert other["locked"] is False

    clock[0] += 301
    assert login(SYSTEM_PIN, headers=ip_headers).status_code == 200


def test_failures_during_lockout_do_not_extend_it(monkeypatch: pytest.MonkeyPatch) -> None:
    reset_state()
    clock = [2_000_000.0]
    monkeypatch.setattr(LOCKOUTS, "clock", lambda: clock[0])
    ip_headers = {"X-Forwarded-For": "203.0.113.77"}

    for _ in range(3):
        client.post("/api/auth/ip-lockout", headers=ip_headers)
    clock[0] += 200

    status = client.post("/api/auth/ip-lockout", headers=ip_headers).json()["data"]
    assert status == {"locked": True, "remainingTime": 100_000}

    clock[0] += 101
    status = client.post("/api/auth/ip-lockout", headers=ip_headers).json()["data"]
    assert status == {"locked": False, "remainingTime": 0}


def test_success_clears_failed_attempts(monkeypatch: pytest.MonkeyPatch) -> None:
    reset_state()
    ip_headers = {"X-Real-IP": "192.0.2.44"}
    login("000000", headers=ip_headers)
    login("000000", headers=ip_headers)
    assert login(SYSTEM_PIN, headers=ip_headers).status_code == 200
    login("000000", headers=ip_headers)
    assert client.get("/api/auth/ip-lockout", headers=ip_headers).json()["data"]["locked"] is False


def test_lockout_endpoints_record_and_reset() -> None:
    reset_state()
    ip_headers = {"X-Forwarded-For": "203.0.113.50, 10.0.0.1"}
    for _ in range(3):
        resp = client.post("/api/auth/ip-lockout", headers=ip_headers)
    assert resp.json()["data"]["locked"] is True

    resp = client.delete("/api/auth/ip-lockout", headers=ip_headers)
    assert resp.json()["data"] == {"locked": False, "remainingTime": 0}
    assert client.get("/api/auth/ip-lockout", headers=ip_headers).json()["data"]["locked"] is False


def test_protected_routes_require_a_token() -> None:
    reset_state()
    resp = client.get("/api/baby")
    assert resp.status_code == 401
    assert resp.json()["success"] is False

    resp = client.get("/api/baby", headers={"Authorization": "Token abc"})
    assert resp.status_code == 401

    resp = client.get("/api/baby", headers=bearer("not-a-jwt"))
    assert resp.status_code == 401


def test_cookie_authenticates_requests() -> None:
    reset_state()
    assert login(SYSTEM_PIN).status_code == 200
    assert client.get("/api/baby").status_code == 200
    client.cookies.clear()
    assert client.get("/api/baby").status_code == 401


def test_expired_token_is_rejected() -> None:
    reset_state()
    issued = create_token("system", "System Administrator", "ADMIN", now=time.time() - 4000)
    resp = client.get("/api/baby", headers=bearer(issued["token"]))
    assert resp.status_code == 401
    assert "expired" in resp.json()["error"].lower()


def test_logout_revokes_token() -> None:
    reset_state()
    headers = system_headers()
    assert client.post("/api/auth/logout", headers=headers).status_code == 200
    assert client.get("/api/baby", headers=headers).status_code == 401


def test_session_reports_remaining_lifetime() -> None:
    reset_state()
    headers = system_headers()
    resp = client.get("/api/auth/session", headers=headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["caretakerId"] == "system"
    assert 0 < data["secondsRemaining"] <= 1800
    assert data["claims"]["role"] == "ADMIN"


def test_non_admin_cannot_manage_caretakers() -> None:
    reset_state()
    admin = system_headers()
    create_caretaker(admin, loginId="US", securityPin="112233", role="USER")
    user = caretaker_headers("US", "112233")

    resp = client.post(
        "/api/caretaker",
        json={"loginId": "ZZ", "name": "Zed", "securityPin": "123456"},
        headers=user,
    )
    assert resp.status_code == 403
    assert client.get("/api/caretaker", headers=user).status_code == 200


def test_token_stops_working_when_caretaker_is_removed() -> None:
    reset_state()
    admin = system_headers()
    first = create_caretaker(admin, loginId="RM", securityPin="246810")
    second = create_caretaker(admin, loginId="DA", securityPin="135791")
    removed = caretaker_headers("RM", "246810")
    paused = caretaker_headers("DA", "135791")
    assert client.get("/api/baby", headers=removed).status_code == 200

    assert client.delete("/api/caretaker", params={"id": first["id"]}, headers=admin).status_code == 200
    resp = client.get("/api/baby", headers=removed)
    assert resp.status_code == 401
    assert resp.json()["error"] == "Session is no longer valid. Please log in again."

    client.put("/api/caretaker", json={"id": second["id"], "inactive": True}, headers=admin)
    assert client.get("/api/baby", headers=paused).status_code == 401
