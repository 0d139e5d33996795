from __future__ import annotations

from .app_helpers import client, reset_state, system_headers


def _create(headers, **overrides):
    payload = {"name": "Dr. Patel", "role": "Pediatrician", "phone": "555-0100", **overrides}
    resp = client.post("/api/contact", json=payload, headers=headers)
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


def test_create_and_list_contacts_by_name() -> None:
    reset_state()
    headers = system_headers()
    _create(headers, name="zoe sitter", role="Babysitter", phone="")
    created = _create(headers)

    assert created["phone"] == "555-0100"
    assert created["email"] is None

    rows = client.get("/api/contact", headers=headers).json()["data"]
    assert [row["name"] for row in rows] == ["Dr. Patel", "zoe sitter"]
    assert rows[1]["phone"] is None

    sitters = client.get("/api/contact", params={"role": "Babysitter"}, headers=headers).json()["data"]
    assert [row["name"] for row in sitters] == ["zoe sitter"]


def test_name_and_role_are_required() -> None:
    reset_state()
    resp = client.post("/api/contact", json={"name": "No Role"}, headers=system_headers())
    assert resp.status_code == 422
    assert resp.json()["success"] is False


def test_update_replaces_all_fields() -> None:
    reset_state()
    headers = system_headers()
    contact = _create(headers, email="patel@example.com")

    resp = client.put(
        "/api/contact",
        params={"id": contact["id"]},
        json={"name": "Dr. Patel", "role": "Family doctor"},
        headers=headers,
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["role"] == "Family doctor"
    assert data["email"] is None
    assert data["phone"] is None

    assert client.put("/api/contact", json={"name": "X", "role": "Y"}, headers=headers).status_code == 400


def test_soft_delete_hides_contact() -> None:
    reset_state()
    headers = system_headers()
    contact = _create(headers)

    assert client.delete("/api/contact", params={"id": contact["id"]}, headers=headers).status_code == 200
    assert client.get("/api/contact", headers=headers).json()["data"] == []
    resp = client.get("/api/contact", params={"id": contact["id"]}, headers=headers)
    assert resp.status_code == 404
    assert resp.json()["error"] == "Contact not found"
    assert client.delete("/api/contact", params={"id": contact["id"]}, headers=headers).status_code == 404


def test_contacts_require_a_session() -> None:
    reset_state()
    assert client.get("/api/contact").status_code == 401
