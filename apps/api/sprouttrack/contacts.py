"""Family contacts: doctors, sitters and anyone else linked to calendar events."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import Field, field_validator

from .db import get_connection
from .errors import NotFoundError
from .schemas import CamelModel
from .timeutils import now_db

logger = logging.getLogger(__name__)

CONTACT_COLUMNS = ("name", "role", "phone", "email", "address", "notes")


class ContactPayload(CamelModel):
    name: str = Field(..., min_length=1)
    role: str = Field(..., min_length=1)
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("phone", "email", "address", "notes")
    @classmethod
    def blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None


class Contact(CamelModel):
    id: str
    name: str
    role: str
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None


def _row_to_dict(row: Any) -> dict:
    return {key: row[key] for key in row.keys()}


def create_contact(values: Dict[str, Any]) -> dict:
    contact_id = str(uuid4())
    now = now_db()
    with get_connection() as conn:
        conn.execute(
            """
            INSERT INTO contacts (id, name, role, phone, email, address, notes, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (contact_id, *(values.get(column) for column in CONTACT_COLUMNS), now, now),
        )
        conn.commit()
    logger.info("contact created", extra={"contact_id": contact_id})
    return get_contact(contact_id)


def get_contact(contact_id: str) -> dict:
    with get_connection() as conn:
        row = conn.execute(
            "SELECT * FROM contacts WHERE id = ? AND deleted_at IS NULL", (contact_id,)
        ).fetchone()
    if row is None:
        raise NotFoundError("Contact not found")
    return _row_to_dict(row)


def list_contacts(*, role: Optional[str] = None) -> List[dict]:
    query = "SELECT * FROM contacts WHERE deleted_at IS NULL"
    params: List[Any] = []
    if role:
        query += " AND role = ?"
        params.append(role)
    query += " ORDER BY name COLLATE NOCASE"
    with get_connection() as conn:
        rows = conn.execute(query, params).fetchall()
    return [_row_to_dict(row) for row in rows]


def replace_contact(contact_id: str, values: Dict[str, Any]) -> dict:
    """Overwrite every editable column; omitted optional fields are cleared."""
    get_contact(contact_id)
    assignments = ", ".join(f"{column} = ?" for column in CONTACT_COLUMNS)
    with get_connection() as conn:
        conn.execute(
            f"UPDATE contacts SET {assignments}, updated_at = ? WHERE id = ?",
            (*(values.get(column) for column in CONTACT_COLUMNS), now_db(), contact_id),
        )
        conn.commit()
    return get_contact(contact_id)


def soft_delete_contact(contact_id: str) -> None:
    get_contact(contact_id)
    now = now_db()
    with get_connection() as conn:
        conn.execute(
            "UPDATE contacts SET deleted_at = ?, updated_at = ? WHERE id = ?",
            (now, now, contact_id),
        )
        conn.commit()
    logger.info("contact deleted", extra={"contact_id": contact_id})
