"""Calendar events and their links to babies, caretakers and contacts."""
from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import Field

from .contacts import Contact
from .db import get_connection
from .errors import NotFoundError
from .schemas import CalendarEventType, CamelModel, RecurrencePattern
from .timeutils import now_db, to_db

logger = logging.getLogger(__name__)

DEFAULT_UPCOMING_LIMIT = 5

EVENT_COLUMNS = (
    "title",
    "description",
    "start_time",
    "end_time",
    "all_day",
    "type",
    "location",
    "color",
    "recurring",
    "recurrence_pattern",
    "recurrence_end",
    "custom_recurrence",
    "reminder_time",
)
_DATE_COLUMNS = ("start_time", "end_time", "recurrence_end")
_BOOL_COLUMNS = ("all_day", "recurring", "notification_sent")

# link table, link column, target table, label for missing targets
_LINKS = (
    ("baby_events", "baby_id", "babies", "Baby"),
    ("caretaker_events", "caretaker_id", "caretakers", "Caretaker"),
    ("contact_events", "contact_id", "contacts", "Contact"),
)


class CalendarEventPayload(CamelModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    all_day: bool
    type: CalendarEventType
    location: Optional[str] = None
    color: Optional[str] = None
    recurring: bool = False
    recurrence_pattern: Optional[RecurrencePattern] = None
    recurrence_end: Optional[datetime] = None
    custom_recurrence: Optional[str] = None
    reminder_time: Optional[int] = Field(default=None, ge=0, description="Minutes before the start")
    baby_ids: List[str] = Field(default_factory=list)
    caretaker_ids: List[str] = Field(default_factory=list)
    contact_ids: List[str] = Field(default_factory=list)


class EventBaby(CamelModel):
    id: str
    first_name: str
    last_name: str


class EventCaretaker(CamelModel):
    id: str
    name: str
    type: Optional[str] = None


class CalendarEvent(CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    all_day: bool
    type: CalendarEventType
    location: Optional[str] = None
    color: Optional[str] = None
    recurring: bool
    recurrence_pattern: Optional[RecurrencePattern] = None
    recurrence_end: Optional[datetime] = None
    custom_recurrence: Optional[str] = None
    reminder_time: Optional[int] = None
    notification_sent: bool = False
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None
    babies: List[EventBaby] = Field(default_factory=list)
    caretakers: List[EventCaretaker] = Field(default_factory=list)
    contacts: List[Contact] = Field(default_factory=list)


def _to_storage(values: Dict[str, Any]) -> Dict[str, Any]:
    stored: Dict[str, Any] = {}
    for column in EVENT_COLUMNS:
        value = values.get(column)
        if value is not None:
            value = getattr(value, "value", value)
            if column in _DATE_COLUMNS:
                value = to_db(value)
            elif column in _BOOL_COLUMNS:
                value = int(bool(value))
        elif column in _BOOL_COLUMNS:
            value = 0
        stored[column] = value
    return stored


def _event_row(conn: sqlite3.Connection, row: sqlite3.Row) -> dict:
    event = {key: row[key] for key in row.keys()}
    for column in _BOOL_COLUMNS:
        event[column] = bool(event.get(column))
    event["babies"] = [
        dict(linked)
        for linked in conn.execute(
            """
            SELECT b.id, b.first_name, b.last_name FROM baby_events be
            JOIN babies b ON b.id = be.baby_id
            WHERE be.event_id = ? AND b.deleted_at IS NULL
            ORDER BY b.first_name
            """,
            (event["id"],),
        ).fetchall()
    ]
    event["caretakers"] = [
        dict(linked)
        for linked in conn.execute(
            """
            SELECT c.id, c.name, c.type FROM caretaker_events ce
            JOIN caretakers c ON c.id = ce.caretaker_id
            WHERE ce.event_id = ? AND c.deleted_at IS NULL
            ORDER BY c.name COLLATE NOCASE
            """,
            (event["id"],),
        ).fetchall()
    ]
    event["contacts"] = [
        dict(linked)
        for linked in conn.execute(
            """
            SELECT c.* FROM contact_events ce
            JOIN contacts c ON c.id = ce.contact_id
            WHERE ce.event_id = ? AND c.deleted_at IS NULL
            ORDER BY c.name COLLATE NOCASE
            """,
            (event["id"],),
        ).fetchall()
    ]
    return event


def _write_links(conn: sqlite3.Connection, event_id: str, values: Dict[str, Any]) -> None:
    for link_table, column, target, label in _LINKS:
        conn.execute(f"DELETE FROM {link_table} WHERE event_id = ?", (event_id,))
        for target_id in dict.fromkeys(values.get(f"{column}s") or []):
            found = conn.execute(
                f"SELECT id FROM {target} WHERE id = ? AND deleted_at IS NULL", (target_id,)
            ).fetchone()
            if found is None:
                raise NotFoundError(f"{label} not found")
            conn.execute(
                f"INSERT INTO {link_table} (event_id, {column}) VALUES (?, ?)",
                (event_id, target_id),
            )


def create_event(values: Dict[str, Any]) -> dict:
    stored = _to_storage(values)
    event_id = str(uuid4())
    now = now_db()
    columns = ["id", *stored.keys(), "notification_sent", "created_at", "updated_at"]
    with get_connection() as conn:
        conn.execute(
            f"INSERT INTO calendar_events ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)})",
            (event_id, *stored.values(), 0, now, now),
        )
        try:
            _write_links(conn, event_id, values)
        except NotFoundError:
            conn.rollback()
            raise
        conn.commit()
    logger.info("calendar event created", extra={"event_id": event_id, "type": stored["type"]})
    return get_event(event_id)


def get_event(event_id: str) -> dict:
    with get_connection() as conn:
        row = conn.execute(
            "SELECT * FROM calendar_events WHERE id = ? AND deleted_at IS NULL", (event_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError("Calendar event not found")
        return _event_row(conn, row)


def replace_event(event_id: str, values: Dict[str, Any]) -> dict:
    """Overwrite the event and swap its links in one transaction."""
    get_event(event_id)
    stored = _to_storage(values)
    assignments = ", ".join(f"{column} = ?" for column in stored)
    with get_connection() as conn:
        conn.execute(
            f"UPDATE calendar_events SET {assignments}, updated_at = ? WHERE id = ?",
            (*stored.values(), now_db(), event_id),
        )
        try:
            _write_links(conn, event_id, values)
        except NotFoundError:
            conn.rollback()
            raise
        conn.commit()
    return get_event(event_id)


def soft_delete_event(event_id: str) -> None:
    get_event(event_id)
    now = now_db()
    with get_connection() as conn:
        conn.execute(
            "UPDATE calendar_events SET deleted_at = ?, updated_at = ? WHERE id = ?",
            (now, now, event_id),
        )
        conn.commit()
    logger.info("calendar event deleted", extra={"event_id": event_id})


def list_events(
    *,
    baby_id: Optional[str] = None,
    caretaker_id: Optional[str] = None,
    contact_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    event_type: Optional[str] = None,
    recurring: Optional[bool] = None,
    limit: Optional[int] = None,
) -> List[dict]:
    """Live events in start order.

    ``start`` and ``end`` bound the event start time and apply only together;
    a lone ``start`` is a lower bound, used for upcoming events.
    """

    clauses = ["e.deleted_at IS NULL"]
    params: List[Any] = []
    for link_table, column, value in (
        ("baby_events", "baby_id", baby_id),
        ("caretaker_events", "caretaker_id", caretaker_id),
        ("contact_events", "contact_id", contact_id),
    ):
        if value:
            clauses.append(f"EXISTS (SELECT 1 FROM {link_table} x WHERE x.event_id = e.id AND x.{column} = ?)")
            params.append(value)
    if start is not None and end is not None:
        clauses.append("e.start_time >= ? AND e.start_time <= ?")
        params.extend([to_db(start), to_db(end)])
    elif start is not None:
        clauses.append("e.start_time >= ?")
        params.append(to_db(start))
    if event_type:
        clauses.append("e.type = ?")
        params.append(event_type)
    if recurring is not None:
        clauses.append("e.recurring = ?")
        params.append(int(recurring))
    query = f"SELECT e.* FROM calendar_events e WHERE {' AND '.join(clauses)} ORDER BY e.start_time"
    if limit is not None:
        query += " LIMIT ?"
        params.append(limit)
    with get_connection() as conn:
        rows = conn.execute(query, params).fetchall()
        return [_event_row(conn, row) for row in rows]


def upcoming_events(baby_id: str, now: datetime, *, limit: int = DEFAULT_UPCOMING_LIMIT) -> List[dict]:
    return list_events(baby_id=baby_id, start=now, limit=limit)
