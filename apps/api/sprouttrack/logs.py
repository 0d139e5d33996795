"""Activity log tables: models and the shared SQLite store."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Type
from uuid import uuid4

from pydantic import Field

from .db import get_connection
from .errors import NotFoundError
from .schemas import (
    BreastSide,
    CamelModel,
    DiaperType,
    FeedType,
    MeasurementType,
    MilestoneCategory,
    Mood,
    PlayType,
    SleepQuality,
    SleepType,
)
from .timeutils import calculate_duration_minutes, now_db, to_db, to_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogTable:
    name: str
    label: str
    time_column: str
    columns: Tuple[str, ...]
    end_column: Optional[str] = None
    filter_column: Optional[str] = None
    filter_enum: Optional[Type[Enum]] = None
    date_columns: Tuple[str, ...] = ()
    bool_columns: Tuple[str, ...] = ()


class LogOut(CamelModel):
    id: str
    baby_id: str
    caretaker_id: Optional[str] = None
    caretaker_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None


# Sleep


class SleepLogCreate(CamelModel):
    baby_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    type: SleepType
    location: Optional[str] = None
    quality: Optional[SleepQuality] = None


class SleepLogUpdate(CamelModel):
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    type: Optional[SleepType] = None
    location: Optional[str] = None
    quality: Optional[SleepQuality] = None


class SleepLog(LogOut):
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = None
    type: SleepType
    location: Optional[str] = None
    quality: Optional[SleepQuality] = None


# Feed


class FeedLogCreate(CamelModel):
    baby_id: str
    time: datetime
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    feed_duration: Optional[int] = Field(default=None, ge=0, description="Seconds")
    type: FeedType
    amount: Optional[float] = Field(default=None, ge=0)
    unit_abbr: Optional[str] = None
    side: Optional[BreastSide] = None
    food: Optional[str] = None


class FeedLogUpdate(CamelModel):
    time: Optional[datetime] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    feed_duration: Optional[int] = Field(default=None, ge=0)
    type: Optional[FeedType] = None
    amount: Optional[float] = Field(default=None, ge=0)
    unit_abbr: Optional[str] = None
    side: Optional[BreastSide] = None
    food: Optional[str] = None


class FeedLog(LogOut):
    time: datetime
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    feed_duration: Optional[int] = None
    type: FeedType
    amount: Optional[float] = None
    unit_abbr: Optional[str] = None
    side: Optional[BreastSide] = None
    food: Optional[str] = None


# Diaper


class DiaperLogCreate(CamelModel):
    baby_id: str
    time: datetime
    type: DiaperType
    condition: Optional[str] = None
    color: Optional[str] = None


class DiaperLogUpdate(CamelModel):
    time: Optional[datetime] = None
    type: Optional[DiaperType] = None
    condition: Optional[str] = None
    color: Optional[str] = None


class DiaperLog(LogOut):
    time: datetime
    type: DiaperType
    condition: Optional[str] = None
    color: Optional[str] = None


# Mood


class MoodLogCreate(CamelModel):
    baby_id: str
    time: datetime
    mood: Mood
    intensity: Optional[int] = Field(default=None, ge=1, le=5)
    duration: Optional[int] = Field(default=None, ge=0)


class MoodLogUpdate(CamelModel):
    time: Optional[datetime] = None
    mood: Optional[Mood] = None
    intensity: Optional[int] = Field(default=None, ge=1, le=5)
    duration: Optional[int] = Field(default=None, ge=0)


class MoodLog(LogOut):
    time: datetime
    mood: Mood
    intensity: Optional[int] = None
    duration: Optional[int] = None


# Notes


class NoteCreate(CamelModel):
    baby_id: str
    time: datetime
    content: str = Field(..., min_length=1)
    category: Optional[str] = None


class NoteUpdate(CamelModel):
    time: Optional[datetime] = None
    content: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = None


class Note(LogOut):
    time: datetime
    content: str
    category: Optional[str] = None


# Bath


class BathLogCreate(CamelModel):
    baby_id: str
    time: datetime
    soap_used: bool = False
    shampoo_used: bool = False
    notes: Optional[str] = None


class BathLogUpdate(CamelModel):
    time: Optional[datetime] = None
    soap_used: Optional[bool] = None
    shampoo_used: Optional[bool] = None
    notes: Optional[str] = None


class BathLog(LogOut):
    time: datetime
    soap_used: bool = False
    shampoo_used: bool = False
    notes: Optional[str] = None


# Pump


class PumpLogCreate(CamelModel):
    baby_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = Field(default=None, ge=0)
    left_amount: Optional[float] = Field(default=None, ge=0)
    right_amount: Optional[float] = Field(default=None, ge=0)
    total_amount: Optional[float] = Field(default=None, ge=0)
    unit_abbr: Optional[str] = None
    notes: Optional[str] = None


class PumpLogUpdate(CamelModel):
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: Optional[int] = Field(default=None, ge=0)
    left_amount: Optional[float] = Field(default=None, ge=0)
    right_amount: Optional[float] = Field(default=None, ge=0)
    total_amount: Optional[float] = Field(default=None, ge=0)
    unit_abbr: Optional[str] = None
    notes: Optional[str] = None


class PumpLog(LogOut):
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = None
    left_amount: Optional[float] = None
    right_amount: Optional[float] = None
    total_amount: Optional[float] = None
    unit_abbr: Optional[str] = None
    notes: Optional[str] = None


# Play


class PlayLogCreate(CamelModel):
    baby_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = Field(default=None, ge=0)
    type: PlayType
    notes: Optional[str] = None


class PlayLogUpdate(CamelModel):
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: Optional[int] = Field(default=None, ge=0)
    type: Optional[PlayType] = None
    notes: Optional[str] = None


class PlayLog(LogOut):
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = None
    type: PlayType
    notes: Optional[str] = None


# Milestones


class MilestoneCreate(CamelModel):
    baby_id: str
    date: datetime
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    category: MilestoneCategory


class MilestoneUpdate(CamelModel):
    date: Optional[datetime] = None
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    category: Optional[MilestoneCategory] = None


class Milestone(LogOut):
    date: datetime
    title: str
    description: Optional[str] = None
    category: MilestoneCategory


# Measurements


class MeasurementCreate(CamelModel):
    baby_id: str
    date: datetime
    type: MeasurementType
    value: float
    unit: Optional[str] = None
    notes: Optional[str] = None


class MeasurementUpdate(CamelModel):
    date: Optional[datetime] = None
    type: Optional[MeasurementType] = None
    value: Optional[float] = None
    unit: Optional[str] = None
    notes: Optional[str] = None


class Measurement(LogOut):
    date: datetime
    type: MeasurementType
    value: float
    unit: Optional[str] = None
    notes: Optional[str] = None


SLEEP = LogTable(
    name="sleep_logs",
    label="Sleep log",
    time_column="start_time",
    end_column="end_time",
    columns=("start_time", "end_time", "duration", "type", "location", "quality"),
    filter_column="type",
    filter_enum=SleepType,
    date_columns=("start_time", "end_time"),
)
FEED = LogTable(
    name="feed_logs",
    label="Feed log",
    time_column="time",
    columns=("time", "start_time", "end_time", "feed_duration", "type", "amount", "unit_abbr", "side", "food"),
    filter_column="type",
    filter_enum=FeedType,
    date_columns=("time", "start_time", "end_time"),
)
DIAPER = LogTable(
    name="diaper_logs",
    label="Diaper log",
    time_column="time",
    columns=("time", "type", "condition", "color"),
    filter_column="type",
    filter_enum=DiaperType,
    date_columns=("time",),
)
MOOD = LogTable(
    name="mood_logs",
    label="Mood log",
    time_column="time",
    columns=("time", "mood", "intensity", "duration"),
    filter_column="mood",
    filter_enum=Mood,
    date_columns=("time",),
)
NOTE = LogTable(
    name="notes",
    label="Note",
    time_column="time",
    columns=("time", "content", "category"),
    filter_column="category",
    date_columns=("time",),
)
BATH = LogTable(
    name="bath_logs",
    label="Bath log",
    time_column="time",
    columns=("time", "soap_used", "shampoo_used", "notes"),
    date_columns=("time",),
    bool_columns=("soap_used", "shampoo_used"),
)
PUMP = LogTable(
    name="pump_logs",
    label="Pump log",
    time_column="start_time",
    end_column="end_time",
    columns=(
        "start_time",
        "end_time",
        "duration",
        "left_amount",
        "right_amount",
        "total_amount",
        "unit_abbr",
        "notes",
    ),
    date_columns=("start_time", "end_time"),
)
PLAY = LogTable(
    name="play_logs",
    label="Play log",
    time_column="start_time",
    end_column="end_time",
    columns=("start_time", "end_time", "duration", "type", "notes"),
    filter_column="type",
    filter_enum=PlayType,
    date_columns=("start_time", "end_time"),
)
MILESTONE = LogTable(
    name="milestones",
    label="Milestone",
    time_column="date",
    columns=("date", "title", "description", "category"),
    filter_column="category",
    filter_enum=MilestoneCategory,
    date_columns=("date",),
)
MEASUREMENT = LogTable(
    name="measurements",
    label="Measurement",
    time_column="date",
    columns=("date", "type", "value", "unit", "notes"),
    filter_column="type",
    filter_enum=MeasurementType,
    date_columns=("date",),
)

ALL_TABLES = (SLEEP, FEED, DIAPER, MOOD, NOTE, BATH, PUMP, PLAY, MILESTONE, MEASUREMENT)


def _to_storage(table: LogTable, values: Dict[str, Any]) -> Dict[str, Any]:
    stored: Dict[str, Any] = {}
    for key, value in values.items():
        if key not in table.columns:
            continue
        if isinstance(value, Enum):
            value = value.value
        if key in table.date_columns and value is not None:
            value = to_db(value)
        elif key in table.bool_columns and value is not None:
            value = int(bool(value))
        stored[key] = value
    return stored


def _from_row(table: LogTable, row: Any) -> dict:
    data = {key: row[key] for key in row.keys()}
    for key in table.bool_columns:
        data[key] = bool(data.get(key))
    return data


def _select(table: LogTable) -> str:
    return (
        f"SELECT l.*, c.name AS caretaker_name FROM {table.name} l "
        "LEFT JOIN caretakers c ON c.id = l.caretaker_id"
    )


def derive_interval_fields(table: LogTable, values: Dict[str, Any], existing: Optional[dict] = None) -> Dict[str, Any]:
    """Fill derived duration/total columns from the merged row state."""

    merged = {**(existing or {}), **values}
    derived = dict(values)
    if table is SLEEP:
        start, end = merged.get("start_time"), merged.get("end_time")
        derived["duration"] = calculate_duration_minutes(start, end) if start and end else None
    elif table in (PUMP, PLAY):
        start, end = merged.get("start_time"), merged.get("end_time")
        if values.get("duration") is None and start and end:
            derived["duration"] = calculate_duration_minutes(start, end)
        amounts_given = "left_amount" in values or "right_amount" in values
        if table is PUMP and values.get("total_amount") is None and amounts_given:
            left, right = merged.get("left_amount"), merged.get("right_amount")
            if left is not None or right is not None:
                derived["total_amount"] = (left or 0) + (right or 0)
    elif table is FEED:
        start, end = merged.get("start_time"), merged.get("end_time")
        if values.get("feed_duration") is None and start and end:
            seconds = (to_utc(end) - to_utc(start)).total_seconds()
            derived["feed_duration"] = max(int(seconds), 0)
    return derived


def insert_log(table: LogTable, baby_id: str, caretaker_id: Optional[str], values: Dict[str, Any]) -> dict:
    stored = _to_storage(table, derive_interval_fields(table, values))
    log_id = str(uuid4())
    now = now_db()
    columns = ["id", "baby_id", "caretaker_id", *stored.keys(), "created_at", "updated_at"]
    with get_connection() as conn:
        baby = conn.execute(
            "SELECT id FROM babies WHERE id = ? AND deleted_at IS NULL", (baby_id,)
        ).fetchone()
        if baby is None:
            raise NotFoundError("Baby not found")
        conn.execute(
            f"INSERT INTO {table.name} ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)})",
            (log_id, baby_id, caretaker_id, *stored.values(), now, now),
        )
        conn.commit()
    logger.info("log created", extra={"table": table.name, "baby_id": baby_id, "log_id": log_id})
    return get_log(table, log_id)


def get_log(table: LogTable, log_id: str) -> dict:
    with get_connection() as conn:
        row = conn.execute(
            f"{_select(table)} WHERE l.id = ? AND l.deleted_at IS NULL", (log_id,)
        ).fetchone()
    if row is None:
        raise NotFoundError(f"{table.label} not found")
    return _from_row(table, row)


def update_log(table: LogTable, log_id: str, values: Dict[str, Any]) -> dict:
    existing = get_log(table, log_id)
    stored = _to_storage(table, derive_interval_fields(table, values, existing))
    if not stored:
        return existing
    stored["updated_at"] = now_db()
    assignments = ", ".join(f"{column} = ?" for column in stored)
    with get_connection() as conn:
        conn.execute(
            f"UPDATE {table.name} SET {assignments} WHERE id = ?",
            (*stored.values(), log_id),
        )
        conn.commit()
    return get_log(table, log_id)


def soft_delete_log(table: LogTable, log_id: str) -> None:
    get_log(table, log_id)
    now = now_db()
    with get_connection() as conn:
        conn.execute(
            f"UPDATE {table.name} SET deleted_at = ?, updated_at = ? WHERE id = ?",
            (now, now, log_id),
        )
        conn.commit()
    logger.info("log deleted", extra={"table": table.name, "log_id": log_id})


def list_logs(
    table: LogTable,
    *,
    baby_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    filter_value: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[dict]:
    """Live rows newest first.

    With both ``start`` and ``end``, interval tables match rows that start, end
    or span inside the window; point tables match on their time column.
    """

    clauses = ["l.deleted_at IS NULL"]
    params: List[Any] = []
    if baby_id:
        clauses.append("l.baby_id = ?")
        params.append(baby_id)
    if filter_value is not None and table.filter_column:
        clauses.append(f"l.{table.filter_column} = ?")
        params.append(filter_value)
    if start is not None and end is not None:
        start_db, end_db = to_db(start), to_db(end)
        time_col = f"l.{table.time_column}"
        if table.end_column:
            end_col = f"l.{table.end_column}"
            clauses.append(
                f"(({time_col} >= ? AND {time_col} <= ?)"
                f" OR ({end_col} >= ? AND {end_col} <= ?)"
                f" OR ({time_col} <= ? AND ({end_col} >= ? OR {end_col} IS NULL)))"
            )
            params.extend([start_db, end_db, start_db, end_db, start_db, end_db])
        else:
            clauses.append(f"{time_col} >= ? AND {time_col} <= ?")
            params.extend([start_db, end_db])
    query = f"{_select(table)} WHERE {' AND '.join(clauses)} ORDER BY l.{table.time_column} DESC"
    if limit is not None:
        query += " LIMIT ?"
        params.append(limit)
    with get_connection() as conn:
        rows = conn.execute(query, params).fetchall()
    return [_from_row(table, row) for row in rows]


def latest_log(table: LogTable, baby_id: str, *, where: Optional[Dict[str, Any]] = None) -> Optional[dict]:
    clauses = ["l.deleted_at IS NULL", "l.baby_id = ?"]
    params: List[Any] = [baby_id]
    for column, value in (where or {}).items():
        if isinstance(value, (list, tuple)):
            clauses.append(f"l.{column} IN ({', '.join('?' for _ in value)})")
            params.extend(value)
        else:
            clauses.append(f"l.{column} = ?")
            params.append(value)
    query = (
        f"{_select(table)} WHERE {' AND '.join(clauses)} "
        f"ORDER BY l.{table.time_column} DESC LIMIT 1"
    )
    with get_connection() as conn:
        row = conn.execute(query, params).fetchone()
    return _from_row(table, row) if row is not None else None
