"""Cross-table views: the merged timeline and dashboard numbers."""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from . import logs
from .db import get_baby
from .timeutils import (
    calculate_duration_minutes,
    day_bounds,
    format_duration,
    now_utc,
    to_utc,
    utc_to_local,
    warning_minutes,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMELINE_LIMIT = 200
POOP_TYPES = ("DIRTY", "BOTH")

TIMELINE_KINDS: Dict[str, logs.LogTable] = {
    "sleep": logs.SLEEP,
    "feed": logs.FEED,
    "diaper": logs.DIAPER,
    "note": logs.NOTE,
    "bath": logs.BATH,
    "pump": logs.PUMP,
    "mood": logs.MOOD,
    "milestone": logs.MILESTONE,
    "measurement": logs.MEASUREMENT,
    "play": logs.PLAY,
}


def activity_time(table: logs.LogTable, row: Dict[str, Any]) -> datetime:
    """Moment an activity sorts by: its end once an interval is complete."""
    if table.end_column and row.get(table.end_column):
        return to_utc(row[table.end_column])
    return to_utc(row[table.time_column])


def build_timeline(
    baby_id: str,
    *,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: int = DEFAULT_TIMELINE_LIMIT,
) -> List[Tuple[str, logs.LogTable, Dict[str, Any]]]:
    ranged = start is not None and end is not None
    per_table_limit = None if ranged else limit
    entries: List[Tuple[datetime, str, logs.LogTable, Dict[str, Any]]] = []
    for kind, table in TIMELINE_KINDS.items():
        rows = logs.list_logs(table, baby_id=baby_id, start=start, end=end, limit=per_table_limit)
        for row in rows:
            entries.append((activity_time(table, row), kind, table, row))
    entries.sort(key=lambda item: item[0], reverse=True)
    if not ranged:
        entries = entries[:limit]
    logger.info(
        "timeline built",
        extra={"baby_id": baby_id, "count": len(entries), "ranged": ranged},
    )
    return [(kind, table, row) for _, kind, table, row in entries]


def last_activities(baby_id: str) -> Dict[str, Optional[dict]]:
    get_baby(baby_id)
    return {
        "last_diaper": logs.latest_log(logs.DIAPER, baby_id),
        "last_poop_diaper": logs.latest_log(logs.DIAPER, baby_id, where={"type": list(POOP_TYPES)}),
        "last_bath": logs.latest_log(logs.BATH, baby_id),
        "last_note": logs.latest_log(logs.NOTE, baby_id),
        "last_height": logs.latest_log(logs.MEASUREMENT, baby_id, where={"type": "HEIGHT"}),
        "last_weight": logs.latest_log(logs.MEASUREMENT, baby_id, where={"type": "WEIGHT"}),
        "last_head_circumference": logs.latest_log(
            logs.MEASUREMENT, baby_id, where={"type": "HEAD_CIRCUMFERENCE"}
        ),
    }


def _sleep_minutes_in_window(rows: List[dict], start: datetime, end: datetime, now: datetime) -> int:
    total = 0
    for row in rows:
        sleep_start = to_utc(row["start_time"])
        sleep_end = to_utc(row["end_time"]) if row.get("end_time") else now
        overlap_start = max(sleep_start, start)
        overlap_end = min(sleep_end, end)
        if overlap_end > overlap_start:
            total += calculate_duration_minutes(overlap_start, overlap_end)
    return total


def daily_stats(baby_id: str, day: date, tz_name: Optional[str], *, now: Optional[datetime] = None) -> Dict[str, Any]:
    get_baby(baby_id)
    now = now or now_utc()
    start, end = day_bounds(day, tz_name)

    sleeps = logs.list_logs(logs.SLEEP, baby_id=baby_id, start=start, end=end)
    sleep_minutes = _sleep_minutes_in_window(sleeps, start, end, now)

    if now >= end:
        elapsed = calculate_duration_minutes(start, end)
    elif now >= start:
        elapsed = calculate_duration_minutes(start, now)
    else:
        elapsed = 0
    awake_minutes = max(elapsed - sleep_minutes, 0)

    consumed: Dict[str, float] = {}
    for feed in logs.list_logs(logs.FEED, baby_id=baby_id, start=start, end=end):
        if feed.get("amount") is None:
            continue
        unit = feed.get("unit_abbr") or "OZ"
        consumed[unit] = consumed.get(unit, 0) + float(feed["amount"])
    total_consumed = ", ".join(f"{amount:g} {unit.lower()}" for unit, amount in consumed.items()) or "None"

    diapers = logs.list_logs(logs.DIAPER, baby_id=baby_id, start=start, end=end)
    poops = [row for row in diapers if row.get("type") in POOP_TYPES]

    return {
        "date": day.isoformat(),
        "sleep_minutes": sleep_minutes,
        "awake_minutes": awake_minutes,
        "sleep_time": format_duration(sleep_minutes),
        "awake_time": format_duration(awake_minutes),
        "consumed": consumed,
        "total_consumed": total_consumed,
        "diaper_changes": len(diapers),
        "poop_count": len(poops),
    }


def local_today(tz_name: Optional[str], *, now: Optional[datetime] = None) -> date:
    return utc_to_local(now or now_utc(), tz_name or "UTC").date()


def baby_status(baby_id: str, *, now: Optional[datetime] = None) -> Dict[str, Any]:
    baby = get_baby(baby_id)
    now = now or now_utc()

    last_feed = logs.latest_log(logs.FEED, baby_id)
    last_diaper = logs.latest_log(logs.DIAPER, baby_id)
    last_sleep = logs.latest_log(logs.SLEEP, baby_id)

    minutes_since_feed = calculate_duration_minutes(last_feed["time"], now) if last_feed else None
    minutes_since_diaper = calculate_duration_minutes(last_diaper["time"], now) if last_diaper else None

    return {
        "baby_id": baby_id,
        "minutes_since_feed": minutes_since_feed,
        "minutes_since_diaper": minutes_since_diaper,
        "feed_warning": minutes_since_feed is not None
        and minutes_since_feed >= warning_minutes(baby["feed_warning_time"]),
        "diaper_warning": minutes_since_diaper is not None
        and minutes_since_diaper >= warning_minutes(baby["diaper_warning_time"]),
        "is_sleeping": bool(last_sleep and not last_sleep.get("end_time")),
    }
