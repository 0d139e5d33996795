"""UTC storage helpers and local-time conversion for datetime inputs.

Everything is persisted as an ISO-8601 UTC string with millisecond precision so
that lexical ordering in SQLite matches chronological ordering. Browsers submit
datetime-local values without an offset; those are interpreted in the
caretaker's IANA zone via :func:`local_to_utc`.
"""
from __future__ import annotations

import logging
import os
from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path
from typing import Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

DateInput = Union[str, datetime]


def _parse(value: DateInput) -> datetime:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Invalid date input")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValueError(f"Invalid date input: {value!r}") from exc


def get_zone(tz_name: Optional[str]) -> ZoneInfo:
    if not tz_name:
        return ZoneInfo("UTC")
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone: {tz_name}") from exc


def to_utc(value: DateInput) -> datetime:
    """Return an aware UTC datetime. Naive input is taken to already be UTC."""
    parsed = _parse(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_db(value: Optional[DateInput]) -> Optional[str]:
    if value is None:
        return None
    return to_utc(value).isoformat(timespec="milliseconds")


def now_utc() -> datetime:
    return datetime.now(tz=timezone.utc)


def now_db() -> str:
    return now_utc().isoformat(timespec="milliseconds")


def local_to_utc(local_value: DateInput, tz_name: str) -> datetime:
    """Interpret a wall-clock value in ``tz_name`` and return the UTC instant.

    Values that already carry an offset are converted as-is.
    """
    parsed = _parse(local_value)
    if parsed.tzinfo is not None:
        return parsed.astimezone(timezone.utc)
    return parsed.replace(tzinfo=get_zone(tz_name)).astimezone(timezone.utc)


def utc_to_local(value: DateInput, tz_name: str) -> datetime:
    """Convert a UTC instant to naive wall-clock time in ``tz_name``."""
    return to_utc(value).astimezone(get_zone(tz_name)).replace(tzinfo=None)


def format_for_response(value: Optional[DateInput]) -> Optional[str]:
    if value is None or value == "":
        return None
    try:
        return to_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    except ValueError:
        logger.warning("unparseable date in response", extra={"value": str(value)})
        return None


def calculate_duration_minutes(start: DateInput, end: DateInput) -> int:
    delta = to_utc(end) - to_utc(start)
    return round(delta.total_seconds() / 60)


def format_duration(minutes: int) -> str:
    if minutes < 0:
        raise ValueError("Duration cannot be negative")
    hours, mins = divmod(int(minutes), 60)
    return f"{hours}:{mins:02d}"


def warning_minutes(value: str) -> int:
    """Minutes represented by an ``HH:MM`` warning threshold."""
    try:
        hours_text, minutes_text = value.split(":")
        hours, minutes = int(hours_text), int(minutes_text)
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"Invalid warning time: {value!r}") from exc
    if hours < 0 or not 0 <= minutes < 60:
        raise ValueError(f"Invalid warning time: {value!r}")
    return hours * 60 + minutes


def day_bounds(day: date, tz_name: Optional[str]) -> Tuple[datetime, datetime]:
    """First and last millisecond of a local calendar day, in UTC."""
    zone = get_zone(tz_name)
    start = datetime.combine(day, time.min, tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=zone) - timedelta(milliseconds=1)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def _known_zone(name: str) -> bool:
    try:
        get_zone(name)
    except ValueError:
        return False
    return True


def get_system_timezone() -> str:
    """Best-effort IANA name of the server's zone."""
    env_tz = os.getenv("TZ")
    if env_tz and _known_zone(env_tz):
        return env_tz
    tz_file = Path("/etc/timezone")
    try:
        if tz_file.exists():
            name = tz_file.read_text().strip()
            if name and _known_zone(name):
                return name
    except OSError:
        logger.warning("could not read /etc/timezone")
    localtime = Path("/etc/localtime")
    if localtime.is_symlink():
        target = str(localtime.resolve())
        marker = "zoneinfo/"
        if marker in target:
            name = target.split(marker, 1)[1]
            if _known_zone(name):
                return name
    return "UTC"
