"""SQLite helpers."""
from __future__ import annotations

import hashlib
import hmac
import json
import logging
import secrets
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional
from uuid import uuid4

from .config import CONFIG
from .errors import ConflictError, NotFoundError
from .timeutils import now_db, to_db

logger = logging.getLogger(__name__)

_DB_PATH = CONFIG.resolved_database_path
_DB_PATH.parent.mkdir(parents=True, exist_ok=True)

SQLITE_HEADER = b"SQLite format 3\x00"
DEFAULT_SYSTEM_PIN = "111222"

DEFAULT_UNITS = [
    ("OZ", "Ounces"),
    ("ML", "Milliliters"),
    ("TBSP", "Tablespoon"),
    ("LB", "Pounds"),
    ("IN", "Inches"),
    ("CM", "Centimeters"),
    ("G", "Grams"),
    ("KG", "Kilograms"),
    ("F", "Fahrenheit"),
    ("C", "Celsius"),
]

_LOG_COMMON = """
    id TEXT PRIMARY KEY,
    baby_id TEXT NOT NULL,
    caretaker_id TEXT,
    {columns}
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    deleted_at TEXT,
    FOREIGN KEY (baby_id) REFERENCES babies(id),
    FOREIGN KEY (caretaker_id) REFERENCES caretakers(id)
"""

_LOG_TABLES = {
    "sleep_logs": """
        start_time TEXT NOT NULL,
        end_time TEXT,
        duration INTEGER,
        type TEXT NOT NULL,
        location TEXT,
        quality TEXT,
    """,
    "feed_logs": """
        time TEXT NOT NULL,
        start_time TEXT,
        end_time TEXT,
        feed_duration INTEGER,
        type TEXT NOT NULL,
        amount REAL,
        unit_abbr TEXT,
        side TEXT,
        food TEXT,
    """,
    "diaper_logs": """
        time TEXT NOT NULL,
        type TEXT NOT NULL,
        condition TEXT,
        color TEXT,
    """,
    "mood_logs": """
        time TEXT NOT NULL,
        mood TEXT NOT NULL,
        intensity INTEGER,
        duration INTEGER,
    """,
    "notes": """
        time TEXT NOT NULL,
        content TEXT NOT NULL,
        category TEXT,
    """,
    "bath_logs": """
        time TEXT NOT NULL,
        soap_used INTEGER NOT NULL DEFAULT 0,
        shampoo_used INTEGER NOT NULL DEFAULT 0,
        notes TEXT,
    """,
    "pump_logs": """
        start_time TEXT NOT NULL,
        end_time TEXT,
        duration INTEGER,
        left_amount REAL,
        right_amount REAL,
        total_amount REAL,
        unit_abbr TEXT,
        notes TEXT,
    """,
    "play_logs": """
        start_time TEXT NOT NULL,
        end_time TEXT,
        duration INTEGER,
        type TEXT NOT NULL,
        notes TEXT,
    """,
    "milestones": """
        date TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT,
        category TEXT NOT NULL,
    """,
    "measurements": """
        date TEXT NOT NULL,
        type TEXT NOT NULL,
        value REAL NOT NULL,
        unit TEXT,
        notes TEXT,
    """,
}

_EVENT_LINKS = (
    ("baby_events", "baby_id", "babies"),
    ("caretaker_events", "caretaker_id", "caretakers"),
    ("contact_events", "contact_id", "contacts"),
)


def _ensure_column(conn: sqlite3.Connection, table: str, column: str, ddl: str) -> None:
    cursor = conn.execute(f"PRAGMA table_info({table})")
    existing = {row[1] for row in cursor.fetchall()}
    if column not in existing:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {ddl}")


def hash_pin(pin: str, *, salt: Optional[str] = None) -> str:
    salt = salt or secrets.token_hex(8)
    digest = hashlib.pbkdf2_hmac("sha256", pin.encode(), salt.encode(), 100_000).hex()
    return f"pbkdf2${salt}${digest}"


def verify_pin(pin: str, stored: Optional[str]) -> bool:
    if not pin or not stored:
        return False
    try:
        _scheme, salt, _digest = stored.split("$", 2)
    except ValueError:
        return False
    return hmac.compare_digest(hash_pin(pin, salt=salt), stored)


def _create_schema(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS babies (
            id TEXT PRIMARY KEY,
            first_name TEXT NOT NULL,
            last_name TEXT NOT NULL DEFAULT '',
            birth_date TEXT NOT NULL,
            gender TEXT,
            inactive INTEGER NOT NULL DEFAULT 0,
            feed_warning_time TEXT NOT NULL DEFAULT '02:00',
            diaper_warning_time TEXT NOT NULL DEFAULT '03:00',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            deleted_at TEXT
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS caretakers (
            id TEXT PRIMARY KEY,
            login_id TEXT NOT NULL,
            name TEXT NOT NULL,
            type TEXT,
            role TEXT NOT NULL DEFAULT 'USER',
            inactive INTEGER NOT NULL DEFAULT 0,
            security_pin TEXT NOT NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            deleted_at TEXT
        );
        """
    )
    conn.execute(
        """
        CREATE UNIQUE INDEX IF NOT EXISTS caretakers_login_unique
        ON caretakers (login_id)
        WHERE deleted_at IS NULL
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS settings (
            id TEXT PRIMARY KEY,
            family_name TEXT NOT NULL,
            security_pin TEXT NOT NULL,
            default_bottle_unit TEXT NOT NULL DEFAULT 'OZ',
            default_solids_unit TEXT NOT NULL DEFAULT 'TBSP',
            default_height_unit TEXT NOT NULL DEFAULT 'IN',
            default_weight_unit TEXT NOT NULL DEFAULT 'LB',
            default_temp_unit TEXT NOT NULL DEFAULT 'F',
            activity_settings TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
        """
    )
    _ensure_column(conn, "settings", "enable_debug_timer", "INTEGER NOT NULL DEFAULT 0")
    _ensure_column(conn, "settings", "enable_debug_timezone", "INTEGER NOT NULL DEFAULT 0")

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS units (
            id TEXT PRIMARY KEY,
            unit_abbr TEXT NOT NULL UNIQUE,
            unit_name TEXT NOT NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
        """
    )

    for table, columns in _LOG_TABLES.items():
        conn.execute(f"CREATE TABLE IF NOT EXISTS {table} ({_LOG_COMMON.format(columns=columns)});")
        conn.execute(f"CREATE INDEX IF NOT EXISTS {table}_baby_idx ON {table} (baby_id)")

    now = now_db()
    for abbr, name in DEFAULT_UNITS:
        conn.execute(
            """
            INSERT INTO units (id, unit_abbr, unit_name, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(unit_abbr) DO UPDATE SET unit_name = excluded.unit_name
            """,
            (str(uuid4()), abbr, name, now, now),
        )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS contacts (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            role TEXT NOT NULL,
            phone TEXT,
            email TEXT,
            address TEXT,
            notes TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            deleted_at TEXT
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS calendar_events (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            description TEXT,
            start_time TEXT NOT NULL,
            end_time TEXT,
            all_day INTEGER NOT NULL DEFAULT 0,
            type TEXT NOT NULL,
            location TEXT,
            color TEXT,
            recurring INTEGER NOT NULL DEFAULT 0,
            recurrence_pattern TEXT,
            recurrence_end TEXT,
            custom_recurrence TEXT,
            reminder_time INTEGER,
            notification_sent INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            deleted_at TEXT
        );
        """
    )
    for link_table, column, target in _EVENT_LINKS:
        conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {link_table} (
                event_id TEXT NOT NULL,
                {column} TEXT NOT NULL,
                PRIMARY KEY (event_id, {column}),
                FOREIGN KEY (event_id) REFERENCES calendar_events(id),
                FOREIGN KEY ({column}) REFERENCES {target}(id)
            );
            """
        )

    conn.commit()


def initialize_db() -> None:
    with sqlite3.connect(_DB_PATH) as conn:
        _create_schema(conn)
    ensure_settings()


def prepare_database_file(path: Path) -> bool:
    """Check an uploaded database file and migrate it in place.

    Returns False when SQLite cannot read the file or its integrity check
    fails; the file is left for the caller to discard.
    """
    conn = sqlite3.connect(path)
    try:
        result = conn.execute("PRAGMA integrity_check").fetchone()
        if result is None or result[0] != "ok":
            logger.warning("uploaded database failed integrity check", extra={"path": str(path)})
            return False
        _create_schema(conn)
    except sqlite3.DatabaseError as exc:
        logger.warning("uploaded database rejected", extra={"path": str(path), "error": str(exc)})
        return False
    finally:
        conn.close()
    return True


@contextmanager
def get_connection() -> Iterator[sqlite3.Connection]:
    conn = sqlite3.connect(_DB_PATH)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
    finally:
        conn.close()


def database_path() -> Path:
    return _DB_PATH


def _row_to_dict(row: sqlite3.Row | None) -> dict:
    if row is None:
        return {}
    return {key: row[key] for key in row.keys()}


# Settings


def ensure_settings() -> dict:
    with get_connection() as conn:
        row = conn.execute("SELECT * FROM settings ORDER BY created_at LIMIT 1").fetchone()
        if row is None:
            now = now_db()
            conn.execute(
                """
                INSERT INTO settings (id, family_name, security_pin, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (str(uuid4()), "My Family", hash_pin(DEFAULT_SYSTEM_PIN), now, now),
            )
            conn.commit()
            row = conn.execute("SELECT * FROM settings ORDER BY created_at LIMIT 1").fetchone()
    return _row_to_dict(row)


def get_settings() -> dict:
    return ensure_settings()


def update_settings(values: Dict[str, Any]) -> dict:
    current = ensure_settings()
    updates = dict(values)
    if updates.get("security_pin"):
        updates["security_pin"] = hash_pin(updates["security_pin"])
    if not updates:
        return current
    updates["updated_at"] = now_db()
    assignments = ", ".join(f"{column} = ?" for column in updates)
    with get_connection() as conn:
        conn.execute(
            f"UPDATE settings SET {assignments} WHERE id = ?",
            (*updates.values(), current["id"]),
        )
        conn.commit()
    return get_settings()


def verify_system_pin(pin: str) -> bool:
    return verify_pin(pin, get_settings().get("security_pin"))


def load_activity_settings() -> Dict[str, Any]:
    raw = get_settings().get("activity_settings")
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except (TypeError, json.JSONDecodeError):
        logger.warning("discarding unreadable activity settings")
        return {}
    return data if isinstance(data, dict) else {}


def save_activity_settings(data: Dict[str, Any]) -> None:
    update_settings({"activity_settings": json.dumps(data)})


# Units


def list_units() -> List[dict]:
    with get_connection() as conn:
        rows = conn.execute("SELECT id, unit_abbr, unit_name FROM units ORDER BY unit_name").fetchall()
    return [_row_to_dict(row) for row in rows]


# Babies

_BABY_COLUMNS = (
    "first_name",
    "last_name",
    "birth_date",
    "gender",
    "inactive",
    "feed_warning_time",
    "diaper_warning_time",
)


def _baby_values(data: Dict[str, Any]) -> Dict[str, Any]:
    values = {key: data[key] for key in _BABY_COLUMNS if key in data}
    if "birth_date" in values and values["birth_date"] is not None:
        values["birth_date"] = to_db(values["birth_date"])
    if "inactive" in values and values["inactive"] is not None:
        values["inactive"] = int(bool(values["inactive"]))
    if values.get("gender") is not None:
        values["gender"] = getattr(values["gender"], "value", values["gender"])
    return values


def create_baby(data: Dict[str, Any]) -> dict:
    values = _baby_values(data)
    baby_id = str(uuid4())
    now = now_db()
    columns = ["id", *values.keys(), "created_at", "updated_at"]
    with get_connection() as conn:
        conn.execute(
            f"INSERT INTO babies ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)})",
            (baby_id, *values.values(), now, now),
        )
        conn.commit()
    return get_baby(baby_id)


def get_baby(baby_id: str, *, include_deleted: bool = False) -> dict:
    query = "SELECT * FROM babies WHERE id = ?"
    if not include_deleted:
        query += " AND deleted_at IS NULL"
    with get_connection() as conn:
        row = conn.execute(query, (baby_id,)).fetchone()
    if row is None:
        raise NotFoundError("Baby not found")
    return _row_to_dict(row)


def list_babies(*, include_inactive: bool = True) -> List[dict]:
    query = "SELECT * FROM babies WHERE deleted_at IS NULL"
    if not include_inactive:
        query += " AND inactive = 0"
    query += " ORDER BY created_at DESC, rowid DESC"
    with get_connection() as conn:
        rows = conn.execute(query).fetchall()
    return [_row_to_dict(row) for row in rows]


def update_baby(baby_id: str, data: Dict[str, Any]) -> dict:
    get_baby(baby_id)
    values = {key: value for key, value in _baby_values(data).items() if value is not None}
    if not values:
        return get_baby(baby_id)
    values["updated_at"] = now_db()
    assignments = ", ".join(f"{column} = ?" for column in values)
    with get_connection() as conn:
        conn.execute(f"UPDATE babies SET {assignments} WHERE id = ?", (*values.values(), baby_id))
        conn.commit()
    return get_baby(baby_id)


def soft_delete_baby(baby_id: str) -> None:
    get_baby(baby_id)
    now = now_db()
    with get_connection() as conn:
        conn.execute(
            "UPDATE babies SET deleted_at = ?, updated_at = ? WHERE id = ?",
            (now, now, baby_id),
        )
        conn.commit()


# Caretakers

_CARETAKER_PUBLIC = "id, login_id, name, type, role, inactive, created_at, updated_at, deleted_at"


def count_caretakers() -> int:
    with get_connection() as conn:
        row = conn.execute("SELECT COUNT(*) FROM caretakers WHERE deleted_at IS NULL").fetchone()
    return int(row[0])


def _login_in_use(conn: sqlite3.Connection, login_id: str, *, exclude_id: Optional[str] = None) -> bool:
    row = conn.execute(
        "SELECT id FROM caretakers WHERE login_id = ? AND deleted_at IS NULL AND id IS NOT ?",
        (login_id, exclude_id),
    ).fetchone()
    return row is not None


def create_caretaker(data: Dict[str, Any]) -> dict:
    caretaker_id = str(uuid4())
    now = now_db()
    role = getattr(data.get("role"), "value", data.get("role")) or "USER"
    with get_connection() as conn:
        if _login_in_use(conn, data["login_id"]):
            raise ConflictError("Login ID is already in use. Please choose a different one.")
        conn.execute(
            """
            INSERT INTO caretakers (id, login_id, name, type, role, inactive, security_pin, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                caretaker_id,
                data["login_id"],
                data["name"],
                data.get("type"),
                role,
                int(bool(data.get("inactive"))),
                hash_pin(data["security_pin"]),
                now,
                now,
            ),
        )
        conn.commit()
    return get_caretaker(caretaker_id)


def get_caretaker(caretaker_id: str) -> dict:
    with get_connection() as conn:
        row = conn.execute(
            f"SELECT {_CARETAKER_PUBLIC} FROM caretakers WHERE id = ? AND deleted_at IS NULL",
            (caretaker_id,),
        ).fetchone()
    if row is None:
        raise NotFoundError("Caretaker not found")
    return _row_to_dict(row)


def list_caretakers() -> List[dict]:
    with get_connection() as conn:
        rows = conn.execute(
            f"SELECT {_CARETAKER_PUBLIC} FROM caretakers WHERE deleted_at IS NULL ORDER BY name COLLATE NOCASE"
        ).fetchall()
    return [_row_to_dict(row) for row in rows]


def update_caretaker(caretaker_id: str, data: Dict[str, Any]) -> dict:
    get_caretaker(caretaker_id)
    values: Dict[str, Any] = {}
    for key in ("login_id", "name", "type", "role", "inactive", "security_pin"):
        if data.get(key) is None:
            continue
        value = data[key]
        if key == "role":
            value = getattr(value, "value", value)
        elif key == "inactive":
            value = int(bool(value))
        elif key == "security_pin":
            value = hash_pin(value)
        values[key] = value
    with get_connection() as conn:
        if "login_id" in values and _login_in_use(conn, values["login_id"], exclude_id=caretaker_id):
            raise ConflictError("Login ID is already in use. Please choose a different one.")
        if values:
            values["updated_at"] = now_db()
            assignments = ", ".join(f"{column} = ?" for column in values)
            conn.execute(
                f"UPDATE caretakers SET {assignments} WHERE id = ?",
                (*values.values(), caretaker_id),
            )
            conn.commit()
    return get_caretaker(caretaker_id)


def soft_delete_caretaker(caretaker_id: str) -> None:
    get_caretaker(caretaker_id)
    now = now_db()
    with get_connection() as conn:
        conn.execute(
            "UPDATE caretakers SET deleted_at = ?, updated_at = ? WHERE id = ?",
            (now, now, caretaker_id),
        )
        conn.commit()


def authenticate_caretaker(login_id: str, pin: str) -> Optional[dict]:
    """Return the caretaker for a login ID + PIN pair, or None."""
    with get_connection() as conn:
        row = conn.execute(
            """
            SELECT * FROM caretakers
            WHERE login_id = ? AND deleted_at IS NULL AND inactive = 0
            """,
            (login_id,),
        ).fetchone()
    if row is None or not verify_pin(pin, row["security_pin"]):
        return None
    caretaker = _row_to_dict(row)
    caretaker.pop("security_pin", None)
    return caretaker


def caretaker_is_active(caretaker_id: str) -> bool:
    with get_connection() as conn:
        row = conn.execute(
            "SELECT 1 FROM caretakers WHERE id = ? AND deleted_at IS NULL AND inactive = 0",
            (caretaker_id,),
        ).fetchone()
    return row is not None
