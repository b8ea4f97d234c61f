"""
SQLite storage for calendar events.

Timestamps are stored as UTC ISO-8601 strings with microsecond precision so
that string comparison in SQL matches chronological order.
"""

import json
import sqlite3
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable

from core.config import DB_PATH, LOCAL_SOURCE
from core.errors import EventNotFoundError, ValidationError
from core.validation import validate_interval
from models.events import CalendarEvent

UPDATABLE_FIELDS = {
    "title",
    "description",
    "location",
    "guests",
    "notify_before",
    "attachments",
    "start_time",
    "end_time",
    "is_all_day",
    "repeat",
    "color",
    "source",
    "external_id",
    "is_deleted",
}

JSON_FIELDS = {"guests", "attachments"}
TIME_FIELDS = {"start_time", "end_time", "created_at", "updated_at"}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_connection(db_path: Path | str = DB_PATH) -> sqlite3.Connection:
    """Get a database connection."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def create_tables(conn: sqlite3.Connection) -> None:
    """Create the calendar tables and indexes if they don't exist."""
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS calendar_events (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            location TEXT,
            guests TEXT NOT NULL DEFAULT '[]',
            notify_before INTEGER,
            attachments TEXT NOT NULL DEFAULT '[]',
            start_time TEXT NOT NULL,
            end_time TEXT NOT NULL,
            is_all_day INTEGER NOT NULL DEFAULT 0,
            repeat TEXT NOT NULL DEFAULT 'none'
                CHECK(repeat IN ('none', 'daily', 'weekly', 'monthly', 'yearly')),
            color TEXT NOT NULL DEFAULT 'blue',
            source TEXT NOT NULL DEFAULT 'local',
            external_id TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            is_deleted INTEGER NOT NULL DEFAULT 0,
            CHECK(start_time <= end_time)
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS sync_runs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            run_id TEXT UNIQUE NOT NULL,
            started_at TEXT NOT NULL,
            trigger TEXT NOT NULL CHECK(trigger IN ('manual', 'mount', 'periodic')),
            provider TEXT NOT NULL,
            status TEXT NOT NULL CHECK(status IN ('success', 'failed')),
            window_start TEXT,
            window_end TEXT,
            created INTEGER NOT NULL DEFAULT 0,
            updated INTEGER NOT NULL DEFAULT 0,
            unchanged INTEGER NOT NULL DEFAULT 0,
            local_wins INTEGER NOT NULL DEFAULT 0,
            error_message TEXT,
            duration_ms INTEGER NOT NULL DEFAULT 0
        )
    """)

    # One row per provider event
    cursor.execute(
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_calendar_events_external "
        "ON calendar_events(source, external_id) WHERE external_id IS NOT NULL"
    )
    cursor.execute(
        "CREATE INDEX IF NOT EXISTS idx_calendar_events_range "
        "ON calendar_events(is_deleted, start_time, end_time)"
    )
    cursor.execute(
        "CREATE INDEX IF NOT EXISTS idx_sync_runs_started ON sync_runs(started_at)"
    )

    conn.commit()


def to_db_time(value: datetime) -> str:
    """Serialize an aware datetime as a sortable UTC string."""
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db_time(value: str) -> datetime:
    return datetime.fromisoformat(value)


def overlaps(start: datetime, end: datetime, range_start: datetime, range_end: datetime) -> bool:
    """
    Check if [start, end] intersects the inclusive window [range_start, range_end].

    An event that ends exactly at range_start does not intersect; a
    zero-duration event does when its instant lies inside the window.
    """
    if start > range_end:
        return False
    if start == end:
        return start >= range_start
    return end > range_start


def row_to_event(row: sqlite3.Row) -> CalendarEvent:
    """Convert a calendar_events row to a CalendarEvent."""
    return CalendarEvent(
        id=row["id"],
        title=row["title"],
        description=row["description"] or "",
        location=row["location"],
        guests=json.loads(row["guests"] or "[]"),
        notify_before=row["notify_before"],
        attachments=json.loads(row["attachments"] or "[]"),
        start_time=from_db_time(row["start_time"]),
        end_time=from_db_time(row["end_time"]),
        is_all_day=bool(row["is_all_day"]),
        repeat=row["repeat"],
        color=row["color"],
        source=row["source"],
        external_id=row["external_id"],
        created_at=from_db_time(row["created_at"]),
        updated_at=from_db_time(row["updated_at"]),
        is_deleted=bool(row["is_deleted"]),
    )


def _to_column(name: str, value):
    if name in JSON_FIELDS:
        return json.dumps(value or [])
    if name in TIME_FIELDS:
        return to_db_time(value)
    if name in {"is_all_day", "is_deleted"}:
        return int(bool(value))
    return value


class EventStore:
    """
    Local authoritative record set for calendar events.

    Every method opens its own connection, so a store can be shared between
    the event loop thread and worker threads.
    """

    def __init__(self, db_path: Path | str = DB_PATH, clock: Callable[[], datetime] | None = None):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._clock = clock or utcnow

        conn = get_connection(self.db_path)
        try:
            create_tables(conn)
        finally:
            conn.close()

    def _fetch_one(self, sql: str, params: tuple) -> CalendarEvent | None:
        conn = get_connection(self.db_path)
        try:
            row = conn.execute(sql, params).fetchone()
        finally:
            conn.close()
        return row_to_event(row) if row else None

    def _next_updated_at(self, previous: datetime | None) -> datetime:
        now = self._clock()
        if previous is not None and now <= previous:
            now = previous + timedelta(microseconds=1)
        return now

    def query(self, range_start: datetime, range_end: datetime) -> list[CalendarEvent]:
        """Return non-deleted events intersecting [range_start, range_end]."""
        conn = get_connection(self.db_path)
        try:
            rows = conn.execute(
                """
                SELECT * FROM calendar_events
                WHERE is_deleted = 0 AND start_time <= ? AND end_time >= ?
                ORDER BY start_time, id
                """,
                (to_db_time(range_end), to_db_time(range_start)),
            ).fetchall()
        finally:
            conn.close()

        events = [row_to_event(row) for row in rows]
        return [e for e in events if overlaps(e.start_time, e.end_time, range_start, range_end)]

    def get_by_id(self, event_id: str) -> CalendarEvent | None:
        """Get an event by id, including soft-deleted ones."""
        return self._fetch_one("SELECT * FROM calendar_events WHERE id = ?", (event_id,))

    def get_by_external_id(self, source: str, external_id: str) -> CalendarEvent | None:
        return self._fetch_one(
            "SELECT * FROM calendar_events WHERE source = ? AND external_id = ?",
            (source, external_id),
        )

    def create(self, data: dict) -> CalendarEvent:
        """Insert a new event and return it."""
        unknown = set(data) - UPDATABLE_FIELDS - {"id"}
        if unknown:
            raise ValidationError(f"Unknown event fields: {', '.join(sorted(unknown))}")
        validate_interval(data["start_time"], data["end_time"])

        now = self._clock()
        event = CalendarEvent(
            id=data.get("id") or uuid.uuid4().hex,
            title=data["title"],
            start_time=data["start_time"],
            end_time=data["end_time"],
            created_at=now,
            updated_at=now,
            description=data.get("description") or "",
            location=data.get("location"),
            guests=list(data.get("guests") or []),
            notify_before=data.get("notify_before"),
            attachments=list(data.get("attachments") or []),
            is_all_day=bool(data.get("is_all_day", False)),
            repeat=data.get("repeat", "none"),
            color=data.get("color", "blue"),
            source=data.get("source", LOCAL_SOURCE),
            external_id=data.get("external_id"),
            is_deleted=bool(data.get("is_deleted", False)),
        )

        row = {name: _to_column(name, value) for name, value in event.to_dict().items()}
        columns = ", ".join(row)
        placeholders = ", ".join("?" for _ in row)

        conn = get_connection(self.db_path)
        try:
            conn.execute(
                f"INSERT INTO calendar_events ({columns}) VALUES ({placeholders})",
                tuple(row.values()),
            )
            conn.commit()
        except sqlite3.IntegrityError as e:
            raise ValidationError(f"Event conflicts with an existing record: {e}") from e
        finally:
            conn.close()

        return event

    def update(self, event_id: str, patch: dict) -> CalendarEvent:
        """Apply a patch, bump updated_at, and return the updated event."""
        unknown = set(patch) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown event fields: {', '.join(sorted(unknown))}")

        existing = self.get_by_id(event_id)
        if existing is None:
            raise EventNotFoundError(event_id)

        updated = existing.with_changes(**patch)
        validate_interval(updated.start_time, updated.end_time)
        updated.updated_at = self._next_updated_at(existing.updated_at)

        assignments = {name: _to_column(name, getattr(updated, name)) for name in patch}
        assignments["updated_at"] = to_db_time(updated.updated_at)
        set_clause = ", ".join(f"{name} = ?" for name in assignments)

        conn = get_connection(self.db_path)
        try:
            conn.execute(
                f"UPDATE calendar_events SET {set_clause} WHERE id = ?",
                (*assignments.values(), event_id),
            )
            conn.commit()
        except sqlite3.IntegrityError as e:
            raise ValidationError(f"Event conflicts with an existing record: {e}") from e
        finally:
            conn.close()

        return updated

    def soft_delete(self, event_id: str) -> None:
        """Flag an event as deleted. The row is kept."""
        existing = self.get_by_id(event_id)
        if existing is None:
            raise EventNotFoundError(event_id)
        if not existing.is_deleted:
            self.update(event_id, {"is_deleted": True})

    def upsert_by_source_and_external_id(
        self, source: str, external_id: str, data: dict
    ) -> CalendarEvent:
        """
        Create the (source, external_id) record, or update it when data differs.

        An unchanged payload leaves the record, including updated_at, untouched.
        """
        existing = self.get_by_external_id(source, external_id)
        if existing is None:
            return self.create({**data, "source": source, "external_id": external_id})

        changes = {name: value for name, value in data.items() if getattr(existing, name) != value}
        if not changes:
            return existing
        return self.update(existing.id, changes)
