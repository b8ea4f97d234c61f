"""SQLite audit log of reconciliation runs."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from core.config import DB_PATH
from core.database import get_connection


@dataclass
class SyncRunLog:
    """Captured outcome of one reconciliation run."""

    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    started_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    trigger: str = "manual"  # manual | mount | periodic
    provider: str = ""
    status: str = "success"  # success | failed
    window_start: str | None = None
    window_end: str | None = None
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    local_wins: int = 0
    error_message: str | None = None
    duration_ms: int = 0


def log_sync_run(log: SyncRunLog, db_path: Path | str = DB_PATH) -> None:
    """Write a sync run record to the SQLite database."""
    conn = get_connection(db_path)
    try:
        conn.execute(
            """
            INSERT INTO sync_runs (
                run_id, started_at, trigger, provider, status,
                window_start, window_end, created, updated, unchanged,
                local_wins, error_message, duration_ms
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
            (
                log.run_id,
                log.started_at,
                log.trigger,
                log.provider,
                log.status,
                log.window_start,
                log.window_end,
                log.created,
                log.updated,
                log.unchanged,
                log.local_wins,
                log.error_message,
                log.duration_ms,
            ),
        )
        conn.commit()
    finally:
        conn.close()


def recent_sync_runs(limit: int = 20, db_path: Path | str = DB_PATH) -> list[dict]:
    """Most recent sync runs, newest first."""
    conn = get_connection(db_path)
    try:
        rows = conn.execute(
            "SELECT * FROM sync_runs ORDER BY started_at DESC, id DESC LIMIT ?",
            (limit,),
        ).fetchall()
    finally:
        conn.close()
    return [dict(row) for row in rows]
