#!/usr/bin/env python3
"""Create the calendar SQLite3 database with events and sync run tables."""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import DB_PATH
from core.database import create_tables, get_connection


def create_database(db_path: Path = DB_PATH) -> Path:
    """Create the database and tables if they don't exist."""
    # Ensure directory exists
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = get_connection(db_path)
    try:
        create_tables(conn)
    finally:
        conn.close()
    return db_path


if __name__ == "__main__":
    path = create_database()
    print(f"Database created successfully at: {path}")
