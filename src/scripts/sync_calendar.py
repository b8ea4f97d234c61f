#!/usr/bin/env python3
"""
Pull events from the configured MS365 calendar into the local store.

Without --view the default sync window (30 days back, 90 ahead) is used.

Usage:
    uv run python src/scripts/sync_calendar.py
    uv run python src/scripts/sync_calendar.py --view month --date 2026-02-15
"""

import argparse
import asyncio
import sys
from datetime import date, datetime
from functools import partial
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import DB_PATH
from core.database import EventStore
from core.logging_config import setup_logging
from core.sync_log import log_sync_run
from services.calendar import build_provider_from_config
from services.events import CalendarService


def parse_date(date_str: str | None) -> date | None:
    if not date_str:
        return None
    return datetime.strptime(date_str, "%Y-%m-%d").date()


# =============================================================================
# MAIN
# =============================================================================


async def main(view: str | None = None, date_str: str | None = None) -> int:
    """Main entry point. Returns the process exit code."""
    provider = build_provider_from_config()
    if provider is None:
        print("No calendar provider configured (set GRAPH_USER_ID and Graph credentials).")
        return 1

    service = CalendarService(
        EventStore(DB_PATH),
        provider=provider,
        run_logger=partial(log_sync_run, db_path=DB_PATH),
    )

    window = None
    if view:
        anchor = parse_date(date_str) or datetime.now(service.tz).date()
        resolved = service.window(anchor, view)
        window = (resolved.start, resolved.end)
        print(f"Syncing {view} of {anchor}: {resolved.start} to {resolved.end}")
    else:
        print("Syncing default window")

    result = await service.scheduler.sync_now("manual", window=window)
    if result is None:
        print("Sync skipped")
        return 1
    if not result.ok:
        print(f"\nSync failed: {result.error.user_message if result.error else 'unknown error'}")
        return 1

    print(f"\nCreated: {result.created}")
    print(f"Updated: {result.updated}")
    print(f"Unchanged: {result.unchanged}")
    print(f"Local changes pushed: {result.local_wins}")
    if result.skipped:
        print(f"Skipped (invalid): {result.skipped}")

    for notice in service.notices.recent():
        print(f"  [{notice.level}] {notice.message}")

    print("\nDone!")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Sync the configured calendar into the local store")
    parser.add_argument("--view", choices=["day", "week", "month"], help="Limit the pull to one view window")
    parser.add_argument("--date", help="Anchor date for --view (YYYY-MM-DD). Defaults to today.")
    args = parser.parse_args()

    setup_logging()
    sys.exit(asyncio.run(main(args.view, args.date)))
