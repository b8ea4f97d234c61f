#!/usr/bin/env python3
"""
Print the calendars the sync can target.

With GRAPH_USER_ID set only that user's calendars are shown; otherwise every
user in the tenant is listed. Copy a printed calendar ID into
GRAPH_CALENDAR_ID to sync something other than the default calendar.

Usage:
    uv run python src/scripts/list_users_calendars.py
    uv run python src/scripts/list_users_calendars.py --all-users
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import GRAPH_USER_ID
from core.errors import SyncError
from core.graph_client import get_graph_client
from services.calendar import GraphCalendarProvider


async def print_calendars(graph, user_id: str) -> bool:
    provider = GraphCalendarProvider(graph=graph, user_id=user_id)
    try:
        calendars = await provider.list_calendars()
    except SyncError as e:
        print(f"  Could not read calendars: {e.user_message}")
        return False

    if not calendars:
        print("  (no calendars)")
        return True

    for cal in sorted(calendars, key=lambda c: not c["is_default"]):
        marker = "*" if cal["is_default"] else " "
        color = f"  [{cal['color']}]" if cal["color"] else ""
        print(f"  {marker} {cal['calendar_name']}{color}")
        print(f"      {cal['calendar_id']}")
    return True


async def main(all_users: bool = False) -> int:
    graph = get_graph_client()

    if GRAPH_USER_ID and not all_users:
        print(f"Calendars for {GRAPH_USER_ID} (* = default)\n")
        return 0 if await print_calendars(graph, GRAPH_USER_ID) else 1

    users_response = await graph.users.get()
    users = users_response.value if users_response.value else []
    print(f"{len(users)} users (* = default calendar)")

    failures = 0
    for user in users:
        print(f"\n{user.display_name} <{user.user_principal_name}>  id={user.id}")
        if not await print_calendars(graph, user.id):
            failures += 1

    return 1 if failures else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="List MS365 calendars available for sync")
    parser.add_argument(
        "--all-users",
        action="store_true",
        help="List every user in the tenant even when GRAPH_USER_ID is set",
    )
    args = parser.parse_args()
    sys.exit(asyncio.run(main(all_users=args.all_users)))
