"""
Configuration constants and environment setup.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# PATHS
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent.parent
DB_PATH = Path(os.environ.get("CALENDAR_DB_PATH", PROJECT_ROOT / "data" / "db" / "calendar.db"))

# =============================================================================
# CALENDAR CONFIGURATION
# =============================================================================

CALENDAR_TIMEZONE = os.environ.get("CALENDAR_TIMEZONE", "UTC")
WEEK_STARTS_ON = int(os.environ.get("CALENDAR_WEEK_STARTS_ON", "0"))  # 0 = Sunday

LOCAL_SOURCE = "local"
PROVIDER_SOURCES = {"google", "outlook", "apple", "notion"}

VALID_REPEAT_VALUES = {"none", "daily", "weekly", "monthly", "yearly"}
VALID_EVENT_COLORS = {"blue", "green", "purple", "pink", "yellow"}
DEFAULT_EVENT_COLOR = "blue"

# =============================================================================
# LAYOUT CONFIGURATION
# =============================================================================

HOUR_HEIGHT_PX = 60
MIN_EVENT_HEIGHT_PX = HOUR_HEIGHT_PX / 2  # Floor height so short events stay legible
MONTH_CELL_MAX_EVENTS = 3

# =============================================================================
# SYNC CONFIGURATION
# =============================================================================

SYNC_INTERVAL_SECONDS = 5 * 60
SYNC_STALE_AFTER_SECONDS = 5 * 60
MOUNT_SYNC_DEBOUNCE_SECONDS = 0.5
SYNC_PAST_DAYS = 30
SYNC_FUTURE_DAYS = 90
NOTICE_HISTORY_SIZE = 50

# =============================================================================
# MS GRAPH CREDENTIALS (from environment)
# =============================================================================

GRAPH_TENANT_ID = os.environ.get("MICROSOFT_GRAPH_TENANT_ID", "")
GRAPH_APP_ID = os.environ.get("MICROSOFT_GRAPH_APP_ID", "")
GRAPH_CLIENT_SECRET = os.environ.get("MICROSOFT_GRAPH_CLIENT_SECRET", "")
GRAPH_ACCESS_TOKEN = os.environ.get("GRAPH_ACCESS_TOKEN", "")
GRAPH_USER_ID = os.environ.get("GRAPH_USER_ID", "")
GRAPH_CALENDAR_ID = os.environ.get("GRAPH_CALENDAR_ID", "")  # Empty = user's default calendar
GRAPH_PAGE_SIZE = 100
GRAPH_PROVIDER_NAME = "outlook"

# =============================================================================
# LOGGING
# =============================================================================

LOG_LEVEL = os.environ.get("CALENDAR_LOG_LEVEL", "INFO")
LOG_JSON = os.environ.get("CALENDAR_LOG_FORMAT", "").lower() == "json"

# =============================================================================
# API CONFIGURATION
# =============================================================================

CALENDAR_API_KEY = os.environ.get("CALENDAR_API_KEY", "")
API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "8000"))
API_DEBUG = os.environ.get("API_DEBUG", "false").lower() == "true"
API_VERSION = "1.0.0"
