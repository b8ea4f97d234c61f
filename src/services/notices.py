"""Advisory notices surfaced to the user (sync results, local-only saves)."""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

from core.config import NOTICE_HISTORY_SIZE

NoticeLevel = Literal["info", "success", "warning", "error"]


@dataclass
class Notice:
    level: NoticeLevel
    message: str
    event_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class NoticeBoard:
    """Bounded, newest-last history of notices."""

    def __init__(self, max_size: int = NOTICE_HISTORY_SIZE):
        self._notices: deque[Notice] = deque(maxlen=max_size)

    def post(self, level: NoticeLevel, message: str, event_id: str | None = None) -> Notice:
        notice = Notice(level=level, message=message, event_id=event_id)
        self._notices.append(notice)
        return notice

    def recent(self, limit: int | None = None) -> list[Notice]:
        notices = list(self._notices)
        return notices[-limit:] if limit else notices

    def clear(self) -> None:
        self._notices.clear()

    def __len__(self) -> int:
        return len(self._notices)
