"""
Decides when reconciliation runs.

Triggers: manual (sync_now), mount (debounced, only when the last sync is
stale), and a periodic timer while the provider is connected. is_syncing is
the only exclusion mechanism; a trigger that arrives mid-sync is skipped.
"""

import asyncio
import time
from datetime import datetime, timedelta
from typing import Callable, Literal

from core.config import (
    MOUNT_SYNC_DEBOUNCE_SECONDS,
    SYNC_FUTURE_DAYS,
    SYNC_INTERVAL_SECONDS,
    SYNC_PAST_DAYS,
    SYNC_STALE_AFTER_SECONDS,
)
from core.database import utcnow
from core.logging_config import get_logger
from core.sync_log import SyncRunLog
from models.events import SyncState
from services.reconciler import PullResult, SyncReconciler

logger = get_logger(__name__)

Trigger = Literal["manual", "mount", "periodic"]
WindowProvider = Callable[[datetime], tuple[datetime, datetime]]


def default_sync_window(now: datetime) -> tuple[datetime, datetime]:
    """30 days back to 90 days ahead of now."""
    return now - timedelta(days=SYNC_PAST_DAYS), now + timedelta(days=SYNC_FUTURE_DAYS)


class SyncScheduler:
    """Owns SyncState and the cancellable sync tasks of one provider."""

    def __init__(
        self,
        reconciler: SyncReconciler | None,
        window: WindowProvider = default_sync_window,
        interval: float = SYNC_INTERVAL_SECONDS,
        stale_after: float = SYNC_STALE_AFTER_SECONDS,
        mount_debounce: float = MOUNT_SYNC_DEBOUNCE_SECONDS,
        clock: Callable[[], datetime] = utcnow,
        run_logger: Callable[[SyncRunLog], None] | None = None,
    ):
        self.reconciler = reconciler
        self.window = window
        self.interval = interval
        self.stale_after = stale_after
        self.mount_debounce = mount_debounce
        self.clock = clock
        self.run_logger = run_logger

        self.state = SyncState()
        self._timer: asyncio.Task | None = None
        self._mount_task: asyncio.Task | None = None
        self._mounted = False
        self._has_auto_synced = False
        self._disconnected_by_user = False

    @property
    def provider_name(self) -> str | None:
        return self.reconciler.provider_name if self.reconciler else None

    @property
    def is_connected(self) -> bool:
        name = self.provider_name
        return bool(name and self.state.connected.get(name))

    @property
    def timer_running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def is_stale(self) -> bool:
        last = self.state.last_synced_at
        if last is None:
            return True
        return self.clock() - last > timedelta(seconds=self.stale_after)

    # =========================================================================
    # Connection
    # =========================================================================

    def connect(self) -> None:
        """Mark the provider connected; starts the timer if a view is mounted."""
        if self.provider_name is None:
            return
        self._disconnected_by_user = False
        self.state.connected[self.provider_name] = True
        if self._mounted:
            self.start_timer()

    def disconnect(self) -> None:
        """
        Disconnect the provider and cancel all pending sync tasks.

        Stays disconnected until connect(); a successful manual sync does not
        reconnect it.
        """
        self._disconnected_by_user = True
        self._drop_connection()

    def _drop_connection(self) -> None:
        if self.provider_name is not None:
            self.state.connected[self.provider_name] = False
        self._cancel_tasks()

    # =========================================================================
    # Reconciliation
    # =========================================================================

    async def sync_now(
        self,
        trigger: Trigger = "manual",
        window: tuple[datetime, datetime] | None = None,
    ) -> PullResult | None:
        """
        Run one pull reconciliation; None when skipped.

        last_synced_at moves only on success. A 401 marks the provider
        disconnected; a later successful sync reconnects it unless
        disconnect() was called.
        """
        if self.reconciler is None:
            logger.debug("sync_skipped_no_provider", trigger=trigger)
            return None
        if self.state.is_syncing:
            logger.debug("sync_skipped_in_progress", trigger=trigger)
            return None

        # Set before the first await so a concurrent trigger sees it
        self.state.is_syncing = True
        start, end = window or self.window(self.clock())
        run_log = SyncRunLog(
            trigger=trigger,
            provider=self.reconciler.provider_name,
            window_start=start.isoformat(),
            window_end=end.isoformat(),
        )
        started = time.monotonic()
        logger.info("sync_started", trigger=trigger, provider=run_log.provider)

        try:
            result = await self.reconciler.pull(start, end)
        finally:
            self.state.is_syncing = False

        if result.ok:
            self.state.last_synced_at = self.clock()
            self.state.last_error = None
            if not self.is_connected and not self._disconnected_by_user:
                self.connect()
        else:
            self.state.last_error = result.error.user_message if result.error else "Sync failed"
            if result.error is not None and result.error.is_auth_failure:
                logger.warning("sync_provider_disconnected", provider=run_log.provider)
                self._drop_connection()

        run_log.status = "success" if result.ok else "failed"
        run_log.created = result.created
        run_log.updated = result.updated
        run_log.unchanged = result.unchanged
        run_log.local_wins = result.local_wins
        run_log.error_message = str(result.error) if result.error else None
        run_log.duration_ms = int((time.monotonic() - started) * 1000)
        self._record(run_log)

        return result

    def _record(self, run_log: SyncRunLog) -> None:
        if self.run_logger is None:
            return
        try:
            self.run_logger(run_log)
        except Exception as e:
            # Losing an audit row must not fail the sync
            logger.warning("sync_run_log_failed", run_id=run_log.run_id, error=str(e))

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def mount(self) -> bool:
        """
        A calendar view became active.

        Starts the periodic timer and, once per mount, schedules a debounced
        sync when the last one is older than stale_after. Returns True when
        the auto-sync was scheduled.
        """
        self._mounted = True
        if not self.is_connected:
            return False

        self.start_timer()
        if self._has_auto_synced or self.state.is_syncing or not self.is_stale():
            return False

        self._has_auto_synced = True
        self._mount_task = asyncio.create_task(self._mount_sync())
        return True

    async def unmount(self) -> None:
        """Tear down: cancel the timer and any pending mount sync, and wait for them."""
        self._mounted = False
        self._has_auto_synced = False
        tasks = self._cancel_tasks()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def start_timer(self) -> None:
        if self.timer_running or not self.is_connected:
            return
        self._timer = asyncio.create_task(self._run_periodic())

    def _cancel_tasks(self) -> list[asyncio.Task]:
        cancelled = []
        for task in (self._timer, self._mount_task):
            if task is not None and not task.done():
                task.cancel()
                cancelled.append(task)
        self._timer = None
        self._mount_task = None
        return cancelled

    async def _mount_sync(self) -> None:
        await asyncio.sleep(self.mount_debounce)
        await self.sync_now("mount")

    async def _run_periodic(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            if self.state.is_syncing:
                logger.debug("sync_tick_skipped", reason="in_progress")
                continue
            try:
                await self.sync_now("periodic")
            except Exception:
                logger.exception("sync_periodic_failed")
