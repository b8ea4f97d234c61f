"""
Local-first reconciliation between the EventStore and a remote provider.

Pull imports remote events keyed by (source, external_id). Push propagates
local mutations outward after they are committed; a failed push never rolls
anything back and is not retried until the next pull finds the local side
newer.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from core.database import EventStore
from core.errors import EventNotFoundError, NotFoundError, SyncError, ValidationError
from core.logging_config import get_logger
from models.events import CalendarEvent, RemoteEvent
from services.calendar import CalendarProvider
from services.notices import NoticeBoard

logger = get_logger(__name__)

PushStatus = Literal["synced", "resolved", "skipped", "failed"]


@dataclass
class PullResult:
    """Counts from one pull. ok is False when the provider could not be read."""

    ok: bool = True
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    local_wins: int = 0
    skipped: int = 0
    error: SyncError | None = None

    @property
    def total(self) -> int:
        return self.created + self.updated + self.unchanged + self.local_wins + self.skipped


@dataclass
class PushOutcome:
    operation: str
    status: PushStatus
    event: CalendarEvent | None = None
    error: SyncError | None = None

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    def failure_message(self, local_only: str) -> str:
        """Notice text for a push that failed after the local write."""
        if self.error is None:
            return local_only
        return f"{local_only}. {self.error.user_message}"


def remote_fields(remote: RemoteEvent) -> dict:
    """Store payload for a remote event. A pulled event is never deleted."""
    return {**remote.synced_fields(), "is_deleted": False}


def differs(local: CalendarEvent, fields: dict) -> bool:
    return any(getattr(local, name) != value for name, value in fields.items())


def local_wins(local: CalendarEvent, remote: RemoteEvent) -> bool:
    """Last-write-wins on updated_at; ties and unknown remote times go to the provider."""
    if remote.updated_at is None:
        return False
    return local.updated_at > remote.updated_at


class SyncReconciler:
    """Reconciles one provider's events with the local store."""

    def __init__(
        self,
        store: EventStore,
        provider: CalendarProvider,
        notices: NoticeBoard | None = None,
    ):
        self.store = store
        self.provider = provider
        self.notices = notices if notices is not None else NoticeBoard()

    @property
    def provider_name(self) -> str:
        return self.provider.provider_name

    # =========================================================================
    # Pull
    # =========================================================================

    async def pull(self, start: datetime, end: datetime) -> PullResult:
        """
        Import provider events in [start, end].

        Never deletes local records missing remotely. Safe to repeat: an
        unchanged remote set creates nothing and leaves updated_at alone.
        """
        result = PullResult()
        try:
            remote_events = await self.provider.list_events(start, end)
        except SyncError as e:
            logger.warning(
                "sync_pull_failed",
                provider=self.provider_name,
                status_code=e.status_code,
                error=str(e),
            )
            self.notices.post("error", e.user_message)
            result.ok = False
            result.error = e
            return result

        seen: set[str] = set()
        for remote in remote_events:
            if remote.external_id in seen:
                continue
            seen.add(remote.external_id)

            if remote.start_time > remote.end_time:
                logger.warning(
                    "sync_remote_event_invalid",
                    provider=self.provider_name,
                    external_id=remote.external_id,
                )
                result.skipped += 1
                continue

            try:
                await self._reconcile_one(remote, result)
            except ValidationError as e:
                logger.warning(
                    "sync_remote_event_rejected",
                    provider=self.provider_name,
                    external_id=remote.external_id,
                    details=e.details,
                )
                result.skipped += 1

        logger.info(
            "sync_pull_completed",
            provider=self.provider_name,
            created=result.created,
            updated=result.updated,
            unchanged=result.unchanged,
            local_wins=result.local_wins,
            skipped=result.skipped,
        )
        return result

    async def _reconcile_one(self, remote: RemoteEvent, result: PullResult) -> None:
        source = self.provider_name
        fields = remote_fields(remote)
        local = self.store.get_by_external_id(source, remote.external_id)

        if local is None:
            self.store.upsert_by_source_and_external_id(source, remote.external_id, fields)
            result.created += 1
            return

        if not differs(local, fields):
            result.unchanged += 1
            return

        if local_wins(local, remote):
            # Local edit is newer: re-send it (retry path for failed pushes)
            result.local_wins += 1
            if local.is_deleted:
                push = await self.push_delete(local)
            else:
                push = await self.push_update(local)
            if push.failed:
                self.notices.post(
                    "warning",
                    push.failure_message(f'Could not send "{local.title}" to {source}'),
                    event_id=local.id,
                )
            return

        self.store.upsert_by_source_and_external_id(source, remote.external_id, fields)
        result.updated += 1

    # =========================================================================
    # Push
    # =========================================================================

    def _push_failed(self, operation: str, event: CalendarEvent, error: SyncError) -> PushOutcome:
        logger.warning(
            "sync_push_failed",
            provider=self.provider_name,
            operation=operation,
            event_id=event.id,
            status_code=error.status_code,
            error=str(error),
        )
        return PushOutcome(operation=operation, status="failed", event=event, error=error)

    async def push_create(self, event: CalendarEvent) -> PushOutcome:
        """
        Mirror a newly created local event to the provider.

        On success the local record adopts the provider as its source so the
        next pull matches it instead of importing a duplicate.
        """
        if event.external_id:
            return PushOutcome(operation="create", status="skipped", event=event)

        try:
            remote = await self.provider.create_event(event)
        except SyncError as e:
            return self._push_failed("create", event, e)

        try:
            adopted = self._adopt(event, remote.external_id)
        except (ValidationError, EventNotFoundError) as e:
            error = SyncError(str(e), operation="create", provider=self.provider_name)
            return self._push_failed("create", event, error)

        logger.info(
            "sync_push_created",
            provider=self.provider_name,
            event_id=event.id,
            external_id=remote.external_id,
        )
        return PushOutcome(operation="create", status="synced", event=adopted)

    def _adopt(self, event: CalendarEvent, external_id: str) -> CalendarEvent:
        """
        Give the local record the provider identity of its mirrored copy.

        A pull that ran while the create was in flight may already have
        imported the copy. That row keeps the identity and the local twin is
        soft-deleted, leaving one live record.
        """
        imported = self.store.get_by_external_id(self.provider_name, external_id)
        if imported is None or imported.id == event.id:
            return self.store.update(
                event.id, {"source": self.provider_name, "external_id": external_id}
            )

        self.store.soft_delete(event.id)
        logger.info(
            "sync_push_create_merged",
            provider=self.provider_name,
            event_id=event.id,
            kept_id=imported.id,
        )
        return imported

    async def push_update(self, event: CalendarEvent) -> PushOutcome:
        """Propagate a local edit of a provider-sourced event."""
        if event.is_local or not event.external_id:
            return PushOutcome(operation="update", status="skipped", event=event)

        try:
            await self.provider.update_event(event.external_id, event)
        except NotFoundError:
            logger.debug(
                "sync_push_remote_missing",
                provider=self.provider_name,
                operation="update",
                external_id=event.external_id,
            )
            return PushOutcome(operation="update", status="resolved", event=event)
        except SyncError as e:
            return self._push_failed("update", event, e)

        logger.info("sync_push_updated", provider=self.provider_name, event_id=event.id)
        return PushOutcome(operation="update", status="synced", event=event)

    async def push_delete(self, event: CalendarEvent) -> PushOutcome:
        """Propagate a local soft delete of a provider-sourced event."""
        if event.is_local or not event.external_id:
            return PushOutcome(operation="delete", status="skipped", event=event)

        try:
            await self.provider.delete_event(event.external_id)
        except NotFoundError:
            logger.debug(
                "sync_push_remote_missing",
                provider=self.provider_name,
                operation="delete",
                external_id=event.external_id,
            )
            return PushOutcome(operation="delete", status="resolved", event=event)
        except SyncError as e:
            return self._push_failed("delete", event, e)

        logger.info("sync_push_deleted", provider=self.provider_name, event_id=event.id)
        return PushOutcome(operation="delete", status="synced", event=event)
