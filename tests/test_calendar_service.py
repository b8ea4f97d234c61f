"""
Tests for CalendarService mutations and their advisory notices.
"""

import asyncio
from datetime import date
from zoneinfo import ZoneInfo

import pytest

from core.errors import EventNotFoundError, ValidationError
from services.events import CalendarService

from conftest import utc


@pytest.fixture
def service(store, provider, notices):
    return CalendarService(store, provider=provider, notices=notices, tz=ZoneInfo("UTC"), week_starts_on=0)


@pytest.fixture
def synced_event(service, provider):
    """A provider-sourced event present on both sides."""
    provider.add("E", title="Standup", start_time=utc(2026, 2, 16, 9), end_time=utc(2026, 2, 16, 9, 15))
    return service.store.upsert_by_source_and_external_id(
        "outlook", "E", provider.events["E"].synced_fields()
    )


class TestCreate:
    @pytest.mark.asyncio
    async def test_not_mirrored_while_disconnected(self, service, provider, sample_event):
        result = await service.create_event(sample_event)

        assert result.push is None
        assert result.message == "Event created successfully"
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_source_is_always_local(self, service, sample_event):
        with pytest.raises(ValidationError):
            await service.create_event({**sample_event, "source": "outlook", "external_id": "X"})

    @pytest.mark.asyncio
    async def test_validation_blocks_write(self, service, sample_event):
        with pytest.raises(ValidationError):
            await service.create_event({**sample_event, "color": "orange"})

        assert service.events_in_view(date(2026, 2, 15), "week")[1] == []

    @pytest.mark.asyncio
    async def test_sync_during_mirrored_create(self, service, provider, sample_event):
        service.scheduler.connect()
        release = provider.hold_create()

        creating = asyncio.create_task(service.create_event(sample_event))
        while not provider.events:
            await asyncio.sleep(0)
        pulled = await service.scheduler.sync_now(window=(utc(2026, 2, 1), utc(2026, 3, 1)))
        release.set()
        result = await creating

        _, live = service.events_in_view(date(2026, 2, 15), "week")
        assert pulled.created == 1
        assert result.message == "Event synced to outlook"
        assert [(e.source, e.external_id, e.title) for e in live] == [("outlook", "remote-1", "Design review")]
        assert result.event.id == live[0].id


class TestUpdateAndDelete:
    @pytest.mark.asyncio
    async def test_update_pushed(self, service, provider, synced_event, notices):
        result = await service.update_event(synced_event.id, {"title": "Standup (moved)"})

        assert result.message == "Event updated and synced to outlook"
        assert provider.events["E"].title == "Standup (moved)"
        assert notices.recent()[-1].message == result.message

    @pytest.mark.asyncio
    async def test_update_push_failure(self, service, provider, synced_event):
        provider.fail("update", status_code=503)

        result = await service.update_event(synced_event.id, {"title": "Standup (moved)"})

        assert result.message.startswith("Event updated locally. Unable to connect")
        assert service.get_event(synced_event.id).title == "Standup (moved)"

    @pytest.mark.asyncio
    async def test_update_rejects_inverted_interval(self, service, synced_event):
        with pytest.raises(ValidationError):
            await service.update_event(synced_event.id, {"end_time": utc(2026, 2, 16, 8)})

        assert service.get_event(synced_event.id).end_time == utc(2026, 2, 16, 9, 15)

    @pytest.mark.asyncio
    async def test_delete_push_failure_keeps_delete(self, service, provider, synced_event, notices):
        provider.fail("delete", status_code=500)

        result = await service.delete_event(synced_event.id)

        assert result.message == "Event deleted locally. delete failed with 500"
        assert result.event.is_deleted
        assert notices.recent()[-1].level == "warning"
        assert "E" in provider.events
        with pytest.raises(EventNotFoundError):
            service.get_event(synced_event.id)

    @pytest.mark.asyncio
    async def test_local_delete_not_pushed(self, service, provider, make_event):
        event = make_event()

        result = await service.delete_event(event.id)

        assert result.message == "Event deleted successfully"
        assert provider.calls == []


class TestReads:
    def test_day_layout_and_month_grid(self, service, make_event):
        make_event(start_time=utc(2026, 2, 15, 9), end_time=utc(2026, 2, 15, 10))
        make_event(start_time=utc(2026, 2, 15, 9, 30), end_time=utc(2026, 2, 15, 10, 30))

        layouts = service.day_layout(date(2026, 2, 15))
        rows = service.month_grid(date(2026, 2, 15), today=date(2026, 2, 15))

        assert [l.column_count for l in layouts] == [2, 2]
        assert len(rows[2][0].events) == 2

    @pytest.mark.asyncio
    async def test_drag_session(self, service, make_event):
        event = make_event(start_time=utc(2026, 2, 15, 14), end_time=utc(2026, 2, 15, 15))
        drag = service.drag_session(snap_minutes=30)

        drag.begin(event.id)
        drag.move_to(utc(2026, 2, 15, 16, 10))
        result = await drag.commit()

        assert result.event.start_time == utc(2026, 2, 15, 16)
        assert result.event.end_time == utc(2026, 2, 15, 17)
