"""
Tests for pull/push reconciliation against the in-memory provider.
"""

import asyncio

import pytest

from core.errors import ValidationError

from conftest import utc
from fixtures.generate_events import generate_remote_payloads

WINDOW = (utc(2026, 1, 1), utc(2026, 4, 1))


def all_events(store):
    return store.query(*WINDOW)


class TestPull:
    @pytest.mark.asyncio
    async def test_imports_new_events_once(self, reconciler, provider, store):
        provider.add("X", title="Kickoff", start_time=utc(2026, 2, 16, 9), end_time=utc(2026, 2, 16, 10))
        provider.add("Y", title="Retro", start_time=utc(2026, 2, 20, 15), end_time=utc(2026, 2, 20, 16))

        first = await reconciler.pull(*WINDOW)
        after_first = all_events(store)
        second = await reconciler.pull(*WINDOW)
        after_second = all_events(store)

        assert first.ok and first.created == 2
        assert second.created == 0
        assert second.unchanged == 2
        assert after_second == after_first
        assert sorted((e.source, e.external_id) for e in after_second) == [("outlook", "X"), ("outlook", "Y")]

    @pytest.mark.asyncio
    async def test_repeated_pull_of_many_events_is_stable(self, reconciler, provider, store):
        for payload in generate_remote_payloads(30, utc(2026, 2, 1), seed=7):
            provider.add(**payload)

        await reconciler.pull(*WINDOW)
        snapshot = {e.id: e.updated_at for e in all_events(store)}
        result = await reconciler.pull(*WINDOW)

        assert len(snapshot) == 30
        assert result.unchanged == 30
        assert {e.id: e.updated_at for e in all_events(store)} == snapshot

    @pytest.mark.asyncio
    async def test_remote_change_updates_local(self, reconciler, provider, store, clock):
        provider.add("X", title="Kickoff", start_time=utc(2026, 2, 16, 9), end_time=utc(2026, 2, 16, 10))
        await reconciler.pull(*WINDOW)
        local = store.get_by_external_id("outlook", "X")

        clock.advance(minutes=10)
        provider.add("X", title="Kickoff (moved)", start_time=utc(2026, 2, 16, 11), end_time=utc(2026, 2, 16, 12))
        result = await reconciler.pull(*WINDOW)

        updated = store.get_by_external_id("outlook", "X")
        assert result.updated == 1
        assert updated.id == local.id
        assert updated.title == "Kickoff (moved)"
        assert updated.start_time == utc(2026, 2, 16, 11)
        assert updated.updated_at > local.updated_at

    @pytest.mark.asyncio
    async def test_never_deletes_missing_remote_events(self, reconciler, provider, store):
        provider.add("X", title="Kickoff", start_time=utc(2026, 2, 16, 9), end_time=utc(2026, 2, 16, 10))
        await reconciler.pull(*WINDOW)

        provider.events.clear()
        await reconciler.pull(*WINDOW)

        assert len(all_events(store)) == 1

    @pytest.mark.asyncio
    async def test_invalid_remote_event_skipped(self, reconciler, provider, store):
        provider.add("bad", title="Backwards", start_time=utc(2026, 2, 16, 10), end_time=utc(2026, 2, 16, 10))
        provider.events["bad"].start_time = utc(2026, 2, 16, 11)
        provider.add("good", title="Fine", start_time=utc(2026, 2, 16, 9), end_time=utc(2026, 2, 16, 10))

        result = await reconciler.pull(utc(2026, 2, 16), utc(2026, 2, 17))

        assert result.skipped == 1
        assert result.created == 1
        assert store.get_by_external_id("outlook", "bad") is None

    @pytest.mark.asyncio
    async def test_provider_failure_becomes_notice(self, reconciler, provider, store, notices):
        provider.fail("list", status_code=503)

        result = await reconciler.pull(*WINDOW)

        assert not result.ok
        assert result.error.status_code == 503
        assert notices.recent()[-1].level == "error"
        assert "Unable to connect" in notices.recent()[-1].message
        assert all_events(store) == []


class TestLastWriteWins:
    @pytest.mark.asyncio
    async def test_newer_local_edit_is_pushed(self, reconciler, provider, store, clock):
        provider.add("X", title="Kickoff", start_time=utc(2026, 2, 16, 9), end_time=utc(2026, 2, 16, 10))
        await reconciler.pull(*WINDOW)
        local = store.get_by_external_id("outlook", "X")

        # Local edit whose push failed earlier
        clock.advance(minutes=5)
        store.update(local.id, {"title": "Kickoff (local)"})

        result = await reconciler.pull(*WINDOW)

        assert result.local_wins == 1
        assert store.get_by_id(local.id).title == "Kickoff (local)"
        assert provider.events["X"].title == "Kickoff (local)"
        assert ("update", "X") in provider.calls

    @pytest.mark.asyncio
    async def test_failed_resend_posts_notice(self, reconciler, provider, store, clock, notices):
        provider.add("X", title="Kickoff", start_time=utc(2026, 2, 16, 9), end_time=utc(2026, 2, 16, 10))
        await reconciler.pull(*WINDOW)
        local = store.get_by_external_id("outlook", "X")

        clock.advance(minutes=5)
        store.update(local.id, {"title": "Kickoff (local)"})
        provider.fail("update", status_code=429)

        result = await reconciler.pull(*WINDOW)

        notice = notices.recent()[-1]
        assert result.ok and result.local_wins == 1
        assert notice.level == "warning"
        assert notice.event_id == local.id
        assert notice.message.startswith('Could not send "Kickoff (local)" to outlook')
        assert "Too many requests" in notice.message

    @pytest.mark.asyncio
    async def test_newer_remote_edit_wins(self, reconciler, provider, store, clock):
        provider.add("X", title="Kickoff", start_time=utc(2026, 2, 16, 9), end_time=utc(2026, 2, 16, 10))
        await reconciler.pull(*WINDOW)
        local = store.get_by_external_id("outlook", "X")

        clock.advance(minutes=5)
        store.update(local.id, {"title": "Kickoff (local)"})
        clock.advance(minutes=5)
        provider.add("X", title="Kickoff (remote)", start_time=utc(2026, 2, 16, 9), end_time=utc(2026, 2, 16, 10))

        result = await reconciler.pull(*WINDOW)

        assert result.updated == 1
        assert store.get_by_id(local.id).title == "Kickoff (remote)"
        assert ("update", "X") not in provider.calls

    @pytest.mark.asyncio
    async def test_tie_goes_to_provider(self, reconciler, provider, store, clock):
        provider.add("X", title="Kickoff", start_time=utc(2026, 2, 16, 9), end_time=utc(2026, 2, 16, 10))
        await reconciler.pull(*WINDOW)
        local = store.get_by_external_id("outlook", "X")

        provider.add(
            "X",
            title="Kickoff (remote)",
            start_time=utc(2026, 2, 16, 9),
            end_time=utc(2026, 2, 16, 10),
            updated_at=local.updated_at,
        )
        await reconciler.pull(*WINDOW)

        assert store.get_by_id(local.id).title == "Kickoff (remote)"

    @pytest.mark.asyncio
    async def test_newer_local_delete_is_pushed(self, reconciler, provider, store, clock):
        provider.add("X", title="Kickoff", start_time=utc(2026, 2, 16, 9), end_time=utc(2026, 2, 16, 10))
        await reconciler.pull(*WINDOW)
        local = store.get_by_external_id("outlook", "X")

        clock.advance(minutes=5)
        store.soft_delete(local.id)
        await reconciler.pull(*WINDOW)

        assert "X" not in provider.events
        assert store.get_by_id(local.id).is_deleted

    @pytest.mark.asyncio
    async def test_newer_remote_edit_restores_deleted(self, reconciler, provider, store, clock):
        provider.add("X", title="Kickoff", start_time=utc(2026, 2, 16, 9), end_time=utc(2026, 2, 16, 10))
        await reconciler.pull(*WINDOW)
        local = store.get_by_external_id("outlook", "X")

        clock.advance(minutes=5)
        store.soft_delete(local.id)
        clock.advance(minutes=5)
        provider.add("X", title="Kickoff v2", start_time=utc(2026, 2, 16, 9), end_time=utc(2026, 2, 16, 10))
        await reconciler.pull(*WINDOW)

        restored = store.get_by_id(local.id)
        assert not restored.is_deleted
        assert restored.title == "Kickoff v2"


class TestPush:
    @pytest.mark.asyncio
    async def test_create_adopts_provider_identity(self, reconciler, provider, store, make_event):
        event = make_event()

        outcome = await reconciler.push_create(event)

        assert outcome.status == "synced"
        stored = store.get_by_id(event.id)
        assert stored.source == "outlook"
        assert stored.external_id in provider.events

        # The next pull matches the mirrored record instead of importing a copy
        result = await reconciler.pull(*WINDOW)
        assert result.created == 0
        assert len(all_events(store)) == 1

    @pytest.mark.asyncio
    async def test_create_failure_keeps_local_event(self, reconciler, provider, store, make_event):
        provider.fail("create", status_code=500)
        event = make_event()

        outcome = await reconciler.push_create(event)

        assert outcome.failed
        assert outcome.error.status_code == 500
        assert store.get_by_id(event.id).source == "local"

    @pytest.mark.asyncio
    async def test_create_imported_by_concurrent_pull_is_merged(self, reconciler, provider, store, make_event):
        event = make_event()
        release = provider.hold_create()

        pushing = asyncio.create_task(reconciler.push_create(event))
        while not provider.events:
            await asyncio.sleep(0)
        pulled = await reconciler.pull(*WINDOW)
        release.set()
        outcome = await pushing

        live = all_events(store)
        assert pulled.created == 1
        assert outcome.status == "synced"
        assert [(e.source, e.external_id) for e in live] == [("outlook", "remote-1")]
        assert outcome.event.id == live[0].id
        assert store.get_by_id(event.id).is_deleted

    @pytest.mark.asyncio
    async def test_store_conflict_on_adoption_degrades_to_failed_push(self, reconciler, store, make_event, monkeypatch):
        event = make_event()

        def conflicting_update(event_id, patch):
            raise ValidationError("Event conflicts with an existing record")

        monkeypatch.setattr(store, "update", conflicting_update)

        outcome = await reconciler.push_create(event)

        assert outcome.failed
        assert outcome.error.operation == "create"
        assert "conflicts" in outcome.error.user_message

    @pytest.mark.asyncio
    async def test_local_events_never_pushed(self, reconciler, provider, make_event):
        event = make_event()

        update = await reconciler.push_update(event)
        delete = await reconciler.push_delete(event)

        assert update.status == delete.status == "skipped"
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_delete_failure_keeps_local_delete(self, reconciler, provider, store, make_event):
        event = make_event(source="outlook", external_id="E")
        provider.add("E", title=event.title, start_time=event.start_time, end_time=event.end_time)
        store.soft_delete(event.id)
        provider.fail("delete", status_code=500)

        outcome = await reconciler.push_delete(store.get_by_id(event.id))

        assert outcome.failed
        assert outcome.error.status_code == 500
        assert store.get_by_id(event.id).is_deleted
        # No retry was attempted
        assert provider.calls == [("delete", "E")]

    @pytest.mark.asyncio
    async def test_remote_missing_is_resolved(self, reconciler, provider, store, make_event):
        event = make_event(source="outlook", external_id="gone")

        update = await reconciler.push_update(event)
        delete = await reconciler.push_delete(event)

        assert update.status == "resolved"
        assert delete.status == "resolved"
        assert not update.failed
        assert store.get_by_id(event.id).title == event.title
