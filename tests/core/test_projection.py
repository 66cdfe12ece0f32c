"""
Tests for LocalProjection - in-memory mirror of a record store.
"""

from datetime import date

import pytest

from instrument_booking.core.projection import LocalProjection
from instrument_booking.core.record_store import InMemoryRecordStore
from instrument_booking.models import RecordKind, ReservationRecord


@pytest.fixture
def store():
    return InMemoryRecordStore(RecordKind.RESERVATION)


@pytest.fixture
def projection(store):
    projection = LocalProjection(store).start()
    yield projection
    projection.close()


def wire(record_id, day="2025-03-04", start="09:00", end="10:00"):
    return {
        "id": record_id,
        "title": "HPLC Agilent 1 - Kim",
        "date": day,
        "start": f"{day}T{start}:00",
        "end": f"{day}T{end}:00",
        "instrument": "HPLC",
        "device": "Agilent 1",
        "user": "Kim",
        "purpose": "Assay",
        "userUUID": "client-a",
    }


class TestMirroring:
    """Snapshot application."""

    def test_start_applies_initial_snapshot(self, projection):
        assert projection.is_subscribed
        assert projection.generation == 1
        assert projection.records == ()

    def test_start_is_idempotent(self, store, projection):
        projection.start()
        assert store.subscriber_count == 1

    @pytest.mark.asyncio
    async def test_upsert_appears_as_typed_record(self, store, projection):
        await store.upsert("r-1", wire("r-1"))

        record = projection.get("r-1")
        assert isinstance(record, ReservationRecord)
        assert record.device_key.device == "Agilent 1"
        assert "r-1" in projection
        assert len(projection) == 1

    @pytest.mark.asyncio
    async def test_delete_removes_record(self, store, projection):
        await store.upsert("r-1", wire("r-1"))
        await store.delete("r-1")

        assert projection.get("r-1") is None
        assert projection.generation == 3

    @pytest.mark.asyncio
    async def test_records_on_orders_by_start(self, store, projection):
        await store.upsert("late", wire("late", start="15:00", end="16:00"))
        await store.upsert("early", wire("early", start="08:00", end="08:30"))
        await store.upsert("other", wire("other", day="2025-03-05"))

        assert [r.id for r in projection.records_on(date(2025, 3, 4))] == ["early", "late"]

    @pytest.mark.asyncio
    async def test_invalid_record_is_skipped_not_blocking(self, store, projection):
        await store.upsert("r-1", wire("r-1"))
        generation = projection.generation

        # Legacy row whose end precedes its start
        await store.upsert("legacy", wire("legacy", start="10:00", end="09:00"))

        assert projection.generation == generation + 1
        assert [r.id for r in projection.records] == ["r-1"]
        assert projection.rejected_ids == ("legacy",)
        assert "legacy" not in projection

    @pytest.mark.asyncio
    async def test_generation_advances_past_invalid_record(self, store):
        broken = wire("broken")
        del broken["userUUID"]
        await store.upsert("broken", broken)

        with LocalProjection(store) as projection:
            assert projection.generation == 1
            assert projection.records == ()
            assert projection.rejected_ids == ("broken",)

            await store.upsert("r-1", wire("r-1"))
            await store.upsert("r-2", wire("r-2", start="11:00", end="12:00"))

            assert projection.generation == 3
            assert sorted(r.id for r in projection.records) == ["r-1", "r-2"]
            assert projection.rejected_ids == ("broken",)

    @pytest.mark.asyncio
    async def test_rejected_ids_clear_once_record_is_fixed(self, store, projection):
        await store.upsert("legacy", wire("legacy", start="10:00", end="09:00"))
        await store.upsert("legacy", wire("legacy", start="09:00", end="10:00"))

        assert projection.rejected_ids == ()
        assert "legacy" in projection

    @pytest.mark.asyncio
    async def test_close_stops_updates(self, store, projection):
        projection.close()
        await store.upsert("r-1", wire("r-1"))

        assert not projection.is_subscribed
        assert projection.records == ()

    @pytest.mark.asyncio
    async def test_context_manager(self, store):
        with LocalProjection(store) as projection:
            await store.upsert("r-1", wire("r-1"))
            assert "r-1" in projection
        assert store.subscriber_count == 0


class TestListeners:

    @pytest.mark.asyncio
    async def test_listener_called_after_each_snapshot(self, store, projection):
        seen = []
        projection.add_listener(lambda p: seen.append(len(p)))

        await store.upsert("r-1", wire("r-1"))
        await store.upsert("r-2", wire("r-2", start="11:00", end="12:00"))

        assert seen == [1, 2]

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_block_update(self, store, projection):
        def broken(p):
            raise RuntimeError("redraw failed")

        projection.add_listener(broken)
        await store.upsert("r-1", wire("r-1"))
        assert "r-1" in projection

    @pytest.mark.asyncio
    async def test_removed_listener_not_called(self, store, projection):
        seen = []
        listener = seen.append
        projection.add_listener(listener)
        projection.remove_listener(listener)

        await store.upsert("r-1", wire("r-1"))
        assert seen == []


class TestKindChecks:

    def test_kind_defaults_to_store_kind(self, store):
        assert LocalProjection(store).kind == RecordKind.RESERVATION

    def test_kind_mismatch_rejected(self, store):
        with pytest.raises(ValueError):
            LocalProjection(store, RecordKind.MAINTENANCE)
