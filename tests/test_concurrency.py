"""
Concurrency tests: several clients sharing one pair of stores.

Writes are optimistic and unversioned. These tests pin down the observable
outcome: concurrent edits of one id both succeed, the write processed last
is what every client converges to, and deletions reach every subscriber.
"""

import asyncio
from datetime import date

import pytest

from instrument_booking.config.settings import DEFAULT_CATALOG_FILE
from instrument_booking.core.catalog import ResourceCatalog
from instrument_booking.core.identity import StaticIdentityProvider
from instrument_booking.core.projection import LocalProjection
from instrument_booking.core.record_store import create_maintenance_store, create_reservation_store
from instrument_booking.managers import BookingController, BookingState
from instrument_booking.models import RecordKind

DAY = date(2025, 3, 4)


@pytest.fixture
def stores():
    return (
        create_reservation_store(write_latency=0.01),
        create_maintenance_store(write_latency=0.01),
    )


@pytest.fixture
def clients(stores):
    """Three controllers with distinct identities on the same stores."""
    catalog = ResourceCatalog.from_yaml(DEFAULT_CATALOG_FILE)
    reservation_store, maintenance_store = stores
    controllers = [
        BookingController(
            reservations=LocalProjection(reservation_store).start(),
            maintenances=LocalProjection(maintenance_store).start(),
            identity_provider=StaticIdentityProvider(f"client-{name}"),
            confirm=lambda prompt: True,
            catalog=catalog,
        )
        for name in ("a", "b", "c")
    ]
    yield controllers
    for controller in controllers:
        controller.close()


def fill(controller, start, end, purpose):
    controller.select_resource("ICP-MS", "Agilent")
    controller.select_slot(DAY, start, end)
    controller.update_fields(owner_name="Lab", purpose=purpose)


@pytest.mark.asyncio
async def test_concurrent_edits_last_write_wins(stores, clients):
    _, maintenance_store = stores
    a, b, c = clients

    a.set_mode(RecordKind.MAINTENANCE)
    fill(a, "09:00", "12:00", "Torch cleaning")
    window = await a.submit()

    b.activate_for_edit(c.projection(RecordKind.MAINTENANCE).get(window.id))
    c.activate_for_edit(c.projection(RecordKind.MAINTENANCE).get(window.id))
    b.update_fields(purpose="Cone replacement")
    c.update_fields(purpose="Nebulizer swap")

    results = await asyncio.gather(b.submit(), c.submit())

    assert all(r is not None and r.id == window.id for r in results)
    assert b.state == BookingState.IDLE
    assert c.state == BookingState.IDLE

    last = maintenance_store.journal[-1]
    assert last.record_id == window.id
    assert maintenance_store.get(window.id) == last.data
    for client in clients:
        projected = client.projection(RecordKind.MAINTENANCE).get(window.id)
        assert projected.details == last.data["purpose"]


@pytest.mark.asyncio
async def test_concurrent_creates_on_free_device_both_land(stores, clients):
    reservation_store, _ = stores
    a, b, _ = clients

    # Neither projection has seen the other's write when the check runs
    fill(a, "09:00", "10:00", "Trace metals")
    fill(b, "09:30", "10:30", "Isotope ratio")
    await asyncio.gather(a.submit(), b.submit())

    assert len(reservation_store) == 2


@pytest.mark.asyncio
async def test_delete_reaches_every_subscriber(stores, clients):
    reservation_store, _ = stores
    a, b, c = clients

    fill(a, "13:00", "14:00", "Calibration")
    record = await a.submit()
    assert all(record.id in client.projection(RecordKind.RESERVATION) for client in clients)

    await a.delete(record.id)

    assert record.id not in reservation_store
    for client in clients:
        assert client.projection(RecordKind.RESERVATION).get(record.id) is None


@pytest.mark.asyncio
async def test_closed_client_stops_receiving(stores, clients):
    reservation_store, _ = stores
    a, b, c = clients
    c.close()

    fill(a, "15:00", "16:00", "Blank run")
    record = await a.submit()

    assert record.id in b.projection(RecordKind.RESERVATION)
    assert record.id not in c.projection(RecordKind.RESERVATION)
    assert reservation_store.subscriber_count == 2
