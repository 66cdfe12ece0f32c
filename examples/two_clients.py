#!/usr/bin/env python3
"""
Two Clients Example
Two lab members share the instrument pool: one books a GC-MS slot, the
other is refused an edit of it, then schedules maintenance on the same
device.
"""

import asyncio
import logging
from datetime import date
from pathlib import Path
import sys
sys.path.append(str(Path(__file__).parent.parent))

from instrument_booking.core import (
    AuthorizationError,
    ConflictError,
    LocalProjection,
    StaticIdentityProvider,
    create_maintenance_store,
    create_reservation_store,
)
from instrument_booking.core.time_slots import time_options
from instrument_booking.managers import BookingController
from instrument_booking.models import RecordKind


def make_client(identity, reservation_store, maintenance_store):
    return BookingController(
        reservations=LocalProjection(reservation_store).start(),
        maintenances=LocalProjection(maintenance_store).start(),
        identity_provider=StaticIdentityProvider(identity),
        confirm=lambda prompt: print(f"   ? {prompt} [y]") or True,
    )


async def run_example():
    """Walk through a shared booking session."""
    print("Two Clients Example")
    print("=" * 50)

    reservation_store = create_reservation_store(write_latency=0.05)
    maintenance_store = create_maintenance_store(write_latency=0.05)
    kim = make_client("client-kim", reservation_store, maintenance_store)
    park = make_client("client-park", reservation_store, maintenance_store)
    day = date.today()

    print(f"\n1. Selectable times: {', '.join(time_options())}")

    # 2. Kim books the Agilent MSD
    print("\n2. Kim books GC-MSMS(Agilent) - MSD")
    kim.select_resource("GC-MS", "GC-MSMS(Agilent)", "MSD")
    kim.select_slot(day, "09:00", "10:30")
    kim.update_fields(owner_name="Kim", purpose="PFAS screening")
    booking = await kim.submit()
    print(f"   ✅ {booking.title} ({booking.start:%H:%M}-{booking.end:%H:%M})")

    # 3. Park tries an overlapping slot
    print("\n3. Park asks for an overlapping slot")
    park.select_resource("GC-MS", "GC-MSMS(Agilent)", "MSD")
    park.select_slot(day, "10:00", "11:00")
    park.update_fields(owner_name="Park", purpose="VOC survey")
    try:
        await park.submit()
    except ConflictError as e:
        print(f"   ❌ {e}")
    park.update_fields(start_time="10:30", end_time="11:30")
    booking = await park.submit()
    print(f"   ✅ {booking.title} ({booking.start:%H:%M}-{booking.end:%H:%M})")

    # 4. Park may not edit Kim's reservation
    print("\n4. Park opens Kim's reservation for editing")
    kims = [r for r in park.todays_reservations(day) if r.owner_name == "Kim"][0]
    try:
        park.activate_for_edit(kims)
    except AuthorizationError as e:
        print(f"   ❌ {e}")

    # 5. Maintenance is open to everyone
    print("\n5. Park schedules maintenance on the same device")
    park.set_mode(RecordKind.MAINTENANCE)
    park.select_resource("GC-MS", "GC-MSMS(Agilent)", "MSD")
    park.select_slot(day, "14:00", "17:00")
    park.update_fields(owner_name="Park", purpose="Source cleaning")
    window = await park.submit()
    print(f"   ✅ {window.title}: {window.details}")

    print("\nToday's reservations as Kim sees them:")
    for record in kim.todays_reservations(day):
        print(f"   {record.start:%H:%M}-{record.end:%H:%M}  {record.title}")

    kim.close()
    park.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(run_example())
