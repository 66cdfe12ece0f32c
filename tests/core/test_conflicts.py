"""
Tests for half-open interval conflict detection.
"""

from datetime import date, datetime

import pytest

from instrument_booking.core.conflicts import check_overlap, find_conflicts
from instrument_booking.models import MaintenanceRecord, ReservationRecord

DAY = date(2025, 3, 4)


def make_reservation(record_id, start, end, device="Agilent 1", instrument="HPLC", day=DAY):
    """Reservation on DAY between two HH:MM times."""
    return ReservationRecord(
        id=record_id,
        instrument_type=instrument,
        device_key=device,
        date=day,
        start=datetime.combine(day, datetime.strptime(start, "%H:%M").time()),
        end=datetime.combine(day, datetime.strptime(end, "%H:%M").time()),
        owner_name="Kim",
        owner_identity="client-a",
        purpose="Assay",
    )


@pytest.fixture
def existing():
    return [
        make_reservation("r-1", "09:00", "10:00"),
        make_reservation("r-2", "13:00", "14:30"),
    ]


class TestOverlap:
    """Interval rules."""

    def test_overlapping_interval_conflicts(self, existing):
        candidate = make_reservation("new", "09:30", "10:30")
        assert [r.id for r in find_conflicts(candidate, existing)] == ["r-1"]
        assert check_overlap(candidate, existing)

    def test_touching_intervals_do_not_conflict(self, existing):
        before = make_reservation("new", "08:00", "09:00")
        after = make_reservation("new", "10:00", "11:00")
        assert not check_overlap(before, existing)
        assert not check_overlap(after, existing)

    def test_containing_interval_conflicts(self, existing):
        candidate = make_reservation("new", "08:00", "18:00")
        assert [r.id for r in find_conflicts(candidate, existing)] == ["r-1", "r-2"]

    def test_contained_interval_conflicts(self, existing):
        assert check_overlap(make_reservation("new", "13:30", "14:00"), existing)

    def test_exclude_id_skips_edited_record(self, existing):
        candidate = make_reservation("r-1", "09:30", "10:30")
        assert find_conflicts(candidate, existing, exclude_id="r-1") == []
        assert not check_overlap(candidate, existing, exclude_id="r-1")

    def test_exclude_id_does_not_hide_other_records(self, existing):
        candidate = make_reservation("r-1", "09:30", "13:30")
        assert [r.id for r in find_conflicts(candidate, existing, exclude_id="r-1")] == ["r-2"]


class TestScope:
    """Conflicts require the same instrument type, device key and date."""

    def test_different_device(self, existing):
        assert not check_overlap(make_reservation("new", "09:00", "10:00", device="Agilent 2"), existing)

    def test_different_instrument_type(self, existing):
        assert not check_overlap(make_reservation("new", "09:00", "10:00", instrument="GC"), existing)

    def test_different_date(self, existing):
        candidate = make_reservation("new", "09:00", "10:00", day=date(2025, 3, 5))
        assert not check_overlap(candidate, existing)

    def test_sub_devices_are_distinct_keys(self):
        msd = make_reservation("r-1", "09:00", "10:00", instrument="GC-MS", device="GC-MSMS(Agilent) - MSD")
        bare = make_reservation("new", "09:00", "10:00", instrument="GC-MS", device="GC-MSMS(Agilent)")
        same = make_reservation("new", "09:30", "10:30", instrument="GC-MS", device="GC-MSMS(Agilent) - MSD")
        assert not check_overlap(bare, [msd])
        assert check_overlap(same, [msd])

    def test_empty_existing(self):
        assert find_conflicts(make_reservation("new", "09:00", "10:00"), []) == []

    def test_maintenance_records_compare_among_themselves(self):
        start, end = datetime(2025, 3, 4, 9, 0), datetime(2025, 3, 4, 12, 0)
        window = MaintenanceRecord(
            id="m-1", instrument_type="HPLC", device_key="Agilent 1", date=DAY,
            start=start, end=end, owner_name="Lee", owner_identity="client-b",
            details="Column change",
        )
        candidate = window.model_copy(update={"id": "m-2"})
        assert check_overlap(candidate, [window])
