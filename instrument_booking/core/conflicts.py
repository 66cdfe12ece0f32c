"""Interval conflict detection.

Two records conflict when they share instrument type, device key and date
and their half-open intervals [start, end) intersect:

    candidate.start < record.end and candidate.end > record.start

Touching intervals (one ends exactly when the other starts) do not
conflict. Both functions are pure.
"""

from typing import Iterable, List, Optional

from ..models.records import BookingRecord


def _overlaps(candidate: BookingRecord, record: BookingRecord, exclude_id: Optional[str]) -> bool:
    return (
        record.id != exclude_id
        and record.date == candidate.date
        and record.instrument_type == candidate.instrument_type
        and record.device_key == candidate.device_key
        and candidate.start < record.end
        and candidate.end > record.start
    )


def find_conflicts(candidate: BookingRecord, existing_records: Iterable[BookingRecord],
                   exclude_id: Optional[str] = None) -> List[BookingRecord]:
    """Records in existing_records that overlap the candidate.

    Args:
        candidate: Proposed record
        existing_records: Records of the same kind to check against
        exclude_id: Id to ignore (the record being edited)

    Returns:
        Overlapping records in input order
    """
    return [r for r in existing_records if _overlaps(candidate, r, exclude_id)]


def check_overlap(candidate: BookingRecord, existing_records: Iterable[BookingRecord],
                  exclude_id: Optional[str] = None) -> bool:
    """True iff some record other than exclude_id overlaps the candidate."""
    return any(_overlaps(candidate, r, exclude_id) for r in existing_records)
