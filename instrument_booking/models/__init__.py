"""
Data models for the booking engine.

- records: persisted reservation / maintenance records and their wire shape
- selection: transient resource choice and form fields
"""

from .records import (
    RECORD_TYPES,
    BookingRecord,
    MaintenanceRecord,
    RecordKind,
    ReservationRecord,
    record_class,
)
from .selection import BookingFields, ResourceSelection

__all__ = [
    'RECORD_TYPES',
    'BookingRecord',
    'MaintenanceRecord',
    'RecordKind',
    'ReservationRecord',
    'record_class',
    'BookingFields',
    'ResourceSelection',
]
