"""Persisted booking records.

Reservations and maintenance/blackout records share one flat wire shape so
both stores can be addressed through the same interface:

    id, title, date, start, end, instrument, device, user, purpose, userUUID

Field aliases carry the wire names; Python code uses the attribute names.
The composed device key exists only on the wire: in memory a record holds
the structured DeviceKey pair.

Timezone decision:
    Instants are naive local wall-clock datetimes. Timezone-aware values are
    rejected so that every client compares instants the same way. Behaviour
    across daylight-saving transitions is undefined.
"""

import datetime as dt
from enum import Enum
from typing import Any, ClassVar, Dict, Type

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from .device_key import DeviceKey


class RecordKind(str, Enum):
    """Which record set (and store) a record belongs to."""
    RESERVATION = "reservation"
    MAINTENANCE = "maintenance"


class BookingRecord(BaseModel):
    """Fields shared by reservations and maintenance records.

    Attributes:
        id: Opaque unique identifier (also the store key)
        instrument_type: Top-level equipment category
        device_key: Structured device / sub-device pair
        date: Calendar day of the booking
        start: Interval start (inclusive)
        end: Interval end (exclusive)
        owner_name: Display name typed by the user
        owner_identity: Client identity that wrote the record
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    kind: ClassVar[RecordKind]
    TEXT_FIELD: ClassVar[str]
    # Filled from instrument_type, device_key and owner_name
    TITLE_FORMAT: ClassVar[str]

    id: str = Field(..., min_length=1)
    instrument_type: str = Field(..., alias="instrument", min_length=1)
    device_key: DeviceKey = Field(..., alias="device")
    date: dt.date
    start: dt.datetime
    end: dt.datetime
    owner_name: str = Field(..., alias="user", min_length=1)
    owner_identity: str = Field(..., alias="userUUID", min_length=1)

    @field_validator("device_key", mode="before")
    @classmethod
    def parse_device_key(cls, v: Any) -> Any:
        """Accept the composed string form used on the wire."""
        if isinstance(v, str):
            return DeviceKey.parse(v)
        return v

    @field_serializer("device_key")
    def serialize_device_key(self, v: DeviceKey) -> str:
        return v.compose()

    @field_validator("start", "end")
    @classmethod
    def require_naive(cls, v: dt.datetime) -> dt.datetime:
        if v.tzinfo is not None:
            raise ValueError("Instants are local wall-clock times and must not carry an offset")
        return v

    @model_validator(mode="after")
    def check_interval(self) -> "BookingRecord":
        if self.start >= self.end:
            raise ValueError(f"start ({self.start}) must be before end ({self.end})")
        if self.start.date() != self.date or self.end.date() != self.date:
            raise ValueError(f"Interval {self.start} - {self.end} does not fall on {self.date}")
        return self

    @property
    def text(self) -> str:
        """Free-text description (purpose or maintenance details)."""
        return getattr(self, self.TEXT_FIELD)

    @property
    def title(self) -> str:
        """Display title, also written to the store as ``title``."""
        return self.TITLE_FORMAT.format(
            instrument_type=self.instrument_type,
            device_key=self.device_key.compose(),
            owner_name=self.owner_name,
        )

    def to_wire(self) -> Dict[str, Any]:
        """Flat mapping of scalars as written to the store."""
        data = self.model_dump(mode="json", by_alias=True)
        data["title"] = self.title
        return data

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "BookingRecord":
        """Parse a store mapping; unknown keys such as ``title`` are ignored."""
        return cls.model_validate(data)


class ReservationRecord(BookingRecord):
    """A time-bounded reservation of one device."""

    kind: ClassVar[RecordKind] = RecordKind.RESERVATION
    TEXT_FIELD: ClassVar[str] = "purpose"
    TITLE_FORMAT: ClassVar[str] = "{instrument_type} {device_key} - {owner_name}"

    purpose: str = Field(..., min_length=1)


class MaintenanceRecord(BookingRecord):
    """A maintenance or blackout window documenting device unavailability."""

    kind: ClassVar[RecordKind] = RecordKind.MAINTENANCE
    TEXT_FIELD: ClassVar[str] = "details"
    TITLE_FORMAT: ClassVar[str] = "Maintenance - {owner_name}"

    details: str = Field(..., alias="purpose", min_length=1)


RECORD_TYPES: Dict[RecordKind, Type[BookingRecord]] = {
    RecordKind.RESERVATION: ReservationRecord,
    RecordKind.MAINTENANCE: MaintenanceRecord,
}


def record_class(kind: RecordKind) -> Type[BookingRecord]:
    """Model class for a record kind."""
    return RECORD_TYPES[RecordKind(kind)]
