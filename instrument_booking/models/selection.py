"""Transient form state. Never persisted."""

import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, Field

from ..config.settings import ALL_INSTRUMENTS
from .device_key import DeviceKey


class ResourceSelection(BaseModel):
    """Current instrument type / device / sub-device choice."""

    instrument_type: str = Field(ALL_INSTRUMENTS, description="Instrument type or the 'ALL' wildcard")
    device: Optional[str] = None
    sub_device: Optional[str] = None

    @property
    def is_wildcard(self) -> bool:
        return self.instrument_type == ALL_INSTRUMENTS

    def device_key(self) -> Optional[DeviceKey]:
        """Structured key for the chosen device, or None if no device is chosen."""
        if not self.device:
            return None
        return DeviceKey(device=self.device, sub_device=self.sub_device or None)


class BookingFields(BaseModel):
    """In-progress form fields.

    Attributes:
        owner_name: Name typed by the user
        purpose: Purpose (reservations) or details (maintenance)
        date: Calendar day
        start_time: Start as HH:MM
        end_time: End as HH:MM
    """

    owner_name: str = ""
    purpose: str = ""
    date: Optional[dt.date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None

    def missing(self) -> List[str]:
        """Names of required fields that are still empty (blank text counts as empty)."""
        missing = []
        for name in ("owner_name", "purpose", "date", "start_time", "end_time"):
            value = getattr(self, name)
            if isinstance(value, str):
                value = value.strip()
            if not value:
                missing.append(name)
        return missing
