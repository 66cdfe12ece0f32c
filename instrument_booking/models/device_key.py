"""Composite device key.

A device key is the device name, optionally joined with a sub-device:

    deviceKey = device + " - " + subDevice   (when a sub-device is chosen)
    deviceKey = device                        (otherwise)

Records carry the structured DeviceKey pair; the joined string exists only
at the store boundary. Both matching and conflict detection key off the
joined string, so the separator may never appear inside a raw name (the
catalog enforces this when it loads).
"""

from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict

from ..config.settings import DEVICE_SEPARATOR


def compose(device: str, sub_device: Optional[str] = None) -> str:
    """Join a device and optional sub-device into the composed device key.

    Args:
        device: Raw device name
        sub_device: Optional sub-device name

    Returns:
        "device - sub_device", or just "device" when no sub-device is given
    """
    if sub_device:
        return f"{device}{DEVICE_SEPARATOR}{sub_device}"
    return device


def decompose(key: str) -> Tuple[str, Optional[str]]:
    """Split a composed device key back into (device, sub_device).

    Exact inverse of compose() for names that do not contain the separator.

    Example:
        >>> decompose("Agilent 2 - MSD")
        ('Agilent 2', 'MSD')
        >>> decompose("Thermo")
        ('Thermo', None)
    """
    device, sep, sub_device = key.partition(DEVICE_SEPARATOR)
    if not sep:
        return key, None
    return device, sub_device


class DeviceKey(BaseModel):
    """Structured (device, sub_device) pair behind a composed device key."""

    model_config = ConfigDict(frozen=True)

    device: str
    sub_device: Optional[str] = None

    @classmethod
    def parse(cls, key: str) -> "DeviceKey":
        device, sub_device = decompose(key)
        return cls(device=device, sub_device=sub_device)

    def compose(self) -> str:
        return compose(self.device, self.sub_device)

    def __str__(self) -> str:
        return self.compose()
