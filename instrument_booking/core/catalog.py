"""
Resource Catalog - Single Source of Truth for Bookable Instruments

Static, read-only hierarchy of instrument type -> device -> optional
sub-devices, loaded from YAML. The catalog also owns the composed device
key used for matching and conflict detection:

    deviceKey = device + " - " + subDevice   (when a sub-device is chosen)
    deviceKey = device                        (otherwise)

Records carry the structured DeviceKey pair; the string form exists only at
the store boundary. Because both matching and conflict detection key off
the composed string, the separator may never appear inside a raw device or
sub-device name. Loading a catalog that violates this fails loudly.

compose(), decompose() and DeviceKey live in models.device_key and are
re-exported here.

Usage:
    from instrument_booking.core.catalog import get_catalog, compose, decompose

    catalog = get_catalog()
    catalog.list_devices("HPLC")
    compose("GC-MSMS(Agilent)", "MSD")   # "GC-MSMS(Agilent) - MSD"
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from ..config.settings import ALL_INSTRUMENTS, DEVICE_SEPARATOR, catalog_path
from ..models.device_key import DeviceKey, compose, decompose
from .errors import CatalogError, UnknownDeviceError, UnknownInstrumentError

logger = logging.getLogger(__name__)


# ============================================================================
# Catalog
# ============================================================================

@dataclass
class InstrumentDefinition:
    """One instrument type and its devices, in display order.

    Attributes:
        name: Instrument type (e.g., "HPLC")
        devices: Device name -> ordered sub-device names (may be empty)
    """
    name: str
    devices: Dict[str, List[str]] = field(default_factory=dict)


def _check_name(name: Any, where: str) -> str:
    if not isinstance(name, str) or not name.strip():
        raise CatalogError(f"Empty or non-string name in {where}: {name!r}")
    if DEVICE_SEPARATOR in name:
        raise CatalogError(
            f"Name {name!r} in {where} contains the device separator "
            f"{DEVICE_SEPARATOR!r}"
        )
    return name


class ResourceCatalog:
    """
    Read-only registry of instrument types, devices and sub-devices.

    Example:
        catalog = ResourceCatalog.from_mapping({
            "GC-MS": {"devices": [{"name": "GC-MSMS(Agilent)", "sub_devices": ["MSD"]}]},
        })
        catalog.list_subdevices("GC-MS", "GC-MSMS(Agilent)")   # ["MSD"]
    """

    def __init__(self, instruments: List[InstrumentDefinition]):
        self._instruments: Dict[str, InstrumentDefinition] = {}
        for definition in instruments:
            name = _check_name(definition.name, "instrument types")
            if name == ALL_INSTRUMENTS:
                raise CatalogError(
                    f"'{ALL_INSTRUMENTS}' is reserved for the wildcard selection"
                )
            if name in self._instruments:
                raise CatalogError(f"Duplicate instrument type: {name}")
            for device, sub_devices in definition.devices.items():
                _check_name(device, f"{name} devices")
                for sub_device in sub_devices:
                    _check_name(sub_device, f"{name}/{device} sub-devices")
            self._instruments[name] = definition

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ResourceCatalog":
        """Build a catalog from the parsed YAML ``instruments`` mapping.

        Each device entry is either a plain name or a mapping with ``name``
        and optional ``sub_devices``.
        """
        instruments = []
        for instrument_type, body in data.items():
            devices: Dict[str, List[str]] = {}
            for entry in (body or {}).get("devices", []) or []:
                if isinstance(entry, Mapping):
                    device = entry.get("name")
                    sub_devices = list(entry.get("sub_devices") or [])
                else:
                    device, sub_devices = entry, []
                if device in devices:
                    raise CatalogError(f"Duplicate device {device!r} under {instrument_type}")
                devices[device] = sub_devices
            instruments.append(InstrumentDefinition(name=instrument_type, devices=devices))
        return cls(instruments)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "ResourceCatalog":
        """Load a catalog file.

        Raises:
            FileNotFoundError: If the file does not exist
            CatalogError: If the file has no ``instruments`` mapping or
                violates the naming rules
        """
        path = Path(path)
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        instruments = data.get('instruments')
        if not isinstance(instruments, Mapping):
            raise CatalogError(f"{path} has no 'instruments' mapping")

        catalog = cls.from_mapping(instruments)
        logger.debug(f"Loaded {len(catalog)} instrument types from {path}")
        return catalog

    def list_instrument_types(self) -> List[str]:
        """All instrument types in catalog order (wildcard excluded)."""
        return list(self._instruments.keys())

    def list_devices(self, instrument_type: str) -> List[str]:
        """Devices of an instrument type.

        Raises:
            UnknownInstrumentError: If instrument_type is not registered
        """
        return list(self._get(instrument_type).devices.keys())

    def list_subdevices(self, instrument_type: str, device: str) -> List[str]:
        """Sub-devices of a device, possibly empty.

        Raises:
            UnknownInstrumentError: If instrument_type is not registered
            UnknownDeviceError: If device is not registered for the type
        """
        devices = self._get(instrument_type).devices
        if device not in devices:
            available = ', '.join(devices.keys())
            raise UnknownDeviceError(
                f"Unknown device {device!r} for {instrument_type}. "
                f"Available devices: {available}"
            )
        return list(devices[device])

    def has_device(self, instrument_type: str, device: str,
                   sub_device: Optional[str] = None) -> bool:
        """True if the (device, sub_device) choice resolves in this catalog."""
        definition = self._instruments.get(instrument_type)
        if definition is None or device not in definition.devices:
            return False
        if sub_device is None:
            return True
        return sub_device in definition.devices[device]

    def has_key(self, instrument_type: str, key: DeviceKey) -> bool:
        """True if a structured device key resolves for the instrument type."""
        return self.has_device(instrument_type, key.device, key.sub_device)

    def _get(self, instrument_type: str) -> InstrumentDefinition:
        definition = self._instruments.get(instrument_type)
        if definition is None:
            available = ', '.join(self._instruments.keys())
            raise UnknownInstrumentError(
                f"Unknown instrument type: '{instrument_type}'. "
                f"Available types: {available}"
            )
        return definition

    def __contains__(self, instrument_type: str) -> bool:
        return instrument_type in self._instruments

    def __len__(self) -> int:
        return len(self._instruments)


_catalog: Optional[ResourceCatalog] = None


def get_catalog() -> ResourceCatalog:
    """Get the default catalog, loading it on first use."""
    global _catalog
    if _catalog is None:
        _catalog = ResourceCatalog.from_yaml(catalog_path())
    return _catalog
