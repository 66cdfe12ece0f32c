"""
Core Layer - Booking engine building blocks

Modules:
- catalog: instrument types, devices, sub-devices and composed device keys
- identity: persistent anonymous client identity
- conflicts: half-open interval conflict detection
- policy: per-kind ownership authorization
- record_store: store contract and in-memory implementation
- projection: local materialized view of a store
- time_slots: selectable time grid and instant helpers
- errors: exception hierarchy
"""

from .catalog import (
    DeviceKey,
    InstrumentDefinition,
    ResourceCatalog,
    compose,
    decompose,
    get_catalog,
)
from .conflicts import check_overlap, find_conflicts
from .errors import (
    AuthorizationError,
    BookingError,
    CatalogError,
    ConflictError,
    IdentityError,
    RecordNotFoundError,
    StoreError,
    UnknownDeviceError,
    UnknownInstrumentError,
    ValidationError,
)
from .identity import FileIdentityProvider, IdentityProvider, StaticIdentityProvider
from .policy import AuthorizationPolicy, default_policy, make_policy, ownership_rules
from .projection import LocalProjection
from .record_store import (
    InMemoryRecordStore,
    RecordStore,
    Subscription,
    WriteRecord,
    create_maintenance_store,
    create_reservation_store,
)

__all__ = [
    # Catalog
    'DeviceKey',
    'InstrumentDefinition',
    'ResourceCatalog',
    'compose',
    'decompose',
    'get_catalog',
    # Conflicts
    'check_overlap',
    'find_conflicts',
    # Errors
    'AuthorizationError',
    'BookingError',
    'CatalogError',
    'ConflictError',
    'IdentityError',
    'RecordNotFoundError',
    'StoreError',
    'UnknownDeviceError',
    'UnknownInstrumentError',
    'ValidationError',
    # Identity
    'FileIdentityProvider',
    'IdentityProvider',
    'StaticIdentityProvider',
    # Policy
    'AuthorizationPolicy',
    'default_policy',
    'make_policy',
    'ownership_rules',
    # Sync
    'LocalProjection',
    'InMemoryRecordStore',
    'RecordStore',
    'Subscription',
    'WriteRecord',
    'create_maintenance_store',
    'create_reservation_store',
]
