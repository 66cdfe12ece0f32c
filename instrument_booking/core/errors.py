"""
Booking engine exceptions.

Every error raised by the engine derives from BookingError. None of them is
fatal: each leaves the local projection and the transient form state in a
well-defined state (reset on success, preserved on failure).
"""

from typing import Any, List, Optional, Sequence


class BookingError(Exception):
    """Base exception for booking engine errors."""
    pass


class ValidationError(BookingError):
    """A required field is missing or invalid. No side effect occurred."""

    def __init__(self, message: str, missing: Optional[Sequence[str]] = None):
        self.missing: List[str] = list(missing or [])
        if self.missing:
            message = f"{message}: {', '.join(self.missing)}"
        super().__init__(message)


class RecordNotFoundError(ValidationError):
    """The referenced record is not present in the local projection."""

    def __init__(self, record_id: str, kind: str):
        self.record_id = record_id
        self.kind = kind
        super().__init__(f"No {kind} record with id {record_id}")


class AuthorizationError(BookingError):
    """Mutation attempted on a record not owned by the current identity."""

    def __init__(self, record_id: str, identity: str, kind: str = "reservation"):
        self.record_id = record_id
        self.identity = identity
        self.kind = kind
        super().__init__(
            f"Identity {identity[:8]}... may not modify {kind} {record_id}"
        )


class ConflictError(BookingError):
    """The candidate interval overlaps an existing record on the same device."""

    def __init__(self, candidate: Any, conflicts: Sequence[Any]):
        self.candidate = candidate
        self.conflicts = list(conflicts)
        ids = ', '.join(str(getattr(r, 'id', r)) for r in self.conflicts)
        super().__init__(
            f"{candidate.instrument_type} {candidate.device_key} on {candidate.date} "
            f"overlaps existing record(s): {ids}"
        )


class StoreError(BookingError):
    """The underlying store rejected a write. Form state is kept for retry."""

    def __init__(self, operation: str, record_id: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.record_id = record_id
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Store {operation} failed for {record_id}{detail}")


class CatalogError(ValueError):
    """The instrument catalog definition is malformed."""
    pass


class UnknownInstrumentError(CatalogError):
    """Instrument type is not registered in the catalog."""
    pass


class UnknownDeviceError(CatalogError):
    """Device or sub-device is not registered for the instrument type."""
    pass


class IdentityError(BookingError):
    """The persisted client identity exists but cannot be read."""
    pass
