"""
Record Store Module - Authoritative Record Set Abstraction

This module provides the store contract shared by the reservation and
maintenance record sets:
- Upsert by id and delete by id (asynchronous)
- Push subscriptions delivering the full current snapshot after every change
- Cancellable subscription handles

There is no version token or compare-and-swap on records. Two clients that
upsert the same id both succeed and the write processed last wins. The
in-memory implementation keeps a revision counter and a write journal so
that ordering is observable.

Usage:
    from instrument_booking.core.record_store import InMemoryRecordStore
    from instrument_booking.models import RecordKind

    store = InMemoryRecordStore(RecordKind.RESERVATION)

    subscription = store.subscribe(lambda records: print(len(records)))
    await store.upsert("r-1", record.to_wire())
    await store.delete("r-1")
    subscription.cancel()
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from copy import deepcopy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..models.records import RecordKind

logger = logging.getLogger(__name__)

# Receives every current record (wire mappings) after each change
SnapshotCallback = Callable[[List[Dict[str, Any]]], None]


# ============================================================================
# Subscriptions and journal
# ============================================================================

class Subscription:
    """Handle for a standing snapshot subscription.

    Cancelling stops further notifications immediately, including for a
    dispatch already in progress. Calling the handle cancels it too, so it
    can be used wherever an unsubscribe function is expected.
    """

    def __init__(self, store: "RecordStore", callback: SnapshotCallback):
        self._store = store
        self._callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def deliver(self, records: List[Dict[str, Any]]) -> None:
        if self._active:
            self._callback(records)

    def cancel(self) -> None:
        if self._active:
            self._active = False
            self._store._remove_subscription(self)

    def __call__(self) -> None:
        self.cancel()


@dataclass
class WriteRecord:
    """One processed write, in processing order.

    Attributes:
        revision: Store revision after the write
        operation: "upsert" or "delete"
        record_id: Record addressed by the write
        data: Stored mapping (upsert only)
        processed_at: When the store applied the write
    """
    revision: int
    operation: str
    record_id: str
    data: Optional[Dict[str, Any]] = None
    processed_at: datetime = field(default_factory=datetime.now)


# ============================================================================
# Record Store Abstract Base Class
# ============================================================================

class RecordStore(ABC):
    """Abstract base class for an authoritative record set.

    Implementations deliver snapshots as lists of flat wire mappings and
    raise on write failure; callers translate failures for the user.
    """

    @property
    @abstractmethod
    def kind(self) -> RecordKind:
        """Record kind held by this store."""
        pass

    @abstractmethod
    def subscribe(self, on_snapshot: SnapshotCallback) -> Subscription:
        """Register for full snapshots.

        The current snapshot is delivered straight away, then again after
        every change until the subscription is cancelled.

        Args:
            on_snapshot: Called with all current records

        Returns:
            Subscription handle
        """
        pass

    @abstractmethod
    async def upsert(self, record_id: str, data: Mapping[str, Any]) -> None:
        """Create or replace the record stored under record_id.

        Raises:
            Exception: Any failure of the underlying store
        """
        pass

    @abstractmethod
    async def delete(self, record_id: str) -> bool:
        """Delete a record.

        Returns:
            True if deleted, False if no record had that id
        """
        pass

    @abstractmethod
    def snapshot(self) -> List[Dict[str, Any]]:
        """Copy of all current records."""
        pass

    @abstractmethod
    def _remove_subscription(self, subscription: Subscription) -> None:
        pass


# ============================================================================
# In-Memory Implementation
# ============================================================================

class InMemoryRecordStore(RecordStore):
    """In-process store with push subscriptions.

    Writes are applied one at a time under an asyncio.Lock, the way a single
    authoritative backend orders them. Subscribers are notified outside the
    lock so a callback may safely read from or write to the store.

    Example:
        store = InMemoryRecordStore(RecordKind.MAINTENANCE)
        seen = []
        sub = store.subscribe(seen.append)       # seen == [[]]
        await store.upsert("m-1", {...})         # seen[-1] holds m-1
        sub.cancel()
    """

    def __init__(self, kind: RecordKind, write_latency: float = 0.0):
        """Initialize the store.

        Args:
            kind: Record kind held by this store
            write_latency: Seconds each write waits before reaching the
                store, to simulate a remote backend
        """
        self._kind = RecordKind(kind)
        self._records: Dict[str, Dict[str, Any]] = {}
        self._subscriptions: List[Subscription] = []
        self._journal: List[WriteRecord] = []
        self._revision = 0
        self._write_latency = write_latency
        self._lock = asyncio.Lock()

    @property
    def kind(self) -> RecordKind:
        return self._kind

    @property
    def revision(self) -> int:
        """Number of writes applied so far."""
        return self._revision

    @property
    def journal(self) -> List[WriteRecord]:
        """Processed writes, oldest first."""
        return list(self._journal)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, on_snapshot: SnapshotCallback) -> Subscription:
        subscription = Subscription(self, on_snapshot)
        self._subscriptions.append(subscription)
        logger.debug(f"New {self._kind.value} subscription ({len(self._subscriptions)} active)")
        self._notify([subscription], self.snapshot())
        return subscription

    async def upsert(self, record_id: str, data: Mapping[str, Any]) -> None:
        if not record_id:
            raise ValueError("record_id must be a non-empty string")
        if data.get("id", record_id) != record_id:
            raise ValueError(f"Record id {data.get('id')} does not match key {record_id}")

        if self._write_latency:
            await asyncio.sleep(self._write_latency)

        async with self._lock:
            stored = deepcopy(dict(data))
            stored["id"] = record_id
            self._records[record_id] = stored
            self._revision += 1
            self._journal.append(WriteRecord(self._revision, "upsert", record_id, deepcopy(stored)))
            logger.debug(f"Upserted {self._kind.value} {record_id} (revision {self._revision})")
            records = self.snapshot()

        self._notify(list(self._subscriptions), records)

    async def delete(self, record_id: str) -> bool:
        if self._write_latency:
            await asyncio.sleep(self._write_latency)

        async with self._lock:
            if record_id not in self._records:
                return False
            del self._records[record_id]
            self._revision += 1
            self._journal.append(WriteRecord(self._revision, "delete", record_id))
            logger.debug(f"Deleted {self._kind.value} {record_id} (revision {self._revision})")
            records = self.snapshot()

        self._notify(list(self._subscriptions), records)
        return True

    def snapshot(self) -> List[Dict[str, Any]]:
        return [deepcopy(r) for r in self._records.values()]

    def get(self, record_id: str) -> Optional[Dict[str, Any]]:
        """Copy of one record, or None."""
        record = self._records.get(record_id)
        return deepcopy(record) if record is not None else None

    def _remove_subscription(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
            logger.debug(f"Cancelled {self._kind.value} subscription ({len(self._subscriptions)} active)")

    def _notify(self, subscriptions: List[Subscription], records: List[Dict[str, Any]]) -> None:
        for subscription in subscriptions:
            try:
                # Each subscriber gets its own copy
                subscription.deliver(deepcopy(records))
            except Exception as e:
                logger.warning(f"{self._kind.value} snapshot subscriber failed: {e}")

    def __contains__(self, record_id: str) -> bool:
        return record_id in self._records

    def __len__(self) -> int:
        return len(self._records)


# ============================================================================
# Factory Functions
# ============================================================================

def create_reservation_store(write_latency: float = 0.0) -> InMemoryRecordStore:
    """Create an in-memory store for reservations."""
    return InMemoryRecordStore(RecordKind.RESERVATION, write_latency)


def create_maintenance_store(write_latency: float = 0.0) -> InMemoryRecordStore:
    """Create an in-memory store for maintenance records."""
    return InMemoryRecordStore(RecordKind.MAINTENANCE, write_latency)
