"""
Local Projection - In-Memory Mirror of a Record Store

Each projection subscribes to one store and replaces its mirror wholesale
on every pushed snapshot. A snapshot is parsed completely before the swap,
so readers always see one whole generation and never a merge of two.
Records are parsed one by one: a stored record that fails validation (for
example a legacy row whose end precedes its start) is logged, left out of
the mirror and listed in ``rejected_ids``. The rest of the snapshot is still
applied.

Usage:
    with LocalProjection(store, RecordKind.RESERVATION) as reservations:
        reservations.add_listener(lambda p: redraw(p.records))
        ...
    # subscription cancelled on exit
"""

import datetime as dt
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from ..models.records import BookingRecord, RecordKind, record_class
from .record_store import RecordStore, Subscription

logger = logging.getLogger(__name__)

ProjectionListener = Callable[["LocalProjection"], None]


class LocalProjection:
    """Materialized view of one record store.

    Attributes:
        kind: Record kind mirrored by this projection
        generation: Number of snapshots applied (0 before the first)
    """

    def __init__(self, store: RecordStore, kind: Optional[RecordKind] = None):
        self._store = store
        self.kind = RecordKind(kind) if kind is not None else store.kind
        if self.kind != store.kind:
            raise ValueError(
                f"Projection of {self.kind.value} records cannot mirror a {store.kind.value} store"
            )
        self._record_type = record_class(self.kind)
        self._records: Tuple[BookingRecord, ...] = ()
        self._by_id: Dict[str, BookingRecord] = {}
        self._rejected_ids: Tuple[str, ...] = ()
        self._listeners: List[ProjectionListener] = []
        self._subscription: Optional[Subscription] = None
        self.generation = 0

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def is_subscribed(self) -> bool:
        return self._subscription is not None and self._subscription.active

    @property
    def records(self) -> Tuple[BookingRecord, ...]:
        """All records of the current generation."""
        return self._records

    @property
    def rejected_ids(self) -> Tuple[str, ...]:
        """Ids of stored records left out of the current generation as invalid."""
        return self._rejected_ids

    def get(self, record_id: str) -> Optional[BookingRecord]:
        return self._by_id.get(record_id)

    def records_on(self, day: dt.date) -> List[BookingRecord]:
        """Records on a calendar day, ordered by start."""
        return sorted((r for r in self._records if r.date == day), key=lambda r: r.start)

    def start(self) -> "LocalProjection":
        """Subscribe to the store. The current snapshot arrives immediately."""
        if self.is_subscribed:
            return self
        self._subscription = self._store.subscribe(self._apply_snapshot)
        logger.debug(f"{self.kind.value} projection subscribed")
        return self

    def close(self) -> None:
        """Cancel the subscription. Further pushes are ignored."""
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
            logger.debug(f"{self.kind.value} projection closed at generation {self.generation}")

    def add_listener(self, listener: ProjectionListener) -> None:
        """Register an observer called after every applied snapshot."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: ProjectionListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _apply_snapshot(self, snapshot: List[Dict[str, Any]]) -> None:
        records = []
        rejected = []
        for item in snapshot:
            try:
                records.append(self._record_type.from_wire(item))
            except PydanticValidationError as e:
                record_id = str(item.get("id", "?"))
                rejected.append(record_id)
                logger.warning(
                    f"Skipping invalid {self.kind.value} record {record_id}: "
                    f"{e.error_count()} validation error(s)"
                )

        self._records = tuple(records)
        self._by_id = {r.id: r for r in records}
        self._rejected_ids = tuple(rejected)
        self.generation += 1
        logger.debug(
            f"{self.kind.value} projection generation {self.generation}: "
            f"{len(records)} records, {len(rejected)} rejected"
        )

        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.warning(f"{self.kind.value} projection listener failed: {e}")

    def __enter__(self) -> "LocalProjection":
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: str) -> bool:
        return record_id in self._by_id
