"""
BookingController - create/edit reconciliation for reservations and maintenance.

Orchestrates selection, validation, authorization, conflict checking and
store writes for one client form.

State machine:
    IDLE ──select_slot / activate_for_edit──> SELECTING
    SELECTING ──submit──> SUBMITTING ──write ok──> IDLE
                                     └──write failed──> SELECTING (form kept)

An orthogonal edit target (``edit_target_id``) marks the record being
replaced. Submitting with an edit target reuses its id and requires an
explicit confirmation; without one a fresh id is generated.

Concurrency:
    Writes are optimistic. Conflict checking runs against the local
    projection, which may lag the store; concurrent edits of the same id
    both succeed and the last processed write wins. Callers serialize
    writes per controller: a second submit while one is in flight is
    logged, not blocked. A failed write is reported once and never retried.
"""

import datetime as dt
import logging
import uuid
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from ..config.settings import ALL_INSTRUMENTS
from ..core.catalog import ResourceCatalog, get_catalog
from ..core.conflicts import find_conflicts
from ..core.errors import (
    AuthorizationError,
    ConflictError,
    RecordNotFoundError,
    StoreError,
    ValidationError,
)
from ..core.identity import IdentityProvider
from ..core.policy import AuthorizationPolicy, default_policy
from ..core.projection import LocalProjection
from ..core.time_slots import combine_date_time, date_from_month_day, format_time
from ..models.device_key import DeviceKey
from ..models.records import BookingRecord, RecordKind, record_class
from ..models.selection import BookingFields, ResourceSelection

logger = logging.getLogger(__name__)

# Asked before overwriting or deleting; returns True to proceed
ConfirmCallback = Callable[[str], bool]


class BookingState(Enum):
    """Form lifecycle states."""
    IDLE = "idle"
    SELECTING = "selecting"
    SUBMITTING = "submitting"


def _new_record_id() -> str:
    return str(uuid.uuid4())


class BookingController:
    """
    Booking form controller for one client.

    Example:
        controller = BookingController(
            reservations=LocalProjection(reservation_store).start(),
            maintenances=LocalProjection(maintenance_store).start(),
            identity_provider=FileIdentityProvider(),
            confirm=lambda prompt: input(prompt) == "y",
        )
        controller.select_resource("GC-MS", "GC-MSMS(Agilent)", "MSD")
        controller.select_slot(dt.date(2025, 3, 4), "09:00", "10:30")
        controller.update_fields(owner_name="Kim", purpose="PFAS screening")
        record = await controller.submit()
    """

    def __init__(
        self,
        reservations: LocalProjection,
        maintenances: LocalProjection,
        identity_provider: IdentityProvider,
        confirm: ConfirmCallback,
        catalog: Optional[ResourceCatalog] = None,
        policy: Optional[AuthorizationPolicy] = None,
        id_factory: Callable[[], str] = _new_record_id,
    ):
        """Initialize the controller.

        Args:
            reservations: Projection of the reservation store
            maintenances: Projection of the maintenance store
            identity_provider: Source of this client's identity
            confirm: Confirmation gate for edits and deletes
            catalog: Resource catalog (default: get_catalog())
            policy: Authorization policy (default: per-kind ownership rules)
            id_factory: Generates ids for new records
        """
        if reservations.kind != RecordKind.RESERVATION:
            raise ValueError("reservations projection must mirror reservation records")
        if maintenances.kind != RecordKind.MAINTENANCE:
            raise ValueError("maintenances projection must mirror maintenance records")

        self._projections = {
            RecordKind.RESERVATION: reservations,
            RecordKind.MAINTENANCE: maintenances,
        }
        self._confirm = confirm
        self._catalog = catalog if catalog is not None else get_catalog()
        self._policy = policy if policy is not None else default_policy
        self._id_factory = id_factory

        self.identity = identity_provider.get_or_create_identity()
        self.mode = RecordKind.RESERVATION
        self.state = BookingState.IDLE
        self.selection = ResourceSelection()
        self.fields = BookingFields()
        self.edit_target_id: Optional[str] = None

    # ========================================================================
    # Accessors
    # ========================================================================

    @property
    def catalog(self) -> ResourceCatalog:
        return self._catalog

    @property
    def is_editing(self) -> bool:
        return self.edit_target_id is not None

    def projection(self, kind: Optional[RecordKind] = None) -> LocalProjection:
        """Projection for a record kind (default: current mode)."""
        return self._projections[RecordKind(kind) if kind is not None else self.mode]

    def todays_reservations(self, today: Optional[dt.date] = None) -> List[BookingRecord]:
        """Reservations on a day (default: today), ordered by start."""
        day = today if today is not None else dt.date.today()
        return self._projections[RecordKind.RESERVATION].records_on(day)

    # ========================================================================
    # Selection
    # ========================================================================

    def set_mode(self, kind: RecordKind) -> None:
        """Switch between reservation and maintenance entry.

        An open edit belongs to one record kind, so switching drops it.
        """
        kind = RecordKind(kind)
        if kind == self.mode:
            return
        if self.is_editing:
            logger.debug(f"Mode switch to {kind.value} drops edit target {self.edit_target_id}")
            self.edit_target_id = None
        self.mode = kind

    def toggle_mode(self) -> RecordKind:
        self.set_mode(
            RecordKind.MAINTENANCE if self.mode == RecordKind.RESERVATION else RecordKind.RESERVATION
        )
        return self.mode

    def select_resource(self, instrument_type: str, device: Optional[str] = None,
                        sub_device: Optional[str] = None) -> None:
        """Choose instrument type, device and sub-device.

        Replaces the whole selection, so picking a new instrument type
        without a device clears the device chosen before.
        """
        self.selection = ResourceSelection(
            instrument_type=instrument_type or ALL_INSTRUMENTS,
            device=device,
            sub_device=sub_device if device else None,
        )

    def select_slot(self, day: Union[dt.date, str], start_time: str, end_time: str) -> None:
        """Open the form for a picked calendar range. Clears any edit target."""
        self.update_fields(date=day, start_time=start_time, end_time=end_time)
        self.edit_target_id = None
        self.state = BookingState.SELECTING

    def select_month_day(self, month: int, day: int, year: Optional[int] = None) -> dt.date:
        """Set the form date from month/day pickers (year defaults to this year)."""
        try:
            chosen = date_from_month_day(month, day, year)
        except ValueError as e:
            raise ValidationError(f"Invalid date: {e}", ["date"]) from e
        self.update_fields(date=chosen)
        return chosen

    def update_fields(self, **changes: Any) -> None:
        """Edit transient form fields (owner_name, purpose, date, start_time, end_time).

        Raises:
            TypeError: If an unknown field name is given
            ValidationError: If a value cannot be coerced (e.g. a bad date)
        """
        unknown = set(changes) - set(BookingFields.model_fields)
        if unknown:
            raise TypeError(f"Unknown form field(s): {', '.join(sorted(unknown))}")
        try:
            self.fields = BookingFields.model_validate({**self.fields.model_dump(), **changes})
        except PydanticValidationError as e:
            bad = [str(err["loc"][0]) for err in e.errors() if err.get("loc")]
            raise ValidationError("Invalid form value", bad) from e

    def cancel(self) -> None:
        """Abandon the form and any edit in progress."""
        self._reset()

    def close(self) -> None:
        """End the client scope: cancel both projection subscriptions."""
        for projection in self._projections.values():
            projection.close()

    # ========================================================================
    # Edit activation
    # ========================================================================

    def activate_for_edit(self, record: BookingRecord) -> None:
        """Load an existing record into the form for editing.

        Raises:
            AuthorizationError: If the policy denies this identity; nothing
                changes
        """
        if not self._policy(record, self.identity):
            logger.warning(f"Edit of {record.kind.value} {record.id} refused for {self.identity[:8]}...")
            raise AuthorizationError(record.id, self.identity, record.kind.value)

        self.mode = record.kind
        self.selection = ResourceSelection(
            instrument_type=record.instrument_type,
            device=record.device_key.device,
            sub_device=record.device_key.sub_device,
        )
        self.fields = BookingFields(
            owner_name=record.owner_name,
            purpose=record.text,
            date=record.date,
            start_time=format_time(record.start),
            end_time=format_time(record.end),
        )
        self.edit_target_id = record.id
        self.state = BookingState.SELECTING
        logger.debug(f"Editing {record.kind.value} {record.id}")

    # ========================================================================
    # Submit / delete
    # ========================================================================

    async def submit(self, selection: Optional[ResourceSelection] = None,
                     fields: Optional[BookingFields] = None) -> Optional[BookingRecord]:
        """Validate, conflict-check and write the form.

        Args:
            selection: Resource selection to submit (default: current)
            fields: Form fields to submit (default: current)

        Returns:
            The written record, or None if the edit confirmation was declined

        Raises:
            ValidationError: Missing or invalid field; nothing written
            AuthorizationError: Edit target no longer editable by this identity
            ConflictError: Overlaps another record on the same device
            StoreError: The store rejected the write; form state kept
        """
        if selection is not None:
            self.selection = selection
        if fields is not None:
            self.fields = fields

        if self.state == BookingState.SUBMITTING:
            logger.warning("submit() called while a previous write is still in flight")

        kind = self.mode
        projection = self._projections[kind]
        record = self._build_record(kind)

        conflicts = find_conflicts(record, projection.records, exclude_id=self.edit_target_id)
        if conflicts:
            logger.warning(
                f"{kind.value} {record.device_key} on {record.date} conflicts with "
                f"{[c.id for c in conflicts]}"
            )
            raise ConflictError(record, conflicts)

        if self.is_editing:
            existing = projection.get(record.id)
            if existing is None:
                logger.warning(f"Edit target {record.id} is no longer in the projection; writing anyway")
            elif not self._policy(existing, self.identity):
                raise AuthorizationError(record.id, self.identity, kind.value)
            if not self._confirm(f"Save changes to {record.title}?"):
                logger.info(f"Edit of {kind.value} {record.id} declined")
                return None

        self.state = BookingState.SUBMITTING
        try:
            await projection.store.upsert(record.id, record.to_wire())
        except Exception as e:
            self.state = BookingState.SELECTING
            logger.error(f"Writing {kind.value} {record.id} failed: {e}")
            raise StoreError("upsert", record.id, e) from e

        logger.info(
            f"{'Updated' if self.is_editing else 'Created'} {kind.value} {record.id}: {record.title}"
        )
        self._reset()
        return record

    async def delete(self, record_id: str, kind: Optional[RecordKind] = None) -> bool:
        """Delete a record after authorization and confirmation.

        Args:
            record_id: Record to delete
            kind: Record kind (default: current mode)

        Returns:
            True if deleted, False if the confirmation was declined

        Raises:
            RecordNotFoundError: Id not in the local projection
            AuthorizationError: Policy denies this identity
            StoreError: The store rejected the delete
        """
        kind = RecordKind(kind) if kind is not None else self.mode
        projection = self._projections[kind]

        record = projection.get(record_id)
        if record is None:
            raise RecordNotFoundError(record_id, kind.value)
        if not self._policy(record, self.identity):
            logger.warning(f"Delete of {kind.value} {record_id} refused for {self.identity[:8]}...")
            raise AuthorizationError(record_id, self.identity, kind.value)
        if not self._confirm(f"Delete {record.title}?"):
            logger.info(f"Delete of {kind.value} {record_id} declined")
            return False

        try:
            deleted = await projection.store.delete(record_id)
        except Exception as e:
            logger.error(f"Deleting {kind.value} {record_id} failed: {e}")
            raise StoreError("delete", record_id, e) from e

        if not deleted:
            logger.debug(f"{kind.value} {record_id} was already gone from the store")
        logger.info(f"Deleted {kind.value} {record_id}")

        if record_id == self.edit_target_id:
            self._reset()
        return True

    # ========================================================================
    # Internal helpers
    # ========================================================================

    def _validated_inputs(self) -> Tuple[DeviceKey, dt.datetime, dt.datetime]:
        selection, fields = self.selection, self.fields

        missing = fields.missing()
        if selection.is_wildcard or not selection.instrument_type:
            missing.append("instrument_type")
        device_key = selection.device_key()
        if device_key is None:
            missing.append("device")
        if missing:
            raise ValidationError("Missing required fields", missing)

        if not self._catalog.has_key(selection.instrument_type, device_key):
            raise ValidationError(
                f"{device_key} is not a {selection.instrument_type} device",
                ["instrument_type", "device"],
            )

        try:
            start = combine_date_time(fields.date, fields.start_time)
            end = combine_date_time(fields.date, fields.end_time)
        except ValueError as e:
            raise ValidationError(f"Invalid time: {e}", ["start_time", "end_time"]) from e
        if start >= end:
            raise ValidationError("Start time must be before end time", ["start_time", "end_time"])

        return device_key, start, end

    def _build_record(self, kind: RecordKind) -> BookingRecord:
        device_key, start, end = self._validated_inputs()
        record_type = record_class(kind)
        try:
            return record_type(
                id=self.edit_target_id or self._id_factory(),
                instrument_type=self.selection.instrument_type,
                device_key=device_key,
                date=self.fields.date,
                start=start,
                end=end,
                owner_name=self.fields.owner_name.strip(),
                owner_identity=self.identity,
                **{record_type.TEXT_FIELD: self.fields.purpose.strip()},
            )
        except PydanticValidationError as e:
            bad = [str(err["loc"][0]) for err in e.errors() if err.get("loc")]
            raise ValidationError("Invalid record", bad) from e

    def _reset(self) -> None:
        self.state = BookingState.IDLE
        self.selection = ResourceSelection()
        self.fields = BookingFields()
        self.edit_target_id = None
