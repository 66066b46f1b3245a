"""Mapping between local records and the wire format."""

from pydantic import ValidationError

from local_store import LoggableRecordDB
from typedefs import ExerciseLog, format_validation_error, to_unix_seconds


class MappingError(ValueError):
    """A local record cannot be expressed in the wire format."""

    def __init__(self, client_id: str, reason: str):
        super().__init__(f"Cannot map record {client_id}: {reason}")
        self.client_id = client_id
        self.reason = reason


def record_to_wire(record: LoggableRecordDB) -> ExerciseLog:
    """Translate a local record to its wire representation.

    Tombstones become delete entries. Everything else must satisfy the
    kind-conditional shape (strength: reps/weight/set_number, cardio:
    duration).

    Raises:
        MappingError: If the record violates the shape for its kind
    """
    if record.is_deleted:
        return ExerciseLog(client_id=record.client_id, op="delete")

    try:
        return ExerciseLog(
            client_id=record.client_id,
            exercise_name=record.exercise_name,
            muscle_group=record.muscle_group,
            exercise_type=record.kind,
            reps=record.reps,
            weight=record.weight,
            set_number=record.set_number,
            duration=record.duration,
            work_time=record.work_time,
            performed_at=to_unix_seconds(record.performed_at)
            if record.performed_at is not None
            else None,
            is_completed=bool(record.is_completed),
        )
    except ValidationError as err:
        raise MappingError(record.client_id, format_validation_error(err)) from err
