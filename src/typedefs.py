from datetime import UTC, datetime
from enum import Enum
from typing import Any, Dict, List, Literal

from pydantic import (
    BaseModel,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

ExerciseKind = Literal["strength", "cardio"]
SyncAction = Literal["created", "updated", "deleted", "rejected"]

STRENGTH_FIELDS = ("reps", "weight", "set_number")


def utcnow() -> datetime:
    # Database columns are timezone-naive and always hold UTC
    return datetime.now(UTC).replace(tzinfo=None)


def to_unix_seconds(value: datetime) -> float:
    """Convert a datetime to wire time. Naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.timestamp()


def from_unix_seconds(value: float) -> datetime:
    """Convert wire time to a naive UTC datetime, as stored by the databases."""
    return datetime.fromtimestamp(value, UTC).replace(tzinfo=None)


def format_validation_error(err: ValidationError) -> str:
    """Flatten a pydantic error into a one-line rejection reason."""
    parts = []
    for detail in err.errors():
        location = ".".join(str(part) for part in detail["loc"])
        parts.append(f"{location}: {detail['msg']}" if location else detail["msg"])
    return "; ".join(parts)


class SyncState(str, Enum):
    """Client-only bookkeeping state of a local record."""

    DIRTY = "dirty"
    SYNCING = "syncing"
    CLEAN = "clean"


class ExerciseLog(BaseModel):
    """Wire representation of a single logged strength set or cardio session.

    Strength logs carry reps, weight and set_number and no duration; cardio
    logs carry a duration and none of the strength fields. A delete entry is
    a tombstone and only needs the client_id.
    """

    client_id: str = Field(min_length=1)
    op: Literal["upsert", "delete"] = "upsert"
    exercise_name: str | None = None
    muscle_group: str | None = None
    exercise_type: ExerciseKind | None = None
    reps: int | None = None
    weight: float | None = Field(default=None, allow_inf_nan=False)
    set_number: int | None = None
    # Seconds, cardio only
    duration: float | None = Field(default=None, allow_inf_nan=False)
    # Seconds spent executing
    work_time: float | None = Field(default=None, allow_inf_nan=False)
    # Unix seconds
    performed_at: float | None = Field(default=None, allow_inf_nan=False)
    is_completed: bool = False

    @field_validator("performed_at")
    @classmethod
    def check_performed_at(cls, value: float | None) -> float | None:
        # Must be representable as a database datetime
        if value is not None:
            try:
                from_unix_seconds(value)
            except (ValueError, OverflowError, OSError) as err:
                raise ValueError(f"performed_at out of range: {value}") from err
        return value

    @model_validator(mode="after")
    def check_shape(self) -> "ExerciseLog":
        if self.op == "delete":
            return self

        missing = [
            name
            for name in ("exercise_name", "muscle_group", "exercise_type", "performed_at")
            if getattr(self, name) is None
        ]
        if missing:
            raise ValueError(f"missing required fields: {', '.join(missing)}")

        if self.exercise_type == "strength":
            absent = [name for name in STRENGTH_FIELDS if getattr(self, name) is None]
            if absent:
                raise ValueError(f"strength log requires {', '.join(absent)}")
            if self.duration is not None:
                raise ValueError("strength log must not carry duration")
        else:
            if self.duration is None:
                raise ValueError("cardio log requires duration")
            present = [
                name for name in STRENGTH_FIELDS if getattr(self, name) is not None
            ]
            if present:
                raise ValueError(f"cardio log must not carry {', '.join(present)}")

        return self


class SyncBatchRequest(BaseModel):
    # Raw entries so that one malformed log is rejected on its own instead
    # of failing the whole request.
    logs: List[Dict[str, Any]]


class RecordOutcome(BaseModel):
    client_id: str | None = None
    action: SyncAction
    reason: str | None = None


class SyncBatchResponse(BaseModel):
    """Whole-batch status plus per-record outcomes in submission order."""

    success: bool
    owner_id: str | None = None
    results: List[RecordOutcome] = []
    error: str | None = None


class KeyValidationRequest(BaseModel):
    key: str


class KeyValidationResponse(BaseModel):
    valid: bool
    account_label: str = ""
    error: str | None = None


class ExerciseLogResponse(BaseModel):
    """Synced log as stored remotely."""

    client_id: str
    owner_id: str
    exercise_name: str
    muscle_group: str
    exercise_type: ExerciseKind
    reps: int | None = None
    weight: float | None = None
    set_number: int | None = None
    duration: float | None = None
    work_time: float | None = None
    performed_at: float
    is_completed: bool


class SyncStatsResponse(BaseModel):
    total_logs: int = 0
    completed_logs: int = 0
    total_volume: float = 0.0  # Sum of weight * reps over strength logs
    total_work_time: float = 0.0
    unique_exercises: int = 0
    exercise_names: List[str] = []
    first_performed_at: float | None = None
    last_performed_at: float | None = None
