"""REST API endpoints for the offline-first sync protocol.

Clients push batches of exercise logs keyed by a client-generated
``client_id``. Each entry is applied independently: inserted if unseen,
overwritten if already owned by the submitting account, and rejected if
another account owns it or the entry is malformed.
"""

import logging
from datetime import datetime
from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError
from sqlalchemy.orm import Session

from auth import require_api_key
from database import get_db
from models import ApiKeyDB, ExerciseLogDB
from typedefs import (
    ExerciseLog,
    ExerciseLogResponse,
    RecordOutcome,
    SyncBatchRequest,
    SyncBatchResponse,
    SyncStatsResponse,
    format_validation_error,
    from_unix_seconds,
    to_unix_seconds,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/sync", tags=["sync"])

OWNED_BY_DIFFERENT_ACCOUNT = "owned by different account"

SYNCED_FIELDS = (
    "exercise_name",
    "muscle_group",
    "exercise_type",
    "reps",
    "weight",
    "set_number",
    "duration",
    "work_time",
    "is_completed",
)


def apply_log(db: Session, account: ApiKeyDB, raw: Any) -> RecordOutcome:
    """Apply one submitted entry and report what happened to it.

    Args:
        db: Database session
        account: Account resolved from the request's API key
        raw: The entry as submitted

    Returns:
        RecordOutcome with created, updated, deleted or rejected
    """
    client_id = raw.get("client_id") if isinstance(raw, dict) else None
    if not isinstance(client_id, str):
        client_id = None

    try:
        log = ExerciseLog.model_validate(raw)
    except ValidationError as err:
        return RecordOutcome(
            client_id=client_id,
            action="rejected",
            reason=format_validation_error(err),
        )

    existing = (
        db.query(ExerciseLogDB).filter(ExerciseLogDB.client_id == log.client_id).first()
    )

    if existing is not None and existing.api_key_id != account.id:
        logger.warning(
            "Rejected %s for account %s: %s",
            log.client_id,
            account.id,
            OWNED_BY_DIFFERENT_ACCOUNT,
        )
        return RecordOutcome(
            client_id=log.client_id,
            action="rejected",
            reason=OWNED_BY_DIFFERENT_ACCOUNT,
        )

    if log.op == "delete":
        # Deleting something already gone is still a confirmed delete
        if existing is not None:
            db.delete(existing)
            db.flush()
        return RecordOutcome(client_id=log.client_id, action="deleted")

    if existing is not None:
        for field in SYNCED_FIELDS:
            setattr(existing, field, getattr(log, field))
        existing.performed_at = from_unix_seconds(log.performed_at)
        db.flush()
        return RecordOutcome(client_id=log.client_id, action="updated")

    db.add(
        ExerciseLogDB(
            client_id=log.client_id,
            api_key_id=account.id,
            performed_at=from_unix_seconds(log.performed_at),
            **{field: getattr(log, field) for field in SYNCED_FIELDS},
        )
    )
    # Flush so a repeated client_id later in the same batch sees this row
    db.flush()
    return RecordOutcome(client_id=log.client_id, action="created")


def convert_db_to_response(log: ExerciseLogDB) -> ExerciseLogResponse:
    return ExerciseLogResponse(
        client_id=log.client_id,
        owner_id=str(log.api_key_id),
        exercise_name=log.exercise_name,
        muscle_group=log.muscle_group,
        exercise_type=log.exercise_type,
        reps=log.reps,
        weight=log.weight,
        set_number=log.set_number,
        duration=log.duration,
        work_time=log.work_time,
        performed_at=to_unix_seconds(log.performed_at),
        is_completed=log.is_completed,
    )


@router.post("/logs", response_model=SyncBatchResponse)
def sync_logs(
    request: SyncBatchRequest,
    db: Session = Depends(get_db),
    account: ApiKeyDB = Depends(require_api_key),
) -> SyncBatchResponse:
    """Upsert a batch of logs by client_id for the authenticated account.

    Results are returned in submission order, each carrying its client_id
    so the caller can match outcomes back to local records. The account id
    is returned as ``owner_id``.
    """
    results = [apply_log(db, account, raw) for raw in request.logs]
    db.commit()

    logger.info(
        "Synced %d logs for account %s (%d rejected)",
        len(results),
        account.id,
        sum(1 for result in results if result.action == "rejected"),
    )

    return SyncBatchResponse(success=True, owner_id=str(account.id), results=results)


def parse_time_bound(name: str, value: float) -> datetime:
    try:
        return from_unix_seconds(value)
    except (ValueError, OverflowError, OSError):
        raise HTTPException(status_code=400, detail=f"Invalid {name} timestamp")


@router.get("/logs", response_model=List[ExerciseLogResponse])
def list_logs(
    since: float | None = None,
    until: float | None = None,
    db: Session = Depends(get_db),
    account: ApiKeyDB = Depends(require_api_key),
) -> List[ExerciseLogResponse]:
    """List the account's synced logs, oldest first.

    Args:
        since: Optional unix timestamp; only logs performed at or after it
            are returned
        until: Optional unix timestamp; only logs performed at or before it
            are returned
        db: Database session
        account: Authenticated account

    Raises:
        HTTPException: 400 if a bound is not a representable timestamp
    """
    query = db.query(ExerciseLogDB).filter(ExerciseLogDB.api_key_id == account.id)

    if since is not None:
        query = query.filter(
            ExerciseLogDB.performed_at >= parse_time_bound("since", since)
        )
    if until is not None:
        query = query.filter(
            ExerciseLogDB.performed_at <= parse_time_bound("until", until)
        )

    logs = query.order_by(ExerciseLogDB.performed_at).all()
    return [convert_db_to_response(log) for log in logs]


@router.get("/stats", response_model=SyncStatsResponse)
def get_stats(
    db: Session = Depends(get_db),
    account: ApiKeyDB = Depends(require_api_key),
) -> SyncStatsResponse:
    """Summarize the account's synced logs."""
    logs = db.query(ExerciseLogDB).filter(ExerciseLogDB.api_key_id == account.id).all()

    if not logs:
        return SyncStatsResponse()

    exercise_names = sorted({log.exercise_name for log in logs})
    performed = sorted(to_unix_seconds(log.performed_at) for log in logs)

    return SyncStatsResponse(
        total_logs=len(logs),
        completed_logs=sum(1 for log in logs if log.is_completed),
        total_volume=sum(
            log.weight * log.reps
            for log in logs
            if log.exercise_type == "strength" and log.weight and log.reps
        ),
        total_work_time=sum(log.work_time or 0 for log in logs),
        unique_exercises=len(exercise_names),
        exercise_names=exercise_names,
        first_performed_at=performed[0],
        last_performed_at=performed[-1],
    )
