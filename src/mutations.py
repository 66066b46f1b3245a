"""The single write path for local records.

Every create, edit, completion toggle and delete goes through
``RecordMutator.apply`` so that the record is always flagged dirty and the
sync engine gets a chance to push it.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Optional

from change_tracker import ChangeTracker
from local_store import LocalRecordStore, LoggableRecordDB
from typedefs import utcnow

logger = logging.getLogger(__name__)

MUTABLE_FIELDS = frozenset(
    {
        "exercise_name",
        "muscle_group",
        "kind",
        "reps",
        "weight",
        "set_number",
        "duration",
        "work_time",
        "performed_at",
        "is_completed",
    }
)


class RecordNotFoundError(LookupError):
    pass


class RecordDeletedError(ValueError):
    pass


class RecordMutator:
    def __init__(
        self,
        store: LocalRecordStore,
        tracker: ChangeTracker,
        scope: Optional[str] = None,
        on_change: Optional[Callable[[], Any]] = None,
    ):
        self.store = store
        self.tracker = tracker
        self.scope = scope
        # Called after every saved mutation, e.g. to start a sync opportunistically
        self.on_change = on_change

    def apply(self, record: LoggableRecordDB, **changes) -> LoggableRecordDB:
        """Apply field changes to a record, flag it dirty and save.

        Raises:
            ValueError: If a change targets a field that cannot be edited
            RecordDeletedError: If the record has been deleted
        """
        unknown = set(changes) - MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot modify fields: {', '.join(sorted(unknown))}")
        if record.is_deleted:
            raise RecordDeletedError(f"Record {record.client_id} has been deleted")

        for field, value in changes.items():
            setattr(record, field, value)
        record.updated_at = utcnow()

        self.tracker.mark_dirty(record)
        self.store.save()
        self._notify()
        return record

    def log_strength_set(
        self,
        exercise_name: str,
        reps: int,
        weight: float,
        set_number: int,
        muscle_group: str = "",
        work_time: float | None = None,
        performed_at: datetime | None = None,
        is_completed: bool = False,
        client_id: str | None = None,
    ) -> LoggableRecordDB:
        record = self._create("strength", client_id)
        return self.apply(
            record,
            exercise_name=exercise_name,
            muscle_group=muscle_group,
            reps=reps,
            weight=weight,
            set_number=set_number,
            work_time=work_time,
            performed_at=performed_at or utcnow(),
            is_completed=is_completed,
        )

    def log_cardio_session(
        self,
        exercise_name: str,
        duration: float,
        muscle_group: str = "Cardio",
        performed_at: datetime | None = None,
        is_completed: bool = False,
        client_id: str | None = None,
    ) -> LoggableRecordDB:
        record = self._create("cardio", client_id)
        # Work time of a cardio session is its duration
        return self.apply(
            record,
            exercise_name=exercise_name,
            muscle_group=muscle_group,
            duration=duration,
            work_time=duration,
            performed_at=performed_at or utcnow(),
            is_completed=is_completed,
        )

    def update(self, client_id: str, **changes) -> LoggableRecordDB:
        return self.apply(self._get(client_id), **changes)

    def set_completed(self, client_id: str, completed: bool = True) -> LoggableRecordDB:
        return self.apply(self._get(client_id), is_completed=completed)

    def delete(self, client_id: str) -> LoggableRecordDB:
        """Tombstone a record. It is purged once the remote delete is confirmed."""
        record = self._get(client_id)
        if record.is_deleted:
            return record

        record.is_deleted = True
        record.updated_at = utcnow()
        logger.debug("Tombstoned record %s", client_id)
        self.tracker.mark_dirty(record)
        self.store.save()
        self._notify()
        return record

    def _create(self, kind: str, client_id: str | None) -> LoggableRecordDB:
        record = LoggableRecordDB(
            client_id=client_id or str(uuid.uuid4()), kind=kind, scope=self.scope
        )
        self.store.add(record)
        return record

    def _get(self, client_id: str) -> LoggableRecordDB:
        record = self.store.get(client_id)
        if record is None:
            raise RecordNotFoundError(f"Record {client_id} not found")
        return record

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change()
