"""Sync-state bookkeeping for local records.

Every record is ``dirty`` (needs sync), ``syncing`` (claimed by the batch in
flight) or ``clean`` (confirmed remotely). A record only moves
dirty -> syncing -> clean. A mutation that lands while a record is syncing
sets ``resync_pending`` so the record ends the cycle dirty again whatever
the outcome of the in-flight attempt.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import inspect, or_

from local_store import LocalRecordStore, LoggableRecordDB
from typedefs import SyncState, utcnow

logger = logging.getLogger(__name__)


class ChangeTracker:
    def __init__(self, store: LocalRecordStore):
        self.store = store

    def mark_dirty(self, record: LoggableRecordDB) -> None:
        """Flag a record as needing sync. A no-op if it is already dirty.

        Does not commit; callers save alongside the mutation itself.
        """
        if record.sync_state == SyncState.SYNCING.value:
            record.resync_pending = True
        elif record.sync_state != SyncState.DIRTY.value:
            record.sync_state = SyncState.DIRTY.value

    def collect_dirty(self, scope: Optional[str]) -> List[LoggableRecordDB]:
        """Return dirty records belonging to the given scope.

        Records created before any credential was configured have no scope
        yet and are collected by whichever scope asks first.
        """
        return self.store.fetch(
            LoggableRecordDB.sync_state == SyncState.DIRTY.value,
            or_(LoggableRecordDB.scope == scope, LoggableRecordDB.scope.is_(None)),
        )

    def mark_syncing(
        self, records: Iterable[LoggableRecordDB], scope: Optional[str] = None
    ) -> List[LoggableRecordDB]:
        """Claim dirty records into a closed batch.

        Records that are no longer dirty are left out of the batch.
        """
        batch = []
        for record in records:
            if record.sync_state != SyncState.DIRTY.value:
                continue
            record.sync_state = SyncState.SYNCING.value
            record.resync_pending = False
            if record.scope is None:
                record.scope = scope
            batch.append(record)

        self.store.save()
        return batch

    def mark_clean(
        self,
        records: Iterable[LoggableRecordDB],
        owner_id: Optional[str],
        synced_at: Optional[datetime] = None,
    ) -> None:
        """Record remote confirmation for claimed records.

        Ownership is stamped once and never overwritten. A record mutated
        during the upload goes back to dirty instead of clean.
        """
        synced_at = synced_at or utcnow()
        for record in records:
            if record.sync_state != SyncState.SYNCING.value:
                continue

            if record.owner_id is None:
                record.owner_id = owner_id
            elif owner_id is not None and record.owner_id != owner_id:
                logger.warning(
                    "Record %s is owned by %s, ignoring owner %s",
                    record.client_id,
                    record.owner_id,
                    owner_id,
                )

            record.last_synced_at = synced_at
            if record.resync_pending:
                record.sync_state = SyncState.DIRTY.value
            else:
                record.sync_state = SyncState.CLEAN.value
            record.resync_pending = False

        self.store.save()

    def release(self, records: Iterable[LoggableRecordDB]) -> None:
        """Return records still claimed by a failed or partial cycle to dirty."""
        for record in records:
            state = inspect(record)
            if state.deleted or state.detached:
                continue
            if record.sync_state == SyncState.SYNCING.value:
                record.sync_state = SyncState.DIRTY.value
                record.resync_pending = False

        self.store.save()

    def purge_deleted(self, records: Iterable[LoggableRecordDB]) -> None:
        """Drop tombstones whose remote removal was confirmed."""
        for record in records:
            if record.sync_state != SyncState.SYNCING.value or not record.is_deleted:
                continue
            if record.resync_pending:
                record.sync_state = SyncState.DIRTY.value
                record.resync_pending = False
                continue
            self.store.purge(record)

        self.store.save()

    def recover_stranded(self) -> int:
        """Reset records left syncing by an interrupted process.

        Returns:
            Number of records reset to dirty
        """
        stranded = self.store.fetch(
            LoggableRecordDB.sync_state == SyncState.SYNCING.value
        )
        if stranded:
            logger.info("Recovering %d records stranded mid-sync", len(stranded))
            self.release(stranded)
        return len(stranded)

    def pending_count(self, scope: Optional[str]) -> int:
        return len(self.collect_dirty(scope))
