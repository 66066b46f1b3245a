"""Offline-first sync engine.

One cycle collects the dirty records of the active scope, claims them,
maps them to the wire format, uploads them in a single batch and marks the
confirmed ones clean. Everything else goes back to dirty and is retried on
the next trigger: connectivity regained, app foregrounded or a manual
"sync now". At most one cycle runs at a time; a trigger that arrives while
a cycle is in flight is dropped, not queued.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional

from change_tracker import ChangeTracker
from config import SyncConfig
from connectivity import ConnectivityMonitor, ConnectivityStatus
from local_store import LoggableRecordDB
from remote import RemoteStoreClient, RemoteStoreError
from typedefs import ExerciseLog, KeyValidationResponse, utcnow
from wire import MappingError, record_to_wire

logger = logging.getLogger(__name__)

# Outcomes the server may report for each operation sent
EXPECTED_ACTIONS = {"upsert": ("created", "updated"), "delete": ("deleted",)}


class SyncPhase(str, Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    UPLOADING = "uploading"
    RECONCILING = "reconciling"


class SyncOutcome(str, Enum):
    COMPLETED = "completed"
    NOTHING_TO_SYNC = "nothing_to_sync"
    FAILED = "failed"
    BUSY = "busy"
    NOT_CONFIGURED = "not_configured"
    INVALID_CREDENTIAL = "invalid_credential"
    OFFLINE = "offline"


@dataclass
class SyncReport:
    """What one call to ``run_cycle_if_idle`` did."""

    outcome: SyncOutcome
    confirmed: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    rejected: Dict[str, str] = field(default_factory=dict)
    unmapped: List[str] = field(default_factory=list)
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome in (SyncOutcome.COMPLETED, SyncOutcome.NOTHING_TO_SYNC)


class SyncEngine:
    def __init__(
        self,
        config: SyncConfig,
        tracker: ChangeTracker,
        remote: Optional[RemoteStoreClient],
        connectivity: ConnectivityMonitor,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.config = config
        self.tracker = tracker
        self.remote = remote
        self.connectivity = connectivity
        self.clock = clock

        self.phase = SyncPhase.IDLE
        self.last_synced_at: Optional[datetime] = None
        self.account_label = ""
        self._credential_valid: Optional[bool] = None

        connectivity.add_status_callback(self.on_connectivity_change)

    # Triggers

    def on_connectivity_change(
        self, old_status: ConnectivityStatus, new_status: ConnectivityStatus
    ) -> None:
        if (
            old_status is ConnectivityStatus.OFFLINE
            and new_status is ConnectivityStatus.ONLINE
        ):
            self.run_cycle_if_idle()

    def on_foreground(self) -> SyncReport:
        return self.run_cycle_if_idle()

    def sync_now(self) -> SyncReport:
        """User-initiated sync. Failures are reported instead of ignored."""
        return self.run_cycle_if_idle(user_initiated=True)

    # Credential

    def validate_credential(self) -> KeyValidationResponse:
        """Check the configured API key against the server and cache the result.

        Raises:
            RemoteStoreError: If the server could not answer
        """
        result = self.remote.validate_key()
        self._credential_valid = result.valid
        self.account_label = result.account_label if result.valid else ""
        if not result.valid:
            logger.warning("API key rejected: %s", result.error or "unknown error")
        return result

    def forget_credential(self) -> None:
        self._credential_valid = None
        self.account_label = ""

    @property
    def pending_count(self) -> int:
        return self.tracker.pending_count(self.config.scope)

    # Cycle

    def run_cycle_if_idle(self, user_initiated: bool = False) -> SyncReport:
        """Run one sync cycle unless one is already in flight."""
        if self.phase is not SyncPhase.IDLE:
            logger.debug("Sync already in progress (%s), ignoring trigger", self.phase.value)
            return SyncReport(SyncOutcome.BUSY, message="Sync already in progress")

        self.phase = SyncPhase.COLLECTING
        try:
            report = self._run_cycle()
        finally:
            self.phase = SyncPhase.IDLE

        if report.ok:
            logger.info("Sync %s: %s", report.outcome.value, report.message)
        elif user_initiated:
            logger.warning("Sync failed: %s", report.message)
        else:
            logger.debug("Sync skipped: %s", report.message)
        return report

    def _run_cycle(self) -> SyncReport:
        failed_precondition = self._check_preconditions()
        if failed_precondition is not None:
            return failed_precondition

        scope = self.config.scope
        dirty = self.tracker.collect_dirty(scope)
        if not dirty:
            return SyncReport(SyncOutcome.NOTHING_TO_SYNC, message="Nothing to sync")

        batch = self.tracker.mark_syncing(dirty, scope)
        try:
            return self._sync_batch(batch)
        finally:
            # Whatever happened, nothing may stay claimed after the cycle
            self.tracker.release(batch)

    def _check_preconditions(self) -> Optional[SyncReport]:
        if not self.config.is_configured or self.remote is None:
            return SyncReport(
                SyncOutcome.NOT_CONFIGURED, message="No server URL or API key configured"
            )

        if not self.connectivity.is_online:
            return SyncReport(SyncOutcome.OFFLINE, message="Offline")

        if self._credential_valid is None:
            try:
                self.validate_credential()
            except RemoteStoreError as err:
                return SyncReport(
                    SyncOutcome.FAILED, message=f"Could not validate API key: {err}"
                )

        if not self._credential_valid:
            return SyncReport(SyncOutcome.INVALID_CREDENTIAL, message="Invalid API key")

        return None

    def _sync_batch(self, batch: List[LoggableRecordDB]) -> SyncReport:
        logs: List[ExerciseLog] = []
        claimed: Dict[str, LoggableRecordDB] = {}
        unmapped: List[str] = []

        for record in batch:
            try:
                logs.append(record_to_wire(record))
            except MappingError as err:
                logger.warning("%s", err)
                unmapped.append(record.client_id)
                continue
            claimed[record.client_id] = record

        if not logs:
            return SyncReport(
                SyncOutcome.FAILED,
                unmapped=unmapped,
                message="No record could be mapped",
            )

        self.phase = SyncPhase.UPLOADING
        try:
            response = self.remote.upload_batch(logs)
        except RemoteStoreError as err:
            if err.status_code == 401:
                self.forget_credential()
            return SyncReport(
                SyncOutcome.FAILED, unmapped=unmapped, message=f"Upload failed: {err}"
            )

        self.phase = SyncPhase.RECONCILING
        report = SyncReport(SyncOutcome.COMPLETED, unmapped=unmapped)
        sent_ops = {log.client_id: log.op for log in logs}
        confirmed: List[LoggableRecordDB] = []
        deleted: List[LoggableRecordDB] = []

        for result in response.results:
            record = claimed.pop(result.client_id, None) if result.client_id else None
            if record is None:
                continue
            if result.action == "rejected":
                report.rejected[record.client_id] = result.reason or "rejected"
            elif result.action not in EXPECTED_ACTIONS[sent_ops[record.client_id]]:
                logger.warning(
                    "Unexpected %s outcome for %s", result.action, record.client_id
                )
                report.rejected[record.client_id] = f"unexpected {result.action} outcome"
            elif result.action == "deleted":
                deleted.append(record)
                report.deleted.append(record.client_id)
            else:
                confirmed.append(record)
                report.confirmed.append(record.client_id)

        if claimed:
            logger.warning("No outcome for %d uploaded records", len(claimed))

        now = self.clock()
        self.tracker.mark_clean(confirmed, response.owner_id, synced_at=now)
        self.tracker.purge_deleted(deleted)
        if confirmed or deleted:
            self.last_synced_at = now

        report.message = (
            f"{len(report.confirmed)} synced, {len(report.deleted)} deleted, "
            f"{len(report.rejected)} rejected, {len(report.unmapped)} unmapped"
        )
        return report
