"""Composition root for the on-device sync core.

This is the only place where the store, tracker, mutator, remote client,
connectivity monitor and sync engine are constructed and wired together.
"""

from dataclasses import dataclass
from typing import Optional

import requests
from sqlalchemy.orm import Session

from change_tracker import ChangeTracker
from config import SyncConfig
from connectivity import ConnectivityMonitor, ConnectivityStatus
from local_store import LocalRecordStore, create_local_session
from mutations import RecordMutator
from remote import RemoteStoreClient
from sync_engine import SyncEngine


@dataclass
class SyncClient:
    config: SyncConfig
    store: LocalRecordStore
    tracker: ChangeTracker
    mutator: RecordMutator
    remote: Optional[RemoteStoreClient]
    connectivity: ConnectivityMonitor
    engine: SyncEngine

    def close(self) -> None:
        if self.remote is not None:
            self.remote.close()
        self.store.close()


def build_sync_client(
    config: SyncConfig,
    http_session: Optional[requests.Session] = None,
    session: Optional[Session] = None,
    initial_status: ConnectivityStatus = ConnectivityStatus.OFFLINE,
    sync_on_change: bool = True,
) -> SyncClient:
    """Build a fully wired sync client for one configuration.

    Args:
        config: Endpoint, credential and local database settings
        http_session: Optional pre-built HTTP session (e.g. one with a test
            transport adapter mounted)
        session: Optional local database session; one is created from
            ``config.database_url`` otherwise
        initial_status: Connectivity assumed until the host reports otherwise
        sync_on_change: Start a sync opportunistically after each mutation

    Returns:
        SyncClient with every collaborator wired
    """
    store = LocalRecordStore(session or create_local_session(config.database_url))
    tracker = ChangeTracker(store)
    tracker.recover_stranded()

    remote = None
    if config.remote_url:
        remote = RemoteStoreClient(
            config.remote_url,
            config.api_key,
            timeout=config.upload_timeout_seconds,
            session=http_session,
        )

    connectivity = ConnectivityMonitor(
        probe=remote.health if remote is not None else None,
        initial=initial_status,
    )
    engine = SyncEngine(config, tracker, remote, connectivity)
    mutator = RecordMutator(
        store,
        tracker,
        scope=config.scope,
        on_change=engine.run_cycle_if_idle if sync_on_change else None,
    )

    return SyncClient(
        config=config,
        store=store,
        tracker=tracker,
        mutator=mutator,
        remote=remote,
        connectivity=connectivity,
        engine=engine,
    )
