"""On-device record store.

A thin SQLAlchemy layer over the local SQLite database. It knows how to find
and persist Loggable Records and nothing about syncing.
"""

import uuid
from typing import List, Optional

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from typedefs import SyncState, utcnow

# Separate from the server's Base: the two schemas live in different databases
LocalBase = declarative_base()


class LoggableRecordDB(LocalBase):
    """A single logged strength set or cardio session on this device.

    Measurement columns are all nullable; which ones a record must carry
    depends on ``kind`` and is checked when mapping to the wire format.
    """

    __tablename__ = "loggable_records"

    client_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    scope = Column(String, nullable=True, index=True)  # Credential fingerprint
    owner_id = Column(String, nullable=True)  # Assigned by the remote store
    exercise_name = Column(String, nullable=False)
    muscle_group = Column(String, nullable=False, default="")
    kind = Column(String, nullable=False)  # "strength" or "cardio"

    reps = Column(Integer, nullable=True)
    weight = Column(Float, nullable=True)
    set_number = Column(Integer, nullable=True)
    duration = Column(Float, nullable=True)

    work_time = Column(Float, nullable=True)
    performed_at = Column(DateTime, nullable=False, default=utcnow)
    is_completed = Column(Boolean, nullable=False, default=False)

    sync_state = Column(
        String, nullable=False, default=SyncState.DIRTY.value, index=True
    )
    # Set when the record is mutated while its sync is in flight
    resync_pending = Column(Boolean, nullable=False, default=False)
    is_deleted = Column(Boolean, nullable=False, default=False)
    last_synced_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return (
            f"<LoggableRecordDB(client_id={self.client_id}, kind={self.kind}, "
            f"sync_state={self.sync_state})>"
        )


def create_local_engine(database_url: str):
    """Create the local database engine and make sure the schema exists."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    engine = create_engine(database_url, connect_args=connect_args)
    LocalBase.metadata.create_all(bind=engine)
    return engine


def create_local_session(database_url: str) -> Session:
    engine = create_local_engine(database_url)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)()


class LocalRecordStore:
    """Query-by-predicate and save access to local records."""

    def __init__(self, session: Session):
        self.session = session

    def fetch(self, *criteria) -> List[LoggableRecordDB]:
        """Return every record matching all of the given SQLAlchemy criteria."""
        return self.session.query(LoggableRecordDB).filter(*criteria).all()

    def get(self, client_id: str) -> Optional[LoggableRecordDB]:
        return self.session.get(LoggableRecordDB, client_id)

    def add(self, record: LoggableRecordDB) -> LoggableRecordDB:
        self.session.add(record)
        return record

    def save(self) -> None:
        self.session.commit()

    def purge(self, record: LoggableRecordDB) -> None:
        self.session.delete(record)

    def close(self) -> None:
        self.session.close()
