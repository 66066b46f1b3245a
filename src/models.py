"""SQLAlchemy database models for the Remote Store."""

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Uuid,
)
from sqlalchemy.orm import relationship

from database import Base
from typedefs import utcnow


class ApiKeyDB(Base):
    """Database model for API keys.

    Each key identifies one account. Logs are owned by the key that first
    synced them, so the key id doubles as the owner id handed to clients.
    Only a hash of the raw key is stored.
    """

    __tablename__ = "api_keys"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)  # Human-readable account label
    key_hash = Column(String(64), nullable=False, unique=True, index=True)
    key_prefix = Column(String(8), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    last_used_at = Column(DateTime, nullable=True)

    logs = relationship("ExerciseLogDB", back_populates="api_key")

    def __repr__(self):
        return f"<ApiKeyDB(id={self.id}, name={self.name}, prefix={self.key_prefix})>"


class ExerciseLogDB(Base):
    """Database model for synced exercise logs.

    One row per client-generated record. ``client_id`` is the idempotency
    key: re-submitting it updates the row instead of inserting a new one.
    """

    __tablename__ = "exercise_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id = Column(String, nullable=False, unique=True, index=True)
    api_key_id = Column(Uuid, ForeignKey("api_keys.id"), nullable=False, index=True)
    exercise_name = Column(String, nullable=False)
    muscle_group = Column(String, nullable=False)
    exercise_type = Column(String, nullable=False)  # "strength" or "cardio"

    # Strength only
    reps = Column(Integer, nullable=True)
    weight = Column(Float, nullable=True)
    set_number = Column(Integer, nullable=True)

    # Cardio only (seconds)
    duration = Column(Float, nullable=True)

    work_time = Column(Float, nullable=True)  # Seconds spent executing
    performed_at = Column(DateTime, nullable=False)
    is_completed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    api_key = relationship("ApiKeyDB", back_populates="logs")

    def __repr__(self):
        return f"<ExerciseLogDB(client_id={self.client_id}, type={self.exercise_type})>"
