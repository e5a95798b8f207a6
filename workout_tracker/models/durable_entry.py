from sqlalchemy import Column, String, DateTime, Integer, LargeBinary
from datetime import datetime
from workout_tracker.database.base import Base


class DurableEntry(Base):
    """
    One key of the durable map.
    `revision` is a fresh token on every write, so other processes can spot
    changes even when a key was deleted and created again.
    """
    __tablename__ = "durable_entries"

    key = Column(String(255), primary_key=True)
    value = Column(LargeBinary, nullable=False)
    version = Column(Integer, nullable=False, default=1)
    revision = Column(String(32), nullable=True)
    writer_id = Column(String(64), nullable=True)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
