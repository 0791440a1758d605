"""Database models."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Boolean
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class VideoCall(Base):
    """Video call session record."""

    __tablename__ = "video_calls"

    id = Column(String, primary_key=True, index=True)
    initiator_id = Column(String, index=True, nullable=False)
    receiver_id = Column(String, index=True, nullable=False)
    status = Column(String, default="connecting", nullable=False)  # connecting, connected, ended
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    started_at = Column(DateTime, nullable=True)  # first successful media connection
    ended_at = Column(DateTime, nullable=True)
    duration_seconds = Column(Integer, default=0, nullable=False)
    switch_fired = Column(Boolean, default=False, nullable=False)
    extended = Column(Boolean, default=False, nullable=False)
    end_reason = Column(String, nullable=True)
