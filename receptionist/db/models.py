"""Database models."""
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class CallRecord(Base):
    """Durable record of a finished (or abandoned) call."""

    __tablename__ = "call_records"

    id = Column(Integer, primary_key=True, index=True)
    call_sid = Column(String, index=True, nullable=True)
    client_id = Column(String, index=True, nullable=False)
    from_number = Column(String, nullable=True)
    to_number = Column(String, nullable=True)
    timestamp = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )
    transcript = Column(Text, nullable=True)
    duration_seconds = Column(Integer, default=0, nullable=False)
    call_type = Column(String, nullable=False)  # escalated, message, abandoned
    status = Column(String, nullable=False)  # transferred, voicemail, abandoned
