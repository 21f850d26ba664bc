from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.sql import func
from medstock.db.base import Base


class SessionEntry(Base):
    """One key/value pair of the persisted session (userToken, user, sheet credentials)."""
    __tablename__ = "session_entries"

    key = Column(String(128), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
