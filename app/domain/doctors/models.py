from datetime import timezone
from sqlalchemy import Column, String, Integer, DateTime, Text, Uuid
from sqlalchemy.sql import func
from sqlalchemy.types import TypeDecorator
from app.infrastructure.database import Base
import json
import uuid


class AvailabilityList(TypeDecorator):
    """Weekday list stored as a JSON array in a text column"""
    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return json.dumps(list(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return json.loads(value)


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC timestamps, also on backends that drop the offset (SQLite)"""
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class Doctor(Base):
    """Doctor record"""
    __tablename__ = "doctors"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, index=True)
    specialization = Column(String(100), nullable=False)
    experience = Column(Integer, nullable=False, default=0)
    availability = Column(AvailabilityList, default=list)

    # Set once at insert
    created_at = Column(UTCDateTime, server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Doctor(id={self.id}, name={self.name!r})>"
