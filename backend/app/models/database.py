"""
Symptom Journal Database Models
===============================
SQLAlchemy models for symptom logs, health profiles and the
append-only pattern analysis output (flags and summaries).
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Float, DateTime, Text, JSON
from sqlalchemy.types import TypeDecorator
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime stored as UTC.

    Values are converted to UTC on the way in (naive values are taken as
    UTC) and come back aware in UTC, also on backends such as SQLite that
    keep no offset.
    """
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None or not isinstance(value, datetime):
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class HealthLog(Base):
    """A single symptom journal entry."""
    __tablename__ = "health_logs"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(100), index=True, nullable=False)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    body_parts = Column(JSON, default=list)  # first entry is the primary region
    severity = Column(Float, nullable=True)  # 0-10
    date = Column(UTCDateTime, index=True, nullable=False)

    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, onupdate=func.now())


class HealthProfile(Base):
    """Baseline health profile, at most one row per user."""
    __tablename__ = "health_profile"

    user_id = Column(String(100), primary_key=True)

    allergies = Column(JSON, nullable=True)
    height = Column(Float, nullable=True)
    weight = Column(Float, nullable=True)
    family_history = Column(JSON, nullable=True)

    # Lifestyle
    lifestyle_sleep_hours = Column(Float, nullable=True)
    lifestyle_activity_level = Column(String(50), nullable=True)
    lifestyle_diet_type = Column(String(50), nullable=True)

    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, onupdate=func.now())


class AIFlag(Base):
    """Pattern observation produced by an analysis run. Never updated."""
    __tablename__ = "ai_flags"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(100), index=True, nullable=False)
    log_id = Column(String(36), index=True, nullable=True)

    title = Column(String(300), nullable=False)
    reasoning_summary = Column(Text, nullable=False)
    severity = Column(String(10), nullable=False)  # low, medium, high
    confidence_score = Column(Integer, nullable=False)  # 0-100
    risk_score = Column(Integer, nullable=False)  # fused score of the run

    created_at = Column(UTCDateTime, server_default=func.now())


class AISummary(Base):
    """Narrative summary, one row per analysis run. Never updated."""
    __tablename__ = "ai_summaries"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(100), index=True, nullable=False)

    summary_text = Column(Text, nullable=False)
    date_range_start = Column(UTCDateTime, nullable=True)
    date_range_end = Column(UTCDateTime, nullable=True)

    created_at = Column(UTCDateTime, server_default=func.now())
